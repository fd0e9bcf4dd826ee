import inspect
import json

import pytest

from sitegen.config import get_settings
from sitegen.llm_client import Completion
from sitegen.models import (
    BrandManifest,
    ColorScheme,
    ContactInfo,
    NavLink,
    SectionSpec,
    SemanticImageMap,
    ServiceItem,
    SiteBlueprint,
    SiteIdentity,
    SiteImage,
)


def prompt_text(content) -> str:
    """Flatten a ModelClient content argument to its text blocks."""
    if isinstance(content, str):
        return content
    return "\n".join(block.get("text", "") for block in content if block.get("type") == "text")


class FakeModelClient:
    """
    Stands in for ModelClient. Either replays `responses` in order or asks
    `handler(prompt, label)` for each call. A response may be a string, a
    Completion or an exception instance (raised).
    """

    def __init__(self, responses=None, handler=None):
        self.responses = list(responses or [])
        self.handler = handler
        self.calls = []

    async def complete(self, content, *, system=None, max_tokens=4096, temperature=0.5, label="model"):
        prompt = prompt_text(content)
        self.calls.append({
            "content": content,
            "prompt": prompt,
            "system": system,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "label": label,
        })
        if self.handler is not None:
            result = self.handler(prompt, label)
            if inspect.isawaitable(result):
                result = await result
        else:
            result = self.responses.pop(0)

        if isinstance(result, Exception):
            raise result
        if isinstance(result, Completion):
            return result
        return Completion(text=result)

    async def aclose(self):
        pass


@pytest.fixture(autouse=True)
def fast_settings(monkeypatch):
    """No real sleeping between batches or retry rounds."""
    settings = get_settings()
    monkeypatch.setattr(settings, "section_batch_delay", 0.0)
    monkeypatch.setattr(settings, "section_backoff_base", 0.0)
    return settings


@pytest.fixture
def identity():
    return SiteIdentity(
        business_name="Harbor Dental",
        tagline="Gentle care for the whole family",
        source_url="https://harbordental.example",
        logo_url="https://cdn.example/logo.png",
        hero_images=[SiteImage(url="https://cdn.example/hero-legacy.jpg")],
        primary_colors=["#112233", "#445566"],
        accent_color="#ff8800",
        services=["Cleanings", "Whitening", "Implants"],
        contact_info=ContactInfo(phone="555-0100", email="hi@harbordental.example",
                                 address="1 Pier Rd"),
        full_copy="Harbor Dental has served the bay for twenty years.",
        semantic_image_map=SemanticImageMap(
            hero=[SiteImage(url="https://cdn.example/hero.jpg")],
            services=[SiteImage(url="https://cdn.example/svc1.jpg"),
                      SiteImage(url="https://cdn.example/svc2.jpg")],
            gallery=[SiteImage(url="https://cdn.example/gal1.jpg")],
        ),
    )


@pytest.fixture
def manifest():
    return BrandManifest(
        business_name="Harbor Dental",
        tagline="Gentle care for the whole family",
        primary_color="#112233",
        secondary_color="#445566",
        accent_color="#ff8800",
        font_headline="Playfair Display",
        font_body="Inter",
        tone="warm, calm",
        services=[ServiceItem(name="Cleanings", description="Twice-yearly checkups")],
        hero_headline="Smile with confidence",
        hero_subheadline="Modern dentistry close to home",
        cta_text="Book a visit",
        contact_phone="555-0100",
        contact_email="hi@harbordental.example",
        contact_address="1 Pier Rd",
    )


@pytest.fixture
def blueprint():
    return SiteBlueprint(
        design_style="saas-modern",
        sections=[
            SectionSpec(id="hero", type="hero", priority=1, image_needed=True),
            SectionSpec(id="services", type="services", priority=2),
            SectionSpec(id="about", type="about", priority=3),
            SectionSpec(id="contact", type="contact", priority=4),
        ],
        nav_links=[
            NavLink(label="Home", href="#hero"),
            NavLink(label="Services", href="#services"),
            NavLink(label="Contact", href="#contact"),
        ],
        color_scheme=ColorScheme(primary="#112233", secondary="#445566", accent="#ff8800"),
    )


def section_responder(prompt: str, label: str) -> str:
    """Model stand-in that answers every section prompt with a small section."""
    if label == "manifest":
        return "not json"
    if label == "blueprint":
        return "not json"
    section_id = label.split(":", 1)[1]
    return f'<section id="{section_id}"><h2>{section_id.title()}</h2><p>Content</p></section>'


def manifest_json(**overrides) -> str:
    data = {
        "businessName": "Harbor Dental",
        "tagline": "Gentle care",
        "primaryColor": "#112233",
        "secondaryColor": "#445566",
        "accentColor": "#ff8800",
        "fontHeadline": "Outfit",
        "fontBody": "Inter",
        "tone": "warm",
        "services": [{"name": "Cleanings", "description": "Checkups"}],
        "heroHeadline": "Smile with confidence",
        "heroSubheadline": "Modern dentistry",
        "ctaText": "Book now",
    }
    data.update(overrides)
    return json.dumps(data)
