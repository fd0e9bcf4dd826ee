"""
Site blueprint planner — one model call that turns the brand manifest into
a structural plan: ordered sections, nav links and a resolved colour scheme.

Whatever the model returns is normalized so the blueprint invariants hold
(unique section ids, nav links only pointing at planned sections).
"""

import re

from sitegen.config import get_settings
from sitegen.errors import MalformedOutputError
from sitegen.llm_client import ModelClient
from sitegen.models import (
    DESIGN_STYLES,
    BrandManifest,
    ColorScheme,
    NavLink,
    SectionSpec,
    SiteBlueprint,
    SiteIdentity,
)
from sitegen.placeholders import create_placeholder_registry
from sitegen.response_parser import extract_json_object


SECTION_TYPES = (
    "hero", "services", "about", "testimonials", "gallery",
    "faq", "team", "cta", "contact", "features",
)

# Section type -> nav label
NAV_LABELS = {
    "hero": "Home",
    "services": "Services",
    "features": "Features",
    "about": "About",
    "testimonials": "Reviews",
    "gallery": "Gallery",
    "faq": "FAQ",
    "team": "Team",
    "contact": "Contact",
}

BLUEPRINT_SYSTEM_PROMPT = """You are a website architect. You plan the structure of a modern one-page marketing site for a local business. You never write HTML.

Output ONLY a JSON object. No markdown fences. No explanation."""


def content_signals(identity: SiteIdentity) -> dict:
    """What the identity actually has content for. Gates optional sections."""
    registry = create_placeholder_registry(identity)
    contact = identity.contact_info
    return {
        "has_services": len(identity.services) > 0,
        "has_contact_info": bool(contact.phone or contact.email or contact.address),
        "testimonials": len(identity.testimonials),
        "team_members": len(identity.team_members),
        "faqs": len(identity.faqs),
        "gallery_images": len(registry.gallery_images),
        "about_copy": len(identity.full_copy) > 200,
        "content_sparsity": identity.content_sparsity,
    }


def build_blueprint_prompt(manifest: BrandManifest, identity: SiteIdentity, category: str) -> str:
    signals = content_signals(identity)
    return (
        "Create a site blueprint (structure plan) for modernizing this business website.\n\n"
        f"BRAND MANIFEST:\n{manifest.model_dump_json(by_alias=True, indent=2)}\n\n"
        "ADDITIONAL CONTEXT:\n"
        f"- Category: {category}\n"
        f"- Visual Vibe: {identity.visual_vibe or 'Not analyzed'}\n"
        f"- Content Sparsity: {signals['content_sparsity']}\n"
        f"- Has Services: {signals['has_services']}\n"
        f"- Has Contact Info: {signals['has_contact_info']}\n"
        f"- Testimonials: {signals['testimonials']}\n"
        f"- Team Members: {signals['team_members']}\n"
        f"- FAQs: {signals['faqs']}\n"
        f"- Gallery Images: {signals['gallery_images']}\n\n"
        "DESIGN STYLE OPTIONS:\n"
        '- "saas-modern": Clean geometric layouts, gradient CTAs, floating cards\n'
        '- "bento-grid": Asymmetric card layouts, mixed sizes, playful hierarchy\n'
        '- "high-end-minimal": Generous whitespace, serif headlines, elegant\n\n'
        "Return ONLY a JSON object (no markdown):\n"
        "{\n"
        '  "designStyle": "saas-modern" | "bento-grid" | "high-end-minimal",\n'
        '  "sections": [\n'
        '    {"id": "hero", "type": "hero", "priority": 1, '
        '"contentHints": "Brief description of what content goes here", "imageNeeded": true}\n'
        "  ],\n"
        '  "navLinks": [{"label": "Home", "href": "#hero"}],\n'
        '  "colorScheme": {"primary": "#hex", "secondary": "#hex", "accent": "#hex", '
        '"background": "#hex", "text": "#hex"}\n'
        "}\n\n"
        "REQUIRED sections: hero, services (only if Has Services is True), contact\n"
        "OPTIONAL sections, ONLY when the content exists: about, testimonials (Testimonials > 0), "
        "gallery (Gallery Images > 0), faq (FAQs > 0), team (Team Members > 0), cta\n"
        "Every navLinks href must be '#<id>' of a planned section."
    )


async def plan_site_blueprint(
    client: ModelClient,
    manifest: BrandManifest,
    identity: SiteIdentity,
    category: str,
) -> SiteBlueprint:
    """
    Single model call to plan the site.
    Falls back to fallback_blueprint() on any failure. Never raises.
    """
    settings = get_settings()
    try:
        completion = await client.complete(
            build_blueprint_prompt(manifest, identity, category),
            system=BLUEPRINT_SYSTEM_PROMPT,
            max_tokens=settings.blueprint_max_tokens,
            temperature=settings.blueprint_temperature,
            label="blueprint",
        )
        extraction = extract_json_object(completion.text)
        if not extraction.ok:
            raise MalformedOutputError(
                f"No usable blueprint in response ({extraction.status.value}: {extraction.error})"
            )
        blueprint = normalize_blueprint(extraction.payload, manifest, identity)
        print(f"  [blueprint] {blueprint.design_style} style, "
              f"{len(blueprint.sections)} sections: {[s.id for s in blueprint.sections]}")
        return blueprint

    except Exception as e:
        print(f"  [blueprint] Planning failed: {e} — using fallback")
        return fallback_blueprint(manifest)


def _slug(value: str) -> str:
    slug = re.sub(r"[^a-z0-9-]+", "-", str(value).lower().lstrip("#")).strip("-")
    return slug


def normalize_blueprint(payload: dict, manifest: BrandManifest, identity: SiteIdentity) -> SiteBlueprint:
    """
    Coerce raw model JSON into a valid SiteBlueprint.

    Raises MalformedOutputError when there is nothing usable to plan from.
    """
    raw_sections = payload.get("sections")
    if not isinstance(raw_sections, list) or not raw_sections:
        raise MalformedOutputError("blueprint has no sections")

    sections: list[SectionSpec] = []
    seen: set[str] = set()
    for i, raw in enumerate(raw_sections):
        if not isinstance(raw, dict):
            continue
        sec_type = _slug(raw.get("type") or raw.get("id") or "")
        sec_id = _slug(raw.get("id") or sec_type)
        if not sec_id or sec_id in seen:
            continue
        seen.add(sec_id)
        priority = raw.get("priority")
        sections.append(SectionSpec(
            id=sec_id,
            type=sec_type or sec_id,
            priority=priority if isinstance(priority, int) else i + 1,
            content_hints=str(raw.get("contentHints") or raw.get("content_hints") or ""),
            image_needed=bool(raw.get("imageNeeded", raw.get("image_needed", False))),
        ))

    if not sections:
        raise MalformedOutputError("blueprint sections are all invalid")

    # Required sections the model forgot
    types = {s.type for s in sections}
    lowest = min(s.priority for s in sections)
    highest = max(s.priority for s in sections)
    if "hero" not in types and "hero" not in seen:
        sections.append(SectionSpec(id="hero", type="hero", priority=lowest - 1,
                                    content_hints="Main headline and CTA", image_needed=True))
    if identity.services and "services" not in types and "services" not in seen:
        sections.append(SectionSpec(id="services", type="services", priority=highest + 1,
                                    content_hints="Service cards"))
        highest += 1
    if "contact" not in types and "contact" not in seen:
        sections.append(SectionSpec(id="contact", type="contact", priority=highest + 1,
                                    content_hints="Contact form and info"))

    sections.sort(key=lambda s: s.priority)
    ids = {s.id for s in sections}

    nav_links = []
    for raw in payload.get("navLinks") or payload.get("nav_links") or []:
        if not isinstance(raw, dict) or not raw.get("label") or not raw.get("href"):
            continue
        href = str(raw["href"])
        if href.startswith("#") and href[1:] not in ids:
            continue
        nav_links.append(NavLink(label=str(raw["label"]), href=href))
    if not nav_links:
        nav_links = default_nav_links(sections)

    design_style = payload.get("designStyle") or payload.get("design_style")
    if design_style not in DESIGN_STYLES:
        design_style = "saas-modern"

    raw_colors = payload.get("colorScheme") or payload.get("color_scheme") or {}
    if not isinstance(raw_colors, dict):
        raw_colors = {}
    color_scheme = ColorScheme(
        primary=raw_colors.get("primary") or manifest.primary_color,
        secondary=raw_colors.get("secondary") or manifest.secondary_color,
        accent=raw_colors.get("accent") or manifest.accent_color,
        background=raw_colors.get("background") or "#ffffff",
        text=raw_colors.get("text") or "#1f2937",
    )

    return SiteBlueprint(
        design_style=design_style,
        sections=sections,
        nav_links=nav_links,
        color_scheme=color_scheme,
    )


def default_nav_links(sections: list[SectionSpec]) -> list[NavLink]:
    return [
        NavLink(label=NAV_LABELS[s.type], href=f"#{s.id}")
        for s in sections if s.type in NAV_LABELS
    ]


def fallback_blueprint(manifest: BrandManifest) -> SiteBlueprint:
    """Hard-coded three-section plan: hero, services, contact."""
    return SiteBlueprint(
        design_style="saas-modern",
        sections=[
            SectionSpec(id="hero", type="hero", priority=1,
                        content_hints="Main headline and CTA", image_needed=True),
            SectionSpec(id="services", type="services", priority=2,
                        content_hints="Service cards", image_needed=False),
            SectionSpec(id="contact", type="contact", priority=3,
                        content_hints="Contact form and info", image_needed=False),
        ],
        nav_links=[
            NavLink(label="Home", href="#hero"),
            NavLink(label="Services", href="#services"),
            NavLink(label="Contact", href="#contact"),
        ],
        color_scheme=ColorScheme(
            primary=manifest.primary_color,
            secondary=manifest.secondary_color,
            accent=manifest.accent_color,
            background="#ffffff",
            text="#1f2937",
        ),
    )
