"""
Brand manifest extractor — single model call that compresses the raw site
identity into a small structured brand description. The manifest becomes
the contract that the blueprint planner and every section generator follow.
"""

from sitegen.config import get_settings
from sitegen.errors import MalformedOutputError
from sitegen.llm_client import ModelClient
from sitegen.models import BrandManifest, ServiceItem, SiteIdentity
from sitegen.post_processor import resolve_colors
from sitegen.response_parser import extract_json_object


MANIFEST_SYSTEM_PROMPT = """You are a brand analyst. Given facts extracted from a local business website, produce a structured brand manifest.

RULES:
- Prefer exact colors from the extracted list. Never invent a color when one was extracted.
- Use ONLY these fonts: Inter, Outfit, Poppins, Montserrat, Playfair Display, DM Sans.
- Services must come from the extracted services; do not invent new ones.
- Output ONLY a JSON object. No markdown fences. No explanation."""

MANIFEST_SCHEMA = """{
  "businessName": "exact business name",
  "tagline": "compelling 5-10 word tagline based on their content",
  "primaryColor": "#hexcode (use first extracted color or pick based on category)",
  "secondaryColor": "#hexcode (complementary)",
  "accentColor": "#hexcode (accent/CTA color)",
  "fontHeadline": "font name",
  "fontBody": "font name for body text",
  "tone": "3-5 descriptive words for brand voice",
  "services": [{"name": "Service 1", "description": "Brief benefit-focused description"}],
  "heroHeadline": "Powerful 6-10 word headline addressing customer pain",
  "heroSubheadline": "20-30 word value proposition",
  "ctaText": "Action-oriented CTA text (4-5 words max)",
  "contactPhone": "phone if found",
  "contactEmail": "email if found",
  "contactAddress": "address if found"
}"""


def build_manifest_prompt(identity: SiteIdentity, category: str) -> str:
    contact = identity.contact_info
    return (
        "Extract a structured brand manifest from this website data.\n\n"
        "WEBSITE DATA:\n"
        f"- Business Name: {identity.business_name}\n"
        f"- Tagline: {identity.tagline or 'Not found'}\n"
        f"- Visual Vibe: {identity.visual_vibe or 'Not analyzed'}\n"
        f"- Category: {category}\n"
        f"- Services: {', '.join(identity.services) or 'None listed'}\n"
        f"- Content: {identity.full_copy[:2000]}\n"
        f"- Colors Found: {', '.join(identity.primary_colors) or 'None'}\n"
        f"- Contact Phone: {contact.phone or 'Not found'}\n"
        f"- Contact Email: {contact.email or 'Not found'}\n"
        f"- Contact Address: {contact.address or 'Not found'}\n\n"
        "Return ONLY a JSON object with this exact structure "
        "(no markdown, no explanation):\n"
        f"{MANIFEST_SCHEMA}"
    )


async def extract_brand_manifest(
    client: ModelClient,
    identity: SiteIdentity,
    category: str,
) -> BrandManifest:
    """
    Single model call to extract the brand manifest.
    Falls back to fallback_manifest() on any failure. Never raises.
    """
    settings = get_settings()
    try:
        completion = await client.complete(
            build_manifest_prompt(identity, category),
            system=MANIFEST_SYSTEM_PROMPT,
            max_tokens=settings.manifest_max_tokens,
            temperature=settings.manifest_temperature,
            label="manifest",
        )
        extraction = extract_json_object(completion.text)
        if not extraction.ok:
            raise MalformedOutputError(
                f"No usable manifest in response ({extraction.status.value}: {extraction.error})"
            )
        manifest = BrandManifest.model_validate(extraction.payload)
        print(f"  [manifest] Extracted — {manifest.business_name}, primary={manifest.primary_color}")
        return manifest

    except Exception as e:
        print(f"  [manifest] Extraction failed: {e} — using fallback")
        return fallback_manifest(identity, category)


def fallback_manifest(identity: SiteIdentity, category: str) -> BrandManifest:
    """Deterministic manifest built straight from the identity."""
    primary, secondary, accent = resolve_colors(identity.primary_colors, None)
    if len(identity.primary_colors) < 3 and identity.accent_color:
        accent = identity.accent_color
    contact = identity.contact_info
    name = identity.business_name

    return BrandManifest(
        business_name=name,
        tagline=identity.tagline or f"Quality {category} Services",
        primary_color=primary,
        secondary_color=secondary,
        accent_color=accent,
        font_headline="Inter",
        font_body="Inter",
        tone="professional, trustworthy, modern",
        services=[ServiceItem(name=s, description=f"Expert {s} services") for s in identity.services],
        hero_headline=f"Welcome to {name}",
        hero_subheadline=identity.full_copy[:100] or f"Your trusted {category} partner",
        cta_text="Get Started Today",
        contact_phone=contact.phone,
        contact_email=contact.email,
        contact_address=contact.address,
    )
