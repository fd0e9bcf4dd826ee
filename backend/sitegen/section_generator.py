"""
Section generator — generates ONE HTML section per model call.
All calls receive the same cached system prompt; the user prompt carries
only the facts the section type needs plus the image tokens it may use.

Sections run in small batches so the model API rate limits hold. A 429
re-queues the section for a later round instead of failing it outright.
"""

import asyncio
from html import escape
import json
import re
import time

from sitegen.config import get_settings
from sitegen.errors import RateLimitError
from sitegen.llm_client import ModelClient
from sitegen.models import (
    BrandManifest,
    SectionResult,
    SectionSpec,
    SiteBlueprint,
    SiteIdentity,
)
from sitegen.placeholders import (
    ACCENT_COLOR_TOKEN,
    LOGO_TOKEN,
    PRIMARY_COLOR_TOKEN,
    SECONDARY_COLOR_TOKEN,
    PlaceholderRegistry,
)
from sitegen.response_parser import extract_html_fragment


SECTION_SYSTEM_PROMPT = f"""You are an HTML section generator for a one-page business website. You generate ONE section at a time.

## Rules

1. Output ONLY raw HTML for the section. No markdown fences. No explanation. No <html>, <head> or <body>.
2. The root element MUST be <section id="..."> with the exact id you are given.
3. Use Tailwind CSS utility classes. The page already loads Tailwind and defines the colors
   `primary`, `secondary`, `accent` and the font families `font-headline`, `font-body`.
4. NEVER write image URLs. Use ONLY the image tokens listed in the prompt, exactly as written,
   e.g. <img src="[[ID_HERO_1_HERE]]">. If no tokens are listed, use no <img> at all.
5. The logo token is {LOGO_TOKEN}. Brand colors may also be written as
   {PRIMARY_COLOR_TOKEN}, {SECONDARY_COLOR_TOKEN}, {ACCENT_COLOR_TOKEN} inside inline styles.
6. Use EXACT business facts from the prompt. Never invent phone numbers, emails or addresses.
7. Make layouts responsive: use `sm:`, `md:`, `lg:` prefixes.
8. For entrance animations use the classes `animate-fade-in-up`, `animate-fade-in`,
   `animate-slide-in-left`, `animate-float` and `animation-delay-100` to `animation-delay-600`.
9. For depth effects you may use `glass`, `glass-card`, `glow`, `btn-glow`, `card-hover`, `mesh-bg`."""


# Type-specific instructions appended to the user prompt
SECTION_RULES = {
    "hero": """HERO RULES:
- Full height section (min-h-screen)
- Large headline with gradient or bold text
- Subheadline addressing customer pain
- Primary CTA button linking to #contact + optional secondary
- Trust indicators if available""",

    "services": """SERVICES RULES:
- Card grid layout (responsive)
- Icon or image for each service
- Service name and brief description
- Hover effects on cards""",

    "features": """FEATURES RULES:
- Grid of 3-6 benefit cards
- Short benefit-focused headings, one sentence each""",

    "about": """ABOUT RULES:
- Split layout (text + image)
- Company story/mission
- Trust indicators""",

    "testimonials": """TESTIMONIALS RULES:
- Use ONLY the testimonials provided, quoted exactly
- Each card: quote text, author name
- Quotation marks or quote icon for visual flair""",

    "gallery": """GALLERY RULES:
- Responsive masonry or grid of the provided gallery tokens
- Rounded corners, hover zoom""",

    "faq": """FAQ RULES:
- Use ONLY the questions provided
- Use <details>/<summary> so it works without JavaScript
- Chevron indicator that rotates on open""",

    "team": """TEAM RULES:
- Card per team member: photo token if listed, name, role
- Use ONLY the members provided""",

    "cta": """CTA RULES:
- Dark or gradient background
- Compelling headline
- Single focused CTA""",

    "contact": """CONTACT RULES:
- Contact form (name, email, phone, message)
- Display phone/email/address when available
- Business hours if known
- Map placeholder optional""",
}

# Section type -> registry bucket it may draw images from
IMAGE_BUCKETS = {
    "hero": "hero",
    "services": "service",
    "gallery": "gallery",
    "about": "team",
    "team": "team",
}


def section_image_tokens(spec: SectionSpec, registry: PlaceholderRegistry) -> list[str]:
    bucket = IMAGE_BUCKETS.get(spec.type)
    if bucket is None:
        return []
    return registry.available_tokens(bucket)


def _section_facts(spec: SectionSpec, manifest: BrandManifest, identity: SiteIdentity | None) -> list[str]:
    """Facts relevant to one section type. Keeps the prompt small."""
    facts = [f"- Business: {manifest.business_name}"]
    if spec.type in ("hero", "cta"):
        facts += [
            f"- Headline: {manifest.hero_headline}",
            f"- Subheadline: {manifest.hero_subheadline}",
            f"- CTA: {manifest.cta_text}",
        ]
    if spec.type in ("hero", "about"):
        facts.append(f"- Tagline: {manifest.tagline}")
        facts.append(f"- Tone: {manifest.tone}")
    if spec.type in ("services", "features"):
        services = [s.model_dump() for s in manifest.services]
        facts.append(f"- Services: {json.dumps(services)}")
    if spec.type == "contact":
        facts += [
            f"- Phone: {manifest.contact_phone or 'Not available'}",
            f"- Email: {manifest.contact_email or 'Not available'}",
            f"- Address: {manifest.contact_address or 'Not available'}",
            f"- CTA: {manifest.cta_text}",
        ]
    if identity is not None:
        if spec.type == "about" and identity.full_copy:
            facts.append(f"- About copy: {identity.full_copy[:1200]}")
        if spec.type == "testimonials":
            quotes = [t.model_dump() for t in identity.testimonials[:6]]
            facts.append(f"- Testimonials: {json.dumps(quotes)}")
        if spec.type == "faq":
            faqs = [f.model_dump() for f in identity.faqs[:10]]
            facts.append(f"- FAQs: {json.dumps(faqs)}")
        if spec.type == "team":
            members = [{"name": m.name, "role": m.role} for m in identity.team_members[:8]]
            facts.append(f"- Team: {json.dumps(members)}")
    return facts


def build_section_prompt(
    spec: SectionSpec,
    manifest: BrandManifest,
    blueprint: SiteBlueprint,
    registry: PlaceholderRegistry,
    identity: SiteIdentity | None = None,
) -> str:
    colors = blueprint.color_scheme
    tokens = section_image_tokens(spec, registry)
    if tokens:
        image_line = "IMAGE TOKENS TO USE (in this order): " + ", ".join(tokens)
    else:
        image_line = "IMAGE TOKENS TO USE: none (do not add <img> tags)"

    others = [s.id for s in blueprint.sections if s.id != spec.id]
    text = (
        "Generate HTML for a single website section.\n\n"
        f"SECTION TYPE: {spec.type}\n"
        f"SECTION ID: {spec.id}\n"
        f"DESIGN STYLE: {blueprint.design_style}\n"
        f"CONTENT HINTS: {spec.content_hints or 'None'}\n"
        f"OTHER SECTIONS (do not duplicate their content): {', '.join(others) or 'none'}\n\n"
        "BRAND DATA:\n" + "\n".join(_section_facts(spec, manifest, identity)) + "\n\n"
        "COLOR SCHEME:\n"
        f"- Primary: {colors.primary}\n"
        f"- Secondary: {colors.secondary}\n"
        f"- Accent: {colors.accent}\n"
        f"- Background: {colors.background}\n"
        f"- Text: {colors.text}\n\n"
        "FONTS:\n"
        f"- Headlines: {manifest.font_headline}\n"
        f"- Body: {manifest.font_body}\n\n"
        f"{image_line}\n"
    )
    rules = SECTION_RULES.get(spec.type)
    if rules:
        text += f"\n{rules}\n"
    text += (
        f'\nOUTPUT: Return ONLY the HTML for this section wrapped in a <section id="{spec.id}"> tag.\n'
        "No explanation, no markdown code blocks - just raw HTML."
    )
    return text


_LEADING_COMMENTS_RE = re.compile(r"(?:\s*<!--[\s\S]*?-->)*\s*")
_ROOT_SECTION_RE = re.compile(r"<section\b([^>]*)>", re.IGNORECASE)
_ID_ATTR_RE = re.compile(r"""(?<![\w-])id\s*=\s*(["'])(.*?)\1""", re.IGNORECASE)


def ensure_section_id(html: str, section_id: str) -> str:
    """Make the fragment's root element a <section> carrying `section_id`."""
    html = html.strip()
    # Leading comments stay where they are; the first tag after them is the root
    root_start = _LEADING_COMMENTS_RE.match(html).end()
    m = _ROOT_SECTION_RE.match(html, root_start)
    if m:
        attrs = m.group(1)
        id_match = _ID_ATTR_RE.search(attrs)
        if id_match and id_match.group(2) == section_id:
            return html
        if id_match:
            attrs = attrs[:id_match.start()] + f'id="{section_id}"' + attrs[id_match.end():]
        else:
            attrs = f' id="{section_id}"' + attrs
        return html[:root_start] + f"<section{attrs}>" + html[m.end():]
    return f'<section id="{section_id}" class="py-20">\n{html}\n</section>'


def fallback_section_html(spec: SectionSpec) -> str:
    """Labelled gray block shown when a section could not be generated."""
    return (
        f'<section id="{escape(spec.id)}" class="py-20 bg-gray-100">'
        '<div class="max-w-4xl mx-auto text-center">'
        f'<p class="text-gray-500">Section: {escape(spec.type)}</p>'
        "</div></section>"
    )


async def generate_section(
    client: ModelClient,
    spec: SectionSpec,
    manifest: BrandManifest,
    blueprint: SiteBlueprint,
    registry: PlaceholderRegistry,
    identity: SiteIdentity | None = None,
) -> SectionResult:
    """
    Generate one HTML section. Never raises: failures come back as a
    success=False result with placeholder markup.
    """
    settings = get_settings()
    t0 = time.time()
    try:
        completion = await client.complete(
            build_section_prompt(spec, manifest, blueprint, registry, identity),
            system=SECTION_SYSTEM_PROMPT,
            max_tokens=settings.section_max_tokens,
            temperature=settings.section_temperature,
            label=f"section-gen:{spec.id}",
        )
        cleaned = extract_html_fragment(completion.text)
        if not cleaned:
            raise ValueError("empty section output")
        html = ensure_section_id(cleaned, spec.id)

        elapsed = time.time() - t0
        print(f"  [section-gen] {spec.id} ({spec.type}) — {elapsed:.1f}s, {len(html)} chars")
        return SectionResult(id=spec.id, type=spec.type, html=html, success=True)

    except RateLimitError as e:
        print(f"  [section-gen] {spec.id} rate limited")
        return SectionResult(
            id=spec.id, type=spec.type, html=fallback_section_html(spec),
            success=False, error=str(e), rate_limited=True, retry_after=e.retry_after,
        )
    except Exception as e:
        elapsed = time.time() - t0
        print(f"  [section-gen] {spec.id} FAILED in {elapsed:.1f}s: {e}")
        return SectionResult(
            id=spec.id, type=spec.type, html=fallback_section_html(spec),
            success=False, error=str(e),
        )


async def generate_sections(
    client: ModelClient,
    blueprint: SiteBlueprint,
    manifest: BrandManifest,
    registry: PlaceholderRegistry,
    identity: SiteIdentity | None = None,
) -> list[SectionResult]:
    """
    Generate every blueprint section, `section_concurrency` at a time.

    Returns exactly one SectionResult per SectionSpec, in priority order.
    """
    settings = get_settings()
    concurrency = max(1, settings.section_concurrency)
    ordered = sorted(blueprint.sections, key=lambda s: s.priority)
    print(f"  [section-gen] Generating {len(ordered)} sections (concurrency: {concurrency})")

    results: dict[str, SectionResult] = {}
    queue = list(ordered)
    retry_round = 0

    while queue:
        requeue: list[SectionSpec] = []
        retry_after = 0.0

        for start in range(0, len(queue), concurrency):
            batch = queue[start:start + concurrency]
            batch_results = await asyncio.gather(*[
                generate_section(client, spec, manifest, blueprint, registry, identity)
                for spec in batch
            ])
            for spec, result in zip(batch, batch_results):
                results[spec.id] = result
                if result.rate_limited and retry_round < settings.section_rate_limit_retries:
                    requeue.append(spec)
                    retry_after = max(retry_after, result.retry_after or 0.0)
            # Small delay between batches to respect rate limits
            if start + concurrency < len(queue):
                await asyncio.sleep(settings.section_batch_delay)

        if requeue:
            delay = max(settings.section_backoff_base * (2 ** retry_round), retry_after)
            retry_round += 1
            print(f"  [section-gen] {len(requeue)} section(s) rate limited — "
                  f"retry round {retry_round} in {delay:.1f}s")
            await asyncio.sleep(delay)
        queue = requeue

    final = [results[spec.id] for spec in ordered]
    ok = sum(1 for r in final if r.success)
    print(f"  [section-gen] Generated {ok}/{len(final)} sections successfully")
    return final
