"""
Post-processor — final phase of generation.

  - replaces [[ID_*_HERE]] placeholders with real assets from the registry
  - injects CSS colour variables (+ RGB triplets for translucent overlays)
  - injects entrance animation / glass & glow styles when they are used
  - validates that no placeholder survives, stripping any that do

Every step is a pure str -> str transform and the whole pipeline is
idempotent: a second run over its own output changes nothing.
"""

import re

from sitegen.models import GeneratedDocument, ValidationResult
from sitegen.placeholders import PLACEHOLDER_PATTERNS, PlaceholderRegistry


DEFAULT_PRIMARY = "#3B82F6"
DEFAULT_SECONDARY = "#1E40AF"
DEFAULT_ACCENT = "#60A5FA"

_HEX_RE = re.compile(r"^#?([a-f\d]{2})([a-f\d]{2})([a-f\d]{2})$", re.IGNORECASE)
_CLASS_ATTR_RE = re.compile(r"""\bclass\s*=\s*["']([^"']*)["']""", re.IGNORECASE)


# ---------------------------------------------------------------
# Asset injection
# ---------------------------------------------------------------

def inject_logo(html: str, registry: PlaceholderRegistry) -> str:
    """Replace [[ID_REAL_LOGO_HERE]] with the logo, or with nothing."""
    if not PLACEHOLDER_PATTERNS["logo"].search(html):
        return html
    src = registry.logo.resolved
    if not src:
        print("  [post-process] No logo available — removing placeholder")
    return PLACEHOLDER_PATTERNS["logo"].sub(lambda m: src, html)


def _inject_numbered(html: str, registry: PlaceholderRegistry, bucket: str,
                     fallback: str | None = None) -> str:
    def _resolve(match: re.Match) -> str:
        index = int(match.group(1))
        entry = registry.lookup(bucket, index)
        if (entry is None or not entry.target) and fallback:
            entry = registry.lookup(fallback, index)
        if entry is None or not entry.target:
            print(f"  [post-process] No {bucket} image for index {index}")
            return ""
        return entry.target

    return PLACEHOLDER_PATTERNS[bucket].sub(_resolve, html)


def inject_hero_images(html: str, registry: PlaceholderRegistry) -> str:
    return _inject_numbered(html, registry, "hero")


def inject_service_images(html: str, registry: PlaceholderRegistry) -> str:
    # Gallery images stand in when a service has no dedicated image
    return _inject_numbered(html, registry, "service", fallback="gallery")


def inject_gallery_images(html: str, registry: PlaceholderRegistry) -> str:
    return _inject_numbered(html, registry, "gallery")


def inject_team_images(html: str, registry: PlaceholderRegistry) -> str:
    return _inject_numbered(html, registry, "team")


def inject_real_assets(html: str, registry: PlaceholderRegistry) -> str:
    result = inject_logo(html, registry)
    result = inject_hero_images(result, registry)
    result = inject_service_images(result, registry)
    result = inject_gallery_images(result, registry)
    result = inject_team_images(result, registry)
    return result


# ---------------------------------------------------------------
# Colours
# ---------------------------------------------------------------

def hex_to_rgb(hex_color: str) -> str:
    """'#112233' -> '17, 34, 51' for use inside rgba()."""
    m = _HEX_RE.match((hex_color or "").strip())
    if not m:
        return "59, 130, 246"  # default blue
    return ", ".join(str(int(part, 16)) for part in m.groups())


def resolve_colors(colors: list[str], accent: str | None = None) -> tuple[str, str, str]:
    """Positional primary/secondary/accent with the stock blue defaults."""
    primary = colors[0] if len(colors) > 0 else DEFAULT_PRIMARY
    secondary = colors[1] if len(colors) > 1 else DEFAULT_SECONDARY
    accent = accent or (colors[2] if len(colors) > 2 else DEFAULT_ACCENT)
    return primary, secondary, accent


def _insert_into_head(html: str, block: str) -> str:
    if "</head>" in html:
        return html.replace("</head>", f"{block}\n</head>", 1)
    return block + "\n" + html


def inject_color_variables(html: str, primary: str, secondary: str, accent: str) -> str:
    result = PLACEHOLDER_PATTERNS["primary_color"].sub(lambda m: primary, html)
    result = PLACEHOLDER_PATTERNS["secondary_color"].sub(lambda m: secondary, result)
    result = PLACEHOLDER_PATTERNS["accent_color"].sub(lambda m: accent, result)

    if "--color-primary" in result:
        return result

    css_variables = f"""<style>
  :root {{
    --color-primary: {primary};
    --color-secondary: {secondary};
    --color-accent: {accent};
    --color-primary-rgb: {hex_to_rgb(primary)};
    --color-secondary-rgb: {hex_to_rgb(secondary)};
    --color-accent-rgb: {hex_to_rgb(accent)};
  }}
</style>"""
    return _insert_into_head(result, css_variables)


# ---------------------------------------------------------------
# Styles
# ---------------------------------------------------------------

ANIMATION_CLASSES = {
    "animate-fade-in-up", "animate-fade-in", "animate-slide-in-left", "animate-float",
    "animation-delay-100", "animation-delay-200", "animation-delay-300",
    "animation-delay-400", "animation-delay-500", "animation-delay-600",
}

ANIMATION_STYLES = """<style>
  @keyframes fadeInUp {
    from { opacity: 0; transform: translateY(30px); }
    to { opacity: 1; transform: translateY(0); }
  }
  @keyframes fadeIn {
    from { opacity: 0; }
    to { opacity: 1; }
  }
  @keyframes slideInLeft {
    from { opacity: 0; transform: translateX(-30px); }
    to { opacity: 1; transform: translateX(0); }
  }
  @keyframes float {
    0%, 100% { transform: translateY(0); }
    50% { transform: translateY(-10px); }
  }

  .animate-fade-in-up { animation: fadeInUp 0.8s ease-out forwards; }
  .animate-fade-in { animation: fadeIn 0.6s ease-out forwards; }
  .animate-slide-in-left { animation: slideInLeft 0.8s ease-out forwards; }
  .animate-float { animation: float 3s ease-in-out infinite; }

  /* Staggered animation delays */
  .animation-delay-100 { animation-delay: 100ms; opacity: 0; }
  .animation-delay-200 { animation-delay: 200ms; opacity: 0; }
  .animation-delay-300 { animation-delay: 300ms; opacity: 0; }
  .animation-delay-400 { animation-delay: 400ms; opacity: 0; }
  .animation-delay-500 { animation-delay: 500ms; opacity: 0; }
  .animation-delay-600 { animation-delay: 600ms; opacity: 0; }

  html { scroll-behavior: smooth; }
</style>"""

GLASS_GLOW_MARKER = "glass-glow-injected"

GLASS_GLOW_CLASSES = {
    "glass", "glass-dark", "glass-card", "glow", "glow-lg", "glow-text",
    "animate-glow-pulse", "mesh-bg", "btn-glow", "gradient-text-glow",
    "card-hover", "img-reveal", "animate-fade-in-left", "animate-fade-in-right",
    "animate-scale-in", "animate-slide-up",
}

GLASS_GLOW_STYLES = f"""<style class="{GLASS_GLOW_MARKER}">
  .glass {{
    backdrop-filter: blur(24px) saturate(150%);
    -webkit-backdrop-filter: blur(24px) saturate(150%);
    background: rgba(255, 255, 255, 0.05);
    border: 1px solid rgba(255, 255, 255, 0.1);
  }}
  .glass-dark {{
    backdrop-filter: blur(24px) saturate(150%);
    -webkit-backdrop-filter: blur(24px) saturate(150%);
    background: rgba(0, 0, 0, 0.3);
    border: 1px solid rgba(255, 255, 255, 0.1);
  }}
  .glass-card {{
    backdrop-filter: blur(16px) saturate(180%);
    -webkit-backdrop-filter: blur(16px) saturate(180%);
    background: linear-gradient(135deg, rgba(255,255,255,0.1) 0%, rgba(255,255,255,0.05) 100%);
    border: 1px solid rgba(255, 255, 255, 0.15);
    border-radius: 24px;
  }}
  .glow {{ box-shadow: 0 0 30px rgba(var(--color-accent-rgb, 96, 165, 250), 0.3); }}
  .glow-lg {{ box-shadow: 0 0 60px rgba(var(--color-accent-rgb, 96, 165, 250), 0.4); }}
  .glow-text {{ text-shadow: 0 0 20px rgba(var(--color-accent-rgb, 96, 165, 250), 0.5); }}
  @keyframes glowPulse {{
    0%, 100% {{ box-shadow: 0 0 20px rgba(var(--color-accent-rgb, 96, 165, 250), 0.3); }}
    50% {{ box-shadow: 0 0 40px rgba(var(--color-accent-rgb, 96, 165, 250), 0.6); }}
  }}
  .animate-glow-pulse {{ animation: glowPulse 2s ease-in-out infinite; }}
  .mesh-bg {{
    background-image:
      radial-gradient(at 40% 20%, rgba(var(--color-accent-rgb, 96, 165, 250), 0.3) 0px, transparent 50%),
      radial-gradient(at 80% 0%, rgba(var(--color-primary-rgb, 59, 130, 246), 0.2) 0px, transparent 50%),
      radial-gradient(at 0% 50%, rgba(var(--color-accent-rgb, 96, 165, 250), 0.2) 0px, transparent 50%);
  }}
  @keyframes fadeInLeft {{
    from {{ opacity: 0; transform: translateX(-40px); }}
    to {{ opacity: 1; transform: translateX(0); }}
  }}
  @keyframes fadeInRight {{
    from {{ opacity: 0; transform: translateX(40px); }}
    to {{ opacity: 1; transform: translateX(0); }}
  }}
  @keyframes scaleIn {{
    from {{ opacity: 0; transform: scale(0.9); }}
    to {{ opacity: 1; transform: scale(1); }}
  }}
  @keyframes slideUp {{
    from {{ opacity: 0; transform: translateY(60px); }}
    to {{ opacity: 1; transform: translateY(0); }}
  }}
  .animate-fade-in-left {{ animation: fadeInLeft 0.8s cubic-bezier(0.22, 1, 0.36, 1) forwards; }}
  .animate-fade-in-right {{ animation: fadeInRight 0.8s cubic-bezier(0.22, 1, 0.36, 1) forwards; }}
  .animate-scale-in {{ animation: scaleIn 0.6s cubic-bezier(0.22, 1, 0.36, 1) forwards; }}
  .animate-slide-up {{ animation: slideUp 1s cubic-bezier(0.22, 1, 0.36, 1) forwards; }}
  .btn-glow {{
    background: linear-gradient(135deg, var(--color-primary), var(--color-accent));
    box-shadow: 0 4px 20px rgba(var(--color-accent-rgb, 96, 165, 250), 0.3);
    transition: all 0.3s ease;
  }}
  .btn-glow:hover {{
    transform: translateY(-2px);
    box-shadow: 0 8px 40px rgba(var(--color-accent-rgb, 96, 165, 250), 0.5);
  }}
  .gradient-text-glow {{
    background: linear-gradient(135deg, var(--color-primary), var(--color-accent));
    -webkit-background-clip: text;
    -webkit-text-fill-color: transparent;
    background-clip: text;
    filter: drop-shadow(0 0 20px rgba(var(--color-accent-rgb, 96, 165, 250), 0.3));
  }}
  .card-hover {{ transition: all 0.4s cubic-bezier(0.22, 1, 0.36, 1); }}
  .card-hover:hover {{ transform: translateY(-8px) scale(1.02); box-shadow: 0 20px 60px rgba(0, 0, 0, 0.3); }}
  .img-reveal {{ overflow: hidden; border-radius: 24px; }}
  .img-reveal img {{ transition: transform 0.6s cubic-bezier(0.22, 1, 0.36, 1); }}
  .img-reveal:hover img {{ transform: scale(1.05); }}
</style>"""


def used_classes(html: str) -> set[str]:
    """Every class name referenced from a class="..." attribute."""
    names = set()
    for value in _CLASS_ATTR_RE.findall(html):
        names.update(value.split())
    return names


def inject_animation_styles(html: str) -> str:
    """Add entrance keyframes only if animation classes are used but undefined."""
    if "@keyframes fadeInUp" in html:
        return html
    if not (used_classes(html) & ANIMATION_CLASSES):
        return html
    return _insert_into_head(html, ANIMATION_STYLES)


def inject_glass_glow_styles(html: str) -> str:
    if GLASS_GLOW_MARKER in html:
        return html
    if not (used_classes(html) & GLASS_GLOW_CLASSES):
        return html
    return _insert_into_head(html, GLASS_GLOW_STYLES)


# ---------------------------------------------------------------
# Validation
# ---------------------------------------------------------------

def validate_no_placeholders(html: str) -> ValidationResult:
    """Report unique unresolved [[ID_*_HERE]] tokens, in order of appearance."""
    remaining = list(dict.fromkeys(PLACEHOLDER_PATTERNS["any"].findall(html)))
    if remaining:
        print(f"  [post-process] Found {len(remaining)} unresolved placeholders: {remaining}")
    return ValidationResult(valid=not remaining, remaining=remaining, count=len(remaining))


def cleanup_remaining_placeholders(html: str) -> str:
    return PLACEHOLDER_PATTERNS["any"].sub("", html)


# ---------------------------------------------------------------
# Full pipeline
# ---------------------------------------------------------------

def run_post_processing(
    html: str,
    registry: PlaceholderRegistry,
    colors: tuple[str, str, str] = (DEFAULT_PRIMARY, DEFAULT_SECONDARY, DEFAULT_ACCENT),
) -> GeneratedDocument:
    """
    Resolve every placeholder and inject shared styles, in fixed order.

    The returned validation describes what had to be stripped; the returned
    html never contains a placeholder token.
    """
    primary, secondary, accent = colors

    result = inject_real_assets(html, registry)
    result = inject_color_variables(result, primary, secondary, accent)
    result = inject_animation_styles(result)
    result = inject_glass_glow_styles(result)

    validation = validate_no_placeholders(result)
    if not validation.valid:
        print("  [post-process] Cleaning up remaining placeholders")
        result = cleanup_remaining_placeholders(result)

    return GeneratedDocument(html=result, validation=validation)
