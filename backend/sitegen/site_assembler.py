"""
Site assembler — builds the final document from parallel section results.

Pure string concatenation, NO AI. Deterministic for a given input
(the copyright year is injectable).
"""

from datetime import date
from html import escape
import re
from urllib.parse import quote_plus

from sitegen.errors import EmptyDocumentError
from sitegen.models import BrandManifest, SectionResult, SiteBlueprint
from sitegen.section_generator import ensure_section_id


TAILWIND_CDN = "https://cdn.tailwindcss.com"

_TAG_RE = re.compile(r"<[^>]+>")
_INVISIBLE_BLOCK_RE = re.compile(r"<(script|style|head)\b.*?</\1>", re.IGNORECASE | re.DOTALL)
_STRUCTURE_RE = re.compile(r"<(nav|section|main)\b", re.IGNORECASE)


# ---------------------------------------------------------------
# assemble_site: pure string concatenation, NO AI
# ---------------------------------------------------------------

def assemble_site(
    manifest: BrandManifest,
    blueprint: SiteBlueprint,
    results: list[SectionResult],
    year: int | None = None,
) -> str:
    """
    Assemble the full HTML document.

    Sections are ordered by blueprint priority (ids the blueprint does not
    know go last, keeping their relative order). Every fragment's root
    carries its section id.
    """
    priority = {s.id: s.priority for s in blueprint.sections}
    ordered = sorted(results, key=lambda r: priority.get(r.id, float("inf")))
    body = "\n\n".join(ensure_section_id(r.html, r.id) for r in ordered)
    year = year or date.today().year

    html = (
        "<!DOCTYPE html>\n"
        '<html lang="en">\n'
        "<head>\n"
        '<meta charset="UTF-8">\n'
        '<meta name="viewport" content="width=device-width, initial-scale=1.0">\n'
        f"<title>{escape(manifest.business_name)}</title>\n"
        f'<script src="{TAILWIND_CDN}"></script>\n'
        f"{_build_font_links(manifest)}\n"
        "<!-- Tailwind Config -->\n"
        f"{_build_tailwind_config(manifest, blueprint)}\n"
        "</head>\n"
        f'<body class="font-body" style="background: {blueprint.color_scheme.background}; '
        f'color: {blueprint.color_scheme.text}">\n\n'
        "<!-- Navigation -->\n"
        f"{_build_nav(manifest, blueprint)}\n\n"
        "<!-- Main Content -->\n"
        '<main class="pt-16">\n'
        f"{body}\n"
        "</main>\n\n"
        "<!-- Footer -->\n"
        f"{_build_footer(manifest, blueprint, year)}\n\n"
        "<!-- Smooth Scroll Script -->\n"
        f"{SMOOTH_SCROLL_SCRIPT}\n"
        "</body>\n"
        "</html>"
    )
    print(f"  [assembler] Final HTML assembled ({len(html)} chars, {len(ordered)} sections)")
    return html


def _build_font_links(manifest: BrandManifest) -> str:
    fonts = list(dict.fromkeys([manifest.font_headline, manifest.font_body]))
    families = "&".join(f"family={quote_plus(f)}:wght@400;500;600;700" for f in fonts if f)
    return (
        '<link rel="preconnect" href="https://fonts.googleapis.com">\n'
        '<link rel="preconnect" href="https://fonts.gstatic.com" crossorigin>\n'
        f'<link href="https://fonts.googleapis.com/css2?{families}&display=swap" rel="stylesheet">'
    )


def _build_tailwind_config(manifest: BrandManifest, blueprint: SiteBlueprint) -> str:
    colors = blueprint.color_scheme
    headline = manifest.font_headline.replace("'", "")
    body = manifest.font_body.replace("'", "")
    return f"""<script>
  tailwind.config = {{
    theme: {{
      extend: {{
        colors: {{
          primary: '{colors.primary}',
          secondary: '{colors.secondary}',
          accent: '{colors.accent}'
        }},
        fontFamily: {{
          headline: ['{headline}', 'sans-serif'],
          body: ['{body}', 'sans-serif']
        }}
      }}
    }}
  }}
</script>"""


def _build_nav(manifest: BrandManifest, blueprint: SiteBlueprint) -> str:
    primary = blueprint.color_scheme.primary
    desktop_links = "\n".join(
        f'        <a href="{escape(link.href)}" class="text-gray-600 hover:text-gray-900 '
        f'transition-colors">{escape(link.label)}</a>'
        for link in blueprint.nav_links
    )
    mobile_links = "\n".join(
        f'      <a href="{escape(link.href)}" class="block py-2 text-gray-600">{escape(link.label)}</a>'
        for link in blueprint.nav_links
    )
    return f"""<nav class="fixed top-0 left-0 right-0 z-50 bg-white/80 backdrop-blur-md border-b border-gray-100">
  <div class="max-w-7xl mx-auto px-4 sm:px-6 lg:px-8">
    <div class="flex justify-between items-center h-16">
      <a href="#" class="text-xl font-bold font-headline" style="color: {primary}">{escape(manifest.business_name)}</a>
      <div class="hidden md:flex items-center gap-8">
{desktop_links}
        <a href="#contact" class="px-4 py-2 rounded-lg text-white transition-all hover:opacity-90" style="background: {primary}">{escape(manifest.cta_text)}</a>
      </div>
      <button class="md:hidden p-2" aria-label="Toggle menu" onclick="document.getElementById('mobile-menu').classList.toggle('hidden')">
        <svg class="w-6 h-6" fill="none" stroke="currentColor" viewBox="0 0 24 24"><path stroke-linecap="round" stroke-linejoin="round" stroke-width="2" d="M4 6h16M4 12h16M4 18h16"></path></svg>
      </button>
    </div>
    <div id="mobile-menu" class="hidden md:hidden pb-4">
{mobile_links}
    </div>
  </div>
</nav>"""


def _build_footer(manifest: BrandManifest, blueprint: SiteBlueprint, year: int) -> str:
    quick_links = "\n".join(
        f'          <li><a href="{escape(link.href)}" class="text-gray-400 hover:text-white '
        f'transition-colors">{escape(link.label)}</a></li>'
        for link in blueprint.nav_links
    )
    contact_lines = "\n".join(
        f"          <li>{escape(value)}</li>"
        for value in (manifest.contact_phone, manifest.contact_email, manifest.contact_address)
        if value
    )
    name = escape(manifest.business_name)
    return f"""<footer class="bg-gray-900 text-white py-12">
  <div class="max-w-7xl mx-auto px-4 sm:px-6 lg:px-8">
    <div class="grid md:grid-cols-3 gap-8">
      <div>
        <h3 class="text-xl font-bold mb-4">{name}</h3>
        <p class="text-gray-400">{escape(manifest.tagline)}</p>
      </div>
      <div>
        <h4 class="font-semibold mb-4">Quick Links</h4>
        <ul class="space-y-2">
{quick_links}
        </ul>
      </div>
      <div>
        <h4 class="font-semibold mb-4">Contact</h4>
        <ul class="space-y-2 text-gray-400">
{contact_lines}
        </ul>
      </div>
    </div>
    <div class="border-t border-gray-800 mt-8 pt-8 text-center text-gray-400">
      <p>&copy; {year} {name}. All rights reserved.</p>
    </div>
  </div>
</footer>"""


SMOOTH_SCROLL_SCRIPT = """<script>
  document.querySelectorAll('a[href^="#"]').forEach(anchor => {
    anchor.addEventListener('click', function(e) {
      const href = this.getAttribute('href');
      if (href.length < 2) return;
      const target = document.querySelector(href);
      if (target) {
        e.preventDefault();
        target.scrollIntoView({ behavior: 'smooth', block: 'start' });
      }
    });
  });
</script>"""


# ---------------------------------------------------------------
# Visible content check
# ---------------------------------------------------------------

def visible_text(html: str) -> str:
    stripped = _INVISIBLE_BLOCK_RE.sub(" ", html)
    return " ".join(_TAG_RE.sub(" ", stripped).split())


def has_visible_content(html: str) -> bool:
    """A nav, section or main element plus some human-readable text."""
    return bool(_STRUCTURE_RE.search(html)) and bool(visible_text(html))


def ensure_visible(html: str) -> str:
    """Raise EmptyDocumentError rather than hand back an invisible page."""
    if not has_visible_content(html):
        raise EmptyDocumentError(
            "The generated site has no visible content.",
            hint="Try generating again; if it keeps happening, check the site identity.",
        )
    return html
