"""
Direct logo replacement — swaps the site's logo for an uploaded image
without a model call. Strategies are tried in order; the first one that
changes the document wins.
"""

import re


LOGO_REQUEST_RE = re.compile(
    r"replace.*logo|logo.*this image|make.*logo.*this|change.*logo|update.*logo",
    re.IGNORECASE,
)

_IMG_LOGO_CLASS_RE = re.compile(
    r'(<img[^>]*class="[^"]*)(logo)([^"]*"[^>]*src=")([^"]*)("[^>]*>)', re.IGNORECASE
)
_IMG_LOGO_ALT_RE = re.compile(
    r'(<img[^>]*alt="[^"]*)(logo)([^"]*"[^>]*src=")([^"]*)("[^>]*>)', re.IGNORECASE
)
_NAV_OPEN_RE = re.compile(r"<nav[^>]*>", re.IGNORECASE)
_FA_ICON_RE = re.compile(r'<i[^>]*class="[^"]*fa-[^"]*"[^>]*></i>', re.IGNORECASE)
_SVG_RE = re.compile(r"<svg[^>]*>[\s\S]*?</svg>", re.IGNORECASE)
_NAV_WINDOW = 800
_SMALL_IMG_RE = re.compile(
    r'(<img[^>]*class="[^"]*(?:h-(?:6|8|10|12)|w-auto)[^"]*"[^>]*src=")([^"]+)("[^>]*>)',
    re.IGNORECASE,
)
_NAV_TEXT_LOGO_RE = re.compile(
    r'(<nav[^>]*>[\s\S]{0,300}?<a[^>]*class="[^"]*(?:flex|font-bold|text-xl|text-2xl)[^"]*"[^>]*>)'
    r"([\s\S]*?)(</a>)",
    re.IGNORECASE,
)
_NAV_FLEX_RE = re.compile(
    r'(<nav[^>]*>[\s\S]{0,200}?<(?:div|a)[^>]*class="[^"]*flex[^"]*items-center[^"]*"[^>]*>)'
    r"([\s\S]*?)(</(?:div|a)>)",
    re.IGNORECASE,
)

# Image sources that are stand-ins, never a logo
_PLACEHOLDER_SRC_MARKERS = ("placehold", "1920x")

SUCCESS_MESSAGE = "Done! I've replaced the logo with your uploaded image."


def is_logo_replacement(instruction: str) -> bool:
    return bool(LOGO_REQUEST_RE.search(instruction or ""))


def logo_img_tag(data_uri: str) -> str:
    return f'<img src="{data_uri}" alt="Logo" class="h-12 w-auto object-contain max-w-[180px]">'


def _swap_src(pattern: re.Pattern, html: str, data_uri: str) -> str | None:
    if not pattern.search(html):
        return None
    return pattern.sub(lambda m: m.group(1) + m.group(2) + m.group(3) + data_uri + m.group(5), html)


def _inside_button(markup: str) -> bool:
    lowered = markup.lower()
    return lowered.rfind("<button") > lowered.rfind("</button")


def _swap_nav_element(element_re: re.Pattern, html: str, data_uri: str) -> str | None:
    """Swap the first element near the top of the nav that is not part of a button."""
    nav = _NAV_OPEN_RE.search(html)
    if not nav:
        return None
    for m in element_re.finditer(html, nav.end()):
        if m.start() - nav.end() > _NAV_WINDOW:
            break
        # Menu toggles carry icons too
        if _inside_button(html[nav.end():m.start()]):
            continue
        return html[:m.start()] + logo_img_tag(data_uri) + html[m.end():]
    return None


def _swap_inner(pattern: re.Pattern, html: str, data_uri: str, max_inner: int | None = None) -> str | None:
    m = pattern.search(html)
    if not m:
        return None
    inner = m.group(2)
    if max_inner is not None and (len(inner) >= max_inner or "<section" in inner):
        return None
    return html[:m.start()] + m.group(1) + logo_img_tag(data_uri) + m.group(3) + html[m.end():]


def replace_img_with_logo_class(html: str, data_uri: str) -> str | None:
    return _swap_src(_IMG_LOGO_CLASS_RE, html, data_uri)


def replace_img_with_logo_alt(html: str, data_uri: str) -> str | None:
    return _swap_src(_IMG_LOGO_ALT_RE, html, data_uri)


def replace_nav_icon(html: str, data_uri: str) -> str | None:
    return _swap_nav_element(_FA_ICON_RE, html, data_uri)


def replace_nav_svg(html: str, data_uri: str) -> str | None:
    return _swap_nav_element(_SVG_RE, html, data_uri)


def replace_small_img(html: str, data_uri: str) -> str | None:
    for m in _SMALL_IMG_RE.finditer(html):
        src = m.group(2)
        if any(marker in src for marker in _PLACEHOLDER_SRC_MARKERS):
            continue
        return html.replace(m.group(0), m.group(1) + data_uri + m.group(3), 1)
    return None


def replace_nav_text_logo(html: str, data_uri: str) -> str | None:
    return _swap_inner(_NAV_TEXT_LOGO_RE, html, data_uri)


def replace_nav_flex_container(html: str, data_uri: str) -> str | None:
    return _swap_inner(_NAV_FLEX_RE, html, data_uri, max_inner=500)


LOGO_STRATEGIES = [
    ("img-logo-class", replace_img_with_logo_class),
    ("img-logo-alt", replace_img_with_logo_alt),
    ("nav-icon", replace_nav_icon),
    ("nav-svg", replace_nav_svg),
    ("small-img", replace_small_img),
    ("nav-text-logo", replace_nav_text_logo),
    ("nav-flex-container", replace_nav_flex_container),
]


def replace_logo(html: str, data_uri: str) -> tuple[str, str] | None:
    """
    Try each strategy in order.

    Returns (new_html, strategy_name) for the first strategy that actually
    changes the document, or None when nothing matched.
    """
    for name, strategy in LOGO_STRATEGIES:
        updated = strategy(html, data_uri)
        if updated is not None and updated != html:
            print(f"[edit] Logo replaced via {name}")
            return updated, name
    print("[edit] Direct logo replacement found no logo element")
    return None
