"""
Placeholder registry — maps symbolic asset tokens to real asset references.

Model-generated markup never contains image data or URLs directly; it
contains tokens like [[ID_HERO_1_HERE]] that the post-processor resolves
against this registry. Pure data, no external calls.
"""

from dataclasses import dataclass, field
import re

from sitegen.models import SiteIdentity, SiteImage


LOGO_TOKEN = "[[ID_REAL_LOGO_HERE]]"
PRIMARY_COLOR_TOKEN = "[[ID_PRIMARY_COLOR_HERE]]"
SECONDARY_COLOR_TOKEN = "[[ID_SECONDARY_COLOR_HERE]]"
ACCENT_COLOR_TOKEN = "[[ID_ACCENT_COLOR_HERE]]"

PLACEHOLDER_PATTERNS = {
    "logo": re.compile(r"\[\[ID_REAL_LOGO_HERE\]\]"),
    "hero": re.compile(r"\[\[ID_HERO_(\d+)_HERE\]\]"),
    "service": re.compile(r"\[\[ID_SERVICE_IMG_(\d+)_HERE\]\]"),
    "gallery": re.compile(r"\[\[ID_GALLERY_(\d+)_HERE\]\]"),
    "team": re.compile(r"\[\[ID_TEAM_(\d+)_HERE\]\]"),
    "primary_color": re.compile(r"\[\[ID_PRIMARY_COLOR_HERE\]\]"),
    "secondary_color": re.compile(r"\[\[ID_SECONDARY_COLOR_HERE\]\]"),
    "accent_color": re.compile(r"\[\[ID_ACCENT_COLOR_HERE\]\]"),
    # Any remaining placeholder (for validation)
    "any": re.compile(r"\[\[ID_[A-Z0-9_]+_HERE\]\]"),
}


def hero_token(n: int) -> str:
    return f"[[ID_HERO_{n}_HERE]]"


def service_token(n: int) -> str:
    return f"[[ID_SERVICE_IMG_{n}_HERE]]"


def gallery_token(n: int) -> str:
    return f"[[ID_GALLERY_{n}_HERE]]"


def team_token(n: int) -> str:
    return f"[[ID_TEAM_{n}_HERE]]"


@dataclass(frozen=True)
class PlaceholderEntry:
    token: str
    target: str | None = None

    @property
    def resolved(self) -> str:
        # A missing asset resolves to nothing, never to a broken reference
        return self.target or ""


@dataclass
class PlaceholderRegistry:
    logo: PlaceholderEntry = field(default_factory=lambda: PlaceholderEntry(LOGO_TOKEN))
    hero_images: list[PlaceholderEntry] = field(default_factory=list)
    service_images: list[PlaceholderEntry] = field(default_factory=list)
    gallery_images: list[PlaceholderEntry] = field(default_factory=list)
    team_images: list[PlaceholderEntry] = field(default_factory=list)

    def bucket(self, name: str) -> list[PlaceholderEntry]:
        return {
            "hero": self.hero_images,
            "service": self.service_images,
            "gallery": self.gallery_images,
            "team": self.team_images,
        }[name]

    def lookup(self, name: str, index: int) -> PlaceholderEntry | None:
        """1-based lookup into a numbered bucket."""
        entries = self.bucket(name)
        if 1 <= index <= len(entries):
            return entries[index - 1]
        return None

    def tokens(self) -> list[str]:
        out = [self.logo.token]
        for entries in (self.hero_images, self.service_images,
                        self.gallery_images, self.team_images):
            out.extend(e.token for e in entries)
        return out

    def available_tokens(self, name: str) -> list[str]:
        """Tokens in a bucket whose target actually exists."""
        return [e.token for e in self.bucket(name) if e.target]


def _entries(images: list[SiteImage], make_token) -> list[PlaceholderEntry]:
    return [
        PlaceholderEntry(token=make_token(i + 1), target=img.source)
        for i, img in enumerate(images)
    ]


def create_placeholder_registry(identity: SiteIdentity) -> PlaceholderRegistry:
    """Build the registry from a site identity (semantic map first, legacy lists second)."""
    semantic = identity.semantic_image_map

    hero = (semantic.hero if semantic and semantic.hero else None) or identity.hero_images
    services = semantic.services if semantic else []
    gallery = (semantic.gallery if semantic and semantic.gallery else None) or identity.gallery_images

    team = list(semantic.about) if semantic else []
    team.extend(
        SiteImage(url=m.image_url, alt=m.name)
        for m in identity.team_members if m.image_url
    )

    return PlaceholderRegistry(
        logo=PlaceholderEntry(LOGO_TOKEN, identity.logo_source),
        hero_images=_entries(hero, hero_token),
        service_images=_entries(services, service_token),
        gallery_images=_entries(gallery, gallery_token),
        team_images=_entries(team, team_token),
    )
