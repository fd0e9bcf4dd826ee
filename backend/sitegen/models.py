"""
Pipeline data model.

Wire names are camelCase (what the calling application sends and stores),
Python attributes are snake_case. Both spellings are accepted on input.
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class _Model(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class _Frozen(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


# ---------------------------------------------------------------------------
# SiteIdentity: produced by the external identity extraction service
# ---------------------------------------------------------------------------

class SiteImage(_Frozen):
    url: str | None = None
    base64: str | None = None
    alt: str = ""
    mime_type: str = "image/jpeg"

    @property
    def source(self) -> str | None:
        """Inline data wins over the URL, like the identity extractor stores it."""
        if self.base64:
            if self.base64.startswith("data:"):
                return self.base64
            return f"data:{self.mime_type};base64,{self.base64}"
        return self.url or None


class SemanticImageMap(_Frozen):
    hero: list[SiteImage] = Field(default_factory=list)
    services: list[SiteImage] = Field(default_factory=list)
    gallery: list[SiteImage] = Field(default_factory=list)
    about: list[SiteImage] = Field(default_factory=list)


class Testimonial(_Frozen):
    quote: str
    author: str = ""


class ContactInfo(_Frozen):
    phone: str | None = None
    email: str | None = None
    address: str | None = None


class NavLink(_Frozen):
    label: str
    href: str


class TeamMember(_Frozen):
    name: str
    role: str = ""
    image_url: str | None = None


class FAQ(_Frozen):
    question: str
    answer: str = ""


class SiteIdentity(_Frozen):
    business_name: str
    tagline: str = ""
    source_url: str | None = None
    logo_url: str | None = None
    logo_base64: str | None = None
    hero_images: list[SiteImage] = Field(default_factory=list)
    gallery_images: list[SiteImage] = Field(default_factory=list)
    primary_colors: list[str] = Field(default_factory=list)
    accent_color: str | None = None
    services: list[str] = Field(default_factory=list)
    testimonials: list[Testimonial] = Field(default_factory=list)
    contact_info: ContactInfo = Field(default_factory=ContactInfo)
    navigation: list[NavLink] = Field(default_factory=list)
    team_members: list[TeamMember] = Field(default_factory=list)
    faqs: list[FAQ] = Field(default_factory=list)
    full_copy: str = ""
    visual_vibe: str = ""
    content_sparsity: str = "moderate"
    semantic_image_map: SemanticImageMap | None = None
    image_prompts: dict[str, str] | None = None

    @field_validator("services", mode="before")
    @classmethod
    def _service_names(cls, value):
        # The extractor sometimes returns {"name": ..., "description": ...} objects
        if isinstance(value, list):
            return [v.get("name", "") if isinstance(v, dict) else v for v in value]
        return value

    @property
    def logo_source(self) -> str | None:
        return self.logo_base64 or self.logo_url or None


# ---------------------------------------------------------------------------
# BrandManifest / SiteBlueprint: one per generation run
# ---------------------------------------------------------------------------

class ServiceItem(_Frozen):
    name: str
    description: str = ""


class BrandManifest(_Frozen):
    business_name: str
    tagline: str = ""
    primary_color: str
    secondary_color: str
    accent_color: str
    font_headline: str = "Inter"
    font_body: str = "Inter"
    tone: str = ""
    services: list[ServiceItem] = Field(default_factory=list)
    hero_headline: str = ""
    hero_subheadline: str = ""
    cta_text: str = "Get Started Today"
    contact_phone: str | None = None
    contact_email: str | None = None
    contact_address: str | None = None


DESIGN_STYLES = ("saas-modern", "bento-grid", "high-end-minimal")


class SectionSpec(_Frozen):
    id: str
    type: str
    priority: int = 99
    content_hints: str = ""
    image_needed: bool = False


class ColorScheme(_Frozen):
    primary: str
    secondary: str
    accent: str
    background: str = "#ffffff"
    text: str = "#1f2937"


class SiteBlueprint(_Frozen):
    design_style: str = "saas-modern"
    sections: list[SectionSpec]
    nav_links: list[NavLink] = Field(default_factory=list)
    color_scheme: ColorScheme


class SectionResult(_Frozen):
    id: str
    type: str
    html: str
    success: bool
    error: str | None = None
    rate_limited: bool = False
    retry_after: float | None = None


# ---------------------------------------------------------------------------
# Post-processing / validation
# ---------------------------------------------------------------------------

class ValidationResult(_Frozen):
    valid: bool
    remaining: list[str] = Field(default_factory=list)
    count: int = 0


class GeneratedDocument(_Frozen):
    html: str
    validation: ValidationResult


class GenerationResult(_Model):
    html: str
    thinking: str
    pipeline_version: str
    manifest: BrandManifest | None = None
    blueprint: SiteBlueprint | None = None
    validation: ValidationResult | None = None


# ---------------------------------------------------------------------------
# Editing
# ---------------------------------------------------------------------------

class EditOperation(_Frozen):
    search: str
    replace: str = ""


class Attachment(_Frozen):
    type: str = "image"
    mime_type: str = "image/png"
    base64_data: str

    @property
    def data_uri(self) -> str:
        return f"data:{self.mime_type};base64,{self.base64_data}"


class EditResult(_Model):
    html: str | None
    thinking: str = ""
    user_message: str
    applied: int = 0
    total: int = 0
    failed_searches: list[str] = Field(default_factory=list)
    strategy: str = "diff"

    @property
    def success(self) -> bool:
        return self.html is not None
