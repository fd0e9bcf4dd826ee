"""
Clients for the external services the pipeline leans on but does not own:
identity extraction (crawl + vision analysis of an existing site) and
image generation. Both are plain JSON-over-HTTP calls.
"""

import time

import httpx
from pydantic import ValidationError

from sitegen.config import get_settings
from sitegen.errors import ErrorCode, IdentityExtractionError, PipelineError
from sitegen.models import SiteIdentity


class IdentityExtractionClient:
    """Turns a source URL into a SiteIdentity via the identity service."""

    def __init__(self, base_url: str | None = None, timeout: float | None = None,
                 transport: httpx.AsyncBaseTransport | None = None):
        settings = get_settings()
        self.base_url = (base_url if base_url is not None else settings.identity_service_url).rstrip("/")
        self.timeout = timeout or settings.collaborator_timeout
        self._transport = transport

    async def extract(self, url: str) -> SiteIdentity:
        if not self.base_url:
            raise PipelineError(
                "Identity extraction service is not configured",
                code=ErrorCode.CONFIGURATION_ERROR,
                hint="Set IDENTITY_SERVICE_URL or send siteIdentity directly.",
            )

        t0 = time.time()
        print(f"  [identity] Extracting {url}")
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(f"{self.base_url}/extract", json={"url": url})
                response.raise_for_status()
                payload = response.json()
        except httpx.HTTPStatusError as e:
            raise IdentityExtractionError(
                f"We couldn't read {url} (identity service answered {e.response.status_code}).",
                retryable=e.response.status_code >= 500,
                hint="Check that the website is reachable, or describe the business instead.",
            ) from e
        except httpx.HTTPError as e:
            raise IdentityExtractionError(
                f"We couldn't reach the identity service for {url}.",
                retryable=True,
            ) from e
        except ValueError as e:
            raise IdentityExtractionError(f"The identity service returned invalid JSON for {url}.") from e

        # The service wraps the identity in some deployments
        if isinstance(payload, dict) and isinstance(payload.get("siteIdentity"), dict):
            payload = payload["siteIdentity"]
        try:
            identity = SiteIdentity.model_validate(payload)
        except ValidationError as e:
            raise IdentityExtractionError(
                f"The identity service returned an incomplete identity for {url}.",
                hint=str(e.errors()[:3]),
            ) from e

        print(f"  [identity] {identity.business_name} extracted in {time.time() - t0:.1f}s")
        return identity


class ImageGenerationClient:
    """Generates a single image from a prompt and returns its URL (or data URI)."""

    def __init__(self, base_url: str | None = None, timeout: float | None = None,
                 transport: httpx.AsyncBaseTransport | None = None):
        settings = get_settings()
        self.base_url = (base_url if base_url is not None else settings.image_service_url).rstrip("/")
        self.timeout = timeout or settings.collaborator_timeout
        self._transport = transport

    @property
    def enabled(self) -> bool:
        return bool(self.base_url)

    async def generate(self, prompt: str, aspect_ratio: str = "16:9") -> str | None:
        """Returns the asset reference, or None when generation failed."""
        if not self.enabled:
            return None
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(
                    f"{self.base_url}/generate",
                    json={"prompt": prompt, "aspectRatio": aspect_ratio},
                )
                response.raise_for_status()
                payload = response.json()
        except (httpx.HTTPError, ValueError) as e:
            print(f"  [images] Generation failed for {prompt[:60]!r}: {e}")
            return None

        if not isinstance(payload, dict):
            print(f"  [images] Unexpected response for {prompt[:60]!r}: {type(payload).__name__}")
            return None

        url = payload.get("url") or payload.get("imageUrl")
        if not url and payload.get("base64"):
            mime = payload.get("mimeType", "image/png")
            url = f"data:{mime};base64,{payload['base64']}"
        if not url:
            print(f"  [images] No image in response for {prompt[:60]!r}")
        return url or None
