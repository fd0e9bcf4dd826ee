"""
Generative model client.

One explicitly constructed ModelClient is injected into every stage
(manifest, blueprint, sections, edits). It owns the underlying
AsyncAnthropic handle and translates SDK failures into the pipeline's
error taxonomy, keeping HTTP 429 distinct from every other failure.
"""

from dataclasses import dataclass
import time

import anthropic

from sitegen.config import get_settings
from sitegen.errors import ModelCallError, RateLimitError


@dataclass(frozen=True)
class Completion:
    text: str
    tokens_in: int = 0
    tokens_out: int = 0
    stop_reason: str | None = None

    @property
    def truncated(self) -> bool:
        return self.stop_reason == "max_tokens"


def image_block(media_type: str, data: str) -> dict:
    """Build a base64 image content block for a user message."""
    return {
        "type": "image",
        "source": {"type": "base64", "media_type": media_type, "data": data},
    }


class ModelClient:
    """Thin async wrapper around the Anthropic messages API."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        client: anthropic.AsyncAnthropic | None = None,
    ):
        settings = get_settings()
        if client is None and api_key is None:
            api_key = settings.anthropic_api_key
        self.model = model or settings.default_model
        self._client = client or anthropic.AsyncAnthropic(api_key=api_key)

    async def complete(
        self,
        content: str | list[dict],
        *,
        system: str | None = None,
        max_tokens: int = 4096,
        temperature: float = 0.5,
        label: str = "model",
    ) -> Completion:
        """
        Stream one completion and return the full text.

        Raises:
            RateLimitError: the API answered 429
            ModelCallError: any other API, network or timeout failure
        """
        if isinstance(content, str):
            content = [{"type": "text", "text": content}]

        kwargs = {
            "model": self.model,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "messages": [{"role": "user", "content": content}],
        }
        if system:
            kwargs["system"] = [{
                "type": "text",
                "text": system,
                "cache_control": {"type": "ephemeral"},
            }]

        t0 = time.time()
        raw = ""
        try:
            async with self._client.messages.stream(**kwargs) as stream:
                async for chunk in stream.text_stream:
                    raw += chunk
                response = await stream.get_final_message()
        except anthropic.RateLimitError as e:
            retry_after = _retry_after(e)
            print(f"  [{label}] rate limited (retry-after={retry_after})")
            raise RateLimitError(f"Model API rate limited: {e}", retry_after=retry_after) from e
        except anthropic.APIStatusError as e:
            raise ModelCallError(
                f"Model API error {e.status_code}: {e.message}",
                status_code=e.status_code,
                retryable=e.status_code >= 500,
            ) from e
        except anthropic.APIError as e:
            # Connection errors and timeouts
            raise ModelCallError(f"Model API call failed: {e}", retryable=True) from e

        usage = getattr(response, "usage", None)
        completion = Completion(
            text=raw,
            tokens_in=getattr(usage, "input_tokens", 0) if usage else 0,
            tokens_out=getattr(usage, "output_tokens", 0) if usage else 0,
            stop_reason=getattr(response, "stop_reason", None),
        )
        elapsed = time.time() - t0
        print(f"  [{label}] {elapsed:.1f}s, {completion.tokens_in}in/{completion.tokens_out}out, "
              f"{len(raw)} chars")
        if completion.truncated:
            print(f"  [{label}] WARNING: output truncated (max_tokens reached)")
        return completion

    async def aclose(self):
        await self._client.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        await self.aclose()


def _retry_after(error: anthropic.RateLimitError) -> float | None:
    response = getattr(error, "response", None)
    if response is None:
        return None
    value = response.headers.get("retry-after")
    try:
        return float(value) if value is not None else None
    except ValueError:
        return None
