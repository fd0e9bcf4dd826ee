from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
import asyncio

from sitegen.collaborators import IdentityExtractionClient, ImageGenerationClient
from sitegen.config import get_settings
from sitegen.edit_engine import edit_site
from sitegen.errors import ErrorCode, PipelineError
from sitegen.llm_client import ModelClient
from sitegen.models import Attachment, SiteIdentity
from sitegen.pipeline import generate_site, run_pipeline_streaming
from sitegen.sse_utils import SSE_HEADERS


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    # Shutdown: release the shared model client, if one was created
    client = getattr(app.state, "model_client", None)
    if client is not None:
        await client.aclose()


app = FastAPI(title="Site Generation API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------

def get_model_client(request: Request) -> ModelClient:
    """One ModelClient per app, created on first use."""
    client = getattr(request.app.state, "model_client", None)
    if client is None:
        settings = get_settings()
        if not settings.anthropic_api_key:
            raise PipelineError(
                "The generation service is not configured.",
                code=ErrorCode.CONFIGURATION_ERROR,
                hint="Set ANTHROPIC_API_KEY.",
            )
        client = ModelClient(api_key=settings.anthropic_api_key, model=settings.default_model)
        request.app.state.model_client = client
    return client


def get_identity_client() -> IdentityExtractionClient:
    return IdentityExtractionClient()


def get_image_client() -> ImageGenerationClient:
    return ImageGenerationClient()


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------

class GenerateRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    source_url: str | None = None
    site_identity: SiteIdentity | None = None
    business_name: str | None = None
    description: str | None = None
    category: str = "local business"


class GenerateResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    html: str
    thinking: str
    pipeline_version: str


class EditRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    instruction: str
    current_html: str = Field(alias="currentHTML")
    attachments: list[Attachment] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------

@app.exception_handler(PipelineError)
async def pipeline_error_handler(request: Request, exc: PipelineError):
    print(f"[api] {request.url.path} failed: {exc.code.value} {exc.message}")
    return JSONResponse(status_code=exc.http_status, content={"error": exc.model_dump()})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    fields = [".".join(str(p) for p in err["loc"][1:]) for err in exc.errors()]
    error = PipelineError(
        "The request is missing required fields or has invalid values.",
        code=ErrorCode.INVALID_REQUEST,
        hint=f"Check: {', '.join(fields)}" if fields else None,
    )
    return JSONResponse(status_code=error.http_status, content={"error": error.model_dump()})


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------

@app.get("/health")
async def health():
    return {"status": "ok"}


async def resolve_identity(request: GenerateRequest, identity_client: IdentityExtractionClient) -> SiteIdentity:
    if request.site_identity is not None:
        return request.site_identity
    if request.source_url and request.source_url.strip():
        url = request.source_url.strip()
        if not url.startswith(("http://", "https://")):
            url = "https://" + url
        return await identity_client.extract(url)
    if request.business_name and request.business_name.strip():
        return SiteIdentity(
            business_name=request.business_name.strip(),
            full_copy=request.description or "",
            content_sparsity="sparse",
        )
    raise PipelineError(
        "sourceUrl, siteIdentity or businessName is required",
        code=ErrorCode.INVALID_REQUEST,
    )


@app.post("/generate", response_model=GenerateResponse, response_model_by_alias=True)
async def generate_endpoint(
    request: GenerateRequest,
    client: ModelClient = Depends(get_model_client),
    identity_client: IdentityExtractionClient = Depends(get_identity_client),
    image_client: ImageGenerationClient = Depends(get_image_client),
):
    """Generate a complete site for one business."""
    settings = get_settings()
    try:
        identity = await resolve_identity(request, identity_client)
        result = await asyncio.wait_for(
            generate_site(client, identity, request.category, image_client),
            timeout=settings.pipeline_timeout,
        )
    except asyncio.TimeoutError:
        raise PipelineError(
            "Generation timed out. Try again in a moment.",
            code=ErrorCode.TIMEOUT,
            retryable=True,
        )

    return GenerateResponse(
        html=result.html,
        thinking=result.thinking,
        pipeline_version=result.pipeline_version,
    )


@app.post("/generate/stream")
async def generate_stream(
    request: GenerateRequest,
    client: ModelClient = Depends(get_model_client),
    identity_client: IdentityExtractionClient = Depends(get_identity_client),
    image_client: ImageGenerationClient = Depends(get_image_client),
):
    """Generate a site with real-time streaming progress via SSE."""
    identity = await resolve_identity(request, identity_client)

    async def event_stream():
        async for event in run_pipeline_streaming(client, identity, request.category, image_client):
            yield event

    return StreamingResponse(
        event_stream(),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )


@app.post("/edit")
async def edit_endpoint(
    request: EditRequest,
    client: ModelClient = Depends(get_model_client),
):
    """Apply a natural-language edit to an existing site."""
    result = await edit_site(client, request.instruction, request.current_html, request.attachments)
    return result.model_dump(by_alias=True)


def serve():
    """Run the API with uvicorn (the `sitegen-api` console script)."""
    import uvicorn
    settings = get_settings()
    uvicorn.run(app, host=settings.host, port=settings.port, log_level="info")


if __name__ == "__main__":
    serve()
