"""
Generation orchestrator.

Runs manifest → blueprint → parallel sections → assembly → post-processing
for one site identity. The same step sequence backs both the one-shot
generate_site() and the SSE stream, so progress reporting never drifts
from what actually runs.
"""

import time
from typing import AsyncIterator

from sitegen.blueprint_planner import plan_site_blueprint
from sitegen.brand_extractor import extract_brand_manifest
from sitegen.collaborators import ImageGenerationClient
from sitegen.config import get_settings
from sitegen.errors import PipelineError
from sitegen.llm_client import ModelClient
from sitegen.models import GenerationResult, SemanticImageMap, SiteIdentity, SiteImage
from sitegen.placeholders import create_placeholder_registry
from sitegen.post_processor import run_post_processing
from sitegen.section_generator import generate_sections
from sitegen.site_assembler import assemble_site, ensure_visible
from sitegen.sse_utils import sse_event


async def fill_missing_images(
    identity: SiteIdentity,
    image_client: ImageGenerationClient | None,
) -> SiteIdentity:
    """
    Generate hero/service images from the identity's image prompts when the
    identity has none of its own. Failed generations are skipped.
    """
    if not identity.image_prompts or image_client is None or not image_client.enabled:
        return identity

    registry = create_placeholder_registry(identity)
    wanted = {
        "hero": not registry.hero_images,
        "service": not registry.service_images,
    }
    if not any(wanted.values()):
        return identity

    generated: dict[str, list[SiteImage]] = {"hero": [], "service": []}
    for key, prompt in identity.image_prompts.items():
        bucket = "hero" if key.startswith("hero") else "service" if key.startswith("service") else None
        if bucket is None or not wanted[bucket]:
            continue
        aspect = "16:9" if bucket == "hero" else "4:3"
        url = await image_client.generate(prompt, aspect_ratio=aspect)
        if url:
            generated[bucket].append(SiteImage(url=url, alt=key))

    if not generated["hero"] and not generated["service"]:
        return identity

    semantic = identity.semantic_image_map or SemanticImageMap()
    semantic = semantic.model_copy(update={
        "hero": semantic.hero or generated["hero"],
        "services": semantic.services or generated["service"],
    })
    print(f"  [images] Generated {len(generated['hero'])} hero / "
          f"{len(generated['service'])} service images")
    return identity.model_copy(update={"semantic_image_map": semantic})


async def run_pipeline(
    client: ModelClient,
    identity: SiteIdentity,
    category: str,
    image_client: ImageGenerationClient | None = None,
) -> AsyncIterator[tuple[str, dict]]:
    """
    Yields (event_type, data) progress events. The last event is always
    ("done", {"result": GenerationResult}).

    Raises:
        EmptyDocumentError: the assembled page has no visible content
    """
    settings = get_settings()
    t0 = time.time()
    thinking: list[str] = []

    identity = await fill_missing_images(identity, image_client)

    thinking.append("Step 1: Extracting brand identity...")
    yield "step", {"step": "manifest", "message": "Extracting brand identity..."}
    manifest = await extract_brand_manifest(client, identity, category)
    thinking.append(f"Brand: {manifest.business_name}, Colors: {manifest.primary_color}")

    thinking.append("Step 2: Planning site structure...")
    yield "step", {"step": "blueprint", "message": "Planning site structure..."}
    blueprint = await plan_site_blueprint(client, manifest, identity, category)
    thinking.append(
        f"Blueprint: {blueprint.design_style} style, {len(blueprint.sections)} sections planned"
    )
    yield "blueprint", {
        "designStyle": blueprint.design_style,
        "sections": [s.id for s in blueprint.sections],
    }

    thinking.append("Step 3: Generating sections in parallel...")
    yield "step", {"step": "sections", "message": f"Generating {len(blueprint.sections)} sections..."}
    registry = create_placeholder_registry(identity)
    results = await generate_sections(client, blueprint, manifest, registry, identity)
    ok = sum(1 for r in results if r.success)
    thinking.append(f"Generated {ok}/{len(results)} sections successfully")
    yield "sections_done", {
        "succeeded": ok,
        "total": len(results),
        "failed": [r.id for r in results if not r.success],
    }

    thinking.append("Step 4: Assembling final HTML...")
    yield "step", {"step": "assembling", "message": "Assembling final HTML..."}
    html = assemble_site(manifest, blueprint, results)

    colors = blueprint.color_scheme
    document = run_post_processing(html, registry, (colors.primary, colors.secondary, colors.accent))
    if not document.validation.valid:
        thinking.append(f"Removed {document.validation.count} unresolved placeholders")
    ensure_visible(document.html)

    duration = time.time() - t0
    thinking.append(f"Pipeline completed in {duration * 1000:.0f}ms")
    print(f"[pipeline] {manifest.business_name} done in {duration:.1f}s "
          f"({ok}/{len(results)} sections, {len(document.html)} chars)")

    result = GenerationResult(
        html=document.html,
        thinking="\n".join(thinking),
        pipeline_version=settings.pipeline_version,
        manifest=manifest,
        blueprint=blueprint,
        validation=document.validation,
    )
    yield "done", {"result": result}


async def generate_site(
    client: ModelClient,
    identity: SiteIdentity,
    category: str,
    image_client: ImageGenerationClient | None = None,
) -> GenerationResult:
    result = None
    async for event_type, data in run_pipeline(client, identity, category, image_client):
        if event_type == "done":
            result = data["result"]
    return result


async def run_pipeline_streaming(
    client: ModelClient,
    identity: SiteIdentity,
    category: str,
    image_client: ImageGenerationClient | None = None,
) -> AsyncIterator[str]:
    """SSE rendition of run_pipeline(). Errors become an error + done pair."""
    try:
        async for event_type, data in run_pipeline(client, identity, category, image_client):
            if event_type == "done":
                result = data["result"]
                yield sse_event("done", {
                    "html": result.html,
                    "thinking": result.thinking,
                    "pipelineVersion": result.pipeline_version,
                    "validation": result.validation.model_dump(by_alias=True),
                })
            else:
                yield sse_event(event_type, data)
    except PipelineError as e:
        print(f"[pipeline] {e.code.value}: {e.message}")
        yield sse_event("error", {"error": e.model_dump()})
        yield sse_event("done", {"html": None, "error": e.message})
