"""Photo import endpoints."""

import asyncio
import json
import logging
from typing import Any, AsyncIterator, Dict, Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse

from app.api.dependencies import get_photo_import_service
from app.config import settings
from app.models.photo_import import (
    BatchProgress,
    PhotoAnalysisResult,
    PhotoExtractionRequest,
    PhotoExtractionResponse,
    PhotoGroupingRequest,
    PhotoImportRequest,
)
from app.services.batch_extractor import validate_groups
from app.services.photo_import import PhotoImportService
from app.utils.image_validation import validate_image_groups, validate_images

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/photos", tags=["photos"])


def _log_route(request: Request, route: str, params: Dict[str, Any]) -> None:
    logger.info(
        f"Route {route} called",
        extra={
            "request_id": getattr(request.state, "request_id", None),
            "route": route,
            "params": params,
        },
    )


@router.post("/group", response_model=PhotoAnalysisResult)
async def group_photos(
    request: Request,
    body: PhotoGroupingRequest,
    service: PhotoImportService = Depends(get_photo_import_service),
) -> PhotoAnalysisResult:
    """Group unordered photos by recipe."""
    _log_route(request, "/photos/group", {"images": len(body.images)})
    service.ensure_configured()
    validate_images(body.images, settings.max_image_bytes, settings.max_total_image_bytes)
    return await service.analyze_and_group_photos(body.images)


@router.post("/extract", response_model=PhotoExtractionResponse)
async def extract_photo_groups(
    request: Request,
    body: PhotoExtractionRequest,
    service: PhotoImportService = Depends(get_photo_import_service),
) -> PhotoExtractionResponse:
    """Extract one recipe per photo group; failed groups come back with ok=false."""
    _log_route(request, "/photos/extract", {"groups": [len(g) for g in body.imageGroups]})
    service.ensure_configured()
    validate_groups(body.imageGroups)
    validate_image_groups(body.imageGroups, settings.max_image_bytes, settings.max_total_image_bytes)

    recipes = await service.extract_recipes_from_photo_groups(body.imageGroups)
    return PhotoExtractionResponse.from_recipes(recipes)


@router.post("/extract/stream")
async def extract_photo_groups_stream(
    request: Request,
    body: PhotoExtractionRequest,
    service: PhotoImportService = Depends(get_photo_import_service),
) -> StreamingResponse:
    """
    Same as /photos/extract, streamed as NDJSON.

    One ``{"type": "progress", ...}`` line per finished group (completion
    order), then a single ``{"type": "result", ...}`` line. If the client
    disconnects, groups not yet dispatched are skipped.
    """
    _log_route(request, "/photos/extract/stream", {"groups": [len(g) for g in body.imageGroups]})
    service.ensure_configured()
    validate_groups(body.imageGroups)
    validate_image_groups(body.imageGroups, settings.max_image_bytes, settings.max_total_image_bytes)

    queue: "asyncio.Queue[Optional[Dict[str, Any]]]" = asyncio.Queue()
    cancel_event = asyncio.Event()

    async def on_progress(event: BatchProgress) -> None:
        await queue.put({"type": "progress", **event.model_dump(mode="json")})

    async def run_batch() -> None:
        try:
            recipes = await service.extract_recipes_from_photo_groups(
                body.imageGroups, on_progress=on_progress, cancel_event=cancel_event
            )
            response = PhotoExtractionResponse.from_recipes(recipes)
            await queue.put({"type": "result", **response.model_dump(mode="json")})
        except Exception as e:
            logger.error(f"Streaming extraction failed: {str(e)}", exc_info=True)
            await queue.put({"type": "error", "error": str(e)})
        finally:
            await queue.put(None)

    async def event_stream() -> AsyncIterator[str]:
        task = asyncio.create_task(run_batch())
        try:
            while True:
                item = await queue.get()
                if item is None:
                    break
                yield json.dumps(item, ensure_ascii=False) + "\n"
        finally:
            if not task.done():
                cancel_event.set()
                await task

    return StreamingResponse(
        event_stream(),
        media_type="application/x-ndjson",
        # identity keeps GZipMiddleware from buffering progress lines
        headers={"Content-Encoding": "identity", "Cache-Control": "no-store"},
    )


@router.post("/import", response_model=PhotoExtractionResponse)
async def import_photos(
    request: Request,
    body: PhotoImportRequest,
    service: PhotoImportService = Depends(get_photo_import_service),
) -> PhotoExtractionResponse:
    """Group unordered photos, then extract a recipe from every group."""
    _log_route(request, "/photos/import", {"images": len(body.images)})
    service.ensure_configured()
    validate_images(body.images, settings.max_image_bytes, settings.max_total_image_bytes)

    analysis, recipes = await service.import_photos(body.images)
    return PhotoExtractionResponse.from_recipes(recipes, grouping_notes=analysis.notes)
