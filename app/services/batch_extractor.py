"""
Bounded-concurrency extraction of many photo groups.

Groups are dispatched in consecutive chunks of ``concurrency`` tasks joined with
asyncio.gather; chunks run one after another, so at most ``concurrency``
completion calls are in flight. A failing group is recorded as a FailureRecipe
in its own slot and never affects its siblings.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Awaitable, Callable, List, Optional, Union

from app.config import PhotoImportConfig
from app.models.photo_import import (
    BatchProgress,
    EncodedImage,
    ExtractedRecipe,
    FailureRecipe,
    PhotoGroup,
)
from app.services.completion_gateway import CompletionGateway
from app.services.photo_prompts import RECIPE_EXTRACTION_SYSTEM_PROMPT, build_extraction_prompt
from app.services.response_sanitizer import sanitize_recipe
from app.utils.exceptions import PhotoImportException, ValidationError

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[BatchProgress], Union[None, Awaitable[None]]]


class BatchCancelled(PhotoImportException):
    """Marks groups skipped because the batch was cancelled."""

    kind = "cancelled"


def validate_groups(groups: List[PhotoGroup]) -> None:
    """Reject structurally invalid input before any remote call is made."""
    if not isinstance(groups, list):
        raise ValidationError("Photo groups must be a list of image lists")
    for i, group in enumerate(groups):
        if not isinstance(group, list) or not group:
            raise ValidationError(f"Photo group {i + 1} must contain at least one image")


class BatchExtractor:
    """Runs one extraction per photo group with bounded parallelism."""

    def __init__(self, gateway: CompletionGateway, config: PhotoImportConfig) -> None:
        self.gateway = gateway
        self.config = config

    async def extract_group(self, images: List[EncodedImage], hint: Optional[str] = None) -> ExtractedRecipe:
        """
        Extract one recipe from the pages of a single photo group.

        Raises:
            ValidationError: If ``images`` is empty.
            CompletionError: Any gateway or sanitizer failure.
        """
        if not images:
            raise ValidationError("At least one image is required")

        raw = await self.gateway.call(
            system_prompt=RECIPE_EXTRACTION_SYSTEM_PROMPT,
            user_prompt=build_extraction_prompt(len(images), hint),
            images=images,
            model=self.config.extraction_model,
            max_tokens=self.config.extraction_max_tokens,
            temperature=self.config.temperature,
        )
        return sanitize_recipe(raw)

    async def run(
        self,
        groups: List[PhotoGroup],
        concurrency: Optional[int] = None,
        on_progress: Optional[ProgressCallback] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> List[ExtractedRecipe]:
        """
        Extract every group; ``result[i]`` always belongs to ``groups[i]``.

        Args:
            groups: Non-empty image lists, one per recipe.
            concurrency: Maximum in-flight extractions (defaults to config).
            on_progress: Called once per finished group, in completion order.
                May be a plain function or a coroutine function. Errors it
                raises are logged and do not stop the batch.
            cancel_event: Checked before each chunk; once set, remaining
                groups are filled with cancelled failure records.

        Raises:
            ValidationError: If a group is empty or concurrency < 1.
        """
        validate_groups(groups)
        limit = self.config.concurrency if concurrency is None else concurrency
        if limit < 1:
            raise ValidationError("Concurrency must be at least 1")

        total = len(groups)
        results: List[Optional[ExtractedRecipe]] = [None] * total
        completed = 0
        progress_lock = asyncio.Lock()

        async def report(index: int, recipe: ExtractedRecipe) -> None:
            nonlocal completed
            async with progress_lock:
                completed += 1
                if on_progress is None:
                    return
                event = BatchProgress(
                    current=completed,
                    total=total,
                    groupIndex=index,
                    lastResult=recipe if recipe.ok else None,
                    error=None if recipe.ok else recipe.description,
                )
                try:
                    outcome = on_progress(event)
                    if inspect.isawaitable(outcome):
                        await outcome
                except Exception as e:
                    logger.error(
                        "Progress callback failed for group %d/%d: %s", index + 1, total, e, exc_info=True
                    )

        async def process_group(index: int) -> None:
            try:
                recipe = await self.extract_group(groups[index])
            except Exception as e:
                logger.error(
                    "Failed to extract recipe from group %d/%d (%s): %s",
                    index + 1,
                    total,
                    getattr(e, "kind", "unexpected"),
                    e,
                    exc_info=not isinstance(e, PhotoImportException),
                )
                recipe = FailureRecipe.for_group(index, e)
            results[index] = recipe
            await report(index, recipe)

        logger.info("Extracting %d photo group(s) with concurrency %d", total, limit)
        for start in range(0, total, limit):
            if cancel_event is not None and cancel_event.is_set():
                logger.warning("Batch cancelled, skipping %d remaining group(s)", total - start)
                for index in range(start, total):
                    results[index] = FailureRecipe.for_group(index, BatchCancelled("batch cancelled"))
                break
            chunk = range(start, min(start + limit, total))
            await asyncio.gather(*(process_group(index) for index in chunk))

        succeeded = sum(1 for recipe in results if recipe is not None and recipe.ok)
        logger.info("Batch finished: %d/%d group(s) extracted", succeeded, total)
        return [recipe for recipe in results if recipe is not None]
