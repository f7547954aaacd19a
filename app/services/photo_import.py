"""Photo import service: grouping and bulk extraction entry points."""

from __future__ import annotations

import asyncio
import logging
from typing import List, Optional, Tuple

from app.config import PhotoImportConfig
from app.models.photo_import import EncodedImage, ExtractedRecipe, PhotoAnalysisResult, PhotoGroup
from app.services.batch_extractor import BatchExtractor, ProgressCallback
from app.services.completion_gateway import CompletionGateway, GeminiCompletionGateway
from app.services.grouping_planner import GroupingPlanner
from app.utils.exceptions import NotConfiguredError

logger = logging.getLogger(__name__)


class PhotoImportService:
    """Entry points for turning photos into extracted recipes."""

    def __init__(self, config: PhotoImportConfig, gateway: Optional[CompletionGateway] = None) -> None:
        self.config = config
        self.gateway = gateway or GeminiCompletionGateway(api_key=config.api_key)
        self.planner = GroupingPlanner(self.gateway, config)
        self.extractor = BatchExtractor(self.gateway, config)

    def is_configured(self) -> bool:
        return self.config.is_configured

    def ensure_configured(self) -> None:
        """
        Fail fast when no credentials are available.

        Raises:
            NotConfiguredError: If no Gemini API key is configured.
        """
        if not self.is_configured():
            raise NotConfiguredError(
                "Photo import is not configured. Set GEMINI_API_KEY to enable it."
            )

    async def extract_recipe_from_photos(
        self, images: List[EncodedImage], hint: Optional[str] = None
    ) -> ExtractedRecipe:
        """Extract a single recipe; multiple images are pages of that recipe."""
        self.ensure_configured()
        return await self.extractor.extract_group(images, hint)

    async def analyze_and_group_photos(self, images: List[EncodedImage]) -> PhotoAnalysisResult:
        """Group photos by recipe. Never fails because of the grouping call itself."""
        self.ensure_configured()
        return await self.planner.analyze(images)

    async def extract_recipes_from_photo_groups(
        self,
        image_groups: List[PhotoGroup],
        on_progress: Optional[ProgressCallback] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> List[ExtractedRecipe]:
        """Extract one recipe per group, aligned with ``image_groups``."""
        self.ensure_configured()
        if not image_groups:
            return []
        return await self.extractor.run(
            image_groups,
            concurrency=self.config.concurrency,
            on_progress=on_progress,
            cancel_event=cancel_event,
        )

    async def import_photos(
        self,
        images: List[EncodedImage],
        on_progress: Optional[ProgressCallback] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> Tuple[PhotoAnalysisResult, List[ExtractedRecipe]]:
        """Group unordered photos, then extract every resulting group."""
        self.ensure_configured()
        analysis = await self.planner.analyze(images)
        recipes = await self.extract_recipes_from_photo_groups(
            analysis.groups, on_progress=on_progress, cancel_event=cancel_event
        )
        return analysis, recipes
