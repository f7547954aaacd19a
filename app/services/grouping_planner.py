"""Partitioning of an unordered photo batch into per-recipe photo groups."""

from __future__ import annotations

import logging
from typing import List

from app.config import PhotoImportConfig
from app.models.photo_import import EncodedImage, PhotoAnalysisResult, PhotoGroup
from app.services.completion_gateway import CompletionGateway
from app.services.photo_prompts import PHOTO_GROUPING_SYSTEM_PROMPT, build_grouping_prompt
from app.services.response_sanitizer import sanitize_grouping

logger = logging.getLogger(__name__)


class GroupingPlanner:
    """Groups photos by recipe, degrading to one group per image on any failure."""

    def __init__(self, gateway: CompletionGateway, config: PhotoImportConfig) -> None:
        self.gateway = gateway
        self.config = config

    async def plan(self, images: List[EncodedImage]) -> List[PhotoGroup]:
        """Return photo groups that partition ``images``."""
        return (await self.analyze(images)).groups

    async def analyze(self, images: List[EncodedImage]) -> PhotoAnalysisResult:
        """Group ``images`` and keep the planner's notes for the caller."""
        if not images:
            return PhotoAnalysisResult(groups=[], notes="No images provided")

        if len(images) == 1:
            return PhotoAnalysisResult(groups=[list(images)], notes="Single image, no grouping needed")

        try:
            raw = await self.gateway.call(
                system_prompt=PHOTO_GROUPING_SYSTEM_PROMPT,
                user_prompt=build_grouping_prompt(len(images)),
                images=images,
                model=self.config.grouping_model,
                max_tokens=self.config.grouping_max_tokens,
                temperature=self.config.temperature,
            )
        except Exception as e:
            logger.warning(
                "Photo grouping call failed (%s), treating each image as its own recipe: %s",
                getattr(e, "kind", "unexpected"),
                e,
            )
            return PhotoAnalysisResult(
                groups=[[image] for image in images],
                notes="Failed to analyze groupings, treating each image as a separate recipe",
            )

        grouping = sanitize_grouping(raw, len(images))
        if grouping.malformed:
            notes = "Failed to analyze groupings, treating each image as a separate recipe"
        else:
            notes = grouping.notes

        groups = [[images[i] for i in indices] for indices in grouping.groups]
        logger.info("Grouped %d image(s) into %d recipe(s)", len(images), len(groups))
        return PhotoAnalysisResult(groups=groups, notes=notes)
