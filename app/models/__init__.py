"""Pydantic models."""

from app.models.photo_import import (
    BatchProgress,
    EncodedImage,
    ExtractedRecipe,
    FailureRecipe,
    GroupingCandidate,
    PhotoAnalysisResult,
    PhotoGroup,
    PhotoGroupingResult,
)

__all__ = [
    "BatchProgress",
    "EncodedImage",
    "ExtractedRecipe",
    "FailureRecipe",
    "GroupingCandidate",
    "PhotoAnalysisResult",
    "PhotoGroup",
    "PhotoGroupingResult",
]
