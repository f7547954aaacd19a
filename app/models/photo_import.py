"""Photo import Pydantic models."""

from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

# Bare base64 payload or a data:<mime>;base64,<payload> URL
EncodedImage = str
PhotoGroup = List[EncodedImage]

Difficulty = Literal["easy", "medium", "hard"]


class ExtractedRecipe(BaseModel):
    """Structured recipe extracted from one photo group."""

    model_config = ConfigDict(frozen=True)

    title: str = Field(..., description="Recipe title")
    description: str = Field("", description="Short description of the dish")
    prepTime: Optional[int] = Field(None, ge=0, description="Preparation time in minutes")
    cookTime: Optional[int] = Field(None, ge=0, description="Cooking time in minutes")
    totalTime: Optional[int] = Field(None, ge=0, description="Total time in minutes")
    servings: Optional[int] = Field(None, ge=1, description="Number of servings")
    ingredients: List[str] = Field(default_factory=list, description="Ingredient lines in order")
    instructions: List[str] = Field(default_factory=list, description="Instruction steps in order")
    tags: List[str] = Field(default_factory=list, description="Suggested tags")
    difficulty: Optional[Difficulty] = Field(None, description="easy, medium or hard")
    confidence: float = Field(0.5, ge=0.0, le=1.0, description="Extraction confidence 0-1")
    extractionNotes: Optional[str] = Field(None, description="Notes about unclear or guessed parts")
    ok: bool = Field(True, description="False for placeholder records of failed groups")
    failureKind: Optional[str] = Field(None, description="Failure class when ok is False")


class FailureRecipe(ExtractedRecipe):
    """Placeholder stored in the slot of a group whose extraction failed."""

    confidence: float = 0.0
    ok: bool = False

    @classmethod
    def for_group(cls, index: int, error: BaseException) -> "FailureRecipe":
        """Build the failure record for the group at 0-based ``index``."""
        ordinal = index + 1
        reason = str(error) or error.__class__.__name__
        kind = getattr(error, "kind", "unexpected")
        return cls(
            title=f"Failed Recipe {ordinal}",
            description=f"Failed to extract: {reason}",
            extractionNotes=(
                f"Group {ordinal} failed ({kind}): {reason}. "
                "Please try again with clearer images."
            ),
            failureKind=kind,
        )


class GroupingCandidate(BaseModel):
    """One group proposed by the grouping model, after index reconciliation."""

    indices: List[int]
    title: Optional[str] = None
    reason: Optional[str] = None


class PhotoGroupingResult(BaseModel):
    """Partition of image indices derived from a grouping response."""

    groups: List[List[int]] = Field(default_factory=list)
    candidates: List[GroupingCandidate] = Field(default_factory=list)
    notes: str = ""
    malformed: bool = False


class PhotoAnalysisResult(BaseModel):
    """Images grouped by recipe; each inner list is one recipe."""

    groups: List[PhotoGroup] = Field(default_factory=list)
    notes: str = ""


class BatchProgress(BaseModel):
    """Progress notification emitted after each group finishes."""

    current: int
    total: int
    groupIndex: int
    lastResult: Optional[ExtractedRecipe] = None
    error: Optional[str] = None


class PhotoGroupingRequest(BaseModel):
    """Request body for photo grouping."""

    images: List[EncodedImage] = Field(..., description="Base64 images or data URLs")


class PhotoImportRequest(BaseModel):
    """Request body for grouping followed by extraction."""

    images: List[EncodedImage] = Field(..., min_length=1, description="Base64 images or data URLs")


class PhotoExtractionRequest(BaseModel):
    """Request body for bulk extraction of pre-grouped photos."""

    imageGroups: List[PhotoGroup] = Field(..., description="One inner list per recipe")


class PhotoExtractionResponse(BaseModel):
    """Bulk extraction result, aligned with the submitted groups."""

    recipes: List[ExtractedRecipe]
    succeeded: int
    failed: int
    groupingNotes: Optional[str] = None

    @classmethod
    def from_recipes(
        cls, recipes: List[ExtractedRecipe], grouping_notes: Optional[str] = None
    ) -> "PhotoExtractionResponse":
        succeeded = sum(1 for recipe in recipes if recipe.ok)
        return cls(
            recipes=recipes,
            succeeded=succeeded,
            failed=len(recipes) - succeeded,
            groupingNotes=grouping_notes,
        )
