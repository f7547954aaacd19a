"""
Parsing and clamping of completion responses into strict internal models.

The completion service is asked for JSON but is only semi-trusted: it may wrap
the payload in markdown fences, add prose around it, emit wrong types or
out-of-range values. Everything dynamic stays inside this module; callers only
ever see ExtractedRecipe / PhotoGroupingResult.
"""

from __future__ import annotations

import json
import logging
import math
import re
from typing import Any, List, Optional, Set

from app.models.photo_import import ExtractedRecipe, GroupingCandidate, PhotoGroupingResult
from app.utils.exceptions import EmptyExtractionError, MalformedResponseError

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "Untitled Recipe"
DEFAULT_CONFIDENCE = 0.5
DIFFICULTIES = ("easy", "medium", "hard")

_FENCE_OPEN = re.compile(r"^```(?:json)?[ \t]*\n?", re.IGNORECASE)
_FENCE_CLOSE = re.compile(r"\n?[ \t]*```\s*$")
_TRAILING_COMMA = re.compile(r",(\s*[}\]])")


# ---------------------------------------------------------------------------
# JSON extraction
# ---------------------------------------------------------------------------

def strip_code_fence(text: str) -> str:
    """Remove a single leading/trailing ``` or ```json fence, if present."""
    t = (text or "").strip()
    if t.startswith("```"):
        t = _FENCE_OPEN.sub("", t, count=1)
        t = _FENCE_CLOSE.sub("", t, count=1)
    return t.strip()


def _slice_json_value(text: str) -> Optional[str]:
    """Slice from the first '{' or '[' to the last '}' or ']' (best effort)."""
    starts = [i for i in (text.find("{"), text.find("[")) if i != -1]
    if not starts:
        return None
    start = min(starts)
    end = max(text.rfind("}"), text.rfind("]"))
    if end <= start:
        return None
    return text[start : end + 1]


def load_json_payload(raw_text: str) -> Any:
    """
    Parse the JSON value carried by a completion response.

    Tries, in order: the fence-stripped text, the outermost brace/bracket
    slice, and that slice with trailing commas removed.

    Raises:
        MalformedResponseError: If no candidate parses.
    """
    stripped = strip_code_fence(raw_text)
    candidates = [stripped]
    sliced = _slice_json_value(stripped)
    if sliced is not None and sliced != stripped:
        candidates.append(sliced)
    candidates.append(_TRAILING_COMMA.sub(r"\1", sliced or stripped))

    last_error: Optional[Exception] = None
    for candidate in candidates:
        if not candidate:
            continue
        try:
            return json.loads(candidate)
        except (ValueError, RecursionError) as e:
            # ValueError also covers oversized integer literals
            last_error = e

    preview = stripped[:120].replace("\n", " ")
    raise MalformedResponseError(
        f"Completion did not contain valid JSON ({last_error or 'empty response'}): {preview!r}"
    )


# ---------------------------------------------------------------------------
# Field coercion
# ---------------------------------------------------------------------------

def _is_number(value: Any) -> bool:
    # JSON true/false arrive as bool, which is an int subclass
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _as_float(value: Any) -> float:
    # JSON integers may be too large for a float
    try:
        return float(value)
    except OverflowError:
        return math.inf if value > 0 else -math.inf


def _minutes(value: Any) -> Optional[int]:
    if not _is_number(value) or not math.isfinite(_as_float(value)):
        return None
    minutes = int(round(value))
    return minutes if minutes >= 0 else None


def _servings(value: Any) -> Optional[int]:
    if not _is_number(value) or not math.isfinite(_as_float(value)):
        return None
    servings = int(round(value))
    return servings if servings >= 1 else None


def _confidence(value: Any) -> float:
    if not _is_number(value):
        return DEFAULT_CONFIDENCE
    number = _as_float(value)
    if math.isnan(number):
        return DEFAULT_CONFIDENCE
    return max(0.0, min(1.0, number))


def _stringify(item: Any) -> str:
    if isinstance(item, str):
        return item.strip()
    return json.dumps(item, ensure_ascii=False)


def _string_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    result = []
    for item in value:
        if item is None:
            continue
        text = _stringify(item)
        if text:
            result.append(text)
    return result


def _unique(items: List[str]) -> List[str]:
    seen: Set[str] = set()
    unique = []
    for item in items:
        if item not in seen:
            seen.add(item)
            unique.append(item)
    return unique


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def sanitize_recipe(raw_text: str) -> ExtractedRecipe:
    """
    Convert a raw extraction response into an ExtractedRecipe.

    Raises:
        MalformedResponseError: If the response holds no JSON object.
        EmptyExtractionError: If neither ingredients nor instructions survive.
    """
    data = load_json_payload(raw_text)
    if not isinstance(data, dict):
        raise MalformedResponseError(
            f"Expected a JSON object, got {type(data).__name__}"
        )

    title = data.get("title")
    description = data.get("description")
    difficulty = data.get("difficulty")
    notes = data.get("extractionNotes")
    notes_text = _stringify(notes) if notes is not None else ""

    ingredients = _string_list(data.get("ingredients"))
    instructions = _string_list(data.get("instructions"))

    if not ingredients and not instructions:
        raise EmptyExtractionError(
            "Could not extract any recipe content from the image(s)"
        )

    return ExtractedRecipe(
        title=title.strip() if isinstance(title, str) and title.strip() else DEFAULT_TITLE,
        description=description.strip() if isinstance(description, str) else "",
        prepTime=_minutes(data.get("prepTime")),
        cookTime=_minutes(data.get("cookTime")),
        totalTime=_minutes(data.get("totalTime")),
        servings=_servings(data.get("servings")),
        ingredients=ingredients,
        instructions=instructions,
        tags=_unique(_string_list(data.get("tags"))),
        difficulty=difficulty if difficulty in DIFFICULTIES else None,
        confidence=_confidence(data.get("confidence")),
        extractionNotes=notes_text or None,
    )


def _singletons(image_count: int) -> List[List[int]]:
    return [[i] for i in range(image_count)]


def _candidate_indices(candidate: Any) -> List[Any]:
    if isinstance(candidate, dict) and isinstance(candidate.get("indices"), list):
        return candidate["indices"]
    if isinstance(candidate, list):
        return candidate
    return []


def _optional_text(candidate: Any, key: str) -> Optional[str]:
    if not isinstance(candidate, dict):
        return None
    value = candidate.get(key)
    return value.strip() if isinstance(value, str) and value.strip() else None


def sanitize_grouping(raw_text: str, image_count: int) -> PhotoGroupingResult:
    """
    Convert a raw grouping response into a true partition of ``range(image_count)``.

    Never raises on bad content: an unparseable or mis-shaped response yields
    one singleton group per image with ``malformed=True``.
    """
    try:
        data = load_json_payload(raw_text)
    except MalformedResponseError as e:
        logger.warning("Grouping response unparseable, using singleton groups: %s", e)
        return PhotoGroupingResult(groups=_singletons(image_count), malformed=True)

    notes = ""
    raw_candidates: Any = data
    if isinstance(data, dict):
        raw_candidates = data.get("groups")
        if isinstance(data.get("notes"), str):
            notes = data["notes"].strip()

    if not isinstance(raw_candidates, list):
        logger.warning("Grouping response has no candidate list (got %s)", type(raw_candidates).__name__)
        return PhotoGroupingResult(groups=_singletons(image_count), notes=notes, malformed=True)

    claimed: Set[int] = set()
    groups: List[List[int]] = []
    candidates: List[GroupingCandidate] = []

    for raw in raw_candidates:
        indices: List[int] = []
        for idx in _candidate_indices(raw):
            if isinstance(idx, float) and idx.is_integer():
                idx = int(idx)
            if not isinstance(idx, int) or isinstance(idx, bool):
                continue
            if idx < 0 or idx >= image_count or idx in claimed:
                continue
            claimed.add(idx)
            indices.append(idx)
        if not indices:
            continue
        groups.append(indices)
        candidates.append(
            GroupingCandidate(
                indices=indices,
                title=_optional_text(raw, "title"),
                reason=_optional_text(raw, "reason"),
            )
        )

    leftovers = [[i] for i in range(image_count) if i not in claimed]
    if leftovers:
        logger.info("Grouping left %d image(s) unassigned, adding them as single recipes", len(leftovers))

    return PhotoGroupingResult(groups=groups + leftovers, candidates=candidates, notes=notes)
