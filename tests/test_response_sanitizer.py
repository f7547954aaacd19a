"""Tests for completion response sanitizing."""

import json

import pytest

from app.services.response_sanitizer import (
    load_json_payload,
    sanitize_grouping,
    sanitize_recipe,
    strip_code_fence,
)
from app.utils.exceptions import EmptyExtractionError, MalformedResponseError


def test_strip_code_fence_json():
    """Test a ```json fence is removed."""
    assert strip_code_fence('```json\n{"a": 1}\n```') == '{"a": 1}'


def test_strip_code_fence_plain():
    """Test a bare ``` fence is removed and unfenced text is untouched."""
    assert strip_code_fence('```\n[1, 2]\n```') == "[1, 2]"
    assert strip_code_fence('  {"a": 1}  ') == '{"a": 1}'


def test_load_json_payload_with_prose_and_trailing_comma():
    """Test JSON surrounded by prose with a trailing comma still parses."""
    text = 'Here is the recipe:\n{"title": "Soup", "ingredients": ["water",],}\nEnjoy!'
    assert load_json_payload(text) == {"title": "Soup", "ingredients": ["water"]}


def test_load_json_payload_no_json():
    """Test text without JSON raises MalformedResponseError."""
    with pytest.raises(MalformedResponseError):
        load_json_payload("I could not read this image, sorry.")


def test_sanitize_recipe_defaults():
    """Test a minimal payload gets independent defaults."""
    recipe = sanitize_recipe('{"ingredients": ["x"]}')
    assert recipe.title == "Untitled Recipe"
    assert recipe.description == ""
    assert recipe.confidence == 0.5
    assert recipe.ingredients == ["x"]
    assert recipe.instructions == []
    assert recipe.tags == []
    assert recipe.difficulty is None
    assert recipe.prepTime is None
    assert recipe.servings is None
    assert recipe.extractionNotes is None
    assert recipe.ok is True


def test_sanitize_recipe_empty_extraction():
    """Test a recipe without ingredients and instructions is rejected."""
    with pytest.raises(EmptyExtractionError):
        sanitize_recipe('{"title": "X"}')


def test_sanitize_recipe_blank_lists_are_empty():
    """Test lists of blanks/nulls count as empty content."""
    with pytest.raises(EmptyExtractionError):
        sanitize_recipe('{"ingredients": ["", "  ", null], "instructions": "Mix"}')


def test_sanitize_recipe_malformed():
    """Test unparseable text raises MalformedResponseError, not EmptyExtractionError."""
    with pytest.raises(MalformedResponseError):
        sanitize_recipe("not json at all")


def test_sanitize_recipe_non_object():
    """Test a JSON array is not accepted as a recipe."""
    with pytest.raises(MalformedResponseError):
        sanitize_recipe('["flour", "eggs"]')


def test_sanitize_recipe_fenced_full_payload():
    """Test a fenced, complete payload is parsed field by field."""
    payload = {
        "title": "  Tomato Soup ",
        "description": "Warm soup",
        "prepTime": 10,
        "cookTime": 20.4,
        "totalTime": 30,
        "servings": 4,
        "ingredients": ["4 tomatoes", "1 onion"],
        "instructions": ["Chop.", "Simmer."],
        "tags": ["soup", "vegan", "soup"],
        "difficulty": "medium",
        "confidence": 0.85,
        "extractionNotes": "Step 2 partly obscured",
    }
    recipe = sanitize_recipe("```json\n" + json.dumps(payload) + "\n```")
    assert recipe.title == "Tomato Soup"
    assert recipe.cookTime == 20
    assert recipe.servings == 4
    assert recipe.tags == ["soup", "vegan"]
    assert recipe.difficulty == "medium"
    assert recipe.confidence == 0.85
    assert recipe.extractionNotes == "Step 2 partly obscured"


def test_sanitize_recipe_numbers_never_coerced_from_strings():
    """Test numeric fields accept only JSON numbers."""
    recipe = sanitize_recipe(
        json.dumps(
            {
                "ingredients": ["x"],
                "prepTime": "10",
                "cookTime": True,
                "totalTime": -5,
                "servings": 0,
            }
        )
    )
    assert recipe.prepTime is None
    assert recipe.cookTime is None
    assert recipe.totalTime is None
    assert recipe.servings is None


@pytest.mark.parametrize(
    "value, expected",
    [(1.7, 1.0), (-0.3, 0.0), (0.25, 0.25), ("0.9", 0.5), (None, 0.5), (10**400, 1.0), (-(10**400), 0.0)],
)
def test_sanitize_recipe_confidence_clamped(value, expected):
    """Test confidence is clamped into [0, 1] and defaults to 0.5."""
    recipe = sanitize_recipe(json.dumps({"ingredients": ["x"], "confidence": value}))
    assert recipe.confidence == expected


def test_sanitize_recipe_wrong_types_fall_back():
    """Test wrong-typed fields fall back without affecting the others."""
    recipe = sanitize_recipe(
        json.dumps(
            {
                "title": 42,
                "description": ["a"],
                "instructions": ["Bake at 180C", 2, {"step": "rest"}],
                "tags": "dinner",
                "difficulty": "Expert",
                "extractionNotes": 7,
            }
        )
    )
    assert recipe.title == "Untitled Recipe"
    assert recipe.description == ""
    assert recipe.instructions == ["Bake at 180C", "2", '{"step": "rest"}']
    assert recipe.tags == []
    assert recipe.difficulty is None
    assert recipe.extractionNotes == "7"


def test_sanitize_grouping_partition_example():
    """Test out-of-range and already-claimed indices are dropped, leftovers appended."""
    result = sanitize_grouping('[{"indices": [0, 5]}, {"indices": [0, 1]}]', 4)
    assert result.groups == [[0], [1], [2], [3]]
    assert result.malformed is False


def test_sanitize_grouping_object_shape_with_metadata():
    """Test the {"groups": [...], "notes": ...} shape keeps titles and notes."""
    raw = json.dumps(
        {
            "groups": [
                {"indices": [2, 0], "title": "Cake", "reason": "same font"},
                {"indices": [1], "title": "Frosting"},
            ],
            "notes": "Two recipes",
        }
    )
    result = sanitize_grouping(raw, 4)
    assert result.groups == [[2, 0], [1], [3]]
    assert result.notes == "Two recipes"
    assert [c.title for c in result.candidates] == ["Cake", "Frosting"]
    assert result.candidates[0].reason == "same font"


def test_sanitize_grouping_adversarial_indices():
    """Test non-integer, negative, boolean and duplicate indices are ignored."""
    raw = json.dumps(
        [
            {"indices": ["1", 1.5, True, -1, 2, 2]},
            {"indices": []},
            {"title": "no indices"},
            "garbage",
            {"indices": [2, 0]},
        ]
    )
    result = sanitize_grouping(raw, 3)
    assert result.groups == [[2], [0], [1]]


def test_sanitize_grouping_is_partition():
    """Test every index appears exactly once whatever the response says."""
    raw = json.dumps([{"indices": [4, 3, 3]}, {"indices": [0, 4, 9]}, {"indices": [1]}])
    result = sanitize_grouping(raw, 6)
    flat = [i for group in result.groups for i in group]
    assert sorted(flat) == list(range(6))
    assert len(flat) == 6


def test_sanitize_grouping_malformed():
    """Test unparseable grouping output degrades to singletons."""
    result = sanitize_grouping("These all look like one recipe.", 3)
    assert result.groups == [[0], [1], [2]]
    assert result.malformed is True


def test_sanitize_grouping_wrong_shape():
    """Test a JSON object without a groups list degrades to singletons."""
    result = sanitize_grouping('{"groups": "all of them", "notes": "hm"}', 2)
    assert result.groups == [[0], [1]]
    assert result.malformed is True


@pytest.mark.parametrize("field", ["prepTime", "cookTime", "totalTime", "servings"])
def test_sanitize_recipe_huge_integers_are_absent(field):
    """Test integers beyond float range are treated as absent."""
    recipe = sanitize_recipe(json.dumps({"ingredients": ["x"], field: 10**400}))
    assert getattr(recipe, field) is None
    assert recipe.ingredients == ["x"]


def test_sanitize_recipe_blank_notes_are_absent():
    """Test whitespace notes become None while falsy non-strings are kept."""
    assert sanitize_recipe('{"ingredients": ["x"], "extractionNotes": "   "}').extractionNotes is None
    assert sanitize_recipe('{"ingredients": ["x"], "extractionNotes": 0}').extractionNotes == "0"


@pytest.mark.parametrize(
    "raw",
    [
        "[" * 100000 + "]" * 100000,
        '{"ingredients": [1' + "0" * 5000 + "]}",
    ],
)
def test_load_json_payload_pathological_input(raw):
    """Test runaway nesting and oversized literals are malformed, not crashes."""
    with pytest.raises(MalformedResponseError):
        sanitize_recipe(raw)


def test_sanitize_grouping_deeply_nested():
    """Test runaway nesting degrades to singletons."""
    result = sanitize_grouping("[" * 100000 + "]" * 100000, 3)
    assert result.groups == [[0], [1], [2]]
    assert result.malformed is True


def test_sanitize_grouping_oversized_index():
    """Test an index literal too long to parse still yields a partition."""
    result = sanitize_grouping('[{"indices": [1' + "0" * 5000 + "]}]", 3)
    assert result.groups == [[0], [1], [2]]


def test_sanitize_grouping_integral_float_indices():
    """Test 1.0 counts as index 1 while 1.5 is ignored."""
    result = sanitize_grouping('[{"indices": [1.0, 0.0, 2.5]}]', 3)
    assert result.groups == [[1, 0], [2]]
