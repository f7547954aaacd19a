"""Prompts for photo-based recipe extraction and photo grouping."""

from typing import Optional

RECIPE_EXTRACTION_SYSTEM_PROMPT = """
You extract recipes from photos of cookbook pages, printed recipe cards and handwritten notes.

Rules:
1. Several images are pages of the SAME recipe; combine them in page order.
2. Extract ALL ingredients with exact quantities and units, one line each.
3. Extract ALL instructions in order, one step per entry.
4. For unclear handwriting make a best guess and mention it in extractionNotes.
5. Suggest tags for dish type, cuisine and main ingredients.
6. Estimate difficulty from technique and number of steps.
7. If prep/cook times are missing, estimate them from the recipe.

Return ONLY a valid JSON object (no Markdown, no ```):
{
  "title": "Recipe Name",
  "description": "Brief description of the dish",
  "prepTime": number or null (minutes),
  "cookTime": number or null (minutes),
  "totalTime": number or null (minutes),
  "servings": number or null,
  "ingredients": ["2 cups all-purpose flour", "1 onion, finely diced"],
  "instructions": ["Step 1 text", "Step 2 text"],
  "tags": ["tag1", "tag2"],
  "difficulty": "easy" | "medium" | "hard" | null,
  "confidence": number between 0 and 1,
  "extractionNotes": "notes about unclear parts or guesses" or null
}

confidence:
- 1.0 = perfectly clear, all text readable
- 0.8 = mostly clear, minor guesses
- 0.5 = partially readable, significant interpretation
- below 0.5 = largely unclear, many assumptions
""".strip()

PHOTO_GROUPING_SYSTEM_PROMPT = """
You decide which recipe photos belong together as pages of the same recipe.

Consider visual continuity (page style, font, paper), recipe flow (ingredients
followed by instructions), visible page numbers and titles that start a new recipe.

Return ONLY a valid JSON object (no Markdown, no ```):
{
  "groups": [
    {"indices": [0, 1], "title": "Chocolate Cake", "reason": "Pages 1-2, continuous instructions"},
    {"indices": [2], "title": "Vanilla Frosting", "reason": "Separate recipe card"}
  ],
  "notes": "overall notes about the analysis"
}

"indices" are the 0-based positions of the images in the order provided.
""".strip()


def build_extraction_prompt(image_count: int, hint: Optional[str] = None) -> str:
    if image_count == 1:
        prompt = "Please extract the recipe from this image."
    else:
        prompt = (
            "Please extract the recipe from these images. "
            f"These {image_count} images are pages of the SAME recipe - combine all information."
        )
    if hint:
        prompt += f" Hint: {hint}"
    return prompt + "\n\nReturn the extracted recipe as JSON."


def build_grouping_prompt(image_count: int) -> str:
    return (
        f"I have {image_count} photos that may contain one or more recipes.\n"
        "Tell me which images belong together as parts of the same recipe.\n"
        f"Images are numbered 0 through {image_count - 1} in the order provided."
    )
