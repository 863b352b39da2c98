"""Normalization of polymorphic schema.org values into canonical recipe fields.

schema.org lets most Recipe properties arrive as a string, an array or a
nested object. Each helper here collapses one such field into the scalar
shape stored on a canonical recipe, and ``normalize_sections`` folds flat
legacy lists into the section model used for ingredients and instructions.
"""

import logging
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

NUTRITION_FIELDS = (
    "calories",
    "fatContent",
    "saturatedFatContent",
    "unsaturatedFatContent",
    "transFatContent",
    "carbohydrateContent",
    "sugarContent",
    "fiberContent",
    "proteinContent",
    "cholesterolContent",
    "sodiumContent",
    "servingSize",
)


def normalize_image(image: Any) -> Optional[str]:
    """string -> itself, array -> first element, ``{url}`` -> url."""
    if not image:
        return None
    if isinstance(image, str):
        return image
    if isinstance(image, list):
        first = image[0]
        # ImageObject entries inside the array are common too
        if isinstance(first, dict):
            return normalize_image(first)
        return first or None
    if isinstance(image, dict) and "url" in image:
        return image["url"] or None
    return None


def normalize_author(author: Any) -> Optional[str]:
    """string -> itself, ``{name}`` -> name, list of either -> comma-joined."""
    if not author:
        return None
    if isinstance(author, str):
        return author
    if isinstance(author, list):
        names = []
        for entry in author:
            if isinstance(entry, str):
                names.append(entry)
            elif isinstance(entry, dict) and entry.get("name"):
                names.append(str(entry["name"]))
        return ", ".join(names) or None
    if isinstance(author, dict) and "name" in author:
        return author["name"] or None
    return None


def normalize_string_or_array(value: Any) -> Optional[str]:
    """Used for recipeYield, recipeCategory and recipeCuisine."""
    if value is None or value == "" or value == []:
        return None
    if isinstance(value, list):
        return ", ".join(str(v) for v in value if v not in (None, "")) or None
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, str):
        return value
    return None


def normalize_nutrition(nutrition: Any) -> Optional[Dict[str, str]]:
    """Keep only known NutritionInformation fields with string values."""
    if not isinstance(nutrition, dict):
        return None
    result = {
        field: nutrition[field]
        for field in NUTRITION_FIELDS
        if isinstance(nutrition.get(field), str) and nutrition[field]
    }
    return result or None


def normalize_sections(value: Any) -> List[Dict[str, Any]]:
    """
    Coerce ingredients/instructions into ``[{"name": str|None, "items": [str]}]``.

    Already-sectioned data is returned with the same names and items; a flat
    string list becomes a single unnamed section. Loose strings mixed in with
    sections are grouped into an unnamed section at the position they occur.
    The result is never empty.
    """
    if isinstance(value, str):
        value = [value] if value.strip() else []
    if not isinstance(value, list):
        return [{"name": None, "items": []}]

    sections: List[Dict[str, Any]] = []
    loose: List[str] = []

    for entry in value:
        if isinstance(entry, dict) and "items" in entry:
            if loose:
                sections.append({"name": None, "items": loose})
                loose = []
            items = entry.get("items")
            if not isinstance(items, list):
                items = [items] if items else []
            name = entry.get("name")
            sections.append({
                "name": str(name) if name else None,
                "items": [item if isinstance(item, str) else str(item) for item in items if item is not None],
            })
        elif isinstance(entry, str):
            loose.append(entry)
        elif entry is not None:
            loose.append(str(entry))

    if loose or not sections:
        sections.append({"name": None, "items": loose})
    return sections


def count_section_items(sections: Any) -> int:
    """Total number of lines across all sections of a (possibly legacy) value."""
    return sum(len(section["items"]) for section in normalize_sections(sections))


def is_single_unnamed_section(sections: List[Dict[str, Any]]) -> bool:
    return len(sections) == 1 and not sections[0].get("name")
