"""Convert JSON-LD ingredient/instruction fields into recipe sections."""

import html
import logging
import re
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

# Headers are short labels like "For the sauce:"; anything longer is almost
# certainly an ingredient line that happens to end with a colon.
HEADER_MAX_LENGTH = 60
_DIGIT = re.compile(r"\d")
_WHITESPACE = re.compile(r"\s+")


def _clean(text: Any) -> str:
    if text is None:
        return ""
    if not isinstance(text, str):
        text = str(text)
    return _WHITESPACE.sub(" ", html.unescape(text)).strip()


def is_section_header(text: str) -> bool:
    """
    Heuristic: does a flat ingredient entry look like a section heading?

    A header ends with ``:``, is shorter than 60 characters and contains no
    digit. Favors precision: a real header that breaks a rule stays an
    ingredient, which is preferred over turning a quantity line into a header.
    """
    text = (text or "").strip()
    return (
        text.endswith(":")
        and len(text) < HEADER_MAX_LENGTH
        and not _DIGIT.search(text)
    )


def sectionize_ingredients(ingredients: Any) -> List[Dict[str, Any]]:
    """
    Split a flat ``recipeIngredient`` list into sections using header lines.

    Without any header the whole list becomes one unnamed section.
    """
    if isinstance(ingredients, str):
        ingredients = [ingredients]
    if not isinstance(ingredients, list):
        return [{"name": None, "items": []}]

    lines = [line for line in (_clean(item) for item in ingredients) if line]
    if not any(is_section_header(line) for line in lines):
        return [{"name": None, "items": lines}]

    sections: List[Dict[str, Any]] = []
    current: Dict[str, Any] = {"name": None, "items": []}
    for line in lines:
        if is_section_header(line):
            if current["items"]:
                sections.append(current)
            current = {"name": line[:-1].strip() or None, "items": []}
        else:
            current["items"].append(line)
    if current["items"]:
        sections.append(current)

    if not sections:
        return [{"name": None, "items": []}]
    logger.debug(f"Split {len(lines)} ingredient lines into {len(sections)} sections")
    return sections


def _node_types(node: Dict[str, Any]) -> List[str]:
    node_type = node.get("@type") or []
    return node_type if isinstance(node_type, list) else [node_type]


def _is_how_to_section(node: Any) -> bool:
    if not isinstance(node, dict):
        return False
    if "HowToSection" in _node_types(node):
        return True
    return "itemListElement" in node and not node.get("text")


def _step_text(node: Any) -> Optional[str]:
    if isinstance(node, str):
        return _clean(node) or None
    if isinstance(node, dict):
        return _clean(node.get("text") or node.get("name")) or None
    return None


def _section_steps(section: Dict[str, Any]) -> List[str]:
    elements = section.get("itemListElement") or []
    if isinstance(elements, dict):
        elements = [elements]
    steps = []
    for element in elements:
        text = _step_text(element)
        if text:
            steps.append(text)
    return steps


def sectionize_instructions(instructions: Any) -> List[Dict[str, Any]]:
    """
    Normalize ``recipeInstructions`` into sections.

    Accepts a newline-separated string, a list of strings or HowToStep
    objects, or a mix including HowToSection objects. Plain steps seen
    before or between HowToSections are collected into an unnamed section
    that is flushed when the next HowToSection starts.
    """
    if instructions is None:
        return [{"name": None, "items": []}]

    if isinstance(instructions, str):
        lines = [_clean(line) for line in re.split(r"\n+", instructions)]
        return [{"name": None, "items": [line for line in lines if line]}]

    if isinstance(instructions, dict):
        instructions = [instructions]
    if not isinstance(instructions, list):
        return [{"name": None, "items": []}]

    if not any(_is_how_to_section(item) for item in instructions):
        steps = [text for text in (_step_text(item) for item in instructions) if text]
        return [{"name": None, "items": steps}]

    sections: List[Dict[str, Any]] = []
    loose: List[str] = []
    for item in instructions:
        if _is_how_to_section(item):
            if loose:
                sections.append({"name": None, "items": loose})
                loose = []
            sections.append({
                "name": _clean(item.get("name")) or None,
                "items": _section_steps(item),
            })
        else:
            text = _step_text(item)
            if text:
                loose.append(text)
    if loose:
        sections.append({"name": None, "items": loose})

    return sections
