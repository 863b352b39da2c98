"""Locate a schema.org Recipe object inside a page's JSON-LD blocks."""

import json
import logging
from typing import Any, Dict, Iterable, List, Optional

from bs4 import BeautifulSoup

logger = logging.getLogger(__name__)

RECIPE_TYPE = "Recipe"


def is_recipe_object(value: Any) -> bool:
    """True when ``@type`` (string or list) names Recipe."""
    if not isinstance(value, dict):
        return False
    item_type = value.get("@type")
    if not item_type:
        return False
    types = item_type if isinstance(item_type, list) else [item_type]
    return RECIPE_TYPE in types


def find_recipe(data: Any) -> Optional[Dict[str, Any]]:
    """
    Depth-first search for the first Recipe object.

    Arrays are searched element by element; objects match on ``@type`` or
    recurse into an ``@graph`` array. Anything else is not a match.
    """
    if isinstance(data, list):
        for item in data:
            found = find_recipe(item)
            if found is not None:
                return found
        return None

    if not isinstance(data, dict):
        return None

    if is_recipe_object(data):
        return data

    graph = data.get("@graph")
    if isinstance(graph, list):
        return find_recipe(graph)

    return None


def extract_jsonld_blocks(soup: BeautifulSoup) -> List[str]:
    """Raw text of every ``<script type="application/ld+json">`` in document order."""
    blocks = []
    for script in soup.find_all("script", attrs={"type": "application/ld+json"}):
        text = script.string or script.get_text()
        if text and text.strip():
            blocks.append(text)
    return blocks


def locate_recipe(blocks: Iterable[str]) -> Optional[Dict[str, Any]]:
    """Return the first Recipe found across blocks; malformed JSON is skipped."""
    for index, text in enumerate(blocks):
        try:
            data = json.loads(text)
        except (json.JSONDecodeError, TypeError) as e:
            logger.debug(f"Skipping malformed JSON-LD block #{index}: {e}")
            continue

        recipe = find_recipe(data)
        if recipe is not None:
            logger.info(f"Found JSON-LD Recipe in block #{index}")
            return recipe

    return None
