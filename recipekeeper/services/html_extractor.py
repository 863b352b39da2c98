"""HTML fallback extraction: microdata fields and plugin ingredient groups."""

import logging
import re
from typing import Any, Callable, Dict, List, Optional, Tuple

from bs4 import BeautifulSoup, Tag

from recipekeeper.services.sectionizer import sectionize_ingredients
from recipekeeper.utils.durations import parse_duration, residual_time

logger = logging.getLogger(__name__)

UNTITLED = "Untitled Recipe"
HEADING_TAGS = ["h2", "h3", "h4", "h5", "h6"]
LIST_TAGS = ["ul", "ol"]
_WHITESPACE = re.compile(r"\s+")
_GENERIC_HEADINGS = {"ingredients", "ingredient"}

Sections = List[Dict[str, Any]]


def _text(element: Optional[Tag]) -> str:
    if element is None:
        return ""
    return _WHITESPACE.sub(" ", element.get_text(" ", strip=True)).strip()


def _list_items(list_element: Tag) -> List[str]:
    return [text for text in (_text(li) for li in list_element.find_all("li")) if text]


def _is_acceptable(sections: Sections) -> bool:
    """More than one section, or a single named one."""
    if len(sections) > 1:
        return True
    return len(sections) == 1 and bool(sections[0].get("name"))


# =========================================================
# Ingredient grouping strategies
# =========================================================
def wprm_ingredient_groups(soup: BeautifulSoup) -> Sections:
    """WP Recipe Maker: ``.wprm-recipe-ingredient-group`` blocks."""
    sections: Sections = []
    for group in soup.select(".wprm-recipe-ingredient-group"):
        name = _text(group.select_one(".wprm-recipe-group-name")) or None
        items = [text for text in (_text(li) for li in group.select("li.wprm-recipe-ingredient")) if text]
        if not items:
            items = _list_items(group)
        if items:
            sections.append({"name": name.rstrip(":").strip() if name else None, "items": items})
    return sections


def tasty_ingredient_groups(soup: BeautifulSoup) -> Sections:
    """Tasty Recipes: headings inside ``.tasty-recipes-ingredients`` followed by a list."""
    container = soup.select_one(".tasty-recipes-ingredients")
    if container is None:
        return []

    sections: Sections = []
    for heading in container.find_all(["h3", "h4", "h5", "h6", "p"]):
        if heading.find_parent("li") is not None:
            continue
        if heading.name == "p" and not heading.find(["strong", "b"]):
            continue
        name = _text(heading).rstrip(":").strip()
        if not name or name.lower() in _GENERIC_HEADINGS:
            continue
        following = heading.find_next_sibling()
        if following is None or following.name not in LIST_TAGS:
            continue
        items = _list_items(following)
        if items:
            sections.append({"name": name, "items": items})
    return sections


def _heading_list_pairs(container: Tag) -> Sections:
    sections: Sections = []
    current: Optional[Dict[str, Any]] = None
    for element in container.find_all(HEADING_TAGS + LIST_TAGS):
        if element.name in HEADING_TAGS:
            name = _text(element).rstrip(":").strip()
            if name.lower() in _GENERIC_HEADINGS:
                name = ""
            current = {"name": name or None, "items": []}
            sections.append(current)
        elif element.find_parent(LIST_TAGS) is None:
            if current is None:
                current = {"name": None, "items": []}
                sections.append(current)
            current["items"].extend(_list_items(element))
    return [section for section in sections if section["items"]]


def _ingredient_container(tag: Tag) -> bool:
    attributes = " ".join(tag.get("class", [])) + " " + (tag.get("id") or "")
    return "ingredient" in attributes.lower() and tag.name not in LIST_TAGS + ["li"] + HEADING_TAGS


def generic_ingredient_groups(soup: BeautifulSoup) -> Sections:
    """Any ingredient-named container holding heading + list pairs."""
    for container in soup.find_all(_ingredient_container):
        sections = _heading_list_pairs(container)
        if _is_acceptable(sections):
            return sections
    return []


GROUPING_STRATEGIES: List[Tuple[str, Callable[[BeautifulSoup], Sections]]] = [
    ("wprm", wprm_ingredient_groups),
    ("tasty", tasty_ingredient_groups),
    ("generic", generic_ingredient_groups),
]


def extract_ingredient_groups(soup: BeautifulSoup) -> Optional[Sections]:
    """
    Probe known plugin markup for grouped ingredients.

    Returns the first strategy result with more than one section or a single
    named section, otherwise None.
    """
    for name, strategy in GROUPING_STRATEGIES:
        sections = strategy(soup)
        if _is_acceptable(sections):
            logger.info(f"Ingredient groups found via {name} markup ({len(sections)} sections)")
            return sections
    return None


# =========================================================
# Microdata extraction
# =========================================================
def _itemprop(soup: BeautifulSoup, prop: str) -> Optional[Tag]:
    return soup.find(attrs={"itemprop": prop})


def _itemprop_text(soup: BeautifulSoup, prop: str) -> Optional[str]:
    element = _itemprop(soup, prop)
    if element is None:
        return None
    return element.get("content") or _text(element) or None


def _itemprop_time(soup: BeautifulSoup, prop: str) -> Optional[str]:
    """Machine-readable ``content``/``datetime`` first, text otherwise."""
    element = _itemprop(soup, prop)
    if element is None:
        return None
    return element.get("content") or element.get("datetime") or _text(element) or None


def _itemprop_image(soup: BeautifulSoup) -> Optional[str]:
    element = _itemprop(soup, "image")
    if element is not None:
        value = element.get("src") or element.get("content") or element.get("href")
        if value:
            return value
    og_image = soup.find("meta", attrs={"property": "og:image"})
    if og_image is not None and og_image.get("content"):
        return og_image["content"]
    return None


def _itemprop_lines(soup: BeautifulSoup, *props: str) -> List[str]:
    """
    Lines from every element carrying one of ``props``.

    List containers contribute one line per list item; other elements are
    split on newlines.
    """
    lines: List[str] = []
    for element in soup.find_all(attrs={"itemprop": list(props)}):
        if element.find_parent(attrs={"itemprop": list(props)}) is not None:
            continue
        if element.name in LIST_TAGS:
            lines.extend(_list_items(element))
            continue
        for br in element.find_all("br"):
            br.replace_with("\n")
        for line in re.split(r"\n+", element.get_text()):
            line = _WHITESPACE.sub(" ", line).strip()
            if line:
                lines.append(line)
    return lines


def _title(soup: BeautifulSoup) -> str:
    for candidate in (_itemprop(soup, "name"), soup.find("h1"), soup.find("title")):
        text = _text(candidate)
        if text:
            return text
    return UNTITLED


def extract_from_html(soup: BeautifulSoup, url: str) -> Dict[str, Any]:
    """Build a canonical recipe dict from ``itemprop`` microdata."""
    prep_raw = _itemprop_time(soup, "prepTime")
    cook_raw = _itemprop_time(soup, "cookTime")
    total_raw = _itemprop_time(soup, "totalTime")
    freeze_raw = _itemprop_time(soup, "freezeTime")

    ingredients = sectionize_ingredients(_itemprop_lines(soup, "recipeIngredient", "ingredients"))
    instructions = [{"name": None, "items": _itemprop_lines(soup, "recipeInstructions")}]

    author_element = _itemprop(soup, "author")
    author = None
    if author_element is not None:
        author = _text(author_element.find(attrs={"itemprop": "name"})) or _text(author_element) or None

    return {
        "url": url,
        "title": _title(soup),
        "description": _itemprop_text(soup, "description"),
        "image": _itemprop_image(soup),
        "author": author,
        "prepTime": parse_duration(prep_raw),
        "cookTime": parse_duration(cook_raw),
        "totalTime": parse_duration(total_raw),
        "freezeTime": parse_duration(freeze_raw) if freeze_raw else residual_time(prep_raw, cook_raw, total_raw),
        "recipeYield": _itemprop_text(soup, "recipeYield"),
        "recipeCategory": _itemprop_text(soup, "recipeCategory"),
        "recipeCuisine": _itemprop_text(soup, "recipeCuisine"),
        "ingredients": ingredients,
        "instructions": instructions,
        "nutrition": None,
        "notes": None,
    }
