from __future__ import annotations

import logging
import time
from typing import Any, Dict, Optional

import httpx
from bs4 import BeautifulSoup

from recipekeeper.config import settings
from recipekeeper.models.recipe import CanonicalRecipe
from recipekeeper.services.html_extractor import (
    UNTITLED,
    extract_from_html,
    extract_ingredient_groups,
)
from recipekeeper.services.jsonld_locator import extract_jsonld_blocks, locate_recipe
from recipekeeper.services.sectionizer import sectionize_ingredients, sectionize_instructions
from recipekeeper.utils.durations import parse_duration, residual_time
from recipekeeper.utils.exceptions import ScrapingError
from recipekeeper.utils.recipe_normalization import (
    is_single_unnamed_section,
    normalize_author,
    normalize_image,
    normalize_nutrition,
    normalize_string_or_array,
)

logger = logging.getLogger(__name__)

ACCEPT_HTML = "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8"


# =========================================================
# Utils
# =========================================================
def _default_headers() -> Dict[str, str]:
    return {
        "User-Agent": settings.fetch_user_agent,
        "Accept": ACCEPT_HTML,
    }


def _optional_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, list):
        return normalize_string_or_array(value)
    text = str(value).strip()
    return text or None


def normalize_jsonld_recipe(recipe: Dict[str, Any], url: str) -> Dict[str, Any]:
    """Map a located JSON-LD Recipe object onto the canonical recipe fields."""
    prep_raw = recipe.get("prepTime")
    cook_raw = recipe.get("cookTime")
    total_raw = recipe.get("totalTime")

    return {
        "url": url,
        "title": _optional_text(recipe.get("name")) or UNTITLED,
        "description": _optional_text(recipe.get("description")),
        "image": normalize_image(recipe.get("image")),
        "author": normalize_author(recipe.get("author")),
        "prepTime": parse_duration(prep_raw),
        "cookTime": parse_duration(cook_raw),
        "totalTime": parse_duration(total_raw),
        "freezeTime": residual_time(prep_raw, cook_raw, total_raw),
        "recipeYield": normalize_string_or_array(recipe.get("recipeYield")),
        "recipeCategory": normalize_string_or_array(recipe.get("recipeCategory")),
        "recipeCuisine": normalize_string_or_array(recipe.get("recipeCuisine")),
        "ingredients": sectionize_ingredients(recipe.get("recipeIngredient")),
        "instructions": sectionize_instructions(recipe.get("recipeInstructions")),
        "nutrition": normalize_nutrition(recipe.get("nutrition")),
        "notes": None,
    }


def extract_recipe_from_html(html: str, url: str) -> CanonicalRecipe:
    """
    Turn a fetched page into a canonical recipe.

    JSON-LD wins when a Recipe object is present. Otherwise microdata is
    used. Either way, an ingredient list that ends up as one unnamed section
    is checked against plugin markup for real ingredient groups.
    """
    soup = BeautifulSoup(html, "html.parser")

    jsonld = locate_recipe(extract_jsonld_blocks(soup))
    if jsonld is not None:
        logger.info(f"[jsonld] Using structured data for: {url}")
        data = normalize_jsonld_recipe(jsonld, url)
    else:
        logger.info(f"[html] No JSON-LD Recipe, falling back to microdata for: {url}")
        data = extract_from_html(soup, url)

    if is_single_unnamed_section(data["ingredients"]):
        groups = extract_ingredient_groups(soup)
        if groups:
            data["ingredients"] = groups

    return CanonicalRecipe(**data)


# =========================================================
# Scraper Service
# =========================================================
class ScraperService:
    """Fetches recipe pages and extracts canonical recipes from them."""

    def __init__(self, timeout: Optional[float] = None, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.timeout = timeout if timeout is not None else settings.http_timeout
        self._transport = transport

    async def fetch_html(self, url: str) -> str:
        """GET the page with browser-like headers; any failure is a ScrapingError."""
        start_time = time.time()
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout,
                headers=_default_headers(),
                follow_redirects=True,
                transport=self._transport,
            ) as client:
                response = await client.get(url)
                response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error(f"Fetch failed for {url}: HTTP {e.response.status_code}")
            raise ScrapingError(f"Failed to fetch {url}: HTTP {e.response.status_code}") from e
        except httpx.HTTPError as e:
            logger.error(f"Fetch failed for {url}: {e}")
            raise ScrapingError(f"Failed to fetch {url}: {e}") from e

        logger.info(
            f"Fetched {url} in {time.time() - start_time:.2f} seconds",
            extra={"url": url, "bytes": len(response.content)},
        )
        return response.text

    async def extract_recipe_from_url(self, url: str) -> CanonicalRecipe:
        html = await self.fetch_html(url)
        return extract_recipe_from_html(html, url)
