"""Recipe scraping and AI editing endpoints."""

import logging
from typing import Any, Dict, Union

from fastapi import APIRouter, Depends, Request

from recipekeeper.api.dependencies import (
    get_analysis_service,
    get_cleanup_service,
    get_patch_service,
    get_recipe_store,
    get_scraper_service,
)
from recipekeeper.middleware.rate_limit import rate_limit_dependency
from recipekeeper.models.recipe import (
    ApplyConfirmRequest,
    ApplyRequest,
    CleanupRequest,
    CleanupResponse,
    PatchPreview,
    ReviewRequest,
    ReviewResponse,
    ScrapeRequest,
    ScrapeResponse,
    StoredRecipe,
)
from recipekeeper.services.analysis_service import AnalysisService
from recipekeeper.services.cleanup_service import CleanupService
from recipekeeper.services.patch_service import PatchService
from recipekeeper.services.recipe_store import RecipeStore
from recipekeeper.services.scraper_service import ScraperService
from recipekeeper.utils.exceptions import RecipeNotFoundError
from recipekeeper.utils.recipe_normalization import normalize_sections
from recipekeeper.utils.validators import validate_url

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/recipes", tags=["recipes"])


def _normalized(recipe: Dict[str, Any]) -> Dict[str, Any]:
    """Stored rows may hold legacy flat lists; always hand out sections."""
    return {
        **recipe,
        "ingredients": normalize_sections(recipe.get("ingredients")),
        "instructions": normalize_sections(recipe.get("instructions")),
    }


@router.post("/scrape", response_model=ScrapeResponse)
async def scrape_recipe(
    request: Request,
    body: ScrapeRequest,
    _: None = Depends(rate_limit_dependency),
    store: RecipeStore = Depends(get_recipe_store),
    scraper: ScraperService = Depends(get_scraper_service),
) -> ScrapeResponse:
    """
    Extract a recipe from a public URL and store it.

    Returns the stored recipe if the URL was scraped before (`isNew: false`).
    """
    url = validate_url(body.url)
    logger.info(
        "Route /recipes/scrape called",
        extra={"request_id": getattr(request.state, "request_id", None), "params": {"url": url[:200]}},
    )

    existing = store.get_by_url(url)
    if existing is not None:
        return ScrapeResponse(**_normalized(existing), isNew=False)

    recipe = await scraper.extract_recipe_from_url(url)
    try:
        inserted = store.insert(recipe.model_dump())
    except ValueError:
        # Another request stored the same URL while we were fetching
        existing = store.get_by_url(url)
        if existing is None:
            raise
        return ScrapeResponse(**_normalized(existing), isNew=False)

    return ScrapeResponse(**_normalized(inserted), isNew=True)


@router.get("/{recipe_id}", response_model=StoredRecipe)
async def get_recipe(
    recipe_id: int,
    store: RecipeStore = Depends(get_recipe_store),
) -> StoredRecipe:
    recipe = store.get(recipe_id)
    if recipe is None:
        raise RecipeNotFoundError(f"Recipe {recipe_id} not found")
    return StoredRecipe(**_normalized(recipe))


@router.post("/{recipe_id}/review", response_model=ReviewResponse)
async def review_recipe(
    recipe_id: int,
    body: ReviewRequest,
    _: None = Depends(rate_limit_dependency),
    analysis_service: AnalysisService = Depends(get_analysis_service),
) -> ReviewResponse:
    """
    Ask the LLM for a short review, cleanup rewrite or suggestions.

    - **mode**: review | cleanup | suggestions
    - **provider**: local | cloud
    """
    result = await analysis_service.analyze(recipe_id, body.mode, body.provider)
    return ReviewResponse(**result)


@router.post("/{recipe_id}/apply", response_model=Union[StoredRecipe, PatchPreview])
async def apply_ai_changes(
    recipe_id: int,
    body: ApplyRequest,
    _: None = Depends(rate_limit_dependency),
    patch_service: PatchService = Depends(get_patch_service),
) -> Union[StoredRecipe, PatchPreview]:
    """
    Two-phase apply of an AI response.

    - Preview: `{aiResponse, mode, provider}` returns `{preview, changes, patch}`; nothing is saved.
    - Confirm: `{patch, confirm: true}` saves the (re-whitelisted) patch and returns the recipe.
    """
    if isinstance(body, ApplyConfirmRequest):
        updated = patch_service.confirm(recipe_id, body.patch)
        return StoredRecipe(**_normalized(updated))

    preview = await patch_service.preview(recipe_id, body.aiResponse, body.mode, body.provider)
    return PatchPreview(**preview)


@router.post("/{recipe_id}/cleanup", response_model=CleanupResponse)
async def cleanup_recipe(
    recipe_id: int,
    body: CleanupRequest = CleanupRequest(),
    _: None = Depends(rate_limit_dependency),
    cleanup_service: CleanupService = Depends(get_cleanup_service),
) -> CleanupResponse:
    """
    Standardize ingredient lines and split instructions into single actions.

    Saves in one step, with no preview. If the LLM is unavailable or its output
    would drop items, the recipe comes back unchanged with `cleaned: false`.
    """
    result = await cleanup_service.cleanup(recipe_id, body.provider)
    return CleanupResponse(**_normalized(result))
