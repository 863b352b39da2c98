"""Shared API dependencies."""

from fastapi import Depends, Request

from recipekeeper.services.analysis_service import AnalysisService
from recipekeeper.services.cleanup_service import CleanupService
from recipekeeper.services.llm_service import LLMService
from recipekeeper.services.patch_service import PatchService
from recipekeeper.services.recipe_store import RecipeStore
from recipekeeper.services.scraper_service import ScraperService


def get_recipe_store(request: Request) -> RecipeStore:
    """Store constructed at startup and held on the application state."""
    return request.app.state.recipe_store


def get_scraper_service() -> ScraperService:
    return ScraperService()


def get_llm_service() -> LLMService:
    return LLMService()


def get_patch_service(
    store: RecipeStore = Depends(get_recipe_store),
    llm_service: LLMService = Depends(get_llm_service),
) -> PatchService:
    return PatchService(store, llm_service)


def get_analysis_service(
    store: RecipeStore = Depends(get_recipe_store),
    llm_service: LLMService = Depends(get_llm_service),
) -> AnalysisService:
    return AnalysisService(store, llm_service)


def get_cleanup_service(
    store: RecipeStore = Depends(get_recipe_store),
    llm_service: LLMService = Depends(get_llm_service),
) -> CleanupService:
    return CleanupService(store, llm_service)
