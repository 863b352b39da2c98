"""Free-text AI analysis of a stored recipe (review / cleanup / suggestions)."""

import logging
from typing import Dict, Optional

from recipekeeper.services.llm_service import LLMService
from recipekeeper.services.prompts import format_recipe_text, get_analysis_system_prompt
from recipekeeper.services.recipe_store import RecipeStore
from recipekeeper.utils.exceptions import RecipeNotFoundError
from recipekeeper.utils.recipe_normalization import normalize_sections

logger = logging.getLogger(__name__)

ANALYSIS_MAX_TOKENS = 1024


class AnalysisService:
    """Produces the AI response that the patch preview later applies."""

    def __init__(self, store: RecipeStore, llm_service: Optional[LLMService] = None) -> None:
        self.store = store
        self.llm_service = llm_service or LLMService()

    async def analyze(self, recipe_id: int, mode: str, provider: str = "local") -> Dict[str, str]:
        recipe = self.store.get(recipe_id)
        if recipe is None:
            raise RecipeNotFoundError(f"Recipe {recipe_id} not found")

        recipe["ingredients"] = normalize_sections(recipe.get("ingredients"))
        recipe["instructions"] = normalize_sections(recipe.get("instructions"))

        logger.info(f"Running {mode} analysis for recipe {recipe_id}", extra={"recipe_id": recipe_id})
        result = await self.llm_service.chat(
            get_analysis_system_prompt(mode),
            format_recipe_text(recipe),
            provider=provider,
            max_tokens=ANALYSIS_MAX_TOKENS,
        )
        return {"result": result}
