"""
One-shot LLM cleanup of a stored recipe's ingredients and instructions.

Cleanup is best effort: when the model is unreachable or its output fails
the shape or no-shrink checks, the recipe is returned unchanged. A successful
pass is written with a single store update.
"""

import json
import logging
from typing import Any, Dict, Optional

from recipekeeper.config import settings
from recipekeeper.services.llm_service import LLMService
from recipekeeper.services.patch_service import PATCH_TEMPERATURE, parse_patch_json, validate_section_field
from recipekeeper.services.prompts import CLEANUP_SYSTEM_PROMPT, build_cleanup_user_prompt
from recipekeeper.services.recipe_store import RecipeStore
from recipekeeper.utils.exceptions import (
    LLMInvalidResponseError,
    LLMRequestError,
    LLMUnavailableError,
    PatchRejectedError,
    RecipeNotFoundError,
)
from recipekeeper.utils.recipe_normalization import count_section_items, normalize_sections

logger = logging.getLogger(__name__)

# LLMConfigurationError still propagates.
FALLBACK_ERRORS = (LLMUnavailableError, LLMRequestError, LLMInvalidResponseError, PatchRejectedError)


class CleanupService:
    """Rewrites ingredient and instruction lines into a consistent format."""

    def __init__(
        self,
        store: RecipeStore,
        llm_service: Optional[LLMService] = None,
        max_step_length: Optional[int] = None,
    ) -> None:
        self.store = store
        self.llm_service = llm_service or LLMService()
        self.max_step_length = max_step_length or settings.max_step_length

    async def cleanup(self, recipe_id: int, provider: str = "local") -> Dict[str, Any]:
        """Return the recipe with ``cleaned`` telling whether anything was written."""
        recipe = self.store.get(recipe_id)
        if recipe is None:
            raise RecipeNotFoundError(f"Recipe {recipe_id} not found")

        sections = {
            "ingredients": normalize_sections(recipe.get("ingredients")),
            "instructions": normalize_sections(recipe.get("instructions")),
        }
        ingredient_count = count_section_items(sections["ingredients"])
        instruction_count = count_section_items(sections["instructions"])
        unchanged = {**recipe, **sections, "cleaned": False}

        if ingredient_count == 0 and instruction_count == 0:
            return unchanged

        try:
            reply = await self.llm_service.chat(
                CLEANUP_SYSTEM_PROMPT,
                build_cleanup_user_prompt(
                    json.dumps(sections, indent=2, ensure_ascii=False),
                    ingredient_count,
                    instruction_count,
                ),
                provider=provider,
                temperature=PATCH_TEMPERATURE,
                json_mode=True,
                no_think=True,
            )
            cleaned = parse_patch_json(reply)
            patch = {
                "ingredients": validate_section_field(
                    "ingredients", cleaned.get("ingredients"), ingredient_count
                ),
                "instructions": validate_section_field(
                    "instructions",
                    cleaned.get("instructions"),
                    instruction_count,
                    max_item_length=self.max_step_length,
                ),
            }
        except FALLBACK_ERRORS as e:
            logger.warning(
                f"Cleanup of recipe {recipe_id} skipped: {e}",
                extra={"recipe_id": recipe_id, "error_type": type(e).__name__},
            )
            return unchanged

        updated = self.store.update(recipe_id, patch)
        if updated is None:
            raise RecipeNotFoundError(f"Recipe {recipe_id} not found")
        logger.info(f"Cleaned up recipe {recipe_id}", extra={"recipe_id": recipe_id})
        return {**updated, "cleaned": True}
