"""
AI-assisted recipe patching with a preview/confirm protocol.

PREVIEW: the LLM turns a free-text AI response into a JSON patch, which is
whitelisted and structurally validated, then returned with a diff. Nothing
is written.

CONFIRM: a caller-supplied patch (normally a previewed one) is whitelisted
again and written with a single store update. No LLM call.

A previewed patch may never shrink the ingredient or instruction count,
and no single instruction may exceed ``max_step_length`` characters.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Dict, Iterable, Optional

from recipekeeper.config import settings
from recipekeeper.services.llm_service import LLMService
from recipekeeper.services.prompts import build_apply_user_prompt, get_apply_system_prompt
from recipekeeper.services.recipe_store import RecipeStore
from recipekeeper.utils.exceptions import (
    LLMInvalidResponseError,
    NoApplicableChangesError,
    PatchRejectedError,
    RecipeNotFoundError,
)
from recipekeeper.utils.recipe_normalization import count_section_items, normalize_sections

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = (
    "title",
    "description",
    "ingredients",
    "instructions",
    "prepTime",
    "cookTime",
    "totalTime",
    "freezeTime",
    "recipeYield",
    "recipeCategory",
    "recipeCuisine",
    "nutrition",
    "notes",
)
ALLOWED_FIELDS = frozenset(EDITABLE_FIELDS)
SECTION_FIELDS = ("ingredients", "instructions")

PATCH_TEMPERATURE = 0.1

_OPENING_FENCE = re.compile(r"^```(?:json)?\s*\n?", re.IGNORECASE | re.MULTILINE)
_CLOSING_FENCE = re.compile(r"\n?```\s*$", re.MULTILINE)


# ---------------------------------------------------------------------------
# Pure helpers
# ---------------------------------------------------------------------------

def strip_code_fences(text: str) -> str:
    return _CLOSING_FENCE.sub("", _OPENING_FENCE.sub("", text or "", count=1), count=1).strip()


def parse_patch_json(text: str) -> Dict[str, Any]:
    """Parse a model reply into a dict; any failure is terminal."""
    try:
        parsed = json.loads(strip_code_fences(text))
    except json.JSONDecodeError as e:
        logger.warning(f"LLM returned invalid JSON: {text[:500]}")
        raise LLMInvalidResponseError(
            "LLM returned invalid JSON. Try running the analysis again."
        ) from e
    if not isinstance(parsed, dict):
        raise LLMInvalidResponseError(
            "LLM returned JSON that is not an object. Try running the analysis again."
        )
    return parsed


def whitelist_patch(patch: Dict[str, Any]) -> Dict[str, Any]:
    """Keep only editable fields."""
    dropped = [key for key in patch if key not in ALLOWED_FIELDS]
    if dropped:
        logger.info(f"Dropping non-editable patch fields: {dropped}")
    return {key: value for key, value in patch.items() if key in ALLOWED_FIELDS}


def _clean_sections(value: Iterable[Any]) -> list:
    """Stringify and trim every line, dropping empties, keeping section order."""
    cleaned = []
    for section in normalize_sections(list(value)):
        items = [str(item).strip() for item in section["items"]]
        items = [item for item in items if item]
        if items:
            cleaned.append({"name": section["name"], "items": items})
    return cleaned or [{"name": None, "items": []}]


def section_array(field: str, value: Any) -> list:
    """Shape check shared by preview and confirm: a section or string array, cleaned."""
    if not isinstance(value, list):
        raise PatchRejectedError(f"Rejected: {field} must be an array.")
    return _clean_sections(value)


def validate_section_field(
    field: str,
    value: Any,
    original_count: int,
    max_item_length: Optional[int] = None,
) -> list:
    """
    Enforce the no-shrink rule (and optionally a per-item length cap).

    Accepts a section array or a flat string array and returns sections.
    """
    sections = section_array(field, value)
    new_count = sum(len(section["items"]) for section in sections)

    if new_count < original_count:
        if field == "instructions":
            reason = (
                f"Rejected: AI reduced instructions from {original_count} to {new_count} steps "
                "(steps were likely merged or removed). Please try again."
            )
        else:
            reason = (
                f"Rejected: AI reduced ingredients from {original_count} to {new_count} items "
                "(ingredients were likely removed). Please try again."
            )
        raise PatchRejectedError(reason)

    if max_item_length is not None:
        for section in sections:
            if any(len(item) > max_item_length for item in section["items"]):
                raise PatchRejectedError(
                    f"Rejected: An instruction step exceeds {max_item_length} characters, "
                    "which suggests multiple steps were merged into one. Please try again."
                )

    return sections


def validate_scalar_fields(patch: Dict[str, Any]) -> Dict[str, Any]:
    """Coerce non-section fields to their stored shapes."""
    validated: Dict[str, Any] = {}
    for key, value in patch.items():
        if key in SECTION_FIELDS:
            validated[key] = value
        elif key == "nutrition":
            if value is not None and not isinstance(value, dict):
                raise PatchRejectedError("Rejected: nutrition must be an object.")
            validated[key] = (
                {str(k): str(v) for k, v in value.items() if v is not None} if value else None
            )
        elif key == "title":
            if not isinstance(value, str) or not value.strip():
                raise PatchRejectedError("Rejected: title must be a non-empty string.")
            validated[key] = value.strip()
        elif value is None or isinstance(value, str):
            validated[key] = value
        else:
            validated[key] = str(value)
    return validated


def recipe_reference(recipe: Dict[str, Any]) -> Dict[str, Any]:
    """Editable fields of a stored recipe with sections normalized."""
    reference = {key: recipe.get(key) for key in EDITABLE_FIELDS}
    for key in SECTION_FIELDS:
        reference[key] = normalize_sections(recipe.get(key))
    return reference


def build_diff(reference: Dict[str, Any], patch: Dict[str, Any]) -> Dict[str, Dict[str, Any]]:
    return {key: {"old": reference.get(key), "new": value} for key, value in patch.items()}


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------

class PatchService:
    """Computes AI patches (preview) and commits approved ones (confirm)."""

    def __init__(
        self,
        store: RecipeStore,
        llm_service: Optional[LLMService] = None,
        max_step_length: Optional[int] = None,
    ) -> None:
        self.store = store
        self.llm_service = llm_service or LLMService()
        self.max_step_length = max_step_length or settings.max_step_length

    def _load(self, recipe_id: int) -> Dict[str, Any]:
        recipe = self.store.get(recipe_id)
        if recipe is None:
            raise RecipeNotFoundError(f"Recipe {recipe_id} not found")
        return recipe

    async def preview(
        self,
        recipe_id: int,
        ai_response: str,
        mode: str,
        provider: str = "local",
    ) -> Dict[str, Any]:
        """Run the LLM and return ``{preview, changes, patch}`` without writing."""
        recipe = self._load(recipe_id)
        reference = recipe_reference(recipe)
        ingredient_count = count_section_items(reference["ingredients"])
        instruction_count = count_section_items(reference["instructions"])

        user_prompt = build_apply_user_prompt(
            recipe_json=json.dumps(reference, indent=2, ensure_ascii=False),
            mode=mode,
            ai_response=ai_response,
            ingredient_count=ingredient_count,
            instruction_count=instruction_count,
        )
        reply = await self.llm_service.chat(
            get_apply_system_prompt(mode),
            user_prompt,
            provider=provider,
            temperature=PATCH_TEMPERATURE,
            json_mode=True,
            no_think=True,
        )

        filtered = whitelist_patch(parse_patch_json(reply))
        if not filtered:
            raise NoApplicableChangesError("No applicable changes found in AI response.")

        try:
            if "instructions" in filtered:
                filtered["instructions"] = validate_section_field(
                    "instructions",
                    filtered["instructions"],
                    instruction_count,
                    max_item_length=self.max_step_length,
                )
            if "ingredients" in filtered:
                filtered["ingredients"] = validate_section_field(
                    "ingredients", filtered["ingredients"], ingredient_count
                )
            filtered = validate_scalar_fields(filtered)
        except PatchRejectedError as e:
            logger.warning(f"Patch for recipe {recipe_id} rejected: {e}", extra={"recipe_id": recipe_id})
            raise

        logger.info(
            f"Prepared {mode} patch preview for recipe {recipe_id}",
            extra={"recipe_id": recipe_id, "fields": sorted(filtered)},
        )
        return {"preview": True, "changes": build_diff(reference, filtered), "patch": filtered}

    def confirm(self, recipe_id: int, patch: Dict[str, Any]) -> Dict[str, Any]:
        """
        Re-apply the allow-list to a client patch and write it once.

        Field shapes are checked before the write, so a rejected patch leaves
        the stored recipe untouched.
        """
        filtered = whitelist_patch(patch)
        if not filtered:
            raise NoApplicableChangesError("No changes to apply.")

        for key in SECTION_FIELDS:
            if key in filtered:
                filtered[key] = section_array(key, filtered[key])
        filtered = validate_scalar_fields(filtered)

        updated = self.store.update(recipe_id, filtered)
        if updated is None:
            raise RecipeNotFoundError(f"Recipe {recipe_id} not found")
        return updated
