"""Pydantic models."""

from recipekeeper.models.recipe import (
    ApplyConfirmRequest,
    ApplyPreviewRequest,
    ApplyRequest,
    CanonicalRecipe,
    CleanupRequest,
    CleanupResponse,
    PatchPreview,
    ReviewRequest,
    Section,
    StoredRecipe,
)

__all__ = [
    "ApplyConfirmRequest",
    "ApplyPreviewRequest",
    "ApplyRequest",
    "CanonicalRecipe",
    "CleanupRequest",
    "CleanupResponse",
    "PatchPreview",
    "ReviewRequest",
    "Section",
    "StoredRecipe",
]
