"""Recipe Pydantic models."""

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

EditMode = Literal["review", "cleanup", "suggestions"]
Provider = Literal["local", "cloud"]


class Section(BaseModel):
    """Named or anonymous ordered group of ingredient/instruction lines."""

    name: Optional[str] = Field(None, description="Section heading (null when ungrouped)")
    items: List[str] = Field(default_factory=list, description="Ordered lines in this section")


class CanonicalRecipe(BaseModel):
    """Normalized, storage-ready recipe produced by extraction."""

    url: str = Field(..., description="Source URL (unique key)")
    title: str = Field(..., description="Recipe title")
    description: Optional[str] = None
    image: Optional[str] = None
    author: Optional[str] = None
    prepTime: Optional[str] = Field(None, description="Display string, e.g. '1h 30m'")
    cookTime: Optional[str] = None
    totalTime: Optional[str] = None
    freezeTime: Optional[str] = Field(None, description="Residual time not covered by prep + cook")
    recipeYield: Optional[str] = None
    recipeCategory: Optional[str] = None
    recipeCuisine: Optional[str] = None
    ingredients: List[Section] = Field(..., description="Ingredient sections")
    instructions: List[Section] = Field(..., description="Instruction sections")
    nutrition: Optional[Dict[str, str]] = None
    notes: Optional[str] = None

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "url": "https://example.com/tea",
                "title": "Tea",
                "description": None,
                "image": None,
                "author": None,
                "prepTime": "5m",
                "cookTime": None,
                "totalTime": "5m",
                "freezeTime": None,
                "recipeYield": "1 cup",
                "recipeCategory": "Drink",
                "recipeCuisine": None,
                "ingredients": [{"name": None, "items": ["1 bag tea", "1 cup water"]}],
                "instructions": [{"name": None, "items": ["Boil water.", "Steep tea."]}],
                "nutrition": None,
                "notes": None,
            }
        }
    )


class StoredRecipe(CanonicalRecipe):
    """Canonical recipe as held by the persistence collaborator."""

    id: int
    createdAt: Optional[datetime] = None


class ScrapeRequest(BaseModel):
    """Request body for scraping a recipe URL."""

    url: str


class ScrapeResponse(StoredRecipe):
    """Scraped recipe plus whether it was newly inserted."""

    isNew: bool


class ReviewRequest(BaseModel):
    """Request body for a free-text AI analysis of a recipe."""

    mode: EditMode = "review"
    provider: Provider = "local"


class ReviewResponse(BaseModel):
    result: str


class ApplyPreviewRequest(BaseModel):
    """Turn a free-text AI response into a reviewable patch."""

    aiResponse: str = Field(..., min_length=1)
    mode: EditMode
    provider: Provider = "local"
    confirm: Optional[Literal[False]] = None


class ApplyConfirmRequest(BaseModel):
    """Commit a previously previewed patch."""

    patch: Dict[str, Any]
    confirm: Literal[True]


ApplyRequest = Union[ApplyConfirmRequest, ApplyPreviewRequest]


class FieldChange(BaseModel):
    old: Any = None
    new: Any = None


class PatchPreview(BaseModel):
    """Preview of AI-proposed changes; nothing has been written."""

    preview: Literal[True] = True
    changes: Dict[str, FieldChange]
    patch: Dict[str, Any]


class CleanupRequest(BaseModel):
    """Request body for a one-shot ingredient and instruction cleanup."""

    provider: Provider = "local"


class CleanupResponse(StoredRecipe):
    """Recipe after cleanup; ``cleaned`` is false when the LLM pass was skipped."""

    cleaned: bool
