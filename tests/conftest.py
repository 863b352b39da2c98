"""Pytest configuration and fixtures."""

from typing import Any, Dict, List, Optional

import pytest
from fastapi.testclient import TestClient

from recipekeeper.api.dependencies import get_llm_service, get_scraper_service
from recipekeeper.main import create_app
from recipekeeper.middleware.rate_limit import limiter
from recipekeeper.services.recipe_store import InMemoryRecipeStore

TEA_RECIPE: Dict[str, Any] = {
    "url": "https://example.com/tea",
    "title": "Tea",
    "description": "A cup of tea.",
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


class FakeLLMService:
    """Stands in for LLMService; records calls and returns a canned reply."""

    def __init__(self, reply: Optional[str] = None, error: Optional[Exception] = None):
        self.reply = reply
        self.error = error
        self.calls: List[Dict[str, Any]] = []

    async def chat(self, system: str, user: str, **kwargs: Any) -> str:
        self.calls.append({"system": system, "user": user, **kwargs})
        if self.error is not None:
            raise self.error
        return self.reply


@pytest.fixture
def store():
    return InMemoryRecipeStore()


@pytest.fixture
def tea_recipe(store):
    """The tea recipe, stored with id 1."""
    return store.insert(TEA_RECIPE)


@pytest.fixture
def fake_llm():
    return FakeLLMService()


@pytest.fixture
def app(store, fake_llm):
    application = create_app(store)
    application.dependency_overrides[get_llm_service] = lambda: fake_llm
    return application


@pytest.fixture
def client(app):
    """Create test client with rate limiting switched off."""
    limiter.enabled = False
    yield TestClient(app)
    limiter.enabled = True


@pytest.fixture
def override_scraper(app):
    def _override(scraper):
        app.dependency_overrides[get_scraper_service] = lambda: scraper
    return _override
