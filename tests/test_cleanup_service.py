"""Tests for one-shot ingredient and instruction cleanup."""

import asyncio
import json

import pytest

from recipekeeper.services.cleanup_service import CleanupService
from recipekeeper.services.patch_service import PATCH_TEMPERATURE
from recipekeeper.services.prompts import CLEANUP_SYSTEM_PROMPT
from recipekeeper.utils.exceptions import (
    LLMConfigurationError,
    LLMRequestError,
    LLMUnavailableError,
    RecipeNotFoundError,
)
from tests.conftest import FakeLLMService

CLEANED = {
    "ingredients": [{"name": None, "items": ["1 tea bag", "1 cup water"]}],
    "instructions": [
        {"name": None, "items": ["Boil the water.", "Pour the water over the tea bag.", "Steep for 3 minutes."]}
    ],
}


def _cleanup(service, recipe_id=1, provider="local"):
    return asyncio.run(service.cleanup(recipe_id, provider))


def test_cleanup_writes_both_sections(store, tea_recipe):
    llm = FakeLLMService(reply=json.dumps(CLEANED))
    result = _cleanup(CleanupService(store, llm), provider="cloud")

    assert result["cleaned"] is True
    assert result["ingredients"] == CLEANED["ingredients"]
    assert result["instructions"] == CLEANED["instructions"]
    assert store.get(1)["instructions"] == CLEANED["instructions"]
    assert store.get(1)["title"] == "Tea"

    call = llm.calls[0]
    assert call["system"] == CLEANUP_SYSTEM_PROMPT
    assert "2 ingredients, 2 instruction steps" in call["user"]
    assert "Steep tea." in call["user"]
    assert call["provider"] == "cloud"
    assert call["temperature"] == PATCH_TEMPERATURE
    assert call["json_mode"] is True


def test_cleanup_accepts_flat_arrays(store, tea_recipe):
    llm = FakeLLMService(reply=json.dumps({
        "ingredients": ["1 tea bag", "1 cup water"],
        "instructions": ["Boil the water.", "Steep the tea."],
    }))
    result = _cleanup(CleanupService(store, llm))
    assert result["cleaned"] is True
    assert result["instructions"] == [{"name": None, "items": ["Boil the water.", "Steep the tea."]}]


def test_cleanup_falls_back_when_llm_not_running(store, tea_recipe):
    llm = FakeLLMService(error=LLMUnavailableError("Local LLM server is not running. Start llama-server first."))
    result = _cleanup(CleanupService(store, llm))

    assert result["cleaned"] is False
    assert result["instructions"] == tea_recipe["instructions"]
    assert store.get(1) == tea_recipe


def test_cleanup_falls_back_on_request_error(store, tea_recipe):
    llm = FakeLLMService(error=LLMRequestError("LLM request timed out after 120s"))
    assert _cleanup(CleanupService(store, llm))["cleaned"] is False
    assert store.get(1) == tea_recipe


def test_cleanup_falls_back_on_invalid_json(store, tea_recipe):
    llm = FakeLLMService(reply="Here is your cleaned recipe!")
    assert _cleanup(CleanupService(store, llm))["cleaned"] is False
    assert store.get(1) == tea_recipe


def test_cleanup_falls_back_on_non_array_output(store, tea_recipe):
    llm = FakeLLMService(reply=json.dumps({"ingredients": "tea, water", "instructions": CLEANED["instructions"]}))
    assert _cleanup(CleanupService(store, llm))["cleaned"] is False
    assert store.get(1) == tea_recipe


def test_cleanup_keeps_recipe_when_steps_are_merged(store, tea_recipe):
    llm = FakeLLMService(reply=json.dumps({
        "ingredients": CLEANED["ingredients"],
        "instructions": ["Boil water and steep the tea."],
    }))
    result = _cleanup(CleanupService(store, llm))

    assert result["cleaned"] is False
    assert result["instructions"] == tea_recipe["instructions"]
    assert store.get(1) == tea_recipe


def test_cleanup_keeps_recipe_when_ingredients_are_dropped(store, tea_recipe):
    llm = FakeLLMService(reply=json.dumps({"ingredients": ["1 tea bag"], "instructions": CLEANED["instructions"]}))
    assert _cleanup(CleanupService(store, llm))["cleaned"] is False
    assert store.get(1) == tea_recipe


def test_cleanup_empty_recipe_skips_llm(store):
    store.insert({"url": "https://example.com/empty", "title": "Empty", "ingredients": [], "instructions": []})
    llm = FakeLLMService(reply=json.dumps(CLEANED))
    result = _cleanup(CleanupService(store, llm))

    assert result["cleaned"] is False
    assert llm.calls == []


def test_cleanup_missing_cloud_key_propagates(store, tea_recipe):
    llm = FakeLLMService(error=LLMConfigurationError("Cloud LLM API key is not configured."))
    with pytest.raises(LLMConfigurationError):
        _cleanup(CleanupService(store, llm), provider="cloud")


def test_cleanup_unknown_recipe(store):
    llm = FakeLLMService(reply=json.dumps(CLEANED))
    with pytest.raises(RecipeNotFoundError):
        _cleanup(CleanupService(store, llm), recipe_id=9)
    assert llm.calls == []
