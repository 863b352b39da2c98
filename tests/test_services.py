"""Tests for validators, the in-memory store and prompt helpers."""

from urllib.parse import urlparse

import pytest

from recipekeeper.config import Settings
from recipekeeper.services.prompts import build_apply_user_prompt, format_recipe_text, get_apply_system_prompt
from recipekeeper.services.recipe_store import InMemoryRecipeStore
from recipekeeper.utils.exceptions import ValidationError
from recipekeeper.utils.validators import validate_url


def test_validate_url_valid():
    """Test URL validation with valid URLs."""
    assert validate_url("https://example.com/recipe") == "https://example.com/recipe"
    assert validate_url("  http://example.com/recipe ") == "http://example.com/recipe"


def test_validate_url_invalid_scheme():
    """Test URL validation with invalid scheme."""
    with pytest.raises(ValidationError):
        validate_url("ftp://example.com")


def test_validate_url_localhost():
    """Test URL validation blocks localhost."""
    with pytest.raises(ValidationError):
        validate_url("http://localhost/recipe")


def test_validate_url_private_ip():
    """Test URL validation blocks private and loopback addresses."""
    with pytest.raises(ValidationError):
        validate_url("http://192.168.1.10/recipe")
    with pytest.raises(ValidationError):
        validate_url("http://127.0.0.1:8080/recipe")


def test_validate_url_empty():
    with pytest.raises(ValidationError):
        validate_url("")


def test_store_insert_assigns_ids():
    store = InMemoryRecipeStore()
    first = store.insert({"url": "https://a.example", "title": "A"})
    second = store.insert({"url": "https://b.example", "title": "B"})

    assert (first["id"], second["id"]) == (1, 2)
    assert first["createdAt"] is not None
    assert store.get_by_url("https://b.example")["title"] == "B"


def test_store_url_is_unique():
    store = InMemoryRecipeStore()
    store.insert({"url": "https://a.example", "title": "A"})
    with pytest.raises(ValueError):
        store.insert({"url": "https://a.example", "title": "Again"})


def test_store_returns_copies():
    store = InMemoryRecipeStore()
    store.insert({"url": "https://a.example", "title": "A"})
    store.get(1)["title"] = "mutated"
    assert store.get(1)["title"] == "A"


def test_store_update_missing():
    assert InMemoryRecipeStore().update(1, {"title": "x"}) is None


def test_apply_prompts_per_mode():
    prompts = {mode: get_apply_system_prompt(mode) for mode in ("review", "cleanup", "suggestions")}
    assert len(set(prompts.values())) == 3
    for prompt in prompts.values():
        assert "JSON" in prompt


def test_apply_user_prompt_states_minimum_counts():
    prompt = build_apply_user_prompt("{}", "cleanup", "Fix typos.", ingredient_count=4, instruction_count=6)
    assert ">= 4 ingredients" in prompt
    assert ">= 6 instruction steps" in prompt
    assert "Fix typos." in prompt


def test_format_recipe_text_numbers_steps_across_sections():
    text = format_recipe_text({
        "title": "Pie",
        "ingredients": [{"name": "Crust", "items": ["Flour"]}],
        "instructions": [
            {"name": "Crust", "items": ["Roll."]},
            {"name": "Filling", "items": ["Stir."]},
        ],
    })
    assert "Title: Pie" in text
    assert "Crust:" in text
    assert "1. Roll." in text
    assert "2. Stir." in text


def test_default_port_does_not_collide_with_local_llm():
    """Test that the API and llama-server defaults listen on different ports."""
    defaults = Settings(_env_file=None)
    assert urlparse(defaults.llm_local_base_url).port != defaults.port
