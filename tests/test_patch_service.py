"""Tests for AI patch preview and confirm."""

import asyncio
import json

import pytest

from recipekeeper.services.patch_service import (
    ALLOWED_FIELDS,
    PATCH_TEMPERATURE,
    PatchService,
    parse_patch_json,
    strip_code_fences,
    validate_section_field,
    whitelist_patch,
)
from recipekeeper.services.prompts import get_apply_system_prompt
from recipekeeper.utils.exceptions import (
    LLMInvalidResponseError,
    LLMUnavailableError,
    NoApplicableChangesError,
    PatchRejectedError,
    RecipeNotFoundError,
)
from tests.conftest import FakeLLMService


def _preview(service, recipe_id=1, mode="cleanup", provider="local"):
    return asyncio.run(service.preview(recipe_id, "Split the steeping step.", mode, provider))


def test_strip_code_fences():
    assert strip_code_fences('```json\n{"a": 1}\n```') == '{"a": 1}'
    assert strip_code_fences('```\n{"a": 1}\n```') == '{"a": 1}'
    assert strip_code_fences('{"a": 1}') == '{"a": 1}'


def test_parse_patch_json_rejects_invalid_and_non_objects():
    with pytest.raises(LLMInvalidResponseError) as exc_info:
        parse_patch_json("Sure! Here are the changes.")
    assert "invalid JSON" in str(exc_info.value)
    with pytest.raises(LLMInvalidResponseError):
        parse_patch_json('["not", "an", "object"]')


def test_whitelist_patch_keeps_only_editable_fields():
    patch = {"title": "T", "id": 9, "url": "https://evil", "createdAt": "x", "image": "i", "notes": "n"}
    filtered = whitelist_patch(patch)
    assert set(filtered) == {"title", "notes"}
    assert set(filtered) <= ALLOWED_FIELDS


def test_validate_section_field_accepts_flat_arrays():
    sections = validate_section_field("instructions", ["Boil water.", "  ", "Steep tea."], 2)
    assert sections == [{"name": None, "items": ["Boil water.", "Steep tea."]}]


def test_validate_section_field_counts_across_sections():
    value = [{"name": "A", "items": ["x"]}, {"name": "B", "items": ["y"]}]
    assert validate_section_field("ingredients", value, 2) == value


def test_preview_returns_diff_without_writing(store, tea_recipe):
    patch = {
        "instructions": [
            {"name": None, "items": ["Boil water.", "Let cool for 1 minute.", "Steep tea for 3 minutes."]}
        ],
        "id": 99,
        "url": "https://elsewhere.example",
    }
    llm = FakeLLMService(reply=json.dumps(patch))
    result = _preview(PatchService(store, llm), provider="cloud")

    assert result["preview"] is True
    assert set(result["patch"]) == {"instructions"}
    assert result["changes"]["instructions"]["old"] == tea_recipe["instructions"]
    assert result["changes"]["instructions"]["new"] == patch["instructions"]
    assert store.get(1) == tea_recipe


def test_preview_llm_call_parameters(store, tea_recipe):
    llm = FakeLLMService(reply='{"notes": "Use filtered water."}')
    _preview(PatchService(store, llm), mode="suggestions", provider="cloud")

    call = llm.calls[0]
    assert call["system"] == get_apply_system_prompt("suggestions")
    assert "2 ingredients, 2 instruction steps" in call["user"]
    assert "Split the steeping step." in call["user"]
    assert call["provider"] == "cloud"
    assert call["temperature"] == PATCH_TEMPERATURE
    assert call["json_mode"] is True
    assert call["no_think"] is True


def test_preview_parses_fenced_reply(store, tea_recipe):
    llm = FakeLLMService(reply='```json\n{"title": "Black Tea"}\n```')
    result = _preview(PatchService(store, llm))
    assert result["patch"] == {"title": "Black Tea"}
    assert result["changes"]["title"] == {"old": "Tea", "new": "Black Tea"}


def test_preview_invalid_json(store, tea_recipe):
    with pytest.raises(LLMInvalidResponseError):
        _preview(PatchService(store, FakeLLMService(reply="I changed the title to Black Tea.")))


def test_preview_only_disallowed_fields(store, tea_recipe):
    llm = FakeLLMService(reply='{"id": 5, "image": "https://example.com/x.jpg"}')
    with pytest.raises(NoApplicableChangesError):
        _preview(PatchService(store, llm))


def test_preview_rejects_merged_instructions(store, tea_recipe):
    llm = FakeLLMService(reply='{"instructions": [{"name": null, "items": ["Boil water and steep tea."]}]}')
    with pytest.raises(PatchRejectedError) as exc_info:
        _preview(PatchService(store, llm))
    assert "from 2 to 1" in str(exc_info.value)
    assert store.get(1) == tea_recipe


def test_preview_rejects_removed_ingredients(store, tea_recipe):
    llm = FakeLLMService(reply='{"ingredients": ["1 bag tea"]}')
    with pytest.raises(PatchRejectedError) as exc_info:
        _preview(PatchService(store, llm))
    assert "ingredients" in str(exc_info.value)


def test_preview_rejects_non_array_instructions(store, tea_recipe):
    llm = FakeLLMService(reply='{"instructions": "Boil water. Steep tea."}')
    with pytest.raises(PatchRejectedError) as exc_info:
        _preview(PatchService(store, llm))
    assert "must be an array" in str(exc_info.value)


def test_preview_rejects_overlong_step(store, tea_recipe):
    steps = ["Boil water.", "Steep " + "very " * 120 + "long."]
    llm = FakeLLMService(reply=json.dumps({"instructions": steps}))
    with pytest.raises(PatchRejectedError) as exc_info:
        _preview(PatchService(store, llm))
    assert "500 characters" in str(exc_info.value)


def test_preview_step_length_is_configurable(store, tea_recipe):
    llm = FakeLLMService(reply=json.dumps({"instructions": ["Boil the water.", "Steep tea."]}))
    with pytest.raises(PatchRejectedError):
        _preview(PatchService(store, llm, max_step_length=12))


def test_preview_legacy_flat_recipe(store):
    store.insert({
        "url": "https://example.com/legacy",
        "title": "Legacy",
        "ingredients": ["a", "b", "c"],
        "instructions": ["one", "two"],
    })
    llm = FakeLLMService(reply=json.dumps({"ingredients": ["a", "b", "c", "d"]}))
    result = _preview(PatchService(store, llm))

    assert result["changes"]["ingredients"]["old"] == [{"name": None, "items": ["a", "b", "c"]}]
    assert result["patch"]["ingredients"] == [{"name": None, "items": ["a", "b", "c", "d"]}]


def test_preview_unknown_recipe(store):
    llm = FakeLLMService(reply="{}")
    with pytest.raises(RecipeNotFoundError):
        _preview(PatchService(store, llm), recipe_id=42)
    assert llm.calls == []


def test_preview_propagates_llm_errors(store, tea_recipe):
    llm = FakeLLMService(error=LLMUnavailableError("Local LLM server is not running. Start llama-server first."))
    with pytest.raises(LLMUnavailableError):
        _preview(PatchService(store, llm))


def test_confirm_writes_only_allowed_fields(store, tea_recipe):
    llm = FakeLLMService()
    updated = PatchService(store, llm).confirm(1, {"title": "Green Tea", "id": 7, "url": "https://evil.example"})

    assert updated["id"] == 1
    assert updated["url"] == tea_recipe["url"]
    assert updated["title"] == "Green Tea"
    assert store.get(1)["title"] == "Green Tea"
    assert llm.calls == []


def test_confirm_normalizes_sections(store, tea_recipe):
    updated = PatchService(store, FakeLLMService()).confirm(1, {"instructions": ["Boil.", "Steep.", "Serve."]})
    assert updated["instructions"] == [{"name": None, "items": ["Boil.", "Steep.", "Serve."]}]


def test_confirm_nothing_applicable(store, tea_recipe):
    with pytest.raises(NoApplicableChangesError) as exc_info:
        PatchService(store, FakeLLMService()).confirm(1, {"id": 2, "createdAt": "now"})
    assert str(exc_info.value) == "No changes to apply."
    assert store.get(1) == tea_recipe


def test_confirm_rejects_bad_scalars_without_writing(store, tea_recipe):
    service = PatchService(store, FakeLLMService())
    with pytest.raises(PatchRejectedError):
        service.confirm(1, {"title": 5})
    with pytest.raises(PatchRejectedError):
        service.confirm(1, {"nutrition": "lots"})
    assert store.get(1) == tea_recipe


def test_confirm_rejects_non_array_sections(store, tea_recipe):
    with pytest.raises(PatchRejectedError) as exc_info:
        PatchService(store, FakeLLMService()).confirm(1, {"instructions": 5})
    assert "instructions must be an array" in str(exc_info.value)
    assert store.get(1)["instructions"] == tea_recipe["instructions"]


def test_confirm_coerces_scalar_values(store, tea_recipe):
    updated = PatchService(store, FakeLLMService()).confirm(
        1, {"recipeYield": 4, "nutrition": {"calories": 120}, "title": "  Chai  "}
    )
    assert updated["recipeYield"] == "4"
    assert updated["nutrition"] == {"calories": "120"}
    assert updated["title"] == "Chai"


def test_confirm_unknown_recipe(store):
    with pytest.raises(RecipeNotFoundError):
        PatchService(store, FakeLLMService()).confirm(3, {"title": "x"})
