"""Prompt generation for AI analysis and AI-assisted recipe edits."""

from typing import Any, Dict, List

EDIT_MODES = ("review", "cleanup", "suggestions")

SHARED_APPLY_RULES = """Your job: Return ONLY a JSON object containing the fields that should be changed.
- Only include fields that need updating based on the AI response.
- "ingredients" must be an array of section objects: [{ "name": string|null, "items": string[] }].
- "instructions" must be an array of section objects: [{ "name": string|null, "items": string[] }].
- Use null for section name when there is no section grouping.
- "nutrition" must be an object with string keys and string values.
- All other fields are strings.
- The "instructions" sections MUST have >= the same total number of items as the original. Do NOT merge or combine steps.
- The "ingredients" sections MUST have >= the same total number of items as the original. Do NOT remove ingredients.
- Each instruction step must describe ONE concise action. Do NOT combine multiple actions into one step.
- Preserve all original information. Do NOT summarize, condense, or remove helpful details.
- Do NOT include fields that are unchanged.
- Do NOT wrap in markdown fences.
- Return ONLY valid JSON, nothing else."""

APPLY_PROMPTS: Dict[str, str] = {
    "review": f"""You are a recipe data editor.
The user provides a recipe as JSON and a list of identified issues.
Apply ONLY the specific fixes for the listed issues. Do NOT change anything that is not mentioned in the issues.

{SHARED_APPLY_RULES}

Additional rules for review mode:
- If an issue mentions a missing time or temperature, add it to the relevant step text.
- If an issue mentions an ambiguous quantity, make it specific only if the correct value can be inferred.
- Do NOT rewrite steps that have no issues. Only edit the specific text that addresses each issue.""",
    "cleanup": f"""You are a recipe data editor.
The user provides a recipe as JSON and a reformatted version of its ingredients and instructions.
Replace the ingredients and instructions with the reformatted versions.

{SHARED_APPLY_RULES}

Additional rules for cleanup mode:
- Only return "ingredients" and "instructions" keys. Do NOT change other fields.
- Copy the reformatted content faithfully. Do NOT further edit, summarize, or embellish.""",
    "suggestions": f"""You are a recipe data editor.
The user provides a recipe as JSON and 3 improvement suggestions.
Integrate each suggestion into the recipe data with minimal changes.

{SHARED_APPLY_RULES}

Additional rules for suggestions mode:
- Add new ingredients at the END of the ingredients list.
- Add new instruction steps at the logical position, or at the END if position is unclear.
- You may modify the text of existing steps to incorporate a suggestion, but do NOT remove or merge steps.
- Keep modifications minimal. Change only what the suggestion requires.""",
}


def get_apply_system_prompt(mode: str) -> str:
    """System prompt for turning an AI response into a field patch."""
    if mode not in APPLY_PROMPTS:
        raise ValueError(f"Unknown edit mode: {mode}")
    return APPLY_PROMPTS[mode]


def build_apply_user_prompt(
    recipe_json: str,
    mode: str,
    ai_response: str,
    ingredient_count: int,
    instruction_count: int,
) -> str:
    return (
        f"Current recipe ({ingredient_count} ingredients, {instruction_count} instruction steps):\n"
        f"{recipe_json}\n\n"
        f"AI {mode} response:\n{ai_response}\n\n"
        f"IMPORTANT: Your output MUST have >= {ingredient_count} ingredients and "
        f">= {instruction_count} instruction steps. Each step must be a single concise action."
    )


def get_analysis_system_prompt(mode: str) -> str:
    """System prompt for the free-text review/cleanup/suggestions pass."""
    if mode not in EDIT_MODES:
        raise ValueError(f"Unknown edit mode: {mode}")
    return f"""You are a concise cooking assistant.
The user will give you a recipe.

Task mode: {mode}.
- review: Briefly point out unclear steps, missing times/temperatures, or safety issues.
- cleanup: Rewrite the recipe steps so they are clearer and more structured.
- suggestions: Suggest at most 3 practical improvements to flavor or technique.

Constraints:
- Reply in under 120 words.
- No chit-chat or preamble."""


def format_recipe_text(recipe: Dict[str, Any]) -> str:
    """Plain-text rendering of a recipe with section headings kept."""
    lines: List[str] = [f"Title: {recipe.get('title')}"]
    for label, key in (("Prep", "prepTime"), ("Cook", "cookTime"), ("Yield", "recipeYield")):
        if recipe.get(key):
            lines.append(f"{label}: {recipe[key]}")

    lines += ["", "Ingredients:"]
    for section in recipe.get("ingredients") or []:
        if section.get("name"):
            lines.append(f"{section['name']}:")
        lines.extend(f"- {item}" for item in section.get("items", []))

    lines += ["", "Instructions:"]
    step = 0
    for section in recipe.get("instructions") or []:
        if section.get("name"):
            lines.append(f"{section['name']}:")
        for item in section.get("items", []):
            step += 1
            lines.append(f"{step}. {item}")

    return "\n".join(lines)


CLEANUP_SYSTEM_PROMPT = """You are a recipe data cleaner. You receive a recipe's ingredients and instructions as JSON.
Return ONLY a JSON object: { "ingredients": [...], "instructions": [...] }.
Each value is an array of section objects: [{ "name": string|null, "items": string[] }]. Keep the original section names and order.

Rules:
- Standardize every ingredient to "quantity unit item" (e.g. "2 cups all-purpose flour").
- Each instruction item must describe ONE action. Split steps that contain several actions.
- Do NOT merge items. The output MUST have >= the same number of ingredients and instruction steps as the input.
- Strip HTML, ad copy, affiliate links and life-story preamble.
- Fix typos and capitalization. Start every instruction step with a verb.
- Do NOT add, remove or substitute ingredients. Do NOT invent steps.
- Preserve all times, temperatures and quantities exactly.
- Do NOT wrap in markdown fences. Return ONLY valid JSON, nothing else."""


def build_cleanup_user_prompt(
    sections_json: str,
    ingredient_count: int,
    instruction_count: int,
) -> str:
    return (
        f"Recipe data ({ingredient_count} ingredients, {instruction_count} instruction steps):\n"
        f"{sections_json}\n\n"
        f"Your output MUST have >= {ingredient_count} ingredients and "
        f">= {instruction_count} instruction steps."
    )
