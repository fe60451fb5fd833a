"""Prompt text and output schema for AI recipe generation."""
from typing import Any, Dict, List, Optional

from .profile_service import profile_diets


PREFERENCES_HEADER = "User preferences:"

RECIPE_SCHEMA_NAME = "generated_recipe"

RECIPE_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "title": {"type": "string", "description": "Recipe title"},
        "description": {"type": "string", "description": "Brief description of the recipe"},
        "ingredients": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "name": {"type": "string", "description": "Ingredient name"},
                    "quantity": {
                        "type": "string",
                        "description": 'Quantity and unit (e.g., "2 cups", "500g")',
                    },
                },
                "required": ["name", "quantity"],
                "additionalProperties": False,
            },
            "description": "List of ingredients with quantities",
        },
        "instructions": {
            "type": "array",
            "items": {"type": "string"},
            "description": "Step-by-step cooking instructions",
        },
        "prep_time": {"type": "number", "description": "Preparation time in minutes"},
        "cook_time": {"type": "number", "description": "Cooking time in minutes"},
        "servings": {"type": "number", "description": "Number of servings"},
        "difficulty": {
            "type": "string",
            "enum": ["easy", "medium", "hard"],
            "description": "Difficulty level",
        },
    },
    "required": ["title", "ingredients", "instructions"],
    "additionalProperties": False,
}

VARIANT_PROMPT = """Create a variant of this recipe that:
- Maintains the core essence and style of the original recipe
- Adapts it according to the user's dietary preferences and requirements (if provided)
- Makes it unique while keeping it recognizable as a variation
- Preserves the cooking techniques and flavor profile where possible

Original recipe:
{title}

{content}
{custom}

Generate a variant recipe that is a creative adaptation of the original."""


def recipes_context(existing_recipes: List[Dict[str, str]]) -> Optional[str]:
    if not existing_recipes:
        return None
    return "\n\n---\n\n".join(
        f"Recipe {i}: {recipe.get('title', '')}\n{recipe.get('content', '')}"
        for i, recipe in enumerate(existing_recipes, start=1)
    )


def build_system_message(has_recipes: bool) -> str:
    message = "You are an expert chef and recipe creator. Your task is to generate a new, creative recipe."
    if has_recipes:
        message += (
            " The new recipe should:\n"
            "- Be inspired by the style, ingredients, or techniques from the existing recipes\n"
            "- Be a unique, creative combination or variation"
        )
    else:
        message += (
            " The new recipe should:\n"
            "- Be created based on the user's dietary preferences and requirements"
        )
    message += (
        "\n- Include clear, step-by-step instructions"
        "\n- List all ingredients with quantities"
        "\n- Be practical and achievable for home cooking"
        "\n\nGenerate the recipe in the exact JSON format specified."
    )
    return message


def build_user_message(context: Optional[str], custom_prompt: Optional[str]) -> str:
    if context:
        message = f"Based on these existing recipes:\n\n{context}\n\n"
        if custom_prompt:
            message += f"{custom_prompt}\n\n"
        message += (
            "Generate a new, creative recipe inspired by these recipes. "
            "Make it unique while drawing inspiration from the provided examples."
        )
        return message

    return (custom_prompt or "") + (
        "\n\nGenerate a new, creative recipe that meets these requirements. "
        "Make it delicious, practical, and suitable for home cooking."
    )


def build_preferences_prompt(
    profile: Optional[Dict[str, Any]],
    diets: Optional[List[str]] = None,
    custom_prompt: Optional[str] = None,
) -> str:
    """Append a ``User preferences:`` block to ``custom_prompt``.

    Diets sent with the request win over the profile's. Allergens, disliked
    ingredients and the calorie target always come from the profile. Returns
    ``custom_prompt`` unchanged (or "") when there is nothing to add.
    """
    prompt = custom_prompt or ""
    if not profile and not diets:
        return prompt

    lines = []
    selected = list(diets) if diets else profile_diets(profile)
    if selected:
        lines.append(f"Dietary preferences: {', '.join(selected)}")

    if profile:
        if profile.get("allergens"):
            lines.append(f"Allergens to avoid: {', '.join(profile['allergens'])}")
        if profile.get("disliked_ingredients"):
            lines.append(f"Disliked ingredients to avoid: {', '.join(profile['disliked_ingredients'])}")
        if profile.get("calorie_target"):
            lines.append(f"Target calorie range: around {profile['calorie_target']} calories per serving")

    if not lines:
        return prompt
    separator = "\n\n" if prompt else ""
    return prompt + separator + PREFERENCES_HEADER + "\n" + "\n".join(lines)


def build_variant_prompt(title: str, content: str, custom_prompt: Optional[str] = None) -> str:
    custom = f"\n\n{custom_prompt}" if custom_prompt else ""
    return VARIANT_PROMPT.format(title=title, content=content, custom=custom)


def format_variant_text(recipe: Dict[str, Any]) -> str:
    """Plain-text rendering stored alongside a saved variant's JSON."""
    ingredients = "\n".join(
        f"- {item.get('quantity', '')} {item.get('name', '')}"
        for item in recipe.get("ingredients") or []
    )
    instructions = "\n".join(
        f"{i}. {step}" for i, step in enumerate(recipe.get("instructions") or [], start=1)
    )
    return (
        f"Title: {recipe.get('title')}\n\n"
        f"{recipe.get('description') or ''}\n\n"
        f"Ingredients:\n{ingredients}\n\n"
        f"Instructions:\n{instructions}"
    )
