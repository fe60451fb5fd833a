from healthy_meal.services.prompts import (
    build_preferences_prompt,
    build_variant_prompt,
    format_variant_text,
)


PROFILE = {
    "extra": {"diets": ["vegetarian"]},
    "allergens": ["peanuts", "shellfish"],
    "disliked_ingredients": ["olives"],
    "calorie_target": 1800,
}


def test_preferences_from_profile():
    prompt = build_preferences_prompt(PROFILE)

    assert prompt == (
        "User preferences:\n"
        "Dietary preferences: vegetarian\n"
        "Allergens to avoid: peanuts, shellfish\n"
        "Disliked ingredients to avoid: olives\n"
        "Target calorie range: around 1800 calories per serving"
    )


def test_request_diets_override_profile_diets():
    prompt = build_preferences_prompt(PROFILE, ["vegan", "keto"], "Quick dinner")

    assert prompt.startswith("Quick dinner\n\nUser preferences:\nDietary preferences: vegan, keto\n")
    assert "Allergens to avoid: peanuts, shellfish" in prompt


def test_diets_without_profile():
    assert build_preferences_prompt(None, ["halal"]) == "User preferences:\nDietary preferences: halal"


def test_legacy_diet_column_is_used():
    assert build_preferences_prompt({"diet": "pescatarian"}) == "User preferences:\nDietary preferences: pescatarian"


def test_nothing_to_add_keeps_prompt():
    assert build_preferences_prompt(None, None, "Just soup") == "Just soup"
    assert build_preferences_prompt({"diet": "none", "allergens": []}) == ""


def test_variant_prompt():
    prompt = build_variant_prompt("Carbonara", "Eggs and pancetta", "Make it vegan")

    assert prompt.startswith("Create a variant of this recipe that:\n")
    assert "Original recipe:\nCarbonara\n\nEggs and pancetta\n\n\nMake it vegan\n\n" in prompt
    assert prompt.endswith("Generate a variant recipe that is a creative adaptation of the original.")


def test_variant_prompt_without_custom_text():
    prompt = build_variant_prompt("Carbonara", "Eggs")

    assert "Original recipe:\nCarbonara\n\nEggs\n\n\nGenerate a variant" in prompt


def test_format_variant_text():
    text = format_variant_text({
        "title": "Vegan Carbonara",
        "description": "Creamy",
        "ingredients": [{"name": "pasta", "quantity": "400g"}, {"name": "cashews", "quantity": "1 cup"}],
        "instructions": ["Boil pasta", "Blend sauce"],
    })

    assert text == (
        "Title: Vegan Carbonara\n\n"
        "Creamy\n\n"
        "Ingredients:\n- 400g pasta\n- 1 cup cashews\n\n"
        "Instructions:\n1. Boil pasta\n2. Blend sauce"
    )


def test_format_variant_text_missing_sections():
    assert format_variant_text({"title": "Plain"}) == "Title: Plain\n\n\n\nIngredients:\n\n\nInstructions:\n"
