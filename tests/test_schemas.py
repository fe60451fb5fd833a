import pytest
from pydantic import ValidationError

from healthy_meal.core.validation import format_validation_errors
from healthy_meal.models.schemas import (
    AiGenerationRequest,
    ResetPasswordRequest,
    SignInRequest,
    SignUpRequest,
    UpdateProfileRequest,
)


def errors_for(model, payload):
    with pytest.raises(ValidationError) as exc_info:
        model.model_validate(payload)
    return format_validation_errors(exc_info.value)


def test_sign_up_accepts_camel_case_body():
    body = SignUpRequest.model_validate({
        "email": " cook@example.com ",
        "password": "Secret123",
        "confirmPassword": "Secret123",
        "displayName": "Cook",
    })

    assert body.email == "cook@example.com"
    assert body.display_name == "Cook"


@pytest.mark.parametrize(
    "password,message",
    [
        ("Ab1", "Password must be at least 8 characters"),
        ("Abcdefgh", "Password must contain at least one number"),
        ("ABCDEFG1", "Password must contain at least one lowercase letter"),
        ("abcdefg1", "Password must contain at least one uppercase letter"),
    ],
)
def test_password_rules(password, message):
    errors = errors_for(ResetPasswordRequest, {"password": password, "confirmPassword": password})

    assert errors["password"] == message


def test_password_confirmation_must_match():
    errors = errors_for(ResetPasswordRequest, {"password": "Secret123", "confirmPassword": "Secret124"})

    assert errors == {"confirmPassword": "Passwords do not match"}


def test_password_confirmation_required():
    errors = errors_for(ResetPasswordRequest, {"password": "Secret123", "confirmPassword": ""})

    assert errors == {"confirmPassword": "Please confirm your password"}


def test_sign_in_rejects_bad_email_and_empty_password():
    errors = errors_for(SignInRequest, {"email": "not-an-email", "password": ""})

    assert errors == {
        "email": "Please enter a valid email address",
        "password": "Password is required",
    }


def test_profile_update_tracks_supplied_fields():
    body = UpdateProfileRequest.model_validate({"diets": ["vegan"], "calorieTarget": 1800})

    assert body.supplied() == {"diets": ["vegan"], "calorie_target": 1800}


def test_profile_update_explicit_null_is_supplied():
    body = UpdateProfileRequest.model_validate({"displayName": None})

    assert body.supplied() == {"display_name": None}


@pytest.mark.parametrize(
    "value,message",
    [
        (-1, "Calorie target must be positive"),
        (10001, "Calorie target must be less than 10000"),
        (1800.5, "Calorie target must be a whole number"),
        ("1800", "Calorie target must be a number"),
    ],
)
def test_profile_calorie_target_rules(value, message):
    errors = errors_for(UpdateProfileRequest, {"calorieTarget": value})

    assert errors == {"calorieTarget": message}


def test_profile_rejects_unknown_diet():
    errors = errors_for(UpdateProfileRequest, {"diets": ["carnivore"]})

    assert list(errors) == ["diets.0"]


def test_profile_rejects_empty_allergen():
    errors = errors_for(UpdateProfileRequest, {"allergens": ["peanuts", ""]})

    assert errors == {"allergens": "Allergen cannot be empty"}


def test_ai_generation_bounds():
    errors = errors_for(AiGenerationRequest, {"temperature": 3, "maxRecipes": 0})

    assert set(errors) == {"temperature", "maxRecipes"}
