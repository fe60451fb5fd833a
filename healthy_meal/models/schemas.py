"""Request body schemas for the auth, profile and generation endpoints.

Field names are snake_case in Python and camelCase on the wire, matching the
JSON the web client sends.
"""
import re
from typing import Annotated, Any, Dict, List, Literal, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, ValidationInfo, field_validator


DietType = Literal["none", "vegan", "vegetarian", "pescatarian", "keto", "paleo", "halal", "kosher"]

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
MAX_DISPLAY_NAME = 100
MAX_TAG_LENGTH = 100
MAX_CALORIE_TARGET = 10000


def _check_email(v: str) -> str:
    v = v.strip()
    if not EMAIL_RE.match(v):
        raise ValueError("Please enter a valid email address")
    return v


def _check_password(v: str) -> str:
    if len(v) < 8:
        raise ValueError("Password must be at least 8 characters")
    if not re.search(r"[0-9]", v):
        raise ValueError("Password must contain at least one number")
    if not re.search(r"[a-z]", v):
        raise ValueError("Password must contain at least one lowercase letter")
    if not re.search(r"[A-Z]", v):
        raise ValueError("Password must contain at least one uppercase letter")
    return v


def _check_confirmation(v: str, info: ValidationInfo) -> str:
    if not v:
        raise ValueError("Please confirm your password")
    password = info.data.get("password")
    if password is not None and v != password:
        raise ValueError("Passwords do not match")
    return v


Email = Annotated[str, AfterValidator(_check_email)]
Password = Annotated[str, AfterValidator(_check_password)]
PasswordConfirmation = Annotated[str, AfterValidator(_check_confirmation)]


class _Body(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class SignUpRequest(_Body):
    email: Email
    password: Password
    confirm_password: PasswordConfirmation = Field(alias="confirmPassword")
    display_name: Optional[str] = Field(default=None, alias="displayName")

    @field_validator("display_name")
    @classmethod
    def check_display_name(cls, v):
        if v is not None and len(v) > MAX_DISPLAY_NAME:
            raise ValueError("Display name must be less than 100 characters")
        return v


class SignInRequest(_Body):
    email: Email
    password: str

    @field_validator("password")
    @classmethod
    def check_password(cls, v):
        if not v:
            raise ValueError("Password is required")
        return v


class ForgotPasswordRequest(_Body):
    email: Email


class ResetPasswordRequest(_Body):
    password: Password
    confirm_password: PasswordConfirmation = Field(alias="confirmPassword")


class UpdateProfileRequest(_Body):
    """Partial profile update. Only fields present in the request are written."""

    display_name: Optional[str] = Field(default=None, alias="displayName")
    diets: Optional[List[DietType]] = None
    allergens: Optional[List[str]] = None
    disliked_ingredients: Optional[List[str]] = Field(default=None, alias="dislikedIngredients")
    calorie_target: Optional[int] = Field(default=None, alias="calorieTarget")

    @field_validator("display_name")
    @classmethod
    def check_display_name(cls, v):
        if v is not None and len(v) > MAX_DISPLAY_NAME:
            raise ValueError("Display name must be less than 100 characters")
        return v

    @field_validator("allergens")
    @classmethod
    def check_allergens(cls, v):
        for item in v or []:
            if not item:
                raise ValueError("Allergen cannot be empty")
            if len(item) > MAX_TAG_LENGTH:
                raise ValueError("Allergen name too long")
        return v

    @field_validator("disliked_ingredients")
    @classmethod
    def check_disliked(cls, v):
        for item in v or []:
            if not item:
                raise ValueError("Ingredient cannot be empty")
            if len(item) > MAX_TAG_LENGTH:
                raise ValueError("Ingredient name too long")
        return v

    @field_validator("calorie_target", mode="before")
    @classmethod
    def check_calorie_target(cls, v):
        if v is None:
            return v
        if isinstance(v, bool) or not isinstance(v, (int, float)):
            raise ValueError("Calorie target must be a number")
        if isinstance(v, float):
            if not v.is_integer():
                raise ValueError("Calorie target must be a whole number")
            v = int(v)
        if v < 0:
            raise ValueError("Calorie target must be positive")
        if v > MAX_CALORIE_TARGET:
            raise ValueError("Calorie target must be less than 10000")
        return v

    def supplied(self) -> Dict[str, Any]:
        """Return only the fields the client actually sent, keyed by attribute name."""
        return {name: getattr(self, name) for name in self.model_fields_set}


class AiGenerationRequest(_Body):
    model: Optional[str] = None
    custom_prompt: Optional[str] = Field(default=None, alias="customPrompt")
    temperature: Optional[float] = Field(default=None, ge=0, le=2)
    max_recipes: Optional[int] = Field(default=None, alias="maxRecipes", ge=1, le=50)
    diets: Optional[List[str]] = None


class ExistingRecipe(_Body):
    title: str = ""
    content: str = ""


class GenerateVariantRequest(_Body):
    existing_recipe: Optional[ExistingRecipe] = Field(default=None, alias="existingRecipe")
    model: Optional[str] = None
    custom_prompt: Optional[str] = Field(default=None, alias="customPrompt")
    temperature: Optional[float] = Field(default=None, ge=0, le=2)
    max_tokens: Optional[int] = Field(default=None, ge=1)


class SaveVariantRequest(_Body):
    generated_recipe: Optional[Dict[str, Any]] = Field(default=None, alias="generatedRecipe")
    model: Optional[str] = None
    prompt: Optional[str] = None
    preferences_snapshot: Optional[Dict[str, Any]] = None
    parent_variant_id: Optional[str] = None
