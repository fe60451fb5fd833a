import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, Request, Response
from pydantic import ValidationError
from supabase import Client

from ..core.config import Config
from ..core.deps import AuthenticatedUser, get_current_user, get_openrouter_service, get_supabase
from ..core.errors import ApiError, create_validation_error
from ..core.validation import (
    parse_json_body,
    parse_optional_json_body,
    validate_recipe_data,
    validate_recipe_list_query_params,
    validation_failure_from,
)
from ..models.schemas import AiGenerationRequest
from ..services.openrouter_service import (
    GENERATION_MAX_TOKENS,
    GENERATION_TEMPERATURE,
    OpenRouterService,
    generated_recipe_from,
)
from ..services.profile_service import ProfileService
from ..services.prompts import build_preferences_prompt
from ..services.recipe_service import RecipeService, to_recipe_dto


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/recipes", tags=["recipes"])

# Context size when generating from recipes alone vs. with selected diets
RECIPES_FOR_GENERATION = 10
RECIPES_FOR_DIET_GENERATION = 5


def recipe_service(
    user: AuthenticatedUser = Depends(get_current_user),
    supabase: Client = Depends(get_supabase),
) -> RecipeService:
    return RecipeService(supabase, user.id)


@router.get("")
async def list_recipes(request: Request, service: RecipeService = Depends(recipe_service)):
    """List the caller's recipes with pagination, sorting and search."""
    result = validate_recipe_list_query_params(dict(request.query_params))
    if not result.success:
        raise result.error
    return service.list_recipes(result.data)


@router.post("", status_code=201)
async def create_recipe(request: Request, service: RecipeService = Depends(recipe_service)):
    body = await parse_json_body(request)
    result = validate_recipe_data(body, is_create=True)
    if not result.success:
        raise result.error
    return to_recipe_dto(service.create_recipe(result.data.as_record()))


@router.post("/ai-generation")
async def generate_recipe(
    request: Request,
    user: AuthenticatedUser = Depends(get_current_user),
    supabase: Client = Depends(get_supabase),
    openrouter: OpenRouterService = Depends(get_openrouter_service),
):
    """Generate a new recipe from the caller's recipes and dietary preferences.

    - Without ``diets`` at least one saved recipe is required as inspiration
    - With ``diets`` saved recipes are optional context
    - Profile allergens, dislikes and calorie target are always applied
    """
    raw = await parse_optional_json_body(request)
    try:
        body = AiGenerationRequest.model_validate(raw)
    except ValidationError as e:
        raise validation_failure_from(e, "Invalid request body").error

    try:
        profile = ProfileService(supabase, user.id).get_profile()
    except ApiError as e:
        logger.warning(f"Generating without profile preferences for user {user.id}: {e.message}")
        profile = None

    diets = body.diets or []
    default_limit = RECIPES_FOR_DIET_GENERATION if diets else RECIPES_FOR_GENERATION
    existing = RecipeService(supabase, user.id).list_recent_for_generation(body.max_recipes or default_limit)
    if not existing and not diets:
        raise create_validation_error(
            "You need at least one recipe in your list to generate a new recipe, "
            "or select dietary preferences to generate based on your diet"
        )

    custom_prompt = build_preferences_prompt(profile, diets, body.custom_prompt)
    completion = await openrouter.generate_recipe_from_existing(
        existing,
        model=body.model or Config.OPENROUTER_DEFAULT_MODEL,
        custom_prompt=custom_prompt or None,
        temperature=body.temperature if body.temperature is not None else GENERATION_TEMPERATURE,
        max_tokens=GENERATION_MAX_TOKENS,
    )
    return generated_recipe_from(completion)


@router.get("/{recipe_id}")
async def get_recipe(recipe_id: str, service: RecipeService = Depends(recipe_service)):
    return to_recipe_dto(service.require_recipe(recipe_id))


@router.put("/{recipe_id}")
async def update_recipe(recipe_id: str, request: Request, service: RecipeService = Depends(recipe_service)):
    body = await parse_json_body(request)
    result = validate_recipe_data(body, is_create=False)
    if not result.success:
        raise result.error

    changes: Dict[str, Any] = result.data.as_record()
    return to_recipe_dto(service.update_recipe(recipe_id, changes))


@router.delete("/{recipe_id}", status_code=204)
async def delete_recipe(recipe_id: str, service: RecipeService = Depends(recipe_service)):
    service.require_recipe(recipe_id)
    service.delete_recipe(recipe_id)
    return Response(status_code=204)
