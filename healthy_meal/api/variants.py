from fastapi import APIRouter, Depends, Request, Response
from pydantic import ValidationError

from ..core.errors import create_not_found_error, create_validation_error
from ..core.validation import (
    parse_optional_json_body,
    validate_recipe_variant_list_query_params,
    validation_failure_from,
)
from ..models.schemas import SaveVariantRequest
from ..services.prompts import format_variant_text
from ..services.recipe_service import RecipeService, to_variant_dto
from .recipes import recipe_service


router = APIRouter(prefix="/api/recipes/{recipe_id}/variants", tags=["variants"])


@router.get("")
async def list_variants(recipe_id: str, request: Request, service: RecipeService = Depends(recipe_service)):
    service.require_recipe(recipe_id)

    result = validate_recipe_variant_list_query_params(dict(request.query_params))
    if not result.success:
        raise result.error
    return service.list_recipe_variants(recipe_id, result.data)


@router.post("")
async def save_variant(recipe_id: str, request: Request, service: RecipeService = Depends(recipe_service)):
    """Persist an AI-generated variant under one of the caller's recipes."""
    raw = await parse_optional_json_body(request, malformed_message="Invalid request body")
    try:
        body = SaveVariantRequest.model_validate(raw)
    except ValidationError as e:
        raise validation_failure_from(e, "Invalid request body").error
    if not body.generated_recipe or not body.model or not body.prompt:
        raise create_validation_error("Generated recipe, model, and prompt are required")

    service.require_recipe(recipe_id)

    preferences = body.preferences_snapshot or {}
    variant = service.create_recipe_variant(recipe_id, {
        "parent_variant_id": body.parent_variant_id,
        "model": body.model,
        "prompt": body.prompt,
        "preferences_snapshot": preferences,
        "output_text": format_variant_text(body.generated_recipe),
        "output_json": body.generated_recipe,
    })

    dto = to_variant_dto(variant)
    dto["model"] = dto.get("model") or body.model
    dto["prompt"] = dto.get("prompt") or body.prompt
    dto["preferences_snapshot"] = dto.get("preferences_snapshot") or preferences or None
    return dto


@router.get("/{variant_id}")
async def get_variant(recipe_id: str, variant_id: str, service: RecipeService = Depends(recipe_service)):
    service.require_recipe(recipe_id)

    variant = service.get_recipe_variant(recipe_id, variant_id)
    if not variant:
        raise create_not_found_error("Variant not found")
    return to_variant_dto(variant)


@router.delete("/{variant_id}", status_code=204)
async def delete_variant(recipe_id: str, variant_id: str, service: RecipeService = Depends(recipe_service)):
    service.require_recipe(recipe_id)
    service.delete_recipe_variant(recipe_id, variant_id)
    return Response(status_code=204)
