from fastapi import APIRouter, Depends, Request
from pydantic import ValidationError

from ..core.config import Config
from ..core.deps import get_current_user, get_openrouter_service
from ..core.errors import create_validation_error
from ..core.validation import parse_optional_json_body, validation_failure_from
from ..models.schemas import GenerateVariantRequest
from ..services.openrouter_service import (
    GENERATION_MAX_TOKENS,
    GENERATION_TEMPERATURE,
    OpenRouterService,
    generated_recipe_from,
)
from ..services.prompts import build_variant_prompt


router = APIRouter(prefix="/api/openrouter", tags=["openrouter"])


@router.post("/generate-variant", dependencies=[Depends(get_current_user)])
async def generate_variant(
    request: Request,
    openrouter: OpenRouterService = Depends(get_openrouter_service),
):
    """Generate a variant of one recipe; the result is returned, not saved."""
    raw = await parse_optional_json_body(request, malformed_message="Invalid request body")
    try:
        body = GenerateVariantRequest.model_validate(raw)
    except ValidationError as e:
        raise validation_failure_from(e, "Invalid request body").error

    existing = body.existing_recipe
    if existing is None or not existing.title:
        raise create_validation_error("Existing recipe is required")

    completion = await openrouter.generate_recipe_from_existing(
        [{"title": existing.title, "content": existing.content}],
        model=body.model or Config.OPENROUTER_DEFAULT_MODEL,
        custom_prompt=build_variant_prompt(existing.title, existing.content, body.custom_prompt),
        temperature=body.temperature if body.temperature is not None else GENERATION_TEMPERATURE,
        max_tokens=body.max_tokens if body.max_tokens is not None else GENERATION_MAX_TOKENS,
    )
    return generated_recipe_from(completion)
