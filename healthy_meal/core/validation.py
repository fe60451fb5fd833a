"""Request validation.

Validators take raw, untyped input (query-string values or decoded JSON) and
return either ``ValidationSuccess`` with normalized data or
``ValidationFailure`` describing every invalid field at once. They never
raise for bad input; routes decide whether to raise the carried ``ApiError``.
"""
import json
import logging
import re
from dataclasses import dataclass, field, fields
from typing import Any, Dict, Generic, Mapping, Optional, Tuple, TypeVar, Union

from fastapi import Request
from pydantic import ValidationError

from .errors import ApiError, create_validation_error


logger = logging.getLogger(__name__)

T = TypeVar("T")

RECIPE_SORT_FIELDS = ("created_at", "updated_at", "title")
VARIANT_SORT_FIELDS = ("created_at",)
ORDER_VALUES = ("asc", "desc")

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 20
MAX_LIMIT = 100
MAX_SEARCH_LENGTH = 200
MAX_TITLE_LENGTH = 200
MAX_CONTENT_LENGTH = 50000

_INTEGER_RE = re.compile(r"^[+-]?\d+$", re.ASCII)


class _Unset:
    """Marker for payload fields the caller did not send."""

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET: Any = _Unset()


@dataclass(frozen=True)
class ValidationSuccess(Generic[T]):
    data: T
    success: bool = field(default=True, init=False)


@dataclass(frozen=True)
class ValidationFailure:
    error: ApiError
    success: bool = field(default=False, init=False)

    @property
    def details(self) -> Dict[str, Any]:
        return self.error.details or {}


ValidationResult = Union[ValidationSuccess[T], ValidationFailure]


@dataclass(frozen=True)
class RecipeListParams:
    page: int = DEFAULT_PAGE
    limit: int = DEFAULT_LIMIT
    sort: str = "created_at"
    order: str = "desc"
    search: str = ""

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


@dataclass(frozen=True)
class VariantListParams:
    page: int = DEFAULT_PAGE
    limit: int = DEFAULT_LIMIT
    sort: str = "created_at"
    order: str = "desc"

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


@dataclass(frozen=True)
class RecipeData:
    """Normalized recipe payload. Fields left as ``UNSET`` were not supplied."""

    title: Any = UNSET
    content: Any = UNSET
    content_json: Any = UNSET
    is_public: Any = UNSET

    def as_record(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self) if getattr(self, f.name) is not UNSET}


def _parse_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if not isinstance(value, str) or not _INTEGER_RE.match(value.strip()):
        return None
    return int(value.strip())


def _one_of(allowed: Tuple[str, ...]) -> str:
    return f"must be one of: {', '.join(allowed)}"


def _validate_pagination(params: Mapping[str, Any], sort_fields: Tuple[str, ...], errors: Dict[str, str]) -> Dict[str, Any]:
    normalized: Dict[str, Any] = {}

    raw_page = params.get("page")
    if raw_page is not None:
        page = _parse_int(raw_page)
        if page is None or page < 1:
            errors["page"] = "must be a positive integer"
        else:
            normalized["page"] = page

    raw_limit = params.get("limit")
    if raw_limit is not None:
        limit = _parse_int(raw_limit)
        if limit is None or limit < 1 or limit > MAX_LIMIT:
            errors["limit"] = f"must be between 1 and {MAX_LIMIT}"
        else:
            normalized["limit"] = limit

    sort = params.get("sort")
    if sort is not None:
        if sort not in sort_fields:
            errors["sort"] = _one_of(sort_fields)
        else:
            normalized["sort"] = sort

    order = params.get("order")
    if order is not None:
        if order not in ORDER_VALUES:
            errors["order"] = _one_of(ORDER_VALUES)
        else:
            normalized["order"] = order

    return normalized


def validate_recipe_list_query_params(params: Mapping[str, Any]) -> ValidationResult[RecipeListParams]:
    """Validate and normalize the query string of ``GET /api/recipes``.

    Absent fields take their defaults; every invalid field is reported.
    """
    errors: Dict[str, str] = {}
    normalized = _validate_pagination(params, RECIPE_SORT_FIELDS, errors)

    search = params.get("search")
    if search is not None and search != "":
        if not isinstance(search, str):
            errors["search"] = "must be a string"
        else:
            search = search.strip()
            if len(search) > MAX_SEARCH_LENGTH:
                errors["search"] = f"must be at most {MAX_SEARCH_LENGTH} characters"
            else:
                normalized["search"] = search

    if errors:
        return ValidationFailure(create_validation_error("Invalid query parameters", errors))
    return ValidationSuccess(RecipeListParams(**normalized))


def validate_recipe_variant_list_query_params(params: Mapping[str, Any]) -> ValidationResult[VariantListParams]:
    errors: Dict[str, str] = {}
    normalized = _validate_pagination(params, VARIANT_SORT_FIELDS, errors)

    if errors:
        return ValidationFailure(create_validation_error("Invalid query parameters", errors))
    return ValidationSuccess(VariantListParams(**normalized))


def validate_recipe_data(data: Any, is_create: bool) -> ValidationResult[RecipeData]:
    """Validate a recipe create (``is_create=True``) or update payload.

    On create the title is mandatory and one of ``content`` / ``content_json``
    must carry a value. On update every field is optional and absent fields
    stay ``UNSET`` so they are not written.
    """
    if not isinstance(data, Mapping):
        return ValidationFailure(create_validation_error("Invalid request body", {"body": "must be a JSON object"}))

    errors: Dict[str, str] = {}
    normalized: Dict[str, Any] = {}

    if "title" in data:
        title = data["title"]
        if not isinstance(title, str):
            errors["title"] = "must be a string"
        else:
            title = title.strip()
            if not title:
                errors["title"] = "cannot be empty"
            elif len(title) > MAX_TITLE_LENGTH:
                errors["title"] = f"must be at most {MAX_TITLE_LENGTH} characters"
            else:
                normalized["title"] = title
    elif is_create:
        errors["title"] = "is required"

    if "content" in data:
        content = data["content"]
        if content is None:
            normalized["content"] = None
        elif not isinstance(content, str):
            errors["content"] = "must be a string"
        else:
            content = content.strip()
            if len(content) > MAX_CONTENT_LENGTH:
                errors["content"] = f"must be at most {MAX_CONTENT_LENGTH} characters"
            else:
                normalized["content"] = content or None

    if "content_json" in data:
        content_json = data["content_json"]
        if content_json is not None and not isinstance(content_json, dict):
            errors["content_json"] = "must be a valid JSON object"
        else:
            normalized["content_json"] = content_json

    if "is_public" in data:
        is_public = data["is_public"]
        if not isinstance(is_public, bool):
            errors["is_public"] = "must be a boolean"
        else:
            normalized["is_public"] = is_public
    elif is_create:
        normalized["is_public"] = False

    if is_create and "content" not in errors and "content_json" not in errors:
        if normalized.get("content") is None and normalized.get("content_json") is None:
            errors["content"] = "either content or content_json is required"

    if errors:
        return ValidationFailure(create_validation_error("Invalid request body", errors))

    if is_create:
        normalized.setdefault("content", None)
        normalized.setdefault("content_json", None)
    return ValidationSuccess(RecipeData(**normalized))


def format_validation_errors(exc: ValidationError) -> Dict[str, str]:
    """Flatten pydantic errors to ``{field: message}``, first message per field."""
    details: Dict[str, str] = {}
    for err in exc.errors():
        loc = ".".join(str(part) for part in err.get("loc", ())) or "body"
        message = err.get("msg", "is invalid")
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        details.setdefault(loc, message)
    return details


def validation_failure_from(exc: ValidationError, message: str = "Invalid request data") -> ValidationFailure:
    return ValidationFailure(create_validation_error(message, format_validation_errors(exc)))


async def parse_json_body(request: Request, error_message: str = "Invalid JSON in request body") -> Any:
    raw = await request.body()
    try:
        return json.loads(raw)
    except (ValueError, UnicodeDecodeError):
        logger.info(f"Rejected malformed JSON body on {request.method} {request.url.path}")
        raise create_validation_error(error_message)


async def parse_optional_json_body(request: Request, malformed_message: Optional[str] = None) -> Dict[str, Any]:
    """Decode a JSON object body if one was sent; anything else reads as ``{}``.

    With ``malformed_message`` a JSON body that fails to decode is rejected
    instead of ignored.
    """
    if "application/json" not in request.headers.get("content-type", ""):
        return {}
    raw = await request.body()
    try:
        body = json.loads(raw)
    except (ValueError, UnicodeDecodeError):
        if malformed_message:
            raise create_validation_error(malformed_message)
        logger.info(f"Ignoring malformed JSON body on {request.method} {request.url.path}")
        return {}
    return body if isinstance(body, dict) else {}
