import json
import logging
import math
import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from supabase import Client

from ..core.errors import create_internal_error, create_not_found_error
from ..core.validation import RecipeListParams, VariantListParams


logger = logging.getLogger(__name__)

RECIPES_TABLE = 'recipes'
VARIANTS_TABLE = 'recipe_variants'

_RECIPE_PRIVATE_FIELDS = ('content_tsv', 'deleted_at', 'user_id')
_VARIANT_PRIVATE_FIELDS = ('deleted_at',)

# Characters with meaning inside a PostgREST or() filter
_FILTER_RESERVED_RE = re.compile(r'[,()"\\]')


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def to_recipe_dto(row: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in row.items() if k not in _RECIPE_PRIVATE_FIELDS}


def to_variant_dto(row: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in row.items() if k not in _VARIANT_PRIVATE_FIELDS}


def build_pagination(page: int, limit: int, total: Optional[int]) -> Dict[str, int]:
    total = total or 0
    return {
        'page': page,
        'limit': limit,
        'total': total,
        'total_pages': math.ceil(total / limit) if limit else 0,
    }


def search_filter(search: str) -> str:
    term = _FILTER_RESERVED_RE.sub(' ', search.strip())
    return f'title.ilike.%{term}%,content.ilike.%{term}%'


class RecipeService:
    """Recipe and recipe-variant persistence for one authenticated user.

    Rows are soft-deleted: every read filters ``deleted_at is null`` and every
    delete stamps ``deleted_at`` instead of removing the row.
    """

    def __init__(self, supabase: Client, user_id: str):
        self.supabase = supabase
        self.user_id = user_id

    def list_recipes(self, params: RecipeListParams) -> Dict[str, Any]:
        try:
            query = (
                self.supabase
                .table(RECIPES_TABLE)
                .select('*', count='exact')
                .eq('user_id', self.user_id)
                .is_('deleted_at', 'null')
            )
            if params.search:
                query = query.or_(search_filter(params.search))
            result = (
                query
                .order(params.sort, desc=params.order == 'desc')
                .range(params.offset, params.offset + params.limit - 1)
                .execute()
            )
        except Exception as e:
            logger.error(f"Failed to list recipes for user {self.user_id}: {e}")
            raise create_internal_error('Failed to fetch recipes')

        return {
            'data': [to_recipe_dto(row) for row in (result.data or [])],
            'pagination': build_pagination(params.page, params.limit, result.count),
        }

    def get_recipe(self, recipe_id: str) -> Optional[Dict[str, Any]]:
        try:
            result = (
                self.supabase
                .table(RECIPES_TABLE)
                .select('*')
                .eq('id', recipe_id)
                .eq('user_id', self.user_id)
                .is_('deleted_at', 'null')
                .limit(1)
                .execute()
            )
        except Exception as e:
            logger.error(f"Failed to fetch recipe {recipe_id}: {e}")
            raise create_internal_error('Failed to fetch recipe')

        return result.data[0] if result.data else None

    def require_recipe(self, recipe_id: str) -> Dict[str, Any]:
        recipe = self.get_recipe(recipe_id)
        if not recipe:
            raise create_not_found_error('Recipe not found')
        return recipe

    def create_recipe(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        record = {**payload, 'user_id': self.user_id}
        try:
            result = self.supabase.table(RECIPES_TABLE).insert(record).execute()
        except Exception as e:
            logger.error(f"Failed to create recipe for user {self.user_id}: {e}")
            raise create_internal_error('Failed to create recipe')

        if not result.data:
            logger.error(f"Recipe insert for user {self.user_id} returned no row")
            raise create_internal_error('Failed to create recipe')
        return result.data[0]

    def update_recipe(self, recipe_id: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        record = {**payload, 'updated_at': _now()}
        try:
            result = (
                self.supabase
                .table(RECIPES_TABLE)
                .update(record)
                .eq('id', recipe_id)
                .eq('user_id', self.user_id)
                .is_('deleted_at', 'null')
                .execute()
            )
        except Exception as e:
            logger.error(f"Failed to update recipe {recipe_id}: {e}")
            raise create_internal_error('Failed to update recipe')

        if not result.data:
            raise create_not_found_error('Recipe not found')
        return result.data[0]

    def delete_recipe(self, recipe_id: str) -> None:
        try:
            (
                self.supabase
                .table(RECIPES_TABLE)
                .update({'deleted_at': _now()})
                .eq('id', recipe_id)
                .eq('user_id', self.user_id)
                .execute()
            )
        except Exception as e:
            logger.error(f"Failed to delete recipe {recipe_id}: {e}")
            raise create_internal_error('Failed to delete recipe')

    def list_recent_for_generation(self, limit: int) -> List[Dict[str, str]]:
        """Newest recipes as ``{title, content}`` pairs for prompt context."""
        listing = self.list_recipes(RecipeListParams(page=1, limit=limit))
        recipes = []
        for recipe in listing['data']:
            content = recipe.get('content')
            if not content:
                content = json.dumps(recipe.get('content_json') or {})
            recipes.append({'title': recipe.get('title') or '', 'content': content})
        return recipes

    def list_recipe_variants(self, recipe_id: str, params: VariantListParams) -> Dict[str, Any]:
        try:
            result = (
                self.supabase
                .table(VARIANTS_TABLE)
                .select('*', count='exact')
                .eq('recipe_id', recipe_id)
                .is_('deleted_at', 'null')
                .order(params.sort, desc=params.order == 'desc')
                .range(params.offset, params.offset + params.limit - 1)
                .execute()
            )
        except Exception as e:
            logger.error(f"Failed to list variants for recipe {recipe_id}: {e}")
            raise create_internal_error('Failed to fetch recipe variants')

        return {
            'data': [to_variant_dto(row) for row in (result.data or [])],
            'pagination': build_pagination(params.page, params.limit, result.count),
        }

    def get_recipe_variant(self, recipe_id: str, variant_id: str) -> Optional[Dict[str, Any]]:
        try:
            result = (
                self.supabase
                .table(VARIANTS_TABLE)
                .select('*')
                .eq('id', variant_id)
                .eq('recipe_id', recipe_id)
                .is_('deleted_at', 'null')
                .limit(1)
                .execute()
            )
        except Exception as e:
            logger.error(f"Failed to fetch variant {variant_id} of recipe {recipe_id}: {e}")
            raise create_internal_error('Failed to fetch recipe variant')

        return result.data[0] if result.data else None

    def create_recipe_variant(self, recipe_id: str, record: Dict[str, Any]) -> Dict[str, Any]:
        insert = {**record, 'recipe_id': recipe_id, 'created_by': self.user_id}
        try:
            result = self.supabase.table(VARIANTS_TABLE).insert(insert).execute()
        except Exception as e:
            logger.error(f"Failed to save variant for recipe {recipe_id}: {e}")
            raise create_internal_error('Failed to save recipe variant')

        if not result.data:
            raise create_internal_error('Failed to save recipe variant')
        return result.data[0]

    def delete_recipe_variant(self, recipe_id: str, variant_id: str) -> None:
        try:
            result = (
                self.supabase
                .table(VARIANTS_TABLE)
                .update({'deleted_at': _now()})
                .eq('id', variant_id)
                .eq('recipe_id', recipe_id)
                .is_('deleted_at', 'null')
                .execute()
            )
        except Exception as e:
            logger.error(f"Failed to delete variant {variant_id} of recipe {recipe_id}: {e}")
            raise create_internal_error('Failed to delete recipe variant')

        if not result.data:
            raise create_not_found_error('Variant not found or already deleted')
