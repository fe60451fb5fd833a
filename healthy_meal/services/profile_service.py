import logging
from typing import Any, Dict, List, Optional

from supabase import Client

from ..core.errors import create_internal_error


logger = logging.getLogger(__name__)

PROFILES_TABLE = 'user_profiles'

# Request attribute -> user_profiles column
_COLUMN_FOR_FIELD = {
    'display_name': 'display_name',
    'allergens': 'allergens',
    'disliked_ingredients': 'disliked_ingredients',
    'calorie_target': 'calorie_target',
}


def profile_diets(profile: Optional[Dict[str, Any]]) -> List[str]:
    """Diets live in ``extra.diets``; older profiles only have the single ``diet`` column."""
    if not profile:
        return []
    extra = profile.get('extra') or {}
    diets = list(extra.get('diets') or []) if isinstance(extra, dict) else []
    if not diets and profile.get('diet') and profile.get('diet') != 'none':
        diets = [profile['diet']]
    return diets


def to_profile_dto(profile: Dict[str, Any]) -> Dict[str, Any]:
    extra = profile.get('extra') or {}
    return {
        'displayName': profile.get('display_name'),
        'diets': list(extra.get('diets') or []) if isinstance(extra, dict) else [],
        'allergens': profile.get('allergens') or [],
        'dislikedIngredients': profile.get('disliked_ingredients') or [],
        'calorieTarget': profile.get('calorie_target'),
        'createdAt': profile.get('created_at'),
        'updatedAt': profile.get('updated_at'),
    }


class ProfileService:
    def __init__(self, supabase: Client, user_id: str):
        self.supabase = supabase
        self.user_id = user_id

    def get_profile(self) -> Optional[Dict[str, Any]]:
        try:
            result = (
                self.supabase
                .table(PROFILES_TABLE)
                .select('*')
                .eq('user_id', self.user_id)
                .limit(1)
                .execute()
            )
        except Exception as e:
            logger.error(f"Failed to fetch profile for user {self.user_id}: {e}")
            raise create_internal_error('Failed to fetch user profile')

        return result.data[0] if result.data else None

    def update_profile(self, changes: Dict[str, Any]) -> Dict[str, Any]:
        """Write only the supplied fields, creating the profile row on first save.

        ``changes`` is keyed by request attribute name; ``diets`` is merged into
        the existing ``extra`` JSON instead of replacing it.
        """
        existing = self.get_profile()

        update: Dict[str, Any] = {}
        for name, column in _COLUMN_FOR_FIELD.items():
            if name in changes:
                value = changes[name]
                if name in ('display_name', 'calorie_target'):
                    value = value or None
                update[column] = value
        if 'diets' in changes:
            current_extra = (existing or {}).get('extra') or {}
            update['extra'] = {**current_extra, 'diets': changes['diets'] or []}

        try:
            if existing:
                result = (
                    self.supabase
                    .table(PROFILES_TABLE)
                    .update(update)
                    .eq('user_id', self.user_id)
                    .execute()
                )
            else:
                result = self.supabase.table(PROFILES_TABLE).insert({'user_id': self.user_id, **update}).execute()
        except Exception as e:
            action = 'update' if existing else 'create'
            logger.error(f"Failed to {action} profile for user {self.user_id}: {e}")
            raise create_internal_error(f"Failed to {action} profile")

        if not result.data:
            raise create_internal_error('Failed to update profile')
        return result.data[0]
