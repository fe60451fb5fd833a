import json
from typing import Any, Dict, List, Optional
from urllib.parse import urlencode

import httpx

from ..core.http import ApiErrorOptions, FetchOptions, Navigate, fetch_api


AUTH_URL = "/api/auth"
AI_GENERATION_URL = "/api/recipes/ai-generation"
NEW_RECIPE_PAGE = "/recipes/new"


def new_recipe_url(recipe: Dict[str, Any]) -> str:
    """Link to the new-recipe form prefilled with a generated recipe."""
    params = {"generated": "true", "title": recipe.get("title") or ""}
    if recipe.get("description"):
        params["description"] = recipe["description"]
    if recipe.get("ingredients"):
        params["ingredients"] = json.dumps(recipe["ingredients"])
    if recipe.get("instructions"):
        params["instructions"] = json.dumps(recipe["instructions"])
    for key in ("prep_time", "cook_time", "servings"):
        if recipe.get(key):
            params[key] = str(recipe[key])
    return f"{NEW_RECIPE_PAGE}?{urlencode(params)}"


class ProfileClient:
    def __init__(self, http_client: httpx.AsyncClient, navigate: Optional[Navigate] = None):
        self.http_client = http_client
        self.navigate = navigate

    async def get_current_user(self) -> Dict[str, Any]:
        return await fetch_api(
            self.http_client,
            f"{AUTH_URL}/me",
            FetchOptions(method="GET"),
            ApiErrorOptions("Failed to fetch user profile"),
            navigate=self.navigate,
        )

    async def update_profile(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Send a partial profile update; keys use the API's camelCase names."""
        return await fetch_api(
            self.http_client,
            f"{AUTH_URL}/profile",
            FetchOptions(method="PATCH", body=data),
            ApiErrorOptions("Failed to update profile. Please try again."),
            navigate=self.navigate,
        )

    async def generate_recipe_from_diets(self, diets: List[str]) -> str:
        """Generate a recipe for ``diets`` and return the prefilled new-recipe URL."""
        if not diets:
            raise ValueError("Please select at least one dietary preference")

        recipe = await fetch_api(
            self.http_client,
            AI_GENERATION_URL,
            FetchOptions(method="POST", body={"diets": diets}),
            ApiErrorOptions("Failed to generate recipe. Please try again."),
            navigate=self.navigate,
        )
        return new_recipe_url(recipe or {})
