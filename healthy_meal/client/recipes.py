from typing import Any, Dict, List, Optional
from urllib.parse import urlencode

import httpx

from ..core.http import ApiErrorOptions, FetchOptions, Navigate, fetch_api


RECIPES_URL = "/api/recipes"


class RecipesClient:
    """Recipe endpoints as awaitable calls.

    ``http_client`` should carry the API ``base_url`` and the session cookies.
    """

    def __init__(self, http_client: httpx.AsyncClient, navigate: Optional[Navigate] = None):
        self.http_client = http_client
        self.navigate = navigate

    async def _fetch(self, url: str, options: FetchOptions, errors: ApiErrorOptions) -> Any:
        return await fetch_api(self.http_client, url, options, errors, navigate=self.navigate)

    async def list_recipes(
        self,
        page: Optional[int] = None,
        limit: Optional[int] = None,
        search: Optional[str] = None,
        sort: Optional[str] = None,
        order: Optional[str] = None,
    ) -> Dict[str, Any]:
        # Empty values are left out of the query string
        query = {"page": page, "limit": limit, "search": search, "sort": sort, "order": order}
        query_string = urlencode({key: value for key, value in query.items() if value})
        return await self._fetch(
            f"{RECIPES_URL}?{query_string}",
            FetchOptions(method="GET"),
            ApiErrorOptions("Failed to fetch recipes"),
        )

    async def get_recipe(self, recipe_id: str) -> Dict[str, Any]:
        return await self._fetch(
            f"{RECIPES_URL}/{recipe_id}",
            FetchOptions(method="GET"),
            ApiErrorOptions("Failed to fetch recipe", not_found_message="Recipe not found"),
        )

    async def create_recipe(self, data: Dict[str, Any]) -> Dict[str, Any]:
        return await self._fetch(
            RECIPES_URL,
            FetchOptions(method="POST", body=data),
            ApiErrorOptions("Failed to create recipe"),
        )

    async def update_recipe(self, recipe_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        return await self._fetch(
            f"{RECIPES_URL}/{recipe_id}",
            FetchOptions(method="PUT", body=data),
            ApiErrorOptions("Failed to update recipe", not_found_message="Recipe not found"),
        )

    async def delete_recipe(self, recipe_id: str) -> None:
        await self._fetch(
            f"{RECIPES_URL}/{recipe_id}",
            FetchOptions(method="DELETE"),
            ApiErrorOptions("Failed to delete recipe", not_found_message="Recipe not found"),
        )

    async def ai_generate_recipe(
        self,
        model: Optional[str] = None,
        custom_prompt: Optional[str] = None,
        temperature: Optional[float] = None,
        max_recipes: Optional[int] = None,
        diets: Optional[List[str]] = None,
    ) -> Dict[str, Any]:
        options = {
            "model": model,
            "customPrompt": custom_prompt,
            "temperature": temperature,
            "maxRecipes": max_recipes,
            "diets": diets,
        }
        return await self._fetch(
            f"{RECIPES_URL}/ai-generation",
            FetchOptions(method="POST", body={key: value for key, value in options.items() if value is not None}),
            ApiErrorOptions("Failed to generate recipe. Please try again."),
        )
