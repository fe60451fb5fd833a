import asyncio
import json
import logging
import time
from typing import Any, Awaitable, Callable, Dict, List, Optional

import httpx

from ..core.config import Config
from ..core.errors import (
    ApiError,
    create_internal_error,
    create_unauthorized_error,
    create_validation_error,
)
from .prompts import (
    PREFERENCES_HEADER,
    RECIPE_SCHEMA,
    RECIPE_SCHEMA_NAME,
    build_system_message,
    build_user_message,
    recipes_context,
)


logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://openrouter.ai/api/v1"
APP_TITLE = "AI Healthy Meal"

VALID_ROLES = ("system", "user", "assistant")
DEFAULT_TEMPERATURE = 1
REQUEST_TIMEOUT_SECONDS = 30
MAX_RETRIES = 3
BASE_RETRY_DELAY_SECONDS = 1

# Recipe generation defaults shared by every generation endpoint
GENERATION_TEMPERATURE = 0.8
GENERATION_MAX_TOKENS = 2000

Sleep = Callable[[float], Awaitable[Any]]


def validate_messages(messages: List[Dict[str, Any]]) -> None:
    if not messages:
        raise create_validation_error("Messages array cannot be empty")

    for i, message in enumerate(messages):
        role = message.get("role")
        if role not in VALID_ROLES:
            raise create_validation_error(
                f"Invalid message role at index {i}. Must be one of: {', '.join(VALID_ROLES)}"
            )
        content = message.get("content")
        if not isinstance(content, str) or not content.strip():
            raise create_validation_error(f"Message at index {i} must have non-empty content string")
        if role == "system" and i != 0:
            raise create_validation_error("System message must be the first message in the array")

    if messages[-1].get("role") != "user":
        raise create_validation_error("Last message must be from user role")


def build_request_payload(
    model: str,
    messages: List[Dict[str, Any]],
    *,
    temperature: Optional[float] = None,
    max_tokens: Optional[int] = None,
    top_p: Optional[float] = None,
    frequency_penalty: Optional[float] = None,
    presence_penalty: Optional[float] = None,
    stop: Optional[List[str]] = None,
    stream: Optional[bool] = None,
    response_format: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """Build the JSON body for ``POST /chat/completions``.

    Optional parameters left as ``None`` are omitted, except temperature which
    falls back to the service default.
    """
    if not model or not model.strip():
        raise create_validation_error("Model name is required")
    validate_messages(messages)

    payload: Dict[str, Any] = {"model": model, "messages": messages}
    if response_format:
        schema = response_format["json_schema"]
        payload["response_format"] = {
            "type": "json_schema",
            "json_schema": {
                "name": schema["name"],
                "strict": schema.get("strict"),
                "schema": schema["schema"],
            },
        }
    payload["temperature"] = temperature if temperature is not None else DEFAULT_TEMPERATURE

    optional = {
        "max_tokens": max_tokens,
        "top_p": top_p,
        "frequency_penalty": frequency_penalty,
        "presence_penalty": presence_penalty,
        "stream": stream,
    }
    payload.update({key: value for key, value in optional.items() if value is not None})
    if stop:
        payload["stop"] = stop
    return payload


def error_from_response(status: int, body: Any) -> ApiError:
    """Map an OpenRouter error response onto the API error taxonomy."""
    message = "OpenRouter API error"
    details: Optional[Dict[str, Any]] = None

    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict):
            if isinstance(error.get("message"), str):
                message = error["message"]
            if "code" in error:
                details = {"apiErrorCode": error["code"]}
            if "type" in error:
                details = {**(details or {}), "errorType": error["type"]}
        elif isinstance(body.get("message"), str):
            message = body["message"]
        if isinstance(error, str):
            message = error

    if status == 401:
        return create_unauthorized_error("Invalid OpenRouter API key")
    if status == 402:
        return create_internal_error("OpenRouter account has insufficient funds")
    if status == 400:
        return create_validation_error(message, details)
    if status == 429:
        return create_internal_error("Rate limit exceeded. Please try again later.")
    if status >= 500:
        return create_internal_error("OpenRouter API server error")
    return create_internal_error(message)


def _error_body(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return {"message": response.text or response.reason_phrase}


def parse_completion(data: Any, expects_json: bool) -> Dict[str, Any]:
    """Check the completion structure and normalize it.

    With ``expects_json`` each choice's message content is decoded from JSON.
    """
    if not isinstance(data, dict) or not all(key in data for key in ("id", "model", "choices", "usage")):
        logger.error(f"Invalid response structure from OpenRouter: {data!r}")
        raise create_internal_error("Invalid response structure from OpenRouter API")

    raw_choices = data["choices"]
    if not isinstance(raw_choices, list) or not raw_choices:
        raise create_internal_error("Response contains no choices")

    choices = []
    for i, choice in enumerate(raw_choices):
        if not isinstance(choice, dict) or "index" not in choice or "message" not in choice:
            raise create_internal_error(f"Invalid choice structure at index {i}")
        message = choice["message"]
        if not isinstance(message, dict) or "role" not in message or "content" not in message:
            raise create_internal_error(f"Invalid message structure in choice at index {i}")

        content = message["content"]
        if expects_json:
            try:
                content = json.loads(content)
            except (TypeError, ValueError) as e:
                logger.error(f"Failed to parse JSON content from OpenRouter response: {e}")
                raise create_internal_error("Failed to parse JSON response content")

        choices.append({
            "index": choice["index"],
            "message": {"role": message["role"], "content": content},
            "finish_reason": choice.get("finish_reason") or None,
        })

    usage = data["usage"]
    if not isinstance(usage, dict) or not all(
        key in usage for key in ("prompt_tokens", "completion_tokens", "total_tokens")
    ):
        raise create_internal_error("Invalid usage statistics in response")

    return {
        "id": data["id"],
        "model": data["model"],
        "choices": choices,
        "usage": {
            "prompt_tokens": usage["prompt_tokens"],
            "completion_tokens": usage["completion_tokens"],
            "total_tokens": usage["total_tokens"],
        },
        "created": data.get("created") or int(time.time()),
    }


class OpenRouterService:
    """Chat completions against the OpenRouter API.

    Pass ``http_client`` to reuse a connection pool (or a mock transport in
    tests); otherwise a short-lived ``httpx.AsyncClient`` is opened per call.
    """

    def __init__(
        self,
        api_key: Optional[str],
        base_url: str = DEFAULT_BASE_URL,
        *,
        http_client: Optional[httpx.AsyncClient] = None,
        referer: str = "",
        sleep: Sleep = asyncio.sleep,
    ):
        if not api_key or not api_key.strip():
            raise create_unauthorized_error("OpenRouter API key is required")
        self.base_url = base_url.rstrip("/")
        self.headers = {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
            "HTTP-Referer": referer,
            "X-Title": APP_TITLE,
        }
        self._http_client = http_client
        self._sleep = sleep

    async def _request(self, method: str, path: str, payload: Optional[Dict[str, Any]] = None) -> httpx.Response:
        url = f"{self.base_url}{path}"
        if self._http_client is not None:
            return await self._http_client.request(
                method, url, headers=self.headers, json=payload, timeout=REQUEST_TIMEOUT_SECONDS
            )
        async with httpx.AsyncClient(timeout=REQUEST_TIMEOUT_SECONDS) as client:
            return await client.request(method, url, headers=self.headers, json=payload)

    async def _send_with_retries(self, payload: Dict[str, Any]) -> httpx.Response:
        for attempt in range(MAX_RETRIES + 1):
            delay = BASE_RETRY_DELAY_SECONDS * 2 ** attempt
            try:
                response = await self._request("POST", "/chat/completions", payload)
            except httpx.TimeoutException:
                raise create_internal_error(f"Request timeout after {REQUEST_TIMEOUT_SECONDS} seconds")
            except httpx.TransportError as e:
                if attempt < MAX_RETRIES:
                    logger.warning(f"OpenRouter network error (attempt {attempt + 1}): {e}; retrying in {delay}s")
                    await self._sleep(delay)
                    continue
                raise create_internal_error(f"Network error: {e}")

            if response.status_code == 429 and attempt < MAX_RETRIES:
                logger.warning(f"OpenRouter rate limited (attempt {attempt + 1}); retrying in {delay}s")
                await self._sleep(delay)
                continue
            return response

        raise create_internal_error("Request failed after all retries")

    async def chat_completion(
        self,
        model: str,
        messages: List[Dict[str, Any]],
        **options: Any,
    ) -> Dict[str, Any]:
        """Run one chat completion and return the normalized response.

        ``options`` are the optional payload fields accepted by
        ``build_request_payload`` (temperature, max_tokens, response_format, ...).
        """
        try:
            payload = build_request_payload(model, messages, **options)
            response = await self._send_with_retries(payload)

            if not response.is_success:
                body = _error_body(response)
                logger.error(f"OpenRouter API error {response.status_code}: {body!r}")
                raise error_from_response(response.status_code, body)

            try:
                data = response.json()
            except ValueError as e:
                logger.error(f"Failed to parse OpenRouter JSON response: {e}")
                raise create_internal_error("Invalid JSON response from OpenRouter API")

            return parse_completion(data, expects_json=bool(options.get("response_format")))
        except ApiError:
            raise
        except Exception as e:
            logger.error(f"Unexpected error in OpenRouter chat completion: {e}", exc_info=True)
            raise create_internal_error("Failed to complete chat request")

    async def chat_completion_with_schema(
        self,
        model: str,
        messages: List[Dict[str, Any]],
        schema: Dict[str, Any],
        schema_name: str,
        strict: bool = True,
        **options: Any,
    ) -> Dict[str, Any]:
        response_format = {
            "type": "json_schema",
            "json_schema": {"name": schema_name, "strict": strict, "schema": schema},
        }
        return await self.chat_completion(model, messages, response_format=response_format, **options)

    async def list_models(self) -> Dict[str, Any]:
        try:
            response = await self._request("GET", "/models")
            if not response.is_success:
                raise error_from_response(response.status_code, _error_body(response))

            data = response.json()
            if not isinstance(data, dict) or not isinstance(data.get("data"), list):
                raise create_internal_error("Invalid model list response structure")
            return data
        except ApiError:
            raise
        except Exception as e:
            logger.error(f"Unexpected error listing OpenRouter models: {e}")
            raise create_internal_error("Failed to retrieve model list")

    async def generate_recipe_from_existing(
        self,
        existing_recipes: List[Dict[str, str]],
        model: Optional[str] = None,
        custom_prompt: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> Dict[str, Any]:
        """Generate a new recipe inspired by ``existing_recipes``.

        With no existing recipes the custom prompt must carry a user
        preferences block, which then drives generation on its own.
        """
        has_preferences = bool(custom_prompt) and PREFERENCES_HEADER in custom_prompt
        if not existing_recipes and not has_preferences:
            raise create_validation_error(
                "At least one existing recipe is required for generation, or provide dietary preferences"
            )

        context = recipes_context(existing_recipes)
        messages = [
            {"role": "system", "content": build_system_message(context is not None)},
            {"role": "user", "content": build_user_message(context, custom_prompt)},
        ]
        return await self.chat_completion_with_schema(
            model or Config.OPENROUTER_DEFAULT_MODEL,
            messages,
            RECIPE_SCHEMA,
            RECIPE_SCHEMA_NAME,
            strict=False,
            temperature=temperature if temperature is not None else GENERATION_TEMPERATURE,
            max_tokens=max_tokens if max_tokens is not None else GENERATION_MAX_TOKENS,
        )


def generated_recipe_from(completion: Dict[str, Any]) -> Dict[str, Any]:
    """Pull the structured recipe out of a schema-constrained completion."""
    recipe = completion["choices"][0]["message"]["content"]
    if not isinstance(recipe, dict) or "title" not in recipe:
        logger.error(f"Unexpected recipe payload from model: {recipe!r}")
        raise create_internal_error("Invalid recipe format received from AI")
    return recipe
