"""Outbound calls to the Healthy Meal API.

``fetch_api`` is the single place where HTTP status codes are turned into
return values or errors, so callers never branch on status themselves.
"""
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional

import httpx


logger = logging.getLogger(__name__)

SIGN_IN_PATH = "/sign-in"
AUTH_REQUIRED_MESSAGE = "Authentication required"

Navigate = Callable[[str], None]


class ApiRequestError(Exception):
    """A non-2xx response, carrying the message callers should show."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class AuthenticationRequiredError(ApiRequestError):
    def __init__(self, status_code: Optional[int] = None):
        super().__init__(AUTH_REQUIRED_MESSAGE, status_code)


@dataclass
class FetchOptions:
    method: str = "GET"
    body: Any = None
    headers: Dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class ApiErrorOptions:
    default_message: str
    not_found_message: Optional[str] = None


@dataclass
class LocationTracker:
    """Records where the client was asked to navigate."""

    href: str = ""

    def assign(self, url: str) -> None:
        self.href = url


def _server_error_message(response: httpx.Response) -> Optional[str]:
    try:
        payload = response.json()
    except (ValueError, UnicodeDecodeError):
        return None
    if not isinstance(payload, dict):
        return None
    error = payload.get("error")
    if isinstance(error, dict) and isinstance(error.get("message"), str) and error["message"]:
        return error["message"]
    return None


def _decode_success(response: httpx.Response) -> Any:
    if response.status_code == 204 or not response.content:
        return None
    try:
        return response.json()
    except (ValueError, UnicodeDecodeError):
        logger.warning(f"Undecodable {response.status_code} body from {response.request.method} {response.request.url}")
        return None


async def fetch_api(
    client: httpx.AsyncClient,
    url: str,
    options: Optional[FetchOptions] = None,
    error_options: ApiErrorOptions = ApiErrorOptions("Request failed"),
    navigate: Optional[Navigate] = None,
) -> Any:
    """Send one request and normalize the outcome.

    - 204 or an empty body resolves to ``None``; so does a 2xx body that is not JSON.
    - 401/403 calls ``navigate(SIGN_IN_PATH)`` and raises ``AuthenticationRequiredError``.
    - 404 raises with ``not_found_message``, else the server message, else the default.
    - Any other failure raises with the server message, else the reason phrase,
      else the default.
    - Transport errors from ``httpx`` propagate unchanged.

    Credentials are the client's cookie jar, which httpx sends with every request.
    """
    options = options or FetchOptions()

    headers = httpx.Headers({"Content-Type": "application/json"})
    headers.update(options.headers or {})
    content = json.dumps(options.body) if options.body is not None else None

    response = await client.request(options.method, url, headers=headers, content=content)

    if response.is_success:
        return _decode_success(response)

    status = response.status_code
    if status in (401, 403):
        logger.info(f"{options.method} {url} returned {status}; redirecting to {SIGN_IN_PATH}")
        if navigate is not None:
            navigate(SIGN_IN_PATH)
        raise AuthenticationRequiredError(status)

    if status == 404:
        message = error_options.not_found_message or _server_error_message(response) or error_options.default_message
        raise ApiRequestError(message, status)

    message = _server_error_message(response) or response.reason_phrase or error_options.default_message
    raise ApiRequestError(message, status)
