from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

import requests

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 15.0


class ApiError(RuntimeError):
    """Raised when a call to the attendance API does not produce a usable response."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        payload: Optional[Mapping[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.payload = dict(payload or {})


class ApiTransportError(ApiError):
    """Raised when the request never got an HTTP answer (timeout, refused, DNS)."""


class ApiResponseError(ApiError):
    """Raised when the API answered with a non-2xx status or an unreadable body."""


class AuthenticationRequired(ApiResponseError):
    """Raised on HTTP 401; the caller should route the user to login."""


def error_message_from(payload: Mapping[str, Any], fallback: str) -> str:
    for key in ("error", "message", "msg"):
        value = payload.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return fallback


class JsonApi:
    """Thin JSON-over-HTTP helper shared by the API clients.

    Every request carries ``timeout`` so a stalled backend can never hold a
    caller forever.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        session: requests.Session | None = None,
    ) -> None:
        if timeout <= 0:
            raise ValueError("timeout must be positive")
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._session = session or requests.Session()

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def timeout(self) -> float:
        return self._timeout

    def close(self) -> None:
        self._session.close()

    def request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> Any:
        url = f"{self._base_url}/{path.lstrip('/')}"
        logger.debug("%s %s", method, url)
        try:
            response = self._session.request(
                method,
                url,
                json=json,
                headers=dict(headers or {}),
                timeout=self._timeout,
            )
        except requests.Timeout as exc:
            raise ApiTransportError(f"{method} {url} timed out after {self._timeout:g}s") from exc
        except requests.RequestException as exc:
            raise ApiTransportError(f"{method} {url} failed: {exc}") from exc

        payload = self._decode(response)

        if response.status_code == 401:
            raise AuthenticationRequired(
                error_message_from(payload, "Authentication required."),
                status_code=401,
                payload=payload,
            )
        if not 200 <= response.status_code < 300:
            logger.info("%s %s -> HTTP %s", method, url, response.status_code)
            raise ApiResponseError(
                error_message_from(payload, f"HTTP {response.status_code} from {url}"),
                status_code=response.status_code,
                payload=payload,
            )
        return payload

    @staticmethod
    def _decode(response: requests.Response) -> dict[str, Any]:
        if not response.content:
            return {}
        try:
            decoded = response.json()
        except ValueError:
            if 200 <= response.status_code < 300:
                raise ApiResponseError(
                    "API returned a body that is not JSON.",
                    status_code=response.status_code,
                ) from None
            return {"error": response.text}
        if isinstance(decoded, dict):
            return decoded
        return {"data": decoded}
