import logging
from typing import Any, Callable, Optional

import httpx

from equiptrak.core.config import settings

logger = logging.getLogger("equiptrak.client")


class ApiError(RuntimeError):
    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class TransportError(ApiError):
    pass


class HttpStatusError(ApiError):
    def __init__(self, message: str, status_code: int, payload: Any = None):
        super().__init__(message, status_code=status_code)
        self.payload = payload


class MissingParameterError(ApiError):
    pass


class ResponseFormatError(ApiError):
    pass


def clean_params(params: dict[str, Any] | None) -> dict[str, Any]:
    """Drops absent filters so they never reach the query string."""
    if not params:
        return {}
    return {key: value for key, value in params.items() if value is not None and value != ""}


def _parse_body(res: httpx.Response) -> Any:
    content_type = res.headers.get("content-type", "")
    if "application/json" in content_type:
        try:
            return res.json()
        except ValueError:
            return {"error": "Invalid JSON response"}
    return res.text


def _extract_error_message(payload: Any) -> str:
    if isinstance(payload, dict):
        message = payload.get("error") or payload.get("detail")
        if isinstance(message, str) and message:
            return message
    return "Request failed"


class ApiClient:
    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        token_provider: Callable[[], Optional[str]] | None = None,
        on_unauthorized: Callable[[], None] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url or settings.API_BASE_URL
        self.timeout = timeout if timeout is not None else settings.API_TIMEOUT_SECONDS
        self._token_provider = token_provider
        self._on_unauthorized = on_unauthorized
        self._client = httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout, transport=transport)

    async def __aenter__(self) -> "ApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    def _headers(self, auth: bool) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        token = self._token_provider() if auth and self._token_provider else None
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    async def request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        json: Any = None,
        auth: bool = True,
    ) -> Any:
        query = clean_params(params)
        logger.debug("API request: %s %s params=%s", method, path, query)
        try:
            res = await self._client.request(
                method,
                path,
                params=query or None,
                json=json,
                headers=self._headers(auth),
            )
        except httpx.TimeoutException as exc:
            logger.warning("API request timed out: %s %s", method, path)
            raise TransportError("Request timed out") from exc
        except httpx.RequestError as exc:
            logger.warning("API request failed: %s %s: %s", method, path, exc)
            raise TransportError(str(exc) or "Network error") from exc

        payload = _parse_body(res)
        logger.debug("API response: %s %s -> %s", method, path, res.status_code)
        if res.status_code == 401 and self._on_unauthorized:
            self._on_unauthorized()
        if res.status_code >= 400:
            raise HttpStatusError(_extract_error_message(payload), status_code=res.status_code, payload=payload)
        return payload

    async def get(self, path: str, params: dict[str, Any] | None = None, **kwargs) -> Any:
        return await self.request("GET", path, params=params, **kwargs)

    async def post(self, path: str, json: Any = None, params: dict[str, Any] | None = None, **kwargs) -> Any:
        return await self.request("POST", path, params=params, json=json, **kwargs)

    async def put(self, path: str, json: Any = None, params: dict[str, Any] | None = None, **kwargs) -> Any:
        return await self.request("PUT", path, params=params, json=json, **kwargs)

    async def delete(self, path: str, params: dict[str, Any] | None = None, **kwargs) -> Any:
        return await self.request("DELETE", path, params=params, **kwargs)

    async def test_connection(self) -> bool:
        try:
            await self.get("/api/test", auth=False)
        except HttpStatusError as exc:
            return exc.status_code == 404
        except TransportError:
            return False
        return True
