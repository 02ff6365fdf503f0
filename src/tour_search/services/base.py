"""Shared HTTP plumbing for the tours API clients."""
from __future__ import annotations

import logging
from contextlib import AbstractAsyncContextManager
from typing import Any, Dict, Optional, TypeVar

import httpx

from tour_search.config.settings import Settings
from tour_search.search.errors import ApiErrorPayload, HttpError, NetworkError

logger = logging.getLogger(__name__)

_ClientT = TypeVar("_ClientT", bound="ApiClient")


class ApiClient(AbstractAsyncContextManager):
    """Owns an ``httpx.AsyncClient`` and maps failures onto :mod:`tour_search.search.errors`."""

    def __init__(
        self,
        *,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        headers: Optional[Dict[str, str]] = None,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        settings = settings or Settings()
        default_headers = settings.http_headers()
        if headers:
            default_headers.update(headers)
        self._base_url = base_url or settings.api_base_url
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            timeout=timeout or settings.http_timeout_s,
            headers=default_headers,
            transport=transport,
        )

    @property
    def base_url(self) -> str:
        return self._base_url

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self: _ClientT) -> _ClientT:
        return self

    async def __aexit__(self, exc_type, exc, exc_tb) -> None:
        await self.aclose()

    async def _request_json(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
    ) -> Any:
        try:
            response = await self._client.request(method, path, params=params)
        except httpx.HTTPError as exc:
            logger.debug("%s %s failed before a response arrived: %s", method, path, exc)
            raise NetworkError(f"{method} {path} failed: {exc}") from exc

        if response.is_error:
            raise HttpError(
                response.status_code,
                ApiErrorPayload.from_payload(_decode_json(response)),
                url=str(response.request.url),
            )
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise NetworkError(f"{method} {path} returned a non-JSON body") from exc


def _decode_json(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        logger.debug("Error response from %s is not JSON: %s", response.request.url, response.text[:128])
        return None
