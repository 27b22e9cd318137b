from __future__ import annotations

from typing import Any, Dict, Optional, Protocol, Tuple

import httpx

from backend.app.core.rate_limit import FixedIntervalLimiter
from backend.app.core.settings import settings


class ProviderError(Exception):
    """Raised when an external data provider call fails."""

    def __init__(self, message: str, *, provider: str = "provider", status_code: Optional[int] = None):
        super().__init__(message)
        self.provider = provider
        self.status_code = status_code


class ProviderAuthError(ProviderError):
    """Raised when provider credentials are missing or rejected."""


class AsyncTransport(Protocol):
    async def request(
        self,
        method: str,
        url: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        data: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
        auth: Optional[Tuple[str, str]] = None,
        timeout: float,
    ) -> httpx.Response: ...

    async def close(self) -> None: ...


class HttpxTransport:
    """httpx-based transport with connection pooling."""

    def __init__(self) -> None:
        self._client = httpx.AsyncClient(timeout=None, follow_redirects=True)

    async def request(
        self,
        method: str,
        url: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        data: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
        auth: Optional[Tuple[str, str]] = None,
        timeout: float,
    ) -> httpx.Response:
        return await self._client.request(
            method,
            url,
            params=params,
            data=data,
            headers=headers,
            auth=auth,
            timeout=timeout,
        )

    async def close(self) -> None:
        await self._client.aclose()


class ProviderClient:
    """Base for provider adapters: shared transport, courtesy limiter, error mapping.

    Subclasses set ``name`` and ``default_interval`` (seconds between calls).
    Every request runs fire-once; retries are the caller's decision.
    """

    name = "provider"
    default_interval = 0.1

    def __init__(
        self,
        *,
        base_url: str,
        timeout: Optional[float] = None,
        min_interval: Optional[float] = None,
        transport: Optional[AsyncTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout if timeout is not None else settings.provider_timeout
        interval = self.default_interval if min_interval is None else min_interval
        self.limiter = FixedIntervalLimiter(interval)
        self._transport = transport or HttpxTransport()
        self._owns_transport = transport is None

    async def aclose(self) -> None:
        if self._owns_transport:
            await self._transport.close()

    async def _request_json(
        self,
        method: str,
        url: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        data: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
        auth: Optional[Tuple[str, str]] = None,
        error_cls: type[ProviderError] = ProviderError,
        allow_empty: bool = False,
    ) -> Any:
        async with self.limiter.slot():
            try:
                response = await self._transport.request(
                    method,
                    url,
                    params=params,
                    data=data,
                    headers=headers,
                    auth=auth,
                    timeout=self.timeout,
                )
            except httpx.RequestError as exc:
                raise error_cls(f"{self.name} request to {url} failed: {exc}", provider=self.name) from exc

        if not response.is_success:
            raise error_cls(
                f"{self.name} returned HTTP {response.status_code} for {url}",
                provider=self.name,
                status_code=response.status_code,
            )
        if allow_empty and not response.content.strip():
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise error_cls(f"Invalid JSON from {self.name} for {url}", provider=self.name) from exc

    async def _get_json(
        self,
        path_or_url: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
        allow_empty: bool = False,
    ) -> Any:
        return await self._request_json(
            "GET", self._url(path_or_url), params=params, headers=headers, allow_empty=allow_empty
        )

    def _url(self, path_or_url: str) -> str:
        if path_or_url.startswith("http://") or path_or_url.startswith("https://"):
            return path_or_url
        return f"{self.base_url}/{path_or_url.lstrip('/')}"
