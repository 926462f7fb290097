"""
Arena API Client Module for Arena Relay.

Shared httpx client for the arena's internal endpoints. Every outbound call
carries the static bearer secret, and transport or HTTP failures surface as
the caller's ``ExternalServiceError`` subclass.
"""

import logging
from typing import Any, Dict, Optional, Type

import httpx

from arena_relay.config.settings import DispatchSettings
from arena_relay.utils.exceptions import ExternalServiceError


logger = logging.getLogger(__name__)


class ArenaApiClient:
    """Async HTTP client for the arena API."""

    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        timeout_seconds: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ) -> None:
        """
        Initialize the client.

        Args:
            base_url: Arena API base URL
            token: Bearer secret sent on every request
            timeout_seconds: Request timeout
            transport: Custom transport (tests use ``httpx.MockTransport``)
        """
        self.base_url = base_url.rstrip("/")
        self._token = token
        self.timeout_seconds = timeout_seconds
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @classmethod
    def from_settings(
        cls,
        settings: DispatchSettings,
        token: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ) -> 'ArenaApiClient':
        return cls(
            base_url=settings.api_base_url,
            token=token,
            timeout_seconds=settings.request_timeout_seconds,
            transport=transport,
        )

    @property
    def is_connected(self) -> bool:
        return self._client is not None

    @property
    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    async def start(self) -> None:
        """Open the underlying connection pool."""
        if self._client is not None:
            return
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers=self._headers,
            timeout=self.timeout_seconds,
            transport=self._transport,
        )
        logger.debug(f"Arena API client started for {self.base_url}")

    async def stop(self) -> None:
        """Close the underlying connection pool."""
        if self._client:
            await self._client.aclose()
            self._client = None
        logger.debug("Arena API client stopped")

    async def __aenter__(self) -> 'ArenaApiClient':
        await self.start()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.stop()

    async def request(
        self,
        method: str,
        path: str,
        error_cls: Type[ExternalServiceError] = ExternalServiceError,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Any] = None
    ) -> Any:
        """
        Send a request and decode the JSON body.

        Args:
            method: HTTP method
            path: Path relative to the base URL
            error_cls: Exception raised on failure
            params: Query parameters
            json: JSON body

        Returns:
            Decoded JSON body, or None for an empty body

        Raises:
            ExternalServiceError: (as ``error_cls``) on a transport error,
                a non-2xx status or an undecodable body
        """
        if not self._client:
            await self.start()

        try:
            response = await self._client.request(method, path, params=params, json=json)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            raise error_cls(
                f"{method} {path} returned {status}",
                status_code=status,
                cause=e,
            )
        except httpx.TimeoutException as e:
            raise error_cls(f"{method} {path} timed out", cause=e)
        except httpx.RequestError as e:
            raise error_cls(f"{method} {path} failed: {e}", cause=e)

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise error_cls(
                f"{method} {path} returned invalid JSON",
                status_code=response.status_code,
                cause=e,
            )

    async def get(self, path: str, error_cls: Type[ExternalServiceError] = ExternalServiceError, **params: Any) -> Any:
        return await self.request("GET", path, error_cls=error_cls, params=params or None)

    async def post(self, path: str, body: Any, error_cls: Type[ExternalServiceError] = ExternalServiceError) -> Any:
        return await self.request("POST", path, error_cls=error_cls, json=body)
