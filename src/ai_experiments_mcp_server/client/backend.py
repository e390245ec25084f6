"""
HTTP client for the AI experiments backend.

Owns the pooled aiohttp session, the shared-secret authentication header
and error translation. The key/value and capability clients build on it.
"""

import asyncio
import json
from typing import Any, Dict, Optional

import aiohttp
import structlog

from ..config.settings import BackendConfig

logger = structlog.get_logger(__name__)

SECRET_HEADER = "X-API-SECRET"


class BackendClientError(Exception):
    """Base exception for backend transport and HTTP errors."""

    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        original_error: Optional[Exception] = None,
    ):
        super().__init__(message)
        self.message = message
        self.status = status
        self.original_error = original_error


class BackendClient:
    """
    Authenticated HTTP access to the backend.

    Every request is attempted exactly once; failures surface as
    BackendClientError and are left to the caller.
    """

    def __init__(self, config: BackendConfig):
        """
        Initialize backend client.

        Args:
            config: Backend connection settings
        """
        self.config = config
        self.base_url = config.api_url.rstrip("/")
        self._session: Optional[aiohttp.ClientSession] = None
        self._connection_lock = asyncio.Lock()

    async def connect(self) -> None:
        """Create the pooled HTTP session."""
        async with self._connection_lock:
            if self._session is not None and not self._session.closed:
                return

            connector = aiohttp.TCPConnector(
                limit=100,
                limit_per_host=30,
                ttl_dns_cache=300,
                enable_cleanup_closed=True,
            )
            self._session = aiohttp.ClientSession(
                connector=connector,
                timeout=aiohttp.ClientTimeout(total=self.config.timeout_seconds),
                headers=self._get_headers(),
            )
            logger.info("Backend session opened", base_url=self.base_url)

    async def disconnect(self) -> None:
        """Close the HTTP session."""
        async with self._connection_lock:
            if self._session is None:
                return
            try:
                await self._session.close()
                logger.info("Backend session closed")
            finally:
                self._session = None

    def _get_headers(self) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            SECRET_HEADER: self.config.api_secret,
        }

    async def request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        json_body: Optional[Any] = None,
    ) -> Any:
        """
        Send one request to the backend.

        Args:
            method: HTTP method
            path: Path relative to the backend base URL
            params: Query parameters; None values are dropped
            json_body: JSON request body

        Returns:
            Decoded JSON payload, response text for non-JSON bodies,
            or None for an empty body

        Raises:
            BackendClientError: On connection failure, timeout or HTTP error status
        """
        if self._session is None or self._session.closed:
            await self.connect()

        query = {k: str(v) for k, v in (params or {}).items() if v is not None}
        url = f"{self.base_url}{path}"

        logger.debug("Backend request", method=method, path=path, params=query)

        try:
            async with self._session.request(
                method, url, params=query or None, json=json_body
            ) as resp:
                text = await resp.text()
                if resp.status >= 400:
                    raise BackendClientError(
                        f"{method} {path} failed with status {resp.status}: {text}",
                        status=resp.status,
                    )
                return self._decode(resp.content_type, text)

        except BackendClientError as e:
            logger.error("Backend request rejected", method=method, path=path, status=e.status)
            raise

        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error("Backend request failed", method=method, path=path, error=str(e))
            raise BackendClientError(f"{method} {path} failed: {e}", original_error=e)

    @staticmethod
    def _decode(content_type: str, text: str) -> Any:
        if not text:
            return None
        if content_type == "application/json":
            try:
                return json.loads(text)
            except json.JSONDecodeError as e:
                raise BackendClientError(f"Invalid JSON from backend: {e}", original_error=e)
        return text

    @property
    def connected(self) -> bool:
        """Check if the session is open."""
        return self._session is not None and not self._session.closed

    async def __aenter__(self) -> "BackendClient":
        await self.connect()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.disconnect()
