"""
Pooled HTTP client base

Connection pooling follows httpx practice:
- Single shared AsyncClient initialized at app startup
- Limits to prevent connection exhaustion
- Pool timeout for fast failure under load
"""

import httpx
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

logger = logging.getLogger(__name__)


class PooledHTTPClient:
    """
    Shared AsyncClient for one upstream API.

    Lifecycle:
        - Call start() during app startup (FastAPI lifespan)
        - Call stop() during app shutdown
        - If not initialized, falls back to per-request client
    """

    name = "upstream"

    # Connection pool settings (per worker)
    MAX_CONNECTIONS = 50
    MAX_KEEPALIVE = 10
    KEEPALIVE_EXPIRY = 5.0

    # Timeout settings
    CONNECT_TIMEOUT = 5.0
    READ_TIMEOUT = 30.0
    WRITE_TIMEOUT = 10.0
    POOL_TIMEOUT = 30.0

    def __init__(
        self,
        read_timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.read_timeout = read_timeout or self.READ_TIMEOUT
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    def _timeout(self) -> httpx.Timeout:
        return httpx.Timeout(
            connect=self.CONNECT_TIMEOUT,
            read=self.read_timeout,
            write=self.WRITE_TIMEOUT,
            pool=self.POOL_TIMEOUT
        )

    def _new_client(self, **kwargs) -> httpx.AsyncClient:
        if self._transport is not None:
            kwargs['transport'] = self._transport
        return httpx.AsyncClient(timeout=self._timeout(), **kwargs)

    async def start(self):
        """
        Initialize the shared HTTP client.
        Call this during FastAPI app startup via lifespan.
        """
        if self._client is not None:
            logger.warning(f"{self.name} client already started")
            return

        limits = httpx.Limits(
            max_connections=self.MAX_CONNECTIONS,
            max_keepalive_connections=self.MAX_KEEPALIVE,
            keepalive_expiry=self.KEEPALIVE_EXPIRY
        )
        self._client = self._new_client(limits=limits)

        logger.info(
            f"{self.name} client started: max_connections={self.MAX_CONNECTIONS}, "
            f"read_timeout={self.read_timeout}s"
        )

    async def stop(self):
        """
        Close the HTTP client and release resources.
        Call this during FastAPI app shutdown via lifespan.
        """
        if self._client:
            await self._client.aclose()
            self._client = None
            logger.info(f"{self.name} client stopped")

    @asynccontextmanager
    async def client(self) -> AsyncIterator[httpx.AsyncClient]:
        """Yield the shared client, or a short-lived one when not started"""
        if self._client is not None:
            yield self._client
            return

        logger.debug(f"{self.name} client not initialized, using per-request client")
        async with self._new_client() as client:
            yield client
