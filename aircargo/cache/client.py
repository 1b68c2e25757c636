"""
Valkey client implementation with health checks and automatic reconnection.

This module provides the production KeyValueStore: an asyncio Valkey client
with connection pooling, health monitoring and bounded reconnection.
"""

import asyncio
import logging
import time
from typing import Optional, Any, Dict

from valkey.asyncio import ConnectionPool, Valkey
from valkey.exceptions import ConnectionError, TimeoutError

from .config import ValkeyConfig, ValkeyConnectionError
from .store import KeyValueStore

logger = logging.getLogger(__name__)


# Deletes the key only while it still holds the caller's token
COMPARE_AND_DELETE_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
else
    return 0
end
"""


class ValkeyClient(KeyValueStore):
    """
    Valkey-backed key-value store with health checks and reconnection.

    Features:
    - Connection pooling with configurable pool size
    - Exponential backoff while establishing the first connection
    - Atomic SET NX EX for locks and a Lua compare-and-delete for release
    """

    def __init__(self, config: Optional[ValkeyConfig] = None):
        """
        Initialize Valkey client with configuration.

        Args:
            config: ValkeyConfig instance, defaults to environment-based config
        """
        self.config = config or ValkeyConfig.from_env()
        self._client: Optional[Valkey] = None
        self._connection_pool: Optional[ConnectionPool] = None
        self._is_connected = False
        self._last_health_check = 0.0
        self._connection_attempts = 0
        self._max_connection_attempts = 5
        self._reconnect_delay = 1.0
        self._max_reconnect_delay = 30.0

        logger.info(f"Initializing Valkey client: {self.config}")

    async def connect(self) -> None:
        """
        Establish connection to Valkey server with retry logic.

        Raises:
            ValkeyConnectionError: If connection cannot be established after max attempts
        """
        if self._is_connected and self._client:
            return

        self._connection_attempts = 0

        while self._connection_attempts < self._max_connection_attempts:
            try:
                self._connection_attempts += 1
                logger.info(f"Attempting Valkey connection (attempt {self._connection_attempts})")

                self._connection_pool = ConnectionPool(**self.config.to_connection_pool_kwargs())
                self._client = Valkey(connection_pool=self._connection_pool)

                await self._test_connection()

                self._is_connected = True
                self._connection_attempts = 0
                logger.info("Successfully connected to Valkey server")
                return

            except (ConnectionError, TimeoutError, OSError, ValkeyConnectionError) as e:
                logger.warning(
                    f"Valkey connection attempt {self._connection_attempts} failed: {e}"
                )

                if self._connection_attempts >= self._max_connection_attempts:
                    error_msg = (
                        f"Failed to connect to Valkey after {self._max_connection_attempts} attempts. "
                        f"Last error: {e}"
                    )
                    logger.error(error_msg)
                    raise ValkeyConnectionError(error_msg) from e

                delay = min(self._reconnect_delay * (2 ** (self._connection_attempts - 1)),
                            self._max_reconnect_delay)
                logger.info(f"Retrying connection in {delay:.1f} seconds...")
                await asyncio.sleep(delay)

    async def disconnect(self) -> None:
        """Gracefully disconnect from Valkey server."""
        if self._connection_pool:
            try:
                await self._connection_pool.disconnect()
                logger.info("Disconnected from Valkey server")
            except Exception as e:
                logger.warning(f"Error during Valkey disconnect: {e}")
            finally:
                self._connection_pool = None
                self._client = None
                self._is_connected = False

    async def _test_connection(self) -> None:
        """
        Test Valkey connection with a simple ping.

        Raises:
            ValkeyConnectionError: If ping fails
        """
        if not self._client:
            raise ValkeyConnectionError("Client not initialized")

        try:
            result = await self._client.ping()
        except Exception as e:
            raise ValkeyConnectionError(f"Connection test failed: {e}") from e
        if not result:
            raise ValkeyConnectionError("Ping returned False")

    async def health_check(self, force: bool = False) -> bool:
        """
        Perform health check on Valkey connection.

        Args:
            force: Force health check even if recently performed

        Returns:
            bool: True if connection is healthy, False otherwise
        """
        current_time = time.time()

        if not force and (current_time - self._last_health_check) < self.config.health_check_interval:
            return self._is_connected

        self._last_health_check = current_time

        if not self._client or not self._is_connected:
            logger.debug("Health check failed: not connected")
            return False

        try:
            await self._test_connection()
            logger.debug("Health check passed")
            return True
        except ValkeyConnectionError as e:
            logger.warning(f"Health check failed: {e}")
            self._is_connected = False
            return False

    @property
    def is_connected(self) -> bool:
        """Check if client is currently connected."""
        return self._is_connected and self._client is not None

    @property
    def client(self) -> Valkey:
        """
        Get the underlying Valkey client.

        Raises:
            ValkeyConnectionError: If client is not connected
        """
        if not self._client or not self._is_connected:
            raise ValkeyConnectionError("Client not connected. Call connect() first.")
        return self._client

    async def get_connection_info(self) -> Dict[str, Any]:
        """
        Get connection information and statistics.

        Returns:
            Dict[str, Any]: Connection information
        """
        info = {
            "is_connected": self._is_connected,
            "config": str(self.config),
            "connection_attempts": self._connection_attempts,
            "last_health_check": self._last_health_check,
        }

        if self._client and self._is_connected:
            try:
                server_info = await self._client.info()
                info.update({
                    "server_version": server_info.get("valkey_version", server_info.get("redis_version", "unknown")),
                    "connected_clients": server_info.get("connected_clients", 0),
                    "used_memory": server_info.get("used_memory_human", "unknown"),
                    "uptime_seconds": server_info.get("uptime_in_seconds", 0),
                })
            except Exception as e:
                logger.warning(f"Failed to get server info: {e}")
                info["server_info_error"] = str(e)

        return info

    # KeyValueStore

    async def get(self, key: str) -> Optional[str]:
        return await self.client.get(key)

    async def set_with_ttl(self, key: str, value: str, ttl_seconds: int) -> None:
        await self.client.set(key, value, ex=ttl_seconds)

    async def delete(self, key: str) -> bool:
        return bool(await self.client.delete(key))

    async def set_if_absent_with_ttl(self, key: str, value: str, ttl_seconds: int) -> bool:
        result = await self.client.set(key, value, nx=True, ex=ttl_seconds)
        return bool(result)

    async def delete_if_equals(self, key: str, value: str) -> bool:
        result = await self.client.eval(COMPARE_AND_DELETE_SCRIPT, 1, key, value)
        return bool(result)

    async def __aenter__(self):
        """Async context manager entry."""
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.disconnect()
