"""libSQL database client wrapper for local state persistence."""

import logging
from typing import Any

from libsql_client import Client, ResultSet, create_client

from nevermiss.config import settings

logger = logging.getLogger(__name__)

# A statement with its positional parameters
Statement = tuple[str, list[Any]]


class TursoClient:
    """Wrapper for the libSQL async client.

    NeverMiss keeps its state in a local SQLite file (``file:`` URL).
    """

    def __init__(self, url: str | None = None):
        """Initialize client with connection parameters.

        Args:
            url: Database URL. Defaults to settings.database_url.
        """
        self.url = url or settings.database_url
        self._client: Client | None = None

    async def connect(self) -> None:
        """Establish database connection."""
        if self._client is not None:
            return
        self._client = create_client(url=self.url)
        logger.info(f"Connected to database: {self.url}")

    def _require_client(self) -> Client:
        if not self._client:
            msg = "Not connected. Call connect() first."
            raise RuntimeError(msg)
        return self._client

    async def execute(
        self,
        sql: str,
        params: list[Any] | None = None,
    ) -> ResultSet:
        """Execute a SQL statement.

        Args:
            sql: SQL query with ? placeholders
            params: Query parameters

        Returns:
            ResultSet with rows and metadata
        """
        return await self._require_client().execute(sql, params or [])

    async def execute_batch(self, statements: list[str | Statement]) -> None:
        """Execute several statements atomically.

        Args:
            statements: Plain SQL strings or (sql, params) tuples
        """
        await self._require_client().batch(statements)

    async def close(self) -> None:
        """Close the database connection."""
        if self._client:
            await self._client.close()
            self._client = None
            logger.info("Database connection closed")

    async def is_healthy(self) -> bool:
        """Check if database connection is healthy."""
        try:
            if not self._client:
                return False
            result = await self._client.execute("SELECT 1")
            return len(result.rows) == 1
        except Exception:
            return False
