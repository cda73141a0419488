"""Per-account credential storage.

The TokenStore protocol is the narrow seam to whatever secure store the
host provides. DatabaseTokenStore keeps tokens in their own table of
the local database.
"""

from datetime import datetime
from typing import Protocol, runtime_checkable

from pydantic import BaseModel

from nevermiss.db.turso import TursoClient


class StoredTokens(BaseModel):
    """Tokens loaded for one account; any field may be missing."""

    access_token: str | None = None
    refresh_token: str | None = None
    expiry: datetime | None = None


@runtime_checkable
class TokenStore(Protocol):
    """Secure per-account token storage."""

    async def save(
        self,
        account_id: str,
        access_token: str | None = None,
        refresh_token: str | None = None,
        expiry: datetime | None = None,
    ) -> None:
        """Store tokens; a None argument leaves the stored value untouched."""
        ...

    async def load(self, account_id: str) -> StoredTokens: ...

    async def delete(self, account_id: str) -> None: ...


class DatabaseTokenStore:
    """TokenStore backed by the ``account_tokens`` table."""

    def __init__(self, db_client: TursoClient):
        self._db = db_client

    async def initialize(self) -> None:
        """Create token table if not exists."""
        await self._db.execute_batch(
            [
                """
            CREATE TABLE IF NOT EXISTS account_tokens (
                account_id TEXT PRIMARY KEY,
                access_token TEXT,
                refresh_token TEXT,
                expiry TEXT,
                updated_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
            )
            """,
            ]
        )

    async def save(
        self,
        account_id: str,
        access_token: str | None = None,
        refresh_token: str | None = None,
        expiry: datetime | None = None,
    ) -> None:
        await self._db.execute(
            """
            INSERT INTO account_tokens (account_id, access_token, refresh_token, expiry)
            VALUES (?, ?, ?, ?)
            ON CONFLICT(account_id) DO UPDATE SET
                access_token = COALESCE(excluded.access_token, access_token),
                refresh_token = COALESCE(excluded.refresh_token, refresh_token),
                expiry = COALESCE(excluded.expiry, expiry),
                updated_at = CURRENT_TIMESTAMP
            """,
            [
                account_id,
                access_token,
                refresh_token,
                expiry.isoformat() if expiry else None,
            ],
        )

    async def load(self, account_id: str) -> StoredTokens:
        result = await self._db.execute(
            """
            SELECT access_token, refresh_token, expiry
            FROM account_tokens
            WHERE account_id = ?
            """,
            [account_id],
        )
        if not result.rows:
            return StoredTokens()
        row = result.rows[0]
        return StoredTokens(
            access_token=row[0],
            refresh_token=row[1],
            expiry=datetime.fromisoformat(row[2]) if row[2] else None,
        )

    async def delete(self, account_id: str) -> None:
        await self._db.execute(
            "DELETE FROM account_tokens WHERE account_id = ?",
            [account_id],
        )
