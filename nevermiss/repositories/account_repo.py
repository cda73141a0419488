"""Repository for connected account metadata.

Stores id, email, display name and enabled flag. Tokens are never
written here; they go to the token store.
"""

from nevermiss.db.turso import TursoClient
from nevermiss.models.account import Account


class AccountRepository:
    """Repository for persisting account metadata."""

    def __init__(self, db_client: TursoClient):
        """Initialize repository with database client.

        Args:
            db_client: TursoClient instance for database operations
        """
        self._db = db_client

    async def initialize(self) -> None:
        """Create accounts table if not exists."""
        await self._db.execute_batch(
            [
                """
            CREATE TABLE IF NOT EXISTS accounts (
                id TEXT PRIMARY KEY,
                email TEXT NOT NULL,
                display_name TEXT NOT NULL,
                is_enabled INTEGER NOT NULL DEFAULT 1,
                position INTEGER NOT NULL DEFAULT 0,
                created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
            )
            """,
            ]
        )

    async def list_all(self) -> list[Account]:
        """Load all accounts in the order they were added (without tokens)."""
        result = await self._db.execute(
            """
            SELECT id, email, display_name, is_enabled
            FROM accounts
            ORDER BY position, created_at
            """
        )
        return [
            Account(
                id=row[0],
                email=row[1],
                display_name=row[2],
                is_enabled=bool(row[3]),
            )
            for row in result.rows
        ]

    async def save_all(self, accounts: list[Account]) -> None:
        """Replace the stored account list with the given one."""
        statements: list = ["DELETE FROM accounts"]
        for position, account in enumerate(accounts):
            statements.append(
                (
                    """
                    INSERT INTO accounts (id, email, display_name, is_enabled, position)
                    VALUES (?, ?, ?, ?, ?)
                    """,
                    [
                        account.id,
                        account.email,
                        account.display_name,
                        1 if account.is_enabled else 0,
                        position,
                    ],
                )
            )
        await self._db.execute_batch(statements)

    async def delete(self, account_id: str) -> bool:
        """Delete one account's metadata.

        Returns:
            True if a row was deleted
        """
        result = await self._db.execute(
            "DELETE FROM accounts WHERE id = ?",
            [account_id],
        )
        return result.rows_affected > 0
