"""Repository for dismissed event ids."""

from nevermiss.db.turso import TursoClient


class DismissedRepository:
    """Persists the set of event ids the user dismissed."""

    def __init__(self, db_client: TursoClient):
        self._db = db_client

    async def initialize(self) -> None:
        """Create dismissed_events table if not exists."""
        await self._db.execute_batch(
            [
                """
            CREATE TABLE IF NOT EXISTS dismissed_events (
                event_id TEXT PRIMARY KEY,
                account_id TEXT,
                dismissed_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
            )
            """,
            ]
        )

    async def load(self) -> frozenset[str]:
        result = await self._db.execute("SELECT event_id FROM dismissed_events")
        return frozenset(row[0] for row in result.rows)

    async def add(self, event_id: str, account_id: str | None = None) -> None:
        await self._db.execute(
            "INSERT OR IGNORE INTO dismissed_events (event_id, account_id) VALUES (?, ?)",
            [event_id, account_id],
        )

    async def clear(self) -> None:
        await self._db.execute("DELETE FROM dismissed_events")

    async def purge_account(self, account_id: str) -> None:
        """Forget dismissals belonging to a removed account."""
        await self._db.execute(
            "DELETE FROM dismissed_events WHERE account_id = ?",
            [account_id],
        )
