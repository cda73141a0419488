"""Repository for the user settings blob."""

import logging

from pydantic import ValidationError

from nevermiss.db.turso import TursoClient
from nevermiss.models.settings import UserSettings

logger = logging.getLogger(__name__)

SETTINGS_KEY = "nevermiss.settings"


class SettingsRepository:
    """Stores UserSettings as a JSON document in a key/value table."""

    def __init__(self, db_client: TursoClient):
        self._db = db_client

    async def initialize(self) -> None:
        """Create preferences table if not exists."""
        await self._db.execute_batch(
            [
                """
            CREATE TABLE IF NOT EXISTS preferences (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                updated_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
            )
            """,
            ]
        )

    async def load(self) -> UserSettings:
        """Load stored settings, falling back to defaults when absent or corrupt."""
        result = await self._db.execute(
            "SELECT value FROM preferences WHERE key = ?",
            [SETTINGS_KEY],
        )
        if not result.rows:
            return UserSettings()
        try:
            return UserSettings.model_validate_json(result.rows[0][0])
        except ValidationError as e:
            logger.warning(f"Stored settings unreadable, using defaults: {e}")
            return UserSettings()

    async def save(self, settings: UserSettings) -> None:
        await self._db.execute(
            """
            INSERT INTO preferences (key, value) VALUES (?, ?)
            ON CONFLICT(key) DO UPDATE SET
                value = excluded.value,
                updated_at = CURRENT_TIMESTAMP
            """,
            [SETTINGS_KEY, settings.model_dump_json()],
        )
