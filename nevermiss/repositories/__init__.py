"""Repository layer for data persistence.

Provides repository classes for persisting accounts, tokens, settings
and dismissals to the local database. Repositories encapsulate data
access logic and provide a clean interface for the service layer.
"""

from nevermiss.repositories.account_repo import AccountRepository
from nevermiss.repositories.dismissed_repo import DismissedRepository
from nevermiss.repositories.settings_repo import SettingsRepository
from nevermiss.repositories.token_store import DatabaseTokenStore, StoredTokens, TokenStore

__all__ = [
    "AccountRepository",
    "DatabaseTokenStore",
    "DismissedRepository",
    "SettingsRepository",
    "StoredTokens",
    "TokenStore",
]
