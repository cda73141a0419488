"""OAuth support: token lifecycle, wire client, PKCE and presenters."""

from nevermiss.auth.oauth_client import OAuthClient, TokenResponse, UserInfo
from nevermiss.auth.presenter import AuthorizationPresenter, CallbackPresenter
from nevermiss.auth.token_manager import TokenManager, extract_authorization_code

__all__ = [
    "AuthorizationPresenter",
    "CallbackPresenter",
    "OAuthClient",
    "TokenManager",
    "TokenResponse",
    "UserInfo",
    "extract_authorization_code",
]
