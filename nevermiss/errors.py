"""Exception hierarchy shared across NeverMiss components."""


class NeverMissError(Exception):
    """Base class for all NeverMiss errors."""

    pass


class AuthError(NeverMissError):
    """Raised when an OAuth operation fails."""

    pass


class UserCancelledError(AuthError):
    """The user cancelled the interactive authorization flow."""

    def __init__(self, message: str = "Authentication was cancelled"):
        super().__init__(message)


class InvalidCallbackError(AuthError):
    """The authorization callback carried no usable code."""

    pass


class TokenExchangeError(AuthError):
    """The authorization code could not be exchanged for tokens."""

    pass


class InvalidTokenResponseError(AuthError):
    """The token endpoint answered 200 with an unusable body."""

    pass


class UserInfoError(AuthError):
    """The user-info endpoint failed or returned no email."""

    pass


class NoRefreshTokenError(AuthError):
    """The account holds no refresh token and must re-authenticate."""

    def __init__(self, message: str = "No refresh token available"):
        super().__init__(message)


class RefreshRevokedError(AuthError):
    """The provider rejected the refresh token (HTTP 400/401)."""

    def __init__(
        self,
        message: str = "Refresh token has been revoked. Please re-authenticate.",
    ):
        super().__init__(message)


class RefreshFailedError(AuthError):
    """Refreshing the access token failed for a non-revocation reason."""

    pass


class CalendarError(NeverMissError):
    """Raised when a Calendar API call fails."""

    pass


class NoAccessTokenError(CalendarError):
    """The account has no access token to call the API with."""

    def __init__(self, message: str = "No access token available"):
        super().__init__(message)


class UnauthorizedError(CalendarError):
    """The Calendar API rejected the access token (HTTP 401)."""

    def __init__(self, message: str = "Authorization expired. Please re-authenticate."):
        super().__init__(message)


class CalendarRequestError(CalendarError):
    """The Calendar API answered with a non-2xx status."""

    def __init__(self, status_code: int, message: str | None = None):
        self.status_code = status_code
        super().__init__(message or f"Request failed with status code {status_code}")


class InvalidCalendarResponseError(CalendarError):
    """The Calendar API answered with an unexpected body shape."""

    pass
