"""Interactive authorization presentation.

The core never opens windows or browsers itself. It hands the consent
URL to an AuthorizationPresenter and awaits the callback URL.
"""

import asyncio
from typing import Protocol, runtime_checkable

import structlog

from nevermiss.errors import UserCancelledError

logger = structlog.get_logger()


@runtime_checkable
class AuthorizationPresenter(Protocol):
    """Present an authorization URL and await the redirect."""

    async def present(self, url: str) -> str:
        """Show the consent page.

        Args:
            url: Authorization URL to open

        Returns:
            The full callback URL the provider redirected to

        Raises:
            UserCancelledError: If the user abandoned the flow
        """
        ...


class CallbackPresenter:
    """Presenter driven by the local HTTP API.

    ``present`` parks a future; the ``/auth/login`` route redirects the
    browser to the pending URL and ``/auth/callback`` resolves it.
    Only one flow may be pending at a time.
    """

    def __init__(self):
        self._future: asyncio.Future[str] | None = None
        self._url: str | None = None
        self._ready = asyncio.Event()

    @property
    def pending(self) -> bool:
        return self._future is not None and not self._future.done()

    @property
    def pending_url(self) -> str | None:
        return self._url if self.pending else None

    async def wait_for_url(self, timeout: float = 5.0) -> str | None:
        """Wait until a flow has published its consent URL."""
        try:
            await asyncio.wait_for(self._ready.wait(), timeout)
        except TimeoutError:
            return None
        return self.pending_url

    async def present(self, url: str) -> str:
        if self.pending:
            raise RuntimeError("An authorization flow is already pending")
        self._future = asyncio.get_running_loop().create_future()
        self._url = url
        self._ready.set()
        logger.info("awaiting authorization callback")
        try:
            return await self._future
        finally:
            self._future = None
            self._url = None
            self._ready.clear()

    def complete(self, callback_url: str) -> bool:
        """Resolve the pending flow with the callback URL.

        Returns:
            False if no flow was pending
        """
        if not self.pending:
            return False
        self._future.set_result(callback_url)
        return True

    def cancel(self) -> bool:
        """Abandon the pending flow as a user cancellation."""
        if not self.pending:
            return False
        self._future.set_exception(UserCancelledError())
        return True
