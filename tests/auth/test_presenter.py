"""Tests for CallbackPresenter."""

import asyncio

import pytest

from nevermiss.auth.presenter import AuthorizationPresenter, CallbackPresenter
from nevermiss.errors import UserCancelledError


class TestCallbackPresenter:
    def test_satisfies_protocol(self):
        assert isinstance(CallbackPresenter(), AuthorizationPresenter)

    @pytest.mark.asyncio
    async def test_complete_resolves_present(self):
        presenter = CallbackPresenter()
        task = asyncio.create_task(presenter.present("https://consent"))

        assert await presenter.wait_for_url() == "https://consent"
        assert presenter.pending is True
        assert presenter.complete("http://cb?code=1") is True

        assert await task == "http://cb?code=1"
        assert presenter.pending is False
        assert presenter.pending_url is None

    @pytest.mark.asyncio
    async def test_cancel_raises_user_cancelled(self):
        presenter = CallbackPresenter()
        task = asyncio.create_task(presenter.present("https://consent"))
        await presenter.wait_for_url()

        assert presenter.cancel() is True
        with pytest.raises(UserCancelledError):
            await task

    @pytest.mark.asyncio
    async def test_second_flow_rejected_while_pending(self):
        presenter = CallbackPresenter()
        task = asyncio.create_task(presenter.present("https://consent"))
        await presenter.wait_for_url()

        with pytest.raises(RuntimeError):
            await presenter.present("https://other")

        presenter.cancel()
        with pytest.raises(UserCancelledError):
            await task

    def test_complete_without_pending_flow(self):
        presenter = CallbackPresenter()
        assert presenter.complete("http://cb?code=1") is False
        assert presenter.cancel() is False

    @pytest.mark.asyncio
    async def test_wait_for_url_times_out(self):
        assert await CallbackPresenter().wait_for_url(timeout=0.01) is None
