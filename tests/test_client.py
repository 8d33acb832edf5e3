# ABOUTME: Tests for session caching and the auth-retry decorator
# ABOUTME: Uses mock sessions in place of a live backend

import asyncio
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from ownerledger import client
from ownerledger.exceptions import (
    AuthenticationError,
    CredentialsNotFoundError,
    SessionExpiredError,
)


@pytest.fixture(autouse=True)
def fresh_client_state(monkeypatch):
    monkeypatch.setattr(client, "_session", None)
    monkeypatch.setattr(client, "_session_lock", asyncio.Lock())


def _status_error(status_code: int) -> httpx.HTTPStatusError:
    request = httpx.Request("GET", "https://project.supabase.co/rest/v1/expenses")
    response = httpx.Response(status_code, request=request)
    return httpx.HTTPStatusError("error", request=request, response=response)


class TestIsAuthError:
    def test_auth_errors(self):
        assert client._is_auth_error(AuthenticationError("x"))
        assert client._is_auth_error(SessionExpiredError("x"))
        assert client._is_auth_error(_status_error(401))
        assert client._is_auth_error(_status_error(403))

    def test_non_auth_errors(self):
        assert not client._is_auth_error(CredentialsNotFoundError("x"))
        assert not client._is_auth_error(_status_error(500))
        assert not client._is_auth_error(ValueError("401 in the message"))


class TestGetClient:
    def test_caches_session(self, monkeypatch):
        session = MagicMock()
        session.ensure_authenticated = AsyncMock()
        factory = MagicMock(return_value=session)
        monkeypatch.setattr(client, "BackendSession", factory)

        async def _twice():
            return await client.get_client(), await client.get_client()

        first, second = asyncio.run(_twice())
        assert first is second is session
        factory.assert_called_once()
        session.ensure_authenticated.assert_awaited_once()

    def test_failed_login_is_not_cached(self, monkeypatch):
        session = MagicMock()
        session.ensure_authenticated = AsyncMock(side_effect=AuthenticationError("denied"))
        monkeypatch.setattr(client, "BackendSession", MagicMock(return_value=session))

        with pytest.raises(AuthenticationError):
            asyncio.run(client.get_client())
        assert client._session is None

    def test_invalidate_closes_and_clears(self, monkeypatch):
        session = MagicMock()
        session.close = AsyncMock()
        cleared = MagicMock()
        monkeypatch.setattr(client, "_session", session)
        monkeypatch.setattr(client, "clear_session", cleared)

        asyncio.run(client.invalidate_client())

        session.close.assert_awaited_once()
        cleared.assert_called_once()
        assert client._session is None


class TestWithAuthRetry:
    def test_retries_once_after_auth_error(self, monkeypatch):
        invalidate = AsyncMock()
        monkeypatch.setattr(client, "invalidate_client", invalidate)
        calls = []

        @client.with_auth_retry
        async def tool():
            calls.append(1)
            if len(calls) == 1:
                raise SessionExpiredError("expired")
            return "ok"

        assert asyncio.run(tool()) == "ok"
        assert len(calls) == 2
        invalidate.assert_awaited_once()

    def test_propagates_other_errors(self, monkeypatch):
        invalidate = AsyncMock()
        monkeypatch.setattr(client, "invalidate_client", invalidate)

        @client.with_auth_retry
        async def tool():
            raise ValueError("bad input")

        with pytest.raises(ValueError):
            asyncio.run(tool())
        invalidate.assert_not_awaited()

    def test_second_failure_propagates(self, monkeypatch):
        monkeypatch.setattr(client, "invalidate_client", AsyncMock())

        @client.with_auth_retry
        async def tool():
            raise SessionExpiredError("still expired")

        with pytest.raises(SessionExpiredError):
            asyncio.run(tool())

    def test_preserves_name(self):
        @client.with_auth_retry
        async def get_owner_report():
            return None

        assert get_owner_report.__name__ == "get_owner_report"
