# ABOUTME: Backend session management with caching and retry logic
# ABOUTME: Provides a lock-guarded session factory and auth-retry decorator for tools

import asyncio
import functools
import logging
from typing import Any, Callable, TypeVar

import httpx

from ownerledger.auth import BackendSession, clear_session
from ownerledger.exceptions import AuthenticationError, CredentialsNotFoundError

logger = logging.getLogger(__name__)

# Module-level session cache with lock for concurrent tool calls
_session: BackendSession | None = None
_session_lock = asyncio.Lock()

F = TypeVar("F", bound=Callable[..., Any])


async def get_client() -> BackendSession:
    """
    Get or create an authenticated backend session.

    Creates the session on first call, returns the cached session on
    subsequent calls.

    Returns:
        Authenticated BackendSession instance
    """
    global _session

    async with _session_lock:
        if _session is None:
            logger.info("Creating new backend session")
            session = BackendSession()
            await session.ensure_authenticated()
            _session = session
        return _session


async def invalidate_client() -> None:
    """
    Invalidate the cached session (e.g., on auth failure).

    Clears both in-memory cache and persisted session.
    """
    global _session

    async with _session_lock:
        if _session:
            await _session.close()
            _session = None
        clear_session()
        logger.info("Invalidated backend session")


def _is_auth_error(exc: Exception) -> bool:
    """
    Check if an exception indicates an authentication failure.

    Missing credentials are not retried since a fresh login cannot fix them.
    """
    if isinstance(exc, CredentialsNotFoundError):
        return False
    if isinstance(exc, AuthenticationError):
        return True
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code in (401, 403)
    return False


def with_auth_retry(func: F) -> F:
    """
    Decorator that retries on authentication failures.

    If a function fails with an auth error, this will:
    1. Invalidate the current session
    2. Retry the function once with a fresh session

    Usage:
        @with_auth_retry
        async def my_tool_function(...):
            session = await get_client()
            # ... use session
    """

    @functools.wraps(func)
    async def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return await func(*args, **kwargs)
        except Exception as exc:
            if _is_auth_error(exc):
                logger.warning(f"Auth error in {func.__name__}, retrying with fresh session")
                await invalidate_client()
                return await func(*args, **kwargs)
            raise

    return wrapper  # type: ignore
