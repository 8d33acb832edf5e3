# ABOUTME: Authentication module for the Supabase backend
# ABOUTME: Handles password login, token refresh, session caching, and REST access

import json
import logging
import os
import subprocess
import time
from pathlib import Path
from typing import Any

import httpx

from ownerledger.exceptions import (
    AuthenticationError,
    ConfigurationError,
    CredentialsNotFoundError,
)

logger = logging.getLogger(__name__)

# Session storage location
SESSION_DIR = Path.home() / ".ownerledger"
SESSION_FILE = SESSION_DIR / "session.json"

DEFAULT_OP_ITEM = "op://Private/ownerledger"

# Refresh this many seconds before the access token actually expires
EXPIRY_MARGIN = 60


def get_backend_settings() -> tuple[str, str]:
    """Read the Supabase project URL and anon key from the environment."""
    url = os.environ.get("SUPABASE_URL")
    anon_key = os.environ.get("SUPABASE_ANON_KEY")

    if not url or not anon_key:
        raise ConfigurationError("SUPABASE_URL and SUPABASE_ANON_KEY must be set")

    return url.rstrip("/"), anon_key


def get_credentials_from_1password() -> tuple[str, str]:
    """Retrieve owner portal credentials from 1Password CLI."""
    item = os.environ.get("OWNERLEDGER_OP_ITEM", DEFAULT_OP_ITEM)
    try:
        username = subprocess.run(
            ["op", "read", f"{item}/username"],
            capture_output=True,
            text=True,
            check=True,
        ).stdout.strip()

        password = subprocess.run(
            ["op", "read", f"{item}/password"],
            capture_output=True,
            text=True,
            check=True,
        ).stdout.strip()

        return username, password
    except subprocess.CalledProcessError as e:
        raise CredentialsNotFoundError(
            f"Failed to retrieve credentials from 1Password: {e.stderr}"
        ) from e
    except FileNotFoundError:
        raise CredentialsNotFoundError(
            "1Password CLI (op) not found. Install it or set OWNERLEDGER_EMAIL/OWNERLEDGER_PASSWORD env vars."
        )


def get_credentials() -> tuple[str, str]:
    """Get owner portal credentials from environment or 1Password."""
    email = os.environ.get("OWNERLEDGER_EMAIL")
    password = os.environ.get("OWNERLEDGER_PASSWORD")

    if email and password:
        logger.debug("Using credentials from environment variables")
        return email, password

    logger.debug("Attempting to retrieve credentials from 1Password")
    return get_credentials_from_1password()


def load_session() -> dict | None:
    """Load saved session from disk."""
    if not SESSION_FILE.exists():
        return None

    try:
        with open(SESSION_FILE) as f:
            session = json.load(f)
        logger.debug("Loaded existing session from disk")
        return session
    except (json.JSONDecodeError, IOError) as e:
        logger.warning(f"Failed to load session file: {e}")
        return None


def save_session(session: dict) -> None:
    """Save session data to disk with restricted permissions."""
    SESSION_DIR.mkdir(parents=True, exist_ok=True)

    with open(SESSION_FILE, "w") as f:
        json.dump(session, f)

    SESSION_FILE.chmod(0o600)
    logger.debug("Saved session to disk")


def clear_session() -> None:
    """Remove saved session from disk."""
    if SESSION_FILE.exists():
        SESSION_FILE.unlink()
        logger.debug("Cleared session from disk")


class BackendSession:
    """
    Manages an authenticated session with the Supabase backend.

    Logs in through the GoTrue password grant and sends the resulting
    access token with every PostgREST request, so row-level security
    scopes all reads to the signed-in user.
    """

    def __init__(self, url: str | None = None, anon_key: str | None = None) -> None:
        if url is None or anon_key is None:
            url, anon_key = get_backend_settings()
        self._url = url.rstrip("/")
        self._anon_key = anon_key
        self._client: httpx.AsyncClient | None = None
        self._session_data: dict | None = None

    @property
    def user_id(self) -> str:
        """Get the authenticated user's id."""
        if self._session_data and self._session_data.get("user_id"):
            return self._session_data["user_id"]
        raise AuthenticationError("User ID not available - login first")

    def _auth_headers(self) -> dict[str, str]:
        return {
            "apikey": self._anon_key,
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    def _store_token_response(self, data: dict) -> None:
        access_token = data.get("access_token")
        if not access_token:
            raise AuthenticationError("Token response did not contain an access token")

        expires_in = data.get("expires_in") or 3600
        self._session_data = {
            "access_token": access_token,
            "refresh_token": data.get("refresh_token"),
            "expires_at": int(time.time()) + int(expires_in),
            "user_id": (data.get("user") or {}).get("id"),
        }

    async def login(self) -> None:
        """Authenticate with email and password via the GoTrue token endpoint."""
        email, password = get_credentials()

        logger.info("Logging in to backend...")

        async with httpx.AsyncClient(timeout=30.0) as client:
            response = await client.post(
                f"{self._url}/auth/v1/token",
                params={"grant_type": "password"},
                json={"email": email, "password": password},
                headers=self._auth_headers(),
            )

        if response.status_code != 200:
            raise AuthenticationError(
                f"Login failed with status {response.status_code}: {response.text}"
            )

        # Token changes, so the cached client must pick up the new bearer header
        await self.close()
        self._store_token_response(response.json())
        logger.info(f"Successfully logged in (user_id: {self._session_data.get('user_id')})")

    async def refresh(self) -> bool:
        """Exchange the refresh token for a new access token. Returns success."""
        refresh_token = (self._session_data or {}).get("refresh_token")
        if not refresh_token:
            return False

        async with httpx.AsyncClient(timeout=30.0) as client:
            response = await client.post(
                f"{self._url}/auth/v1/token",
                params={"grant_type": "refresh_token"},
                json={"refresh_token": refresh_token},
                headers=self._auth_headers(),
            )

        if response.status_code != 200:
            logger.debug(f"Token refresh failed with status {response.status_code}")
            return False

        await self.close()
        self._store_token_response(response.json())
        logger.info("Refreshed access token")
        return True

    def _is_expired(self) -> bool:
        expires_at = (self._session_data or {}).get("expires_at", 0)
        return time.time() >= expires_at - EXPIRY_MARGIN

    async def is_valid(self) -> bool:
        """Check if the current session is still valid."""
        if not self._session_data or not self._session_data.get("access_token"):
            return False
        if self._is_expired():
            return False

        try:
            client = self._get_client()
            response = await client.get("/auth/v1/user")
            return response.status_code == 200
        except httpx.HTTPError as e:
            logger.debug(f"Session validation failed: {e}")
            return False

    async def ensure_authenticated(self) -> None:
        """Ensure we have a valid authenticated session."""
        self._session_data = load_session()

        if self._session_data:
            if await self.is_valid():
                logger.info("Using cached session")
                return
            if await self.refresh():
                save_session(self._session_data or {})
                return

        logger.info("Cached session invalid, performing fresh login")
        await self.login()
        save_session(self._session_data or {})

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create the authenticated HTTP client."""
        if self._client is None:
            if not self._session_data:
                raise AuthenticationError("Not authenticated - call ensure_authenticated() first")

            access_token = self._session_data.get("access_token", "")
            self._client = httpx.AsyncClient(
                base_url=self._url,
                timeout=30.0,
                headers={
                    "apikey": self._anon_key,
                    "Authorization": f"Bearer {access_token}",
                    "Accept": "application/json",
                },
            )
        return self._client

    async def select(self, table: str, params: Any = None) -> httpx.Response:
        """GET rows from a PostgREST table. Params may repeat a column filter."""
        client = self._get_client()
        return await client.get(f"/rest/v1/{table}", params=params)

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None
