"""GitHub App credential provider.

Produces installation access tokens for the REST client: signs a
short-lived App assertion (RS256 JWT), exchanges it at
``POST /app/installations/{id}/access_tokens`` and caches the result
until shortly before it expires.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta
from functools import lru_cache

import httpx
import jwt

from orchid_sync.config import GitHubConfig, get_settings
from orchid_sync.logging import get_logger

from .exceptions import AuthConfigError, AuthExchangeError

logger = get_logger(__name__)


@dataclass(frozen=True)
class CachedToken:
    """An installation token and its expiry (epoch seconds)."""

    token: str
    expires_at: float


class GitHubAppTokenProvider:
    """Issues and caches GitHub App installation tokens.

    Concurrent callers that find the cache expired may each run an
    exchange; each replaces the cache with a complete ``CachedToken``,
    so the last writer wins and readers never see a partial value.

    Usage:
        provider = GitHubAppTokenProvider(get_settings().github)
        token = await provider.get_token()
    """

    def __init__(
        self,
        config: GitHubConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the provider.

        Args:
            config: GitHub configuration holding App id, installation id and key
            transport: Optional httpx transport (tests use httpx.MockTransport)
            clock: Source of the current epoch time in seconds
        """
        self._config = config
        self._transport = transport
        self._clock = clock
        self._cached: CachedToken | None = None

    @property
    def cached(self) -> CachedToken | None:
        """The currently cached token, if any."""
        return self._cached

    def invalidate(self) -> None:
        """Drop the cached token so the next call performs a fresh exchange."""
        self._cached = None

    async def get_token(self) -> str:
        """Return a bearer token valid for at least the refresh margin.

        Raises:
            AuthConfigError: If App id, installation id or private key is missing
            AuthExchangeError: If the token exchange call fails
        """
        now = self._clock()
        cached = self._cached
        if cached is not None and now < cached.expires_at - self._config.token_refresh_margin_seconds:
            return cached.token

        assertion = self._sign_assertion(now)
        fresh = await self._exchange(assertion)
        self._cached = fresh
        logger.info(
            "Issued installation token for installation {} (expires in {}s)",
            self._config.installation_id,
            int(fresh.expires_at - now),
        )
        return fresh.token

    def _sign_assertion(self, now: float) -> str:
        """Sign the App JWT (backdated 60s for clock drift, valid <= 10 minutes)."""
        config = self._config
        missing = [
            name
            for name, value in (
                ("app_id", config.app_id),
                ("installation_id", config.installation_id),
            )
            if not value
        ]
        private_key = config.load_private_key()
        if not private_key or not private_key.strip():
            missing.append("private_key")
        if missing:
            raise AuthConfigError(f"Missing GitHub App configuration: {', '.join(missing)}")

        issued_at = int(now) - 60
        payload = {
            "iat": issued_at,
            "exp": issued_at + min(config.jwt_ttl_seconds + 60, 600),
            "iss": config.app_id,
        }
        try:
            return jwt.encode(payload, private_key, algorithm="RS256")
        except (jwt.PyJWTError, ValueError) as e:
            raise AuthConfigError(f"GitHub App private key is unusable: {e}") from e

    async def _exchange(self, assertion: str) -> CachedToken:
        """Exchange the App assertion for an installation token."""
        config = self._config
        url = f"/app/installations/{config.installation_id}/access_tokens"
        headers = {
            "Authorization": f"Bearer {assertion}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": config.api_version,
            "User-Agent": config.user_agent,
        }

        try:
            async with httpx.AsyncClient(
                base_url=config.api_url,
                timeout=config.request_timeout_seconds,
                transport=self._transport,
            ) as client:
                response = await client.post(url, headers=headers)
        except httpx.HTTPError as e:
            raise AuthExchangeError(f"Token exchange failed: {e}") from e

        if response.status_code != 201:
            raise AuthExchangeError(
                f"Token exchange failed ({response.status_code}): {response.text}"
            )

        data = response.json()
        token = data.get("token")
        if not isinstance(token, str) or not token:
            raise AuthExchangeError("Token exchange response did not include a token")
        return CachedToken(token=token, expires_at=self._parse_expiry(data.get("expires_at")))

    def _parse_expiry(self, value: object) -> float:
        """Parse GitHub's ISO expiry, defaulting to one hour from now."""
        if isinstance(value, str) and value:
            try:
                return datetime.fromisoformat(value.replace("Z", "+00:00")).timestamp()
            except ValueError:
                logger.warning("Unparseable token expiry {!r}; assuming one hour", value)
        return self._clock() + timedelta(hours=1).total_seconds()


@lru_cache
def get_token_provider() -> GitHubAppTokenProvider:
    """Get the process-wide token provider (one token cache per process)."""
    return GitHubAppTokenProvider(get_settings().github)
