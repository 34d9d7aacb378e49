from __future__ import annotations

import asyncio
import json
import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Optional

import httpx

from fcm_relay.core.config import settings
from fcm_relay.core.security import SignedAssertion, sign_assertion
from fcm_relay.core.service_account import ServiceAccountCredential

logger = logging.getLogger(__name__)

JWT_BEARER_GRANT_TYPE = "urn:ietf:params:oauth:grant-type:jwt-bearer"
DEFAULT_EXPIRES_IN_SECONDS = 3600


class TokenExchangeError(Exception):
    """The token endpoint refused the assertion or answered with garbage."""


@dataclass(frozen=True)
class AccessToken:
    value: str = field(repr=False)
    expires_at: float

    def is_fresh(self, now: float, margin: float = 0) -> bool:
        return now < self.expires_at - margin


async def exchange_assertion(
    client: httpx.AsyncClient,
    assertion: SignedAssertion,
    token_url: Optional[str] = None,
    *,
    now: Optional[float] = None,
) -> AccessToken:
    """Trade a signed assertion for a bearer access token.

    A single attempt is made. Any failure aborts the whole batch, so every
    error path raises TokenExchangeError.
    """
    url = token_url or settings.FCM_TOKEN_URL
    issued_at = time.time() if now is None else now

    try:
        response = await client.post(
            url,
            data={"grant_type": JWT_BEARER_GRANT_TYPE, "assertion": assertion.token},
            headers={"Content-Type": "application/x-www-form-urlencoded"},
        )
    except httpx.HTTPError as exc:
        raise TokenExchangeError(f"Failed to get access token: {exc}") from exc

    if not response.is_success:
        logger.error("Token endpoint rejected assertion (status %d)", response.status_code)
        raise TokenExchangeError(f"Failed to get access token: {response.text}")

    try:
        payload = response.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise TokenExchangeError("Token endpoint returned a non-JSON body") from exc

    access_token = payload.get("access_token") if isinstance(payload, dict) else None
    if not isinstance(access_token, str) or not access_token:
        raise TokenExchangeError("Token endpoint response has no access_token")

    expires_in = payload.get("expires_in", DEFAULT_EXPIRES_IN_SECONDS)
    if not isinstance(expires_in, (int, float)) or isinstance(expires_in, bool) or expires_in <= 0:
        expires_in = DEFAULT_EXPIRES_IN_SECONDS

    return AccessToken(value=access_token, expires_at=issued_at + expires_in)


async def fetch_access_token(
    client: httpx.AsyncClient,
    credential: ServiceAccountCredential,
) -> AccessToken:
    """Sign a new assertion and exchange it. No caching."""
    now = int(time.time())
    assertion = sign_assertion(credential, now=now)
    return await exchange_assertion(client, assertion, now=now)


class AccessTokenCache:
    """Process-wide cache of access tokens, one per service account.

    Tokens are refreshed lazily once they come within ``margin`` seconds of
    expiry. The lock serialises refreshes so concurrent requests share a
    single exchange.
    """

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self._tokens: dict[tuple[str, str], AccessToken] = {}
        self._lock = asyncio.Lock()

    async def get(
        self,
        client: httpx.AsyncClient,
        credential: ServiceAccountCredential,
        margin: float,
    ) -> AccessToken:
        key = (credential.client_email, credential.project_id)
        async with self._lock:
            cached = self._tokens.get(key)
            if cached is not None and cached.is_fresh(self._clock(), margin):
                return cached

            logger.debug("Refreshing access token for %s", credential.client_email)
            now = int(self._clock())
            assertion = sign_assertion(credential, now=now)
            token = await exchange_assertion(client, assertion, now=now)
            self._tokens[key] = token
            return token

    def clear(self) -> None:
        self._tokens.clear()


# Shared cache instance, only consulted when FCM_TOKEN_CACHE_ENABLED is set
token_cache = AccessTokenCache()


async def get_access_token(
    client: httpx.AsyncClient,
    credential: ServiceAccountCredential,
) -> AccessToken:
    if not settings.FCM_TOKEN_CACHE_ENABLED:
        return await fetch_access_token(client, credential)
    return await token_cache.get(
        client,
        credential,
        margin=settings.FCM_TOKEN_REFRESH_MARGIN_SECONDS,
    )
