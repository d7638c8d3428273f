"""Federated identity verification for Google and Apple sign-in.

Each verifier exchanges the opaque token a client obtained from its provider
for a :class:`ProviderIdentity`. Provider-specific quirks (Google's
string-typed booleans, Apple's ``is_private_email`` flag, key rotation) stay
inside the adapter; callers only ever see the normalized identity or a
:class:`~quorum.core.errors.ProviderError`.
"""

from __future__ import annotations

import json
import logging
import threading
import time
from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

import httpx
from jose import JWTError, jwt

from quorum.core.errors import ProviderError
from quorum.core.settings import Settings
from quorum.models.user import AuthProvider

logger = logging.getLogger(__name__)

HTTP_OK = 200


@dataclass(frozen=True)
class ProviderIdentity:
    """Verified identity facts returned by a provider."""

    subject_id: str
    email: str
    email_verified: bool
    picture: str | None = None


def _as_bool(value: Any) -> bool:
    """Interpret provider booleans, which may arrive as JSON strings."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() == "true"
    return False


def fetch_json(
    client: httpx.Client,
    url: str,
    *,
    deadline_seconds: float,
    what: str,
    params: Mapping[str, str] | None = None,
) -> Any:
    """GET ``url`` and decode its JSON body within ``deadline_seconds`` overall.

    The httpx timeout only bounds each connect/read phase, so a provider
    trickling bytes could outlive it. The body is read in chunks and the
    whole exchange is checked against a single deadline.

    Raises:
        ProviderError: on transport failure, non-200 status, an exceeded
            deadline, or a body that is not JSON.
    """
    deadline = time.monotonic() + deadline_seconds
    chunks: list[bytes] = []
    try:
        with client.stream("GET", url, params=params, timeout=httpx.Timeout(deadline_seconds)) as response:
            if response.status_code != HTTP_OK:
                raise ProviderError(f"{what} returned HTTP {response.status_code}")
            for chunk in response.iter_bytes():
                if time.monotonic() > deadline:
                    raise ProviderError(f"{what} exceeded {deadline_seconds:g}s deadline")
                chunks.append(chunk)
    except httpx.HTTPError as exc:
        raise ProviderError(f"{what} request failed: {exc.__class__.__name__}") from exc

    try:
        return json.loads(b"".join(chunks))
    except ValueError as exc:
        raise ProviderError(f"{what} returned unparseable data") from exc


class ProviderVerifier(ABC):
    """Verify an opaque provider token and return the identity it asserts."""

    provider: AuthProvider

    def verify(self, token: str) -> ProviderIdentity:
        """Return the verified identity or raise ProviderError.

        Failures are logged here since they may indicate an upstream outage
        rather than a malicious caller. Token contents are never logged.
        """
        try:
            return self._verify(token)
        except ProviderError as err:
            logger.warning("%s token verification failed: %s", self.provider.value, err.detail)
            raise

    @abstractmethod
    def _verify(self, token: str) -> ProviderIdentity:
        raise NotImplementedError


class GoogleVerifier(ProviderVerifier):
    """Validate Google ID tokens through the tokeninfo endpoint."""

    provider = AuthProvider.GOOGLE

    def __init__(
        self,
        *,
        http_client: httpx.Client,
        tokeninfo_url: str,
        client_id: str | None = None,
        deadline_seconds: float = 5.0,
    ) -> None:
        self._client = http_client
        self.tokeninfo_url = tokeninfo_url
        self.client_id = client_id
        self.deadline_seconds = deadline_seconds

    def _verify(self, token: str) -> ProviderIdentity:
        data = fetch_json(
            self._client,
            self.tokeninfo_url,
            params={"id_token": token},
            deadline_seconds=self.deadline_seconds,
            what="tokeninfo",
        )
        if not isinstance(data, Mapping):
            raise ProviderError("tokeninfo returned unparseable data")

        subject_id = data.get("sub")
        email = data.get("email")
        if not isinstance(subject_id, str) or not subject_id:
            raise ProviderError("token carries no subject")
        if not isinstance(email, str) or not email:
            raise ProviderError("token carries no email")
        if not _as_bool(data.get("email_verified")):
            raise ProviderError("email not verified")
        if self.client_id and data.get("aud") != self.client_id:
            raise ProviderError("token audience mismatch")

        picture = data.get("picture")
        return ProviderIdentity(
            subject_id=subject_id,
            email=email,
            email_verified=True,
            picture=picture if isinstance(picture, str) and picture else None,
        )


class AppleVerifier(ProviderVerifier):
    """Validate Sign in with Apple identity tokens.

    The token signature is checked against Apple's published JWKS, which is
    cached for ``cache_seconds`` and refetched early when an unknown key id
    shows up (Apple rotates keys). If a refresh fails, the cached keys stay
    in use and no further refresh is tried for ``retry_seconds``. Issuer is
    always checked; audience is checked when a client id is configured.
    """

    provider = AuthProvider.APPLE
    algorithm = "RS256"

    def __init__(
        self,
        *,
        http_client: httpx.Client,
        keys_url: str,
        issuer: str,
        client_id: str | None = None,
        cache_seconds: float = 3600.0,
        retry_seconds: float = 30.0,
        deadline_seconds: float = 5.0,
    ) -> None:
        self._client = http_client
        self.keys_url = keys_url
        self.issuer = issuer
        self.client_id = client_id
        self.cache_seconds = cache_seconds
        self.retry_seconds = retry_seconds
        self.deadline_seconds = deadline_seconds
        self._keys: dict[str, dict[str, Any]] = {}
        self._expires_at = 0.0
        self._retry_after = 0.0
        # Guards the cache fields only; never held across a network call.
        self._lock = threading.Lock()
        if client_id is None:
            logger.warning("APPLE_CLIENT_ID is not set; Apple token audience is not checked")

    def _fetch_keys(self) -> dict[str, dict[str, Any]]:
        payload = fetch_json(
            self._client,
            self.keys_url,
            deadline_seconds=self.deadline_seconds,
            what="key set endpoint",
        )
        keys = payload.get("keys") if isinstance(payload, Mapping) else None
        if not isinstance(keys, list):
            raise ProviderError("key set is unparseable")
        return {key["kid"]: key for key in keys if isinstance(key, Mapping) and "kid" in key}

    def _refresh(self) -> dict[str, dict[str, Any]]:
        """Refetch the key set, falling back to the cached keys on failure."""
        try:
            keys = self._fetch_keys()
        except ProviderError as err:
            with self._lock:
                self._retry_after = time.monotonic() + self.retry_seconds
                cached = self._keys
            if not cached:
                raise
            logger.warning(
                "Apple key set refresh failed (%s); using %d cached keys for %gs",
                err.detail,
                len(cached),
                self.retry_seconds,
            )
            return cached

        with self._lock:
            self._keys = keys
            self._expires_at = time.monotonic() + self.cache_seconds
            self._retry_after = 0.0
        logger.debug("Loaded %d Apple signing keys", len(keys))
        return keys

    def _key_for(self, kid: str) -> dict[str, Any]:
        now = time.monotonic()
        with self._lock:
            keys = self._keys
            stale = now >= self._expires_at
            backing_off = now < self._retry_after
        if (stale or kid not in keys) and not backing_off:
            keys = self._refresh()
        key = keys.get(kid)
        if key is None:
            raise ProviderError("token signed with an unknown key")
        return key

    def _verify(self, token: str) -> ProviderIdentity:
        if token.count(".") != 2:
            raise ProviderError("malformed token")
        try:
            header = jwt.get_unverified_header(token)
        except JWTError as exc:
            raise ProviderError("malformed token header") from exc

        kid = header.get("kid")
        if header.get("alg") != self.algorithm or not isinstance(kid, str):
            raise ProviderError("unexpected token algorithm or key id")

        key = self._key_for(kid)
        try:
            claims = jwt.decode(
                token,
                key,
                algorithms=[self.algorithm],
                audience=self.client_id,
                issuer=self.issuer,
                options={"verify_aud": self.client_id is not None, "verify_at_hash": False},
            )
        except JWTError as exc:
            raise ProviderError(f"token rejected: {exc}") from exc

        subject_id = claims.get("sub")
        email = claims.get("email")
        if not isinstance(subject_id, str) or not subject_id:
            raise ProviderError("token carries no subject")
        if not isinstance(email, str) or not email:
            raise ProviderError("token carries no email")

        # Apple sends these as "true"/"false" strings. Private relay addresses
        # are deliverable and verified, so they are accepted as-is.
        if "email_verified" in claims and not _as_bool(claims["email_verified"]):
            raise ProviderError("email not verified")
        if _as_bool(claims.get("is_private_email")):
            logger.debug("Apple sign-in with a private relay address")

        return ProviderIdentity(subject_id=subject_id, email=email, email_verified=True)


def build_verifiers(
    config: Settings,
    http_client: httpx.Client,
) -> dict[AuthProvider, ProviderVerifier]:
    """Construct one verifier per supported provider from settings."""
    return {
        AuthProvider.GOOGLE: GoogleVerifier(
            http_client=http_client,
            tokeninfo_url=config.google_tokeninfo_url,
            client_id=config.google_client_id,
            deadline_seconds=config.provider_timeout_seconds,
        ),
        AuthProvider.APPLE: AppleVerifier(
            http_client=http_client,
            keys_url=config.apple_keys_url,
            issuer=config.apple_issuer,
            client_id=config.apple_client_id,
            cache_seconds=config.apple_keys_cache_seconds,
            retry_seconds=config.apple_keys_retry_seconds,
            deadline_seconds=config.provider_timeout_seconds,
        ),
    }


def build_http_client(config: Settings) -> httpx.Client:
    """Return the shared HTTP client used for provider calls.

    The client-level timeout is a fallback; each call passes its own
    ``PROVIDER_TIMEOUT_SECONDS`` deadline through :func:`fetch_json`.
    """
    return httpx.Client(
        timeout=httpx.Timeout(config.provider_timeout_seconds),
        headers={"Accept": "application/json"},
    )
