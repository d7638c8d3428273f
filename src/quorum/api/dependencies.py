"""Shared API dependencies for authentication and service wiring."""

from datetime import timedelta
from functools import lru_cache
from typing import Annotated

import httpx
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from quorum.core.errors import AuthError
from quorum.core.security import PasswordHasher, SessionClaims, TokenIssuer
from quorum.core.settings import settings
from quorum.db.session import get_db
from quorum.models import AuthProvider, User
from quorum.services.identity import IdentityResolver
from quorum.services.providers import ProviderVerifier, build_http_client, build_verifiers
from quorum.services.votes import VoteLedger

# Missing credentials are reported as 401 by get_current_claims, not 403.
bearer_scheme = HTTPBearer(auto_error=False)

# Type alias for database session dependency
SessionDep = Annotated[Session, Depends(get_db)]


@lru_cache
def get_token_issuer() -> TokenIssuer:
    """Return the process-wide token issuer built from startup settings."""
    return TokenIssuer(
        settings.secret_key,
        algorithm=settings.jwt_algorithm,
        ttl=timedelta(hours=settings.access_token_expire_hours),
        leeway=timedelta(seconds=settings.jwt_leeway_seconds),
    )


@lru_cache
def get_password_hasher() -> PasswordHasher:
    """Return the shared password hasher."""
    return PasswordHasher(rounds=settings.bcrypt_rounds)


@lru_cache
def get_http_client() -> httpx.Client:
    """Return the shared HTTP client for identity provider calls."""
    return build_http_client(settings)


@lru_cache
def get_provider_verifiers() -> dict[AuthProvider, ProviderVerifier]:
    """Return the Google and Apple verifiers."""
    return build_verifiers(settings, get_http_client())


TokenIssuerDep = Annotated[TokenIssuer, Depends(get_token_issuer)]
PasswordHasherDep = Annotated[PasswordHasher, Depends(get_password_hasher)]
VerifiersDep = Annotated[dict[AuthProvider, ProviderVerifier], Depends(get_provider_verifiers)]


def get_identity_resolver(
    db: SessionDep,
    hasher: PasswordHasherDep,
    issuer: TokenIssuerDep,
    verifiers: VerifiersDep,
) -> IdentityResolver:
    """Build a request-scoped identity resolver."""
    return IdentityResolver(
        db,
        hasher=hasher,
        issuer=issuer,
        verifiers=verifiers,
        max_conflict_retries=settings.max_conflict_retries,
    )


def get_vote_ledger(db: SessionDep) -> VoteLedger:
    """Build a request-scoped vote ledger."""
    return VoteLedger(db, max_conflict_retries=settings.max_conflict_retries)


IdentityResolverDep = Annotated[IdentityResolver, Depends(get_identity_resolver)]
VoteLedgerDep = Annotated[VoteLedger, Depends(get_vote_ledger)]


def get_current_claims(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
    issuer: TokenIssuerDep,
) -> SessionClaims:
    """Verify the bearer token and return its claims.

    Raises:
        AuthError: If the header is missing or the token does not verify.
    """
    if credentials is None:
        raise AuthError("Not authenticated")
    return issuer.verify(credentials.credentials)


CurrentClaimsDep = Annotated[SessionClaims, Depends(get_current_claims)]


def get_current_user(claims: CurrentClaimsDep, db: SessionDep) -> User:
    """Return the account behind the bearer token.

    Raises:
        AuthError: If the account no longer exists.
    """
    user = db.get(User, int(claims.user_id))
    if user is None:
        raise AuthError("User not found")
    return user


# Type alias for current user dependency
CurrentUserDep = Annotated[User, Depends(get_current_user)]
