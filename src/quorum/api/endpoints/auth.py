# src/quorum/api/endpoints/auth.py
"""Authentication endpoints: local credentials, Google and Apple sign-in."""

from __future__ import annotations

from fastapi import APIRouter, status

from quorum.api.dependencies import CurrentClaimsDep, IdentityResolverDep
from quorum.models import AuthProvider
from quorum.schemas.user import (
    AuthResponse,
    LoginRequest,
    OAuthRequest,
    RegisterRequest,
    UserResponse,
)
from quorum.services.identity import AuthResult

router = APIRouter(tags=["authentication"])


def _auth_response(result: AuthResult, message: str | None = None) -> AuthResponse:
    return AuthResponse(
        message=message,
        token=result.token,
        user=UserResponse.model_validate(result.user),
    )


@router.post(
    "/register",
    summary="Register a local account",
    status_code=status.HTTP_201_CREATED,
    response_model=AuthResponse,
    response_model_exclude_none=True,
)
def register_user(payload: RegisterRequest, resolver: IdentityResolverDep) -> AuthResponse:
    """Create an email/password account and return a session token."""
    result = resolver.register(
        username=payload.username,
        email=str(payload.email),
        password=payload.password,
        avatar=payload.avatar,
    )
    return _auth_response(result, "User registered successfully")


@router.post(
    "/login",
    summary="Log in with email and password",
    response_model=AuthResponse,
    response_model_exclude_none=True,
)
def login_user(payload: LoginRequest, resolver: IdentityResolverDep) -> AuthResponse:
    """Authenticate a local account."""
    result = resolver.login(email=payload.email, password=payload.password)
    return _auth_response(result, "Login successful")


@router.post(
    "/auth/google",
    summary="Sign in with Google",
    response_model=AuthResponse,
    response_model_exclude_none=True,
)
def google_login(payload: OAuthRequest, resolver: IdentityResolverDep) -> AuthResponse:
    """Exchange a Google ID token for a session, creating or linking the account."""
    result = resolver.oauth_login(
        AuthProvider.GOOGLE,
        payload.token,
        username=payload.username,
        avatar=payload.avatar,
    )
    return _auth_response(result)


@router.post(
    "/auth/apple",
    summary="Sign in with Apple",
    response_model=AuthResponse,
    response_model_exclude_none=True,
)
def apple_login(payload: OAuthRequest, resolver: IdentityResolverDep) -> AuthResponse:
    """Exchange an Apple identity token for a session, creating or linking the account."""
    result = resolver.oauth_login(
        AuthProvider.APPLE,
        payload.token,
        username=payload.username,
        avatar=payload.avatar,
    )
    return _auth_response(result)


@router.get("/me", summary="Current account", response_model=UserResponse)
def get_me(claims: CurrentClaimsDep, resolver: IdentityResolverDep) -> UserResponse:
    """Return the account behind the bearer token; 404 if it was deleted."""
    return UserResponse.model_validate(resolver.get_user(claims.user_id))
