# src/quorum/main.py
"""Main entry point for the Quorum application."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from quorum.api import auth_router, comments_router, posts_router, users_router
from quorum.api.dependencies import (
    get_http_client,
    get_password_hasher,
    get_provider_verifiers,
    get_token_issuer,
)
from quorum.core.errors import ProviderError, QuorumError, TransientError
from quorum.core.logging import configure_logging
from quorum.core.settings import settings

configure_logging(settings.log_level)
logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title="Quorum API",
    description="Accounts, sign-in and voting for a discussion forum",
    version=settings.app_version,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)

# Include API routers
app.include_router(auth_router, prefix="/api")
app.include_router(posts_router, prefix="/api")
app.include_router(comments_router, prefix="/api")
app.include_router(users_router, prefix="/api")


@app.exception_handler(QuorumError)
async def quorum_error_handler(request: Request, exc: QuorumError) -> JSONResponse:
    """Render domain errors with their own status code."""
    if isinstance(exc, TransientError):
        logger.error("%s %s failed transiently: %s", request.method, request.url.path, exc.detail)
    elif isinstance(exc, ProviderError):
        logger.warning("Provider error escaped to %s: %s", request.url.path, exc.detail)
        exc = ProviderError()
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == status.HTTP_401_UNAUTHORIZED else None
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail}, headers=headers)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report malformed request bodies as 400 with a readable message."""
    messages = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        message = error.get("msg", "invalid value")
        messages.append(f"{location}: {message}" if location else message)
    logger.debug("Rejected request to %s: %s", request.url.path, messages)
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": "; ".join(messages) or "Invalid request"},
    )


@app.on_event("startup")
async def on_startup() -> None:
    # Build the signing and hashing services now so misconfiguration fails fast.
    get_token_issuer()
    get_password_hasher()
    logger.info("%s %s started", settings.app_name, settings.app_version)


@app.on_event("shutdown")
async def on_shutdown() -> None:
    if get_http_client.cache_info().currsize:
        get_http_client().close()
        get_http_client.cache_clear()
        get_provider_verifiers.cache_clear()


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint to verify the service is running."""
    return {"status": "ok"}


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint with basic information about the API."""
    return {
        "name": "Quorum API",
        "version": settings.app_version,
        "docs": "/docs",
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("quorum.main:app", host="0.0.0.0", port=8000, reload=settings.debug)
