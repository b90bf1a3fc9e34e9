"""
Mosaic Backend — Dependency Wiring
====================================

What:  FastAPI dependencies shared by the routers, and the factory that
       builds the storage strategy for an application instance.

Per-application objects (built in create_app, kept on app.state):
    storage                 StorageBackend selected by ENABLE_S3
    contribution_limiter    SlidingWindowRateLimiter for uploads

Dependency order on protected routes:
    get_current_user runs first and only decodes the JWT, so a request with
    a missing or invalid token gets 401 before any storage or database work.
    The contribution rate limit is checked after authentication.
"""

from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from mosaic.config import Settings, settings
from mosaic.exceptions import AuthenticationError
from mosaic.services.auth_service import CurrentUser, auth_service
from mosaic.services.local_storage import LocalStorageBackend
from mosaic.services.rate_limiter import SlidingWindowRateLimiter
from mosaic.services.s3_storage import S3StorageBackend
from mosaic.services.storage_base import StorageBackend

bearer_scheme = HTTPBearer(auto_error=False)


def build_storage_backend(config: Settings = settings) -> StorageBackend:
    """Construct the storage strategy selected by configuration."""
    if config.enable_s3:
        return S3StorageBackend(
            bucket=config.aws_bucket_name,
            region=config.aws_region,
            access_key_id=config.aws_access_key_id,
            secret_access_key=config.aws_secret_access_key,
            endpoint_url=config.s3_endpoint_url,
            public_base_url=config.s3_public_base_url,
            chunk_size=config.storage_chunk_size,
        )
    return LocalStorageBackend(root=config.uploads_root, chunk_size=config.storage_chunk_size)


def build_contribution_limiter(config: Settings = settings) -> SlidingWindowRateLimiter:
    return SlidingWindowRateLimiter(
        limit=config.contribution_rate_limit_requests,
        window=config.contribution_rate_limit_window,
    )


def get_storage(request: Request) -> StorageBackend:
    """The storage strategy of the application serving this request."""
    return request.app.state.storage


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> CurrentUser:
    """
    Resolve the caller from `Authorization: Bearer <jwt>`.

    Raises:
        AuthenticationError: Header missing, not a bearer token, or token invalid (→ 401).
    """
    if credentials is None or not credentials.credentials:
        raise AuthenticationError(message="Authorization header missing or invalid")
    return auth_service.decode_token(credentials.credentials)


def client_key(request: Request) -> str:
    """Rate-limit key for the calling client (its IP address)."""
    return request.client.host if request.client else "unknown"


async def enforce_contribution_rate_limit(
    request: Request,
    user: CurrentUser = Depends(get_current_user),
) -> CurrentUser:
    """
    Count one contribution attempt for the calling client.

    Returns the authenticated user so routes can depend on this alone.
    Async so the limiter is only touched from the event loop thread.

    Raises:
        RateLimitExceededError: Too many uploads in the current window (→ 429).
    """
    request.app.state.contribution_limiter.hit(client_key(request))
    return user
