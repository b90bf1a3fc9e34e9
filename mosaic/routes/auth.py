"""
Mosaic Backend — Authentication Route Handlers
================================================

What:  POST /auth/register and POST /auth/login.
How:   Validates the JSON body with CredentialsRequest and delegates to AuthService.
"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from mosaic.database import get_db_session
from mosaic.schemas.auth import CredentialsRequest, RegisterResponse, TokenResponse
from mosaic.schemas.common import ErrorResponse
from mosaic.services.auth_service import auth_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Auth"])


@router.post(
    "/register",
    status_code=201,
    response_model=RegisterResponse,
    responses={
        409: {"description": "Email already registered", "model": ErrorResponse},
    },
    summary="Create an account",
)
async def register(
    body: CredentialsRequest,
    db: AsyncSession = Depends(get_db_session),
) -> RegisterResponse:
    user = await auth_service.register(db, body.email, body.password)
    return RegisterResponse.model_validate(user)


@router.post(
    "/login",
    response_model=TokenResponse,
    responses={
        401: {"description": "Invalid email or password", "model": ErrorResponse},
    },
    summary="Exchange credentials for a bearer token",
)
async def login(
    body: CredentialsRequest,
    db: AsyncSession = Depends(get_db_session),
) -> TokenResponse:
    token = await auth_service.login(db, body.email, body.password)
    return TokenResponse(token=token)
