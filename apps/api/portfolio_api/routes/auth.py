"""Authentication routes."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends

from portfolio_api.core.config import Settings, get_settings
from portfolio_api.domain.bootstrap import PrincipalBootstrap
from portfolio_api.errors import ApiError
from portfolio_api.routes.dependencies import get_authenticated_principal, get_bootstrap, get_principal_service
from portfolio_api.schemas.auth import AuthPrincipal, LoginRequest, LoginResponse, UserProfile
from portfolio_api.schemas.error import ErrorResponse
from portfolio_api.services.principal import PrincipalService

router = APIRouter(prefix="/auth", tags=["Auth"])
logger = logging.getLogger(__name__)


@router.post(
    "/login",
    response_model=LoginResponse,
    responses={400: {"model": ErrorResponse}, 401: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def login(
    payload: LoginRequest,
    settings: Annotated[Settings, Depends(get_settings)],
    bootstrap: Annotated[PrincipalBootstrap, Depends(get_bootstrap)],
    service: Annotated[PrincipalService, Depends(get_principal_service)],
) -> LoginResponse:
    try:
        await bootstrap.ensure_principal(settings.single_user_id)
    except Exception as exc:
        logger.error("auth.login_failed reason=bootstrap_failed error=%s", type(exc).__name__)
        raise ApiError(status_code=500, message="Failed to login") from exc

    return service.login(secret=payload.secret)


@router.get(
    "/profile",
    response_model=UserProfile,
    responses={401: {"model": ErrorResponse}, 403: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def get_profile(
    principal: Annotated[AuthPrincipal, Depends(get_authenticated_principal)],
    service: Annotated[PrincipalService, Depends(get_principal_service)],
) -> UserProfile:
    return service.get_profile(user_id=principal.user_id)
