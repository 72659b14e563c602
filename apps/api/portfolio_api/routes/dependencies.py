"""Dependency wiring for routes, including the single-tenant auth gate."""

from __future__ import annotations

import logging
from secrets import compare_digest
from typing import Annotated
from uuid import uuid4

from fastapi import Depends, Request, Security
from fastapi.security import APIKeyHeader, HTTPAuthorizationCredentials, HTTPBearer
from fastapi.security.utils import get_authorization_scheme_param

from portfolio_api.adapters.auth import AuthVerificationError, JwtTokenVerifier, TokenVerifier
from portfolio_api.core.config import Settings, get_settings
from portfolio_api.core.logging_safety import safe_log_identifier
from portfolio_api.domain.bootstrap import PrincipalBootstrap
from portfolio_api.domain.holdings import HoldingKind
from portfolio_api.errors import ApiError
from portfolio_api.repositories.memory import InMemoryStore
from portfolio_api.schemas.auth import AuthPrincipal
from portfolio_api.services.portfolio import PortfolioService
from portfolio_api.services.principal import PrincipalService

bearer_scheme = HTTPBearer(auto_error=False, scheme_name="bearerAuth")
shared_secret_scheme = APIKeyHeader(
    name="X-Shared-Secret",
    auto_error=False,
    scheme_name="sharedSecret",
)
logger = logging.getLogger(__name__)

_UNAUTHORIZED_MESSAGE = "Authentication required"
_INVALID_TOKEN_MESSAGE = "Invalid or expired token"
_FORBIDDEN_MESSAGE = "Invalid user for this tenant"
_SERVER_ERROR_MESSAGE = "Authentication failed"


def _request_correlation_id(request: Request) -> str:
    existing = getattr(request.state, "correlation_id", None)
    if isinstance(existing, str) and existing:
        return existing

    correlation_id = request.headers.get("X-Correlation-Id")
    if correlation_id:
        request.state.correlation_id = correlation_id
        return correlation_id

    generated = f"req-{uuid4()}"
    request.state.correlation_id = generated
    return generated


def _shared_secret_from_authorization(request: Request) -> str | None:
    scheme, value = get_authorization_scheme_param(request.headers.get("Authorization"))
    if scheme == "Shared" and value:
        return value
    return None


def _claimed_user_id(subject: str) -> int | None:
    try:
        return int(subject)
    except ValueError:
        return None


def _secrets_match(provided: str, configured: str) -> bool:
    return compare_digest(provided.encode("utf-8"), configured.encode("utf-8"))


def get_store(request: Request) -> InMemoryStore:
    return request.app.state.store


def get_bootstrap(request: Request) -> PrincipalBootstrap:
    return request.app.state.bootstrap


def get_token_verifier(settings: Annotated[Settings, Depends(get_settings)]) -> TokenVerifier | None:
    """Resolve the bearer verifier; ``None`` when no signing secret is configured."""
    if not settings.jwt_secret:
        return None
    return JwtTokenVerifier(secret=settings.jwt_secret)


async def get_authenticated_principal(
    request: Request,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Security(bearer_scheme)],
    shared_secret_header: Annotated[str | None, Security(shared_secret_scheme)],
    settings: Annotated[Settings, Depends(get_settings)],
    verifier: Annotated[TokenVerifier | None, Depends(get_token_verifier)],
    bootstrap: Annotated[PrincipalBootstrap, Depends(get_bootstrap)],
) -> AuthPrincipal:
    """Admit or reject the request and attach the resolved user id to request state.

    Every request resolves to the configured single user. A bearer token is
    judged first and exclusively when present; otherwise a shared secret from
    ``Authorization: Shared <value>`` or ``X-Shared-Secret`` must match the
    configured one exactly.
    """
    safe_correlation_id = safe_log_identifier(_request_correlation_id(request), prefix="cid")
    single_user_id = settings.single_user_id

    def reject(status_code: int, message: str, reason: str) -> ApiError:
        logger.warning(
            "auth.rejected correlation_id=%s method=%s path=%s status=%s reason=%s",
            safe_correlation_id,
            request.method,
            request.url.path,
            status_code,
            reason,
        )
        return ApiError(status_code=status_code, message=message)

    try:
        await bootstrap.ensure_principal(single_user_id)
    except Exception as exc:
        logger.error(
            "auth.error correlation_id=%s method=%s path=%s reason=bootstrap_failed error=%s",
            safe_correlation_id,
            request.method,
            request.url.path,
            type(exc).__name__,
        )
        raise ApiError(status_code=500, message=_SERVER_ERROR_MESSAGE) from exc

    try:
        if credentials is not None:
            if verifier is None:
                raise reject(401, _UNAUTHORIZED_MESSAGE, "signing_secret_not_configured")

            try:
                claims = verifier.verify_token(credentials.credentials)
            except AuthVerificationError as exc:
                raise reject(401, _INVALID_TOKEN_MESSAGE, "token_verification_failed") from exc

            if claims.subject is not None and _claimed_user_id(claims.subject) != single_user_id:
                raise reject(403, _FORBIDDEN_MESSAGE, "tenant_mismatch")
            principal = AuthPrincipal(user_id=single_user_id, method="bearer")
        else:
            provided = _shared_secret_from_authorization(request) or shared_secret_header
            configured = settings.shared_secret
            if not (provided and configured and _secrets_match(provided, configured)):
                raise reject(401, _UNAUTHORIZED_MESSAGE, "no_matching_credential")
            principal = AuthPrincipal(user_id=single_user_id, method="shared_secret")
    except ApiError:
        raise
    except Exception as exc:
        logger.exception(
            "auth.error correlation_id=%s method=%s path=%s reason=unexpected",
            safe_correlation_id,
            request.method,
            request.url.path,
        )
        raise ApiError(status_code=500, message=_SERVER_ERROR_MESSAGE) from exc

    logger.info(
        "auth.accepted correlation_id=%s method=%s path=%s principal_id=%s auth_method=%s",
        safe_correlation_id,
        request.method,
        request.url.path,
        safe_log_identifier(principal.user_id, prefix="pid"),
        principal.method,
    )
    request.state.user_id = principal.user_id
    return principal


def get_principal_service(
    store: Annotated[InMemoryStore, Depends(get_store)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> PrincipalService:
    return PrincipalService(store, settings)


def portfolio_service_dependency(kind: HoldingKind):
    """Build a dependency that yields a service bound to one holding kind."""

    def get_portfolio_service(store: Annotated[InMemoryStore, Depends(get_store)]) -> PortfolioService:
        return PortfolioService(store, kind)

    return get_portfolio_service
