"""Single-tenant principal service layer."""

import logging
from secrets import compare_digest

from portfolio_api.core.config import Settings
from portfolio_api.core.logging_safety import safe_log_identifier
from portfolio_api.core.security import create_access_token
from portfolio_api.errors import ApiError
from portfolio_api.repositories.memory import InMemoryStore, UserRecord
from portfolio_api.schemas.auth import LoginResponse, UserProfile, UserSummary

logger = logging.getLogger(__name__)


class PrincipalService:
    def __init__(self, store: InMemoryStore, settings: Settings) -> None:
        self._store = store
        self._settings = settings

    def login(self, *, secret: str) -> LoginResponse:
        """Exchange the shared secret for a bearer token bound to the single user."""
        configured = self._settings.shared_secret
        if not configured:
            raise ApiError(status_code=400, message="Shared secret not configured on server")

        if not compare_digest(secret.strip().encode("utf-8"), configured.encode("utf-8")):
            logger.warning("auth.login_rejected reason=invalid_shared_secret")
            raise ApiError(status_code=401, message="Invalid shared secret")

        if not self._settings.jwt_secret:
            logger.error("auth.login_failed reason=signing_secret_not_configured")
            raise ApiError(status_code=500, message="Failed to login")

        user = self._require_user(self._settings.single_user_id)
        token = create_access_token(
            secret=self._settings.jwt_secret,
            user_id=user.id,
            email=user.email,
            expires_minutes=self._settings.token_expires_minutes,
        )
        logger.info("auth.login_succeeded principal_id=%s", safe_log_identifier(user.id, prefix="pid"))
        return LoginResponse(
            message="Login successful",
            user=UserSummary(id=user.id, email=user.email, name=user.name),
            token=token,
        )

    def get_profile(self, *, user_id: int) -> UserProfile:
        user = self._require_user(user_id)
        return UserProfile(id=user.id, email=user.email, name=user.name, created_at=user.created_at)

    def _require_user(self, user_id: int) -> UserRecord:
        user = self._store.get_user(user_id)
        if user is None:
            raise ApiError(status_code=404, message="User not found")
        return user
