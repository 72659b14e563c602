"""Authentication provider interfaces."""

from abc import ABC, abstractmethod

from portfolio_api.schemas.auth import TokenClaims


class AuthVerificationError(Exception):
    """Raised when a token signature, expiry or shape cannot be trusted."""


class TokenVerifier(ABC):
    """Provider-neutral bearer token verification interface."""

    @abstractmethod
    def verify_token(self, token: str) -> TokenClaims:
        """Verify token and return normalized claims."""


__all__ = ["AuthVerificationError", "TokenVerifier"]
