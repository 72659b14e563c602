"""HS256 JWT verifier adapter."""

from __future__ import annotations

import jwt

from portfolio_api.adapters.auth.base import AuthVerificationError, TokenVerifier
from portfolio_api.core.security import decode_access_token
from portfolio_api.schemas.auth import TokenClaims

# Tokens minted by older clients carried the id under ``userId``.
_SUBJECT_CLAIMS = ("sub", "userId")


class JwtTokenVerifier(TokenVerifier):
    """Verifies locally signed JWTs and extracts the identity claim."""

    def __init__(self, secret: str) -> None:
        if not secret:
            raise ValueError("jwt_secret_blank")
        self._secret = secret

    def verify_token(self, token: str) -> TokenClaims:
        try:
            decoded = decode_access_token(token=token, secret=self._secret)
        except jwt.ExpiredSignatureError as exc:
            raise AuthVerificationError("Bearer token expired") from exc
        except jwt.InvalidTokenError as exc:
            raise AuthVerificationError("Invalid bearer token") from exc

        for claim in _SUBJECT_CLAIMS:
            value = decoded.get(claim)
            if value is not None and str(value).strip():
                return TokenClaims(subject=str(value).strip())
        return TokenClaims(subject=None)


__all__ = ["JwtTokenVerifier"]
