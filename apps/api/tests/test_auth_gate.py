"""Single-tenant auth gate tests."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
import os
import unittest

from fastapi import Request
from fastapi.testclient import TestClient
import jwt

from portfolio_api.adapters.auth.base import TokenVerifier
from portfolio_api.core.config import get_settings
from portfolio_api.core.security import create_access_token
from portfolio_api.main import create_app
from portfolio_api.routes.dependencies import get_principal_service, get_token_verifier
from portfolio_api.schemas.auth import TokenClaims
from portfolio_api.services.principal import PrincipalService

SIGNING_SECRET = "test-signing-secret-0123456789abcdef"
OTHER_SIGNING_SECRET = "another-signing-secret-0123456789abcdef"
PROFILE_PATH = "/api/v1/auth/profile"
STOCKS_PATH = "/api/v1/portfolio/stocks"


def _token(claims: dict, *, secret: str = SIGNING_SECRET) -> str:
    now = datetime.now(UTC)
    payload = {"iat": int(now.timestamp()), "exp": int((now + timedelta(hours=1)).timestamp()), **claims}
    return jwt.encode(payload, secret, algorithm="HS256")


class _SettingsEnvCase(unittest.TestCase):
    _env_keys = (
        "PORTFOLIO_JWT_SECRET",
        "PORTFOLIO_SHARED_SECRET",
        "PORTFOLIO_SINGLE_USER_ID",
        "PORTFOLIO_SINGLE_USER_EMAIL_TEMPLATE",
        "PORTFOLIO_SINGLE_USER_NAME",
    )

    def setUp(self) -> None:
        self._old_env = {k: os.environ.get(k) for k in self._env_keys}
        for key in self._env_keys:
            os.environ.pop(key, None)
        os.environ["PORTFOLIO_JWT_SECRET"] = SIGNING_SECRET
        os.environ["PORTFOLIO_SHARED_SECRET"] = "s3cr3t"
        get_settings.cache_clear()

    def tearDown(self) -> None:
        for key, value in self._old_env.items():
            if value is None:
                os.environ.pop(key, None)
            else:
                os.environ[key] = value
        get_settings.cache_clear()


class SharedSecretGateTests(_SettingsEnvCase):
    def test_request_without_credentials_returns_401_with_error_body(self) -> None:
        app = create_app()
        client = TestClient(app)

        response = client.get(STOCKS_PATH)

        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json(), {"error": "Authentication required"})

    def test_matching_shared_secret_header_is_admitted_on_every_repetition(self) -> None:
        app = create_app()
        client = TestClient(app)

        for _ in range(3):
            response = client.get(STOCKS_PATH, headers={"X-Shared-Secret": "s3cr3t"})
            self.assertEqual(response.status_code, 200)
            self.assertEqual(response.json(), [])

        self.assertEqual(app.state.store.user_write_count, 1)

    def test_wrong_shared_secret_returns_401_with_same_message_as_missing(self) -> None:
        app = create_app()
        client = TestClient(app)

        wrong = client.get(STOCKS_PATH, headers={"X-Shared-Secret": "wrong"})
        missing = client.get(STOCKS_PATH)

        self.assertEqual(wrong.status_code, 401)
        self.assertEqual(wrong.json(), missing.json())

    def test_shared_secret_comparison_is_exact(self) -> None:
        app = create_app()
        client = TestClient(app)

        for candidate in ("S3CR3T", "s3cr3", "s3cr3tt", "xs3cr3t"):
            with self.subTest(candidate=candidate):
                response = client.get(STOCKS_PATH, headers={"X-Shared-Secret": candidate})
                self.assertEqual(response.status_code, 401)

    def test_authorization_shared_scheme_is_accepted(self) -> None:
        app = create_app()
        client = TestClient(app)

        response = client.get(STOCKS_PATH, headers={"Authorization": "Shared s3cr3t"})

        self.assertEqual(response.status_code, 200)

    def test_authorization_shared_scheme_takes_precedence_over_header(self) -> None:
        app = create_app()
        client = TestClient(app)

        response = client.get(
            STOCKS_PATH,
            headers={"Authorization": "Shared wrong", "X-Shared-Secret": "s3cr3t"},
        )

        self.assertEqual(response.status_code, 401)

    def test_shared_secret_rejected_when_none_is_configured(self) -> None:
        os.environ.pop("PORTFOLIO_SHARED_SECRET", None)
        get_settings.cache_clear()
        app = create_app()
        client = TestClient(app)

        response = client.get(STOCKS_PATH, headers={"X-Shared-Secret": "s3cr3t"})

        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json(), {"error": "Authentication required"})

    def test_rejection_is_logged_without_the_presented_secret(self) -> None:
        app = create_app()
        client = TestClient(app)

        with self.assertLogs("portfolio_api.routes.dependencies", level="WARNING") as captured:
            client.get(STOCKS_PATH, headers={"X-Shared-Secret": "leaky-value"})

        joined = "\n".join(captured.output)
        self.assertIn("auth.rejected", joined)
        self.assertIn("reason=no_matching_credential", joined)
        self.assertNotIn("leaky-value", joined)

    def test_resolved_user_id_is_attached_to_request_state(self) -> None:
        app = create_app()
        client = TestClient(app)
        observed: dict[str, int] = {}

        def _override_principal_service(request: Request) -> PrincipalService:
            observed["user_id"] = request.state.user_id
            return PrincipalService(app.state.store, get_settings())

        app.dependency_overrides[get_principal_service] = _override_principal_service

        response = client.get(PROFILE_PATH, headers={"X-Shared-Secret": "s3cr3t"})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(observed["user_id"], 1)


class BearerTokenGateTests(_SettingsEnvCase):
    def test_valid_token_for_configured_user_is_admitted(self) -> None:
        app = create_app()
        client = TestClient(app)
        token = create_access_token(secret=SIGNING_SECRET, user_id=1, email="family1@local", expires_minutes=5)

        response = client.get(PROFILE_PATH, headers={"Authorization": f"Bearer {token}"})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["id"], 1)

    def test_legacy_user_id_claim_is_honoured(self) -> None:
        app = create_app()
        client = TestClient(app)

        allowed = client.get(PROFILE_PATH, headers={"Authorization": f"Bearer {_token({'userId': 1})}"})
        forbidden = client.get(PROFILE_PATH, headers={"Authorization": f"Bearer {_token({'userId': 2})}"})

        self.assertEqual(allowed.status_code, 200)
        self.assertEqual(forbidden.status_code, 403)

    def test_token_without_identity_claim_resolves_to_configured_user(self) -> None:
        app = create_app()
        client = TestClient(app)

        response = client.get(PROFILE_PATH, headers={"Authorization": f"Bearer {_token({})}"})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["id"], 1)

    def test_token_for_other_user_returns_403(self) -> None:
        app = create_app()
        client = TestClient(app)

        for subject in ("2", "abc"):
            with self.subTest(subject=subject):
                response = client.get(STOCKS_PATH, headers={"Authorization": f"Bearer {_token({'sub': subject})}"})
                self.assertEqual(response.status_code, 403)
                self.assertEqual(response.json(), {"error": "Invalid user for this tenant"})

    def test_incorrectly_signed_token_returns_401(self) -> None:
        app = create_app()
        client = TestClient(app)
        token = _token({"sub": "1"}, secret=OTHER_SIGNING_SECRET)

        response = client.get(STOCKS_PATH, headers={"Authorization": f"Bearer {token}"})

        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json(), {"error": "Invalid or expired token"})

    def test_malformed_token_returns_401(self) -> None:
        app = create_app()
        client = TestClient(app)

        response = client.get(STOCKS_PATH, headers={"Authorization": "Bearer not.a.jwt"})

        self.assertEqual(response.status_code, 401)

    def test_expired_token_returns_401(self) -> None:
        app = create_app()
        client = TestClient(app)
        past = datetime.now(UTC) - timedelta(hours=2)
        token = jwt.encode(
            {"sub": "1", "iat": int(past.timestamp()), "exp": int((past + timedelta(minutes=5)).timestamp())},
            SIGNING_SECRET,
            algorithm="HS256",
        )

        response = client.get(STOCKS_PATH, headers={"Authorization": f"Bearer {token}"})

        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json(), {"error": "Invalid or expired token"})

    def test_bearer_without_signing_secret_fails_closed(self) -> None:
        os.environ.pop("PORTFOLIO_JWT_SECRET", None)
        get_settings.cache_clear()
        app = create_app()
        client = TestClient(app)

        response = client.get(STOCKS_PATH, headers={"Authorization": "Bearer anything"})

        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json(), {"error": "Authentication required"})

    def test_bearer_is_judged_alone_when_shared_secret_also_present(self) -> None:
        app = create_app()
        client = TestClient(app)
        token = _token({"sub": "1"}, secret=OTHER_SIGNING_SECRET)

        response = client.get(
            STOCKS_PATH,
            headers={"Authorization": f"Bearer {token}", "X-Shared-Secret": "s3cr3t"},
        )

        self.assertEqual(response.status_code, 401)

    def test_unexpected_verifier_failure_returns_500(self) -> None:
        class _ExplodingVerifier(TokenVerifier):
            def verify_token(self, token: str) -> TokenClaims:
                raise RuntimeError("verifier backend down")

        app = create_app()
        app.dependency_overrides[get_token_verifier] = lambda: _ExplodingVerifier()
        client = TestClient(app)

        with self.assertLogs("portfolio_api.routes.dependencies", level="ERROR"):
            response = client.get(STOCKS_PATH, headers={"Authorization": "Bearer whatever"})

        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json(), {"error": "Authentication failed"})

    def test_configured_single_user_id_is_respected(self) -> None:
        os.environ["PORTFOLIO_SINGLE_USER_ID"] = "7"
        get_settings.cache_clear()
        app = create_app()
        client = TestClient(app)

        allowed = client.get(PROFILE_PATH, headers={"Authorization": f"Bearer {_token({'sub': '7'})}"})
        forbidden = client.get(PROFILE_PATH, headers={"Authorization": f"Bearer {_token({'sub': '1'})}"})

        self.assertEqual(allowed.status_code, 200)
        self.assertEqual(allowed.json()["id"], 7)
        self.assertEqual(allowed.json()["email"], "family7@local")
        self.assertEqual(forbidden.status_code, 403)


class BootstrapGateTests(_SettingsEnvCase):
    def test_first_request_creates_principal_once(self) -> None:
        os.environ["PORTFOLIO_SINGLE_USER_NAME"] = "The Family"
        get_settings.cache_clear()
        app = create_app()
        client = TestClient(app)
        store = app.state.store

        client.get(STOCKS_PATH)
        client.get(STOCKS_PATH, headers={"X-Shared-Secret": "s3cr3t"})

        self.assertEqual(store.user_write_count, 1)
        user = store.get_user(1)
        self.assertIsNotNone(user)
        self.assertEqual(user.email, "family1@local")
        self.assertEqual(user.name, "The Family")
        self.assertTrue(user.password_hash)

    def test_bootstrap_failure_returns_500_and_next_request_retries(self) -> None:
        app = create_app()
        client = TestClient(app)
        store = app.state.store
        store.user_write_failure_message = "database unavailable"

        with self.assertLogs("portfolio_api", level="ERROR") as captured:
            failed = client.get(STOCKS_PATH, headers={"X-Shared-Secret": "s3cr3t"})

        self.assertEqual(failed.status_code, 500)
        self.assertEqual(failed.json(), {"error": "Authentication failed"})
        self.assertNotIn("database unavailable", failed.text)
        self.assertTrue(any("bootstrap.failed" in line for line in captured.output))
        self.assertIsNone(store.get_user(1))

        store.user_write_failure_message = None
        recovered = client.get(STOCKS_PATH, headers={"X-Shared-Secret": "s3cr3t"})

        self.assertEqual(recovered.status_code, 200)
        self.assertEqual(store.user_write_count, 1)

    def test_bootstrap_failure_takes_priority_over_credentials(self) -> None:
        app = create_app()
        client = TestClient(app)
        app.state.store.user_write_failure_message = "database unavailable"

        response = client.get(STOCKS_PATH)

        self.assertEqual(response.status_code, 500)


if __name__ == "__main__":
    unittest.main()
