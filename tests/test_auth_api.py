"""API tests for /auth: registration, login lockout, refresh, session gates and password reset."""

import unittest
from datetime import timedelta

from app.core.security import (
    create_access_token,
    create_email_verification_token,
    create_refresh_token,
)
from app.models import User
from app.services.lockout import utcnow
from tests.support import STRONG_PASSWORD, ApiTestCase


class TestRegister(ApiTestCase):
    def test_register_returns_account_and_tokens(self) -> None:
        response = self.register(email="Alice@Stratdesk.io")
        self.assertEqual(response.status_code, 201, response.text)
        body = response.json()
        self.assertTrue(body["success"])
        user = body["data"]["user"]
        self.assertEqual(user["email"], "alice@stratdesk.io")
        self.assertEqual(user["role"], "user")
        self.assertNotIn("passwordHash", user)
        self.assertNotIn("passwordResetToken", user)
        tokens = body["data"]["tokens"]
        self.assertEqual(tokens["tokenType"], "bearer")
        self.assertEqual(tokens["expiresIn"], 3600)
        self.assertFalse(body["data"]["emailVerificationRequired"])

    def test_duplicate_email_is_case_insensitive(self) -> None:
        self.assertEqual(self.register(email="alice@stratdesk.io").status_code, 201)
        response = self.register(email="ALICE@stratdesk.io")
        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.json()["error"]["code"], "USER_EXISTS")

    def test_weak_password_is_a_validation_error(self) -> None:
        response = self.register(password="password")
        self.assertEqual(response.status_code, 400)
        error = response.json()["error"]
        self.assertEqual(error["code"], "VALIDATION_ERROR")
        self.assertIn("password", [d["field"] for d in error["details"]])

    def test_mismatched_confirmation(self) -> None:
        response = self.register(confirmPassword="Other1!Pass")
        self.assertEqual(response.status_code, 400)
        fields = [d["field"] for d in response.json()["error"]["details"]]
        self.assertIn("confirmPassword", fields)


class TestLogin(ApiTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.user = self.account("bob@stratdesk.io")

    def test_login_success_resets_state(self) -> None:
        response = self.login("BOB@stratdesk.io")
        self.assertEqual(response.status_code, 200, response.text)
        self.assertIn("accessToken", response.json()["data"]["tokens"])
        stored = self.fresh(User, self.user.id)
        self.assertEqual(stored.failed_login_attempts, 0)
        self.assertIsNotNone(stored.last_login)

    def test_unknown_email_looks_like_wrong_password(self) -> None:
        response = self.login("nobody@stratdesk.io")
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()["error"]["code"], "INVALID_CREDENTIALS")

    def test_wrong_password_reports_attempts_remaining(self) -> None:
        response = self.login("bob@stratdesk.io", "Wr0ng!Pass")
        self.assertEqual(response.status_code, 401)
        error = response.json()["error"]
        self.assertEqual(error["code"], "INVALID_CREDENTIALS")
        self.assertEqual(error["attemptsRemaining"], 4)

    def test_fifth_failure_locks_even_correct_password(self) -> None:
        for expected_remaining in (4, 3, 2, 1, 0):
            response = self.login("bob@stratdesk.io", "Wr0ng!Pass")
            self.assertEqual(response.json()["error"]["attemptsRemaining"], expected_remaining)

        response = self.login("bob@stratdesk.io", STRONG_PASSWORD)
        self.assertEqual(response.status_code, 423)
        error = response.json()["error"]
        self.assertEqual(error["code"], "ACCOUNT_LOCKED")
        self.assertEqual(error["minutesRemaining"], 30)
        self.assertIn("lockUntil", error)

    def test_expired_lock_allows_login(self) -> None:
        with self.SessionLocal() as db:
            user = db.get(User, self.user.id)
            user.locked_until = utcnow() - timedelta(minutes=1)
            db.commit()
        self.assertEqual(self.login("bob@stratdesk.io").status_code, 200)

    def test_soft_deleted_account_cannot_login(self) -> None:
        with self.SessionLocal() as db:
            db.get(User, self.user.id).deleted_at = utcnow()
            db.commit()
        self.assertEqual(self.login("bob@stratdesk.io").status_code, 401)


class TestRefresh(ApiTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.user = self.account("carol@stratdesk.io")

    def test_refresh_issues_new_pair(self) -> None:
        refresh_token = self.login("carol@stratdesk.io").json()["data"]["tokens"]["refreshToken"]
        response = self.client.post("/api/v1/auth/refresh", json={"refreshToken": refresh_token})
        self.assertEqual(response.status_code, 200, response.text)
        access_token = response.json()["data"]["tokens"]["accessToken"]
        profile = self.client.get(
            "/api/v1/auth/profile", headers={"Authorization": f"Bearer {access_token}"}
        )
        self.assertEqual(profile.status_code, 200)

        # Not rotated: the same refresh token keeps working.
        again = self.client.post("/api/v1/auth/refresh", json={"refreshToken": refresh_token})
        self.assertEqual(again.status_code, 200)

    def test_refresh_errors(self) -> None:
        cases = [
            ({}, "REFRESH_TOKEN_REQUIRED"),
            ({"refreshToken": "garbage"}, "INVALID_REFRESH_TOKEN"),
            ({"refreshToken": create_access_token(self.user)}, "INVALID_REFRESH_TOKEN"),
            (
                {"refreshToken": create_refresh_token(self.user.id, expires_delta=timedelta(seconds=-5))},
                "REFRESH_TOKEN_EXPIRED",
            ),
        ]
        for body, code in cases:
            with self.subTest(code=code):
                response = self.client.post("/api/v1/auth/refresh", json=body)
                self.assertEqual(response.status_code, 401)
                self.assertEqual(response.json()["error"]["code"], code)


class TestSessionGate(ApiTestCase):
    """Bearer checks on /auth/profile."""

    def setUp(self) -> None:
        super().setUp()
        self.user = self.account("dave@stratdesk.io")

    def _profile(self, token: str | None):
        headers = {"Authorization": f"Bearer {token}"} if token else {}
        return self.client.get("/api/v1/auth/profile", headers=headers)

    def test_profile_with_valid_token(self) -> None:
        response = self._profile(self.token_for("dave@stratdesk.io"))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["data"]["user"]["email"], "dave@stratdesk.io")

    def test_missing_token(self) -> None:
        response = self._profile(None)
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()["error"]["code"], "NO_TOKEN")
        self.assertEqual(response.headers["WWW-Authenticate"], "Bearer")

    def test_expired_and_invalid_tokens(self) -> None:
        expired = create_access_token(self.user, expires_delta=timedelta(seconds=-5))
        self.assertEqual(self._profile(expired).json()["error"]["code"], "TOKEN_EXPIRED")
        refresh = create_refresh_token(self.user.id)
        self.assertEqual(self._profile(refresh).json()["error"]["code"], "INVALID_TOKEN")

    def test_locked_account_is_rejected(self) -> None:
        token = self.token_for("dave@stratdesk.io")
        with self.SessionLocal() as db:
            db.get(User, self.user.id).locked_until = utcnow() + timedelta(minutes=10)
            db.commit()
        response = self._profile(token)
        self.assertEqual(response.status_code, 423)
        self.assertEqual(response.json()["error"]["code"], "ACCOUNT_LOCKED")

    def test_deleted_account_is_user_not_found(self) -> None:
        token = self.token_for("dave@stratdesk.io")
        with self.SessionLocal() as db:
            db.get(User, self.user.id).deleted_at = utcnow()
            db.commit()
        self.assertEqual(self._profile(token).json()["error"]["code"], "USER_NOT_FOUND")

    def test_profile_update_merges(self) -> None:
        headers = self.auth("dave@stratdesk.io")
        self.client.put("/api/v1/auth/profile", json={"profile": {"bio": "hi"}}, headers=headers)
        response = self.client.put(
            "/api/v1/auth/profile",
            json={"firstName": "David", "profile": {"country": "NL"}},
            headers=headers,
        )
        self.assertEqual(response.status_code, 200, response.text)
        user = response.json()["data"]["user"]
        self.assertEqual(user["firstName"], "David")
        self.assertEqual(user["profile"], {"bio": "hi", "country": "NL"})

    def test_security_headers_present(self) -> None:
        response = self._profile(None)
        self.assertEqual(response.headers["X-Content-Type-Options"], "nosniff")
        self.assertEqual(response.headers["X-Frame-Options"], "DENY")

    def test_logout_always_succeeds(self) -> None:
        self.assertEqual(self.client.post("/api/v1/auth/logout").status_code, 200)
        response = self.client.post("/api/v1/auth/logout", headers=self.auth("dave@stratdesk.io"))
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.json()["success"])


class TestPasswordReset(ApiTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.user = self.account("erin@stratdesk.io")

    def _request(self, email: str):
        return self.client.post("/api/v1/auth/password/reset-request", json={"email": email})

    def test_unknown_email_gets_same_response(self) -> None:
        known = self._request("erin@stratdesk.io").json()
        unknown = self._request("ghost@stratdesk.io").json()
        self.assertEqual(known["message"], unknown["message"])
        self.assertIsNone(unknown["data"])

    def test_reset_flow_is_single_use(self) -> None:
        token = self._request("erin@stratdesk.io").json()["data"]["resetToken"]
        stored = self.fresh(User, self.user.id)
        self.assertNotEqual(stored.password_reset_token, token)

        new_password = "N3w!Password"
        body = {"token": token, "password": new_password, "confirmPassword": new_password}
        response = self.client.post("/api/v1/auth/password/reset", json=body)
        self.assertEqual(response.status_code, 200, response.text)
        self.assertEqual(self.login("erin@stratdesk.io", new_password).status_code, 200)
        self.assertEqual(self.login("erin@stratdesk.io", STRONG_PASSWORD).status_code, 401)

        again = self.client.post("/api/v1/auth/password/reset", json=body)
        self.assertEqual(again.status_code, 400)
        self.assertEqual(again.json()["error"]["code"], "INVALID_RESET_TOKEN")

    def test_expired_reset_token(self) -> None:
        token = self._request("erin@stratdesk.io").json()["data"]["resetToken"]
        with self.SessionLocal() as db:
            db.get(User, self.user.id).password_reset_expires = utcnow() - timedelta(seconds=1)
            db.commit()
        body = {"token": token, "password": "N3w!Password", "confirmPassword": "N3w!Password"}
        response = self.client.post("/api/v1/auth/password/reset", json=body)
        self.assertEqual(response.json()["error"]["code"], "INVALID_RESET_TOKEN")


class TestEmailVerification(ApiTestCase):
    def test_verify_is_idempotent(self) -> None:
        user = self.account("fay@stratdesk.io")
        token = create_email_verification_token(user.id)
        first = self.client.get(f"/api/v1/auth/verify-email/{token}")
        self.assertEqual(first.status_code, 200, first.text)
        self.assertEqual(first.json()["message"], "Email verified successfully")
        second = self.client.get(f"/api/v1/auth/verify-email/{token}")
        self.assertEqual(second.json()["message"], "Email already verified")
        self.assertTrue(self.fresh(User, user.id).is_email_verified)

    def test_invalid_token(self) -> None:
        response = self.client.get("/api/v1/auth/verify-email/not-a-token")
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"]["code"], "INVALID_VERIFICATION_TOKEN")


if __name__ == "__main__":
    unittest.main()
