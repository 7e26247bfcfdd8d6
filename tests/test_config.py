"""Unit tests for app.core.config.Settings validation."""

import unittest

from pydantic import ValidationError

from app.core.config import DEFAULT_JWT_REFRESH_SECRET, DEFAULT_JWT_SECRET, Settings

_BASE = {
    "JWT_SECRET": "unit-access-secret-0123456789abcdef",
    "JWT_REFRESH_SECRET": "unit-refresh-secret-0123456789abcde",
}


def _settings(**overrides: object) -> Settings:
    values = dict(_BASE)
    values.update(overrides)
    return Settings(_env_file=None, **values)


class TestSettingsDefaults(unittest.TestCase):
    def test_lockout_and_token_defaults(self) -> None:
        s = _settings()
        self.assertEqual(s.LOGIN_MAX_ATTEMPTS, 5)
        self.assertEqual(s.LOGIN_LOCK_MINUTES, 30)
        self.assertEqual(s.RATE_LIMIT_LOGIN, "5/15 minutes")
        self.assertEqual(s.RATE_LIMIT_REGISTER, "3/hour")
        self.assertEqual(s.JWT_ISSUER, "stratdesk-api")
        self.assertEqual(s.JWT_AUDIENCE, "stratdesk-client")


class TestSettingsValidation(unittest.TestCase):
    def test_rejects_non_postgres_database_url(self) -> None:
        with self.assertRaises(ValidationError):
            _settings(DATABASE_URL="mysql://root@localhost/db")

    def test_rejects_identical_secrets(self) -> None:
        with self.assertRaises(ValidationError):
            _settings(JWT_REFRESH_SECRET=_BASE["JWT_SECRET"])

    def test_rejects_default_secrets_in_prod(self) -> None:
        with self.assertRaises(ValidationError):
            _settings(APP_ENV="prod", JWT_SECRET=DEFAULT_JWT_SECRET, JWT_REFRESH_SECRET=DEFAULT_JWT_REFRESH_SECRET)

    def test_rejects_out_of_range_values(self) -> None:
        for field, value in (("BCRYPT_ROUNDS", 3), ("LOGIN_MAX_ATTEMPTS", 0), ("CACHE_TOP_TTL_SEC", 0)):
            with self.subTest(field=field), self.assertRaises(ValidationError):
                _settings(**{field: value})

    def test_normalizes_log_level(self) -> None:
        self.assertEqual(_settings(LOG_LEVEL="debug").LOG_LEVEL, "DEBUG")

    def test_rejects_non_redis_url(self) -> None:
        with self.assertRaises(ValidationError):
            _settings(REDIS_URL="http://localhost:6379")


if __name__ == "__main__":
    unittest.main()
