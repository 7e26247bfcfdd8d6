"""Test package. Pins settings before any app module is imported."""

import os

os.environ.setdefault("APP_ENV", "dev")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("CACHE_ENABLED", "false")
os.environ.setdefault("EMAIL_VERIFICATION_ENABLED", "false")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("JWT_SECRET", "test-access-secret-0123456789abcdef0123")
os.environ.setdefault("JWT_REFRESH_SECRET", "test-refresh-secret-0123456789abcdef012")
