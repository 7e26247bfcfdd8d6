"""ORM model for application accounts (auth, lockout and RBAC)."""

import uuid

from sqlalchemy import Boolean, Column, DateTime, Integer, String, Uuid

from app.models.base import Base, JSONType, SoftDeleteMixin, TimestampMixin

ROLE_USER = "user"
ROLE_ADMIN = "admin"
ROLES = (ROLE_USER, ROLE_ADMIN)


class User(TimestampMixin, SoftDeleteMixin, Base):
    """
    Account for JWT authentication and role-based access control.

    role: 'admin' or 'user'. email is stored lower-cased.
    failed_login_attempts / locked_until hold the lockout state.
    """

    __tablename__ = "users"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    first_name = Column(String(50), nullable=False)
    last_name = Column(String(50), nullable=False)
    email = Column(String(255), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    role = Column(String(32), nullable=False, default=ROLE_USER, index=True)

    is_email_verified = Column(Boolean, nullable=False, default=False)
    email_verification_token = Column(String(1024), nullable=True)
    password_reset_token = Column(String(64), nullable=True, index=True)
    password_reset_expires = Column(DateTime(timezone=True), nullable=True)

    last_login = Column(DateTime(timezone=True), nullable=True)
    failed_login_attempts = Column(Integer, nullable=False, default=0)
    locked_until = Column(DateTime(timezone=True), nullable=True)

    profile = Column(JSONType, nullable=False, default=dict)
