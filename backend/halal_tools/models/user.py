"""
User and password reset models for authentication
"""
from uuid import uuid4

from sqlalchemy import Boolean, Column, DateTime, Index, Integer, String, Uuid

from halal_tools.core.database import Base
from halal_tools.utils.datetime_utils import utc_now


class User(Base):
    """Registered user"""
    __tablename__ = "users"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    email = Column(String(255), unique=True, nullable=False, index=True)
    name = Column(String(255), nullable=True)
    password_hash = Column(String(255), nullable=False)
    phone_number = Column(String(50), nullable=True)
    country = Column(String(100), nullable=True)

    # Plan
    is_premium = Column(Boolean, default=False, nullable=False)
    monthly = Column(Boolean, default=False, nullable=False)  # premium billed monthly

    created_at = Column(DateTime, default=utc_now, nullable=False)
    last_login = Column(DateTime, nullable=True)

    @property
    def quota_identity(self) -> str:
        """Key of this user's usage account"""
        return f"user:{self.id}"

    def __repr__(self):
        return f"<User(id={self.id}, email={self.email}, premium={self.is_premium})>"


class PasswordReset(Base):
    """
    One emailed password reset code

    The newest row for an email is the live code. Rows for an email are
    deleted once the password is changed.
    """
    __tablename__ = "password_resets"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    email = Column(String(255), nullable=False)
    otp_hash = Column(String(64), nullable=False)  # SHA-256 hex
    failed_attempts = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime, default=utc_now, nullable=False)

    __table_args__ = (
        Index("idx_password_resets_email_created", "email", "created_at"),
    )

    def __repr__(self):
        return f"<PasswordReset(email={self.email}, created_at={self.created_at})>"
