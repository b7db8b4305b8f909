"""
Authentication service: accounts, access tokens and password reset codes
"""
import hashlib
import hmac
import secrets
from datetime import datetime, timedelta
from typing import Optional, Tuple
from uuid import UUID

import bcrypt
from jose import JWTError, jwt
from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from halal_tools.core.config import Settings, get_settings
from halal_tools.core.errors import (Forbidden, NotFound, StorageError,
                                     TooManyRequests, ValidationError)
from halal_tools.core.logging_config import LoggingConfig
from halal_tools.models.usage import ContractGeneration, UsageAccount
from halal_tools.models.user import PasswordReset, User
from halal_tools.utils.datetime_utils import day_start, utc_now

logger = LoggingConfig.get_logger(__name__)

# bcrypt only reads the first 72 bytes and bcrypt 5 rejects longer input
MAX_PASSWORD_BYTES = 72


def normalize_email(email: str) -> str:
    return email.strip().lower()


def hash_otp(otp: str) -> str:
    """SHA-256 hex digest of a reset code"""
    return hashlib.sha256(otp.encode("utf-8")).hexdigest()


def generate_otp() -> str:
    """Random 6-digit code"""
    return str(secrets.randbelow(900000) + 100000)


class AuthService:
    """Service for user accounts and stateless JWT access tokens"""

    def __init__(self, db: Session, settings: Optional[Settings] = None):
        self.db = db
        self.settings = settings or get_settings()

    def signup(
        self,
        email: str,
        name: str,
        password: str,
        phone_number: Optional[str] = None,
        country: Optional[str] = None,
    ) -> User:
        """
        Register a new user

        Raises:
            ValidationError: If the email is already registered, input is empty
                or the password is longer than MAX_PASSWORD_BYTES
        """
        email = normalize_email(email)
        if not email or not password:
            raise ValidationError("Email and password are required")
        self._check_password_length(password)

        if self.get_user_by_email(email) is not None:
            raise ValidationError("Email may already be registered or invalid input.")

        user = User(
            email=email,
            name=name,
            password_hash=self._hash_password(password),
            phone_number=phone_number,
            country=country,
        )
        self.db.add(user)
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise ValidationError("Email may already be registered or invalid input.") from e
        self.db.refresh(user)

        logger.info(f"Registered new user: {email}", extra={"user_id": str(user.id)})
        return user

    def authenticate(self, email: str, password: str) -> Optional[User]:
        """
        Authenticate a user by email and password

        Returns:
            User object if authentication successful, None otherwise
        """
        email = normalize_email(email)
        user = self.get_user_by_email(email)
        if not user:
            logger.warning(f"Authentication failed: user '{email}' not found")
            return None

        if not self._verify_password(password, user.password_hash):
            logger.warning(f"Authentication failed: invalid password for user '{email}'")
            return None

        user.last_login = utc_now()
        self.db.commit()

        logger.info(f"User '{email}' authenticated successfully")
        return user

    def create_access_token(self, user: User) -> Tuple[str, datetime]:
        """Signed JWT for ``user`` and its expiry"""
        expires_at = utc_now() + timedelta(hours=self.settings.jwt_expires_hours)
        claims = {"sub": str(user.id), "email": user.email, "exp": expires_at}
        token = jwt.encode(claims, self.settings.secret_key, algorithm=self.settings.jwt_algorithm)
        return token, expires_at

    def get_user_from_token(self, token: str) -> Optional[User]:
        """User named by a valid, unexpired token; None otherwise"""
        try:
            claims = jwt.decode(token, self.settings.secret_key, algorithms=[self.settings.jwt_algorithm])
            user_id = UUID(claims["sub"])
        except (JWTError, KeyError, ValueError, TypeError) as e:
            logger.debug(f"Rejected access token: {e}")
            return None
        return self.get_user(user_id)

    def get_user(self, user_id: UUID) -> Optional[User]:
        return self.db.get(User, user_id)

    def get_user_by_email(self, email: str) -> Optional[User]:
        return self.db.execute(
            select(User).where(User.email == normalize_email(email))
        ).scalar_one_or_none()

    def request_password_reset(self, email: str) -> str:
        """
        Issue a new reset code for ``email``

        Only the hash is stored; the plain code is returned for the mailer.

        Raises:
            ValidationError: Email missing
            NotFound: No user with this email
            TooManyRequests: Daily code limit reached
        """
        if not email or not email.strip():
            raise ValidationError("Email is required")
        email = normalize_email(email)
        if self.get_user_by_email(email) is None:
            raise NotFound("No user found with this email")

        now = utc_now()
        issued_today = self.db.execute(
            select(func.count(PasswordReset.id)).where(
                PasswordReset.email == email,
                PasswordReset.created_at >= day_start(now),
            )
        ).scalar_one()
        limit = self.settings.otp_daily_limit
        if issued_today >= limit:
            raise TooManyRequests(f"You have reached the daily OTP limit ({limit})")

        otp = generate_otp()
        self.db.add(PasswordReset(email=email, otp_hash=hash_otp(otp), created_at=now))
        self.db.commit()
        logger.info(f"Password reset code issued for {email}")
        return otp

    def reset_password(self, email: str, otp: str, new_password: str, confirm_password: str) -> None:
        """
        Set a new password using the newest reset code

        A code works once: every code issued for the email is deleted in the
        same commit as the new password hash. A code stops working after
        ``otp_max_attempts`` wrong guesses.

        Raises:
            ValidationError: Missing fields, mismatched or over-long passwords,
                or a missing, expired, exhausted or wrong code
        """
        if not email or not otp or not new_password or not confirm_password:
            raise ValidationError("All fields are required")
        if new_password != confirm_password:
            raise ValidationError("Passwords do not match")
        self._check_password_length(new_password)

        email = normalize_email(email)
        entry = self.db.execute(
            select(PasswordReset)
            .where(PasswordReset.email == email)
            .order_by(PasswordReset.created_at.desc())
            .limit(1)
        ).scalar_one_or_none()
        if entry is None:
            raise ValidationError("No OTP found. Please request a new one.")

        if utc_now() - entry.created_at > timedelta(minutes=self.settings.otp_ttl_minutes):
            raise ValidationError("OTP has expired. Please request a new one.")

        if entry.failed_attempts >= self.settings.otp_max_attempts:
            raise ValidationError("Too many invalid attempts. Please request a new OTP.")

        if not hmac.compare_digest(entry.otp_hash, hash_otp(otp.strip())):
            self.db.execute(
                update(PasswordReset)
                .where(PasswordReset.id == entry.id)
                .values(failed_attempts=PasswordReset.failed_attempts + 1)
            )
            self.db.commit()
            logger.warning(f"Invalid password reset code for {email}")
            raise ValidationError("Invalid OTP. Please try again.")

        user = self.get_user_by_email(email)
        if user is None:
            raise NotFound("No user found with this email")

        try:
            user.password_hash = self._hash_password(new_password)
            self.db.execute(delete(PasswordReset).where(PasswordReset.email == email))
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error resetting password for {email}: {e}", exc_info=True)
            raise StorageError("Server error during password reset") from e
        logger.info(f"Password reset for {email}")

    def delete_account(self, user_id: UUID, requested_by: User) -> None:
        """
        Delete a user with its reset codes, generation records and usage account

        Raises:
            Forbidden: ``requested_by`` is not the account owner
            NotFound: No such user
        """
        if requested_by.id != user_id:
            raise Forbidden("Unauthorized to delete this account")

        user = self.get_user(user_id)
        if user is None:
            raise NotFound("User not found")

        try:
            self.db.execute(delete(PasswordReset).where(PasswordReset.email == user.email))
            self.db.execute(delete(ContractGeneration).where(ContractGeneration.user_id == user_id))
            self.db.execute(
                delete(UsageAccount).where(
                    or_(UsageAccount.user_id == user_id, UsageAccount.identity == user.quota_identity)
                )
            )
            self.db.delete(user)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error deleting user {user_id}: {e}", exc_info=True)
            raise StorageError("Server error during account deletion") from e

        logger.info(f"Deleted account {user_id}")

    @staticmethod
    def _password_too_long(password: str) -> bool:
        return len(password.encode('utf-8')) > MAX_PASSWORD_BYTES

    def _check_password_length(self, password: str) -> None:
        if self._password_too_long(password):
            raise ValidationError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")

    def _hash_password(self, password: str) -> str:
        """Hash a password using bcrypt"""
        salt = bcrypt.gensalt()
        hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
        return hashed.decode('utf-8')

    def _verify_password(self, password: str, password_hash: str) -> bool:
        """Verify a password against a hash"""
        if self._password_too_long(password):
            return False
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
