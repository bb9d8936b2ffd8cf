"""
Authentication service for user accounts and password recovery
"""
import secrets
from typing import Optional
from uuid import UUID

from sqlalchemy.orm import Session

from app.core.exceptions import (ConflictError, CRMError, NotFoundError,
                                 RateLimitError, UnauthorizedError,
                                 ValidationError)
from app.core.logging_config import LoggingConfig
from app.core.metrics import auth_events_total, password_reset_rate_limited_total
from app.core.security import (create_access_token, dummy_verify,
                               hash_password, verify_password)
from app.core.tokens import (ResetRateLimiter, calculate_expiry_time,
                             generate_token, get_reset_rate_limiter,
                             is_token_expired)
from app.models.user import PasswordResetToken, User, UserRole
from app.services.email_service import EmailService
from app.utils.validators import is_valid_email, normalize_email

logger = LoggingConfig.get_logger(__name__)


class AuthService:
    """Service for user registration, login and password reset"""

    def __init__(
        self,
        db: Session,
        email_service: Optional[EmailService] = None,
        rate_limiter: Optional[ResetRateLimiter] = None,
    ):
        self.db = db
        self.email_service = email_service if email_service is not None else EmailService()
        self.rate_limiter = rate_limiter if rate_limiter is not None else get_reset_rate_limiter()

    def register_user(
        self,
        email: str,
        password: str,
        name: Optional[str] = None,
        role: str = UserRole.USER.value
    ) -> User:
        """
        Register a new user

        Args:
            email: Email address
            password: Plain text password
            name: Display name
            role: User role (default: USER)

        Returns:
            Created User object

        Raises:
            ValidationError: If the email is already registered
        """
        email = normalize_email(email)
        if self.db.query(User).filter(User.email == email).first():
            auth_events_total.labels(event="register", outcome="duplicate").inc()
            raise ValidationError("User already exists")

        user = User(
            email=email,
            password_hash=hash_password(password),
            name=name,
            role=role,
        )

        self.db.add(user)
        self.db.commit()
        self.db.refresh(user)

        auth_events_total.labels(event="register", outcome="success").inc()
        logger.info(f"Registered new user {user.id} (role: {role})")
        return user

    def authenticate(self, email: str, password: str) -> User:
        """
        Check credentials

        Raises:
            UnauthorizedError: "Invalid credentials" for unknown email or wrong password
        """
        email = normalize_email(email)
        user = self.db.query(User).filter(User.email == email).first()

        if not user:
            # Same bcrypt cost as a real check so response time does not reveal accounts
            dummy_verify(password)
            auth_events_total.labels(event="login", outcome="unknown_user").inc()
            logger.warning("Authentication failed: unknown email")
            raise UnauthorizedError("Invalid credentials")

        if not verify_password(password, user.password_hash):
            auth_events_total.labels(event="login", outcome="bad_password").inc()
            logger.warning(f"Authentication failed: invalid password for user {user.id}")
            raise UnauthorizedError("Invalid credentials")

        auth_events_total.labels(event="login", outcome="success").inc()
        logger.info(f"User {user.id} authenticated successfully")
        return user

    def issue_token(self, user: User) -> str:
        """Signed access token carrying id, email and role"""
        return create_access_token(
            str(user.id),
            claims={"email": user.email, "role": user.role},
        )

    def get_user(self, user_id: UUID) -> User:
        user = self.db.query(User).filter(User.id == user_id).first()
        if not user:
            raise NotFoundError("User not found")
        return user

    def update_profile(self, user_id: UUID, name: Optional[str] = None, email: Optional[str] = None) -> User:
        """Update name and/or email of the current user"""
        user = self.get_user(user_id)

        if email is not None:
            email = normalize_email(email)
        if email is not None and email != user.email:
            if not is_valid_email(email):
                raise ValidationError("Invalid email format")
            taken = self.db.query(User).filter(User.email == email, User.id != user.id).first()
            if taken:
                raise ConflictError("Email is already in use")
            user.email = email

        if name is not None:
            user.name = name

        self.db.commit()
        self.db.refresh(user)
        logger.info(f"Updated profile for user {user.id}")
        return user

    def set_two_factor(self, user_id: UUID, enable: bool) -> User:
        """
        Toggle the two-factor flag

        A fresh secret is stored when enabling and cleared when disabling.
        Code verification at login is not implemented; login only reports
        that a second factor is required.
        """
        user = self.get_user(user_id)
        user.two_factor_enabled = enable
        user.two_factor_secret = secrets.token_hex(20) if enable else None
        self.db.commit()
        self.db.refresh(user)
        logger.info(f"Two-factor {'enabled' if enable else 'disabled'} for user {user.id}")
        return user

    def request_password_reset(self, email: str) -> bool:
        """
        Issue a reset token and email it

        Returns:
            True if a reset email was sent, False if the email is unknown

        Raises:
            RateLimitError: Too many requests for this email
            CRMError: The email could not be delivered (500)
        """
        email = normalize_email(email)
        user = self.db.query(User).filter(User.email == email).first()
        if not user:
            auth_events_total.labels(event="password_reset_request", outcome="unknown_user").inc()
            logger.info("Password reset requested for unknown email")
            return False

        if self.rate_limiter.check(email):
            password_reset_rate_limited_total.inc()
            auth_events_total.labels(event="password_reset_request", outcome="rate_limited").inc()
            logger.warning(f"Password reset rate limit exceeded for user {user.id}")
            raise RateLimitError("Too many reset attempts. Please try again later.")

        token = generate_token()
        reset_token = PasswordResetToken(
            token=token,
            expires_at=calculate_expiry_time(),
            user_id=user.id,
        )
        self.db.add(reset_token)
        self.db.commit()

        if not self.email_service.send_password_reset_email(user.email, token, user.name):
            auth_events_total.labels(event="password_reset_request", outcome="email_failed").inc()
            raise CRMError("Failed to send reset email", status_code=500, code="email_delivery_failed")

        auth_events_total.labels(event="password_reset_request", outcome="success").inc()
        logger.info(f"Password reset email sent to user {user.id}")
        return True

    def reset_password(self, token: str, password: str) -> User:
        """
        Consume a reset token and set a new password

        Raises:
            ValidationError: Unknown, used or expired token
        """
        reset_token = self.db.query(PasswordResetToken).filter(
            PasswordResetToken.token == token
        ).first()

        if not reset_token:
            auth_events_total.labels(event="password_reset", outcome="invalid_token").inc()
            raise ValidationError("Invalid or expired token")

        if reset_token.used:
            auth_events_total.labels(event="password_reset", outcome="used_token").inc()
            raise ValidationError("Token has already been used")

        if is_token_expired(reset_token.expires_at):
            auth_events_total.labels(event="password_reset", outcome="expired_token").inc()
            raise ValidationError("Token has expired")

        user = reset_token.user
        user.password_hash = hash_password(password)
        reset_token.used = True
        self.db.commit()
        self.db.refresh(user)

        # Confirmation failure does not undo the reset
        if not self.email_service.send_password_changed_email(user.email, user.name):
            logger.warning(f"Password changed email could not be sent to user {user.id}")

        auth_events_total.labels(event="password_reset", outcome="success").inc()
        logger.info(f"Password reset completed for user {user.id}")
        return user
