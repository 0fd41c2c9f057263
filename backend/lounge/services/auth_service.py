# Overview: Service-layer operations for auth; encapsulates business logic and database work.

"""
Staff Accounts

WHY: The admin role gates the till, reports, and device settings, so
every request has to be tied to an account.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor 12)
- Minimum 6 characters, confirmed at registration
- Bearer tokens managed separately (see token_service.py)
"""

import re

import bcrypt
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import User, USER_ROLES
from ..validation import ValidationError, ConflictError

MIN_PASSWORD_LENGTH = 6

# Same shape the sign-up form accepted: something@something.tld
EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


class PasswordValidationError(ValidationError):
    """Raised when a password doesn't meet requirements."""


def normalize_email(email) -> str:
    email = (email or "").strip().lower()
    if not email:
        raise ValidationError("email is required")
    if not EMAIL_RE.match(email):
        raise ValidationError("email is not valid")
    return email


def validate_password(password, confirm_password=None) -> None:
    """
    Validate password requirements.

    Raises PasswordValidationError if the password is too short or the
    confirmation (when given) does not match.
    """
    if not password:
        raise PasswordValidationError("password is required")
    if len(password) < MIN_PASSWORD_LENGTH:
        raise PasswordValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")
    if confirm_password is not None and confirm_password != password:
        raise PasswordValidationError("Passwords do not match")


def hash_password(password: str) -> str:
    """
    Hash password using bcrypt with cost factor 12.

    Password is validated before hashing.
    """
    validate_password(password)
    salt = bcrypt.gensalt(rounds=12)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')  # Store as string in database


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify password against bcrypt hash.

    WHY timing-safe: bcrypt.checkpw() prevents timing attacks automatically.
    """
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        # Malformed hash in the database
        return False


def create_user(email: str, password: str, role: str = "user", confirm_password=None) -> User:
    """
    Create a staff account.

    Raises:
        ValidationError: bad email, bad password, or unknown role
        ConflictError: email already registered
    """
    email = normalize_email(email)
    validate_password(password, confirm_password)
    if role not in USER_ROLES:
        raise ValidationError(f"role must be one of: {', '.join(USER_ROLES)}")

    if db.session.query(User).filter_by(email=email).first():
        raise ConflictError("Email is already registered")

    user = User(email=email, password_hash=hash_password(password), role=role, is_active=True)
    db.session.add(user)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("Email is already registered")
    return user


def register(email, password, confirm_password) -> User:
    """Self sign-up always yields a plain user; admins are made from the CLI."""
    return create_user(email, password, role="user", confirm_password=confirm_password)


def authenticate(email, password) -> User | None:
    """Return the active user for these credentials, or None."""
    if not email or not password:
        return None
    user = db.session.query(User).filter_by(email=str(email).strip().lower()).first()
    if not user or not user.is_active:
        return None
    if not verify_password(password, user.password_hash):
        return None
    return user


def set_role(user_id: int, role: str) -> User:
    if role not in USER_ROLES:
        raise ValidationError(f"role must be one of: {', '.join(USER_ROLES)}")
    user = db.session.query(User).filter_by(id=user_id).first()
    if not user:
        raise ValidationError("User not found")
    user.role = role
    db.session.commit()
    return user
