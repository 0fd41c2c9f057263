# Overview: Service-layer operations for bearer tokens; issue, validate, revoke.

"""
Bearer Token Management

SECURITY FEATURES:
- Cryptographically secure random tokens (32 bytes)
- Tokens hashed with SHA-256 before storage (fast, one-way)
- 24-hour absolute timeout (TOKEN_ABSOLUTE_TIMEOUT)
- 2-hour idle timeout (TOKEN_IDLE_TIMEOUT)
- Revocable on logout
"""

import hashlib
import secrets
from datetime import timedelta

from ..extensions import db
from ..models import AuthToken, User
from lounge.time_utils import utcnow


# Configuration constants
TOKEN_ABSOLUTE_TIMEOUT = timedelta(hours=24)  # Maximum token lifetime
TOKEN_IDLE_TIMEOUT = timedelta(hours=2)        # Activity timeout


def generate_token() -> str:
    """
    Generate cryptographically secure random token.

    Returns 64-character hex string (32 bytes of entropy).
    This is the plaintext token sent to client (never stored).
    """
    return secrets.token_hex(32)


def hash_token(token: str) -> str:
    """Hash token for database storage using SHA-256."""
    return hashlib.sha256(token.encode('utf-8')).hexdigest()


def create_token(user: User) -> tuple[AuthToken, str]:
    """
    Issue a token for a user.

    Returns (token_record, plaintext_token).
    Client receives plaintext_token, database stores only the hash.
    """
    plaintext_token = generate_token()
    now = utcnow()

    record = AuthToken(
        user_id=user.id,
        token_hash=hash_token(plaintext_token),
        created_at=now,
        last_used_at=now,
        expires_at=now + TOKEN_ABSOLUTE_TIMEOUT,
        is_revoked=False,
    )
    db.session.add(record)
    db.session.commit()
    return record, plaintext_token


def _revoke(record: AuthToken) -> None:
    record.is_revoked = True
    record.revoked_at = utcnow()
    db.session.commit()


def validate_token(token: str) -> User | None:
    """
    Return the token's user, or None if the token is unknown, expired,
    idle for too long, revoked, or belongs to a deactivated account.

    Updates last_used_at on success.
    """
    record = db.session.query(AuthToken).filter_by(
        token_hash=hash_token(token),
        is_revoked=False,
    ).first()
    if not record:
        return None

    now = utcnow()
    if record.expires_at < now:
        return None

    if now - record.last_used_at > TOKEN_IDLE_TIMEOUT:
        _revoke(record)
        return None

    user = record.user
    if not user or not user.is_active:
        _revoke(record)
        return None

    record.last_used_at = now
    db.session.commit()
    return user


def revoke_token(token: str) -> bool:
    """Returns True if a live token was revoked, False if not found."""
    record = db.session.query(AuthToken).filter_by(
        token_hash=hash_token(token),
        is_revoked=False,
    ).first()
    if not record:
        return False
    _revoke(record)
    return True
