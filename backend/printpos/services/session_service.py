# Overview: Service-layer operations for gate sessions; opaque bearer tokens with timeouts.

"""
Access Session Service

WHY: After the passcode check, requests carry an opaque bearer token instead
of the passcode. Tokens are hashed in the database and time-limited.

SECURITY FEATURES:
- Cryptographically secure random tokens (32 bytes)
- Tokens hashed with SHA-256 before storage (fast, one-way)
- 12-hour absolute timeout (SESSION_ABSOLUTE_TIMEOUT)
- 2-hour idle timeout (SESSION_IDLE_TIMEOUT)
- Revocable on logout
"""

from __future__ import annotations

import hashlib
import secrets
from datetime import timedelta

from sqlalchemy import or_

from ..models import AccessSession
from ..store import ACCESS_SESSIONS
from printpos.time_utils import utcnow


SESSION_ABSOLUTE_TIMEOUT = timedelta(hours=12)  # Maximum session length
SESSION_IDLE_TIMEOUT = timedelta(hours=2)        # Activity timeout


def generate_token() -> str:
    """
    Generate cryptographically secure random token.

    Returns 64-character hex string (32 bytes of entropy).
    This is the plaintext token sent to client (never stored).
    """
    return secrets.token_hex(32)


def hash_token(token: str) -> str:
    """
    Hash token for database storage using SHA-256.

    WHY SHA-256 not bcrypt: Tokens are already high-entropy (unlike passcodes).
    """
    return hashlib.sha256(token.encode('utf-8')).hexdigest()


def _find_active(uow, token: str) -> AccessSession | None:
    return (
        uow.session.query(AccessSession)
        .filter_by(token_hash=hash_token(token), is_revoked=False)
        .first()
    )


def create_session(
    store,
    user_agent: str | None = None,
    ip_address: str | None = None,
) -> tuple[AccessSession, str]:
    """
    Open a new gate session.

    Returns (session_record, plaintext_token).
    Client receives plaintext_token, database stores only the hash.
    """
    plaintext_token = generate_token()
    now = utcnow()

    record = AccessSession(
        token_hash=hash_token(plaintext_token),
        created_at=now,
        last_used_at=now,
        expires_at=now + SESSION_ABSOLUTE_TIMEOUT,
        user_agent=(user_agent or "")[:512] or None,
        ip_address=ip_address,
        is_revoked=False,
    )
    record = store.execute(lambda uow: uow.insert(ACCESS_SESSIONS, record), ACCESS_SESSIONS)
    return record, plaintext_token


def _revoke(record: AccessSession, now, reason: str) -> None:
    record.is_revoked = True
    record.revoked_at = now
    record.revoked_reason = reason


def validate_session(store, token: str) -> AccessSession | None:
    """
    Return the session for a token, or None if it is unknown, expired,
    revoked or idle too long. Idle sessions are revoked on the spot.

    Updates last_used_at on successful validation (activity tracking).
    """
    if not token:
        return None

    def _inner(uow):
        now = utcnow()
        record = _find_active(uow, token)
        if record is None:
            return None

        if record.expires_at < now:
            return None

        if now - record.last_used_at > SESSION_IDLE_TIMEOUT:
            _revoke(record, now, "Idle timeout")
            return None

        record.last_used_at = now
        return record

    return store.execute(_inner, ACCESS_SESSIONS)


def revoke_session(store, token: str, reason: str = "Logout") -> bool:
    """Revoke a session token. Returns True if an active session was revoked."""
    def _inner(uow):
        record = _find_active(uow, token)
        if record is None:
            return False
        _revoke(record, utcnow(), reason)
        return True

    return store.execute(_inner, ACCESS_SESSIONS)


def cleanup_expired_sessions(store, older_than: timedelta = timedelta(days=30)) -> int:
    """Delete expired or revoked sessions created before the cutoff. Returns count deleted."""
    def _inner(uow):
        now = utcnow()
        return (
            uow.session.query(AccessSession)
            .filter(
                or_(AccessSession.expires_at < now, AccessSession.is_revoked.is_(True)),
                AccessSession.created_at < now - older_than,
            )
            .delete(synchronize_session=False)
        )

    return store.execute(_inner, ACCESS_SESSIONS)
