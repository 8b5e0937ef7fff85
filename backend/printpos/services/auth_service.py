# Overview: Service-layer operations for the shared-passcode gate; bcrypt hashing and verification.

"""
Passcode Gate

WHY: The shop terminal is protected by one shared passcode. There are no
user accounts; a correct passcode opens a session (see session_service.py).

SECURITY NOTES:
- Passcodes hashed with bcrypt (cost factor 12)
- A deployment may configure ACCESS_PASSCODE_HASH (a bcrypt hash) instead
  of the plaintext ACCESS_PASSCODE; the hash takes precedence
"""

from __future__ import annotations

import logging

import bcrypt

logger = logging.getLogger(__name__)

MIN_PASSCODE_LENGTH = 4


class PasscodeValidationError(Exception):
    """Raised when a passcode doesn't meet the minimum requirements."""
    pass


def validate_passcode(passcode: str) -> None:
    if not passcode or len(passcode) < MIN_PASSCODE_LENGTH:
        raise PasscodeValidationError(f"Passcode must be at least {MIN_PASSCODE_LENGTH} characters long")
    if passcode.strip() != passcode:
        raise PasscodeValidationError("Passcode must not start or end with whitespace")


def hash_passcode(passcode: str) -> str:
    """Hash a passcode using bcrypt with cost factor 12."""
    validate_passcode(passcode)
    salt = bcrypt.gensalt(rounds=12)
    hashed = bcrypt.hashpw(passcode.encode('utf-8'), salt)
    return hashed.decode('utf-8')


def verify_passcode(passcode: str, passcode_hash: str) -> bool:
    """
    Verify a passcode against a bcrypt hash.

    WHY timing-safe: bcrypt.checkpw() prevents timing attacks automatically.
    A malformed hash counts as a mismatch.
    """
    if not passcode or not passcode_hash:
        return False
    try:
        return bcrypt.checkpw(passcode.encode('utf-8'), passcode_hash.encode('utf-8'))
    except ValueError:
        logger.error("Configured passcode hash is not a valid bcrypt hash")
        return False


def resolve_passcode_hash(config) -> str:
    """
    The bcrypt hash to check logins against.

    A plaintext ACCESS_PASSCODE is hashed once and cached in the config
    mapping so every login compares against the same hash.
    """
    configured = config.get("ACCESS_PASSCODE_HASH")
    if configured:
        return configured
    cached = config.get("_ACCESS_PASSCODE_HASH_CACHE")
    if cached:
        return cached
    plaintext = config.get("ACCESS_PASSCODE") or ""
    hashed = hash_passcode(plaintext)
    config["_ACCESS_PASSCODE_HASH_CACHE"] = hashed
    return hashed


def check_passcode(config, passcode: str | None) -> bool:
    return verify_passcode(passcode or "", resolve_passcode_hash(config))
