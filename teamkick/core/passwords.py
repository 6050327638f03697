"""
Password hashing and verification.

Stored hashes come in three shapes:

- ``$argon2id$v=19$m=...,t=...,p=...$salt$digest``: current format, argon2id.
- ``<hex digest>.<salt>``: legacy scrypt, digest first.
- ``<salt>:<hex digest>``: legacy scrypt, salt first.

Legacy scrypt hashes use N=16384, r=8, p=1 with a 64-byte key, and the salt
string itself (not its hex-decoded bytes) as the salt. Any hash that verifies
in a legacy shape must be replaced with an argon2id hash by the caller
(see :meth:`teamkick.core.sessions.SessionManager.login`).

Hashing is CPU bound; the ``*_async`` variants run on a bounded thread pool
so they never stall the event loop.
"""

from __future__ import annotations

import asyncio
import hashlib
import hmac
import re
import secrets
from concurrent.futures import ThreadPoolExecutor
from enum import Enum
from functools import lru_cache
from typing import Optional

import structlog
from argon2 import PasswordHasher, Type
from argon2.exceptions import InvalidHashError, VerificationError, VerifyMismatchError

from teamkick.core.config import get_settings

log = structlog.get_logger()

ARGON2_PREFIX = "$argon2"

SCRYPT_N = 16384
SCRYPT_R = 8
SCRYPT_P = 1
SCRYPT_KEY_LENGTH = 64

_HEX_RE = re.compile(r"^[0-9a-fA-F]+$")


class HashFormat(str, Enum):
    ARGON2 = "argon2"
    SCRYPT_HASH_SALT = "scrypt_hash_salt"
    SCRYPT_SALT_HASH = "scrypt_salt_hash"
    EMPTY = "empty"
    UNKNOWN = "unknown"


LEGACY_FORMATS = frozenset({HashFormat.SCRYPT_HASH_SALT, HashFormat.SCRYPT_SALT_HASH})


@lru_cache
def get_password_hasher() -> PasswordHasher:
    settings = get_settings()
    return PasswordHasher(
        time_cost=settings.argon2_time_cost,
        memory_cost=settings.argon2_memory_cost,
        parallelism=settings.argon2_parallelism,
        hash_len=32,
        salt_len=16,
        type=Type.ID,
    )


@lru_cache
def _executor() -> ThreadPoolExecutor:
    return ThreadPoolExecutor(
        max_workers=get_settings().password_hash_workers,
        thread_name_prefix="password-hash",
    )


# ---------------------------------------------------------------------------
# Format detection
# ---------------------------------------------------------------------------

def classify_hash(encoded: Optional[str]) -> HashFormat:
    """Identify the storage format of ``encoded`` without verifying it."""
    if not encoded:
        return HashFormat.EMPTY
    if encoded.startswith(ARGON2_PREFIX):
        return HashFormat.ARGON2
    if "." in encoded:
        return HashFormat.SCRYPT_HASH_SALT
    if ":" in encoded:
        return HashFormat.SCRYPT_SALT_HASH
    return HashFormat.UNKNOWN


def is_legacy_hash(encoded: Optional[str]) -> bool:
    return classify_hash(encoded) in LEGACY_FORMATS


def needs_rehash(encoded: Optional[str]) -> bool:
    """True if a verified hash should be replaced with a fresh argon2id hash.

    Legacy scrypt hashes always need it; argon2 hashes need it when they were
    produced with parameters other than the configured ones.
    """
    fmt = classify_hash(encoded)
    if fmt in LEGACY_FORMATS:
        return True
    if fmt is HashFormat.ARGON2:
        try:
            return get_password_hasher().check_needs_rehash(encoded)
        except (InvalidHashError, ValueError):
            return False
    return False


# ---------------------------------------------------------------------------
# Hash / verify
# ---------------------------------------------------------------------------

def hash_password(password: str) -> str:
    """Hash a password with argon2id."""
    return get_password_hasher().hash(password)


def _split_legacy(encoded: str, fmt: HashFormat) -> Optional[tuple[bytes, str]]:
    """Return (digest bytes, salt string) or None when malformed."""
    if fmt is HashFormat.SCRYPT_HASH_SALT:
        parts = encoded.split(".")
        if len(parts) != 2:
            return None
        digest_hex, salt = parts
    else:
        parts = encoded.split(":")
        if len(parts) != 2:
            return None
        salt, digest_hex = parts
    if not salt or not digest_hex or not _HEX_RE.match(digest_hex):
        return None
    if len(digest_hex) % 2:
        return None
    return bytes.fromhex(digest_hex), salt


def _verify_scrypt(password: str, encoded: str, fmt: HashFormat) -> bool:
    parsed = _split_legacy(encoded, fmt)
    if parsed is None:
        return False
    expected, salt = parsed
    supplied = hashlib.scrypt(
        password.encode("utf-8"),
        salt=salt.encode("utf-8"),
        n=SCRYPT_N,
        r=SCRYPT_R,
        p=SCRYPT_P,
        dklen=SCRYPT_KEY_LENGTH,
    )
    return hmac.compare_digest(expected, supplied)


def _verify_argon2(password: str, encoded: str) -> bool:
    try:
        return get_password_hasher().verify(encoded, password)
    except VerifyMismatchError:
        return False
    except (VerificationError, InvalidHashError):
        log.warning("auth.malformed_password_hash", format=HashFormat.ARGON2.value)
        return False


def verify_password(password: str, encoded: Optional[str]) -> bool:
    """Check ``password`` against a stored hash of any recognised format.

    Never raises for bad input: empty, unknown or malformed hashes are simply
    a mismatch.
    """
    fmt = classify_hash(encoded)
    if fmt is HashFormat.EMPTY:
        return False
    try:
        if fmt is HashFormat.ARGON2:
            return _verify_argon2(password, encoded)
        if fmt in LEGACY_FORMATS:
            return _verify_scrypt(password, encoded, fmt)
    except (ValueError, TypeError, MemoryError):
        log.warning("auth.malformed_password_hash", format=fmt.value)
        return False

    log.warning("auth.unknown_password_hash_format")
    return False


@lru_cache
def dummy_hash() -> str:
    """Argon2 hash of a random value, verified against for unknown usernames."""
    return hash_password(secrets.token_urlsafe(16))


# ---------------------------------------------------------------------------
# Async wrappers (bounded worker pool)
# ---------------------------------------------------------------------------

async def hash_password_async(password: str) -> str:
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(_executor(), hash_password, password)


async def verify_password_async(password: str, encoded: Optional[str]) -> bool:
    if not encoded:
        return False
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(_executor(), verify_password, password, encoded)
