"""
Stratus Backend: Credential Hasher
===================================

What:  One-way salted password hashing (bcrypt) and constant-time verification.
How:   bcrypt.hashpw with a fresh salt per call; the salt and cost factor are
       embedded in the returned "$2b$<cost>$..." string, so verification needs
       nothing but the stored credential.
Who:   AuthService (register, login, reset_password).

Concurrency:
    bcrypt is deliberately CPU-expensive (~250ms at cost 12). The async
    wrappers run it on a worker thread with asyncio.to_thread so one hash
    never stalls the event loop. A started hash always runs to completion;
    a caller that gives up just ignores the result.

bcrypt only reads the first 72 bytes of its input. We truncate explicitly
on both hash and verify so behaviour is the same across bcrypt releases
(newer ones raise on longer input instead of truncating silently).
"""

import asyncio
import logging
from functools import lru_cache

import bcrypt

from stratus.config import settings
from stratus.exceptions import EncodingError

logger = logging.getLogger(__name__)

BCRYPT_MAX_BYTES = 72
_BCRYPT_PREFIXES = (b"$2a$", b"$2b$", b"$2y$")


def _to_bytes(plaintext: str) -> bytes:
    """Encode a plaintext password for bcrypt, rejecting input it cannot hash."""
    if plaintext is None or not isinstance(plaintext, str):
        raise EncodingError("Password must be a string")
    if "\x00" in plaintext:
        raise EncodingError("Password must not contain NUL characters")
    try:
        encoded = plaintext.encode("utf-8")
    except UnicodeEncodeError as e:
        raise EncodingError() from e
    return encoded[:BCRYPT_MAX_BYTES]


def hash_password(plaintext: str, rounds: int | None = None) -> str:
    """
    Hash a password with bcrypt.

    Args:
        plaintext: The password to hash.
        rounds: Cost factor override (tests use 4); defaults to settings.bcrypt_rounds.

    Returns:
        The encoded credential, e.g. "$2b$12$<22-char salt><31-char hash>".

    Raises:
        EncodingError: plaintext is None, not a str, contains NUL, or cannot be UTF-8 encoded.
    """
    salt = bcrypt.gensalt(rounds=rounds or settings.bcrypt_rounds)
    return bcrypt.hashpw(_to_bytes(plaintext), salt).decode("ascii")


def verify_password(plaintext: str, credential: str) -> bool:
    """
    Check a plaintext password against a stored credential.

    Never raises: a malformed stored hash or unencodable plaintext is a
    plain `False`. Use `is_well_formed_hash` to tell the two apart for logging.
    """
    try:
        candidate = _to_bytes(plaintext)
        stored = credential.encode("ascii")
        return bcrypt.checkpw(candidate, stored)
    except (EncodingError, ValueError, TypeError, AttributeError, UnicodeEncodeError):
        return False


def is_well_formed_hash(credential: str) -> bool:
    """Cheap structural check: bcrypt prefix and the fixed 60-character length."""
    if not isinstance(credential, str) or len(credential) != 60:
        return False
    return credential.encode("ascii", "replace").startswith(_BCRYPT_PREFIXES)


@lru_cache(maxsize=1)
def dummy_hash() -> str:
    """
    A real credential for a throwaway password, hashed at the configured cost.

    Login verifies against it when the email is unknown so both failure
    paths spend the same time in bcrypt.
    """
    return hash_password("stratus-timing-equaliser")


async def hash_password_async(plaintext: str) -> str:
    """hash_password on a worker thread."""
    return await asyncio.to_thread(hash_password, plaintext)


async def verify_password_async(plaintext: str, credential: str) -> bool:
    """verify_password on a worker thread."""
    return await asyncio.to_thread(verify_password, plaintext, credential)


def _verify_against_dummy(plaintext: str) -> None:
    verify_password(plaintext, dummy_hash())


async def burn_verify_time_async(plaintext: str) -> None:
    """Spend one bcrypt verification's worth of time, discarding the result."""
    await asyncio.to_thread(_verify_against_dummy, plaintext)
