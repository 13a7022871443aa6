"""
Password hashing and verification.

Uses bcrypt with a per-hash salt and a work factor of 10 by default. The
async helpers run bcrypt in a worker thread so a slow hash never stalls the
event loop.
"""
import asyncio

import bcrypt

DEFAULT_ROUNDS = 10

# bcrypt only looks at the first 72 bytes of its input
MAX_PASSWORD_BYTES = 72


def get_password_hash(password: str, rounds: int = DEFAULT_ROUNDS) -> str:
    """Generate password hash using bcrypt."""
    return bcrypt.hashpw(
        password.encode("utf-8"),
        bcrypt.gensalt(rounds=rounds)
    ).decode("utf-8")


def verify_password(password: str, hashed_password: str) -> bool:
    """Check if provided password matches the stored hash."""
    try:
        return bcrypt.checkpw(
            password.encode("utf-8"),
            hashed_password.encode("utf-8")
        )
    except (ValueError, TypeError):
        return False


def password_too_long(password: str) -> bool:
    return len(password.encode("utf-8")) > MAX_PASSWORD_BYTES


async def hash_password(password: str, rounds: int = DEFAULT_ROUNDS) -> str:
    return await asyncio.to_thread(get_password_hash, password, rounds)


async def check_password(password: str, hashed_password: str) -> bool:
    return await asyncio.to_thread(verify_password, password, hashed_password)
