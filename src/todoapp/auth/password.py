"""Password hashing.

Learn: bcrypt salts every hash itself and encodes the cost factor in the
hash string ("$2b$12$..."). The cost comes from
TODOAPP_PASSWORD_HASH_ROUNDS; when it is raised, stored hashes with a
lower cost are re-hashed the next time their owner logs in
(needs_rehash + UserService.authenticate).
"""

from typing import Optional

import bcrypt

from todoapp.config import settings

# bcrypt only looks at the first 72 bytes
MAX_PASSWORD_BYTES = 72


def _encode(password: str) -> bytes:
    return password.encode("utf-8")[:MAX_PASSWORD_BYTES]


def hash_password(password: str, rounds: Optional[int] = None) -> str:
    salt = bcrypt.gensalt(rounds=rounds or settings.password_hash_rounds)
    return bcrypt.hashpw(_encode(password), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """True if password matches. Malformed hashes never match."""
    try:
        return bcrypt.checkpw(_encode(password), password_hash.encode("utf-8"))
    except (ValueError, TypeError):
        return False


def hash_rounds(password_hash: str) -> Optional[int]:
    """Cost factor of a bcrypt hash, or None if it is not one."""
    parts = password_hash.split("$")
    if len(parts) < 4 or not parts[2].isdigit():
        return None
    return int(parts[2])


def needs_rehash(password_hash: str, rounds: Optional[int] = None) -> bool:
    """Whether a stored hash is weaker than the configured cost."""
    current = hash_rounds(password_hash)
    return current is None or current < (rounds or settings.password_hash_rounds)
