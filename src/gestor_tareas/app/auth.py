"""Password hashing and session binding for multi-user mode.

Beginner terms:
- Salt: random bytes mixed into each hash so equal passwords hash differently.
- Session: signed cookie managed by Starlette's SessionMiddleware (request.session).
"""

from __future__ import annotations

import hashlib
import hmac
import secrets

from fastapi import Request

from .models import User

PBKDF2_ALGORITHM = "pbkdf2_sha256"
PBKDF2_ITERATIONS = 260_000

SESSION_USER_ID = "user_id"
SESSION_USERNAME = "username"


def hash_password(
    password: str,
    *,
    salt: str | None = None,
    iterations: int = PBKDF2_ITERATIONS,
) -> str:
    """Return `pbkdf2_sha256$<iterations>$<salt>$<hex digest>`."""
    if salt is None:
        salt = secrets.token_hex(16)
    key = hashlib.pbkdf2_hmac("sha256", password.encode(), salt.encode(), iterations)
    return f"{PBKDF2_ALGORITHM}${iterations}${salt}${key.hex()}"


def verify_password(password: str, stored_hash: str) -> bool:
    try:
        algorithm, raw_iterations, salt, _digest = stored_hash.split("$", 3)
        iterations = int(raw_iterations)
    except ValueError:
        return False
    if algorithm != PBKDF2_ALGORITHM:
        return False
    candidate = hash_password(password, salt=salt, iterations=iterations)
    return hmac.compare_digest(candidate, stored_hash)


def current_user_id(request: Request) -> int | None:
    raw = request.session.get(SESSION_USER_ID)
    if isinstance(raw, int):
        return raw
    return None


def current_username(request: Request) -> str | None:
    raw = request.session.get(SESSION_USERNAME)
    return raw if isinstance(raw, str) else None


def login_user(request: Request, user: User) -> None:
    request.session.clear()
    request.session[SESSION_USER_ID] = user.id
    request.session[SESSION_USERNAME] = user.username


def logout_user(request: Request) -> None:
    request.session.clear()
