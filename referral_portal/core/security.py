from __future__ import annotations

import hashlib
import secrets

from werkzeug.security import check_password_hash, generate_password_hash

from referral_portal.core.config import settings


def hash_password(password: str, *, iterations: int | None = None) -> str:
    """Return a salted ``pbkdf2:sha256:<iterations>$<salt>$<hash>`` string."""
    rounds = int(iterations or settings.password_hash_iterations)
    return generate_password_hash(password, method=f"pbkdf2:sha256:{rounds}")


def verify_password(password: str, encoded: str | None) -> bool:
    if not encoded:
        return False
    try:
        return check_password_hash(encoded, password)
    except ValueError:
        # Unknown hash method in a stored value.
        return False


def new_session_token() -> str:
    return secrets.token_urlsafe(32)


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()
