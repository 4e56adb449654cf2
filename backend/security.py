"""Password/access gate: bcrypt hashing plus the bearer-token checks used by the routes."""
import hmac
import logging
import secrets
from typing import Optional

import bcrypt
from fastapi import Header

from config import get_bcrypt_rounds, get_operator_secret
from errors import Unauthorized

logger = logging.getLogger(__name__)

# bcrypt only looks at the first 72 bytes and newer releases reject longer input
MAX_PASSWORD_BYTES = 72


def hash_password(password: str) -> str:
    """Hash a password using bcrypt."""
    salt = bcrypt.gensalt(rounds=get_bcrypt_rounds())
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Verify a password against a stored hash. Malformed hashes never match."""
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except (ValueError, TypeError, AttributeError):
        return False


def generate_password() -> str:
    """Return a fresh admin password: a short hex token shown to the creator once."""
    return secrets.token_hex(8)


def check_secret(secret: Optional[str], password_hash: str) -> None:
    """Gate a stored hash behind a plaintext secret.

    Raises:
        Unauthorized: "Authorization required" when no secret was given,
            "Invalid credentials" when it does not match.
    """
    if not secret:
        raise Unauthorized("Authorization required")
    if not verify_password(secret, password_hash):
        raise Unauthorized("Invalid credentials")


def bearer_token(authorization: str = Header(default="")) -> Optional[str]:
    """Extract the token from an ``Authorization: Bearer <token>`` header."""
    scheme, _, token = (authorization or "").partition(" ")
    if scheme.lower() != "bearer":
        return None
    return token.strip() or None


def verify_operator(authorization: str = Header(default="")):
    """Require the deployment-wide operator secret as a bearer token."""
    token = bearer_token(authorization)
    if not token:
        raise Unauthorized("Authorization required")
    expected = get_operator_secret()
    if not expected or not hmac.compare_digest(token.encode("utf-8"), expected.encode("utf-8")):
        logger.warning("Rejected operator token")
        raise Unauthorized("Invalid credentials")
