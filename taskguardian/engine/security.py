"""
Task Guardian Security Engine — Password hashing and bearer session tokens.

Implements:
- hash_password / verify_password: bcrypt over a SHA-256 pre-hash, plaintext never stored
- SessionManager: issue/validate signed, time-limited JWT session tokens
- extract_bearer_token: Authorization header parsing

Token claims:
    sub / id  — user id
    name      — username
    role      — ADMIN | MANAGER | REGULAR
    iat, exp  — issued-at / expiry (default 24h)
"""

from __future__ import annotations

import base64
import hashlib
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable, Optional

import bcrypt
import jwt

from taskguardian.engine.config import ROLES, SecurityConfig
from taskguardian.engine.errors import InvalidTokenError, MissingTokenError

logger = logging.getLogger("taskguardian.engine.security")

BEARER_PREFIX = "Bearer "


# ---------------------------------------------------------------------------
# Password Utilities
# ---------------------------------------------------------------------------

def _prehash(password: str) -> bytes:
    """
    SHA-256 the password, base64-encoded, before bcrypt.

    bcrypt only reads the first 72 bytes; the digest is 44 bytes, so the
    whole password always counts.
    """
    return base64.b64encode(hashlib.sha256(password.encode("utf-8")).digest())


def hash_password(password: str, rounds: int = 10) -> str:
    """Hash a password using bcrypt over its SHA-256 digest."""
    return bcrypt.hashpw(_prehash(password), bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Verify a password against its bcrypt hash."""
    try:
        return bcrypt.checkpw(_prehash(password), password_hash.encode("utf-8"))
    except ValueError:
        # Malformed stored hash
        logger.error("Stored password hash is not a valid bcrypt hash")
        return False


# ---------------------------------------------------------------------------
# Session Tokens
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SessionIdentity:
    """Decoded identity carried by a valid session token."""

    user_id: str
    role: str
    username: str = ""


def extract_bearer_token(authorization: Optional[str]) -> str:
    """
    Pull the token out of an Authorization header value.

    The "Bearer " prefix is optional; a bare value is treated as the token.

    Raises:
        MissingTokenError: header absent or empty.
    """
    if authorization is None:
        raise MissingTokenError()
    token = authorization.strip()
    if token == BEARER_PREFIX.strip():
        raise MissingTokenError()
    if token.startswith(BEARER_PREFIX):
        token = token[len(BEARER_PREFIX):].strip()
    if not token:
        raise MissingTokenError()
    return token


class SessionManager:
    """
    Issues and verifies signed session tokens.

    Stateless: nothing is stored server-side, validity is signature + expiry.
    """

    def __init__(self, security: SecurityConfig, roles: Iterable[str] = ROLES):
        self._secret = security.jwt_secret
        self._algorithm = security.jwt_algorithm
        self._ttl = timedelta(hours=security.session_ttl_hours)
        self._roles = frozenset(roles)

    @property
    def ttl(self) -> timedelta:
        return self._ttl

    def issue(self, user_id: str, role: str, username: str = "", now: Optional[datetime] = None) -> str:
        """Produce a signed token for the user. No side effects."""
        issued_at = now or datetime.now(timezone.utc)
        payload: Dict[str, Any] = {
            "sub": str(user_id),
            "id": str(user_id),
            "name": username,
            "role": role,
            "iat": issued_at,
            "exp": issued_at + self._ttl,
        }
        return jwt.encode(payload, self._secret, algorithm=self._algorithm)

    def validate(self, token: Optional[str]) -> SessionIdentity:
        """
        Verify signature and expiry and return the decoded identity.

        Raises:
            MissingTokenError: token absent.
            InvalidTokenError: bad signature, malformed, expired, bad claims.
        """
        if not token:
            raise MissingTokenError()

        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options={"require": ["exp", "sub"]},
            )
        except jwt.ExpiredSignatureError as e:
            raise InvalidTokenError("Invalid token", reason="expired") from e
        except jwt.InvalidTokenError as e:
            raise InvalidTokenError("Invalid token", reason=type(e).__name__) from e

        role = payload.get("role")
        if role not in self._roles:
            raise InvalidTokenError("Invalid token", reason="unknown_role")

        return SessionIdentity(
            user_id=str(payload["sub"]),
            role=role,
            username=payload.get("name") or "",
        )

    def validate_header(self, authorization: Optional[str]) -> SessionIdentity:
        """Validate a raw Authorization header value."""
        return self.validate(extract_bearer_token(authorization))
