"""
Security Utilities
Password hashing and signed access tokens, delegated to passlib and python-jose
"""

import hashlib
import logging
import os
import re
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from jose import ExpiredSignatureError, JWTError
from jose import jwt as jose_jwt

# Password hashing
from passlib.context import CryptContext

from .config import JWT_ALGORITHM, JWT_AUDIENCE, JWT_EXPIRES_HOURS, JWT_ISSUER, SECRET_KEY

logger = logging.getLogger(__name__)

BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", "12"))

# Password hashing context
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=BCRYPT_ROUNDS)


# ============================================================================
# PASSWORD SECURITY
# ============================================================================


def hash_password_bcrypt(password: str) -> str:
    """Hash password using bcrypt"""
    return pwd_context.hash(password)


def verify_password_bcrypt(plain_password: str, hashed_password: str) -> bool:
    """Verify password against bcrypt hash"""
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except ValueError as e:
        logger.error(f"Password verification error: {e}")
        return False


def check_password_strength(password: str) -> dict[str, Any]:
    """
    Check a password against the registration rules

    Returns:
        dict with 'feedback' (list of unmet rules) and 'is_valid' (bool)
    """
    feedback = []

    if len(password) < 8:
        feedback.append("Password must be at least 8 characters long")
    if len(password) > 128:
        feedback.append("Password is too long")
    if not re.search(r"[a-z]", password):
        feedback.append("Password must contain a lowercase letter")
    if not re.search(r"[A-Z]", password):
        feedback.append("Password must contain an uppercase letter")
    if not re.search(r"\d", password):
        feedback.append("Password must contain a number")

    return {"feedback": feedback, "is_valid": not feedback}


# ============================================================================
# TOKEN GENERATION & VALIDATION
# ============================================================================


class TokenError(Exception):
    """Raised when an access token cannot be trusted"""


def create_jwt_token(user_id: str, expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a signed access token for a user

    Args:
        user_id: Subject of the token
        expires_delta: Token lifetime (default JWT_EXPIRES_HOURS)
    """
    if not user_id:
        raise ValueError("User ID is required for token generation")

    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(hours=JWT_EXPIRES_HOURS))
    to_encode = {
        "sub": str(user_id),
        "iat": now,
        "exp": expire,
        "iss": JWT_ISSUER,
        "aud": JWT_AUDIENCE,
    }
    return jose_jwt.encode(to_encode, SECRET_KEY, algorithm=JWT_ALGORITHM)


def verify_jwt_token(token: str) -> dict[str, Any]:
    """
    Verify and decode an access token

    Returns:
        Decoded payload

    Raises:
        TokenError: with a client-safe message if invalid or expired
    """
    if not token:
        raise TokenError("Token is required")

    try:
        return jose_jwt.decode(
            token,
            SECRET_KEY,
            algorithms=[JWT_ALGORITHM],
            audience=JWT_AUDIENCE,
            issuer=JWT_ISSUER,
        )
    except ExpiredSignatureError as e:
        raise TokenError("Token has expired") from e
    except JWTError as e:
        logger.warning(f"JWT verification failed: {e}")
        raise TokenError("Invalid token") from e


# ============================================================================
# RATE LIMITING HELPERS
# ============================================================================


def generate_rate_limit_key(identifier: str, endpoint: str) -> str:
    """
    Generate a consistent rate limit key

    Args:
        identifier: User email, IP address, or other identifier
        endpoint: API endpoint or action name

    Returns:
        Rate limit key
    """
    # Hash the identifier for privacy
    hashed_id = hashlib.sha256(identifier.encode()).hexdigest()[:16]
    return f"rate_limit:{endpoint}:{hashed_id}"


# ============================================================================
# AUDIT LOGGING
# ============================================================================


def log_security_event(
    event_type: str,
    user_id: Optional[str] = None,
    ip_address: Optional[str] = None,
    details: Optional[dict[str, Any]] = None,
):
    """
    Log security-related events for audit trail

    Args:
        event_type: Type of security event (login, logout, failed_auth, etc.)
        user_id: User identifier
        ip_address: Client IP address
        details: Additional event details
    """
    log_entry = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "event_type": event_type,
        "user_id": user_id,
        "ip_address": ip_address,
        "details": details or {},
    }

    logger.info(f"SECURITY_EVENT: {log_entry}")
