"""
Security Utilities
Password hashing, tokens, input sanitization and audit helpers
"""

import logging
import secrets
from datetime import datetime, timedelta
from typing import Any, Optional

# Input sanitization
import bleach

# Token generation and validation
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer
from jose import JWTError
from jose import jwt as jose_jwt

# Password hashing
from passlib.context import CryptContext

from .config import JWT_EXPIRE_MINUTES, SECRET_KEY

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"

# Password hashing context
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

SENSITIVE_FIELDS = ("password", "token", "secret", "key", "cpf", "rg")
REDACTED = "***REDACTED***"


# ============================================================================
# PASSWORD SECURITY
# ============================================================================


def hash_password(password: str) -> str:
    """Hash password using bcrypt"""
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify password against bcrypt hash"""
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except Exception as e:
        logger.error(f"Password verification error: {e}")
        return False


# ============================================================================
# TOKEN GENERATION & VALIDATION
# ============================================================================


def generate_timed_token(data: dict[str, Any], salt: str = "security-token") -> str:
    """
    Generate a time-limited token using itsdangerous
    Used for password reset links
    """
    serializer = URLSafeTimedSerializer(SECRET_KEY)
    return serializer.dumps(data, salt=salt)


def verify_timed_token(
    token: str, max_age: int = 3600, salt: str = "security-token"
) -> Optional[dict[str, Any]]:
    """
    Verify and decode a timed token

    Args:
        token: The token to verify
        max_age: Maximum age in seconds (default 1 hour)

    Returns:
        Decoded data if valid, None if invalid or expired
    """
    serializer = URLSafeTimedSerializer(SECRET_KEY)
    try:
        return serializer.loads(token, salt=salt, max_age=max_age)
    except SignatureExpired:
        logger.warning("Token expired")
        return None
    except BadSignature:
        logger.warning("Invalid token signature")
        return None


def create_jwt_token(data: dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a JWT token

    Args:
        data: Data to encode in the token
        expires_delta: Token expiration time (default JWT_EXPIRE_MINUTES)
    """
    to_encode = data.copy()
    expire = datetime.utcnow() + (expires_delta or timedelta(minutes=JWT_EXPIRE_MINUTES))
    to_encode.update({"exp": expire, "iat": datetime.utcnow()})
    return jose_jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def verify_jwt_token(token: str) -> Optional[dict[str, Any]]:
    """
    Verify and decode a JWT token

    Returns:
        Decoded payload if valid, None if invalid or expired
    """
    try:
        return jose_jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError as e:
        logger.warning(f"JWT verification failed: {e}")
        return None


# ============================================================================
# INPUT SANITIZATION
# ============================================================================


def sanitize_text(value: Optional[str]) -> Optional[str]:
    """Strip any HTML from free-text input (names, clinical notes)"""
    if value is None:
        return None
    return bleach.clean(value, tags=[], attributes={}, strip=True).strip()


def sanitize_details(data: Any) -> Any:
    """Recursively redact sensitive keys before details are persisted in audit logs"""
    if isinstance(data, dict):
        sanitized = {}
        for key, value in data.items():
            if any(field in str(key).lower() for field in SENSITIVE_FIELDS):
                sanitized[key] = REDACTED
            else:
                sanitized[key] = sanitize_details(value)
        return sanitized
    if isinstance(data, (list, tuple)):
        return [sanitize_details(item) for item in data]
    if isinstance(data, datetime):
        return data.isoformat()
    return data


def get_client_ip(request) -> Optional[str]:
    """Best guess of the caller's IP behind proxies"""
    if request is None:
        return None
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip
    return request.client.host if request.client else None


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
    Log security-related events to the application logger

    Args:
        event_type: Type of security event (login, logout, failed_login, etc.)
        user_id: User identifier
        ip_address: Client IP address
        details: Additional event details
    """
    log_entry = {
        "timestamp": datetime.utcnow().isoformat(),
        "event_type": event_type,
        "user_id": user_id,
        "ip_address": ip_address,
        "details": sanitize_details(details or {}),
    }
    logger.info(f"SECURITY_EVENT: {log_entry}")


# ============================================================================
# UTILITY FUNCTIONS
# ============================================================================


def constant_time_compare(a: str, b: str) -> bool:
    """Compare two strings in constant time to prevent timing attacks"""
    return secrets.compare_digest(a.encode(), b.encode())
