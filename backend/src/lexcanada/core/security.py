"""
Security utilities for LexCanada.

Password hashing, JWT access tokens and input validation.
"""

import re
import secrets
import string
import logging
from datetime import datetime, timedelta
from typing import Optional, Dict, Any
from passlib.context import CryptContext
from jose import JWTError, jwt

from lexcanada.core.config import get_config

config = get_config()
logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# bcrypt only looks at the first 72 bytes
BCRYPT_MAX_BYTES = 72


def _truncate_for_bcrypt(password: str) -> str:
    encoded = password.encode('utf-8')
    if len(encoded) > BCRYPT_MAX_BYTES:
        return encoded[:BCRYPT_MAX_BYTES].decode('utf-8', errors='ignore')
    return password


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash."""
    try:
        return pwd_context.verify(_truncate_for_bcrypt(plain_password), hashed_password)
    except ValueError as e:
        # Malformed hash in the database
        logger.error(f"Password verification error: {e}")
        return False


def get_password_hash(password: str) -> str:
    """Hash a password."""
    return pwd_context.hash(_truncate_for_bcrypt(password))


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create a JWT access token."""
    to_encode = data.copy()
    if expires_delta:
        expire = datetime.utcnow() + expires_delta
    else:
        expire = datetime.utcnow() + timedelta(minutes=config.security.access_token_expire_minutes)

    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, config.security.secret_key, algorithm=config.security.jwt_algorithm)


def decode_access_token(token: str) -> Optional[str]:
    """Return the subject of a valid token, or None."""
    try:
        payload = jwt.decode(token, config.security.secret_key, algorithms=[config.security.jwt_algorithm])
    except JWTError:
        return None
    return payload.get("sub")


def generate_token(length: int = 32) -> str:
    """Generate a random alphanumeric token."""
    alphabet = string.ascii_letters + string.digits
    return ''.join(secrets.choice(alphabet) for _ in range(length))


class PasswordValidator:
    """Validates password strength."""

    @staticmethod
    def validate_password(password: str) -> Dict[str, Any]:
        """
        Validate password strength.

        Returns:
            Dict with ``is_valid`` and a list of ``errors``
        """
        errors = []
        min_length = config.security.min_password_length
        max_length = config.security.max_password_length

        if len(password) < min_length:
            errors.append(f"Password must be at least {min_length} characters")
        if len(password) > max_length:
            errors.append(f"Password must be no more than {max_length} characters")
        if not any(c.isalpha() for c in password):
            errors.append("Password must contain at least one letter")
        if not any(c.isdigit() for c in password):
            errors.append("Password must contain at least one digit")
        if password.lower() in ("password1", "12345678a", "qwerty123"):
            errors.append("Password is too common")

        return {
            'is_valid': len(errors) == 0,
            'errors': errors,
        }


class InputValidator:
    """Validates free-text inputs before they are stored or sent to an LLM."""

    DANGEROUS_PATTERNS = [
        r'<script.*?>.*?</script>',
        r'javascript:',
        r'data:text/html',
        r'vbscript:',
    ]

    @staticmethod
    def validate_text(text: str, field: str, max_length: int, min_length: int = 1) -> Dict[str, Any]:
        if not isinstance(text, str) or len(text.strip()) < min_length:
            if min_length <= 1:
                return {'is_valid': False, 'error': f'{field} cannot be empty'}
            return {'is_valid': False, 'error': f'{field} must be at least {min_length} characters'}

        if len(text) > max_length:
            return {'is_valid': False, 'error': f'{field} too long. Max length: {max_length} characters'}

        for pattern in InputValidator.DANGEROUS_PATTERNS:
            if re.search(pattern, text, re.IGNORECASE | re.DOTALL):
                return {'is_valid': False, 'error': 'Invalid content detected'}

        return {'is_valid': True}
