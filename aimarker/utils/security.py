"""
Security utilities for the AI Marker API

Provides password hashing and JWT access/refresh tokens.
"""

import asyncio
import secrets
import logging
from typing import Optional, Dict, Any
from datetime import datetime, timedelta, timezone
import bcrypt
import jwt

from aimarker.config import settings
from aimarker.utils.errors import TokenExpiredError, InvalidTokenError

logger = logging.getLogger(__name__)


class SecurityUtils:
    """Security utilities class"""

    def __init__(
        self,
        jwt_secret: Optional[str] = None,
        refresh_secret: Optional[str] = None,
        jwt_algorithm: Optional[str] = None,
        access_expire_minutes: Optional[int] = None,
        refresh_expire_days: Optional[int] = None
    ):
        self.jwt_secret = jwt_secret or settings.jwt_secret
        self.refresh_secret = refresh_secret or settings.refresh_token_secret
        self.jwt_algorithm = jwt_algorithm or settings.jwt_algorithm
        self.access_expire_minutes = access_expire_minutes or settings.jwt_access_token_expire_minutes
        self.refresh_expire_days = refresh_expire_days or settings.jwt_refresh_token_expire_days

    def hash_password(self, password: str) -> str:
        """
        Hash password using bcrypt

        Args:
            password: Plain text password

        Returns:
            Hashed password
        """
        salt = bcrypt.gensalt(rounds=10)
        hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
        return hashed.decode('utf-8')

    def verify_password(self, password: str, hashed_password: str) -> bool:
        """
        Verify password against hash

        Args:
            password: Plain text password
            hashed_password: Hashed password

        Returns:
            True if password matches, False otherwise
        """
        try:
            return bcrypt.checkpw(password.encode('utf-8'), hashed_password.encode('utf-8'))
        except ValueError as e:
            logger.error(f"Failed to verify password: {e}")
            return False

    def generate_access_token(self, user: Dict[str, Any], expires_in: Optional[int] = None) -> str:
        """
        Generate JWT access token

        Args:
            user: User record with id, username and role
            expires_in: Expiration time in minutes

        Returns:
            JWT token string
        """
        now = datetime.now(timezone.utc)
        payload = {
            "id": str(user["id"]),
            "username": user["username"],
            "role": user.get("role", "user"),
            "type": "access",
            "iat": now,
            "exp": now + timedelta(minutes=expires_in or self.access_expire_minutes),
        }
        return jwt.encode(payload, self.jwt_secret, algorithm=self.jwt_algorithm)

    def generate_refresh_token(self, user_id: str, expires_in_days: Optional[int] = None) -> str:
        """
        Generate refresh token

        Args:
            user_id: User ID

        Returns:
            Refresh token string
        """
        now = datetime.now(timezone.utc)
        payload = {
            "id": str(user_id),
            "type": "refresh",
            "iat": now,
            "exp": now + timedelta(days=expires_in_days or self.refresh_expire_days),
        }
        return jwt.encode(payload, self.refresh_secret, algorithm=self.jwt_algorithm)

    def _decode(self, token: str, secret: str, token_type: str) -> Dict[str, Any]:
        try:
            payload = jwt.decode(token, secret, algorithms=[self.jwt_algorithm])
        except jwt.ExpiredSignatureError:
            raise TokenExpiredError("Token expired")
        except jwt.InvalidTokenError as e:
            logger.debug(f"Token rejected: {e}")
            raise InvalidTokenError("Invalid token")

        if payload.get("type") != token_type or not payload.get("id"):
            raise InvalidTokenError("Invalid token")
        return payload

    def decode_access_token(self, token: str) -> Dict[str, Any]:
        """
        Decode an access token

        Raises:
            TokenExpiredError: token past its expiry
            InvalidTokenError: bad signature, malformed token or wrong token type
        """
        return self._decode(token, self.jwt_secret, "access")

    def decode_refresh_token(self, token: str) -> Dict[str, Any]:
        """Decode a refresh token, raising like decode_access_token"""
        return self._decode(token, self.refresh_secret, "refresh")

    def verify_token(self, token: str) -> Optional[Dict[str, Any]]:
        """
        Verify and decode JWT access token

        Args:
            token: JWT token string

        Returns:
            Decoded payload or None if invalid
        """
        try:
            return self.decode_access_token(token)
        except TokenExpiredError:
            logger.warning("Token has expired")
            return None
        except InvalidTokenError as e:
            logger.warning(f"{e}")
            return None

    def generate_submission_id(self) -> str:
        """Generate a submission id of the form sub_<ms>_<9 base36 chars>"""
        alphabet = "0123456789abcdefghijklmnopqrstuvwxyz"
        suffix = ''.join(secrets.choice(alphabet) for _ in range(9))
        millis = int(datetime.now(timezone.utc).timestamp() * 1000)
        return f"sub_{millis}_{suffix}"


# Global security utils instance
_security_utils: Optional[SecurityUtils] = None


def get_security_utils() -> SecurityUtils:
    """
    Get global security utils instance

    Returns:
        SecurityUtils instance
    """
    global _security_utils
    if _security_utils is None:
        _security_utils = SecurityUtils()
    return _security_utils


# Convenience functions
async def hash_password(password: str) -> str:
    """Hash password using bcrypt in thread pool to avoid blocking"""
    return await asyncio.to_thread(get_security_utils().hash_password, password)


async def verify_password(password: str, hashed_password: str) -> bool:
    """Verify password against hash in thread pool to avoid blocking"""
    return await asyncio.to_thread(get_security_utils().verify_password, password, hashed_password)


def verify_token(token: str) -> Optional[Dict[str, Any]]:
    """Verify and decode JWT access token"""
    return get_security_utils().verify_token(token)
