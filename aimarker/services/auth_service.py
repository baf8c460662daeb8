"""
Authentication Service
User registration, login and token business logic
"""

import asyncpg
import logging
from typing import Dict, Optional

from aimarker.models.schemas import UserRegisterSchema, UserLoginSchema, UserRole
from aimarker.models.user import User
from aimarker.utils.database import UserDatabase
from aimarker.utils.errors import (
    DuplicateUserError, InvalidCredentialsError, InvalidTokenError, NotFoundError
)
from aimarker.utils.security import get_security_utils, hash_password, verify_password

logger = logging.getLogger(__name__)


class AuthService:
    """User authentication service"""

    @staticmethod
    def issue_tokens(user: User) -> Dict[str, str]:
        security = get_security_utils()
        return {
            'token': security.generate_access_token(user.token_claims()),
            'refresh_token': security.generate_refresh_token(user.id)
        }

    @staticmethod
    async def register_user(user_data: UserRegisterSchema) -> Dict:
        """
        Register new user

        Args:
            user_data: Validated registration data

        Returns:
            dict: user and tokens

        Raises:
            DuplicateUserError: email or username already registered
        """
        existing = await UserDatabase.find_conflicting_user(user_data.email, user_data.username)
        if existing:
            if existing['email'] == user_data.email:
                raise DuplicateUserError("Email already registered")
            raise DuplicateUserError("Username already taken")

        password_hash = await hash_password(user_data.password)

        try:
            record = await UserDatabase.create_user({
                'username': user_data.username,
                'email': user_data.email,
                'password_hash': password_hash,
                'role': UserRole.USER.value
            })
        except asyncpg.UniqueViolationError as e:
            # Lost a race with a concurrent signup
            logger.warning(f"Unique violation during registration: {e}")
            if 'email' in str(getattr(e, 'constraint_name', None) or ''):
                raise DuplicateUserError("Email already registered")
            raise DuplicateUserError("Username already taken")

        user = User.from_record(record)
        logger.info(f"User registered: {user.username}")

        return {'user': user, **AuthService.issue_tokens(user)}

    @staticmethod
    async def authenticate_user(login_data: UserLoginSchema) -> Dict:
        """
        Authenticate user by email or username

        Raises:
            InvalidCredentialsError: unknown user or wrong password
        """
        if login_data.email:
            record = await UserDatabase.get_user_by_email(login_data.email.lower())
        else:
            record = await UserDatabase.get_user_by_username(login_data.username)

        if not record:
            raise InvalidCredentialsError("Invalid credentials")

        if not await verify_password(login_data.password, record['password_hash']):
            raise InvalidCredentialsError("Invalid credentials")

        await UserDatabase.update_last_login(record['id'])
        user = User.from_record(record)

        return {'user': user, **AuthService.issue_tokens(user)}

    @staticmethod
    async def refresh_access_token(refresh_token: str) -> Dict:
        """
        Exchange a refresh token for a new access token

        Raises:
            TokenExpiredError: refresh token expired
            InvalidTokenError: refresh token invalid or its user is gone
        """
        security = get_security_utils()
        payload = security.decode_refresh_token(refresh_token)

        record = await UserDatabase.get_user_by_id(payload['id'])
        if not record:
            raise InvalidTokenError("Invalid token")

        user = User.from_record(record)
        return {'user': user, 'access_token': security.generate_access_token(user.token_claims())}

    @staticmethod
    async def get_user(user_id: str) -> Optional[User]:
        record = await UserDatabase.get_user_by_id(user_id)
        return User.from_record(record) if record else None

    @staticmethod
    async def change_password(user_id: str, current_password: str, new_password: str) -> None:
        """
        Change user password

        Raises:
            NotFoundError: user no longer exists
            InvalidCredentialsError: current password is wrong
        """
        record = await UserDatabase.get_user_by_id(user_id)
        if not record:
            raise NotFoundError("User not found")

        if not await verify_password(current_password, record['password_hash']):
            raise InvalidCredentialsError("Current password is incorrect")

        await UserDatabase.update_password(user_id, await hash_password(new_password))
        logger.info(f"Password changed for user: {record['username']}")
