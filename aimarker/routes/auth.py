"""
Authentication Routes
User registration, login, token refresh and profile
"""

from fastapi import APIRouter, HTTPException, Query, Request, status
import logging

from aimarker.models.schemas import (
    ActivityAction, PasswordChangeSchema, RefreshTokenSchema, UserLoginSchema, UserRegisterSchema
)
from aimarker.services.activity_service import ActivityService
from aimarker.services.auth_service import AuthService
from aimarker.utils.dependencies import CurrentUser
from aimarker.utils.errors import AIMarkerError, to_http_exception

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/register", response_model=dict, status_code=status.HTTP_201_CREATED)
async def register_user(user_data: UserRegisterSchema, request: Request):
    """
    Register new user

    Returns access and refresh tokens so the client is signed in immediately
    """
    try:
        result = await AuthService.register_user(user_data)
        user = result['user']

        await ActivityService.log_activity(
            user.id, ActivityAction.REGISTER, {'username': user.username}, request
        )

        return {
            "success": True,
            "message": "User registered successfully",
            "token": result['token'],
            "refresh_token": result['refresh_token'],
            "user": user.to_dict()
        }

    except HTTPException:
        raise
    except AIMarkerError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"User registration error: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Registration failed"
        )


@router.post("/login", response_model=dict)
async def login_user(login_data: UserLoginSchema, request: Request):
    """User login by email or username"""
    try:
        result = await AuthService.authenticate_user(login_data)
        user = result['user']

        await ActivityService.log_activity(user.id, ActivityAction.LOGIN, {}, request)
        logger.info(f"User logged in: {user.username}")

        return {
            "success": True,
            "message": "Login successful",
            "token": result['token'],
            "refresh_token": result['refresh_token'],
            "user": user.to_dict()
        }

    except HTTPException:
        raise
    except AIMarkerError as e:
        logger.warning(f"Failed login for {login_data.email or login_data.username}")
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Login error: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Login failed"
        )


@router.post("/logout", response_model=dict)
async def logout_user(current_user: CurrentUser, request: Request):
    await ActivityService.log_activity(current_user['id'], ActivityAction.LOGOUT, {}, request)
    return {"success": True, "message": "Logout successful"}


@router.get("/user", response_model=dict)
async def get_current_user_profile(current_user: CurrentUser):
    """Get the signed-in user's profile"""
    try:
        user = await AuthService.get_user(current_user['id'])
        if not user:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="User not found"
            )

        return {"success": True, "user": user.to_dict()}

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Get user profile error: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to retrieve user"
        )


@router.post("/refresh", response_model=dict)
async def refresh_token(token_data: RefreshTokenSchema, request: Request):
    """Exchange a refresh token for a new access token"""
    try:
        result = await AuthService.refresh_access_token(token_data.refresh_token)

        await ActivityService.log_activity(
            result['user'].id, ActivityAction.REFRESH_TOKEN, {}, request
        )

        return {"success": True, "access_token": result['access_token']}

    except HTTPException:
        raise
    except AIMarkerError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Token refresh error: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Token refresh failed"
        )


@router.put("/password", response_model=dict)
async def change_password(password_data: PasswordChangeSchema, current_user: CurrentUser):
    try:
        await AuthService.change_password(
            current_user['id'],
            password_data.current_password,
            password_data.new_password
        )
        return {"success": True, "message": "Password changed successfully"}

    except HTTPException:
        raise
    except AIMarkerError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Password change error: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Password change failed"
        )


@router.get("/activity", response_model=dict)
async def get_activity(current_user: CurrentUser, limit: int = Query(50, ge=1, le=100)):
    """Most recent activity of the signed-in user"""
    try:
        logs = await ActivityService.get_user_activity(current_user['id'], limit)
        return {"success": True, "data": logs, "count": len(logs)}

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Get activity error: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to retrieve activity"
        )
