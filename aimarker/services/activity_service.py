"""
Activity Service
Audit trail of user actions
"""

import logging
from typing import Any, Dict, List, Optional

from fastapi import Request

from aimarker.models.schemas import ActivityAction
from aimarker.models.user import ActivityLog
from aimarker.utils.database import ActivityLogDatabase
from aimarker.utils.logger import get_audit_logger
from aimarker.utils.rate_limit import get_client_ip

logger = logging.getLogger(__name__)


class ActivityService:
    """Records and lists activity log entries"""

    @staticmethod
    async def log_activity(
        user_id: str,
        action: ActivityAction,
        details: Optional[Dict[str, Any]] = None,
        request: Optional[Request] = None,
        success: bool = True
    ) -> Optional[str]:
        """
        Record an action; never raises

        Args:
            user_id: Acting user
            action: Action performed
            details: Free-form context
            request: Incoming request, used for IP and user agent
            success: Whether the action succeeded

        Returns:
            str: Log entry ID, or None when it could not be stored
        """
        entry = ActivityLog(
            user_id=user_id,
            action=action.value if isinstance(action, ActivityAction) else str(action),
            details=details or {},
            ip_address=get_client_ip(request) if request is not None else None,
            user_agent=request.headers.get("user-agent") if request is not None else None,
            success=success
        )

        get_audit_logger().log_user_action(
            user_id=user_id,
            action=entry.action,
            resource="activity",
            details=entry.details,
            ip_address=entry.ip_address
        )

        try:
            return await ActivityLogDatabase.create_log(entry.to_dict())
        except Exception as e:
            logger.error(f"Error logging activity {entry.action} for user {user_id}: {e}")
            return None

    @staticmethod
    async def get_user_activity(user_id: str, limit: int = 50) -> List[Dict[str, Any]]:
        return await ActivityLogDatabase.list_user_logs(user_id, limit)
