"""
Data models for the AI Marker API

Request schemas, record dataclasses and football team helpers.
"""

from .schemas import (
    ActivityAction,
    PlayerSchema,
    PlayerUpdateSchema,
    SubmissionSchema,
    TeamCreateSchema,
    TeamUpdateSchema,
    UserLoginSchema,
    UserRegisterSchema,
    UserRole,
)
from .user import ActivityLog, User
from .team import calculate_team_rating, starting_xi, bench_players

__all__ = [
    "ActivityAction",
    "PlayerSchema",
    "PlayerUpdateSchema",
    "SubmissionSchema",
    "TeamCreateSchema",
    "TeamUpdateSchema",
    "UserLoginSchema",
    "UserRegisterSchema",
    "UserRole",
    "ActivityLog",
    "User",
    "calculate_team_rating",
    "starting_xi",
    "bench_players",
]
