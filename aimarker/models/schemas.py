"""
Request schemas for the AI Marker API

Pydantic models for auth, submission and football team payloads.
Team payloads accept both snake_case and the camelCase keys the web client sends.
"""

from typing import Optional, List
from enum import Enum
from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

MAX_SQUAD_SIZE = 25


class UserRole(str, Enum):
    """User role enumeration"""
    USER = "user"
    ADMIN = "admin"


class ActivityAction(str, Enum):
    """Actions recorded in the activity log"""
    LOGIN = "LOGIN"
    LOGOUT = "LOGOUT"
    REGISTER = "REGISTER"
    REFRESH_TOKEN = "REFRESH_TOKEN"
    SUBMIT_QUESTION = "SUBMIT_QUESTION"
    VIEW_FEEDBACK = "VIEW_FEEDBACK"
    EXPORT_DATA = "EXPORT_DATA"
    IMPORT_CSV = "IMPORT_CSV"
    SAVE_TEAM = "SAVE_TEAM"


class UserRegisterSchema(BaseModel):
    """Schema for creating a new user"""
    username: str = Field(..., min_length=3, max_length=30)
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=128)

    @field_validator('username', mode='before')
    @classmethod
    def strip_username(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator('email')
    @classmethod
    def validate_email(cls, v):
        return v.lower()


class UserLoginSchema(BaseModel):
    """Schema for user login, by email or username"""
    email: Optional[str] = None
    username: Optional[str] = None
    password: str = Field(..., min_length=1)

    @model_validator(mode='after')
    def require_identifier(self):
        if not (self.email or self.username):
            raise ValueError('Email or username is required')
        return self


class RefreshTokenSchema(BaseModel):
    """Schema for refreshing an access token"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    refresh_token: str = Field(..., min_length=1)


class PasswordChangeSchema(BaseModel):
    """Schema for password change"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=6, max_length=128)


class SubmissionSchema(BaseModel):
    """Question submitted for marking"""
    question: Optional[str] = ""
    subject: Optional[str] = None
    level: Optional[str] = None


class Position(str, Enum):
    GK = "GK"
    CB = "CB"
    LB = "LB"
    RB = "RB"
    CDM = "CDM"
    CM = "CM"
    CAM = "CAM"
    LM = "LM"
    RM = "RM"
    LW = "LW"
    RW = "RW"
    CF = "CF"
    ST = "ST"


class Formation(str, Enum):
    F_442 = "4-4-2"
    F_433 = "4-3-3"
    F_352 = "3-5-2"
    F_532 = "5-3-2"
    F_4231 = "4-2-3-1"
    F_343 = "3-4-3"
    F_451 = "4-5-1"
    F_541 = "5-4-1"


class AttackingStyle(str, Enum):
    POSSESSION = "Possession"
    COUNTER_ATTACK = "Counter Attack"
    HIGH_PRESS = "High Press"
    WING_PLAY = "Wing Play"


class DefensiveStyle(str, Enum):
    HIGH_LINE = "High Line"
    DEEP_BLOCK = "Deep Block"
    PRESSING = "Pressing"
    ZONAL_MARKING = "Zonal Marking"


class BuildUpPlay(str, Enum):
    SHORT_PASSING = "Short Passing"
    LONG_BALL = "Long Ball"
    BALANCED = "Balanced"


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, use_enum_values=True)


class PlayerUpdateSchema(CamelModel):
    """Partial player update"""
    name: Optional[str] = Field(None, min_length=1, max_length=50)
    position: Optional[Position] = None
    overall: Optional[int] = Field(None, ge=1, le=99)
    pace: Optional[int] = Field(None, ge=1, le=99)
    shooting: Optional[int] = Field(None, ge=1, le=99)
    passing: Optional[int] = Field(None, ge=1, le=99)
    dribbling: Optional[int] = Field(None, ge=1, le=99)
    defending: Optional[int] = Field(None, ge=1, le=99)
    physical: Optional[int] = Field(None, ge=1, le=99)
    nationality: Optional[str] = Field(None, max_length=50)
    age: Optional[int] = Field(None, ge=15, le=45)
    height: Optional[int] = Field(None, ge=150, le=220)
    weight: Optional[int] = Field(None, ge=50, le=120)

    @field_validator('name', mode='before')
    @classmethod
    def strip_name(cls, v):
        return v.strip() if isinstance(v, str) else v


class PlayerSchema(PlayerUpdateSchema):
    """Player in a squad; name, position and overall are required"""
    id: Optional[str] = None
    name: str = Field(..., min_length=1, max_length=50)
    position: Position
    overall: int = Field(..., ge=1, le=99)


class TacticsSchema(CamelModel):
    attacking_style: Optional[AttackingStyle] = None
    defensive_style: Optional[DefensiveStyle] = None
    build_up_play: Optional[BuildUpPlay] = None


class StatisticsSchema(CamelModel):
    matches_played: int = Field(0, ge=0)
    wins: int = Field(0, ge=0)
    draws: int = Field(0, ge=0)
    losses: int = Field(0, ge=0)
    goals_for: int = Field(0, ge=0)
    goals_against: int = Field(0, ge=0)


class TeamUpdateSchema(CamelModel):
    """Partial team update; only fields that were sent are applied"""
    name: Optional[str] = Field(None, min_length=2, max_length=100)
    formation: Optional[Formation] = None
    players: Optional[List[PlayerSchema]] = Field(None, max_length=MAX_SQUAD_SIZE)
    description: Optional[str] = Field(None, max_length=500)
    league: Optional[str] = Field(None, max_length=100)
    season: Optional[str] = Field(None, max_length=20)
    is_public: Optional[bool] = None
    tactics: Optional[TacticsSchema] = None
    statistics: Optional[StatisticsSchema] = None

    @field_validator('name', mode='before')
    @classmethod
    def strip_name(cls, v):
        return v.strip() if isinstance(v, str) else v


class TeamCreateSchema(TeamUpdateSchema):
    """New team; name and formation are required"""
    name: str = Field(..., min_length=2, max_length=100)
    formation: Formation
    players: List[PlayerSchema] = Field(default_factory=list, max_length=MAX_SQUAD_SIZE)
    is_public: bool = False
