"""
User Models
Record definitions for user accounts and activity log entries
"""

from typing import Optional, Dict, Any
from datetime import datetime
from dataclasses import dataclass, field


@dataclass
class User:
    """User database model"""
    id: str
    username: str
    email: str
    password_hash: str
    role: str = "user"
    last_login: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "User":
        return cls(
            id=str(record['id']),
            username=record['username'],
            email=record['email'],
            password_hash=record['password_hash'],
            role=record.get('role') or 'user',
            last_login=record.get('last_login'),
            created_at=record.get('created_at'),
            updated_at=record.get('updated_at'),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary, never including the password hash"""
        return {
            'id': self.id,
            'username': self.username,
            'email': self.email,
            'role': self.role,
            'last_login': self.last_login,
            'created_at': self.created_at,
            'updated_at': self.updated_at
        }

    def token_claims(self) -> Dict[str, Any]:
        return {'id': self.id, 'username': self.username, 'role': self.role}


@dataclass
class ActivityLog:
    """Activity log entry"""
    user_id: str
    action: str
    details: Dict[str, Any] = field(default_factory=dict)
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    success: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            'user_id': self.user_id,
            'action': self.action,
            'details': self.details,
            'ip_address': self.ip_address,
            'user_agent': self.user_agent[:500] if self.user_agent else None,
            'success': self.success
        }
