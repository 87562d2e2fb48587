"""
User Model Module
Defines the authenticated principal and its `profiles` mapping
"""
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional
from dataclasses import dataclass
from urllib.parse import quote

from course_catalog.models.course import parse_timestamp, utcnow

AVATAR_URL = "https://ui-avatars.com/api/?name={name}&background=667eea&color=fff&size=150"


class Role(str, Enum):
    STUDENT = 'student'
    ADMIN = 'admin'


def avatar_for(name: str) -> str:
    return AVATAR_URL.format(name=quote(name, safe=''))


@dataclass(frozen=True)
class User:
    id: str
    email: str
    name: str
    role: Role = Role.STUDENT
    avatar: Optional[str] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> 'User':
        return cls(
            id=str(row['id']),
            email=row.get('email') or '',
            name=row.get('name') or '',
            role=Role(row.get('role') or Role.STUDENT),
            avatar=row.get('avatar') or None,
            created_at=parse_timestamp(row.get('created_at')),
        )

    @classmethod
    def from_auth_user(cls, auth_user: Any) -> 'User':
        """
        Fabricate a user from auth metadata when no profile row exists yet
        @param auth_user: object - User returned by the auth API
        @returns: User - Identity built from metadata and email
        """
        metadata = getattr(auth_user, 'user_metadata', None) or {}
        email = getattr(auth_user, 'email', None) or ''
        name = metadata.get('name') or (email.split('@')[0] if email else '') or 'User'
        role = metadata.get('role') or Role.STUDENT
        return cls(
            id=str(auth_user.id),
            email=email,
            name=name,
            role=Role(role),
            avatar=avatar_for(name),
            created_at=parse_timestamp(getattr(auth_user, 'created_at', None)) or utcnow(),
        )

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN

    @property
    def is_student(self) -> bool:
        return self.role is Role.STUDENT

    def to_row(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'email': self.email,
            'name': self.name,
            'role': self.role.value,
            'avatar': self.avatar,
        }

    def to_dict(self) -> Dict[str, Any]:
        data = self.to_row()
        data['created_at'] = self.created_at.isoformat() if self.created_at else None
        return data
