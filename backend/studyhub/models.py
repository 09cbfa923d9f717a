"""SQLModel data models.

This module defines the application's database tables using SQLModel.
Uniqueness of `User.email` and `Course.course_code` is enforced by the
database so the services can rely on it when concurrent requests race.
"""

from datetime import datetime, timezone
from typing import Optional

from sqlmodel import SQLModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(SQLModel, table=True):
    """A registered user.

    Fields:
    - `name`: optional display name
    - `email`: unique login identifier, compared exactly as stored
    - `password_hash`: bcrypt hash (never store plaintext)
    """
    __tablename__ = "users"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: Optional[str] = None
    email: str = Field(index=True, nullable=False, unique=True)
    password_hash: str
    created_at: datetime = Field(default_factory=_utcnow)

    @property
    def display_name(self) -> str:
        return self.name or self.email.split("@")[0]


class Course(SQLModel, table=True):
    """A university course identified by its business `course_code`."""
    __tablename__ = "courses"

    id: Optional[int] = Field(default=None, primary_key=True)
    course_code: str = Field(index=True, nullable=False, unique=True)
    course_name: str


class StudyGroup(SQLModel, table=True):
    """A study group for one course, created by one user."""
    __tablename__ = "study_groups"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    course_id: int = Field(foreign_key="courses.id", nullable=False)
    creator_id: int = Field(foreign_key="users.id", nullable=False)
    description: Optional[str] = None
    meeting_time: Optional[str] = None
    location: Optional[str] = None
    created_at: datetime = Field(default_factory=_utcnow, index=True)
