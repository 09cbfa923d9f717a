"""Pydantic response schemas for the JSON API.

Schemas keep API output shapes stable and independent of the table
models.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel


class GroupOut(BaseModel):
    """One study group as listed by `/api/groups`."""
    id: int
    name: str
    course_code: str
    creator_name: Optional[str] = None
    description: Optional[str] = None
    meeting_time: Optional[str] = None
    location: Optional[str] = None
    created_at: datetime


class GroupListingOut(BaseModel):
    groups: List[GroupOut]
    course_codes: List[str]
    course_filter: str = ""
