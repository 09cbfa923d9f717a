"""Repository classes encapsulating database operations.

Each repository is small and focused on a single aggregate (users,
courses, study groups). Repositories return SQLModel objects; `create`
methods commit and refresh, and leave rollback to the calling service.
"""

from typing import List, Optional, Tuple

from sqlalchemy import func
from sqlmodel import Session, select

from . import models


class UserRepository:
    """CRUD operations for `User` objects."""
    def __init__(self, session: Session):
        self.session = session

    def create(self, user: models.User) -> models.User:
        """Persist a new user and return the managed instance."""
        self.session.add(user)
        self.session.commit()
        self.session.refresh(user)
        return user

    def get_by_email(self, email: str) -> Optional[models.User]:
        """Return a `User` by exact email or `None` if not found."""
        stmt = select(models.User).where(models.User.email == email)
        return self.session.exec(stmt).first()


class CourseRepository:
    """Lookups and inserts for `Course` rows."""
    def __init__(self, session: Session):
        self.session = session

    def get_by_code(self, course_code: str) -> Optional[models.Course]:
        stmt = select(models.Course).where(models.Course.course_code == course_code)
        return self.session.exec(stmt).first()

    def create(self, course: models.Course) -> models.Course:
        self.session.add(course)
        self.session.commit()
        self.session.refresh(course)
        return course

    def list_all(self) -> List[models.Course]:
        """Return every course ordered by code ascending."""
        stmt = select(models.Course).order_by(models.Course.course_code)
        return self.session.exec(stmt).all()

    def list_codes(self) -> List[str]:
        stmt = select(models.Course.course_code).order_by(models.Course.course_code)
        return self.session.exec(stmt).all()


class StudyGroupRepository:
    """Persist study groups and query the joined listing."""
    def __init__(self, session: Session):
        self.session = session

    def create(self, group: models.StudyGroup) -> models.StudyGroup:
        self.session.add(group)
        self.session.commit()
        self.session.refresh(group)
        return group

    def list_with_course_and_creator(
        self, course_filter: str = ""
    ) -> List[Tuple[models.StudyGroup, str, Optional[str], Optional[str]]]:
        """Return `(group, course_code, creator_name, creator_email)` rows.

        Creators are left-outer-joined so a group whose creator no longer
        exists still lists with null creator columns. A non-empty
        `course_filter` keeps groups whose course code contains it,
        ignoring case. Newest groups come first; `id` breaks ties.
        """
        stmt = (
            select(
                models.StudyGroup,
                models.Course.course_code,
                models.User.name,
                models.User.email,
            )
            .join(models.Course, models.StudyGroup.course_id == models.Course.id)
            .join(models.User, models.StudyGroup.creator_id == models.User.id, isouter=True)
        )
        if course_filter:
            stmt = stmt.where(
                func.lower(models.Course.course_code).contains(course_filter.lower(), autoescape=True)
            )
        stmt = stmt.order_by(models.StudyGroup.created_at.desc(), models.StudyGroup.id.desc())
        return self.session.exec(stmt).all()
