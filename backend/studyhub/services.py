"""Business logic services used by HTTP controllers.

Services are intentionally thin: they validate input, coordinate
repositories and translate storage failures into the domain errors of
`studyhub.errors`. They never depend on how results are rendered.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from passlib.context import CryptContext
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session

from . import models, repositories
from .config import settings
from .errors import (
    DuplicateEmailError,
    InvalidCredentialsError,
    StorageError,
    ValidationError,
)
from .sessions import SessionRecord, SessionStore

logger = logging.getLogger("studyhub.services")

PWD_CTX = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=settings.BCRYPT_ROUNDS)


def _truncate_for_bcrypt(password: str) -> str:
    """Truncate to bcrypt's 72-byte input limit without splitting a UTF-8 sequence."""
    return password.encode("utf-8")[:72].decode("utf-8", "ignore")


def hash_password(password: str) -> str:
    return PWD_CTX.hash(_truncate_for_bcrypt(password))


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return PWD_CTX.verify(_truncate_for_bcrypt(password), password_hash)
    except ValueError:
        # malformed stored hash
        logger.warning("unverifiable password hash encountered")
        return False


def _clean(value: Optional[str]) -> Optional[str]:
    """Strip a free-text form value; blank becomes None."""
    if value is None:
        return None
    value = value.strip()
    return value or None


class AuthService:
    """Account creation and login. The only place sessions are created."""
    def __init__(self, session: Session, sessions: SessionStore):
        self.session = session
        self.sessions = sessions
        self.user_repo = repositories.UserRepository(session)

    def register(self, name: Optional[str], email: Optional[str], password: Optional[str]) -> SessionRecord:
        """Create an account and log it in.

        Raises `ValidationError` when email or password is missing,
        `DuplicateEmailError` when the email is taken (including when a
        concurrent registration wins the race to the unique constraint)
        and `StorageError` for any other persistence failure.
        """
        email = (email or "").strip()
        if not email or not password:
            raise ValidationError("email and password are required")
        name = _clean(name)
        try:
            if self.user_repo.get_by_email(email):
                raise DuplicateEmailError(email)
            user = models.User(name=name, email=email, password_hash=hash_password(password))
            user = self.user_repo.create(user)
        except IntegrityError as exc:
            self.session.rollback()
            raise DuplicateEmailError(email) from exc
        except SQLAlchemyError as exc:
            self.session.rollback()
            logger.exception("registration failed")
            raise StorageError("registration failed") from exc
        logger.info("user_registered user_id=%s", user.id)
        return self.sessions.create(user.id, user.display_name)

    def login(self, email: Optional[str], password: Optional[str]) -> SessionRecord:
        """Verify credentials and start a session.

        Unknown email and wrong password both raise the same
        `InvalidCredentialsError`.
        """
        email = (email or "").strip()
        if not email or not password:
            raise InvalidCredentialsError()
        try:
            user = self.user_repo.get_by_email(email)
        except SQLAlchemyError as exc:
            logger.exception("login lookup failed")
            raise StorageError("login failed") from exc
        if user is None or not verify_password(password, user.password_hash):
            raise InvalidCredentialsError()
        return self.sessions.create(user.id, user.display_name)


@dataclass
class GroupRow:
    """A study group joined with its course code and creator display name."""
    group: models.StudyGroup
    course_code: str
    creator_name: Optional[str]


@dataclass
class GroupListing:
    groups: List[GroupRow] = field(default_factory=list)
    course_codes: List[str] = field(default_factory=list)


class CatalogService:
    """Courses and study groups."""
    def __init__(self, session: Session):
        self.session = session
        self.course_repo = repositories.CourseRepository(session)
        self.group_repo = repositories.StudyGroupRepository(session)

    def find_or_create_course(self, course_code: str) -> models.Course:
        """Return the course with `course_code`, creating it if unseen.

        Two requests racing on the same new code both end up with the
        single row that won the unique constraint.
        """
        course_code = (course_code or "").strip()
        if not course_code:
            raise ValidationError("course code is required")
        try:
            course = self.course_repo.get_by_code(course_code)
            if course:
                return course
            try:
                return self.course_repo.create(models.Course(course_code=course_code, course_name=course_code))
            except IntegrityError:
                self.session.rollback()
                logger.info("course %s created concurrently, re-reading", course_code)
                course = self.course_repo.get_by_code(course_code)
                if course is None:
                    raise
                return course
        except SQLAlchemyError as exc:
            self.session.rollback()
            logger.exception("find_or_create_course failed for %s", course_code)
            raise StorageError("could not resolve course") from exc

    def create_group(
        self,
        name: Optional[str],
        course_code: Optional[str],
        creator_id: int,
        description: Optional[str] = None,
        meeting_time: Optional[str] = None,
        location: Optional[str] = None,
    ) -> models.StudyGroup:
        name = (name or "").strip()
        course_code = (course_code or "").strip()
        if not name or not course_code:
            raise ValidationError("group name and course code are required")
        course = self.find_or_create_course(course_code)
        group = models.StudyGroup(
            name=name,
            course_id=course.id,
            creator_id=creator_id,
            description=_clean(description),
            meeting_time=_clean(meeting_time),
            location=_clean(location),
        )
        try:
            group = self.group_repo.create(group)
        except SQLAlchemyError as exc:
            self.session.rollback()
            logger.exception("create_group failed for course %s", course_code)
            raise StorageError("could not create group") from exc
        logger.info("group_created id=%s course=%s creator=%s", group.id, course_code, creator_id)
        return group

    def list_groups(self, course_filter: Optional[str] = None) -> GroupListing:
        """List groups newest first, optionally filtered by course code substring."""
        course_filter = (course_filter or "").strip()
        try:
            rows = self.group_repo.list_with_course_and_creator(course_filter)
            codes = self.course_repo.list_codes()
        except SQLAlchemyError as exc:
            logger.exception("list_groups failed")
            raise StorageError("could not list groups") from exc
        groups = []
        for group, course_code, creator_name, creator_email in rows:
            if creator_email is None:
                display = None
            else:
                display = creator_name or creator_email.split("@")[0]
            groups.append(GroupRow(group=group, course_code=course_code, creator_name=display))
        return GroupListing(groups=groups, course_codes=list(codes))

    def list_courses(self) -> List[models.Course]:
        try:
            return self.course_repo.list_all()
        except SQLAlchemyError as exc:
            logger.exception("list_courses failed")
            raise StorageError("could not list courses") from exc
