import threading
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.exc import OperationalError
from sqlmodel import Session, select

from studyhub import models
from studyhub.database import engine
from studyhub.errors import StorageError, ValidationError
from studyhub.services import AuthService, CatalogService


@pytest.fixture
def creator(db, store):
    record = AuthService(db, store).register("Ada", "ada@example.edu", "pw")
    return record.user_id


def _courses(db):
    return db.exec(select(models.Course)).all()


def test_find_or_create_course_is_idempotent(db):
    catalog = CatalogService(db)
    first = catalog.find_or_create_course("CS142")
    second = catalog.find_or_create_course("CS142")
    assert first.id == second.id
    assert first.course_name == "CS142"
    assert len(_courses(db)) == 1


def test_find_or_create_course_recovers_from_concurrent_insert(db, monkeypatch):
    catalog = CatalogService(db)
    real_get_by_code = catalog.course_repo.get_by_code
    calls = []

    def racing_get_by_code(code):
        calls.append(code)
        if len(calls) == 1:
            # another request inserts the course between our read and our write
            with Session(engine) as other:
                CatalogService(other).find_or_create_course(code)
            return None
        return real_get_by_code(code)

    monkeypatch.setattr(catalog.course_repo, "get_by_code", racing_get_by_code)
    course = catalog.find_or_create_course("CS340")

    rows = _courses(db)
    assert len(rows) == 1
    assert course.id == rows[0].id


def test_racing_create_group_calls_share_one_course(db, creator, monkeypatch):
    CatalogService(db).create_group("Morning crew", "BIO100", creator)

    with Session(engine) as other:
        loser = CatalogService(other)
        real_get_by_code = loser.course_repo.get_by_code
        # the loser's first lookup ran before the winner committed
        stale = [None]

        def stale_get_by_code(code):
            if stale:
                return stale.pop()
            return real_get_by_code(code)

        monkeypatch.setattr(loser.course_repo, "get_by_code", stale_get_by_code)
        loser.create_group("Evening crew", "BIO100", creator)

    assert len(_courses(db)) == 1
    groups = db.exec(select(models.StudyGroup)).all()
    assert len(groups) == 2
    assert len({g.course_id for g in groups}) == 1


def test_create_group_creates_unseen_course(db, creator):
    group = CatalogService(db).create_group(
        "  Midterm prep ", " CS142 ", creator, "Chapters 1-4", "Tue 7pm", "  "
    )
    course = db.get(models.Course, group.course_id)
    assert course.course_code == "CS142"
    assert course.course_name == "CS142"
    assert group.name == "Midterm prep"
    assert group.creator_id == creator
    assert group.description == "Chapters 1-4"
    assert group.location is None
    assert group.created_at is not None


@pytest.mark.parametrize("name,code", [("", "CS142"), ("Group", ""), ("   ", "CS142"), (None, None)])
def test_create_group_requires_name_and_course_code(db, creator, name, code):
    with pytest.raises(ValidationError):
        CatalogService(db).create_group(name, code, creator)
    assert db.exec(select(models.StudyGroup)).all() == []
    assert _courses(db) == []


def test_create_group_failure_leaves_no_partial_group(db, creator, monkeypatch):
    catalog = CatalogService(db)

    def failing_create(group):
        db.add(group)
        db.flush()
        raise OperationalError("INSERT", {}, Exception("disk full"))

    monkeypatch.setattr(catalog.group_repo, "create", failing_create)
    with pytest.raises(StorageError):
        catalog.create_group("Doomed", "CS142", creator)
    assert db.exec(select(models.StudyGroup)).all() == []


def test_list_groups_filters_by_course_code_case_insensitively(db, creator):
    catalog = CatalogService(db)
    catalog.create_group("A", "CS142", creator)
    catalog.create_group("B", "cs340", creator)
    catalog.create_group("C", "MATH110", creator)

    listing = catalog.list_groups("CS")
    assert sorted(row.course_code for row in listing.groups) == ["CS142", "cs340"]
    assert [row.course_code for row in catalog.list_groups("math").groups] == ["MATH110"]
    assert catalog.list_groups("%").groups == []
    assert len(catalog.list_groups("").groups) == 3
    assert len(catalog.list_groups(None).groups) == 3


def test_list_groups_returns_all_course_codes_ascending(db, creator):
    catalog = CatalogService(db)
    for code in ["MATH110", "cs340", "CS142"]:
        catalog.create_group("G", code, creator)
    catalog.find_or_create_course("ART101")
    assert catalog.list_groups("CS").course_codes == ["ART101", "CS142", "MATH110", "cs340"]


def test_list_groups_orders_newest_first(db, creator):
    course = CatalogService(db).find_or_create_course("CS142")
    t1 = datetime(2025, 1, 1, tzinfo=timezone.utc)
    # insert out of chronological order so the id cannot explain the result
    for name, created_at in [("t2", t1 + timedelta(hours=1)), ("t3", t1 + timedelta(hours=2)), ("t1", t1)]:
        db.add(models.StudyGroup(name=name, course_id=course.id, creator_id=creator, created_at=created_at))
    db.commit()

    names = [row.group.name for row in CatalogService(db).list_groups().groups]
    assert names == ["t3", "t2", "t1"]


def test_list_groups_breaks_creation_time_ties_by_newest_id(db, creator):
    course = CatalogService(db).find_or_create_course("CS142")
    same = datetime(2025, 1, 1, tzinfo=timezone.utc)
    for name in ["first", "second"]:
        db.add(models.StudyGroup(name=name, course_id=course.id, creator_id=creator, created_at=same))
        db.commit()
    names = [row.group.name for row in CatalogService(db).list_groups().groups]
    assert names == ["second", "first"]


def test_list_groups_creator_names(db, store, creator):
    unnamed = AuthService(db, store).register("", "linus@example.edu", "pw").user_id
    catalog = CatalogService(db)
    catalog.create_group("Named", "CS142", creator)
    catalog.create_group("Unnamed", "CS142", unnamed)
    # creator that no longer resolves to a user
    catalog.create_group("Orphan", "CS142", 9999)

    by_name = {row.group.name: row.creator_name for row in catalog.list_groups().groups}
    assert by_name == {"Named": "Ada", "Unnamed": "linus", "Orphan": None}


def test_list_groups_storage_failure(db, monkeypatch):
    catalog = CatalogService(db)

    def db_down(*_args, **_kwargs):
        raise OperationalError("SELECT", {}, Exception("connection refused"))

    monkeypatch.setattr(catalog.group_repo, "list_with_course_and_creator", db_down)
    with pytest.raises(StorageError):
        catalog.list_groups("CS")


def test_list_courses_sorted(db):
    catalog = CatalogService(db)
    for code in ["MATH110", "CS142"]:
        catalog.find_or_create_course(code)
    assert [c.course_code for c in catalog.list_courses()] == ["CS142", "MATH110"]


def test_threaded_create_group_on_new_course_code(db, creator):
    barrier = threading.Barrier(8)
    errors = []

    def worker(i):
        with Session(engine) as session:
            barrier.wait()
            try:
                CatalogService(session).create_group(f"Group {i}", "PHYS210", creator)
            except Exception as exc:
                errors.append(exc)

    threads = [threading.Thread(target=worker, args=(i,)) for i in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []
    assert [c.course_code for c in _courses(db)] == ["PHYS210"]
    groups = db.exec(select(models.StudyGroup)).all()
    assert len(groups) == 8
    assert len({g.course_id for g in groups}) == 1
