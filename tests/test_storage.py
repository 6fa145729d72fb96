from __future__ import annotations

import json
from pathlib import Path

import pytest

from portal.enrollment import EnrollmentService
from portal.errors import StorageError
from portal.identity import IdentityService
from portal.models import Course, User
from portal.security import verify_password
from portal.sessions import SessionManager
from portal.storage import COURSES, USERS, Storage


@pytest.fixture()
def storage(tmp_path: Path) -> Storage:
    store = Storage(tmp_path / "data")
    store.initialize()
    return store


def _read(path: Path):
    return json.loads(path.read_text(encoding="utf-8"))


def test_initialize_seeds_catalog_and_empty_users(storage: Storage) -> None:
    assert storage.load_users() == []
    codes = [course.code for course in storage.load_courses()]
    assert codes == ["CSE101", "MTH201", "PHY150", "ENG210"]
    assert storage.load_courses()[0].availability == 20


def test_initialize_keeps_existing_catalog(tmp_path: Path) -> None:
    data_dir = tmp_path / "data"
    data_dir.mkdir()
    (data_dir / "courses.json").write_text(
        json.dumps([{"code": "BIO100", "title": "Biology", "credits": 3, "availability": 5}]),
        encoding="utf-8",
    )

    store = Storage(data_dir)
    store.initialize()

    assert [course.code for course in store.load_courses()] == ["BIO100"]


def test_load_missing_file_returns_empty(tmp_path: Path) -> None:
    store = Storage(tmp_path / "missing")
    assert store.load(USERS) == []
    assert store.load(COURSES) == []


def test_corrupt_file_fails_fast(tmp_path: Path) -> None:
    data_dir = tmp_path / "data"
    data_dir.mkdir()
    (data_dir / "users.json").write_text("{not json", encoding="utf-8")

    store = Storage(data_dir)
    with pytest.raises(StorageError):
        store.initialize()
    with pytest.raises(StorageError):
        store.load(USERS)


def test_non_array_file_is_rejected(tmp_path: Path) -> None:
    data_dir = tmp_path / "data"
    data_dir.mkdir()
    (data_dir / "courses.json").write_text(json.dumps({"code": "CSE101"}), encoding="utf-8")

    with pytest.raises(StorageError):
        Storage(data_dir).initialize()


def test_unknown_collection_is_rejected(storage: Storage) -> None:
    with pytest.raises(ValueError):
        storage.load("grades")


def test_save_overwrites_whole_collection(storage: Storage) -> None:
    storage.save(COURSES, [{"code": "X1", "title": "Only", "credits": 1, "availability": 1}])

    assert [course.code for course in storage.load_courses()] == ["X1"]
    leftovers = [path.name for path in storage.data_dir.iterdir() if path.name.endswith(".tmp")]
    assert leftovers == []


def test_commit_writes_both_collections_and_clears_journal(storage: Storage) -> None:
    courses = storage.load_courses()
    user = User(id="u-1", full_name="Ada", email="ada@example.com", password_hash="x")

    storage.commit(courses=courses[:1], users=[user])

    assert [course.code for course in storage.load_courses()] == ["CSE101"]
    assert [stored.id for stored in storage.load_users()] == ["u-1"]
    assert not storage.journal_path.exists()


def test_interrupted_commit_is_replayed_on_startup(tmp_path: Path) -> None:
    data_dir = tmp_path / "data"
    store = Storage(data_dir)
    store.initialize()

    course = Course("CSE101", "Intro to Computer Science", "Dr. Priya Rao", "Mon & Wed 10:00-11:30", 3, 19)
    user = User(
        id="u-1",
        full_name="Alice",
        email="alice@example.com",
        password_hash="x",
        enrolled_course_ids=("CSE101",),
    )
    # Simulate a crash after the courses file was written but before the users file.
    store.save_courses([course])
    store.journal_path.write_text(
        json.dumps({"courses": [course.to_record()], "users": [user.to_record()]}),
        encoding="utf-8",
    )

    restarted = Storage(data_dir)
    restarted.initialize()

    assert restarted.load_courses()[0].availability == 19
    assert restarted.load_users()[0].enrolled_course_ids == ("CSE101",)
    assert not restarted.journal_path.exists()


def test_unreadable_journal_stops_startup(tmp_path: Path) -> None:
    data_dir = tmp_path / "data"
    data_dir.mkdir()
    (data_dir / "pending-commit.json").write_text("[]", encoding="utf-8")

    with pytest.raises(StorageError):
        Storage(data_dir).initialize()


def test_failed_commit_is_rolled_forward_before_later_writes(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    data_dir = tmp_path / "data"
    store = Storage(data_dir)
    store.initialize()
    identity = IdentityService(store, SessionManager())
    alice = identity.register("Alice", "alice@example.com", "wonderland")

    original = Storage._write_json
    failures = {"users.json": 1}

    def flaky(path: Path, payload: object) -> None:
        if failures.get(path.name):
            failures[path.name] -= 1
            raise StorageError("disk full")
        original(path, payload)

    monkeypatch.setattr(Storage, "_write_json", staticmethod(flaky))

    with pytest.raises(StorageError):
        EnrollmentService(store).enroll(alice, "CSE101")
    assert store.journal_path.exists()

    identity.register("Bob", "bob@example.com", "builder1")

    restarted = Storage(data_dir)
    restarted.initialize()

    users = {user.email: user for user in restarted.load_users()}
    assert set(users) == {"alice@example.com", "bob@example.com"}
    assert users["alice@example.com"].enrolled_course_ids == ("CSE101",)
    courses = {course.code: course for course in restarted.load_courses()}
    assert courses["CSE101"].availability == 19
    assert not restarted.journal_path.exists()


def test_legacy_user_records_are_migrated(tmp_path: Path) -> None:
    data_dir = tmp_path / "data"
    data_dir.mkdir()
    (data_dir / "users.json").write_text(
        json.dumps(
            [
                {
                    "id": "legacy-1",
                    "fullName": "Old Timer",
                    "email": "old@example.com",
                    "phone": "",
                    "password": "hunter22",
                    "registeredCourses": ["MTH201"],
                }
            ]
        ),
        encoding="utf-8",
    )

    store = Storage(data_dir)
    store.initialize()

    raw = _read(data_dir / "users.json")[0]
    assert "password" not in raw
    assert "registeredCourses" not in raw
    assert raw["enrolledCourseIds"] == ["MTH201"]
    assert verify_password("hunter22", raw["passwordHash"])

    user = store.load_users()[0]
    assert user.enrolled_course_ids == ("MTH201",)


def test_legacy_record_without_password_is_flagged(
    tmp_path: Path, caplog: pytest.LogCaptureFixture
) -> None:
    data_dir = tmp_path / "data"
    data_dir.mkdir()
    (data_dir / "users.json").write_text(
        json.dumps(
            [
                {
                    "id": "legacy-2",
                    "fullName": "No Secret",
                    "email": "blank@example.com",
                    "password": "",
                    "registeredCourses": [],
                }
            ]
        ),
        encoding="utf-8",
    )

    with caplog.at_level("WARNING", logger="studentportal.storage"):
        Storage(data_dir).initialize()

    raw = _read(data_dir / "users.json")[0]
    assert "password" not in raw
    assert raw["enrolledCourseIds"] == []
    assert any(
        "legacy-2" in record.getMessage() and "cannot log in" in record.getMessage()
        for record in caplog.records
    )


def test_custom_seed_catalog(tmp_path: Path) -> None:
    seed = [Course("ART100", "Drawing", "Ms. K. Lee", "Sat 09:00-12:00", 2, 8)]
    store = Storage(tmp_path / "data", seed_courses=seed)
    store.initialize()

    assert store.load_courses() == seed
