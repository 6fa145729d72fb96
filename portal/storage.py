"""JSON file persistence for users and courses."""
from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from contextlib import suppress
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence

from .config import DEFAULT_SEED_COURSES
from .errors import StorageError
from .models import Course, User
from .security import hash_password

logger = logging.getLogger("studentportal.storage")

USERS = "users"
COURSES = "courses"

_FILENAMES = {
    USERS: "users.json",
    COURSES: "courses.json",
}
# Courses are always written before users so that a replayed commit restores
# the same order the live write used.
_COMMIT_ORDER = (COURSES, USERS)
_JOURNAL_FILENAME = "pending-commit.json"


class Storage:
    """Whole-file JSON store for the user and course collections.

    Every read goes to disk; nothing is cached between calls. Callers that
    load, mutate and save a collection must hold :attr:`lock` for the whole
    span so that concurrent requests cannot interleave their writes.
    """

    def __init__(
        self,
        data_dir: Path,
        *,
        seed_courses: Sequence[Course] = DEFAULT_SEED_COURSES,
    ) -> None:
        self._data_dir = data_dir
        self._seed_courses = tuple(seed_courses)
        self._lock = threading.RLock()

    @property
    def data_dir(self) -> Path:
        return self._data_dir

    @property
    def lock(self) -> threading.RLock:
        return self._lock

    @property
    def journal_path(self) -> Path:
        return self._data_dir / _JOURNAL_FILENAME

    def path_for(self, collection: str) -> Path:
        try:
            return self._data_dir / _FILENAMES[collection]
        except KeyError as exc:
            raise ValueError(f"Unknown collection '{collection}'") from exc

    def initialize(self) -> None:
        """Create and seed the data files, recover interrupted commits and validate contents."""

        with self._lock:
            try:
                self._data_dir.mkdir(parents=True, exist_ok=True)
            except OSError as exc:
                raise StorageError(f"Unable to create data directory {self._data_dir}") from exc

            self._recover_pending_commit()

            users_path = self.path_for(USERS)
            if not users_path.exists():
                self._write_json(users_path, [])
                logger.info("Created empty user store at %s", users_path)

            courses_path = self.path_for(COURSES)
            if not courses_path.exists():
                self._write_json(courses_path, [course.to_record() for course in self._seed_courses])
                logger.info("Seeded course catalog with %d course(s)", len(self._seed_courses))

            self._migrate_legacy_users()

            # Fail fast: a corrupt file must not be mistaken for an empty collection.
            self.load_users()
            self.load_courses()

    # ------------------------------------------------------------------
    # Raw collection access
    # ------------------------------------------------------------------
    def load(self, collection: str) -> List[Dict[str, Any]]:
        """Return the records of ``collection`` in storage order.

        A missing file is an empty collection. A file that exists but cannot
        be parsed raises :class:`StorageError`. A commit left unfinished by a
        failed write is rolled forward before reading.
        """

        path = self.path_for(collection)
        if self.journal_path.exists():
            with self._lock:
                self._recover_pending_commit()
        try:
            raw_text = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return []
        except OSError as exc:
            raise StorageError(f"Unable to read {path.name}") from exc
        return self._parse_records(raw_text, path.name)

    def save(self, collection: str, records: Iterable[Dict[str, Any]]) -> None:
        """Replace the full contents of ``collection``."""

        path = self.path_for(collection)
        with self._lock:
            self._recover_pending_commit()
            self._write_json(path, list(records))

    # ------------------------------------------------------------------
    # Typed helpers
    # ------------------------------------------------------------------
    def load_users(self) -> List[User]:
        return [User.from_record(record) for record in self.load(USERS)]

    def load_courses(self) -> List[Course]:
        return [Course.from_record(record) for record in self.load(COURSES)]

    def save_users(self, users: Iterable[User]) -> None:
        self.save(USERS, [user.to_record() for user in users])

    def save_courses(self, courses: Iterable[Course]) -> None:
        self.save(COURSES, [course.to_record() for course in courses])

    def commit(
        self,
        *,
        users: Optional[Iterable[User]] = None,
        courses: Optional[Iterable[Course]] = None,
    ) -> None:
        """Persist several collections as one unit.

        The new contents are first written to a journal file. If a collection
        write fails, or the process dies, before both files are replaced, the
        journal stays on disk and is replayed by the next read, write or
        :meth:`initialize`. Until it replays cleanly every access fails with
        :class:`StorageError`.
        """

        pending: Dict[str, List[Dict[str, Any]]] = {}
        if courses is not None:
            pending[COURSES] = [course.to_record() for course in courses]
        if users is not None:
            pending[USERS] = [user.to_record() for user in users]
        if not pending:
            return

        with self._lock:
            self._recover_pending_commit()
            if len(pending) == 1:
                self._apply(pending)
                return
            self._write_json(self.journal_path, pending)
            self._apply(pending)
            self._discard(self.journal_path)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _apply(self, pending: Dict[str, List[Dict[str, Any]]]) -> None:
        for collection in _COMMIT_ORDER:
            if collection in pending:
                self._write_json(self.path_for(collection), pending[collection])

    def _recover_pending_commit(self) -> None:
        journal = self.journal_path
        if not journal.exists():
            return

        try:
            payload = json.loads(journal.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise StorageError(f"Pending commit journal {journal} is unreadable") from exc
        if (
            not isinstance(payload, dict)
            or not set(payload) <= set(_FILENAMES)
            or not all(isinstance(records, list) for records in payload.values())
        ):
            raise StorageError(f"Pending commit journal {journal} has an unexpected layout")

        logger.warning(
            "Replaying interrupted commit for %s",
            ", ".join(collection for collection in _COMMIT_ORDER if collection in payload),
        )
        self._apply(payload)
        self._discard(journal)

    def _migrate_legacy_users(self) -> None:
        records = self.load(USERS)
        migrated = 0
        for record in records:
            changed = False
            plain = record.pop("password", None)
            if plain and not record.get("passwordHash"):
                record["passwordHash"] = hash_password(str(plain))
                changed = True
            elif plain is not None:
                changed = True
            if not record.get("passwordHash"):
                logger.warning(
                    "User %s has no usable password and cannot log in until one is set",
                    record.get("id"),
                )
            if "enrolledCourseIds" not in record:
                record["enrolledCourseIds"] = list(record.pop("registeredCourses", None) or [])
                changed = True
            if changed:
                migrated += 1

        if migrated:
            self._write_json(self.path_for(USERS), records)
            logger.warning("Migrated %d legacy user record(s) to hashed passwords", migrated)

    @staticmethod
    def _parse_records(raw_text: str, name: str) -> List[Dict[str, Any]]:
        try:
            data = json.loads(raw_text)
        except json.JSONDecodeError as exc:
            raise StorageError(f"{name} does not contain valid JSON") from exc
        if not isinstance(data, list) or not all(isinstance(item, dict) for item in data):
            raise StorageError(f"{name} must contain a JSON array of objects")
        return data

    @staticmethod
    def _write_json(path: Path, payload: object) -> None:
        fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(payload, handle, indent=2)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_name, path)
        except OSError as exc:
            Storage._discard(Path(tmp_name))
            raise StorageError(f"Unable to write {path.name}") from exc
        except Exception:
            Storage._discard(Path(tmp_name))
            raise

    @staticmethod
    def _discard(path: Path) -> None:
        with suppress(FileNotFoundError):
            path.unlink()


__all__ = ["COURSES", "USERS", "Storage"]
