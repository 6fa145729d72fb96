"""Domain models for the student portal and their on-disk record format."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple

from .errors import StorageError


@dataclass(frozen=True)
class Course:
    """A catalog entry. ``code`` doubles as the course identifier."""

    code: str
    title: str
    instructor: str
    schedule: str
    credits: int
    availability: int

    @staticmethod
    def from_record(data: Mapping[str, Any]) -> "Course":
        required_fields = {"code", "title", "credits", "availability"}
        missing = required_fields - data.keys()
        if missing:
            raise StorageError(f"Course record is missing fields: {', '.join(sorted(missing))}")
        try:
            credits = int(data["credits"])
            availability = int(data["availability"])
        except (TypeError, ValueError) as exc:
            raise StorageError(f"Course {data.get('code')!r} has non-numeric seat data") from exc
        return Course(
            code=str(data["code"]),
            title=str(data["title"]),
            instructor=str(data.get("instructor") or ""),
            schedule=str(data.get("schedule") or ""),
            credits=credits,
            availability=availability,
        )

    def to_record(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "title": self.title,
            "instructor": self.instructor,
            "schedule": self.schedule,
            "credits": self.credits,
            "availability": self.availability,
        }


@dataclass(frozen=True)
class User:
    """A registered portal account."""

    id: str
    full_name: str
    email: str
    password_hash: str
    phone: str = ""
    enrolled_course_ids: Tuple[str, ...] = field(default_factory=tuple)

    def is_enrolled(self, course_code: str) -> bool:
        return course_code in self.enrolled_course_ids

    @staticmethod
    def from_record(data: Mapping[str, Any]) -> "User":
        required_fields = {"id", "fullName", "email"}
        missing = required_fields - data.keys()
        if missing:
            raise StorageError(f"User record is missing fields: {', '.join(sorted(missing))}")

        # Records written before the migration keep the list under its old name.
        enrolled = data.get("enrolledCourseIds")
        if enrolled is None:
            enrolled = data.get("registeredCourses") or []

        return User(
            id=str(data["id"]),
            full_name=str(data["fullName"]),
            email=str(data["email"]).lower(),
            password_hash=str(data.get("passwordHash") or ""),
            phone=str(data.get("phone") or ""),
            enrolled_course_ids=tuple(dict.fromkeys(str(code) for code in enrolled)),
        )

    def to_record(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "fullName": self.full_name,
            "email": self.email,
            "phone": self.phone,
            "passwordHash": self.password_hash,
            "enrolledCourseIds": list(self.enrolled_course_ids),
        }


def find_course(courses: Sequence[Course], code: str) -> Optional[Course]:
    for course in courses:
        if course.code == code:
            return course
    return None


def find_user(users: Sequence[User], user_id: str) -> Optional[User]:
    for user in users:
        if user.id == user_id:
            return user
    return None


__all__ = ["Course", "User", "find_course", "find_user"]
