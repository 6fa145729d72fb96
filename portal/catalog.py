"""Read-only access to the course catalog."""
from __future__ import annotations

from typing import List, Optional

from .errors import NotFoundError
from .models import Course, find_course
from .storage import Storage


def matches_query(course: Course, query: str) -> bool:
    """Case-insensitive substring match against title, code and instructor."""

    needle = query.lower()
    return any(
        needle in (value or "").lower()
        for value in (course.title, course.code, course.instructor)
    )


class CatalogService:
    def __init__(self, storage: Storage) -> None:
        self._storage = storage

    def list(self, query: Optional[str] = None) -> List[Course]:
        courses = self._storage.load_courses()
        cleaned = (query or "").strip()
        if not cleaned:
            return courses
        return [course for course in courses if matches_query(course, cleaned)]

    def get_by_code(self, code: str) -> Course:
        course = find_course(self._storage.load_courses(), code)
        if course is None:
            raise NotFoundError("Course not found")
        return course


__all__ = ["CatalogService", "matches_query"]
