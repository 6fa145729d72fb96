"""The course registration transaction."""
from __future__ import annotations

import dataclasses
import logging
from typing import List, Optional

from .errors import ConflictError, NotFoundError, ValidationError
from .models import User, find_course, find_user
from .storage import Storage

logger = logging.getLogger("studentportal.enrollment")


class EnrollmentService:
    """Reserve a seat in a course for a user.

    The whole check-and-update runs under the storage lock against freshly
    loaded collections, so two requests can never both take the last seat.
    """

    def __init__(self, storage: Storage) -> None:
        self._storage = storage

    def enroll(self, user: User, course_code: Optional[str]) -> List[str]:
        code = (course_code or "").strip()
        if not code:
            raise ValidationError("Missing course code")

        with self._storage.lock:
            courses = self._storage.load_courses()
            users = self._storage.load_users()

            course = find_course(courses, code)
            if course is None:
                raise NotFoundError("Course not found")
            current = find_user(users, user.id)
            if current is None:
                raise NotFoundError("User not found")

            if course.availability <= 0:
                raise ConflictError("No seats available")
            if current.is_enrolled(code):
                raise ConflictError("Already registered")

            updated_course = dataclasses.replace(course, availability=course.availability - 1)
            updated_user = dataclasses.replace(
                current,
                enrolled_course_ids=current.enrolled_course_ids + (code,),
            )
            courses = [updated_course if item.code == code else item for item in courses]
            users = [updated_user if item.id == current.id else item for item in users]

            self._storage.commit(courses=courses, users=users)

        logger.info(
            "User %s enrolled in %s (%d seat(s) left)",
            updated_user.id,
            code,
            updated_course.availability,
        )
        return list(updated_user.enrolled_course_ids)


__all__ = ["EnrollmentService"]
