"""
Store contracts the services depend on.

The SQLAlchemy repositories in this package implement them; tests plug in
in-memory versions.
"""
from typing import List, Optional, Protocol
from uuid import UUID

from academy.schemas.course import LessonRecord
from academy.schemas.progress import EnrollmentRecord
from academy.schemas.submission import ProjectSubmissionRecord, QuizSubmissionRecord


class LessonCatalog(Protocol):
    async def list_lessons(self, course_id: UUID) -> List[LessonRecord]:
        """Published lessons of a course ordered by step number."""
        ...

    async def get_lesson(self, lesson_id: UUID) -> Optional[LessonRecord]:
        ...

    async def course_exists(self, course_id: UUID) -> bool:
        ...


class SubmissionStore(Protocol):
    async def get_quiz_submission(self, user_id: str, lesson_id: UUID) -> Optional[QuizSubmissionRecord]:
        ...

    async def get_quiz_submission_by_id(self, submission_id: UUID) -> Optional[QuizSubmissionRecord]:
        ...

    async def put_quiz_submission(
            self, record: QuizSubmissionRecord, expected_version: Optional[int]
    ) -> QuizSubmissionRecord:
        """Insert (expected_version None) or replace; ConflictException on a stale version."""
        ...

    async def list_quiz_submissions(
            self, user_id: str, course_id: Optional[UUID] = None
    ) -> List[QuizSubmissionRecord]:
        ...

    async def list_quiz_submissions_for_lesson(self, lesson_id: UUID) -> List[QuizSubmissionRecord]:
        ...

    async def list_pending_quiz_submissions(self, course_id: Optional[UUID] = None) -> List[QuizSubmissionRecord]:
        ...

    async def get_project_submission(self, user_id: str, lesson_id: UUID) -> Optional[ProjectSubmissionRecord]:
        ...

    async def get_project_submission_by_id(self, submission_id: UUID) -> Optional[ProjectSubmissionRecord]:
        ...

    async def put_project_submission(
            self, record: ProjectSubmissionRecord, expected_version: Optional[int]
    ) -> ProjectSubmissionRecord:
        ...

    async def list_project_submissions(
            self, user_id: str, course_id: Optional[UUID] = None
    ) -> List[ProjectSubmissionRecord]:
        ...

    async def list_pending_project_submissions(
            self, course_id: Optional[UUID] = None
    ) -> List[ProjectSubmissionRecord]:
        ...

    async def get_pending_review_lesson_ids(self, user_id: str, course_id: UUID) -> set[UUID]:
        ...

    async def commit(self) -> None:
        ...


class EnrollmentStore(Protocol):
    async def get_enrollment(self, user_id: str, course_id: UUID) -> Optional[EnrollmentRecord]:
        ...

    async def list_enrollments(self, user_id: str) -> List[EnrollmentRecord]:
        ...

    async def create_enrollment(self, user_id: str, course_id: UUID) -> EnrollmentRecord:
        ...

    async def update_enrollment(
            self, user_id: str, course_id: UUID, patch: dict, expected_version: int
    ) -> EnrollmentRecord:
        """Apply ``patch``; ConflictException when the stored version moved on."""
        ...

    async def get_completed_lesson_ids(self, user_id: str, course_id: UUID) -> set[UUID]:
        ...

    async def mark_lesson_complete(self, user_id: str, course_id: UUID, lesson_id: UUID) -> bool:
        """Record completion; False when it was already recorded."""
        ...

    async def remove_lesson_completion(self, user_id: str, course_id: UUID, lesson_id: UUID) -> bool:
        """Drop a recorded completion; False when there was none."""
        ...

    async def commit(self) -> None:
        ...
