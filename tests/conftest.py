"""
In-memory stores implementing the repository protocols, plus course
builders shared by the service and API tests.
"""

from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple
from uuid import UUID, uuid4

import pytest

from academy.config import Settings
from academy.model.enums import ContentType, ProjectSubmissionStatus, QuizSubmissionStatus
from academy.schemas.course import LessonRecord, QuizDefinition, QuizQuestion
from academy.schemas.progress import EnrollmentRecord
from academy.schemas.submission import (
    ProjectSubmissionRecord,
    QuizSubmissionRecord,
    SubmissionAnswer,
)
from academy.services.progress_service import ProgressService
from academy.services.review_service import ReviewService
from academy.services.submission_service import SubmissionService
from academy.utils.exceptions import ConflictException


# =============================
#   Fake stores
# =============================
class InMemoryLessonCatalog:
    def __init__(self):
        self.lessons: Dict[UUID, List[LessonRecord]] = {}

    def add_course(self, lessons: List[LessonRecord]) -> UUID:
        course_id = lessons[0].course_id if lessons else uuid4()
        self.lessons[course_id] = list(lessons)
        return course_id

    async def list_lessons(self, course_id: UUID) -> List[LessonRecord]:
        return sorted(self.lessons.get(course_id, []), key=lambda l: l.step_number)

    async def get_lesson(self, lesson_id: UUID) -> Optional[LessonRecord]:
        for lessons in self.lessons.values():
            for lesson in lessons:
                if lesson.id == lesson_id:
                    return lesson
        return None

    async def course_exists(self, course_id: UUID) -> bool:
        return course_id in self.lessons


def _versioned_put(table: dict, record, expected_version: Optional[int]):
    key = (record.user_id, record.lesson_id)
    current = table.get(key)
    if expected_version is None:
        if current is not None:
            raise ConflictException("Submission already exists", current_version=current.version)
        stored = record.model_copy(update={"version": 1})
    else:
        if current is None or current.version != expected_version:
            raise ConflictException(
                "Submission changed since it was read",
                current_version=current.version if current else None,
            )
        stored = record.model_copy(update={"version": expected_version + 1})
    table[key] = stored
    return stored


class InMemorySubmissionStore:
    def __init__(self):
        self.quizzes: Dict[Tuple[str, UUID], QuizSubmissionRecord] = {}
        self.projects: Dict[Tuple[str, UUID], ProjectSubmissionRecord] = {}
        self.commits = 0

    async def get_quiz_submission(self, user_id, lesson_id):
        return self.quizzes.get((user_id, lesson_id))

    async def get_quiz_submission_by_id(self, submission_id):
        return next((q for q in self.quizzes.values() if q.id == submission_id), None)

    async def put_quiz_submission(self, record, expected_version):
        return _versioned_put(self.quizzes, record, expected_version)

    async def list_quiz_submissions(self, user_id, course_id=None):
        return [
            q for q in self.quizzes.values()
            if q.user_id == user_id and (course_id is None or q.course_id == course_id)
        ]

    async def list_quiz_submissions_for_lesson(self, lesson_id):
        return [q for q in self.quizzes.values() if q.lesson_id == lesson_id]

    async def list_pending_quiz_submissions(self, course_id=None):
        return [
            q for q in self.quizzes.values()
            if q.is_pending_review and (course_id is None or q.course_id == course_id)
        ]

    async def get_project_submission(self, user_id, lesson_id):
        return self.projects.get((user_id, lesson_id))

    async def get_project_submission_by_id(self, submission_id):
        return next((p for p in self.projects.values() if p.id == submission_id), None)

    async def put_project_submission(self, record, expected_version):
        return _versioned_put(self.projects, record, expected_version)

    async def list_project_submissions(self, user_id, course_id=None):
        return [
            p for p in self.projects.values()
            if p.user_id == user_id and (course_id is None or p.course_id == course_id)
        ]

    async def list_pending_project_submissions(self, course_id=None):
        return [
            p for p in self.projects.values()
            if p.is_pending_review and (course_id is None or p.course_id == course_id)
        ]

    async def get_pending_review_lesson_ids(self, user_id, course_id):
        pending = {
            q.lesson_id for q in self.quizzes.values()
            if q.user_id == user_id and q.course_id == course_id
            and q.status == QuizSubmissionStatus.PENDING_REVIEW
        }
        pending |= {
            p.lesson_id for p in self.projects.values()
            if p.user_id == user_id and p.course_id == course_id
            and p.status == ProjectSubmissionStatus.PENDING_REVIEW
        }
        return pending

    async def commit(self):
        self.commits += 1


class InMemoryEnrollmentStore:
    def __init__(self):
        self.enrollments: Dict[Tuple[str, UUID], EnrollmentRecord] = {}
        self.completions: set = set()
        self.commits = 0

    async def get_enrollment(self, user_id, course_id):
        return self.enrollments.get((user_id, course_id))

    async def list_enrollments(self, user_id):
        return [e for e in self.enrollments.values() if e.user_id == user_id]

    async def create_enrollment(self, user_id, course_id):
        if (user_id, course_id) in self.enrollments:
            raise ConflictException("Enrollment already exists")
        record = EnrollmentRecord(
            id=uuid4(),
            user_id=user_id,
            course_id=course_id,
            enrolled_at=datetime.now(timezone.utc),
        )
        self.enrollments[(user_id, course_id)] = record
        return record

    async def update_enrollment(self, user_id, course_id, patch, expected_version):
        current = self.enrollments.get((user_id, course_id))
        if current is None or current.version != expected_version:
            raise ConflictException(
                "Enrollment changed since it was read",
                current_version=current.version if current else None,
            )
        updated = current.model_copy(update={**patch, "version": expected_version + 1})
        self.enrollments[(user_id, course_id)] = updated
        return updated

    async def get_completed_lesson_ids(self, user_id, course_id):
        return {l for (u, c, l) in self.completions if u == user_id and c == course_id}

    async def mark_lesson_complete(self, user_id, course_id, lesson_id):
        key = (user_id, course_id, lesson_id)
        if key in self.completions:
            return False
        self.completions.add(key)
        return True

    async def remove_lesson_completion(self, user_id, course_id, lesson_id):
        key = (user_id, course_id, lesson_id)
        if key not in self.completions:
            return False
        self.completions.discard(key)
        return True

    async def commit(self):
        self.commits += 1


# =============================
#   Builders
# =============================
def mcq(correct: int = 0, options: int = 4, max_marks: float = 1) -> QuizQuestion:
    return QuizQuestion(
        question="Pick one",
        question_type="multiple_choice",
        options=[f"option {i}" for i in range(options)],
        correct_answer=correct,
        max_marks=max_marks,
    )


def free_text(max_marks: float = 10) -> QuizQuestion:
    return QuizQuestion(question="Explain", question_type="free_text", max_marks=max_marks)


def quiz(*questions: QuizQuestion, final_exam: bool = False) -> QuizDefinition:
    return QuizDefinition(
        questions=list(questions),
        assessment_type="final_exam" if final_exam else "cat",
    )


def make_lessons(*entries, course_id: Optional[UUID] = None) -> List[LessonRecord]:
    """
    Build a course catalog. Each entry is a content type, or a
    (content type, QuizDefinition) pair for quiz lessons.
    """
    course_id = course_id or uuid4()
    lessons = []
    for step, entry in enumerate(entries, start=1):
        content_type, definition = entry if isinstance(entry, tuple) else (entry, None)
        lessons.append(LessonRecord(
            id=uuid4(),
            course_id=course_id,
            title=f"Lesson {step}",
            step_number=step,
            content_type=ContentType(content_type),
            quiz=definition,
        ))
    return lessons


def answers_for(definition: QuizDefinition, picks: Optional[List[int]] = None) -> List[SubmissionAnswer]:
    """
    One answer per question. ``picks`` gives the selected option of each
    multiple-choice question in order; by default every pick is correct.
    """
    result = []
    mcq_position = 0
    for index, question in enumerate(definition.questions):
        if question.question_type.is_free_text():
            result.append(SubmissionAnswer(
                question_index=index, question_type="free_text", answer_text="My answer"
            ))
            continue
        selected = question.correct_answer_index
        if picks is not None:
            selected = picks[mcq_position]
        mcq_position += 1
        result.append(SubmissionAnswer(
            question_index=index, question_type="multiple_choice", selected_option=selected
        ))
    return result


# =============================
#   Fixtures
# =============================
@pytest.fixture
def settings():
    return Settings(redis_url=None, max_quiz_retakes=1)


@pytest.fixture
def catalog():
    return InMemoryLessonCatalog()


@pytest.fixture
def submission_store():
    return InMemorySubmissionStore()


@pytest.fixture
def enrollment_store():
    return InMemoryEnrollmentStore()


@pytest.fixture
def progress_service(catalog, submission_store, enrollment_store, settings):
    return ProgressService(catalog, submission_store, enrollment_store, settings)


@pytest.fixture
def submission_service(progress_service, submission_store, enrollment_store, settings):
    return SubmissionService(progress_service, submission_store, enrollment_store, settings)


@pytest.fixture
def review_service(progress_service, catalog, submission_store, enrollment_store, settings):
    return ReviewService(
        progress_service,
        catalog,
        submission_store,
        enrollment_store,
        pass_percentage=settings.quiz_pass_percentage,
    )


@pytest.fixture
def learner():
    return "learner-1"
