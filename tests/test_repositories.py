"""
Repository write paths against a stubbed AsyncSession: versioned updates,
unique-constraint inserts and catalog row parsing.
"""

from types import SimpleNamespace
from uuid import uuid4

import pytest
from sqlalchemy import Delete
from sqlalchemy.exc import IntegrityError

from academy.model.enums import QuizSubmissionStatus
from academy.model.progress_models import Enrollment
from academy.repositories.base_repo import BaseRepository
from academy.repositories.enrollment_repo import EnrollmentRepository
from academy.repositories.lesson_repo import LessonRepository
from academy.repositories.submission_repo import SubmissionRepository
from academy.schemas.course import LessonRecord
from academy.schemas.submission import QuizSubmissionRecord, SubmissionAnswer
from academy.utils.exceptions import ConflictException, ValidationException


class StubResult:
    def __init__(self, rowcount=0, row=None, rows=None):
        self.rowcount = rowcount
        self._row = row
        self._rows = rows or []

    def scalar_one_or_none(self):
        return self._row

    def scalars(self):
        return SimpleNamespace(all=lambda: list(self._rows))


class StubSession:
    """Replays queued results and records what the repository sent."""

    def __init__(self, *results, flush_error=None):
        self.results = list(results)
        self.flush_error = flush_error
        self.statements = []
        self.added = []
        self.rolled_back = False

    def add(self, obj):
        self.added.append(obj)

    async def flush(self):
        if self.flush_error is not None:
            raise self.flush_error

    async def rollback(self):
        self.rolled_back = True

    async def refresh(self, obj):
        pass

    async def execute(self, statement):
        self.statements.append(statement)
        return self.results.pop(0)


def duplicate_key():
    return IntegrityError("INSERT ...", {}, Exception("duplicate key value"))


def quiz_record(**overrides):
    fields = dict(
        id=uuid4(),
        user_id="learner-1",
        course_id=uuid4(),
        lesson_id=uuid4(),
        status=QuizSubmissionStatus.GRADED,
        answers=[SubmissionAnswer(question_index=0, question_type="multiple_choice", selected_option=1)],
        score=1,
        total=1,
        is_passed=True,
        attempt_count=1,
    )
    fields.update(overrides)
    return QuizSubmissionRecord(**fields)


class TestUpdateVersioned:
    async def test_stale_version_reports_stored_version(self):
        stored = SimpleNamespace(version=3)
        session = StubSession(StubResult(rowcount=0), StubResult(row=stored))
        repo = BaseRepository(Enrollment, session)

        with pytest.raises(ConflictException) as exc_info:
            await repo.update_versioned({"user_id": "learner-1"}, {"is_passed": True}, expected_version=2)
        assert exc_info.value.current_version == 3

        update_stmt, reread = session.statements
        assert "enrollments.version" in str(update_stmt.whereclause)
        # The conflict must report the database row, not the session's cached copy
        assert reread.get_execution_options().get("populate_existing") is True

    async def test_missing_row_conflicts_without_version(self):
        session = StubSession(StubResult(rowcount=0), StubResult(row=None))
        repo = BaseRepository(Enrollment, session)

        with pytest.raises(ConflictException) as exc_info:
            await repo.update_versioned({"user_id": "nobody"}, {"is_passed": True}, expected_version=1)
        assert exc_info.value.current_version is None

    async def test_matching_version_returns_fresh_row(self):
        stored = SimpleNamespace(version=5)
        session = StubSession(StubResult(rowcount=1), StubResult(row=stored))
        repo = BaseRepository(Enrollment, session)

        updated = await repo.update_versioned({"user_id": "learner-1"}, {"is_passed": False}, expected_version=4)
        assert updated is stored


class TestInsert:
    async def test_unique_violation_becomes_conflict(self):
        session = StubSession(flush_error=duplicate_key())
        repo = EnrollmentRepository(session)

        with pytest.raises(ConflictException):
            await repo.create_enrollment("learner-1", uuid4())
        assert session.rolled_back
        assert len(session.added) == 1


class TestSubmissionRepository:
    async def test_first_submit_racing_another_conflicts(self):
        session = StubSession(flush_error=duplicate_key())
        repo = SubmissionRepository(session)

        with pytest.raises(ConflictException):
            await repo.put_quiz_submission(quiz_record(), expected_version=None)
        assert session.rolled_back
        (row,) = session.added
        assert row.version == 1
        assert row.answers == [
            {"question_index": 0, "question_type": "multiple_choice",
             "selected_option": 1, "answer_text": None, "awarded_marks": None}
        ]

    async def test_stale_replace_conflicts(self):
        session = StubSession(StubResult(rowcount=0), StubResult(row=SimpleNamespace(version=7)))
        repo = SubmissionRepository(session)

        with pytest.raises(ConflictException) as exc_info:
            await repo.put_quiz_submission(quiz_record(), expected_version=6)
        assert exc_info.value.current_version == 7


async def test_remove_lesson_completion():
    session = StubSession(StubResult(rowcount=1), StubResult(rowcount=0))
    repo = EnrollmentRepository(session)
    course_id, lesson_id = uuid4(), uuid4()

    assert await repo.remove_lesson_completion("learner-1", course_id, lesson_id) is True
    assert await repo.remove_lesson_completion("learner-1", course_id, lesson_id) is False
    assert all(isinstance(stmt, Delete) for stmt in session.statements)


class TestLessonRows:
    @staticmethod
    def lesson_row(**overrides):
        fields = dict(
            id=uuid4(),
            course_id=uuid4(),
            title="Lesson",
            step_number=1,
            content_type="quiz",
            is_preview=False,
            is_published=True,
            content={"quiz_data": {"questions": [{"question": "Q", "options": ["a", "b"], "correct_answer": 1}]}},
        )
        fields.update(overrides)
        return SimpleNamespace(**fields)

    def test_missing_question_type_defaults_to_multiple_choice(self):
        record = LessonRecord.from_model(self.lesson_row())
        assert record.quiz.questions[0].question_type.is_multiple_choice()

    def test_unknown_content_type_names_the_lesson(self):
        row = self.lesson_row(content_type="podcast")
        with pytest.raises(ValidationException) as exc_info:
            LessonRecord.from_model(row)
        assert str(row.id) in exc_info.value.message

    def test_unknown_question_type_names_the_lesson(self):
        row = self.lesson_row(content={"quiz_data": {"questions": [{"question": "Q", "question_type": "essay"}]}})
        with pytest.raises(ValidationException) as exc_info:
            LessonRecord.from_model(row)
        assert str(row.id) in exc_info.value.message

    async def test_list_lessons_surfaces_bad_row_as_validation_error(self):
        good = self.lesson_row()
        bad = self.lesson_row(step_number=2, content_type="podcast")
        session = StubSession(StubResult(rows=[good, bad]))
        repo = LessonRepository(session)

        with pytest.raises(ValidationException):
            await repo.list_lessons(good.course_id)
