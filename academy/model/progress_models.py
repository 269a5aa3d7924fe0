"""
Learner progress models: enrollments, lesson completions and submissions
"""

from sqlalchemy import (
    Column,
    String,
    Text,
    Float,
    Integer,
    Boolean,
    DateTime,
    ForeignKey,
    UniqueConstraint,
    func,
)
from sqlalchemy.dialects.postgresql import ARRAY, JSONB, UUID as PGUUID

from academy.model.base import Base, BaseMixin, VersionedMixin
from academy.model.enums import QuizSubmissionStatus, ProjectSubmissionStatus


class Enrollment(Base, BaseMixin, VersionedMixin):
    """One row per (learner, course)."""

    __tablename__ = "enrollments"
    __table_args__ = (
        UniqueConstraint("user_id", "course_id", name="uq_enrollments_user_course"),
    )

    id = Column(PGUUID(as_uuid=True), primary_key=True)
    user_id = Column(String(36), nullable=False, index=True)
    course_id = Column(
        PGUUID(as_uuid=True),
        ForeignKey("courses.id", ondelete="CASCADE"),
        nullable=False,
    )
    enrolled_at = Column(DateTime(timezone=True), default=func.now(), nullable=False)
    last_accessed_at = Column(DateTime(timezone=True), nullable=True)
    last_lesson_id = Column(PGUUID(as_uuid=True), nullable=True)
    is_completed = Column(Boolean, default=False, nullable=False)
    # Only ever non-null once is_completed is true
    is_passed = Column(Boolean, nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    final_score_100 = Column(Float, nullable=True)

    def __repr__(self):
        return f"<Enrollment(user_id={self.user_id}, course_id={self.course_id})>"


class LessonCompletion(Base, BaseMixin):
    __tablename__ = "lesson_completions"
    __table_args__ = (
        UniqueConstraint("user_id", "lesson_id", name="uq_lesson_completions_user_lesson"),
    )

    id = Column(PGUUID(as_uuid=True), primary_key=True)
    user_id = Column(String(36), nullable=False, index=True)
    course_id = Column(PGUUID(as_uuid=True), nullable=False, index=True)
    lesson_id = Column(
        PGUUID(as_uuid=True),
        ForeignKey("lessons.id", ondelete="CASCADE"),
        nullable=False,
    )
    completed_at = Column(DateTime(timezone=True), default=func.now(), nullable=False)


class QuizSubmission(Base, BaseMixin, VersionedMixin):
    """
    Current quiz submission of a learner for a lesson.

    A retake replaces the row in place; ``attempt_count`` is the
    server-side record of how many attempts were consumed.
    """

    __tablename__ = "quiz_submissions"
    __table_args__ = (
        UniqueConstraint("user_id", "lesson_id", name="uq_quiz_submissions_user_lesson"),
    )

    id = Column(PGUUID(as_uuid=True), primary_key=True)
    user_id = Column(String(36), nullable=False, index=True)
    course_id = Column(PGUUID(as_uuid=True), nullable=False, index=True)
    lesson_id = Column(
        PGUUID(as_uuid=True),
        ForeignKey("lessons.id", ondelete="CASCADE"),
        nullable=False,
    )
    status = Column(String(31), default=QuizSubmissionStatus.PENDING_REVIEW.value, nullable=False)
    answers = Column(JSONB, nullable=False, default=list)
    score = Column(Float, nullable=True)
    total = Column(Float, nullable=True)
    is_passed = Column(Boolean, nullable=True)
    attachment_urls = Column(ARRAY(String), nullable=False, default=list)
    attempt_count = Column(Integer, default=1, nullable=False)
    reviewer_id = Column(String(36), nullable=True)
    reviewed_at = Column(DateTime(timezone=True), nullable=True)

    def __repr__(self):
        return f"<QuizSubmission(id={self.id}, status={self.status})>"


class ProjectSubmission(Base, BaseMixin, VersionedMixin):
    __tablename__ = "project_submissions"
    __table_args__ = (
        UniqueConstraint("user_id", "lesson_id", name="uq_project_submissions_user_lesson"),
    )

    id = Column(PGUUID(as_uuid=True), primary_key=True)
    user_id = Column(String(36), nullable=False, index=True)
    course_id = Column(PGUUID(as_uuid=True), nullable=False, index=True)
    lesson_id = Column(
        PGUUID(as_uuid=True),
        ForeignKey("lessons.id", ondelete="CASCADE"),
        nullable=False,
    )
    status = Column(String(31), default=ProjectSubmissionStatus.PENDING_REVIEW.value, nullable=False)
    submission_text = Column(Text, nullable=True)
    submission_url = Column(String(2048), nullable=True)
    attachment_urls = Column(ARRAY(String), nullable=False, default=list)
    feedback = Column(Text, nullable=True)
    reviewer_id = Column(String(36), nullable=True)
    reviewed_at = Column(DateTime(timezone=True), nullable=True)

    def __repr__(self):
        return f"<ProjectSubmission(id={self.id}, status={self.status})>"
