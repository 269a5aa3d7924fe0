from datetime import datetime
from typing import Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from academy.model.enums import ContentType, ProjectSubmissionStatus
from academy.schemas.submission import ProjectSubmissionRecord, QuizSubmissionRecord


class EnrollmentRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: str
    course_id: UUID
    enrolled_at: Optional[datetime] = None
    last_accessed_at: Optional[datetime] = None
    last_lesson_id: Optional[UUID] = None
    is_completed: bool = False
    is_passed: Optional[bool] = None
    completed_at: Optional[datetime] = None
    final_score_100: Optional[float] = None
    version: int = 1


class GradeSnapshot(BaseModel):
    """Course grade derived from the CAT and final exam submissions"""

    cat_scaled_30: float = 0.0
    exam_scaled_70: float = 0.0
    final_score_100: float = 0.0
    has_final_exam: bool = False
    final_exam_pending_review: bool = False
    final_exam_graded: bool = False


class ProgressSnapshot(BaseModel):
    """
    Lesson completion state of one learner in one course, read once per request.

    Writes made during the request are applied here instead of re-reading
    the stores.
    """

    completed_ids: set[UUID] = Field(default_factory=set)
    pending_review_ids: set[UUID] = Field(default_factory=set)
    quiz_submissions: Dict[UUID, QuizSubmissionRecord] = Field(default_factory=dict)

    def apply_quiz(self, submission: QuizSubmissionRecord) -> None:
        self.quiz_submissions[submission.lesson_id] = submission
        if submission.is_pending_review:
            self.pending_review_ids.add(submission.lesson_id)
            self.completed_ids.discard(submission.lesson_id)
        else:
            self.pending_review_ids.discard(submission.lesson_id)
            self.completed_ids.add(submission.lesson_id)

    def apply_project(self, submission: ProjectSubmissionRecord) -> None:
        if submission.is_pending_review:
            self.pending_review_ids.add(submission.lesson_id)
            return
        self.pending_review_ids.discard(submission.lesson_id)
        if submission.status == ProjectSubmissionStatus.APPROVED:
            self.completed_ids.add(submission.lesson_id)

    def mark_completed(self, lesson_id: UUID) -> None:
        self.completed_ids.add(lesson_id)


# =============================
#   Response Schemas
# =============================
class LessonProgress(BaseModel):
    lesson_id: UUID
    title: str
    step_number: int
    content_type: ContentType
    is_preview: bool
    is_unlocked: bool
    is_completed: bool
    is_pending_review: bool


class CourseProgressResponse(BaseModel):
    course_id: UUID
    lessons: List[LessonProgress]
    total_lessons: int
    completed_lessons: int
    pending_review_lessons: int
    progress_percentage: float
    resume_lesson_id: Optional[UUID] = None
    enrollment: EnrollmentRecord
    grade: GradeSnapshot
    certificate_eligible: bool


class CertificateResponse(BaseModel):
    course_id: UUID
    user_id: str
    final_score_100: float
    completed_at: Optional[datetime] = None


class DashboardCourseSummary(BaseModel):
    course_id: UUID
    total_lessons: int
    completed_lessons: int
    pending_review_lessons: int
    progress_percentage: float
    all_lessons_completed: bool
    eligible_to_complete: bool
    is_completed: bool
    is_passed: Optional[bool] = None
    certificate_eligible: bool
    grade: GradeSnapshot


class DashboardResponse(BaseModel):
    courses: List[DashboardCourseSummary]
    projects: List[ProjectSubmissionRecord]
    quizzes: List[QuizSubmissionRecord]
    exams: List[QuizSubmissionRecord]
