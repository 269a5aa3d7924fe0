from datetime import datetime
from typing import List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from academy.model.enums import (
    ProjectSubmissionStatus,
    QuestionType,
    QuizSubmissionStatus,
)


# =============================
#   Answers
# =============================
class SubmissionAnswer(BaseModel):
    """A learner's answer to one question, keyed by the question's position"""

    question_index: int = Field(..., ge=0)
    question_type: QuestionType
    selected_option: Optional[int] = None
    answer_text: Optional[str] = None
    # Written by a reviewer on free-text answers
    awarded_marks: Optional[float] = None


class FreeTextGrade(BaseModel):
    question_index: int = Field(..., ge=0)
    awarded_marks: float


# =============================
#   Stored records
# =============================
class QuizSubmissionRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: str
    course_id: UUID
    lesson_id: UUID
    status: QuizSubmissionStatus
    answers: List[SubmissionAnswer] = Field(default_factory=list)
    score: Optional[float] = None
    total: Optional[float] = None
    is_passed: Optional[bool] = None
    attachment_urls: List[str] = Field(default_factory=list)
    attempt_count: int = 1
    reviewer_id: Optional[str] = None
    reviewed_at: Optional[datetime] = None
    version: int = 1

    @property
    def is_graded(self) -> bool:
        return self.status == QuizSubmissionStatus.GRADED

    @property
    def is_pending_review(self) -> bool:
        return self.status == QuizSubmissionStatus.PENDING_REVIEW

    @property
    def has_free_text(self) -> bool:
        return any(a.question_type.is_free_text() for a in self.answers)


class ProjectSubmissionRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: str
    course_id: UUID
    lesson_id: UUID
    status: ProjectSubmissionStatus
    submission_text: Optional[str] = None
    submission_url: Optional[str] = None
    attachment_urls: List[str] = Field(default_factory=list)
    feedback: Optional[str] = None
    reviewer_id: Optional[str] = None
    reviewed_at: Optional[datetime] = None
    version: int = 1

    @property
    def is_pending_review(self) -> bool:
        return self.status == ProjectSubmissionStatus.PENDING_REVIEW


# =============================
#   Request Schemas
# =============================
class SubmitQuizRequest(BaseModel):
    course_id: UUID
    lesson_id: UUID
    answers: List[SubmissionAnswer]
    attachment_urls: List[str] = Field(default_factory=list)
    expected_version: Optional[int] = Field(
        None, description="Version of the submission the learner last read; null if none"
    )


class RetakeFinalExamRequest(BaseModel):
    course_id: UUID
    answers: List[SubmissionAnswer]
    attachment_urls: List[str] = Field(default_factory=list)
    expected_version: Optional[int] = Field(
        None, description="Version of the final exam submission the learner last read"
    )


class SubmitProjectRequest(BaseModel):
    course_id: UUID
    lesson_id: UUID
    submission_text: Optional[str] = None
    submission_url: Optional[str] = None
    attachment_urls: List[str] = Field(default_factory=list)
    expected_version: Optional[int] = None


class ReviewQuizRequest(BaseModel):
    free_text_grades: List[FreeTextGrade]
    expected_version: int
    is_passed: Optional[bool] = Field(
        None, description="Reviewer override; computed from the score when omitted"
    )


class ReviewProjectRequest(BaseModel):
    status: Literal["approved", "rejected"]
    feedback: Optional[str] = None
    expected_version: int


# =============================
#   Response Schemas
# =============================
class RetakeStatus(BaseModel):
    lesson_id: UUID
    can_retake: bool
    attempts_used: int
    attempts_allowed: int
