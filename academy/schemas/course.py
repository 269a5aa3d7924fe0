from typing import Any, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from academy.model.enums import AssessmentType, ContentType, QuestionType
from academy.utils.exceptions import ValidationException


# =============================
#   Quiz definition
# =============================
class QuizQuestion(BaseModel):
    """One authored question as stored in ``content.quiz_data.questions``"""

    model_config = ConfigDict(populate_by_name=True)

    question: Optional[str] = None
    question_type: QuestionType = QuestionType.MULTIPLE_CHOICE
    options: List[str] = Field(default_factory=list)
    correct_answer_index: Optional[int] = Field(default=None, alias="correct_answer")
    max_marks: float = 1.0
    explanation: Optional[str] = None

    @field_validator("question_type", mode="before")
    @classmethod
    def _default_question_type(cls, value: Any) -> Any:
        return value or QuestionType.MULTIPLE_CHOICE

    @field_validator("correct_answer_index", mode="before")
    @classmethod
    def _coerce_correct_index(cls, value: Any) -> Optional[int]:
        # Authoring tools store the index either as a number or a numeric string
        if isinstance(value, bool):
            return None
        if isinstance(value, int):
            return value
        if isinstance(value, float) and value.is_integer():
            return int(value)
        if isinstance(value, str):
            try:
                return int(value.strip())
            except ValueError:
                return None
        return None

    @field_validator("max_marks", mode="before")
    @classmethod
    def _clamp_max_marks(cls, value: Any) -> float:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return 1.0
        return max(0.0, float(value))


class QuizDefinition(BaseModel):
    questions: List[QuizQuestion] = Field(default_factory=list)
    assessment_type: AssessmentType = AssessmentType.CAT

    @field_validator("assessment_type", mode="before")
    @classmethod
    def _default_assessment_type(cls, value: Any) -> Any:
        if value == AssessmentType.FINAL_EXAM.value:
            return AssessmentType.FINAL_EXAM
        return AssessmentType.CAT

    @property
    def is_final_exam(self) -> bool:
        return self.assessment_type == AssessmentType.FINAL_EXAM

    @property
    def has_free_text(self) -> bool:
        return any(q.question_type.is_free_text() for q in self.questions)


# =============================
#   Lesson
# =============================
class LessonRecord(BaseModel):
    """Catalog view of a lesson as consumed by the sequencer and the workflow"""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    course_id: UUID
    title: str = ""
    step_number: int
    content_type: ContentType
    is_preview: bool = False
    quiz: Optional[QuizDefinition] = None

    @classmethod
    def from_model(cls, lesson) -> "LessonRecord":
        """
        Raises:
            ValidationException: unknown content type or malformed quiz data
        """
        try:
            content_type = ContentType(lesson.content_type)
        except ValueError as e:
            raise ValidationException(
                f"Lesson {lesson.id} has unknown content type {lesson.content_type!r}"
            ) from e

        content = lesson.content or {}
        quiz_data = content.get("quiz_data") if isinstance(content, dict) else None
        quiz = None
        if isinstance(quiz_data, dict) and isinstance(quiz_data.get("questions"), list):
            try:
                quiz = QuizDefinition.model_validate(quiz_data)
            except ValidationError as e:
                raise ValidationException(
                    f"Lesson {lesson.id} has invalid quiz data: {e.errors()[0]['msg']}"
                ) from e

        return cls(
            id=lesson.id,
            course_id=lesson.course_id,
            title=lesson.title or "",
            step_number=lesson.step_number,
            content_type=content_type,
            is_preview=bool(lesson.is_preview),
            quiz=quiz,
        )

    @property
    def is_final_exam(self) -> bool:
        return self.quiz is not None and self.quiz.is_final_exam

    @property
    def is_cat(self) -> bool:
        return self.quiz is not None and not self.quiz.is_final_exam
