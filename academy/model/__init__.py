"""
Model package - Database models and enums
"""
from academy.model.base import Base, BaseMixin, TimestampMixin, VersionedMixin
from academy.model.enums import (
    AssessmentType,
    CompletionPolicy,
    ContentType,
    ProjectSubmissionStatus,
    QuestionType,
    QuizSubmissionStatus,
)
from academy.model.course_models import Course, Lesson
from academy.model.progress_models import (
    Enrollment,
    LessonCompletion,
    QuizSubmission,
    ProjectSubmission,
)

__all__ = [
    # Base classes
    'Base',
    'BaseMixin',
    'TimestampMixin',
    'VersionedMixin',
    # Enums
    'AssessmentType',
    'CompletionPolicy',
    'ContentType',
    'ProjectSubmissionStatus',
    'QuestionType',
    'QuizSubmissionStatus',
    # Course models
    'Course',
    'Lesson',
    # Progress models
    'Enrollment',
    'LessonCompletion',
    'QuizSubmission',
    'ProjectSubmission',
]
