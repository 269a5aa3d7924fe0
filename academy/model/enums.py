"""
Enums shared by the models, schemas and grading rules
"""
from enum import Enum


class CompletionPolicy(str, Enum):
    """How a lesson of a given content type becomes complete"""
    LEARNER_ACTION = "LEARNER_ACTION"
    QUIZ_GRADED = "QUIZ_GRADED"
    PROJECT_APPROVED = "PROJECT_APPROVED"


class ContentType(str, Enum):
    """Type of lesson content"""
    VIDEO = "video"
    TEXT = "text"
    CODE = "code"
    QUIZ = "quiz"
    PROJECT = "project"
    RESOURCE = "resource"

    @property
    def completion_policy(self) -> CompletionPolicy:
        policies = {
            ContentType.QUIZ: CompletionPolicy.QUIZ_GRADED,
            ContentType.PROJECT: CompletionPolicy.PROJECT_APPROVED,
        }
        return policies.get(self, CompletionPolicy.LEARNER_ACTION)

    def is_quiz(self) -> bool:
        return self == ContentType.QUIZ

    def is_project(self) -> bool:
        return self == ContentType.PROJECT


class QuestionType(str, Enum):
    """Type of quiz question"""
    MULTIPLE_CHOICE = "multiple_choice"
    FREE_TEXT = "free_text"

    def is_multiple_choice(self) -> bool:
        return self == QuestionType.MULTIPLE_CHOICE

    def is_free_text(self) -> bool:
        return self == QuestionType.FREE_TEXT


class AssessmentType(str, Enum):
    """Role of a quiz in the course grade"""
    CAT = "cat"
    FINAL_EXAM = "final_exam"


class QuizSubmissionStatus(str, Enum):
    PENDING_REVIEW = "pending_review"
    GRADED = "graded"


class ProjectSubmissionStatus(str, Enum):
    PENDING_REVIEW = "pending_review"
    APPROVED = "approved"
    REJECTED = "rejected"
