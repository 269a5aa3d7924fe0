"""
Repository package - Data access layer
"""

from academy.repositories.base_repo import BaseRepository
from academy.repositories.enrollment_repo import EnrollmentRepository
from academy.repositories.lesson_repo import LessonRepository
from academy.repositories.submission_repo import SubmissionRepository

__all__ = [
    "BaseRepository",
    "EnrollmentRepository",
    "LessonRepository",
    "SubmissionRepository",
]
