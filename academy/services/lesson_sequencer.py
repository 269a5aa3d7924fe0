"""
Lesson gating rules.

A lesson is reachable when it is the first one, a preview, or when the
lesson right before it is complete or waiting for review. Waiting for
review counts so that reviewer latency never blocks a learner.
"""

import logging
from typing import AbstractSet, List, Optional, Sequence
from uuid import UUID

from academy.model.enums import CompletionPolicy, ContentType
from academy.schemas.course import LessonRecord
from academy.utils.exceptions import AccessDeniedException, ValidationException

logger = logging.getLogger(__name__)


def order_lessons(lessons: Sequence[LessonRecord]) -> List[LessonRecord]:
    """
    Sort a catalog by step number. Gaps are allowed (unpublished lessons
    are left out of the catalog); gating works on list position.

    Raises:
        ValidationException: two lessons share a step number
    """
    ordered = sorted(lessons, key=lambda lesson: lesson.step_number)
    for previous, lesson in zip(ordered, ordered[1:]):
        if lesson.step_number == previous.step_number:
            raise ValidationException(
                f"Lessons {previous.id} and {lesson.id} share step {lesson.step_number}"
            )
    return ordered


def is_unlocked(
        lesson: LessonRecord,
        index: int,
        lessons: Sequence[LessonRecord],
        completed_ids: AbstractSet[UUID],
        pending_review_ids: AbstractSet[UUID],
) -> bool:
    if index <= 0:
        return True
    if lesson.is_preview:
        return True
    if index >= len(lessons):
        return False

    previous = lessons[index - 1]
    return previous.id in completed_ids or previous.id in pending_review_ids


def unlocked_map(
        lessons: Sequence[LessonRecord],
        completed_ids: AbstractSet[UUID],
        pending_review_ids: AbstractSet[UUID],
) -> dict[UUID, bool]:
    return {
        lesson.id: is_unlocked(lesson, index, lessons, completed_ids, pending_review_ids)
        for index, lesson in enumerate(lessons)
    }


def can_navigate_next(
        index: int,
        lessons: Sequence[LessonRecord],
        completed_ids: AbstractSet[UUID],
        pending_review_ids: AbstractSet[UUID],
) -> bool:
    """Whether the 'next lesson' control may move past the lesson at ``index``."""
    next_index = index + 1
    if next_index >= len(lessons):
        return False
    return is_unlocked(
        lessons[next_index], next_index, lessons, completed_ids, pending_review_ids
    )


def ensure_unlocked(
        lesson: LessonRecord,
        lessons: Sequence[LessonRecord],
        completed_ids: AbstractSet[UUID],
        pending_review_ids: AbstractSet[UUID],
) -> int:
    """
    Return the lesson's position, or raise if the learner may not open it.

    A lesson missing from the catalog is treated as locked.

    Raises:
        AccessDeniedException: the lesson is locked
    """
    index = position_of(lessons, lesson.id)
    if index is None or not is_unlocked(lesson, index, lessons, completed_ids, pending_review_ids):
        logger.info(f"Lesson {lesson.id} is locked")
        raise AccessDeniedException(
            "Complete the previous lesson before opening this one"
        )
    return index


def position_of(lessons: Sequence[LessonRecord], lesson_id: UUID) -> Optional[int]:
    for index, lesson in enumerate(lessons):
        if lesson.id == lesson_id:
            return index
    return None


# =============================
#   Completion policy
# =============================
def completion_policy(content_type: ContentType) -> CompletionPolicy:
    return content_type.completion_policy


def can_mark_complete_directly(content_type: ContentType) -> bool:
    return completion_policy(content_type) == CompletionPolicy.LEARNER_ACTION


def ensure_direct_completion(lesson: LessonRecord) -> None:
    """
    Raises:
        ValidationException: the lesson completes through a submission
    """
    policy = completion_policy(lesson.content_type)
    if policy == CompletionPolicy.QUIZ_GRADED:
        raise ValidationException("Quiz lessons are completed by submitting the quiz")
    if policy == CompletionPolicy.PROJECT_APPROVED:
        raise ValidationException("Project lessons are completed when a reviewer approves them")


# =============================
#   Course-level progress
# =============================
def done_lesson_ids(
        lessons: Sequence[LessonRecord],
        completed_ids: AbstractSet[UUID],
        pending_review_ids: AbstractSet[UUID],
) -> set[UUID]:
    catalog = {lesson.id for lesson in lessons}
    return (set(completed_ids) | set(pending_review_ids)) & catalog


def is_course_completed(
        lessons: Sequence[LessonRecord],
        completed_ids: AbstractSet[UUID],
        pending_review_ids: AbstractSet[UUID],
) -> bool:
    """
    True once every lesson is complete or submitted for review.

    "Completed" here means all gating work was handed in, not that it was
    all graded.
    """
    total = len(lessons)
    if total == 0:
        return False
    return len(done_lesson_ids(lessons, completed_ids, pending_review_ids)) >= total


def completion_percentage(
        lessons: Sequence[LessonRecord], completed_ids: AbstractSet[UUID]
) -> float:
    total = len(lessons)
    if total == 0:
        return 0.0
    completed = len({lesson.id for lesson in lessons} & set(completed_ids))
    return round(completed / total * 100, 2)


def resume_lesson(
        lessons: Sequence[LessonRecord],
        completed_ids: AbstractSet[UUID],
        pending_review_ids: AbstractSet[UUID],
        last_lesson_id: Optional[UUID] = None,
) -> Optional[LessonRecord]:
    """
    Pick the lesson to open when the learner comes back to a course:
    the last visited lesson if still reachable, otherwise the first
    reachable lesson not yet done, otherwise the first lesson.
    """
    if not lessons:
        return None

    if last_lesson_id is not None:
        index = position_of(lessons, last_lesson_id)
        if index is not None and is_unlocked(
                lessons[index], index, lessons, completed_ids, pending_review_ids
        ):
            return lessons[index]

    for index, lesson in enumerate(lessons):
        if lesson.id in completed_ids or lesson.id in pending_review_ids:
            continue
        if is_unlocked(lesson, index, lessons, completed_ids, pending_review_ids):
            return lesson

    return lessons[0]
