from uuid import uuid4

import pytest

from academy.utils.exceptions import (
    AccessDeniedException,
    ResourceNotFoundException,
    ValidationException,
)

from conftest import answers_for, free_text, make_lessons, mcq, quiz


async def test_enroll_is_idempotent(catalog, progress_service, enrollment_store, learner):
    course_id = catalog.add_course(make_lessons("video"))
    first = await progress_service.enroll(learner, course_id)
    second = await progress_service.enroll(learner, course_id)
    assert first.id == second.id
    assert len(enrollment_store.enrollments) == 1


async def test_enroll_unknown_course(progress_service, learner):
    with pytest.raises(ResourceNotFoundException):
        await progress_service.enroll(learner, uuid4())


async def test_progress_requires_enrollment(catalog, progress_service, learner):
    course_id = catalog.add_course(make_lessons("video"))
    with pytest.raises(AccessDeniedException):
        await progress_service.get_course_progress(learner, course_id)


async def test_mark_complete_is_idempotent_and_gated(catalog, progress_service, learner):
    lessons = make_lessons("video", "text", ("quiz", quiz(mcq())))
    course_id = catalog.add_course(lessons)
    await progress_service.enroll(learner, course_id)

    with pytest.raises(AccessDeniedException):
        await progress_service.mark_lesson_complete(learner, course_id, lessons[1].id)

    await progress_service.mark_lesson_complete(learner, course_id, lessons[0].id)
    await progress_service.mark_lesson_complete(learner, course_id, lessons[0].id)
    await progress_service.mark_lesson_complete(learner, course_id, lessons[1].id)

    with pytest.raises(ValidationException):
        await progress_service.mark_lesson_complete(learner, course_id, lessons[2].id)

    progress = await progress_service.get_course_progress(learner, course_id)
    assert progress.completed_lessons == 2
    assert progress.progress_percentage == pytest.approx(66.67)
    assert progress.resume_lesson_id == lessons[2].id
    assert progress.enrollment.is_completed is False


async def test_video_only_course_completes_without_passing(catalog, progress_service, learner):
    lessons = make_lessons("video")
    course_id = catalog.add_course(lessons)
    await progress_service.enroll(learner, course_id)

    enrollment = await progress_service.mark_lesson_complete(learner, course_id, lessons[0].id)
    assert enrollment.is_completed is True
    assert enrollment.is_passed is False
    assert enrollment.final_score_100 == 0

    with pytest.raises(AccessDeniedException):
        await progress_service.get_certificate(learner, course_id)


async def test_record_lesson_access_sets_resume_point(catalog, progress_service, learner):
    lessons = make_lessons("video", "text", "code")
    course_id = catalog.add_course(lessons)
    await progress_service.enroll(learner, course_id)
    await progress_service.mark_lesson_complete(learner, course_id, lessons[0].id)
    await progress_service.mark_lesson_complete(learner, course_id, lessons[1].id)

    enrollment = await progress_service.record_lesson_access(learner, course_id, lessons[0].id)
    assert enrollment.last_lesson_id == lessons[0].id
    assert enrollment.last_accessed_at is not None

    progress = await progress_service.get_course_progress(learner, course_id)
    assert progress.resume_lesson_id == lessons[0].id


async def test_record_access_to_locked_lesson(catalog, progress_service, learner):
    lessons = make_lessons("video", "text")
    course_id = catalog.add_course(lessons)
    await progress_service.enroll(learner, course_id)
    with pytest.raises(AccessDeniedException):
        await progress_service.record_lesson_access(learner, course_id, lessons[1].id)


async def test_dashboard_feeds_come_from_submissions(
        catalog, progress_service, submission_service, learner
):
    lessons = make_lessons(
        ("quiz", quiz(mcq(0))),
        "project",
        ("quiz", quiz(free_text(), final_exam=True)),
    )
    course_id = catalog.add_course(lessons)
    await progress_service.enroll(learner, course_id)

    cat = await submission_service.submit_quiz(learner, course_id, lessons[0].id, answers_for(lessons[0].quiz))
    project = await submission_service.submit_project(
        learner, course_id, lessons[1].id, submission_text="Write-up"
    )
    exam = await submission_service.submit_quiz(learner, course_id, lessons[2].id, answers_for(lessons[2].quiz))

    dashboard = await progress_service.get_dashboard(learner)
    assert [q.id for q in dashboard.quizzes] == [cat.id]
    assert [p.id for p in dashboard.projects] == [project.id]
    assert [e.id for e in dashboard.exams] == [exam.id]

    (summary,) = dashboard.courses
    assert summary.total_lessons == 3
    assert summary.completed_lessons == 1
    assert summary.pending_review_lessons == 2
    assert summary.all_lessons_completed is True
    assert summary.eligible_to_complete is False
    assert summary.is_passed is None
    assert summary.certificate_eligible is False


async def test_dashboard_without_enrollments(progress_service):
    dashboard = await progress_service.get_dashboard("nobody")
    assert dashboard.courses == []
    assert dashboard.quizzes == dashboard.projects == dashboard.exams == []
