import jwt
import pytest
from fastapi.testclient import TestClient

from academy.clients.redis_client import RedisClient
from academy.dependencies.services import (
    get_progress_service,
    get_redis_client,
    get_review_service,
    get_submission_service,
)
from academy.main import app

from conftest import make_lessons, mcq, quiz

# Signatures are not verified by the service
SECRET = "unit-test-signing-key-0123456789abcdef"


def bearer(user_id, roles=None):
    token = jwt.encode({"userId": user_id, "roles": roles or ["student"]}, SECRET, algorithm="HS256")
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def client(settings, progress_service, submission_service, review_service):
    redis_client = RedisClient(settings)

    async def _redis():
        return redis_client

    app.dependency_overrides[get_progress_service] = lambda: progress_service
    app.dependency_overrides[get_submission_service] = lambda: submission_service
    app.dependency_overrides[get_review_service] = lambda: review_service
    app.dependency_overrides[get_redis_client] = _redis
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def course(catalog):
    lessons = make_lessons("video", ("quiz", quiz(mcq(0), mcq(1))), "project")
    return catalog.add_course(lessons), lessons


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_missing_token_is_401(client, course):
    course_id, _ = course
    response = client.get(f"/api/v1/courses/{course_id}/progress")
    assert response.status_code == 401
    assert response.json()["status"] == "ERROR"


def test_learner_flow(client, course, learner):
    course_id, (video, quiz_lesson, project) = course
    headers = bearer(learner)

    response = client.post(f"/api/v1/courses/{course_id}/enroll", headers=headers)
    assert response.status_code == 200
    assert response.json()["status"] == "SUCCESS"

    quiz_body = {
        "course_id": str(course_id),
        "lesson_id": str(quiz_lesson.id),
        "answers": [
            {"question_index": 0, "question_type": "multiple_choice", "selected_option": 0},
            {"question_index": 1, "question_type": "multiple_choice", "selected_option": 1},
        ],
    }
    locked = client.post("/api/v1/quiz-submissions", json=quiz_body, headers=headers)
    assert locked.status_code == 403

    done = client.post(f"/api/v1/courses/{course_id}/lessons/{video.id}/complete", headers=headers)
    assert done.status_code == 200

    graded = client.post("/api/v1/quiz-submissions", json=quiz_body, headers=headers)
    assert graded.status_code == 200
    data = graded.json()["data"]
    assert data["status"] == "graded"
    assert data["is_passed"] is True

    stale = client.post("/api/v1/quiz-submissions", json=quiz_body, headers=headers)
    assert stale.status_code == 409
    assert stale.json()["data"]["current_version"] == data["version"]

    retake = client.get(f"/api/v1/quiz-submissions/{quiz_lesson.id}/retake", headers=headers)
    assert retake.json()["data"]["can_retake"] is False

    quiz_complete = client.post(
        f"/api/v1/courses/{course_id}/lessons/{quiz_lesson.id}/complete", headers=headers
    )
    assert quiz_complete.status_code == 400

    project_response = client.post(
        "/api/v1/project-submissions",
        json={
            "course_id": str(course_id),
            "lesson_id": str(project.id),
            "submission_url": "https://example.com/repo",
        },
        headers=headers,
    )
    assert project_response.status_code == 200
    assert project_response.json()["data"]["status"] == "pending_review"

    progress = client.get(f"/api/v1/courses/{course_id}/progress", headers=headers).json()["data"]
    assert progress["enrollment"]["is_completed"] is True
    assert progress["enrollment"]["is_passed"] is None
    assert progress["certificate_eligible"] is False

    certificate = client.get(f"/api/v1/courses/{course_id}/certificate", headers=headers)
    assert certificate.status_code == 403


def test_review_requires_reviewer_role(client, learner):
    response = client.get("/api/v1/reviews/project-submissions", headers=bearer(learner))
    assert response.status_code == 403

    response = client.get("/api/v1/reviews/project-submissions", headers=bearer("admin-1", ["ADMIN"]))
    assert response.status_code == 200
    assert response.json()["data"] == []


def test_reviewer_approves_project(client, catalog, learner):
    lessons = make_lessons("project")
    course_id = catalog.add_course(lessons)
    headers = bearer(learner)
    client.post(f"/api/v1/courses/{course_id}/enroll", headers=headers)
    submitted = client.post(
        "/api/v1/project-submissions",
        json={"course_id": str(course_id), "lesson_id": str(lessons[0].id), "submission_text": "Done"},
        headers=headers,
    ).json()["data"]

    reviewer = bearer("reviewer-1", ["reviewer"])
    queue = client.get("/api/v1/reviews/project-submissions", headers=reviewer).json()["data"]
    assert [s["id"] for s in queue] == [submitted["id"]]

    response = client.patch(
        f"/api/v1/reviews/project-submissions/{submitted['id']}",
        json={"status": "approved", "feedback": "Good", "expected_version": submitted["version"]},
        headers=reviewer,
    )
    assert response.status_code == 200
    assert response.json()["data"]["status"] == "approved"

    again = client.patch(
        f"/api/v1/reviews/project-submissions/{submitted['id']}",
        json={"status": "rejected", "expected_version": submitted["version"]},
        headers=reviewer,
    )
    assert again.status_code == 409


def test_invalid_body_is_400(client, learner):
    response = client.post("/api/v1/quiz-submissions", json={"answers": []}, headers=bearer(learner))
    assert response.status_code == 400


def test_final_exam_retake_after_failed_course(client, catalog, learner):
    lessons = make_lessons(("quiz", quiz(mcq(0), mcq(1), final_exam=True)))
    course_id = catalog.add_course(lessons)
    headers = bearer(learner)
    client.post(f"/api/v1/courses/{course_id}/enroll", headers=headers)

    def answers(first, second):
        return [
            {"question_index": 0, "question_type": "multiple_choice", "selected_option": first},
            {"question_index": 1, "question_type": "multiple_choice", "selected_option": second},
        ]

    failed = client.post(
        "/api/v1/quiz-submissions",
        json={"course_id": str(course_id), "lesson_id": str(lessons[0].id), "answers": answers(1, 0)},
        headers=headers,
    ).json()["data"]
    progress = client.get(f"/api/v1/courses/{course_id}/progress", headers=headers).json()["data"]
    assert progress["enrollment"]["is_passed"] is False

    retake_body = {"course_id": str(course_id), "answers": answers(0, 1)}
    stale = client.post(
        "/api/v1/quiz-submissions/final-exam/retake",
        json={**retake_body, "expected_version": failed["version"] + 1},
        headers=headers,
    )
    assert stale.status_code == 409

    response = client.post(
        "/api/v1/quiz-submissions/final-exam/retake",
        json={**retake_body, "expected_version": failed["version"]},
        headers=headers,
    )
    assert response.status_code == 200
    retaken = response.json()["data"]
    assert retaken["is_passed"] is True

    progress = client.get(f"/api/v1/courses/{course_id}/progress", headers=headers).json()["data"]
    assert progress["enrollment"]["is_passed"] is True
    assert progress["certificate_eligible"] is True

    closed = client.post(
        "/api/v1/quiz-submissions/final-exam/retake",
        json={**retake_body, "expected_version": retaken["version"]},
        headers=headers,
    )
    assert closed.status_code == 403


def test_course_with_unpublished_gap_is_usable(client, catalog, learner):
    video, text, code = make_lessons("video", "text", "code")
    # Step 3 is unpublished, so the published catalog jumps from 2 to 4
    code = code.model_copy(update={"step_number": 4})
    course_id = catalog.add_course([video, text, code])
    headers = bearer(learner)

    assert client.post(f"/api/v1/courses/{course_id}/enroll", headers=headers).status_code == 200
    client.post(f"/api/v1/courses/{course_id}/lessons/{video.id}/complete", headers=headers)
    client.post(f"/api/v1/courses/{course_id}/lessons/{text.id}/complete", headers=headers)
    done = client.post(f"/api/v1/courses/{course_id}/lessons/{code.id}/complete", headers=headers)
    assert done.status_code == 200
    assert done.json()["data"]["is_completed"] is True
