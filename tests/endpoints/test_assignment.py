from datetime import datetime, timedelta, timezone

from fastapi.testclient import TestClient

from courseflow.core.constants import SubmissionStatusEnum
from courseflow.models.enrollment import Enrollment
from tests.helpers.asserts import api_call, assert_error, auth_headers


def _create_assignment(client, tutor, course_id, **extra):
    payload = {"title": "Essay", "max_score": 10, **extra}
    return api_call(
        client, "POST", f"/courses/{course_id}/assignments", headers=auth_headers(tutor), json=payload
    ).json()["data"]


def test_submit_and_grade(client: TestClient, db_session, tutor, student, course_factory, material_factory, enroll):
    course = course_factory(tutor)
    material_factory(course)
    enroll(student, course)
    assignment = _create_assignment(client, tutor, course.id)

    response = api_call(
        client, "POST", f"/assignments/{assignment['id']}/submit",
        headers=auth_headers(student), json={"content": "My essay"},
    )
    assert response.status_code == 201
    result = response.json()["data"]
    assert result["submission"]["status"] == SubmissionStatusEnum.SUBMITTED.value
    assert (result["completed_items"], result["total_items"], result["progress_percentage"]) == (1, 2, 50)

    duplicate = client.post(
        f"/assignments/{assignment['id']}/submit", headers=auth_headers(student), json={"content": "Again"}
    )
    assert_error(duplicate, 409, "CONFLICT")

    submission_id = result["submission"]["id"]
    assert_error(
        client.post(f"/submissions/{submission_id}/grade", headers=auth_headers(student), json={"score": 10}),
        403, "FORBIDDEN",
    )
    assert_error(
        client.post(f"/submissions/{submission_id}/grade", headers=auth_headers(tutor), json={"score": 11}),
        422, "VALIDATION_FAILED",
    )
    graded = api_call(
        client, "POST", f"/submissions/{submission_id}/grade",
        headers=auth_headers(tutor), json={"score": 8, "feedback": "Good"},
    ).json()["data"]
    assert graded["status"] == SubmissionStatusEnum.GRADED.value
    assert graded["score"] == 8
    assert graded["graded_at"] is not None

    mine = api_call(client, "GET", f"/assignments/{assignment['id']}/my-submission", headers=auth_headers(student)).json()["data"]
    assert mine["id"] == submission_id

    listed = api_call(client, "GET", f"/courses/{course.id}/assignments", headers=auth_headers(student)).json()["data"]
    assert listed[0]["my_submission"]["id"] == submission_id
    assert listed[0]["submission_count"] == 1


def test_submit_requires_enrollment(client: TestClient, tutor, student, course_factory):
    course = course_factory(tutor)
    assignment = _create_assignment(client, tutor, course.id)
    response = client.post(f"/assignments/{assignment['id']}/submit", headers=auth_headers(student), json={"content": "x"})
    assert_error(response, 403, "FORBIDDEN")


def test_submit_after_due_date_is_rejected(client: TestClient, tutor, student, course_factory, enroll):
    course = course_factory(tutor)
    enroll(student, course)
    due = (datetime.now(timezone.utc) - timedelta(days=1)).isoformat()
    assignment = _create_assignment(client, tutor, course.id, due_date=due)

    response = client.post(f"/assignments/{assignment['id']}/submit", headers=auth_headers(student), json={"content": "late"})
    assert_error(response, 409, "CONFLICT")


def test_new_assignment_lowers_progress(client: TestClient, db_session, tutor, student, course_factory, material_factory, enroll):
    course = course_factory(tutor)
    material = material_factory(course)
    enroll(student, course)
    api_call(client, "POST", f"/materials/{material.id}/complete", headers=auth_headers(student))

    assignment = _create_assignment(client, tutor, course.id)
    db_session.expire_all()
    enrollment = db_session.query(Enrollment).filter(Enrollment.student_id == student.id).one()
    assert enrollment.progress_percentage == 50

    deleted = api_call(client, "DELETE", f"/assignments/{assignment['id']}", headers=auth_headers(tutor)).json()["data"]
    assert deleted == {"deleted_files": 0}
    db_session.expire_all()
    assert db_session.get(Enrollment, enrollment.id).progress_percentage == 100
