from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from courseflow.core.constants import CourseStatusEnum, EnrollmentStatusEnum
from courseflow.models.enrollment import Enrollment
from courseflow.models.progress import Progress
from tests.helpers.asserts import api_call, assert_error, auth_headers


def _create_material(client, headers, course_id, title, **extra):
    payload = {"title": title, "type": "TEXT", "content": f"{title} body", **extra}
    return api_call(client, "POST", f"/courses/{course_id}/materials", headers=headers, json=payload).json()["data"]


def _enrollment(db_session: Session, student, course_id) -> Enrollment:
    db_session.expire_all()
    return (
        db_session.query(Enrollment)
        .filter(Enrollment.student_id == student.id, Enrollment.course_id == course_id)
        .one()
    )


def test_full_progress_flow(client: TestClient, db_session: Session, tutor, student, course_factory):
    tutor_headers = auth_headers(tutor)
    student_headers = auth_headers(student)
    course = course_factory(tutor)
    first = _create_material(client, tutor_headers, course.id, "Lesson 1")
    second = _create_material(client, tutor_headers, course.id, "Lesson 2")

    print("[1] enrolling")
    enrolled = api_call(client, "POST", f"/courses/{course.id}/enroll", headers=student_headers).json()["data"]
    assert enrolled["status"] == EnrollmentStatusEnum.ACTIVE.value
    assert enrolled["progress_percentage"] == 0

    print("[2] repeated views keep a single progress row")
    for _ in range(3):
        detail = api_call(client, "GET", f"/materials/{first['id']}", headers=student_headers).json()["data"]
    assert detail["time_spent"] == 3
    assert detail["is_completed"] is False
    rows = db_session.query(Progress).filter(
        Progress.student_id == student.id, Progress.material_id == first["id"]
    ).all()
    assert len(rows) == 1

    print("[3] completing is idempotent")
    result = api_call(client, "POST", f"/materials/{first['id']}/complete", headers=student_headers).json()["data"]
    assert result == {"progress_percentage": 50, "is_completed": True, "total_items": 2, "completed_items": 1}
    again = api_call(client, "POST", f"/materials/{first['id']}/complete", headers=student_headers).json()["data"]
    assert again["progress_percentage"] == 50
    assert _enrollment(db_session, student, course.id).status == EnrollmentStatusEnum.ACTIVE

    print("[4] finishing the course completes the enrollment once")
    result = api_call(client, "POST", f"/materials/{second['id']}/complete", headers=student_headers).json()["data"]
    assert result["progress_percentage"] == 100
    enrollment = _enrollment(db_session, student, course.id)
    assert enrollment.status == EnrollmentStatusEnum.COMPLETED
    completed_at = enrollment.completed_at
    assert completed_at is not None

    api_call(client, "POST", f"/materials/{second['id']}/complete", headers=student_headers)
    assert _enrollment(db_session, student, course.id).completed_at == completed_at

    print("[5] deleting a completed material keeps the course at 100%")
    api_call(client, "DELETE", f"/materials/{second['id']}", headers=tutor_headers)
    progress = api_call(client, "GET", f"/courses/{course.id}/progress", headers=student_headers).json()["data"]
    assert progress["stats"]["total_materials"] == 1
    assert progress["stats"]["completed_materials"] == 1
    assert progress["stats"]["progress_percentage"] == 100
    assert [m["material_id"] for m in progress["materials"]] == [first["id"]]
    assert progress["total_time_spent"] == 3
    detached = db_session.query(Progress).filter(
        Progress.student_id == student.id, Progress.course_id == course.id, Progress.material_id.is_(None)
    ).count()
    assert detached == 1

    print("[6] new content lowers the percentage but completion sticks")
    _create_material(client, tutor_headers, course.id, "Lesson 3")
    enrollment = _enrollment(db_session, student, course.id)
    assert enrollment.progress_percentage == 50
    assert enrollment.status == EnrollmentStatusEnum.COMPLETED
    assert enrollment.completed_at == completed_at


def test_viewing_requires_enrollment(client: TestClient, tutor, student, course_factory, material_factory):
    course = course_factory(tutor)
    material = material_factory(course)

    assert_error(client.get(f"/materials/{material.id}", headers=auth_headers(student)), 403, "FORBIDDEN")
    assert_error(client.post(f"/materials/{material.id}/complete", headers=auth_headers(student)), 403, "FORBIDDEN")


def test_owner_preview_records_no_progress(client: TestClient, db_session, tutor, course_factory, material_factory):
    course = course_factory(tutor)
    material = material_factory(course, file_url=None)

    detail = api_call(client, "GET", f"/materials/{material.id}", headers=auth_headers(tutor)).json()["data"]
    assert detail["id"] == material.id
    assert db_session.query(Progress).filter(Progress.material_id == material.id).count() == 0


def test_enrollment_rules(client: TestClient, db_session, tutor, student, course_factory):
    headers = auth_headers(student)
    draft = course_factory(tutor, status=CourseStatusEnum.DRAFT)
    private = course_factory(tutor, is_public=False)
    course = course_factory(tutor)

    assert_error(client.post(f"/courses/{draft.id}/enroll", headers=headers), 409, "CONFLICT")
    assert_error(client.post(f"/courses/{private.id}/enroll", headers=headers), 409, "CONFLICT")
    assert_error(client.post("/courses/99999999/enroll", headers=headers), 404, "NOT_FOUND")

    api_call(client, "POST", f"/courses/{course.id}/enroll", headers=headers)
    assert_error(client.post(f"/courses/{course.id}/enroll", headers=headers), 409, "CONFLICT")

    mine = api_call(client, "GET", "/enrollments/me", headers=headers).json()["data"]
    assert [e["course"]["id"] for e in mine] == [course.id]


def test_student_cannot_set_own_enrollment_status(
    client: TestClient, db_session, tutor, student, course_factory, material_factory
):
    headers = auth_headers(student)
    course = course_factory(tutor)
    material_factory(course)
    material_factory(course)
    enrollment_id = api_call(client, "POST", f"/courses/{course.id}/enroll", headers=headers).json()["data"]["id"]

    response = client.patch(
        f"/enrollments/{enrollment_id}/status", headers=headers, json={"status": "COMPLETED"}
    )
    assert_error(response, 403, "FORBIDDEN")

    enrollment = _enrollment(db_session, student, course.id)
    assert enrollment.status == EnrollmentStatusEnum.ACTIVE
    assert enrollment.completed_at is None
    assert_error(client.delete(f"/courses/{course.id}", headers=auth_headers(tutor)), 409, "CONFLICT")


def test_course_owner_can_complete_enrollment(client: TestClient, db_session, tutor, student, course_factory, enroll):
    course = course_factory(tutor)
    enrollment = enroll(student, course)

    updated = api_call(
        client, "PATCH", f"/enrollments/{enrollment.id}/status", headers=auth_headers(tutor),
        json={"status": "COMPLETED"},
    ).json()["data"]
    assert updated["status"] == EnrollmentStatusEnum.COMPLETED.value
    assert updated["completed_at"] is not None


def test_completed_enrollment_cannot_be_reopened(client: TestClient, tutor, student, course_factory, enroll):
    course = course_factory(tutor)
    enrollment = enroll(student, course, status=EnrollmentStatusEnum.COMPLETED, progress_percentage=100)

    response = client.patch(
        f"/enrollments/{enrollment.id}/status", headers=auth_headers(tutor), json={"status": "ACTIVE"}
    )
    assert_error(response, 409, "CONFLICT")


def test_cancel_keeps_progress_for_reenrolment(
    client: TestClient, db_session, tutor, student, course_factory, material_factory
):
    headers = auth_headers(student)
    course = course_factory(tutor)
    material = material_factory(course)
    material_factory(course)

    enrollment_id = api_call(client, "POST", f"/courses/{course.id}/enroll", headers=headers).json()["data"]["id"]
    api_call(client, "POST", f"/materials/{material.id}/complete", headers=headers)

    response = api_call(
        client, "PATCH", f"/enrollments/{enrollment_id}/status", headers=headers, json={"status": "CANCELLED"}
    )
    assert response.json()["data"] is None
    db_session.expire_all()
    assert db_session.get(Enrollment, enrollment_id) is None

    again = api_call(client, "POST", f"/courses/{course.id}/enroll", headers=headers).json()["data"]
    assert again["progress_percentage"] == 0
    progress = api_call(client, "GET", f"/courses/{course.id}/progress", headers=headers).json()["data"]
    assert progress["stats"]["completed_materials"] == 1
    assert progress["stats"]["progress_percentage"] == 50


def test_students_roster_for_owner_only(client: TestClient, tutor, student, course_factory, material_factory, enroll):
    course = course_factory(tutor)
    material_factory(course)
    enroll(student, course)

    assert_error(client.get(f"/courses/{course.id}/students", headers=auth_headers(student)), 403, "FORBIDDEN")
    roster = api_call(client, "GET", f"/courses/{course.id}/students", headers=auth_headers(tutor)).json()["data"]
    assert [s["student_id"] for s in roster] == [student.id]
    assert roster[0]["completed_materials"] == 0


def test_module_with_materials_cannot_be_deleted(client: TestClient, tutor, course_factory):
    headers = auth_headers(tutor)
    course = course_factory(tutor)

    module = api_call(client, "POST", f"/courses/{course.id}/modules", headers=headers, json={"title": "Week 1"}).json()["data"]
    later = api_call(client, "POST", f"/courses/{course.id}/modules", headers=headers, json={"title": "Week 2"}).json()["data"]
    assert (module["order_index"], later["order_index"]) == (0, 1)

    material = _create_material(client, headers, course.id, "Reading", module_id=module["id"])
    assert_error(client.delete(f"/modules/{module['id']}", headers=headers), 409, "CONFLICT")

    api_call(client, "DELETE", f"/materials/{material['id']}", headers=headers)
    api_call(client, "DELETE", f"/modules/{module['id']}", headers=headers)

    remaining = api_call(client, "GET", f"/courses/{course.id}/modules", headers=headers).json()["data"]
    assert [m["id"] for m in remaining] == [later["id"]]


def test_material_module_must_belong_to_course(client: TestClient, tutor, course_factory):
    headers = auth_headers(tutor)
    course = course_factory(tutor)
    other = course_factory(tutor)
    foreign = api_call(client, "POST", f"/courses/{other.id}/modules", headers=headers, json={"title": "Other"}).json()["data"]

    response = client.post(
        f"/courses/{course.id}/materials", headers=headers,
        json={"title": "Misplaced", "type": "TEXT", "module_id": foreign["id"]},
    )
    assert_error(response, 422, "VALIDATION_FAILED")


def test_link_material_requires_url(client: TestClient, tutor, course_factory):
    course = course_factory(tutor)
    response = client.post(
        f"/courses/{course.id}/materials", headers=auth_headers(tutor), json={"title": "Link", "type": "LINK"}
    )
    body = assert_error(response, 422, "VALIDATION_FAILED")
    assert "validation_errors" in body["error"]["details"]


def test_modules_update_and_reorder(client: TestClient, tutor, student, course_factory):
    course = course_factory(tutor)
    headers = auth_headers(tutor)
    first, second, third = (
        api_call(client, "POST", f"/courses/{course.id}/modules", headers=headers, json={"title": title}).json()["data"]
        for title in ("Intro", "Basics", "Advanced")
    )

    renamed = api_call(
        client, "PUT", f"/modules/{second['id']}", headers=headers, json={"title": "Foundations"}
    ).json()["data"]
    assert renamed["title"] == "Foundations"
    assert renamed["order_index"] == 1

    moved = api_call(
        client, "PATCH", f"/modules/{third['id']}/reorder", headers=headers, json={"order_index": 0}
    ).json()["data"]
    assert moved["order_index"] == 0

    # equal order_index falls back to creation order
    listed = api_call(client, "GET", f"/courses/{course.id}/modules", headers=auth_headers(student)).json()["data"]
    assert [m["id"] for m in listed] == [first["id"], third["id"], second["id"]]

    assert_error(
        client.patch(f"/modules/{first['id']}/reorder", headers=auth_headers(student), json={"order_index": 3}),
        403, "FORBIDDEN",
    )
