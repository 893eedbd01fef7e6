import sys
import os
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

import uuid
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from fastapi.testclient import TestClient

from courseflow.core.config import settings
from courseflow.core.constants import CourseStatusEnum, MaterialTypeEnum, RoleEnum
from courseflow.core.database import Base, get_db
from courseflow.crud.user import user as crud_user
from courseflow.models import registry  # noqa: F401
from courseflow.models.course import Course
from courseflow.models.enrollment import Enrollment
from courseflow.models.material import Material
from courseflow.schemas.user import UserCreate
from courseflow.utils import deps as deps_utils

test_db_url = settings.TEST_DATABASE_URL or "sqlite:///./test.db"


@pytest.fixture(scope="session")
def database_engine():
    if test_db_url.startswith("sqlite"):
        engine = create_engine(test_db_url, connect_args={"check_same_thread": False})
    else:
        engine = create_engine(test_db_url)
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()
    if test_db_url == "sqlite:///./test.db" and os.path.exists("./test.db"):
        os.remove("./test.db")


@pytest.fixture(scope="function")
def db_session(database_engine):
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=database_engine)
    db = SessionLocal()
    try:
        yield db
    finally:
        db.rollback()
        db.close()


@pytest.fixture(autouse=True)
def _storage_settings(monkeypatch, tmp_path):
    # every test starts on local disk with no CDN credentials
    monkeypatch.setattr(settings, "USE_LOCAL_STORAGE", True)
    monkeypatch.setattr(settings, "UPLOAD_DIR", str(tmp_path / "uploads"))
    monkeypatch.setattr(settings, "LOCAL_BASE_URL", "http://testserver")
    monkeypatch.setattr(settings, "AWS_ACCESS_KEY_ID", None)
    monkeypatch.setattr(settings, "AWS_SECRET_ACCESS_KEY", None)
    monkeypatch.setattr(settings, "S3_BUCKET_NAME", None)
    monkeypatch.setattr(settings, "REDIS_URL", None)
    monkeypatch.setattr(settings, "SENDGRID_API_KEY", None)


@pytest.fixture(scope="function")
def client(db_session):
    # Re-initialize the app for each test function to ensure a clean state
    from importlib import reload
    import main
    reload(main)
    main.app.dependency_overrides[get_db] = lambda: db_session
    main.app.dependency_overrides[deps_utils.get_db] = lambda: db_session
    main.app.dependency_overrides[deps_utils.get_transactional_db] = lambda: db_session
    with TestClient(main.app) as test_client:
        yield test_client
    main.app.dependency_overrides.clear()


@pytest.fixture
def user_factory(db_session):
    def _user_factory(role: RoleEnum = RoleEnum.STUDENT, password: str = "testpass123", email: str = None):
        email = email or f"{role.value}-{uuid.uuid4().hex[:10]}@example.com"
        return crud_user.create(
            db_session,
            obj_in=UserCreate(full_name=f"Test {role.value}", email=email, password=password, role=role),
        )
    return _user_factory


@pytest.fixture
def admin(user_factory):
    return user_factory(RoleEnum.ADMIN)


@pytest.fixture
def tutor(user_factory):
    return user_factory(RoleEnum.TUTOR)


@pytest.fixture
def student(user_factory):
    return user_factory(RoleEnum.STUDENT)


@pytest.fixture
def course_factory(db_session):
    def _course_factory(creator, status=CourseStatusEnum.PUBLISHED, is_public=True, **kwargs):
        course = Course(
            title=kwargs.pop("title", f"Course {uuid.uuid4().hex[:6]}"),
            creator_id=creator.id,
            status=status,
            is_public=is_public,
            **kwargs,
        )
        db_session.add(course)
        db_session.commit()
        db_session.refresh(course)
        return course
    return _course_factory


@pytest.fixture
def material_factory(db_session):
    def _material_factory(course, material_type=MaterialTypeEnum.TEXT, **kwargs):
        material = Material(
            title=kwargs.pop("title", f"Material {uuid.uuid4().hex[:6]}"),
            type=material_type,
            course_id=course.id,
            author_id=course.creator_id,
            **kwargs,
        )
        db_session.add(material)
        db_session.commit()
        db_session.refresh(material)
        return material
    return _material_factory


@pytest.fixture
def enroll(db_session):
    def _enroll(student, course, **kwargs):
        enrollment = Enrollment(student_id=student.id, course_id=course.id, **kwargs)
        db_session.add(enrollment)
        db_session.commit()
        db_session.refresh(enrollment)
        return enrollment
    return _enroll
