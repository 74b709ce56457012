import os

# Point the module-level engine at a throwaway database before the package
# is imported; tests use their own engine through dependency overrides.
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ.pop("GEMINI_API_KEY", None)
os.environ.pop("API_KEY", None)

from typing import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from smartschool import models  # noqa: F401
from smartschool.config import Settings, get_settings
from smartschool.database import Base, get_db
from smartschool.main import app
from smartschool.records import SUBJECTS, SemesterResult, StudentRecord
from smartschool.services.gateway import PersistenceGateway

TEST_SETTINGS = Settings(
    database_url="sqlite://",
    school_name="Test School",
    session_year="2025-2026",
    gemini_api_key=None,
)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db_session(session_factory) -> Generator:
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def gateway(db_session) -> PersistenceGateway:
    return PersistenceGateway(db_session)


@pytest.fixture
def client(session_factory) -> Generator:
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_settings] = lambda: TEST_SETTINGS
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def build_student(sem1=None, sem2=None, **fields) -> StudentRecord:
    """
    Student with optional uniform marks: sem1=80 gives every subject 80 in
    semester 1; a dict gives only those subjects.
    """
    defaults = {"serial_no": "101", "name": "Ahmed Khan", "grade": "5"}
    defaults.update(fields)
    record = StudentRecord.new(**defaults)
    for semester, marks in ((1, sem1), (2, sem2)):
        if marks is None:
            continue
        if isinstance(marks, int):
            marks = {subject: marks for subject in SUBJECTS}
        record = record.with_result(SemesterResult(semester=semester, marks=marks))
    return record


@pytest.fixture
def make_student():
    return build_student
