import os

# Must be set before stepwright.core.config is imported
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from stepwright.core.dependencies import get_current_user, get_code_generator, get_script_writer
from stepwright.core.errors import CodeGenerationError
from stepwright.db.base import Base
from stepwright.db.deps import get_db
from stepwright.db.init_db import init_db
from stepwright.main import app
from stepwright.models.fixture import Fixture
from stepwright.models.project import Project
from stepwright.models.test_case import TestCase
from stepwright.models.test_step import TestStep
from stepwright.models.user import User
from stepwright.services.code_generator import GeneratedStep, analyze_code
from stepwright.services.script_writer import ScriptWriter
from stepwright.services.version_recorder import VersionRecorder, get_version_recorder


class FakeClock:
    def __init__(self, start=1000.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class FakeCodeGenerator:
    """Deterministic stand-in for the LLM router."""

    def __init__(self):
        self.fail = False
        self.calls = []

    def generate_code_from_step(self, action, data=None, expected=None):
        self.calls.append((action, data, expected))
        if self.fail:
            raise CodeGenerationError("model unavailable")
        slug = (action or "step").lower().replace(" ", "-")
        return GeneratedStep(
            playwright_code=f"await page.click('#{slug}');",
            action=action,
            expected=expected,
            selector=f"#{slug}",
        )

    def analyze_code(self, code):
        return analyze_code(code)


@pytest.fixture()
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture()
def db(engine):
    Session = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = Session()
    yield session
    session.close()


@pytest.fixture()
def user(db):
    user = User(email="qa@example.com")
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture()
def other_user(db):
    user = User(email="someone-else@example.com")
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture()
def project_root(tmp_path):
    return tmp_path / "playwright"


@pytest.fixture()
def project(db, user, project_root):
    project = Project(
        name="Shop",
        url="http://localhost:3000",
        playwright_project_path=str(project_root),
        user_id=user.id,
    )
    db.add(project)
    db.commit()
    db.refresh(project)
    return project


@pytest.fixture()
def login_case(db, project, user):
    case = TestCase(
        project_id=project.id,
        name="Login Test",
        description="User can sign in",
        tags="smoke, auth",
        created_by=user.id,
    )
    db.add(case)
    db.commit()
    db.refresh(case)
    return case


@pytest.fixture()
def make_step(db):
    def _make_step(case, order, action, **fields):
        step = TestStep(test_case_id=case.id, order=order, action=action, **fields)
        db.add(step)
        db.commit()
        db.refresh(step)
        return step
    return _make_step


@pytest.fixture()
def login_fixture(db, project):
    fixture = Fixture(
        project_id=project.id,
        name="Logged In User",
        type="setup",
        content='{"exportName": "loggedIn", "path": "../fixtures/logged-in", "filename": "loggedIn.ts"}',
    )
    db.add(fixture)
    db.commit()
    db.refresh(fixture)
    return fixture


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def recorder(clock):
    return VersionRecorder(debounce_seconds=30, clock=clock)


@pytest.fixture()
def generator():
    return FakeCodeGenerator()


@pytest.fixture()
def writer():
    return ScriptWriter()


@pytest.fixture()
def client(db, user, generator, recorder, writer):
    app.dependency_overrides[get_db] = lambda: db
    app.dependency_overrides[get_current_user] = lambda: user
    app.dependency_overrides[get_code_generator] = lambda: generator
    app.dependency_overrides[get_version_recorder] = lambda: recorder
    app.dependency_overrides[get_script_writer] = lambda: writer

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
