"""
Shared fixtures: in-memory SQLite database, profiles, a fake LLM client and
a TestClient whose evaluation queue only records enqueued solution ids.
"""
import json
import os
from types import SimpleNamespace

# must be set before app.db.session builds its engine
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("POLZA_AI_API_KEY", "test-key")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.db.base import Base
from app.db.session import get_db
from app.main import app
from app.models.profile import Profile
from app.models.task_solution import TaskSolution
from app.services import solution_service

TEST_DATABASE_URL = "sqlite://"

GOOD_LLM_RESPONSE = json.dumps(
    {
        "isCorrect": True,
        "feedback": "Хорошо разобран сценарий онбординга, не хватает метрик успеха.",
        "metrics": {
            "understanding": 90,
            "solution_quality": 80,
            "argumentation": 70,
            "structure": 60,
        },
    },
    ensure_ascii=False,
)


class FakeLLM:
    """Stands in for openai.OpenAI: records calls, returns canned text or raises."""

    def __init__(self, content: str | None = GOOD_LLM_RESPONSE, error: Exception | None = None):
        self.content = content
        self.error = error
        self.calls: list[dict] = []
        self.chat = SimpleNamespace(completions=SimpleNamespace(create=self._create))

    def _create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        message = SimpleNamespace(content=self.content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


@pytest.fixture(scope="function")
def engine():
    engine = create_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db_session(session_factory):
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


def _make_profile(db, **kwargs) -> Profile:
    profile = Profile(**kwargs)
    db.add(profile)
    db.commit()
    db.refresh(profile)
    return profile


@pytest.fixture
def free_user(db_session):
    return _make_profile(db_session, auth_uid="auth-free", email="free@test.com", username="free")


@pytest.fixture
def pro_user(db_session):
    return _make_profile(
        db_session, auth_uid="auth-pro", email="pro@test.com", username="pro", is_pro=True
    )


@pytest.fixture
def mentor(db_session):
    return _make_profile(
        db_session,
        auth_uid="auth-mentor",
        email="mentor@test.com",
        username="mentor",
        is_pro=True,
        is_mentor=True,
    )


@pytest.fixture
def make_solution(db_session):
    def _make(
        user,
        *,
        task_id=1,
        status="pending",
        description="Переделал бы онбординг",
        task_description="Улучшите онбординг",
        **kwargs,
    ):
        solution = TaskSolution(
            task_id=task_id,
            user_id=user.id,
            description=description,
            task_description=task_description,
            status=status,
            **kwargs,
        )
        db_session.add(solution)
        db_session.commit()
        db_session.refresh(solution)
        return solution

    return _make


@pytest.fixture
def enqueued(monkeypatch):
    """Replace the RQ enqueue with a recorder."""
    calls: list[int] = []

    def fake_enqueue(solution_id: int) -> str:
        calls.append(solution_id)
        return f"job-{solution_id}"

    monkeypatch.setattr(solution_service, "enqueue_evaluation_task", fake_enqueue)
    return calls


@pytest.fixture
def client(db_session, enqueued):
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
