# tests/conftest.py
from __future__ import annotations

import os
from collections.abc import Callable, Generator, Iterator
from datetime import datetime
from pathlib import Path

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("IMAGE_REAPER_ENABLED", "false")

from marginalia.api.v1.dependencies import get_images_path
from marginalia.core.security import Principal, Role, create_access_token
from marginalia.db.session import Base
from marginalia.db.session import get_db as app_get_session
from marginalia.main import app as fastapi_app
from marginalia.models import Answer, AnswerState, AnswerVersion, Question, User

TEST_DB_URL = "sqlite://"

USER_ID = 1001
OTHER_ID = 1002
MEMBER_ID = 2001
ADMIN_ID = 3001


@pytest.fixture(scope="session")
def engine() -> Generator[Engine, None, None]:
    engine = create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture()
def db_session(engine: Engine, session_factory: sessionmaker[Session]) -> Iterator[Session]:
    session = session_factory()
    try:
        yield session
    finally:
        session.close()

        # Services commit, so every test starts from empty tables.
        with engine.begin() as cleanup_conn:
            for table in reversed(Base.metadata.sorted_tables):
                cleanup_conn.execute(table.delete())


@pytest.fixture(scope="session")
def app() -> FastAPI:
    return fastapi_app


@pytest.fixture()
def images_dir(tmp_path: Path) -> Path:
    path = tmp_path / "images"
    path.mkdir()
    return path


@pytest.fixture(autouse=True)
def override_dependencies(app: FastAPI, db_session: Session, images_dir: Path) -> Iterator[None]:
    def _get_session_override() -> Generator[Session, None, None]:
        yield db_session

    app.dependency_overrides[app_get_session] = _get_session_override
    app.dependency_overrides[get_images_path] = lambda: str(images_dir)
    try:
        yield
    finally:
        app.dependency_overrides.pop(app_get_session, None)
        app.dependency_overrides.pop(get_images_path, None)


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client


@pytest.fixture()
def user_principal() -> Principal:
    return Principal(id=USER_ID, username="alice")


@pytest.fixture()
def other_principal() -> Principal:
    return Principal(id=OTHER_ID, username="bob")


@pytest.fixture()
def member_principal() -> Principal:
    return Principal(id=MEMBER_ID, username="carol", role=Role.MEMBER)


@pytest.fixture()
def admin_principal() -> Principal:
    return Principal(id=ADMIN_ID, username="dave", role=Role.ADMIN)


def auth_headers(principal: Principal) -> dict[str, str]:
    """Return authorization headers carrying a token for ``principal``."""
    token = create_access_token(principal.id, principal.username, principal.role)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def user_headers(user_principal: Principal) -> dict[str, str]:
    return auth_headers(user_principal)


@pytest.fixture()
def other_headers(other_principal: Principal) -> dict[str, str]:
    return auth_headers(other_principal)


@pytest.fixture()
def member_headers(member_principal: Principal) -> dict[str, str]:
    return auth_headers(member_principal)


@pytest.fixture()
def admin_headers(admin_principal: Principal) -> dict[str, str]:
    return auth_headers(admin_principal)


@pytest.fixture()
def make_user(db_session: Session) -> Callable[..., User]:
    """Return a factory persisting users with a predictable alias."""

    def _make(user_id: int, username: str, alias: str | None = None, **kwargs) -> User:
        user = User(id=user_id, username=username, alias=alias or f"Test_{user_id}", **kwargs)
        db_session.add(user)
        db_session.commit()
        return user

    return _make


@pytest.fixture()
def alice(make_user: Callable[..., User]) -> User:
    return make_user(USER_ID, "alice")


@pytest.fixture()
def bob(make_user: Callable[..., User]) -> User:
    return make_user(OTHER_ID, "bob")


@pytest.fixture()
def make_question(db_session: Session) -> Callable[..., Question]:
    def _make(document: str = "doc-1", start: int = 0, end: int = 10) -> Question:
        question = Question(document=document, start=start, end=end)
        db_session.add(question)
        db_session.commit()
        return question

    return _make


@pytest.fixture()
def question(make_question: Callable[..., Question]) -> Question:
    return make_question()


@pytest.fixture()
def make_answer(db_session: Session) -> Callable[..., Answer]:
    """Return a factory persisting an answer with a single version."""

    def _make(
        question: Question,
        user: User,
        content: str = "an answer",
        parent: Answer | None = None,
        anonymous: bool = False,
        state: AnswerState = AnswerState.VISIBLE,
        created_at: datetime | None = None,
    ) -> Answer:
        answer = Answer(
            question_id=question.id,
            parent_id=parent.id if parent else None,
            user_id=user.id,
            anonymous=anonymous,
            state=state,
        )
        if created_at is not None:
            answer.created_at = created_at
        answer.versions.append(AnswerVersion(content=content, editor_id=user.id))
        db_session.add(answer)
        db_session.commit()
        return answer

    return _make


@pytest.fixture()
def add_version(db_session: Session) -> Callable[[Answer, str], AnswerVersion]:
    def _add(answer: Answer, content: str) -> AnswerVersion:
        version = AnswerVersion(answer_id=answer.id, content=content, editor_id=answer.user_id)
        db_session.add(version)
        db_session.commit()
        return version

    return _add
