"""
Shared fixtures. The environment is set before any backend module is
imported because settings, the engine and rate limits are read at import.
"""
import os
import tempfile

_DB_DIR = tempfile.mkdtemp(prefix="writing-companion-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_DB_DIR, 'test.db')}"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["DEBUG"] = "true"
os.environ["LLM_API_KEY"] = ""
os.environ["RATE_LIMIT_DEFAULT"] = "1000/minute"
os.environ["RATE_LIMIT_SUBMIT"] = "1000/minute"
os.environ["RATE_LIMIT_REVIEW"] = "1000/minute"

import pytest

from constants import Role
from core.jwt_handler import create_identity_token
from db.base import Base
from db.session import SessionLocal, engine, init_db
from models.user import User
from services.result_cache import analysis_cache


@pytest.fixture(autouse=True)
def _fresh_database():
    init_db()
    analysis_cache.clear()
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


def _make_user(db, name, role, is_active=True):
    user = User(name=name, email=f"{name.lower()}@example.com", role=role.value, is_active=is_active)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def users(db):
    """One active user per role, plus a second editor and an inactive editor."""
    return {
        "student": _make_user(db, "Stella", Role.STUDENT),
        "other_student": _make_user(db, "Omar", Role.STUDENT),
        "editor": _make_user(db, "Edith", Role.EDITOR),
        "other_editor": _make_user(db, "Evan", Role.EDITOR),
        "inactive_editor": _make_user(db, "Ines", Role.EDITOR, is_active=False),
        "reviewer": _make_user(db, "Rita", Role.REVIEWER),
        "admin": _make_user(db, "Ada", Role.ADMIN),
        "operations": _make_user(db, "Otto", Role.OPERATIONS),
        "sales": _make_user(db, "Sam", Role.SALES),
    }


def identity(user):
    """The dict shape dependencies.get_current_user produces."""
    return {"email": user.email, "name": user.name, "user_id": user.id, "role": user.role}


def token_for(user):
    return create_identity_token(user.id, user.email, user.role, user.name)


@pytest.fixture
def as_user():
    return identity


@pytest.fixture
def auth_headers():
    return lambda user: {"Authorization": f"Bearer {token_for(user)}"}


STORY = (
    "Maria walked to the old lighthouse at the edge of town. The wind was cold and "
    "the sea was loud.\n\n"
    "Maria said that she had seen a light in the tower. Tom asked if she was sure.\n\n"
    "They went up the stairs together. Tom looked out of the window and saw a ship.\n\n"
    "Maria said nothing for a long time. Tom said the ship was coming closer.\n\n"
    "The storm passed. Finally the ship reached the harbor and the town was safe."
)


@pytest.fixture
def story():
    return STORY
