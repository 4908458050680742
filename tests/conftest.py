import os

# Point the app at a private in-memory database before `kiosk` is imported.
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.pop("ADMIN_USERNAME", None)
os.environ.pop("ADMIN_PASSWORD", None)

import pytest
from sqlmodel import SQLModel, Session

from kiosk import models
from kiosk.database import engine
from kiosk.security import ROLE_ADMIN, ROLE_USER, create_token
from kiosk.services import AuthService


@pytest.fixture(autouse=True)
def reset_db():
    """Start every test from empty tables."""
    SQLModel.metadata.drop_all(engine)
    SQLModel.metadata.create_all(engine)
    yield


def _make_user(username: str, authorities) -> dict:
    with Session(engine) as session:
        user = AuthService(session).register(username, "secret", authorities)
        token = create_token(user.id, user.username, user.authority_list())
        return {"id": user.id, "username": user.username,
                "headers": {"Authorization": f"Bearer {token}"}}


@pytest.fixture()
def alice():
    return _make_user("alice", [ROLE_USER])


@pytest.fixture()
def bob():
    return _make_user("bob", [ROLE_USER])


@pytest.fixture()
def admin():
    return _make_user("admin", [ROLE_USER, ROLE_ADMIN])


@pytest.fixture()
def session():
    with Session(engine) as s:
        yield s


@pytest.fixture()
def make_card(session):
    def _make(number: str, user_id: int, card_type=None) -> models.Card:
        card = models.Card(number=number, user_id=user_id, card_type=card_type)
        session.add(card)
        session.commit()
        session.refresh(card)
        return card
    return _make
