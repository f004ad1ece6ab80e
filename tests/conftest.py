"""Shared test fixtures for the Linkshelf test suite.

Every test runs against a fresh in-memory SQLite database: the schema is
dropped and recreated before each test, so no state leaks between tests.
"""

import os

# Use an in-memory database and readable logs before any app imports.
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ENVIRONMENT"] = "development"
os.environ["LOG_FORMAT"] = "text"

from typing import Optional

import pytest
from fastapi.testclient import TestClient

from linkshelf.database import Base, SessionLocal, engine, get_db
from linkshelf.main import app
from linkshelf.models import Collection, CollectionMember, Link, User
from linkshelf.repositories import CollectionRepository, LinkRepository, UserRepository


@pytest.fixture(autouse=True)
def _fresh_schema():
    """Recreate all tables before each test."""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture()
def db():
    """Per-test database session."""
    session = SessionLocal()
    yield session
    session.close()


@pytest.fixture()
def client(db):
    """FastAPI TestClient with the DB dependency overridden to use the test session."""

    def _override_get_db():
        yield db

    app.dependency_overrides[get_db] = _override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------

def make_user(db, username: str, name: Optional[str] = None) -> User:
    user = UserRepository(db).create(username, name=name or username.title())
    db.commit()
    db.refresh(user)
    return user


def make_collection(
    db,
    owner: User,
    name: str,
    parent: Optional[Collection] = None,
) -> Collection:
    collection = Collection(
        owner_id=owner.id,
        name=name,
        parent_id=parent.id if parent is not None else None,
    )
    db.add(collection)
    db.commit()
    db.refresh(collection)
    return collection


def grant(
    db,
    collection: Collection,
    user: User,
    can_create: bool = False,
    can_update: bool = False,
    can_delete: bool = False,
) -> CollectionMember:
    member = CollectionRepository(db).add_member(
        collection.id,
        user.id,
        can_create=can_create,
        can_update=can_update,
        can_delete=can_delete,
    )
    db.commit()
    # Drop cached relationship collections so the new record is seen.
    db.expire_all()
    return member


def make_link(db, collection: Collection, name: str = "Example", url: str = "https://example.com") -> Link:
    link = LinkRepository(db).create(collection.id, name, url=url)
    db.commit()
    db.refresh(link)
    return link


def as_user(user: User) -> dict:
    """Identity headers for API calls made on behalf of *user*."""
    return {"X-User-ID": str(user.id)}
