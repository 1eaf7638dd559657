"""
Shared fixtures for Rivet tests.

Each test gets an in-memory SQLite database, a query-recording listener and
a fresh ModelRegistry with its own record classes, so declarations never
leak between tests.
"""

from __future__ import annotations

from types import SimpleNamespace
from typing import Any

import pytest

from rivet_orm.runtime.database import DatabaseManager
from rivet_orm.runtime.model_registry import ModelRegistry
from rivet_orm.runtime.n_plus_one import NPlusOneDetector
from rivet_orm.runtime.record import Record

SCHEMA = """
CREATE TABLE teams (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL
);

CREATE TABLE users (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    email TEXT,
    age INTEGER,
    team_id INTEGER,
    created_at TEXT,
    updated_at TEXT
);

CREATE TABLE posts (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id INTEGER,
    title TEXT NOT NULL,
    published INTEGER DEFAULT 0
);

CREATE TABLE comments (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    post_id INTEGER,
    body TEXT
);

CREATE TABLE profiles (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id INTEGER,
    bio TEXT
);
"""


class QueryLog:
    """Records every statement passed to the executor."""

    def __init__(self) -> None:
        self.statements: list[tuple[str, list[Any]]] = []

    def __call__(self, sql: str, bindings: list[Any], datasource: str) -> None:
        self.statements.append((sql, bindings))

    @property
    def count(self) -> int:
        return len(self.statements)

    @property
    def selects(self) -> list[str]:
        return [sql for sql, _ in self.statements if sql.startswith("SELECT")]

    def clear(self) -> None:
        self.statements.clear()


@pytest.fixture
def db() -> Any:
    """In-memory database with the test schema."""
    manager = DatabaseManager(db_path=":memory:")
    manager.execute_script(SCHEMA)
    yield manager
    manager.close()


@pytest.fixture
def query_log(db: DatabaseManager) -> QueryLog:
    log = QueryLog()
    db.add_listener(log)
    return log


@pytest.fixture
def registry(db: DatabaseManager) -> ModelRegistry:
    """Registry with N+1 detection enabled."""
    return ModelRegistry(executor=db, detector=NPlusOneDetector(enabled=True))


@pytest.fixture
def models(registry: ModelRegistry) -> SimpleNamespace:
    """Team -> User -> Post -> Comment, plus User has_one Profile."""

    class Team(Record, registry=registry):
        @classmethod
        def configure(cls):
            cls.has_many("users")

    class User(Record, registry=registry):
        @classmethod
        def configure(cls):
            cls.belongs_to("team")
            cls.has_many("posts")
            cls.has_one("profile")

    class Post(Record, registry=registry):
        @classmethod
        def configure(cls):
            cls.belongs_to("user")
            cls.has_many("comments")

    class Comment(Record, registry=registry):
        @classmethod
        def configure(cls):
            cls.belongs_to("post")

    class Profile(Record, registry=registry):
        @classmethod
        def configure(cls):
            cls.belongs_to("user")

    return SimpleNamespace(Team=Team, User=User, Post=Post, Comment=Comment, Profile=Profile)


@pytest.fixture
def seeded(models: SimpleNamespace, query_log: QueryLog) -> SimpleNamespace:
    """
    Three users on two teams with posts and comments.

    ada (team core): 2 posts, first post has 2 comments, profile
    bob (team core): 1 post
    cy  (team ops):  no posts
    """
    core = models.Team.create(name="core")
    ops = models.Team.create(name="ops")

    ada = models.User.create(name="ada", email="ada@example.com", age=36, team_id=core.id)
    bob = models.User.create(name="bob", email="bob@example.com", age=17, team_id=core.id)
    cy = models.User.create(name="cy", email="cy@example.com", age=52, team_id=ops.id)

    intro = models.Post.create(user_id=ada.id, title="Intro", published=1)
    notes = models.Post.create(user_id=ada.id, title="Notes")
    draft = models.Post.create(user_id=bob.id, title="Draft")

    models.Comment.create(post_id=intro.id, body="first")
    models.Comment.create(post_id=intro.id, body="second")

    models.Profile.create(user_id=ada.id, bio="Analyst")

    query_log.clear()
    return SimpleNamespace(
        core=core,
        ops=ops,
        ada=ada,
        bob=bob,
        cy=cy,
        intro=intro,
        notes=notes,
        draft=draft,
    )
