"""
Shared fixtures: small SQLite databases seeded with users, sites and products.
"""
import pytest
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from searchpanes import metrics
from searchpanes.db import Database
from searchpanes.fields import Editor, Field

SCHEMA = [
    "CREATE TABLE sites (id INTEGER PRIMARY KEY, name TEXT)",
    "CREATE TABLE users (id INTEGER PRIMARY KEY, name TEXT, site INTEGER, role TEXT)",
    "CREATE TABLE products (id INTEGER PRIMARY KEY, size TEXT)",
]

ROWS = [
    "INSERT INTO sites (id, name) VALUES (1, 'Edinburgh'), (2, 'London'), (3, 'Paris'), (4, 'New York')",
    "INSERT INTO users (id, name, site, role) VALUES "
    "(1, 'Alice', 1, 'admin'), (2, 'Bob', 1, 'user'), (3, 'Carol', 2, 'user'), "
    "(4, 'Dan', 2, 'admin'), (5, 'Eve', 3, 'user'), (6, 'Frank', 1, 'user')",
    "INSERT INTO products (id, size) VALUES (1, '10'), (2, '2'), (3, '9'), (4, '2')",
]


def _seed(engine):
    with engine.begin() as conn:
        for stmt in SCHEMA + ROWS:
            conn.exec_driver_sql(stmt)


@pytest.fixture(autouse=True)
def _reset_metrics():
    metrics.reset()
    yield
    metrics.reset()


@pytest.fixture
def engine():
    eng = create_engine(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    _seed(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def file_engine(tmp_path):
    """File-backed SQLite with a regular pool, for tests using several connections at once."""
    eng = create_engine(
        f"sqlite:///{tmp_path / 'panes.sqlite'}",
        connect_args={"check_same_thread": False},
    )
    _seed(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def db(engine):
    return Database(engine)


@pytest.fixture
def users_editor(db):
    """Editor over users with the sites table joined in."""
    editor = Editor(db, "users", [
        Field("users.name", name="name"),
        Field("users.site", name="site"),
        Field("users.role", name="role"),
    ])
    editor.left_join("sites", "sites.id", "=", "users.site")
    return editor
