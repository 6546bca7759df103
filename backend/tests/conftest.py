"""
Shared pytest fixtures for backend tests.
Uses a temp-file SQLite database for isolation.
"""
import pytest
import sqlite3
import sys
import os

# Add backend to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import database

from fakes import FakeSuggester, InMemoryStorage


@pytest.fixture
def test_db(monkeypatch, tmp_path):
    """
    Create an isolated test database for each test.
    Uses a temp file (not :memory:) because database.py opens new connections per operation.
    """
    db_path = str(tmp_path / "test.db")
    monkeypatch.setattr(database, "DATABASE_PATH", db_path)
    monkeypatch.setattr(database, "init_db", lambda: None)

    # Create tables directly (skip alembic for tests)
    conn = sqlite3.connect(db_path)
    conn.executescript("""
        CREATE TABLE tasks (
            id TEXT PRIMARY KEY,
            position INTEGER NOT NULL,
            title TEXT NOT NULL,
            description TEXT DEFAULT '',
            due_date TEXT NOT NULL,
            priority TEXT NOT NULL DEFAULT 'medium',
            is_completed INTEGER DEFAULT 0,
            recurrence TEXT NOT NULL DEFAULT 'none',
            completed_occurrences TEXT DEFAULT '{}',
            is_archived INTEGER DEFAULT 0,
            created_at TEXT NOT NULL,
            suggested_timeline TEXT,
            estimated_duration TEXT,
            reasoning TEXT
        );

        CREATE TABLE user_settings (
            id INTEGER PRIMARY KEY CHECK (id = 1),
            default_task_time TEXT NOT NULL DEFAULT '09:00',
            enable_email_alerts INTEGER DEFAULT 0
        );
    """)
    conn.commit()
    conn.close()

    yield db_path


@pytest.fixture
def storage():
    return InMemoryStorage()


@pytest.fixture
def suggester():
    return FakeSuggester()


@pytest.fixture
def app_client(test_db, monkeypatch, suggester):
    """
    Create a test client for the FastAPI app.
    Mocks init_db to skip alembic migrations and swaps in the fake suggester.
    """
    from fastapi.testclient import TestClient
    import main

    # Skip alembic in tests - tables already created by test_db fixture
    monkeypatch.setattr(main, "init_db", lambda: None)
    monkeypatch.setattr(main, "setup_logging", lambda: None)
    monkeypatch.setattr(main, "TimelineSuggester", lambda: suggester)

    with TestClient(main.app) as client:
        yield client
