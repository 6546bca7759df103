import json
import logging
import os
import sqlite3
import subprocess
from contextlib import contextmanager
from datetime import datetime

import config
from models import TaskTemplate, UserSettings

logger = logging.getLogger(__name__)

DATABASE_PATH = config.DATABASE_PATH

TASK_COLUMNS = (
    "id", "position", "title", "description", "due_date", "priority", "is_completed",
    "recurrence", "completed_occurrences", "is_archived", "created_at",
    "suggested_timeline", "estimated_duration", "reasoning",
)


@contextmanager
def get_db():
    """Context manager for database connections."""
    conn = sqlite3.connect(DATABASE_PATH)
    conn.row_factory = sqlite3.Row
    try:
        yield conn
    finally:
        conn.close()


def init_db():
    """Initialize database by running Alembic migrations."""
    # Run alembic upgrade from the backend directory
    backend_dir = os.path.dirname(os.path.abspath(__file__))
    subprocess.run(
        ["alembic", "upgrade", "head"],
        cwd=backend_dir,
        env={**os.environ, "PLANNER_DATABASE_PATH": os.path.abspath(DATABASE_PATH)},
        check=True
    )


def _row_to_template(row) -> TaskTemplate:
    """Convert a database row to a TaskTemplate model."""
    occurrences = json.loads(row["completed_occurrences"] or "{}")
    return TaskTemplate(
        id=row["id"],
        title=row["title"],
        description=row["description"] or "",
        due_date=datetime.fromisoformat(row["due_date"]),
        priority=row["priority"],
        is_completed=bool(row["is_completed"]),
        recurrence=row["recurrence"] or "none",
        completed_occurrences={key: bool(done) for key, done in occurrences.items()},
        is_archived=bool(row["is_archived"]),
        created_at=datetime.fromisoformat(row["created_at"]),
        suggested_timeline=row["suggested_timeline"],
        estimated_duration=row["estimated_duration"],
        reasoning=row["reasoning"],
    )


def _template_to_row(position: int, template: TaskTemplate) -> tuple:
    return (
        template.id,
        position,
        template.title,
        template.description,
        template.due_date.isoformat(),
        template.priority,
        int(template.is_completed),
        template.recurrence,
        json.dumps(template.completed_occurrences, sort_keys=True),
        int(template.is_archived),
        template.created_at.isoformat(),
        template.suggested_timeline,
        template.estimated_duration,
        template.reasoning,
    )


def get_all_templates() -> list[TaskTemplate]:
    """All stored templates (archived included) in collection order."""
    with get_db() as conn:
        rows = conn.execute("SELECT * FROM tasks ORDER BY position").fetchall()
        return [_row_to_template(row) for row in rows]


def replace_all_templates(templates: list[TaskTemplate]) -> None:
    """Replace the stored collection in a single transaction."""
    placeholders = ", ".join("?" for _ in TASK_COLUMNS)
    with get_db() as conn:
        with conn:
            conn.execute("DELETE FROM tasks")
            conn.executemany(
                f"INSERT INTO tasks ({', '.join(TASK_COLUMNS)}) VALUES ({placeholders})",
                [_template_to_row(i, t) for i, t in enumerate(templates)]
            )


# User settings operations
def get_user_settings() -> UserSettings:
    """Stored settings, or defaults when nothing has been saved yet."""
    try:
        with get_db() as conn:
            row = conn.execute(
                "SELECT default_task_time, enable_email_alerts FROM user_settings WHERE id = 1"
            ).fetchone()
    except sqlite3.Error:
        logger.exception("Failed to load user settings, using defaults")
        return UserSettings()
    if not row:
        return UserSettings()
    return UserSettings(
        default_task_time=row["default_task_time"],
        enable_email_alerts=bool(row["enable_email_alerts"]),
    )


def save_user_settings(settings: UserSettings) -> UserSettings:
    with get_db() as conn:
        conn.execute(
            """INSERT INTO user_settings (id, default_task_time, enable_email_alerts)
               VALUES (1, ?, ?)
               ON CONFLICT(id) DO UPDATE SET
                   default_task_time = excluded.default_task_time,
                   enable_email_alerts = excluded.enable_email_alerts""",
            (settings.default_task_time, int(settings.enable_email_alerts))
        )
        conn.commit()
    return settings


class SqliteTaskStorage:
    """Load-all / save-all storage for the planner, backed by the tasks table."""

    def load_all(self) -> list[TaskTemplate]:
        return get_all_templates()

    def save_all(self, templates: list[TaskTemplate]) -> None:
        replace_all_templates(templates)
