"""Database engine setup and initialization."""

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator

import aiosqlite

from ..config import get_settings

logger = logging.getLogger(__name__)


def get_db_path(data_dir: Path | None = None) -> Path:
    """Get the database file path."""
    settings = get_settings()
    if data_dir is None:
        data_dir = settings.data_dir
    data_dir.mkdir(parents=True, exist_ok=True)
    return data_dir / settings.db_name


@asynccontextmanager
async def connect(db_path: Path) -> AsyncIterator[aiosqlite.Connection]:
    """Open a connection with foreign keys enforced and dict-like rows."""
    async with aiosqlite.connect(db_path) as db:
        db.row_factory = aiosqlite.Row
        await db.execute("PRAGMA foreign_keys = ON")
        yield db


async def init_db(db_path: Path | None = None) -> None:
    """Initialize the database schema."""
    if db_path is None:
        db_path = get_db_path()

    logger.info("Initializing database at %s", db_path)

    async with connect(db_path) as db:
        # Workout templates (read by the schedule core, owned by the tracker)
        await db.execute("""
            CREATE TABLE IF NOT EXISTS workout_templates (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id TEXT,
                name TEXT NOT NULL,
                description TEXT DEFAULT '',
                category TEXT,
                difficulty TEXT,
                estimated_duration INTEGER,
                exercises TEXT DEFAULT '[]',
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)

        # Logged workout sessions (used for completion status)
        await db.execute("""
            CREATE TABLE IF NOT EXISTS workout_sessions (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id TEXT NOT NULL,
                name TEXT NOT NULL,
                status TEXT NOT NULL DEFAULT 'completed',
                start_time TIMESTAMP NOT NULL
            )
        """)

        # Daily templates
        await db.execute("""
            CREATE TABLE IF NOT EXISTS daily_templates (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id TEXT NOT NULL,
                name TEXT NOT NULL,
                workout_template_id INTEGER,
                cardio_type TEXT,
                start_time TEXT NOT NULL DEFAULT '09:00',
                duration INTEGER NOT NULL DEFAULT 60,
                color TEXT NOT NULL DEFAULT '#3b82f6',
                is_rest_day INTEGER NOT NULL DEFAULT 0,
                notes TEXT DEFAULT '',
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                FOREIGN KEY (workout_template_id) REFERENCES workout_templates(id)
                    ON DELETE SET NULL
            )
        """)

        # Weekly templates and their seven day slots
        await db.execute("""
            CREATE TABLE IF NOT EXISTS weekly_templates (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id TEXT NOT NULL,
                name TEXT NOT NULL,
                description TEXT DEFAULT '',
                is_public INTEGER NOT NULL DEFAULT 0,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)
        await db.execute("""
            CREATE TABLE IF NOT EXISTS weekly_template_days (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                weekly_template_id INTEGER NOT NULL,
                day_of_week INTEGER NOT NULL CHECK (day_of_week BETWEEN 0 AND 6),
                daily_template_id INTEGER,
                override_time TEXT,
                UNIQUE (weekly_template_id, day_of_week),
                FOREIGN KEY (weekly_template_id) REFERENCES weekly_templates(id)
                    ON DELETE CASCADE,
                FOREIGN KEY (daily_template_id) REFERENCES daily_templates(id)
                    ON DELETE SET NULL
            )
        """)

        # Weekly templates bound to a date range
        await db.execute("""
            CREATE TABLE IF NOT EXISTS active_schedules (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id TEXT NOT NULL,
                weekly_template_id INTEGER NOT NULL,
                name TEXT,
                start_date TEXT NOT NULL,
                end_date TEXT,
                is_active INTEGER NOT NULL DEFAULT 1,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                FOREIGN KEY (weekly_template_id) REFERENCES weekly_templates(id)
                    ON DELETE CASCADE
            )
        """)

        # Weekly schedule documents and their authored items
        await db.execute("""
            CREATE TABLE IF NOT EXISTS schedules (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id TEXT NOT NULL,
                week_start TEXT NOT NULL,
                timezone TEXT DEFAULT 'UTC',
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                UNIQUE (user_id, week_start)
            )
        """)
        await db.execute("""
            CREATE TABLE IF NOT EXISTS schedule_items (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                schedule_id INTEGER NOT NULL,
                type TEXT NOT NULL DEFAULT 'workout',
                title TEXT NOT NULL,
                description TEXT DEFAULT '',
                day INTEGER NOT NULL CHECK (day BETWEEN 0 AND 6),
                start_time TEXT NOT NULL,
                end_time TEXT NOT NULL,
                category TEXT,
                calories INTEGER,
                difficulty TEXT,
                duration INTEGER,
                is_from_generator INTEGER DEFAULT 0,
                generator_data TEXT,
                is_recurring INTEGER NOT NULL DEFAULT 0,
                repeat_pattern TEXT,
                repeat_interval INTEGER,
                repeat_ends_on TEXT,
                repeat_days_of_week TEXT,
                recurrence_rule TEXT,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                FOREIGN KEY (schedule_id) REFERENCES schedules(id) ON DELETE CASCADE
            )
        """)

        # Suppressed occurrence dates of recurring items
        await db.execute("""
            CREATE TABLE IF NOT EXISTS schedule_item_exceptions (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                item_id INTEGER NOT NULL,
                occurrence_date TEXT NOT NULL,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                UNIQUE (item_id, occurrence_date),
                FOREIGN KEY (item_id) REFERENCES schedule_items(id) ON DELETE CASCADE
            )
        """)

        # Saved schedule templates
        await db.execute("""
            CREATE TABLE IF NOT EXISTS schedule_templates (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id TEXT,
                name TEXT NOT NULL,
                description TEXT DEFAULT '',
                items TEXT NOT NULL DEFAULT '[]',
                is_default INTEGER NOT NULL DEFAULT 0,
                is_public INTEGER NOT NULL DEFAULT 0,
                usage_count INTEGER NOT NULL DEFAULT 0,
                metadata TEXT DEFAULT '{}',
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)

        # Dates a user marked as done
        await db.execute("""
            CREATE TABLE IF NOT EXISTS completed_days (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id TEXT NOT NULL,
                date TEXT NOT NULL,
                status TEXT NOT NULL DEFAULT 'completed',
                notes TEXT,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                UNIQUE (user_id, date)
            )
        """)

        # Create indexes for common queries
        await db.execute("""
            CREATE INDEX IF NOT EXISTS idx_daily_templates_user
            ON daily_templates(user_id)
        """)
        await db.execute("""
            CREATE INDEX IF NOT EXISTS idx_weekly_templates_user
            ON weekly_templates(user_id)
        """)
        await db.execute("""
            CREATE INDEX IF NOT EXISTS idx_active_schedules_user
            ON active_schedules(user_id, is_active)
        """)
        await db.execute("""
            CREATE INDEX IF NOT EXISTS idx_schedule_items_schedule
            ON schedule_items(schedule_id)
        """)
        await db.execute("""
            CREATE INDEX IF NOT EXISTS idx_workout_sessions_user_start
            ON workout_sessions(user_id, start_time)
        """)

        await db.commit()
