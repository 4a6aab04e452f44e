"""Data access layer for fitcal."""

import json
import logging
from datetime import date, datetime, timedelta
from pathlib import Path

import aiosqlite

from ..models.items import ScheduleItem
from ..models.schedule import ActiveSchedule, CompletedDay, ScheduleDocument, ScheduleTemplate
from ..models.templates import DailyTemplate, WeeklyTemplate, WeeklyTemplateDay
from ..models.workouts import WorkoutSession, WorkoutTemplate
from ..utils.dates import format_date, parse_date
from .engine import connect, get_db_path

logger = logging.getLogger(__name__)

ITEM_SELECT = """
    SELECT si.*, s.week_start, s.user_id
    FROM schedule_items si
    JOIN schedules s ON s.id = si.schedule_id
"""


class WorkoutTemplateRepository:
    """Repository for workout templates."""

    def __init__(self, db_path: Path | None = None):
        self.db_path = db_path or get_db_path()

    async def create(self, template: WorkoutTemplate) -> int:
        """Create a new workout template."""
        data = template.to_dict()
        async with connect(self.db_path) as db:
            cursor = await db.execute(
                """
                INSERT INTO workout_templates
                (user_id, name, description, category, difficulty,
                 estimated_duration, exercises)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    data["user_id"],
                    data["name"],
                    data["description"],
                    data["category"],
                    data["difficulty"],
                    data["estimated_duration"],
                    json.dumps(data["exercises"]),
                ),
            )
            await db.commit()
            return cursor.lastrowid

    async def get(self, template_id: int) -> WorkoutTemplate | None:
        """Get a workout template by ID."""
        async with connect(self.db_path) as db:
            cursor = await db.execute(
                "SELECT * FROM workout_templates WHERE id = ?", (template_id,)
            )
            row = await cursor.fetchone()
            if row is None:
                return None
            return self._row_to_template(row)

    async def get_many(self, template_ids: list[int]) -> dict[int, WorkoutTemplate]:
        """Get workout templates keyed by ID."""
        if not template_ids:
            return {}
        placeholders = ",".join("?" * len(template_ids))
        async with connect(self.db_path) as db:
            cursor = await db.execute(
                f"SELECT * FROM workout_templates WHERE id IN ({placeholders})",
                list(template_ids),
            )
            rows = await cursor.fetchall()
            return {row["id"]: self._row_to_template(row) for row in rows}

    async def list_for_user(self, user_id: str) -> list[WorkoutTemplate]:
        """List predefined templates plus the user's own."""
        async with connect(self.db_path) as db:
            cursor = await db.execute(
                """
                SELECT * FROM workout_templates
                WHERE user_id IS NULL OR user_id = ?
                ORDER BY id
                """,
                (user_id,),
            )
            rows = await cursor.fetchall()
            return [self._row_to_template(row) for row in rows]

    async def count(self) -> int:
        """Count all workout templates."""
        async with connect(self.db_path) as db:
            cursor = await db.execute("SELECT COUNT(*) FROM workout_templates")
            row = await cursor.fetchone()
            return row[0]

    def _row_to_template(self, row: aiosqlite.Row) -> WorkoutTemplate:
        """Convert a database row to a WorkoutTemplate."""
        data = {
            "user_id": row["user_id"],
            "name": row["name"],
            "description": row["description"],
            "category": row["category"],
            "difficulty": row["difficulty"],
            "estimated_duration": row["estimated_duration"],
            "exercises": json.loads(row["exercises"] or "[]"),
        }
        return WorkoutTemplate.from_dict(data, id=row["id"])


class WorkoutSessionRepository:
    """Repository for logged workout sessions."""

    def __init__(self, db_path: Path | None = None):
        self.db_path = db_path or get_db_path()

    async def create(self, session: WorkoutSession) -> int:
        """Log a workout session."""
        async with connect(self.db_path) as db:
            cursor = await db.execute(
                """
                INSERT INTO workout_sessions (user_id, name, status, start_time)
                VALUES (?, ?, ?, ?)
                """,
                (
                    session.user_id,
                    session.name,
                    session.status.value,
                    session.start_time.isoformat(),
                ),
            )
            await db.commit()
            return cursor.lastrowid

    async def list_between(
        self, user_id: str, start: date, end: date
    ) -> list[WorkoutSession]:
        """List a user's sessions that started on a date in [start, end]."""
        async with connect(self.db_path) as db:
            cursor = await db.execute(
                """
                SELECT * FROM workout_sessions
                WHERE user_id = ? AND start_time >= ? AND start_time < ?
                ORDER BY start_time
                """,
                (user_id, start.isoformat(), (end + timedelta(days=1)).isoformat()),
            )
            rows = await cursor.fetchall()
            return [self._row_to_session(row) for row in rows]

    def _row_to_session(self, row: aiosqlite.Row) -> WorkoutSession:
        """Convert a database row to a WorkoutSession."""
        data = {
            "user_id": row["user_id"],
            "name": row["name"],
            "status": row["status"],
            "start_time": row["start_time"],
        }
        return WorkoutSession.from_dict(data, id=row["id"])


class CompletedDayRepository:
    """Repository for dates a user marked as done."""

    def __init__(self, db_path: Path | None = None):
        self.db_path = db_path or get_db_path()

    async def upsert(self, day: CompletedDay) -> CompletedDay:
        """Mark a date, updating the existing record for that date if any.

        Notes of None keep whatever notes the record already has.
        """
        async with connect(self.db_path) as db:
            await db.execute(
                """
                INSERT INTO completed_days (user_id, date, status, notes)
                VALUES (?, ?, ?, ?)
                ON CONFLICT (user_id, date) DO UPDATE SET
                    status = excluded.status,
                    notes = COALESCE(excluded.notes, completed_days.notes),
                    updated_at = CURRENT_TIMESTAMP
                """,
                (day.user_id, format_date(day.date), day.status, day.notes),
            )
            await db.commit()
            cursor = await db.execute(
                "SELECT * FROM completed_days WHERE user_id = ? AND date = ?",
                (day.user_id, format_date(day.date)),
            )
            return self._row_to_day(await cursor.fetchone())

    async def list_for_user(self, user_id: str) -> list[CompletedDay]:
        """List a user's records, newest date first."""
        async with connect(self.db_path) as db:
            cursor = await db.execute(
                "SELECT * FROM completed_days WHERE user_id = ? ORDER BY date DESC",
                (user_id,),
            )
            rows = await cursor.fetchall()
            return [self._row_to_day(row) for row in rows]

    async def list_between(self, user_id: str, start: date, end: date) -> dict[date, CompletedDay]:
        """A user's records in [start, end], keyed by date."""
        async with connect(self.db_path) as db:
            cursor = await db.execute(
                """
                SELECT * FROM completed_days
                WHERE user_id = ? AND date >= ? AND date <= ?
                """,
                (user_id, format_date(start), format_date(end)),
            )
            rows = await cursor.fetchall()
            return {day.date: day for day in map(self._row_to_day, rows)}

    async def delete(self, user_id: str, on: date) -> bool:
        """Remove the record for a date. Returns whether it existed."""
        async with connect(self.db_path) as db:
            cursor = await db.execute(
                "DELETE FROM completed_days WHERE user_id = ? AND date = ?",
                (user_id, format_date(on)),
            )
            await db.commit()
            return cursor.rowcount > 0

    def _row_to_day(self, row: aiosqlite.Row) -> CompletedDay:
        """Convert a database row to a CompletedDay."""
        return CompletedDay(
            id=row["id"],
            user_id=row["user_id"],
            date=parse_date(row["date"]),
            status=row["status"],
            notes=row["notes"],
            updated_at=datetime.fromisoformat(row["updated_at"]) if row["updated_at"] else None,
        )


class DailyTemplateRepository:
    """Repository for daily templates."""

    def __init__(self, db_path: Path | None = None):
        self.db_path = db_path or get_db_path()

    async def create(self, template: DailyTemplate) -> int:
        """Create a new daily template."""
        async with connect(self.db_path) as db:
            cursor = await db.execute(
                """
                INSERT INTO daily_templates
                (user_id, name, workout_template_id, cardio_type, start_time,
                 duration, color, is_rest_day, notes)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    template.user_id,
                    template.name,
                    template.workout_template_id,
                    template.cardio_type,
                    template.start_time,
                    template.duration,
                    template.color,
                    template.is_rest_day,
                    template.notes,
                ),
            )
            await db.commit()
            return cursor.lastrowid

    async def get(self, template_id: int, user_id: str) -> DailyTemplate | None:
        """Get a user's daily template by ID."""
        async with connect(self.db_path) as db:
            cursor = await db.execute(
                "SELECT * FROM daily_templates WHERE id = ? AND user_id = ?",
                (template_id, user_id),
            )
            row = await cursor.fetchone()
            if row is None:
                return None
            return self._row_to_template(row)

    async def get_many(self, template_ids: list[int], user_id: str) -> dict[int, DailyTemplate]:
        """Get a user's daily templates keyed by ID."""
        if not template_ids:
            return {}
        placeholders = ",".join("?" * len(template_ids))
        async with connect(self.db_path) as db:
            cursor = await db.execute(
                f"""
                SELECT * FROM daily_templates
                WHERE user_id = ? AND id IN ({placeholders})
                """,
                [user_id, *template_ids],
            )
            rows = await cursor.fetchall()
            return {row["id"]: self._row_to_template(row) for row in rows}

    async def list_for_user(self, user_id: str) -> list[DailyTemplate]:
        """List a user's daily templates, newest first."""
        async with connect(self.db_path) as db:
            cursor = await db.execute(
                """
                SELECT * FROM daily_templates
                WHERE user_id = ?
                ORDER BY created_at DESC, id DESC
                """,
                (user_id,),
            )
            rows = await cursor.fetchall()
            return [self._row_to_template(row) for row in rows]

    async def update(self, template: DailyTemplate) -> None:
        """Update an existing daily template."""
        if template.id is None:
            raise ValueError("Daily template must have an ID to update")

        async with connect(self.db_path) as db:
            await db.execute(
                """
                UPDATE daily_templates SET
                    name = ?, workout_template_id = ?, cardio_type = ?,
                    start_time = ?, duration = ?, color = ?, is_rest_day = ?,
                    notes = ?, updated_at = CURRENT_TIMESTAMP
                WHERE id = ? AND user_id = ?
                """,
                (
                    template.name,
                    template.workout_template_id,
                    template.cardio_type,
                    template.start_time,
                    template.duration,
                    template.color,
                    template.is_rest_day,
                    template.notes,
                    template.id,
                    template.user_id,
                ),
            )
            await db.commit()

    async def delete(self, template_id: int, user_id: str) -> int:
        """Delete a daily template and turn the weekly slots using it into rest days.

        Returns:
            Number of weekly template slots that were cleared
        """
        async with connect(self.db_path) as db:
            cursor = await db.execute(
                """
                UPDATE weekly_template_days SET daily_template_id = NULL
                WHERE daily_template_id = ?
                """,
                (template_id,),
            )
            cleared = cursor.rowcount
            await db.execute(
                "DELETE FROM daily_templates WHERE id = ? AND user_id = ?",
                (template_id, user_id),
            )
            await db.commit()
            return cleared

    def _row_to_template(self, row: aiosqlite.Row) -> DailyTemplate:
        """Convert a database row to a DailyTemplate."""
        data = {
            "user_id": row["user_id"],
            "name": row["name"],
            "workout_template_id": row["workout_template_id"],
            "cardio_type": row["cardio_type"],
            "start_time": row["start_time"],
            "duration": row["duration"],
            "color": row["color"],
            "is_rest_day": bool(row["is_rest_day"]),
            "notes": row["notes"],
        }
        created_at = datetime.fromisoformat(row["created_at"]) if row["created_at"] else None
        return DailyTemplate.from_dict(data, id=row["id"], created_at=created_at)


class WeeklyTemplateRepository:
    """Repository for weekly templates and their day slots."""

    def __init__(self, db_path: Path | None = None):
        self.db_path = db_path or get_db_path()

    async def create(self, template: WeeklyTemplate) -> int:
        """Create a weekly template with its seven day slots."""
        async with connect(self.db_path) as db:
            cursor = await db.execute(
                """
                INSERT INTO weekly_templates (user_id, name, description, is_public)
                VALUES (?, ?, ?, ?)
                """,
                (template.user_id, template.name, template.description, template.is_public),
            )
            template_id = cursor.lastrowid
            await self._write_days(db, template_id, template.days)
            await db.commit()
            return template_id

    async def get(self, template_id: int, user_id: str) -> WeeklyTemplate | None:
        """Get a user's weekly template with day slots and daily templates resolved."""
        async with connect(self.db_path) as db:
            cursor = await db.execute(
                "SELECT * FROM weekly_templates WHERE id = ? AND user_id = ?",
                (template_id, user_id),
            )
            row = await cursor.fetchone()
            if row is None:
                return None
            days = await self._load_days(db, [template_id])
            return self._row_to_template(row, days.get(template_id, []))

    async def get_many(self, template_ids: list[int]) -> dict[int, WeeklyTemplate]:
        """Get weekly templates keyed by ID, with days resolved."""
        if not template_ids:
            return {}
        placeholders = ",".join("?" * len(template_ids))
        async with connect(self.db_path) as db:
            cursor = await db.execute(
                f"SELECT * FROM weekly_templates WHERE id IN ({placeholders})",
                list(template_ids),
            )
            rows = await cursor.fetchall()
            days = await self._load_days(db, [row["id"] for row in rows])
            return {
                row["id"]: self._row_to_template(row, days.get(row["id"], []))
                for row in rows
            }

    async def list_for_user(self, user_id: str) -> list[WeeklyTemplate]:
        """List a user's weekly templates, newest first."""
        async with connect(self.db_path) as db:
            cursor = await db.execute(
                """
                SELECT * FROM weekly_templates
                WHERE user_id = ?
                ORDER BY created_at DESC, id DESC
                """,
                (user_id,),
            )
            rows = await cursor.fetchall()
            days = await self._load_days(db, [row["id"] for row in rows])
            return [self._row_to_template(row, days.get(row["id"], [])) for row in rows]

    async def update(self, template: WeeklyTemplate) -> None:
        """Update a weekly template, replacing all of its day slots."""
        if template.id is None:
            raise ValueError("Weekly template must have an ID to update")

        async with connect(self.db_path) as db:
            await db.execute(
                """
                UPDATE weekly_templates SET
                    name = ?, description = ?, is_public = ?,
                    updated_at = CURRENT_TIMESTAMP
                WHERE id = ? AND user_id = ?
                """,
                (
                    template.name,
                    template.description,
                    template.is_public,
                    template.id,
                    template.user_id,
                ),
            )
            await db.execute(
                "DELETE FROM weekly_template_days WHERE weekly_template_id = ?",
                (template.id,),
            )
            await self._write_days(db, template.id, template.days)
            await db.commit()

    async def delete(self, template_id: int, user_id: str) -> None:
        """Delete a weekly template (its day slots cascade)."""
        async with connect(self.db_path) as db:
            await db.execute(
                "DELETE FROM weekly_templates WHERE id = ? AND user_id = ?",
                (template_id, user_id),
            )
            await db.commit()

    async def _write_days(
        self, db: aiosqlite.Connection, template_id: int, days: list[WeeklyTemplateDay]
    ) -> None:
        await db.executemany(
            """
            INSERT INTO weekly_template_days
            (weekly_template_id, day_of_week, daily_template_id, override_time)
            VALUES (?, ?, ?, ?)
            """,
            [
                (template_id, day.day_of_week, day.daily_template_id, day.override_time)
                for day in days
            ],
        )

    async def _load_days(
        self, db: aiosqlite.Connection, template_ids: list[int]
    ) -> dict[int, list[WeeklyTemplateDay]]:
        """Load day slots, with their daily templates, for several weekly templates."""
        if not template_ids:
            return {}
        placeholders = ",".join("?" * len(template_ids))
        cursor = await db.execute(
            f"""
            SELECT wd.weekly_template_id, wd.day_of_week, wd.daily_template_id,
                   wd.override_time, dt.user_id AS dt_user_id, dt.name AS dt_name,
                   dt.workout_template_id, dt.cardio_type, dt.start_time,
                   dt.duration, dt.color, dt.is_rest_day, dt.notes
            FROM weekly_template_days wd
            LEFT JOIN daily_templates dt ON dt.id = wd.daily_template_id
            WHERE wd.weekly_template_id IN ({placeholders})
            ORDER BY wd.day_of_week
            """,
            list(template_ids),
        )
        days: dict[int, list[WeeklyTemplateDay]] = {}
        for row in await cursor.fetchall():
            daily = None
            if row["daily_template_id"] is not None and row["dt_name"] is not None:
                daily = DailyTemplate.from_dict(
                    {
                        "user_id": row["dt_user_id"],
                        "name": row["dt_name"],
                        "workout_template_id": row["workout_template_id"],
                        "cardio_type": row["cardio_type"],
                        "start_time": row["start_time"],
                        "duration": row["duration"],
                        "color": row["color"],
                        "is_rest_day": bool(row["is_rest_day"]),
                        "notes": row["notes"],
                    },
                    id=row["daily_template_id"],
                )
            days.setdefault(row["weekly_template_id"], []).append(
                WeeklyTemplateDay(
                    day_of_week=row["day_of_week"],
                    daily_template_id=row["daily_template_id"],
                    override_time=row["override_time"],
                    daily_template=daily,
                )
            )
        return days

    def _row_to_template(
        self, row: aiosqlite.Row, days: list[WeeklyTemplateDay]
    ) -> WeeklyTemplate:
        """Convert a database row to a WeeklyTemplate."""
        data = {
            "user_id": row["user_id"],
            "name": row["name"],
            "description": row["description"],
            "is_public": bool(row["is_public"]),
        }
        created_at = datetime.fromisoformat(row["created_at"]) if row["created_at"] else None
        template = WeeklyTemplate.from_dict(data, id=row["id"], created_at=created_at)
        template.days = days
        return template


class ActiveScheduleRepository:
    """Repository for active schedules."""

    def __init__(self, db_path: Path | None = None):
        self.db_path = db_path or get_db_path()

    async def create(self, schedule: ActiveSchedule) -> int:
        """Create a new active schedule."""
        async with connect(self.db_path) as db:
            cursor = await db.execute(
                """
                INSERT INTO active_schedules
                (user_id, weekly_template_id, name, start_date, end_date, is_active)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    schedule.user_id,
                    schedule.weekly_template_id,
                    schedule.name,
                    format_date(schedule.start_date),
                    format_date(schedule.end_date),
                    schedule.is_active,
                ),
            )
            await db.commit()
            return cursor.lastrowid

    async def get(self, schedule_id: int, user_id: str) -> ActiveSchedule | None:
        """Get a user's active schedule by ID."""
        async with connect(self.db_path) as db:
            cursor = await db.execute(
                "SELECT * FROM active_schedules WHERE id = ? AND user_id = ?",
                (schedule_id, user_id),
            )
            row = await cursor.fetchone()
            if row is None:
                return None
            return self._row_to_schedule(row)

    async def list_for_user(
        self, user_id: str, active_only: bool = False
    ) -> list[ActiveSchedule]:
        """List a user's schedules, most recent start date first."""
        query = "SELECT * FROM active_schedules WHERE user_id = ?"
        params: list = [user_id]
        if active_only:
            query += " AND is_active = 1"
        query += " ORDER BY start_date DESC, id DESC"

        async with connect(self.db_path) as db:
            cursor = await db.execute(query, params)
            rows = await cursor.fetchall()
            return [self._row_to_schedule(row) for row in rows]

    async def list_overlapping(
        self, user_id: str, start: date, end: date
    ) -> list[ActiveSchedule]:
        """List active schedules whose range intersects [start, end]."""
        async with connect(self.db_path) as db:
            cursor = await db.execute(
                """
                SELECT * FROM active_schedules
                WHERE user_id = ? AND is_active = 1
                  AND start_date <= ?
                  AND (end_date IS NULL OR end_date >= ?)
                ORDER BY start_date, id
                """,
                (user_id, end.isoformat(), start.isoformat()),
            )
            rows = await cursor.fetchall()
            return [self._row_to_schedule(row) for row in rows]

    async def list_active_using(self, weekly_template_id: int) -> list[ActiveSchedule]:
        """List active schedules built from a weekly template."""
        async with connect(self.db_path) as db:
            cursor = await db.execute(
                """
                SELECT * FROM active_schedules
                WHERE weekly_template_id = ? AND is_active = 1
                ORDER BY id
                """,
                (weekly_template_id,),
            )
            rows = await cursor.fetchall()
            return [self._row_to_schedule(row) for row in rows]

    async def update(self, schedule: ActiveSchedule) -> None:
        """Update an existing active schedule."""
        if schedule.id is None:
            raise ValueError("Active schedule must have an ID to update")

        async with connect(self.db_path) as db:
            await db.execute(
                """
                UPDATE active_schedules SET
                    name = ?, start_date = ?, end_date = ?, is_active = ?,
                    updated_at = CURRENT_TIMESTAMP
                WHERE id = ? AND user_id = ?
                """,
                (
                    schedule.name,
                    format_date(schedule.start_date),
                    format_date(schedule.end_date),
                    schedule.is_active,
                    schedule.id,
                    schedule.user_id,
                ),
            )
            await db.commit()

    async def delete(self, schedule_id: int, user_id: str) -> None:
        """Delete an active schedule. Its weekly template is kept."""
        async with connect(self.db_path) as db:
            await db.execute(
                "DELETE FROM active_schedules WHERE id = ? AND user_id = ?",
                (schedule_id, user_id),
            )
            await db.commit()

    def _row_to_schedule(self, row: aiosqlite.Row) -> ActiveSchedule:
        """Convert a database row to an ActiveSchedule."""
        data = {
            "user_id": row["user_id"],
            "weekly_template_id": row["weekly_template_id"],
            "name": row["name"],
            "start_date": row["start_date"],
            "end_date": row["end_date"],
            "is_active": bool(row["is_active"]),
        }
        created_at = datetime.fromisoformat(row["created_at"]) if row["created_at"] else None
        return ActiveSchedule.from_dict(data, id=row["id"], created_at=created_at)


class ScheduleRepository:
    """Repository for weekly schedule documents, their items and exceptions.

    Every item read joins its schedule so the item's authored date
    (week start + day) is always known.
    """

    def __init__(self, db_path: Path | None = None):
        self.db_path = db_path or get_db_path()

    # Documents

    async def get_document(self, user_id: str, week_start: date) -> ScheduleDocument | None:
        """Get a user's schedule document for a week, with its concrete items."""
        async with connect(self.db_path) as db:
            cursor = await db.execute(
                "SELECT * FROM schedules WHERE user_id = ? AND week_start = ?",
                (user_id, week_start.isoformat()),
            )
            row = await cursor.fetchone()
            if row is None:
                return None
            cursor = await db.execute(
                ITEM_SELECT + " WHERE si.schedule_id = ? ORDER BY si.day, si.start_time, si.id",
                (row["id"],),
            )
            items = [self._row_to_item(r) for r in await cursor.fetchall()]
            return ScheduleDocument(
                id=row["id"],
                user_id=row["user_id"],
                week_start=parse_date(row["week_start"]),
                timezone=row["timezone"] or "UTC",
                items=items,
            )

    async def replace_week(
        self, user_id: str, week_start: date, timezone: str, items: list[ScheduleItem]
    ) -> int:
        """Upsert a week's items: ids update, new items insert, missing ids are deleted.

        Returns:
            The schedule document ID
        """
        async with connect(self.db_path) as db:
            schedule_id = await self._ensure_document(db, user_id, week_start, timezone)
            await db.execute(
                """
                UPDATE schedules SET timezone = ?, updated_at = CURRENT_TIMESTAMP
                WHERE id = ?
                """,
                (timezone, schedule_id),
            )
            keep = [item.id for item in items if item.id is not None]
            placeholders = ",".join("?" * len(keep))
            if keep:
                await db.execute(
                    f"""
                    DELETE FROM schedule_items
                    WHERE schedule_id = ? AND id NOT IN ({placeholders})
                    """,
                    [schedule_id, *keep],
                )
            else:
                await db.execute(
                    "DELETE FROM schedule_items WHERE schedule_id = ?", (schedule_id,)
                )
            for item in items:
                if item.id is None:
                    await self._insert_item(db, schedule_id, item)
                else:
                    await self._update_item(db, schedule_id, item)
            await db.commit()
            return schedule_id

    async def delete_document(self, user_id: str, week_start: date) -> bool:
        """Delete a week's document and items. Returns whether anything was deleted."""
        async with connect(self.db_path) as db:
            cursor = await db.execute(
                "DELETE FROM schedules WHERE user_id = ? AND week_start = ?",
                (user_id, week_start.isoformat()),
            )
            await db.commit()
            return cursor.rowcount > 0

    # Items

    async def create_item(self, user_id: str, week_start: date, item: ScheduleItem) -> int:
        """Insert an item into a week's document, creating the document if needed."""
        async with connect(self.db_path) as db:
            schedule_id = await self._ensure_document(db, user_id, week_start)
            item_id = await self._insert_item(db, schedule_id, item)
            await db.commit()
            return item_id

    async def get_item(self, item_id: int, user_id: str) -> ScheduleItem | None:
        """Get a user's persisted item by ID."""
        async with connect(self.db_path) as db:
            cursor = await db.execute(
                ITEM_SELECT + " WHERE si.id = ? AND s.user_id = ?",
                (item_id, user_id),
            )
            row = await cursor.fetchone()
            if row is None:
                return None
            return self._row_to_item(row)

    async def list_items_for_window(
        self, user_id: str, start: date, end: date
    ) -> list[ScheduleItem]:
        """List items that can have an occurrence in [start, end].

        That is every recurring item authored on or before ``end`` plus
        one-off items authored in the weeks touching the window.
        """
        async with connect(self.db_path) as db:
            cursor = await db.execute(
                ITEM_SELECT
                + """
                WHERE s.user_id = ? AND s.week_start <= ?
                  AND (si.is_recurring = 1 OR s.week_start >= ?)
                ORDER BY s.week_start, si.day, si.start_time, si.id
                """,
                (user_id, end.isoformat(), (start - timedelta(days=6)).isoformat()),
            )
            return [self._row_to_item(row) for row in await cursor.fetchall()]

    async def update_item(
        self, user_id: str, item: ScheduleItem, week_start: date | None = None
    ) -> None:
        """Update an item in place, moving it to another week when given."""
        if item.id is None:
            raise ValueError("Schedule item must have an ID to update")

        async with connect(self.db_path) as db:
            schedule_id = item.schedule_id
            if week_start is not None:
                schedule_id = await self._ensure_document(db, user_id, week_start)
            await self._update_item(db, schedule_id, item)
            await db.commit()

    async def set_series_end(self, item: ScheduleItem) -> None:
        """Persist a recurring item's new end date."""
        async with connect(self.db_path) as db:
            await self._update_item(db, item.schedule_id, item)
            await db.commit()

    async def delete_item(self, item_id: int) -> bool:
        """Delete an item (its exceptions cascade). Returns whether it existed."""
        async with connect(self.db_path) as db:
            cursor = await db.execute("DELETE FROM schedule_items WHERE id = ?", (item_id,))
            await db.commit()
            return cursor.rowcount > 0

    async def detach_occurrence(
        self, user_id: str, origin_id: int, on: date, replacement: ScheduleItem, week_start: date
    ) -> int:
        """Suppress one occurrence of a series and author a one-off item in its place.

        Returns:
            The new item's ID
        """
        async with connect(self.db_path) as db:
            await self._add_exception(db, origin_id, on)
            schedule_id = await self._ensure_document(db, user_id, week_start)
            item_id = await self._insert_item(db, schedule_id, replacement)
            await db.commit()
            return item_id

    async def split_series(
        self,
        user_id: str,
        original: ScheduleItem,
        successor: ScheduleItem,
        week_start: date,
        carried_exceptions: list[date] | None = None,
    ) -> int:
        """End a series and start its successor in one transaction.

        Suppressed dates that fall in the successor's range move with it.

        Returns:
            The successor's ID
        """
        async with connect(self.db_path) as db:
            await self._update_item(db, original.schedule_id, original)
            schedule_id = await self._ensure_document(db, user_id, week_start)
            item_id = await self._insert_item(db, schedule_id, successor)
            for on in carried_exceptions or []:
                await self._add_exception(db, item_id, on)
            await db.commit()
            return item_id

    # Exceptions

    async def add_exception(self, origin_id: int, on: date) -> bool:
        """Suppress one occurrence date. Returns False if it was already suppressed."""
        async with connect(self.db_path) as db:
            added = await self._add_exception(db, origin_id, on)
            await db.commit()
            return added

    async def list_exceptions(self, item_ids: list[int]) -> dict[int, set[date]]:
        """Suppressed dates keyed by origin item ID."""
        if not item_ids:
            return {}
        placeholders = ",".join("?" * len(item_ids))
        async with connect(self.db_path) as db:
            cursor = await db.execute(
                f"""
                SELECT item_id, occurrence_date FROM schedule_item_exceptions
                WHERE item_id IN ({placeholders})
                """,
                list(item_ids),
            )
            exceptions: dict[int, set[date]] = {}
            for row in await cursor.fetchall():
                exceptions.setdefault(row["item_id"], set()).add(
                    parse_date(row["occurrence_date"])
                )
            return exceptions

    # Helpers

    async def _ensure_document(
        self,
        db: aiosqlite.Connection,
        user_id: str,
        week_start: date,
        timezone: str = "UTC",
    ) -> int:
        await db.execute(
            """
            INSERT OR IGNORE INTO schedules (user_id, week_start, timezone)
            VALUES (?, ?, ?)
            """,
            (user_id, week_start.isoformat(), timezone),
        )
        cursor = await db.execute(
            "SELECT id FROM schedules WHERE user_id = ? AND week_start = ?",
            (user_id, week_start.isoformat()),
        )
        row = await cursor.fetchone()
        return row["id"]

    async def _add_exception(self, db: aiosqlite.Connection, origin_id: int, on: date) -> bool:
        cursor = await db.execute(
            """
            INSERT OR IGNORE INTO schedule_item_exceptions (item_id, occurrence_date)
            VALUES (?, ?)
            """,
            (origin_id, on.isoformat()),
        )
        return cursor.rowcount > 0

    async def _insert_item(
        self, db: aiosqlite.Connection, schedule_id: int, item: ScheduleItem
    ) -> int:
        cursor = await db.execute(
            """
            INSERT INTO schedule_items
            (schedule_id, type, title, description, day, start_time, end_time,
             category, calories, difficulty, duration, is_from_generator,
             generator_data, is_recurring, repeat_pattern, repeat_interval,
             repeat_ends_on, repeat_days_of_week, recurrence_rule)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (schedule_id, *self._item_values(item)),
        )
        return cursor.lastrowid

    async def _update_item(
        self, db: aiosqlite.Connection, schedule_id: int, item: ScheduleItem
    ) -> None:
        await db.execute(
            """
            UPDATE schedule_items SET
                schedule_id = ?, type = ?, title = ?, description = ?, day = ?,
                start_time = ?, end_time = ?, category = ?, calories = ?,
                difficulty = ?, duration = ?, is_from_generator = ?,
                generator_data = ?, is_recurring = ?, repeat_pattern = ?,
                repeat_interval = ?, repeat_ends_on = ?, repeat_days_of_week = ?,
                recurrence_rule = ?, updated_at = CURRENT_TIMESTAMP
            WHERE id = ?
            """,
            (schedule_id, *self._item_values(item), item.id),
        )

    def _item_values(self, item: ScheduleItem) -> tuple:
        """Column values for an item. The repeat_* columns always mirror the rule."""
        data = item.to_dict()
        return (
            data["type"],
            data["title"],
            data["description"],
            data["day"],
            data["start_time"],
            data["end_time"],
            data["category"],
            data["calories"],
            data["difficulty"],
            data["duration"],
            data["is_from_generator"],
            json.dumps(data["generator_data"]) if data["generator_data"] is not None else None,
            data["is_recurring"],
            data["repeat_pattern"],
            data["repeat_interval"],
            data["repeat_ends_on"],
            (
                json.dumps(data["repeat_days_of_week"])
                if data["repeat_days_of_week"] is not None
                else None
            ),
            (
                json.dumps(data["recurrence_rule"])
                if data["recurrence_rule"] is not None
                else None
            ),
        )

    def _row_to_item(self, row: aiosqlite.Row) -> ScheduleItem:
        """Convert a joined database row to a ScheduleItem.

        Rows with a rule that no longer parses still load, without the rule.
        """
        week_start = parse_date(row["week_start"])
        data = {
            "id": row["id"],
            "schedule_id": row["schedule_id"],
            "type": row["type"],
            "title": row["title"],
            "description": row["description"],
            "day": row["day"],
            "date": week_start + timedelta(days=row["day"]),
            "start_time": row["start_time"],
            "end_time": row["end_time"],
            "category": row["category"],
            "calories": row["calories"],
            "difficulty": row["difficulty"],
            "duration": row["duration"],
            "is_from_generator": bool(row["is_from_generator"]),
            "generator_data": _loads(row["generator_data"], row["id"]),
            "is_recurring": bool(row["is_recurring"]),
        }
        if row["recurrence_rule"]:
            data["recurrence_rule"] = _loads(row["recurrence_rule"], row["id"])
            if not isinstance(data["recurrence_rule"], dict):
                data["recurrence_rule"] = None
                data["is_recurring"] = False
        elif data["is_recurring"]:
            # Rows written before the rule column existed only carry flat fields
            data.update(
                {
                    "repeat_pattern": row["repeat_pattern"],
                    "repeat_interval": row["repeat_interval"],
                    "repeat_ends_on": row["repeat_ends_on"],
                    "repeat_days_of_week": _loads(row["repeat_days_of_week"], row["id"]),
                }
            )
        return ScheduleItem.from_dict(data, strict=False)


class ScheduleTemplateRepository:
    """Repository for saved schedule templates."""

    def __init__(self, db_path: Path | None = None):
        self.db_path = db_path or get_db_path()

    async def create(self, template: ScheduleTemplate) -> int:
        """Create a new schedule template."""
        data = template.to_dict()
        async with connect(self.db_path) as db:
            cursor = await db.execute(
                """
                INSERT INTO schedule_templates
                (user_id, name, description, items, is_default, is_public,
                 usage_count, metadata)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    data["user_id"],
                    data["name"],
                    data["description"],
                    json.dumps(data["items"]),
                    data["is_default"],
                    data["is_public"],
                    data["usage_count"],
                    json.dumps(data["metadata"]),
                ),
            )
            await db.commit()
            return cursor.lastrowid

    async def get(self, template_id: int, user_id: str) -> ScheduleTemplate | None:
        """Get a template the user owns or that is shared with everyone."""
        async with connect(self.db_path) as db:
            cursor = await db.execute(
                """
                SELECT * FROM schedule_templates
                WHERE id = ? AND (user_id = ? OR is_public = 1 OR is_default = 1)
                """,
                (template_id, user_id),
            )
            row = await cursor.fetchone()
            if row is None:
                return None
            return self._row_to_template(row)

    async def list_for_user(self, user_id: str) -> list[ScheduleTemplate]:
        """List the user's templates plus public and default ones."""
        async with connect(self.db_path) as db:
            cursor = await db.execute(
                """
                SELECT * FROM schedule_templates
                WHERE user_id = ? OR is_public = 1 OR is_default = 1
                ORDER BY is_default DESC, usage_count DESC, created_at DESC
                """,
                (user_id,),
            )
            rows = await cursor.fetchall()
            return [self._row_to_template(row) for row in rows]

    async def list_shared(self, limit: int) -> list[ScheduleTemplate]:
        """List default and public templates, defaults and popular ones first."""
        async with connect(self.db_path) as db:
            cursor = await db.execute(
                """
                SELECT * FROM schedule_templates
                WHERE is_default = 1 OR is_public = 1
                ORDER BY is_default DESC, usage_count DESC, created_at DESC
                LIMIT ?
                """,
                (limit,),
            )
            rows = await cursor.fetchall()
            return [self._row_to_template(row) for row in rows]

    async def count_defaults(self) -> int:
        """Count the bundled default templates."""
        async with connect(self.db_path) as db:
            cursor = await db.execute(
                "SELECT COUNT(*) FROM schedule_templates WHERE is_default = 1"
            )
            row = await cursor.fetchone()
            return row[0]

    async def update(self, template: ScheduleTemplate) -> None:
        """Update an existing template."""
        if template.id is None:
            raise ValueError("Schedule template must have an ID to update")

        data = template.to_dict()
        async with connect(self.db_path) as db:
            await db.execute(
                """
                UPDATE schedule_templates SET
                    name = ?, description = ?, items = ?, is_public = ?,
                    metadata = ?, updated_at = CURRENT_TIMESTAMP
                WHERE id = ? AND user_id = ?
                """,
                (
                    data["name"],
                    data["description"],
                    json.dumps(data["items"]),
                    data["is_public"],
                    json.dumps(data["metadata"]),
                    template.id,
                    template.user_id,
                ),
            )
            await db.commit()

    async def increment_usage(self, template_id: int) -> None:
        """Record that a template was applied to a week."""
        async with connect(self.db_path) as db:
            await db.execute(
                "UPDATE schedule_templates SET usage_count = usage_count + 1 WHERE id = ?",
                (template_id,),
            )
            await db.commit()

    async def delete(self, template_id: int, user_id: str) -> bool:
        """Delete one of the user's templates. Returns whether it existed."""
        async with connect(self.db_path) as db:
            cursor = await db.execute(
                "DELETE FROM schedule_templates WHERE id = ? AND user_id = ?",
                (template_id, user_id),
            )
            await db.commit()
            return cursor.rowcount > 0

    def _row_to_template(self, row: aiosqlite.Row) -> ScheduleTemplate:
        """Convert a database row to a ScheduleTemplate."""
        data = {
            "user_id": row["user_id"],
            "name": row["name"],
            "description": row["description"],
            "items": json.loads(row["items"] or "[]"),
            "is_default": bool(row["is_default"]),
            "is_public": bool(row["is_public"]),
            "usage_count": row["usage_count"],
            "metadata": json.loads(row["metadata"] or "{}"),
        }
        created_at = datetime.fromisoformat(row["created_at"]) if row["created_at"] else None
        return ScheduleTemplate.from_dict(data, id=row["id"], created_at=created_at)


def _loads(value: str | None, item_id: int):
    """Decode a JSON column, logging and returning None when it is corrupt."""
    if value is None:
        return None
    try:
        return json.loads(value)
    except ValueError:
        logger.warning("Unreadable JSON column on schedule item %s", item_id)
        return None
