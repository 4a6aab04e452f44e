"""Tests for the SQLite repositories and seeding."""

import json
from datetime import date, datetime

import pytest

from fitcal.data.template_loader import load_default_templates, seed_default_templates
from fitcal.data.workout_loader import load_workout_templates, seed_workout_templates
from fitcal.db import (
    CompletedDayRepository,
    ScheduleRepository,
    WorkoutSessionRepository,
    WorkoutTemplateRepository,
    connect,
    init_db,
)
from fitcal.models.items import RecurrenceRule, ScheduleItem
from fitcal.models.schedule import CompletedDay
from fitcal.models.workouts import SessionStatus, WorkoutSession
from fitcal.services.recurrence import expand_item

from .conftest import USER

WEEK = date(2023, 12, 31)


def run_item(**kwargs) -> ScheduleItem:
    return ScheduleItem(
        title="Morning Run",
        day=2,
        start_time="06:30",
        end_time="07:15",
        is_recurring=True,
        recurrence_rule=RecurrenceRule(days_of_week=[2, 4]),
        **kwargs,
    )


async def insert_raw_item(db_path, **columns):
    """Write an item row directly, bypassing the model."""
    async with connect(db_path) as db:
        await db.execute(
            "INSERT OR IGNORE INTO schedules (user_id, week_start) VALUES (?, ?)",
            (USER, WEEK.isoformat()),
        )
        cursor = await db.execute(
            "SELECT id FROM schedules WHERE user_id = ? AND week_start = ?",
            (USER, WEEK.isoformat()),
        )
        schedule_id = (await cursor.fetchone())["id"]
        names = ["schedule_id", "title", "day", "start_time", "end_time", *columns]
        cursor = await db.execute(
            f"INSERT INTO schedule_items ({', '.join(names)}) "
            f"VALUES ({', '.join('?' * len(names))})",
            [schedule_id, "Legacy", 2, "06:00", "07:00", *columns.values()],
        )
        await db.commit()
        return cursor.lastrowid


class TestInit:
    """Tests for schema creation and seeding."""

    async def test_init_is_idempotent(self, temp_db_path):
        """Running init twice keeps the data."""
        await init_db(temp_db_path)
        await seed_workout_templates(temp_db_path)
        await init_db(temp_db_path)
        assert await WorkoutTemplateRepository(temp_db_path).count() == 9

    async def test_schema_created_complete(self, db_path):
        """A new database has every column without any upgrade step."""
        async with connect(db_path) as db:
            columns = {}
            for table in ("schedules", "schedule_items", "completed_days"):
                cursor = await db.execute(f"PRAGMA table_info({table})")
                columns[table] = {row[1] for row in await cursor.fetchall()}
        assert "timezone" in columns["schedules"]
        assert {"is_from_generator", "generator_data"} <= columns["schedule_items"]
        assert {"date", "status", "notes"} <= columns["completed_days"]

    async def test_seed_only_empty_library(self, db_path):
        """Seeding a populated library inserts nothing."""
        assert await seed_workout_templates(db_path) == 9
        assert await seed_workout_templates(db_path) == 0

    def test_bundled_library(self):
        """The bundled JSON parses into templates with exercises."""
        templates = load_workout_templates()
        assert "Push Day" in {t.name for t in templates}
        assert all(t.exercises for t in templates)

    def test_invalid_entries_skipped(self, tmp_path):
        """Entries missing a name are skipped."""
        path = tmp_path / "workouts.json"
        path.write_text(json.dumps({"templates": [{"name": "Ok"}, {"category": "broken"}]}))
        assert [t.name for t in load_workout_templates(path)] == ["Ok"]

    async def test_default_templates_seeded_once(self, db_path):
        """Default schedule templates are only seeded when none exist."""
        assert await seed_default_templates(db_path) == 3
        assert await seed_default_templates(db_path) == 0

    def test_bundled_default_templates(self):
        """Bundled schedule templates load as shared defaults."""
        templates = load_default_templates()
        assert {t.name for t in templates} >= {"Full Body Three Days", "Upper Lower Split"}
        assert all(t.is_default and t.user_id is None for t in templates)
        assert all(t.metadata["source"] == "default" for t in templates)

    def test_invalid_default_templates_skipped(self, tmp_path):
        """Templates without a name or with a bad item are skipped."""
        path = tmp_path / "templates.json"
        path.write_text(
            json.dumps(
                {
                    "templates": [
                        {"name": "Ok", "items": []},
                        {"description": "no name"},
                        {"name": "Bad day", "items": [{"title": "Lift", "day": 9, "start_time": "07:00", "end_time": "08:00"}]},
                    ]
                }
            )
        )
        assert [t.name for t in load_default_templates(path)] == ["Ok"]


class TestWorkoutRepositories:
    """Tests for workout templates and sessions."""

    async def test_user_templates_private(self, seeded_db_path, workout_library):
        """Users see predefined templates plus only their own."""
        repo = WorkoutTemplateRepository(seeded_db_path)
        mine = workout_library["Push Day"]
        mine.id = None
        mine.user_id = "someone-else"
        mine.name = "Their Push"
        await repo.create(mine)

        names = {t.name for t in await repo.list_for_user(USER)}
        assert "Their Push" not in names
        assert len(names) == 9

    async def test_sessions_between_dates(self, db_path):
        """Sessions are selected by the date they started on."""
        repo = WorkoutSessionRepository(db_path)
        for day in (1, 7, 8):
            await repo.create(
                WorkoutSession(user_id=USER, name="Run", start_time=datetime(2024, 1, day, 23, 30))
            )
        sessions = await repo.list_between(USER, date(2024, 1, 1), date(2024, 1, 7))
        assert [s.start_time.day for s in sessions] == [1, 7]
        assert sessions[0].status == SessionStatus.COMPLETED


class TestScheduleRepository:
    """Tests for schedule documents, items and exceptions."""

    async def test_item_round_trip(self, db_path):
        """Stored items come back with their date and rule."""
        repo = ScheduleRepository(db_path)
        item_id = await repo.create_item(USER, WEEK, run_item())
        stored = await repo.get_item(item_id, USER)

        assert stored.occurrence_date == date(2024, 1, 2)
        assert stored.recurrence_rule.days_of_week == [2, 4]
        assert await repo.get_item(item_id, "someone-else") is None

    async def test_flat_columns_mirror_rule(self, db_path):
        """The repeat_* columns are written from the rule."""
        repo = ScheduleRepository(db_path)
        item_id = await repo.create_item(USER, WEEK, run_item())
        async with connect(db_path) as db:
            cursor = await db.execute(
                "SELECT repeat_pattern, repeat_days_of_week FROM schedule_items WHERE id = ?",
                (item_id,),
            )
            row = await cursor.fetchone()
        assert row["repeat_pattern"] == "weekly"
        assert json.loads(row["repeat_days_of_week"]) == [2, 4]

    async def test_exceptions(self, db_path):
        """Exceptions are unique per date and cascade with the item."""
        repo = ScheduleRepository(db_path)
        item_id = await repo.create_item(USER, WEEK, run_item())

        assert await repo.add_exception(item_id, date(2024, 1, 9))
        assert not await repo.add_exception(item_id, date(2024, 1, 9))
        assert await repo.list_exceptions([item_id]) == {item_id: {date(2024, 1, 9)}}

        assert await repo.delete_item(item_id)
        assert await repo.list_exceptions([item_id]) == {}
        assert not await repo.delete_item(item_id)

    async def test_window_query(self, db_path):
        """Recurring items from earlier weeks are included, old one-offs are not."""
        repo = ScheduleRepository(db_path)
        await repo.create_item(USER, WEEK, run_item())
        await repo.create_item(
            USER, WEEK, ScheduleItem(title="Swim", day=3, start_time="07:00", end_time="08:00")
        )
        items = await repo.list_items_for_window(USER, date(2024, 2, 1), date(2024, 2, 10))
        assert [i.title for i in items] == ["Morning Run"]

    async def test_corrupt_rule_loads_as_one_off(self, db_path):
        """A rule column that is not valid JSON leaves a single occurrence."""
        item_id = await insert_raw_item(db_path, is_recurring=1, recurrence_rule="{not json")
        item = await ScheduleRepository(db_path).get_item(item_id, USER)

        assert item.recurrence_rule is None
        assert [e.occurrence_date for e in expand_item(item, WEEK, date(2024, 1, 31))] == [
            date(2024, 1, 2)
        ]

    async def test_legacy_flat_columns(self, db_path):
        """Rows without a rule column use the flat repeat fields."""
        item_id = await insert_raw_item(
            db_path,
            is_recurring=1,
            repeat_pattern="weekly",
            repeat_interval=1,
            repeat_days_of_week="[2]",
        )
        item = await ScheduleRepository(db_path).get_item(item_id, USER)
        dates = [e.occurrence_date for e in expand_item(item, WEEK, date(2024, 1, 20))]
        assert dates == [date(2024, 1, 2), date(2024, 1, 9), date(2024, 1, 16)]

    async def test_unknown_pattern_degrades(self, db_path):
        """A flat pattern that no longer parses drops the rule."""
        item_id = await insert_raw_item(db_path, is_recurring=1, repeat_pattern="monthly")
        item = await ScheduleRepository(db_path).get_item(item_id, USER)
        assert item.recurrence_rule is None
        assert len(expand_item(item, WEEK, date(2024, 2, 29))) == 1

    async def test_document_unique_per_week(self, db_path):
        """Items in the same week share one document."""
        repo = ScheduleRepository(db_path)
        await repo.create_item(USER, WEEK, run_item())
        await repo.create_item(
            USER, WEEK, ScheduleItem(title="Swim", day=3, start_time="07:00", end_time="08:00")
        )
        document = await repo.get_document(USER, WEEK)
        assert [i.title for i in document.items] == ["Morning Run", "Swim"]
        assert await repo.delete_document(USER, WEEK)
        assert await repo.get_document(USER, WEEK) is None


class TestCompletedDayRepository:
    """Tests for completed day records."""

    async def test_upsert_one_row_per_date(self, db_path):
        """Marking a date twice updates the same row."""
        repo = CompletedDayRepository(db_path)
        first = await repo.upsert(CompletedDay(user_id=USER, date=WEEK, notes="easy"))
        second = await repo.upsert(CompletedDay(user_id=USER, date=WEEK, status="skipped"))

        assert second.id == first.id
        assert (second.status, second.notes) == ("skipped", "easy")
        assert len(await repo.list_for_user(USER)) == 1

    async def test_between_keyed_by_date(self, db_path):
        """Window reads are inclusive and keyed by date."""
        repo = CompletedDayRepository(db_path)
        for on in (WEEK, date(2024, 1, 6), date(2024, 1, 7)):
            await repo.upsert(CompletedDay(user_id=USER, date=on))

        found = await repo.list_between(USER, WEEK, date(2024, 1, 6))
        assert sorted(found) == [WEEK, date(2024, 1, 6)]

    async def test_delete(self, db_path):
        """Deleting reports whether a record existed."""
        repo = CompletedDayRepository(db_path)
        await repo.upsert(CompletedDay(user_id=USER, date=WEEK))
        assert await repo.delete(USER, WEEK)
        assert not await repo.delete(USER, WEEK)


@pytest.mark.parametrize("user", ["", "someone-else"])
async def test_empty_for_unknown_users(db_path, user):
    """Users with nothing stored get empty results."""
    repo = ScheduleRepository(db_path)
    assert await repo.list_items_for_window(user, WEEK, date(2024, 1, 6)) == []
    assert await repo.get_document(user, WEEK) is None
    assert await CompletedDayRepository(db_path).list_for_user(user) == []
