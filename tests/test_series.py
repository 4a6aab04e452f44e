"""Tests for schedule item authoring and scoped series mutation."""

from datetime import date

import pytest

from fitcal.errors import NotFoundError, ScheduleValidationError
from fitcal.models.items import DeleteScope
from fitcal.services.series import ScheduleItemService, apply_changes

from .conftest import USER


@pytest.fixture
def service(db_path):
    return ScheduleItemService(db_path)


async def create_run(service, **extra):
    """A Tuesday run repeating weekly from 2024-01-02."""
    data = {
        "title": "Morning Run",
        "start_time": "06:30",
        "end_time": "07:15",
        "date": "2024-01-02",
        "repeat_pattern": "weekly",
        **extra,
    }
    return await service.create_schedule_item(USER, data)


async def dates_of(service, ref, start, end):
    return [o.occurrence_date for o in await service.occurrences(USER, ref, start, end)]


class TestCreate:
    """Tests for authoring items."""

    async def test_day_comes_from_date(self, service):
        """The stored day of week matches the item's date."""
        item = await create_run(service)
        assert item.id is not None
        assert item.day == 2
        assert item.occurrence_date == date(2024, 1, 2)
        assert item.is_recurring

    async def test_date_required(self, service):
        """Items cannot be authored without a date."""
        with pytest.raises(ScheduleValidationError, match="date"):
            await service.create_schedule_item(
                USER, {"title": "Swim", "start_time": "07:00", "end_time": "08:00"}
            )

    async def test_items_are_per_user(self, service):
        """Another user's item is not found."""
        item = await create_run(service)
        with pytest.raises(NotFoundError):
            await service.get_schedule_item("someone-else", str(item.id))

    async def test_get_occurrence(self, service):
        """A dated reference resolves to a virtual occurrence."""
        item = await create_run(service)
        occurrence = await service.get_schedule_item(USER, f"{item.id}@2024-01-16")
        assert occurrence.is_virtual
        assert occurrence.origin_id == item.id
        with pytest.raises(NotFoundError):
            await service.get_schedule_item(USER, f"{item.id}@2024-01-17")


class TestDelete:
    """Tests for scoped deletes."""

    async def test_future_ends_series_day_before(self, service):
        """Deleting from an occurrence onwards ends the series the day before."""
        item = await create_run(service, repeat_ends_on="2024-02-01")

        result = await service.delete_schedule_item(
            USER, f"{item.id}@2024-01-16", scope=DeleteScope.FUTURE
        )

        assert result.changed
        assert result.action == "series_ended"
        assert result.ends_on == date(2024, 1, 15)
        assert await dates_of(service, str(item.id), date(2024, 1, 1), date(2024, 2, 29)) == [
            date(2024, 1, 2),
            date(2024, 1, 9),
        ]

    async def test_future_twice_is_noop(self, service):
        """Repeating a future delete changes nothing the second time."""
        item = await create_run(service, repeat_ends_on="2024-01-10")
        result = await service.delete_schedule_item(
            USER, f"{item.id}@2024-01-09", scope=DeleteScope.FUTURE
        )
        assert result.ends_on == date(2024, 1, 8)

        again = await service.delete_schedule_item(
            USER, f"{item.id}@2024-01-09", scope=DeleteScope.FUTURE
        )
        assert not again.changed
        assert again.action == "noop"

    async def test_future_from_origin_deletes_series(self, service):
        """Deleting from the first occurrence removes the whole series."""
        item = await create_run(service)
        result = await service.delete_schedule_item(USER, str(item.id), scope=DeleteScope.FUTURE)
        assert result.action == "deleted"
        with pytest.raises(NotFoundError):
            await service.get_schedule_item(USER, str(item.id))

    async def test_future_returns_window(self, service):
        """A window re-expands what is left of the series."""
        item = await create_run(service)
        result = await service.delete_schedule_item(
            USER,
            f"{item.id}@2024-01-16",
            scope=DeleteScope.FUTURE,
            window=(date(2024, 1, 1), date(2024, 1, 31)),
        )
        assert [o.occurrence_date for o in result.occurrences] == [
            date(2024, 1, 2),
            date(2024, 1, 9),
        ]

    async def test_this_is_idempotent(self, service):
        """Suppressing the same occurrence twice changes nothing the second time."""
        item = await create_run(service)
        ref = f"{item.id}@2024-01-09"

        first = await service.delete_schedule_item(USER, ref, scope=DeleteScope.THIS)
        second = await service.delete_schedule_item(USER, ref, scope=DeleteScope.THIS)

        assert first.changed and first.action == "exception_added"
        assert not second.changed
        assert await dates_of(service, str(item.id), date(2024, 1, 1), date(2024, 1, 21)) == [
            date(2024, 1, 2),
            date(2024, 1, 16),
        ]

    async def test_this_on_non_occurrence(self, service):
        """A date the series never fires on is a no-op."""
        item = await create_run(service)
        result = await service.delete_schedule_item(USER, f"{item.id}@2024-01-10")
        assert not result.changed

    async def test_all_removes_series(self, service):
        """Deleting all removes the origin, and repeating it is a no-op."""
        item = await create_run(service)
        result = await service.delete_schedule_item(
            USER, f"{item.id}@2024-01-16", scope=DeleteScope.ALL
        )
        assert result.action == "deleted"
        again = await service.delete_schedule_item(USER, str(item.id), scope=DeleteScope.ALL)
        assert not again.changed

    async def test_one_off_item(self, service):
        """A non-recurring item is deleted outright."""
        item = await service.create_schedule_item(
            USER,
            {"title": "Swim", "start_time": "07:00", "end_time": "08:00", "date": "2024-01-05"},
        )
        result = await service.delete_schedule_item(USER, str(item.id))
        assert result.changed
        assert not (await service.delete_schedule_item(USER, str(item.id))).changed

    async def test_bad_reference(self, service):
        """Malformed references are rejected."""
        with pytest.raises(ScheduleValidationError):
            await service.delete_schedule_item(USER, "twelve")


class TestUpdate:
    """Tests for scoped edits."""

    async def test_this_detaches_occurrence(self, service):
        """Editing one occurrence leaves a one-off item in its place."""
        item = await create_run(service)

        result = await service.update_schedule_item(
            USER, f"{item.id}@2024-01-09", {"title": "Track Session"}, scope=DeleteScope.THIS
        )

        assert result.action == "detached"
        assert result.item.title == "Track Session"
        assert result.item.occurrence_date == date(2024, 1, 9)
        assert not result.item.is_recurring
        assert await dates_of(service, str(item.id), date(2024, 1, 1), date(2024, 1, 21)) == [
            date(2024, 1, 2),
            date(2024, 1, 16),
        ]
        week = await service.get_week(USER, date(2024, 1, 7))
        assert [i.title for i in week.items] == ["Track Session"]

    async def test_this_can_move_date(self, service):
        """A detached occurrence can move to another day."""
        item = await create_run(service)
        result = await service.update_schedule_item(
            USER, f"{item.id}@2024-01-09", {"date": "2024-01-10"}, scope=DeleteScope.THIS
        )
        assert result.item.occurrence_date == date(2024, 1, 10)
        assert result.item.day == 3

    async def test_future_splits_series(self, service):
        """Editing from an occurrence onwards starts a new series there."""
        item = await create_run(service)
        await service.delete_schedule_item(USER, f"{item.id}@2024-01-23")

        result = await service.update_schedule_item(
            USER,
            f"{item.id}@2024-01-16",
            {"start_time": "06:00", "end_time": "06:45"},
            scope=DeleteScope.FUTURE,
        )

        assert result.action == "split"
        assert result.ends_on == date(2024, 1, 15)
        successor = result.item
        assert successor.id != item.id
        assert successor.start_time == "06:00"
        assert successor.occurrence_date == date(2024, 1, 16)
        assert await dates_of(service, str(item.id), date(2024, 1, 1), date(2024, 1, 31)) == [
            date(2024, 1, 2),
            date(2024, 1, 9),
        ]
        # The suppressed 23rd stays suppressed on the new series
        assert await dates_of(
            service, str(successor.id), date(2024, 1, 14), date(2024, 2, 3)
        ) == [date(2024, 1, 16), date(2024, 1, 30)]

    async def test_future_at_origin_updates_in_place(self, service):
        """Editing the future from the first occurrence edits the series."""
        item = await create_run(service)
        result = await service.update_schedule_item(
            USER, str(item.id), {"title": "Easy Run"}, scope=DeleteScope.FUTURE
        )
        assert result.action == "updated"
        assert result.item.id == item.id

    async def test_all_updates_every_occurrence(self, service):
        """Editing all changes the origin and so every occurrence."""
        item = await create_run(service)
        await service.update_schedule_item(
            USER, f"{item.id}@2024-01-16", {"title": "Easy Run"}, scope=DeleteScope.ALL
        )
        occurrences = await service.occurrences(
            USER, str(item.id), date(2024, 1, 1), date(2024, 1, 21)
        )
        assert {o.title for o in occurrences} == {"Easy Run"}

    async def test_flat_end_keeps_pattern(self, service):
        """Changing only the end date keeps the rest of the rule."""
        item = await create_run(service, repeat_days_of_week=[2, 4])
        result = await service.update_schedule_item(
            USER, str(item.id), {"repeat_ends_on": "2024-01-09"}
        )
        assert result.item.recurrence_rule.days_of_week == [2, 4]
        assert await dates_of(service, str(item.id), date(2024, 1, 1), date(2024, 1, 31)) == [
            date(2024, 1, 2),
            date(2024, 1, 4),
            date(2024, 1, 9),
        ]

    async def test_missing_occurrence(self, service):
        """Editing a date the series does not fire on is not found."""
        item = await create_run(service)
        with pytest.raises(NotFoundError):
            await service.update_schedule_item(
                USER, f"{item.id}@2024-01-10", {"title": "x"}, scope=DeleteScope.THIS
            )

    async def test_invalid_change_writes_nothing(self, service):
        """A change that breaks validation leaves the item untouched."""
        item = await create_run(service)
        with pytest.raises(ScheduleValidationError):
            await service.update_schedule_item(USER, str(item.id), {"start_time": "noon"})
        stored = await service.get_schedule_item(USER, str(item.id))
        assert stored.start_time == "06:30"


class TestApplyChanges:
    """Tests for folding changes into an item."""

    def test_touching_rule_makes_recurring(self, weekly_item):
        """Setting a repeat field on a one-off item makes it recurring."""
        one_off = apply_changes(weekly_item, {"is_recurring": False})
        assert not one_off.is_recurring

        again = apply_changes(one_off, {"repeat_pattern": "daily"})
        assert again.is_recurring
        assert again.recurrence_rule.frequency.value == "daily"

    def test_placement_is_ignored(self, weekly_item):
        """Ids and refs in the changes never overwrite identity."""
        changed = apply_changes(weekly_item, {"id": 99, "ref": "99", "title": "New"}, id=1)
        assert changed.id == 1
        assert changed.title == "New"


class TestWeeks:
    """Tests for weekly schedule documents."""

    async def test_week_includes_earlier_series(self, service):
        """A later week shows virtual occurrences of a series started earlier."""
        item = await create_run(service)
        week = await service.get_week(USER, date(2024, 1, 17))

        assert week.week_start == date(2024, 1, 14)
        assert week.id is None
        assert [i.ref for i in week.items] == [f"{item.id}@2024-01-16"]

    async def test_concrete_item_wins_duplicate(self, service):
        """An authored item hides the identical virtual occurrence."""
        await create_run(service)
        twin = await service.create_schedule_item(
            USER,
            {"title": "Morning Run", "start_time": "06:30", "end_time": "07:15", "date": "2024-01-16"},
        )
        week = await service.get_week(USER, date(2024, 1, 14))
        assert [i.id for i in week.items] == [twin.id]
        assert not week.items[0].is_virtual

    async def test_identical_one_offs_both_shown(self, service):
        """Two authored items with the same title, time and day are both kept."""
        for _ in range(2):
            await service.create_schedule_item(
                USER, {"title": "Snack", "start_time": "10:00", "end_time": "10:15", "date": "2024-01-02"}
            )
        week = await service.get_week(USER, date(2023, 12, 31))
        assert [i.title for i in week.items] == ["Snack", "Snack"]

        saved = await service.save_week(USER, date(2023, 12, 31), [i.to_dict() for i in week.items])
        assert len(saved.items) == 2
        assert len({i.id for i in saved.items}) == 2

    async def test_save_week_rejects_bad_day(self, service):
        """An out of range day is a validation error before any date math."""
        with pytest.raises(ScheduleValidationError, match="Invalid day"):
            await service.save_week(
                USER,
                date(2024, 1, 7),
                [{"title": "Stretch", "day": 9, "start_time": "07:00", "end_time": "08:00"}],
            )

    async def test_save_week_keeps_exceptions(self, service):
        """Re-saving a week updates items in place so suppressed dates survive."""
        item = await create_run(service)
        await service.delete_schedule_item(USER, f"{item.id}@2024-01-09")
        week = await service.get_week(USER, date(2023, 12, 31))

        payload = [i.to_dict() for i in week.items]
        payload.append({"title": "Stretch", "day": 5, "start_time": "20:00", "end_time": "20:20"})
        saved = await service.save_week(USER, date(2023, 12, 31), payload)

        assert [i.title for i in saved.items] == ["Morning Run", "Stretch"]
        assert saved.items[0].id == item.id
        assert saved.items[1].occurrence_date == date(2024, 1, 5)
        assert await dates_of(service, str(item.id), date(2024, 1, 1), date(2024, 1, 21)) == [
            date(2024, 1, 2),
            date(2024, 1, 16),
        ]

    async def test_save_week_drops_missing_items(self, service):
        """Items left out of the payload are deleted."""
        item = await create_run(service)
        await service.save_week(USER, date(2024, 1, 2), [])
        with pytest.raises(NotFoundError):
            await service.get_schedule_item(USER, str(item.id))

    async def test_save_week_rejects_invalid(self, service):
        """One invalid item rejects the whole save."""
        with pytest.raises(ScheduleValidationError):
            await service.save_week(
                USER,
                date(2024, 1, 7),
                [{"title": "", "day": 1, "start_time": "07:00", "end_time": "08:00"}],
            )
        assert (await service.get_week(USER, date(2024, 1, 7))).id is None

    async def test_clear_week(self, service):
        """Clearing removes the document, a second clear finds nothing."""
        await create_run(service)
        assert await service.clear_week(USER, date(2024, 1, 3))
        assert not await service.clear_week(USER, date(2024, 1, 3))
