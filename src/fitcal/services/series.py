"""Schedule item authoring and partial-series mutation.

A recurring item is stored once, as the origin of its series. Editing or
deleting part of a series never touches virtual occurrences directly:

* ``this`` suppresses one occurrence date (and for edits authors a
  one-off item on that date),
* ``future`` ends the series the day before the target (and for edits
  starts a new series on the target date),
* ``all`` acts on the origin.
"""

import logging
from dataclasses import dataclass, field, replace
from datetime import date, timedelta
from pathlib import Path

from ..config import get_settings
from ..db.repositories import ScheduleRepository
from ..errors import NotFoundError, ScheduleValidationError
from ..models.items import DeleteScope, OccurrenceRef, ScheduleItem
from ..models.schedule import ScheduleDocument
from ..utils.dates import day_of_week, parse_date, week_start_for
from .calendar import validate_window
from .recurrence import expand_item, expand_items, is_occurrence

logger = logging.getLogger(__name__)

FLAT_RULE_FIELDS = {
    "repeat_pattern": "frequency",
    "repeat_interval": "interval",
    "repeat_ends_on": "ends_on",
    "repeat_days_of_week": "days_of_week",
}

# Keys describing where an item lives rather than what it is
PLACEMENT_FIELDS = ("id", "ref", "schedule_id", "date", "is_virtual", "origin_id")


@dataclass
class MutationResult:
    """Outcome of a scoped edit or delete."""

    changed: bool
    action: str
    scope: DeleteScope
    ref: str
    item: ScheduleItem | None = None
    ends_on: date | None = None
    occurrences: list[ScheduleItem] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "changed": self.changed,
            "action": self.action,
            "scope": self.scope.value,
            "ref": self.ref,
            "item": self.item.to_dict() if self.item else None,
            "ends_on": self.ends_on.isoformat() if self.ends_on else None,
            "occurrences": [o.to_dict() for o in self.occurrences],
        }


def _item_date(data: dict, fallback: date | None = None) -> date | None:
    """Read the ``date`` field of an item payload."""
    value = data.get("date")
    if value is None or value == "":
        return fallback
    try:
        return parse_date(value)
    except ValueError as e:
        raise ScheduleValidationError(str(e)) from None


def apply_changes(base: ScheduleItem, changes: dict, **overrides) -> ScheduleItem:
    """Build a new item from ``base`` with field changes applied.

    Flat ``repeat_*`` changes are folded into the existing rule so that
    changing only the end date keeps the pattern, days and metadata.

    Raises:
        ScheduleValidationError: If the merged item has an invalid rule
    """
    data = base.to_dict()
    for key in (*PLACEMENT_FIELDS, *FLAT_RULE_FIELDS):
        data.pop(key, None)

    changes = {k: v for k, v in changes.items() if k not in PLACEMENT_FIELDS}
    touches_rule = "recurrence_rule" in changes or any(k in changes for k in FLAT_RULE_FIELDS)
    if "recurrence_rule" not in changes:
        flat = {FLAT_RULE_FIELDS[k]: changes.pop(k) for k in list(changes) if k in FLAT_RULE_FIELDS}
        if flat:
            rule = dict(data.get("recurrence_rule") or {})
            rule.update(flat)
            data["recurrence_rule"] = rule
    if touches_rule and "is_recurring" not in changes:
        data["is_recurring"] = True

    data.update(changes)
    data.update(overrides)
    return ScheduleItem.from_dict(data)


class ScheduleItemService:
    """Authoring, reading and scoped mutation of schedule items."""

    def __init__(self, db_path: Path | None = None):
        self.settings = get_settings()
        self.repo = ScheduleRepository(db_path)

    async def create_schedule_item(
        self, user_id: str, data: dict, on: date | None = None
    ) -> ScheduleItem:
        """Author a new item on a date.

        The item's day of week is derived from the date and the item is
        stored in the schedule document of that date's week.

        Raises:
            ScheduleValidationError: If the date is missing or the item is invalid
        """
        on = on or _item_date(data)
        if on is None:
            raise ScheduleValidationError("Item date is required")

        item = ScheduleItem.from_dict(
            {k: v for k, v in data.items() if k not in PLACEMENT_FIELDS},
            date=on,
            day=day_of_week(on),
        )
        item.validate()

        item_id = await self.repo.create_item(user_id, week_start_for(on), item)
        logger.info("Created schedule item %s on %s for user %s", item_id, on, user_id)
        return await self._require(user_id, item_id)

    async def get_schedule_item(self, user_id: str, ref: str) -> ScheduleItem:
        """Resolve a reference to the origin item or one of its occurrences.

        Raises:
            NotFoundError: If the item does not exist or does not fire on the date
        """
        target = OccurrenceRef.parse(ref)
        origin = await self._require(user_id, target.origin_id)
        if target.occurrence_date is None or target.occurrence_date == origin.occurrence_date:
            return origin

        exceptions = (await self.repo.list_exceptions([origin.id])).get(origin.id, set())
        if target.occurrence_date in exceptions or not is_occurrence(
            origin, target.occurrence_date
        ):
            raise NotFoundError(f"Schedule item {target} does not occur on that date")
        return origin.occurrence(target.occurrence_date)

    async def occurrences(
        self, user_id: str, ref: str, start: date, end: date
    ) -> list[ScheduleItem]:
        """Expand one item's series over a window.

        Raises:
            ScheduleValidationError: If the window is reversed or too long
            NotFoundError: If the item does not exist
        """
        validate_window(start, end, self.settings.max_calendar_range_days)
        origin = await self._require(user_id, OccurrenceRef.parse(ref).origin_id)
        exceptions = await self.repo.list_exceptions([origin.id])
        return expand_item(origin, start, end, exceptions.get(origin.id, ()))

    async def delete_schedule_item(
        self,
        user_id: str,
        ref: str,
        scope: DeleteScope = DeleteScope.THIS,
        window: tuple[date, date] | None = None,
    ) -> MutationResult:
        """Delete one occurrence, the rest of a series, or the whole series.

        Deleting something that is already gone is a no-op with
        ``changed`` False, never an error. The cutoff for ``future`` is
        worked out before anything is written, and each scope performs a
        single write.

        Args:
            user_id: Owner of the item
            ref: ``"12"`` for an origin item or ``"12@2024-01-16"`` for an occurrence
            scope: How much of the series to delete
            window: Optional (start, end) to re-expand the series over afterwards

        Raises:
            ScheduleValidationError: If the reference or window is malformed
        """
        target = OccurrenceRef.parse(ref)
        scope = DeleteScope(scope)
        if window is not None:
            validate_window(*window, self.settings.max_calendar_range_days)

        def noop() -> MutationResult:
            return MutationResult(changed=False, action="noop", scope=scope, ref=str(target))

        origin = await self.repo.get_item(target.origin_id, user_id)
        if origin is None:
            return noop()

        on = target.occurrence_date or origin.occurrence_date

        if not origin.is_recurring:
            if on != origin.occurrence_date:
                return noop()
            deleted = await self.repo.delete_item(origin.id)
            logger.info("Deleted schedule item %s for user %s", origin.id, user_id)
            return MutationResult(changed=deleted, action="deleted", scope=scope, ref=str(target))

        if scope != DeleteScope.ALL and not is_occurrence(origin, on):
            return noop()

        if scope == DeleteScope.THIS:
            added = await self.repo.add_exception(origin.id, on)
            if not added:
                return noop()
            logger.info("Suppressed occurrence %s@%s for user %s", origin.id, on, user_id)
            result = MutationResult(
                changed=True, action="exception_added", scope=scope, ref=str(target), item=origin
            )

        elif scope == DeleteScope.FUTURE:
            cutoff = on - timedelta(days=1)
            if cutoff < origin.occurrence_date:
                await self.repo.delete_item(origin.id)
                logger.info("Deleted series %s for user %s", origin.id, user_id)
                return MutationResult(changed=True, action="deleted", scope=scope, ref=str(target))

            current_end = origin.recurrence_rule.ends_on
            new_end = cutoff if current_end is None else min(current_end, cutoff)
            if new_end == current_end:
                return noop()
            ended = replace(origin, recurrence_rule=origin.recurrence_rule.with_end(new_end))
            await self.repo.set_series_end(ended)
            logger.info("Ended series %s on %s for user %s", origin.id, new_end, user_id)
            result = MutationResult(
                changed=True,
                action="series_ended",
                scope=scope,
                ref=str(target),
                item=ended,
                ends_on=new_end,
            )

        else:
            await self.repo.delete_item(origin.id)
            logger.info("Deleted series %s for user %s", origin.id, user_id)
            return MutationResult(changed=True, action="deleted", scope=scope, ref=str(target))

        if window is not None:
            exceptions = await self.repo.list_exceptions([origin.id])
            result.occurrences = expand_item(
                result.item, window[0], window[1], exceptions.get(origin.id, ())
            )
        return result

    async def update_schedule_item(
        self,
        user_id: str,
        ref: str,
        changes: dict,
        scope: DeleteScope = DeleteScope.ALL,
    ) -> MutationResult:
        """Edit one occurrence, the rest of a series, or the whole series.

        Raises:
            ScheduleValidationError: If the changes produce an invalid item
            NotFoundError: If the item or occurrence does not exist
        """
        target = OccurrenceRef.parse(ref)
        scope = DeleteScope(scope)
        origin = await self._require(user_id, target.origin_id)
        on = target.occurrence_date or origin.occurrence_date

        if target.occurrence_date is not None and on != origin.occurrence_date:
            exceptions = (await self.repo.list_exceptions([origin.id])).get(origin.id, set())
            if on in exceptions or not is_occurrence(origin, on):
                raise NotFoundError(f"Schedule item {target} does not occur on that date")

        in_place = (
            not origin.is_recurring
            or scope == DeleteScope.ALL
            or (scope == DeleteScope.FUTURE and on == origin.occurrence_date)
        )

        if in_place:
            new_date = _item_date(changes, origin.occurrence_date)
            updated = apply_changes(
                origin,
                changes,
                id=origin.id,
                schedule_id=origin.schedule_id,
                date=new_date,
                day=day_of_week(new_date),
            )
            updated.validate()
            moved_to = week_start_for(new_date) if new_date != origin.occurrence_date else None
            await self.repo.update_item(user_id, updated, moved_to)
            logger.info("Updated schedule item %s for user %s", origin.id, user_id)
            item = await self._require(user_id, origin.id)
            return MutationResult(
                changed=True, action="updated", scope=scope, ref=str(target), item=item
            )

        new_date = _item_date(changes, on)

        if scope == DeleteScope.THIS:
            replacement = apply_changes(
                origin,
                changes,
                is_recurring=False,
                recurrence_rule=None,
                date=new_date,
                day=day_of_week(new_date),
            )
            replacement.validate()
            item_id = await self.repo.detach_occurrence(
                user_id, origin.id, on, replacement, week_start_for(new_date)
            )
            logger.info(
                "Detached occurrence %s@%s as item %s for user %s", origin.id, on, item_id, user_id
            )
            item = await self._require(user_id, item_id)
            return MutationResult(
                changed=True, action="detached", scope=scope, ref=str(target), item=item
            )

        cutoff = on - timedelta(days=1)
        current_end = origin.recurrence_rule.ends_on
        ended = replace(
            origin,
            recurrence_rule=origin.recurrence_rule.with_end(
                cutoff if current_end is None else min(current_end, cutoff)
            ),
        )
        successor = apply_changes(origin, changes, date=new_date, day=day_of_week(new_date))
        successor.validate()
        carried = [
            d
            for d in (await self.repo.list_exceptions([origin.id])).get(origin.id, set())
            if d >= new_date
        ]
        item_id = await self.repo.split_series(
            user_id, ended, successor, week_start_for(new_date), carried
        )
        logger.info(
            "Split series %s at %s into new series %s for user %s", origin.id, on, item_id, user_id
        )
        item = await self._require(user_id, item_id)
        return MutationResult(
            changed=True,
            action="split",
            scope=scope,
            ref=str(target),
            item=item,
            ends_on=ended.recurrence_rule.ends_on,
        )

    async def get_week(self, user_id: str, week_start: date) -> ScheduleDocument:
        """A week's schedule: its own items plus occurrences of earlier series.

        Every item stored in the week is returned. A virtual occurrence is
        left out when an entry with the same title, start time and day is
        already shown.
        """
        week_start = week_start_for(week_start)
        week_end = week_start + timedelta(days=6)

        document = await self.repo.get_document(user_id, week_start)
        items = await self.repo.list_items_for_window(user_id, week_start, week_end)
        exceptions = await self.repo.list_exceptions([i.id for i in items if i.is_recurring])

        expanded = expand_items(items, week_start, week_end, exceptions)
        entries = [e for e in expanded if not e.is_virtual]
        seen = {e.signature for e in entries}
        for entry in expanded:
            if not entry.is_virtual or entry.signature in seen:
                continue
            seen.add(entry.signature)
            entries.append(entry)
        entries.sort(key=lambda e: (e.occurrence_date, e.start_time))

        return ScheduleDocument(
            id=document.id if document else None,
            user_id=user_id,
            week_start=week_start,
            timezone=document.timezone if document else self.settings.default_timezone,
            items=entries,
        )

    async def save_week(
        self,
        user_id: str,
        week_start: date,
        items: list[dict],
        timezone: str | None = None,
    ) -> ScheduleDocument:
        """Replace a week's authored items.

        Items carrying the id of an item already in the week are updated
        in place, so their suppressed dates survive. Items without a
        known id are created, and week items missing from the payload are
        deleted. Virtual occurrences in the payload are ignored.

        Raises:
            ScheduleValidationError: If any item is invalid (nothing is written)
        """
        week_start = week_start_for(week_start)
        document = await self.repo.get_document(user_id, week_start)
        known_ids = {i.id for i in document.items} if document else set()

        parsed = []
        for data in items:
            if data.get("is_virtual"):
                continue
            fields = {k: v for k, v in data.items() if k not in PLACEMENT_FIELDS}
            item = ScheduleItem.from_dict(fields, id=data.get("id"))
            item.validate()
            item.occurrence_date = week_start + timedelta(days=item.day)
            if item.id not in known_ids:
                item.id = None
            parsed.append(item)

        if timezone is None:
            timezone = document.timezone if document else self.settings.default_timezone
        await self.repo.replace_week(user_id, week_start, timezone, parsed)
        logger.info(
            "Saved %d items for week of %s for user %s", len(parsed), week_start, user_id
        )
        return await self.get_week(user_id, week_start)

    async def clear_week(self, user_id: str, week_start: date) -> bool:
        """Delete a week's document and everything authored in it."""
        week_start = week_start_for(week_start)
        deleted = await self.repo.delete_document(user_id, week_start)
        if deleted:
            logger.info("Cleared week of %s for user %s", week_start, user_id)
        return deleted

    async def _require(self, user_id: str, item_id: int) -> ScheduleItem:
        item = await self.repo.get_item(item_id, user_id)
        if item is None:
            raise NotFoundError(f"Schedule item {item_id} not found")
        return item
