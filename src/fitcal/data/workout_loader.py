"""Starter workout template library loader."""

import json
import logging
from pathlib import Path

from ..db.engine import get_db_path
from ..db.repositories import WorkoutTemplateRepository
from ..models.workouts import WorkoutTemplate

logger = logging.getLogger(__name__)


def get_workouts_json_path() -> Path:
    """Get the path to the bundled workout templates JSON file."""
    return Path(__file__).parent / "workout_templates.json"


def load_workout_templates(json_path: Path | None = None) -> list[WorkoutTemplate]:
    """Load predefined workout templates from JSON.

    Invalid entries are skipped with a warning.
    """
    json_path = json_path or get_workouts_json_path()
    if not json_path.exists():
        return []

    with open(json_path) as f:
        data = json.load(f)

    templates = []
    for entry in data.get("templates", []):
        try:
            templates.append(WorkoutTemplate.from_dict(entry))
        except (KeyError, TypeError) as e:
            logger.warning(
                "Skipping invalid workout template %s: %s", entry.get("name", "unknown"), e
            )
    return templates


async def seed_workout_templates(db_path: Path | None = None) -> int:
    """Seed predefined workout templates into an empty library.

    Returns:
        Number of templates inserted (0 when the library already has rows)
    """
    repo = WorkoutTemplateRepository(db_path or get_db_path())
    if await repo.count() > 0:
        return 0

    count = 0
    for template in load_workout_templates():
        await repo.create(template)
        count += 1
    logger.info("Seeded %d workout templates", count)
    return count
