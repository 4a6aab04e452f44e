"""Default schedule template loader."""

import json
import logging
from pathlib import Path

from ..db.engine import get_db_path
from ..db.repositories import ScheduleTemplateRepository
from ..errors import ScheduleValidationError
from ..models.schedule import ScheduleTemplate

logger = logging.getLogger(__name__)


def get_templates_json_path() -> Path:
    """Get the path to the bundled schedule templates JSON file."""
    return Path(__file__).parent / "schedule_templates.json"


def load_default_templates(json_path: Path | None = None) -> list[ScheduleTemplate]:
    """Load the bundled schedule templates, marked as defaults.

    Invalid entries are skipped with a warning.
    """
    json_path = json_path or get_templates_json_path()
    if not json_path.exists():
        return []

    with open(json_path) as f:
        data = json.load(f)

    templates = []
    for entry in data.get("templates", []):
        try:
            template = ScheduleTemplate.from_dict(entry)
            template.validate()
        except (KeyError, TypeError, ScheduleValidationError) as e:
            logger.warning(
                "Skipping invalid schedule template %s: %s", entry.get("name", "unknown"), e
            )
            continue
        template.user_id = None
        template.is_default = True
        template.metadata = {**template.metadata, "source": "default"}
        templates.append(template)
    return templates


async def seed_default_templates(db_path: Path | None = None) -> int:
    """Seed the default schedule templates when none are stored yet.

    Returns:
        Number of templates inserted (0 when defaults already exist)
    """
    repo = ScheduleTemplateRepository(db_path or get_db_path())
    if await repo.count_defaults() > 0:
        return 0

    count = 0
    for template in load_default_templates():
        await repo.create(template)
        count += 1
    logger.info("Seeded %d default schedule templates", count)
    return count
