"""Schedule template generation criteria."""

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..utils.dates import normalize_time

DEFAULT_DAYS_SEQUENCE = [1, 3, 5, 0, 2, 4, 6]
DEFAULT_GENERATED_START_TIME = "18:00"


class GenerationCriteria(BaseModel):
    """Everything the template generator needs, validated in one place.

    Loose input (out of range days, ``7:5`` style times, blank tags) is
    normalized here so the generator works with clean values only.
    """

    model_config = ConfigDict(extra="ignore")

    days_per_week: int = Field(default=3, ge=1, le=7)
    preferred_days: list[int] = Field(default_factory=list)
    difficulty: str | None = None
    focus: list[str] = Field(default_factory=list)
    preferred_start_time: str = DEFAULT_GENERATED_START_TIME
    repeat_interval_weeks: int = Field(default=1, ge=1)
    timezone: str | None = None
    allow_back_to_back: bool = False
    include_cardio: bool = False
    allowed_equipment: list[str] = Field(default_factory=list)
    excluded_template_ids: list[int] = Field(default_factory=list)
    count: int = Field(default=1, ge=1, le=4)

    @field_validator("preferred_days")
    @classmethod
    def _clean_days(cls, value: list[int]) -> list[int]:
        days = []
        for day in value:
            if 0 <= day <= 6 and day not in days:
                days.append(day)
        return days

    @field_validator("focus")
    @classmethod
    def _clean_focus(cls, value: list[str]) -> list[str]:
        return [tag.strip() for tag in value if tag and tag.strip()]

    @field_validator("allowed_equipment")
    @classmethod
    def _clean_equipment(cls, value: list[str]) -> list[str]:
        cleaned = []
        for name in value:
            normalized = name.strip().lower()
            if normalized and normalized not in cleaned:
                cleaned.append(normalized)
        return cleaned

    @field_validator("difficulty")
    @classmethod
    def _clean_difficulty(cls, value: str | None) -> str | None:
        if value is None or not value.strip():
            return None
        return value.strip().lower()

    @field_validator("preferred_start_time", mode="before")
    @classmethod
    def _clean_time(cls, value: str | None) -> str:
        return normalize_time(value, DEFAULT_GENERATED_START_TIME)

    @property
    def training_days(self) -> list[int]:
        """Exactly ``days_per_week`` days: preferred days first, then defaults."""
        days = list(self.preferred_days[: self.days_per_week])
        for day in DEFAULT_DAYS_SEQUENCE:
            if len(days) >= self.days_per_week:
                break
            if day not in days:
                days.append(day)
        return days
