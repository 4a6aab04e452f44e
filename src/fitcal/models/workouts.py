"""Workout template and session models.

These mirror the records owned by the workout tracker. The schedule core
only reads them: templates to label calendar entries and feed the
generator, sessions to mark calendar entries completed.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

CARDIO_KEYWORDS = ("cardio", "hiit", "endurance")
CARDIO_NAME_KEYWORDS = ("cardio", "interval", "run", "cycle")
CARDIO_EXERCISE_KEYWORDS = ("cardio", "sprint", "run", "bike", "row")
CARDIO_MUSCLE_KEYWORDS = ("cardio", "aerobic", "endurance")
NO_EQUIPMENT = {"", "bodyweight", "none"}


class SessionStatus(str, Enum):
    """Workout session status."""

    PLANNED = "planned"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    SKIPPED = "skipped"


@dataclass
class TemplateExercise:
    """An exercise prescribed by a workout template."""

    name: str
    sets: int = 3
    reps: str = "10"
    rest_seconds: int = 60
    equipment: list[str] = field(default_factory=list)
    muscles: list[str] = field(default_factory=list)
    primary_muscles: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "name": self.name,
            "sets": self.sets,
            "reps": self.reps,
            "rest_seconds": self.rest_seconds,
            "equipment": self.equipment,
            "muscles": self.muscles,
            "primary_muscles": self.primary_muscles,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "TemplateExercise":
        """Create from dictionary."""
        return cls(
            name=data["name"],
            sets=data.get("sets", 3),
            reps=str(data.get("reps", "10")),
            rest_seconds=data.get("rest_seconds", 60),
            equipment=data.get("equipment", []),
            muscles=data.get("muscles", []),
            primary_muscles=data.get("primary_muscles", []),
        )


@dataclass
class WorkoutTemplate:
    """A predefined or user-authored workout."""

    name: str
    category: str | None = None
    difficulty: str | None = None
    estimated_duration: int | None = None
    description: str = ""
    exercises: list[TemplateExercise] = field(default_factory=list)
    user_id: str | None = None  # None for predefined templates
    id: int | None = None

    @property
    def required_equipment(self) -> set[str]:
        """Lowercased equipment names needed by any exercise."""
        needed = set()
        for exercise in self.exercises:
            for name in exercise.equipment:
                normalized = name.strip().lower()
                if normalized not in NO_EQUIPMENT:
                    needed.add(normalized)
        return needed

    @property
    def is_cardio(self) -> bool:
        """Heuristic: does this template train conditioning rather than strength?"""
        category = (self.category or "").lower()
        if any(keyword in category for keyword in CARDIO_KEYWORDS):
            return True

        name = self.name.lower()
        if any(keyword in name for keyword in CARDIO_NAME_KEYWORDS):
            return True

        for exercise in self.exercises:
            exercise_name = exercise.name.lower()
            if any(keyword in exercise_name for keyword in CARDIO_EXERCISE_KEYWORDS):
                return True
            for muscle in exercise.muscles:
                if any(keyword in muscle.lower() for keyword in CARDIO_MUSCLE_KEYWORDS):
                    return True
        return False

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "user_id": self.user_id,
            "name": self.name,
            "description": self.description,
            "category": self.category,
            "difficulty": self.difficulty,
            "estimated_duration": self.estimated_duration,
            "exercises": [e.to_dict() for e in self.exercises],
        }

    @classmethod
    def from_dict(cls, data: dict, id: int | None = None) -> "WorkoutTemplate":
        """Create from dictionary."""
        return cls(
            id=id if id is not None else data.get("id"),
            user_id=data.get("user_id"),
            name=data["name"],
            description=data.get("description") or "",
            category=data.get("category"),
            difficulty=data.get("difficulty"),
            estimated_duration=data.get("estimated_duration"),
            exercises=[TemplateExercise.from_dict(e) for e in data.get("exercises", [])],
        )


@dataclass
class WorkoutSession:
    """A logged workout session."""

    user_id: str
    name: str
    start_time: datetime
    status: SessionStatus = SessionStatus.COMPLETED
    id: int | None = None

    @property
    def is_completed(self) -> bool:
        return self.status == SessionStatus.COMPLETED

    def matches(self, title: str | None) -> bool:
        """Fuzzy title match: either name contains the other, case-insensitively."""
        if not title:
            return False
        session_name = self.name.strip().lower()
        wanted = title.strip().lower()
        if not session_name or not wanted:
            return False
        return wanted in session_name or session_name in wanted

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "user_id": self.user_id,
            "name": self.name,
            "start_time": self.start_time.isoformat(),
            "status": self.status.value,
        }

    @classmethod
    def from_dict(cls, data: dict, id: int | None = None) -> "WorkoutSession":
        """Create from dictionary."""
        start_time = data["start_time"]
        if isinstance(start_time, str):
            start_time = datetime.fromisoformat(start_time)
        return cls(
            id=id if id is not None else data.get("id"),
            user_id=data["user_id"],
            name=data["name"],
            start_time=start_time,
            status=SessionStatus(data.get("status", "completed")),
        )
