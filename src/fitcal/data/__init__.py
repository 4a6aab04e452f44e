"""Data loading utilities."""

from .template_loader import load_default_templates, seed_default_templates
from .workout_loader import load_workout_templates, seed_workout_templates

__all__ = [
    "load_default_templates",
    "load_workout_templates",
    "seed_default_templates",
    "seed_workout_templates",
]
