"""CLI commands for fitcal."""

from .active import active
from .calendar import calendar, done
from .generate import generate
from .init import init
from .items import items
from .serve import serve

__all__ = [
    "active",
    "calendar",
    "done",
    "generate",
    "init",
    "items",
    "serve",
]
