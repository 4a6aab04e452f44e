"""Request dependencies shared by the routers."""

from pathlib import Path

from fastapi import Header, Request

from ..config import get_settings
from ..services.active import ActiveScheduleService
from ..services.calendar import CalendarService, CompletedDayService
from ..services.series import ScheduleItemService
from ..services.templates import (
    DailyTemplateService,
    ScheduleTemplateService,
    WeeklyTemplateService,
)


def get_user_id(x_user_id: str | None = Header(default=None)) -> str:
    """The caller's user id, taken from the X-User-Id header."""
    if x_user_id and x_user_id.strip():
        return x_user_id.strip()
    return get_settings().default_user_id


def get_db_path(request: Request) -> Path:
    return request.app.state.db_path


def get_daily_service(request: Request) -> DailyTemplateService:
    return DailyTemplateService(get_db_path(request))


def get_weekly_service(request: Request) -> WeeklyTemplateService:
    return WeeklyTemplateService(get_db_path(request))


def get_active_service(request: Request) -> ActiveScheduleService:
    return ActiveScheduleService(get_db_path(request))


def get_calendar_service(request: Request) -> CalendarService:
    return CalendarService(get_db_path(request))


def get_completed_day_service(request: Request) -> CompletedDayService:
    return CompletedDayService(get_db_path(request))


def get_item_service(request: Request) -> ScheduleItemService:
    return ScheduleItemService(get_db_path(request))


def get_template_service(request: Request) -> ScheduleTemplateService:
    return ScheduleTemplateService(get_db_path(request))
