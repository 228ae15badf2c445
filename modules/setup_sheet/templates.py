"""
modules/setup_sheet/templates.py

Template lifecycle for weekly setups.

A template is a WeeklySetup skeleton: days, time blocks and positions with no
employee bindings, rosters or breaks. New weeks are seeded from one.
"""

import logging
from datetime import date, timedelta
from typing import Optional

from modules.setup_sheet.aggregate import Day, WeeklySetup
from modules.setup_sheet.errors import ValidationError
from modules.setup_sheet.time_model import day_of_week, next_week_start, week_end_for

logger = logging.getLogger(__name__)


def _rebase_day(day: Day, week_start: date) -> Day:
    """Move a skeleton Day onto the same weekday of another week."""
    offset = (day.day_of_week - day_of_week(week_start)) % 7
    day.date = week_start + timedelta(days=offset)
    day.day_of_week = day_of_week(day.date)
    return day


def create_from_template(
    template: WeeklySetup,
    *,
    store_id: str,
    user_id: str,
    today: date,
    week_starts_on: int = 0,
    week_start: Optional[date] = None,
    name: Optional[str] = None,
) -> WeeklySetup:
    """
    Seed a new week from a template.

    Without an explicit week_start the setup lands on the next upcoming week
    boundary and is flagged as that store's upcoming-week setup.
    """
    if not template.is_template:
        raise ValidationError(
            f"Setup '{template.name}' is not a template",
            {"setup_id": template.id},
        )

    is_upcoming = week_start is None
    target_start = week_start or next_week_start(today, week_starts_on)

    setup = WeeklySetup(
        store_id=store_id,
        user_id=user_id,
        name=(name or "").strip() or f"{template.name} - week of {target_start.isoformat()}",
        week_start_date=target_start,
        week_end_date=week_end_for(target_start),
        is_upcoming=is_upcoming,
    )
    for day in template.clone_skeleton():
        setup.merge_day(_rebase_day(day, target_start))
    setup.ensure_week_days()

    logger.info(f"Created setup '{setup.name}' from template '{template.name}' for week of {target_start}")
    return setup


def save_as_template(setup: WeeklySetup, name: Optional[str] = None, user_id: Optional[str] = None) -> WeeklySetup:
    """Copy a setup's structure into a new template."""
    template_name = f"Template from {setup.name}" if name is None else name.strip()
    if not template_name:
        raise ValidationError("Template name is required", {"setup_id": setup.id})

    template = WeeklySetup(
        store_id=setup.store_id,
        user_id=user_id or setup.user_id,
        name=template_name,
        week_start_date=setup.week_start_date,
        week_end_date=setup.week_end_date,
        days=setup.clone_skeleton(),
        is_template=True,
    )
    logger.info(f"Saved setup '{setup.name}' as template '{template_name}'")
    return template


def set_shared(setup: WeeklySetup, is_shared: bool) -> WeeklySetup:
    setup.is_shared = bool(is_shared)
    return setup
