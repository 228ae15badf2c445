from datetime import date

import pytest

from conftest import MONDAY
from modules.setup_sheet.assignment import AssignmentEngine
from modules.setup_sheet.errors import ValidationError
from modules.setup_sheet.templates import create_from_template, save_as_template, set_shared

TODAY = date(2024, 6, 12)  # Wednesday


@pytest.fixture
def template(monday_setup):
    AssignmentEngine(monday_setup).assign("dt1", "alice")
    return save_as_template(monday_setup)


def test_save_as_template_strips_people(template):
    assert template.is_template
    assert template.name == "Template from Week 24"
    day = template.day_for(MONDAY)
    assert day.roster == []
    assert all(not p.is_assigned for b in day.time_blocks for p in b.positions)
    assert template.breaks == []


def test_save_as_template_blank_name(monday_setup):
    with pytest.raises(ValidationError):
        save_as_template(monday_setup, "  ")


def test_create_for_upcoming_week(template):
    setup = create_from_template(template, store_id="store-1", user_id="user-2", today=TODAY)

    assert setup.week_start_date == date(2024, 6, 16)
    assert setup.week_end_date == date(2024, 6, 22)
    assert setup.is_upcoming
    assert not setup.is_template
    assert setup.name == "Template from Week 24 - week of 2024-06-16"

    monday = setup.day_for(date(2024, 6, 17))
    assert [b.id for b in monday.time_blocks] == ["block-am", "block-pm"]
    assert len(setup.days) == 7
    setup.validate()


def test_create_for_explicit_week(template):
    setup = create_from_template(
        template,
        store_id="store-1",
        user_id="user-2",
        today=TODAY,
        week_start=date(2024, 7, 7),
        name="July",
    )
    assert not setup.is_upcoming
    assert setup.name == "July"
    assert setup.day_for(date(2024, 7, 8)).position_count() == 4


def test_create_from_non_template(monday_setup):
    with pytest.raises(ValidationError):
        create_from_template(monday_setup, store_id="store-1", user_id="user-1", today=TODAY)


def test_set_shared(monday_setup):
    assert set_shared(monday_setup, True).is_shared
