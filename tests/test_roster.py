"""Tests for reading uploaded schedule exports into roster entries."""

import io

import pandas as pd
import pytest

from conftest import MONDAY, WEEK_START
from modules.setup_sheet.errors import ValidationError
from modules.setup_sheet.positions import Department
from modules.setup_sheet.roster import (
    day_from_column,
    parse_position_info,
    parse_roster_rows,
    parse_shift_entry,
    read_roster_file,
    roster_employee_id,
)

SCHEDULE_CSV = (
    'Employee,"Sun, 6/9/24","Mon, 6/10/24","Tue, 6/11/24"\n'
    'Jane Smith,5:00 AM - 2:00 PM Leadership | FOH - Shift Leader,"6:00 AM - 10:00 AM FOH\n4:00 PM - 8:00 PM FOH",\n'
    'Tom Cook,,10:00 AM - 6:00 PM BOH - Kitchen,OFF\n'
)


def test_parse_shift_entry_with_position_info():
    [shift] = parse_shift_entry("5:00 AM - 2:00 PM Leadership | FOH - Shift Leader")

    assert str(shift.window) == "05:00 - 14:00"
    assert shift.department == Department.FOH
    assert shift.position == "Shift Leader"
    assert shift.is_leadership


def test_parse_shift_entry_multiple_lines_and_noise():
    shifts = parse_shift_entry("6:00 AM - 10:00 AM FOH\nOFF\n4:00 PM - 8:00 PM FOH")
    assert [str(s.window) for s in shifts] == ["06:00 - 10:00", "16:00 - 20:00"]


@pytest.mark.parametrize("cell", [None, "", "OFF", 12.5])
def test_parse_shift_entry_without_shifts(cell):
    assert parse_shift_entry(cell) == []


def test_position_info_defaults():
    info = parse_position_info("")
    assert info == {"department": Department.FOH, "position": "Team Member", "is_leadership": False}
    assert parse_position_info("BOH - Kitchen")["department"] == Department.BOH


@pytest.mark.parametrize(
    "column,expected",
    [("Sun, 6/9/24", 0), ("Monday", 1), ("sat", 6), ("Employee", None), ("", None), (3, None)],
)
def test_day_from_column(column, expected):
    assert day_from_column(column) == expected


def test_read_and_parse_csv():
    rows = read_roster_file(SCHEDULE_CSV.encode(), "schedule.csv")
    by_date = parse_roster_rows(rows, WEEK_START)

    assert sorted(by_date) == [WEEK_START, MONDAY]
    monday = {e.name: e for e in by_date[MONDAY]}
    assert monday["Jane Smith"].time_blocks == ["06:00 - 10:00", "16:00 - 20:00"]
    assert monday["Tom Cook"].area == Department.BOH
    assert monday["Tom Cook"].id == roster_employee_id("Tom Cook", MONDAY)


def test_ids_are_stable_across_uploads():
    first = parse_roster_rows(read_roster_file(SCHEDULE_CSV.encode(), "a.csv"), WEEK_START)
    second = parse_roster_rows(read_roster_file(SCHEDULE_CSV.encode(), "b.csv"), WEEK_START)
    assert [e.id for e in first[MONDAY]] == [e.id for e in second[MONDAY]]


def test_read_excel():
    df = pd.DataFrame({"Employee": ["Jane Smith"], "Mon": ["9:00 AM - 5:00 PM FOH"]})
    buffer = io.BytesIO()
    df.to_excel(buffer, index=False)

    rows = read_roster_file(buffer.getvalue(), "schedule.xlsx")
    by_date = parse_roster_rows(rows, WEEK_START)

    assert by_date[MONDAY][0].time_blocks == ["09:00 - 17:00"]


def test_empty_upload_rejected():
    with pytest.raises(ValidationError):
        read_roster_file(b"", "schedule.csv")


def test_roster_entries_carry_position_and_leadership():
    by_date = parse_roster_rows(read_roster_file(SCHEDULE_CSV.encode(), "schedule.csv"), WEEK_START)

    [sunday_jane] = by_date[WEEK_START]
    assert sunday_jane.position == "Shift Leader"
    assert sunday_jane.is_leadership

    monday = {e.name: e for e in by_date[MONDAY]}
    assert monday["Jane Smith"].position == "Team Member"
    assert not monday["Jane Smith"].is_leadership
    assert monday["Tom Cook"].to_document()["is_leadership"] is False
