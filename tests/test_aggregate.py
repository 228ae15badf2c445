"""Tests for the WeeklySetup aggregate: day uniqueness, invariants and documents."""

from datetime import date, datetime, timezone

import pytest

from conftest import MONDAY, WEEK_START, employee, make_setup
from modules.setup_sheet.assignment import AssignmentEngine
from modules.setup_sheet.aggregate import (
    BreakRecord,
    Day,
    Position,
    TimeBlock,
    WeeklySetup,
    dedupe_days,
)
from modules.setup_sheet.errors import ConflictError, NotFoundError, ValidationError
from modules.setup_sheet.positions import Department


def block_with(*position_ids, block_id="block-am", holders=None):
    holders = holders or {}
    return TimeBlock(
        id=block_id,
        start="09:00",
        end="13:00",
        positions=[
            Position(id=pid, name=pid, employee_id=holders.get(pid), employee_name=holders.get(pid))
            for pid in position_ids
        ],
    )


class TestDayUniqueness:
    def test_new_setup_has_seven_days(self):
        setup = make_setup()
        assert [d.date for d in setup.days] == [date(2024, 6, 9 + i) for i in range(7)]
        assert [d.day_of_week for d in setup.days] == list(range(7))

    def test_uploading_same_day_twice_keeps_one_day(self):
        setup = make_setup(blocks=[block_with("a", "b", "c")])
        roster = {MONDAY: [employee("Alice", "08:00 - 14:00")]}

        setup.apply_roster(roster)
        setup.apply_roster(roster)

        mondays = [d for d in setup.days if d.date == MONDAY]
        assert len(mondays) == 1
        assert mondays[0].position_count() == 3
        assert [e.name for e in mondays[0].roster] == ["Alice"]

    def test_dedupe_keeps_richer_day_and_unions_roster(self):
        sparse = Day(1, MONDAY, [block_with("a")], [employee("Alice", "08:00 - 14:00")])
        rich = Day(1, MONDAY, [block_with("x", "y", "z", block_id="b2")], [employee("Bob", "09:00 - 17:00")])

        days = dedupe_days([sparse, rich])

        assert len(days) == 1
        assert days[0].position_count() == 3
        assert sorted(e.name for e in days[0].roster) == ["Alice", "Bob"]

    def test_dedupe_tie_prefers_more_assignments(self):
        empty = Day(1, MONDAY, [block_with("a", "b")])
        staffed = Day(1, MONDAY, [block_with("c", "d", block_id="b2", holders={"c": "alice"})])

        assert dedupe_days([empty, staffed])[0].time_blocks[0].id == "b2"
        assert dedupe_days([staffed, empty])[0].time_blocks[0].id == "b2"

    def test_loading_a_document_collapses_duplicates(self):
        doc = make_setup().to_document()
        doc["id"] = "setup-1"
        doc["days"].append(Day(1, MONDAY, [block_with("a")]).to_document())

        setup = WeeklySetup.from_document(doc)

        assert len(setup.days) == 7
        assert setup.day_for(MONDAY).position_count() == 1

    def test_reupload_replaces_shift_windows(self):
        setup = make_setup(blocks=[block_with("a")])
        setup.apply_roster({MONDAY: [employee("Alice", "08:00 - 10:00")]})
        setup.apply_roster({MONDAY: [employee("Alice", "08:00 - 14:00")]})

        [alice] = setup.day_for(MONDAY).roster
        assert alice.time_blocks == ["08:00 - 14:00"]
        available = AssignmentEngine(setup).available_employees_for_block(MONDAY, "09:00", "13:00")
        assert [e.name for e in available] == ["Alice"]

    def test_reupload_keeps_recorded_replacement(self):
        setup = make_setup()
        setup.apply_roster({MONDAY: [employee("Bob", "09:00 - 17:00")]})
        setup.day_for(MONDAY).roster[0].replaced_by = "replacement-1"

        setup.apply_roster({MONDAY: [employee("Bob", "10:00 - 17:00")]})

        [bob] = setup.day_for(MONDAY).roster
        assert bob.time_blocks == ["10:00 - 17:00"]
        assert bob.replaced_by == "replacement-1"

    def test_roster_outside_week_rejected(self):
        setup = make_setup()
        with pytest.raises(ValidationError):
            setup.apply_roster({date(2024, 6, 20): [employee("Alice", "08:00 - 14:00")]})


class TestValidate:
    def test_double_booking_in_block(self):
        setup = make_setup(blocks=[block_with("a", "b", holders={"a": "alice", "b": "alice"})])
        with pytest.raises(ConflictError):
            setup.validate()

    def test_duplicate_dates(self):
        setup = make_setup()
        setup.days.append(Day(1, MONDAY))
        with pytest.raises(ValidationError):
            setup.validate()

    def test_day_of_week_must_match_date(self):
        setup = make_setup()
        setup.day_for(MONDAY).day_of_week = 3
        with pytest.raises(ValidationError):
            setup.validate()

    def test_two_active_breaks(self):
        setup = make_setup(roster=[employee("Alice", "08:00 - 14:00")])
        now = datetime(2024, 6, 10, 11, 0, tzinfo=timezone.utc)
        setup.breaks = [
            BreakRecord("b1", "alice", MONDAY, now, 30),
            BreakRecord("b2", "alice", MONDAY, now, 15),
        ]
        with pytest.raises(ValidationError):
            setup.validate()

    def test_week_end_must_follow_start(self):
        setup = make_setup()
        setup.week_end_date = WEEK_START
        with pytest.raises(ValidationError):
            setup.validate()


class TestLayout:
    def test_add_time_block_normalises_times(self):
        setup = make_setup()
        block = setup.add_time_block(MONDAY, "5:00 AM", "9:00 AM")
        assert (block.start, block.end) == ("05:00", "09:00")
        assert setup.find_block(block.id)[1] is block

    def test_add_position_takes_department(self):
        setup = make_setup()
        block = setup.add_time_block(MONDAY, "09:00", "13:00")
        position = setup.add_position(block.id, "Breading", "Kitchen", Department.BOH)
        assert setup.find_position(position.id)[2].department == Department.BOH

    def test_same_position_in_overlapping_blocks_rejected(self):
        setup = make_setup()
        first = setup.add_time_block(MONDAY, "09:00", "13:00")
        second = setup.add_time_block(MONDAY, "12:00", "15:00")
        setup.add_position(first.id, "Drive Thru 1", "Drive Thru", Department.FOH)

        with pytest.raises(ValidationError):
            setup.add_position(second.id, "drive thru 1", "Drive Thru", Department.FOH)

    def test_unknown_block(self):
        with pytest.raises(NotFoundError):
            make_setup().add_position("missing", "Runner", "Front Counter", Department.FOH)

    def test_update_time_block_moves_and_resorts(self, monday_setup):
        block = monday_setup.update_time_block("block-pm", "6:00 AM", "9:00 AM")

        assert (block.start, block.end) == ("06:00", "09:00")
        assert [b.id for b in monday_setup.day_for(MONDAY).time_blocks] == ["block-pm", "block-am"]

    def test_update_time_block_keeps_name_overlap_rule(self, monday_setup):
        with pytest.raises(ValidationError):
            monday_setup.update_time_block("block-am", "10:00", "14:00")
        assert monday_setup.find_block("block-am")[1].end == "13:00"

    def test_update_time_block_must_still_cover_assigned_employees(self, monday_setup):
        engine = AssignmentEngine(monday_setup)
        engine.assign("dt1", "alice")
        engine.assign("dt2", "bob")

        with pytest.raises(ValidationError) as excinfo:
            monday_setup.update_time_block("block-am", "08:00", "12:00")
        assert excinfo.value.context["employee_id"] == "bob"

        block = monday_setup.update_time_block("block-am", "09:00", "12:00")
        assert block.holder_of("bob").id == "dt2"

    def test_remove_time_block_drops_its_positions(self, monday_setup):
        removed = monday_setup.remove_time_block("block-am")

        assert [p.id for p in removed.positions] == ["dt1", "dt2", "kl"]
        with pytest.raises(NotFoundError):
            monday_setup.find_position("dt1")

    def test_remove_position(self, monday_setup):
        monday_setup.remove_position("dt2")
        assert [p.id for p in monday_setup.find_block("block-am")[1].positions] == ["dt1", "kl"]

        with pytest.raises(NotFoundError):
            monday_setup.remove_position("dt2")

    def test_rename(self):
        setup = make_setup()
        setup.rename("  Week 25 ")
        assert setup.name == "Week 25"

        with pytest.raises(ValidationError):
            setup.rename("   ")


def test_document_round_trip_keeps_assignments_and_breaks(monday_setup):
    _, _, position = monday_setup.find_position("dt1")
    position.bind("alice", "Alice")
    monday_setup.breaks.append(
        BreakRecord("b1", "alice", MONDAY, datetime(2024, 6, 10, 11, 0, tzinfo=timezone.utc), 30)
    )
    monday_setup.version = 4

    loaded = WeeklySetup.from_document(monday_setup.to_document())

    assert loaded.find_position("dt1")[2].employee_name == "Alice"
    assert loaded.breaks[0].start_time == monday_setup.breaks[0].start_time
    assert loaded.version == 4
    assert loaded.day_for(MONDAY).roster[2].area == Department.BOH
