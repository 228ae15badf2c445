"""Shared fixtures: an in-memory Supabase fake and small setup builders."""

import copy
import os
import uuid
from datetime import date, datetime, timezone

import pytest

os.environ.setdefault("SUPABASE_URL", "http://localhost:54321")
os.environ.setdefault("SUPABASE_SERVICE_KEY", "test-service-key")
os.environ.setdefault("JWT_SECRET", "test-secret")

import database.supabase_client as supabase_client
from modules.setup_sheet.aggregate import (
    Position,
    RosterEmployee,
    TimeBlock,
    WeeklySetup,
    new_weekly_setup,
)
from modules.setup_sheet.positions import CATEGORY_DRIVE_THRU, CATEGORY_KITCHEN, Department


# ============================================================================
# Fake Supabase
# ============================================================================


class FakeResponse:
    def __init__(self, data):
        self.data = data


class FakeQuery:
    """Just enough of the postgrest query builder for the services under test."""

    def __init__(self, db: "FakeSupabase", table: str):
        self.db = db
        self.table_name = table
        self.action = "select"
        self.payload = None
        self.filters = []
        self.order_by = None
        self.limit_to = None

    def select(self, *columns):
        self.action = "select"
        return self

    def insert(self, payload):
        self.action = "insert"
        self.payload = payload
        return self

    def update(self, payload):
        self.action = "update"
        self.payload = payload
        return self

    def eq(self, column, value):
        self.filters.append(lambda row: row.get(column) == value)
        return self

    def neq(self, column, value):
        self.filters.append(lambda row: row.get(column) != value)
        return self

    def is_(self, column, value):
        if value == "null":
            self.filters.append(lambda row: row.get(column) is None)
        else:
            self.filters.append(lambda row: row.get(column) == value)
        return self

    def order(self, column, desc=False):
        self.order_by = (column, desc)
        return self

    def limit(self, count):
        self.limit_to = count
        return self

    def _matches(self, row):
        return all(f(row) for f in self.filters)

    def execute(self):
        if self.db.fail_next:
            self.db.fail_next = False
            raise RuntimeError("database unavailable")

        rows = self.db.tables.setdefault(self.table_name, [])

        if self.action == "insert":
            row = copy.deepcopy(self.payload)
            row.setdefault("id", str(uuid.uuid4()))
            rows.append(row)
            return FakeResponse([copy.deepcopy(row)])

        if self.action == "update":
            updated = []
            for row in rows:
                if self._matches(row):
                    row.update(copy.deepcopy(self.payload))
                    updated.append(copy.deepcopy(row))
            return FakeResponse(updated)

        result = [copy.deepcopy(r) for r in rows if self._matches(r)]
        if self.order_by:
            column, desc = self.order_by
            result.sort(key=lambda r: str(r.get(column) or ""), reverse=desc)
        if self.limit_to is not None:
            result = result[: self.limit_to]
        return FakeResponse(result)


class FakeSupabase:
    def __init__(self):
        self.tables = {}
        self.fail_next = False

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)

    from_ = table

    def rows(self, name: str):
        return self.tables.get(name, [])


# ============================================================================
# Fixtures
# ============================================================================

STORE_ID = "store-1"
USER_ID = "user-1"
WEEK_START = date(2024, 6, 9)  # Sunday
MONDAY = date(2024, 6, 10)
NOW = datetime(2024, 6, 10, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def fake_supabase(monkeypatch) -> FakeSupabase:
    fake = FakeSupabase()
    monkeypatch.setattr(supabase_client, "_supabase", fake)
    return fake


@pytest.fixture
def clock():
    """Mutable clock: tests move `clock.now` forward."""
    class Clock:
        now = NOW

        def __call__(self):
            return self.now

    return Clock()


def employee(name: str, *windows: str, area=Department.FOH, employee_id=None) -> RosterEmployee:
    return RosterEmployee(
        id=employee_id or name.lower().replace(" ", "-"),
        name=name,
        area=area,
        time_blocks=list(windows),
    )


def make_setup(roster=None, blocks=None, day_date: date = MONDAY) -> WeeklySetup:
    """A week starting WEEK_START whose `day_date` carries the given roster and blocks."""
    setup = new_weekly_setup(
        store_id=STORE_ID,
        user_id=USER_ID,
        name="Week 24",
        week_start_date=WEEK_START,
    )
    setup.id = "setup-1"
    day = setup.day_for(day_date)
    day.roster = list(roster or [])
    day.time_blocks = list(blocks or [])
    return setup


@pytest.fixture
def monday_setup() -> WeeklySetup:
    """
    Monday with a 09:00-13:00 and a 13:00-17:00 block.

    alice  08:00-14:00 FOH
    bob    09:00-17:00 FOH
    carla  06:00-14:00 BOH
    """
    morning = TimeBlock(
        id="block-am",
        start="09:00",
        end="13:00",
        positions=[
            Position(id="dt1", name="Drive Thru 1", category=CATEGORY_DRIVE_THRU, department=Department.FOH),
            Position(id="dt2", name="Drive Thru 2", category=CATEGORY_DRIVE_THRU, department=Department.FOH),
            Position(id="kl", name="Kitchen Lead", category=CATEGORY_KITCHEN, department=Department.BOH),
        ],
    )
    afternoon = TimeBlock(
        id="block-pm",
        start="13:00",
        end="17:00",
        positions=[
            Position(id="dt1-pm", name="Drive Thru 1", category=CATEGORY_DRIVE_THRU, department=Department.FOH),
        ],
    )
    roster = [
        employee("Alice", "08:00 - 14:00"),
        employee("Bob", "09:00 - 17:00"),
        employee("Carla", "06:00 - 14:00", area=Department.BOH),
    ]
    return make_setup(roster=roster, blocks=[morning, afternoon])


def store_setup_row(fake: FakeSupabase, setup: WeeklySetup) -> dict:
    """Put a setup straight into the fake weekly_setups table."""
    setup.created_at = setup.created_at or NOW
    setup.updated_at = setup.updated_at or NOW
    row = setup.to_document()
    fake.tables.setdefault("weekly_setups", []).append(row)
    return row


