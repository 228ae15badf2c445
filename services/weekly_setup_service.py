import logging
from datetime import date, datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple
from zoneinfo import ZoneInfo

from config.settings import DEFAULT_BREAK_MINUTES, REPLACEMENT_STRICT_MODE, STORE_TIMEZONE, WEEK_STARTS_ON
from database.supabase_client import get_supabase
from modules.setup_sheet.aggregate import WeeklySetup, new_weekly_setup
from modules.setup_sheet.assignment import AssignmentEngine
from modules.setup_sheet.breaks import BreakTracker
from modules.setup_sheet.errors import ConflictError, NotFoundError, SetupSheetError, ValidationError
from modules.setup_sheet.positions import department_for_category
from modules.setup_sheet.replacement import ReplacementResult, ReplacementWorkflow, resolver_for
from modules.setup_sheet.roster import parse_roster_rows, read_roster_file
from modules.setup_sheet.templates import create_from_template, save_as_template, set_shared
from modules.setup_sheet.time_model import parse_week_starts_on, week_start_for
from services.audit_service import log_setup_change
from services.position_catalog_service import PositionCatalogService

logger = logging.getLogger(__name__)

TABLE = "weekly_setups"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class WeeklySetupService:
    """
    Service layer for weekly setup sheets

    Every command follows the same shape:
    1. Load the WeeklySetup aggregate
    2. Mutate it in memory through the setup sheet engine
    3. Validate invariants
    4. Save with a version check (stale writers get a ConflictError)
    """

    def __init__(
        self,
        supabase=None,
        clock: Optional[Callable[[], datetime]] = None,
        store_timezone: Optional[str] = None
    ):
        self.supabase = supabase or get_supabase()
        self.clock = clock or _utcnow
        self.week_starts_on = parse_week_starts_on(WEEK_STARTS_ON)
        self.store_tz = ZoneInfo(store_timezone or STORE_TIMEZONE)

    def today(self) -> date:
        """The store-local calendar day"""
        return self.clock().astimezone(self.store_tz).date()

    # ============ LOADING ============

    async def get_setup(self, setup_id: str, store_id: str) -> WeeklySetup:
        """Get a live (not soft-deleted) setup in the store"""
        try:
            result = self.supabase.table(TABLE) \
                .select("*") \
                .eq("id", setup_id) \
                .eq("store_id", store_id) \
                .is_("deleted_at", "null") \
                .execute()
        except Exception as e:
            logger.error(f"Get weekly setup error: {e}")
            raise e

        if not result.data:
            raise NotFoundError(
                f"Weekly setup {setup_id} not found",
                {"setup_id": setup_id},
            )
        return WeeklySetup.from_document(result.data[0])

    async def get_visible_setup(self, setup_id: str, user_id: str, store_id: str) -> WeeklySetup:
        """A setup the user owns, one shared with their store, or a store template"""
        setup = await self.get_setup(setup_id, store_id)
        if str(setup.user_id) != str(user_id) and not setup.is_shared and not setup.is_template:
            raise NotFoundError(
                f"Weekly setup {setup_id} not found",
                {"setup_id": setup_id},
            )
        return setup

    async def list_setups(self, user_id: str, store_id: str) -> List[WeeklySetup]:
        """Own setups plus setups shared with the store, newest first"""
        try:
            own = self.supabase.table(TABLE) \
                .select("*") \
                .eq("store_id", store_id) \
                .eq("user_id", user_id) \
                .eq("is_template", False) \
                .is_("deleted_at", "null") \
                .execute()

            shared = self.supabase.table(TABLE) \
                .select("*") \
                .eq("store_id", store_id) \
                .eq("is_shared", True) \
                .eq("is_template", False) \
                .is_("deleted_at", "null") \
                .execute()
        except Exception as e:
            logger.error(f"List weekly setups error: {e}")
            raise e

        rows = {row["id"]: row for row in (own.data or []) + (shared.data or [])}
        setups = [WeeklySetup.from_document(row) for row in rows.values()]
        return sorted(setups, key=lambda s: s.created_at or datetime.min.replace(tzinfo=timezone.utc), reverse=True)

    async def list_templates(self, store_id: str) -> List[WeeklySetup]:
        try:
            result = self.supabase.table(TABLE) \
                .select("*") \
                .eq("store_id", store_id) \
                .eq("is_template", True) \
                .is_("deleted_at", "null") \
                .order("updated_at", desc=True) \
                .execute()
        except Exception as e:
            logger.error(f"List templates error: {e}")
            raise e

        return [WeeklySetup.from_document(row) for row in result.data or []]

    # ============ PERSISTENCE ============

    async def _insert(self, setup: WeeklySetup) -> WeeklySetup:
        setup.validate()
        now = self.clock()
        setup.version = 0
        setup.created_at = now
        setup.updated_at = now

        payload = setup.to_document()
        payload.pop("id", None)

        try:
            result = self.supabase.table(TABLE).insert(payload).execute()
        except Exception as e:
            logger.error(f"Insert weekly setup error: {e}")
            raise e

        if not result.data:
            raise Exception("Insert returned no data")
        return WeeklySetup.from_document(result.data[0])

    async def _save(self, setup: WeeklySetup) -> WeeklySetup:
        """Write the aggregate back only if nobody else saved it since it was loaded"""
        setup.validate()
        base_version = setup.version

        payload = setup.to_document()
        for key in ("id", "created_at", "store_id"):
            payload.pop(key, None)
        payload["version"] = base_version + 1
        payload["updated_at"] = self.clock().isoformat()

        try:
            result = self.supabase.table(TABLE) \
                .update(payload) \
                .eq("id", setup.id) \
                .eq("version", base_version) \
                .execute()
        except Exception as e:
            logger.error(f"Save weekly setup error: {e}")
            raise e

        if not result.data:
            raise ConflictError(
                f"Setup '{setup.name}' was changed by someone else. Reload it and try again.",
                {"setup_id": setup.id, "version": base_version},
            )
        return WeeklySetup.from_document(result.data[0])

    async def _mutate(
        self,
        setup_id: str,
        store_id: str,
        changed_by: str,
        action: str,
        mutate: Callable[[WeeklySetup], Any],
        expected_version: Optional[int] = None,
        audit_fields: Optional[Callable[[Any], Dict[str, Any]]] = None,
    ) -> Tuple[WeeklySetup, Any]:
        """Load -> mutate -> validate -> save, all or nothing"""
        setup = await self.get_visible_setup(setup_id, changed_by, store_id)

        if expected_version is not None and expected_version != setup.version:
            raise ConflictError(
                f"Setup '{setup.name}' is at version {setup.version}, not {expected_version}. "
                "Reload it and try again.",
                {"setup_id": setup_id, "version": setup.version, "expected_version": expected_version},
            )

        try:
            outcome = mutate(setup)
            saved = await self._save(setup)
        except SetupSheetError as e:
            logger.info(f"{action} rejected for setup {setup_id}: {e.message}")
            raise

        await log_setup_change(
            setup_id=setup_id,
            store_id=store_id,
            changed_by=changed_by,
            action=action,
            changed_fields=audit_fields(outcome) if audit_fields else None,
        )
        return saved, outcome

    # ============ SETUP LIFECYCLE ============

    async def _check_unique_name(
        self,
        store_id: str,
        user_id: str,
        name: str,
        is_template: bool,
        exclude_id: Optional[str] = None
    ):
        query = self.supabase.table(TABLE) \
            .select("id") \
            .eq("store_id", store_id) \
            .eq("name", name) \
            .eq("is_template", is_template) \
            .is_("deleted_at", "null")
        if not is_template:
            query = query.eq("user_id", user_id)
        if exclude_id is not None:
            query = query.neq("id", exclude_id)
        result = query.execute()

        if result.data:
            kind = "template" if is_template else "setup"
            raise ConflictError(
                f"A {kind} with the name '{name}' already exists",
                {"name": name, "code": "DUPLICATE_SETUP_NAME"},
            )

    async def create_setup(
        self,
        store_id: str,
        user_id: str,
        name: str,
        week_start_date: Optional[date] = None,
        is_shared: bool = False
    ) -> WeeklySetup:
        """Create an empty week"""
        start = week_start_date or week_start_for(self.today(), self.week_starts_on)
        setup = new_weekly_setup(
            store_id=store_id,
            user_id=user_id,
            name=name,
            week_start_date=start,
            is_shared=is_shared,
        )
        await self._check_unique_name(store_id, user_id, setup.name, is_template=False)

        created = await self._insert(setup)
        await log_setup_change(created.id, store_id, user_id, "CREATE", {"name": created.name})
        logger.info(f"Created weekly setup '{created.name}' ({created.id}) for store {store_id}")
        return created

    async def delete_setup(self, setup_id: str, store_id: str, deleted_by: str) -> WeeklySetup:
        """Soft delete; break history stays in place"""
        def mutate(setup: WeeklySetup):
            setup.deleted_at = self.clock()

        saved, _ = await self._mutate(setup_id, store_id, deleted_by, "DELETE", mutate)
        return saved

    async def _rename(
        self,
        setup: WeeklySetup,
        name: str,
        changed_by: str,
        expected_version: Optional[int],
        action: str
    ) -> WeeklySetup:
        wanted = (name or "").strip()
        if wanted and wanted != setup.name:
            await self._check_unique_name(
                setup.store_id, setup.user_id, wanted, setup.is_template, exclude_id=setup.id
            )

        previous = setup.name
        saved, _ = await self._mutate(
            setup.id, setup.store_id, changed_by, action,
            lambda s: s.rename(name),
            expected_version=expected_version,
            audit_fields=lambda _: {"name": wanted, "previous_name": previous},
        )
        return saved

    async def rename_setup(
        self,
        setup_id: str,
        store_id: str,
        name: str,
        changed_by: str,
        expected_version: Optional[int] = None
    ) -> WeeklySetup:
        """Rename a setup; names stay unique among the owner's setups"""
        setup = await self.get_visible_setup(setup_id, changed_by, store_id)
        return await self._rename(setup, name, changed_by, expected_version, "RENAME")

    async def set_shared(
        self,
        setup_id: str,
        store_id: str,
        is_shared: bool,
        changed_by: str,
        expected_version: Optional[int] = None
    ) -> WeeklySetup:
        saved, _ = await self._mutate(
            setup_id, store_id, changed_by, "SHARE",
            lambda setup: set_shared(setup, is_shared),
            expected_version=expected_version,
            audit_fields=lambda _: {"is_shared": bool(is_shared)},
        )
        return saved

    # ============ TEMPLATES ============

    async def create_from_template(
        self,
        template_id: str,
        store_id: str,
        user_id: str,
        week_start_date: Optional[date] = None,
        name: Optional[str] = None
    ) -> WeeklySetup:
        """Seed a week from a template; defaults to the store's upcoming week"""
        template = await self.get_visible_setup(template_id, user_id, store_id)
        setup = create_from_template(
            template,
            store_id=store_id,
            user_id=user_id,
            today=self.today(),
            week_starts_on=self.week_starts_on,
            week_start=week_start_date,
            name=name,
        )

        if setup.is_upcoming:
            existing = self.supabase.table(TABLE) \
                .select("id, name") \
                .eq("store_id", store_id) \
                .eq("is_upcoming", True) \
                .eq("is_template", False) \
                .eq("week_start_date", setup.week_start_date.isoformat()) \
                .is_("deleted_at", "null") \
                .execute()
            if existing.data:
                raise ConflictError(
                    f"A setup already exists for the upcoming week of {setup.week_start_date.isoformat()}",
                    {"setup_id": existing.data[0]["id"], "week_start_date": setup.week_start_date.isoformat()},
                )

        await self._check_unique_name(store_id, user_id, setup.name, is_template=False)
        created = await self._insert(setup)
        await log_setup_change(created.id, store_id, user_id, "CREATE_FROM_TEMPLATE", {"template_id": template_id})
        return created

    async def save_as_template(self, setup_id: str, store_id: str, user_id: str, name: Optional[str] = None) -> WeeklySetup:
        setup = await self.get_visible_setup(setup_id, user_id, store_id)
        template = save_as_template(setup, name, user_id=user_id)
        await self._check_unique_name(store_id, user_id, template.name, is_template=True)

        created = await self._insert(template)
        await log_setup_change(created.id, store_id, user_id, "SAVE_AS_TEMPLATE", {"source_setup_id": setup_id})
        return created

    async def get_template(self, template_id: str, store_id: str) -> WeeklySetup:
        template = await self.get_setup(template_id, store_id)
        if not template.is_template:
            raise NotFoundError(
                f"Template {template_id} not found",
                {"template_id": template_id},
            )
        return template

    async def update_template(
        self,
        template_id: str,
        store_id: str,
        name: str,
        changed_by: str,
        expected_version: Optional[int] = None
    ) -> WeeklySetup:
        """Rename a template; template names are unique per store"""
        template = await self.get_template(template_id, store_id)
        return await self._rename(template, name, changed_by, expected_version, "UPDATE_TEMPLATE")

    async def delete_template(self, template_id: str, store_id: str, deleted_by: str) -> WeeklySetup:
        """Soft delete; setups already created from the template are untouched"""
        await self.get_template(template_id, store_id)

        def mutate(template: WeeklySetup):
            template.deleted_at = self.clock()

        saved, _ = await self._mutate(template_id, store_id, deleted_by, "DELETE_TEMPLATE", mutate)
        return saved

    # ============ ASSIGNMENTS ============

    async def get_available_employees(
        self,
        setup_id: str,
        store_id: str,
        user_id: str,
        block_date: date,
        block_start: str,
        block_end: str,
        position_id: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        setup = await self.get_visible_setup(setup_id, user_id, store_id)
        employees = AssignmentEngine(setup).available_employees_for_block(
            block_date, block_start, block_end, position_id=position_id
        )
        return [e.to_document() for e in employees]

    async def get_day_employees(
        self,
        setup_id: str,
        store_id: str,
        user_id: str,
        day_date: date
    ) -> Dict[str, Any]:
        """
        Daily view: who works what on one day.

        `assigned` lists each roster employee holding at least one position with
        the blocks they hold them in; `unassigned` lists active employees with
        nothing that day.
        """
        setup = await self.get_visible_setup(setup_id, user_id, store_id)
        engine = AssignmentEngine(setup)
        day = setup.day_for(day_date)

        assigned = []
        for employee in sorted(day.roster, key=lambda e: (e.name.casefold(), e.id)):
            held = engine.assignments_for_employee(employee.id, day_date)
            if not held:
                continue
            assigned.append({
                "employee": employee.to_document(),
                "positions": [
                    {"block_id": block.id, "start": block.start, "end": block.end, **position.to_document()}
                    for block, position in held
                ],
            })

        return {
            "date": day_date.isoformat(),
            "assigned": assigned,
            "unassigned": [e.to_document() for e in engine.unassigned_employees(day_date)],
        }

    async def assign_employee(
        self,
        setup_id: str,
        store_id: str,
        position_id: str,
        employee_id: str,
        changed_by: str,
        expected_version: Optional[int] = None
    ) -> Tuple[WeeklySetup, Dict[str, Any]]:
        saved, position = await self._mutate(
            setup_id, store_id, changed_by, "ASSIGN",
            lambda setup: AssignmentEngine(setup).assign(position_id, employee_id),
            expected_version=expected_version,
            audit_fields=lambda p: {"position_id": p.id, "employee_id": p.employee_id},
        )
        return saved, position.to_document()

    async def unassign_position(
        self,
        setup_id: str,
        store_id: str,
        position_id: str,
        changed_by: str,
        expected_version: Optional[int] = None
    ) -> Tuple[WeeklySetup, Dict[str, Any]]:
        saved, position = await self._mutate(
            setup_id, store_id, changed_by, "UNASSIGN",
            lambda setup: AssignmentEngine(setup).unassign(position_id),
            expected_version=expected_version,
            audit_fields=lambda p: {"position_id": p.id},
        )
        return saved, position.to_document()

    # ============ LAYOUT ============

    async def add_time_block(
        self,
        setup_id: str,
        store_id: str,
        block_date: date,
        start: str,
        end: str,
        changed_by: str,
        expected_version: Optional[int] = None
    ) -> Tuple[WeeklySetup, Dict[str, Any]]:
        saved, block = await self._mutate(
            setup_id, store_id, changed_by, "ADD_TIME_BLOCK",
            lambda setup: setup.add_time_block(block_date, start, end),
            expected_version=expected_version,
            audit_fields=lambda b: {"block_id": b.id, "start": b.start, "end": b.end},
        )
        return saved, block.to_document()

    async def update_time_block(
        self,
        setup_id: str,
        store_id: str,
        block_id: str,
        start: str,
        end: str,
        changed_by: str,
        expected_version: Optional[int] = None
    ) -> Tuple[WeeklySetup, Dict[str, Any]]:
        saved, block = await self._mutate(
            setup_id, store_id, changed_by, "UPDATE_TIME_BLOCK",
            lambda setup: setup.update_time_block(block_id, start, end),
            expected_version=expected_version,
            audit_fields=lambda b: {"block_id": b.id, "start": b.start, "end": b.end},
        )
        return saved, block.to_document()

    async def remove_time_block(
        self,
        setup_id: str,
        store_id: str,
        block_id: str,
        changed_by: str,
        expected_version: Optional[int] = None
    ) -> WeeklySetup:
        saved, _ = await self._mutate(
            setup_id, store_id, changed_by, "REMOVE_TIME_BLOCK",
            lambda setup: setup.remove_time_block(block_id),
            expected_version=expected_version,
            audit_fields=lambda b: {"block_id": b.id, "positions": [p.id for p in b.positions]},
        )
        return saved

    async def add_position(
        self,
        setup_id: str,
        store_id: str,
        block_id: str,
        name: str,
        changed_by: str,
        category: Optional[str] = None,
        expected_version: Optional[int] = None
    ) -> Tuple[WeeklySetup, Dict[str, Any]]:
        """Add a position to a block; catalog positions bring their own category"""
        if not name or not name.strip():
            raise ValidationError("Position name is required", {"block_id": block_id})

        if category:
            department = department_for_category(category)
        else:
            catalog = await PositionCatalogService(self.supabase).get_catalog(store_id)
            entry = catalog.get(name)
            category, department = entry.category, entry.department

        saved, position = await self._mutate(
            setup_id, store_id, changed_by, "ADD_POSITION",
            lambda setup: setup.add_position(block_id, name, category, department),
            expected_version=expected_version,
            audit_fields=lambda p: {"block_id": block_id, "position_id": p.id, "name": p.name},
        )
        return saved, position.to_document()

    async def remove_position(
        self,
        setup_id: str,
        store_id: str,
        position_id: str,
        changed_by: str,
        expected_version: Optional[int] = None
    ) -> WeeklySetup:
        saved, _ = await self._mutate(
            setup_id, store_id, changed_by, "REMOVE_POSITION",
            lambda setup: setup.remove_position(position_id),
            expected_version=expected_version,
            audit_fields=lambda p: {"position_id": p.id, "name": p.name, "employee_id": p.employee_id},
        )
        return saved

    async def upload_roster(
        self,
        setup_id: str,
        store_id: str,
        content: bytes,
        filename: str,
        changed_by: str,
        expected_version: Optional[int] = None
    ) -> Tuple[WeeklySetup, Dict[str, Any]]:
        """Merge an uploaded schedule into the week (one Day per date, always)"""
        rows = read_roster_file(content, filename)

        def mutate(setup: WeeklySetup):
            day_rosters = parse_roster_rows(rows, setup.week_start_date)
            setup.apply_roster(day_rosters)
            return {
                "days": len(day_rosters),
                "employees": sum(len(v) for v in day_rosters.values()),
            }

        saved, summary = await self._mutate(
            setup_id, store_id, changed_by, "UPLOAD_ROSTER", mutate,
            expected_version=expected_version,
            audit_fields=lambda s: {**s, "filename": filename},
        )
        return saved, summary

    # ============ BREAKS ============

    async def start_break(
        self,
        setup_id: str,
        store_id: str,
        employee_id: str,
        changed_by: str,
        break_date: Optional[date] = None,
        duration: Optional[int] = None,
        expected_version: Optional[int] = None
    ) -> Tuple[WeeklySetup, Dict[str, Any]]:
        now = self.clock()
        target = break_date or self.today()
        minutes = DEFAULT_BREAK_MINUTES if duration is None else duration

        saved, record = await self._mutate(
            setup_id, store_id, changed_by, "BREAK_START",
            lambda setup: BreakTracker(setup).start_break(employee_id, target, minutes, now),
            expected_version=expected_version,
            audit_fields=lambda r: {"employee_id": employee_id, "break_id": r.id, "duration": r.duration},
        )
        return saved, record.to_document()

    async def end_break(
        self,
        setup_id: str,
        store_id: str,
        employee_id: str,
        changed_by: str,
        break_date: Optional[date] = None,
        expected_version: Optional[int] = None
    ) -> Tuple[WeeklySetup, Dict[str, Any]]:
        now = self.clock()
        target = break_date or self.today()

        saved, record = await self._mutate(
            setup_id, store_id, changed_by, "BREAK_END",
            lambda setup: BreakTracker(setup).end_break(employee_id, target, now),
            expected_version=expected_version,
            audit_fields=lambda r: {"employee_id": employee_id, "break_id": r.id},
        )
        return saved, record.to_document()

    async def get_break_state(
        self,
        setup_id: str,
        store_id: str,
        user_id: str,
        employee_id: str,
        break_date: Optional[date] = None
    ) -> Dict[str, Any]:
        now = self.clock()
        target = break_date or self.today()
        setup = await self.get_visible_setup(setup_id, user_id, store_id)
        tracker = BreakTracker(setup)

        return {
            "employee_id": employee_id,
            "date": target.isoformat(),
            "status": tracker.break_status(employee_id, target),
            "remaining_minutes": tracker.remaining_break_time(employee_id, target, now),
            "has_had_break": tracker.has_had_break(employee_id, target),
            "breaks": [b.to_document() for b in tracker.breaks_for(employee_id, target)],
        }

    # ============ REPLACEMENT ============

    async def replace_employee(
        self,
        setup_id: str,
        store_id: str,
        old_employee_id: str,
        new_employee_name: str,
        changed_by: str,
        replace_date: Optional[date] = None,
        expected_version: Optional[int] = None
    ) -> Tuple[WeeklySetup, ReplacementResult]:
        target = replace_date or self.today()
        resolver = resolver_for(REPLACEMENT_STRICT_MODE)

        saved, result = await self._mutate(
            setup_id, store_id, changed_by, "REPLACE_EMPLOYEE",
            lambda setup: ReplacementWorkflow(setup, resolver).replace_employee(old_employee_id, new_employee_name, target),
            expected_version=expected_version,
            audit_fields=lambda r: r.to_dict(),
        )
        return saved, result
