from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile, status
from typing import Optional
from datetime import date
from config.settings import MAX_ROSTER_UPLOAD_BYTES
from services.auth_service import verify_jwt_token as get_current_user, can_edit_setup
from services.weekly_setup_service import WeeklySetupService
from models.weekly_setups import (
    AssignRequest,
    PositionCreate,
    ReplaceRequest,
    SetupRename,
    ShareRequest,
    TimeBlockCreate,
    TimeBlockUpdate,
    WeeklySetupCreate,
)
from routes.setup_errors import to_http_exception

router = APIRouter(prefix="/api/weekly-setups", tags=["weekly-setups"])


def get_weekly_setup_service() -> WeeklySetupService:
    return WeeklySetupService()


@router.get("")
async def list_weekly_setups(
    current_user: dict = Depends(get_current_user),
    service: WeeklySetupService = Depends(get_weekly_setup_service)
):
    """Setups the user created plus setups shared with their store"""
    try:
        setups = await service.list_setups(
            user_id=current_user['user_id'],
            store_id=current_user['store_id']
        )
        return {
            "success": True,
            "setups": [s.to_document() for s in setups],
            "count": len(setups)
        }
    except Exception as e:
        raise to_http_exception(e, "fetch weekly setups")


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_weekly_setup(
    request: WeeklySetupCreate,
    current_user: dict = Depends(get_current_user),
    service: WeeklySetupService = Depends(get_weekly_setup_service)
):
    try:
        setup = await service.create_setup(
            store_id=current_user['store_id'],
            user_id=current_user['user_id'],
            name=request.name,
            week_start_date=request.week_start_date,
            is_shared=request.is_shared
        )
        return {
            "success": True,
            "setup": setup.to_document(),
            "message": "Weekly setup created"
        }
    except Exception as e:
        raise to_http_exception(e, "create weekly setup")


@router.get("/{setup_id}")
async def get_weekly_setup(
    setup_id: str,
    current_user: dict = Depends(get_current_user),
    service: WeeklySetupService = Depends(get_weekly_setup_service)
):
    try:
        setup = await service.get_visible_setup(
            setup_id=setup_id,
            user_id=current_user['user_id'],
            store_id=current_user['store_id']
        )
        return {
            "success": True,
            "setup": setup.to_document()
        }
    except Exception as e:
        raise to_http_exception(e, "fetch weekly setup")


async def _require_editor(service: WeeklySetupService, setup_id: str, current_user: dict):
    setup = await service.get_visible_setup(
        setup_id=setup_id,
        user_id=current_user['user_id'],
        store_id=current_user['store_id']
    )
    if not can_edit_setup(current_user, setup.user_id):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only the creator or a Leader/Director can change this setup"
        )
    return setup


@router.delete("/{setup_id}")
async def delete_weekly_setup(
    setup_id: str,
    current_user: dict = Depends(get_current_user),
    service: WeeklySetupService = Depends(get_weekly_setup_service)
):
    try:
        await _require_editor(service, setup_id, current_user)
        await service.delete_setup(
            setup_id=setup_id,
            store_id=current_user['store_id'],
            deleted_by=current_user['user_id']
        )
        return {
            "success": True,
            "message": "Weekly setup deleted"
        }
    except Exception as e:
        raise to_http_exception(e, "delete weekly setup")


@router.put("/{setup_id}")
async def rename_weekly_setup(
    setup_id: str,
    request: SetupRename,
    current_user: dict = Depends(get_current_user),
    service: WeeklySetupService = Depends(get_weekly_setup_service)
):
    try:
        await _require_editor(service, setup_id, current_user)
        setup = await service.rename_setup(
            setup_id=setup_id,
            store_id=current_user['store_id'],
            name=request.name,
            changed_by=current_user['user_id'],
            expected_version=request.expected_version
        )
        return {
            "success": True,
            "setup": setup.to_document(),
            "message": "Weekly setup renamed"
        }
    except Exception as e:
        raise to_http_exception(e, "rename weekly setup")


@router.put("/{setup_id}/share")
async def share_weekly_setup(
    setup_id: str,
    request: ShareRequest,
    current_user: dict = Depends(get_current_user),
    service: WeeklySetupService = Depends(get_weekly_setup_service)
):
    try:
        await _require_editor(service, setup_id, current_user)
        setup = await service.set_shared(
            setup_id=setup_id,
            store_id=current_user['store_id'],
            is_shared=request.is_shared,
            changed_by=current_user['user_id'],
            expected_version=request.expected_version
        )
        return {
            "success": True,
            "setup": setup.to_document(),
            "message": "Setup shared" if setup.is_shared else "Setup unshared"
        }
    except Exception as e:
        raise to_http_exception(e, "update sharing")


@router.get("/{setup_id}/available-employees")
async def get_available_employees(
    setup_id: str,
    block_date: date,
    start: str,
    end: str,
    position_id: Optional[str] = Query(default=None),
    current_user: dict = Depends(get_current_user),
    service: WeeklySetupService = Depends(get_weekly_setup_service)
):
    """
    Employees whose shift fully covers the block and who are not already
    working another position in it.
    """
    try:
        employees = await service.get_available_employees(
            setup_id=setup_id,
            store_id=current_user['store_id'],
            user_id=current_user['user_id'],
            block_date=block_date,
            block_start=start,
            block_end=end,
            position_id=position_id
        )
        return {
            "success": True,
            "employees": employees,
            "count": len(employees)
        }
    except Exception as e:
        raise to_http_exception(e, "fetch available employees")


@router.get("/{setup_id}/days/{day_date}/employees")
async def get_day_employees(
    setup_id: str,
    day_date: date,
    current_user: dict = Depends(get_current_user),
    service: WeeklySetupService = Depends(get_weekly_setup_service)
):
    """Who holds which positions on a day, and who is still free"""
    try:
        view = await service.get_day_employees(
            setup_id=setup_id,
            store_id=current_user['store_id'],
            user_id=current_user['user_id'],
            day_date=day_date
        )
        return {
            "success": True,
            **view
        }
    except Exception as e:
        raise to_http_exception(e, "fetch day employees")


@router.post("/{setup_id}/assignments")
async def assign_employee(
    setup_id: str,
    request: AssignRequest,
    current_user: dict = Depends(get_current_user),
    service: WeeklySetupService = Depends(get_weekly_setup_service)
):
    try:
        setup, position = await service.assign_employee(
            setup_id=setup_id,
            store_id=current_user['store_id'],
            position_id=request.position_id,
            employee_id=request.employee_id,
            changed_by=current_user['user_id'],
            expected_version=request.expected_version
        )
        return {
            "success": True,
            "position": position,
            "version": setup.version
        }
    except Exception as e:
        raise to_http_exception(e, "assign employee")


@router.delete("/{setup_id}/positions/{position_id}/assignment")
async def unassign_position(
    setup_id: str,
    position_id: str,
    expected_version: Optional[int] = Query(default=None),
    current_user: dict = Depends(get_current_user),
    service: WeeklySetupService = Depends(get_weekly_setup_service)
):
    try:
        setup, position = await service.unassign_position(
            setup_id=setup_id,
            store_id=current_user['store_id'],
            position_id=position_id,
            changed_by=current_user['user_id'],
            expected_version=expected_version
        )
        return {
            "success": True,
            "position": position,
            "version": setup.version
        }
    except Exception as e:
        raise to_http_exception(e, "unassign position")


@router.post("/{setup_id}/replacements")
async def replace_employee(
    setup_id: str,
    request: ReplaceRequest,
    current_user: dict = Depends(get_current_user),
    service: WeeklySetupService = Depends(get_weekly_setup_service)
):
    """Swap an employee out for the whole day (positions and active break)"""
    try:
        setup, result = await service.replace_employee(
            setup_id=setup_id,
            store_id=current_user['store_id'],
            old_employee_id=request.old_employee_id,
            new_employee_name=request.new_employee_name,
            changed_by=current_user['user_id'],
            replace_date=request.replace_date,
            expected_version=request.expected_version
        )
        return {
            "success": True,
            "replacement": result.to_dict(),
            "version": setup.version
        }
    except Exception as e:
        raise to_http_exception(e, "replace employee")


@router.post("/{setup_id}/roster")
async def upload_roster(
    setup_id: str,
    file: UploadFile = File(...),
    expected_version: Optional[int] = Query(default=None),
    current_user: dict = Depends(get_current_user),
    service: WeeklySetupService = Depends(get_weekly_setup_service)
):
    """Upload the week's schedule export (CSV or Excel)"""
    content = await file.read()
    if len(content) > MAX_ROSTER_UPLOAD_BYTES:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"Schedule file is larger than {MAX_ROSTER_UPLOAD_BYTES} bytes"
        )

    try:
        setup, summary = await service.upload_roster(
            setup_id=setup_id,
            store_id=current_user['store_id'],
            content=content,
            filename=file.filename or "",
            changed_by=current_user['user_id'],
            expected_version=expected_version
        )
        return {
            "success": True,
            "summary": summary,
            "setup": setup.to_document()
        }
    except Exception as e:
        raise to_http_exception(e, "upload roster")


@router.post("/{setup_id}/time-blocks", status_code=status.HTTP_201_CREATED)
async def add_time_block(
    setup_id: str,
    request: TimeBlockCreate,
    current_user: dict = Depends(get_current_user),
    service: WeeklySetupService = Depends(get_weekly_setup_service)
):
    try:
        setup, block = await service.add_time_block(
            setup_id=setup_id,
            store_id=current_user['store_id'],
            block_date=request.block_date,
            start=request.start,
            end=request.end,
            changed_by=current_user['user_id'],
            expected_version=request.expected_version
        )
        return {
            "success": True,
            "time_block": block,
            "version": setup.version
        }
    except Exception as e:
        raise to_http_exception(e, "add time block")


@router.post("/{setup_id}/positions", status_code=status.HTTP_201_CREATED)
async def add_position(
    setup_id: str,
    request: PositionCreate,
    current_user: dict = Depends(get_current_user),
    service: WeeklySetupService = Depends(get_weekly_setup_service)
):
    try:
        setup, position = await service.add_position(
            setup_id=setup_id,
            store_id=current_user['store_id'],
            block_id=request.block_id,
            name=request.name,
            changed_by=current_user['user_id'],
            category=request.category,
            expected_version=request.expected_version
        )
        return {
            "success": True,
            "position": position,
            "version": setup.version
        }
    except Exception as e:
        raise to_http_exception(e, "add position")


@router.put("/{setup_id}/time-blocks/{block_id}")
async def update_time_block(
    setup_id: str,
    block_id: str,
    request: TimeBlockUpdate,
    current_user: dict = Depends(get_current_user),
    service: WeeklySetupService = Depends(get_weekly_setup_service)
):
    try:
        setup, block = await service.update_time_block(
            setup_id=setup_id,
            store_id=current_user['store_id'],
            block_id=block_id,
            start=request.start,
            end=request.end,
            changed_by=current_user['user_id'],
            expected_version=request.expected_version
        )
        return {
            "success": True,
            "time_block": block,
            "version": setup.version
        }
    except Exception as e:
        raise to_http_exception(e, "update time block")


@router.delete("/{setup_id}/time-blocks/{block_id}")
async def remove_time_block(
    setup_id: str,
    block_id: str,
    expected_version: Optional[int] = Query(default=None),
    current_user: dict = Depends(get_current_user),
    service: WeeklySetupService = Depends(get_weekly_setup_service)
):
    """Remove a time block along with its positions"""
    try:
        setup = await service.remove_time_block(
            setup_id=setup_id,
            store_id=current_user['store_id'],
            block_id=block_id,
            changed_by=current_user['user_id'],
            expected_version=expected_version
        )
        return {
            "success": True,
            "message": "Time block removed",
            "version": setup.version
        }
    except Exception as e:
        raise to_http_exception(e, "remove time block")


@router.delete("/{setup_id}/positions/{position_id}")
async def remove_position(
    setup_id: str,
    position_id: str,
    expected_version: Optional[int] = Query(default=None),
    current_user: dict = Depends(get_current_user),
    service: WeeklySetupService = Depends(get_weekly_setup_service)
):
    try:
        setup = await service.remove_position(
            setup_id=setup_id,
            store_id=current_user['store_id'],
            position_id=position_id,
            changed_by=current_user['user_id'],
            expected_version=expected_version
        )
        return {
            "success": True,
            "message": "Position removed",
            "version": setup.version
        }
    except Exception as e:
        raise to_http_exception(e, "remove position")
