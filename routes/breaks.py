from fastapi import APIRouter, Depends, Query
from typing import Optional
from datetime import date
from services.auth_service import verify_jwt_token as get_current_user
from services.weekly_setup_service import WeeklySetupService
from models.weekly_setups import BreakStartRequest, BreakEndRequest
from routes.setup_errors import to_http_exception
from routes.weekly_setups import get_weekly_setup_service

router = APIRouter(prefix="/api/weekly-setups/{setup_id}/breaks", tags=["breaks"])


@router.post("/start")
async def start_break(
    setup_id: str,
    request: BreakStartRequest,
    current_user: dict = Depends(get_current_user),
    service: WeeklySetupService = Depends(get_weekly_setup_service)
):
    """Send an employee on break; duration defaults to the store setting"""
    try:
        setup, record = await service.start_break(
            setup_id=setup_id,
            store_id=current_user['store_id'],
            employee_id=request.employee_id,
            changed_by=current_user['user_id'],
            break_date=request.break_date,
            duration=request.duration,
            expected_version=request.expected_version
        )
        return {
            "success": True,
            "break": record,
            "version": setup.version
        }
    except Exception as e:
        raise to_http_exception(e, "start break")


@router.post("/end")
async def end_break(
    setup_id: str,
    request: BreakEndRequest,
    current_user: dict = Depends(get_current_user),
    service: WeeklySetupService = Depends(get_weekly_setup_service)
):
    try:
        setup, record = await service.end_break(
            setup_id=setup_id,
            store_id=current_user['store_id'],
            employee_id=request.employee_id,
            changed_by=current_user['user_id'],
            break_date=request.break_date,
            expected_version=request.expected_version
        )
        return {
            "success": True,
            "break": record,
            "version": setup.version
        }
    except Exception as e:
        raise to_http_exception(e, "end break")


@router.get("/{employee_id}")
async def get_break_state(
    setup_id: str,
    employee_id: str,
    break_date: Optional[date] = Query(default=None),
    current_user: dict = Depends(get_current_user),
    service: WeeklySetupService = Depends(get_weekly_setup_service)
):
    """Break status, remaining minutes and history for one employee-day"""
    try:
        state = await service.get_break_state(
            setup_id=setup_id,
            store_id=current_user['store_id'],
            user_id=current_user['user_id'],
            employee_id=employee_id,
            break_date=break_date
        )
        return {
            "success": True,
            **state
        }
    except Exception as e:
        raise to_http_exception(e, "fetch break state")
