from fastapi import APIRouter, Depends, HTTPException, status
from services.auth_service import verify_jwt_token as get_current_user, can_edit_setup
from services.weekly_setup_service import WeeklySetupService
from models.weekly_setups import TemplateFromSetupRequest, CreateFromTemplateRequest, TemplateUpdate
from routes.setup_errors import to_http_exception
from routes.weekly_setups import get_weekly_setup_service

router = APIRouter(prefix="/api/setup-templates", tags=["setup-templates"])


@router.get("")
async def list_templates(
    current_user: dict = Depends(get_current_user),
    service: WeeklySetupService = Depends(get_weekly_setup_service)
):
    try:
        templates = await service.list_templates(store_id=current_user['store_id'])
        return {
            "success": True,
            "templates": [t.to_document() for t in templates],
            "count": len(templates)
        }
    except Exception as e:
        raise to_http_exception(e, "fetch templates")


@router.post("", status_code=status.HTTP_201_CREATED)
async def save_as_template(
    request: TemplateFromSetupRequest,
    current_user: dict = Depends(get_current_user),
    service: WeeklySetupService = Depends(get_weekly_setup_service)
):
    """Save an existing setup's layout (no employees, no breaks) as a template"""
    try:
        template = await service.save_as_template(
            setup_id=request.setup_id,
            store_id=current_user['store_id'],
            user_id=current_user['user_id'],
            name=request.name
        )
        return {
            "success": True,
            "template": template.to_document(),
            "message": "Template saved"
        }
    except Exception as e:
        raise to_http_exception(e, "save template")


@router.post("/apply", status_code=status.HTTP_201_CREATED)
async def create_from_template(
    request: CreateFromTemplateRequest,
    current_user: dict = Depends(get_current_user),
    service: WeeklySetupService = Depends(get_weekly_setup_service)
):
    """
    Create a weekly setup from a template.
    Without a week_start_date the setup is created for the upcoming week.
    """
    try:
        setup = await service.create_from_template(
            template_id=request.template_id,
            store_id=current_user['store_id'],
            user_id=current_user['user_id'],
            week_start_date=request.week_start_date,
            name=request.name
        )
        return {
            "success": True,
            "setup": setup.to_document(),
            "message": "Weekly setup created from template"
        }
    except Exception as e:
        raise to_http_exception(e, "create setup from template")


async def _require_template_editor(service: WeeklySetupService, template_id: str, current_user: dict):
    template = await service.get_template(template_id, current_user['store_id'])
    if not can_edit_setup(current_user, template.user_id):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only the creator or a Leader/Director can change this template"
        )
    return template


@router.put("/{template_id}")
async def update_template(
    template_id: str,
    request: TemplateUpdate,
    current_user: dict = Depends(get_current_user),
    service: WeeklySetupService = Depends(get_weekly_setup_service)
):
    try:
        await _require_template_editor(service, template_id, current_user)
        template = await service.update_template(
            template_id=template_id,
            store_id=current_user['store_id'],
            name=request.name,
            changed_by=current_user['user_id'],
            expected_version=request.expected_version
        )
        return {
            "success": True,
            "template": template.to_document(),
            "message": "Template updated"
        }
    except Exception as e:
        raise to_http_exception(e, "update template")


@router.delete("/{template_id}")
async def delete_template(
    template_id: str,
    current_user: dict = Depends(get_current_user),
    service: WeeklySetupService = Depends(get_weekly_setup_service)
):
    try:
        await _require_template_editor(service, template_id, current_user)
        await service.delete_template(
            template_id=template_id,
            store_id=current_user['store_id'],
            deleted_by=current_user['user_id']
        )
        return {
            "success": True,
            "message": "Template deleted"
        }
    except Exception as e:
        raise to_http_exception(e, "delete template")
