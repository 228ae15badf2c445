from fastapi import APIRouter, Depends
from services.auth_service import verify_jwt_token as get_current_user
from services.position_catalog_service import PositionCatalogService
from routes.setup_errors import to_http_exception

router = APIRouter(prefix="/api/positions", tags=["positions"])


def get_position_catalog_service() -> PositionCatalogService:
    return PositionCatalogService()


@router.get("")
async def get_positions(
    current_user: dict = Depends(get_current_user),
    service: PositionCatalogService = Depends(get_position_catalog_service)
):
    """Position catalog for the user's store, grouped by category"""
    try:
        catalog = await service.get_catalog(current_user['store_id'])
        grouped = {}
        for position in catalog.all():
            grouped.setdefault(position.category, []).append(position.to_dict())
        return {
            "success": True,
            "positions": [p.to_dict() for p in catalog.all()],
            "by_category": grouped
        }
    except Exception as e:
        raise to_http_exception(e, "fetch positions")
