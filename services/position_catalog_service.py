import logging
from database.supabase_client import get_supabase
from modules.setup_sheet.positions import PositionCatalog, default_catalog

logger = logging.getLogger(__name__)


class PositionCatalogService:
    def __init__(self, supabase=None):
        self.supabase = supabase or get_supabase()

    async def get_catalog(self, store_id: str) -> PositionCatalog:
        """Store's configured positions, or the default catalog when none are set up"""
        try:
            response = self.supabase.table("store_positions") \
                .select("name, category, department") \
                .eq("store_id", store_id) \
                .eq("is_active", True) \
                .order("name") \
                .execute()
        except Exception as e:
            logger.error(f"Load position catalog error: {e}")
            raise e

        if not response.data:
            return default_catalog(store_id)

        return PositionCatalog.from_rows(store_id, response.data)
