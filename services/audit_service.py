import logging
from typing import Dict, Any, Optional
from database.supabase_client import get_supabase

logger = logging.getLogger(__name__)

async def log_setup_change(
    setup_id: str,
    store_id: str,
    changed_by: str,
    action: str,
    changed_fields: Optional[Dict[str, Any]] = None
):
    """Log weekly setup changes to audit table"""
    try:
        supabase = get_supabase()

        audit_entry = {
            "setup_id": setup_id,
            "store_id": store_id,
            "changed_by": changed_by,
            "action": action,
            "changed_fields": changed_fields
        }

        result = supabase.table('weekly_setup_audit_log').insert(audit_entry).execute()
        logger.info(f"Audit log created: {action} for setup {setup_id} by {changed_by}")

        return result.data

    except Exception as e:
        logger.error(f"Failed to create audit log: {e}")
        # Don't fail the operation if audit logging fails
        return None
