import logging
from fastapi import HTTPException, status
from modules.setup_sheet.errors import (
    AlreadyOnBreakError,
    ConflictError,
    NoActiveBreakError,
    NotFoundError,
    SetupSheetError,
    ValidationError,
)

logger = logging.getLogger(__name__)

STATUS_BY_ERROR = [
    (ConflictError, status.HTTP_409_CONFLICT),
    (AlreadyOnBreakError, status.HTTP_409_CONFLICT),
    (NoActiveBreakError, status.HTTP_409_CONFLICT),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (ValidationError, status.HTTP_400_BAD_REQUEST),
]


def to_http_exception(e: Exception, action: str) -> HTTPException:
    """Translate a service error into the HTTPException the route raises"""
    if isinstance(e, HTTPException):
        return e

    if isinstance(e, SetupSheetError):
        for error_type, status_code in STATUS_BY_ERROR:
            if isinstance(e, error_type):
                return HTTPException(status_code=status_code, detail=e.to_detail())
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.to_detail())

    logger.error(f"Failed to {action}: {e}")
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=f"Failed to {action}: {str(e)}"
    )
