"""
modules/setup_sheet/errors.py

Errors raised by the setup sheet engine.

Every error carries a human-readable message plus a context dict naming the
slot, employee or time block that caused the rejection, so the route layer
can hand shift managers something they can act on.
"""

from typing import Any, Dict, Optional


class SetupSheetError(Exception):
    """Base class for all recoverable setup sheet errors."""

    code = "SETUP_SHEET_ERROR"

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def to_detail(self) -> Dict[str, Any]:
        return {
            "message": self.message,
            "code": self.code,
            "context": self.context,
        }


class ConflictError(SetupSheetError):
    """Double-booking inside a time block, or a stale aggregate write."""

    code = "CONFLICT"


class NotFoundError(SetupSheetError):
    """Unknown setup, day, position or employee id."""

    code = "NOT_FOUND"


class EmployeeNotFoundError(NotFoundError):
    code = "EMPLOYEE_NOT_FOUND"


class AlreadyOnBreakError(SetupSheetError):
    code = "ALREADY_ON_BREAK"


class NoActiveBreakError(SetupSheetError):
    code = "NO_ACTIVE_BREAK"


class ValidationError(SetupSheetError):
    """Malformed input: bad time strings, blank names, duplicate days."""

    code = "VALIDATION_ERROR"
