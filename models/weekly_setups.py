from pydantic import BaseModel, Field
from typing import Optional
from datetime import date

class WeeklySetupCreate(BaseModel):
    """Request model for creating an empty weekly setup"""
    name: str = Field(..., min_length=1)
    week_start_date: Optional[date] = None  # Defaults to the current store week
    is_shared: bool = False

class SetupRename(BaseModel):
    name: str = Field(..., min_length=1)
    expected_version: Optional[int] = None

class ShareRequest(BaseModel):
    is_shared: bool
    expected_version: Optional[int] = None

class AssignRequest(BaseModel):
    """Bind a roster employee to a position"""
    position_id: str
    employee_id: str
    expected_version: Optional[int] = None

class ReplaceRequest(BaseModel):
    """Swap an employee for someone else for a whole day"""
    old_employee_id: str
    new_employee_name: str
    replace_date: Optional[date] = None  # Defaults to today
    expected_version: Optional[int] = None

class BreakStartRequest(BaseModel):
    employee_id: str
    break_date: Optional[date] = None  # Defaults to today
    duration: Optional[int] = Field(default=None, description="Planned break length in minutes")
    expected_version: Optional[int] = None

class BreakEndRequest(BaseModel):
    employee_id: str
    break_date: Optional[date] = None  # Defaults to today
    expected_version: Optional[int] = None

class TimeBlockCreate(BaseModel):
    block_date: date
    start: str  # "HH:MM" or "5:00 AM"
    end: str
    expected_version: Optional[int] = None

class TimeBlockUpdate(BaseModel):
    """Move a time block to a new window"""
    start: str
    end: str
    expected_version: Optional[int] = None

class PositionCreate(BaseModel):
    """Add a position slot to a time block"""
    block_id: str
    name: str
    category: Optional[str] = None  # Looked up in the store catalog when omitted
    expected_version: Optional[int] = None

class TemplateFromSetupRequest(BaseModel):
    setup_id: str
    name: Optional[str] = None  # Defaults to "Template from <setup name>"

class CreateFromTemplateRequest(BaseModel):
    template_id: str
    week_start_date: Optional[date] = None  # Defaults to the upcoming week
    name: Optional[str] = None

class TemplateUpdate(BaseModel):
    name: str = Field(..., min_length=1)
    expected_version: Optional[int] = None
