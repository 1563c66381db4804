"""
Court procedure catalogue, tracking and personalization schemas.
"""

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field


class CourtProcedureCategoryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    slug: str
    description: Optional[str] = None
    icon: Optional[str] = None
    order: int
    is_active: bool


class CourtProcedureStepResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    procedure_id: int
    title: str
    description: Optional[str] = None
    step_order: int
    estimated_time: Optional[str] = None
    required_documents: Optional[List[Any]] = None
    instructions: Optional[str] = None
    tips: Optional[List[str]] = None
    warnings: Optional[List[str]] = None


class CourtProcedureResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    category_id: int
    name: str
    slug: str
    description: Optional[str] = None
    overview: Optional[str] = None
    jurisdiction: Optional[str] = None
    estimated_timeframe: Optional[str] = None
    cost_range: Optional[str] = None
    required_documents: Optional[List[Any]] = None
    is_active: bool


class CourtProcedureDetail(CourtProcedureResponse):
    steps: List[CourtProcedureStepResponse] = Field(default_factory=list)


class UserCourtProcedureCreate(BaseModel):
    procedure_id: int
    title: Optional[str] = Field(None, max_length=255)
    case_specific_data: Optional[Dict[str, Any]] = None
    expected_completion_date: Optional[datetime] = None


class UserCourtProcedureUpdate(BaseModel):
    current_step_id: Optional[int] = None
    status: Optional[Literal["in_progress", "paused", "completed", "abandoned"]] = None
    progress: Optional[int] = Field(None, ge=0, le=100)
    notes: Optional[str] = None
    completed_steps: Optional[List[int]] = None
    expected_completion_date: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    case_specific_data: Optional[Dict[str, Any]] = None


class UserCourtProcedureResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    procedure_id: int
    title: Optional[str] = None
    current_step_id: Optional[int] = None
    status: str
    progress: int
    notes: Optional[str] = None
    completed_steps: List[int] = Field(default_factory=list)
    case_specific_data: Optional[Dict[str, Any]] = None
    started_at: datetime
    expected_completion_date: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    last_activity_at: datetime


class UserCourtProcedureDetail(UserCourtProcedureResponse):
    procedure: Optional[CourtProcedureResponse] = None
    current_step: Optional[CourtProcedureStepResponse] = None


class NoteCreate(BaseModel):
    content: str = Field(..., min_length=1, max_length=10000)
    step_id: Optional[int] = None


class NoteUpdate(BaseModel):
    content: Optional[str] = Field(None, min_length=1, max_length=10000)
    step_id: Optional[int] = None


class NoteResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_procedure_id: int
    step_id: Optional[int] = None
    content: str
    created_at: datetime
    updated_at: datetime


class ReminderCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    due_date: datetime
    step_id: Optional[int] = None
    notify_before: int = Field(default=1, ge=0, le=365)
    notify_method: Literal["app", "email", "both"] = "app"


class ReminderUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    due_date: Optional[datetime] = None
    step_id: Optional[int] = None
    notify_before: Optional[int] = Field(None, ge=0, le=365)
    notify_method: Optional[Literal["app", "email", "both"]] = None
    is_completed: Optional[bool] = None


class ReminderResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_procedure_id: int
    step_id: Optional[int] = None
    title: str
    description: Optional[str] = None
    due_date: datetime
    notify_before: int
    notify_method: str
    is_completed: bool
    created_at: datetime
    updated_at: datetime


class ChecklistItemCreate(BaseModel):
    text: str = Field(..., min_length=1, max_length=2000)
    category: str = Field(default="general", max_length=50)
    step_id: Optional[int] = None


class ChecklistItemUpdate(BaseModel):
    text: Optional[str] = Field(None, min_length=1, max_length=2000)
    category: Optional[str] = Field(None, max_length=50)
    step_id: Optional[int] = None
    is_completed: Optional[bool] = None


class ChecklistItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_procedure_id: int
    step_id: Optional[int] = None
    category: str
    text: str
    is_completed: bool
    created_at: datetime
    updated_at: datetime


class ProcedureDocumentCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    file_type: str = Field(..., min_length=1, max_length=50)
    description: Optional[str] = None
    file_url: Optional[str] = None
    step_id: Optional[int] = None
    related_form_id: Optional[int] = None
    status: Literal["draft", "completed", "submitted", "approved", "rejected"] = "draft"


class ProcedureDocumentUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    file_type: Optional[str] = Field(None, min_length=1, max_length=50)
    description: Optional[str] = None
    file_url: Optional[str] = None
    step_id: Optional[int] = None
    related_form_id: Optional[int] = None
    status: Optional[Literal["draft", "completed", "submitted", "approved", "rejected"]] = None


class ProcedureDocumentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_procedure_id: int
    step_id: Optional[int] = None
    related_form_id: Optional[int] = None
    name: str
    description: Optional[str] = None
    file_url: Optional[str] = None
    file_type: str
    status: str
    created_at: datetime
    updated_at: datetime
