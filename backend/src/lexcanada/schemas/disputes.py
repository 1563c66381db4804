"""
Dispute and mediation schemas.
"""

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field


class DisputeCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: str = Field(..., min_length=1, max_length=20000)
    parties: str = Field(..., min_length=1, max_length=2000)
    dispute_type: str
    supporting_documents: Optional[List[Dict[str, Any]]] = None


class DisputeUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = Field(None, min_length=1, max_length=20000)
    parties: Optional[str] = Field(None, min_length=1, max_length=2000)
    status: Optional[str] = None
    dispute_type: Optional[str] = None
    supporting_documents: Optional[List[Dict[str, Any]]] = None


class DisputeResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    title: str
    description: str
    parties: str
    status: str
    dispute_type: str
    supporting_documents: Optional[List[Dict[str, Any]]] = None
    ai_analysis: Optional[Dict[str, Any]] = None
    mediation_id: Optional[int] = None
    created_at: datetime
    updated_at: datetime
    resolved_at: Optional[datetime] = None


class MediationSessionCreate(BaseModel):
    scheduled_at: Optional[datetime] = None
    mediator_id: Optional[int] = None
    ai_assistance: bool = True
    mediation_style: Literal["facilitative", "evaluative", "transformative"] = "facilitative"


class MediationSessionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    dispute_id: int
    mediator_id: Optional[int] = None
    session_code: str
    status: str
    mediation_style: str
    ai_assistance: bool
    scheduled_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    summary: Optional[str] = None
    recommendations: Optional[List[str]] = None
    created_at: datetime


class MediationMessageCreate(BaseModel):
    content: str = Field(..., min_length=1, max_length=10000)


class MediationMessageResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    session_id: int
    user_id: Optional[int] = None
    role: str
    content: str
    sentiment: Optional[str] = None
    created_at: datetime


class MediationSessionDetails(BaseModel):
    session: MediationSessionResponse
    dispute: DisputeResponse
    messages: List[MediationMessageResponse]


class MediationSummaryResponse(BaseModel):
    summary: str
    recommendations: List[str]
