"""
Legal assistant chat schemas.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field


class ChatMessageCreate(BaseModel):
    content: str = Field(..., min_length=1, max_length=10000, description="Question for the legal assistant")


class ChatMessageResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    role: str
    content: str
    provider: Optional[str] = None
    created_at: datetime


class ChatExchangeResponse(BaseModel):
    user_message: ChatMessageResponse
    ai_message: ChatMessageResponse
