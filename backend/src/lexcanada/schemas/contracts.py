"""
Contract analysis and comparison schemas.
"""

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field


class ContractAnalysisRequest(BaseModel):
    content: str = Field(..., min_length=1)
    save: bool = False
    title: Optional[str] = Field(None, max_length=255)
    jurisdiction: str = "Canada"
    contract_type: str = "general"


class ContractRisk(BaseModel):
    clause: str = ""
    issue: str = ""
    suggestion: str = ""
    severity: Literal["low", "medium", "high"] = "medium"


class ContractSuggestion(BaseModel):
    clause: str = ""
    suggestion: str = ""
    reason: str = ""


class ContractAnalysisResult(BaseModel):
    score: int = Field(..., ge=0, le=100)
    risk_level: Literal["low", "medium", "high"]
    risks: List[ContractRisk] = Field(default_factory=list)
    suggestions: List[ContractSuggestion] = Field(default_factory=list)
    summary: str
    clause_categories: Dict[str, List[str]] = Field(default_factory=dict)
    analysis_id: Optional[int] = None
    degraded: bool = False


class ContractAnalysisResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    contract_title: str
    contract_content: str
    score: int
    risk_level: str
    analysis_results: Dict[str, Any]
    categories: Optional[Dict[str, Any]] = None
    jurisdiction: Optional[str] = None
    contract_type: Optional[str] = None
    file_name: Optional[str] = None
    created_at: datetime


class ContractComparisonRequest(BaseModel):
    first_contract: str = Field(..., min_length=1)
    second_contract: str = Field(..., min_length=1)


class ContractDifference(BaseModel):
    section: str
    first: str = ""
    second: str = ""
    impact: Optional[str] = None


class ContractComparisonResult(BaseModel):
    summary: str
    differences: List[ContractDifference] = Field(default_factory=list)
    recommendation: str = ""
    degraded: bool = False
