"""
Document template, generated document and signature schemas.
"""

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional
from pydantic import BaseModel, ConfigDict, EmailStr, Field


class TemplateField(BaseModel):
    name: str = Field(..., min_length=1)
    label: Optional[str] = None
    type: str = "text"
    required: bool = False


class DocumentTemplateCreate(BaseModel):
    template_type: str = Field(..., min_length=1, max_length=50)
    subcategory: Optional[str] = Field(None, max_length=100)
    title: str = Field(..., min_length=1, max_length=255)
    description: str = Field(..., min_length=1)
    language: Literal["en", "fr"] = "en"
    template_content: str = Field(..., min_length=1)
    fields: List[TemplateField] = Field(default_factory=list)
    jurisdiction: Optional[str] = "Canada"


class DocumentTemplateResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    template_type: str
    subcategory: Optional[str] = None
    title: str
    description: str
    language: str
    template_content: str
    fields: List[Dict[str, Any]]
    jurisdiction: Optional[str] = None


class GeneratedDocumentCreate(BaseModel):
    template_id: Optional[int] = None
    document_title: str = Field(..., min_length=1, max_length=255)
    document_content: str = Field(..., min_length=1)
    document_data: Optional[Dict[str, Any]] = None


class GenerateFromTemplateRequest(BaseModel):
    template_id: int
    form_data: Dict[str, Any] = Field(default_factory=dict)
    title: Optional[str] = Field(None, max_length=255)


class EnhancedDocumentRequest(BaseModel):
    template: str = Field(..., min_length=1)
    form_data: Dict[str, Any] = Field(default_factory=dict)
    document_type: str = Field(..., min_length=1)
    jurisdiction: str = "Canada"
    save_document: bool = False
    title: Optional[str] = Field(None, max_length=255)


class EnhancedDocumentResponse(BaseModel):
    content: str
    enhanced: bool
    document_id: Optional[int] = None


class GeneratedDocumentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    template_id: Optional[int] = None
    document_title: str
    document_content: str
    document_data: Optional[Dict[str, Any]] = None
    created_at: datetime


class ExportRequest(BaseModel):
    content: str = Field(..., min_length=1)
    title: Optional[str] = Field(None, max_length=255)
    format: Literal["pdf", "docx", "html", "txt"] = "pdf"


class SignerInput(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    role: Optional[str] = Field(None, max_length=50)


class SignatureRequest(BaseModel):
    signers: List[SignerInput] = Field(..., min_length=1)
    template_id: Optional[str] = None


class DigitalSignatureResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    document_id: int
    submission_id: str
    signer_id: Optional[str] = None
    signer_name: str
    signer_email: str
    signer_role: Optional[str] = None
    signature_status: str
    signing_url: Optional[str] = None
    verified_at: Optional[datetime] = None
    created_at: datetime
