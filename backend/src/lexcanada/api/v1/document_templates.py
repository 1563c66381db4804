import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from lexcanada.api.v1.auth import require_admin_role
from lexcanada.core.database import get_db
from lexcanada.core.response_utils import create_success_response, ResponseTimer
from lexcanada.models.user import User
from lexcanada.schemas import DocumentTemplateCreate, DocumentTemplateResponse, StandardResponse
from lexcanada.services.document_service import DocumentService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=StandardResponse)
def list_templates(
    language: str = Query("en"),
    template_type: Optional[str] = Query(None, alias="type"),
    db: Session = Depends(get_db)
):
    """List document templates for a language, optionally filtered by type."""
    with ResponseTimer() as timer:
        templates = DocumentService(db).list_templates(language, template_type)
        return create_success_response(
            data=[DocumentTemplateResponse.model_validate(t) for t in templates],
            execution_time=timer.get_execution_time()
        )


@router.get("/{template_id}", response_model=StandardResponse)
def get_template(template_id: int, db: Session = Depends(get_db)):
    with ResponseTimer() as timer:
        template = DocumentService(db).get_template(template_id)
        return create_success_response(
            data=DocumentTemplateResponse.model_validate(template),
            execution_time=timer.get_execution_time()
        )


@router.post("", response_model=StandardResponse, status_code=201)
def create_template(
    template: DocumentTemplateCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin_role)
):
    """Create a document template (admin only)."""
    with ResponseTimer() as timer:
        created = DocumentService(db).create_template(template.model_dump())
        return create_success_response(
            data=DocumentTemplateResponse.model_validate(created),
            status_code=201,
            execution_time=timer.get_execution_time()
        )
