import logging

from fastapi import APIRouter, Depends, Query, Response
from fastapi.responses import HTMLResponse
from sqlalchemy.orm import Session

from lexcanada.api.v1.auth import require_ai_quota, require_user_role
from lexcanada.core.database import get_db
from lexcanada.core.response_utils import create_success_response, ResponseTimer
from lexcanada.models.user import User
from lexcanada.schemas import (
    DigitalSignatureResponse,
    EnhancedDocumentRequest,
    EnhancedDocumentResponse,
    ExportRequest,
    GenerateFromTemplateRequest,
    GeneratedDocumentCreate,
    GeneratedDocumentResponse,
    SignatureRequest,
    StandardResponse,
)
from lexcanada.services.docuseal_service import SignatureService
from lexcanada.services.document_export import ExportResult, document_exporter, preview_html
from lexcanada.services.document_service import DocumentService

logger = logging.getLogger(__name__)

router = APIRouter()


def _download(result: ExportResult) -> Response:
    return Response(
        content=result.content,
        media_type=result.media_type,
        headers={
            "Content-Disposition": f'attachment; filename="{result.filename}"',
            "X-Export-Format": result.format,
            "X-Export-Degraded": "true" if result.degraded else "false",
        },
    )


@router.get("", response_model=StandardResponse)
def list_documents(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_user_role)
):
    """List the caller's documents, newest first."""
    with ResponseTimer() as timer:
        documents = DocumentService(db).list_documents(current_user.id)
        return create_success_response(
            data=[GeneratedDocumentResponse.model_validate(d) for d in documents],
            execution_time=timer.get_execution_time()
        )


@router.post("", response_model=StandardResponse, status_code=201)
def create_document(
    document: GeneratedDocumentCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_user_role)
):
    with ResponseTimer() as timer:
        created = DocumentService(db).create_document(current_user, **document.model_dump())
        return create_success_response(
            data=GeneratedDocumentResponse.model_validate(created),
            status_code=201,
            execution_time=timer.get_execution_time()
        )


@router.post("/generate", response_model=StandardResponse, status_code=201)
def generate_document(
    request: GenerateFromTemplateRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_user_role)
):
    """Fill a template with form data and save the result."""
    with ResponseTimer() as timer:
        document = DocumentService(db).generate_from_template(
            current_user, request.template_id, request.form_data, request.title
        )
        return create_success_response(
            data=GeneratedDocumentResponse.model_validate(document),
            status_code=201,
            execution_time=timer.get_execution_time()
        )


@router.post("/enhanced", response_model=StandardResponse)
def generate_enhanced_document(
    request: EnhancedDocumentRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_ai_quota)
):
    """Draft a complete document with the AI assistant."""
    with ResponseTimer() as timer:
        result = DocumentService(db).generate_enhanced(
            current_user,
            template=request.template,
            form_data=request.form_data,
            document_type=request.document_type,
            jurisdiction=request.jurisdiction,
            save_document=request.save_document,
            title=request.title,
        )
        return create_success_response(
            data=EnhancedDocumentResponse(**result),
            execution_time=timer.get_execution_time()
        )


@router.post("/export")
def export_content(
    request: ExportRequest,
    current_user: User = Depends(require_user_role)
):
    """Export unsaved content as a download."""
    result = document_exporter.export(request.content, request.title, request.format)
    return _download(result)


@router.get("/{document_id}", response_model=StandardResponse)
def get_document(
    document_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_user_role)
):
    with ResponseTimer() as timer:
        document = DocumentService(db).get_document(document_id, current_user)
        return create_success_response(
            data=GeneratedDocumentResponse.model_validate(document),
            execution_time=timer.get_execution_time()
        )


@router.get("/{document_id}/export")
def export_document(
    document_id: int,
    format: str = Query("pdf"),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_user_role)
):
    """Download a saved document as PDF, DOCX, HTML or plain text."""
    document = DocumentService(db).get_document(document_id, current_user)
    result = document_exporter.export(document.document_content, document.document_title, format)
    logger.info(f"Exported document {document.id} as {result.format} (requested {format})")
    return _download(result)


@router.get("/{document_id}/preview", response_class=HTMLResponse)
def preview_document(
    document_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_user_role)
):
    document = DocumentService(db).get_document(document_id, current_user)
    _, html = preview_html(document.document_content, document.document_title)
    return HTMLResponse(content=html)


@router.post("/{document_id}/signatures", response_model=StandardResponse, status_code=201)
def request_signatures(
    document_id: int,
    request: SignatureRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_user_role)
):
    """Send the document out for signature through DocuSeal."""
    with ResponseTimer() as timer:
        document = DocumentService(db).get_document(document_id, current_user)
        signatures = SignatureService(db).request_signatures(
            document,
            current_user,
            [signer.model_dump(exclude_none=True) for signer in request.signers],
            request.template_id,
        )
        return create_success_response(
            data=[DigitalSignatureResponse.model_validate(s) for s in signatures],
            status_code=201,
            execution_time=timer.get_execution_time()
        )


@router.get("/{document_id}/signatures", response_model=StandardResponse)
def list_signatures(
    document_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_user_role)
):
    with ResponseTimer() as timer:
        document = DocumentService(db).get_document(document_id, current_user)
        signatures = SignatureService(db).list_signatures(document)
        return create_success_response(
            data=[DigitalSignatureResponse.model_validate(s) for s in signatures],
            execution_time=timer.get_execution_time()
        )
