import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile
from sqlalchemy.orm import Session

from lexcanada.api.v1.auth import require_ai_quota, require_user_role
from lexcanada.core.database import get_db
from lexcanada.core.response_utils import create_success_response, ResponseTimer
from lexcanada.models.user import User
from lexcanada.schemas import (
    ContractAnalysisRequest,
    ContractAnalysisResponse,
    ContractAnalysisResult,
    ContractComparisonRequest,
    ContractComparisonResult,
    StandardResponse,
)
from lexcanada.services.contract_service import ContractService, extract_text, read_upload

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/analyze", response_model=StandardResponse)
def analyze_contract(
    request: ContractAnalysisRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_ai_quota)
):
    """Score a contract and list its risks and suggested changes."""
    with ResponseTimer() as timer:
        result = ContractService(db).analyze(
            current_user,
            request.content,
            save=request.save,
            title=request.title,
            jurisdiction=request.jurisdiction,
            contract_type=request.contract_type,
        )
        return create_success_response(
            data=ContractAnalysisResult(**result),
            execution_time=timer.get_execution_time()
        )


@router.post("/analyze/upload", response_model=StandardResponse)
def analyze_uploaded_contract(
    contract_file: UploadFile = File(...),
    save: bool = Form(False),
    title: Optional[str] = Form(None),
    jurisdiction: str = Form("Canada"),
    contract_type: str = Form("general"),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_ai_quota)
):
    """Analyze a PDF, DOCX, DOC or TXT contract."""
    with ResponseTimer() as timer:
        data = read_upload(contract_file.file)
        logger.info(f"Contract upload from user {current_user.id}: {contract_file.filename} ({len(data)} bytes)")
        content = extract_text(contract_file.filename, data)

        result = ContractService(db).analyze(
            current_user,
            content,
            save=save,
            title=title or contract_file.filename,
            jurisdiction=jurisdiction,
            contract_type=contract_type,
            file_name=contract_file.filename,
        )
        return create_success_response(
            data=ContractAnalysisResult(**result),
            execution_time=timer.get_execution_time()
        )


@router.get("/analyses", response_model=StandardResponse)
def list_analyses(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_user_role)
):
    with ResponseTimer() as timer:
        analyses = ContractService(db).list_analyses(current_user.id)
        return create_success_response(
            data=[ContractAnalysisResponse.model_validate(a) for a in analyses],
            execution_time=timer.get_execution_time()
        )


@router.get("/analyses/{analysis_id}", response_model=StandardResponse)
def get_analysis(
    analysis_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_user_role)
):
    with ResponseTimer() as timer:
        analysis = ContractService(db).get_analysis(analysis_id, current_user)
        return create_success_response(
            data=ContractAnalysisResponse.model_validate(analysis),
            execution_time=timer.get_execution_time()
        )


@router.post("/compare", response_model=StandardResponse)
def compare_contracts(
    request: ContractComparisonRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_ai_quota)
):
    """Compare two versions of a contract."""
    with ResponseTimer() as timer:
        result = ContractService(db).compare(current_user, request.first_contract, request.second_contract)
        return create_success_response(
            data=ContractComparisonResult(**result),
            execution_time=timer.get_execution_time()
        )
