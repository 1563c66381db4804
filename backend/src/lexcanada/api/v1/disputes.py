import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from lexcanada.api.v1.auth import require_ai_quota, require_user_role
from lexcanada.core.database import get_db
from lexcanada.core.response_utils import create_success_response, ResponseTimer
from lexcanada.models.user import User
from lexcanada.schemas import (
    DisputeCreate,
    DisputeResponse,
    DisputeUpdate,
    MediationSessionCreate,
    MediationSessionResponse,
    StandardResponse,
)
from lexcanada.services.dispute_service import DisputeService
from lexcanada.services.mediation_service import MediationService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("", response_model=StandardResponse, status_code=201)
def create_dispute(
    dispute: DisputeCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_user_role)
):
    with ResponseTimer() as timer:
        created = DisputeService(db).create(current_user, dispute.model_dump())
        return create_success_response(
            data=DisputeResponse.model_validate(created),
            status_code=201,
            execution_time=timer.get_execution_time()
        )


@router.get("", response_model=StandardResponse)
def list_disputes(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_user_role)
):
    with ResponseTimer() as timer:
        disputes = DisputeService(db).list_for_user(current_user.id)
        return create_success_response(
            data=[DisputeResponse.model_validate(d) for d in disputes],
            execution_time=timer.get_execution_time()
        )


@router.get("/{dispute_id}", response_model=StandardResponse)
def get_dispute(
    dispute_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_user_role)
):
    with ResponseTimer() as timer:
        dispute = DisputeService(db).get_owned(dispute_id, current_user)
        return create_success_response(
            data=DisputeResponse.model_validate(dispute),
            execution_time=timer.get_execution_time()
        )


@router.patch("/{dispute_id}", response_model=StandardResponse)
def update_dispute(
    dispute_id: int,
    changes: DisputeUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_user_role)
):
    with ResponseTimer() as timer:
        dispute = DisputeService(db).update(dispute_id, current_user, changes.model_dump(exclude_unset=True))
        return create_success_response(
            data=DisputeResponse.model_validate(dispute),
            execution_time=timer.get_execution_time()
        )


@router.post("/{dispute_id}/analysis", response_model=StandardResponse)
def analyze_dispute(
    dispute_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_ai_quota)
):
    """AI assessment of the dispute, stored on the dispute."""
    with ResponseTimer() as timer:
        analysis = DisputeService(db).analyze(dispute_id, current_user)
        return create_success_response(
            data=analysis,
            execution_time=timer.get_execution_time()
        )


@router.post("/{dispute_id}/mediation-sessions", response_model=StandardResponse, status_code=201)
def create_mediation_session(
    dispute_id: int,
    request: MediationSessionCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_user_role)
):
    """Open a mediation session for the dispute."""
    with ResponseTimer() as timer:
        session = MediationService(db).create_session(dispute_id, current_user, request.model_dump())
        return create_success_response(
            data=MediationSessionResponse.model_validate(session),
            status_code=201,
            execution_time=timer.get_execution_time()
        )


@router.get("/{dispute_id}/mediation-sessions", response_model=StandardResponse)
def list_mediation_sessions(
    dispute_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_user_role)
):
    with ResponseTimer() as timer:
        sessions = MediationService(db).list_sessions(dispute_id, current_user)
        return create_success_response(
            data=[MediationSessionResponse.model_validate(s) for s in sessions],
            execution_time=timer.get_execution_time()
        )
