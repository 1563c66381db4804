import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from lexcanada.api.v1.auth import require_ai_quota, require_user_role
from lexcanada.core.database import get_db
from lexcanada.core.response_utils import create_success_response, ResponseTimer
from lexcanada.models.user import User
from lexcanada.schemas import (
    DisputeResponse,
    MediationMessageCreate,
    MediationMessageResponse,
    MediationSessionDetails,
    MediationSessionResponse,
    MediationSummaryResponse,
    StandardResponse,
)
from lexcanada.services.mediation_service import MediationService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/code/{code}", response_model=StandardResponse)
def get_session_by_code(
    code: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_user_role)
):
    """Look up a session by its share code."""
    with ResponseTimer() as timer:
        session = MediationService(db).get_by_code(code, current_user)
        return create_success_response(
            data=MediationSessionResponse.model_validate(session),
            execution_time=timer.get_execution_time()
        )


@router.get("/{session_id}/messages", response_model=StandardResponse)
def list_session_messages(
    session_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_user_role)
):
    with ResponseTimer() as timer:
        messages = MediationService(db).list_messages(session_id, current_user)
        return create_success_response(
            data=[MediationMessageResponse.model_validate(m) for m in messages],
            execution_time=timer.get_execution_time()
        )


@router.post("/{session_id}/messages", response_model=StandardResponse, status_code=201)
def post_session_message(
    session_id: int,
    message: MediationMessageCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_ai_quota)
):
    """Post a message; the AI mediator replies when assistance is on."""
    with ResponseTimer() as timer:
        created = MediationService(db).post_message(session_id, current_user, message.content)
        return create_success_response(
            data=MediationMessageResponse.model_validate(created),
            status_code=201,
            execution_time=timer.get_execution_time()
        )


@router.get("/{session_id}/details", response_model=StandardResponse)
def get_session_details(
    session_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_user_role)
):
    with ResponseTimer() as timer:
        details = MediationService(db).details(session_id, current_user)
        return create_success_response(
            data=MediationSessionDetails(
                session=MediationSessionResponse.model_validate(details["session"]),
                dispute=DisputeResponse.model_validate(details["dispute"]),
                messages=[MediationMessageResponse.model_validate(m) for m in details["messages"]],
            ),
            execution_time=timer.get_execution_time()
        )


@router.post("/{session_id}/summary", response_model=StandardResponse)
def summarize_session(
    session_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_ai_quota)
):
    """Close the session with a summary and recommendations."""
    with ResponseTimer() as timer:
        summary = MediationService(db).summarize(session_id, current_user)
        return create_success_response(
            data=MediationSummaryResponse(**summary),
            execution_time=timer.get_execution_time()
        )
