import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from lexcanada.api.v1.auth import require_ai_quota, require_user_role
from lexcanada.core.database import get_db
from lexcanada.core.response_utils import create_success_response, ResponseTimer
from lexcanada.models.user import User
from lexcanada.schemas import ChatExchangeResponse, ChatMessageCreate, ChatMessageResponse, StandardResponse
from lexcanada.services.assistant_service import AssistantService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/messages", response_model=StandardResponse)
def list_messages(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_user_role)
):
    """Get the caller's conversation with the legal assistant."""
    with ResponseTimer() as timer:
        messages = AssistantService(db).list_messages(current_user.id)
        return create_success_response(
            data=[ChatMessageResponse.model_validate(message) for message in messages],
            execution_time=timer.get_execution_time()
        )


@router.post("/messages", response_model=StandardResponse, status_code=201)
def send_message(
    message: ChatMessageCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_ai_quota)
):
    """Ask the legal assistant a question."""
    with ResponseTimer() as timer:
        user_message, ai_message = AssistantService(db).send_message(current_user, message.content)
        exchange = ChatExchangeResponse(
            user_message=ChatMessageResponse.model_validate(user_message),
            ai_message=ChatMessageResponse.model_validate(ai_message),
        )
        return create_success_response(
            data=exchange,
            status_code=201,
            execution_time=timer.get_execution_time()
        )
