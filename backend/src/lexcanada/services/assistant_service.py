"""
Legal assistant chat service.
"""

import logging
from typing import List, Tuple

from sqlalchemy.orm import Session

from lexcanada.core.config import get_config
from lexcanada.core.constants import (
    ASSISTANT_FALLBACK_REPLY,
    LEGAL_ASSISTANT_PROMPT,
    PROVIDER_ANTHROPIC,
    PROVIDER_DEEPSEEK,
)
from lexcanada.core.errors import ValidationError
from lexcanada.core.security import InputValidator
from lexcanada.models import ChatMessage, User
from lexcanada.services.llm_client import LLMUnavailableError, LLMResponseError, get_llm_client
from lexcanada.services.subscription_service import track_feature_usage

config = get_config()
logger = logging.getLogger(__name__)

# Number of earlier messages sent to the model as context
HISTORY_WINDOW = 10
CHAT_PROVIDERS = [PROVIDER_DEEPSEEK, PROVIDER_ANTHROPIC]


class AssistantService:
    def __init__(self, db: Session):
        self.db = db

    def list_messages(self, user_id: int) -> List[ChatMessage]:
        return (
            self.db.query(ChatMessage)
            .filter(ChatMessage.user_id == user_id)
            .order_by(ChatMessage.created_at.asc(), ChatMessage.id.asc())
            .all()
        )

    def _history(self, user_id: int) -> List[dict]:
        recent = (
            self.db.query(ChatMessage)
            .filter(ChatMessage.user_id == user_id)
            .order_by(ChatMessage.id.desc())
            .limit(HISTORY_WINDOW)
            .all()
        )
        return [{"role": message.role, "content": message.content} for message in reversed(recent)]

    def send_message(self, user: User, content: str) -> Tuple[ChatMessage, ChatMessage]:
        """Store the question, generate the reply and store it too."""
        validation = InputValidator.validate_text(
            content, "Message", config.application.max_chat_message_length
        )
        if not validation['is_valid']:
            raise ValidationError(validation['error'])

        user_message = ChatMessage(user_id=user.id, role="user", content=content.strip())
        self.db.add(user_message)
        self.db.commit()
        self.db.refresh(user_message)

        system = LEGAL_ASSISTANT_PROMPT
        if user.preferred_language == "fr":
            system += "\nThe user prefers French."

        try:
            completion = get_llm_client().complete(
                system,
                self._history(user.id),
                max_tokens=1500,
                temperature=0.4,
                prefer=CHAT_PROVIDERS,
            )
            reply_text, provider = completion.text, completion.provider
        except (LLMUnavailableError, LLMResponseError) as e:
            logger.error(f"Assistant reply failed for user {user.id}: {e}")
            reply_text, provider = ASSISTANT_FALLBACK_REPLY, None

        ai_message = ChatMessage(user_id=user.id, role="assistant", content=reply_text, provider=provider)
        self.db.add(ai_message)
        self.db.commit()
        self.db.refresh(ai_message)

        track_feature_usage(self.db, user.id, "ai_chat_message")
        return user_message, ai_message
