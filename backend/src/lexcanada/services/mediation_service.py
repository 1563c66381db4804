"""
AI-assisted mediation service.

Sessions belong to a dispute. The dispute owner and the assigned mediator
exchange messages; when AI assistance is on, an AI mediator replies to
every party message and can close the session with a summary.
"""

import re
import secrets
import string
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from lexcanada.core.constants import (
    MEDIATION_FALLBACK_RECOMMENDATIONS,
    MEDIATION_FALLBACK_REPLY,
    MEDIATION_STYLES,
    MESSAGE_ROLE_AI,
    MESSAGE_ROLE_MEDIATOR,
    MESSAGE_ROLE_USER,
    PROVIDER_ANTHROPIC,
    PROVIDER_OPENAI,
    SENTIMENTS,
    SESSION_CODE_LENGTH,
)
from lexcanada.core.errors import AuthorizationError, ConflictError, NotFoundError, ValidationError
from lexcanada.models import Dispute, MediationMessage, MediationSession, User
from lexcanada.services.dispute_service import DisputeService
from lexcanada.services.llm_client import LLMUnavailableError, LLMResponseError, as_string_list, get_llm_client

logger = logging.getLogger(__name__)

MEDIATION_PROVIDERS = [PROVIDER_ANTHROPIC, PROVIDER_OPENAI]
CLOSED_STATUSES = ("completed", "cancelled")
CODE_ALPHABET = string.ascii_uppercase + string.digits

STYLE_DESCRIPTIONS = {
    "facilitative": "You help the parties communicate effectively and find their own solutions, without imposing your own judgment.",
    "evaluative": "You give an informed assessment, helping the parties understand the strengths and weaknesses of their positions under the applicable law.",
    "transformative": "You focus on empowerment and recognition, helping the parties understand each other and grow through the conflict.",
}

POSITIVE_WORDS = {
    "agree", "appreciate", "thanks", "thank", "good", "great", "fair", "happy", "willing",
    "understand", "reasonable", "accept", "resolve", "glad", "helpful", "compromise",
}
NEGATIVE_WORDS = {
    "angry", "unfair", "refuse", "never", "ridiculous", "lie", "lying", "upset", "furious",
    "unacceptable", "disagree", "terrible", "worst", "hate", "sue", "threat", "frustrated",
}

SYSTEM_PROMPT_TEMPLATE = """You are an AI Mediator facilitating dispute resolution in {jurisdiction}.
Help the parties reach a mutually acceptable resolution through guided facilitation.

## DISPUTE INFORMATION
- Type of dispute: {dispute_type}
- Description: {description}
- Parties: {parties}
- Jurisdiction: {jurisdiction}
- Language: {language}
- Confidentiality required: {confidential}

## MEDIATION STYLE
You are using a {style} approach. {style_description}

## RESPONSIBILITIES
- Remain neutral and unbiased at all times
- Help the parties identify the interests beneath their positions
- Guide the parties toward exploring solutions
- Give general legal context for {jurisdiction} without giving legal advice, and recommend independent legal counsel for specific questions
- Use clear, plain language and keep the discussion respectful

## CONFIDENTIALITY
{confidentiality}"""

REPLY_INSTRUCTIONS = """Reply to the latest party message as the mediator.
Respond with a JSON object: {"reply": "your message to the parties", "sentiment": "positive" | "neutral" | "negative"}
where sentiment describes the tone of the latest party message."""

SUMMARY_INSTRUCTIONS = """The session is ending. Summarize it.
Respond with a JSON object: {"summary": "what was discussed and any agreements reached", "recommendations": ["next step"]}"""


def generate_session_code(length: int = SESSION_CODE_LENGTH) -> str:
    return "".join(secrets.choice(CODE_ALPHABET) for _ in range(length))


def estimate_sentiment(text: str) -> str:
    """Lexicon sentiment used when no model is available."""
    words = re.findall(r"[a-z']+", text.lower())
    score = sum(1 for word in words if word in POSITIVE_WORDS) - sum(1 for word in words if word in NEGATIVE_WORDS)
    if score > 0:
        return "positive"
    if score < 0:
        return "negative"
    return "neutral"


def build_system_prompt(dispute: Dispute, style: str, language: str = "English",
                        jurisdiction: str = "Canada", confidential: bool = True) -> str:
    return SYSTEM_PROMPT_TEMPLATE.format(
        jurisdiction=jurisdiction,
        dispute_type=dispute.dispute_type.replace("_", " "),
        description=dispute.description,
        parties=dispute.parties,
        language=language,
        confidential="Yes" if confidential else "No",
        style=style,
        style_description=STYLE_DESCRIPTIONS.get(style, STYLE_DESCRIPTIONS["facilitative"]),
        confidentiality=(
            "This mediation is confidential. Remind the parties not to share what is discussed outside the process."
            if confidential else "Standard confidentiality principles apply."
        ),
    )


class MediationService:
    def __init__(self, db: Session):
        self.db = db
        self.disputes = DisputeService(db)

    def _unique_session_code(self) -> str:
        while True:
            code = generate_session_code()
            exists = self.db.query(MediationSession.id).filter(MediationSession.session_code == code).first()
            if not exists:
                return code

    def _language(self, dispute: Dispute) -> str:
        owner = dispute.user
        return "French" if owner is not None and owner.preferred_language == "fr" else "English"

    def create_session(self, dispute_id: int, user: User, data: Dict[str, Any]) -> MediationSession:
        dispute = self.disputes.get_owned(dispute_id, user)

        style = data.get("mediation_style") or "facilitative"
        if style not in MEDIATION_STYLES:
            raise ValidationError("Invalid mediation style", errors={"mediation_style": f"Must be one of: {', '.join(MEDIATION_STYLES)}"})

        mediator_id = data.get("mediator_id")
        if mediator_id is not None and not self.db.query(User.id).filter(User.id == mediator_id).first():
            raise NotFoundError("Mediator")

        session = MediationSession(
            dispute_id=dispute.id,
            mediator_id=mediator_id,
            session_code=self._unique_session_code(),
            status="scheduled",
            mediation_style=style,
            ai_assistance=data.get("ai_assistance", True),
            scheduled_at=data.get("scheduled_at"),
        )
        self.db.add(session)
        self.db.flush()

        dispute.status = "mediation"
        dispute.mediation_id = session.id
        dispute.updated_at = datetime.utcnow()

        if session.ai_assistance:
            welcome = self._welcome_message(dispute, style)
            session.messages.append(MediationMessage(role=MESSAGE_ROLE_AI, content=welcome, sentiment="neutral"))

        self.db.commit()
        self.db.refresh(session)
        logger.info(f"Created mediation session {session.id} ({session.session_code}) for dispute {dispute.id}")
        return session

    def _welcome_message(self, dispute: Dispute, style: str) -> str:
        label = dispute.dispute_type.replace("_", " ")
        prompt = (
            f"Introduce yourself as the AI Mediator for this {label} dispute in at most 150 words. "
            "Explain the mediation process briefly and invite the first party to share their perspective."
        )
        try:
            completion = get_llm_client().complete(
                build_system_prompt(dispute, style, self._language(dispute)),
                [{"role": "user", "content": prompt}],
                max_tokens=500,
                prefer=MEDIATION_PROVIDERS,
            )
            return completion.text
        except (LLMUnavailableError, LLMResponseError) as e:
            logger.warning(f"Welcome message generation failed for dispute {dispute.id}: {e}")
            return (
                f"Hello, I'm your AI Mediator for this {label} dispute. I'm here to help facilitate a productive "
                "discussion between all parties and I will remain neutral throughout. Let's begin by having each "
                "party share their perspective on the situation. Who would like to start?"
            )

    def list_sessions(self, dispute_id: int, user: User) -> List[MediationSession]:
        dispute = self.disputes.get_owned(dispute_id, user)
        return (
            self.db.query(MediationSession)
            .filter(MediationSession.dispute_id == dispute.id)
            .order_by(MediationSession.created_at.desc(), MediationSession.id.desc())
            .all()
        )

    def get_session(self, session_id: int, user: User) -> MediationSession:
        session = self.db.query(MediationSession).filter(MediationSession.id == session_id).first()
        if not session:
            raise NotFoundError("Mediation session")
        self._check_access(session, user)
        return session

    def get_by_code(self, code: str, user: User) -> MediationSession:
        session = (
            self.db.query(MediationSession)
            .filter(MediationSession.session_code == code.strip().upper())
            .first()
        )
        if not session:
            raise NotFoundError("Mediation session")
        self._check_access(session, user)
        return session

    def _check_access(self, session: MediationSession, user: User) -> None:
        if session.dispute.user_id != user.id and session.mediator_id != user.id:
            raise AuthorizationError("You are not a participant in this mediation session")

    def list_messages(self, session_id: int, user: User) -> List[MediationMessage]:
        return list(self.get_session(session_id, user).messages)

    def details(self, session_id: int, user: User) -> Dict[str, Any]:
        session = self.get_session(session_id, user)
        return {"session": session, "dispute": session.dispute, "messages": list(session.messages)}

    def post_message(self, session_id: int, user: User, content: str) -> MediationMessage:
        session = self.get_session(session_id, user)
        if session.status in CLOSED_STATUSES:
            raise ConflictError(f"Mediation session is {session.status}")

        content = content.strip()
        if not content:
            raise ValidationError("Message cannot be empty", errors={"content": "Message cannot be empty"})

        role = MESSAGE_ROLE_MEDIATOR if session.mediator_id == user.id else MESSAGE_ROLE_USER
        message = MediationMessage(user_id=user.id, role=role, content=content)
        session.messages.append(message)

        if session.status == "scheduled":
            session.status = "in_progress"
        self.db.flush()

        if session.ai_assistance and role != MESSAGE_ROLE_MEDIATOR:
            reply, sentiment = self._ai_reply(session, content)
            message.sentiment = sentiment
            session.messages.append(MediationMessage(role=MESSAGE_ROLE_AI, content=reply, sentiment=sentiment))

        self.db.commit()
        self.db.refresh(message)
        return message

    def _conversation(self, session: MediationSession) -> List[Dict[str, str]]:
        history = []
        for message in session.messages:
            if message.role == MESSAGE_ROLE_AI:
                history.append({"role": "assistant", "content": message.content})
            else:
                history.append({"role": "user", "content": f"[{message.role}] {message.content}"})
        return history

    def _ai_reply(self, session: MediationSession, latest: str):
        dispute = session.dispute
        system = build_system_prompt(dispute, session.mediation_style, self._language(dispute))
        try:
            raw = get_llm_client().complete_json(
                f"{system}\n\n{REPLY_INSTRUCTIONS}",
                self._conversation(session),
                max_tokens=1000,
                temperature=0.5,
                prefer=MEDIATION_PROVIDERS,
            )
            reply = str(raw.get("reply") or "").strip()
            if not reply:
                raise LLMResponseError("Mediator reply is empty")
        except (LLMUnavailableError, LLMResponseError) as e:
            logger.warning(f"AI mediator reply failed for session {session.id}: {e}")
            return MEDIATION_FALLBACK_REPLY, estimate_sentiment(latest)

        sentiment = str(raw.get("sentiment") or "").lower()
        if sentiment not in SENTIMENTS:
            sentiment = estimate_sentiment(latest)
        return reply, sentiment

    def summarize(self, session_id: int, user: User) -> Dict[str, Any]:
        session = self.get_session(session_id, user)
        dispute = session.dispute

        summary: Optional[str] = None
        recommendations: List[str] = []
        try:
            raw = get_llm_client().complete_json(
                f"{build_system_prompt(dispute, session.mediation_style, self._language(dispute))}\n\n{SUMMARY_INSTRUCTIONS}",
                self._conversation(session) or [{"role": "user", "content": "No messages were exchanged."}],
                max_tokens=1500,
                prefer=MEDIATION_PROVIDERS,
            )
            summary = str(raw.get("summary") or "").strip() or None
            recommendations = as_string_list(raw.get("recommendations"))
        except (LLMUnavailableError, LLMResponseError) as e:
            logger.warning(f"Mediation summary failed for session {session.id}: {e}")

        if not summary:
            party_messages = sum(1 for m in session.messages if m.role != MESSAGE_ROLE_AI)
            summary = (
                f"Mediation session for \"{dispute.title}\" concluded after {party_messages} messages from the parties. "
                "An automated summary could not be generated."
            )
            recommendations = list(MEDIATION_FALLBACK_RECOMMENDATIONS)
        elif not recommendations:
            recommendations = list(MEDIATION_FALLBACK_RECOMMENDATIONS)

        now = datetime.utcnow()
        session.status = "completed"
        session.completed_at = now
        session.summary = summary
        session.recommendations = recommendations

        if dispute.status == "mediation":
            dispute.status = "resolved"
            dispute.resolved_at = now
            dispute.updated_at = now

        self.db.commit()
        logger.info(f"Mediation session {session.id} completed")
        return {"summary": summary, "recommendations": recommendations}
