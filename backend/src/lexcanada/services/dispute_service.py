"""
Dispute service.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List

from sqlalchemy.orm import Session

from lexcanada.core.constants import DISPUTE_STATUSES, DISPUTE_TYPES, PROVIDER_ANTHROPIC, PROVIDER_OPENAI
from lexcanada.core.errors import AuthorizationError, NotFoundError, ValidationError
from lexcanada.models import Dispute, User
from lexcanada.services.llm_client import LLMUnavailableError, LLMResponseError, as_string_list, get_llm_client

logger = logging.getLogger(__name__)

ANALYSIS_SYSTEM_PROMPT = """You are a dispute resolution assistant with expertise in Canadian law.
Assess the dispute and respond with a JSON object with exactly this structure:
{
  "summary": "neutral summary of the dispute",
  "key_issues": ["issue"],
  "recommended_approach": "negotiation, mediation, arbitration or litigation, with a short reason",
  "legal_considerations": ["relevant legal consideration"]
}
This is legal information, not legal advice."""


def _validate_type(dispute_type: str) -> None:
    if dispute_type not in DISPUTE_TYPES:
        raise ValidationError(
            "Invalid dispute type",
            errors={"dispute_type": f"Must be one of: {', '.join(DISPUTE_TYPES)}"},
        )


def _validate_status(status: str) -> None:
    if status not in DISPUTE_STATUSES:
        raise ValidationError(
            "Invalid dispute status",
            errors={"status": f"Must be one of: {', '.join(DISPUTE_STATUSES)}"},
        )


def fallback_dispute_analysis(dispute: Dispute) -> Dict[str, Any]:
    label = dispute.dispute_type.replace("_", " ")
    return {
        "summary": f"{label.capitalize()} dispute: {dispute.title}",
        "key_issues": [
            "Clarify the facts each party relies on",
            "Identify what outcome each party is seeking",
        ],
        "recommended_approach": "Mediation is recommended as a first step before any formal proceedings.",
        "legal_considerations": [
            "Limitation periods may apply; confirm deadlines for your province",
            "Keep copies of all agreements, correspondence and receipts",
            "Consult a licensed lawyer or paralegal for advice on your specific situation",
        ],
        "degraded": True,
    }


class DisputeService:
    def __init__(self, db: Session):
        self.db = db

    def create(self, user: User, data: Dict[str, Any]) -> Dispute:
        _validate_type(data["dispute_type"])
        dispute = Dispute(
            user_id=user.id,
            title=data["title"],
            description=data["description"],
            parties=data["parties"],
            dispute_type=data["dispute_type"],
            supporting_documents=data.get("supporting_documents"),
            status="pending",
        )
        self.db.add(dispute)
        self.db.commit()
        self.db.refresh(dispute)
        logger.info(f"Created dispute {dispute.id} for user {user.id}")
        return dispute

    def list_for_user(self, user_id: int) -> List[Dispute]:
        return (
            self.db.query(Dispute)
            .filter(Dispute.user_id == user_id)
            .order_by(Dispute.created_at.desc(), Dispute.id.desc())
            .all()
        )

    def get(self, dispute_id: int) -> Dispute:
        dispute = self.db.query(Dispute).filter(Dispute.id == dispute_id).first()
        if not dispute:
            raise NotFoundError("Dispute")
        return dispute

    def get_owned(self, dispute_id: int, user: User) -> Dispute:
        dispute = self.get(dispute_id)
        if dispute.user_id != user.id:
            raise AuthorizationError("You do not have access to this dispute")
        return dispute

    def update(self, dispute_id: int, user: User, changes: Dict[str, Any]) -> Dispute:
        dispute = self.get_owned(dispute_id, user)

        if "dispute_type" in changes and changes["dispute_type"] is not None:
            _validate_type(changes["dispute_type"])
        if "status" in changes and changes["status"] is not None:
            _validate_status(changes["status"])

        for field, value in changes.items():
            if value is not None:
                setattr(dispute, field, value)

        now = datetime.utcnow()
        if changes.get("status") == "resolved" and not dispute.resolved_at:
            dispute.resolved_at = now
        dispute.updated_at = now

        self.db.commit()
        self.db.refresh(dispute)
        return dispute

    def analyze(self, dispute_id: int, user: User) -> Dict[str, Any]:
        dispute = self.get_owned(dispute_id, user)

        prompt = (
            f"Dispute type: {dispute.dispute_type}\n"
            f"Title: {dispute.title}\n"
            f"Parties: {dispute.parties}\n\n"
            f"Description:\n{dispute.description}"
        )
        try:
            raw = get_llm_client().complete_json(
                ANALYSIS_SYSTEM_PROMPT,
                [{"role": "user", "content": prompt}],
                max_tokens=1500,
                prefer=[PROVIDER_ANTHROPIC, PROVIDER_OPENAI],
            )
            if not raw.get("summary"):
                raise LLMResponseError("Dispute analysis is missing a summary")
            analysis = {
                "summary": str(raw["summary"]),
                "key_issues": as_string_list(raw.get("key_issues")),
                "recommended_approach": str(raw.get("recommended_approach") or ""),
                "legal_considerations": as_string_list(raw.get("legal_considerations")),
                "degraded": False,
            }
        except (LLMUnavailableError, LLMResponseError) as e:
            logger.error(f"Dispute analysis failed for dispute {dispute.id}: {e}")
            analysis = fallback_dispute_analysis(dispute)

        dispute.ai_analysis = analysis
        dispute.updated_at = datetime.utcnow()
        self.db.commit()
        self.db.refresh(dispute)
        return analysis
