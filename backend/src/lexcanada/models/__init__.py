"""
Database models.
"""

# Import all models to ensure they are registered with SQLAlchemy
from .base import Base
from .user import User
from .chat import ChatMessage
from .document import DocumentTemplate, GeneratedDocument, DigitalSignature
from .contract import ContractAnalysis
from .dispute import Dispute, MediationSession, MediationMessage
from .court_procedure import (
    CourtProcedureCategory,
    CourtProcedure,
    CourtProcedureStep,
    UserCourtProcedure,
    UserProcedureNote,
    UserProcedureReminder,
    UserProcedureChecklistItem,
    UserProcedureDocument,
)
from .subscription import SubscriptionPlan, UserSubscription, UserUsage

__all__ = [
    "Base",
    "User",
    "ChatMessage",
    "DocumentTemplate",
    "GeneratedDocument",
    "DigitalSignature",
    "ContractAnalysis",
    "Dispute",
    "MediationSession",
    "MediationMessage",
    "CourtProcedureCategory",
    "CourtProcedure",
    "CourtProcedureStep",
    "UserCourtProcedure",
    "UserProcedureNote",
    "UserProcedureReminder",
    "UserProcedureChecklistItem",
    "UserProcedureDocument",
    "SubscriptionPlan",
    "UserSubscription",
    "UserUsage",
]
