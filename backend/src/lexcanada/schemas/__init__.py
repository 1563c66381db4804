"""
Pydantic schemas for request/response validation.
"""

from .common import Metadata, StandardResponse, ErrorResponse, SuccessResponse
from .auth import UserCreate, UserUpdate, LoginRequest, UserResponse, Token
from .chat import ChatMessageCreate, ChatMessageResponse, ChatExchangeResponse
from .documents import (
    TemplateField,
    DocumentTemplateCreate,
    DocumentTemplateResponse,
    GeneratedDocumentCreate,
    GeneratedDocumentResponse,
    GenerateFromTemplateRequest,
    EnhancedDocumentRequest,
    EnhancedDocumentResponse,
    ExportRequest,
    SignerInput,
    SignatureRequest,
    DigitalSignatureResponse,
)
from .contracts import (
    ContractAnalysisRequest,
    ContractRisk,
    ContractSuggestion,
    ContractAnalysisResult,
    ContractAnalysisResponse,
    ContractComparisonRequest,
    ContractDifference,
    ContractComparisonResult,
)
from .disputes import (
    DisputeCreate,
    DisputeUpdate,
    DisputeResponse,
    MediationSessionCreate,
    MediationSessionResponse,
    MediationMessageCreate,
    MediationMessageResponse,
    MediationSessionDetails,
    MediationSummaryResponse,
)
from .court_procedures import (
    CourtProcedureCategoryResponse,
    CourtProcedureStepResponse,
    CourtProcedureResponse,
    CourtProcedureDetail,
    UserCourtProcedureCreate,
    UserCourtProcedureUpdate,
    UserCourtProcedureResponse,
    UserCourtProcedureDetail,
    NoteCreate,
    NoteUpdate,
    NoteResponse,
    ReminderCreate,
    ReminderUpdate,
    ReminderResponse,
    ChecklistItemCreate,
    ChecklistItemUpdate,
    ChecklistItemResponse,
    ProcedureDocumentCreate,
    ProcedureDocumentUpdate,
    ProcedureDocumentResponse,
)
from .subscriptions import (
    SubscriptionPlanResponse,
    UserSubscriptionResponse,
    CurrentSubscriptionResponse,
    SubscriptionCreateRequest,
    SubscriptionConfirmRequest,
    SubscriptionActionResponse,
    SubscriptionStatusCheck,
    BillingPortalResponse,
    FeatureUsage,
    UsageResponse,
)
