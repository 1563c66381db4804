"""
Application constants for LexCanada.
"""

# Retry Configuration
MAX_RETRY_ATTEMPTS = 3
RETRY_MULTIPLIER = 1
RETRY_MIN_WAIT = 1
RETRY_MAX_WAIT = 8

# Provider names
PROVIDER_DEEPSEEK = "deepseek"
PROVIDER_ANTHROPIC = "anthropic"
PROVIDER_OPENAI = "openai"
PROVIDER_GEMINI = "gemini"
DEFAULT_PROVIDER_ORDER = [PROVIDER_DEEPSEEK, PROVIDER_ANTHROPIC, PROVIDER_OPENAI, PROVIDER_GEMINI]

# Users
SUPPORTED_LANGUAGES = ["en", "fr"]

# Disputes
DISPUTE_STATUSES = ["pending", "active", "mediation", "resolved", "closed"]
DISPUTE_TYPES = ["landlord_tenant", "employment", "contract", "family", "business", "other"]

# Mediation
MEDIATION_STYLES = ["facilitative", "evaluative", "transformative"]
SESSION_CODE_LENGTH = 8
MESSAGE_ROLE_USER = "user"
MESSAGE_ROLE_MEDIATOR = "mediator"
MESSAGE_ROLE_AI = "ai"
SENTIMENTS = ["positive", "neutral", "negative"]

# Contracts
RISK_LEVELS = ["low", "medium", "high"]
MIN_CONTRACT_LENGTH = 50
ALLOWED_CONTRACT_EXTENSIONS = {
    ".pdf": "application/pdf",
    ".txt": "text/plain",
    ".doc": "application/msword",
    ".docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
}

# Subscriptions
USAGE_FEATURES = ["document_gen", "research_query", "contract_analysis", "ai_chat_message"]
FEATURE_LIMIT_KEYS = {
    "document_gen": "documentLimit",
    "research_query": "researchLimit",
    "contract_analysis": "contractLimit",
    "ai_chat_message": "chatLimit",
}
TEMP_CUSTOMER_PREFIX = "cus_temp_"
TEMP_SUBSCRIPTION_PREFIX = "sub_temp_"

# Export
EXPORT_WATERMARK = "Generated by LexCanada"
DEFAULT_DOCUMENT_TITLE = "Legal Document"

LEGAL_ASSISTANT_PROMPT = """You are LexCanada, an AI legal information assistant for Canadian law.

- Explain legal concepts in plain language, noting when rules differ between provinces and territories.
- Cite the relevant statute, regulation or leading case where you can, but never invent citations.
- You provide legal information, not legal advice. When a question depends on specific facts, recommend consulting a licensed lawyer or paralegal in the user's province.
- Answer in the language the user writes in (English or French).
"""

ASSISTANT_FALLBACK_REPLY = (
    "I'm sorry, I'm unable to answer right now. Please try again shortly. "
    "For urgent matters, consult a licensed lawyer or paralegal in your province."
)

MEDIATION_FALLBACK_REPLY = "I'm processing your message. Let's continue our discussion to find a resolution."

MEDIATION_FALLBACK_RECOMMENDATIONS = [
    "Schedule a follow-up session to continue the discussion",
    "Each party should prepare specific proposals for resolution",
    "Consider consulting with relevant experts regarding technical aspects of the dispute",
]
