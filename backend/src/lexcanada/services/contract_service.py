"""
Contract analysis service.

Risk analysis and comparison run through the LLM chain. Both have
deterministic fallbacks: a neutral analysis with keyword-based clause
categories, and a paragraph diff built with difflib.
"""

import io
import os
import re
import difflib
import logging
import zipfile
from datetime import datetime
from typing import Any, BinaryIO, Dict, List, Optional

from docx import Document
from docx.opc.exceptions import PackageNotFoundError
from pypdf import PdfReader
from pypdf.errors import PdfReadError
from sqlalchemy.orm import Session

from lexcanada.core.config import get_config
from lexcanada.core.constants import ALLOWED_CONTRACT_EXTENSIONS, MIN_CONTRACT_LENGTH, PROVIDER_OPENAI, RISK_LEVELS
from lexcanada.core.errors import AuthorizationError, NotFoundError, PayloadTooLargeError, ValidationError
from lexcanada.models import ContractAnalysis, User
from lexcanada.services.llm_client import LLMUnavailableError, LLMResponseError, get_llm_client
from lexcanada.services.subscription_service import track_feature_usage

config = get_config()
logger = logging.getLogger(__name__)

CLAUSE_KEYWORDS = {
    "payment": ["payment", "pay ", "fee", "invoice", "price", "compensation", "salary", "deposit", "rent"],
    "termination": ["terminat", "cancel", "notice period", "expire", "expiry"],
    "liability": ["liabilit", "indemn", "damages", "warrant", "hold harmless"],
    "confidentiality": ["confidential", "non-disclosure", "proprietary information", "trade secret"],
    "intellectual_property": ["intellectual property", "copyright", "trademark", "patent", "license", "licence"],
    "dispute_resolution": ["dispute", "arbitrat", "mediat", "jurisdiction of the courts"],
    "governing_law": ["governing law", "governed by", "laws of the province", "laws of canada"],
    "term_and_renewal": ["term of", "renew", "commencement", "effective date", "duration"],
}
MAX_EXCERPT_LENGTH = 300
MAX_DIFFERENCES = 50

ANALYSIS_SYSTEM_PROMPT = """You are a contract review assistant with expertise in Canadian law.
Analyze the contract for legal risks and improvements under the law of {jurisdiction}.
Respond with a JSON object with exactly this structure:
{{
  "score": number from 0 to 100 (higher means a safer contract),
  "risk_level": "low" | "medium" | "high",
  "risks": [{{"clause": "text of the clause", "issue": "the problem", "suggestion": "improvement", "severity": "low" | "medium" | "high"}}],
  "suggestions": [{{"clause": "text of the clause", "suggestion": "improvement", "reason": "why"}}],
  "summary": "overall summary of the contract and the analysis",
  "clause_categories": {{"payment": ["excerpt"], "termination": [], "liability": [], "confidentiality": [], "intellectual_property": [], "dispute_resolution": [], "governing_law": [], "term_and_renewal": [], "general": []}}
}}
This is legal information, not legal advice."""

COMPARISON_SYSTEM_PROMPT = """You are a contract review assistant with expertise in Canadian law.
Compare two contracts and respond with a JSON object with exactly this structure:
{
  "summary": "overall comparison summary",
  "differences": [{"section": "section name", "first": "text from first contract", "second": "text from second contract", "impact": "potential impact"}],
  "recommendation": "which contract is more favourable or balanced, and why"
}"""


def split_paragraphs(text: str) -> List[str]:
    return [p.strip() for p in re.split(r"\n\s*\n", text) if p.strip()]


def _excerpt(text: str) -> str:
    text = " ".join(text.split())
    if len(text) <= MAX_EXCERPT_LENGTH:
        return text
    return text[:MAX_EXCERPT_LENGTH - 3].rstrip() + "..."


def categorize_clauses(content: str) -> Dict[str, List[str]]:
    """Sort contract paragraphs into clause categories by keyword."""
    categories: Dict[str, List[str]] = {name: [] for name in CLAUSE_KEYWORDS}
    categories["general"] = []

    for paragraph in split_paragraphs(content):
        lowered = paragraph.lower()
        matched = False
        for name, keywords in CLAUSE_KEYWORDS.items():
            if any(keyword in lowered for keyword in keywords):
                categories[name].append(_excerpt(paragraph))
                matched = True
        if not matched:
            categories["general"].append(_excerpt(paragraph))
    return categories


def fallback_analysis(content: str) -> Dict[str, Any]:
    return {
        "score": 50,
        "risk_level": "medium",
        "risks": [
            {
                "clause": "",
                "issue": "Error analyzing contract",
                "suggestion": "Please try again later or have the contract reviewed by a legal professional",
                "severity": "medium",
            }
        ],
        "suggestions": [],
        "summary": "The automated analysis could not be completed. Clause categories were identified by keyword only.",
        "clause_categories": categorize_clauses(content),
        "degraded": True,
    }


def _risk_level_from_score(score: int) -> str:
    if score >= 70:
        return "low"
    if score >= 40:
        return "medium"
    return "high"


def _severity(value: Any) -> str:
    value = str(value or "").lower()
    return value if value in RISK_LEVELS else "medium"


def normalize_analysis(raw: Dict[str, Any], content: str) -> Dict[str, Any]:
    """
    Coerce a model reply into the analysis shape.

    Raises:
        LLMResponseError: the reply has no usable score or summary
    """
    try:
        score = int(round(float(raw.get("score"))))
    except (TypeError, ValueError):
        raise LLMResponseError("Contract analysis is missing a score")
    score = max(0, min(100, score))

    summary = str(raw.get("summary") or "").strip()
    if not summary:
        raise LLMResponseError("Contract analysis is missing a summary")

    risk_level = str(raw.get("risk_level") or raw.get("riskLevel") or "").lower()
    if risk_level not in RISK_LEVELS:
        risk_level = _risk_level_from_score(score)

    risks = [
        {
            "clause": str(item.get("clause") or ""),
            "issue": str(item.get("issue") or ""),
            "suggestion": str(item.get("suggestion") or ""),
            "severity": _severity(item.get("severity")),
        }
        for item in raw.get("risks") or []
        if isinstance(item, dict)
    ]
    suggestions = [
        {
            "clause": str(item.get("clause") or ""),
            "suggestion": str(item.get("suggestion") or ""),
            "reason": str(item.get("reason") or ""),
        }
        for item in raw.get("suggestions") or []
        if isinstance(item, dict)
    ]

    categories = raw.get("clause_categories") or raw.get("clauseCategories")
    if isinstance(categories, dict) and categories:
        clause_categories = {
            str(name): [str(excerpt) for excerpt in excerpts] if isinstance(excerpts, list) else [str(excerpts)]
            for name, excerpts in categories.items()
        }
    else:
        clause_categories = categorize_clauses(content)

    return {
        "score": score,
        "risk_level": risk_level,
        "risks": risks,
        "suggestions": suggestions,
        "summary": summary,
        "clause_categories": clause_categories,
        "degraded": False,
    }


def diff_contracts(first: str, second: str) -> Dict[str, Any]:
    """Paragraph-level comparison used when no model is available."""
    first_paragraphs = split_paragraphs(first)
    second_paragraphs = split_paragraphs(second)
    matcher = difflib.SequenceMatcher(None, first_paragraphs, second_paragraphs, autojunk=False)

    differences = []
    for tag, i1, i2, j1, j2 in matcher.get_opcodes():
        if tag == "equal":
            continue
        impact = {
            "replace": "Wording changed between the two contracts",
            "delete": "Present only in the first contract",
            "insert": "Present only in the second contract",
        }[tag]
        differences.append({
            "section": f"Paragraph {i1 + 1}" if tag != "insert" else f"After paragraph {i1}",
            "first": "\n\n".join(first_paragraphs[i1:i2]),
            "second": "\n\n".join(second_paragraphs[j1:j2]),
            "impact": impact,
        })

    similarity = matcher.ratio()
    if differences:
        summary = f"Found {len(differences)} differing sections; the contracts are {similarity:.0%} similar by paragraph."
    else:
        summary = "No differences were found between the two contracts."

    return {
        "summary": summary,
        "differences": differences[:MAX_DIFFERENCES],
        "recommendation": "This is an automated text comparison. Review each changed section with a legal professional.",
        "degraded": True,
    }


def _check_upload_size(size: int) -> None:
    if size > config.application.max_upload_size_mb * 1024 * 1024:
        raise PayloadTooLargeError(f"File exceeds the {config.application.max_upload_size_mb}MB limit")


def read_upload(stream: BinaryIO) -> bytes:
    """Read an uploaded file, stopping one byte past the size limit."""
    data = stream.read(config.application.max_upload_size_mb * 1024 * 1024 + 1)
    _check_upload_size(len(data))
    return data


def extract_text(filename: str, data: bytes) -> str:
    """
    Extract plain text from an uploaded contract.

    Raises:
        ValidationError: unsupported type, unreadable file or no text found
        PayloadTooLargeError: file exceeds the upload limit
    """
    extension = os.path.splitext(filename or "")[1].lower()
    if extension not in ALLOWED_CONTRACT_EXTENSIONS:
        raise ValidationError(
            "Unsupported file type",
            errors={"contract_file": f"Allowed types: {', '.join(sorted(ALLOWED_CONTRACT_EXTENSIONS))}"},
        )

    _check_upload_size(len(data))

    try:
        if extension == ".pdf":
            reader = PdfReader(io.BytesIO(data))
            text = "\n\n".join((page.extract_text() or "") for page in reader.pages)
        elif extension == ".docx":
            document = Document(io.BytesIO(data))
            parts = [paragraph.text for paragraph in document.paragraphs]
            for table in document.tables:
                for row in table.rows:
                    parts.append(" | ".join(cell.text for cell in row.cells))
            text = "\n\n".join(parts)
        elif extension == ".doc":
            # Legacy Word: keep printable runs from the binary
            runs = re.findall(rb"[\x20-\x7E\t\r\n]{4,}", data)
            text = "\n".join(run.decode("ascii", errors="ignore").strip() for run in runs)
        else:
            text = data.decode("utf-8", errors="replace")
    except (PdfReadError, PackageNotFoundError, zipfile.BadZipFile, KeyError, ValueError) as e:
        logger.warning(f"Could not read uploaded contract {filename}: {e}")
        raise ValidationError("The uploaded file could not be read", errors={"contract_file": str(e)})

    text = text.replace("\x00", "").strip()
    if not text:
        raise ValidationError("No text could be extracted from the file")
    return text


class ContractService:
    def __init__(self, db: Session):
        self.db = db

    def _validate_content(self, content: str, field: str = "content") -> str:
        content = (content or "").strip()
        if len(content) < MIN_CONTRACT_LENGTH:
            raise ValidationError(
                f"Contract must be at least {MIN_CONTRACT_LENGTH} characters",
                errors={field: "Contract text is too short"},
            )
        if len(content) > config.application.max_contract_length:
            raise ValidationError(
                f"Contract exceeds {config.application.max_contract_length} characters",
                errors={field: "Contract text is too long"},
            )
        return content

    def analyze(
        self,
        user: User,
        content: str,
        save: bool = False,
        title: Optional[str] = None,
        jurisdiction: str = "Canada",
        contract_type: str = "general",
        file_name: Optional[str] = None,
    ) -> Dict[str, Any]:
        content = self._validate_content(content)

        try:
            raw = get_llm_client().complete_json(
                ANALYSIS_SYSTEM_PROMPT.format(jurisdiction=jurisdiction),
                [{"role": "user", "content": f"Contract type: {contract_type}\n\nCONTRACT:\n{content}"}],
                max_tokens=3000,
                temperature=0.2,
                prefer=[PROVIDER_OPENAI],
            )
            result = normalize_analysis(raw, content)
        except (LLMUnavailableError, LLMResponseError) as e:
            logger.error(f"Contract analysis failed for user {user.id}: {e}")
            result = fallback_analysis(content)

        result["analysis_id"] = None
        if save:
            analysis = ContractAnalysis(
                user_id=user.id,
                contract_title=title or f"Contract Analysis {datetime.utcnow().strftime('%Y-%m-%d')}",
                contract_content=content,
                score=result["score"],
                risk_level=result["risk_level"],
                analysis_results={k: v for k, v in result.items() if k != "analysis_id"},
                categories=result["clause_categories"],
                jurisdiction=jurisdiction,
                contract_type=contract_type,
                file_name=file_name,
            )
            self.db.add(analysis)
            self.db.commit()
            self.db.refresh(analysis)
            result["analysis_id"] = analysis.id
            logger.info(f"Saved contract analysis {analysis.id} for user {user.id}")

        track_feature_usage(self.db, user.id, "contract_analysis")
        return result

    def list_analyses(self, user_id: int) -> List[ContractAnalysis]:
        return (
            self.db.query(ContractAnalysis)
            .filter(ContractAnalysis.user_id == user_id)
            .order_by(ContractAnalysis.created_at.desc(), ContractAnalysis.id.desc())
            .all()
        )

    def get_analysis(self, analysis_id: int, user: User) -> ContractAnalysis:
        analysis = self.db.query(ContractAnalysis).filter(ContractAnalysis.id == analysis_id).first()
        if not analysis:
            raise NotFoundError("Contract analysis")
        if analysis.user_id != user.id:
            raise AuthorizationError("You do not have access to this analysis")
        return analysis

    def compare(self, user: User, first_contract: str, second_contract: str) -> Dict[str, Any]:
        first = self._validate_content(first_contract, "first_contract")
        second = self._validate_content(second_contract, "second_contract")

        try:
            raw = get_llm_client().complete_json(
                COMPARISON_SYSTEM_PROMPT,
                [{"role": "user", "content": f"FIRST CONTRACT:\n{first}\n\nSECOND CONTRACT:\n{second}"}],
                max_tokens=3000,
                temperature=0.2,
                prefer=[PROVIDER_OPENAI],
            )
            if not raw.get("summary") or not isinstance(raw.get("differences"), list):
                raise LLMResponseError("Contract comparison is missing fields")
        except (LLMUnavailableError, LLMResponseError) as e:
            logger.error(f"Contract comparison failed for user {user.id}: {e}")
            return diff_contracts(first, second)

        return {
            "summary": str(raw["summary"]),
            "differences": [
                {
                    "section": str(item.get("section") or ""),
                    "first": str(item.get("first") or ""),
                    "second": str(item.get("second") or ""),
                    "impact": str(item["impact"]) if item.get("impact") else None,
                }
                for item in raw["differences"]
                if isinstance(item, dict)
            ],
            "recommendation": str(raw.get("recommendation") or ""),
            "degraded": False,
        }
