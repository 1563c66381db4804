"""
DocuSeal e-signature integration.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

import requests
from sqlalchemy.orm import Session

from lexcanada.core.config import config
from lexcanada.core.errors import ExternalServiceError, ServiceUnavailableError, ValidationError
from lexcanada.models import DigitalSignature, GeneratedDocument, User

logger = logging.getLogger(__name__)


class DocuSealClient:
    """Thin wrapper around the DocuSeal submissions API."""

    def __init__(self, api_key: Optional[str] = None, api_url: Optional[str] = None,
                 timeout: Optional[float] = None):
        settings = config.signatures
        self.api_key = api_key if api_key is not None else settings.docuseal_api_key
        self.api_url = (api_url or settings.docuseal_api_url).rstrip("/")
        self.timeout = timeout or settings.docuseal_timeout_seconds

    def is_configured(self) -> bool:
        return bool(self.api_key)

    def _request(self, method: str, path: str, **kwargs) -> Any:
        if not self.is_configured():
            raise ServiceUnavailableError("DocuSeal", "Digital signatures are not configured")

        url = f"{self.api_url}{path}"
        try:
            response = requests.request(
                method, url, headers={"X-Api-Key": self.api_key}, timeout=self.timeout, **kwargs
            )
            response.raise_for_status()
            return response.json()
        except requests.RequestException as e:
            logger.error(f"DocuSeal {method} {path} failed: {e}")
            raise ExternalServiceError("DocuSeal", "Signature service request failed")
        except ValueError as e:
            logger.error(f"DocuSeal returned invalid JSON for {method} {path}: {e}")
            raise ExternalServiceError("DocuSeal", "Signature service returned an invalid response")

    def create_submission(self, template_id: str, signers: List[Dict[str, Any]]) -> Any:
        return self._request("POST", "/submissions", json={"template_id": template_id, "signers": signers})

    def get_submission(self, submission_id: str) -> Any:
        return self._request("GET", f"/submissions/{submission_id}")


def _submitters(payload: Any) -> List[Dict[str, Any]]:
    """DocuSeal answers with a list of submitters or a submission object."""
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict):
        return payload.get("submitters") or []
    return []


def _submission_id(payload: Any, submitters: List[Dict[str, Any]]) -> Optional[str]:
    if isinstance(payload, dict) and payload.get("id") is not None:
        return str(payload["id"])
    for submitter in submitters:
        if submitter.get("submission_id") is not None:
            return str(submitter["submission_id"])
    return None


class SignatureService:
    def __init__(self, db: Session, client: Optional[DocuSealClient] = None):
        self.db = db
        self.client = client or DocuSealClient()

    def list_signatures(self, document: GeneratedDocument) -> List[DigitalSignature]:
        return (
            self.db.query(DigitalSignature)
            .filter(DigitalSignature.document_id == document.id)
            .order_by(DigitalSignature.id)
            .all()
        )

    def request_signatures(self, document: GeneratedDocument, user: User, signers: List[Dict[str, Any]],
                           template_id: Optional[str] = None) -> List[DigitalSignature]:
        if not self.client.is_configured():
            raise ServiceUnavailableError("DocuSeal", "Digital signatures are not configured")

        template_id = template_id or config.signatures.docuseal_template_id
        if not template_id:
            raise ValidationError("A DocuSeal template is required", errors={"template_id": "No template configured"})

        payload = self.client.create_submission(template_id, signers)
        submitters = _submitters(payload)
        submission_id = _submission_id(payload, submitters)
        if not submission_id:
            raise ExternalServiceError("DocuSeal", "Signature service did not return a submission id")

        by_email = {str(s.get("email", "")).lower(): s for s in submitters}
        rows = []
        for signer in signers:
            submitter = by_email.get(signer["email"].lower(), {})
            row = DigitalSignature(
                document_id=document.id,
                user_id=user.id,
                submission_id=submission_id,
                signer_id=str(submitter["id"]) if submitter.get("id") is not None else None,
                signer_name=signer["name"],
                signer_email=signer["email"],
                signer_role=signer.get("role"),
                signature_status="pending",
                signing_url=submitter.get("embed_src"),
            )
            self.db.add(row)
            rows.append(row)

        self.db.commit()
        for row in rows:
            self.db.refresh(row)
        logger.info(f"Requested {len(rows)} signatures for document {document.id} (submission {submission_id})")
        return rows

    def handle_webhook(self, event: Optional[str], data: Dict[str, Any]) -> bool:
        """Apply a DocuSeal webhook event; returns whether anything was updated."""
        data = data or {}
        submission_id = data.get("submission_id")
        if submission_id is None and isinstance(data.get("submission"), dict):
            submission_id = data["submission"].get("id")

        if event not in ("submission.completed", "submission.signed") or submission_id is None:
            logger.info(f"Ignoring DocuSeal event {event}")
            return False

        query = self.db.query(DigitalSignature).filter(DigitalSignature.submission_id == str(submission_id))
        now = datetime.utcnow()

        if event == "submission.completed":
            rows = query.all()
            for row in rows:
                row.signature_status = "completed"
                row.verified_at = now
        else:
            signer_id = data.get("signer_id") or data.get("id")
            if signer_id is None:
                logger.warning(f"DocuSeal signed event for submission {submission_id} has no signer id")
                return False
            rows = query.filter(DigitalSignature.signer_id == str(signer_id)).all()
            for row in rows:
                row.signature_status = "signed"

        self.db.commit()
        logger.info(f"DocuSeal {event} updated {len(rows)} signature rows for submission {submission_id}")
        return bool(rows)
