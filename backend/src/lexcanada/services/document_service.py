"""
Document template and generated document service.

Templates use ``{{field}}`` placeholders. Rendering also fills the spaced
and upper-case forms of camelCase names so that ``firstName`` matches
``{{First Name}}`` and ``{{FIRST NAME}}``.
"""

import re
import json
import logging
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy.orm import Session

from lexcanada.core.constants import PROVIDER_ANTHROPIC
from lexcanada.core.errors import AuthorizationError, NotFoundError, ValidationError
from lexcanada.models import DocumentTemplate, GeneratedDocument, User
from lexcanada.services.llm_client import LLMUnavailableError, LLMResponseError, get_llm_client
from lexcanada.services.subscription_service import track_feature_usage

logger = logging.getLogger(__name__)

_CAMEL_BOUNDARY_RE = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")

ENHANCE_SYSTEM_PROMPT = """You are a Canadian legal document assistant drafting professional legal documents for {jurisdiction}.
Enhance the provided {document_type} by:
1. Using the form data to fill in any remaining placeholders
2. Ensuring proper legal language and formatting
3. Adding standard clauses typical for this document type in {jurisdiction}
4. Keeping the original intent of the document
5. Complying with the laws and regulations of {jurisdiction}

Respond with the complete document text only. Use Markdown headings (#, ##) for the title and sections.
Do not add explanations or notes outside the document."""


def placeholder_variants(name: str) -> List[str]:
    """Names a form field may appear under inside a template."""
    variants = [name]
    spaced = _CAMEL_BOUNDARY_RE.sub(" ", name).replace("_", " ")
    if spaced != name:
        titled = " ".join(word[:1].upper() + word[1:] for word in spaced.split())
        variants.extend([titled, spaced.upper()])
    return variants


def format_value(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "Yes" if value else "No"
    if isinstance(value, (list, tuple)):
        return ", ".join(format_value(item) for item in value)
    return str(value)


def missing_required_fields(fields: Iterable[Dict[str, Any]], form_data: Dict[str, Any]) -> Dict[str, str]:
    errors = {}
    for field in fields or []:
        if not field.get("required"):
            continue
        name = field.get("name")
        value = form_data.get(name)
        if value is None or (isinstance(value, str) and not value.strip()) or value == []:
            errors[name] = f"{field.get('label') or name} is required"
    return errors


def render_template(template_content: str, form_data: Dict[str, Any],
                    fields: Optional[Iterable[Dict[str, Any]]] = None) -> str:
    """
    Fill template placeholders from form data.

    Raises:
        ValidationError: a required field is missing; ``errors`` maps field name to message
    """
    errors = missing_required_fields(fields or [], form_data)
    if errors:
        raise ValidationError("Missing required fields", errors=errors)

    rendered = template_content
    for name, value in form_data.items():
        text = format_value(value)
        for variant in placeholder_variants(name):
            pattern = r"\{\{\s*" + re.escape(variant) + r"\s*\}\}"
            rendered = re.sub(pattern, lambda _m: text, rendered)
    return rendered


class DocumentService:
    def __init__(self, db: Session):
        self.db = db

    # Templates

    def list_templates(self, language: str = "en", template_type: Optional[str] = None) -> List[DocumentTemplate]:
        query = self.db.query(DocumentTemplate).filter(DocumentTemplate.language == language)
        if template_type:
            query = query.filter(DocumentTemplate.template_type == template_type)
        return query.order_by(DocumentTemplate.title).all()

    def get_template(self, template_id: int) -> DocumentTemplate:
        template = self.db.query(DocumentTemplate).filter(DocumentTemplate.id == template_id).first()
        if not template:
            raise NotFoundError("Document template")
        return template

    def create_template(self, data: Dict[str, Any]) -> DocumentTemplate:
        template = DocumentTemplate(**data)
        self.db.add(template)
        self.db.commit()
        self.db.refresh(template)
        logger.info(f"Created document template {template.id}: {template.title}")
        return template

    # Generated documents

    def list_documents(self, user_id: int) -> List[GeneratedDocument]:
        return (
            self.db.query(GeneratedDocument)
            .filter(GeneratedDocument.user_id == user_id)
            .order_by(GeneratedDocument.created_at.desc(), GeneratedDocument.id.desc())
            .all()
        )

    def get_document(self, document_id: int, user: User) -> GeneratedDocument:
        document = self.db.query(GeneratedDocument).filter(GeneratedDocument.id == document_id).first()
        if not document:
            raise NotFoundError("Document")
        if document.user_id != user.id:
            raise AuthorizationError("You do not have access to this document")
        return document

    def create_document(
        self,
        user: User,
        document_title: str,
        document_content: str,
        template_id: Optional[int] = None,
        document_data: Optional[Dict[str, Any]] = None,
    ) -> GeneratedDocument:
        if template_id is not None:
            self.get_template(template_id)

        document = GeneratedDocument(
            user_id=user.id,
            template_id=template_id,
            document_title=document_title,
            document_content=document_content,
            document_data=document_data,
        )
        self.db.add(document)
        self.db.commit()
        self.db.refresh(document)
        logger.info(f"Saved document {document.id} for user {user.id}")
        return document

    def generate_from_template(self, user: User, template_id: int, form_data: Dict[str, Any],
                               title: Optional[str] = None) -> GeneratedDocument:
        template = self.get_template(template_id)
        content = render_template(template.template_content, form_data, template.fields)
        document = self.create_document(
            user,
            document_title=title or template.title,
            document_content=content,
            template_id=template.id,
            document_data=form_data,
        )
        track_feature_usage(self.db, user.id, "document_gen")
        return document

    def generate_enhanced(
        self,
        user: User,
        template: str,
        form_data: Dict[str, Any],
        document_type: str,
        jurisdiction: str = "Canada",
        save_document: bool = False,
        title: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Draft a complete document with the LLM.

        Falls back to plain placeholder rendering when no provider answers.
        """
        drafted = render_template(template, form_data)
        enhanced = True

        system = ENHANCE_SYSTEM_PROMPT.format(jurisdiction=jurisdiction, document_type=document_type)
        prompt = (
            f"Enhance this {document_type} for {jurisdiction}.\n\n"
            f"Drafted document:\n{drafted}\n\n"
            f"Form data:\n{json.dumps(form_data, indent=2, default=str)}"
        )
        try:
            completion = get_llm_client().complete(
                system,
                [{"role": "user", "content": prompt}],
                max_tokens=4000,
                temperature=0.3,
                prefer=[PROVIDER_ANTHROPIC],
            )
            content = completion.text
        except (LLMUnavailableError, LLMResponseError) as e:
            logger.warning(f"Enhanced drafting unavailable, returning rendered template: {e}")
            content = drafted
            enhanced = False

        document_id = None
        if save_document and title:
            document = self.create_document(
                user,
                document_title=title,
                document_content=content,
                document_data={**form_data, "document_type": document_type, "jurisdiction": jurisdiction},
            )
            document_id = document.id

        track_feature_usage(self.db, user.id, "document_gen")
        return {"content": content, "enhanced": enhanced, "document_id": document_id}
