"""
Document templates, generated documents and their signature requests.
"""

from datetime import datetime
from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, JSON
from sqlalchemy.orm import relationship

from lexcanada.models.base import Base


class DocumentTemplate(Base):
    """A fill-in-the-blanks legal document template."""
    __tablename__ = "document_templates"

    id = Column(Integer, primary_key=True, index=True)
    template_type = Column(String(50), nullable=False, index=True)  # 'family', 'employment', ...
    subcategory = Column(String(100), nullable=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False)
    language = Column(String(5), nullable=False, default="en", index=True)
    template_content = Column(Text, nullable=False)
    fields = Column(JSON, nullable=False, default=list)  # [{name, label, type, required}]
    jurisdiction = Column(String(100), nullable=True, default="Canada")
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    generated_documents = relationship("GeneratedDocument", back_populates="template")

    def __repr__(self):
        return f"<DocumentTemplate(id={self.id}, type='{self.template_type}', language='{self.language}')>"


class GeneratedDocument(Base):
    """A document produced for a user, from a template or drafted by the LLM."""
    __tablename__ = "generated_documents"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    template_id = Column(Integer, ForeignKey("document_templates.id", ondelete="SET NULL"), nullable=True)
    document_title = Column(String(255), nullable=False)
    document_content = Column(Text, nullable=False)
    document_data = Column(JSON, nullable=True)  # form data used to generate the document
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    user = relationship("User", back_populates="generated_documents")
    template = relationship("DocumentTemplate", back_populates="generated_documents")
    signatures = relationship("DigitalSignature", back_populates="document", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<GeneratedDocument(id={self.id}, user_id={self.user_id}, title='{self.document_title}')>"


class DigitalSignature(Base):
    """One signer's slot in a DocuSeal submission."""
    __tablename__ = "digital_signatures"

    id = Column(Integer, primary_key=True, index=True)
    document_id = Column(Integer, ForeignKey("generated_documents.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    submission_id = Column(String(100), nullable=False, index=True)
    signer_id = Column(String(100), nullable=True)
    signer_name = Column(String(255), nullable=False)
    signer_email = Column(String(255), nullable=False)
    signer_role = Column(String(50), nullable=True)
    signature_status = Column(String(20), nullable=False, default="pending")
    signing_url = Column(Text, nullable=True)
    verified_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    document = relationship("GeneratedDocument", back_populates="signatures")

    def __repr__(self):
        return f"<DigitalSignature(id={self.id}, submission='{self.submission_id}', status='{self.signature_status}')>"
