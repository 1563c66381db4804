"""
Disputes and the mediation sessions opened to resolve them.
"""

from datetime import datetime
from sqlalchemy import Boolean, Column, Integer, String, Text, DateTime, ForeignKey, JSON
from sqlalchemy.orm import relationship

from lexcanada.models.base import Base


class Dispute(Base):
    __tablename__ = "disputes"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False)
    parties = Column(Text, nullable=False)
    status = Column(String(20), nullable=False, default="pending")
    dispute_type = Column(String(30), nullable=False)
    supporting_documents = Column(JSON, nullable=True)
    ai_analysis = Column(JSON, nullable=True)
    mediation_id = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    resolved_at = Column(DateTime, nullable=True)

    user = relationship("User", back_populates="disputes")
    mediation_sessions = relationship(
        "MediationSession", back_populates="dispute", cascade="all, delete-orphan",
        order_by="MediationSession.id",
    )

    def __repr__(self):
        return f"<Dispute(id={self.id}, user_id={self.user_id}, status='{self.status}', type='{self.dispute_type}')>"


class MediationSession(Base):
    __tablename__ = "mediation_sessions"

    id = Column(Integer, primary_key=True, index=True)
    dispute_id = Column(Integer, ForeignKey("disputes.id", ondelete="CASCADE"), nullable=False, index=True)
    mediator_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    session_code = Column(String(16), unique=True, nullable=False, index=True)
    status = Column(String(20), nullable=False, default="scheduled")
    mediation_style = Column(String(20), nullable=False, default="facilitative")
    ai_assistance = Column(Boolean, nullable=False, default=True)
    scheduled_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)
    summary = Column(Text, nullable=True)
    recommendations = Column(JSON, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    dispute = relationship("Dispute", back_populates="mediation_sessions")
    mediator = relationship("User", foreign_keys=[mediator_id])
    messages = relationship(
        "MediationMessage", back_populates="session", cascade="all, delete-orphan",
        order_by="MediationMessage.id",
    )

    def __repr__(self):
        return f"<MediationSession(id={self.id}, dispute_id={self.dispute_id}, code='{self.session_code}', status='{self.status}')>"


class MediationMessage(Base):
    __tablename__ = "mediation_messages"

    id = Column(Integer, primary_key=True, index=True)
    session_id = Column(Integer, ForeignKey("mediation_sessions.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)  # null for AI messages
    role = Column(String(20), nullable=False)  # 'user', 'mediator', 'ai'
    content = Column(Text, nullable=False)
    sentiment = Column(String(20), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    session = relationship("MediationSession", back_populates="messages")

    def __repr__(self):
        return f"<MediationMessage(id={self.id}, session_id={self.session_id}, role='{self.role}')>"
