"""
Court procedure catalogue and per-user procedure tracking.
"""

from datetime import datetime
from sqlalchemy import Boolean, Column, Integer, String, Text, DateTime, ForeignKey, JSON
from sqlalchemy.orm import relationship

from lexcanada.models.base import Base


class CourtProcedureCategory(Base):
    __tablename__ = "court_procedure_categories"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    slug = Column(String(100), unique=True, nullable=False, index=True)
    description = Column(Text, nullable=True)
    icon = Column(String(50), nullable=True)
    order = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    procedures = relationship("CourtProcedure", back_populates="category", cascade="all, delete-orphan")


class CourtProcedure(Base):
    __tablename__ = "court_procedures"

    id = Column(Integer, primary_key=True, index=True)
    category_id = Column(Integer, ForeignKey("court_procedure_categories.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    slug = Column(String(100), unique=True, nullable=False)
    description = Column(Text, nullable=True)
    overview = Column(Text, nullable=True)
    jurisdiction = Column(String(100), nullable=True, default="Canada")
    estimated_timeframe = Column(String(100), nullable=True)
    cost_range = Column(String(100), nullable=True)
    required_documents = Column(JSON, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    category = relationship("CourtProcedureCategory", back_populates="procedures")
    steps = relationship(
        "CourtProcedureStep", back_populates="procedure", cascade="all, delete-orphan",
        order_by="CourtProcedureStep.step_order",
    )


class CourtProcedureStep(Base):
    __tablename__ = "court_procedure_steps"

    id = Column(Integer, primary_key=True, index=True)
    procedure_id = Column(Integer, ForeignKey("court_procedures.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    step_order = Column(Integer, nullable=False)
    estimated_time = Column(String(100), nullable=True)
    required_documents = Column(JSON, nullable=True)
    instructions = Column(Text, nullable=True)
    tips = Column(JSON, nullable=True)
    warnings = Column(JSON, nullable=True)

    procedure = relationship("CourtProcedure", back_populates="steps")


class UserCourtProcedure(Base):
    """A user's progress through one court procedure."""
    __tablename__ = "user_court_procedures"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    procedure_id = Column(Integer, ForeignKey("court_procedures.id", ondelete="CASCADE"), nullable=False)
    title = Column(String(255), nullable=True)
    current_step_id = Column(Integer, ForeignKey("court_procedure_steps.id", ondelete="SET NULL"), nullable=True)
    status = Column(String(20), nullable=False, default="in_progress")
    progress = Column(Integer, nullable=False, default=0)
    notes = Column(Text, nullable=True)
    completed_steps = Column(JSON, nullable=False, default=list)
    case_specific_data = Column(JSON, nullable=True)
    started_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    expected_completion_date = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)
    last_activity_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    user = relationship("User", back_populates="court_procedures")
    procedure = relationship("CourtProcedure")
    current_step = relationship("CourtProcedureStep")
    procedure_notes = relationship("UserProcedureNote", back_populates="user_procedure", cascade="all, delete-orphan")
    reminders = relationship("UserProcedureReminder", back_populates="user_procedure", cascade="all, delete-orphan")
    checklist_items = relationship("UserProcedureChecklistItem", back_populates="user_procedure", cascade="all, delete-orphan")
    documents = relationship("UserProcedureDocument", back_populates="user_procedure", cascade="all, delete-orphan")


class UserProcedureNote(Base):
    __tablename__ = "user_procedure_notes"

    id = Column(Integer, primary_key=True, index=True)
    user_procedure_id = Column(Integer, ForeignKey("user_court_procedures.id", ondelete="CASCADE"), nullable=False, index=True)
    step_id = Column(Integer, nullable=True)
    content = Column(Text, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    user_procedure = relationship("UserCourtProcedure", back_populates="procedure_notes")


class UserProcedureReminder(Base):
    __tablename__ = "user_procedure_reminders"

    id = Column(Integer, primary_key=True, index=True)
    user_procedure_id = Column(Integer, ForeignKey("user_court_procedures.id", ondelete="CASCADE"), nullable=False, index=True)
    step_id = Column(Integer, nullable=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    due_date = Column(DateTime, nullable=False)
    notify_before = Column(Integer, nullable=False, default=1)  # days
    notify_method = Column(String(20), nullable=False, default="app")
    is_completed = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    user_procedure = relationship("UserCourtProcedure", back_populates="reminders")


class UserProcedureChecklistItem(Base):
    __tablename__ = "user_procedure_checklist"

    id = Column(Integer, primary_key=True, index=True)
    user_procedure_id = Column(Integer, ForeignKey("user_court_procedures.id", ondelete="CASCADE"), nullable=False, index=True)
    step_id = Column(Integer, nullable=True)
    category = Column(String(50), nullable=False, default="general")
    text = Column(Text, nullable=False)
    is_completed = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    user_procedure = relationship("UserCourtProcedure", back_populates="checklist_items")


class UserProcedureDocument(Base):
    __tablename__ = "user_procedure_documents"

    id = Column(Integer, primary_key=True, index=True)
    user_procedure_id = Column(Integer, ForeignKey("user_court_procedures.id", ondelete="CASCADE"), nullable=False, index=True)
    step_id = Column(Integer, nullable=True)
    related_form_id = Column(Integer, nullable=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    file_url = Column(Text, nullable=True)
    file_type = Column(String(50), nullable=False)
    status = Column(String(20), nullable=False, default="draft")
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    user_procedure = relationship("UserCourtProcedure", back_populates="documents")
