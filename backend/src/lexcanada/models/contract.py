"""
Saved contract analyses.
"""

from datetime import datetime
from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, JSON
from sqlalchemy.orm import relationship

from lexcanada.models.base import Base


class ContractAnalysis(Base):
    __tablename__ = "contract_analyses"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    contract_title = Column(String(255), nullable=False)
    contract_content = Column(Text, nullable=False)
    score = Column(Integer, nullable=False)
    risk_level = Column(String(10), nullable=False)  # 'low', 'medium', 'high'
    analysis_results = Column(JSON, nullable=False)
    categories = Column(JSON, nullable=True)
    jurisdiction = Column(String(100), nullable=True, default="Canada")
    contract_type = Column(String(50), nullable=True, default="general")
    file_name = Column(String(255), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, nullable=True, onupdate=datetime.utcnow)

    user = relationship("User", back_populates="contract_analyses")

    def __repr__(self):
        return f"<ContractAnalysis(id={self.id}, user_id={self.user_id}, risk='{self.risk_level}', score={self.score})>"
