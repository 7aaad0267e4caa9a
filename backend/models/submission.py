"""
Submission SQLAlchemy ORM model.

A piece of student writing travelling through the editorial workflow.
"""
from sqlalchemy import Column, String, Integer, Text, Boolean, DateTime, ForeignKey, JSON
from sqlalchemy.orm import relationship
from datetime import datetime, timezone

from db.base import Base
from constants import Stage


def _utcnow():
    return datetime.now(timezone.utc)


class Submission(Base):
    __tablename__ = "submissions"

    id = Column(String, primary_key=True)  # UUID
    student_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    editor_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    title = Column(String(255), nullable=False)
    content = Column(Text, nullable=False)
    current_stage = Column(String, nullable=False, default=Stage.ANALYSIS.value, index=True)

    # Analysis blob, shaped like the orchestrator output (camelCase keys)
    analysis_result = Column(JSON, nullable=True)
    analysis_degraded = Column(Boolean, nullable=False, default=False)

    plagiarism_score = Column(Integer, nullable=True)  # 0-100, set by reviewer
    plagiarism_notes = Column(Text, nullable=True)

    is_archived = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=_utcnow)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow)

    stages = relationship(
        "WorkflowStage",
        back_populates="submission",
        order_by="WorkflowStage.stage_number",
    )
    student = relationship("User", foreign_keys=[student_id])
    editor = relationship("User", foreign_keys=[editor_id])
