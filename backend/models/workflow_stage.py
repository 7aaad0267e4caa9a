"""
WorkflowStage SQLAlchemy ORM model.

Append-only audit trail: rows are closed and superseded, never deleted.
"""
from sqlalchemy import Column, String, Integer, Text, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship

from db.base import Base
from constants import StageStatus


class WorkflowStage(Base):
    __tablename__ = "workflow_stages"

    id = Column(Integer, primary_key=True, autoincrement=True)
    submission_id = Column(String, ForeignKey("submissions.id"), nullable=False, index=True)
    stage_number = Column(Integer, nullable=False)
    stage_name = Column(String, nullable=False)
    status = Column(String, nullable=False, default=StageStatus.PENDING.value)
    started_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)
    assigned_user_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    notes = Column(Text, nullable=True)

    submission = relationship("Submission", back_populates="stages")

    __table_args__ = (
        UniqueConstraint("submission_id", "stage_number", name="uq_workflow_stage_number"),
    )
