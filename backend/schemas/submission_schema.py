"""
Pydantic schemas for submission request / response models.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field, field_validator

from constants import Stage


class SubmissionCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    content: str = Field(..., min_length=50)

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Title must not be empty")
        return v.strip()


class StageUpdate(BaseModel):
    stage: Stage
    notes: Optional[str] = None


class AssignEditor(BaseModel):
    editor_id: int
    notes: Optional[str] = None


class StageOut(BaseModel):
    stage_number: int
    stage_name: str
    status: str
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    assigned_user_id: Optional[int] = None
    notes: Optional[str] = None

    class Config:
        from_attributes = True


class SubmissionOut(BaseModel):
    id: str
    title: str
    student_id: int
    editor_id: Optional[int] = None
    current_stage: str
    analysis_degraded: bool = False
    plagiarism_score: Optional[int] = None
    plagiarism_notes: Optional[str] = None
    is_archived: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class SubmissionDetail(SubmissionOut):
    content: str
    analysis_result: Optional[Dict[str, Any]] = None
    stages: List[StageOut] = []


class AnalysisStatusOut(BaseModel):
    submissionId: str
    status: str
    analysisComplete: bool = False
    startedAt: Optional[datetime] = None
    completedAt: Optional[datetime] = None
    notes: Optional[str] = None
    degraded: bool = False
    analysis: Optional[Dict[str, Any]] = None
