"""
Pydantic schemas for plagiarism review requests.
"""
from typing import Optional
from pydantic import BaseModel, Field


class ReviewCreate(BaseModel):
    plagiarism_score: int = Field(..., ge=0, le=100)
    plagiarism_notes: str = Field(..., min_length=10)
    passed: bool


class ReviewUpdate(BaseModel):
    plagiarism_score: Optional[int] = Field(None, ge=0, le=100)
    plagiarism_notes: Optional[str] = Field(None, min_length=10)
