"""
Plagiarism review API routes.
"""
import logging
from typing import List
from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session
from slowapi import Limiter
from slowapi.util import get_remote_address

from api.errors import to_http
from config import settings
from constants import Role
from core.exceptions import WorkflowError
from dependencies import get_current_user, get_db, require_roles
from schemas.review_schema import ReviewCreate, ReviewUpdate
from schemas.submission_schema import SubmissionOut
from services import workflow

logger = logging.getLogger(__name__)
limiter = Limiter(key_func=get_remote_address)

router = APIRouter(prefix="/api/reviews", tags=["Reviews"])


@router.get("/pending", response_model=List[SubmissionOut])
async def list_pending_reviews(
    current_user: dict = Depends(require_roles(Role.REVIEWER, Role.ADMIN)),
    db: Session = Depends(get_db),
):
    """Submissions waiting for a plagiarism verdict, oldest first."""
    return workflow.pending_reviews(db)


@router.post("/{submission_id}", response_model=SubmissionOut)
@limiter.limit(settings.RATE_LIMIT_REVIEW)
async def submit_review(
    request: Request,
    submission_id: str,
    body: ReviewCreate,
    current_user: dict = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        return workflow.submit_review(
            db, current_user, submission_id,
            body.plagiarism_score, body.plagiarism_notes, body.passed,
        )
    except WorkflowError as e:
        raise to_http(e)


@router.put("/{submission_id}", response_model=SubmissionOut)
@limiter.limit(settings.RATE_LIMIT_REVIEW)
async def update_review(
    request: Request,
    submission_id: str,
    body: ReviewUpdate,
    current_user: dict = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        return workflow.update_review(
            db, current_user, submission_id, body.plagiarism_score, body.plagiarism_notes
        )
    except WorkflowError as e:
        raise to_http(e)
