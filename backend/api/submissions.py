"""
Submission API routes: creation, stage changes, editor assignment, queries.
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
from schemas.submission_schema import (
    AnalysisStatusOut,
    AssignEditor,
    StageOut,
    StageUpdate,
    SubmissionCreate,
    SubmissionDetail,
    SubmissionOut,
)
from services import workflow
from services.orchestrator import TextAnalysisOrchestrator
from workers.analysis_worker import analysis_dispatcher

logger = logging.getLogger(__name__)
limiter = Limiter(key_func=get_remote_address)

router = APIRouter(prefix="/api/submissions", tags=["Submissions"])


def get_dispatcher():
    """Overridable in tests."""
    return analysis_dispatcher


@router.post("/", response_model=SubmissionOut, status_code=201)
@limiter.limit(settings.RATE_LIMIT_SUBMIT)
async def create_submission(
    request: Request,
    body: SubmissionCreate,
    current_user: dict = Depends(require_roles(Role.STUDENT)),
    db: Session = Depends(get_db),
    dispatcher=Depends(get_dispatcher),
):
    try:
        submission = workflow.create_submission(
            db, current_user, body.title, body.content, dispatcher=dispatcher
        )
    except WorkflowError as e:
        raise to_http(e)
    return submission


@router.get("/", response_model=List[SubmissionOut])
async def list_submissions(
    current_user: dict = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return workflow.list_submissions(db, current_user)


@router.get("/{submission_id}", response_model=SubmissionDetail)
async def get_submission(
    submission_id: str,
    current_user: dict = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        submission, stages = workflow.get_submission_detail(db, current_user, submission_id)
    except WorkflowError as e:
        raise to_http(e)
    detail = SubmissionDetail.model_validate(submission)
    detail.stages = [StageOut.model_validate(s) for s in stages]
    return detail


@router.get("/{submission_id}/analysis", response_model=AnalysisStatusOut)
async def get_analysis_status(
    submission_id: str,
    current_user: dict = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        return workflow.analysis_status(db, current_user, submission_id)
    except WorkflowError as e:
        raise to_http(e)


@router.post("/{submission_id}/analysis", response_model=AnalysisStatusOut)
@limiter.limit(settings.RATE_LIMIT_SUBMIT)
async def rerun_analysis(
    request: Request,
    submission_id: str,
    current_user: dict = Depends(require_roles(Role.ADMIN, Role.OPERATIONS)),
    db: Session = Depends(get_db),
):
    """Re-analyze the stored text; the stage trail is left alone."""
    try:
        submission = workflow.get_submission(db, submission_id)
        result, report = await TextAnalysisOrchestrator().analyze_with_report(
            submission.content, submission.title
        )
        workflow.store_analysis(db, submission_id, result, report)
        logger.info(f"Analysis re-run for submission {submission_id}: {report.summary()}")
        return workflow.analysis_status(db, current_user, submission_id)
    except WorkflowError as e:
        raise to_http(e)


@router.put("/{submission_id}/stage", response_model=SubmissionOut)
@limiter.limit(settings.RATE_LIMIT_DEFAULT)
async def update_stage(
    request: Request,
    submission_id: str,
    body: StageUpdate,
    current_user: dict = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        return workflow.set_stage(db, current_user, submission_id, body.stage, body.notes)
    except WorkflowError as e:
        raise to_http(e)


@router.put("/{submission_id}/editor", response_model=SubmissionOut)
async def assign_editor(
    submission_id: str,
    body: AssignEditor,
    current_user: dict = Depends(require_roles(Role.ADMIN, Role.OPERATIONS)),
    db: Session = Depends(get_db),
):
    try:
        return workflow.assign_editor(db, current_user, submission_id, body.editor_id, body.notes)
    except WorkflowError as e:
        raise to_http(e)


@router.delete("/{submission_id}")
async def archive_submission(
    submission_id: str,
    current_user: dict = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        workflow.archive_submission(db, current_user, submission_id)
    except WorkflowError as e:
        raise to_http(e)
    return {"message": "Submission archived successfully"}


@router.get("/_meta/analysis-stats")
async def analysis_stats(
    current_user: dict = Depends(require_roles(Role.ADMIN, Role.OPERATIONS)),
    dispatcher=Depends(get_dispatcher),
):
    return dispatcher.stats()
