"""
Editorial workflow state machine.

A submission moves through ordered stages, from ANALYSIS to COMPLETED. Each
stage is recorded as a WorkflowStage row. Rows are never deleted: a
transition closes the open row and appends the next one, and stage numbers
grow by one per row. Every transition is one transaction over the
submission and its stage rows. A failure rolls back both and surfaces as
PersistenceFault.
Notifications go out only after the commit.
"""
import logging
import uuid
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from constants import (
    Stage,
    StageStatus,
    Role,
    NotificationType,
    OPEN_STATUSES,
    OPERATIONS_STAGES,
    REVIEWER_ROLES,
    STAFF_ROLES,
    TERMINAL_STAGE,
    humanize_stage,
)
from core.exceptions import (
    EditorNotFound,
    GuardViolation,
    InvalidTransition,
    PersistenceFault,
    SubmissionNotFound,
)
from models.submission import Submission
from models.user import User
from models.workflow_stage import WorkflowStage
from services.notification_service import NotificationDispatcher, notifier as default_notifier

logger = logging.getLogger(__name__)

# Targets an assigned editor may move a submission to. ANALYSIS and
# PLAGIARISM_REVIEW are entered automatically or by reviewer verdicts.
EDITOR_STAGES = {
    Stage.EDITOR_MEETING,
    Stage.APPROVAL_PROCESS,
    Stage.PDF_REVIEW,
    Stage.COVER_APPROVAL,
    Stage.EVENT_PLANNING,
    Stage.COMPLETED,
}


@dataclass
class StageEvent:
    """A stage change, in the shape the notification sink consumes."""

    submission_id: str
    title: str
    from_stage: str
    to_stage: str
    user_ids: List[int] = field(default_factory=list)
    notes: Optional[str] = None


def _now():
    return datetime.now(timezone.utc)


@contextmanager
def _transaction(db: Session, action: str):
    """Commit on success; on any failure roll everything back."""
    try:
        yield
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"{action} failed, rolled back: {e}", exc_info=True)
        raise PersistenceFault(f"{action} failed") from e
    except Exception:
        db.rollback()
        raise


# ── Stage trail helpers ──

def get_submission(db: Session, submission_id: str) -> Submission:
    submission = db.query(Submission).filter(Submission.id == submission_id).first()
    if not submission:
        raise SubmissionNotFound(f"Submission {submission_id} not found")
    return submission


def stage_history(db: Session, submission_id: str) -> List[WorkflowStage]:
    return (
        db.query(WorkflowStage)
        .filter(WorkflowStage.submission_id == submission_id)
        .order_by(WorkflowStage.stage_number)
        .all()
    )


def open_stage(db: Session, submission_id: str) -> Optional[WorkflowStage]:
    """The current (pending or in-progress) stage row, if any."""
    return (
        db.query(WorkflowStage)
        .filter(
            WorkflowStage.submission_id == submission_id,
            WorkflowStage.status.in_(OPEN_STATUSES),
        )
        .order_by(WorkflowStage.stage_number.desc())
        .first()
    )


def _latest_stage_named(db: Session, submission_id: str, stage: Stage) -> Optional[WorkflowStage]:
    return (
        db.query(WorkflowStage)
        .filter(
            WorkflowStage.submission_id == submission_id,
            WorkflowStage.stage_name == stage.value,
        )
        .order_by(WorkflowStage.stage_number.desc())
        .first()
    )


def _next_stage_number(db: Session, submission_id: str) -> int:
    current = (
        db.query(func.max(WorkflowStage.stage_number))
        .filter(WorkflowStage.submission_id == submission_id)
        .scalar()
    )
    return (current or 0) + 1


def _append_stage(db: Session, submission_id: str, stage: Stage, status: StageStatus,
                  assigned_user_id: Optional[int] = None) -> WorkflowStage:
    record = WorkflowStage(
        submission_id=submission_id,
        stage_number=_next_stage_number(db, submission_id),
        stage_name=stage.value,
        status=status.value,
        started_at=_now(),
        assigned_user_id=assigned_user_id,
    )
    db.add(record)
    db.flush()
    return record


def _close(record: Optional[WorkflowStage], notes: Optional[str],
           assigned_user_id: Optional[int] = None) -> None:
    if record is None:
        return
    record.status = StageStatus.COMPLETED.value
    record.completed_at = _now()
    if notes is not None:
        record.notes = notes
    if assigned_user_id is not None:
        record.assigned_user_id = assigned_user_id


def _publish(event: StageEvent, notifier: NotificationDispatcher, type: NotificationType,
             title: str, message: str) -> None:
    notifier.notify_many(
        event.user_ids,
        type.value,
        title,
        message,
        {"submissionId": event.submission_id, "fromStage": event.from_stage, "toStage": event.to_stage},
    )


# ── Guards ──

def can_set_stage(current_user: Dict[str, Any], submission: Submission, target: Stage) -> bool:
    role = current_user.get("role")
    if role == Role.ADMIN.value:
        return True
    if role == Role.EDITOR.value:
        return submission.editor_id == current_user.get("user_id") and target in EDITOR_STAGES
    if role == Role.OPERATIONS.value:
        return target in OPERATIONS_STAGES
    return False


def can_view(current_user: Dict[str, Any], submission: Submission) -> bool:
    role = current_user.get("role")
    return (
        role in {Role.ADMIN.value, Role.OPERATIONS.value, Role.SALES.value}
        or submission.student_id == current_user.get("user_id")
        or submission.editor_id == current_user.get("user_id")
        or (role == Role.REVIEWER.value and submission.current_stage == Stage.PLAGIARISM_REVIEW.value)
    )


def can_view_analysis(current_user: Dict[str, Any], submission: Submission) -> bool:
    role = current_user.get("role")
    return (
        role in {Role.ADMIN.value, Role.EDITOR.value, Role.OPERATIONS.value}
        or submission.student_id == current_user.get("user_id")
    )


# ── Transitions ──

def create_submission(db: Session, current_user: Dict[str, Any], title: str, content: str,
                      dispatcher=None) -> Submission:
    """Create a submission with its first stage row, then queue its analysis.

    The returned submission is committed before analysis is dispatched; the
    caller never waits for the analysis.
    """
    if current_user.get("role") != Role.STUDENT.value:
        raise GuardViolation("Only students can create submissions")

    submission = Submission(
        id=str(uuid.uuid4()),
        student_id=current_user["user_id"],
        title=title,
        content=content,
        current_stage=Stage.ANALYSIS.value,
    )
    with _transaction(db, "Create submission"):
        db.add(submission)
        db.flush()
        _append_stage(db, submission.id, Stage.ANALYSIS, StageStatus.IN_PROGRESS)
    db.refresh(submission)
    logger.info(f"Submission {submission.id} created by user {current_user['user_id']}")

    if dispatcher is not None:
        dispatcher.dispatch(submission.id)
    return submission


def complete_analysis(db: Session, submission_id: str, result: Dict[str, Any], report=None,
                      note: Optional[str] = None,
                      notifier: Optional[NotificationDispatcher] = None) -> Submission:
    """Automatic transition ANALYSIS -> PLAGIARISM_REVIEW.

    Runs whether the analysis succeeded, degraded or was skipped; analysis
    trouble only shows up in the stage note and the degraded flag. When the
    submission has already left ANALYSIS the result is stored on its own.
    """
    notifier = notifier or default_notifier
    submission = get_submission(db, submission_id)
    if submission.current_stage != Stage.ANALYSIS.value:
        # Moved on by hand while the job ran; keep the result, not the transition.
        logger.warning(
            f"Submission {submission_id} is in {submission.current_stage}, "
            "not ANALYSIS; storing the analysis without a stage change"
        )
        return store_analysis(db, submission_id, result, report)

    degraded = bool(report is not None and report.degraded)
    if note is None:
        if report is None or not degraded:
            note = "AI analysis completed successfully"
        else:
            note = f"Analysis completed with degraded results ({report.summary()})"

    with _transaction(db, f"Complete analysis for {submission_id}"):
        submission.analysis_result = result
        submission.analysis_degraded = degraded
        analysis_row = _latest_stage_named(db, submission_id, Stage.ANALYSIS)
        _close(analysis_row, note)
        submission.current_stage = Stage.PLAGIARISM_REVIEW.value
        _append_stage(db, submission_id, Stage.PLAGIARISM_REVIEW, StageStatus.PENDING)
    logger.info(f"Submission {submission_id}: ANALYSIS -> PLAGIARISM_REVIEW ({note})")

    event = StageEvent(
        submission_id=submission_id,
        title=submission.title,
        from_stage=Stage.ANALYSIS.value,
        to_stage=Stage.PLAGIARISM_REVIEW.value,
        user_ids=notifier.active_user_ids(Role.REVIEWER),
        notes=note,
    )
    _publish(
        event, notifier, NotificationType.ASSIGNMENT,
        "New Submission for Plagiarism Review",
        f'A new submission "{submission.title}" is ready for plagiarism review.',
    )
    event.user_ids = [submission.student_id]
    _publish(
        event, notifier, NotificationType.WORKFLOW_UPDATE,
        "Submission Stage Updated",
        f'Your submission "{submission.title}" has been analyzed and moved to plagiarism review.',
    )
    return submission


def store_analysis(db: Session, submission_id: str, result: Dict[str, Any], report=None) -> Submission:
    """Replace the stored analysis without touching the stage trail."""
    submission = get_submission(db, submission_id)
    with _transaction(db, f"Store analysis for {submission_id}"):
        submission.analysis_result = result
        submission.analysis_degraded = bool(report is not None and report.degraded)
    return submission


def submit_review(db: Session, current_user: Dict[str, Any], submission_id: str,
                  plagiarism_score: int, plagiarism_notes: str, passed: bool,
                  notifier: Optional[NotificationDispatcher] = None) -> Submission:
    """Record a reviewer verdict.

    Passing advances to EDITOR_MEETING with a new stage row. Failing keeps
    the submission in PLAGIARISM_REVIEW for re-review and adds no row.
    """
    notifier = notifier or default_notifier
    if current_user.get("role") not in REVIEWER_ROLES:
        raise GuardViolation("Reviewer access required")

    submission = get_submission(db, submission_id)
    if submission.current_stage != Stage.PLAGIARISM_REVIEW.value:
        raise InvalidTransition("Submission is not in plagiarism review stage")

    review_note = f"Plagiarism Score: {plagiarism_score}%. {plagiarism_notes}"
    with _transaction(db, f"Submit review for {submission_id}"):
        submission.plagiarism_score = plagiarism_score
        submission.plagiarism_notes = plagiarism_notes
        review_row = open_stage(db, submission_id) or _latest_stage_named(
            db, submission_id, Stage.PLAGIARISM_REVIEW
        )
        _close(review_row, review_note, assigned_user_id=current_user["user_id"])
        if passed:
            submission.current_stage = Stage.EDITOR_MEETING.value
            _append_stage(db, submission_id, Stage.EDITOR_MEETING, StageStatus.PENDING)

    to_stage = submission.current_stage
    logger.info(
        f"Submission {submission_id}: review by user {current_user['user_id']} "
        f"{'passed' if passed else 'failed'} (score {plagiarism_score}) -> {to_stage}"
    )

    event = StageEvent(
        submission_id=submission_id,
        title=submission.title,
        from_stage=Stage.PLAGIARISM_REVIEW.value,
        to_stage=to_stage,
        user_ids=[submission.student_id],
        notes=review_note,
    )
    if passed:
        message = f'Your submission "{submission.title}" passed plagiarism review and moved to editor meeting.'
    else:
        message = f'Your submission "{submission.title}" needs another plagiarism review. Reviewer notes: {plagiarism_notes}'
    _publish(event, notifier, NotificationType.REVIEW_RESULT, "Plagiarism Review Completed", message)
    return submission


def update_review(db: Session, current_user: Dict[str, Any], submission_id: str,
                  plagiarism_score: Optional[int] = None,
                  plagiarism_notes: Optional[str] = None) -> Submission:
    """Amend the plagiarism fields without touching the stage trail."""
    if current_user.get("role") not in REVIEWER_ROLES:
        raise GuardViolation("Reviewer access required")
    submission = get_submission(db, submission_id)
    with _transaction(db, f"Update review for {submission_id}"):
        if plagiarism_score is not None:
            submission.plagiarism_score = plagiarism_score
        if plagiarism_notes is not None:
            submission.plagiarism_notes = plagiarism_notes
    return submission


def set_stage(db: Session, current_user: Dict[str, Any], submission_id: str, stage,
              notes: Optional[str] = None,
              notifier: Optional[NotificationDispatcher] = None) -> Submission:
    """Manual transition: close the current stage and open ``stage``.

    No row is opened when the target is COMPLETED. Unauthorized callers get
    GuardViolation and nothing changes.
    """
    notifier = notifier or default_notifier
    target = Stage(stage)
    submission = get_submission(db, submission_id)

    if not can_set_stage(current_user, submission, target):
        raise GuardViolation("Not authorized to update this stage")
    if submission.current_stage == TERMINAL_STAGE.value:
        raise InvalidTransition("Submission workflow is already completed")
    if target == Stage.ANALYSIS:
        raise InvalidTransition("ANALYSIS is only entered when a submission is created")
    if target.value == submission.current_stage:
        raise InvalidTransition(f"Submission is already in {target.value}")

    from_stage = submission.current_stage
    with _transaction(db, f"Set stage for {submission_id}"):
        current_row = open_stage(db, submission_id)
        _close(current_row, notes)
        submission.current_stage = target.value
        if target != TERMINAL_STAGE:
            _append_stage(db, submission_id, target, StageStatus.PENDING,
                          assigned_user_id=current_user["user_id"])
    logger.info(
        f"Submission {submission_id}: {from_stage} -> {target.value} "
        f"by user {current_user['user_id']} ({current_user['role']})"
    )

    event = StageEvent(
        submission_id=submission_id,
        title=submission.title,
        from_stage=from_stage,
        to_stage=target.value,
        user_ids=[submission.student_id],
        notes=notes,
    )
    _publish(
        event, notifier, NotificationType.WORKFLOW_UPDATE,
        "Submission Stage Updated",
        f'Your submission "{submission.title}" has moved to {humanize_stage(target.value)}.',
    )
    return submission


def assign_editor(db: Session, current_user: Dict[str, Any], submission_id: str, editor_id: int,
                  notes: Optional[str] = None,
                  notifier: Optional[NotificationDispatcher] = None) -> Submission:
    """Set the submission's editor. Does not move the stage."""
    notifier = notifier or default_notifier
    if current_user.get("role") not in STAFF_ROLES:
        raise GuardViolation("Insufficient permissions")

    submission = get_submission(db, submission_id)
    editor = db.query(User).filter(
        User.id == editor_id,
        User.role == Role.EDITOR.value,
        User.is_active.is_(True),
    ).first()
    if not editor:
        raise EditorNotFound("Editor not found or inactive")

    with _transaction(db, f"Assign editor for {submission_id}"):
        submission.editor_id = editor.id
    logger.info(f"Editor {editor.id} assigned to submission {submission_id} by user {current_user['user_id']}")

    metadata = {"submissionId": submission_id, "editorId": editor.id}
    if notes:
        metadata["notes"] = notes
    notifier.notify(
        editor.id, NotificationType.ASSIGNMENT.value, "New Submission Assigned",
        f'You have been assigned to review "{submission.title}".', metadata,
    )
    notifier.notify(
        submission.student_id, NotificationType.WORKFLOW_UPDATE.value, "Editor Assigned",
        f'{editor.name} has been assigned as your editor for "{submission.title}".', metadata,
    )
    return submission


def archive_submission(db: Session, current_user: Dict[str, Any], submission_id: str) -> Submission:
    """Soft delete; the stage trail is kept."""
    submission = get_submission(db, submission_id)
    if current_user.get("role") != Role.ADMIN.value and submission.student_id != current_user.get("user_id"):
        raise GuardViolation("Not authorized to archive this submission")
    with _transaction(db, f"Archive submission {submission_id}"):
        submission.is_archived = True
    return submission


# ── Queries ──

def pending_reviews(db: Session) -> List[Submission]:
    return (
        db.query(Submission)
        .filter(
            Submission.current_stage == Stage.PLAGIARISM_REVIEW.value,
            Submission.is_archived.is_(False),
        )
        .order_by(Submission.created_at.asc())
        .all()
    )


def analysis_status(db: Session, current_user: Dict[str, Any], submission_id: str) -> Dict[str, Any]:
    """Progress of the analysis stage plus the stored result once done."""
    submission = get_submission(db, submission_id)
    if not can_view_analysis(current_user, submission):
        raise GuardViolation("Not authorized to view this analysis")
    row = _latest_stage_named(db, submission_id, Stage.ANALYSIS)
    return {
        "submissionId": submission.id,
        "status": row.status if row else StageStatus.PENDING.value,
        "analysisComplete": bool(row) and row.status == StageStatus.COMPLETED.value,
        "startedAt": row.started_at if row else None,
        "completedAt": row.completed_at if row else None,
        "notes": row.notes if row else None,
        "degraded": bool(submission.analysis_degraded),
        "analysis": submission.analysis_result,
    }


def get_submission_detail(db: Session, current_user: Dict[str, Any], submission_id: str):
    """Submission with its full stage trail, ordered by stage number."""
    submission = get_submission(db, submission_id)
    if not can_view(current_user, submission):
        raise GuardViolation("Not authorized to view this submission")
    return submission, stage_history(db, submission_id)


def list_submissions(db: Session, current_user: Dict[str, Any]) -> List[Submission]:
    """Students see their own work, editors their assignments, staff everything."""
    query = db.query(Submission).filter(Submission.is_archived.is_(False))
    role = current_user.get("role")
    if role == Role.STUDENT.value:
        query = query.filter(Submission.student_id == current_user["user_id"])
    elif role == Role.EDITOR.value:
        query = query.filter(Submission.editor_id == current_user["user_id"])
    elif role == Role.REVIEWER.value:
        query = query.filter(Submission.current_stage == Stage.PLAGIARISM_REVIEW.value)
    return query.order_by(Submission.created_at.desc()).all()
