"""
Workflow stages, roles and statuses shared across the backend.
"""
import enum


class Stage(str, enum.Enum):
    ANALYSIS = "ANALYSIS"
    PLAGIARISM_REVIEW = "PLAGIARISM_REVIEW"
    EDITOR_MEETING = "EDITOR_MEETING"
    APPROVAL_PROCESS = "APPROVAL_PROCESS"
    PDF_REVIEW = "PDF_REVIEW"
    COVER_APPROVAL = "COVER_APPROVAL"
    EVENT_PLANNING = "EVENT_PLANNING"
    COMPLETED = "COMPLETED"


TERMINAL_STAGE = Stage.COMPLETED

# Stages operations staff may move a submission into.
OPERATIONS_STAGES = {Stage.PDF_REVIEW, Stage.COVER_APPROVAL}


class StageStatus(str, enum.Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


OPEN_STATUSES = {StageStatus.PENDING.value, StageStatus.IN_PROGRESS.value}


class Role(str, enum.Enum):
    STUDENT = "STUDENT"
    EDITOR = "EDITOR"
    REVIEWER = "REVIEWER"
    ADMIN = "ADMIN"
    OPERATIONS = "OPERATIONS"
    SALES = "SALES"


REVIEWER_ROLES = {Role.REVIEWER.value, Role.ADMIN.value}
STAFF_ROLES = {Role.ADMIN.value, Role.OPERATIONS.value}


class NotificationType(str, enum.Enum):
    ASSIGNMENT = "ASSIGNMENT"
    WORKFLOW_UPDATE = "WORKFLOW_UPDATE"
    REVIEW_RESULT = "REVIEW_RESULT"


def humanize_stage(stage: str) -> str:
    """'PLAGIARISM_REVIEW' -> 'plagiarism review'."""
    return stage.replace("_", " ").lower()
