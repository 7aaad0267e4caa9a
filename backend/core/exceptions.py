"""
Error taxonomy for the analysis and workflow services.

Only workflow guards and persistence failures are meant to reach callers;
the analysis path converts every fault into a fallback value.
"""


class WorkflowError(Exception):
    """Base class for errors surfaced by workflow transitions."""


class NotFoundError(WorkflowError):
    """A referenced submission or user does not exist."""


class SubmissionNotFound(NotFoundError):
    pass


class EditorNotFound(NotFoundError):
    pass


class GuardViolation(WorkflowError):
    """Caller's role does not allow the requested transition."""


class InvalidTransition(WorkflowError):
    """Submission is not in a state where the transition applies."""


class PersistenceFault(WorkflowError):
    """The transaction failed and was rolled back in full."""


class LLMError(Exception):
    """Primary (external) analyzer call failed or returned malformed data."""


class AnalysisQueueFull(Exception):
    """Background analysis pool is saturated."""
