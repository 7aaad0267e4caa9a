"""
Maps workflow errors onto HTTP responses.
"""
import logging
from fastapi import HTTPException

from core.exceptions import (
    GuardViolation,
    InvalidTransition,
    NotFoundError,
    PersistenceFault,
    WorkflowError,
)

logger = logging.getLogger(__name__)

_STATUS_CODES = [
    (NotFoundError, 404),
    (GuardViolation, 403),
    (InvalidTransition, 400),
    (PersistenceFault, 500),
]


def to_http(exc: WorkflowError) -> HTTPException:
    for exc_type, status_code in _STATUS_CODES:
        if isinstance(exc, exc_type):
            if status_code == 500:
                # Don't leak database details to the client
                return HTTPException(status_code=500, detail="Internal server error")
            return HTTPException(status_code=status_code, detail=str(exc))
    logger.error(f"Unmapped workflow error: {exc!r}")
    return HTTPException(status_code=500, detail="Internal server error")
