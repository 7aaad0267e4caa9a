"""
Background analysis worker.

Submissions are analyzed off the request path on a bounded thread pool.
Each job opens its own DB session, runs the orchestrator on a private event
loop and then performs the automatic ANALYSIS -> PLAGIARISM_REVIEW
transition. The transition happens no matter how the analysis went; a
saturated pool or a crashed job closes ANALYSIS with a neutral result.
"""
import asyncio
import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, Dict, Optional

from config import settings
from core.exceptions import AnalysisQueueFull
from db.session import SessionLocal
from services.fallback import Strategy
from services.orchestrator import AnalysisReport, TextAnalysisOrchestrator, neutral_result
from services import workflow

logger = logging.getLogger(__name__)

SKIPPED_NOTE = "Analysis skipped: background analysis capacity exhausted"
CRASHED_NOTE = "Analysis failed unexpectedly; neutral result stored"


def process_submission_analysis(submission_id: str, orchestrator: Optional[TextAnalysisOrchestrator] = None,
                                session_factory: Callable = SessionLocal,
                                notifier=None) -> AnalysisReport:
    """Analyze one submission and move it to plagiarism review."""
    orchestrator = orchestrator or TextAnalysisOrchestrator()
    db = session_factory()
    try:
        submission = workflow.get_submission(db, submission_id)
        logger.info(f"Analyzing submission {submission_id} ({len(submission.content or '')} chars)")
        result, report = asyncio.run(
            orchestrator.analyze_with_report(submission.content, submission.title)
        )
        workflow.complete_analysis(db, submission_id, result, report, notifier=notifier)
        return report
    finally:
        db.close()


def close_without_analysis(submission_id: str, note: str, session_factory: Callable = SessionLocal,
                           notifier=None) -> None:
    """Finish ANALYSIS with the neutral result when no real analysis ran."""
    db = session_factory()
    try:
        workflow.complete_analysis(
            db, submission_id, neutral_result(), AnalysisReport(skipped=True),
            note=note, notifier=notifier,
        )
    except Exception as e:
        logger.error(f"Could not close analysis for submission {submission_id}: {e}", exc_info=True)
    finally:
        db.close()


class AnalysisDispatcher:
    """Bounded pool for analysis jobs, with counters for observability."""

    def __init__(self, max_workers: Optional[int] = None, queue_limit: Optional[int] = None,
                 orchestrator_factory: Callable[[], TextAnalysisOrchestrator] = TextAnalysisOrchestrator,
                 session_factory: Callable = SessionLocal, notifier=None):
        self.max_workers = max_workers or settings.ANALYSIS_WORKERS
        self.queue_limit = queue_limit if queue_limit is not None else settings.ANALYSIS_QUEUE_LIMIT
        self._orchestrator_factory = orchestrator_factory
        self._session_factory = session_factory
        self._notifier = notifier
        self._executor = ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="analysis")
        self._lock = threading.Lock()
        self._in_flight = 0
        self._counters: Dict[str, int] = {
            "submitted": 0,
            "completed": 0,
            "rejected": 0,
            "failed": 0,
            Strategy.PRIMARY.value: 0,
            Strategy.FALLBACK.value: 0,
            Strategy.DEFAULT.value: 0,
        }

    def _reserve(self) -> None:
        with self._lock:
            if self._in_flight >= self.queue_limit:
                self._counters["rejected"] += 1
                raise AnalysisQueueFull(f"{self._in_flight} analyses already queued")
            self._in_flight += 1
            self._counters["submitted"] += 1

    def _release(self, outcome: str, report: Optional[AnalysisReport] = None) -> None:
        with self._lock:
            self._in_flight -= 1
            self._counters[outcome] += 1
            if report is not None:
                for strategy in report.strategies.values():
                    self._counters[strategy] += 1

    def _run(self, submission_id: str) -> None:
        try:
            report = process_submission_analysis(
                submission_id,
                orchestrator=self._orchestrator_factory(),
                session_factory=self._session_factory,
                notifier=self._notifier,
            )
        except Exception as e:
            logger.error(f"Analysis job for submission {submission_id} crashed: {e}", exc_info=True)
            close_without_analysis(submission_id, CRASHED_NOTE, self._session_factory, self._notifier)
            self._release("failed")
            return
        self._release("completed", report)

    def dispatch(self, submission_id: str) -> Optional[Future]:
        """Queue analysis for a submission. Never raises to the caller.

        When the pool is saturated the submission still leaves ANALYSIS,
        carrying the neutral result and a "skipped" note.
        """
        try:
            self._reserve()
        except AnalysisQueueFull as e:
            logger.warning(f"Analysis for submission {submission_id} skipped: {e}")
            close_without_analysis(submission_id, SKIPPED_NOTE, self._session_factory, self._notifier)
            return None
        return self._executor.submit(self._run, submission_id)

    def stats(self) -> Dict[str, int]:
        with self._lock:
            return dict(self._counters, in_flight=self._in_flight)

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)


analysis_dispatcher = AnalysisDispatcher()
