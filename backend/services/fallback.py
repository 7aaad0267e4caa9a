"""
Try-primary-then-fallback analyzers and the settle-all batch runner.

Every analyzer exposes one capability, ``run(text)``, backed by two
strategies: an optional primary (external service) and a deterministic
fallback computed locally from the full text. ``settle_all`` runs a batch of
analyzers concurrently, each under its own deadline, and replaces any task
that still fails or times out with the analyzer's static default.
"""
import asyncio
import enum
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, List, Optional, Sequence

logger = logging.getLogger(__name__)


class Strategy(str, enum.Enum):
    PRIMARY = "primary"
    FALLBACK = "fallback"
    DEFAULT = "default"


@dataclass
class Outcome:
    name: str
    value: Any
    strategy: Strategy
    error: Optional[str] = None


async def attempt_with_fallback(
    primary: Optional[Callable[[], Awaitable[Any]]],
    fallback: Callable[[], Any],
    *,
    name: str = "",
    timeout: Optional[float] = None,
) -> Outcome:
    """Await ``primary`` (bounded by ``timeout``); on any fault use ``fallback``.

    ``primary`` may be None for analyzers that only have a local strategy.
    The fallback runs in a worker thread so a slow local computation never
    holds the event loop and stays subject to the caller's deadline.
    Timeouts are not retried.
    """
    error = None
    if primary is not None:
        try:
            if timeout:
                value = await asyncio.wait_for(primary(), timeout)
            else:
                value = await primary()
            return Outcome(name, value, Strategy.PRIMARY)
        except asyncio.CancelledError:
            raise
        except asyncio.TimeoutError:
            error = f"primary timed out after {timeout}s"
            logger.warning(f"[{name}] {error}, using fallback")
        except Exception as e:
            error = f"{type(e).__name__}: {e}"
            logger.warning(f"[{name}] primary failed ({error}), using fallback")
    value = await asyncio.to_thread(fallback)
    return Outcome(name, value, Strategy.FALLBACK, error)


class Analyzer:
    """Base class for one analysis capability.

    Subclasses set ``name``, implement ``fallback`` and, when an external
    implementation exists, ``primary``. ``default`` is the static value the
    orchestrator substitutes when the whole task fails or misses its deadline;
    it must be cheap, so override it wherever ``fallback`` does real work.
    """

    name: str = ""
    heavy: bool = False         # heavy analyzers get the longer deadline
    has_primary: bool = False

    def __init__(self, llm=None, primary_timeout: Optional[float] = None):
        self.llm = llm
        self.primary_timeout = primary_timeout

    async def primary(self, text: str) -> Any:
        raise NotImplementedError

    def fallback(self, text: str) -> Any:
        raise NotImplementedError

    def default(self, text: str) -> Any:
        return self.fallback(text)

    def primary_available(self) -> bool:
        return self.has_primary and self.llm is not None and getattr(self.llm, "enabled", True)

    async def run(self, text: str) -> Outcome:
        primary = (lambda: self.primary(text)) if self.primary_available() else None
        return await attempt_with_fallback(
            primary,
            lambda: self.fallback(text),
            name=self.name,
            timeout=self.primary_timeout,
        )


@dataclass
class SettleTask:
    name: str
    run: Callable[[], Awaitable[Any]]
    timeout: float
    default: Callable[[], Any] = field(default=lambda: None)


async def _settle_one(task: SettleTask) -> Outcome:
    try:
        result = await asyncio.wait_for(task.run(), task.timeout)
    except asyncio.CancelledError:
        raise
    except asyncio.TimeoutError:
        logger.warning(f"[{task.name}] timed out after {task.timeout}s, using static default")
        return Outcome(task.name, task.default(), Strategy.DEFAULT, f"timed out after {task.timeout}s")
    except Exception as e:
        logger.warning(f"[{task.name}] failed ({type(e).__name__}: {e}), using static default")
        return Outcome(task.name, task.default(), Strategy.DEFAULT, f"{type(e).__name__}: {e}")

    if isinstance(result, Outcome):
        return result
    return Outcome(task.name, result, Strategy.PRIMARY)


async def settle_all(tasks: Sequence[SettleTask]) -> List[Outcome]:
    """Run every task concurrently; each one settles to a value or its default.

    The batch finishes when the slowest task finishes or hits its own
    deadline, so total latency is bounded by the largest single timeout.
    Results keep the order of ``tasks``.
    """
    return list(await asyncio.gather(*(_settle_one(t) for t in tasks)))
