"""Text analysis orchestrator.

Runs all analyzers concurrently, each under its own deadline, and merges
their outputs into one analysis result. ``analyze`` never raises: analyzer
faults become fallback or default values, and empty input yields a neutral
result.
"""
import copy
import logging
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional, Sequence, Tuple

from config import settings
from services.fallback import Analyzer, Outcome, SettleTask, Strategy, settle_all
from services.grammar_checker import GrammarChecker
from services.tone_analyzer import ToneAnalyzer
from services.character_analyzer import CharacterAnalyzer
from services.structure_analyzer import StructureAnalyzer
from services.tense_analyzer import TenseAnalyzer
from services.genre_classifier import GenreClassifier
from services.content_checks import AIContentDetector, PlagiarismChecker, LogicalFlawsChecker
from services.llm_client import LLMClient
from services.result_cache import ResultCache, analysis_cache, fingerprint
from services.score_aggregator import (
    calculate_originality,
    calculate_overall_score,
    component_scores,
)
from utils.text_metrics import basic_metrics

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AnalysisReport:
    """How each part of a result was produced."""

    strategies: Dict[str, str] = field(default_factory=dict)
    external: Tuple[str, ...] = ()     # analyzers that have a primary strategy
    cached: bool = False
    skipped: bool = False

    @property
    def degraded(self) -> bool:
        """True when the result leans mostly on fallback values."""
        if self.skipped:
            return True
        if any(s == Strategy.DEFAULT.value for s in self.strategies.values()):
            return True
        fell_back = sum(1 for name in self.external if self.strategies.get(name) != Strategy.PRIMARY.value)
        return bool(self.external) and fell_back * 2 > len(self.external)

    def summary(self) -> str:
        if self.skipped:
            return "analysis skipped, neutral values used"
        fell_back = [n for n in self.external if self.strategies.get(n) != Strategy.PRIMARY.value]
        defaults = [n for n, s in self.strategies.items() if s == Strategy.DEFAULT.value]
        parts = []
        if fell_back:
            parts.append(f"fallback used for {', '.join(fell_back)}")
        if defaults:
            parts.append(f"static defaults for {', '.join(defaults)}")
        return "; ".join(parts) or "all external analyzers succeeded"


def neutral_result() -> Dict[str, Any]:
    """Fully populated zero-valued result for text that cannot be analyzed."""
    return {
        "basicMetrics": {"wordCount": 0, "sentenceCount": 0, "avgWordsPerSentence": 0.0},
        "grammar": {"errors": [], "score": 0, "summary": "No text to analyze.", "correctedText": ""},
        "tone": {"classification": "Neutral", "confidence": 0.0, "sentiment": "Neutral", "appropriateness": 0},
        "characters": {"characters": [], "score": 0, "suggestions": ""},
        "structure": {"beginning": "", "middle": "", "end": "", "suggestions": "", "score": 0, "uniqueness": 0},
        "logicalFlaws": {"flaws": [], "questions": [], "score": 0},
        "tense": {"primary": "Mixed", "inconsistencies": [], "score": 0},
        "metrics": {
            "aiScore": 0,
            "plagiarismScore": 0,
            "originalityScore": 0,
            "genre": "Unknown",
            "subGenres": [],
            "overallScore": 0,
        },
    }


def default_analyzers(llm: Optional[LLMClient] = None) -> List[Analyzer]:
    llm = llm or LLMClient()
    primary_timeout = settings.LLM_TIMEOUT_SECONDS
    return [
        GrammarChecker(llm, primary_timeout=primary_timeout),
        ToneAnalyzer(),
        CharacterAnalyzer(llm, primary_timeout=primary_timeout),
        StructureAnalyzer(),
        LogicalFlawsChecker(),
        TenseAnalyzer(),
        AIContentDetector(llm, primary_timeout=primary_timeout),
        PlagiarismChecker(),
        GenreClassifier(),
    ]


@dataclass
class _CachedAnalysis:
    result: Dict[str, Any]
    report: AnalysisReport


class TextAnalysisOrchestrator:
    def __init__(
        self,
        analyzers: Optional[Sequence[Analyzer]] = None,
        cache: Optional[ResultCache] = None,
        heavy_timeout: Optional[float] = None,
        light_timeout: Optional[float] = None,
    ):
        self.analyzers = list(analyzers) if analyzers is not None else default_analyzers()
        self.cache = cache if cache is not None else analysis_cache
        self.heavy_timeout = heavy_timeout or settings.ANALYZER_TIMEOUT_HEAVY_SECONDS
        self.light_timeout = light_timeout or settings.ANALYZER_TIMEOUT_LIGHT_SECONDS

    async def analyze(self, text: str, title: str = "") -> Dict[str, Any]:
        result, _ = await self.analyze_with_report(text, title)
        return result

    async def analyze_with_report(self, text: str, title: str = "") -> Tuple[Dict[str, Any], AnalysisReport]:
        if not isinstance(text, str) or not text.strip():
            logger.info(f"Empty text for '{title}', returning neutral analysis")
            return neutral_result(), AnalysisReport(skipped=True)

        key = fingerprint(text)
        cached = self.cache.get(key)
        if cached is not None:
            logger.info(f"Analysis cache hit for '{title}' ({key[:12]})")
            return copy.deepcopy(cached.result), replace(cached.report, cached=True)

        try:
            result, report = await self._compute(text)
        except Exception as e:
            # Only a broken static default can get here; keep the contract.
            logger.error(f"Analysis of '{title}' failed unexpectedly: {e}", exc_info=True)
            result = neutral_result()
            result["basicMetrics"] = basic_metrics(text)
            return result, AnalysisReport(skipped=True)

        self.cache.put(key, _CachedAnalysis(copy.deepcopy(result), report))
        logger.info(
            f"Analysis of '{title}' finished: overall={result['metrics']['overallScore']} "
            f"({report.summary()})"
        )
        return result, report

    def _timeout_for(self, analyzer: Analyzer) -> float:
        return self.heavy_timeout if analyzer.heavy else self.light_timeout

    async def _compute(self, text: str) -> Tuple[Dict[str, Any], AnalysisReport]:
        metrics = basic_metrics(text)

        tasks = [
            SettleTask(
                name=a.name,
                run=(lambda a=a: a.run(text)),
                timeout=self._timeout_for(a),
                default=(lambda a=a: a.default(text)),
            )
            for a in self.analyzers
        ]
        outcomes: List[Outcome] = await settle_all(tasks)
        by_name = {o.name: o.value for o in outcomes}

        structure = by_name.get("structure", {})
        ai = by_name.get("aiContent", {})
        ai_score = ai.get("score") if isinstance(ai, dict) else ai
        plagiarism_score = by_name.get("plagiarism")
        genre = by_name.get("genre", {})

        result: Dict[str, Any] = {
            "basicMetrics": metrics,
            "grammar": by_name.get("grammar", {}),
            "tone": by_name.get("tone", {}),
            "characters": by_name.get("characters", {}),
            "structure": structure,
            "logicalFlaws": by_name.get("logicalFlaws", {}),
            "tense": by_name.get("tense", {}),
            "metrics": {
                "aiScore": ai_score,
                "plagiarismScore": plagiarism_score,
                "originalityScore": None,
                "genre": genre.get("primaryGenre"),
                "subGenres": genre.get("subGenres") or [],
                "overallScore": None,
            },
        }
        if ai_score is not None and plagiarism_score is not None:
            result["metrics"]["originalityScore"] = calculate_originality(
                ai_score, plagiarism_score, structure.get("uniqueness")
            )
        result["metrics"]["overallScore"] = calculate_overall_score(component_scores(result))

        report = AnalysisReport(
            strategies={o.name: o.strategy.value for o in outcomes},
            external=tuple(a.name for a in self.analyzers if a.has_primary),
        )
        return result, report
