import asyncio
import time

import pytest

from services.fallback import Strategy
from services.grammar_checker import GrammarChecker
from services.llm_client import LLMClient
from services.orchestrator import TextAnalysisOrchestrator, default_analyzers, neutral_result
from services.result_cache import ResultCache
from services.structure_analyzer import StructureAnalyzer
from services.tone_analyzer import ToneAnalyzer

RESULT_KEYS = {"basicMetrics", "grammar", "tone", "characters", "structure", "logicalFlaws", "tense", "metrics"}


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


class CountingGrammar(GrammarChecker):
    def __init__(self):
        super().__init__()
        self.calls = 0

    def fallback(self, text):
        self.calls += 1
        return super().fallback(text)


class SleepyTone(ToneAnalyzer):
    def fallback(self, text):
        time.sleep(1.0)
        return super().fallback(text)


class SleepyStructure(StructureAnalyzer):
    def fallback(self, text):
        time.sleep(1.0)
        return super().fallback(text)


def _offline_analyzers():
    return default_analyzers(LLMClient(api_key=""))


def _broken(analyzer):
    async def run(text):
        raise RuntimeError(f"{analyzer.name} exploded")

    analyzer.run = run
    return analyzer


def _slow(analyzer):
    async def run(text):
        await asyncio.sleep(1)

    analyzer.run = run
    return analyzer


@pytest.fixture
def make_orchestrator():
    def factory(analyzers=None, cache=None, **kwargs):
        return TextAnalysisOrchestrator(
            analyzers=analyzers if analyzers is not None else _offline_analyzers(),
            cache=cache if cache is not None else ResultCache(ttl_seconds=3600),
            **kwargs,
        )
    return factory


@pytest.mark.parametrize("text", ["", "   \n\t", None, 42])
async def test_empty_or_invalid_text_yields_neutral_result(make_orchestrator, text):
    result, report = await make_orchestrator().analyze_with_report(text, "empty")
    assert result == neutral_result()
    assert result["basicMetrics"]["wordCount"] == 0
    assert result["basicMetrics"]["sentenceCount"] == 0
    assert report.skipped


async def test_full_result_shape(make_orchestrator, story):
    result, report = await make_orchestrator().analyze_with_report(story, "Lighthouse")
    assert set(result) == RESULT_KEYS
    metrics = result["metrics"]
    assert metrics["aiScore"] == 3
    assert metrics["plagiarismScore"] == 2
    assert metrics["originalityScore"] == calculate_expected_originality()
    assert isinstance(metrics["overallScore"], int)
    assert 0 <= metrics["overallScore"] <= 100
    for section in ("grammar", "characters", "structure", "logicalFlaws", "tense"):
        assert 0 <= result[section]["score"] <= 100
    assert 0 <= result["tone"]["appropriateness"] <= 100
    assert result["basicMetrics"]["wordCount"] > 0


def calculate_expected_originality():
    # aiScore 3, plagiarism 2, uniqueness 70: 38.8 + 24 + 21
    return 84


async def test_offline_run_is_degraded(make_orchestrator, story):
    _, report = await make_orchestrator().analyze_with_report(story)
    assert set(report.external) == {"grammar", "characters", "aiContent"}
    assert all(report.strategies[name] == Strategy.FALLBACK.value for name in report.external)
    assert report.degraded
    assert "fallback used for" in report.summary()


async def test_cache_hit_does_not_rerun_analyzers(make_orchestrator, story):
    grammar = CountingGrammar()
    analyzers = [grammar] + [a for a in _offline_analyzers() if a.name != "grammar"]
    orchestrator = make_orchestrator(analyzers=analyzers)

    first, _ = await orchestrator.analyze_with_report(story)
    second, report = await orchestrator.analyze_with_report(story)

    assert grammar.calls == 1
    assert report.cached
    assert first == second


async def test_cached_result_is_not_shared(make_orchestrator, story):
    orchestrator = make_orchestrator()
    first = await orchestrator.analyze(story)
    first["metrics"]["overallScore"] = -1
    second = await orchestrator.analyze(story)
    assert second["metrics"]["overallScore"] != -1


async def test_expired_entry_is_recomputed(make_orchestrator, story):
    clock = FakeClock()
    grammar = CountingGrammar()
    analyzers = [grammar] + [a for a in _offline_analyzers() if a.name != "grammar"]
    orchestrator = make_orchestrator(analyzers=analyzers, cache=ResultCache(ttl_seconds=60, clock=clock))

    await orchestrator.analyze(story)
    clock.now = 59
    await orchestrator.analyze(story)
    assert grammar.calls == 1

    clock.now = 60
    await orchestrator.analyze(story)
    assert grammar.calls == 2


async def test_every_analyzer_failing_still_gives_complete_result(make_orchestrator, story):
    analyzers = [_broken(a) for a in _offline_analyzers()]
    result, report = await make_orchestrator(analyzers=analyzers).analyze_with_report(story)

    assert set(result) == RESULT_KEYS
    assert all(s == Strategy.DEFAULT.value for s in report.strategies.values())
    assert report.degraded
    assert result["tone"]["classification"] == "Neutral"
    assert result["structure"]["beginning"] == "Not analyzed"
    assert result["tense"]["primary"] == "Mixed"
    assert result["metrics"]["genre"] == "Fiction"
    assert 0 <= result["metrics"]["overallScore"] <= 100


async def test_slow_analyzer_times_out_to_default(make_orchestrator, story):
    analyzers = _offline_analyzers()
    analyzers[1] = _slow(analyzers[1])  # tone
    orchestrator = make_orchestrator(analyzers=analyzers, heavy_timeout=0.05, light_timeout=0.05)

    result, report = await orchestrator.analyze_with_report(story)
    assert report.strategies["tone"] == Strategy.DEFAULT.value
    assert result["tone"]["appropriateness"] == 70


async def test_broken_default_returns_neutral_with_metrics(make_orchestrator, story):
    analyzers = _offline_analyzers()
    grammar = _broken(analyzers[0])
    grammar.default = lambda text: 1 / 0
    result, report = await make_orchestrator(analyzers=analyzers).analyze_with_report(story)
    assert report.skipped
    assert result["basicMetrics"]["wordCount"] > 0
    assert result["metrics"]["overallScore"] == 0


async def test_blocking_local_strategy_hits_its_deadline(make_orchestrator, story):
    analyzers = [
        SleepyTone() if a.name == "tone" else SleepyStructure() if a.name == "structure" else a
        for a in _offline_analyzers()
    ]
    orchestrator = make_orchestrator(analyzers=analyzers, heavy_timeout=0.2, light_timeout=0.2)

    started = time.monotonic()
    result, report = await orchestrator.analyze_with_report(story)
    elapsed = time.monotonic() - started

    assert elapsed < 0.8
    assert report.strategies["tone"] == Strategy.DEFAULT.value
    assert report.strategies["structure"] == Strategy.DEFAULT.value
    assert report.strategies["tense"] == Strategy.FALLBACK.value
    assert result["tone"]["appropriateness"] == 70
    assert result["structure"]["beginning"] == "Not analyzed"
    assert report.degraded
