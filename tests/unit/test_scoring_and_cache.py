from concurrent.futures import ThreadPoolExecutor

import pytest

from services.result_cache import ResultCache, fingerprint
from services.score_aggregator import (
    OVERALL_WEIGHTS,
    calculate_originality,
    calculate_overall_score,
    component_scores,
    originality_components,
    round_half_up,
)


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


# ── Scoring ──

def test_originality_example():
    parts = originality_components(20, 2, 70)
    assert parts["aiComponent"] == pytest.approx(32.0)
    assert parts["plagiarismComponent"] == pytest.approx(24.0)
    assert parts["uniquenessComponent"] == pytest.approx(21.0)
    assert calculate_originality(20, 2, 70) == 77


def test_originality_defaults_uniqueness():
    assert calculate_originality(20, 2) == calculate_originality(20, 2, 70)


def test_originality_is_clamped():
    assert calculate_originality(100, 100, 0) == 0
    assert calculate_originality(0, 0, 100) == 100


def test_overall_weights_sum_to_one():
    assert sum(OVERALL_WEIGHTS.values()) == pytest.approx(1.0)


def test_overall_score_all_perfect():
    assert calculate_overall_score({k: 100 for k in OVERALL_WEIGHTS}) == 100


def test_overall_score_missing_components_are_not_renormalised():
    scores = {k: 100 for k in OVERALL_WEIGHTS}
    scores["grammar"] = None
    del scores["tone"]
    assert calculate_overall_score(scores) == 80


def test_overall_score_empty():
    assert calculate_overall_score({}) == 0


def test_round_half_up():
    assert round_half_up(2.5) == 3
    assert round_half_up(76.5) == 77
    assert round_half_up(76.49) == 76


def test_component_scores_invert_ai_and_plagiarism():
    result = {
        "grammar": {"score": 91},
        "tone": {"appropriateness": 75},
        "structure": {"score": 90},
        "characters": {"score": 50},
        "logicalFlaws": {"score": 80},
        "tense": {"score": 90},
        "metrics": {"aiScore": 3, "plagiarismScore": 2, "originalityScore": 77},
    }
    scores = component_scores(result)
    assert scores["aiContent"] == 97
    assert scores["plagiarism"] == 98
    assert scores["logicalFlow"] == 80
    assert 0 <= calculate_overall_score(scores) <= 100


# ── Cache ──

def test_fingerprint_is_stable_and_distinct():
    assert fingerprint("abc") == fingerprint("abc")
    assert fingerprint("abc") != fingerprint("abd")


def test_cache_entry_expires_at_ttl():
    clock = FakeClock()
    cache = ResultCache(ttl_seconds=10, clock=clock)
    cache.put("k", "v")

    clock.now = 9.9
    assert cache.get("k") == "v"

    clock.now = 10.0
    assert cache.get("k") is None
    assert len(cache) == 0


def test_cache_put_overwrites_and_refreshes():
    clock = FakeClock()
    cache = ResultCache(ttl_seconds=10, clock=clock)
    cache.put("k", 1)
    clock.now = 8
    cache.put("k", 2)
    clock.now = 15
    assert cache.get("k") == 2


def test_cache_clear():
    cache = ResultCache(ttl_seconds=10)
    cache.put("a", 1)
    cache.clear()
    assert cache.get("a") is None


def test_cache_get_and_put_from_many_threads():
    cache = ResultCache(ttl_seconds=3600)
    keys = [fingerprint(f"text {i}") for i in range(50)]

    def worker(n):
        misses = 0
        for i, key in enumerate(keys):
            cache.put(key, i)
            value = cache.get(keys[(i + n) % len(keys)])
            if value is None:
                misses += 1
            else:
                assert value == (i + n) % len(keys)
        return misses

    with ThreadPoolExecutor(max_workers=8) as pool:
        list(pool.map(worker, range(8)))

    assert len(cache) == len(keys)
    assert [cache.get(k) for k in keys] == list(range(len(keys)))
