"""Composite scoring: originality and weighted overall score.

Pure functions, no I/O. Rounding is half-up to match the scores already
stored for existing submissions.
"""
import math
from typing import Dict, Mapping, Optional

import numpy as np

ORIGINALITY_WEIGHTS = {"ai": 0.4, "plagiarism": 0.3, "uniqueness": 0.3}

OVERALL_WEIGHTS = {
    "grammar": 0.10,
    "tone": 0.10,
    "structure": 0.15,
    "characters": 0.15,
    "logicalFlow": 0.10,
    "tense": 0.05,
    "aiContent": 0.15,
    "plagiarism": 0.10,
    "originality": 0.10,
}

DEFAULT_STRUCTURE_UNIQUENESS = 70


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def originality_components(ai_score: float, plagiarism_score: float,
                           structure_uniqueness: float) -> Dict[str, float]:
    return {
        "aiComponent": (100 - ai_score) * ORIGINALITY_WEIGHTS["ai"],
        "plagiarismComponent": (100 - plagiarism_score * 10) * ORIGINALITY_WEIGHTS["plagiarism"],
        "uniquenessComponent": structure_uniqueness * ORIGINALITY_WEIGHTS["uniqueness"],
    }


def calculate_originality(ai_score: float, plagiarism_score: float,
                          structure_uniqueness: Optional[float] = None) -> int:
    """Originality in [0, 100].

    The plagiarism score is scaled by 10, so a few percent of matched text
    already costs a lot of originality.
    """
    uniqueness = structure_uniqueness or DEFAULT_STRUCTURE_UNIQUENESS
    total = sum(originality_components(ai_score, plagiarism_score, uniqueness).values())
    return int(np.clip(round_half_up(total), 0, 100))


def calculate_overall_score(scores: Mapping[str, Optional[float]]) -> int:
    """Weighted sum over the known components.

    Missing or None components are left out of the sum and the remaining
    weights are not renormalised, so a gap lowers the score.
    """
    present = [k for k in OVERALL_WEIGHTS if scores.get(k) is not None]
    if not present:
        return 0
    weights = np.array([OVERALL_WEIGHTS[k] for k in present], dtype=np.float64)
    values = np.array([float(scores[k]) for k in present], dtype=np.float64)
    return int(np.clip(round_half_up(float(weights @ values)), 0, 100))


def component_scores(result: Mapping) -> Dict[str, Optional[float]]:
    """Pull the overall-score inputs out of an assembled analysis result."""
    metrics = result.get("metrics", {})
    ai = metrics.get("aiScore")
    plagiarism = metrics.get("plagiarismScore")
    return {
        "grammar": result.get("grammar", {}).get("score"),
        "tone": result.get("tone", {}).get("appropriateness"),
        "structure": result.get("structure", {}).get("score"),
        "characters": result.get("characters", {}).get("score"),
        "logicalFlow": result.get("logicalFlaws", {}).get("score"),
        "tense": result.get("tense", {}).get("score"),
        "aiContent": None if ai is None else 100 - ai,
        "plagiarism": None if plagiarism is None else 100 - plagiarism,
        "originality": metrics.get("originalityScore"),
    }
