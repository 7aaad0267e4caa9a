"""Story structure analyzer (local strategy only).

Paragraphs are split into beginning (first 20%), middle (next 60%) and end
(last 20%). Starting from 50, each satisfied check adds 10: a character cue
and a setting cue in the beginning, at least three middle paragraphs, and a
resolution keyword in the ending.
"""
import re
import logging
from typing import Any, Dict

from services.fallback import Analyzer
from utils.text_metrics import split_paragraphs

logger = logging.getLogger(__name__)

_RE_CHARACTER_CUE  = re.compile(r'\b([A-Z][a-z]+(?:\s[A-Z][a-z]+)?)\b')
_RE_SETTING_CUE    = re.compile(r'\b(at|in|on|near|around|inside|outside)\b')
_RE_RESOLUTION     = re.compile(
    r'\b(finally|eventually|in the end|ultimately|at last|concluded|resolved|finished|ended)\b',
    re.IGNORECASE,
)

# Placeholder until a real structural-similarity signal exists.
_DEFAULT_UNIQUENESS = 70

TOO_SHORT = {
    "beginning": "Too short to analyze properly",
    "middle": "Too short to analyze properly",
    "end": "Too short to analyze properly",
    "suggestions": "Try to write more paragraphs to create a fuller story structure",
    "score": 50,
    "uniqueness": 60,
}

NOT_ANALYZED = {
    "beginning": "Not analyzed",
    "middle": "Not analyzed",
    "end": "Not analyzed",
    "suggestions": "Try to have a clear beginning, middle, and end.",
    "score": 60,
    "uniqueness": 70,
}


def analyze_structure(text: str) -> Dict[str, Any]:
    paragraphs = split_paragraphs(text)
    total = len(paragraphs)
    if total < 3:
        return dict(TOO_SHORT)

    begin_cut = int(total * 0.2)
    end_cut = int(total * 0.8)
    beginning = "\n".join(paragraphs[:max(1, begin_cut)])
    middle_paragraphs = paragraphs[begin_cut:end_cut]
    ending = "\n".join(paragraphs[end_cut:])

    has_character = bool(_RE_CHARACTER_CUE.search(beginning))
    has_setting = bool(_RE_SETTING_CUE.search(beginning))
    has_resolution = bool(_RE_RESOLUTION.search(ending))

    if has_character and has_setting:
        beginning_quality = "Present and engaging"
    elif has_character or has_setting:
        beginning_quality = "Partially established"
    else:
        beginning_quality = "Needs improvement"

    score = 50
    for satisfied in (has_character, has_setting, len(middle_paragraphs) >= 3, has_resolution):
        if satisfied:
            score += 10

    suggestions = []
    if not has_character:
        suggestions.append("Introduce your main character(s) earlier")
    if not has_setting:
        suggestions.append("Establish the setting in your opening")
    if len(middle_paragraphs) < 2:
        suggestions.append("Develop your middle section more")
    if not has_resolution:
        suggestions.append("Add a stronger conclusion")

    return {
        "beginning": beginning_quality,
        "middle": "Well developed" if len(middle_paragraphs) >= 2 else "Could be expanded",
        "end": "Has resolution" if has_resolution else "Needs stronger conclusion",
        "suggestions": ". ".join(suggestions),
        "score": min(100, score),
        "uniqueness": _DEFAULT_UNIQUENESS,
    }


class StructureAnalyzer(Analyzer):
    name = "structure"

    def fallback(self, text: str) -> Dict[str, Any]:
        return analyze_structure(text)

    def default(self, text: str) -> Dict[str, Any]:
        return dict(NOT_ANALYZED)
