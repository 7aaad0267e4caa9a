"""Verb tense analyzer (local strategy only)."""
import re
from typing import Any, Dict

from services.fallback import Analyzer
from utils.text_metrics import split_sentences

_RE_PAST    = re.compile(r'\b(was|were|had|did|said|went|came|saw|took|made)\b', re.IGNORECASE)
_RE_PRESENT = re.compile(r'\b(is|are|am|has|have|do|does|say|go|come|see)\b', re.IGNORECASE)

# One tense must outnumber the other by this factor to be called primary.
_DOMINANCE = 1.5

MIXED_TENSE = {"primary": "Mixed", "inconsistencies": [], "score": 90}


def analyze_tense(text: str) -> Dict[str, Any]:
    past = present = 0
    for sentence in split_sentences(text):
        if _RE_PAST.search(sentence):
            past += 1
        if _RE_PRESENT.search(sentence):
            present += 1

    primary = "Mixed"
    if past > present and past >= present * _DOMINANCE:
        primary = "Past tense"
    elif present > past and present >= past * _DOMINANCE:
        primary = "Present tense"

    return {"primary": primary, "inconsistencies": [], "score": 90}


class TenseAnalyzer(Analyzer):
    name = "tense"

    def fallback(self, text: str) -> Dict[str, Any]:
        return analyze_tense(text)

    def default(self, text: str) -> Dict[str, Any]:
        return dict(MIXED_TENSE, inconsistencies=[])
