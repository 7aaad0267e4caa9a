"""Tone and sentiment analyzer (local strategy only).

Sentiment comes from the AFINN word list, normalised per token; tone class
from counts of formal vs casual lexical patterns.
"""
import re
import logging
from typing import Any, Dict

from services.fallback import Analyzer
from utils.text_metrics import count_words

logger = logging.getLogger(__name__)

_afinn = None


def _load_afinn():
    """Lazy-load the AFINN lexicon once."""
    global _afinn
    if _afinn is None:
        from afinn import Afinn
        _afinn = Afinn(language="en")
        logger.info("Loaded AFINN sentiment lexicon")
    return _afinn


_FORMAL_PATTERNS = [
    re.compile(r'\b(therefore|however|consequently|furthermore|moreover|thus|hence)\b', re.IGNORECASE),
    re.compile(r'\b(in accordance with|pursuant to|with regard to)\b', re.IGNORECASE),
]
_CASUAL_PATTERNS = [
    re.compile(r'\b(lol|omg|haha|yeah|cool|awesome|gonna|wanna)\b', re.IGNORECASE),
    re.compile(r'!{2,}'),
]

NEUTRAL_TONE = {
    "classification": "Neutral",
    "confidence": 0.5,
    "sentiment": "Neutral",
    "appropriateness": 70,
}


def sentiment_score(text: str) -> float:
    """AFINN total divided by word count (0.0 for empty text)."""
    words = count_words(text)
    if words == 0:
        return 0.0
    return _load_afinn().score(text) / words


def analyze_tone(text: str) -> Dict[str, Any]:
    score = sentiment_score(text)
    sentiment = "Neutral"
    if score > 0.2:
        sentiment = "Positive"
    elif score < -0.2:
        sentiment = "Negative"

    formal = sum(1 for p in _FORMAL_PATTERNS if p.search(text))
    casual = sum(1 for p in _CASUAL_PATTERNS if p.search(text))

    classification = "Neutral"
    if formal > casual:
        classification = "Formal"
    elif casual > formal:
        classification = "Casual"

    confidence = max(formal, casual) / (len(_FORMAL_PATTERNS) + len(_CASUAL_PATTERNS))
    appropriateness = 70 + confidence * 15 + (5 if score > 0 else 0)

    return {
        "classification": classification,
        "confidence": confidence,
        "sentiment": sentiment,
        "appropriateness": min(100, max(0, appropriateness)),
    }


class ToneAnalyzer(Analyzer):
    name = "tone"

    def fallback(self, text: str) -> Dict[str, Any]:
        return analyze_tone(text)

    def default(self, text: str) -> Dict[str, Any]:
        return dict(NEUTRAL_TONE)
