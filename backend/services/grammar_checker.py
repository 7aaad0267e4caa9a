"""Grammar and proofreading analyzer.

Primary: holistic LLM review. Fallback: a small regex rule set where every
match costs 3 points from a starting score of 100.
"""
import re
import logging
from typing import Any, Dict, List

from core.exceptions import LLMError
from services.fallback import Analyzer

logger = logging.getLogger(__name__)

_PENALTY_PER_ERROR = 3

_CONTRACTIONS = {
    'dont': "don't", 'cant': "can't", 'wont': "won't", 'shouldnt': "shouldn't",
    'couldnt': "couldn't", 'wouldnt': "wouldn't", 'didnt': "didn't",
}

# (pattern, replacement for the match, explanation) applied in order
_RULES = [
    (re.compile(r'\bi\b'), lambda m: 'I',
     'The pronoun "I" should always be capitalized.'),
    (re.compile(r'\s+,'), lambda m: ',',
     'No space before comma.'),
    (re.compile(r'\s+\.'), lambda m: '.',
     'No space before period.'),
    (re.compile(r'\s{2,}'), lambda m: ' ',
     'Multiple spaces should be a single space.'),
    (re.compile(r'\b(am|is|are|was|were)\s+been\b'), lambda m: f'{m.group(1)} being',
     'Incorrect use of "been" in progressive tense.'),
    (re.compile(r'\b(dont|cant|wont|shouldnt|couldnt|wouldnt|didnt)\b'), lambda m: _CONTRACTIONS[m.group(1)],
     'Contractions need apostrophes.'),
]


def basic_grammar_check(text: str) -> Dict[str, Any]:
    """Regex grammar check; deterministic and local."""
    errors: List[Dict[str, str]] = []
    for pattern, fix, explanation in _RULES:
        for match in pattern.finditer(text):
            errors.append({
                "original": match.group(0),
                "correction": fix(match),
                "explanation": explanation,
            })

    corrected = text
    for pattern, fix, _ in _RULES:
        corrected = pattern.sub(fix, corrected)

    return {
        "errors": errors,
        "score": max(0, 100 - _PENALTY_PER_ERROR * len(errors)),
        "summary": "Grammar analysis completed using basic checks.",
        "correctedText": corrected,
    }


def _normalize_llm_grammar(data: Dict[str, Any], text: str) -> Dict[str, Any]:
    errors = data.get("errors")
    score = data.get("score")
    if not isinstance(errors, list) or not isinstance(score, (int, float)):
        raise LLMError("Grammar reply missing errors/score")

    cleaned = []
    for err in errors:
        if not isinstance(err, dict):
            continue
        cleaned.append({
            "original": str(err.get("original", "")),
            "correction": str(err.get("correction", "")),
            "explanation": str(err.get("explanation", "")),
        })
    return {
        "errors": cleaned,
        "score": min(100, max(0, round(score))),
        "summary": str(data.get("summary") or "Grammar analysis completed."),
        "correctedText": str(data.get("correctedText") or text),
    }


class GrammarChecker(Analyzer):
    name = "grammar"
    heavy = True
    has_primary = True

    async def primary(self, text: str) -> Dict[str, Any]:
        data = await self.llm.analyze_grammar(text)
        return _normalize_llm_grammar(data, text)

    def fallback(self, text: str) -> Dict[str, Any]:
        return basic_grammar_check(text)

    def default(self, text: str) -> Dict[str, Any]:
        # No score: the overall score leaves grammar out rather than guess.
        return {
            "errors": [],
            "score": None,
            "summary": "Grammar analysis unavailable.",
            "correctedText": text,
        }
