"""Originality and consistency checks: AI-likelihood, plagiarism, logical flaws.

The plagiarism and logical-flaw analyzers are placeholders with constant
results; they sit behind the same Analyzer interface so a corpus-similarity
service or a consistency checker can be plugged in as their primary.
"""
import logging
from typing import Any, Dict

from core.exceptions import LLMError
from services.fallback import Analyzer

logger = logging.getLogger(__name__)

# Low estimates: without evidence a student is not flagged.
FALLBACK_AI_SCORE = 3
FALLBACK_PLAGIARISM_SCORE = 2


class AIContentDetector(Analyzer):
    name = "aiContent"
    heavy = True
    has_primary = True

    async def primary(self, text: str) -> Dict[str, Any]:
        data = await self.llm.detect_ai_content(text)
        score = data.get("score")
        if not isinstance(score, (int, float)) or isinstance(score, bool):
            raise LLMError("AI detection reply missing numeric score")
        confidence = data.get("confidence", 0.5)
        if not isinstance(confidence, (int, float)):
            confidence = 0.5
        return {
            "score": min(100, max(0, round(score))),
            "reasoning": str(data.get("reasoning") or ""),
            "confidence": min(1.0, max(0.0, float(confidence))),
        }

    def fallback(self, text: str) -> Dict[str, Any]:
        return {
            "score": FALLBACK_AI_SCORE,
            "reasoning": "AI detection service unavailable; conservative estimate used.",
            "confidence": 0.0,
        }


class PlagiarismChecker(Analyzer):
    name = "plagiarism"

    def fallback(self, text: str) -> int:
        # TODO: call a corpus-similarity service once one is provisioned
        return FALLBACK_PLAGIARISM_SCORE


class LogicalFlawsChecker(Analyzer):
    name = "logicalFlaws"

    def fallback(self, text: str) -> Dict[str, Any]:
        return {"flaws": [], "questions": [], "score": 80}
