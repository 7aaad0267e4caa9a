"""Character analyzer.

Primary: LLM character extraction. Fallback: proper nouns followed by a
dialogue or action verb; names seen at least twice become characters and
the most-mentioned one is the protagonist.
"""
import re
import logging
from collections import Counter
from typing import Any, Dict, List

from core.exceptions import LLMError
from services.fallback import Analyzer

logger = logging.getLogger(__name__)

_RE_CHARACTER_MENTION = re.compile(
    r'\b([A-Z][a-z]+(?:\s[A-Z][a-z]+)?)\b'
    r'(?:\s+(?:said|asked|replied|spoke|thought|felt|walked|ran|jumped|looked))'
)

_MIN_MENTIONS = 2
_DEFAULT_SUGGESTIONS = "Try to develop your characters more by showing their unique traits and behaviors."


def basic_character_analysis(text: str) -> Dict[str, Any]:
    mentions = Counter(m.group(1) for m in _RE_CHARACTER_MENTION.finditer(text))
    most = max(mentions.values()) if mentions else 0

    characters: List[Dict[str, str]] = []
    for name, count in mentions.items():
        if count < _MIN_MENTIONS:
            continue
        characters.append({
            "name": name,
            "role": "Protagonist" if count == most else "Supporting",
            "traits": "Unknown",
            "consistency": "High" if count > 5 else "Medium",
        })

    total_mentions = sum(mentions.values())
    score = min(100, max(0, 40 + len(characters) * 10 + total_mentions / 2))
    return {
        "characters": characters,
        "score": score,
        "suggestions": _DEFAULT_SUGGESTIONS,
    }


def _normalize_llm_characters(data: Dict[str, Any]) -> Dict[str, Any]:
    characters = data.get("characters")
    score = data.get("score")
    if not isinstance(characters, list) or not isinstance(score, (int, float)):
        raise LLMError("Character reply missing characters/score")

    cleaned = []
    for c in characters:
        if not isinstance(c, dict) or not c.get("name"):
            continue
        traits = c.get("traits", "")
        if isinstance(traits, list):
            traits = ", ".join(str(t) for t in traits)
        cleaned.append({
            "name": str(c["name"]),
            "role": str(c.get("role") or "Supporting"),
            "traits": str(traits or "Unknown"),
            "consistency": str(c.get("consistency") or "Medium"),
        })
    return {
        "characters": cleaned,
        "score": min(100, max(0, score)),
        "suggestions": str(data.get("suggestions") or _DEFAULT_SUGGESTIONS),
    }


class CharacterAnalyzer(Analyzer):
    name = "characters"
    heavy = True
    has_primary = True

    async def primary(self, text: str) -> Dict[str, Any]:
        data = await self.llm.analyze_characters(text)
        return _normalize_llm_characters(data)

    def fallback(self, text: str) -> Dict[str, Any]:
        return basic_character_analysis(text)

    def default(self, text: str) -> Dict[str, Any]:
        return {"characters": [], "score": None, "suggestions": _DEFAULT_SUGGESTIONS}
