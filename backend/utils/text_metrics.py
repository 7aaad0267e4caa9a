"""
Basic text metrics and splitting helpers used by the analyzers.

Word counting is plain whitespace tokenization; sentences are split on runs
of terminal punctuation and empty fragments dropped.
"""

import re
from typing import Dict, List

_RE_SENTENCE_BOUNDARY = re.compile(r'[.!?]+')
_RE_PARAGRAPH_BREAK   = re.compile(r'\n\s*\n')


def count_words(text: str) -> int:
    return len(text.split())


def split_sentences(text: str) -> List[str]:
    """Split on `.`, `!`, `?` sequences, keeping non-blank fragments."""
    return [s for s in _RE_SENTENCE_BOUNDARY.split(text) if s.strip()]


def split_paragraphs(text: str) -> List[str]:
    return _RE_PARAGRAPH_BREAK.split(text)


def basic_metrics(text: str) -> Dict[str, float]:
    """
    Return {wordCount, sentenceCount, avgWordsPerSentence}.

    Empty text reports zero sentences; the divisor is clamped to 1 so the
    average never divides by zero.
    """
    word_count = count_words(text)
    if word_count == 0:
        return {"wordCount": 0, "sentenceCount": 0, "avgWordsPerSentence": 0.0}

    sentence_count = max(1, len(split_sentences(text)))
    return {
        "wordCount": word_count,
        "sentenceCount": sentence_count,
        "avgWordsPerSentence": round(word_count / sentence_count, 2),
    }


def truncate(text: str, max_chars: int) -> str:
    """Bound text sent to an external service; fallbacks always get full text."""
    if max_chars <= 0 or len(text) <= max_chars:
        return text
    return text[:max_chars]
