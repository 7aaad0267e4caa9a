"""Genre classifier (local strategy only).

Each genre has a keyword pattern and a weight; a genre scores
``matches * weight``. The top scorer is the primary genre and the next two
non-zero scorers are sub-genres.
"""
import re
from typing import Any, Dict

from services.fallback import Analyzer

_GENRE_PATTERNS = [
    ("Fiction - Fantasy",         re.compile(r'\b(magic|wizard|spell|dragon|elf|elves|enchant)\b', re.IGNORECASE), 2.0),
    ("Fiction - Science Fiction", re.compile(r'\b(space|planet|alien|future|technology|robot)\b', re.IGNORECASE), 2.0),
    ("Fiction - Mystery",         re.compile(r'\b(detective|mystery|clue|suspect|investigate|murder)\b', re.IGNORECASE), 2.0),
    ("Fiction - Adventure",       re.compile(r'\b(adventure|journey|discover|explore|quest|mission)\b', re.IGNORECASE), 1.5),
    ("Non-Fiction - Essay",       re.compile(r'\b(argue|point|thesis|therefore|however|conclude)\b', re.IGNORECASE), 1.5),
    ("Poetry",                    re.compile(r'\b(verse|rhyme|poet|stanza|rhythm|meter|sonnet)\b', re.IGNORECASE), 3.0),
]

DEFAULT_GENRE = "Fiction"


def genre_scores(text: str) -> Dict[str, float]:
    return {genre: len(pattern.findall(text)) * weight for genre, pattern, weight in _GENRE_PATTERNS}


def identify_genre(text: str) -> Dict[str, Any]:
    # sorted() is stable, so ties keep declaration order
    ranked = sorted(genre_scores(text).items(), key=lambda kv: kv[1], reverse=True)
    top_genre, top_score = ranked[0]
    if top_score <= 0:
        return {"primaryGenre": DEFAULT_GENRE, "subGenres": [], "confidence": 0.0}

    return {
        "primaryGenre": top_genre,
        "subGenres": [genre for genre, score in ranked[1:3] if score > 0],
        "confidence": 0.7,
    }


class GenreClassifier(Analyzer):
    name = "genre"

    def fallback(self, text: str) -> Dict[str, Any]:
        return identify_genre(text)

    def default(self, text: str) -> Dict[str, Any]:
        return {"primaryGenre": DEFAULT_GENRE, "subGenres": [], "confidence": 0.0}
