import re
from typing import Optional, Set

STOP_WORDS = frozenset({
    "the", "a", "an", "and", "or", "but", "in", "on", "at", "to", "for", "of", "with", "by",
    "is", "are", "was", "were", "what", "how", "why", "when", "where", "who", "which", "can",
    "could", "would", "should", "this", "that", "these", "those", "does", "did", "about",
})

_WORD_SPLIT = re.compile(r"\W+")
_SENTENCE_SPLIT = re.compile(r"[.!?]")

MAX_RAW_SCORE = 10.0


def extract_keywords(text: Optional[str]) -> Set[str]:
    """Lower-cased tokens longer than two characters, stop-words removed."""
    if not text:
        return set()
    return {
        word for word in _WORD_SPLIT.split(text.lower())
        if len(word) > 2 and word not in STOP_WORDS
    }


class RelevanceScorer:
    """
    Deterministic, order-independent scoring of a candidate chunk body:

        score = min(1, weight + 0.3 * overlap + boost / 10)

    ``overlap`` is the fraction of query keywords found in the body. ``boost``
    only applies when the user has a selection: 3 * shared-word ratio plus 2
    per verbatim sentence (>10 chars) of the selection, clamped to [0, 10].
    """

    OVERLAP_FACTOR = 0.3
    SIMILARITY_FACTOR = 3.0
    PHRASE_BONUS = 2.0
    MIN_PHRASE_LENGTH = 10

    def __init__(self, query: str, selected_text: Optional[str] = None):
        self.keywords = extract_keywords(query)
        self.selected_text = selected_text.strip().lower() if selected_text and selected_text.strip() else None
        self.selected_words = extract_keywords(self.selected_text)
        self.selected_phrases = [
            p.strip() for p in _SENTENCE_SPLIT.split(self.selected_text or "")
            if len(p.strip()) > self.MIN_PHRASE_LENGTH
        ]

    def textual_overlap(self, content: str) -> float:
        if not self.keywords or not content:
            return 0.0
        content_words = extract_keywords(content)
        matching = sum(1 for word in self.keywords if word in content_words)
        return matching / len(self.keywords)

    def selection_boost(self, content: str) -> float:
        if not self.selected_text or not content:
            return 0.0
        content_lower = content.lower()
        boost = 0.0
        if self.selected_words:
            content_words = extract_keywords(content_lower)
            shared = sum(1 for word in self.selected_words if word in content_words)
            boost += self.SIMILARITY_FACTOR * shared / len(self.selected_words)
        for phrase in self.selected_phrases:
            if phrase in content_lower:
                boost += self.PHRASE_BONUS
        return max(0.0, min(boost, MAX_RAW_SCORE))

    def score(self, content: str, category_weight: float) -> float:
        if not content:
            return 0.0
        base = category_weight + self.OVERLAP_FACTOR * self.textual_overlap(content)
        boosted = base + self.selection_boost(content) / MAX_RAW_SCORE
        return max(0.0, min(1.0, boosted))
