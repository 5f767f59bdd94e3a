import re
import logging
from typing import List

from paperchat.models import chunk as cat
from paperchat.models.chunk import ContentChunk

logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s+")


def normalise(content: str) -> str:
    return _WHITESPACE.sub(" ", content.lower()).strip()


def unique(values) -> list:
    """Drops repeats, keeping first-seen order."""
    seen = []
    for v in values:
        if v not in seen:
            seen.append(v)
    return seen


class Ranker:
    """
    Deduplicates, orders and budgets candidate chunks.
    The selected-text chunk always leads; everything else is by descending score.
    """

    @staticmethod
    def deduplicate(chunks: List[ContentChunk]) -> List[ContentChunk]:
        """Keeps the first chunk for each normalised body."""
        seen = set()
        kept = []
        for chunk in chunks:
            key = normalise(chunk.content)
            if key in seen:
                continue
            seen.add(key)
            kept.append(chunk)
        return kept

    @staticmethod
    def order(chunks: List[ContentChunk]) -> List[ContentChunk]:
        selected = [c for c in chunks if c.category == cat.SELECTED_TEXT]
        rest = [c for c in chunks if c.category != cat.SELECTED_TEXT]
        # sorted() is stable, so ties keep retrieval order
        rest = sorted(rest, key=lambda c: c.relevance_score, reverse=True)
        return selected + rest

    def rank(self, chunks: List[ContentChunk], max_chunks: int) -> List[ContentChunk]:
        kept = self.deduplicate(chunks)
        ranked = self.order(kept)[:max(max_chunks, 0)]
        logger.debug(
            f"Ranked {len(chunks)} candidates -> {len(kept)} unique -> {len(ranked)} kept (budget {max_chunks})"
        )
        return ranked
