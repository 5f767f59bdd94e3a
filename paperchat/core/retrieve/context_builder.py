from typing import List

from paperchat.models import chunk as cat
from paperchat.models.chunk import ContentChunk, RankedContextBundle
from paperchat.models.chat import ContextMetadata
from paperchat.models.query import QueryAnalysis
from paperchat.core.retrieve.ranker import Ranker, unique

SECTION_CATEGORIES = frozenset({
    cat.ABSTRACT, cat.INTRODUCTION, cat.METHODOLOGY, cat.TECHNICAL,
    cat.RESULTS, cat.EXPERIMENTS, cat.CONCLUSION, cat.SPECIFIC_PAGE,
})
FIGURE_CATEGORIES = frozenset({cat.FIGURE, cat.SPECIFIC_FIGURE})
TABLE_CATEGORIES = frozenset({cat.TABLE, cat.SPECIFIC_TABLE})

EMPTY_CONFIDENCE = 0.5


class ContextBuilder:
    """
    Turns retrieval candidates into the final context bundle and records
    which parts of the paper it was built from.
    """

    def __init__(self, ranker: Ranker | None = None):
        self.ranker = ranker or Ranker()

    def build(self, candidates: List[ContentChunk], analysis: QueryAnalysis) -> RankedContextBundle:
        max_chunks = analysis.context_requirements.max_chunks
        chunks = self.ranker.rank(candidates, max_chunks)
        return RankedContextBundle(
            chunks=chunks,
            pages_referenced=sorted({c.page_number for c in chunks if c.page_number is not None}),
            sources_used=unique(c.source for c in chunks),
            confidence_score=self.confidence(chunks),
            candidate_count=len(candidates),
            max_chunks=max_chunks,
        )

    @staticmethod
    def confidence(chunks: List[ContentChunk]) -> float:
        """Mean score plus a small bonus for breadth of evidence."""
        if not chunks:
            return EMPTY_CONFIDENCE
        mean = sum(c.relevance_score for c in chunks) / len(chunks)
        coverage_bonus = min(0.1 * len(chunks), 0.3)
        return min(1.0, mean + coverage_bonus)

    def metadata(self, bundle: RankedContextBundle, analysis: QueryAnalysis) -> ContextMetadata:
        chunks = bundle.chunks
        return ContextMetadata(
            sections_used=self._sources(chunks, SECTION_CATEGORIES),
            figures_referenced=self._sources(chunks, FIGURE_CATEGORIES),
            tables_referenced=self._sources(chunks, TABLE_CATEGORIES),
            equations_used=self._sources(chunks, {cat.EQUATION}),
            pages_referenced=bundle.pages_referenced,
            content_sources=bundle.sources_used,
            confidence_score=bundle.confidence_score,
            chunks_used=len(chunks),
            had_specific_references=analysis.specific_references.has_any,
            query_type=analysis.primary_type.value,
        )

    def _sources(self, chunks: List[ContentChunk], categories) -> List[str]:
        return unique(c.source for c in chunks if c.category in categories)
