"""
Content priority model: which parts of a paper matter for which kind of question.

Two sources feed the same retrieval pipeline:
- the static per-QueryType table below (default), and
- a keyword-derived DataRequirement set (``priority_from_requirements``),
  selected with ``retrieval.priority_source: requirements``.
"""
from typing import Iterable, Set

from paperchat.models.query import QueryType, ContentPriority, DataRequirement
from paperchat.config.settings import settings

CONTENT_PRIORITIES: dict[QueryType, ContentPriority] = {
    QueryType.SUMMARY: ContentPriority(
        abstract=1.0, introduction=0.9, conclusion=0.9,
        results=0.7, methodology=0.5, technical=0.3,
    ),
    QueryType.METHODOLOGY: ContentPriority(
        methodology=1.0, technical=0.9, experiments=0.8,
        introduction=0.6, results=0.4, abstract=0.3,
    ),
    QueryType.RESULTS: ContentPriority(
        results=1.0, experiments=0.9, figures=0.8, tables=0.8,
        conclusion=0.7, methodology=0.5, introduction=0.3,
    ),
    QueryType.TECHNICAL_DETAILS: ContentPriority(
        technical=1.0, equations=0.9, code=0.9,
        methodology=0.7, figures=0.6, results=0.5,
    ),
    QueryType.COMPARISON: ContentPriority(
        results=1.0, references=0.9, conclusion=0.8,
        introduction=0.7, methodology=0.6, abstract=0.5,
    ),
    QueryType.SPECIFIC_REFERENCE: ContentPriority(
        specific_ref=1.0, contextual=0.8, figures=0.7, tables=0.7,
        equations=0.6, technical=0.5,
    ),
    QueryType.CONCEPTUAL: ContentPriority(
        introduction=1.0, abstract=0.9, technical=0.7,
        methodology=0.6, references=0.6, results=0.4,
    ),
}

CATEGORIES = tuple(ContentPriority.model_fields)


def priority_for(query_type: QueryType) -> ContentPriority:
    return CONTENT_PRIORITIES.get(query_type, ContentPriority())


def merge_priorities(primary: ContentPriority,
                     secondary: ContentPriority,
                     factor: float | None = None) -> ContentPriority:
    """
    Element-wise max(primary[c], secondary[c] * factor).
    A secondary type can only raise a weight, and only partially.
    """
    if factor is None:
        factor = settings.retrieval.secondary_merge_factor
    updates = {
        c: max(getattr(primary, c), getattr(secondary, c) * factor)
        for c in CATEGORIES
    }
    return primary.model_copy(update=updates)


def blended_priority(primary_type: QueryType, secondary_types: Iterable[QueryType]) -> ContentPriority:
    priority = priority_for(primary_type)
    for secondary in secondary_types:
        if secondary in CONTENT_PRIORITIES:
            priority = merge_priorities(priority, CONTENT_PRIORITIES[secondary])
    return priority


def max_chunks_for(primary_type: QueryType, extra_facets: int) -> int:
    """Chunk budget: base per type, +bonus per extra facet, hard-capped."""
    cfg = settings.retrieval
    base = cfg.base_max_chunks.get(primary_type.value, cfg.default_max_chunks)
    return min(base + extra_facets * cfg.secondary_chunk_bonus, cfg.max_chunks_cap)


# --- Requirements-driven source -------------------------------------------

_REQUIREMENT_KEYWORDS: tuple[tuple[DataRequirement, tuple[str, ...]], ...] = (
    (DataRequirement.AUTHORS, ("author", "researcher", "who wrote", "written by")),
    (DataRequirement.TITLE, ("title", "name")),
    (DataRequirement.ABSTRACT, ("abstract", "summary", "summarize", "overview")),
    (DataRequirement.INTRODUCTION, ("introduction", "motivation", "background")),
    (DataRequirement.METHODOLOGY, ("method", "approach")),
    (DataRequirement.RESULTS, ("result", "finding")),
    (DataRequirement.CONCLUSION, ("conclusion", "conclude", "future work")),
    (DataRequirement.REFERENCES, ("reference", "citation", "cited", "prior work")),
    (DataRequirement.FIGURES, ("figure", "fig.", "chart", "plot")),
    (DataRequirement.TABLES, ("table",)),
    (DataRequirement.EQUATIONS, ("equation", "formula")),
    (DataRequirement.ALGORITHMS, ("algorithm",)),
    (DataRequirement.EXPERIMENTAL_SETUP, ("experiment", "setup")),
    (DataRequirement.FULL_PAPER_CONTENT, ("entire paper", "whole paper", "full paper")),
    (DataRequirement.ALL_SECTIONS, ("all sections", "every section")),
)


def analyse_requirements(query: str) -> Set[DataRequirement]:
    """Keyword scan for the kinds of paper data a question needs."""
    q_lower = query.lower()
    requirements = {
        requirement
        for requirement, keywords in _REQUIREMENT_KEYWORDS
        if any(kw in q_lower for kw in keywords)
    }
    if not requirements:
        requirements = {DataRequirement.TITLE, DataRequirement.ABSTRACT}
    return requirements


def priority_from_requirements(requirements: Set[DataRequirement]) -> ContentPriority:
    def weight(required: bool, otherwise: float) -> float:
        return 1.0 if required else otherwise

    req = requirements
    everything = DataRequirement.FULL_PAPER_CONTENT in req or DataRequirement.ALL_SECTIONS in req
    return ContentPriority(
        abstract=weight(everything or DataRequirement.ABSTRACT in req, 0.3),
        introduction=weight(everything or DataRequirement.INTRODUCTION in req, 0.4),
        methodology=weight(everything or DataRequirement.METHODOLOGY in req, 0.3),
        results=weight(everything or DataRequirement.RESULTS in req, 0.3),
        conclusion=weight(everything or DataRequirement.CONCLUSION in req, 0.3),
        references=weight(DataRequirement.REFERENCES in req, 0.2),
        figures=weight(DataRequirement.FIGURES in req, 0.3),
        tables=weight(DataRequirement.TABLES in req, 0.3),
        equations=weight(DataRequirement.EQUATIONS in req, 0.2),
        technical=weight(
            DataRequirement.METHODOLOGY in req or DataRequirement.ALGORITHMS in req, 0.4
        ),
        experiments=weight(
            DataRequirement.EXPERIMENTAL_SETUP in req or DataRequirement.RESULTS in req, 0.3
        ),
    )


def ordered_requirements(requirements: Set[DataRequirement]) -> tuple[DataRequirement, ...]:
    return tuple(r for r in DataRequirement if r in requirements)
