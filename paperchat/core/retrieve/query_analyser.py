import re
import logging
from typing import List, Optional

from paperchat.models.query import (
    QueryType, QueryAnalysis, SpecificReferences, PromptStrategy, ContextRequirements,
    ResponseFormat, ContextualDepth,
)
from paperchat.core.retrieve import content_priority
from paperchat.core.retrieve.ranker import unique
from paperchat.config.settings import settings

logger = logging.getLogger(__name__)

# Checked in this order; the first type with a matching pattern is the primary type.
QUERY_PATTERNS: tuple[tuple[QueryType, tuple[str, ...]], ...] = (
    (QueryType.SUMMARY, (
        r"summarize|summarise|summary|overview|abstract|main\s+points?",
        r"what\s+is\s+this\s+paper\s+about|key\s+findings",
        r"tl;?dr|too\s+long\s+didn'?t\s+read",
    )),
    (QueryType.METHODOLOGY, (
        r"how\s+did\s+they|methodology|approach|method|technique",
        r"experimental\s+setup|procedure|implementation",
        r"algorithm|framework|system\s+design",
    )),
    (QueryType.RESULTS, (
        r"results?|findings?|outcomes?|performance",
        r"benchmarks?|evaluation|metrics|comparison",
        r"speed|latency|throughput|efficiency",
    )),
    (QueryType.TECHNICAL_DETAILS, (
        r"technical|implementation|code|algorithm",
        r"equation|formula|calculation|math",
        r"architecture|design|structure",
    )),
    (QueryType.COMPARISON, (
        r"compare|comparison|versus|vs\.|difference|similar",
        r"better|worse|advantage|disadvantage",
        r"baseline|state\s+of\s+(?:the\s+)?art|prior\s+work",
    )),
    (QueryType.SPECIFIC_REFERENCE, (
        r"(?:figure|fig\.?|table|equation|section|page)\s*\d+",
        r"references?|citations?|authors?",
        r"line|paragraph|mentioned",
    )),
    (QueryType.CONCEPTUAL, (
        r"explain|understand|concept|idea|theory",
        r"why|what\s+does|how\s+does|what\s+is",
        r"definition|meaning|purpose",
    )),
)

SECTION_KEYWORDS = (
    "introduction", "methodology", "results", "conclusion", "discussion", "references", "abstract",
)

TECHNICAL_TERMS = (
    "algorithm", "implementation", "performance", "optimization", "architecture",
    "framework", "methodology", "analysis", "evaluation",
)

AUTHOR_KEYWORDS = (
    "author", "researcher", "who wrote", "written by", "paper by",
)

MATH_KEYWORDS = ("equation", "formula", "math", "calculation")

TEMPERATURES = {
    QueryType.TECHNICAL_DETAILS: 0.1,
    QueryType.RESULTS: 0.1,
    QueryType.SPECIFIC_REFERENCE: 0.1,
    QueryType.METHODOLOGY: 0.2,
    QueryType.COMPARISON: 0.2,
    QueryType.SUMMARY: 0.3,
    QueryType.CONCEPTUAL: 0.3,
}

MAX_TOKENS = {
    QueryType.SUMMARY: 2000,
    QueryType.METHODOLOGY: 3500,
    QueryType.TECHNICAL_DETAILS: 3500,
    QueryType.RESULTS: 3000,
    QueryType.COMPARISON: 3000,
    QueryType.SPECIFIC_REFERENCE: 1500,
    QueryType.CONCEPTUAL: 2500,
}

SYSTEM_PROMPTS = {
    QueryType.SUMMARY: "You are a research paper summarization expert. Provide comprehensive yet concise summaries that capture key insights, methodology, and findings.",
    QueryType.METHODOLOGY: "You are a methodology analysis expert. Explain research methods, experimental procedures, and implementation details with technical accuracy.",
    QueryType.RESULTS: "You are a results interpretation expert. Analyze experimental results, performance metrics, and research findings with precision.",
    QueryType.TECHNICAL_DETAILS: "You are a technical analysis expert. Explain complex technical concepts, algorithms, and implementations with accuracy and clarity.",
    QueryType.COMPARISON: "You are a comparative analysis expert. Identify similarities, differences, advantages, and trade-offs between approaches or results.",
    QueryType.SPECIFIC_REFERENCE: "You are a document navigation expert. Provide precise information about specific references, figures, tables, or sections.",
    QueryType.CONCEPTUAL: "You are an educational expert. Explain concepts clearly with context, helping users understand underlying principles and ideas.",
    QueryType.GENERAL: "You are a research paper analysis expert. Provide comprehensive, accurate, and well-structured responses based on the paper content.",
}

RESPONSE_FORMATS = {
    QueryType.SUMMARY: ResponseFormat.STRUCTURED,
    QueryType.METHODOLOGY: ResponseFormat.STEP_BY_STEP,
    QueryType.RESULTS: ResponseFormat.DATA_FOCUSED,
    QueryType.TECHNICAL_DETAILS: ResponseFormat.DETAILED,
    QueryType.COMPARISON: ResponseFormat.COMPARATIVE,
}


class QueryAnalyser:
    """
    Classifies a question into the QueryType taxonomy and pulls out explicit
    structural references.
    Example: "What does Figure 3 show?" -> SPECIFIC_REFERENCE, figures=[3]
    """

    def __init__(self):
        self.patterns = [
            (query_type, [re.compile(p, re.IGNORECASE) for p in patterns])
            for query_type, patterns in QUERY_PATTERNS
        ]
        self.page_pattern = re.compile(r'\bpage\s*(\d+)', re.IGNORECASE)
        self.figure_pattern = re.compile(r'\b(?:figure|fig\.?)\s*(\d+)', re.IGNORECASE)
        self.table_pattern = re.compile(r'\btable\s*(\d+)', re.IGNORECASE)
        self.equation_pattern = re.compile(r'\b(?:equation|eq\.)\s*(\d+)', re.IGNORECASE)
        self.section_number_pattern = re.compile(r'\bsection\s+(\d+(?:\.\d+)*)', re.IGNORECASE)

    def analyse(self,
                query: str,
                selected_text: Optional[str] = None,
                has_selection_context: bool = False) -> QueryAnalysis:
        """
        Full classification of a question. Pure function of its inputs.
        """
        matched = self.matched_types(query)
        primary_type = matched[0] if matched else QueryType.GENERAL
        refs = self.extract_references(query)

        # Extra facets beyond the primary type widen the chunk budget.
        extra_facets = len([t for t in matched if t != primary_type])

        requirements = content_priority.analyse_requirements(query)
        if settings.retrieval.priority_source == "requirements":
            priority = content_priority.priority_from_requirements(requirements)
        else:
            priority = content_priority.blended_priority(primary_type, matched)

        q_lower = query.lower()
        context_reqs = ContextRequirements(
            content_priority=priority,
            max_chunks=content_priority.max_chunks_for(primary_type, extra_facets),
            include_references=QueryType.COMPARISON in matched,
            include_author_info=(
                primary_type == QueryType.SUMMARY
                or any(kw in q_lower for kw in AUTHOR_KEYWORDS)
            ),
            prioritize_recent=primary_type == QueryType.RESULTS,
            requires_deep_analysis=primary_type in (QueryType.TECHNICAL_DETAILS, QueryType.METHODOLOGY),
            needs_selection_context=has_selection_context,
        )

        has_selected_text = bool(selected_text and selected_text.strip())
        analysis = QueryAnalysis(
            primary_type=primary_type,
            secondary_types=tuple(matched),
            specific_references=refs,
            complexity_score=self.complexity_score(query, len(matched)),
            prompt_strategy=self.prompt_strategy(primary_type, has_selected_text),
            context_requirements=context_reqs,
            data_requirements=content_priority.ordered_requirements(requirements),
        )
        logger.debug(
            f"Classified query as {primary_type.value} "
            f"(secondary={[t.value for t in matched]}, max_chunks={context_reqs.max_chunks})"
        )
        return analysis

    def matched_types(self, query: str) -> List[QueryType]:
        """Every QueryType with at least one matching pattern, in table order."""
        return [
            query_type
            for query_type, patterns in self.patterns
            if any(p.search(query) for p in patterns)
        ]

    def extract_references(self, query: str) -> SpecificReferences:
        q_lower = query.lower()
        sections = unique(self.section_number_pattern.findall(query))
        sections += [kw for kw in SECTION_KEYWORDS if kw in q_lower]
        return SpecificReferences(
            figures=self._numbers(self.figure_pattern, query),
            tables=self._numbers(self.table_pattern, query),
            equations=self._numbers(self.equation_pattern, query),
            pages=self._numbers(self.page_pattern, query),
            sections=sections,
        )

    @staticmethod
    def complexity_score(query: str, matched_count: int) -> float:
        """Cheap proxy for how much retrieval depth a question needs."""
        q_lower = query.lower()
        term_count = sum(q_lower.count(term) for term in TECHNICAL_TERMS)
        return min(1.0, len(query) / 100.0 + 0.2 * matched_count + 0.1 * term_count)

    @staticmethod
    def prompt_strategy(query_type: QueryType, has_selected_text: bool) -> PromptStrategy:
        return PromptStrategy(
            temperature=TEMPERATURES.get(query_type, 0.25),
            max_tokens=MAX_TOKENS.get(query_type, 2500),
            system_prompt=SYSTEM_PROMPTS.get(query_type, SYSTEM_PROMPTS[QueryType.GENERAL]),
            response_format=RESPONSE_FORMATS.get(query_type, ResponseFormat.COMPREHENSIVE),
            include_source_citations=True,
            structured_response=query_type in (QueryType.SUMMARY, QueryType.COMPARISON),
            emphasize_accuracy=query_type in (QueryType.TECHNICAL_DETAILS, QueryType.RESULTS),
            contextual_depth=ContextualDepth.DEEP if has_selected_text else ContextualDepth.COMPREHENSIVE,
        )

    @staticmethod
    def has_math_keywords(query: str) -> bool:
        q_lower = query.lower()
        return any(kw in q_lower for kw in MATH_KEYWORDS)

    @staticmethod
    def _numbers(pattern: re.Pattern, text: str) -> List[int]:
        return unique(int(n) for n in pattern.findall(text))
