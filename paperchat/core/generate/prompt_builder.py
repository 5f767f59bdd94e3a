import logging
from typing import List, Optional

from paperchat.models.paper import PaperExtraction
from paperchat.models.chunk import ContentChunk
from paperchat.models.chat import ChatMessage
from paperchat.models.query import QueryAnalysis, QueryType
from paperchat.core.retrieve.content_retriever import truncate
from paperchat.config.settings import settings

logger = logging.getLogger(__name__)

BASE_PERSONA = "You are an advanced research paper analysis expert."

TYPE_GUIDANCE = {
    QueryType.SUMMARY: (
        "Focus on providing a comprehensive yet concise summary. "
        "Include key contributions, methodology highlights, and main findings. "
        "Structure your response with clear sections."
    ),
    QueryType.METHODOLOGY: (
        "Provide detailed explanations of methods and procedures. "
        "Include step-by-step breakdowns where appropriate. "
        "Reference specific techniques and their rationale."
    ),
    QueryType.RESULTS: (
        "Focus on quantitative results, performance metrics, and outcomes. "
        "Include specific numbers, percentages, and comparisons. "
        "Explain the significance of the findings."
    ),
    QueryType.TECHNICAL_DETAILS: (
        "Provide in-depth technical explanations with precision. "
        "Include algorithms, formulas, and implementation details. "
        "Maintain technical accuracy throughout."
    ),
    QueryType.COMPARISON: (
        "Clearly identify similarities and differences. "
        "Provide balanced analysis of advantages and disadvantages. "
        "Use structured comparisons where helpful."
    ),
    QueryType.SPECIFIC_REFERENCE: (
        "Focus precisely on the referenced content. "
        "Provide detailed explanation of the specific element. "
        "Include relevant context where necessary."
    ),
    QueryType.CONCEPTUAL: (
        "Explain concepts clearly and build understanding progressively. "
        "Use analogies and examples where helpful. "
        "Define technical terms and provide context."
    ),
}
DEFAULT_GUIDANCE = (
    "Provide comprehensive, accurate, and well-structured analysis. "
    "Focus on relevance and clarity."
)

# Category order used to group the ranked chunks in the prompt
CATEGORY_ORDER = {
    QueryType.SUMMARY: ("selected_text", "abstract", "introduction", "conclusion", "results", "methodology"),
    QueryType.METHODOLOGY: ("selected_text", "methodology", "technical", "introduction", "experiments"),
    QueryType.RESULTS: ("selected_text", "results", "figure", "table", "experiments", "conclusion"),
    QueryType.TECHNICAL_DETAILS: ("selected_text", "technical", "equation", "code", "methodology", "figure"),
    QueryType.COMPARISON: ("selected_text", "results", "reference", "methodology", "conclusion"),
    QueryType.SPECIFIC_REFERENCE: ("selected_text", "specific_figure", "specific_table", "specific_page"),
}
DEFAULT_CATEGORY_ORDER = ("selected_text", "introduction", "methodology", "results", "conclusion")

WORD_RANGES = {
    QueryType.SUMMARY: "Aim for a comprehensive but concise response (300-800 words).",
    QueryType.TECHNICAL_DETAILS: "Provide detailed technical explanation as needed (500-1500 words).",
    QueryType.SPECIFIC_REFERENCE: "Focus on precise, targeted response (200-600 words).",
}
DEFAULT_WORD_RANGE = "Provide thorough but focused response (400-1000 words)."


class PromptBuilder:
    """
    Assembles the single prompt string sent to the Generation Service.

    Sections, always in this order:
        1. system instructions     5. selected text (optional)
        2. paper context           6. user query + classifier metadata
        3. relevant content        7. response instructions
        4. conversation history (optional)
    """

    def __init__(self):
        self.config = settings.prompt

    def build(self,
              extraction: PaperExtraction,
              chunks: List[ContentChunk],
              history: List[ChatMessage],
              query: str,
              analysis: QueryAnalysis,
              selected_text: Optional[str] = None) -> str:
        sections = [
            self.system_instructions(analysis),
            self.paper_context(extraction, analysis.context_requirements.include_author_info),
            self.content_context(chunks, analysis.primary_type),
        ]
        recent = self.recent_history(history)
        if recent:
            sections.append(self.conversation_context(recent))
        if selected_text and selected_text.strip():
            sections.append(self.selected_text_context(selected_text))
        sections.append(self.query_context(query, analysis))
        sections.append(self.response_instructions(analysis))

        prompt = "\n\n".join(sections)
        logger.debug(f"Built prompt for {analysis.primary_type.value} ({len(prompt)} chars, {len(chunks)} chunks)")
        return prompt

    @staticmethod
    def system_instructions(analysis: QueryAnalysis) -> str:
        guidance = TYPE_GUIDANCE.get(analysis.primary_type, DEFAULT_GUIDANCE)
        return f"{BASE_PERSONA} {analysis.prompt_strategy.system_prompt}\n\n{guidance}"

    def paper_context(self, extraction: PaperExtraction, include_authors: bool) -> str:
        lines = ["=== PAPER CONTEXT ==="]
        if extraction.title:
            lines.append(f"Title: {extraction.title}")
        if include_authors and extraction.authors:
            lines.append("Authors: " + ", ".join(a.name for a in extraction.authors))
            affiliations = []
            for author in extraction.authors:
                if author.affiliation and author.affiliation.strip() and author.affiliation not in affiliations:
                    affiliations.append(author.affiliation)
            if affiliations:
                lines.append("Affiliations: " + "; ".join(affiliations))
        if extraction.abstract:
            lines.append("Abstract: " + truncate(extraction.abstract, self.config.abstract_preview))
        lines.append("Paper Structure:")
        lines.append(f"- Total Sections: {len(extraction.sections)}")
        lines.append(f"- Figures: {len(extraction.figures)}")
        lines.append(f"- Tables: {len(extraction.tables)}")
        lines.append(f"- Equations: {len(extraction.equations)}")
        lines.append(f"- References: {len(extraction.references)}")
        return "\n".join(lines)

    @staticmethod
    def category_order(query_type: QueryType, chunks: List[ContentChunk]) -> List[str]:
        """Preferred order for the type, then any other category in ranked order."""
        order = list(CATEGORY_ORDER.get(query_type, DEFAULT_CATEGORY_ORDER))
        for chunk in chunks:
            if chunk.category not in order:
                order.append(chunk.category)
        return order

    def content_context(self, chunks: List[ContentChunk], query_type: QueryType) -> str:
        lines = ["=== RELEVANT CONTENT ==="]
        for category in self.category_order(query_type, chunks):
            group = [c for c in chunks if c.category == category]
            if not group:
                continue
            lines.append("")
            lines.append(f"--- {category.upper()} CONTENT ---")
            for chunk in group:
                lines.append(f"Source: {chunk.source}")
                lines.append(f"Content: {chunk.content}")
                if chunk.page_number is not None:
                    lines.append(f"Page: {chunk.page_number}")
                lines.append(f"Relevance: {chunk.relevance_score:.2f}")
                lines.append("")
        return "\n".join(lines).rstrip()

    def recent_history(self, history: List[ChatMessage]) -> List[ChatMessage]:
        """Last N user/assistant pairs, oldest first."""
        if not history:
            return []
        ordered = sorted(history, key=lambda m: m.timestamp)
        keep = self.config.history_turns * 2
        return ordered[-keep:] if keep > 0 else []

    def conversation_context(self, history: List[ChatMessage]) -> str:
        lines = ["=== CONVERSATION HISTORY ==="]
        for message in history:
            lines.append(f"{message.role.value}: {truncate(message.content, self.config.history_message_preview)}")
        return "\n".join(lines)

    @staticmethod
    def selected_text_context(selected_text: str) -> str:
        return (
            "=== USER SELECTED TEXT ===\n"
            "The user has specifically selected this text for analysis:\n"
            f"\"{selected_text}\"\n"
            "Please pay special attention to this selected content in your response."
        )

    @staticmethod
    def query_context(query: str, analysis: QueryAnalysis) -> str:
        lines = [
            "=== USER QUERY ===",
            f"Query Type: {analysis.primary_type.value}",
            f"Complexity Score: {analysis.complexity_score:.2f}",
            f"User Question: {query}",
        ]
        facets = [t.value for t in analysis.secondary_types if t != analysis.primary_type]
        if facets:
            lines.append("Secondary Query Types: " + ", ".join(facets))
            lines.append("Note: This is a multi-faceted question. Address all relevant aspects.")

        refs = analysis.specific_references
        if refs.has_any:
            mentioned = []
            if refs.figures:
                mentioned.append(f"Figures {refs.figures}")
            if refs.tables:
                mentioned.append(f"Tables {refs.tables}")
            if refs.pages:
                mentioned.append(f"Pages {refs.pages}")
            if refs.equations:
                mentioned.append(f"Equations {refs.equations}")
            if refs.sections:
                mentioned.append(f"Sections {refs.sections}")
            lines.append("Specific References Mentioned: " + " ".join(mentioned))
        return "\n".join(lines)

    @staticmethod
    def response_instructions(analysis: QueryAnalysis) -> str:
        strategy = analysis.prompt_strategy
        lines = ["=== RESPONSE INSTRUCTIONS ===", f"Response Format: {strategy.response_format.value}"]
        if strategy.structured_response:
            lines.append("Use clear headings and bullet points for organization.")
        if strategy.emphasize_accuracy:
            lines.append("Prioritize factual accuracy over creativity.")
        if strategy.include_source_citations:
            lines.append("Include references to specific sections, figures, or pages when relevant.")
        lines.append(f"Contextual Depth: {strategy.contextual_depth.value}")
        lines.append(WORD_RANGES.get(analysis.primary_type, DEFAULT_WORD_RANGE))
        lines.append("")
        lines.append(
            "IMPORTANT: Base your response strictly on the provided paper content. "
            "If information is not available in the content, clearly state this limitation. "
            "Always maintain accuracy and avoid speculation beyond the paper's scope."
        )
        return "\n".join(lines)
