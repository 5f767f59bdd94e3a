import re
import logging
from typing import List, Optional

from paperchat.models.paper import PaperExtraction, Section, Figure, Table, Equation, CodeBlock, Reference
from paperchat.models.query import QueryAnalysis
from paperchat.models.chat import SelectionContext
from paperchat.models import chunk as cat
from paperchat.models.chunk import ContentChunk
from paperchat.core.retrieve.scorer import RelevanceScorer
from paperchat.core.retrieve.query_analyser import QueryAnalyser
from paperchat.config.settings import settings

logger = logging.getLogger(__name__)

METHODOLOGY_TITLE_KEYWORDS = ("method", "approach", "implementation", "design")
TECHNICAL_TITLE_KEYWORDS = ("algorithm", "framework", "architecture", "system")
AUTHOR_CHUNK_WEIGHT = 0.8

_NUMBER = re.compile(r"\d+")


class ContentRetriever:
    """
    Walks a PaperExtraction and emits one candidate ContentChunk per matched
    artifact. Candidates are unranked; selected-text and explicitly referenced
    artifacts come first so that deduplication keeps their forced 1.0 score.
    """

    def __init__(self):
        self.config = settings.retrieval

    def retrieve(self,
                 extraction: PaperExtraction,
                 query: str,
                 analysis: QueryAnalysis,
                 selected_text: Optional[str] = None,
                 selection_context: Optional[SelectionContext] = None) -> List[ContentChunk]:
        scorer = RelevanceScorer(query, selected_text)
        requirements = analysis.context_requirements
        weights = requirements.content_priority
        chunks: List[ContentChunk] = []

        # 1. Forced chunks
        if selected_text and selected_text.strip():
            chunks.append(self._selected_text_chunk(selected_text, selection_context))
        chunks.extend(self._specific_reference_chunks(extraction, analysis))

        # 2. Weight-gated chunks
        threshold = self.config.section_threshold
        if weights.abstract > threshold and extraction.abstract:
            chunks.append(ContentChunk(
                content=f"ABSTRACT: {extraction.abstract}",
                source="Paper Abstract",
                category=cat.ABSTRACT,
                relevance_score=scorer.score(extraction.abstract, weights.abstract),
                page_number=1,
            ))

        if weights.introduction > threshold:
            for section in extraction.sections:
                if self._is_type(section, "introduction"):
                    chunks.extend(self._section_chunk(section, cat.INTRODUCTION, weights.introduction, scorer))

        if weights.methodology > threshold or weights.technical > threshold:
            for section in extraction.sections:
                if self._is_methodology(section):
                    chunks.extend(self._section_chunk(section, cat.METHODOLOGY, weights.methodology, scorer))
                elif self._is_technical(section):
                    chunks.extend(self._section_chunk(section, cat.TECHNICAL, weights.technical, scorer))

        if weights.results > threshold or weights.experiments > threshold:
            for section in extraction.sections:
                if self._is_type(section, "result"):
                    chunks.extend(self._section_chunk(section, cat.RESULTS, weights.results, scorer))
                elif self._is_type(section, "experiment") or self._is_type(section, "evaluation"):
                    chunks.extend(self._section_chunk(section, cat.EXPERIMENTS, weights.experiments, scorer))

        if weights.conclusion > 0:
            for section in extraction.sections:
                if self._is_type(section, "conclusion"):
                    chunks.extend(self._section_chunk(section, cat.CONCLUSION, weights.conclusion, scorer))

        refs = analysis.specific_references
        for figure in extraction.figures:
            if weights.figures > self.config.visual_threshold or self._label_matches(figure.label, refs.figures):
                text = self._figure_text(figure)
                chunks.append(ContentChunk(
                    content=text,
                    source=f"{self._display_label(figure.label, 'Figure')} (Page {figure.page})",
                    category=cat.FIGURE,
                    relevance_score=scorer.score(text, weights.figures),
                    page_number=figure.page,
                ))

        for table in extraction.tables:
            if weights.tables > self.config.visual_threshold or self._label_matches(table.label, refs.tables):
                text = self._table_text(table)
                chunks.append(ContentChunk(
                    content=text,
                    source=f"{self._display_label(table.label, 'Table')} (Page {table.page})",
                    category=cat.TABLE,
                    relevance_score=scorer.score(text, weights.tables),
                    page_number=table.page,
                ))

        if weights.equations > self.config.equation_threshold or QueryAnalyser.has_math_keywords(query):
            for index, equation in enumerate(extraction.equations, 1):
                chunks.extend(self._equation_chunk(equation, index, weights.equations, scorer))

        if weights.code > self.config.code_threshold:
            for index, block in enumerate(extraction.code_blocks, 1):
                chunks.extend(self._code_chunk(block, index, weights.code, scorer))

        if requirements.include_references and weights.references > self.config.reference_threshold:
            # Only the first few references fit the context budget
            for index, reference in enumerate(extraction.references[:self.config.max_references], 1):
                chunks.extend(self._reference_chunk(reference, index, weights.references, scorer))

        if requirements.include_author_info and extraction.authors:
            author_info = ", ".join(
                f"{a.name} ({a.affiliation})" if a.affiliation else a.name
                for a in extraction.authors
            )
            chunks.append(ContentChunk(
                content=f"AUTHORS: {author_info}",
                source="Paper Authors",
                category=cat.AUTHORS,
                relevance_score=scorer.score(author_info, AUTHOR_CHUNK_WEIGHT),
            ))

        logger.debug(f"Retrieved {len(chunks)} candidate chunks for {analysis.primary_type.value}")
        return chunks

    # --- Forced chunks ----------------------------------------------------

    def _selected_text_chunk(self, selected_text: str,
                             selection_context: Optional[SelectionContext]) -> ContentChunk:
        page = selection_context.page_number if selection_context else None
        source = "User-selected text"
        if page is not None:
            source += f" (Page {page})"
        if selection_context and selection_context.section_title:
            source += f" - Section: {selection_context.section_title}"
        return ContentChunk(
            content=f"SELECTED TEXT CONTEXT: {selected_text}",
            source=source,
            category=cat.SELECTED_TEXT,
            relevance_score=1.0,
            page_number=page,
        )

    def _specific_reference_chunks(self, extraction: PaperExtraction,
                                   analysis: QueryAnalysis) -> List[ContentChunk]:
        refs = analysis.specific_references
        chunks = []

        for number in refs.figures:
            for figure in extraction.figures:
                if self._label_matches(figure.label, [number]):
                    chunks.append(ContentChunk(
                        content=self._figure_text(figure),
                        source=f"Specific {self._display_label(figure.label, 'Figure')}",
                        category=cat.SPECIFIC_FIGURE,
                        relevance_score=1.0,
                        page_number=figure.page,
                    ))

        for number in refs.tables:
            for table in extraction.tables:
                if self._label_matches(table.label, [number]):
                    chunks.append(ContentChunk(
                        content=self._table_text(table),
                        source=f"Specific {self._display_label(table.label, 'Table')}",
                        category=cat.SPECIFIC_TABLE,
                        relevance_score=1.0,
                        page_number=table.page,
                    ))

        for page in refs.pages:
            for section in extraction.sections:
                if not self._covers_page(section, page):
                    continue
                content = self.section_content(section)
                if content:
                    chunks.append(ContentChunk(
                        content=content,
                        source=f"Page {page} - Section: {section.title}",
                        category=cat.SPECIFIC_PAGE,
                        relevance_score=1.0,
                        page_number=page,
                    ))

        return chunks

    # --- Builders -----------------------------------------------------------

    @staticmethod
    def section_content(section: Section) -> str:
        """Paragraphs joined in order; the title stands in for an empty section."""
        texts = [p.text for p in section.paragraphs if p.text]
        if not texts:
            return section.title or ""
        return " ".join(texts)

    def _section_chunk(self, section: Section, category: str, weight: float,
                       scorer: RelevanceScorer) -> List[ContentChunk]:
        content = self.section_content(section)
        if not content:
            return []
        return [ContentChunk(
            content=content,
            source=f"Section: {section.title}",
            category=category,
            relevance_score=scorer.score(content, weight),
            page_number=section.page_start,
        )]

    def _equation_chunk(self, equation: Equation, index: int, weight: float,
                        scorer: RelevanceScorer) -> List[ContentChunk]:
        if not equation.latex and not equation.label:
            return []
        name = equation.label or equation.equation_id or str(index)
        text = f"Equation {name}"
        if equation.latex:
            text += f" LaTeX: {equation.latex}"
        return [ContentChunk(
            content=text,
            source=f"Equation {name} (Page {equation.page})",
            category=cat.EQUATION,
            relevance_score=scorer.score(text, weight),
            page_number=equation.page,
        )]

    def _code_chunk(self, block: CodeBlock, index: int, weight: float,
                    scorer: RelevanceScorer) -> List[ContentChunk]:
        if not block.code:
            return []
        language = block.language or "code"
        text = f"CODE ({language}):\n{block.code}"
        return [ContentChunk(
            content=text,
            source=f"Code Block {index} (Page {block.page})",
            category=cat.CODE,
            relevance_score=scorer.score(text, weight),
            page_number=block.page,
        )]

    def _reference_chunk(self, reference: Reference, index: int, weight: float,
                         scorer: RelevanceScorer) -> List[ContentChunk]:
        text = self._reference_text(reference)
        if not text:
            return []
        return [ContentChunk(
            content=text,
            source=f"Reference {reference.reference_id or index}",
            category=cat.REFERENCE,
            relevance_score=scorer.score(text, weight),
        )]

    def _figure_text(self, figure: Figure) -> str:
        text = f"{self._display_label(figure.label, 'Figure')}: {figure.caption or ''}".rstrip()
        if figure.ocr_text:
            text += f"\nOCR Text: {figure.ocr_text}"
        return text

    def _table_text(self, table: Table) -> str:
        text = f"{self._display_label(table.label, 'Table')}: {table.caption or ''}".rstrip()
        if table.headers:
            text += "\nHeaders: " + " | ".join(table.headers)
        if table.rows:
            data = "; ".join(" | ".join(row) for row in table.rows)
            text += "\nData: " + truncate(data, self.config.table_rows_preview)
        return text

    @staticmethod
    def _reference_text(reference: Reference) -> str:
        parts = []
        if reference.title:
            parts.append(reference.title)
        if reference.authors:
            parts.append("by " + ", ".join(reference.authors))
        if reference.venue:
            parts.append("in " + reference.venue)
        if reference.year:
            parts.append(f"({reference.year})")
        if reference.doi:
            parts.append(f"doi:{reference.doi}")
        elif reference.url:
            parts.append(reference.url)
        return " ".join(parts)

    # --- Predicates -------------------------------------------------------

    @staticmethod
    def _is_type(section: Section, keyword: str) -> bool:
        return bool(section.section_type) and keyword in section.section_type.lower()

    def _is_methodology(self, section: Section) -> bool:
        title = (section.title or "").lower()
        return (self._is_type(section, "method")
                or any(kw in title for kw in METHODOLOGY_TITLE_KEYWORDS))

    @staticmethod
    def _is_technical(section: Section) -> bool:
        title = (section.title or "").lower()
        section_type = (section.section_type or "").lower()
        return any(kw in title or kw in section_type for kw in TECHNICAL_TITLE_KEYWORDS)

    @staticmethod
    def _covers_page(section: Section, page: int) -> bool:
        if section.page_start is None:
            return False
        end = section.page_end if section.page_end is not None else section.page_start
        return section.page_start <= page <= end

    @staticmethod
    def _label_matches(label: Optional[str], numbers: List[int]) -> bool:
        if not label or not numbers:
            return False
        label_numbers = {int(n) for n in _NUMBER.findall(label)}
        return any(n in label_numbers for n in numbers)

    @staticmethod
    def _display_label(label: Optional[str], kind: str) -> str:
        if not label:
            return kind
        if label.lower().startswith(kind.lower()[:3]):
            return label
        return f"{kind} {label}"


def truncate(text: Optional[str], max_length: int) -> str:
    if not text:
        return ""
    return text if len(text) <= max_length else text[:max_length] + "..."
