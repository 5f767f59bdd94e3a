from enum import Enum
from pydantic import BaseModel, ConfigDict

class QueryType(str, Enum):
    SUMMARY = "SUMMARY"
    METHODOLOGY = "METHODOLOGY"
    RESULTS = "RESULTS"
    TECHNICAL_DETAILS = "TECHNICAL_DETAILS"
    COMPARISON = "COMPARISON"
    SPECIFIC_REFERENCE = "SPECIFIC_REFERENCE"
    CONCEPTUAL = "CONCEPTUAL"
    GENERAL = "GENERAL"

class ResponseFormat(str, Enum):
    STRUCTURED = "STRUCTURED"
    STEP_BY_STEP = "STEP_BY_STEP"
    DATA_FOCUSED = "DATA_FOCUSED"
    DETAILED = "DETAILED"
    COMPARATIVE = "COMPARATIVE"
    COMPREHENSIVE = "COMPREHENSIVE"

class ContextualDepth(str, Enum):
    SHALLOW = "SHALLOW"
    MODERATE = "MODERATE"
    COMPREHENSIVE = "COMPREHENSIVE"
    DEEP = "DEEP"

class DataRequirement(str, Enum):
    AUTHORS = "AUTHORS"
    TITLE = "TITLE"
    ABSTRACT = "ABSTRACT"
    INTRODUCTION = "INTRODUCTION"
    METHODOLOGY = "METHODOLOGY"
    RESULTS = "RESULTS"
    CONCLUSION = "CONCLUSION"
    REFERENCES = "REFERENCES"
    FIGURES = "FIGURES"
    TABLES = "TABLES"
    EQUATIONS = "EQUATIONS"
    ALGORITHMS = "ALGORITHMS"
    EXPERIMENTAL_SETUP = "EXPERIMENTAL_SETUP"
    FULL_PAPER_CONTENT = "FULL_PAPER_CONTENT"
    ALL_SECTIONS = "ALL_SECTIONS"

class ContentPriority(BaseModel):
    """Advisory per-category weights in [0, 1]; they are multipliers and need not sum to 1."""
    model_config = ConfigDict(frozen=True)

    abstract: float = 0.0
    introduction: float = 0.0
    methodology: float = 0.0
    results: float = 0.0
    conclusion: float = 0.0
    technical: float = 0.0
    figures: float = 0.0
    tables: float = 0.0
    equations: float = 0.0
    references: float = 0.0
    experiments: float = 0.0
    code: float = 0.0
    specific_ref: float = 0.0
    contextual: float = 0.0

class SpecificReferences(BaseModel):
    figures: list[int] = []
    tables: list[int] = []
    equations: list[int] = []
    pages: list[int] = []
    sections: list[str] = []                 # keywords ("results") or numbers ("3.2")

    @property
    def has_any(self) -> bool:
        return bool(self.figures or self.tables or self.equations or self.pages or self.sections)

class PromptStrategy(BaseModel):
    model_config = ConfigDict(frozen=True)

    temperature: float
    max_tokens: int
    system_prompt: str
    response_format: ResponseFormat
    include_source_citations: bool = True
    structured_response: bool = False
    emphasize_accuracy: bool = False
    contextual_depth: ContextualDepth = ContextualDepth.COMPREHENSIVE

class ContextRequirements(BaseModel):
    model_config = ConfigDict(frozen=True)

    content_priority: ContentPriority
    max_chunks: int
    include_references: bool = False
    include_author_info: bool = False
    prioritize_recent: bool = False
    requires_deep_analysis: bool = False
    needs_selection_context: bool = False

class QueryAnalysis(BaseModel):
    model_config = ConfigDict(frozen=True)

    primary_type: QueryType
    secondary_types: tuple[QueryType, ...] = ()   # every matched type, taxonomy order
    specific_references: SpecificReferences = SpecificReferences()
    complexity_score: float = 0.0
    prompt_strategy: PromptStrategy
    context_requirements: ContextRequirements
    data_requirements: tuple[DataRequirement, ...] = ()
