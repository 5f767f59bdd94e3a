from pydantic import BaseModel, ConfigDict

# Category tags carried by ContentChunk.category
SELECTED_TEXT = "selected_text"
ABSTRACT = "abstract"
INTRODUCTION = "introduction"
METHODOLOGY = "methodology"
TECHNICAL = "technical"
RESULTS = "results"
EXPERIMENTS = "experiments"
CONCLUSION = "conclusion"
FIGURE = "figure"
TABLE = "table"
EQUATION = "equation"
CODE = "code"
REFERENCE = "reference"
AUTHORS = "authors"
SPECIFIC_FIGURE = "specific_figure"
SPECIFIC_TABLE = "specific_table"
SPECIFIC_PAGE = "specific_page"

FORCED_CATEGORIES = frozenset({SELECTED_TEXT, SPECIFIC_FIGURE, SPECIFIC_TABLE, SPECIFIC_PAGE})

class ContentChunk(BaseModel):
    model_config = ConfigDict(frozen=True)

    content: str
    source: str                      # "Section: Results", "Figure 3 (Page 5)"
    category: str
    relevance_score: float
    page_number: int | None = None

class RankedContextBundle(BaseModel):
    chunks: list[ContentChunk]
    pages_referenced: list[int]
    sources_used: list[str]
    confidence_score: float
    candidate_count: int             # chunks produced before dedup/budget
    max_chunks: int
