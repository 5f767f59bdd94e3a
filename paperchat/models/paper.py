from pydantic import BaseModel

class Paragraph(BaseModel):
    text: str | None = None
    page: int | None = None

class Section(BaseModel):
    title: str | None = None
    section_type: str | None = None           # "introduction" | "methods" | "results" | ...
    label: str | None = None                  # "1.1", "A.1"
    page_start: int | None = None
    page_end: int | None = None
    paragraphs: list[Paragraph] = []

class Figure(BaseModel):
    label: str | None = None
    caption: str | None = None
    page: int | None = None
    ocr_text: str | None = None

class Table(BaseModel):
    label: str | None = None
    caption: str | None = None
    headers: list[str] | None = None
    rows: list[list[str]] | None = None
    page: int | None = None

class Equation(BaseModel):
    equation_id: str | None = None
    label: str | None = None
    latex: str | None = None
    page: int | None = None

class CodeBlock(BaseModel):
    language: str | None = None
    code: str | None = None
    page: int | None = None

class Reference(BaseModel):
    reference_id: str | None = None
    title: str | None = None
    authors: list[str] | None = None
    venue: str | None = None
    year: int | None = None
    doi: str | None = None
    url: str | None = None

class Author(BaseModel):
    name: str
    affiliation: str | None = None

class PaperExtraction(BaseModel):
    title: str | None = None
    abstract: str | None = None
    page_count: int | None = None
    sections: list[Section] = []
    figures: list[Figure] = []
    tables: list[Table] = []
    equations: list[Equation] = []
    code_blocks: list[CodeBlock] = []
    references: list[Reference] = []
    authors: list[Author] = []

class Paper(BaseModel):
    paper_id: str
    title: str | None = None
    is_extracted: bool = False
    extraction: PaperExtraction | None = None
