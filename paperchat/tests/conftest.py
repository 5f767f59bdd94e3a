"""
Shared fixtures: a small extracted paper, on-disk stores under tmp_path and
a mocked Generation Service.
"""
import pytest
from unittest.mock import MagicMock

from paperchat.models.paper import (
    Paper, PaperExtraction, Section, Paragraph, Figure, Table, Equation, CodeBlock,
    Reference, Author,
)
from paperchat.storage.paper_store import LocalPaperStore
from paperchat.storage.chat_store import LocalChatStore
from paperchat.core.pipeline.chat import ChatPipeline
from paperchat.core.pipeline.sessions import ChatSessionService

PAPER_ID = "paper-1"
UNEXTRACTED_PAPER_ID = "paper-2"
PAPER_TITLE = "Sparse Attention for Long Documents"


def make_extraction() -> PaperExtraction:
    return PaperExtraction(
        title=PAPER_TITLE,
        abstract="We propose a sparse attention transformer that scales to long documents.",
        page_count=9,
        sections=[
            Section(title="Introduction", section_type="introduction", label="1", page_start=1, page_end=1,
                    paragraphs=[Paragraph(text="Long documents break dense attention.", page=1)]),
            Section(title="Method", section_type="methods", label="2", page_start=2, page_end=3,
                    paragraphs=[Paragraph(text="The encoder maps tokens to vectors. Blocks attend locally.", page=2)]),
            Section(title="System Architecture", section_type="body", label="3", page_start=4, page_end=4,
                    paragraphs=[Paragraph(text="A router dispatches blocks to workers.", page=4)]),
            Section(title="Results", section_type="results", label="4", page_start=5, page_end=6,
                    paragraphs=[Paragraph(text="Accuracy improves by 4.2 points over the dense baseline.", page=5)]),
            Section(title="Experiments", section_type="experiments", label="5", page_start=7, page_end=7,
                    paragraphs=[Paragraph(text="We train on arXiv and PubMed for 10 epochs.", page=7)]),
            Section(title="Conclusion", section_type="conclusion", label="6", page_start=8, page_end=8,
                    paragraphs=[Paragraph(text="Sparse attention is a practical default.", page=8)]),
        ],
        figures=[
            Figure(label="Figure 1", caption="Overview of the block layout.", page=2),
            Figure(label="Figure 3", caption="Accuracy versus sequence length.", page=5,
                   ocr_text="length 1k 4k 16k"),
            Figure(label="Figure 13", caption="Attention maps in the appendix.", page=9),
        ],
        tables=[
            Table(label="Table 2", caption="Comparison with baselines.", headers=["Model", "Acc"],
                  rows=[["Dense", "81.0"], ["Sparse", "85.2"]], page=6),
        ],
        equations=[Equation(equation_id="eq1", label="1", latex="A = softmax(QK^T / \\sqrt{d})", page=3)],
        code_blocks=[CodeBlock(language="python", code="def route(block):\n    return hash(block) % n", page=4)],
        references=[
            Reference(reference_id="r1", title="Attention Is All You Need", authors=["Vaswani"], year=2017),
            Reference(reference_id="r2", title="Longformer", authors=["Beltagy"], year=2020),
        ],
        authors=[Author(name="Ada Lovelace", affiliation="Analytical Lab"), Author(name="Alan Turing")],
    )


@pytest.fixture
def extraction() -> PaperExtraction:
    return make_extraction()


@pytest.fixture
def paper_store(tmp_path) -> LocalPaperStore:
    store = LocalPaperStore(str(tmp_path / "papers"))
    store.save_paper(Paper(paper_id=PAPER_ID, title=PAPER_TITLE, is_extracted=True, extraction=make_extraction()))
    store.save_paper(Paper(paper_id=UNEXTRACTED_PAPER_ID, title="Pending", is_extracted=False))
    return store


@pytest.fixture
def chat_store(tmp_path) -> LocalChatStore:
    return LocalChatStore(str(tmp_path / "chat"))


@pytest.fixture
def mock_llm() -> MagicMock:
    llm = MagicMock()
    llm.generate.return_value = "Mocked answer about the paper."
    return llm


@pytest.fixture
def pipeline(paper_store, chat_store, mock_llm) -> ChatPipeline:
    return ChatPipeline(paper_store=paper_store, chat_store=chat_store, llm_client=mock_llm)


@pytest.fixture
def session_service(pipeline, chat_store) -> ChatSessionService:
    return ChatSessionService(pipeline, chat_store)
