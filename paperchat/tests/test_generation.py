from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock, patch

import httpx
import pytest

from paperchat.core.generate.prompt_builder import PromptBuilder, BASE_PERSONA
from paperchat.core.generate.llm_client import LLMClient
from paperchat.core.generate.fallback import fallback_answer
from paperchat.core.retrieve.query_analyser import QueryAnalyser
from paperchat.core.retrieve.content_retriever import ContentRetriever
from paperchat.core.retrieve.context_builder import ContextBuilder
from paperchat.core.errors import GenerationFailure
from paperchat.models.chat import ChatMessage, ChatRole
from paperchat.models.query import DataRequirement

SECTION_HEADERS = [
    "=== PAPER CONTEXT ===",
    "=== RELEVANT CONTENT ===",
    "=== CONVERSATION HISTORY ===",
    "=== USER SELECTED TEXT ===",
    "=== USER QUERY ===",
    "=== RESPONSE INSTRUCTIONS ===",
]

def make_history(count):
    start = datetime(2024, 1, 1, tzinfo=timezone.utc)
    return [
        ChatMessage(
            message_id=f"m{i}",
            session_id="s1",
            role=ChatRole.USER if i % 2 == 0 else ChatRole.ASSISTANT,
            content=f"history-message-{i:02d}",
            timestamp=start + timedelta(minutes=i),
        )
        for i in range(count)
    ]

def build_prompt(extraction, query, history=None, selected_text=None):
    analysis = QueryAnalyser().analyse(query, selected_text)
    candidates = ContentRetriever().retrieve(extraction, query, analysis, selected_text)
    bundle = ContextBuilder().build(candidates, analysis)
    prompt = PromptBuilder().build(extraction, bundle.chunks, history or [], query, analysis, selected_text)
    return analysis, bundle, prompt

def test_prompt_builder_section_order(extraction):
    print("Testing PromptBuilder section order...")
    _, _, prompt = build_prompt(
        extraction, "Summarize this paper",
        history=make_history(2), selected_text="Blocks attend locally.",
    )

    assert prompt.startswith(BASE_PERSONA)
    positions = [prompt.index(header) for header in SECTION_HEADERS]
    assert positions == sorted(positions)
    assert "Aim for a comprehensive but concise response (300-800 words)." in prompt
    assert "\"Blocks attend locally.\"" in prompt
    print("PromptBuilder section order PASSED")

def test_prompt_builder_optional_sections(extraction):
    _, _, prompt = build_prompt(extraction, "What does Figure 3 show?")
    assert "=== CONVERSATION HISTORY ===" not in prompt
    assert "=== USER SELECTED TEXT ===" not in prompt
    assert "Specific References Mentioned: Figures [3]" in prompt
    assert "Secondary Query Types: CONCEPTUAL" in prompt
    assert "(200-600 words)" in prompt

def test_prompt_builder_paper_context(extraction):
    _, _, summary_prompt = build_prompt(extraction, "Summarize this paper")
    assert f"Title: {extraction.title}" in summary_prompt
    assert "Authors: Ada Lovelace, Alan Turing" in summary_prompt
    assert "Affiliations: Analytical Lab" in summary_prompt
    assert "- Figures: 3" in summary_prompt
    assert "- References: 2" in summary_prompt

    # Authors are only listed when the question calls for them
    _, _, figure_prompt = build_prompt(extraction, "What does Figure 3 show?")
    assert "Authors:" not in figure_prompt

def test_prompt_builder_groups_by_category(extraction):
    _, bundle, prompt = build_prompt(extraction, "Summarize this paper")
    assert prompt.index("--- ABSTRACT CONTENT ---") < prompt.index("--- INTRODUCTION CONTENT ---")
    assert prompt.index("--- CONCLUSION CONTENT ---") < prompt.index("--- RESULTS CONTENT ---")
    # Categories outside the preferred order are still rendered
    assert "--- AUTHORS CONTENT ---" in prompt
    for chunk in bundle.chunks:
        assert f"Source: {chunk.source}" in prompt

def test_prompt_builder_trims_history(extraction):
    _, _, prompt = build_prompt(extraction, "Summarize this paper", history=make_history(10))
    assert "history-message-03" not in prompt
    for i in range(4, 10):
        assert f"history-message-{i:02d}" in prompt
    assert prompt.index("history-message-04") < prompt.index("history-message-09")
    assert "USER: history-message-04" in prompt

def test_prompt_builder_truncates_long_history(extraction):
    history = make_history(1)
    history[0] = history[0].model_copy(update={"content": "x" * 400})
    _, _, prompt = build_prompt(extraction, "Summarize this paper", history=history)
    assert "USER: " + "x" * 300 + "..." in prompt
    assert "x" * 301 not in prompt

def test_llm_client_sync():
    print("Testing LLMClient call (MOCKED)...")

    with patch("httpx.Client") as mock_client_class:
        mock_client = MagicMock()
        mock_client_class.return_value.__enter__.return_value = mock_client

        mock_response = MagicMock()
        mock_response.json.return_value = {
            "choices": [
                {"message": {"content": "This is a mocked response."}}
            ]
        }
        mock_client.post.return_value = mock_response

        client = LLMClient()
        response = client.generate("hello", temperature=0.1, max_tokens=1500)

        assert response == "This is a mocked response."
        payload = mock_client.post.call_args.kwargs["json"]
        assert payload["temperature"] == 0.1
        assert payload["max_tokens"] == 1500
        assert payload["messages"] == [{"role": "user", "content": "hello"}]
        assert mock_client_class.call_args.kwargs["timeout"] == client.config.timeout_seconds

    print("LLMClient sync tests PASSED")

@pytest.mark.parametrize("error", [
    httpx.ConnectError("connection refused"),
    httpx.ReadTimeout("too slow"),
])
def test_llm_client_transport_errors(error):
    with patch("httpx.Client") as mock_client_class:
        mock_client = MagicMock()
        mock_client_class.return_value.__enter__.return_value = mock_client
        mock_client.post.side_effect = error

        with pytest.raises(GenerationFailure):
            LLMClient().generate("hello", 0.2, 100)

def test_llm_client_status_error():
    with patch("httpx.Client") as mock_client_class:
        mock_client = MagicMock()
        mock_client_class.return_value.__enter__.return_value = mock_client
        request = httpx.Request("POST", "https://example.test/chat/completions")
        mock_response = MagicMock()
        mock_response.raise_for_status.side_effect = httpx.HTTPStatusError(
            "server error", request=request, response=httpx.Response(503, request=request)
        )
        mock_client.post.return_value = mock_response

        with pytest.raises(GenerationFailure, match="503"):
            LLMClient().generate("hello", 0.2, 100)

@pytest.mark.parametrize("body", [
    {"choices": [{"message": {"content": "   "}}]},
    {"choices": []},
    {"error": "quota"},
])
def test_llm_client_unusable_payload(body):
    with patch("httpx.Client") as mock_client_class:
        mock_client = MagicMock()
        mock_client_class.return_value.__enter__.return_value = mock_client
        mock_response = MagicMock()
        mock_response.json.return_value = body
        mock_client.post.return_value = mock_response

        with pytest.raises(GenerationFailure):
            LLMClient().generate("hello", 0.2, 100)

def test_fallback_precedence(extraction):
    print("Testing fallback answers...")
    authors = fallback_answer(extraction, {DataRequirement.AUTHORS, DataRequirement.TITLE})
    assert authors == "The authors of this paper are: Ada Lovelace, Alan Turing."

    title = fallback_answer(extraction, {DataRequirement.TITLE})
    assert title == f"The title of this paper is: \"{extraction.title}\" by Ada Lovelace, Alan Turing."

    generic = fallback_answer(extraction, {DataRequirement.RESULTS})
    assert generic.startswith("I apologize")
    assert extraction.title in generic
    assert generic.endswith("Please try rephrasing your question or try again later.")

    bare = extraction.model_copy(update={"authors": [], "title": None})
    assert fallback_answer(bare, {DataRequirement.AUTHORS}) == "Author information is not available for this paper."
    assert fallback_answer(bare, {DataRequirement.TITLE}) == "Title information is not available for this paper."
    print("Fallback answers PASSED")

if __name__ == "__main__":
    from conftest import make_extraction
    test_prompt_builder_section_order(make_extraction())
    test_llm_client_sync()
    test_fallback_precedence(make_extraction())
    print("\nAll Generation Component Unit Tests PASSED (Logic only)")
