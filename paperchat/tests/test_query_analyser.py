import pytest

from paperchat.core.retrieve.query_analyser import QueryAnalyser
from paperchat.core.retrieve import content_priority
from paperchat.models.query import QueryType, ResponseFormat, ContextualDepth, DataRequirement, ContentPriority

def test_summary_query():
    print("Testing QueryAnalyser on a summary question...")
    analysis = QueryAnalyser().analyse("Summarize this paper")

    assert analysis.primary_type == QueryType.SUMMARY
    assert analysis.secondary_types == (QueryType.SUMMARY,)
    reqs = analysis.context_requirements
    assert reqs.max_chunks == 6
    assert reqs.include_author_info is True
    assert reqs.include_references is False
    weights = reqs.content_priority
    assert weights.abstract == 1.0
    assert weights.introduction > 0.5 and weights.conclusion > 0.5
    assert analysis.prompt_strategy.response_format == ResponseFormat.STRUCTURED
    assert analysis.prompt_strategy.temperature == 0.3
    print("Summary classification PASSED")

def test_figure_reference_query():
    print("Testing QueryAnalyser on a figure reference...")
    analysis = QueryAnalyser().analyse("What does Figure 3 show?")

    assert analysis.primary_type == QueryType.SPECIFIC_REFERENCE
    assert analysis.specific_references.figures == [3]
    assert analysis.specific_references.tables == []
    assert QueryType.CONCEPTUAL in analysis.secondary_types
    # One extra facet on top of the SPECIFIC_REFERENCE base of 4
    assert analysis.context_requirements.max_chunks == 6
    assert analysis.prompt_strategy.max_tokens == 1500
    print("Figure reference classification PASSED")

def test_comparison_with_table_and_page():
    print("Testing QueryAnalyser on a multi-faceted comparison...")
    analysis = QueryAnalyser().analyse("Compare the results with baseline in Table 2 on page 7")

    assert analysis.primary_type in (QueryType.COMPARISON, QueryType.RESULTS)
    refs = analysis.specific_references
    assert refs.tables == [2]
    assert refs.pages == [7]
    assert refs.figures == []
    assert analysis.context_requirements.include_references is True
    assert analysis.context_requirements.max_chunks <= 15
    print("Comparison classification PASSED")

def test_general_fallback_and_empty_query():
    analyser = QueryAnalyser()
    analysis = analyser.analyse("")
    assert analysis.primary_type == QueryType.GENERAL
    assert analysis.secondary_types == ()
    assert analysis.complexity_score == 0.0
    assert analysis.context_requirements.max_chunks == 8
    assert analysis.prompt_strategy.response_format == ResponseFormat.COMPREHENSIVE
    assert analysis.prompt_strategy.temperature == 0.25

def test_classification_is_deterministic():
    analyser = QueryAnalyser()
    query = "How does the algorithm compare to prior work in Table 4?"
    assert analyser.analyse(query) == analyser.analyse(query)
    assert QueryAnalyser().analyse(query) == analyser.analyse(query)

def test_reference_extraction():
    refs = QueryAnalyser().extract_references(
        "See fig. 2, Figure 2 and Eq. 5 on page 3, section 4.1 of the results"
    )
    assert refs.figures == [2]
    assert refs.equations == [5]
    assert refs.pages == [3]
    assert "4.1" in refs.sections
    assert "results" in refs.sections
    assert refs.has_any

def test_author_keywords_enable_author_info():
    analysis = QueryAnalyser().analyse("Which researcher led this study?")
    assert analysis.context_requirements.include_author_info is True

def test_selection_sets_deep_context():
    analysis = QueryAnalyser().analyse("Explain this", selected_text="Blocks attend locally.",
                                       has_selection_context=True)
    assert analysis.prompt_strategy.contextual_depth == ContextualDepth.DEEP
    assert analysis.context_requirements.needs_selection_context is True

    plain = QueryAnalyser().analyse("Explain this")
    assert plain.prompt_strategy.contextual_depth == ContextualDepth.COMPREHENSIVE

def test_complexity_score_is_bounded():
    query = "algorithm implementation performance optimization architecture " * 10
    assert QueryAnalyser().analyse(query).complexity_score == 1.0

def test_priority_merge_only_raises_weights():
    print("Testing content priority merge...")
    summary = content_priority.priority_for(QueryType.SUMMARY)
    results = content_priority.priority_for(QueryType.RESULTS)
    merged = content_priority.merge_priorities(summary, results, 0.5)

    assert merged.abstract == summary.abstract
    assert merged.results == summary.results            # 0.7 beats 1.0 * 0.5
    assert merged.figures == results.figures * 0.5      # 0.0 raised to 0.4
    for category in content_priority.CATEGORIES:
        assert getattr(merged, category) >= getattr(summary, category)
    print("Priority merge PASSED")

def test_max_chunks_is_capped():
    assert content_priority.max_chunks_for(QueryType.SUMMARY, 0) == 6
    assert content_priority.max_chunks_for(QueryType.RESULTS, 1) == 10
    assert content_priority.max_chunks_for(QueryType.COMPARISON, 5) == 15
    assert content_priority.max_chunks_for(QueryType.GENERAL, 0) == 8

def test_requirements_source():
    assert content_priority.analyse_requirements("hello there") == {DataRequirement.TITLE, DataRequirement.ABSTRACT}
    assert DataRequirement.AUTHORS in content_priority.analyse_requirements("Who wrote this paper?")

    priority = content_priority.priority_from_requirements({DataRequirement.FIGURES})
    assert isinstance(priority, ContentPriority)
    assert priority.figures == 1.0
    assert priority.abstract < 0.5

    everything = content_priority.priority_from_requirements({DataRequirement.FULL_PAPER_CONTENT})
    assert everything.methodology == 1.0 and everything.conclusion == 1.0

def test_requirements_priority_source(monkeypatch):
    from paperchat.config.settings import settings
    monkeypatch.setattr(settings.retrieval, "priority_source", "requirements")
    analysis = QueryAnalyser().analyse("Show me the figure with the results")
    weights = analysis.context_requirements.content_priority
    assert weights.figures == 1.0
    assert weights.results == 1.0
    assert DataRequirement.FIGURES in analysis.data_requirements

def test_repeated_references_collapse():
    refs = QueryAnalyser().extract_references("Compare Figure 2 with fig. 2 and Figure 4, see section 3.1 and section 3.1")
    assert refs.figures == [2, 4]
    assert refs.sections[0] == "3.1"
    assert refs.sections.count("3.1") == 1

def test_priority_source_rejects_unknown_values():
    from pydantic import ValidationError
    from paperchat.config.settings import RetrievalConfig
    assert RetrievalConfig(priority_source="requirements").priority_source == "requirements"
    with pytest.raises(ValidationError):
        RetrievalConfig(priority_source="requirement")

if __name__ == "__main__":
    test_summary_query()
    test_figure_reference_query()
    test_comparison_with_table_and_page()
    test_priority_merge_only_raises_weights()
    print("\nAll Query Analyser Unit Tests PASSED")
