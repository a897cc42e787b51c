"""Tests for result rendering helpers."""

from cc_archive.display import build_snippet, project_counts, result_to_dict
from cc_archive.models import Highlight, SearchResult


def test_build_snippet_highlights_matches(make_conversation):
    conv = make_conversation("c1", "nothing", "the cache was stale")
    result = SearchResult(
        conversation=conv,
        score=1.0,
        highlights=[Highlight(message_index=1, start=4, end=9, text="cache")],
        match_count=1,
        matched_messages=[1],
    )

    snippet = build_snippet(result)

    assert snippet.plain == "assistant: the cache was stale"
    styled = [snippet.plain[s.start : s.end] for s in snippet.spans if s.style == "bold yellow"]
    assert styled == ["cache"]


def test_build_snippet_falls_back_to_summary(make_conversation):
    conv = make_conversation("c1", "hello", summary="Session summary")
    snippet = build_snippet(SearchResult(conversation=conv, score=1.0))
    assert snippet.plain == "Session summary"


def test_result_to_dict(make_conversation):
    conv = make_conversation("c1", "hello there", "hi", "how are you")
    data = result_to_dict(
        1,
        SearchResult(
            conversation=conv,
            score=0.123456,
            highlights=[Highlight(0, 0, 5, "hello")],
            match_count=1,
            matched_messages=[0],
        ),
    )

    assert data["rank"] == 1
    assert data["score"] == 0.1235
    assert data["session_id"] == "c1"
    assert (data["user_messages"], data["assistant_messages"]) == (2, 1)
    assert data["highlights"] == [{"message_index": 0, "start": 0, "end": 5, "text": "hello"}]


def test_project_counts_most_active_first(make_conversation):
    conversations = [
        make_conversation("a", "x", project="cli"),
        make_conversation("b", "x", project="webapp"),
        make_conversation("c", "x", project="webapp"),
    ]
    assert project_counts(conversations) == [
        {"project": "webapp", "conversations": 2},
        {"project": "cli", "conversations": 1},
    ]
