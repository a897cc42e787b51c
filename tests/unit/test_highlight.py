"""Tests for highlight generation."""

import re

from cc_archive.highlight import (
    contains_phrase,
    count_matches,
    literal_pattern,
    pattern_highlights,
    word_pattern,
)
from cc_archive.models import Highlight


def literal_spans(text, phrase, message_index=0):
    return pattern_highlights(text, literal_pattern(phrase), message_index)


def test_literal_highlights_case_insensitive_with_original_text():
    text = "Error handling: an ERROR is not an error."
    spans = literal_spans(text, "error", message_index=3)

    assert [(h.start, h.end) for h in spans] == [(0, 5), (19, 24), (35, 40)]
    assert [h.text for h in spans] == ["Error", "ERROR", "error"]
    assert all(h.message_index == 3 for h in spans)


def test_literal_highlights_are_non_overlapping():
    spans = literal_spans("aaaa", "aa")
    assert [(h.start, h.end) for h in spans] == [(0, 2), (2, 4)]


def test_literal_highlights_treats_phrase_literally():
    spans = literal_spans("call foo.bar() then fooxbar", "foo.bar()")
    assert spans == [Highlight(message_index=0, start=5, end=14, text="foo.bar()")]


def test_literal_pattern_blank_phrase():
    assert literal_pattern("") is None
    assert literal_pattern("   ") is None


def test_offsets_are_code_points():
    text = "café error"
    spans = literal_spans(text, "error")

    assert (spans[0].start, spans[0].end) == (5, 10)
    assert text[spans[0].start : spans[0].end] == "error"


def test_pattern_highlights_use_match_offsets():
    pattern = re.compile("error|fail")
    spans = pattern_highlights("an error made the build fail", pattern, message_index=1)

    assert spans == [
        Highlight(message_index=1, start=3, end=8, text="error"),
        Highlight(message_index=1, start=24, end=28, text="fail"),
    ]


def test_count_matches():
    assert count_matches("fail, fail, error", re.compile("error|fail")) == 3
    assert count_matches("nothing", re.compile("error")) == 0


def test_contains_phrase():
    assert contains_phrase("Notes on Tokio runtime", "tokio runtime")
    assert not contains_phrase("Notes on Tokio", "async")
    assert not contains_phrase("anything", "")


def test_word_pattern_matches_whole_words_only():
    pattern = word_pattern(["test", "tests"])
    assert [m.group() for m in pattern.finditer("Tests test testing")] == ["Tests", "test"]
