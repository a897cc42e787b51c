"""Tests for query construction and boolean expression parsing."""

from datetime import datetime, timedelta, timezone

import pytest

from cc_archive.errors import ConfigurationError
from cc_archive.models import Role
from cc_archive.query import (
    And,
    DateRange,
    Group,
    Not,
    Or,
    SearchMode,
    SearchQuery,
    Term,
    parse_boolean,
)

JAN_1 = datetime(2024, 1, 1, tzinfo=timezone.utc)
JAN_31 = datetime(2024, 1, 31, tzinfo=timezone.utc)


def test_text_factory():
    query = SearchQuery.from_text("rust code")
    assert query.text == "rust code"
    assert query.regex_pattern is None
    assert query.mode is SearchMode.TEXT
    assert query.max_results is None


def test_regex_factory():
    query = SearchQuery.from_regex(r"error|fail")
    assert query.regex_pattern == r"error|fail"
    assert query.text is None
    assert query.mode is SearchMode.REGEX


def test_builders_return_new_queries():
    base = SearchQuery.from_text("rust")
    query = (
        base.with_date_range(JAN_1, JAN_31)
        .with_project("webapp")
        .with_model("sonnet")
        .with_tool("Bash")
        .with_role(Role.ASSISTANT)
        .with_message_count(2, 20)
        .with_duration(5, 120)
        .with_max_results(3)
    )

    assert base.project_filter is None
    assert query.date_range == DateRange(start=JAN_1, end=JAN_31)
    assert query.project_filter == "webapp"
    assert query.model_filter == "sonnet"
    assert query.tool_filter == "Bash"
    assert query.role_filter is Role.ASSISTANT
    assert (query.min_messages, query.max_messages) == (2, 20)
    assert (query.min_duration_minutes, query.max_duration_minutes) == (5, 120)
    assert query.max_results == 3


def test_date_range_is_inclusive():
    date_range = DateRange(start=JAN_1, end=JAN_31)
    assert date_range.contains(JAN_1)
    assert date_range.contains(JAN_31)
    assert not date_range.contains(JAN_1 - timedelta(seconds=1))
    assert not date_range.contains(JAN_31 + timedelta(seconds=1))


def test_date_range_open_ends_and_naive_timestamps():
    assert DateRange(start=JAN_1).contains(datetime(2030, 1, 1))
    assert DateRange(end=JAN_31).contains(datetime(2000, 1, 1))
    assert DateRange().contains(JAN_1)


def test_date_range_presets():
    week = DateRange.last_week()
    assert week.end - week.start == timedelta(days=7)
    month = DateRange.last_month()
    assert month.end - month.start == timedelta(days=30)
    year = DateRange.last_year()
    assert year.contains(datetime.now(tz=timezone.utc) - timedelta(days=100))


def test_cache_key_is_stable_for_equal_queries():
    a = SearchQuery.from_text("rust").with_project("p").with_date_range(JAN_1, JAN_31)
    b = SearchQuery.from_text("rust").with_project("p").with_date_range(JAN_1, JAN_31)
    assert a.cache_key() == b.cache_key()


@pytest.mark.parametrize(
    "other",
    [
        SearchQuery.from_text("python"),
        SearchQuery.from_regex("rust"),
        SearchQuery.fuzzy("rust"),
        SearchQuery.from_text("rust").with_project("p"),
        SearchQuery.from_text("rust").with_date_range(JAN_1, None),
        SearchQuery.from_text("rust").with_max_results(5),
    ],
)
def test_cache_key_differs_between_distinct_queries(other):
    assert SearchQuery.from_text("rust").cache_key() != other.cache_key()


def test_parse_single_term():
    assert parse_boolean("rust") == Term("rust")


def test_parse_and_or_left_associative():
    assert parse_boolean("a AND b OR c") == Or(And(Term("a"), Term("b")), Term("c"))


def test_parse_keywords_case_insensitive():
    assert parse_boolean("rust and not python") == And(Term("rust"), Not(Term("python")))


def test_parse_groups_and_phrases():
    node = parse_boolean('(error OR panic) AND "borrow checker"')
    assert node == And(Group(Or(Term("error"), Term("panic"))), Term("borrow checker"))


def test_quoted_keyword_is_a_term():
    assert parse_boolean('"AND"') == Term("AND")


def test_adjacent_operands_join_with_and():
    assert parse_boolean("rust NOT python") == And(Term("rust"), Not(Term("python")))


@pytest.mark.parametrize(
    "expr",
    ['"unclosed phrase', "(rust OR python", "rust AND", "", "NOT", "rust )"],
)
def test_parse_errors_raise_configuration_error(expr):
    with pytest.raises(ConfigurationError):
        parse_boolean(expr)


def test_boolean_factory():
    query = SearchQuery.boolean("rust OR go")
    assert query.mode is SearchMode.ADVANCED
    assert query.boolean_query == Or(Term("rust"), Term("go"))
    assert query.text == "rust OR go"


def test_max_results_rejects_negative_limit():
    with pytest.raises(ValueError):
        SearchQuery.from_text("rust").with_max_results(-1)


def test_max_results_zero_is_allowed():
    assert SearchQuery.from_text("rust").with_max_results(0).max_results == 0
