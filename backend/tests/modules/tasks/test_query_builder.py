# tests/modules/tasks/test_query_builder.py
import pytest

from conftest import USER_A, USER_B, make_task
from taskboard.core.errors import ValidationError
from taskboard.core.security import ANONYMOUS
from taskboard.modules.tasks.predicates import And, FieldEquals, MatchAll, Or, TextSearch
from taskboard.modules.tasks.query import TaskFilters, build_task_query, parse_completed


def test_text_search_matches_any_token_in_any_field():
    search = TextSearch.from_text("milk bread")

    assert search.matches(make_task(title="Buy Milk"))
    assert search.matches(make_task(title="Groceries", description="remember the milk"))
    assert search.matches(make_task(title="Groceries", tags=["bread"]))
    assert not search.matches(make_task(title="Groceries", description="eggs"))


def test_text_search_matches_whole_tokens_only():
    search = TextSearch.from_text("milk")

    assert not search.matches(make_task(title="Buttermilk pancakes"))
    assert search.matches(make_task(title="milk, eggs"))


def test_text_search_escapes_regex_characters():
    search = TextSearch.from_text("c++")

    assert search.matches(make_task(title="Learn C++ templates"))
    assert not search.matches(make_task(title="Learn C templates"))


def test_text_search_word_boundaries_are_ascii_only():
    # non-ASCII letters act as separators, the same way MongoDB reads the pattern
    assert TextSearch.from_text("caf").matches(make_task(title="Café au lait"))
    assert TextSearch.from_text("lait").matches(make_task(title="Café au lait"))
    assert not TextSearch.from_text("caf").matches(make_task(title="Cafeteria"))


def test_text_search_compiles_to_case_insensitive_regex():
    clause = TextSearch(["milk"], fields=("title",)).to_mongo()
    assert clause == {"$or": [{"title": {"$regex": r"(?<![A-Za-z0-9_])milk(?![A-Za-z0-9_])", "$options": "i"}}]}


def test_compound_predicates_flatten_and_drop_match_all():
    a, b, c = FieldEquals("x", 1), FieldEquals("y", 2), FieldEquals("z", 3)

    assert (a & b & c).parts == (a, b, c)
    assert And(MatchAll(), a).to_mongo() == {"x": 1}
    assert And(MatchAll()).to_mongo() == {}
    assert Or(a, MatchAll()).to_mongo() == {}
    assert (a | b).to_mongo() == {"$or": [{"x": 1}, {"y": 2}]}


def test_query_combines_scope_search_and_filters():
    predicate = build_task_query(
        USER_A,
        search_text="milk",
        filters=TaskFilters.from_query(category="shopping", priority="high", completed="false"),
    )
    query = predicate.to_mongo()

    assert query["$and"][0] == {"$or": [{"owner_id": "user-a"}, {"is_public": True}]}
    assert {"category": "shopping"} in query["$and"]
    assert {"priority": "high"} in query["$and"]
    assert {"completed": False} in query["$and"]

    match = make_task(owner=USER_A, title="milk", category="shopping", priority="high")
    assert predicate.matches(match)
    assert not predicate.matches(match.model_copy(update={"completed": True}))
    assert not predicate.matches(make_task(owner=USER_B, title="milk", category="shopping", priority="high"))


def test_blank_search_and_absent_filters_add_no_constraint():
    assert build_task_query(ANONYMOUS, search_text="   ").to_mongo() == {"is_public": True}


def test_filters_reject_values_outside_their_domain():
    with pytest.raises(ValidationError):
        TaskFilters.from_query(category="groceries")
    with pytest.raises(ValidationError):
        TaskFilters.from_query(priority="critical")
    with pytest.raises(ValidationError):
        TaskFilters.from_query(completed="yes")


@pytest.mark.parametrize(
    "raw, expected",
    [(None, None), ("", None), ("true", True), ("FALSE", False), (" true ", True)],
)
def test_parse_completed(raw, expected):
    assert parse_completed(raw) is expected
