from datetime import datetime, timedelta, timezone

import pytest

from crm_filters.errors import MalformedRange, UnsupportedOperator, UnsupportedToken, ValidationError
from crm_filters.filters import FilterCondition, FilterGroup
from crm_filters.query import build_nested_field, compile_condition, compile_group

UTC = timezone.utc


def cond(field, operator, value=None, values=None):
    return FilterCondition(field=field, operator=operator, value=value, values=values)


# ----------------------------
# Conditions
# ----------------------------

def test_nested_path_wraps_once_per_segment():
    assert compile_condition(cond("company.industry", "equals", "Tech")) == {
        "company": {"industry": {"equals": "Tech"}}
    }


def test_build_nested_field_three_levels():
    assert build_nested_field(["deal", "stage", "name"], {"equals": "Won"}) == {
        "deal": {"stage": {"name": {"equals": "Won"}}}
    }


@pytest.mark.parametrize("operator,value,expected", [
    ("equals", "ACTIVE", {"equals": "ACTIVE"}),
    ("not_equals", "ACTIVE", {"not": "ACTIVE"}),
    ("contains", "acme", {"contains": "acme", "mode": "insensitive"}),
    ("not_contains", "acme", {"not": {"contains": "acme", "mode": "insensitive"}}),
    ("starts_with", "Ac", {"startsWith": "Ac", "mode": "insensitive"}),
    ("ends_with", "Inc", {"endsWith": "Inc", "mode": "insensitive"}),
    ("greater_than", 5, {"gt": 5}),
    ("greater_than_or_equal", 5, {"gte": 5}),
    ("less_than", 5, {"lt": 5}),
    ("less_than_or_equal", 5, {"lte": 5}),
    ("between", [10, 20], {"gte": 10, "lte": 20}),
    ("is_empty", None, {"equals": None}),
    ("is_not_empty", None, {"not": None}),
])
def test_leaf_predicates(operator, value, expected):
    assert compile_condition(cond("name", operator, value)) == {"name": expected}


def test_in_prefers_values_over_value():
    c = cond("status", "in", value="IGNORED", values=("ACTIVE", "PROSPECT"))
    assert compile_condition(c) == {"status": {"in": ["ACTIVE", "PROSPECT"]}}


def test_in_falls_back_to_value():
    assert compile_condition(cond("status", "not_in", ["LOST"])) == {"status": {"notIn": ["LOST"]}}
    assert compile_condition(cond("status", "in", "OPEN")) == {"status": {"in": ["OPEN"]}}


def test_date_equals_covers_the_whole_day():
    pred = compile_condition(cond("createdAt", "date_equals", "2024-03-09T17:45:00Z"))
    start = datetime(2024, 3, 9, tzinfo=UTC)
    assert pred == {"createdAt": {"gte": start, "lt": start + timedelta(days=1)}}


def test_date_before_after_and_between():
    assert compile_condition(cond("dueDate", "date_before", "2024-01-01")) == {
        "dueDate": {"lt": datetime(2024, 1, 1)}
    }
    assert compile_condition(cond("dueDate", "date_after", "2024-01-01")) == {
        "dueDate": {"gt": datetime(2024, 1, 1)}
    }
    assert compile_condition(cond("dueDate", "date_between", ["2024-01-01", "2024-01-31"])) == {
        "dueDate": {"gte": datetime(2024, 1, 1), "lte": datetime(2024, 1, 31)}
    }


def test_date_relative_uses_injected_now(now):
    pred = compile_condition(cond("createdAt", "date_relative", "last_7_days"), now=now)
    assert pred == {"createdAt": {"gte": now - timedelta(days=7), "lt": now}}


def test_date_relative_unknown_token_raises(now):
    with pytest.raises(UnsupportedToken):
        compile_condition(cond("createdAt", "date_relative", "someday"), now=now)


def test_unknown_operator_raises():
    with pytest.raises(UnsupportedOperator):
        compile_condition(cond("name", "sounds_like", "Smith"))


@pytest.mark.parametrize("value", [[1], [1, 2, 3], 5, None])
def test_between_with_wrong_arity_raises(value):
    with pytest.raises(MalformedRange):
        compile_condition(cond("value", "between", value))


def test_custom_apply_field_callback():
    seen = []

    def flat(path, leaf):
        seen.append(tuple(path))
        return {"__".join(path): leaf}

    assert compile_condition(cond("company.name", "equals", "Acme"), apply_field=flat) == {
        "company__name": {"equals": "Acme"}
    }
    assert seen == [("company", "name")]


# ----------------------------
# Groups
# ----------------------------

def test_empty_and_group_is_identity():
    assert compile_group(FilterGroup("AND", [], [])) == {}


def test_empty_or_group_matches_nothing():
    assert compile_group(FilterGroup("OR")) == {"OR": []}


def test_single_condition_group_is_unwrapped():
    c = cond("status", "equals", "ACTIVE")
    assert compile_group(FilterGroup("OR", [c])) == compile_condition(c)


def test_contacts_example():
    group = FilterGroup("AND", [
        cond("status", "equals", "ACTIVE"),
        cond("email", "is_not_empty"),
    ])
    assert compile_group(group) == {
        "AND": [{"status": {"equals": "ACTIVE"}}, {"email": {"not": None}}]
    }


def test_nested_groups_keep_input_order():
    group = FilterGroup(
        "AND",
        [cond("status", "equals", "OPEN")],
        [
            FilterGroup("OR", [cond("priority", "equals", "HIGH"), cond("priority", "equals", "URGENT")]),
            FilterGroup("AND", [cond("value", "greater_than", 1000)]),
        ],
    )
    assert compile_group(group) == {
        "AND": [
            {"status": {"equals": "OPEN"}},
            {"OR": [{"priority": {"equals": "HIGH"}}, {"priority": {"equals": "URGENT"}}]},
            {"value": {"gt": 1000}},
        ]
    }


def test_empty_nested_and_group_contributes_identity():
    group = FilterGroup("OR", [cond("status", "equals", "OPEN")], [FilterGroup("AND")])
    assert compile_group(group) == {"OR": [{"status": {"equals": "OPEN"}}, {}]}


def _deep(levels):
    group = FilterGroup("AND", [cond("status", "equals", "OPEN")])
    for _ in range(levels - 1):
        group = FilterGroup("AND", [], [group])
    return group


def test_depth_limit():
    assert compile_group(_deep(3), max_depth=3)
    with pytest.raises(ValidationError):
        compile_group(_deep(4), max_depth=3)


def test_bad_group_operator_raises():
    with pytest.raises(ValidationError):
        compile_group(FilterGroup("XOR", [cond("status", "equals", "OPEN")]))
