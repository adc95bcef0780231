import pytest

from crm_filters.filters import (
    AdvancedFilterQuery,
    FilterCondition,
    FilterGroup,
    OPERATOR_VALUES,
    SortSpec,
)
from crm_filters.registry import get_capability_matrix
from crm_filters.validation import validate_filter_group, validate_filter_query

SAMPLE_VALUES = {
    "between": [1, 5],
    "date_between": ["2024-05-01", "2024-05-31"],
    "in": ["A", "B"],
    "not_in": ["A", "B"],
    "is_empty": None,
    "is_not_empty": None,
    "greater_than": 10,
    "greater_than_or_equal": 10,
    "less_than": 10,
    "less_than_or_equal": 10,
    "date_equals": "2024-05-01",
    "date_before": "2024-05-01",
    "date_after": "2024-05-01",
    "date_relative": "last_30_days",
}


def sample(field, operator):
    return FilterCondition(field=field, operator=operator, value=SAMPLE_VALUES.get(operator, "x"))


def _all_pairs(allowed):
    m = get_capability_matrix()
    for entity in m.entities:
        for field, ops in m.fields_for(entity).items():
            for op in sorted(OPERATOR_VALUES):
                if (op in ops) == allowed:
                    yield entity, field, op


@pytest.mark.parametrize("entity,field,operator", list(_all_pairs(True)))
def test_every_allowed_pair_validates(entity, field, operator):
    result = validate_filter_group(entity, FilterGroup("AND", [sample(field, operator)]))
    assert result.is_valid, result.errors


@pytest.mark.parametrize("entity,field,operator", list(_all_pairs(False)))
def test_every_disallowed_pair_is_rejected(entity, field, operator):
    result = validate_filter_group(entity, FilterGroup("AND", [sample(field, operator)]))
    assert not result.is_valid
    assert any(field in e and operator in e for e in result.errors)


def test_unknown_field_is_named(matrix):
    result = validate_filter_group("contacts", FilterGroup("AND", [sample("ssn", "equals")]), matrix=matrix)
    assert result.errors == ["Field 'ssn' is not supported for entity 'contacts'"]


def test_unknown_entity():
    result = validate_filter_group("patients", FilterGroup("AND"))
    assert not result.is_valid
    assert "patients" in result.errors[0]


@pytest.mark.parametrize("operator,field", [("between", "value"), ("date_between", "createdAt")])
@pytest.mark.parametrize("value", [["2024-01-01"], ["2024-01-01", "2024-01-02", "2024-01-03"], "2024-01-01"])
def test_range_arity_rejected(operator, field, value):
    c = FilterCondition(field=field, operator=operator, value=value)
    result = validate_filter_group("deals", FilterGroup("AND", [c]))
    assert f"Operator '{operator}' requires an array of exactly 2 values" in result.errors


def test_range_with_two_values_passes():
    c = FilterCondition(field="value", operator="between", value=[100, 500])
    assert validate_filter_group("deals", FilterGroup("AND", [c])).is_valid


def test_in_requires_an_array():
    c = FilterCondition(field="status", operator="in", value="OPEN")
    result = validate_filter_group("deals", FilterGroup("AND", [c]))
    assert result.errors == ["Operator 'in' requires either 'values' array or 'value' as array"]

    ok = FilterCondition(field="status", operator="in", values=("OPEN",))
    assert validate_filter_group("deals", FilterGroup("AND", [ok])).is_valid


def test_values_must_be_an_array_even_when_value_is_one():
    c = FilterCondition(field="status", operator="not_in", value=["OPEN"], values="abc")
    result = validate_filter_group("deals", FilterGroup("AND", [c]))
    assert result.errors == ["Operator 'not_in' requires 'values' to be an array"]


def test_bad_relative_token_is_a_validation_error():
    c = FilterCondition(field="createdAt", operator="date_relative", value="next_year")
    result = validate_filter_group("deals", FilterGroup("AND", [c]))
    assert not result.is_valid
    assert "next_year" in result.errors[0]


def test_unparseable_date_is_rejected():
    c = FilterCondition(field="createdAt", operator="date_before", value="last tuesday")
    assert not validate_filter_group("deals", FilterGroup("AND", [c])).is_valid


def test_missing_value_is_rejected():
    c = FilterCondition(field="title", operator="contains")
    result = validate_filter_group("deals", FilterGroup("AND", [c]))
    assert result.errors == ["Operator 'contains' requires a value for field 'title'"]


def test_errors_are_collected_across_nested_groups():
    group = FilterGroup(
        "XOR",
        [sample("bogus", "equals")],
        [FilterGroup("OR", [FilterCondition(field="value", operator="between", value=[1])])],
    )
    result = validate_filter_group("deals", group)
    assert len(result.errors) == 3
    assert result.to_dict()["isValid"] is False


def test_depth_limit_is_reported():
    group = FilterGroup("AND", [sample("status", "equals")])
    for _ in range(3):
        group = FilterGroup("AND", [], [group])
    result = validate_filter_group("deals", group, max_depth=3)
    assert any("nested deeper" in e for e in result.errors)
    assert validate_filter_group("deals", group, max_depth=4).is_valid


def test_empty_groups_are_valid():
    assert validate_filter_group("deals", FilterGroup("AND")).is_valid
    assert validate_filter_group("deals", FilterGroup("OR")).is_valid


def test_sort_is_checked():
    q = AdvancedFilterQuery(
        entity="deals",
        filters=FilterGroup("AND"),
        sort=SortSpec(field="password", direction="sideways"),
    )
    result = validate_filter_query(q)
    assert "Sort field not allowed for deals: password" in result.errors
    assert any("direction" in e for e in result.errors)


def test_sort_on_search_field_is_allowed():
    q = AdvancedFilterQuery(entity="deals", filters=FilterGroup("AND"), sort=SortSpec("description", "desc"))
    assert validate_filter_query(q).is_valid
