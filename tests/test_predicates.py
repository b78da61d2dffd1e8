import pandas as pd
import pytest

from dashcore.predicates import Between, Equals, NotIn, OneOf, apply_filters, filter_spec


def test_between_is_inclusive(grouped_frame):
    out = apply_filters(grouped_frame, (Between("year", 2001, 2002),))
    assert sorted(out["year"].tolist()) == [2001, 2001, 2002]


def test_reversed_range_matches_nothing(grouped_frame):
    out = apply_filters(grouped_frame, (Between("year", 2003, 2000),))
    assert out.empty
    assert list(out.columns) == list(grouped_frame.columns)


def test_predicates_are_anded(grouped_frame):
    spec = filter_spec(OneOf("category", ["a", "b"]), Between("value", 3, None))
    out = apply_filters(grouped_frame, spec)
    assert out["category"].tolist() == ["a", "b"]
    assert out["value"].tolist() == [4.0, 6.0]


def test_missing_values_never_match(grouped_frame):
    out = apply_filters(grouped_frame, (Between("value", None, None),))
    assert out["value"].notna().all()
    assert len(out) == 5


def test_not_in_and_equals(grouped_frame):
    assert set(apply_filters(grouped_frame, (NotIn("category", ["a", "b"]),))["category"]) == {"c", "d"}
    assert len(apply_filters(grouped_frame, (Equals("category", "c"),))) == 2


def test_filter_never_grows_and_is_idempotent(grouped_frame):
    specs = [
        (),
        (Between("year", 2000, 2001),),
        (OneOf("category", ["a", "d"]), Between("value", 0, 10)),
        (Equals("category", "zzz"),),
    ]
    for spec in specs:
        once = apply_filters(grouped_frame, spec)
        twice = apply_filters(once, spec)
        assert len(once) <= len(grouped_frame)
        pd.testing.assert_frame_equal(once, twice)


def test_source_frame_is_not_mutated(grouped_frame):
    before = grouped_frame.copy()
    out = apply_filters(grouped_frame, ())
    out.loc[:, "value"] = 0
    pd.testing.assert_frame_equal(grouped_frame, before)


def test_between_with_mismatched_bound_type(grouped_frame):
    with pytest.raises(ValueError, match="category"):
        apply_filters(grouped_frame, (Between("category", 1, 2),))
