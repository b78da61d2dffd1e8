import math

import pandas as pd
import pytest

from dashcore.stats import Stat, StatKind, compute_stat


def _frame(values):
    return pd.DataFrame({"x": values})


def test_sample_std_golden_value():
    out = compute_stat(_frame([2, 4, 4, 4, 5, 5, 7, 9]), Stat.std("x"))
    assert out == pytest.approx(2.138, abs=5e-4)
    assert out == pytest.approx(math.sqrt(32 / 7))


def test_percentile_50_equals_median():
    for values in ([1.0], [3.0, 1.0], [5, 1, 9, 2, 7], [0.1, -0.4, 2.5, 2.5, 8.0, 3.3]):
        df = _frame(values)
        assert compute_stat(df, Stat.percentile("x", 50)) == pytest.approx(compute_stat(df, Stat.median("x")))


def test_percentile_uses_linear_interpolation():
    df = _frame([1, 2, 3, 4])
    assert compute_stat(df, Stat.percentile("x", 10)) == pytest.approx(1.3)
    assert compute_stat(df, Stat.percentile("x", 75)) == pytest.approx(3.25)
    assert compute_stat(df, Stat.iqr("x")) == pytest.approx(1.5)


def test_missing_values_are_ignored():
    df = _frame([1.0, None, 3.0])
    assert compute_stat(df, Stat.mean("x")) == pytest.approx(2.0)
    assert compute_stat(df, Stat.sum("x")) == pytest.approx(4.0)
    assert compute_stat(df, Stat.count("x")) == 2
    assert compute_stat(df, Stat.count()) == 3


def test_all_missing_is_undefined_not_zero():
    df = _frame([None, None])
    for stat in (Stat.sum("x"), Stat.mean("x"), Stat.median("x"), Stat.std("x"), Stat.iqr("x")):
        assert compute_stat(df, stat) is None


def test_std_of_single_value_is_undefined():
    assert compute_stat(_frame([4.0]), Stat.std("x")) is None


def test_percentile_bounds_are_validated():
    with pytest.raises(ValueError):
        Stat.percentile("x", 101)
    with pytest.raises(ValueError):
        Stat.percentile("x", -1)
    with pytest.raises(ValueError):
        Stat(StatKind.PERCENTILE, "x")


def test_field_required_except_for_count():
    with pytest.raises(ValueError):
        Stat(StatKind.MEAN)
    assert Stat.count().field is None


def test_stat_names():
    assert Stat.count().name == "count"
    assert Stat.sum("killed").name == "sum_killed"
    assert Stat.percentile("ret", 90).name == "p90_ret"
    assert Stat.percentile("ret", 12.5).name == "p12.5_ret"
