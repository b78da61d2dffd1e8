import math

import pytest

from dashcore.filters import Sp500Selections
from dashcore.metrics_sp500 import (
    SUMMARY_STATS,
    build_returns,
    build_timeline,
    compute_sp500,
    multi_year_returns,
    overlay_lines,
    return_summary,
)

ONE_YEAR = [0.1, 0.1, (100 - 121) / 121, 0.2, 0.25]


def test_compute_sp500_shape(handle):
    out = compute_sp500({"time_period": [1990, 2010], "years": 1, "stats": ["mean"]}, handle)
    assert out["filters"]["start_year"] == 2000
    assert out["filters"]["end_year"] == 2004
    assert set(out["outputs"]) == {"timeline", "returns", "summary"}
    assert out["outputs"]["timeline"]["rows"] == 10
    assert "layer" in out["outputs"]["returns"]["chart"]


def test_returns_table(handle):
    out = build_returns(Sp500Selections(2000, 2004, years=1), handle)
    assert [r["start_year"] for r in out["table"]] == [2000, 2001, 2002, 2003, 2004]
    assert [r["return"] for r in out["table"]] == pytest.approx(ONE_YEAR)
    assert out["overlays"] == []


def test_summary_matches_direct_stats(handle):
    returns = multi_year_returns(Sp500Selections(2000, 2004, years=1), handle.sp500)
    summary = dict(zip(return_summary(returns).keys(), return_summary(returns).column("value")))
    assert list(summary) == list(SUMMARY_STATS)
    mean = sum(ONE_YEAR) / 5
    assert summary["Mean"] == pytest.approx(mean)
    assert summary["Median"] == pytest.approx(0.1)
    assert summary["Standard Deviation"] == pytest.approx(math.sqrt(sum((r - mean) ** 2 for r in ONE_YEAR) / 4))
    assert summary["IQR"] == pytest.approx(summary["75th Percentile"] - summary["25th Percentile"])


def test_summary_of_no_returns_is_undefined(handle):
    returns = multi_year_returns(Sp500Selections(2003, 2004, years=5), handle.sp500)
    assert returns.empty
    assert return_summary(returns).column("value") == [None] * len(SUMMARY_STATS)
    assert overlay_lines(returns, ("mean",)) == []


def test_sd_band_uses_mean_even_when_mean_line_hidden(handle):
    returns = multi_year_returns(Sp500Selections(2000, 2004, years=1), handle.sp500)
    lines = {ln["label"]: ln for ln in overlay_lines(returns, ("sd",))}
    assert set(lines) == {"Mean + SD", "Mean - SD"}
    mean = sum(ONE_YEAR) / 5
    assert lines["Mean + SD"]["value"] + lines["Mean - SD"]["value"] == pytest.approx(2 * mean)
    assert lines["Mean + SD"]["dashed"] is True


def test_overlays_in_selection_order(handle):
    returns = multi_year_returns(Sp500Selections(2000, 2004, years=1), handle.sp500)
    labels = [ln["label"] for ln in overlay_lines(returns, ("median", "mean"))]
    assert labels == ["Mean", "Median"]


def test_log_scale_timeline(handle):
    out = build_timeline(Sp500Selections(2001, 2002, scale="log"), handle)
    assert out["rows"] == 4
    y = out["chart"]["encoding"]["y"]
    assert y["scale"]["type"] == "log"
    assert y["title"] == "Log10 of Closing Value"
