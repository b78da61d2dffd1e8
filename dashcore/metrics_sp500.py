from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Callable, Dict, List, Optional

import altair as alt
import numpy as np
import pandas as pd

from dashcore.charts import AXIS_VALUE, bar_chart, rule_layer, to_vega_spec
from dashcore.data import DataHandle
from dashcore.engine import Dataset, SummaryTable, describe, sliding_window_returns
from dashcore.filters import Sp500Selections, normalize_sp500
from dashcore.predicates import Between, FilterSpec, apply_filters
from dashcore.stats import Stat

LINE_COLOR = "#11AA66"

SUMMARY_STATS: Dict[str, Stat] = {
    "Mean": Stat.mean("return"),
    "Standard Deviation": Stat.std("return"),
    "10th Percentile": Stat.percentile("return", 10),
    "25th Percentile": Stat.percentile("return", 25),
    "Median": Stat.median("return"),
    "75th Percentile": Stat.percentile("return", 75),
    "90th Percentile": Stat.percentile("return", 90),
    "IQR": Stat.iqr("return"),
}


@dataclass(frozen=True)
class Overlay:
    label: str
    color: str
    dashed: bool = False


OVERLAYS: Dict[str, Overlay] = {
    "mean": Overlay("Mean", "mediumblue"),
    "median": Overlay("Median", "red"),
    "sd_upper": Overlay("Mean + SD", "mediumblue", dashed=True),
    "sd_lower": Overlay("Mean - SD", "mediumblue", dashed=True),
}


def selections_for(raw: dict | Sp500Selections, handle: DataHandle) -> Sp500Selections:
    if isinstance(raw, Sp500Selections):
        return raw
    return normalize_sp500(raw or {}, year_bounds=handle.year_bounds("sp500", "year"))


def sp500_filter(sel: Sp500Selections) -> FilterSpec:
    return (Between("year", sel.start_year, sel.end_year),)


def multi_year_returns(sel: Sp500Selections, dataset: Dataset) -> SummaryTable:
    return sliding_window_returns(
        dataset,
        "year",
        "close",
        sel.years,
        order_field="date",
        filter_spec=sp500_filter(sel),
        key="start_year",
    )


def return_summary(returns: SummaryTable) -> SummaryTable:
    if returns.empty:
        frame = pd.DataFrame({"statistic": list(SUMMARY_STATS), "value": [np.nan] * len(SUMMARY_STATS)})
        return SummaryTable("statistic", frame)
    return describe(returns.frame, (), "return", SUMMARY_STATS)


def overlay_lines(returns: SummaryTable, stats: tuple) -> List[Dict[str, Any]]:
    """Reference lines for the returns chart.

    The SD band is centred on a mean computed here, whether or not the mean
    line itself is selected.
    """
    if returns.empty or not stats:
        return []
    values = describe(
        returns.frame,
        (),
        "return",
        {"mean": Stat.mean("return"), "median": Stat.median("return"), "sd": Stat.std("return")},
    )
    by_name = dict(zip(values.keys(), values.column("value")))
    mean, median, sd = by_name["mean"], by_name["median"], by_name["sd"]

    points: List[tuple] = []
    if "mean" in stats:
        points.append(("mean", mean))
    if "median" in stats:
        points.append(("median", median))
    if "sd" in stats and mean is not None and sd is not None:
        points.append(("sd_upper", mean + sd))
        points.append(("sd_lower", mean - sd))

    return [
        {"label": OVERLAYS[name].label, "value": value, "color": OVERLAYS[name].color, "dashed": OVERLAYS[name].dashed}
        for name, value in points
        if value is not None
    ]


def timeline_chart(df: pd.DataFrame, sel: Sp500Selections) -> alt.Chart:
    log = sel.scale == "log"
    y_title = "Log10 of Closing Value" if log else "Closing Value ($)"
    return (
        alt.Chart(df[["date", "close"]], title=f"S&P 500 ({sel.start_year} - {sel.end_year})")
        .mark_line(color=LINE_COLOR)
        .encode(
            x=alt.X("date:T", title="Date", axis=alt.Axis(labelAngle=-45, grid=False)),
            y=alt.Y("close:Q", title=y_title, scale=alt.Scale(type="log" if log else "linear"), axis=alt.Axis(**AXIS_VALUE)),
            tooltip=[alt.Tooltip("date:T", title="Date"), alt.Tooltip("close:Q", title="Close", format=",.2f")],
        )
    )


def returns_chart(returns: SummaryTable, lines: List[Dict[str, Any]], sel: Sp500Selections) -> alt.TopLevelMixin:
    bars = bar_chart(
        returns.frame,
        "start_year",
        "return",
        title=f"{sel.years} - Year Returns for S&P 500 ({sel.start_year} - {sel.end_year})",
        x_title=f"Starting Year of {sel.years} Year Period",
        y_title="Percent Return",
        color=LINE_COLOR,
        y_format=".0%",
    )
    rules = rule_layer(lines)
    return bars if rules is None else alt.layer(bars, rules)


def build_timeline(sel: Sp500Selections, handle: DataHandle) -> Dict[str, Any]:
    df = apply_filters(handle.require("sp500").frame, sp500_filter(sel))
    return {"rows": len(df), "chart": to_vega_spec(timeline_chart(df, sel))}


def build_returns(sel: Sp500Selections, handle: DataHandle) -> Dict[str, Any]:
    returns = multi_year_returns(sel, handle.require("sp500"))
    lines = overlay_lines(returns, sel.stats)
    return {
        "table": returns.to_records(),
        "overlays": lines,
        "chart": to_vega_spec(returns_chart(returns, lines, sel)),
    }


def build_summary(sel: Sp500Selections, handle: DataHandle) -> Dict[str, Any]:
    returns = multi_year_returns(sel, handle.require("sp500"))
    return {"table": return_summary(returns).to_records()}


OUTPUTS: Dict[str, Callable[[Sp500Selections, DataHandle], Dict[str, Any]]] = {
    "timeline": build_timeline,
    "returns": build_returns,
    "summary": build_summary,
}


def compute_sp500(selections: dict | Sp500Selections, handle: DataHandle, *, outputs: Optional[List[str]] = None) -> Dict[str, Any]:
    sel = selections_for(selections, handle)
    names = outputs or list(OUTPUTS)
    return {"filters": asdict(sel), "outputs": {name: OUTPUTS[name](sel, handle) for name in names}}
