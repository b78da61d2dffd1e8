from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

import altair as alt
import pandas as pd

alt.data_transformers.disable_max_rows()

AXIS_VALUE = dict(gridDash=[4, 4], domain=False, ticks=False)


def to_vega_spec(chart: alt.TopLevelMixin) -> Dict[str, Any]:
    """Convert an Altair chart into a Vega-Lite spec dict (JSON-serializable)."""
    return chart.to_dict()


def bar_chart(
    df: pd.DataFrame,
    x: str,
    y: str,
    *,
    title: str,
    x_title: str,
    y_title: str,
    color: str = "skyblue",
    x_type: str = "O",
    x_sort: Optional[Sequence[Any]] = None,
    y_format: Optional[str] = None,
    label_angle: int = -45,
    label_size: Optional[int] = None,
    label_expr: Optional[str] = None,
) -> alt.Chart:
    x_axis = dict(labelAngle=label_angle, grid=False)
    if label_size:
        x_axis["labelFontSize"] = label_size
    if label_expr:
        x_axis["labelExpr"] = label_expr
    y_axis = dict(AXIS_VALUE)
    if y_format:
        y_axis["format"] = y_format
    return (
        alt.Chart(df, title=title)
        .mark_bar(color=color)
        .encode(
            x=alt.X(f"{x}:{x_type}", title=x_title, sort=list(x_sort) if x_sort is not None else "ascending", axis=alt.Axis(**x_axis)),
            y=alt.Y(f"{y}:Q", title=y_title, axis=alt.Axis(**y_axis)),
            tooltip=[alt.Tooltip(f"{x}:{x_type}", title=x_title), alt.Tooltip(f"{y}:Q", title=y_title, format=y_format or ",")],
        )
    )


def rule_layer(lines: List[Dict[str, Any]], *, value_format: str = ".1%") -> Optional[alt.LayerChart]:
    """Horizontal reference lines with labels.

    Each line is a dict with ``label``, ``value``, ``color`` and ``dashed``.
    """
    lines = [ln for ln in lines if ln.get("value") is not None]
    if not lines:
        return None
    df = pd.DataFrame(lines)
    domain = df["label"].tolist()
    colors = df["color"].tolist()
    base = alt.Chart(df).encode(
        y=alt.Y("value:Q"),
        color=alt.Color("label:N", title="Statistic", scale=alt.Scale(domain=domain, range=colors)),
        tooltip=[alt.Tooltip("label:N", title="Statistic"), alt.Tooltip("value:Q", title="Value", format=value_format)],
    )
    rules = base.mark_rule(size=2).encode(
        strokeDash=alt.condition("datum.dashed", alt.value([6, 4]), alt.value([1, 0])),
    )
    labels = base.mark_text(align="left", dx=4, dy=-6).encode(x=alt.value(0), text="label:N")
    return alt.layer(rules, labels)
