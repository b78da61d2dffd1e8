from __future__ import annotations

from dataclasses import asdict
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple

import altair as alt
import pandas as pd

from dashcore.charts import bar_chart, to_vega_spec
from dashcore.data import VEHICLE_TYPES, DataHandle
from dashcore.engine import Dataset, SummaryTable, aggregate
from dashcore.filters import ALL_COUNTIES, CrashSelections, normalize_crashes
from dashcore.predicates import Between, Equals, FilterSpec, apply_filters
from dashcore.stats import Measure, Stat

BASE_COLOR = "skyblue"
ALCOHOL_COLOR = "salmon"


class CrashStat(str, Enum):
    ALL = "All"
    CAR_OTHER = "Car-Car/Other"
    PEDESTRIAN = "Pedestrian-Car"
    BICYCLE = "Bicycle-Car"
    MOTORCYCLE = "Motorcycle-Car"
    TRUCK = "Truck-Car"
    KILLED = "Killed"
    INJURED = "Injured"


TIME_STAT_LABELS: Dict[CrashStat, str] = {
    CrashStat.ALL: "All accidents",
    CrashStat.CAR_OTHER: "Car/Other accidents",
    CrashStat.PEDESTRIAN: "Pedestrian accidents",
    CrashStat.BICYCLE: "Bicycle accidents",
    CrashStat.MOTORCYCLE: "Motorcycle accidents",
    CrashStat.TRUCK: "Truck accidents",
    CrashStat.KILLED: "Deaths",
    CrashStat.INJURED: "Injuries",
}

GROUP_STATS: Dict[str, Stat] = {
    "NUM_CRASHES": Stat.count(),
    "TOTAL_KILLED": Stat.sum("NUMBER_KILLED"),
    "TOTAL_INJURED": Stat.sum("NUMBER_INJURED"),
}


def _accidents(tag: CrashStat) -> Measure:
    return Measure("NUM_CRASHES", GROUP_STATS["NUM_CRASHES"], "Number of Accidents", f"{tag.value} Accidents")


MEASURES: Dict[CrashStat, Measure] = {
    CrashStat.KILLED: Measure("TOTAL_KILLED", GROUP_STATS["TOTAL_KILLED"], "Number of Deaths", "Car Accident Deaths"),
    CrashStat.INJURED: Measure("TOTAL_INJURED", GROUP_STATS["TOTAL_INJURED"], "Number of Injuries", "Car Accident Injuries"),
    **{tag: _accidents(tag) for tag in CrashStat if tag not in (CrashStat.KILLED, CrashStat.INJURED)},
}

ALCOHOL_TITLES: Dict[CrashStat, str] = {
    CrashStat.KILLED: "Alcohol-Involved Car Accident Deaths",
    CrashStat.INJURED: "Alcohol-Involved Car Accident Injuries",
    CrashStat.ALL: "All Alcohol-Involved Accidents",
}

TIME_SCALE_LABELS: Dict[str, str] = {
    "ACCIDENT_YEAR": "Year",
    "ACCIDENT_QUARTER_YEAR": "Quarter-Year",
    "ACCIDENT_MONTH_YEAR": "Month-Year",
}

SEVERITY_LEVELS = ["possible injury", "minor injury", "severe injury", "fatal injury"]
ALCOHOL_LEVELS = ["yes", "no"]
WEATHER_LEVELS = ["clear", "cloudy", "fog", "raining", "snowing", "wind", "other", "unknown"]

PALETTES: Dict[str, List[Tuple[str, str]]] = {
    "VEHICLES": list(zip(VEHICLE_TYPES, ["skyblue", "coral", "gold", "#43CD80", "violet"])),
    "COLLISION_SEVERITY": list(zip(SEVERITY_LEVELS, ["#00CD00", "gold", "orange", "#CD0000"])),
    "ALCOHOL_INVOLVED": list(zip(ALCOHOL_LEVELS, ["skyblue", "salmon"])),
    "WEATHER_1": list(
        zip(WEATHER_LEVELS, ["skyblue", "#999999", "#00868B", "slateblue", "#CDC9C9", "aquamarine", "#CD5B45", "#8B3E2F"])
    ),
}

MAP_COLUMNS = [
    "POINT_X",
    "POINT_Y",
    "COLLISION_DATE",
    "VEHICLES",
    "TYPE_OF_COLLISION",
    "COLLISION_SEVERITY",
    "ALCOHOL_INVOLVED",
    "WEATHER_1",
    "COUNTY",
    "CASUALTIES",
    "popup",
]


def crash_stat(sel: CrashSelections) -> CrashStat:
    return CrashStat(sel.time_stat)


def alcohol_title(tag: CrashStat) -> str:
    return ALCOHOL_TITLES.get(tag, f"Alcohol-Involved {tag.value} Accidents")


def year_range_label(sel: CrashSelections) -> str:
    if sel.start_year == sel.end_year:
        return str(sel.start_year)
    return f"{sel.start_year}-{sel.end_year}"


def axis_label_size(sel: CrashSelections) -> int:
    num_years = max(1, sel.end_year - sel.start_year)
    if sel.time_scale == "ACCIDENT_QUARTER_YEAR":
        return max(4, 11 - num_years)
    if sel.time_scale == "ACCIDENT_MONTH_YEAR":
        return max(2, 9 - num_years)
    return 10


def selections_for(raw: dict | CrashSelections, handle: DataHandle) -> CrashSelections:
    if isinstance(raw, CrashSelections):
        return raw
    return normalize_crashes(
        raw or {},
        year_bounds=handle.year_bounds("crashes", "ACCIDENT_YEAR"),
        time_stats=[t.value for t in CrashStat],
        counties=handle.counties(),
    )


def crash_filter(sel: CrashSelections, *, alcohol: bool = False, hourly: bool = False, county: bool = False) -> FilterSpec:
    spec: List[Any] = [Between("ACCIDENT_YEAR", sel.start_year, sel.end_year)]
    if sel.time_stat in VEHICLE_TYPES:
        spec.append(Equals("VEHICLES", sel.time_stat))
    if alcohol:
        spec.append(Equals("ALCOHOL_INVOLVED", "yes"))
    if hourly:
        spec.append(Between("COLLISION_TIME", 0, 2359))
    if county and sel.county != ALL_COUNTIES:
        spec.append(Equals("COUNTY", sel.county))
    return tuple(spec)


def timeline_table(sel: CrashSelections, dataset: Dataset, *, alcohol: bool = False) -> SummaryTable:
    return aggregate(dataset, crash_filter(sel, alcohol=alcohol), sel.time_scale, GROUP_STATS, sort="key")


def hourly_table(sel: CrashSelections, dataset: Dataset, *, alcohol: bool = False) -> SummaryTable:
    return aggregate(dataset, crash_filter(sel, alcohol=alcohol, hourly=True), "COLLISION_HOUR", GROUP_STATS, sort="key")


def _overlaid(base: alt.Chart, overlay: Optional[alt.Chart]) -> alt.TopLevelMixin:
    return base if overlay is None else alt.layer(base, overlay)


def _hour_chart(table: SummaryTable, measure: Measure, title: str, color: str) -> alt.Chart:
    return bar_chart(
        table.frame,
        "COLLISION_HOUR",
        measure.column,
        title=title,
        x_title="Hour Start",
        y_title=measure.label,
        color=color,
        x_sort=list(range(24)),
        label_size=8,
        label_expr="datum.value + ':00'",
    )


def build_timeline(sel: CrashSelections, handle: DataHandle) -> Dict[str, Any]:
    dataset = handle.require("crashes")
    tag = crash_stat(sel)
    measure = MEASURES[tag]
    x_label = TIME_SCALE_LABELS[sel.time_scale]
    table = timeline_table(sel, dataset)
    alcohol = timeline_table(sel, dataset, alcohol=True) if sel.alcohol else None

    def chart(t: SummaryTable, color: str) -> alt.Chart:
        return bar_chart(
            t.frame,
            sel.time_scale,
            measure.column,
            title=f"{measure.title} by {x_label}",
            x_title=x_label,
            y_title=measure.label,
            color=color,
            label_size=axis_label_size(sel),
        )

    return {
        "measure": measure.column,
        "table": table.to_records(),
        "alcohol_table": alcohol.to_records() if alcohol is not None else None,
        "chart": to_vega_spec(_overlaid(chart(table, BASE_COLOR), chart(alcohol, ALCOHOL_COLOR) if alcohol is not None else None)),
    }


def build_hourly(sel: CrashSelections, handle: DataHandle) -> Dict[str, Any]:
    dataset = handle.require("crashes")
    measure = MEASURES[crash_stat(sel)]
    title = f"{measure.title} by Time of Day ({year_range_label(sel)})"
    table = hourly_table(sel, dataset)
    alcohol = hourly_table(sel, dataset, alcohol=True) if sel.alcohol else None
    base = _hour_chart(table, measure, title, BASE_COLOR)
    overlay = _hour_chart(alcohol, measure, title, ALCOHOL_COLOR) if alcohol is not None else None
    return {
        "measure": measure.column,
        "table": table.to_records(),
        "alcohol_table": alcohol.to_records() if alcohol is not None else None,
        "chart": to_vega_spec(_overlaid(base, overlay)),
    }


def build_alcohol_hourly(sel: CrashSelections, handle: DataHandle) -> Dict[str, Any]:
    tag = crash_stat(sel)
    measure = MEASURES[tag]
    table = hourly_table(sel, handle.require("crashes"), alcohol=True)
    title = f"{alcohol_title(tag)} by Time of Day ({year_range_label(sel)})"
    return {
        "measure": measure.column,
        "table": table.to_records(),
        "chart": to_vega_spec(_hour_chart(table, measure, title, ALCOHOL_COLOR)),
    }


def map_points(sel: CrashSelections, dataset: Dataset) -> pd.DataFrame:
    df = apply_filters(dataset.frame, crash_filter(sel, county=True))
    df["CASUALTIES"] = df["NUMBER_KILLED"] + df["NUMBER_INJURED"]
    dates = pd.to_datetime(df["COLLISION_DATE"], errors="coerce").dt.strftime("%Y-%m-%d")
    df["COLLISION_DATE"] = dates
    df["popup"] = [
        f"{d}, {v}, Type: {t}, Severity: {s}, Casualties: {'NA' if pd.isna(c) else int(c)}"
        for d, v, t, s, c in zip(
            dates,
            df["VEHICLES"],
            df.get("TYPE_OF_COLLISION", pd.Series(None, index=df.index)),
            df.get("COLLISION_SEVERITY", pd.Series(None, index=df.index)),
            df["CASUALTIES"],
        )
    ]
    for col in MAP_COLUMNS:
        if col not in df.columns:
            df[col] = None
    return df[MAP_COLUMNS].reset_index(drop=True)


def legend_for(color: str) -> List[Dict[str, str]]:
    return [{"value": value, "color": hex_} for value, hex_ in PALETTES.get(color, [])]


def map_chart(points: pd.DataFrame, sel: CrashSelections) -> alt.Chart:
    if sel.color == "None":
        color = alt.value(BASE_COLOR)
    else:
        palette = PALETTES[sel.color]
        color = alt.Color(
            f"{sel.color}:N",
            title="Legend",
            scale=alt.Scale(domain=[v for v, _ in palette], range=[c for _, c in palette]),
            legend=alt.Legend(orient="bottom-left"),
        )
    return (
        alt.Chart(points.dropna(subset=["POINT_X", "POINT_Y"]))
        .mark_circle(size=20, opacity=0.8)
        .encode(
            longitude="POINT_X:Q",
            latitude="POINT_Y:Q",
            color=color,
            tooltip=[alt.Tooltip("popup:N", title="Collision")],
        )
        .project(type="mercator")
    )


def build_map(sel: CrashSelections, handle: DataHandle) -> Dict[str, Any]:
    points = map_points(sel, handle.require("crashes"))
    return {
        "count": len(points),
        "color": sel.color,
        "legend": legend_for(sel.color),
        "points": points.to_dict(orient="records"),
        "chart": to_vega_spec(map_chart(points, sel)),
    }


OUTPUTS: Dict[str, Callable[[CrashSelections, DataHandle], Dict[str, Any]]] = {
    "timeline": build_timeline,
    "hourly": build_hourly,
    "alcohol_hourly": build_alcohol_hourly,
    "map": build_map,
}


def compute_crashes(selections: dict | CrashSelections, handle: DataHandle, *, outputs: Optional[List[str]] = None) -> Dict[str, Any]:
    sel = selections_for(selections, handle)
    names = outputs or ["timeline", "hourly", "alcohol_hourly"]
    return {"filters": asdict(sel), "outputs": {name: OUTPUTS[name](sel, handle) for name in names}}


def compute_crash_map(selections: dict | CrashSelections, handle: DataHandle) -> Dict[str, Any]:
    return compute_crashes(selections, handle, outputs=["map"])
