import pytest

from dashcore.filters import CrashSelections
from dashcore.metrics_crashes import (
    CrashStat,
    MEASURES,
    alcohol_title,
    axis_label_size,
    build_alcohol_hourly,
    build_hourly,
    build_map,
    build_timeline,
    compute_crash_map,
    compute_crashes,
    crash_filter,
    hourly_table,
    legend_for,
    timeline_table,
    year_range_label,
)
from dashcore.predicates import Between, Equals

ALL_YEARS = CrashSelections(2019, 2021)


def test_timeline_counts_and_sums(crash_frame):
    records = timeline_table(ALL_YEARS, crash_frame).to_records()
    assert [r["ACCIDENT_YEAR"] for r in records] == [2019, 2020, 2021]
    assert [r["NUM_CRASHES"] for r in records] == [2, 1, 2]
    assert [r["TOTAL_KILLED"] for r in records] == [1, 0, 0]
    assert [r["TOTAL_INJURED"] for r in records] == [1, 2, 3]


def test_vehicle_stat_filters_vehicle_type(crash_frame):
    sel = CrashSelections(2019, 2021, time_stat="Truck-Car")
    assert crash_filter(sel) == (Between("ACCIDENT_YEAR", 2019, 2021), Equals("VEHICLES", "Truck-Car"))
    table = timeline_table(sel, crash_frame)
    assert table.keys() == [2019]
    assert table.column("NUM_CRASHES") == [1]


def test_hourly_drops_invalid_times(crash_frame):
    table = hourly_table(ALL_YEARS, crash_frame)
    assert table.keys() == [0, 8, 14, 22]
    assert sum(table.column("NUM_CRASHES")) == 4


def test_alcohol_hourly(crash_frame, handle):
    assert hourly_table(ALL_YEARS, crash_frame, alcohol=True).keys() == [0, 22]
    out = build_alcohol_hourly(CrashSelections(2019, 2021, time_stat="Killed"), handle)
    assert out["measure"] == "TOTAL_KILLED"
    assert out["chart"]["title"] == "Alcohol-Involved Car Accident Deaths by Time of Day (2019-2021)"


def test_quarter_scale_and_alcohol_overlay(handle):
    sel = CrashSelections(2019, 2021, time_scale="ACCIDENT_QUARTER_YEAR", alcohol=True)
    out = build_timeline(sel, handle)
    assert [r["ACCIDENT_QUARTER_YEAR"] for r in out["table"]] == ["2019-Q1", "2019-Q2", "2020-Q3", "2021-Q1", "2021-Q4"]
    assert [r["ACCIDENT_QUARTER_YEAR"] for r in out["alcohol_table"]] == ["2019-Q2", "2021-Q1", "2021-Q4"]
    assert len(out["chart"]["layer"]) == 2


def test_overlay_absent_without_alcohol(handle):
    out = build_hourly(ALL_YEARS, handle)
    assert out["alcohol_table"] is None
    assert "layer" not in out["chart"]


def test_empty_year_range_gives_empty_tables(handle):
    out = compute_crashes({"start_year": 2020, "end_year": 2020, "time_stat": "Pedestrian-Car"}, handle)
    assert out["outputs"]["timeline"]["table"] == []
    assert out["outputs"]["hourly"]["table"] == []


def test_map_points_by_county(handle):
    out = build_map(CrashSelections(2019, 2021, county="Alameda", color="VEHICLES"), handle)
    assert out["count"] == 3
    assert {p["COUNTY"] for p in out["points"]} == {"Alameda"}
    popups = sorted(p["popup"] for p in out["points"])
    assert popups[0] == "2019-01-15, Truck-Car, Type: rear end, Severity: minor injury, Casualties: 1"
    assert popups[1].endswith("Casualties: NA")
    assert out["legend"][0] == {"value": "Car-Car/Other", "color": "skyblue"}


def test_compute_crash_map_normalizes(handle):
    out = compute_crash_map({"county": "Atlantis", "color": "purple"}, handle)
    assert out["filters"]["county"] == "All"
    assert out["filters"]["color"] == "None"
    assert out["outputs"]["map"]["count"] == 5
    assert out["outputs"]["map"]["legend"] == []


def test_labels():
    assert year_range_label(CrashSelections(2020, 2020)) == "2020"
    assert alcohol_title(CrashStat.BICYCLE) == "Alcohol-Involved Bicycle-Car Accidents"
    assert MEASURES[CrashStat.INJURED].column == "TOTAL_INJURED"
    assert MEASURES[CrashStat.PEDESTRIAN].title == "Pedestrian-Car Accidents"
    assert axis_label_size(CrashSelections(2019, 2021, time_scale="ACCIDENT_MONTH_YEAR")) == 7
    assert axis_label_size(CrashSelections(2010, 2021, time_scale="ACCIDENT_QUARTER_YEAR")) == 4
    assert legend_for("None") == []


def test_unknown_time_stat_rejected():
    with pytest.raises(ValueError):
        CrashStat("Boats")
