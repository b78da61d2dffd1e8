"""Aggregation engine: filtered dataset -> chart-ready summary tables.

Every function here is a pure transform. Inputs are never mutated and the
same inputs always produce an identical SummaryTable.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Literal, Mapping, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd

from dashcore.errors import EmptyDatasetError, SchemaError
from dashcore.predicates import Predicate, apply_filters, spec_fields
from dashcore.stats import Stat, compute_stat

logger = logging.getLogger(__name__)

SortPolicy = Literal["key", "first_seen", "asc", "desc"]
SORT_POLICIES = ("key", "first_seen", "asc", "desc")


@dataclass(frozen=True)
class Dataset:
    """Read-only handle on one loaded table."""

    name: str
    frame: pd.DataFrame

    def __post_init__(self) -> None:
        if self.frame is None or self.frame.empty:
            raise EmptyDatasetError(f"Dataset {self.name!r} has no records")

    def __len__(self) -> int:
        return len(self.frame)


@dataclass(frozen=True)
class GroupKey:
    """A bucket key computed from the frame on each filter pass."""

    name: str
    fields: Tuple[str, ...]
    func: Callable[[pd.DataFrame], pd.Series]

    def compute(self, df: pd.DataFrame) -> pd.Series:
        return self.func(df)


@dataclass(frozen=True)
class SummaryTable:
    key: str
    frame: pd.DataFrame

    def __len__(self) -> int:
        return len(self.frame)

    @property
    def empty(self) -> bool:
        return self.frame.empty

    def keys(self) -> List[Any]:
        return self.frame[self.key].tolist()

    def column(self, name: str) -> List[Optional[Any]]:
        return [_clean(v) for v in self.frame[name].tolist()]

    def to_records(self) -> List[Dict[str, Any]]:
        return [{k: _clean(v) for k, v in row.items()} for row in self.frame.to_dict(orient="records")]


def _clean(value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, np.generic):
        value = value.item()
    try:
        if pd.isna(value):
            return None
    except (TypeError, ValueError):
        pass
    return value


def _as_frame(dataset: Union[Dataset, pd.DataFrame]) -> Tuple[str, pd.DataFrame]:
    if isinstance(dataset, Dataset):
        return dataset.name, dataset.frame
    if dataset is None or dataset.empty:
        raise EmptyDatasetError("Source dataset has no records")
    return "frame", dataset


def _normalize_stats(statistics: Union[Stat, Sequence[Stat], Mapping[str, Stat]]) -> List[Tuple[str, Stat]]:
    if isinstance(statistics, Stat):
        return [(statistics.name, statistics)]
    if isinstance(statistics, Mapping):
        out = [(str(k), v) for k, v in statistics.items()]
    else:
        out = [(s.name, s) for s in statistics]
    if not out:
        raise ValueError("At least one statistic is required")
    labels = [label for label, _ in out]
    dupes = sorted({label for label in labels if labels.count(label) > 1})
    if dupes:
        raise ValueError(f"Duplicate statistic column(s): {', '.join(dupes)}")
    return out


def _check_schema(df: pd.DataFrame, fields: Iterable[Optional[str]]) -> None:
    missing = [f for f in fields if f and f not in df.columns]
    if missing:
        raise SchemaError(missing, [str(c) for c in df.columns])


def _natural_order(df: pd.DataFrame, key: str) -> pd.DataFrame:
    # mergesort keeps first-seen order among equal keys
    return df.sort_values(key, kind="mergesort", na_position="last").reset_index(drop=True)


def order_table(df: pd.DataFrame, key: str, sort: str = "key", sort_by: Optional[str] = None) -> pd.DataFrame:
    """Apply a sort policy. Ranked policies break ties by natural key order."""
    if sort not in SORT_POLICIES:
        raise ValueError(f"Unknown sort policy {sort!r}; expected one of {SORT_POLICIES}")
    if sort == "first_seen" or df.empty:
        return df.reset_index(drop=True)
    ordered = _natural_order(df, key)
    if sort == "key":
        return ordered
    col = sort_by or next(c for c in ordered.columns if c != key)
    if col not in ordered.columns:
        raise SchemaError([col], [str(c) for c in ordered.columns])
    ordered = ordered.assign(_key_rank=np.arange(len(ordered)))
    ordered = ordered.sort_values(
        [col, "_key_rank"],
        ascending=[sort == "asc", True],
        na_position="last",
        kind="mergesort",
    )
    return ordered.drop(columns="_key_rank").reset_index(drop=True)


def aggregate(
    dataset: Union[Dataset, pd.DataFrame],
    filter_spec: Sequence[Predicate],
    group_by: Union[str, GroupKey],
    statistics: Union[Stat, Sequence[Stat], Mapping[str, Stat]],
    *,
    sort: SortPolicy = "key",
    sort_by: Optional[str] = None,
) -> SummaryTable:
    name, df = _as_frame(dataset)
    stats = _normalize_stats(statistics)
    key_name = group_by.name if isinstance(group_by, GroupKey) else group_by
    key_fields = list(group_by.fields) if isinstance(group_by, GroupKey) else [group_by]
    if any(col == key_name for col, _ in stats):
        raise ValueError(f"Statistic column {key_name!r} collides with the group key; label it differently")
    _check_schema(df, spec_fields(filter_spec) + key_fields + [s.field for _, s in stats])

    columns = [key_name] + [col for col, _ in stats]
    filtered = apply_filters(df, filter_spec)
    if filtered.empty:
        logger.debug("aggregate(%s): no records match %d predicate(s)", name, len(filter_spec))
        return SummaryTable(key_name, pd.DataFrame(columns=columns))

    keys = group_by.compute(filtered) if isinstance(group_by, GroupKey) else filtered[group_by]
    rows: List[Dict[str, Any]] = []
    for key, group in filtered.groupby(keys.rename(key_name), sort=False, dropna=False, observed=True):
        row: Dict[str, Any] = {key_name: key}
        for col, stat in stats:
            value = compute_stat(group, stat)
            row[col] = np.nan if value is None else value
        rows.append(row)

    table = pd.DataFrame(rows, columns=columns)
    return SummaryTable(key_name, order_table(table, key_name, sort, sort_by))


def describe(
    dataset: Union[Dataset, pd.DataFrame],
    filter_spec: Sequence[Predicate],
    field: str,
    statistics: Union[Sequence[Stat], Mapping[str, Stat]],
) -> SummaryTable:
    """Whole-set statistics over one field as ``(statistic, value)`` rows."""
    _, df = _as_frame(dataset)
    stats = _normalize_stats(statistics)
    _check_schema(df, spec_fields(filter_spec) + [field] + [s.field for _, s in stats])
    filtered = apply_filters(df, filter_spec)
    values = [compute_stat(filtered, stat) for _, stat in stats]
    frame = pd.DataFrame(
        {
            "statistic": [label for label, _ in stats],
            "value": [np.nan if v is None else v for v in values],
        }
    )
    return SummaryTable("statistic", frame)


def sliding_window_returns(
    dataset: Union[Dataset, pd.DataFrame],
    period_field: str,
    value_field: str,
    window: int,
    *,
    order_field: Optional[str] = None,
    filter_spec: Sequence[Predicate] = (),
    key: Optional[str] = None,
) -> SummaryTable:
    """Return over every ``window``-period span, keyed by its first period.

    For start period ``Y`` the span covers periods ``Y .. Y + window - 1`` and
    the return is ``(last - first) / first`` of ``value_field`` in timeline
    order. A span with no rows keeps its start with an undefined return.
    Spans running past the last available period are not produced.
    """
    window = int(window)
    if window < 1:
        raise ValueError(f"window must be >= 1, got {window}")
    _, df = _as_frame(dataset)
    _check_schema(df, spec_fields(filter_spec) + [period_field, value_field, order_field])
    key = key or f"start_{period_field}"

    filtered = apply_filters(df, filter_spec)
    filtered = filtered.dropna(subset=[period_field, value_field])
    if filtered.empty:
        return SummaryTable(key, pd.DataFrame(columns=[key, "return"]))

    filtered = filtered.sort_values(order_field or period_field, kind="mergesort")
    periods = filtered[period_field].astype(int)
    first, last = int(periods.min()), int(periods.max())

    starts: List[int] = []
    returns: List[float] = []
    for start in range(first, last - window + 2):
        span = filtered.loc[periods.between(start, start + window - 1), value_field]
        starts.append(start)
        if span.empty:
            returns.append(np.nan)
            continue
        begin, end = float(span.iloc[0]), float(span.iloc[-1])
        returns.append((end - begin) / begin if begin != 0 else np.nan)

    return SummaryTable(key, pd.DataFrame({key: starts, "return": returns}, columns=[key, "return"]))
