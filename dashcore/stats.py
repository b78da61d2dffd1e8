from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Optional

import pandas as pd


class StatKind(str, Enum):
    COUNT = "count"
    SUM = "sum"
    MEAN = "mean"
    MEDIAN = "median"
    STD = "std"
    PERCENTILE = "percentile"
    IQR = "iqr"


@dataclass(frozen=True)
class Stat:
    """A statistic selection: what to compute and over which field.

    ``count`` without a field counts records; every other kind needs a field
    and ignores missing values in it. ``percentile`` takes ``p`` in [0, 100]
    and interpolates linearly between order statistics.
    """

    kind: StatKind
    field: Optional[str] = None
    p: Optional[float] = None

    def __post_init__(self) -> None:
        if self.kind is not StatKind.COUNT and not self.field:
            raise ValueError(f"{self.kind.value} requires a field")
        if self.kind is StatKind.PERCENTILE:
            if self.p is None or not 0 <= float(self.p) <= 100:
                raise ValueError(f"percentile must be within [0, 100], got {self.p!r}")

    @classmethod
    def count(cls, field: Optional[str] = None) -> "Stat":
        return cls(StatKind.COUNT, field)

    @classmethod
    def sum(cls, field: str) -> "Stat":
        return cls(StatKind.SUM, field)

    @classmethod
    def mean(cls, field: str) -> "Stat":
        return cls(StatKind.MEAN, field)

    @classmethod
    def median(cls, field: str) -> "Stat":
        return cls(StatKind.MEDIAN, field)

    @classmethod
    def std(cls, field: str) -> "Stat":
        return cls(StatKind.STD, field)

    @classmethod
    def percentile(cls, field: str, p: float) -> "Stat":
        return cls(StatKind.PERCENTILE, field, float(p))

    @classmethod
    def iqr(cls, field: str) -> "Stat":
        return cls(StatKind.IQR, field)

    @property
    def name(self) -> str:
        if self.kind is StatKind.COUNT:
            return "count" if not self.field else f"count_{self.field}"
        if self.kind is StatKind.PERCENTILE:
            return f"p{self.p:g}_{self.field}"
        return f"{self.kind.value}_{self.field}"


def _numeric(values: pd.Series) -> pd.Series:
    return pd.to_numeric(values, errors="coerce").dropna().astype(float)


def _quantile(values: pd.Series, q: float) -> float:
    return float(values.quantile(q, interpolation="linear"))


def compute_stat(frame: pd.DataFrame, stat: Stat) -> Optional[float]:
    """Evaluate one statistic over ``frame``. ``None`` means undefined."""
    if stat.kind is StatKind.COUNT:
        if stat.field is None:
            return len(frame)
        return int(frame[stat.field].notna().sum())

    values = _numeric(frame[stat.field])
    if values.empty:
        return None

    if stat.kind is StatKind.SUM:
        out = float(values.sum())
    elif stat.kind is StatKind.MEAN:
        out = float(values.mean())
    elif stat.kind is StatKind.MEDIAN:
        out = float(values.median())
    elif stat.kind is StatKind.STD:
        out = float(values.std(ddof=1))
    elif stat.kind is StatKind.PERCENTILE:
        out = _quantile(values, float(stat.p) / 100.0)
    elif stat.kind is StatKind.IQR:
        out = _quantile(values, 0.75) - _quantile(values, 0.25)
    else:
        raise ValueError(f"Unsupported statistic: {stat.kind!r}")

    if math.isnan(out):
        return None
    return out


@dataclass(frozen=True)
class Measure:
    """What a selection tag plots: output column, statistic and labels."""

    column: str
    stat: Stat
    label: str
    title: str
