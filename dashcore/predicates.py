from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, List, Sequence, Tuple, Union

import pandas as pd


@dataclass(frozen=True)
class Between:
    """Inclusive range on a field. ``low > high`` matches nothing."""

    field: str
    low: Any = None
    high: Any = None

    def mask(self, df: pd.DataFrame) -> pd.Series:
        col = df[self.field]
        out = col.notna()
        try:
            if self.low is not None:
                out &= col >= self.low
            if self.high is not None:
                out &= col <= self.high
        except TypeError as exc:
            raise ValueError(f"Range bounds ({self.low!r}, {self.high!r}) do not match the type of field {self.field!r}") from exc
        return out.fillna(False).astype(bool)


@dataclass(frozen=True)
class Equals:
    field: str
    value: Any

    def mask(self, df: pd.DataFrame) -> pd.Series:
        return (df[self.field] == self.value).fillna(False).astype(bool)


@dataclass(frozen=True)
class OneOf:
    field: str
    values: Tuple[Any, ...]

    def __init__(self, field: str, values: Iterable[Any]):
        object.__setattr__(self, "field", field)
        object.__setattr__(self, "values", tuple(values))

    def mask(self, df: pd.DataFrame) -> pd.Series:
        return df[self.field].isin(self.values) & df[self.field].notna()


@dataclass(frozen=True)
class NotIn:
    field: str
    values: Tuple[Any, ...]

    def __init__(self, field: str, values: Iterable[Any]):
        object.__setattr__(self, "field", field)
        object.__setattr__(self, "values", tuple(values))

    def mask(self, df: pd.DataFrame) -> pd.Series:
        return ~df[self.field].isin(self.values) & df[self.field].notna()


Predicate = Union[Between, Equals, OneOf, NotIn]
FilterSpec = Tuple[Predicate, ...]


def filter_spec(*predicates: Predicate) -> FilterSpec:
    return tuple(p for p in predicates if p is not None)


def spec_fields(spec: Sequence[Predicate]) -> List[str]:
    return [p.field for p in spec]


def apply_filters(df: pd.DataFrame, spec: Sequence[Predicate]) -> pd.DataFrame:
    """AND all predicates together. Returns a new frame; ``df`` is untouched."""
    if not spec:
        return df.copy()
    mask = pd.Series(True, index=df.index)
    for pred in spec:
        mask &= pred.mask(df)
        if not mask.any():
            return df.iloc[0:0].copy()
    return df[mask].copy()
