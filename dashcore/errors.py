from __future__ import annotations

from typing import Iterable


class DashboardError(Exception):
    """Base class for errors raised by the dashboard core."""


class SchemaError(DashboardError):
    def __init__(self, missing: Iterable[str], available: Iterable[str] = ()):
        self.missing = sorted(set(missing))
        self.available = list(available)
        super().__init__(f"Unknown field(s): {', '.join(self.missing)}")


class EmptyDatasetError(DashboardError):
    pass


class DatasetNotLoadedError(DashboardError):
    pass


class UnknownDashboardError(DashboardError, KeyError):
    def __str__(self) -> str:
        return f"Unknown dashboard: {self.args[0]!r}" if self.args else "Unknown dashboard"
