"""Input-change dispatch.

Each dashboard declares which outputs read which inputs. A change event
recomputes only those outputs, from scratch, with the current selections.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Any, Callable, Dict, Iterable, List, Mapping, Tuple

from dashcore import metrics_books, metrics_crashes, metrics_sp500
from dashcore.data import DataHandle
from dashcore.errors import UnknownDashboardError

logger = logging.getLogger(__name__)

_PERIOD = ("time_period", "start_year", "end_year")


@dataclass(frozen=True)
class Dashboard:
    name: str
    selections_for: Callable[[Any, DataHandle], Any]
    outputs: Mapping[str, Callable[[Any, DataHandle], Dict[str, Any]]]
    dependencies: Mapping[str, Tuple[str, ...]]


def _expand(period_outputs: Tuple[str, ...], others: Dict[str, Tuple[str, ...]]) -> Dict[str, Tuple[str, ...]]:
    deps = {name: period_outputs for name in _PERIOD}
    deps.update(others)
    return deps


DASHBOARDS: Dict[str, Dashboard] = {
    "sp500": Dashboard(
        "sp500",
        metrics_sp500.selections_for,
        metrics_sp500.OUTPUTS,
        _expand(
            ("timeline", "returns", "summary"),
            {"scale": ("timeline",), "years": ("returns", "summary"), "stats": ("returns",)},
        ),
    ),
    "crashes": Dashboard(
        "crashes",
        metrics_crashes.selections_for,
        metrics_crashes.OUTPUTS,
        _expand(
            ("timeline", "hourly", "alcohol_hourly", "map"),
            {
                "time_stat": ("timeline", "hourly", "alcohol_hourly", "map"),
                "time_scale": ("timeline",),
                "alcohol": ("timeline", "hourly"),
                "county": ("map",),
                "color": ("map",),
            },
        ),
    ),
    "books": Dashboard(
        "books",
        metrics_books.selections_for,
        metrics_books.OUTPUTS,
        {
            "book": ("sentiment", "words"),
            "remove_stopwords": ("sentiment", "words"),
            "sort_order": ("sentiment",),
            "top_n": ("words",),
            "sentiment": ("words",),
        },
    ),
}


def get_dashboard(app: str) -> Dashboard:
    try:
        return DASHBOARDS[app]
    except KeyError:
        raise UnknownDashboardError(app) from None


def affected_outputs(app: str, changed: Iterable[str]) -> List[str]:
    """Outputs depending on any of ``changed``, in declaration order."""
    dash = get_dashboard(app)
    hit = set()
    for name in changed:
        hit.update(dash.dependencies.get(name, ()))
    return [name for name in dash.outputs if name in hit]


def on_input_change(app: str, changed: Iterable[str], selections: Any, handle: DataHandle) -> Dict[str, Any]:
    dash = get_dashboard(app)
    changed = list(changed)
    names = affected_outputs(app, changed)
    sel = dash.selections_for(selections, handle)
    logger.debug("%s: inputs %s -> recompute %s", app, changed, names)
    return {
        "filters": asdict(sel),
        "changed": changed,
        "outputs": {name: dash.outputs[name](sel, handle) for name in names},
    }


def recompute_all(app: str, selections: Any, handle: DataHandle) -> Dict[str, Any]:
    dash = get_dashboard(app)
    return on_input_change(app, dash.dependencies.keys(), selections, handle)
