from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, List, Optional, Tuple

SP500_SCALES = ("linear", "log")
SP500_STATS = ("mean", "median", "sd")

CRASH_TIME_SCALES = ("ACCIDENT_YEAR", "ACCIDENT_QUARTER_YEAR", "ACCIDENT_MONTH_YEAR")
CRASH_COLOR_OPTIONS = ("None", "VEHICLES", "COLLISION_SEVERITY", "ALCOHOL_INVOLVED", "WEATHER_1")
ALL_COUNTIES = "All"

ALL_BOOKS = "All books"
BOOK_SORT_ORDERS = ("alpha", "desc", "asc")


@dataclass(frozen=True)
class Sp500Selections:
    start_year: int = 1950
    end_year: int = 2000
    scale: str = "linear"
    years: int = 3
    stats: Tuple[str, ...] = ()


@dataclass(frozen=True)
class CrashSelections:
    start_year: int = 2019
    end_year: int = 2021
    time_stat: str = "All"
    time_scale: str = "ACCIDENT_YEAR"
    alcohol: bool = False
    county: str = ALL_COUNTIES
    color: str = "None"


@dataclass(frozen=True)
class BookSelections:
    book: str = ALL_BOOKS
    remove_stopwords: bool = False
    sort_order: str = "alpha"
    top_n: int = 10
    sentiment: str = "positive"


def _as_int(value: Any, default: int) -> int:
    if value is None or isinstance(value, bool):
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _as_bool(value: Any, default: bool = False) -> bool:
    if value is None:
        return default
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    return bool(value)


def _choice(value: Any, options: Iterable[str], default: str) -> str:
    s = str(value).strip() if value is not None else ""
    return s if s in set(options) else default


def _year_range(raw: dict, default: Tuple[int, int]) -> Tuple[int, int]:
    period = raw.get("time_period")
    if isinstance(period, (list, tuple)) and len(period) == 2:
        return _as_int(period[0], default[0]), _as_int(period[1], default[1])
    return _as_int(raw.get("start_year"), default[0]), _as_int(raw.get("end_year"), default[1])


def normalize_sp500(raw: dict, *, year_bounds: Optional[Tuple[int, int]] = None) -> Sp500Selections:
    defaults = Sp500Selections()
    start, end = _year_range(raw, (defaults.start_year, defaults.end_year))
    if year_bounds:
        lo, hi = year_bounds
        start, end = max(lo, min(hi, start)), max(lo, min(hi, end))

    scale = str(raw.get("scale") or defaults.scale).strip().lower()
    scale = scale if scale in SP500_SCALES else defaults.scale

    years = max(1, _as_int(raw.get("years"), defaults.years))

    stats: List[str] = []
    for s in raw.get("stats") or []:
        s = str(s).strip().lower()
        if s in SP500_STATS and s not in stats:
            stats.append(s)

    return Sp500Selections(start_year=start, end_year=end, scale=scale, years=years, stats=tuple(stats))


def normalize_crashes(
    raw: dict,
    *,
    year_bounds: Optional[Tuple[int, int]] = None,
    time_stats: Optional[Iterable[str]] = None,
    counties: Optional[Iterable[str]] = None,
) -> CrashSelections:
    defaults = CrashSelections()
    start, end = _year_range(raw, (defaults.start_year, defaults.end_year))
    if year_bounds:
        lo, hi = year_bounds
        start, end = max(lo, min(hi, start)), max(lo, min(hi, end))

    time_stat = str(raw.get("time_stat") or defaults.time_stat).strip()
    if time_stats is not None and time_stat not in set(time_stats):
        time_stat = defaults.time_stat

    county = str(raw.get("county") or ALL_COUNTIES).strip()
    if counties is not None and county != ALL_COUNTIES and county not in set(counties):
        county = ALL_COUNTIES

    return CrashSelections(
        start_year=start,
        end_year=end,
        time_stat=time_stat,
        time_scale=_choice(raw.get("time_scale"), CRASH_TIME_SCALES, defaults.time_scale),
        alcohol=_as_bool(raw.get("alcohol"), defaults.alcohol),
        county=county,
        color=_choice(raw.get("color"), CRASH_COLOR_OPTIONS, defaults.color),
    )


def normalize_books(
    raw: dict,
    *,
    titles: Optional[List[str]] = None,
    sentiments: Optional[List[str]] = None,
) -> BookSelections:
    defaults = BookSelections()
    titles = titles or []

    book = str(raw.get("book") or "").strip()
    if book != ALL_BOOKS and book not in titles:
        book = titles[0] if titles else ALL_BOOKS

    sentiment = str(raw.get("sentiment") or defaults.sentiment).strip()
    if sentiments and sentiment not in sentiments:
        sentiment = defaults.sentiment if defaults.sentiment in sentiments else sentiments[0]

    top_n = max(1, min(50, _as_int(raw.get("top_n"), defaults.top_n)))

    return BookSelections(
        book=book,
        remove_stopwords=_as_bool(raw.get("remove_stopwords"), defaults.remove_stopwords),
        sort_order=_choice(raw.get("sort_order"), BOOK_SORT_ORDERS, defaults.sort_order),
        top_n=top_n,
        sentiment=sentiment,
    )
