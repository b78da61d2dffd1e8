from dashcore.filters import (
    ALL_BOOKS,
    BookSelections,
    CrashSelections,
    Sp500Selections,
    normalize_books,
    normalize_crashes,
    normalize_sp500,
)


def test_sp500_defaults():
    assert normalize_sp500({}) == Sp500Selections()


def test_sp500_clamps_years_and_accepts_time_period():
    sel = normalize_sp500({"time_period": [1900, 2050], "years": 0}, year_bounds=(1928, 2023))
    assert (sel.start_year, sel.end_year) == (1928, 2023)
    assert sel.years == 1


def test_sp500_scale_and_stats_are_validated():
    sel = normalize_sp500({"scale": "LOG", "stats": ["sd", "Mean", "bogus", "sd"]})
    assert sel.scale == "log"
    assert sel.stats == ("sd", "mean")
    assert normalize_sp500({"scale": "cubic"}).scale == "linear"


def test_crash_selections():
    sel = normalize_crashes(
        {
            "start_year": "2018",
            "end_year": 2020,
            "time_stat": "Killed",
            "time_scale": "ACCIDENT_MONTH_YEAR",
            "alcohol": "true",
            "county": "Nowhere",
            "color": "WEATHER_1",
        },
        year_bounds=(2019, 2021),
        time_stats=["All", "Killed"],
        counties=["Alameda"],
    )
    assert sel == CrashSelections(2019, 2020, "Killed", "ACCIDENT_MONTH_YEAR", True, "All", "WEATHER_1")


def test_crash_unknown_options_fall_back():
    sel = normalize_crashes({"time_stat": "Boats", "time_scale": "DECADE", "color": "RED"}, time_stats=["All"])
    assert (sel.time_stat, sel.time_scale, sel.color) == ("All", "ACCIDENT_YEAR", "None")


def test_books_default_to_first_title():
    sel = normalize_books({}, titles=["Book One", "Book Two"], sentiments=["joy", "positive"])
    assert sel == BookSelections(book="Book One")


def test_books_options():
    sel = normalize_books(
        {"book": ALL_BOOKS, "remove_stopwords": 1, "sort_order": "desc", "top_n": 500, "sentiment": "fear"},
        titles=["Book One"],
        sentiments=["joy", "anger"],
    )
    assert sel.book == ALL_BOOKS
    assert sel.remove_stopwords is True
    assert sel.sort_order == "desc"
    assert sel.top_n == 50
    assert sel.sentiment == "joy"
    assert normalize_books({"top_n": -3, "sort_order": "random"}).top_n == 1
    assert normalize_books({"sort_order": "random"}).sort_order == "alpha"
