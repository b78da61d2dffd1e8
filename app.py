import copy

import altair as alt
import pandas as pd
import streamlit as st
from contextlib import contextmanager
from typing import Any, Dict, Iterable, Optional

from dashcore.config import configure_logging, get_settings
from dashcore.data import DataHandle, load_data_handle
from dashcore.errors import DashboardError
from dashcore.events import on_input_change, recompute_all
from dashcore.filters import ALL_BOOKS, ALL_COUNTIES, BOOK_SORT_ORDERS, CRASH_COLOR_OPTIONS, CRASH_TIME_SCALES
from dashcore.metrics_crashes import TIME_SCALE_LABELS, TIME_STAT_LABELS, CrashStat

alt.data_transformers.disable_max_rows()
configure_logging(get_settings().log_level)


# ---------- UI / layout helpers ----------
def inject_base_styles():
    if st.session_state.get("_base_css_injected"):
        return
    st.markdown(
        """
        <style>
        .app-top-bar {padding: 6px 0 4px;border-bottom: 1px solid #e5e7eb;margin-bottom: 10px;}
        .app-top-bar .breadcrumb {color: #6b7280;font-size: 0.9rem;margin-bottom: 2px;}
        .app-top-bar .page-title {font-size: 1.4rem;font-weight: 700;color: #111827;}
        .card {border: 1px solid #e5e7eb;border-radius: 12px;padding: 16px;background: #ffffff;
               box-shadow: 0 1px 2px rgba(0,0,0,0.04); margin-bottom: 12px;}
        .card-header {display: flex;justify-content: space-between;align-items: center;margin-bottom: 8px;}
        .card-title {font-weight: 600;font-size: 1.0rem;color: #111827;}
        .chip-row {display: flex;flex-wrap: wrap;gap: 6px;margin-top: 6px;}
        .chip {background: #f3f4f6;border: 1px solid #e5e7eb;border-radius: 14px;padding: 4px 10px;font-size: 0.85rem;color: #374151;}
        </style>
        """,
        unsafe_allow_html=True,
    )
    st.session_state["_base_css_injected"] = True


@contextmanager
def card(title: str):
    container = st.container()
    container.markdown(
        f"""
        <div class="card">
          <div class="card-header">
            <div class="card-title">{title}</div>
          </div>
        """,
        unsafe_allow_html=True,
    )
    body = container.container()
    with body:
        yield body
    container.markdown("</div>", unsafe_allow_html=True)


def render_page_header(title: str, breadcrumb: str, chips: Iterable[str], export_df: Optional[pd.DataFrame] = None, export_name: str = "export.csv"):
    inject_base_styles()
    c1, c2 = st.columns([8, 2])
    with c1:
        st.markdown(
            f"<div class='app-top-bar'><div class='breadcrumb'>{breadcrumb}</div><div class='page-title'>{title}</div></div>",
            unsafe_allow_html=True,
        )
    with c2:
        if export_df is not None and not export_df.empty:
            st.download_button(
                "Export CSV",
                data=export_df.to_csv(index=False).encode("utf-8"),
                file_name=export_name,
                mime="text/csv",
            )
    chip_html = "".join([f"<span class='chip'>{txt}</span>" for txt in chips])
    st.markdown(f"<div class='chip-row'>{chip_html}</div>", unsafe_allow_html=True)


def format_percent_columns(df: pd.DataFrame, cols: Iterable[str], decimals: int = 1) -> pd.DataFrame:
    formatted = df.copy()
    for c in cols:
        if c in formatted.columns:
            formatted[c] = formatted[c].apply(lambda v: f"{float(v)*100:.{decimals}f}%" if pd.notna(v) else "")
    return formatted


def render_chart(spec: Optional[Dict[str, Any]], empty_msg: str = "No data for the current selection."):
    if not spec:
        st.info(empty_msg)
        return
    st.vega_lite_chart(spec, use_container_width=True)


# ---------- Input-change wiring ----------
def _mark_changed(app: str, name: str):
    st.session_state.setdefault(f"_{app}_changed", set()).add(name)


def widget_key(app: str, name: str) -> str:
    return f"{app}:{name}"


def current_outputs(app: str, selections: Dict[str, Any], handle: DataHandle) -> Dict[str, Any]:
    """Recompute only what changed since the cached outputs; everything on first render.

    Widgets reset silently when the user navigates away and back, so the
    selections the cache was built from are compared as well as the
    ``on_change`` marks.
    """
    cache_key = f"_{app}_outputs"
    seen_key = f"_{app}_selections"
    changed = set(st.session_state.pop(f"_{app}_changed", set()))
    previous = st.session_state.get(seen_key)
    try:
        if cache_key not in st.session_state or previous is None:
            result = recompute_all(app, selections, handle)
            st.session_state[cache_key] = result["outputs"]
        else:
            changed |= {name for name, value in selections.items() if previous.get(name) != value}
            if changed:
                result = on_input_change(app, sorted(changed), selections, handle)
                st.session_state[cache_key].update(result["outputs"])
    except DashboardError as exc:
        st.error(str(exc))
        st.stop()
    st.session_state[seen_key] = copy.deepcopy(selections)
    return st.session_state[cache_key]


# ---------- UI setup ----------
st.set_page_config(page_title="Data Dashboards", layout="wide")
inject_base_styles()
st.title("Data Dashboards")
st.caption("S&P 500 returns, California collisions and book sentiment.")

handle = load_data_handle(get_settings())

with st.sidebar:
    st.markdown("### Navigate")
    page = st.radio("Navigate", ["S&P 500", "Collisions", "Book Sentiment"], index=0, key="page")
    st.markdown("---")
    st.markdown("### Filters")


def render_sp500_page():
    if handle.sp500 is None:
        st.error("No S&P 500 data found. Place sp500.csv in the data directory.")
        st.stop()
    lo, hi = handle.year_bounds("sp500", "year")
    app = "sp500"
    with st.sidebar:
        period = st.slider(
            "Time Period", min_value=lo, max_value=hi, value=(max(lo, 1950), min(hi, 2000)), step=1,
            key=widget_key(app, "time_period"), on_change=_mark_changed, args=(app, "time_period"),
        )
        scale = st.radio(
            "Scale of Closing Values Timeline", ["linear", "log"], format_func=lambda s: "Linear" if s == "linear" else "Logarithmic",
            key=widget_key(app, "scale"), on_change=_mark_changed, args=(app, "scale"),
        )
        years = st.number_input(
            "Number of Years for Multi-Year Returns", min_value=1, value=3, step=1,
            key=widget_key(app, "years"), on_change=_mark_changed, args=(app, "years"),
        )
        stats = st.multiselect(
            "Summary Statistics of Returns", ["mean", "median", "sd"],
            format_func={"mean": "Mean Return", "median": "Median Return", "sd": "Standard Deviation"}.get,
            key=widget_key(app, "stats"), on_change=_mark_changed, args=(app, "stats"),
        )
    selections = {"time_period": list(period), "scale": scale, "years": int(years), "stats": stats}
    outputs = current_outputs(app, selections, handle)

    returns_df = pd.DataFrame(outputs["returns"]["table"])
    render_page_header(
        "S&P 500 Market Index",
        "Home / S&P 500",
        [f"Years: {period[0]}–{period[1]}", f"Window: {int(years)}y", f"Scale: {scale}"],
        export_df=returns_df,
        export_name="sp500_returns.csv",
    )
    with card("Daily Closing Values of S&P 500"):
        render_chart(outputs["timeline"]["chart"] if outputs["timeline"]["rows"] else None)
    with card("Multi-Year Returns of S&P 500"):
        render_chart(outputs["returns"]["chart"] if not returns_df.empty else None)
    with card("Summary Statistics of Multi-Year Returns"):
        summary = pd.DataFrame(outputs["summary"]["table"])
        st.dataframe(format_percent_columns(summary, ["value"], 2), use_container_width=True, hide_index=True)


def render_crashes_page():
    if handle.crashes is None:
        st.error("No collision data found. Place crashes_california_2019_2021.csv in the data directory.")
        st.stop()
    lo, hi = handle.year_bounds("crashes", "ACCIDENT_YEAR")
    app = "crashes"
    with st.sidebar:
        period = st.slider(
            "Select time period", min_value=lo, max_value=hi, value=(lo, hi), step=1,
            key=widget_key(app, "time_period"), on_change=_mark_changed, args=(app, "time_period"),
        )
        time_stat = st.selectbox(
            "Select statistic", [t.value for t in CrashStat], format_func=lambda v: TIME_STAT_LABELS[CrashStat(v)],
            key=widget_key(app, "time_stat"), on_change=_mark_changed, args=(app, "time_stat"),
        )
        time_scale = st.radio(
            "Select timeline scale", list(CRASH_TIME_SCALES), format_func=TIME_SCALE_LABELS.get,
            key=widget_key(app, "time_scale"), on_change=_mark_changed, args=(app, "time_scale"),
        )
        alcohol = st.checkbox(
            "Alcohol involvement overlay", value=False,
            key=widget_key(app, "alcohol"), on_change=_mark_changed, args=(app, "alcohol"),
        )
        st.markdown("---")
        county = st.selectbox(
            "Select county", [ALL_COUNTIES] + handle.counties(),
            format_func=lambda c: "All counties" if c == ALL_COUNTIES else c,
            key=widget_key(app, "county"), on_change=_mark_changed, args=(app, "county"),
        )
        color = st.radio(
            "Color by", list(CRASH_COLOR_OPTIONS),
            format_func={
                "None": "None",
                "VEHICLES": "Vehicles involved",
                "COLLISION_SEVERITY": "Collision severity",
                "ALCOHOL_INVOLVED": "Alcohol involvement",
                "WEATHER_1": "Weather",
            }.get,
            key=widget_key(app, "color"), on_change=_mark_changed, args=(app, "color"),
        )
    selections = {
        "time_period": list(period),
        "time_stat": time_stat,
        "time_scale": time_scale,
        "alcohol": alcohol,
        "county": county,
        "color": color,
    }
    outputs = current_outputs(app, selections, handle)

    timeline_df = pd.DataFrame(outputs["timeline"]["table"])
    render_page_header(
        "Car Accidents in California",
        "Home / Collisions",
        [f"Years: {period[0]}–{period[1]}", TIME_STAT_LABELS[CrashStat(time_stat)], f"County: {county}"],
        export_df=timeline_df,
        export_name="crashes_timeline.csv",
    )
    explore, map_tab = st.tabs(["Explore", "Map"])
    with explore:
        with card("Timeline"):
            render_chart(outputs["timeline"]["chart"] if not timeline_df.empty else None)
        with card("Time of Day"):
            render_chart(outputs["hourly"]["chart"] if outputs["hourly"]["table"] else None)
        with card("Time of Day (Alcohol Involved)"):
            render_chart(outputs["alcohol_hourly"]["chart"] if outputs["alcohol_hourly"]["table"] else None)
    with map_tab:
        with card(f"Map of Collisions ({outputs['map']['count']:,} points)"):
            render_chart(outputs["map"]["chart"] if outputs["map"]["count"] else None)


def render_books_page():
    if handle.tokens is None or handle.lexicon is None:
        st.error("Book text or sentiment lexicon not found. Place harry_potter_books.csv and nrc.csv in the data directory.")
        st.stop()
    app = "books"
    titles = handle.book_titles()
    sentiments = handle.sentiments()
    with st.sidebar:
        book = st.selectbox(
            "Select a book", titles + [ALL_BOOKS],
            key=widget_key(app, "book"), on_change=_mark_changed, args=(app, "book"),
        )
        remove_stopwords = st.checkbox(
            "Remove stopwords", value=False,
            key=widget_key(app, "remove_stopwords"), on_change=_mark_changed, args=(app, "remove_stopwords"),
        )
        sort_order = st.radio(
            "Sort bars by", list(BOOK_SORT_ORDERS),
            format_func={"alpha": "Alphabetical", "desc": "Proportion (decreasing)", "asc": "Proportion (increasing)"}.get,
            key=widget_key(app, "sort_order"), on_change=_mark_changed, args=(app, "sort_order"),
        )
        top_n = st.slider(
            "Top n words", min_value=1, max_value=50, value=10,
            key=widget_key(app, "top_n"), on_change=_mark_changed, args=(app, "top_n"),
        )
        sentiment = st.selectbox(
            "Select Sentiment", sentiments, index=sentiments.index("positive") if "positive" in sentiments else 0,
            key=widget_key(app, "sentiment"), on_change=_mark_changed, args=(app, "sentiment"),
        )
    selections = {
        "book": book,
        "remove_stopwords": remove_stopwords,
        "sort_order": sort_order,
        "top_n": top_n,
        "sentiment": sentiment,
    }
    outputs = current_outputs(app, selections, handle)

    sentiment_df = pd.DataFrame(outputs["sentiment"]["table"])
    words_df = pd.DataFrame(outputs["words"]["table"])
    render_page_header(
        "Text Analysis of Books",
        "Home / Book Sentiment",
        [f"Book: {book}", "Stopwords removed" if remove_stopwords else "All words"],
        export_df=sentiment_df,
        export_name="sentiment.csv",
    )
    tab1, tab2 = st.tabs(["Word Sentiment Analysis", "Word Frequency Analysis"])
    with tab1:
        with card("Proportion of Words by Associated Sentiments"):
            render_chart(outputs["sentiment"]["chart"] if not sentiment_df.empty else None)
        st.dataframe(format_percent_columns(sentiment_df, ["proportion"]), use_container_width=True, hide_index=True)
    with tab2:
        with card(f"Word Frequency by Associated Sentiment: {sentiment}"):
            render_chart(outputs["words"]["chart"] if not words_df.empty else None)
        st.dataframe(words_df, use_container_width=True, hide_index=True)


if page == "S&P 500":
    render_sp500_page()
elif page == "Collisions":
    render_crashes_page()
else:
    render_books_page()
