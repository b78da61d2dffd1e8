from __future__ import annotations

from dataclasses import asdict
from typing import Any, Callable, Dict, List, Optional

import pandas as pd

from dashcore.charts import bar_chart, to_vega_spec
from dashcore.data import DataHandle
from dashcore.engine import SummaryTable, aggregate, order_table
from dashcore.filters import ALL_BOOKS, BookSelections, normalize_books
from dashcore.predicates import Equals, FilterSpec, NotIn, apply_filters
from dashcore.stats import Stat

# UI sort option -> engine sort policy
SORT_POLICY = {"alpha": "key", "desc": "desc", "asc": "asc"}


def selections_for(raw: dict | BookSelections, handle: DataHandle) -> BookSelections:
    if isinstance(raw, BookSelections):
        return raw
    return normalize_books(raw or {}, titles=handle.book_titles(), sentiments=handle.sentiments())


def token_filter(sel: BookSelections, stop_words=frozenset()) -> FilterSpec:
    spec: List[Any] = []
    if sel.remove_stopwords:
        spec.append(NotIn("word", sorted(stop_words)))
    if sel.book != ALL_BOOKS:
        spec.append(Equals("book", sel.book))
    return tuple(spec)


def sentiment_tokens(sel: BookSelections, handle: DataHandle) -> pd.DataFrame:
    """Selected tokens joined with the sentiment lexicon (one row per word/sentiment pair)."""
    tokens = apply_filters(handle.require("tokens").frame, token_filter(sel, handle.stop_words))
    lexicon = handle.require("lexicon").frame
    return tokens.merge(lexicon, on="word", how="inner")


def sentiment_table(sel: BookSelections, handle: DataHandle) -> SummaryTable:
    joined = sentiment_tokens(sel, handle)
    if joined.empty:
        return SummaryTable("sentiment", pd.DataFrame(columns=["sentiment", "count", "proportion"]))
    counts = aggregate(joined, (), "sentiment", {"count": Stat.count()})
    frame = counts.frame.assign(proportion=counts.frame["count"] / counts.frame["count"].sum())
    return SummaryTable("sentiment", order_table(frame, "sentiment", SORT_POLICY[sel.sort_order], "proportion"))


def top_words_table(sel: BookSelections, handle: DataHandle) -> SummaryTable:
    joined = sentiment_tokens(sel, handle)
    if joined.empty:
        return SummaryTable("word", pd.DataFrame(columns=["word", "count"]))
    counts = aggregate(joined, (Equals("sentiment", sel.sentiment),), "word", {"count": Stat.count()}, sort="desc")
    return SummaryTable("word", counts.frame.head(sel.top_n).reset_index(drop=True))


def build_sentiment(sel: BookSelections, handle: DataHandle) -> Dict[str, Any]:
    table = sentiment_table(sel, handle)
    chart = bar_chart(
        table.frame,
        "sentiment",
        "proportion",
        title="Proportion of Words by Associated Sentiments",
        x_title="Sentiment",
        y_title="Proportion",
        x_type="N",
        x_sort=table.keys(),
        y_format=".1%",
    )
    return {"table": table.to_records(), "chart": to_vega_spec(chart)}


def build_words(sel: BookSelections, handle: DataHandle) -> Dict[str, Any]:
    table = top_words_table(sel, handle)
    chart = bar_chart(
        table.frame,
        "word",
        "count",
        title=f"{sel.top_n} Most Common Words Associated with: {sel.sentiment}",
        x_title="Word",
        y_title="Frequency",
        x_type="N",
        x_sort=table.keys(),
    )
    return {"sentiment": sel.sentiment, "table": table.to_records(), "chart": to_vega_spec(chart)}


OUTPUTS: Dict[str, Callable[[BookSelections, DataHandle], Dict[str, Any]]] = {
    "sentiment": build_sentiment,
    "words": build_words,
}


def compute_books(selections: dict | BookSelections, handle: DataHandle, *, outputs: Optional[List[str]] = None) -> Dict[str, Any]:
    sel = selections_for(selections, handle)
    names = outputs or list(OUTPUTS)
    return {"filters": asdict(sel), "outputs": {name: OUTPUTS[name](sel, handle) for name in names}}


def compute_sentiment(selections: dict | BookSelections, handle: DataHandle) -> Dict[str, Any]:
    return compute_books(selections, handle, outputs=["sentiment"])


def compute_top_words(selections: dict | BookSelections, handle: DataHandle) -> Dict[str, Any]:
    return compute_books(selections, handle, outputs=["words"])
