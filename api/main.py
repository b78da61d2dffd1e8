from __future__ import annotations

import logging
import math
from typing import Any, Callable, Dict

import numpy as np
import pandas as pd
from fastapi import Depends, FastAPI
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from api.schemas import (
    BookSelectionsModel,
    CrashSelectionsModel,
    MetaListResponse,
    RecomputeRequest,
    Sp500SelectionsModel,
    YearRangeResponse,
)
from dashcore import metrics_books, metrics_crashes, metrics_sp500
from dashcore.config import configure_logging, get_settings
from dashcore.data import DataHandle, handle_summary, load_data_handle
from dashcore.engine import SummaryTable
from dashcore.errors import DatasetNotLoadedError, SchemaError, UnknownDashboardError
from dashcore.events import on_input_change, recompute_all

settings = get_settings()
configure_logging(settings.log_level)

app = FastAPI(title="Dashboards API", version="0.1.0")
logger = logging.getLogger(__name__)

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(settings.cors_origins),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_data_handle() -> DataHandle:
    return load_data_handle(get_settings())


def _json(data: object) -> JSONResponse:
    """Return JSON with safe encoding for pandas/numpy objects."""

    def _safe_float(value: object) -> float | None:
        try:
            out = float(value)  # type: ignore[arg-type]
        except Exception:
            return None
        if math.isnan(out) or math.isinf(out):
            return None
        return out

    return JSONResponse(
        content=jsonable_encoder(
            data,
            custom_encoder={
                type(pd.NA): lambda _: None,
                type(pd.NaT): lambda _: None,
                np.integer: int,
                float: _safe_float,
                np.floating: _safe_float,
                np.bool_: bool,
                np.ndarray: lambda arr: arr.tolist(),
                pd.Timestamp: lambda ts: ts.isoformat(),
            },
        )
    )


def _error(exc: Exception, name: str) -> JSONResponse:
    if isinstance(exc, (DatasetNotLoadedError, UnknownDashboardError)):
        status = 404
    elif isinstance(exc, (SchemaError, ValueError)):
        status = 422
    else:
        status = 500
    logger.exception("%s failed", name)
    return JSONResponse(status_code=status, content={"error": str(exc), "type": type(exc).__name__})


@app.get("/meta/datasets")
def meta_datasets(handle: DataHandle = Depends(get_data_handle)):
    return _json({"files": list(handle.files), "rows": handle_summary(handle)})


@app.get("/meta/sp500/years", response_model=YearRangeResponse)
def meta_sp500_years(handle: DataHandle = Depends(get_data_handle)):
    try:
        lo, hi = handle.year_bounds("sp500", "year")
        return _json({"min_year": lo, "max_year": hi})
    except Exception as exc:
        return _error(exc, "meta_sp500_years")


@app.get("/meta/crashes/counties", response_model=MetaListResponse)
def meta_counties(handle: DataHandle = Depends(get_data_handle)):
    try:
        return _json({"values": handle.counties()})
    except Exception as exc:
        return _error(exc, "meta_counties")


@app.get("/meta/books/titles", response_model=MetaListResponse)
def meta_book_titles(handle: DataHandle = Depends(get_data_handle)):
    try:
        return _json({"values": handle.book_titles()})
    except Exception as exc:
        return _error(exc, "meta_book_titles")


@app.get("/meta/books/sentiments", response_model=MetaListResponse)
def meta_sentiments(handle: DataHandle = Depends(get_data_handle)):
    try:
        return _json({"values": handle.sentiments()})
    except Exception as exc:
        return _error(exc, "meta_sentiments")


@app.post("/sp500")
def sp500(selections: Sp500SelectionsModel, handle: DataHandle = Depends(get_data_handle)):
    try:
        return _json(metrics_sp500.compute_sp500(selections.model_dump(), handle))
    except Exception as exc:
        return _error(exc, "sp500")


@app.post("/crashes")
def crashes(selections: CrashSelectionsModel, handle: DataHandle = Depends(get_data_handle)):
    try:
        return _json(metrics_crashes.compute_crashes(selections.model_dump(), handle))
    except Exception as exc:
        return _error(exc, "crashes")


@app.post("/crashes/map")
def crash_map(selections: CrashSelectionsModel, handle: DataHandle = Depends(get_data_handle)):
    try:
        return _json(metrics_crashes.compute_crash_map(selections.model_dump(), handle))
    except Exception as exc:
        return _error(exc, "crash_map")


@app.post("/books/sentiment")
def book_sentiment(selections: BookSelectionsModel, handle: DataHandle = Depends(get_data_handle)):
    try:
        return _json(metrics_books.compute_sentiment(selections.model_dump(), handle))
    except Exception as exc:
        return _error(exc, "book_sentiment")


@app.post("/books/words")
def book_words(selections: BookSelectionsModel, handle: DataHandle = Depends(get_data_handle)):
    try:
        return _json(metrics_books.compute_top_words(selections.model_dump(), handle))
    except Exception as exc:
        return _error(exc, "book_words")


@app.post("/recompute/{dashboard}")
def recompute(dashboard: str, request: RecomputeRequest, handle: DataHandle = Depends(get_data_handle)):
    try:
        if request.changed:
            return _json(on_input_change(dashboard, request.changed, request.selections, handle))
        return _json(recompute_all(dashboard, request.selections, handle))
    except Exception as exc:
        return _error(exc, "recompute")


def _sp500_returns(raw: dict, handle: DataHandle) -> SummaryTable:
    sel = metrics_sp500.selections_for(raw, handle)
    return metrics_sp500.multi_year_returns(sel, handle.require("sp500"))


def _sp500_summary(raw: dict, handle: DataHandle) -> SummaryTable:
    return metrics_sp500.return_summary(_sp500_returns(raw, handle))


def _crash_timeline(raw: dict, handle: DataHandle) -> SummaryTable:
    sel = metrics_crashes.selections_for(raw, handle)
    return metrics_crashes.timeline_table(sel, handle.require("crashes"))


def _crash_hourly(raw: dict, handle: DataHandle) -> SummaryTable:
    sel = metrics_crashes.selections_for(raw, handle)
    return metrics_crashes.hourly_table(sel, handle.require("crashes"))


def _book_sentiment(raw: dict, handle: DataHandle) -> SummaryTable:
    return metrics_books.sentiment_table(metrics_books.selections_for(raw, handle), handle)


def _book_words(raw: dict, handle: DataHandle) -> SummaryTable:
    return metrics_books.top_words_table(metrics_books.selections_for(raw, handle), handle)


EXPORTS: Dict[str, Callable[[dict, DataHandle], SummaryTable]] = {
    "sp500-returns": _sp500_returns,
    "sp500-summary": _sp500_summary,
    "crashes-timeline": _crash_timeline,
    "crashes-hourly": _crash_hourly,
    "books-sentiment": _book_sentiment,
    "books-words": _book_words,
}


@app.post("/export/{table}")
def export_table(table: str, selections: Dict[str, Any], handle: DataHandle = Depends(get_data_handle)):
    builder = EXPORTS.get(table)
    if builder is None:
        return JSONResponse(status_code=404, content={"error": f"Unknown table: {table}", "type": "KeyError"})
    try:
        export_df = builder(dict(selections), handle).frame
    except Exception as exc:
        return _error(exc, "export_table")
    csv_bytes = export_df.to_csv(index=False).encode("utf-8")
    return Response(content=csv_bytes, media_type="text/csv", headers={"Content-Disposition": f"attachment; filename={table}.csv"})
