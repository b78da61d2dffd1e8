from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class Sp500SelectionsModel(BaseModel):
    start_year: int = 1950
    end_year: int = 2000
    scale: str = "linear"
    years: int = Field(default=3, ge=1)
    stats: List[str] = Field(default_factory=list)


class CrashSelectionsModel(BaseModel):
    start_year: int = 2019
    end_year: int = 2021
    time_stat: str = "All"
    time_scale: str = "ACCIDENT_YEAR"
    alcohol: bool = False
    county: str = "All"
    color: str = "None"


class BookSelectionsModel(BaseModel):
    book: Optional[str] = None
    remove_stopwords: bool = False
    sort_order: str = "alpha"
    top_n: int = Field(default=10, ge=1, le=50)
    sentiment: str = "positive"


class RecomputeRequest(BaseModel):
    changed: List[str] = Field(default_factory=list)
    selections: Dict[str, Any] = Field(default_factory=dict)


class YearRangeResponse(BaseModel):
    min_year: int
    max_year: int


class MetaListResponse(BaseModel):
    values: List[str]
