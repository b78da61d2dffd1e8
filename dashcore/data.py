from __future__ import annotations

import logging
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Dict, FrozenSet, Iterable, List, Optional, Tuple

import numpy as np
import pandas as pd

from dashcore.config import Settings, get_settings
from dashcore.engine import Dataset
from dashcore.errors import DatasetNotLoadedError, EmptyDatasetError, SchemaError

logger = logging.getLogger(__name__)

STOP_WORDS_PATH = Path(__file__).resolve().parent / "resources" / "stop_words.txt"
TOKEN_PATTERN = r"[a-z0-9]+(?:['’][a-z0-9]+)*"

SP500_COLUMNS = ["date", "close"]
LEXICON_COLUMNS = ["word", "sentiment"]
CRASH_REQUIRED = [
    "ACCIDENT_YEAR",
    "COLLISION_DATE",
    "COLLISION_TIME",
    "NUMBER_KILLED",
    "NUMBER_INJURED",
    "ALCOHOL_INVOLVED",
    "COUNTY",
]
CRASH_NUMERIC = [
    "CASE_ID",
    "ACCIDENT_YEAR",
    "COLLISION_TIME",
    "HOUR",
    "DAY_OF_WEEK",
    "NUMBER_KILLED",
    "NUMBER_INJURED",
    "PARTY_COUNT",
    "ZIP_CODE",
    "POINT_X",
    "POINT_Y",
]
CRASH_TEXT = [
    "WEATHER_1",
    "WEATHER_2",
    "STATE_HWY_IND",
    "COLLISION_SEVERITY",
    "PCF_VIOL_CATEGORY",
    "TYPE_OF_COLLISION",
    "ROAD_SURFACE",
    "ROAD_COND_1",
    "ROAD_COND_2",
    "LIGHTING",
    "PEDESTRIAN_ACCIDENT",
    "BICYCLE_ACCIDENT",
    "MOTORCYCLE_ACCIDENT",
    "TRUCK_ACCIDENT",
    "NOT_PRIVATE_PROPERTY",
    "ALCOHOL_INVOLVED",
    "COUNTY",
    "CITY",
    "PO_NAME",
]

# First matching flag wins.
VEHICLE_FLAGS = [
    ("PEDESTRIAN_ACCIDENT", "Pedestrian-Car"),
    ("BICYCLE_ACCIDENT", "Bicycle-Car"),
    ("MOTORCYCLE_ACCIDENT", "Motorcycle-Car"),
    ("TRUCK_ACCIDENT", "Truck-Car"),
]
VEHICLE_DEFAULT = "Car-Car/Other"
VEHICLE_TYPES = [VEHICLE_DEFAULT, "Truck-Car", "Motorcycle-Car", "Bicycle-Car", "Pedestrian-Car"]


def file_signature(files: Iterable[Optional[Path]]) -> Tuple[Tuple[str, float], ...]:
    return tuple((str(f), f.stat().st_mtime) for f in files if f is not None and f.exists())


def numericize(df: pd.DataFrame, cols: Iterable[str]) -> pd.DataFrame:
    for col in cols:
        if col in df.columns:
            df[col] = pd.to_numeric(df[col], errors="coerce")
    return df


def coerce_str_safe(df: pd.DataFrame, cols: Iterable[str]) -> pd.DataFrame:
    for col in cols:
        if col in df.columns:
            series = df[col].astype("string").str.strip()
            series = series.replace({"nan": pd.NA, "None": pd.NA, "": pd.NA})
            df[col] = series.astype(object).where(series.notna(), None)
    return df


def _require_columns(df: pd.DataFrame, cols: Iterable[str]) -> None:
    missing = [c for c in cols if c not in df.columns]
    if missing:
        raise SchemaError(missing, [str(c) for c in df.columns])


def _read_csv(path: Path, **kwargs) -> pd.DataFrame:
    df = pd.read_csv(path, **kwargs)
    if df.empty:
        raise EmptyDatasetError(f"{path.name} has no records")
    return df


def load_sp500(path: Path) -> Dataset:
    df = _read_csv(Path(path))
    df.columns = [str(c).strip().lower() for c in df.columns]
    _require_columns(df, SP500_COLUMNS)
    df["date"] = pd.to_datetime(df["date"], errors="coerce")
    df = numericize(df, ["open", "high", "low", "close", "adjusted", "volume"])
    df = df.dropna(subset=["date"]).sort_values("date", kind="mergesort").reset_index(drop=True)
    df["year"] = df["date"].dt.year.astype(int)
    logger.info("Loaded %d S&P 500 rows (%d-%d) from %s", len(df), df["year"].min(), df["year"].max(), Path(path).name)
    return Dataset("sp500", df)


def derive_vehicles(df: pd.DataFrame) -> pd.Series:
    conditions = []
    choices = []
    for col, label in VEHICLE_FLAGS:
        flag = df[col] if col in df.columns else pd.Series(None, index=df.index, dtype=object)
        conditions.append(flag.astype("string").str.lower().eq("yes").fillna(False).to_numpy(dtype=bool))
        choices.append(label)
    return pd.Series(np.select(conditions, choices, default=VEHICLE_DEFAULT), index=df.index)


def add_crash_keys(df: pd.DataFrame) -> pd.DataFrame:
    out = df.copy()
    dates = pd.to_datetime(out["COLLISION_DATE"], errors="coerce")
    out["COLLISION_DATE"] = dates
    out["ACCIDENT_MONTH_YEAR"] = dates.dt.strftime("%Y-%m")
    quarter = ((dates.dt.month - 1) // 3 + 1).astype("Int64")
    out["ACCIDENT_QUARTER"] = quarter
    out["ACCIDENT_QUARTER_YEAR"] = [
        f"{int(y)}-Q{int(q)}" if pd.notna(y) and pd.notna(q) else None
        for y, q in zip(out["ACCIDENT_YEAR"], quarter)
    ]
    out["COLLISION_HOUR"] = (out["COLLISION_TIME"] // 100).astype("Int64")
    out["VEHICLES"] = derive_vehicles(out)
    return out


def load_crashes(path: Path, *, sample_size: int = 0, seed: int = 1) -> Dataset:
    df = _read_csv(Path(path), low_memory=False)
    _require_columns(df, CRASH_REQUIRED)
    df = numericize(df, CRASH_NUMERIC)
    df = coerce_str_safe(df, CRASH_TEXT)
    total = len(df)
    if sample_size and total > sample_size:
        df = df.sample(n=sample_size, random_state=seed)
    df = add_crash_keys(df.reset_index(drop=True))
    logger.info("Loaded %d of %d collision rows from %s", len(df), total, Path(path).name)
    return Dataset("crashes", df)


def tokenize(text_df: pd.DataFrame, text_col: str = "text", token_col: str = "word") -> pd.DataFrame:
    tokens = text_df[text_col].fillna("").astype(str).str.lower().str.findall(TOKEN_PATTERN)
    out = text_df.drop(columns=[text_col]).assign(**{token_col: tokens}).explode(token_col)
    out = out.dropna(subset=[token_col])
    return out.reset_index(drop=True)


def load_book_tokens(path: Path) -> Dataset:
    df = _read_csv(Path(path), dtype=str, keep_default_na=False)
    df.columns = [str(c).strip().lower() for c in df.columns]
    _require_columns(df, ["book", "text"])
    tokens = tokenize(df)
    if tokens.empty:
        raise EmptyDatasetError(f"{Path(path).name} has no word tokens")
    logger.info("Tokenized %d words across %d books from %s", len(tokens), tokens["book"].nunique(), Path(path).name)
    return Dataset("tokens", tokens)


def load_lexicon(path: Path) -> Dataset:
    df = _read_csv(Path(path), dtype=str)
    df.columns = [str(c).strip().lower() for c in df.columns]
    _require_columns(df, LEXICON_COLUMNS)
    df = df.dropna(subset=LEXICON_COLUMNS)[LEXICON_COLUMNS].drop_duplicates().reset_index(drop=True)
    logger.info("Loaded %d lexicon entries from %s", len(df), Path(path).name)
    return Dataset("lexicon", df)


def load_stop_words(path: Optional[Path] = None) -> FrozenSet[str]:
    path = Path(path) if path else STOP_WORDS_PATH
    words = set()
    for line in path.read_text(encoding="utf-8").splitlines():
        word = line.strip().lower()
        if word and not word.startswith("#"):
            words.add(word)
    return frozenset(words)


@dataclass(frozen=True)
class DataHandle:
    """Explicitly owned, read-only view of every loaded dataset."""

    sp500: Optional[Dataset] = None
    crashes: Optional[Dataset] = None
    tokens: Optional[Dataset] = None
    lexicon: Optional[Dataset] = None
    stop_words: FrozenSet[str] = field(default_factory=frozenset)
    files: Tuple[str, ...] = ()

    def require(self, name: str) -> Dataset:
        ds = getattr(self, name, None)
        if not isinstance(ds, Dataset):
            raise DatasetNotLoadedError(f"Dataset {name!r} is not loaded")
        return ds

    def year_bounds(self, name: str, col: str) -> Tuple[int, int]:
        years = pd.to_numeric(self.require(name).frame[col], errors="coerce").dropna().astype(int)
        return int(years.min()), int(years.max())

    def book_titles(self) -> List[str]:
        return [str(b) for b in self.require("tokens").frame["book"].dropna().unique().tolist()]

    def sentiments(self) -> List[str]:
        return [str(s) for s in self.require("lexicon").frame["sentiment"].unique().tolist()]

    def counties(self) -> List[str]:
        return sorted(str(c) for c in self.require("crashes").frame["COUNTY"].dropna().unique().tolist())


def _load_optional(loader, path: Optional[Path], **kwargs) -> Optional[Dataset]:
    if path is None or not path.exists():
        logger.warning("Data file not found: %s", path)
        return None
    return loader(path, **kwargs)


@lru_cache(maxsize=4)
def _load_data_handle_cached(files_sig: Tuple[Tuple[str, float], ...], settings: Settings) -> DataHandle:
    stop_path = settings.path_for(settings.stop_words_file)
    return DataHandle(
        sp500=_load_optional(load_sp500, settings.path_for(settings.sp500_file)),
        crashes=_load_optional(
            load_crashes,
            settings.path_for(settings.crashes_file),
            sample_size=settings.crash_sample_size,
            seed=settings.sample_seed,
        ),
        tokens=_load_optional(load_book_tokens, settings.path_for(settings.books_file)),
        lexicon=_load_optional(load_lexicon, settings.path_for(settings.lexicon_file)),
        stop_words=load_stop_words(stop_path),
        files=tuple(Path(name).name for name, _ in files_sig),
    )


def source_files(settings: Settings) -> List[Optional[Path]]:
    return [
        settings.path_for(settings.sp500_file),
        settings.path_for(settings.crashes_file),
        settings.path_for(settings.books_file),
        settings.path_for(settings.lexicon_file),
        settings.path_for(settings.stop_words_file),
    ]


def load_data_handle(settings: Optional[Settings] = None) -> DataHandle:
    settings = settings or get_settings()
    return _load_data_handle_cached(file_signature(source_files(settings)), settings)


def handle_summary(handle: DataHandle) -> Dict[str, int]:
    out: Dict[str, int] = {}
    for name in ("sp500", "crashes", "tokens", "lexicon"):
        ds = getattr(handle, name)
        if isinstance(ds, Dataset):
            out[name] = len(ds)
    return out
