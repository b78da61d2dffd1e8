"""Shared pytest fixtures: small in-memory datasets and a data handle over them."""

import pandas as pd
import pytest

from dashcore.data import DataHandle, add_crash_keys, load_stop_words, tokenize
from dashcore.engine import Dataset


@pytest.fixture
def sp500_frame():
    rows = []
    closes = {
        2000: (100.0, 110.0),
        2001: (110.0, 121.0),
        2002: (121.0, 100.0),
        2003: (100.0, 120.0),
        2004: (120.0, 150.0),
    }
    for year, (first, last) in closes.items():
        rows.append({"date": pd.Timestamp(f"{year}-01-03"), "close": first})
        rows.append({"date": pd.Timestamp(f"{year}-12-29"), "close": last})
    df = pd.DataFrame(rows)
    df["year"] = df["date"].dt.year
    return df


@pytest.fixture
def crash_frame():
    raw = pd.DataFrame(
        [
            {
                "CASE_ID": 1, "ACCIDENT_YEAR": 2019, "COLLISION_DATE": "2019-01-15", "COLLISION_TIME": 830,
                "NUMBER_KILLED": 0, "NUMBER_INJURED": 1, "ALCOHOL_INVOLVED": "no", "COUNTY": "Alameda",
                "PEDESTRIAN_ACCIDENT": None, "BICYCLE_ACCIDENT": None, "MOTORCYCLE_ACCIDENT": None, "TRUCK_ACCIDENT": "yes",
                "TYPE_OF_COLLISION": "rear end", "COLLISION_SEVERITY": "minor injury", "WEATHER_1": "clear",
                "POINT_X": -122.27, "POINT_Y": 37.80,
            },
            {
                "CASE_ID": 2, "ACCIDENT_YEAR": 2019, "COLLISION_DATE": "2019-05-03", "COLLISION_TIME": 2215,
                "NUMBER_KILLED": 1, "NUMBER_INJURED": 0, "ALCOHOL_INVOLVED": "yes", "COUNTY": "Los Angeles",
                "PEDESTRIAN_ACCIDENT": "yes", "BICYCLE_ACCIDENT": None, "MOTORCYCLE_ACCIDENT": None, "TRUCK_ACCIDENT": None,
                "TYPE_OF_COLLISION": "vehicle/pedestrian", "COLLISION_SEVERITY": "fatal injury", "WEATHER_1": "clear",
                "POINT_X": -118.24, "POINT_Y": 34.05,
            },
            {
                "CASE_ID": 3, "ACCIDENT_YEAR": 2020, "COLLISION_DATE": "2020-07-20", "COLLISION_TIME": 1405,
                "NUMBER_KILLED": 0, "NUMBER_INJURED": 2, "ALCOHOL_INVOLVED": "no", "COUNTY": "Los Angeles",
                "PEDESTRIAN_ACCIDENT": None, "BICYCLE_ACCIDENT": None, "MOTORCYCLE_ACCIDENT": None, "TRUCK_ACCIDENT": None,
                "TYPE_OF_COLLISION": "broadside", "COLLISION_SEVERITY": "possible injury", "WEATHER_1": "cloudy",
                "POINT_X": -118.30, "POINT_Y": 34.10,
            },
            {
                "CASE_ID": 4, "ACCIDENT_YEAR": 2021, "COLLISION_DATE": "2021-11-11", "COLLISION_TIME": 2500,
                "NUMBER_KILLED": 0, "NUMBER_INJURED": 0, "ALCOHOL_INVOLVED": "yes", "COUNTY": "Alameda",
                "PEDESTRIAN_ACCIDENT": None, "BICYCLE_ACCIDENT": None, "MOTORCYCLE_ACCIDENT": "yes", "TRUCK_ACCIDENT": None,
                "TYPE_OF_COLLISION": "sideswipe", "COLLISION_SEVERITY": "possible injury", "WEATHER_1": "raining",
                "POINT_X": -122.20, "POINT_Y": 37.70,
            },
            {
                "CASE_ID": 5, "ACCIDENT_YEAR": 2021, "COLLISION_DATE": "2021-02-01", "COLLISION_TIME": 45,
                "NUMBER_KILLED": None, "NUMBER_INJURED": 3, "ALCOHOL_INVOLVED": "yes", "COUNTY": "Alameda",
                "PEDESTRIAN_ACCIDENT": None, "BICYCLE_ACCIDENT": "yes", "MOTORCYCLE_ACCIDENT": None, "TRUCK_ACCIDENT": None,
                "TYPE_OF_COLLISION": "other", "COLLISION_SEVERITY": "severe injury", "WEATHER_1": "clear",
                "POINT_X": -122.25, "POINT_Y": 37.75,
            },
        ]
    )
    return add_crash_keys(raw)


@pytest.fixture
def book_text():
    return pd.DataFrame(
        {
            "book": ["Book One", "Book Two"],
            "chapter": ["1", "1"],
            "text": [
                "The happy wizard smiled. The dark wizard frowned.",
                "Happy happy joy, the dark night. Well.",
            ],
        }
    )


@pytest.fixture
def lexicon_frame():
    return pd.DataFrame(
        [
            ("happy", "positive"),
            ("happy", "joy"),
            ("smiled", "positive"),
            ("dark", "negative"),
            ("frowned", "negative"),
            ("frowned", "sadness"),
            ("joy", "joy"),
            ("joy", "positive"),
            ("well", "positive"),
        ],
        columns=["word", "sentiment"],
    )


@pytest.fixture
def handle(sp500_frame, crash_frame, book_text, lexicon_frame):
    return DataHandle(
        sp500=Dataset("sp500", sp500_frame),
        crashes=Dataset("crashes", crash_frame),
        tokens=Dataset("tokens", tokenize(book_text)),
        lexicon=Dataset("lexicon", lexicon_frame),
        stop_words=load_stop_words(),
        files=("sp500.csv", "crashes.csv", "books.csv", "nrc.csv"),
    )


@pytest.fixture
def grouped_frame():
    return pd.DataFrame(
        {
            "category": ["b", "a", "c", "a", "b", "c", "d"],
            "value": [2.0, 4.0, 4.0, None, 6.0, 2.0, None],
            "year": [2001, 2000, 2002, 2000, 2001, 2003, 2003],
        }
    )
