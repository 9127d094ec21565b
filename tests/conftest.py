"""Shared fixtures: a tiny StormData extract, raw and clean."""

import pandas as pd
import pytest

RAW_COLUMNS = [
    "STATE__", "BGN_DATE", "BGN_TIME", "TIME_ZONE", "COUNTY", "COUNTYNAME",
    "STATE", "EVTYPE", "LENGTH", "WIDTH", "F", "FATALITIES", "INJURIES",
    "PROPDMG", "PROPDMGEXP", "CROPDMG", "CROPDMGEXP", "REMARKS", "REFNUM",
]  # fmt: skip

RAW_ROWS = [
    ["1.00", "4/18/1950 0:00:00", "0130", "CST", "97.00", "MOBILE", "AL", "TORNADO",
     "14.00", "100.00", "3", "1.00", "0.00", "25.00", "K", "0.00", "", "", "1"],
    ["1.00", "11/15/1951 0:00:00", "0130", "CST", "3.00", "BALDWIN", "AL", "tornado",
     "2.00", "150.00", "2", "0.00", "5.00", "2.50", "M", "0.00", "", "", "2"],
    ["13.00", "2/20/1960 0:00:00", "1600", "EST", "5.00", "FULTON", "GA", "TSTM WIND",
     "0.00", "0.00", "", "0.00", "0.00", "10.00", "", "5.00", "K", "Trees down", "3"],
    ["1.00", "6/1/1970 0:00:00", "0900", "CST", "97.00", "MOBILE", "AL", "Tornado",
     "1.00", "30.00", "1", "2.00", "0.00", "0.00", "", "0.00", "", "", "4"],
    ["48.00", "7/4/1995 0:00:00", "12:00:00 PM", "CST", "1.00", "HARRIS", "TX", "FLOOD",
     "0.00", "0.00", "", "0.00", "1.00", "3.00", "B", "1.00", "M", "", "5"],
    ["48.00", "bad date", "0000", "CST", "1.00", "HARRIS", "TX", "flash flood",
     "0.00", "0.00", "", "0.00", "0.00", "2.50", "X", "0.00", "", "", "6"],
]  # fmt: skip


@pytest.fixture()
def raw_storm_data():
    """Raw extract as the loader returns it: every cell a string."""
    return pd.DataFrame(RAW_ROWS, columns=RAW_COLUMNS)


@pytest.fixture()
def raw_storm_csv(tmp_path):
    """The same extract written to disk as a CSV file."""
    path = tmp_path / "StormData.csv"
    pd.DataFrame(RAW_ROWS, columns=RAW_COLUMNS).to_csv(path, index=False)
    return path


@pytest.fixture()
def clean_events():
    """Clean event table with round numbers for aggregation tests."""
    return pd.DataFrame(
        {
            "state_id": [1, 1, 13, 1, 48, 48],
            "county_id": [97, 3, 5, 97, 1, 1],
            "start_date": pd.to_datetime(
                ["1950-04-18", "1951-11-15", "1960-02-20", "1970-06-01", "1995-07-04", None]
            ),
            "start_time": ["0130", "0130", "1600", "0900", "12:00:00 PM", "0000"],
            "event": ["Tornado", "Tornado", "Tstm Wind", "Tornado", "Flood", "Flash Flood"],
            "fatalities": [1, 0, 0, 2, 0, 0],
            "injuries": [0, 5, 0, 0, 1, 0],
            "property_damage": [25_000.0, 2_500_000.0, 10.0, 0.0, 3e9, 2.5],
            "crop_damage": [0.0, 0.0, 5_000.0, 0.0, 1e6, 0.0],
        }
    )


@pytest.fixture()
def states():
    return pd.DataFrame({"state_id": [1, 13, 48], "state_name": ["AL", "GA", "TX"]})
