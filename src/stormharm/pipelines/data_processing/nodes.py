"""Raw → clean transformation nodes for NOAA Storm Data.

Each function is a Kedro node: pure input → output, no side effects.
Together they form the data_processing pipeline that reads the raw
StormData file, renames and types the columns we need, resolves the
K/M/B damage exponents into dollar amounts, and builds the State and
County reference tables.

Error policy:
    - missing columns, malformed files and non-integer ids are fatal
    - unrecognised damage exponent codes are not: factor 1 is used and
      the codes are reported
"""

from __future__ import annotations

import bz2
import csv
import gzip
import logging
import lzma
import warnings
from pathlib import Path
from typing import IO, Any

import numpy as np
import pandas as pd

from stormharm.errors import (
    DataQualityWarning,
    ParseError,
    SchemaError,
    TypeCoercionError,
)

logger = logging.getLogger(__name__)

# ── Source column → clean column name ──────────────────────────────
COLUMN_MAPPING: dict[str, str] = {
    "STATE__": "state_id",
    "STATE": "state_name",
    "COUNTY": "county_id",
    "COUNTYNAME": "county_name",
    "BGN_DATE": "start_date",
    "BGN_TIME": "start_time",
    "EVTYPE": "event",
    "LENGTH": "length",
    "WIDTH": "width",
    "F": "f_scale",
    "REMARKS": "remarks",
    "FATALITIES": "fatalities",
    "INJURIES": "injuries",
    "PROPDMG": "property_magnitude",
    "PROPDMGEXP": "property_exp",
    "CROPDMG": "crop_magnitude",
    "CROPDMGEXP": "crop_exp",
}

# Fields of the clean event table handed to the aggregation pipeline
CLEAN_COLUMNS: list[str] = [
    "state_id",
    "county_id",
    "start_date",
    "start_time",
    "event",
    "fatalities",
    "injuries",
    "property_damage",
    "crop_damage",
]

# ── Multipliers for exponent codes like "K", "M", "B" ──────────────
_DAMAGE_MULTIPLIERS: dict[str, float] = {
    "": 1.0,
    "K": 1_000.0,
    "M": 1_000_000.0,
    "B": 1_000_000_000.0,
}

# (magnitude column, exponent column, output column)
_DAMAGE_COLUMNS: list[tuple[str, str, str]] = [
    ("property_magnitude", "property_exp", "property_damage"),
    ("crop_magnitude", "crop_exp", "crop_damage"),
]

_SOURCE_NAMES: dict[str, str] = {v: k for k, v in COLUMN_MAPPING.items()}

# ── Raw file reading ───────────────────────────────────────────────
RAW_ENCODING = "utf-8"

_OPENERS = {
    ".bz2": bz2.open,
    ".gz": gzip.open,
    ".xz": lzma.open,
}


def _sample_positions(mask: pd.Series, limit: int = 5) -> list[int]:
    return [int(i) for i in np.flatnonzero(mask.to_numpy())[:limit]]


def _open_text(path: Path) -> IO[str]:
    opener = _OPENERS.get(path.suffix.lower(), open)
    return opener(path, "rt", encoding=RAW_ENCODING, newline="")


def _check_field_counts(path: Path) -> None:
    """Fail on any record whose field count differs from the header's.

    pandas pads short rows with "" and can silently turn an extra
    leading field into the index, so field counts are checked on a
    separate csv.reader pass. Blank lines are skipped, as pandas does.

    Raises:
        ParseError: On an empty file, a field count mismatch, or bytes
            that are not valid text in RAW_ENCODING.
    """
    try:
        with _open_text(path) as handle:
            reader = csv.reader(handle)
            header = next(reader, None)
            if not header:
                raise ParseError(f"Could not parse {path.name}: no header row")
            for record in reader:
                if record and len(record) != len(header):
                    raise ParseError(
                        f"Could not parse {path.name}: line {reader.line_num} has "
                        f"{len(record)} fields, header has {len(header)}"
                    )
    except (csv.Error, UnicodeDecodeError) as exc:
        raise ParseError(f"Could not parse {path.name}: {exc}") from exc


# ── Node 1 ───────────────────────────────────────────────────────────
def load_raw_storm_data(raw_data_path: str) -> pd.DataFrame:
    """Read the raw StormData file into a DataFrame of strings.

    Compression is inferred from the file extension, so the
    ``StormData.csv.bz2`` download can be read as-is. Every cell is kept
    as its raw text (empty cells stay ``""``); typing happens in the
    later nodes.

    Args:
        raw_data_path: Path to the comma-separated (optionally
            compressed) StormData file.

    Returns:
        Raw DataFrame with one column per header field, in file order.

    Raises:
        FileNotFoundError: If the file does not exist.
        ParseError: If a row's field count differs from the header's,
            or the file is not valid UTF-8 text.
    """
    path = Path(raw_data_path)
    if not path.is_file():
        raise FileNotFoundError(f"Storm data file not found: {path}")

    _check_field_counts(path)

    try:
        df = pd.read_csv(
            path,
            dtype=str,
            keep_default_na=False,
            index_col=False,
            compression="infer",
            encoding=RAW_ENCODING,
        )
    except (
        pd.errors.ParserError,
        pd.errors.EmptyDataError,
        UnicodeDecodeError,
    ) as exc:
        raise ParseError(f"Could not parse {path.name}: {exc}") from exc

    logger.info(
        "Loaded %s: %s rows, %d columns",
        path.name,
        f"{len(df):,}",
        len(df.columns),
    )
    return df


# ── Node 2 ───────────────────────────────────────────────────────────
def select_and_rename_columns(df: pd.DataFrame) -> pd.DataFrame:
    """Keep the columns listed in COLUMN_MAPPING and give them clean names.

    Columns are addressed by name only; their order in the file is
    irrelevant.

    Raises:
        SchemaError: If any source column in COLUMN_MAPPING is absent.
    """
    missing = [c for c in COLUMN_MAPPING if c not in df.columns]
    if missing:
        raise SchemaError(f"Expected columns not found in data: {missing}")

    before_cols = len(df.columns)
    df_selected = df[list(COLUMN_MAPPING)].rename(columns=COLUMN_MAPPING)

    logger.info(
        "Column selection: kept %d of %d columns",
        len(COLUMN_MAPPING),
        before_cols,
    )
    return df_selected


# ── Node 3 ───────────────────────────────────────────────────────────
def _coerce_integer_column(series: pd.Series) -> pd.Series:
    """Convert an id column to int64, failing on any unusable value.

    Values such as "1.00" are accepted; blanks, text and fractions are not.
    """
    numeric = pd.to_numeric(series.astype(str).str.strip(), errors="coerce")
    bad = numeric.isna() | (numeric % 1 != 0)

    if bad.any():
        positions = _sample_positions(bad)
        samples = series.iloc[positions].tolist()
        raise TypeCoercionError(
            f"{series.name}: {bad.sum():,} of {len(series):,} values are not "
            f"integers (row positions {positions}, values {samples})"
        )
    return numeric.astype("int64")


def coerce_identifiers(df: pd.DataFrame) -> pd.DataFrame:
    """Convert state_id and county_id to integers.

    A bad id fails the whole run: no rows are skipped.

    Raises:
        TypeCoercionError: If either column holds a non-integer value.
    """
    df = df.copy()
    for col in ("state_id", "county_id"):
        df[col] = _coerce_integer_column(df[col])

    logger.info(
        "Identifiers coerced: %s distinct state_id, %s distinct "
        "(state_id, county_id) pairs",
        f"{df['state_id'].nunique():,}",
        f"{len(df[['state_id', 'county_id']].drop_duplicates()):,}",
    )
    return df


# ── Node 4 ───────────────────────────────────────────────────────────
def normalize_event_labels(df: pd.DataFrame) -> pd.DataFrame:
    """Title-case the event label.

    "TORNADO" and "tornado" become the same event; "TSTM WIND" and
    "THUNDERSTORM WIND" stay distinct. No other cleanup is applied.
    """
    df = df.copy()
    before = df["event"].nunique()
    df["event"] = df["event"].astype("string").str.title()

    logger.info(
        "Event labels title-cased: %s distinct labels → %s",
        f"{before:,}",
        f"{df['event'].nunique():,}",
    )
    return df


# ── Node 5 ───────────────────────────────────────────────────────────
def parse_start_dates(df: pd.DataFrame, date_format: str) -> pd.DataFrame:
    """Parse start_date from its leading MM/DD/YYYY token.

    The source writes dates as "4/18/1950 0:00:00"; the time part is
    always midnight and is dropped. Unparseable dates become NaT and
    only produce a warning, since no summary depends on them.

    Args:
        df: Event table after label normalisation.
        date_format: strptime format for the date token (parameters.yml).

    Returns:
        DataFrame with a datetime start_date and a stripped start_time.
    """
    df = df.copy()

    raw = df["start_date"].astype("string").str.strip()
    leading = raw.str.split(" ", n=1).str[0]
    df["start_date"] = pd.to_datetime(leading, format=date_format, errors="coerce")
    df["start_time"] = df["start_time"].astype("string").str.strip()

    unparsed = df["start_date"].isna() & raw.fillna("").ne("")
    if unparsed.any():
        logger.warning(
            "start_date: %s values could not be parsed with %r. Samples: %s",
            f"{unparsed.sum():,}",
            date_format,
            raw[unparsed].unique()[:10].tolist(),
        )

    logger.info(
        "Start dates parsed. Range: %s – %s",
        df["start_date"].min(),
        df["start_date"].max(),
    )
    return df


# ── Node 6 ───────────────────────────────────────────────────────────
def _scale_factors(codes: pd.Series) -> tuple[pd.Series, pd.Series]:
    """Map exponent codes to multipliers.

    Lookup ignores surrounding whitespace and case. Returns the factors
    (1.0 for unrecognised codes) and a mask of the unrecognised rows.
    """
    normalized = codes.fillna("").astype(str).str.strip().str.upper()
    factors = normalized.map(_DAMAGE_MULTIPLIERS)
    unrecognised = factors.isna()
    return factors.fillna(1.0).astype(float), unrecognised


def _code_report(codes: pd.Series, unrecognised: pd.Series) -> pd.DataFrame:
    counts = (
        codes[unrecognised]
        .fillna("")
        .astype(str)
        .str.strip()
        .value_counts()
        .sort_index()
    )
    return pd.DataFrame(
        {
            "column": _SOURCE_NAMES[codes.name],
            "code": counts.index.astype(str),
            "count": counts.to_numpy(dtype="int64"),
        }
    )


def resolve_damage_values(
    df: pd.DataFrame,
) -> tuple[pd.DataFrame, pd.DataFrame]:
    """Turn magnitude + exponent pairs into dollar damage amounts.

    For property and crop damage independently:
        damage = numeric(magnitude) × factor(exponent)
    with factor "" → 1, "K" → 1e3, "M" → 1e6, "B" → 1e9.

    - "2.5" + "K" → 2,500.0
    - "2.5" + ""  → 2.5
    - "2.5" + "X" → 2.5 and a DataQualityWarning
    - non-numeric magnitude → 0.0

    Fatality and injury counts are made integer here as well, with
    missing or non-numeric values counted as 0.

    Args:
        df: Event table after date parsing.

    Returns:
        Tuple of (event table with property_damage, crop_damage,
        fatalities and injuries typed; report of unrecognised
        exponent codes with columns column, code, count).
    """
    df = df.copy()
    reports: list[pd.DataFrame] = []

    for magnitude_col, exp_col, damage_col in _DAMAGE_COLUMNS:
        factors, unrecognised = _scale_factors(df[exp_col])
        magnitude = pd.to_numeric(df[magnitude_col], errors="coerce").fillna(0.0)
        df[damage_col] = magnitude.astype(float) * factors

        if unrecognised.any():
            report = _code_report(df[exp_col], unrecognised)
            message = (
                f"{_SOURCE_NAMES[exp_col]}: {unrecognised.sum():,} rows have "
                f"unrecognised magnitude codes {report['code'].tolist()}; "
                "scale factor 1 used"
            )
            logger.warning(message)
            warnings.warn(message, DataQualityWarning, stacklevel=2)
            reports.append(report)

        logger.info(
            "%s: total %s dollars",
            damage_col,
            f"{df[damage_col].sum():,.0f}",
        )

    for col in ("fatalities", "injuries"):
        df[col] = pd.to_numeric(df[col], errors="coerce").fillna(0).astype("int64")

    if reports:
        code_report = pd.concat(reports, ignore_index=True)
    else:
        code_report = pd.DataFrame(
            {
                "column": pd.Series(dtype=str),
                "code": pd.Series(dtype=str),
                "count": pd.Series(dtype="int64"),
            }
        )
    return df, code_report


# ── Node 7 ───────────────────────────────────────────────────────────
def _lowest_free_id_per_name(pairs: pd.DataFrame) -> pd.DataFrame:
    """One row per state_name, keeping its lowest state_id.

    Names are visited in order of their lowest id. A name whose lowest
    id is already held by an earlier name takes its next free id; with
    no free id left it keeps the shared one and a warning is logged.
    """
    ordered = pairs.sort_values("state_id", kind="stable")
    taken: set[int] = set()
    rows: list[tuple[int, str]] = []

    for name, ids in ordered.groupby("state_name", sort=False)["state_id"]:
        free = [i for i in ids if i not in taken]
        if free:
            chosen = free[0]
        else:
            chosen = ids.iloc[0]
            logger.warning(
                "state_name %r has no unshared state_id; keeping shared id %d",
                name,
                chosen,
            )
        taken.add(chosen)
        rows.append((chosen, name))

    return pd.DataFrame(rows, columns=["state_id", "state_name"]).astype(
        {"state_id": pairs["state_id"].dtype}
    )


def build_state_table(df: pd.DataFrame, state_dedup: dict[str, Any]) -> pd.DataFrame:
    """Build the canonical State reference table.

    The raw data pairs some state abbreviations with more than one
    state_id. After dropping exact duplicate (state_id, state_name)
    pairs, one of two strategies picks the canonical rows:

    - ``lowest_id``: keep the numerically-lowest state_id per name that
      no other name already holds.
    - ``denylist``: drop fixed 0-based row positions of the
      deduplicated table, listed in ``denylist_positions``.

    Args:
        df: Normalised event table (needs state_id and state_name).
        state_dedup: ``strategy`` and ``denylist_positions`` from
            parameters.yml.

    Returns:
        State table sorted by state_id.
    """
    pairs = df[["state_id", "state_name"]].drop_duplicates().reset_index(drop=True)
    strategy = state_dedup.get("strategy", "lowest_id")

    if strategy == "lowest_id":
        states = _lowest_free_id_per_name(pairs)
    elif strategy == "denylist":
        positions = [int(p) for p in state_dedup.get("denylist_positions") or []]
        out_of_range = [p for p in positions if not 0 <= p < len(pairs)]
        if out_of_range:
            raise ValueError(
                f"denylist_positions {out_of_range} out of range for "
                f"{len(pairs)} distinct (state_id, state_name) pairs"
            )
        states = pairs.drop(index=positions)
    else:
        raise ValueError(f"Unknown state_dedup strategy: {strategy!r}")

    states = states.sort_values("state_id", kind="stable").reset_index(drop=True)

    n_dup_names = states["state_name"].duplicated().sum()
    if n_dup_names:
        logger.warning(
            "State table still has %d duplicated state names after %s dedup",
            n_dup_names,
            strategy,
        )
    logger.info(
        "State table: %d canonical states from %d distinct (id, name) pairs "
        "(strategy=%s)",
        len(states),
        len(pairs),
        strategy,
    )
    return states


# ── Node 8 ───────────────────────────────────────────────────────────
def build_county_table(df: pd.DataFrame) -> pd.DataFrame:
    """Distinct (state_id, state_name, county_id, county_name) rows.

    county_id is only unique within a state, so the state columns stay
    part of the key.
    """
    counties = (
        df[["state_id", "state_name", "county_id", "county_name"]]
        .drop_duplicates()
        .reset_index(drop=True)
    )
    logger.info("County table: %s distinct rows", f"{len(counties):,}")
    return counties


# ── Node 9 ───────────────────────────────────────────────────────────
def select_clean_records(df: pd.DataFrame) -> pd.DataFrame:
    """Project the normalised table onto the clean event fields."""
    clean = df[CLEAN_COLUMNS].copy()
    logger.info(
        "Clean event table ready: %s rows × %d columns",
        f"{len(clean):,}",
        len(clean.columns),
    )
    return clean
