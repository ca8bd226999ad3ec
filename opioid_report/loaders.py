"""Loaders for the four report inputs.

Each source is a CSV file, read either from a local path or from an
``http(s)`` URL.  :func:`load_table` handles the shared mechanics: reading,
checking that the required columns exist, renaming them to the report's
column names and coercing numeric fields.  The ``load_*`` wrappers return
the tables the rest of the report works with.

* :func:`load_prescribing` – Medicare Part D opioid prescribing rates by
  geography (``state_name``, ``plan_type``, ``year``, ``rate_5yr_change``).
* :func:`load_overdose` – CDC provisional overdose death counts
  (``state_code``, ``cause_of_death``, ``month``, ``year``, ``death_count``).
* :func:`load_providers` – opioid treatment program registry (``state_code``).
* :func:`load_population` – 2020 state population (``state_code``,
  ``state_name``, ``population``).
"""

from __future__ import annotations

from io import BytesIO
from pathlib import Path
from typing import Dict, Iterable, List, Optional

import logging
import pandas as pd
import requests

from .config import (
    DEFAULT_SEP,
    OVERDOSE_COLUMNS,
    POPULATION_COLUMNS,
    PRESCRIBING_COLUMNS,
    PRESCRIBING_GEO_LEVEL_COL,
    PRESCRIBING_RATE_COL,
    PROVIDER_COLUMNS,
    REQUEST_TIMEOUT,
    STATE_GEO_LEVEL,
)
from .errors import SchemaMismatch, SourceUnavailable
from .states import attach_state_codes, filter_known_codes
from .temporal import month_number

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def ensure_columns(df: pd.DataFrame, required: Iterable[str], source: str = "") -> None:
    """Raise :class:`SchemaMismatch` if the DataFrame lacks any required column."""
    missing = [col for col in required if col not in df.columns]
    if missing:
        raise SchemaMismatch(source, missing)


def _resolve_stream(source: str | Path) -> BytesIO | Path:
    """Return a file-like object (for URLs) or Path (for local files)."""
    source_str = str(source)
    if source_str.lower().startswith(("http://", "https://")):
        try:
            response = requests.get(source_str, timeout=REQUEST_TIMEOUT)
            response.raise_for_status()
        except requests.RequestException as exc:
            raise SourceUnavailable(source_str, str(exc)) from exc
        return BytesIO(response.content)

    path = Path(source)
    if not path.exists():
        raise SourceUnavailable(source_str, "file not found")
    return path


def read_source(source: str | Path, sep: str = DEFAULT_SEP) -> pd.DataFrame:
    """Read a CSV source into a DataFrame with every column as text."""
    stream = _resolve_stream(source)
    try:
        return pd.read_csv(stream, sep=sep, dtype=str, keep_default_na=True)
    except (OSError, UnicodeDecodeError, pd.errors.ParserError) as exc:
        raise SourceUnavailable(str(source), str(exc)) from exc
    except pd.errors.EmptyDataError as exc:
        raise SourceUnavailable(str(source), "source is empty") from exc


def to_number(series: pd.Series) -> pd.Series:
    """Coerce text to float, stripping thousands separators; bad values become NaN."""
    cleaned = series.astype(str).str.replace(",", "", regex=False).str.strip()
    return pd.to_numeric(cleaned, errors="coerce")


def load_table(
    source: str | Path,
    columns: Dict[str, str],
    *,
    numeric: Iterable[str] = (),
    integer: Iterable[str] = (),
    nullable: Iterable[str] = (),
    optional: Optional[Dict[str, str]] = None,
    sep: str = DEFAULT_SEP,
) -> pd.DataFrame:
    """Read a source and return the renamed, type-coerced columns.

    Parameters
    ----------
    source : str or Path
        Local path or URL of the CSV.
    columns : Dict[str, str]
        Required source columns mapped to their report names.
    numeric, integer : Iterable[str]
        Report column names coerced to float / integer.
    nullable : Iterable[str]
        Numeric columns allowed to stay NaN (suppressed values).  Any other
        numeric or integer column that fails coercion drops its row.
    optional : Dict[str, str], optional
        Source columns renamed and kept when present.
    sep : str, optional
        Column delimiter; defaults to ``","``.

    Returns
    -------
    pd.DataFrame
        One row per usable source row.
    """
    raw = read_source(source, sep=sep)
    raw.columns = [str(col).strip() for col in raw.columns]
    ensure_columns(raw, columns.keys(), source=str(source))

    rename = dict(columns)
    rename.update({k: v for k, v in (optional or {}).items() if k in raw.columns})
    df = raw[list(rename)].rename(columns=rename).copy()

    integer = list(integer)
    nullable = set(nullable)
    for col in [*numeric, *integer]:
        df[col] = to_number(df[col])

    strict = [col for col in [*numeric, *integer] if col not in nullable]
    bad = df[strict].isna().any(axis=1) if strict else pd.Series(False, index=df.index)
    if bad.any():
        logger.warning(
            "Dropped %d of %d rows from %s that failed numeric coercion",
            int(bad.sum()),
            len(df),
            source,
        )
    df = df.loc[~bad].copy()

    for col in integer:
        df[col] = df[col].round().astype(int)

    logger.info("Loaded %d rows from %s", len(df), source)
    return df.reset_index(drop=True)


# ---------------------------------------------------------------------------
# Source loaders
# ---------------------------------------------------------------------------


def cause_category(indicator: pd.Series) -> pd.Series:
    """Strip the ICD-10 code suffix from an indicator label.

    ``"Opioids (T40.0-T40.4,T40.6)"`` becomes ``"Opioids"``.
    """
    return indicator.astype(str).str.replace(r"\s*\(.*\)\s*$", "", regex=True).str.strip()


def load_prescribing(source: str | Path, sep: str = DEFAULT_SEP) -> pd.DataFrame:
    """Load the prescribing-rate table, keeping state-level rows only."""
    optional = {
        PRESCRIBING_GEO_LEVEL_COL: "geo_level",
        PRESCRIBING_RATE_COL: "prescribing_rate",
    }
    df = load_table(
        source,
        PRESCRIBING_COLUMNS,
        numeric=["rate_5yr_change"],
        integer=["year"],
        nullable=["rate_5yr_change"],
        optional=optional,
        sep=sep,
    )
    if "geo_level" in df.columns:
        df = df[df["geo_level"].astype(str).str.strip() == STATE_GEO_LEVEL]
        df = df.drop(columns=["geo_level"]).copy()
    if "prescribing_rate" in df.columns:
        df["prescribing_rate"] = to_number(df["prescribing_rate"])
    df["state_name"] = df["state_name"].astype(str).str.strip()
    df["plan_type"] = df["plan_type"].astype(str).str.strip()
    return df.reset_index(drop=True)


def load_overdose(source: str | Path, sep: str = DEFAULT_SEP) -> pd.DataFrame:
    """Load provisional overdose death counts.

    Suppressed counts stay as NaN here; they are excluded at aggregation
    time, never treated as zero.
    """
    df = load_table(
        source,
        OVERDOSE_COLUMNS,
        numeric=["death_count"],
        integer=["year"],
        nullable=["death_count"],
        sep=sep,
    )
    df["cause_of_death"] = cause_category(df["cause_of_death"])

    months = df["month"].map(_safe_month)
    bad = months.isna()
    if bad.any():
        logger.warning("Dropped %d overdose rows with unparseable months", int(bad.sum()))
    df = df.loc[~bad].copy()
    df["month"] = months[~bad].astype(int)
    df = filter_known_codes(df, "state_code")
    return df[["state_code", "cause_of_death", "month", "year", "death_count"]]


def _safe_month(value: object) -> Optional[int]:
    try:
        return month_number(value)
    except ValueError:
        return None


def load_providers(source: str | Path, sep: str = DEFAULT_SEP) -> pd.DataFrame:
    """Load the treatment provider registry as one ``state_code`` row per enrollment."""
    df = load_table(source, PROVIDER_COLUMNS, sep=sep)
    df = df.dropna(subset=["state_code"])
    return filter_known_codes(df, "state_code")[["state_code"]]


def load_population(source: str | Path, sep: str = DEFAULT_SEP) -> pd.DataFrame:
    """Load state population and resolve names to state codes.

    Regions, the national total and territories do not resolve and are
    dropped.
    """
    df = load_table(source, POPULATION_COLUMNS, integer=["population"], sep=sep)
    df = attach_state_codes(df, "state_name")
    df = df.drop_duplicates(subset=["state_code"], keep="first")
    return df[["state_code", "state_name", "population"]].reset_index(drop=True)


def load_sources(sources: Dict[str, str | Path]) -> Dict[str, pd.DataFrame]:
    """Load every source named in ``sources`` (keys as in ``config.resolve_sources``)."""
    loaders = {
        "prescribing": load_prescribing,
        "overdose": load_overdose,
        "providers": load_providers,
        "population": load_population,
    }
    tables: Dict[str, pd.DataFrame] = {}
    for key, loader in loaders.items():
        logger.info("Loading %s data from %s", key, sources[key])
        tables[key] = loader(sources[key])
    return tables


__all__: List[str] = [
    "ensure_columns",
    "read_source",
    "to_number",
    "load_table",
    "cause_category",
    "load_prescribing",
    "load_overdose",
    "load_providers",
    "load_population",
    "load_sources",
]
