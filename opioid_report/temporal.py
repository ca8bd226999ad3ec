"""Date handling and time-based views of overdose rates.

Overdose records carry a month and a year.  Each one is a trailing 12-month
count ending in that month, so the January reading covers the whole prior
calendar year; :func:`observed_year` applies that shift.
"""

from __future__ import annotations

import calendar
import logging
from typing import Dict

import pandas as pd

from .errors import MissingMeasurement

logger = logging.getLogger(__name__)

_MONTHS: Dict[str, int] = {
    **{name.lower(): i for i, name in enumerate(calendar.month_name) if name},
    **{abbr.lower(): i for i, abbr in enumerate(calendar.month_abbr) if abbr},
    "sept": 9,
}


def month_number(month: object) -> int:
    """Return 1-12 for a month name, abbreviation or number."""
    if month is None or (isinstance(month, float) and pd.isna(month)):
        raise ValueError("Month is missing")
    text = str(month).strip().rstrip(".").lower()
    if text in _MONTHS:
        return _MONTHS[text]
    try:
        number = int(float(text))
    except ValueError:
        raise ValueError(f"Unrecognised month: {month!r}") from None
    if not 1 <= number <= 12:
        raise ValueError(f"Month out of range: {month!r}")
    return number


def parse_month_year(month: object, year: object) -> pd.Timestamp:
    """Return the first day of the given month as a Timestamp.

    >>> parse_month_year("January", 2023)
    Timestamp('2023-01-01 00:00:00')
    """
    try:
        year_int = int(float(str(year).strip()))
    except ValueError:
        raise ValueError(f"Unrecognised year: {year!r}") from None
    return pd.Timestamp(year=year_int, month=month_number(month), day=1)


def add_dates(df: pd.DataFrame) -> pd.DataFrame:
    """Return a copy of ``df`` with a ``date`` column built from ``month`` and ``year``."""
    out = df.copy()
    if out.empty:
        out["date"] = pd.Series(dtype="datetime64[ns]")
        return out
    out["date"] = pd.to_datetime(
        pd.DataFrame(
            {
                "year": out["year"].astype(int),
                "month": out["month"].map(month_number),
                "day": 1,
            }
        )
    )
    return out


def observed_year(date: object) -> int:
    """Calendar year a trailing 12-month reading actually describes.

    A January reading counts deaths from the previous February through
    January, so it is attributed to the prior year.
    """
    ts = pd.Timestamp(date)
    return ts.year - 1 if ts.month == 1 else ts.year


def time_series(rates: pd.DataFrame) -> pd.DataFrame:
    """Full per-(state, date) series in chronological order."""
    return rates.sort_values(["state_code", "date"], ignore_index=True)


def snapshot(rates: pd.DataFrame, date: object) -> pd.DataFrame:
    """Rows recorded at one fixed date."""
    target = pd.Timestamp(date)
    return rates.loc[rates["date"] == target].reset_index(drop=True)


def percent_change(earlier: float, later: float) -> float:
    """Later value as a percentage of the earlier one.

    >>> percent_change(100, 150)
    150.0
    """
    if earlier is None or later is None or pd.isna(earlier) or pd.isna(later):
        raise MissingMeasurement("Percent change needs both observations")
    if earlier <= 0:
        raise ValueError(f"Earlier value must be positive, got {earlier!r}")
    return 100.0 * later / earlier


def percent_change_between(
    rates: pd.DataFrame,
    earlier: object,
    later: object,
    *,
    value_col: str = "deaths_per_100k",
) -> pd.DataFrame:
    """Per-state percent change between two fixed dates.

    Only states observed at both dates are returned; states missing either
    reading, or with a non-positive earlier value, are left out.

    Returns
    -------
    pd.DataFrame
        Columns ``state_code``, ``earlier_value``, ``later_value`` and
        ``percent_change``.
    """
    first = snapshot(rates, earlier)[["state_code", value_col]].dropna()
    last = snapshot(rates, later)[["state_code", value_col]].dropna()
    merged = first.merge(
        last, on="state_code", how="inner", suffixes=("_earlier", "_later"),
        validate="one_to_one",
    ).rename(
        columns={
            f"{value_col}_earlier": "earlier_value",
            f"{value_col}_later": "later_value",
        }
    )
    positive = merged["earlier_value"] > 0
    if not positive.all():
        logger.warning(
            "Excluding %d states with a zero earlier value", int((~positive).sum())
        )
    merged = merged.loc[positive].copy()
    merged["percent_change"] = 100.0 * merged["later_value"] / merged["earlier_value"]
    return merged.sort_values("state_code", ignore_index=True)


def annual_summary(rates: pd.DataFrame) -> pd.DataFrame:
    """January readings labelled with the year the deaths occurred in.

    Returns one row per (state, observed year) with every column of
    ``rates`` plus ``observed_year``.
    """
    january = rates.loc[rates["date"].dt.month == 1].copy()
    january["observed_year"] = january["date"].map(observed_year).astype(int)
    return january.sort_values(["state_code", "observed_year"], ignore_index=True)
