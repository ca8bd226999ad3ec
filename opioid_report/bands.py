"""Bands for the five-year change in opioid prescribing rates.

Thresholds are fixed and evaluated in order; the first rule that matches
wins::

    change < -3.2   Greatly decreased
    change < -2.4   Moderately decreased
    change < 0      Slightly decreased
    otherwise       Increased
"""

from __future__ import annotations

import logging
from typing import List, Optional, Tuple

import pandas as pd

from .config import PLAN_TYPE_ALL
from .errors import MissingMeasurement
from .states import attach_state_codes

logger = logging.getLogger(__name__)

GREATLY_DECREASED = "Greatly decreased"
MODERATELY_DECREASED = "Moderately decreased"
SLIGHTLY_DECREASED = "Slightly decreased"
INCREASED = "Increased"

BAND_RULES: Tuple[Tuple[float, str], ...] = (
    (-3.2, GREATLY_DECREASED),
    (-2.4, MODERATELY_DECREASED),
    (0.0, SLIGHTLY_DECREASED),
)
BAND_LABELS: List[str] = [
    GREATLY_DECREASED,
    MODERATELY_DECREASED,
    SLIGHTLY_DECREASED,
    INCREASED,
]
BAND_DTYPE = pd.CategoricalDtype(BAND_LABELS, ordered=True)


def classify_change(value: float) -> str:
    """Return the band label for a five-year prescribing-rate change."""
    if value is None or pd.isna(value):
        raise MissingMeasurement("Prescribing change is missing")
    for upper, label in BAND_RULES:
        if value < upper:
            return label
    return INCREASED


def prescribing_bands(
    prescribing: pd.DataFrame,
    *,
    plan_type: str = PLAN_TYPE_ALL,
    year: Optional[int] = None,
) -> pd.DataFrame:
    """Band every state by its most recent five-year prescribing change.

    Parameters
    ----------
    prescribing : pd.DataFrame
        Columns ``state_name``, ``plan_type``, ``year`` and
        ``rate_5yr_change``.
    plan_type : str, optional
        Plan type to keep; defaults to ``"All"``.
    year : int, optional
        Year to use.  Defaults to the most recent year for ``plan_type``.

    Returns
    -------
    pd.DataFrame
        Columns ``state_code``, ``state_name``, ``year``,
        ``rate_5yr_change`` and ``band`` (ordered categorical).  Rows whose
        state does not resolve or whose change is missing are dropped.
    """
    rows = prescribing.loc[prescribing["plan_type"] == plan_type]
    if rows.empty:
        return pd.DataFrame(
            {
                "state_code": pd.Series(dtype=str),
                "state_name": pd.Series(dtype=str),
                "year": pd.Series(dtype="Int64"),
                "rate_5yr_change": pd.Series(dtype=float),
                "band": pd.Series(dtype=BAND_DTYPE),
            }
        )

    target = int(rows["year"].max()) if year is None else year
    rows = rows.loc[rows["year"] == target]

    missing = rows["rate_5yr_change"].isna()
    if missing.any():
        logger.warning(
            "Dropping %d states without a %d five-year change", int(missing.sum()), target
        )
    rows = attach_state_codes(rows.loc[~missing], "state_name")
    rows = rows.drop_duplicates(subset=["state_code"], keep="first")

    rows["band"] = pd.Categorical(
        rows["rate_5yr_change"].map(classify_change), dtype=BAND_DTYPE
    )
    cols = ["state_code", "state_name", "year", "rate_5yr_change", "band"]
    return rows[cols].sort_values("state_code", ignore_index=True)
