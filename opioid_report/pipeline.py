"""Core pipeline logic: join prescribing, treatment and overdose data by state.

This module orchestrates the loading and joining of four datasets:

* Medicare Part D opioid prescribing rates, used to band each state by the
  five-year change in its prescribing rate.
* The opioid treatment program provider registry.
* CDC provisional overdose death counts (trailing 12-month totals).
* 2020 census population, the denominator for every rate.

The primary entry point is :func:`run_pipeline`, which returns a payload of
DataFrames, one per report view.  :func:`build_views` does the same from
tables that are already loaded.

Every view is an inner join on ``state_code`` except the provider density
table, which keeps every state and fills zero providers with ``0.0``.
"""

from __future__ import annotations

from typing import Dict, Optional

import logging
import pandas as pd

from .bands import BAND_DTYPE, prescribing_bands
from .config import CAUSE_OF_DEATH, EARLIER_SNAPSHOT, LATER_SNAPSHOT, resolve_sources
from .errors import EmptySource
from .loaders import load_sources
from .rates import overdose_density, per_100k, provider_density
from .states import state_reference
from .temporal import (
    annual_summary,
    observed_year,
    percent_change_between,
    snapshot,
    time_series,
)

# Module‑level logger
logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Views
# ---------------------------------------------------------------------------


def overdose_by_band(overdose_rates: pd.DataFrame, bands: pd.DataFrame) -> pd.DataFrame:
    """Overdose density rows joined to each state's prescribing-change band."""
    return overdose_rates.merge(
        bands[["state_code", "band"]], on="state_code", how="inner", validate="many_to_one"
    )


def band_trend(by_band: pd.DataFrame) -> pd.DataFrame:
    """Pool states within each band into one overdose rate per date.

    Deaths and population are summed before dividing, so large states carry
    more weight than small ones.
    """
    grouped = by_band.groupby(["band", "date"], as_index=False, observed=True).agg(
        deaths=("deaths", "sum"),
        population=("population", "sum"),
        states=("state_code", "nunique"),
    )
    grouped["deaths_per_100k"] = per_100k(grouped["deaths"], grouped["population"])
    grouped["band"] = grouped["band"].astype(BAND_DTYPE)
    return grouped.sort_values(["band", "date"], ignore_index=True)


def change_by_band(change: pd.DataFrame, bands: pd.DataFrame) -> pd.DataFrame:
    """Percent change in overdose density by state, with its prescribing band."""
    cols = ["state_code", "state_name", "rate_5yr_change", "band"]
    out = change.merge(bands[cols], on="state_code", how="inner", validate="one_to_one")
    return out.sort_values("percent_change", ascending=False, ignore_index=True)


def change_by_providers(change: pd.DataFrame, providers: pd.DataFrame) -> pd.DataFrame:
    """Percent change in overdose density by state, with its provider density."""
    cols = ["state_code", "state_name", "providers", "providers_per_100k"]
    cols = [c for c in cols if c in providers.columns]
    out = change.merge(providers[cols], on="state_code", how="inner", validate="one_to_one")
    return out.sort_values("state_code", ignore_index=True)


def summary_table(
    change: pd.DataFrame,
    bands: pd.DataFrame,
    providers: pd.DataFrame,
    *,
    earlier: object,
    later: object,
) -> pd.DataFrame:
    """One row per state with band, provider density and overdose change.

    The overdose columns are labelled with the year the deaths occurred in,
    not the year the January reading was published.
    """
    early_label = f"deaths_per_100k_{observed_year(earlier)}"
    late_label = f"deaths_per_100k_{observed_year(later)}"
    table = (
        change.merge(
            bands[["state_code", "state_name", "band"]], on="state_code", how="inner"
        )
        .merge(
            providers[["state_code", "providers_per_100k"]], on="state_code", how="inner"
        )
        .rename(columns={"earlier_value": early_label, "later_value": late_label})
    )
    ordered = [
        "state_code",
        "state_name",
        "band",
        "providers_per_100k",
        early_label,
        late_label,
        "percent_change",
    ]
    return table[ordered].sort_values("percent_change", ascending=False, ignore_index=True)


# ---------------------------------------------------------------------------
# Driver
# ---------------------------------------------------------------------------


def build_views(
    *,
    prescribing: pd.DataFrame,
    overdose: pd.DataFrame,
    providers: pd.DataFrame,
    population: pd.DataFrame,
    earlier: object = EARLIER_SNAPSHOT,
    later: object = LATER_SNAPSHOT,
    cause: str = CAUSE_OF_DEATH,
) -> Dict[str, object]:
    """Assemble every report view from loaded tables.

    Parameters
    ----------
    prescribing, overdose, providers, population : pd.DataFrame
        Tables as returned by the ``loaders.load_*`` functions.
    earlier, later : date-like, optional
        January readings compared by the percent-change views.
    cause : str, optional
        Cause-of-death category used for overdose density.

    Returns
    -------
    Dict[str, object]
        View name → DataFrame, plus ``earlier_date``, ``later_date`` and
        ``cause`` metadata.
    """
    if population.empty:
        raise EmptySource("Population table has no state rows; no rates can be computed.")

    # Population carries its own state names; fall back to the reference set.
    if "state_name" not in population.columns:
        population = population.merge(state_reference(), on="state_code", how="inner")

    providers_view = provider_density(providers, population)
    overdose_rates = time_series(overdose_density(overdose, population, cause=cause))
    bands = prescribing_bands(prescribing)
    logger.info(
        "Computed rates: %d provider states, %d overdose rows, %d banded states",
        len(providers_view),
        len(overdose_rates),
        len(bands),
    )

    earlier_ts, later_ts = pd.Timestamp(earlier), pd.Timestamp(later)
    change = percent_change_between(overdose_rates, earlier_ts, later_ts)
    if change.empty:
        logger.warning(
            "No state has overdose readings at both %s and %s",
            earlier_ts.date(),
            later_ts.date(),
        )

    by_band = overdose_by_band(overdose_rates, bands)
    return {
        "provider_density": providers_view,
        "overdose_series": overdose_rates,
        "overdose_snapshot": snapshot(overdose_rates, later_ts),
        "annual_summary": annual_summary(overdose_rates),
        "overdose_by_band": by_band,
        "band_trend": band_trend(by_band),
        "change_by_band": change_by_band(change, bands),
        "change_by_providers": change_by_providers(change, providers_view),
        "summary_table": summary_table(
            change, bands, providers_view, earlier=earlier_ts, later=later_ts
        ),
        "bands": bands,
        "earlier_date": earlier_ts,
        "later_date": later_ts,
        "cause": cause,
    }


def run_pipeline(
    *,
    sources: Optional[Dict[str, str]] = None,
    earlier: object = EARLIER_SNAPSHOT,
    later: object = LATER_SNAPSHOT,
) -> Dict[str, object]:
    """Load every source and build the report views.

    Parameters
    ----------
    sources : Dict[str, str], optional
        Overrides for source locations, keyed ``prescribing``, ``overdose``,
        ``providers`` and ``population``.  Missing keys fall back to the
        environment and then to ``config`` defaults.
    earlier, later : date-like, optional
        January readings compared by the percent-change views.

    Returns
    -------
    Dict[str, object]
        The payload returned by :func:`build_views`.
    """
    tables = load_sources(resolve_sources(sources))
    return build_views(**tables, earlier=earlier, later=later)
