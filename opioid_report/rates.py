"""Per-100,000 population rates for treatment providers and overdose deaths.

Population is the fixed 2020 snapshot and is applied to every date.

The two rates treat missing data differently.  A state with no provider
rows had no providers and gets ``0.0``.  A state with no usable overdose
count has no data feed and is left out of the overdose table.
"""

from __future__ import annotations

import logging

import pandas as pd

from .config import CAUSE_OF_DEATH, PER_CAPITA_SCALE
from .temporal import add_dates

logger = logging.getLogger(__name__)


def per_100k(count: pd.Series, population: pd.Series) -> pd.Series:
    """Scale ``count / population`` to 100,000 people; non-positive population gives NaN."""
    denom = population.astype(float).where(population > 0)
    return PER_CAPITA_SCALE * count.astype(float) / denom


def provider_density(providers: pd.DataFrame, population: pd.DataFrame) -> pd.DataFrame:
    """Treatment providers per 100,000 residents for every state in ``population``.

    Parameters
    ----------
    providers : pd.DataFrame
        One row per provider enrollment with a ``state_code`` column.
    population : pd.DataFrame
        Columns ``state_code`` and ``population`` (plus optional
        ``state_name``).

    Returns
    -------
    pd.DataFrame
        ``population`` columns plus ``providers`` (count) and
        ``providers_per_100k``.  States without providers get 0 and 0.0.
    """
    counts = (
        providers["state_code"]
        .value_counts()
        .rename_axis("state_code")
        .reset_index(name="providers")
    )
    # Right join: every population state stays, even with no providers.
    out = counts.merge(population, on="state_code", how="right", validate="one_to_one")
    out["providers"] = out["providers"].fillna(0).astype(int)

    valid = out["population"] > 0
    if not valid.all():
        logger.warning(
            "Excluding %d states with missing or zero population from provider density",
            int((~valid).sum()),
        )
    out = out.loc[valid].copy()
    out["providers_per_100k"] = per_100k(out["providers"], out["population"])

    ordered = [c for c in ["state_code", "state_name", "population"] if c in out.columns]
    return out[ordered + ["providers", "providers_per_100k"]].sort_values(
        "state_code", ignore_index=True
    )


def overdose_density(
    overdose: pd.DataFrame,
    population: pd.DataFrame,
    cause: str = CAUSE_OF_DEATH,
) -> pd.DataFrame:
    """Overdose deaths per 100,000 residents by state and month.

    Parameters
    ----------
    overdose : pd.DataFrame
        Columns ``state_code``, ``cause_of_death``, ``month``, ``year`` and
        ``death_count`` (NaN when suppressed).
    population : pd.DataFrame
        Columns ``state_code`` and ``population``.
    cause : str, optional
        Cause-of-death category to keep; defaults to ``"Opioids"``.

    Returns
    -------
    pd.DataFrame
        Columns ``state_code``, ``date``, ``deaths``, ``population`` and
        ``deaths_per_100k``.  Suppressed counts are dropped before summing,
        and states absent from ``population`` are dropped by the inner join.
    """
    rows = overdose.loc[overdose["cause_of_death"] == cause]
    missing = rows["death_count"].isna()
    if missing.any():
        logger.info("Skipping %d suppressed %s death counts", int(missing.sum()), cause)
    rows = add_dates(rows.loc[~missing])

    deaths = (
        rows.groupby(["state_code", "date"], as_index=False)["death_count"]
        .sum()
        .rename(columns={"death_count": "deaths"})
    )
    pop = population[["state_code", "population"]]
    out = deaths.merge(pop, on="state_code", how="inner", validate="many_to_one")

    dropped = sorted(set(deaths["state_code"]) - set(out["state_code"]))
    if dropped:
        logger.warning("No population for %s; excluded from overdose density", dropped)

    out["deaths_per_100k"] = per_100k(out["deaths"], out["population"])
    out = out.dropna(subset=["deaths_per_100k"])
    return out.sort_values(["state_code", "date"], ignore_index=True)
