"""
Configuration constants for the opioid prescribing / overdose report.
"""

import os
from pathlib import Path
from typing import Dict, List, Tuple

# ======================================================
#  DATA SOURCES / CONSTANTS
# ======================================================
# Medicare Part D Opioid Prescribing Rates - by Geography
PRESCRIBING_SOURCE: str = (
    "https://data.cms.gov/sites/default/files/2023-05/"
    "Medicare_Part_D_Opioid_Prescribing_Rates_by_Geography_2021.csv"
)

# CDC VSRR Provisional Drug Overdose Death Counts
OVERDOSE_SOURCE: str = (
    "https://data.cdc.gov/api/views/xkb8-kh2a/rows.csv?accessType=DOWNLOAD"
)

# CMS Opioid Treatment Program Providers
PROVIDER_SOURCE: str = (
    "https://data.cms.gov/sites/default/files/2023-08/"
    "Opioid_Treatment_Program_Providers.csv"
)

# Census Bureau state population estimates (vintage 2020)
POPULATION_SOURCE: str = (
    "https://www2.census.gov/programs-surveys/popest/datasets/2010-2020/"
    "state/totals/nst-est2020.csv"
)

# Environment overrides (name of variable -> source key)
SOURCE_ENV_VARS: Dict[str, str] = {
    "prescribing": "OPIOID_PRESCRIBING_SOURCE",
    "overdose": "OPIOID_OVERDOSE_SOURCE",
    "providers": "OPIOID_PROVIDER_SOURCE",
    "population": "OPIOID_POPULATION_SOURCE",
}
REPORT_DIR_ENV: str = "OPIOID_REPORT_DIR"
LOG_LEVEL_ENV: str = "OPIOID_REPORT_LOG_LEVEL"

DEFAULT_SEP: str = ","
REQUEST_TIMEOUT: int = 60

# ======================================================
#  SOURCE COLUMNS
# ======================================================
PRESCRIBING_COLUMNS: Dict[str, str] = {
    "Prscrbr_Geo_Desc": "state_name",
    "Plan_Type": "plan_type",
    "Year": "year",
    "Opioid_Prscrbng_Rate_5Y_Chg": "rate_5yr_change",
}
PRESCRIBING_GEO_LEVEL_COL: str = "Prscrbr_Geo_Lvl"
PRESCRIBING_RATE_COL: str = "Opioid_Prscrbng_Rate"

OVERDOSE_COLUMNS: Dict[str, str] = {
    "State": "state_code",
    "Indicator": "cause_of_death",
    "Month": "month",
    "Year": "year",
    "Data Value": "death_count",
}

PROVIDER_COLUMNS: Dict[str, str] = {"STATE": "state_code"}

POPULATION_COLUMNS: Dict[str, str] = {
    "NAME": "state_name",
    "POPESTIMATE2020": "population",
}

# ======================================================
#  ANALYSIS CONSTANTS
# ======================================================
PER_CAPITA_SCALE: int = 100_000
POPULATION_YEAR: int = 2020

CAUSE_OF_DEATH: str = "Opioids"
PLAN_TYPE_ALL: str = "All"
STATE_GEO_LEVEL: str = "State"

# Each overdose record is a trailing 12-month count; the January reading
# stands for the full prior calendar year.
EARLIER_SNAPSHOT: str = "2019-01-01"
LATER_SNAPSHOT: str = "2023-01-01"

# ======================================================
#  UI DEFAULTS
# ======================================================
VIEW_OPTIONS: List[Tuple[str, str]] = [
    ("Treatment providers per 100k", "providers"),
    ("Overdose deaths per 100k (map)", "map"),
    ("Overdose deaths per 100k by month", "heatmap"),
    ("Overdose trend by prescribing change", "band_trend"),
    ("Overdose change by prescribing change", "change_by_band"),
    ("Overdose change vs providers", "change_by_providers"),
]
DEFAULT_VIEW: str = "map"

BAND_COLORS: Dict[str, str] = {
    "Greatly decreased": "#1a9850",
    "Moderately decreased": "#91cf60",
    "Slightly decreased": "#fee08b",
    "Increased": "#d73027",
}


def resolve_sources(overrides: Dict[str, str] | None = None) -> Dict[str, str]:
    """Return the location of every input source.

    Explicit ``overrides`` win, then the ``OPIOID_*_SOURCE`` environment
    variables, then the public defaults above.
    """
    sources = {
        "prescribing": PRESCRIBING_SOURCE,
        "overdose": OVERDOSE_SOURCE,
        "providers": PROVIDER_SOURCE,
        "population": POPULATION_SOURCE,
    }
    for key, env_var in SOURCE_ENV_VARS.items():
        env = os.getenv(env_var)
        if env:
            sources[key] = env
    sources.update(overrides or {})
    return sources


def resolve_report_dir() -> Path:
    """Directory the rendered report is written to (``./report`` by default)."""
    env = os.getenv(REPORT_DIR_ENV)
    if env:
        return Path(env).expanduser().resolve()
    return Path.cwd() / "report"
