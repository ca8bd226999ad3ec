"""Shared synthetic tables for the report tests."""

import pandas as pd
import pytest


@pytest.fixture
def population():
    return pd.DataFrame(
        {
            "state_code": ["CA", "NY", "WY"],
            "state_name": ["California", "New York", "Wyoming"],
            "population": [1_000_000, 2_000_000, 500_000],
        }
    )


@pytest.fixture
def providers():
    return pd.DataFrame({"state_code": ["CA", "CA", "NY"]})


@pytest.fixture
def overdose():
    rows = [
        # state, cause, month, year, deaths
        ("CA", "Opioids", 1, 2019, 100.0),
        ("CA", "Opioids", 1, 2023, 150.0),
        ("CA", "Opioids", 2, 2023, 160.0),
        ("CA", "Heroin", 1, 2023, 999.0),
        ("NY", "Opioids", 1, 2019, 200.0),
        ("NY", "Opioids", 1, 2023, 400.0),
        # suppressed everywhere: must not become zero
        ("WY", "Opioids", 1, 2019, float("nan")),
        ("WY", "Opioids", 1, 2023, float("nan")),
        # no population row
        ("YC", "Opioids", 1, 2023, 50.0),
    ]
    return pd.DataFrame(
        rows, columns=["state_code", "cause_of_death", "month", "year", "death_count"]
    )


@pytest.fixture
def prescribing():
    rows = [
        # state, plan, year, 5-year change
        ("California", "All", 2021, -3.5),
        ("California", "All", 2020, 1.0),
        ("California", "Medicare Advantage", 2021, 5.0),
        ("New York", "All", 2021, -2.4),
        ("Wyoming", "All", 2021, 0.5),
        ("Puerto Rico", "All", 2021, -1.0),
    ]
    return pd.DataFrame(
        rows, columns=["state_name", "plan_type", "year", "rate_5yr_change"]
    )
