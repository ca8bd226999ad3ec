import math

import pytest

from opioid_report.bands import (
    BAND_LABELS,
    GREATLY_DECREASED,
    INCREASED,
    MODERATELY_DECREASED,
    SLIGHTLY_DECREASED,
    classify_change,
    prescribing_bands,
)
from opioid_report.errors import MissingMeasurement


@pytest.mark.parametrize(
    "value, band",
    [
        (-10.0, GREATLY_DECREASED),
        (-3.2001, GREATLY_DECREASED),
        (-3.2, MODERATELY_DECREASED),
        (-2.5, MODERATELY_DECREASED),
        (-2.4, SLIGHTLY_DECREASED),
        (-0.0001, SLIGHTLY_DECREASED),
        (0.0, INCREASED),
        (4.7, INCREASED),
        (-math.inf, GREATLY_DECREASED),
        (math.inf, INCREASED),
    ],
)
def test_classify_change(value, band):
    assert classify_change(value) == band


@pytest.mark.parametrize("value", [None, float("nan")])
def test_classify_missing_change_raises(value):
    with pytest.raises(MissingMeasurement):
        classify_change(value)


def test_bands_use_latest_all_plan_rows(prescribing):
    bands = prescribing_bands(prescribing)
    assert bands["state_code"].tolist() == ["CA", "NY", "WY"]
    assert bands["year"].unique().tolist() == [2021]
    assert bands.set_index("state_code")["band"].astype(str).to_dict() == {
        "CA": GREATLY_DECREASED,
        "NY": SLIGHTLY_DECREASED,
        "WY": INCREASED,
    }
    assert bands["band"].cat.ordered
    assert list(bands["band"].cat.categories) == BAND_LABELS


def test_bands_for_explicit_year(prescribing):
    bands = prescribing_bands(prescribing, year=2020)
    assert bands["state_code"].tolist() == ["CA"]
    assert bands["band"].astype(str).item() == INCREASED


def test_bands_drop_missing_changes(prescribing):
    prescribing.loc[prescribing["state_name"] == "Wyoming", "rate_5yr_change"] = float("nan")
    assert "WY" not in prescribing_bands(prescribing)["state_code"].tolist()


def test_bands_empty_for_unknown_plan(prescribing):
    bands = prescribing_bands(prescribing, plan_type="Part D Stand-Alone")
    assert bands.empty
    assert "band" in bands.columns
