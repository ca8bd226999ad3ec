import pandas as pd
import pytest

from opioid_report.errors import UnresolvedJoinKey
from opioid_report.states import (
    attach_state_codes,
    filter_known_codes,
    resolve_by_code,
    resolve_by_name,
    state_reference,
)


def test_reference_has_states_plus_dc():
    ref = state_reference()
    assert len(ref) == 51
    assert ref["state_code"].is_unique
    assert ref.loc[ref["state_code"] == "DC", "state_name"].item() == "District of Columbia"


def test_reference_is_a_fresh_copy():
    ref = state_reference()
    ref.loc[0, "state_name"] = "Changed"
    assert state_reference().loc[0, "state_name"] == "Alabama"


def test_resolve_round_trip_is_case_and_space_tolerant():
    assert resolve_by_name("  new   york ") == "NY"
    assert resolve_by_code("wy") == "Wyoming"


@pytest.mark.parametrize("name", ["Puerto Rico", "United States", ""])
def test_unknown_name_raises(name):
    with pytest.raises(UnresolvedJoinKey):
        resolve_by_name(name)


def test_unknown_code_raises():
    with pytest.raises(UnresolvedJoinKey):
        resolve_by_code("YC")


def test_attach_state_codes_drops_unresolved_rows():
    df = pd.DataFrame({"state_name": ["Texas", "Guam", "District of Columbia"], "x": [1, 2, 3]})
    out = attach_state_codes(df)
    assert out["state_code"].tolist() == ["TX", "DC"]
    assert out["x"].tolist() == [1, 3]
    assert len(df) == 3


def test_filter_known_codes_normalises_and_drops():
    df = pd.DataFrame({"state_code": ["ca", "US", " ny", "PR"]})
    assert filter_known_codes(df)["state_code"].tolist() == ["CA", "NY"]
