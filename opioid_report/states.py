"""State reference table and name/code resolution.

Every table in the report is joined on the two-letter state code.  The
reference set is the 50 states plus the District of Columbia, which is
appended by hand because it is not a state.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Tuple

import pandas as pd

from .errors import UnresolvedJoinKey

logger = logging.getLogger(__name__)

STATES: List[Tuple[str, str]] = [
    ("AL", "Alabama"),
    ("AK", "Alaska"),
    ("AZ", "Arizona"),
    ("AR", "Arkansas"),
    ("CA", "California"),
    ("CO", "Colorado"),
    ("CT", "Connecticut"),
    ("DE", "Delaware"),
    ("FL", "Florida"),
    ("GA", "Georgia"),
    ("HI", "Hawaii"),
    ("ID", "Idaho"),
    ("IL", "Illinois"),
    ("IN", "Indiana"),
    ("IA", "Iowa"),
    ("KS", "Kansas"),
    ("KY", "Kentucky"),
    ("LA", "Louisiana"),
    ("ME", "Maine"),
    ("MD", "Maryland"),
    ("MA", "Massachusetts"),
    ("MI", "Michigan"),
    ("MN", "Minnesota"),
    ("MS", "Mississippi"),
    ("MO", "Missouri"),
    ("MT", "Montana"),
    ("NE", "Nebraska"),
    ("NV", "Nevada"),
    ("NH", "New Hampshire"),
    ("NJ", "New Jersey"),
    ("NM", "New Mexico"),
    ("NY", "New York"),
    ("NC", "North Carolina"),
    ("ND", "North Dakota"),
    ("OH", "Ohio"),
    ("OK", "Oklahoma"),
    ("OR", "Oregon"),
    ("PA", "Pennsylvania"),
    ("RI", "Rhode Island"),
    ("SC", "South Carolina"),
    ("SD", "South Dakota"),
    ("TN", "Tennessee"),
    ("TX", "Texas"),
    ("UT", "Utah"),
    ("VT", "Vermont"),
    ("VA", "Virginia"),
    ("WA", "Washington"),
    ("WV", "West Virginia"),
    ("WI", "Wisconsin"),
    ("WY", "Wyoming"),
]

DISTRICT: Tuple[str, str] = ("DC", "District of Columbia")

_REFERENCE: Tuple[Tuple[str, str], ...] = tuple(STATES) + (DISTRICT,)
_BY_CODE: Dict[str, str] = {code: name for code, name in _REFERENCE}
_BY_NAME: Dict[str, str] = {name.lower(): code for code, name in _REFERENCE}


def _normalise(value: object) -> str:
    return " ".join(str(value).split())


def state_reference() -> pd.DataFrame:
    """Return the 51-row reference table with ``state_code`` and ``state_name``."""
    return pd.DataFrame(list(_REFERENCE), columns=["state_code", "state_name"])


def resolve_by_name(name: str) -> str:
    """Return the state code for ``name``; raise :class:`UnresolvedJoinKey` if unknown."""
    code = _BY_NAME.get(_normalise(name).lower())
    if code is None:
        raise UnresolvedJoinKey(f"Unknown state name: {name!r}")
    return code


def resolve_by_code(code: str) -> str:
    """Return the state name for ``code``; raise :class:`UnresolvedJoinKey` if unknown."""
    name = _BY_CODE.get(_normalise(code).upper())
    if name is None:
        raise UnresolvedJoinKey(f"Unknown state code: {code!r}")
    return name


def attach_state_codes(
    df: pd.DataFrame, name_col: str = "state_name"
) -> pd.DataFrame:
    """Add a ``state_code`` column resolved from ``name_col``.

    Rows whose name does not resolve are dropped (inner join against the
    reference set) and the dropped names are logged.
    """
    out = df.copy()
    keys = out[name_col].astype(str).map(_normalise).str.lower()
    out["state_code"] = keys.map(_BY_NAME)
    unresolved = out["state_code"].isna()
    if unresolved.any():
        logger.warning(
            "Dropping %d rows with unresolved state names: %s",
            int(unresolved.sum()),
            sorted(out.loc[unresolved, name_col].astype(str).unique())[:10],
        )
    return out.loc[~unresolved].reset_index(drop=True)


def filter_known_codes(
    df: pd.DataFrame, code_col: str = "state_code"
) -> pd.DataFrame:
    """Keep rows whose ``code_col`` is a reference state code (normalised to upper case)."""
    out = df.copy()
    out[code_col] = out[code_col].astype(str).map(_normalise).str.upper()
    known = out[code_col].isin(_BY_CODE)
    if not known.all():
        logger.warning(
            "Dropping %d rows with unresolved state codes: %s",
            int((~known).sum()),
            sorted(out.loc[~known, code_col].unique())[:10],
        )
    return out.loc[known].reset_index(drop=True)
