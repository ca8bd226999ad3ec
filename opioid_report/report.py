"""Write the report: run the pipeline and save every figure as HTML.

Run with ``python -m opioid_report``.  Sources and the output directory are
taken from the ``OPIOID_*`` environment variables (see ``config``).
"""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path
from typing import Dict, Optional

import plotly.graph_objects as go

from .config import LOG_LEVEL_ENV, resolve_report_dir
from .data_manager import load_payload
from .errors import ReportError
from .plotting import build_figures

logger = logging.getLogger(__name__)


def write_figures(figures: Dict[str, go.Figure], out_dir: Path) -> Dict[str, Path]:
    """Save each figure as a standalone HTML file named after its key."""
    out_dir.mkdir(parents=True, exist_ok=True)
    written: Dict[str, Path] = {}
    for name, fig in figures.items():
        path = out_dir / f"{name}.html"
        fig.write_html(path, include_plotlyjs="cdn")
        written[name] = path
    return written


def main(out_dir: Optional[Path] = None) -> int:
    logging.basicConfig(
        level=os.getenv(LOG_LEVEL_ENV, "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        payload = load_payload()
    except ReportError as exc:
        logger.error("Report aborted: %s", exc)
        return 1

    target = out_dir or resolve_report_dir()
    written = write_figures(build_figures(payload), target)

    for table in ("summary_table", "annual_summary"):
        payload[table].to_csv(target / f"{table}.csv", index=False)
    logger.info("Wrote %d figures and the summary tables to %s", len(written), target)
    return 0


if __name__ == "__main__":
    sys.exit(main())
