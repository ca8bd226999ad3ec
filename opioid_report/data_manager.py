"""Data manager for loading the report payload once per process.

This module wraps :func:`pipeline.run_pipeline` in an in-memory cache so the
Shiny app and the report writer share a single computation.  Nothing is
written to disk; a new process always reloads the sources.
"""

import logging
from functools import lru_cache
from typing import Dict

from . import pipeline

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def _compute_pipeline_payload() -> Dict[str, object]:
    """Runs the pipeline calculation."""
    return pipeline.run_pipeline()


def load_payload(force_recompute: bool = False) -> Dict[str, object]:
    """
    Return the pipeline payload, computing it on first use.

    Parameters
    ----------
    force_recompute : bool, optional
        If ``True``, discard the in-memory payload and reload every source.

    Returns
    -------
    Dict[str, object]
        The payload returned by :func:`pipeline.run_pipeline`.
    """
    if force_recompute:
        _compute_pipeline_payload.cache_clear()

    if _compute_pipeline_payload.cache_info().currsize:
        logger.info("Using in-memory pipeline payload")
    else:
        logger.info("Computing pipeline data – this may take a while…")
    return _compute_pipeline_payload()
