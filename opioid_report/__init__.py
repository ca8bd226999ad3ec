"""opioid_report package initializer.

This package contains the data pipeline behind the opioid prescribing,
treatment access and overdose report.  Modules include data loading, state
resolution, rate and band computation, view assembly and plotting helpers.
See individual module docstrings for details.
"""
