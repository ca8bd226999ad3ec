"""Error types raised while building the report.

:class:`SourceUnavailable`, :class:`SchemaMismatch` and :class:`EmptySource`
abort a run.  The other two are raised by scalar helpers; the table-level
functions handle the same conditions by dropping the affected rows.
"""


class ReportError(Exception):
    """Base class for every report error."""


class SourceUnavailable(ReportError, OSError):
    """An input source could not be read."""

    def __init__(self, source: str, reason: str = "") -> None:
        self.source = str(source)
        self.reason = reason
        message = f"Cannot read source {self.source!r}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class SchemaMismatch(ReportError, KeyError):
    """Required columns are missing from a source."""

    def __init__(self, source: str, missing: list) -> None:
        self.source = str(source)
        self.missing = list(missing)
        super().__init__(
            f"Missing expected columns in {self.source!r}: {self.missing}"
        )

    def __str__(self) -> str:
        return self.args[0]


class EmptySource(ReportError, ValueError):
    """A source was read but left no usable rows."""


class UnresolvedJoinKey(ReportError, KeyError):
    """A state name or code has no entry in the state reference."""

    def __str__(self) -> str:
        return self.args[0] if self.args else ""


class MissingMeasurement(ReportError, ValueError):
    """A null or suppressed measurement was used where a value is required."""
