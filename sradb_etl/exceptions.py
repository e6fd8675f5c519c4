"""Error types raised by the SRAdb ETL pipeline"""

from .utils import format_error_message


class SraDbEtlError(Exception):
    """Base class for pipeline errors"""


class SnapshotNotFoundError(SraDbEtlError, FileNotFoundError):
    """The snapshot database file is missing or not a regular file"""

    def __init__(self, path):
        self.path = str(path)
        super().__init__(f"Snapshot database not found: {self.path}")


class OutputWriteError(SraDbEtlError, OSError):
    """The output table could not be written"""

    def __init__(self, path, reason):
        self.path = str(path)
        self.reason = reason
        super().__init__(f"Failed to write output to {self.path}: {reason}")


class SchemaError(SraDbEtlError):
    """The snapshot is missing tables or columns the pipeline reads"""


class ShapeMismatchError(SraDbEtlError, ValueError):
    """A sample attribute field did not split into the expected number of parts"""

    def __init__(self, sample_accession, raw_value, expected, found, mismatched_rows=1):
        self.sample_accession = sample_accession
        self.raw_value = raw_value
        self.expected = expected
        self.found = found
        self.mismatched_rows = mismatched_rows
        message = format_error_message(
            f"attribute field split into {found} parts, expected {expected}: {raw_value!r}",
            sample=sample_accession,
        )
        if mismatched_rows > 1:
            message += f" ({mismatched_rows} samples mismatched in total)"
        super().__init__(message)
