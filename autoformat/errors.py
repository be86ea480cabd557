from __future__ import annotations
from typing import Optional


class AutoFormatError(Exception):
    """Base class for every failure raised by the formatting pipeline."""


class ConfigurationError(AutoFormatError):
    """Unknown template id or malformed run options. Raised before any document access."""


class ReadFailure(AutoFormatError):
    """The document could not satisfy a read batch. Nothing was modified."""


class PersistenceFailure(AutoFormatError):
    """The audit store could not be read or written."""


class PipelineBusy(AutoFormatError):
    """A run is already in flight against this document."""


class ApplyFailure(AutoFormatError):
    """A change failed mid-run. Changes applied before it stay in effect."""

    def __init__(self, change_id: str, applied: int, total: int, cause: Optional[BaseException] = None):
        self.change_id = change_id
        self.applied = applied
        self.total = total
        self.cause = cause
        super().__init__(
            f"{applied} of {total} changes applied; not fully reverted "
            f"(failed at '{change_id}': {cause})"
        )
