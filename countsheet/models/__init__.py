"""Domain models for the count-sheet round-trip engine."""

from .config_models import CountSheetConfig
from .count_session import CountItem, CountSession
from .error_record import ErrorRecord
from .patch_result import PatchResult, PatchState
from .record import ParseResult, Record

__all__ = [
    # Configuration models
    "CountSheetConfig",
    # Parse models
    "ParseResult",
    "Record",
    # Session models
    "CountItem",
    "CountSession",
    # Write-back models
    "ErrorRecord",
    "PatchResult",
    "PatchState",
]
