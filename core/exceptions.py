# =============================================================================
# core/exceptions.py - Error types
# =============================================================================

from typing import Optional


class ReconcileError(Exception):
    """Base error for the reconciliation tool"""


class ConfigurationError(ReconcileError):
    """Required configuration is missing or unusable"""


class SnapshotMissingError(ReconcileError):
    """A stage needs a snapshot that an earlier stage has not written"""

    def __init__(self, snapshot: str, path: str):
        super().__init__(f"Snapshot '{snapshot}' not found at {path} - run the earlier stage first")
        self.snapshot = snapshot
        self.path = path


class PSAError(ReconcileError):
    """A PSA API request failed or returned something unreadable"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code
