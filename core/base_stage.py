# =============================================================================
# core/base_stage.py - Abstract pipeline stage
# =============================================================================

from abc import ABC, abstractmethod
from typing import Any, Dict, List
import logging

from utils.csv_utils import SnapshotStore


def as_bool(value: Any) -> bool:
    """Read a boolean back from a CSV cell"""
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ('true', '1', 'yes')


class BaseStage(ABC):
    """
    Abstract base class for pipeline stages.

    Each stage takes typed record sets as input and returns its own record
    set. Stages that own a snapshot persist their output through the
    SnapshotStore so a later stage can resume from disk after a crash.
    """

    # Snapshot written by this stage, empty when it has none
    snapshot: str = ''
    fieldnames: List[str] = []

    def __init__(self, store: SnapshotStore):
        self.store = store
        self.logger = logging.getLogger(self.__class__.__name__)

    @abstractmethod
    def run(self, *inputs: Any) -> Any:
        """Execute the stage and return its output record set"""
        pass

    def to_row(self, record: Any) -> Dict[str, Any]:
        """Convert one output record to a snapshot row"""
        raise NotImplementedError(f"{self.__class__.__name__} has no snapshot")

    def from_row(self, row: Dict[str, Any]) -> Any:
        """Rebuild one output record from a snapshot row"""
        raise NotImplementedError(f"{self.__class__.__name__} has no snapshot")

    def _require_snapshot(self) -> None:
        if not self.snapshot:
            raise NotImplementedError(f"{self.__class__.__name__} has no snapshot")

    def save_snapshot(self, records: List[Any]) -> None:
        self._require_snapshot()
        rows = [self.to_row(record) for record in records]
        self.store.save_rows(self.snapshot, rows, self.fieldnames)

    def load_snapshot(self) -> List[Any]:
        """Load this stage's output from disk; raises SnapshotMissingError when absent"""
        self._require_snapshot()
        rows = self.store.load_rows(self.snapshot)
        records = []
        for index, row in enumerate(rows, start=1):
            try:
                records.append(self.from_row(row))
            except (ValueError, KeyError) as e:
                self.logger.warning(f"Skipping unreadable row {index} in {self.snapshot} snapshot: {e}")
        self.logger.info(f"Loaded {len(records)} records from {self.snapshot} snapshot")
        return records
