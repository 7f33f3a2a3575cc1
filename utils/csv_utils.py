# =============================================================================
# utils/csv_utils.py - CSV utilities and the on-disk snapshot store
# =============================================================================

import csv
import json
import shutil
import sys
from pathlib import Path
from typing import List, Dict, Any, Optional, Tuple
import logging

import pandas as pd

from core.exceptions import SnapshotMissingError

SNAPSHOT_FILES = {
    'configurations_raw': 'configurations_raw.csv',
    'configurations_enriched': 'configurations_enriched.csv',
    'configurations': 'configurations.csv',
    'contacts': 'contacts.csv',
    'guesses': 'guesses.csv',
}

DETAILS_DIR = 'details'
AUDIT_DIR = 'audit'


def _allow_large_fields() -> None:
    """Lift csv's per-field limit; raw snapshots hold whole configuration bodies in one cell"""
    limit = sys.maxsize
    while True:
        try:
            csv.field_size_limit(limit)
            return
        except OverflowError:
            limit //= 10


class CSVHandler:
    """Utilities for reading and writing CSV files"""

    @staticmethod
    def read_csv(file_path: str, encoding: str = 'utf-8-sig',
                 delimiter: str = ',') -> Tuple[List[Dict[str, Any]], List[str]]:
        """Read CSV file and return list of dictionaries with the headers"""
        logger = logging.getLogger(__name__)
        _allow_large_fields()

        try:
            with open(file_path, 'r', newline='', encoding=encoding) as file:
                dict_reader = csv.DictReader(file, delimiter=delimiter)
                data = list(dict_reader)
                headers = list(dict_reader.fieldnames or [])

            logger.debug(f"Successfully read {len(data)} records from {file_path}")
            return data, headers

        except FileNotFoundError:
            logger.error(f"Input file {file_path} not found")
            raise
        except Exception as e:
            logger.error(f"Error reading CSV: {e}")
            raise

    @staticmethod
    def write_csv(data: List[Dict[str, Any]], output_path: str,
                  fieldnames: Optional[List[str]] = None) -> None:
        """Write data to CSV file; an empty data set still gets a header row"""
        logger = logging.getLogger(__name__)

        if fieldnames is None:
            fieldnames = list(data[0].keys()) if data else []

        if not data:
            logger.warning(f"No data to write to {output_path}")

        try:
            with open(output_path, 'w', newline='', encoding='utf-8') as file:
                writer = csv.DictWriter(file, fieldnames=fieldnames)
                writer.writeheader()
                writer.writerows(data)

            logger.info(f"Successfully wrote {len(data)} records to {output_path}")

        except Exception as e:
            logger.error(f"Error writing CSV: {e}")
            raise


class SnapshotStore:
    """Working directory holding the stage snapshots, detail files and audit files"""

    def __init__(self, work_dir: str):
        self.work_dir = Path(work_dir)
        self.logger = logging.getLogger(__name__)

    def path(self, name: str) -> Path:
        return self.work_dir / SNAPSHOT_FILES[name]

    def exists(self, name: str) -> bool:
        return self.path(name).exists()

    def save_rows(self, name: str, rows: List[Dict[str, Any]],
                  fieldnames: Optional[List[str]] = None) -> Path:
        self.work_dir.mkdir(parents=True, exist_ok=True)
        target = self.path(name)
        CSVHandler.write_csv(rows, str(target), fieldnames)
        return target

    def load_rows(self, name: str) -> List[Dict[str, Any]]:
        target = self.path(name)
        if not target.exists():
            raise SnapshotMissingError(name, str(target))
        rows, _ = CSVHandler.read_csv(str(target))
        return rows

    def save_frame(self, name: str, frame: pd.DataFrame) -> Path:
        self.work_dir.mkdir(parents=True, exist_ok=True)
        target = self.path(name)
        frame.to_csv(target, index=False, encoding='utf-8')
        self.logger.info(f"Successfully wrote {len(frame)} records to {target}")
        return target

    def write_json(self, subdir: str, filename: str, payload: Dict[str, Any]) -> Path:
        folder = self.work_dir / subdir
        folder.mkdir(parents=True, exist_ok=True)
        target = folder / filename
        with open(target, 'w', encoding='utf-8') as handle:
            json.dump(payload, handle, indent=2, sort_keys=True)
        return target

    def cleanup(self) -> int:
        """Remove every artifact this store writes; returns how many paths were removed"""
        removed = 0
        for name in SNAPSHOT_FILES:
            target = self.path(name)
            if target.exists():
                target.unlink()
                removed += 1
        for subdir in (DETAILS_DIR, AUDIT_DIR):
            folder = self.work_dir / subdir
            if folder.exists():
                shutil.rmtree(folder)
                removed += 1
        if self.work_dir.exists() and not any(self.work_dir.iterdir()):
            self.work_dir.rmdir()
        self.logger.info(f"Removed {removed} intermediate artifacts from {self.work_dir}")
        return removed
