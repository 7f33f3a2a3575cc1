# =============================================================================
# stages/config_fetcher.py - Configuration fetch stage
# =============================================================================

import json
from typing import List, Dict, Any, Optional

import pandas as pd

from core.base_stage import BaseStage
from core.exceptions import PSAError
from core.models import ConfigurationRecord
from core.psa_client import PSAClient
from utils.csv_utils import SnapshotStore, DETAILS_DIR


class ConfigFetcher(BaseStage):
    """Pages through a company's configurations and fetches each one in full"""

    snapshot = 'configurations_raw'
    fieldnames = ['id', 'name', 'detail_json']

    SIMPLE_FIELDNAMES = [
        'id', 'name', 'last_login_name', 'active', 'contact_id', 'contact_name', 'contact_href'
    ]

    def __init__(self, store: SnapshotStore, client: PSAClient,
                 company_identifier: str, page_size: int):
        super().__init__(store)
        self.client = client
        self.company_identifier = company_identifier
        self.page_size = page_size

    def run(self) -> List[ConfigurationRecord]:
        self.logger.info(f"Fetching configurations for company '{self.company_identifier}'")
        records = []
        listed = 0

        try:
            for summary in self.client.list_configurations(self.company_identifier, self.page_size):
                listed += 1
                record = self.fetch_detail(summary)
                if record:
                    records.append(record)
        except PSAError as e:
            self.logger.error(f"Configuration listing aborted after {listed} records: {e}")

        self.logger.info(f"Fetched {len(records)} of {listed} listed configurations")
        self.save_snapshot(records)
        self.save_enriched(records)
        self.save_simplified(records)
        return records

    def fetch_detail(self, summary: Dict[str, Any]) -> Optional[ConfigurationRecord]:
        """Fetch one configuration in full; returns None when it cannot be read"""
        if not isinstance(summary, dict):
            self.logger.warning(f"Skipping unreadable listed configuration: {summary!r}")
            return None

        config_id = summary.get('id')
        if config_id is None:
            self.logger.warning(f"Skipping listed configuration without id: {summary.get('name', '')}")
            return None

        try:
            detail = self.client.get_configuration(config_id)
            record = ConfigurationRecord.from_payload(detail)
            self.store.write_json(DETAILS_DIR, f"config_{record.id}.json", detail)
            return record
        except (PSAError, ValueError, OSError) as e:
            self.logger.warning(f"Skipping configuration {config_id}: {e}")
            return None

    def to_row(self, record: ConfigurationRecord) -> Dict[str, Any]:
        return {
            'id': record.id,
            'name': record.name,
            'detail_json': json.dumps(record.raw, sort_keys=True),
        }

    def from_row(self, row: Dict[str, Any]) -> ConfigurationRecord:
        return ConfigurationRecord.from_payload(json.loads(row['detail_json']))

    def save_enriched(self, records: List[ConfigurationRecord]) -> None:
        """Flatten the full bodies, contact fields included, into one wide table"""
        frame = pd.json_normalize([record.raw for record in records]) if records else pd.DataFrame()
        self.store.save_frame('configurations_enriched', frame)

    def save_simplified(self, records: List[ConfigurationRecord]) -> None:
        rows = [
            {
                'id': record.id,
                'name': record.name,
                'last_login_name': record.last_login_name or '',
                'active': record.active,
                'contact_id': record.contact.id if record.contact else '',
                'contact_name': record.contact_name,
                'contact_href': record.contact.href if record.contact else '',
            }
            for record in records
        ]
        self.store.save_rows('configurations', rows, self.SIMPLE_FIELDNAMES)
