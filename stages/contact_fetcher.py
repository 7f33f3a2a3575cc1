# =============================================================================
# stages/contact_fetcher.py - Contact directory fetch stage
# =============================================================================

from typing import List, Dict, Any

from core.base_stage import BaseStage
from core.exceptions import PSAError
from core.models import ContactRecord
from core.psa_client import PSAClient
from utils.csv_utils import SnapshotStore


class ContactFetcher(BaseStage):
    """Pages through a company's contacts and keeps the fields used for matching"""

    snapshot = 'contacts'
    fieldnames = ['id', 'first_name', 'last_name', 'title', 'default_email', 'default_phone']

    def __init__(self, store: SnapshotStore, client: PSAClient,
                 company_identifier: str, page_size: int):
        super().__init__(store)
        self.client = client
        self.company_identifier = company_identifier
        self.page_size = page_size

    def run(self) -> List[ContactRecord]:
        self.logger.info(f"Fetching contacts for company '{self.company_identifier}'")
        contacts = []

        try:
            for payload in self.client.list_contacts(self.company_identifier, self.page_size):
                try:
                    contacts.append(ContactRecord.from_payload(payload))
                except ValueError as e:
                    contact_id = payload.get('id', '?') if isinstance(payload, dict) else '?'
                    self.logger.warning(f"Skipping unreadable contact {contact_id}: {e}")
        except PSAError as e:
            self.logger.error(f"Contact listing aborted after {len(contacts)} records: {e}")

        self.logger.info(f"Fetched {len(contacts)} contacts")
        self.save_snapshot(contacts)
        return contacts

    def to_row(self, record: ContactRecord) -> Dict[str, Any]:
        return {
            'id': record.id,
            'first_name': record.first_name,
            'last_name': record.last_name,
            'title': record.title,
            'default_email': record.default_email,
            'default_phone': record.default_phone,
        }

    def from_row(self, row: Dict[str, Any]) -> ContactRecord:
        return ContactRecord(
            id=int(row['id']),
            first_name=row.get('first_name', ''),
            last_name=row.get('last_name', ''),
            title=row.get('title', ''),
            default_email=row.get('default_email', ''),
            default_phone=row.get('default_phone', ''),
        )
