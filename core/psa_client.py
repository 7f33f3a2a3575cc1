# =============================================================================
# core/psa_client.py - PSA REST API client
# =============================================================================

import base64
import logging
from typing import Dict, Any, Iterator, Optional

import requests

from core.exceptions import PSAError

CONFIGURATIONS_PATH = "company/configurations"
CONTACTS_PATH = "company/contacts"


def company_condition(company_identifier: str) -> str:
    """Conditions expression selecting records owned by one company"""
    escaped = company_identifier.replace('"', '\\"')
    return f'company/identifier="{escaped}"'


class PSAClient:
    """Blocking PSA API client: paginated listing, detail fetch and full-body update"""

    def __init__(self, base_url: str, company_id: str, public_key: str, private_key: str,
                 client_id: str, media_type: str, timeout: float = 30):
        self.base_url = base_url.rstrip('/')
        self.company_id = company_id
        self.public_key = public_key
        self.private_key = private_key
        self.client_id = client_id
        self.media_type = media_type
        self.timeout = timeout
        self.session: Optional[requests.Session] = None
        self.logger = logging.getLogger(__name__)

    def __enter__(self):
        """Context manager entry"""
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit"""
        self.disconnect()

    def connect(self) -> None:
        """Open an authenticated HTTP session"""
        self.session = requests.Session()
        self.session.headers.update(self.build_headers())
        self.logger.info(f"Opened PSA session for {self.base_url}")

    def disconnect(self) -> None:
        """Close the HTTP session"""
        if self.session:
            self.session.close()
            self.session = None
            self.logger.info("Closed PSA session")

    def build_headers(self) -> Dict[str, str]:
        credentials = f"{self.company_id}+{self.public_key}:{self.private_key}"
        token = base64.b64encode(credentials.encode('utf-8')).decode('ascii')
        return {
            'Authorization': f"Basic {token}",
            'clientId': self.client_id,
            'Accept': self.media_type,
            'Content-Type': 'application/json',
        }

    def url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    def contact_href(self, contact_id: int) -> str:
        return self.url(f"{CONTACTS_PATH}/{contact_id}")

    def iter_records(self, path: str, conditions: str, page_size: int) -> Iterator[Dict[str, Any]]:
        """
        Yield records from a paginated list endpoint.

        Pages are requested from 1 until a page comes back shorter than
        ``page_size`` or empty. A failed page raises PSAError; records from
        earlier pages have already been yielded to the caller.
        """
        if page_size < 1:
            raise ValueError("page_size must be positive")

        page = 1
        while True:
            params = {'conditions': conditions, 'page': page, 'pageSize': page_size}
            records = self._request('GET', path, params=params)
            if not isinstance(records, list):
                raise PSAError(f"Expected a list from {path} page {page}, got {type(records).__name__}")

            self.logger.debug(f"Fetched {len(records)} records from {path} (page {page})")
            yield from records

            if len(records) < page_size:
                break
            page += 1

    def list_configurations(self, company_identifier: str, page_size: int) -> Iterator[Dict[str, Any]]:
        return self.iter_records(CONFIGURATIONS_PATH, company_condition(company_identifier), page_size)

    def list_contacts(self, company_identifier: str, page_size: int) -> Iterator[Dict[str, Any]]:
        return self.iter_records(CONTACTS_PATH, company_condition(company_identifier), page_size)

    def get_configuration(self, config_id: int) -> Dict[str, Any]:
        body = self._request('GET', f"{CONFIGURATIONS_PATH}/{config_id}")
        if not isinstance(body, dict):
            raise PSAError(f"Expected an object for configuration {config_id}")
        return body

    def update_configuration(self, config_id: int, body: Dict[str, Any]) -> Dict[str, Any]:
        """Overwrite a configuration with a full body"""
        result = self._request('PUT', f"{CONFIGURATIONS_PATH}/{config_id}", json=body)
        return result if isinstance(result, dict) else {}

    def _request(self, method: str, path: str, **kwargs) -> Any:
        """Internal method to perform one API call"""
        if not self.session:
            raise ConnectionError("PSA session is not open")

        url = self.url(path)
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.exceptions.RequestException as e:
            raise PSAError(f"{method} {url} failed: {e}") from e

        if not response.ok:
            raise PSAError(
                f"{method} {url} returned {response.status_code}: {response.text[:200]}",
                status_code=response.status_code,
            )

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise PSAError(f"{method} {url} returned invalid JSON: {e}",
                           status_code=response.status_code) from e
