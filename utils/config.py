# =============================================================================
# utils/config.py - Configuration management
# =============================================================================

import logging
import os
from typing import Optional, List
from urllib.parse import urlparse
from dotenv import load_dotenv

from core.exceptions import ConfigurationError

KNOWN_API_HOSTS = (
    "api-na.myconnectwise.net",
    "api-eu.myconnectwise.net",
    "api-au.myconnectwise.net",
    "api-staging.connectwisedev.com",
)

DEFAULT_PAGE_SIZE = 100
DEFAULT_TIMEOUT = 30.0
DEFAULT_WORK_DIR = "work"


class Config:
    """Configuration management"""

    def __init__(self):
        load_dotenv()

    @property
    def company_identifier(self) -> Optional[str]:
        return os.getenv("PSA_COMPANY_IDENTIFIER")

    @property
    def company_id(self) -> Optional[str]:
        return os.getenv("PSA_COMPANY_ID")

    @property
    def public_key(self) -> Optional[str]:
        return os.getenv("PSA_PUBLIC_KEY")

    @property
    def private_key(self) -> Optional[str]:
        return os.getenv("PSA_PRIVATE_KEY")

    @property
    def client_id(self) -> Optional[str]:
        return os.getenv("PSA_CLIENT_ID")

    @property
    def base_url(self) -> Optional[str]:
        return os.getenv("PSA_BASE_URL")

    @property
    def api_version(self) -> Optional[str]:
        return os.getenv("PSA_API_VERSION")

    @property
    def page_size(self) -> int:
        raw = os.getenv("PSA_PAGE_SIZE", str(DEFAULT_PAGE_SIZE))
        try:
            value = int(raw)
        except ValueError:
            raise ConfigurationError(f"PSA_PAGE_SIZE must be a positive integer, got '{raw}'") from None
        if value < 1:
            raise ConfigurationError(f"PSA_PAGE_SIZE must be a positive integer, got '{raw}'")
        return value

    @property
    def timeout(self) -> float:
        return float(os.getenv("PSA_TIMEOUT", DEFAULT_TIMEOUT))

    @property
    def work_dir(self) -> str:
        return os.getenv("RECONCILE_WORK_DIR", DEFAULT_WORK_DIR)

    def validate_psa_config(self) -> bool:
        """Validate that all required PSA configuration is present"""
        return not self.get_missing_psa_vars()

    def get_missing_psa_vars(self) -> List[str]:
        """Get list of missing PSA configuration variables"""
        vars_and_names = [
            (self.company_id, "PSA_COMPANY_ID"),
            (self.public_key, "PSA_PUBLIC_KEY"),
            (self.private_key, "PSA_PRIVATE_KEY"),
            (self.client_id, "PSA_CLIENT_ID"),
            (self.base_url, "PSA_BASE_URL"),
            (self.api_version, "PSA_API_VERSION")
        ]
        return [name for var, name in vars_and_names if not var]

    def check_base_url(self) -> bool:
        """Warn when the base URL is not one of the known regional hosts"""
        host = urlparse(self.base_url or "").hostname or ""
        if host.lower() in KNOWN_API_HOSTS:
            return True
        logging.getLogger(__name__).warning(
            f"PSA_BASE_URL host '{host}' is not a known API host {list(KNOWN_API_HOSTS)}; continuing anyway"
        )
        return False
