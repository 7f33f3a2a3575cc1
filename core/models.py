# =============================================================================
# core/models.py - Record models shared by the pipeline stages
# =============================================================================

import copy
from dataclasses import dataclass, field
from typing import Dict, Any, List, Optional
from enum import Enum


class ReconcileStatus(Enum):
    """Terminal states of a single reconciliation attempt"""
    UPDATED = "updated"
    SKIPPED_INACTIVE = "skipped_inactive"
    SKIPPED_UNRESOLVED = "skipped_unresolved"
    SKIPPED_MATCHING = "skipped_matching"
    FAILED = "failed"
    DRY_RUN = "dry_run"


@dataclass(frozen=True)
class ContactReference:
    """Contact link stored on a configuration"""
    id: int
    name: str = ""
    href: str = ""

    @staticmethod
    def from_payload(payload: Optional[Dict[str, Any]]) -> Optional["ContactReference"]:
        if not payload:
            return None
        if not isinstance(payload, dict):
            raise ValueError(f"Contact reference must be an object, got {type(payload).__name__}")
        if payload.get('id') is None:
            return None
        info = payload.get('_info') or {}
        if not isinstance(info, dict):
            raise ValueError("Contact reference _info must be an object")
        return ContactReference(
            id=_as_id(payload['id'], 'contact'),
            name=str(payload.get('name') or ''),
            href=str(info.get('contact_href') or ''),
        )

    def to_payload(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            '_info': {'contact_href': self.href},
        }


@dataclass
class ConfigurationRecord:
    """Configuration item as returned by the PSA, plus the full body for resubmission"""
    id: int
    name: str = ""
    last_login_name: Optional[str] = None
    active: bool = False
    contact: Optional[ContactReference] = None
    raw: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "ConfigurationRecord":
        if not isinstance(payload, dict):
            raise ValueError(f"Configuration payload must be an object, got {type(payload).__name__}")
        if payload.get('id') is None:
            raise ValueError("Configuration payload has no id")
        return cls(
            id=_as_id(payload['id'], 'configuration'),
            name=str(payload.get('name') or ''),
            last_login_name=payload.get('lastLoginName'),
            active=bool(payload.get('activeFlag', False)),
            contact=ContactReference.from_payload(payload.get('contact')),
            raw=dict(payload),
        )

    @property
    def contact_name(self) -> str:
        return self.contact.name if self.contact else ""

    def with_contact(self, reference: ContactReference) -> Dict[str, Any]:
        """Return a copy of the full body with the contact replaced"""
        body = copy.deepcopy(self.raw)
        body['contact'] = reference.to_payload()
        return body


@dataclass(frozen=True)
class ContactRecord:
    """Directory contact snapshot"""
    id: int
    first_name: str = ""
    last_name: str = ""
    title: str = ""
    default_email: str = ""
    default_phone: str = ""

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "ContactRecord":
        if not isinstance(payload, dict):
            raise ValueError(f"Contact payload must be an object, got {type(payload).__name__}")
        if payload.get('id') is None:
            raise ValueError("Contact payload has no id")
        items = payload.get('communicationItems') or []
        if not isinstance(items, list):
            raise ValueError("communicationItems must be a list")
        items = [item for item in items if isinstance(item, dict)]
        phone = _default_communication(items, 'Phone') or str(payload.get('defaultPhoneNbr') or '')
        return cls(
            id=_as_id(payload['id'], 'contact'),
            first_name=str(payload.get('firstName') or '').strip(),
            last_name=str(payload.get('lastName') or '').strip(),
            title=str(payload.get('title') or '').strip(),
            default_email=_default_communication(items, 'Email'),
            default_phone=phone,
        )


def _as_id(value: Any, kind: str) -> int:
    """Read an integer identifier, rejecting booleans and non-numeric values with ValueError"""
    if isinstance(value, bool):
        raise ValueError(f"Invalid {kind} id: {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValueError(f"Invalid {kind} id: {value!r}") from None


def _default_communication(items: List[Dict[str, Any]], communication_type: str) -> str:
    """Pick the default-flagged item of a type, else the first one of that type"""
    matching = [item for item in items if item.get('communicationType') == communication_type]
    if not matching:
        return ""
    preferred = next((item for item in matching if item.get('defaultFlag')), matching[0])
    return str(preferred.get('value') or '').strip()


@dataclass
class NameGuess:
    """Contact name guessed from a login name"""
    first_name: str = ""
    last_name: str = ""
    matches_recorded_contact: bool = False
    exists_in_directory: bool = False

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def has_guess(self) -> bool:
        return bool(self.full_name)


@dataclass
class GuessResult:
    """One configuration with the guess made for it"""
    config_id: int
    config_name: str
    active: bool
    last_login_name: str
    recorded_contact: str
    guess: NameGuess

    @property
    def selected_for_update(self) -> bool:
        return (self.guess.exists_in_directory
                and not self.guess.matches_recorded_contact
                and self.active)


@dataclass
class ReconcileOutcome:
    """Result of one reconciliation attempt"""
    config_id: int
    status: ReconcileStatus
    detail: str = ""


@dataclass
class ReconcileStats:
    """Statistics for a reconciliation run"""
    selected: int = 0
    status_counts: Dict[ReconcileStatus, int] = field(default_factory=dict)
    outcomes: List[ReconcileOutcome] = field(default_factory=list)

    def record(self, outcome: ReconcileOutcome) -> None:
        self.outcomes.append(outcome)
        self.status_counts[outcome.status] = self.status_counts.get(outcome.status, 0) + 1

    def count(self, status: ReconcileStatus) -> int:
        return self.status_counts.get(status, 0)

    @property
    def update_rate(self) -> float:
        """Percentage of selected configurations that were updated"""
        if self.selected == 0:
            return 0.0
        return (self.count(ReconcileStatus.UPDATED) / self.selected) * 100
