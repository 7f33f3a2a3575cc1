# =============================================================================
# core/name_guess.py - Contact name heuristic for domain login names
# =============================================================================

import logging
import re
from typing import Dict, Iterable, List, Optional, Tuple

from core.models import ContactRecord, NameGuess

logger = logging.getLogger(__name__)

_CAMEL_BOUNDARY = re.compile(r'(?=[A-Z])')


def split_login_name(login_name: Optional[str]) -> Optional[Tuple[str, str]]:
    """
    Guess a first and last name from a ``DOMAIN\\username`` login.

    The username after the last backslash is split in front of every
    uppercase letter, so ``CORP\\JohnSmith`` gives ``("John", "Smith")`` and
    ``CORP\\MaryAnnVan`` gives ``("Mary", "Ann Van")``. A single segment is
    treated as a first name only.

    This is a heuristic. Usernames that are not camel-cased (``jsmith``),
    contain digits, use hyphens or compound surnames, or come from another
    naming convention produce wrong guesses. Only ASCII ``A-Z`` starts a
    segment, so an accented capital does not split: ``CORP\\JoséÁlvarez``
    gives ``("JoséÁlvarez", "")``.

    Args:
        login_name: Raw login name, may be None

    Returns:
        ``(first, last)`` or None when no guess can be made
    """
    if not login_name or '\\' not in login_name:
        return None

    username = login_name.rsplit('\\', 1)[1]
    segments = [segment for segment in _CAMEL_BOUNDARY.split(username) if segment]

    if not segments:
        return None
    if len(segments) == 1:
        return segments[0], ''
    return segments[0], ' '.join(segments[1:])


def fold_name(value: Optional[str]) -> str:
    """Comparison key for names: trimmed and case-folded"""
    if not value:
        return ''
    return value.strip().casefold()


class ContactDirectory:
    """Contacts indexed by case-folded full name"""

    def __init__(self, contacts: Iterable[ContactRecord]):
        self.contacts: List[ContactRecord] = list(contacts)
        self._by_name: Dict[str, ContactRecord] = {}
        for contact in self.contacts:
            key = fold_name(contact.full_name)
            if not key:
                continue
            if key in self._by_name:
                logger.warning(f"Multiple contacts named '{contact.full_name}', using first match "
                               f"(id {self._by_name[key].id})")
                continue
            self._by_name[key] = contact

    def __len__(self) -> int:
        return len(self.contacts)

    def contains(self, full_name: str) -> bool:
        return fold_name(full_name) in self._by_name

    def resolve(self, full_name: str) -> Optional[ContactRecord]:
        return self._by_name.get(fold_name(full_name))


def guess_contact(login_name: Optional[str], recorded_contact_name: Optional[str],
                  directory: ContactDirectory) -> NameGuess:
    """Guess the contact for a login name and check it against the directory and recorded contact"""
    parts = split_login_name(login_name)
    if parts is None:
        return NameGuess()

    guess = NameGuess(first_name=parts[0], last_name=parts[1])
    key = fold_name(guess.full_name)
    guess.exists_in_directory = directory.contains(guess.full_name)
    guess.matches_recorded_contact = bool(key) and fold_name(recorded_contact_name) == key
    return guess
