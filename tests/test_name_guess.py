import pytest

from core.models import ContactRecord
from core.name_guess import ContactDirectory, fold_name, guess_contact, split_login_name


@pytest.fixture
def directory():
    return ContactDirectory([
        ContactRecord(id=1, first_name="John", last_name="Smith"),
        ContactRecord(id=2, first_name="Madonna", last_name=""),
        ContactRecord(id=3, first_name="Mary", last_name="Ann Van"),
    ])


@pytest.mark.parametrize("login_name", [None, "", "JohnSmith", "john.smith@example.com"])
def test_no_backslash_gives_no_guess(login_name, directory):
    assert split_login_name(login_name) is None
    guess = guess_contact(login_name, "John Smith", directory)
    assert guess.first_name == ""
    assert guess.last_name == ""
    assert guess.full_name == ""
    assert guess.exists_in_directory is False
    assert guess.matches_recorded_contact is False


def test_camel_case_username_splits_first_and_last():
    assert split_login_name("DOMAIN\\JohnSmith") == ("John", "Smith")


def test_single_segment_is_first_name_only(directory):
    assert split_login_name("DOMAIN\\Madonna") == ("Madonna", "")
    guess = guess_contact("DOMAIN\\Madonna", "", directory)
    assert guess.full_name == "Madonna"
    assert guess.exists_in_directory is True


def test_remaining_segments_join_into_last_name():
    assert split_login_name("CORP\\MaryAnnVan") == ("Mary", "Ann Van")


def test_text_after_last_backslash_is_used():
    assert split_login_name("FOREST\\CORP\\JaneDoe") == ("Jane", "Doe")


def test_empty_username_after_backslash():
    assert split_login_name("DOMAIN\\") is None


def test_lowercase_username_is_a_known_misguess():
    # Not camel-cased: the whole username becomes a first name
    assert split_login_name("DOMAIN\\jsmith") == ("jsmith", "")
    # Leading lowercase run stays attached to the first segment
    assert split_login_name("DOMAIN\\jSmith") == ("j", "Smith")


def test_non_ascii_capitals_do_not_split():
    assert split_login_name("DOMAIN\\JoséÁlvarez") == ("JoséÁlvarez", "")
    assert split_login_name("DOMAIN\\ÉmileZola") == ("Émile", "Zola")


def test_guess_in_directory_but_different_recorded_contact(directory):
    guess = guess_contact("DOMAIN\\JohnSmith", "Jon Smith", directory)
    assert guess.first_name == "John"
    assert guess.last_name == "Smith"
    assert guess.exists_in_directory is True
    assert guess.matches_recorded_contact is False


def test_guess_matching_recorded_contact_ignores_case(directory):
    guess = guess_contact("DOMAIN\\JohnSmith", "JOHN SMITH", directory)
    assert guess.exists_in_directory is True
    assert guess.matches_recorded_contact is True


def test_guess_keeps_original_casing(directory):
    guess = guess_contact("domain\\JohnSMith", None, directory)
    assert guess.first_name == "John"
    assert guess.last_name == "S Mith"
    assert guess.exists_in_directory is False


def test_no_fuzzy_matching(directory):
    guess = guess_contact("DOMAIN\\JonSmith", "John Smith", directory)
    assert guess.exists_in_directory is False
    assert guess.matches_recorded_contact is False


def test_fold_name():
    assert fold_name("  John SMITH ") == "john smith"
    assert fold_name(None) == ""


def test_directory_resolves_first_of_duplicate_names(caplog):
    directory = ContactDirectory([
        ContactRecord(id=10, first_name="Alex", last_name="Lee"),
        ContactRecord(id=11, first_name="alex", last_name="LEE"),
    ])
    assert directory.resolve("Alex Lee").id == 10
    assert "Multiple contacts named" in caplog.text
    assert directory.resolve("Sam Lee") is None
