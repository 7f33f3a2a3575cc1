import json
from unittest.mock import Mock

import pytest

from core.exceptions import PSAError
from core.models import ConfigurationRecord, ContactRecord, GuessResult, NameGuess, ReconcileStatus
from core.name_guess import ContactDirectory, guess_contact
from core.psa_client import PSAClient
from stages.reconciler import Reconciler
from utils.csv_utils import SnapshotStore

CONTACTS = [
    ContactRecord(id=77, first_name="John", last_name="Smith"),
    ContactRecord(id=78, first_name="Jane", last_name="Doe"),
]


def live_payload(config_id, active=True, contact_name="Jon Smith"):
    return {
        "id": config_id,
        "name": f"PC-{config_id}",
        "lastLoginName": "DOMAIN\\JohnSmith",
        "activeFlag": active,
        "contact": {"id": 5, "name": contact_name, "_info": {"contact_href": "https://example.test/5"}},
        "notes": "keep me",
    }


def selected_guess(config_id, first="John", last="Smith", active=True):
    return GuessResult(
        config_id=config_id,
        config_name=f"PC-{config_id}",
        active=active,
        last_login_name=f"DOMAIN\\{first}{last}",
        recorded_contact="Jon Smith",
        guess=NameGuess(first_name=first, last_name=last,
                        matches_recorded_contact=False, exists_in_directory=True),
    )


@pytest.fixture
def store(tmp_path):
    return SnapshotStore(str(tmp_path / "work"))


@pytest.fixture
def client():
    psa = Mock(spec=PSAClient)
    psa.contact_href.side_effect = lambda contact_id: f"https://example.test/company/contacts/{contact_id}"
    psa.get_configuration.side_effect = lambda config_id: live_payload(config_id)
    return psa


def test_updates_selected_configuration(store, client):
    stats = Reconciler(store, client).run([selected_guess(1)], CONTACTS)

    assert stats.selected == 1
    assert stats.count(ReconcileStatus.UPDATED) == 1
    assert stats.update_rate == 100.0
    config_id, body = client.update_configuration.call_args.args
    assert config_id == 1
    assert body["contact"] == {
        "id": 77,
        "name": "John Smith",
        "_info": {"contact_href": "https://example.test/company/contacts/77"},
    }
    # Full body resubmitted
    assert body["notes"] == "keep me"
    assert body["name"] == "PC-1"

    before = json.loads((store.work_dir / "audit" / "config_1_before.json").read_text())
    after = json.loads((store.work_dir / "audit" / "config_1_after.json").read_text())
    assert before["contact"]["name"] == "Jon Smith"
    assert after["contact"]["name"] == "John Smith"


def test_unselected_guesses_are_not_touched(store, client):
    matching = selected_guess(1)
    matching.guess.matches_recorded_contact = True
    not_in_directory = selected_guess(2)
    not_in_directory.guess.exists_in_directory = False
    inactive = selected_guess(3, active=False)

    stats = Reconciler(store, client).run([matching, not_in_directory, inactive], CONTACTS)

    assert stats.selected == 0
    client.get_configuration.assert_not_called()
    client.update_configuration.assert_not_called()


def test_live_inactive_configuration_is_skipped(store, client):
    client.get_configuration.side_effect = lambda config_id: live_payload(config_id, active=False)

    stats = Reconciler(store, client).run([selected_guess(1)], CONTACTS)

    assert stats.count(ReconcileStatus.SKIPPED_INACTIVE) == 1
    client.update_configuration.assert_not_called()


def test_contact_missing_from_directory_is_skipped(store, client, caplog):
    stats = Reconciler(store, client).run([selected_guess(1, first="Ann", last="Lee")], CONTACTS)

    assert stats.count(ReconcileStatus.SKIPPED_UNRESOLVED) == 1
    assert "no longer in the directory" in caplog.text
    client.get_configuration.assert_not_called()


def test_failure_does_not_stop_later_records(store, client):
    def update(config_id, body):
        if config_id == 1:
            raise PSAError("PUT returned 400", status_code=400)
        return body

    client.update_configuration.side_effect = update

    stats = Reconciler(store, client).run([selected_guess(1), selected_guess(2)], CONTACTS)

    assert stats.count(ReconcileStatus.FAILED) == 1
    assert stats.count(ReconcileStatus.UPDATED) == 1
    assert [outcome.status for outcome in stats.outcomes] == [
        ReconcileStatus.FAILED, ReconcileStatus.UPDATED
    ]


def test_live_fetch_failure_is_reported(store, client):
    client.get_configuration.side_effect = PSAError("timeout")

    stats = Reconciler(store, client).run([selected_guess(1)], CONTACTS)

    assert stats.outcomes[0].status == ReconcileStatus.FAILED
    assert "timeout" in stats.outcomes[0].detail


def test_dry_run_does_not_write(store, client):
    stats = Reconciler(store, client, dry_run=True).run([selected_guess(1)], CONTACTS)

    assert stats.count(ReconcileStatus.DRY_RUN) == 1
    client.update_configuration.assert_not_called()
    assert (store.work_dir / "audit" / "config_1_after.json").exists()


def test_second_run_on_updated_configuration_is_a_no_op(store, client):
    directory = ContactDirectory(CONTACTS)
    before = ConfigurationRecord.from_payload(live_payload(1))
    first_guess = GuessResult(1, before.name, before.active, before.last_login_name, before.contact_name,
                              guess_contact(before.last_login_name, before.contact_name, directory))
    Reconciler(store, client).run([first_guess], CONTACTS)
    assert client.update_configuration.call_count == 1

    after = ConfigurationRecord.from_payload(client.update_configuration.call_args.args[1])
    second_guess = GuessResult(1, after.name, after.active, after.last_login_name, after.contact_name,
                               guess_contact(after.last_login_name, after.contact_name, directory))
    stats = Reconciler(store, client).run([second_guess], CONTACTS)

    assert second_guess.guess.matches_recorded_contact is True
    assert stats.selected == 0
    assert client.update_configuration.call_count == 1


def test_malformed_live_body_fails_only_that_record(store, client):
    def live(config_id):
        body = live_payload(config_id)
        if config_id == 1:
            body["contact"] = "Jon Smith"
        return body

    client.get_configuration.side_effect = live

    stats = Reconciler(store, client).run([selected_guess(1), selected_guess(2)], CONTACTS)

    assert [outcome.status for outcome in stats.outcomes] == [
        ReconcileStatus.FAILED, ReconcileStatus.UPDATED
    ]
    assert client.update_configuration.call_args.args[0] == 2


def test_live_body_with_bad_id_is_reported(store, client):
    client.get_configuration.side_effect = lambda config_id: dict(live_payload(config_id), id=["1"])

    stats = Reconciler(store, client).run([selected_guess(1)], CONTACTS)

    assert stats.count(ReconcileStatus.FAILED) == 1
    client.update_configuration.assert_not_called()


def test_live_record_already_carrying_guess_is_not_rewritten(store, client):
    client.get_configuration.side_effect = lambda config_id: live_payload(config_id, contact_name="john smith")

    stats = Reconciler(store, client).run([selected_guess(1)], CONTACTS)

    assert stats.count(ReconcileStatus.SKIPPED_MATCHING) == 1
    client.update_configuration.assert_not_called()
    assert not (store.work_dir / "audit").exists()


def test_reconciler_has_no_snapshot(store, client):
    with pytest.raises(NotImplementedError, match="has no snapshot"):
        Reconciler(store, client).load_snapshot()
