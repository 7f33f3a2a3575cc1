# =============================================================================
# stages/reconciler.py - Contact write-back stage
# =============================================================================

from typing import List

from core.base_stage import BaseStage
from core.exceptions import PSAError
from core.models import (
    ConfigurationRecord, ContactRecord, ContactReference, GuessResult,
    ReconcileOutcome, ReconcileStats, ReconcileStatus
)
from core.name_guess import ContactDirectory, fold_name
from core.psa_client import PSAClient
from utils.csv_utils import SnapshotStore, AUDIT_DIR


class Reconciler(BaseStage):
    """
    Writes guessed contacts back to configurations.

    Only guesses that exist in the directory, differ from the recorded
    contact and belong to an active configuration are considered. Each one
    goes Selected -> LiveChecked -> Skipped | Updated | Failed. A live record
    that already carries the guessed contact is skipped without a write, so
    rerunning from an old guess snapshot is safe. Nothing is retried or
    rolled back.
    """

    def __init__(self, store: SnapshotStore, client: PSAClient, dry_run: bool = False):
        super().__init__(store)
        self.client = client
        self.dry_run = dry_run

    def run(self, guesses: List[GuessResult], contacts: List[ContactRecord]) -> ReconcileStats:
        directory = ContactDirectory(contacts)
        selected = [guess for guess in guesses if guess.selected_for_update]
        self.logger.info(f"Reconciling {len(selected)} of {len(guesses)} configurations"
                         + (" (dry run)" if self.dry_run else ""))

        stats = ReconcileStats(selected=len(selected))
        for result in selected:
            outcome = self.reconcile_one(result, directory)
            stats.record(outcome)

        self.log_statistics(stats)
        return stats

    def reconcile_one(self, result: GuessResult, directory: ContactDirectory) -> ReconcileOutcome:
        """Reconcile a single selected configuration"""
        full_name = result.guess.full_name
        contact = directory.resolve(full_name)
        if contact is None:
            self.logger.warning(f"Configuration {result.config_id}: guessed contact '{full_name}' "
                                f"is no longer in the directory, skipping")
            return ReconcileOutcome(result.config_id, ReconcileStatus.SKIPPED_UNRESOLVED, full_name)

        try:
            live = ConfigurationRecord.from_payload(self.client.get_configuration(result.config_id))
            if not live.active:
                self.logger.info(f"Configuration {result.config_id} is inactive now, skipping")
                return ReconcileOutcome(result.config_id, ReconcileStatus.SKIPPED_INACTIVE)

            if fold_name(live.contact_name) == fold_name(contact.full_name):
                self.logger.info(f"Configuration {live.id} already has contact '{live.contact_name}', skipping")
                return ReconcileOutcome(live.id, ReconcileStatus.SKIPPED_MATCHING, live.contact_name)

            reference = ContactReference(
                id=contact.id,
                name=contact.full_name,
                href=self.client.contact_href(contact.id),
            )
            updated_body = live.with_contact(reference)
            self.store.write_json(AUDIT_DIR, f"config_{live.id}_before.json", live.raw)
            self.store.write_json(AUDIT_DIR, f"config_{live.id}_after.json", updated_body)

            change = f"'{live.contact_name}' -> '{contact.full_name}'"
            if self.dry_run:
                self.logger.info(f"Dry run: configuration {live.id} {change}")
                return ReconcileOutcome(live.id, ReconcileStatus.DRY_RUN, change)

            self.client.update_configuration(live.id, updated_body)
            self.logger.info(f"Updated configuration {live.id} contact {change}")
            return ReconcileOutcome(live.id, ReconcileStatus.UPDATED, change)

        except (PSAError, ValueError, OSError) as e:
            self.logger.error(f"Failed to update configuration {result.config_id}: {e}")
            return ReconcileOutcome(result.config_id, ReconcileStatus.FAILED, str(e))

    def log_statistics(self, stats: ReconcileStats) -> None:
        """Log reconciliation statistics"""
        status_counts = {status.value: count for status, count in stats.status_counts.items()}
        self.logger.info(f"Reconcile summary: {status_counts}")
        self.logger.info(f"Update rate: {stats.update_rate:.1f}% "
                         f"({stats.count(ReconcileStatus.UPDATED)}/{stats.selected})")
