# =============================================================================
# core/pipeline.py - Stage orchestration
# =============================================================================

import logging
from typing import Optional

from core.models import ReconcileStats
from core.psa_client import PSAClient
from stages.config_fetcher import ConfigFetcher
from stages.contact_fetcher import ContactFetcher
from stages.name_guesser import NameGuesser
from stages.reconciler import Reconciler
from utils.csv_utils import SnapshotStore

NETWORK_STAGES = ('fetch-configs', 'fetch-contacts', 'reconcile')


class ReconcilePipeline:
    """
    Runs the stages in order, handing each stage's output to the next.

    Snapshots are written as each stage finishes. ``run_stage`` starts a
    single stage from the snapshots of the stages before it, which is how an
    interrupted run is resumed.
    """

    def __init__(self, store: SnapshotStore, client: Optional[PSAClient] = None,
                 company_identifier: str = "", page_size: int = 100, dry_run: bool = False):
        self.store = store
        self.client = client
        self.company_identifier = company_identifier
        self.page_size = page_size
        self.dry_run = dry_run
        self.logger = logging.getLogger(__name__)

    def config_fetcher(self) -> ConfigFetcher:
        return ConfigFetcher(self.store, self.client, self.company_identifier, self.page_size)

    def contact_fetcher(self) -> ContactFetcher:
        return ContactFetcher(self.store, self.client, self.company_identifier, self.page_size)

    def name_guesser(self) -> NameGuesser:
        return NameGuesser(self.store)

    def reconciler(self) -> Reconciler:
        return Reconciler(self.store, self.client, dry_run=self.dry_run)

    def run(self, keep_artifacts: bool = False) -> ReconcileStats:
        """Run every stage in memory, cleaning up the working files at the end"""
        self.logger.info("Starting reconciliation pipeline")

        configurations = self.config_fetcher().run()
        contacts = self.contact_fetcher().run()
        guesses = self.name_guesser().run(configurations, contacts)
        stats = self.reconciler().run(guesses, contacts)

        if keep_artifacts:
            self.logger.info(f"Keeping intermediate artifacts in {self.store.work_dir}")
        else:
            self.store.cleanup()

        self.logger.info("Reconciliation pipeline finished")
        return stats

    def run_stage(self, name: str):
        """Run one stage, reading its inputs from earlier snapshots"""
        if name == 'fetch-configs':
            return self.config_fetcher().run()
        if name == 'fetch-contacts':
            return self.contact_fetcher().run()
        if name == 'guess':
            configurations = self.config_fetcher().load_snapshot()
            contacts = self.contact_fetcher().load_snapshot()
            return self.name_guesser().run(configurations, contacts)
        if name == 'reconcile':
            guesses = self.name_guesser().load_snapshot()
            contacts = self.contact_fetcher().load_snapshot()
            return self.reconciler().run(guesses, contacts)
        if name == 'cleanup':
            return self.store.cleanup()
        raise ValueError(f"Unknown stage: {name}")
