# =============================================================================
# main.py - CLI entry point
# =============================================================================

import argparse
import logging
import sys
from datetime import datetime
from pathlib import Path

from core.exceptions import ConfigurationError, SnapshotMissingError
from core.models import ReconcileStats
from core.pipeline import ReconcilePipeline, NETWORK_STAGES
from core.psa_client import PSAClient
from utils.config import Config
from utils.csv_utils import SnapshotStore


def setup_logging(level: str = "INFO") -> str:
    """Setup logging configuration with both console and file output"""
    # Create logs directory if it doesn't exist
    log_dir = Path("logs")
    log_dir.mkdir(exist_ok=True)

    # Generate date-stamped filename
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    log_filename = log_dir / f"contact_reconcile_{timestamp}.log"

    formatter = logging.Formatter(
        fmt='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)

    # Clear any existing handlers
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(getattr(logging, level.upper()))
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    file_handler = logging.FileHandler(log_filename, encoding='utf-8')
    file_handler.setLevel(logging.DEBUG)  # Always log DEBUG to file
    file_handler.setFormatter(formatter)
    root_logger.addHandler(file_handler)

    logger = logging.getLogger(__name__)
    logger.info(f"Logging initialized - Console: {level.upper()}, File: DEBUG")
    logger.info(f"Log file: {log_filename}")

    return str(log_filename)


def positive_int(value: str) -> int:
    """argparse type for counts that must be at least 1"""
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid positive integer: '{value}'") from None
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1, got {number}")
    return number


def build_client(config: Config) -> PSAClient:
    """Create the API client, failing before any network activity when credentials are missing"""
    if not config.validate_psa_config():
        raise ConfigurationError(
            f"Missing required environment variables: {config.get_missing_psa_vars()}"
        )
    config.check_base_url()
    return PSAClient(
        config.base_url, config.company_id, config.public_key, config.private_key,
        config.client_id, config.api_version, timeout=config.timeout
    )


def resolve_company(args, config: Config) -> str:
    company = getattr(args, 'company', None) or config.company_identifier
    if not company:
        raise ConfigurationError("Company identifier required: set PSA_COMPANY_IDENTIFIER or pass --company")
    return company


def report(stats: ReconcileStats) -> None:
    logger = logging.getLogger(__name__)
    logger.info(f"Selected {stats.selected} configurations, final update rate {stats.update_rate:.1f}%")


def execute(args, config: Config) -> None:
    """Run the requested command"""
    store = SnapshotStore(args.work_dir or config.work_dir)
    dry_run = getattr(args, 'dry_run', False)

    if args.command not in NETWORK_STAGES and args.command != 'run':
        pipeline = ReconcilePipeline(store)
        pipeline.run_stage(args.command)
        return

    page_size = getattr(args, 'page_size', None)
    if page_size is None:
        page_size = config.page_size
    company = resolve_company(args, config) if args.command != 'reconcile' else ""
    client = build_client(config)

    with client:
        pipeline = ReconcilePipeline(store, client, company, page_size, dry_run=dry_run)
        if args.command == 'run':
            report(pipeline.run(keep_artifacts=args.keep_artifacts))
            return

        result = pipeline.run_stage(args.command)
        if isinstance(result, ReconcileStats):
            report(result)


def main():
    """Main CLI entry point"""
    parser = argparse.ArgumentParser(description="Configuration contact reconciler")
    subparsers = parser.add_subparsers(dest='command', help='Command to run')

    run_parser = subparsers.add_parser('run', help='Run the whole pipeline')
    run_parser.add_argument('--keep-artifacts', action='store_true',
                            help='Keep snapshots and audit files after the run')

    configs_parser = subparsers.add_parser('fetch-configs', help='Fetch configurations to a snapshot')
    contacts_parser = subparsers.add_parser('fetch-contacts', help='Fetch the contact directory to a snapshot')
    subparsers.add_parser('guess', help='Guess contacts from the fetched snapshots')
    reconcile_parser = subparsers.add_parser('reconcile', help='Write guessed contacts back')
    subparsers.add_parser('cleanup', help='Remove intermediate artifacts')

    for sub in (run_parser, configs_parser, contacts_parser):
        sub.add_argument('--company', help='Company identifier (overrides PSA_COMPANY_IDENTIFIER)')
        sub.add_argument('--page-size', type=positive_int, help='Records per page (overrides PSA_PAGE_SIZE)')

    for sub in (run_parser, reconcile_parser):
        sub.add_argument('--dry-run', action='store_true', help='Report changes without writing them')

    # Global arguments
    parser.add_argument('--work-dir', help='Snapshot directory (overrides RECONCILE_WORK_DIR)')
    parser.add_argument('--log-level', default='INFO', choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
                        help='Logging level')

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    setup_logging(args.log_level)
    logger = logging.getLogger(__name__)

    config = Config()

    try:
        execute(args, config)
    except ConfigurationError as e:
        logger.error(str(e))
        sys.exit(1)
    except SnapshotMissingError as e:
        logger.error(f"Stage '{args.command}' aborted: {e}")
        sys.exit(1)
    except Exception as e:
        logger.error(f"Processing failed: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
