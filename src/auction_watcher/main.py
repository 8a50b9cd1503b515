"""Main orchestrator for the auction watcher."""

import argparse
import logging
import sys
from typing import Any, Dict, Optional

from .config import load_config
from .models.listing import RunResult
from .services.diff import compute_relevant_new
from .services.email_sender import BaseNotifier, EmailService, NotifyError
from .services.extractor import extract
from .services.fetcher import BaseFetcher, FetchError, HttpFetcher
from .services.run_lock import RunLock
from .services.snapshot_store import SnapshotStore, StoreError, get_snapshot_store
from .utils.logging import setup_logging, setup_logging_from_config

logger = logging.getLogger(__name__)


class AuctionWatcher:
    """
    Main orchestrator for the auction watcher.

    Coordinates: fetching -> extraction -> snapshot load -> diff ->
                 notification -> snapshot save
    """

    def __init__(
        self,
        config: Dict[str, Any],
        fetcher: Optional[BaseFetcher] = None,
        store: Optional[SnapshotStore] = None,
        notifier: Optional[BaseNotifier] = None,
        lock: Optional[RunLock] = None,
    ):
        self.config = config
        source = config["source"]
        self.url = source["url"]
        self.base_url = source.get("base_url") or self.url
        self.target_sizes = frozenset(config["targets"]["sizes"])
        self.notify_on_cold_start = config.get("notify", {}).get("on_cold_start", False)

        snapshot_config = config.get("snapshot", {})
        self.write_on_fetch_failure = snapshot_config.get("write_on_fetch_failure", False)

        email_config = config.get("email", {})
        self.email_enabled = email_config.get("enabled", True)

        self.fetcher = fetcher or HttpFetcher(timeout=source.get("timeout", 30))
        self.store = store or get_snapshot_store(config)
        self.notifier = notifier or EmailService(
            recipients=email_config.get("recipients", []),
            subject=email_config.get("subject", "New Property Listing Detected!"),
        )

        lock_config = config.get("lock", {})
        if lock is None and lock_config.get("enabled"):
            lock = RunLock(lock_config.get("path"), lock_config.get("ttl_seconds"))
        self.lock = lock

    def run_once(self, dry_run: bool = False) -> RunResult:
        """
        Execute one fetch-diff-notify-persist cycle.

        Args:
            dry_run: If True, skip the notification and the snapshot write

        Returns:
            Structured result; errors of the fetch, store and notify
            collaborators are reported here rather than raised
        """
        if self.lock is not None and not self.lock.acquire():
            logger.warning("Another run is in progress - skipping")
            return RunResult(message="Run skipped: another run is in progress", skipped=True)

        try:
            return self._run(dry_run)
        finally:
            if self.lock is not None:
                self.lock.release()

    def _run(self, dry_run: bool) -> RunResult:
        logger.info("Starting auction watcher run")
        result = RunResult(message="Scraper executed")

        try:
            html = self.fetcher.fetch(self.url)
            current = extract(html, self.base_url)
        except FetchError as e:
            logger.error(f"Fetch failed, continuing with no listings: {e}")
            result.fetch_failed = True
            result.errors.append(str(e))
            current = []
        result.data = current

        try:
            previous = self.store.load()
        except StoreError as e:
            logger.error(f"Snapshot load failed, treating as first run: {e}")
            result.errors.append(str(e))
            previous = None

        relevant = compute_relevant_new(
            current,
            previous,
            target_sizes=self.target_sizes,
            notify_on_cold_start=self.notify_on_cold_start,
        )
        result.relevant = relevant

        if relevant and self.email_enabled and not dry_run:
            try:
                self.notifier.notify(relevant)
                result.email_sent = True
            except NotifyError as e:
                logger.error(f"Notification failed: {e}")
                result.errors.append(str(e))
        elif relevant:
            logger.info(f"{len(relevant)} relevant listings, notification disabled")

        if dry_run:
            logger.info("Dry run - snapshot not written")
        elif result.fetch_failed and not self.write_on_fetch_failure:
            logger.warning("Fetch failed - keeping the previous snapshot")
        else:
            try:
                self.store.save(current)
                result.snapshot_saved = True
            except StoreError as e:
                logger.error(f"Snapshot save failed: {e}")
                result.save_failed = True
                result.errors.append(str(e))

        result.message = self._summarize(result)
        logger.info(
            f"Run complete: {result.current_count} listings, "
            f"{len(relevant)} relevant, email sent: {result.email_sent}"
        )
        return result

    @staticmethod
    def _summarize(result: RunResult) -> str:
        if result.save_failed:
            return "Scraper executed, but the snapshot could not be saved"
        if result.fetch_failed:
            return "Scraper executed, but the listing page could not be fetched"
        if result.email_sent:
            return f"Scraper executed, {len(result.relevant)} new listing(s) emailed"
        return "Scraper executed"


def main():
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Auction Watcher - email alerts for new apartment auctions"
    )
    parser.add_argument(
        "-c",
        "--config",
        default="./config/config.yaml",
        help="Path to configuration file",
    )
    parser.add_argument(
        "--no-email",
        action="store_true",
        help="Skip sending email and writing the snapshot (useful for testing)",
    )
    parser.add_argument(
        "--show-snapshot",
        action="store_true",
        help="Print the stored snapshot and exit",
    )
    parser.add_argument(
        "--test-email",
        metavar="EMAIL",
        help="Send a test email to verify configuration",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )

    args = parser.parse_args()

    try:
        config = load_config(args.config)
    except (FileNotFoundError, ValueError) as e:
        setup_logging("DEBUG" if args.verbose else None)
        logger.error(str(e))
        sys.exit(1)

    setup_logging_from_config(config, verbose=args.verbose)

    if args.test_email:
        email_service = EmailService()
        if email_service.send_test_email(args.test_email):
            print(f"Test email sent to {args.test_email}")
        else:
            print("Failed to send test email - check your configuration")
            sys.exit(1)
        return

    if args.show_snapshot:
        try:
            records = get_snapshot_store(config).load()
        except StoreError as e:
            logger.error(str(e))
            sys.exit(1)
        if records is None:
            print("No snapshot stored yet")
            return
        print(f"\n=== Stored snapshot: {len(records)} listings ===")
        for record in records:
            print(f"  {record.size:>4} | {record.date} | {record.description[:60]}")
            print(f"         {record.link}")
        return

    try:
        watcher = AuctionWatcher(config)
        result = watcher.run_once(dry_run=args.no_email)
    except Exception as e:
        logger.exception(f"Unexpected error: {e}")
        sys.exit(1)

    print("\n=== Auction Watcher Results ===")
    print(result.message)
    print(f"Listings found: {result.current_count}")
    print(f"Relevant new: {len(result.relevant)}")
    for record in result.relevant:
        print(f"  - {record.size} | {record.date} | {record.description[:50]}")
        print(f"    {record.link}")
    for error in result.errors:
        print(f"  ! {error}")

    if not result.success:
        sys.exit(1)


if __name__ == "__main__":
    main()
