#!/usr/bin/env python3
"""
main.py

Control center for Notion sources ↔ hub sync runs.

USAGE:
    python -m hubsync.main                    # One full pass (reverse, then forward)
    python -m hubsync.main --dry-run          # Decide everything, write nothing
    python -m hubsync.main --validate         # Check configuration and exit
    python -m hubsync.main --inspect PAGE_ID  # Dump one page's properties
    python -m hubsync.main --clean            # Remove old logs
"""

import argparse
import logging
import os
import shutil
import sys
from typing import List, Optional

from .config import LOG_DIR, LOG_LEVEL, SyncConfig
from .errors import SyncError
from .inspect_page import describe_page, print_page_report
from .notifications import initialize_notifier, notify_error, notify_info, send_final_notification
from .store import NotionStore, RecordStore
from .sync import HubSync

logger = logging.getLogger("hubsync")


def setup_logging(level: str = LOG_LEVEL, log_dir: str = LOG_DIR):
    """Log to console and logs/sync.log, with INFO+ also in logs/summary.log."""
    os.makedirs(log_dir, exist_ok=True)

    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[
            logging.FileHandler(os.path.join(log_dir, "sync.log")),
            logging.StreamHandler()
        ]
    )
    root_logger = logging.getLogger()
    summary_handler = logging.FileHandler(os.path.join(log_dir, "summary.log"))
    summary_handler.setLevel(logging.INFO)
    summary_handler.setFormatter(logging.Formatter("%(asctime)s - %(levelname)s - %(message)s"))
    root_logger.addHandler(summary_handler)

    # Quiet noisy libs
    logging.getLogger("urllib3").setLevel(logging.INFO)
    logging.getLogger("requests").setLevel(logging.INFO)


def clean_workspace(log_dir: str = LOG_DIR):
    """Remove the logs directory and recreate it empty"""
    if os.path.exists(log_dir):
        shutil.rmtree(log_dir)
        print(f"🧹 Cleaned {log_dir}/")
    os.makedirs(log_dir, exist_ok=True)
    print(f"📁 Created fresh {log_dir}/")


def log_startup(config: SyncConfig):
    logger.info("🔄 Two-way sync initializing...")
    logger.info(f"✔️ NOTION_TOKEN loaded: {bool(config.token)}")
    logger.info(f"📚 SOURCES DB IDs: {config.source_ids}")
    logger.info(f"🏠 HUB_DB ID: {config.hub_id}")
    if config.dry_run:
        logger.info("🧪 Dry run enabled - no page will be created or updated")


def run_sync(config: SyncConfig, store: Optional[RecordStore] = None) -> int:
    """Run one pass and send the end-of-pass notification. Returns the process exit code."""
    if config.teams_webhook_url:
        initialize_notifier(config.teams_webhook_url)
    else:
        logger.warning("⚠️ No Teams webhook URL configured - notifications disabled")

    engine = HubSync(config, store)
    try:
        stats = engine.run()
    except Exception as e:
        logger.exception("Unhandled exception during sync pass")
        notify_error("Critical sync failure - unhandled exception",
                     {"error": str(e), "error_type": type(e).__name__})
        send_final_notification("❌ Notion Hub Sync Failed", engine.stats)
        return 1

    if engine.had_errors:
        send_final_notification("❌ Notion Hub Sync Completed with Unreadable Databases", stats)
        logger.critical("Sync finished with errors - failing the process.")
        return 1

    send_final_notification("⚠️ Notion Hub Sync Completed with Issues", stats)
    notify_info("Sync completed.")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description="Notion sources ↔ hub two-way sync",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s                        # Full pass
  %(prog)s --dry-run              # Log decisions only
  %(prog)s --inspect <page id>    # Show a page's keys, title and archived flag
        """
    )
    parser.add_argument("--dry-run", action="store_true",
                        help="Compute every decision but do not create or update pages")
    parser.add_argument("--validate", action="store_true",
                        help="Validate configuration and exit")
    parser.add_argument("--inspect", metavar="PAGE_ID",
                        help="Print the property keys, title and archived flag of a page")
    parser.add_argument("--clean", action="store_true",
                        help="Remove the logs directory and exit")
    parser.add_argument("--no-progress", action="store_true",
                        help="Disable progress bars")
    args = parser.parse_args(argv)

    if args.clean:
        clean_workspace()
        print("✅ Workspace cleaned. Run again without --clean to sync.")
        return 0

    setup_logging()

    try:
        config = SyncConfig.from_env()
    except ValueError as e:
        logger.error(f"❌ Configuration error: {e}")
        return 1
    if args.dry_run:
        config.dry_run = True
    if args.no_progress:
        config.show_progress = False

    if args.inspect:
        if not config.token:
            logger.error("❌ NOTION_TOKEN not configured")
            return 1
        try:
            report = describe_page(NotionStore(config), args.inspect)
        except SyncError as e:
            logger.error(f"❌ Could not inspect page {args.inspect}: {e.message}")
            return 1
        print_page_report(report)
        return 0

    log_startup(config)

    problems = config.validate()
    if problems:
        logger.error("❌ CONFIGURATION ERRORS:")
        for problem in problems:
            logger.error(f"   • {problem}")
        return 1

    if args.validate:
        logger.info("✅ Configuration validated")
        return 0

    return run_sync(config)


def cli():
    sys.exit(main())


if __name__ == "__main__":
    cli()
