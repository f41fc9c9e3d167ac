"""Maintenance commands for the appointment store"""
import argparse
import json
import shutil
import sys
from pathlib import Path
from typing import Optional

from .config import Config
from .storage.database import Database
from .storage.models import Appointment
from .services.exam_client import ExamApiClient
from .services.response_cache import ResponseCache
from .utils.logger import setup_logger

logger = setup_logger(__name__)


def prune(database: Database, days: int) -> int:
    """Remove appointments older than the given number of days"""
    database.initialize()
    return database.prune_older_than(days)


def flush(database: Database, backup: bool = True) -> Optional[int]:
    """Remove all appointments, keeping a backup copy of the database"""
    database.initialize()
    return database.flush(backup=backup)


def migrate_json(database: Database, json_path: Path) -> int:
    """
    Import appointments from the legacy JSON data file

    The JSON file is kept and a .bak copy is written next to it.

    Returns:
        Number of imported appointments
    """
    if not json_path.exists():
        logger.info(f"JSON file not found at {json_path}. Nothing to migrate.")
        return 0

    try:
        with open(json_path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError) as e:
        logger.error(f"Error reading JSON data: {e}")
        return 0

    if not isinstance(data, list):
        logger.error("Invalid JSON data: Not an array of appointments")
        return 0

    appointments = []
    for item in data:
        appointment = Appointment.coerce(item)
        if appointment is None:
            logger.warning(f"Skipping legacy entry without id: {item!r}")
            continue
        appointments.append(appointment)

    logger.info(f"Found {len(appointments)} appointments to migrate")
    if not appointments:
        return 0

    database.initialize()
    if not database.upsert_many(appointments):
        logger.warning("Some appointments could not be migrated")

    backup_path = json_path.with_name(json_path.name + ".bak")
    try:
        shutil.copy2(json_path, backup_path)
        logger.info(f"Created backup of original JSON file at {backup_path}")
    except OSError as e:
        logger.error(f"Error creating JSON backup: {e}")

    logger.info("Migration completed")
    return len(appointments)


def fetch(config: Config, use_cache: bool = False) -> bool:
    """Trigger a manual API call and report the result"""
    client = ExamApiClient(
        api_url=config.api_url,
        exam_type_id=config.exam_type_id,
        link_url=config.link_url,
        cache=ResponseCache(str(config.cache_dir), config.cache_ttl) if use_cache else None,
        max_retries=config.max_retries,
        timeout=config.request_timeout,
        timezone=config.timezone
    )
    logger.info("Manual API call triggered...")
    data = client.fetch_exam_data() if use_cache else client.fetch_exam_data_no_cache()
    if data is None:
        logger.error("Manual API call failed")
        return False

    appointments = client.parse_appointments(data)
    logger.info(
        f"API call successful: {len(data)} items, "
        f"{len(appointments)} of exam type {config.exam_type_id}"
    )
    return True


def stats(database: Database) -> dict:
    """Summary of the stored appointments"""
    appointments = database.load_all()
    notified = [a for a in appointments if a.notified]
    latest = database.most_recent_by_exam_date(1)
    return {
        "total": len(appointments),
        "notified": len(notified),
        "pending": len(appointments) - len(notified),
        "latest_termin": latest[0].termin if latest else None,
    }


def main():
    """Main entry point"""
    parser = argparse.ArgumentParser(
        description="Maintenance commands for the Fischerprüfung appointment store"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    prune_parser = subparsers.add_parser("prune", help="Remove old appointments")
    prune_parser.add_argument(
        "--days",
        type=int,
        default=None,
        help="Retention window in days (default: RETENTION_DAYS)"
    )

    flush_parser = subparsers.add_parser("flush", help="Remove all appointments")
    flush_parser.add_argument(
        "--no-backup",
        action="store_true",
        help="Do not copy the database file before flushing"
    )

    migrate_parser = subparsers.add_parser(
        "migrate-json",
        help="Import appointments from the legacy JSON data file"
    )
    migrate_parser.add_argument(
        "--path",
        type=Path,
        default=None,
        help="JSON file to import (default: DATA_FILE_PATH)"
    )

    fetch_parser = subparsers.add_parser("fetch", help="Trigger a manual API call")
    fetch_parser.add_argument(
        "--use-cache",
        action="store_true",
        help="Serve from and write to the response cache"
    )

    subparsers.add_parser("stats", help="Show store statistics")

    args = parser.parse_args()

    # Load configuration
    try:
        config = Config()
    except ValueError as e:
        logger.error(f"Configuration error: {e}")
        sys.exit(1)

    database = Database(db_path=str(config.db_path))

    if args.command == "prune":
        days = args.days if args.days is not None else config.retention_days
        removed = prune(database, days)
        logger.info(f"Removed {removed} appointments")
    elif args.command == "flush":
        if flush(database, backup=not args.no_backup) is None:
            sys.exit(1)
    elif args.command == "migrate-json":
        migrate_json(database, args.path or config.legacy_json_path)
    elif args.command == "fetch":
        if not fetch(config, use_cache=args.use_cache):
            sys.exit(1)
    elif args.command == "stats":
        for key, value in stats(database).items():
            logger.info(f"{key}: {value}")


if __name__ == "__main__":
    main()
