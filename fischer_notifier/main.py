"""Main entry point for the Fischerprüfung appointment notifier"""
import argparse
import asyncio
import signal
import sys
from datetime import datetime
from typing import Optional
import pytz

from .config import Config
from .storage.database import Database
from .services.discord_client import DiscordClient
from .services.exam_client import ExamApiClient
from .services.notification_service import NotificationService
from .services.response_cache import ResponseCache
from .utils.logger import setup_logger
from .utils.scheduling import next_run_time, seconds_until

logger = setup_logger(__name__)


class FischerBot:
    """Main orchestrator for the scheduled checks"""

    def __init__(self, config: Optional[Config] = None):
        """Initialize bot components"""
        self.config = config or Config()
        self.database = Database(db_path=str(self.config.db_path))
        self.running = False

        # Initialize services
        self.api_client = ExamApiClient(
            api_url=self.config.api_url,
            exam_type_id=self.config.exam_type_id,
            link_url=self.config.link_url,
            cache=ResponseCache(str(self.config.cache_dir), self.config.cache_ttl),
            max_retries=self.config.max_retries,
            timeout=self.config.request_timeout,
            timezone=self.config.timezone
        )
        self.discord_client = DiscordClient(
            webhook_url=self.config.discord_webhook_url,
            username=self.config.discord_username
        )
        self.notification_service = NotificationService(
            database=self.database,
            api_client=self.api_client,
            discord_client=self.discord_client,
            max_send_retries=self.config.max_retries
        )

    def _signal_handler(self, signum, frame):
        """Handle shutdown signals"""
        logger.info(f"Received signal {signum}, shutting down gracefully...")
        self.running = False

    def run_once(self) -> bool:
        """Run a single check cycle, True if it completed"""
        self.database.initialize()
        return self.notification_service.run_cycle() is not None

    async def start(self):
        """Start the bot"""
        self.running = True
        logger.info("Starting Fischerprüfung notifier...")

        # Setup signal handlers for graceful shutdown
        signal.signal(signal.SIGINT, self._signal_handler)
        signal.signal(signal.SIGTERM, self._signal_handler)

        self.database.initialize()

        check_task = asyncio.create_task(self._check_loop())
        maintenance_task = asyncio.create_task(self._maintenance_loop())

        try:
            # Run until stopped
            while self.running:
                await asyncio.sleep(1)
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            logger.info("Stopping services...")
            check_task.cancel()
            maintenance_task.cancel()
            logger.info("Bot stopped")

    async def _check_loop(self):
        """Background loop for the daily appointment check"""
        logger.info("Starting check loop...")

        # Check immediately on startup
        try:
            await asyncio.to_thread(self.notification_service.run_cycle)
        except asyncio.CancelledError:
            return

        while self.running:
            try:
                next_run = next_run_time(
                    datetime.now(pytz.UTC),
                    self.config.check_time,
                    tz_name=self.config.timezone
                )
                logger.info(f"Next check scheduled for {next_run:%Y-%m-%d %H:%M %Z}")
                await asyncio.sleep(seconds_until(next_run))
                if self.running:
                    await asyncio.to_thread(self.notification_service.run_cycle)
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error(f"Error in check loop: {e}")

    async def _maintenance_loop(self):
        """Background loop for the weekly database maintenance"""
        while self.running:
            try:
                next_run = next_run_time(
                    datetime.now(pytz.UTC),
                    self.config.maintenance_time,
                    weekday=self.config.maintenance_weekday,
                    tz_name=self.config.timezone
                )
                logger.info(f"Next maintenance scheduled for {next_run:%Y-%m-%d %H:%M %Z}")
                await asyncio.sleep(seconds_until(next_run))
                if self.running:
                    await asyncio.to_thread(
                        self.notification_service.run_maintenance,
                        self.config.retention_days
                    )
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error(f"Error during database maintenance: {e}")


async def main():
    """Main entry point"""
    try:
        bot = FischerBot()
        await bot.start()
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        sys.exit(1)


def run():
    """Console entry point"""
    parser = argparse.ArgumentParser(
        description="Notify a Discord channel about new Fischerprüfung appointments"
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run a single check and exit instead of scheduling checks"
    )
    args = parser.parse_args()

    if args.once:
        try:
            bot = FischerBot()
        except ValueError as e:
            logger.error(f"Configuration error: {e}")
            sys.exit(1)
        sys.exit(0 if bot.run_once() else 1)

    asyncio.run(main())


if __name__ == "__main__":
    run()
