"""Notification service running the fetch, compare and notify cycle"""
from typing import List, Optional, Tuple
import discord

from .discord_client import DiscordClient
from .embeds import EmbedColor, create_appointment_embed, create_status_embed
from .exam_client import ExamApiClient
from .notification_tracker import NotificationTracker, most_recently_notified
from ..storage.database import Database
from ..storage.models import Appointment
from ..utils.logger import setup_logger
from ..utils.performance import measure

logger = setup_logger(__name__)


class NotificationService:
    """Service for detecting and announcing new exam appointments"""

    def __init__(
        self,
        database: Database,
        api_client: ExamApiClient,
        discord_client: DiscordClient,
        recent_limit: int = 2,
        max_send_retries: int = 3
    ):
        """
        Initialize notification service

        Args:
            database: Appointment store
            api_client: Exam API client
            discord_client: Discord webhook client
            recent_limit: Appointments shown per section when nothing is new
            max_send_retries: Attempts for the Discord message
        """
        self.database = database
        self.api_client = api_client
        self.discord_client = discord_client
        self.tracker = NotificationTracker(database)
        self.recent_limit = recent_limit
        self.max_send_retries = max_send_retries

    def run_cycle(self) -> Optional[List[Appointment]]:
        """
        Run one check: fetch, find new appointments, notify, persist

        Never raises. Unexpected errors are logged and reported to Discord.

        Returns:
            The new appointments, or None if the cycle was aborted
        """
        try:
            with measure("check cycle"):
                return self._check_and_notify()
        except Exception as e:
            logger.error(f"Error while checking for exam appointments: {e}", exc_info=True)
            error_embed = create_status_embed(
                "Fehler im Fischerprüfungs-Crawler",
                f"```{e}```",
                EmbedColor.ERROR
            )
            try:
                self.discord_client.send_alert("🚨 Fehler aufgetreten", [error_embed])
            except Exception as alert_error:
                logger.error(f"Error while sending the error notification: {alert_error}")
            return None

    def run_maintenance(self, retention_days: int) -> int:
        """Prune appointments older than the retention window"""
        logger.info("Running database maintenance...")
        removed = self.database.prune_older_than(retention_days)
        logger.info(f"Database maintenance completed, {removed} appointments removed")
        return removed

    def _check_and_notify(self) -> Optional[List[Appointment]]:
        if not self.database.initialize():
            logger.warning("Appointment store could not be initialized, continuing anyway")

        raw_items = self.api_client.fetch_exam_data()
        if raw_items is None:
            logger.error("Error retrieving exam data. Cycle aborted.")
            return None

        fetched = self.api_client.parse_appointments(raw_items)
        new_appointments = self.database.find_new_candidates(fetched)

        if new_appointments:
            content, embeds = self._build_new_message(new_appointments)
        else:
            content, embeds = self._build_status_message()

        self.discord_client.send_with_retry(content, embeds, max_retries=self.max_send_retries)

        # Marking needs the stored record, so it follows the save
        if new_appointments:
            self.database.upsert_many(new_appointments)
            self.tracker.mark_all(new_appointments)

        logger.info(f"✅ {len(new_appointments)} new appointments found and reported")
        return new_appointments

    def _build_new_message(
        self,
        new_appointments: List[Appointment]
    ) -> Tuple[str, List[discord.Embed]]:
        content = f"### 🎣 {len(new_appointments)} neue Termine gefunden!"
        embeds = [create_appointment_embed(a, is_new=True) for a in new_appointments]
        return content, embeds

    def _build_status_message(self) -> Tuple[str, List[discord.Embed]]:
        """Message for a cycle without new appointments"""
        lines = ["### ℹ️ Keine neuen Termine gefunden"]
        embeds = []

        recent = self.database.most_recent_by_exam_date(self.recent_limit)
        if recent:
            lines.append("### Aktuelle Termine zur Information:")
            embeds.extend(create_appointment_embed(a, color=EmbedColor.INFO) for a in recent)

        last_notified = most_recently_notified(self.database.query_notified(), self.recent_limit)
        if last_notified:
            lines.append("### Letzte gemeldete Termine:")
            embeds.extend(create_appointment_embed(a, color=EmbedColor.DEFAULT) for a in last_notified)

        return "\n\n".join(lines), embeds
