"""Discord webhook client for sending notifications"""
import time
from typing import List, Optional, Sequence
import discord
import requests

from ..utils.logger import setup_logger

logger = setup_logger(__name__)

# Discord accepts at most 10 embeds per message
MAX_EMBEDS_PER_MESSAGE = 10


class DiscordClient:
    """Discord webhook client for notifications"""

    def __init__(self, webhook_url: Optional[str], username: Optional[str] = None):
        """
        Initialize Discord client

        Args:
            webhook_url: Discord webhook URL to post to
            username: Optional display name overriding the webhook's name
        """
        self.webhook_url = webhook_url
        self.username = username

    def send_alert(self, content: str, embeds: Sequence[discord.Embed] = ()) -> bool:
        """
        Send a message with optional embeds

        More than 10 embeds are split over several messages, the text goes
        with the first one.

        Args:
            content: Message text
            embeds: Embed cards to attach

        Returns:
            True if every message was sent successfully
        """
        if not self.webhook_url:
            logger.warning(
                "Discord webhook URL is not set (DISCORD_WEBHOOK_URL). "
                "Notifications will not be sent."
            )
            return False

        try:
            webhook = discord.SyncWebhook.from_url(self.webhook_url)

            for index, batch in enumerate(self._batches(list(embeds))):
                kwargs = {"wait": True}
                if index == 0 and content:
                    kwargs["content"] = content
                if batch:
                    kwargs["embeds"] = batch
                if self.username:
                    kwargs["username"] = self.username

                logger.debug(
                    f"Sending payload to Discord: "
                    f"{'content present' if 'content' in kwargs else 'no content'}, "
                    f"{len(batch)} embeds"
                )
                webhook.send(**kwargs)

            logger.info("Discord notification sent successfully")
            return True

        except ValueError as e:
            logger.error(f"Invalid Discord webhook URL: {e}")
            return False
        except discord.errors.HTTPException as e:
            logger.error(f"Discord API error sending notification: {e}")
            return False
        except requests.RequestException as e:
            logger.error(f"Network error sending Discord notification: {e}")
            return False

    def send_with_retry(
        self,
        content: str,
        embeds: Sequence[discord.Embed] = (),
        max_retries: int = 3
    ) -> bool:
        """
        Send notification with exponential backoff retry

        Args:
            content: Message text
            embeds: Embed cards to attach
            max_retries: Maximum number of attempts

        Returns:
            True if notification was sent successfully
        """
        if not self.webhook_url:
            return self.send_alert(content, embeds)

        for attempt in range(max_retries):
            if self.send_alert(content, embeds):
                return True

            if attempt < max_retries - 1:
                wait_time = 2 ** attempt
                logger.info(f"Retrying notification in {wait_time} seconds...")
                time.sleep(wait_time)

        logger.error(f"Failed to send notification after {max_retries} attempts")
        return False

    @staticmethod
    def _batches(embeds: List[discord.Embed]) -> List[List[discord.Embed]]:
        if not embeds:
            return [[]]
        return [
            embeds[i:i + MAX_EMBEDS_PER_MESSAGE]
            for i in range(0, len(embeds), MAX_EMBEDS_PER_MESSAGE)
        ]
