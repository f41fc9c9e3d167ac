"""Test script for Discord webhook notifications"""
import argparse
import sys
import time

from .config import Config
from .storage.models import Appointment
from .services.discord_client import DiscordClient
from .services.embeds import create_appointment_embed
from .utils.logger import setup_logger

logger = setup_logger(__name__)


def create_test_appointment(appointment_id: int = 12345) -> Appointment:
    """
    Create a sample appointment for embed testing

    Args:
        appointment_id: Id of the sample appointment

    Returns:
        Appointment object
    """
    return Appointment(
        id=appointment_id,
        termin="01.06.2023",
        pruefungsstelle="Testprüfstelle",
        pruefungsort="Musterstadt",
        landkreis="Landkreis Test",
        url=f"https://example.com/{appointment_id}"
    )


def send_text_message(client: DiscordClient) -> bool:
    """Send a plain text test message"""
    logger.info("Test 1: sending a plain text message...")
    result = client.send_alert("📊 **Test-Nachricht** vom Fischerprüfungs-Crawler")
    logger.info(f"Test 1 result: {'success' if result else 'failed'}")
    return result


def send_sample_embed(client: DiscordClient) -> bool:
    """Send a message with a sample appointment embed"""
    logger.info("Test 2: sending an embed with a sample appointment...")
    embed = create_appointment_embed(create_test_appointment(), is_new=True)
    logger.debug(f"Test embed: {embed.to_dict()}")
    result = client.send_alert("🧪 Test eines Embed-Formats", [embed])
    logger.info(f"Test 2 result: {'success' if result else 'failed'}")
    return result


def main():
    """Main entry point"""
    parser = argparse.ArgumentParser(
        description="Test Discord webhook notifications for Fischerprüfung appointments"
    )
    parser.add_argument(
        "--embed-only",
        action="store_true",
        help="Only send the sample appointment embed"
    )
    parser.add_argument(
        "--text-only",
        action="store_true",
        help="Only send the plain text message"
    )

    args = parser.parse_args()

    # Load configuration
    try:
        config = Config()
    except ValueError as e:
        logger.error(f"Configuration error: {e}")
        sys.exit(1)

    logger.info(f"DISCORD_WEBHOOK_URL defined: {bool(config.discord_webhook_url)}")
    client = DiscordClient(config.discord_webhook_url, username=config.discord_username)

    success = True
    if not args.embed_only:
        success = send_text_message(client) and success
    if not args.embed_only and not args.text_only:
        # Pause to avoid rate limits
        time.sleep(2)
    if not args.text_only:
        success = send_sample_embed(client) and success

    if success:
        logger.info("✓ Test notifications sent successfully!")
    else:
        logger.error("✗ Failed to send test notifications")
        sys.exit(1)


if __name__ == "__main__":
    main()
