"""
Tests for Discord embeds and the webhook client.
"""

from unittest.mock import MagicMock, patch

import discord
import pytest
import requests

from fischer_notifier.services.discord_client import DiscordClient
from fischer_notifier.services.embeds import (
    FOOTER_TEXT,
    EmbedColor,
    create_appointment_embed,
    create_status_embed,
)
from fischer_notifier.storage.models import Appointment

WEBHOOK_URL = "https://discord.com/api/webhooks/123/token"


class TestEmbeds:
    """Tests for embed builders."""

    def test_new_appointment_embed(self, make_appointment):
        """New appointments get the NEU title and red colour."""
        embed = create_appointment_embed(make_appointment(1, "15.06.2023"), is_new=True)

        assert embed.title == "🆕 Fischerprüfungstermin (NEU)"
        assert embed.colour.value == EmbedColor.ERROR.value
        assert embed.url == "https://example.com/termine/1"
        assert [f.value for f in embed.fields] == [
            "15.06.2023",
            "Fischereiverband Musterland",
            "Musterstadt (Landkreis Muster)",
        ]
        assert all(f.inline for f in embed.fields)
        assert embed.footer.text == FOOTER_TEXT
        assert embed.timestamp is not None

    def test_known_appointment_uses_given_colour(self, make_appointment):
        """Known appointments use the requested colour."""
        embed = create_appointment_embed(make_appointment(1), color=EmbedColor.INFO)

        assert embed.title == "🎣 Fischerprüfungstermin"
        assert embed.colour.value == EmbedColor.INFO.value

    def test_missing_values_get_placeholders(self):
        """Empty fields are shown with German placeholders."""
        embed = create_appointment_embed(Appointment(id=1))

        assert [f.value for f in embed.fields] == [
            "Kein Datum angegeben",
            "Keine Angabe",
            "Keine Ortsangabe",
        ]
        assert embed.url is None

    def test_status_embed(self):
        """Status embeds carry title, description and colour."""
        embed = create_status_embed("Fehler", "```boom```", EmbedColor.ERROR)

        assert embed.title == "Fehler"
        assert embed.description == "```boom```"
        assert embed.colour.value == EmbedColor.ERROR.value

    @pytest.mark.parametrize("color, expected", [
        (EmbedColor.SUCCESS, 0x2ECC71),
        ("warning", 0xF1C40F),
        ("unknown", EmbedColor.DEFAULT.value),
        (0x123456, 0x123456),
    ])
    def test_color_resolution(self, color, expected):
        """Colours resolve from enum members, names or raw ints."""
        assert EmbedColor.resolve(color) == expected


@pytest.fixture
def mock_webhook():
    with patch("fischer_notifier.services.discord_client.discord.SyncWebhook.from_url") as from_url:
        webhook = MagicMock()
        from_url.return_value = webhook
        yield from_url, webhook


class TestDiscordClient:
    """Tests for DiscordClient."""

    def test_missing_url_sends_nothing(self, mock_webhook):
        """Without a webhook URL the alert is skipped."""
        from_url, _ = mock_webhook

        assert DiscordClient(None).send_alert("hello") is False
        from_url.assert_not_called()

    def test_sends_content_and_embeds(self, mock_webhook):
        """Text and embeds go out in one message."""
        from_url, webhook = mock_webhook
        embeds = [discord.Embed(title="a")]

        assert DiscordClient(WEBHOOK_URL, username="Crawler").send_alert("hello", embeds) is True

        from_url.assert_called_once_with(WEBHOOK_URL)
        webhook.send.assert_called_once_with(
            wait=True, content="hello", embeds=embeds, username="Crawler"
        )

    def test_splits_more_than_ten_embeds(self, mock_webhook):
        """Embeds are sent in batches of ten, text only with the first."""
        _, webhook = mock_webhook
        embeds = [discord.Embed(title=str(i)) for i in range(12)]

        assert DiscordClient(WEBHOOK_URL).send_alert("hello", embeds) is True

        first, second = webhook.send.call_args_list
        assert first.kwargs["content"] == "hello"
        assert len(first.kwargs["embeds"]) == 10
        assert "content" not in second.kwargs
        assert len(second.kwargs["embeds"]) == 2

    def test_network_error_returns_false(self, mock_webhook):
        """Transport errors are reported as failure."""
        _, webhook = mock_webhook
        webhook.send.side_effect = requests.ConnectionError("down")

        assert DiscordClient(WEBHOOK_URL).send_alert("hello") is False

    def test_invalid_url_returns_false(self, mock_webhook):
        """A malformed webhook URL is reported as failure."""
        from_url, _ = mock_webhook
        from_url.side_effect = ValueError("Invalid webhook URL given.")

        assert DiscordClient("not a webhook").send_alert("hello") is False

    def test_send_with_retry_backs_off(self):
        """Failed sends are retried with exponential delays."""
        client = DiscordClient(WEBHOOK_URL)
        with patch.object(client, "send_alert", side_effect=[False, False, True]) as send, \
                patch("fischer_notifier.services.discord_client.time.sleep") as sleep:
            assert client.send_with_retry("hello", max_retries=3) is True

        assert send.call_count == 3
        assert [c.args[0] for c in sleep.call_args_list] == [1, 2]

    def test_send_with_retry_gives_up(self):
        """After max_retries failed attempts the result is False."""
        client = DiscordClient(WEBHOOK_URL)
        with patch.object(client, "send_alert", return_value=False) as send, \
                patch("fischer_notifier.services.discord_client.time.sleep"):
            assert client.send_with_retry("hello", max_retries=2) is False

        assert send.call_count == 2
