"""
Tests for the check cycle and notification tracking.
"""

from datetime import datetime
from unittest.mock import MagicMock

import pytest

from fischer_notifier.services.discord_client import DiscordClient
from fischer_notifier.services.exam_client import ExamApiClient
from fischer_notifier.services.notification_service import NotificationService
from fischer_notifier.services.notification_tracker import (
    NotificationTracker,
    most_recently_notified,
)
from fischer_notifier.storage.models import Appointment


@pytest.fixture
def api_client(raw_exam_items):
    client = ExamApiClient(
        "https://api.example.com/exams",
        exam_type_id=1,
        link_url="https://termine.example.com/"
    )
    client.fetch_exam_data = MagicMock(return_value=raw_exam_items)
    return client


@pytest.fixture
def discord_client():
    client = MagicMock(spec=DiscordClient)
    client.send_with_retry.return_value = True
    client.send_alert.return_value = True
    return client


@pytest.fixture
def service(database, api_client, discord_client):
    return NotificationService(database, api_client, discord_client)


class TestRunCycle:
    """Tests for NotificationService.run_cycle."""

    def test_new_appointments_are_sent_saved_and_marked(self, service, database, discord_client):
        """A first run reports, stores and marks every new appointment."""
        new = service.run_cycle()

        assert [a.id for a in new] == [101, 102]
        content, embeds = discord_client.send_with_retry.call_args.args
        assert "2 neue Termine gefunden" in content
        assert len(embeds) == 2
        assert all("(NEU)" in e.title for e in embeds)

        stored = database.load_all()
        assert [a.id for a in stored] == [101, 102]
        assert all(a.notified and a.notified_at for a in stored)
        assert stored[0].url == "https://termine.example.com/101"

    def test_second_run_reports_status_without_duplicates(self, service, database, discord_client):
        """A repeated run finds nothing new and shows recent appointments."""
        service.run_cycle()
        discord_client.send_with_retry.reset_mock()

        assert service.run_cycle() == []

        content, embeds = discord_client.send_with_retry.call_args.args
        assert "Keine neuen Termine gefunden" in content
        assert "Aktuelle Termine zur Information" in content
        assert "Letzte gemeldete Termine" in content
        assert len(embeds) == 4
        assert database.count() == 2

    def test_status_lists_latest_exam_first(self, service, database, discord_client):
        """The information section starts with the latest exam date."""
        service.run_cycle()
        service.run_cycle()

        _, embeds = discord_client.send_with_retry.call_args.args
        assert embeds[0].fields[0].value == "01.07.2023"
        assert embeds[1].fields[0].value == "15.06.2023"

    def test_fetch_failure_aborts_without_changes(self, service, database, api_client, discord_client):
        """Without data the cycle stops before touching the store."""
        api_client.fetch_exam_data.return_value = None

        assert service.run_cycle() is None
        assert database.count() == 0
        discord_client.send_with_retry.assert_not_called()

    def test_failed_dispatch_still_marks_notified(self, service, database, discord_client):
        """Notified means a dispatch was attempted."""
        discord_client.send_with_retry.return_value = False

        service.run_cycle()

        assert [a.id for a in database.query_notified()] == [101, 102]

    def test_unexpected_error_is_reported(self, service, database, api_client, discord_client):
        """Errors end the cycle with an error message instead of raising."""
        api_client.parse_appointments = MagicMock(side_effect=RuntimeError("kaputt"))

        assert service.run_cycle() is None

        content, embeds = discord_client.send_alert.call_args.args
        assert content == "🚨 Fehler aufgetreten"
        assert "kaputt" in embeds[0].description
        assert database.count() == 0

    def test_failing_error_alert_does_not_raise(self, service, api_client, discord_client):
        """A broken error notification still ends the cycle quietly."""
        api_client.parse_appointments = MagicMock(side_effect=RuntimeError("kaputt"))
        discord_client.send_alert.side_effect = RuntimeError("webhook weg")

        assert service.run_cycle() is None
        discord_client.send_alert.assert_called_once()

    def test_run_maintenance_prunes(self, service, database, make_appointment):
        """Maintenance removes appointments outside the retention window."""
        database.upsert_many([make_appointment(1, date_added=datetime(2000, 1, 1))])

        assert service.run_maintenance(90) == 1
        assert database.count() == 0


class TestNotificationTracker:
    """Tests for NotificationTracker."""

    def test_mark_all_continues_after_failure(self, database, make_appointment):
        """A missing appointment does not stop the batch."""
        database.upsert_many([make_appointment(1), make_appointment(3)])
        tracker = NotificationTracker(database)

        marked = tracker.mark_all([make_appointment(1), make_appointment(2), make_appointment(3)])

        assert marked == 2
        assert [a.id for a in database.query_notified()] == [1, 3]


def test_most_recently_notified_orders_by_timestamp():
    """Latest notification first, unnotified ones ignored."""
    appointments = [
        Appointment(id=1, notified=True, notified_at=datetime(2024, 1, 1)),
        Appointment(id=2, notified=True, notified_at=datetime(2024, 3, 1)),
        Appointment(id=3, notified=False),
        Appointment(id=4, notified=True, notified_at=datetime(2024, 2, 1)),
    ]

    assert [a.id for a in most_recently_notified(appointments, 2)] == [2, 4]
