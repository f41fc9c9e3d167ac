"""
Tests for the appointment model and maintenance commands.
"""

import json
from datetime import datetime

from fischer_notifier.maintenance import migrate_json, prune, stats
from fischer_notifier.storage.models import Appointment


class TestAppointmentModel:
    """Tests for Appointment serialization."""

    def test_from_dict_reads_legacy_keys(self):
        """camelCase timestamps from the JSON data file are understood."""
        appointment = Appointment.from_dict({
            "id": 12,
            "termin": "01.06.2023",
            "notified": True,
            "notifiedAt": "2023-05-01T08:00:00.000Z",
            "dateAdded": "2023-04-30T08:00:00",
        })

        assert appointment.notified is True
        assert appointment.notified_at == datetime(2023, 5, 1, 8, 0)
        assert appointment.date_added == datetime(2023, 4, 30, 8, 0)

    def test_to_dict_legacy_keys(self):
        data = Appointment(id=1, date_added=datetime(2023, 1, 1)).to_dict(legacy_keys=True)

        assert data["dateAdded"] == "2023-01-01T00:00:00"
        assert data["notifiedAt"] is None

    def test_coerce(self):
        """Only shapes with an id become appointments."""
        assert Appointment.coerce({"id": 3}).id == 3
        assert Appointment.coerce({"termin": "01.01.2023"}) is None
        assert Appointment.coerce({"id": 3, "dateAdded": "gestern"}) is None
        assert Appointment.coerce(["id", 3]) is None

    def test_equality_by_id(self):
        assert Appointment(id=1, termin="a") == Appointment(id=1, termin="b")
        assert Appointment(id=1) != Appointment(id="1")


class TestMigrateJson:
    """Tests for importing the legacy JSON data file."""

    def test_imports_and_keeps_backup(self, database, tmp_path):
        """Legacy entries are stored with their notified state."""
        json_path = tmp_path / "known-appointments.json"
        json_path.write_text(json.dumps([
            {"id": 1, "termin": "01.06.2023", "notified": True},
            {"id": 2, "termin": "02.06.2023", "notified": False},
            {"termin": "03.06.2023"},
        ]), encoding="utf-8")

        assert migrate_json(database, json_path) == 2

        assert [a.id for a in database.query_notified()] == [1]
        assert database.count() == 2
        assert (tmp_path / "known-appointments.json.bak").exists()
        assert json_path.exists()

    def test_missing_file(self, database, tmp_path):
        assert migrate_json(database, tmp_path / "missing.json") == 0

    def test_not_a_list(self, database, tmp_path):
        json_path = tmp_path / "known-appointments.json"
        json_path.write_text('{"id": 1}', encoding="utf-8")

        assert migrate_json(database, json_path) == 0
        assert database.count() == 0


def test_prune_and_stats(database, make_appointment):
    """Prune removes old entries and stats summarize the rest."""
    database.upsert_many([
        make_appointment(1, "01.01.2023", date_added=datetime(2000, 1, 1)),
        make_appointment(2, "15.06.2023"),
        make_appointment(3, "03.03.2022", notified=True),
    ])

    assert prune(database, 90) == 1
    assert stats(database) == {
        "total": 2,
        "notified": 1,
        "pending": 1,
        "latest_termin": "15.06.2023",
    }
