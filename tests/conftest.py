"""
Pytest fixtures for the appointment notifier tests.
"""

import pytest

from fischer_notifier.storage.database import Database
from fischer_notifier.storage.models import Appointment


@pytest.fixture
def database(tmp_path):
    """Initialized database in a temporary directory."""
    db = Database(db_path=str(tmp_path / "data" / "appointments.db"))
    assert db.initialize()
    return db


@pytest.fixture
def make_appointment():
    """Factory for appointments with sensible defaults."""
    def _make(appointment_id, termin="15.06.2023", **kwargs):
        fields = dict(
            pruefungsstelle="Fischereiverband Musterland",
            pruefungsort="Musterstadt",
            landkreis="Landkreis Muster",
            url=f"https://example.com/termine/{appointment_id}",
        )
        fields.update(kwargs)
        return Appointment(id=appointment_id, termin=termin, **fields)

    return _make


@pytest.fixture
def sample_appointments(make_appointment):
    """Three appointments with exam dates out of order."""
    return [
        make_appointment(1, "01.01.2023"),
        make_appointment(2, "15.06.2023"),
        make_appointment(3, "03.03.2022"),
    ]


def _exam_item(item_id, date, exam_type_id=1, office="Fischereiverband Musterland",
               area="Musterstadt", district="Landkreis Muster"):
    return {
        "id": item_id,
        "date": date,
        "examType": {"id": exam_type_id, "name": "Fischerprüfung"},
        "examinationOffice": {"name": office},
        "contactInfo": {"area": {"name": area, "districtName": district}},
    }


@pytest.fixture
def raw_exam_items():
    """Raw API items as returned in the 'data' field."""
    return [
        _exam_item(101, "2023-06-14T22:30:00.000Z"),
        _exam_item(102, "2023-07-01T08:00:00.000Z", area="Seedorf", district="Landkreis See"),
        _exam_item(201, "2023-07-02T08:00:00.000Z", exam_type_id=2),
    ]
