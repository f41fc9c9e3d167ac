"""Data model for exam appointments"""
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional, Union
import pytz

AppointmentId = Union[int, str]


def _parse_timestamp(value: Any) -> Optional[datetime]:
    """Read a stored timestamp (datetime or ISO string)"""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    text = str(value)
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(pytz.UTC).replace(tzinfo=None)
    return parsed


@dataclass
class Appointment:
    """Represents one Fischerprüfung exam slot"""
    id: AppointmentId
    termin: str = ""
    pruefungsstelle: str = ""
    pruefungsort: str = ""
    landkreis: str = ""
    url: str = ""
    notified: bool = False
    notified_at: Optional[datetime] = None  # naive UTC
    date_added: Optional[datetime] = None  # naive UTC

    def __hash__(self):
        return hash(self.id)

    def __eq__(self, other):
        if not isinstance(other, Appointment):
            return False
        return self.id == other.id

    def to_dict(self, legacy_keys: bool = False) -> Dict[str, Any]:
        """
        Serialize to a JSON-friendly dict

        Args:
            legacy_keys: Use the camelCase keys of the legacy JSON data file
        """
        notified_key, added_key = (
            ("notifiedAt", "dateAdded") if legacy_keys else ("notified_at", "date_added")
        )
        return {
            "id": self.id,
            "termin": self.termin,
            "pruefungsstelle": self.pruefungsstelle,
            "pruefungsort": self.pruefungsort,
            "landkreis": self.landkreis,
            "url": self.url,
            "notified": self.notified,
            notified_key: self.notified_at.isoformat() if self.notified_at else None,
            added_key: self.date_added.isoformat() if self.date_added else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Appointment":
        """
        Build an appointment from a dict with snake_case or camelCase keys

        Raises:
            ValueError: if the id is missing or a timestamp is malformed
        """
        if data.get("id") is None:
            raise ValueError("Appointment is missing an id")
        return cls(
            id=data["id"],
            termin=data.get("termin") or "",
            pruefungsstelle=data.get("pruefungsstelle") or "",
            pruefungsort=data.get("pruefungsort") or "",
            landkreis=data.get("landkreis") or "",
            url=data.get("url") or "",
            notified=bool(data.get("notified", False)),
            notified_at=_parse_timestamp(data.get("notified_at", data.get("notifiedAt"))),
            date_added=_parse_timestamp(data.get("date_added", data.get("dateAdded"))),
        )

    @classmethod
    def coerce(cls, value: Any) -> Optional["Appointment"]:
        """Return value as an Appointment, or None if it has no usable shape"""
        if isinstance(value, Appointment):
            return value if value.id is not None else None
        if isinstance(value, dict):
            try:
                return cls.from_dict(value)
            except (TypeError, ValueError):
                return None
        return None
