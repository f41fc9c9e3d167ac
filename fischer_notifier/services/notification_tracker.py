"""Tracking of which appointments have been notified"""
from datetime import datetime
from typing import Iterable, List

from ..storage.database import Database
from ..storage.models import Appointment
from ..utils.logger import setup_logger

logger = setup_logger(__name__)


class NotificationTracker:
    """Marks appointments as notified once a notification was dispatched"""

    def __init__(self, database: Database):
        self.database = database

    def mark_all(self, appointments: Iterable[Appointment]) -> int:
        """
        Mark every appointment as notified

        "Notified" means a notification attempt was made, so this runs
        whether or not the message was delivered. A failure for one
        appointment does not stop the others.

        Returns:
            Number of appointments marked
        """
        marked = 0
        for appointment in appointments:
            if self.database.mark_notified(appointment.id):
                marked += 1
            else:
                logger.warning(f"Could not mark appointment {appointment.id} as notified")
        return marked


def most_recently_notified(appointments: Iterable[Appointment], limit: int = 2) -> List[Appointment]:
    """Notified appointments ordered by notified_at, latest first"""
    notified = [a for a in appointments if a.notified]
    notified.sort(key=lambda a: a.notified_at or datetime.min, reverse=True)
    return notified[:max(limit, 0)]
