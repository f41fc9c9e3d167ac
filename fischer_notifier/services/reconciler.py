"""Reconciliation of fetched appointments against known ones"""
from dataclasses import replace
from typing import Any, Iterable, List, Sequence, Set

from ..storage.models import Appointment
from ..utils.logger import setup_logger
from ..utils.timezone import now_utc

logger = setup_logger(__name__)


def known_ids(known: Iterable[Any]) -> Set:
    """Collect the ids of known appointments (Appointment objects or dicts)"""
    ids = set()
    for item in known:
        if isinstance(item, Appointment):
            item_id = item.id
        elif isinstance(item, dict):
            item_id = item.get("id")
        else:
            continue
        if item_id is not None:
            ids.add(item_id)
    return ids


def diff(
    fetched: Sequence[Any],
    known: Any,
    stamp_date_added: bool = False
) -> List[Appointment]:
    """
    Find fetched appointments whose id is not known yet

    Appointments are matched on id only. Two slots with the same date,
    office and location but different ids are distinct appointments.

    Args:
        fetched: Appointments from the API, in API order
        known: Sequence of known appointments, or a store exposing
            existing_ids(ids)
        stamp_date_added: Set date_added to now on every result

    Returns:
        Copies of the new appointments with notified reset, in fetched order
    """
    if not isinstance(fetched, (list, tuple)) or not fetched:
        return []

    candidates = []
    for item in fetched:
        appointment = Appointment.coerce(item)
        if appointment is None:
            logger.warning(f"Skipping appointment without id: {item!r}")
            continue
        candidates.append(appointment)

    if not candidates:
        return []

    if hasattr(known, "existing_ids"):
        existing = known.existing_ids([a.id for a in candidates])
    elif isinstance(known, (list, tuple, set, frozenset)):
        existing = known_ids(known)
    else:
        logger.warning(f"Cannot compare appointments against {type(known).__name__}")
        return []

    date_added = now_utc() if stamp_date_added else None
    seen = set()
    new_appointments = []
    for appointment in candidates:
        if appointment.id in existing or appointment.id in seen:
            continue
        seen.add(appointment.id)
        copy = replace(appointment, notified=False, notified_at=None)
        if stamp_date_added:
            copy.date_added = date_added
        new_appointments.append(copy)

    return new_appointments
