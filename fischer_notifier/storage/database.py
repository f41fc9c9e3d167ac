"""SQLite storage for exam appointments"""
import shutil
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Set

from .models import Appointment, AppointmentId
from ..services.reconciler import diff
from ..utils.logger import setup_logger
from ..utils.timezone import now_utc, parse_termin

logger = setup_logger(__name__)

# Stay below the bound-parameter limit of older SQLite builds
ID_CHUNK_SIZE = 500


class Database:
    """
    SQLite store for appointments, keyed by the upstream appointment id

    Every operation opens its own connection, catches storage errors,
    logs them and reports failure through its return value.
    """

    def __init__(self, db_path: str = "data/appointments.db"):
        """Set the database location; nothing is touched until initialize()"""
        self.db_path = Path(db_path)

    def initialize(self) -> bool:
        """Create the data directory, table and indexes if they don't exist"""
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            with self._get_connection() as conn:
                cursor = conn.cursor()

                # id has no declared type so integer and text ids keep
                # their type and never compare equal to each other
                cursor.execute("""
                    CREATE TABLE IF NOT EXISTS appointments (
                        id PRIMARY KEY NOT NULL,
                        termin TEXT NOT NULL DEFAULT '',
                        exam_date TEXT,
                        pruefungsstelle TEXT,
                        pruefungsort TEXT,
                        landkreis TEXT,
                        url TEXT,
                        notified INTEGER NOT NULL DEFAULT 0,
                        notified_at TEXT,
                        date_added TEXT NOT NULL
                    )
                """)

                cursor.execute("""
                    CREATE INDEX IF NOT EXISTS idx_appointments_notified
                    ON appointments(notified)
                """)

                cursor.execute("""
                    CREATE INDEX IF NOT EXISTS idx_appointments_exam_date
                    ON appointments(exam_date)
                """)

                conn.commit()

            logger.info(f"Appointments collection initialized at {self.db_path}")
            return True

        except (sqlite3.Error, OSError) as e:
            logger.error(f"Error initializing appointments collection: {e}")
            return False

    @contextmanager
    def _get_connection(self):
        """Get database connection with context manager"""
        conn = sqlite3.connect(str(self.db_path))
        conn.row_factory = sqlite3.Row
        try:
            yield conn
        finally:
            conn.close()

    def load_all(self) -> List[Appointment]:
        """
        Load every stored appointment

        An empty result can also mean the store was unreadable, so callers
        must not treat it as proof that nothing is stored.
        """
        try:
            with self._get_connection() as conn:
                cursor = conn.cursor()
                cursor.execute("SELECT * FROM appointments ORDER BY rowid")
                appointments = [self._row_to_appointment(row) for row in cursor.fetchall()]
            logger.info(f"Loaded {len(appointments)} appointments from database")
            return appointments
        except (sqlite3.Error, ValueError) as e:
            logger.error(f"Error loading appointments: {e}")
            return []

    def get_appointment(self, appointment_id: AppointmentId) -> Optional[Appointment]:
        """Get an appointment by ID"""
        try:
            with self._get_connection() as conn:
                cursor = conn.cursor()
                cursor.execute("SELECT * FROM appointments WHERE id = ?", (appointment_id,))
                row = cursor.fetchone()
                if row:
                    return self._row_to_appointment(row)
                return None
        except (sqlite3.Error, ValueError) as e:
            logger.error(f"Error loading appointment {appointment_id}: {e}")
            return None

    def count(self) -> int:
        """Number of stored appointments (0 when unreadable)"""
        try:
            with self._get_connection() as conn:
                cursor = conn.cursor()
                cursor.execute("SELECT COUNT(*) FROM appointments")
                return cursor.fetchone()[0]
        except sqlite3.Error as e:
            logger.error(f"Error counting appointments: {e}")
            return 0

    def upsert_many(self, records: Any) -> bool:
        """
        Insert or fully replace appointments by id

        An existing record is overwritten as a whole, fields are not merged.
        A record without date_added keeps the stored one, or gets the
        current time when it is inserted.

        Args:
            records: List of Appointment objects (or dicts with an id)

        Returns:
            True if every record was written. Failed records are logged and
            skipped without aborting the rest of the batch.
        """
        if not isinstance(records, (list, tuple)) or not records:
            logger.warning("No valid appointments to save")
            return False

        saved = 0
        failed = 0
        now = now_utc()

        try:
            with self._get_connection() as conn:
                for record in records:
                    appointment = Appointment.coerce(record)
                    if appointment is None:
                        logger.warning(f"Skipping invalid appointment record: {record!r}")
                        failed += 1
                        continue

                    try:
                        params = self._appointment_to_params(appointment, now)
                        conn.execute("""
                            INSERT INTO appointments (
                                id, termin, exam_date, pruefungsstelle, pruefungsort,
                                landkreis, url, notified, notified_at, date_added
                            )
                            VALUES (
                                :id, :termin, :exam_date, :pruefungsstelle, :pruefungsort,
                                :landkreis, :url, :notified, :notified_at,
                                COALESCE(:date_added, :now)
                            )
                            ON CONFLICT(id) DO UPDATE SET
                                termin = excluded.termin,
                                exam_date = excluded.exam_date,
                                pruefungsstelle = excluded.pruefungsstelle,
                                pruefungsort = excluded.pruefungsort,
                                landkreis = excluded.landkreis,
                                url = excluded.url,
                                notified = excluded.notified,
                                notified_at = excluded.notified_at,
                                date_added = COALESCE(:date_added, appointments.date_added)
                        """, params)
                        conn.commit()
                        saved += 1
                    except (sqlite3.Error, AttributeError, TypeError, ValueError) as e:
                        logger.error(f"Error saving appointment {appointment.id}: {e}")
                        failed += 1
        except sqlite3.Error as e:
            logger.error(f"Error saving appointments: {e}")
            return False

        logger.info(f"Saved {saved} appointments to database")
        if failed:
            logger.warning(f"{failed} appointment(s) could not be saved")
        return failed == 0

    def existing_ids(self, ids: Iterable[AppointmentId]) -> Set[AppointmentId]:
        """
        Return which of the given ids are stored

        Raises:
            sqlite3.Error: if the store cannot be read
        """
        ids = list(ids)
        found: Set[AppointmentId] = set()
        with self._get_connection() as conn:
            cursor = conn.cursor()
            for start in range(0, len(ids), ID_CHUNK_SIZE):
                chunk = ids[start:start + ID_CHUNK_SIZE]
                placeholders = ",".join("?" for _ in chunk)
                cursor.execute(
                    f"SELECT id FROM appointments WHERE id IN ({placeholders})",
                    chunk
                )
                found.update(row["id"] for row in cursor.fetchall())
        return found

    def find_new_candidates(self, candidates: Any) -> List[Appointment]:
        """
        Find fetched appointments that are not stored yet

        Does not write anything. Every returned appointment has
        notified=False and date_added set to now.
        """
        if not isinstance(candidates, (list, tuple)) or not candidates:
            logger.info("No valid appointments to check")
            return []

        try:
            new_appointments = diff(candidates, self, stamp_date_added=True)
        except sqlite3.Error as e:
            logger.error(f"Error finding new appointments: {e}")
            return []

        logger.info(f"Found {len(new_appointments)} new appointments")
        return new_appointments

    def mark_notified(self, appointment_id: AppointmentId) -> bool:
        """
        Mark an appointment as notified

        The first notified_at is kept when an appointment is marked again.

        Returns:
            False if no appointment has this id or the update failed
        """
        try:
            with self._get_connection() as conn:
                cursor = conn.cursor()
                cursor.execute("""
                    UPDATE appointments
                    SET notified = 1, notified_at = COALESCE(notified_at, ?)
                    WHERE id = ?
                """, (now_utc().isoformat(), appointment_id))
                conn.commit()
                updated = cursor.rowcount
        except sqlite3.Error as e:
            logger.error(f"Error marking appointment {appointment_id} as notified: {e}")
            return False

        if updated == 0:
            logger.warning(f"Appointment with ID {appointment_id} not found")
            return False

        logger.info(f"Marked appointment {appointment_id} as notified")
        return True

    def query_notified(self) -> List[Appointment]:
        """Get all appointments that have been notified"""
        try:
            with self._get_connection() as conn:
                cursor = conn.cursor()
                cursor.execute("SELECT * FROM appointments WHERE notified = 1 ORDER BY rowid")
                return [self._row_to_appointment(row) for row in cursor.fetchall()]
        except (sqlite3.Error, ValueError) as e:
            logger.error(f"Error getting notified appointments: {e}")
            return []

    def most_recent_by_exam_date(self, limit: int = 2) -> List[Appointment]:
        """
        Get the appointments with the latest exam dates, latest first

        Ordering uses the calendar date of termin. Appointments with an
        unparseable termin sort last; equal dates keep insertion order.
        """
        if isinstance(limit, bool) or not isinstance(limit, int) or limit < 0:
            logger.warning(f"Invalid limit for recent appointments: {limit!r}")
            return []
        if limit == 0:
            return []

        try:
            with self._get_connection() as conn:
                cursor = conn.cursor()
                cursor.execute("""
                    SELECT * FROM appointments
                    ORDER BY exam_date IS NULL, exam_date DESC, rowid ASC
                    LIMIT ?
                """, (limit,))
                appointments = [self._row_to_appointment(row) for row in cursor.fetchall()]
        except (sqlite3.Error, ValueError) as e:
            logger.error(f"Error getting recent appointments: {e}")
            return []

        for appointment in appointments:
            if parse_termin(appointment.termin) is None:
                logger.warning(
                    f"Appointment {appointment.id} has malformed termin "
                    f"{appointment.termin!r}, sorted as earliest"
                )
        return appointments

    def prune_older_than(self, days: int) -> int:
        """
        Remove appointments added more than the given number of days ago

        Returns:
            Number of removed appointments
        """
        if isinstance(days, bool) or not isinstance(days, int) or days < 0:
            logger.warning(f"Invalid retention window for pruning: {days!r}")
            return 0

        cutoff = now_utc() - timedelta(days=days)
        try:
            with self._get_connection() as conn:
                cursor = conn.cursor()
                cursor.execute("""
                    DELETE FROM appointments
                    WHERE date_added < ?
                """, (cutoff.isoformat(),))
                conn.commit()
                removed = cursor.rowcount
        except sqlite3.Error as e:
            logger.error(f"Error pruning appointments: {e}")
            return 0

        logger.info(f"Pruned {removed} appointments added before {cutoff:%Y-%m-%d}")
        return removed

    def flush(self, backup: bool = True) -> Optional[int]:
        """
        Remove every appointment and compact the database file

        Args:
            backup: Copy the database file next to it before flushing

        Returns:
            Number of removed appointments, or None if the flush failed
        """
        try:
            if backup and self.db_path.exists():
                backup_path = self.db_path.with_name(
                    f"{self.db_path.name}.backup-{now_utc():%Y%m%d%H%M%S}"
                )
                shutil.copy2(self.db_path, backup_path)
                logger.info(f"Created backup at {backup_path}")

            with self._get_connection() as conn:
                cursor = conn.cursor()
                cursor.execute("DELETE FROM appointments")
                removed = cursor.rowcount
                conn.commit()
                conn.execute("VACUUM")
        except (sqlite3.Error, OSError) as e:
            logger.error(f"Error flushing database: {e}")
            return None

        logger.info(f"Removed {removed} appointments from database")
        return removed

    def _appointment_to_params(self, appointment: Appointment, now: datetime) -> Dict[str, Any]:
        """Convert an Appointment to named SQL parameters"""
        exam_date = parse_termin(appointment.termin)
        if exam_date is None:
            logger.warning(
                f"Appointment {appointment.id} has malformed termin {appointment.termin!r}"
            )

        notified_at = None
        if appointment.notified:
            notified_at = (appointment.notified_at or now).isoformat()

        return {
            "id": appointment.id,
            "termin": appointment.termin or "",
            "exam_date": exam_date.isoformat() if exam_date else None,
            "pruefungsstelle": appointment.pruefungsstelle,
            "pruefungsort": appointment.pruefungsort,
            "landkreis": appointment.landkreis,
            "url": appointment.url,
            "notified": 1 if appointment.notified else 0,
            "notified_at": notified_at,
            "date_added": appointment.date_added.isoformat() if appointment.date_added else None,
            "now": now.isoformat(),
        }

    def _row_to_appointment(self, row: sqlite3.Row) -> Appointment:
        """Convert database row to Appointment object"""
        return Appointment(
            id=row['id'],
            termin=row['termin'],
            pruefungsstelle=row['pruefungsstelle'] or "",
            pruefungsort=row['pruefungsort'] or "",
            landkreis=row['landkreis'] or "",
            url=row['url'] or "",
            notified=bool(row['notified']),
            notified_at=datetime.fromisoformat(row['notified_at']) if row['notified_at'] else None,
            date_added=datetime.fromisoformat(row['date_added']) if row['date_added'] else None
        )
