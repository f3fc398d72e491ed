"""Appointments repository."""

from clinic_ledger.core.datetimes import format_date_time, parse_date_time
from clinic_ledger.database import Row, parse_int
from clinic_ledger.models.appointments import appointments
from clinic_ledger.repositories.base import Repository
from clinic_ledger.schemas.appointments import Appointment, AppointmentStatus


class AppointmentRepository(Repository[int, Appointment]):
    """Appointment rows keyed by id."""

    schema = appointments

    def _from_row(self, row: Row) -> Appointment:
        return Appointment(
            id=parse_int(row[0], "id"),
            doctor_id=row[1].strip(),
            patient_id=row[2].strip(),
            date_time=parse_date_time(row[3]),
            status=AppointmentStatus(row[4].strip().upper()),
        )

    def _to_row(self, record: Appointment) -> Row:
        return [
            str(record.id),
            record.doctor_id,
            record.patient_id,
            format_date_time(record.date_time),
            record.status.value,
        ]

    def _key(self, record: Appointment) -> int:
        return record.id

    def _numeric_id(self, record: Appointment) -> int | None:
        return record.id
