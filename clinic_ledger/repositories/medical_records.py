"""Medical records repository."""

from clinic_ledger.database import Row, parse_int, parse_optional_int
from clinic_ledger.models.medical_records import medical_records
from clinic_ledger.repositories.base import Repository
from clinic_ledger.schemas.medical_records import MedicalRecord, RecordStatus


class MedicalRecordRepository(Repository[int, MedicalRecord]):
    """Medical record rows keyed by id."""

    schema = medical_records

    def _from_row(self, row: Row) -> MedicalRecord:
        return MedicalRecord(
            patient_id=row[0].strip(),
            diagnosis=row[1],
            treatment=row[2],
            prescription=row[3].strip(),
            quantity=parse_int(row[4], "quantity"),
            status=RecordStatus(row[5].strip().upper()),
            id=parse_int(row[6], "id"),
            appointment_id=parse_optional_int(row[7], "appointment_id"),
        )

    def _to_row(self, record: MedicalRecord) -> Row:
        row = [
            record.patient_id,
            record.diagnosis,
            record.treatment,
            record.prescription,
            str(record.quantity),
            record.status.value,
            str(record.id),
        ]
        if record.appointment_id is not None:
            row.append(str(record.appointment_id))
        return row

    def _key(self, record: MedicalRecord) -> int:
        return record.id

    def _numeric_id(self, record: MedicalRecord) -> int | None:
        return record.id
