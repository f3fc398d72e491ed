"""Medication inventory repository."""

from clinic_ledger.database import Row, parse_int
from clinic_ledger.models.medications import medications
from clinic_ledger.repositories.base import Repository
from clinic_ledger.schemas.medications import Medication, medication_key


class MedicationRepository(Repository[str, Medication]):
    """Medication rows keyed by case-folded name."""

    schema = medications

    def _from_row(self, row: Row) -> Medication:
        return Medication(
            name=row[0],
            current_stock=parse_int(row[1], "current_stock"),
            low_stock_threshold=parse_int(row[2], "low_stock_threshold"),
            pending_replenish_amount=parse_int(row[3] or "0", "pending_replenish_amount"),
        )

    def _to_row(self, record: Medication) -> Row:
        return [
            record.name,
            str(record.current_stock),
            str(record.low_stock_threshold),
            str(record.pending_replenish_amount),
        ]

    def _key(self, record: Medication) -> str:
        return record.key

    def find(self, name: str) -> Medication | None:
        """Look a medication up by name, ignoring case."""
        return self.get(medication_key(name))
