"""Table definitions."""

from clinic_ledger.models.appointments import appointments
from clinic_ledger.models.medical_records import medical_records
from clinic_ledger.models.medications import medications
from clinic_ledger.models.people import patients, staff

__all__ = [
    "appointments",
    "medical_records",
    "medications",
    "patients",
    "staff",
]
