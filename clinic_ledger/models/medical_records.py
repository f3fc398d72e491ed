"""Medical records table definition."""

from clinic_ledger.database import TableSchema

# appointment_id is blank for records added outside an appointment
medical_records = TableSchema(
    "medical_records",
    columns=(
        "patient_id",
        "diagnosis",
        "treatment",
        "prescription",
        "quantity",
        "status",
        "id",
        "appointment_id",
    ),
)
