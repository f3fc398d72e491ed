"""Appointments table definition."""

from clinic_ledger.database import TableSchema

# One row per slot; patient_id holds the FREE sentinel until a booking
appointments = TableSchema(
    "appointments",
    columns=(
        "id",
        "doctor_id",
        "patient_id",
        "date_time",
        "status",
    ),
)
