"""Staff and patient table definitions."""

from clinic_ledger.database import TableSchema

# doctor_id is blank for non-doctors; role is absent in legacy files
staff = TableSchema(
    "staff",
    columns=(
        "hospital_id",
        "gender",
        "age",
        "doctor_id",
        "role",
    ),
)

patients = TableSchema(
    "patients",
    columns=(
        "hospital_id",
        "patient_id",
        "name",
        "gender",
        "date_of_birth",
        "blood_type",
        "email",
        "contact_no",
    ),
)
