"""Script to initialize the ledger tables."""

import argparse
from datetime import date, time, timedelta

from clinic_ledger.config import Settings, get_settings
from clinic_ledger.core.logging import configure_logging
from clinic_ledger.dependencies import build_services
from clinic_ledger.schemas.medications import MedicationCreate
from clinic_ledger.schemas.people import Gender, Role, StaffCreate

SAMPLE_MEDICATIONS = [
    MedicationCreate(name="Paracetamol", current_stock=100, low_stock_threshold=20),
    MedicationCreate(name="Ibuprofen", current_stock=50, low_stock_threshold=10),
    MedicationCreate(name="Amoxicillin", current_stock=75, low_stock_threshold=15),
]

SAMPLE_STAFF = [
    StaffCreate(hospital_id="D001", gender=Gender.MALE, age=45, role=Role.DOCTOR),
    StaffCreate(hospital_id="D002", gender=Gender.FEMALE, age=38, role=Role.DOCTOR),
    StaffCreate(hospital_id="P001", gender=Gender.MALE, age=29, role=Role.PHARMACIST),
    StaffCreate(hospital_id="A001", gender=Gender.FEMALE, age=41, role=Role.ADMINISTRATOR),
]


def init_tables(config: Settings | None = None, seed: bool = False) -> None:
    """Create header-only tables, optionally seeding sample data."""
    settings = config or get_settings()
    services = build_services(settings)

    if seed:
        for medication in SAMPLE_MEDICATIONS:
            if services.medications.get_medication(medication.name) is None:
                services.medications.add_medication(medication)

        for member in SAMPLE_STAFF:
            if services.directory.get_staff(member.hospital_id) is None:
                services.directory.add_staff(member)

        tomorrow = date.today() + timedelta(days=1)
        for doctor_id in services.directory.list_doctor_ids():
            for hour in (9, 10, 11):
                if time(hour) in services.appointments.list_free_slots_for_doctor(
                    doctor_id, tomorrow
                ):
                    services.appointments.add_slot(doctor_id, tomorrow, time(hour))

    print(f"✓ Tables initialized in {settings.data_dir}")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--seed", action="store_true", help="Add sample staff, stock and slots")
    args = parser.parse_args()

    configure_logging()
    init_tables(seed=args.seed)
