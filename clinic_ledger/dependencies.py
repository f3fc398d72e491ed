"""Service wiring."""

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from functools import lru_cache

import structlog

from clinic_ledger.config import Settings, get_settings
from clinic_ledger.database import TabularFile
from clinic_ledger.models import appointments, medical_records, medications, patients, staff
from clinic_ledger.repositories.appointments import AppointmentRepository
from clinic_ledger.repositories.medical_records import MedicalRecordRepository
from clinic_ledger.repositories.medications import MedicationRepository
from clinic_ledger.repositories.people import PatientRepository, StaffRepository
from clinic_ledger.services.appointment_service import AppointmentService
from clinic_ledger.services.directory_service import DirectoryService
from clinic_ledger.services.medical_record_service import MedicalRecordService
from clinic_ledger.services.medication_service import MedicationService

logger = structlog.get_logger(__name__)


@dataclass
class Services:
    """The ledger's services, sharing one set of repositories."""

    appointments: AppointmentService
    medical_records: MedicalRecordService
    medications: MedicationService
    directory: DirectoryService

    def reload(self) -> None:
        """Re-read every table, e.g. after a ConflictException."""
        self.medications.repository.reload()
        self.appointments.repository.reload()
        self.medical_records.repository.reload()
        self.directory.staff.reload()
        self.directory.patients.reload()


def build_services(
    config: Settings,
    now: Callable[[], datetime] = datetime.now,
    create_missing: bool = True,
) -> Services:
    """
    Open every table and wire the services together.

    Args:
        config: Settings naming the data directory and table files
        now: Clock for the scheduler's "upcoming" filters
        create_missing: Create header-only tables for missing files

    Returns:
        Wired services

    Raises:
        StorageException: If a table cannot be read (or created)
    """
    tables = {
        staff: TabularFile(config.table_path(config.staff_file)),
        patients: TabularFile(config.table_path(config.patients_file)),
        medical_records: TabularFile(config.table_path(config.medical_records_file)),
        appointments: TabularFile(config.table_path(config.appointments_file)),
        medications: TabularFile(config.table_path(config.medications_file)),
    }
    if create_missing:
        for schema, table in tables.items():
            if not table.exists():
                table.create(schema.header)
                logger.info("table_created", table=schema.name, path=str(table.path))

    appointment_repository = AppointmentRepository(tables[appointments])
    medication_service = MedicationService(MedicationRepository(tables[medications]))
    record_service = MedicalRecordService(
        MedicalRecordRepository(tables[medical_records]),
        appointments=appointment_repository,
        medications=medication_service,
    )
    appointment_service = AppointmentService(
        appointment_repository,
        records=record_service,
        config=config,
        now=now,
    )
    directory_service = DirectoryService(
        StaffRepository(tables[staff]),
        PatientRepository(tables[patients]),
        appointments=appointment_service,
    )

    logger.info("services_ready", data_dir=str(config.data_dir))
    return Services(
        appointments=appointment_service,
        medical_records=record_service,
        medications=medication_service,
        directory=directory_service,
    )


@lru_cache
def get_services() -> Services:
    """Get the process-wide services built from the environment settings."""
    return build_services(get_settings())
