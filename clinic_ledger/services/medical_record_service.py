"""Outcome linker: medical records tied to appointments and dispensing."""

import structlog

from clinic_ledger.core.exceptions import (
    AppException,
    BadRequestException,
    ConflictException,
    NotFoundException,
)
from clinic_ledger.repositories.appointments import AppointmentRepository
from clinic_ledger.repositories.medical_records import MedicalRecordRepository
from clinic_ledger.schemas.appointments import AppointmentStatus
from clinic_ledger.schemas.medical_records import MedicalRecord, OutcomeCreate, RecordStatus
from clinic_ledger.schemas.results import OperationResult, ResultStatus
from clinic_ledger.services.medication_service import MedicationService

logger = structlog.get_logger(__name__)


class MedicalRecordService:
    """Service for clinical outcome records."""

    def __init__(
        self,
        repository: MedicalRecordRepository,
        appointments: AppointmentRepository,
        medications: MedicationService,
    ):
        """
        Initialize service.

        Args:
            repository: Medical records, owned by this service
            appointments: Appointments, read only
            medications: Ledger used to resolve prescriptions and dispense
        """
        self.repository = repository
        self.appointments = appointments
        self.medications = medications

    def record_outcome(
        self,
        data: OutcomeCreate,
        appointment_id: int | None = None,
        patient_id: str | None = None,
    ) -> MedicalRecord:
        """
        Create a PENDING (not yet dispensed) medical record.

        Args:
            data: Diagnosis, treatment and prescription
            appointment_id: Completed appointment the outcome belongs to
            patient_id: Patient, required when no appointment is given

        Returns:
            Created record

        Raises:
            BadRequestException: If neither appointment nor patient is given,
                or the patient does not match the appointment
            NotFoundException: If the appointment or the prescribed
                medication does not exist
            ConflictException: If the appointment is not COMPLETED or already
                has an outcome
        """
        if appointment_id is not None:
            appointment = self.appointments.get(appointment_id)
            if appointment is None:
                raise NotFoundException(f"Appointment {appointment_id} not found")
            if appointment.status != AppointmentStatus.COMPLETED:
                raise ConflictException(
                    f"Appointment {appointment_id} is {appointment.status.value}, not COMPLETED"
                )
            if patient_id is not None and patient_id != appointment.patient_id:
                raise BadRequestException("Patient does not match the appointment")
            if self.get_record_for_appointment(appointment_id) is not None:
                raise ConflictException(f"Appointment {appointment_id} already has an outcome")
            patient_id = appointment.patient_id
        elif patient_id is None:
            raise BadRequestException("Either an appointment or a patient is required")

        medication = self.medications.get_medication_or_raise(data.prescription)

        with self.repository.transaction():
            record = self.repository.put(
                MedicalRecord(
                    id=self.repository.next_id(),
                    patient_id=patient_id,
                    diagnosis=data.diagnosis,
                    treatment=data.treatment,
                    prescription=medication.name,
                    quantity=data.quantity,
                    status=RecordStatus.PENDING,
                    appointment_id=appointment_id,
                )
            )

        logger.info(
            "outcome_recorded",
            record_id=record.id,
            patient_id=record.patient_id,
            appointment_id=appointment_id,
            prescription=record.prescription,
            quantity=record.quantity,
        )
        return record

    def dispense_outcome(self, record_id: int) -> OperationResult[MedicalRecord]:
        """
        Dispense the prescription of a PENDING record.

        The ledger is asked first; the record only becomes DISPENSED when the
        ledger reports success.

        Returns:
            OK with the DISPENSED record; NOT_FOUND for unknown records or
            medications; CONFLICT when already dispensed; INSUFFICIENT_STOCK
            with the untouched PENDING record when stock is short
        """
        record: MedicalRecord | None = None
        dispensed: OperationResult | None = None
        try:
            with self.repository.transaction():
                record = self.repository.get(record_id)
                if record is None:
                    return OperationResult.not_found(f"Medical record {record_id} not found")
                if record.status != RecordStatus.PENDING:
                    return OperationResult.conflict(
                        f"Medical record {record_id} is already {record.status.value}",
                        value=record,
                    )

                dispensed = self.medications.dispense(record.prescription, record.quantity)
                if dispensed.status == ResultStatus.INSUFFICIENT_STOCK:
                    return OperationResult.insufficient_stock(
                        dispensed.message or "Insufficient stock", value=record
                    )
                if not dispensed.ok:
                    return OperationResult(
                        status=dispensed.status, value=record, message=dispensed.message
                    )

                record = self.repository.put(
                    record.model_copy(update={"status": RecordStatus.DISPENSED})
                )
        except AppException as e:
            # Stock already left the ledger but the record kept PENDING
            if dispensed is not None and dispensed.ok and record is not None:
                self.medications.restock(record.prescription, record.quantity)
                logger.error(
                    "outcome_dispense_reverted",
                    record_id=record_id,
                    prescription=record.prescription,
                    quantity=record.quantity,
                    error=e.message,
                )
            raise

        logger.info(
            "outcome_dispensed",
            record_id=record.id,
            prescription=record.prescription,
            quantity=record.quantity,
        )
        return OperationResult.success(record)

    def discard_outcome(self, record_id: int) -> MedicalRecord | None:
        """Delete a PENDING record whose appointment could not be completed."""
        with self.repository.transaction():
            record = self.repository.get(record_id)
            if record is None or record.status != RecordStatus.PENDING:
                return None
            self.repository.delete(record_id)

        logger.info("outcome_discarded", record_id=record_id, appointment_id=record.appointment_id)
        return record

    def get_record(self, record_id: int) -> MedicalRecord | None:
        """Get a record by id."""
        return self.repository.get(record_id)

    def list_pending_outcomes(self) -> list[MedicalRecord]:
        """Records awaiting dispense (pharmacist worklist)."""
        return self.repository.filter(lambda r: r.status == RecordStatus.PENDING)

    def get_records_for_patient(self, patient_id: str) -> list[MedicalRecord]:
        """All records of a patient in table order."""
        return self.repository.filter(lambda r: r.patient_id == patient_id)

    def get_record_for_appointment(self, appointment_id: int) -> MedicalRecord | None:
        """Outcome record of an appointment, if any."""
        matches = self.repository.filter(lambda r: r.appointment_id == appointment_id)
        return matches[0] if matches else None

    def get_past_appointment_records(self, patient_id: str) -> list[MedicalRecord]:
        """A patient's records that came out of an appointment."""
        return self.repository.filter(
            lambda r: r.patient_id == patient_id and r.appointment_id is not None
        )
