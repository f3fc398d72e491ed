"""Appointment schemas."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field, model_validator

from clinic_ledger.schemas.medical_records import MedicalRecord

# Patient id of a slot nobody has booked
FREE_PATIENT = "FREE"


class AppointmentStatus(str, Enum):
    """Appointment status enumeration."""

    FREE = "FREE"
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"
    COMPLETED = "COMPLETED"


# Allowed status transitions, keyed by the status they leave
APPOINTMENT_TRANSITIONS: dict[AppointmentStatus, frozenset[AppointmentStatus]] = {
    AppointmentStatus.FREE: frozenset({AppointmentStatus.PENDING}),
    AppointmentStatus.PENDING: frozenset(
        {
            AppointmentStatus.CONFIRMED,
            AppointmentStatus.FREE,
            AppointmentStatus.CANCELLED,
        }
    ),
    AppointmentStatus.CONFIRMED: frozenset(
        {
            AppointmentStatus.COMPLETED,
            AppointmentStatus.CANCELLED,
            AppointmentStatus.FREE,
        }
    ),
    AppointmentStatus.CANCELLED: frozenset(),
    AppointmentStatus.COMPLETED: frozenset(),
}

# Statuses shown on a doctor's schedule
ACTIVE_STATUSES = frozenset(
    {AppointmentStatus.FREE, AppointmentStatus.PENDING, AppointmentStatus.CONFIRMED}
)


class Appointment(BaseModel):
    """One appointment row."""

    id: int = Field(..., ge=1)
    doctor_id: str = Field(..., min_length=1)
    patient_id: str = FREE_PATIENT
    date_time: datetime
    status: AppointmentStatus = AppointmentStatus.FREE

    @model_validator(mode="after")
    def validate_free_slot(self) -> "Appointment":
        """A FREE slot never carries a patient."""
        if self.status == AppointmentStatus.FREE and self.patient_id != FREE_PATIENT:
            raise ValueError("A FREE appointment cannot have a patient attached")
        return self

    @property
    def is_booked(self) -> bool:
        """Check if a patient is attached."""
        return self.patient_id != FREE_PATIENT

    def can_transition_to(self, status: AppointmentStatus) -> bool:
        """Check if the state machine allows moving to status."""
        return status in APPOINTMENT_TRANSITIONS[self.status]

    def transitioned(
        self,
        status: AppointmentStatus,
        patient_id: str | None = None,
    ) -> "Appointment":
        """
        Build a validated copy in a new status.

        Args:
            status: Target status
            patient_id: New patient id, unchanged when None

        Returns:
            New appointment instance
        """
        data = self.model_dump()
        data["status"] = status
        if patient_id is not None:
            data["patient_id"] = patient_id
        return Appointment.model_validate(data)


class AppointmentDetail(BaseModel):
    """Admin overview entry: an appointment and its outcome, if completed."""

    appointment: Appointment
    outcome: MedicalRecord | None = None
