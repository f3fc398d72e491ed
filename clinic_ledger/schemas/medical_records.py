"""Medical record (appointment outcome) schemas."""

from enum import Enum

from pydantic import BaseModel, Field, field_validator


class RecordStatus(str, Enum):
    """Dispense status of a medical record."""

    PENDING = "PENDING"
    DISPENSED = "DISPENSED"


class OutcomeCreate(BaseModel):
    """Clinical outcome entered by a doctor."""

    diagnosis: str = Field(..., min_length=1, max_length=1000)
    treatment: str = Field(..., min_length=1, max_length=1000)
    prescription: str = Field(..., min_length=1, max_length=200)
    quantity: int = Field(..., gt=0)

    @field_validator("diagnosis", "treatment", "prescription")
    @classmethod
    def strip_text(cls, v: str) -> str:
        """Strip surrounding whitespace and reject blank text."""
        v = v.strip()
        if not v:
            raise ValueError("Field cannot be blank")
        return v


class MedicalRecord(BaseModel):
    """One medical record row."""

    id: int = Field(..., ge=1)
    patient_id: str = Field(..., min_length=1)
    diagnosis: str
    treatment: str
    prescription: str
    quantity: int = Field(..., ge=0)
    status: RecordStatus = RecordStatus.PENDING
    appointment_id: int | None = None

    @property
    def is_dispensed(self) -> bool:
        """Check if the prescription has been handed out."""
        return self.status == RecordStatus.DISPENSED
