"""Staff and patient schemas.

A person is one flat record with a role-specific ``profile`` payload,
discriminated on ``role``.
"""

from datetime import date
from enum import Enum
from typing import Annotated, Literal

from pydantic import BaseModel, EmailStr, Field, field_validator


class Role(str, Enum):
    """Fixed roles within the facility."""

    PATIENT = "PATIENT"
    DOCTOR = "DOCTOR"
    PHARMACIST = "PHARMACIST"
    ADMINISTRATOR = "ADMINISTRATOR"


class Gender(str, Enum):
    """Gender enumeration."""

    MALE = "MALE"
    FEMALE = "FEMALE"


class DoctorProfile(BaseModel):
    """Doctor payload."""

    role: Literal[Role.DOCTOR] = Role.DOCTOR
    doctor_id: str = Field(..., min_length=1)


class StaffProfile(BaseModel):
    """Payload for non-doctor staff."""

    role: Literal[Role.PHARMACIST, Role.ADMINISTRATOR] = Role.PHARMACIST


class PatientProfile(BaseModel):
    """Patient payload."""

    role: Literal[Role.PATIENT] = Role.PATIENT
    patient_id: str = Field(..., min_length=1)
    name: str
    date_of_birth: date
    blood_type: str
    email: str
    contact_no: str


Profile = Annotated[
    DoctorProfile | StaffProfile | PatientProfile,
    Field(discriminator="role"),
]


class Person(BaseModel):
    """Anyone known to the facility."""

    hospital_id: str = Field(..., min_length=1)
    gender: Gender
    age: int | None = Field(None, ge=0)
    profile: Profile

    @property
    def role(self) -> Role:
        """Role tag of the profile."""
        return self.profile.role

    @property
    def doctor_id(self) -> str | None:
        """Doctor id, None for anyone who is not a doctor."""
        if isinstance(self.profile, DoctorProfile):
            return self.profile.doctor_id
        return None

    @property
    def patient_id(self) -> str | None:
        """Patient id, None for staff."""
        if isinstance(self.profile, PatientProfile):
            return self.profile.patient_id
        return None


class StaffCreate(BaseModel):
    """Schema for registering a staff member."""

    hospital_id: str = Field(..., min_length=1, max_length=50)
    gender: Gender
    age: int = Field(..., ge=16, le=100)
    role: Role

    @field_validator("role")
    @classmethod
    def validate_staff_role(cls, v: Role) -> Role:
        """Patients are not staff."""
        if v == Role.PATIENT:
            raise ValueError("Patients cannot be registered as staff")
        return v


class StaffUpdate(BaseModel):
    """Schema for updating a staff member."""

    gender: Gender | None = None
    age: int | None = Field(None, ge=16, le=100)


class PatientContactUpdate(BaseModel):
    """Schema for patients updating their contact details."""

    email: EmailStr | None = None
    contact_no: str | None = Field(None, min_length=7, max_length=20)

    @field_validator("contact_no")
    @classmethod
    def validate_phone(cls, v: str | None) -> str | None:
        """Validate phone number format."""
        if v is None:
            return v
        cleaned = (
            v.replace("-", "").replace(" ", "").replace("(", "").replace(")", "").replace("+", "")
        )
        if not cleaned.isdigit():
            raise ValueError("Phone number must contain only digits and separators")
        return v
