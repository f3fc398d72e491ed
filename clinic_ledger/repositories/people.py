"""Staff and patient repositories."""

from clinic_ledger.core.datetimes import format_date, parse_date
from clinic_ledger.core.exceptions import ValidationException
from clinic_ledger.database import Row, parse_optional_int
from clinic_ledger.models.people import patients, staff
from clinic_ledger.repositories.base import Repository
from clinic_ledger.schemas.people import (
    DoctorProfile,
    Gender,
    PatientProfile,
    Person,
    Role,
    StaffProfile,
)


class StaffRepository(Repository[str, Person]):
    """Staff rows keyed by hospital id."""

    schema = staff
    id_floor = 1000

    def _from_row(self, row: Row) -> Person:
        doctor_id = row[3].strip()
        role = Role(row[4].strip().upper()) if row[4].strip() else None
        if doctor_id or role == Role.DOCTOR:
            profile: DoctorProfile | StaffProfile = DoctorProfile(doctor_id=doctor_id)
        else:
            profile = StaffProfile(role=role or Role.PHARMACIST)
        return Person(
            hospital_id=row[0].strip(),
            gender=Gender(row[1].strip().upper()),
            age=parse_optional_int(row[2], "age"),
            profile=profile,
        )

    def _to_row(self, record: Person) -> Row:
        return [
            record.hospital_id,
            record.gender.value,
            "" if record.age is None else str(record.age),
            record.doctor_id or "",
            record.role.value,
        ]

    def _key(self, record: Person) -> str:
        return record.hospital_id

    def _numeric_id(self, record: Person) -> int | None:
        # Doctor ids look like D1001; the counter numbers new doctors
        doctor_id = record.doctor_id
        if doctor_id and doctor_id[1:].isdigit():
            return int(doctor_id[1:])
        return None


class PatientRepository(Repository[str, Person]):
    """Patient rows keyed by patient id."""

    schema = patients

    def _from_row(self, row: Row) -> Person:
        return Person(
            hospital_id=row[0].strip(),
            gender=Gender(row[3].strip().upper()),
            profile=PatientProfile(
                patient_id=row[1].strip(),
                name=row[2].strip(),
                date_of_birth=parse_date(row[4]),
                blood_type=row[5].strip(),
                email=row[6].strip(),
                contact_no=row[7].strip(),
            ),
        )

    def _to_row(self, record: Person) -> Row:
        profile = patient_profile(record)
        return [
            record.hospital_id,
            profile.patient_id,
            profile.name,
            record.gender.value,
            format_date(profile.date_of_birth),
            profile.blood_type,
            profile.email,
            profile.contact_no,
        ]

    def put(self, record: Person) -> Person:
        """Insert or replace a patient; staff records are rejected."""
        patient_profile(record)
        return super().put(record)

    def _key(self, record: Person) -> str:
        return record.patient_id or record.hospital_id


def patient_profile(person: Person) -> PatientProfile:
    """
    Patient payload of a person.

    Raises:
        ValidationException: If the person is not a patient
    """
    if not isinstance(person.profile, PatientProfile):
        raise ValidationException(f"{person.hospital_id} is not a patient")
    return person.profile
