"""Staff and patient directory."""

import structlog

from clinic_ledger.core.exceptions import ConflictException, NotFoundException
from clinic_ledger.repositories.people import PatientRepository, StaffRepository, patient_profile
from clinic_ledger.schemas.people import (
    DoctorProfile,
    Gender,
    PatientContactUpdate,
    Person,
    Role,
    StaffCreate,
    StaffProfile,
    StaffUpdate,
)
from clinic_ledger.schemas.results import OperationResult
from clinic_ledger.services.appointment_service import AppointmentService

logger = structlog.get_logger(__name__)


class DirectoryService:
    """Service for staff and patient lookups and admin maintenance."""

    def __init__(
        self,
        staff: StaffRepository,
        patients: PatientRepository,
        appointments: AppointmentService,
    ):
        """Initialize service with the people repositories and the scheduler."""
        self.staff = staff
        self.patients = patients
        self.appointments = appointments

    # Staff

    def get_staff(self, hospital_id: str) -> Person | None:
        """Get a staff member by hospital ID."""
        return self.staff.get(hospital_id)

    def get_doctor(self, doctor_id: str) -> Person | None:
        """Get a staff member by doctor ID."""
        matches = self.staff.filter(lambda p: p.doctor_id == doctor_id)
        return matches[0] if matches else None

    def list_doctor_ids(self) -> list[str]:
        """Doctor IDs patients can book with."""
        return [p.doctor_id for p in self.staff.all() if p.doctor_id]

    def list_staff(
        self,
        role: Role | None = None,
        gender: Gender | None = None,
        min_age: int | None = None,
        max_age: int | None = None,
    ) -> list[Person]:
        """
        List staff, optionally filtered.

        Args:
            role: Only this role
            gender: Only this gender
            min_age: Lower age bound, inclusive
            max_age: Upper age bound, inclusive

        Returns:
            Matching staff in table order
        """

        def matches(person: Person) -> bool:
            if role is not None and person.role != role:
                return False
            if gender is not None and person.gender != gender:
                return False
            if min_age is not None and (person.age is None or person.age < min_age):
                return False
            if max_age is not None and (person.age is None or person.age > max_age):
                return False
            return True

        return self.staff.filter(matches)

    def add_staff(self, data: StaffCreate) -> Person:
        """
        Register a staff member; doctors get a generated doctor ID.

        Raises:
            ConflictException: If the hospital ID is already in use
        """
        with self.staff.transaction():
            if data.hospital_id in self.staff:
                raise ConflictException(f"Staff {data.hospital_id} already exists")
            if data.role == Role.DOCTOR:
                profile: DoctorProfile | StaffProfile = DoctorProfile(
                    doctor_id=f"D{self.staff.next_id()}"
                )
            else:
                profile = StaffProfile(role=data.role)
            person = self.staff.put(
                Person(
                    hospital_id=data.hospital_id,
                    gender=data.gender,
                    age=data.age,
                    profile=profile,
                )
            )

        logger.info(
            "staff_added",
            hospital_id=person.hospital_id,
            role=person.role.value,
            doctor_id=person.doctor_id,
        )
        return person

    def update_staff(self, hospital_id: str, data: StaffUpdate) -> OperationResult[Person]:
        """Update gender and age of a staff member."""
        with self.staff.transaction():
            person = self.staff.get(hospital_id)
            if person is None:
                return OperationResult.not_found(f"Staff {hospital_id} not found")
            changes = data.model_dump(exclude_none=True)
            if changes:
                person = self.staff.put(person.model_copy(update=changes))

        logger.info("staff_updated", hospital_id=hospital_id, fields=sorted(changes))
        return OperationResult.success(person)

    def remove_staff(self, hospital_id: str) -> OperationResult[Person]:
        """Remove a staff member."""
        with self.staff.transaction():
            person = self.staff.delete(hospital_id)
        if person is None:
            return OperationResult.not_found(f"Staff {hospital_id} not found")

        logger.info("staff_removed", hospital_id=hospital_id, role=person.role.value)
        return OperationResult.success(person)

    # Patients

    def get_patient(self, patient_id: str) -> Person | None:
        """Get a patient by patient ID."""
        return self.patients.get(patient_id)

    def get_patient_by_hospital_id(self, hospital_id: str) -> Person | None:
        """Get a patient by the hospital ID they log in with."""
        matches = self.patients.filter(lambda p: p.hospital_id == hospital_id)
        return matches[0] if matches else None

    def get_patient_or_raise(self, patient_id: str) -> Person:
        """
        Get a patient by patient ID.

        Raises:
            NotFoundException: If the patient does not exist
        """
        patient = self.patients.get(patient_id)
        if patient is None:
            raise NotFoundException(f"Patient {patient_id} not found")
        return patient

    def get_patients_for_doctor(self, doctor_id: str) -> list[Person]:
        """Patients who hold or held a booking with a doctor."""
        patient_ids = set(self.appointments.get_patient_ids_for_doctor(doctor_id))
        return self.patients.filter(lambda p: p.patient_id in patient_ids)

    def update_patient_contact(
        self,
        patient_id: str,
        data: PatientContactUpdate,
    ) -> OperationResult[Person]:
        """Update a patient's email and/or contact number."""
        with self.patients.transaction():
            patient = self.patients.get(patient_id)
            if patient is None:
                return OperationResult.not_found(f"Patient {patient_id} not found")
            changes = data.model_dump(exclude_none=True)
            if changes:
                profile = patient_profile(patient)
                patient = self.patients.put(
                    patient.model_copy(
                        update={"profile": profile.model_copy(update=changes)}
                    )
                )

        logger.info("patient_contact_updated", patient_id=patient_id, fields=sorted(changes))
        return OperationResult.success(patient)
