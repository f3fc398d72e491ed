"""Appointment scheduler: slots, bookings and the appointment state machine."""

from collections.abc import Callable
from datetime import date, datetime, time, timedelta

import structlog

from clinic_ledger.config import Settings, settings
from clinic_ledger.core.datetimes import is_upcoming, join_date_time
from clinic_ledger.core.exceptions import AppException, BadRequestException, ConflictException
from clinic_ledger.repositories.appointments import AppointmentRepository
from clinic_ledger.schemas.appointments import (
    ACTIVE_STATUSES,
    FREE_PATIENT,
    Appointment,
    AppointmentDetail,
    AppointmentStatus,
)
from clinic_ledger.schemas.medical_records import MedicalRecord, OutcomeCreate
from clinic_ledger.schemas.results import OperationResult
from clinic_ledger.services.medical_record_service import MedicalRecordService

logger = structlog.get_logger(__name__)


class AppointmentService:
    """
    Service for managing appointments.

    Two terminal paths leave a booked slot. Declining (or rescheduling away
    from) a slot returns that same row to the pool as FREE. Cancelling retires
    the row as CANCELLED for good; its time becomes available again only as a
    new slot with a new id.
    """

    def __init__(
        self,
        repository: AppointmentRepository,
        records: MedicalRecordService,
        config: Settings = settings,
        now: Callable[[], datetime] = datetime.now,
    ):
        """
        Initialize service.

        Args:
            repository: Appointments, owned by this service
            records: Outcome linker used when completing appointments
            config: Clinic hours and slot length
            now: Clock used for "upcoming" filters
        """
        self.repository = repository
        self.records = records
        self.config = config
        self.now = now

    # Slot grid

    def slot_grid(self) -> list[time]:
        """Every slot start time within clinic hours."""
        day_start = datetime.combine(date.min, time())
        current = day_start + timedelta(hours=self.config.clinic_open_hour)
        closing = day_start + timedelta(hours=self.config.clinic_close_hour)
        step = timedelta(minutes=self.config.slot_minutes)

        grid = []
        while current + step <= closing:
            grid.append(current.time())
            current += step
        return grid

    def _rows_at(self, doctor_id: str, day: date, at: time | None = None) -> list[Appointment]:
        return self.repository.filter(
            lambda a: a.doctor_id == doctor_id
            and a.date_time.date() == day
            and (at is None or a.date_time.time() == at)
        )

    def list_free_slots_for_doctor(self, doctor_id: str, day: date) -> list[time]:
        """
        Times a doctor can still open a slot at on a date.

        Times held by a row in any status other than CANCELLED are excluded.

        Args:
            doctor_id: Doctor ID
            day: Schedule date

        Returns:
            Slot start times in grid order
        """
        occupied = {
            a.date_time.time()
            for a in self._rows_at(doctor_id, day)
            if a.status != AppointmentStatus.CANCELLED
        }
        return [t for t in self.slot_grid() if t not in occupied]

    def list_bookable_slots(self, doctor_id: str, day: date) -> list[time]:
        """Times of FREE slots a patient can book with a doctor on a date."""
        return sorted(
            a.date_time.time()
            for a in self._rows_at(doctor_id, day)
            if a.status == AppointmentStatus.FREE
        )

    def add_slot(self, doctor_id: str, day: date, at: time) -> Appointment:
        """
        Open a FREE slot.

        Args:
            doctor_id: Doctor ID
            day: Slot date
            at: Slot start time, must be on the grid

        Returns:
            Created appointment

        Raises:
            BadRequestException: If the time is not on the clinic grid
            ConflictException: If the doctor already holds that time
        """
        at = at.replace(second=0, microsecond=0)
        if at not in self.slot_grid():
            raise BadRequestException(f"{at:%H:%M} is outside clinic hours")

        with self.repository.transaction():
            if at not in self.list_free_slots_for_doctor(doctor_id, day):
                raise ConflictException(
                    f"Doctor {doctor_id} already has a slot on {day} at {at:%H:%M}"
                )
            appointment = self.repository.put(
                Appointment(
                    id=self.repository.next_id(),
                    doctor_id=doctor_id,
                    patient_id=FREE_PATIENT,
                    date_time=join_date_time(day, at),
                    status=AppointmentStatus.FREE,
                )
            )

        logger.info(
            "slot_added",
            appointment_id=appointment.id,
            doctor_id=doctor_id,
            date_time=appointment.date_time.isoformat(),
        )
        return appointment

    def remove_slot(self, appointment_id: int) -> OperationResult[Appointment]:
        """Delete a slot row; only FREE slots can be removed."""
        with self.repository.transaction():
            appointment = self.repository.get(appointment_id)
            if appointment is None:
                return OperationResult.not_found(f"Appointment {appointment_id} not found")
            if appointment.status != AppointmentStatus.FREE:
                return OperationResult.conflict(
                    f"Only FREE slots can be removed, appointment {appointment_id} "
                    f"is {appointment.status.value}",
                    value=appointment,
                )
            self.repository.delete(appointment_id)

        logger.info("slot_removed", appointment_id=appointment_id)
        return OperationResult.success(appointment)

    # Booking and transitions

    def book_slot(
        self,
        patient_id: str,
        doctor_id: str,
        day: date,
        at: time,
    ) -> OperationResult[Appointment]:
        """
        Book the FREE slot of a doctor at a date and time.

        Finding the slot and claiming it happen under the table lock, so two
        callers cannot both book it.

        Returns:
            OK with the PENDING appointment, NOT_FOUND when the doctor has no
            slot at that time, CONFLICT when the slot is already taken

        Raises:
            BadRequestException: If patient_id is blank or the FREE sentinel
        """
        if not patient_id or patient_id == FREE_PATIENT:
            raise BadRequestException("A patient is required to book a slot")

        at = at.replace(microsecond=0)
        with self.repository.transaction():
            rows = self._rows_at(doctor_id, day, at)
            if not rows:
                return OperationResult.not_found(
                    f"Doctor {doctor_id} has no slot on {day} at {at:%H:%M}"
                )
            free = next((a for a in rows if a.status == AppointmentStatus.FREE), None)
            if free is None:
                return OperationResult.conflict(
                    f"Slot on {day} at {at:%H:%M} with doctor {doctor_id} is not available"
                )
            appointment = self.repository.put(
                free.transitioned(AppointmentStatus.PENDING, patient_id=patient_id)
            )

        logger.info(
            "appointment_booked",
            appointment_id=appointment.id,
            doctor_id=doctor_id,
            patient_id=patient_id,
        )
        return OperationResult.success(appointment)

    def _transition(
        self,
        appointment_id: int,
        target: AppointmentStatus,
        event: str,
        allowed_from: frozenset[AppointmentStatus] | None = None,
        patient_id: str | None = None,
    ) -> OperationResult[Appointment]:
        with self.repository.transaction():
            appointment = self.repository.get(appointment_id)
            if appointment is None:
                return OperationResult.not_found(f"Appointment {appointment_id} not found")
            if not appointment.can_transition_to(target) or (
                allowed_from is not None and appointment.status not in allowed_from
            ):
                return OperationResult.conflict(
                    f"Appointment {appointment_id} cannot go from "
                    f"{appointment.status.value} to {target.value}",
                    value=appointment,
                )
            previous = appointment.status
            appointment = self.repository.put(
                appointment.transitioned(target, patient_id=patient_id)
            )

        logger.info(
            event,
            appointment_id=appointment_id,
            from_status=previous.value,
            to_status=target.value,
        )
        return OperationResult.success(appointment)

    def approve(self, appointment_id: int) -> OperationResult[Appointment]:
        """Confirm a PENDING booking."""
        return self._transition(
            appointment_id,
            AppointmentStatus.CONFIRMED,
            "appointment_approved",
        )

    def decline(self, appointment_id: int) -> OperationResult[Appointment]:
        """Turn down a PENDING booking; the slot goes back to the pool."""
        return self._transition(
            appointment_id,
            AppointmentStatus.FREE,
            "appointment_declined",
            allowed_from=frozenset({AppointmentStatus.PENDING}),
            patient_id=FREE_PATIENT,
        )

    def cancel(self, appointment_id: int) -> OperationResult[Appointment]:
        """Cancel a PENDING or CONFIRMED booking; the row is retired."""
        return self._transition(
            appointment_id,
            AppointmentStatus.CANCELLED,
            "appointment_cancelled",
            patient_id=FREE_PATIENT,
        )

    def reschedule(
        self,
        appointment_id: int,
        doctor_id: str,
        day: date,
        at: time,
    ) -> OperationResult[Appointment]:
        """
        Move a booking to another slot.

        The new slot is booked first; only then does the old one return to
        FREE. If the new slot cannot be booked nothing changes.

        Returns:
            OK with the new PENDING appointment, NOT_FOUND/CONFLICT from
            either the lookup of the current booking or the new booking
        """
        with self.repository.transaction():
            current = self.repository.get(appointment_id)
            if current is None:
                return OperationResult.not_found(f"Appointment {appointment_id} not found")
            if not current.is_booked or not current.can_transition_to(AppointmentStatus.FREE):
                return OperationResult.conflict(
                    f"Appointment {appointment_id} is {current.status.value} and cannot be moved",
                    value=current,
                )

            booked = self.book_slot(current.patient_id, doctor_id, day, at)
            if not booked.ok:
                return booked
            self.repository.put(
                current.transitioned(AppointmentStatus.FREE, patient_id=FREE_PATIENT)
            )

        logger.info(
            "appointment_rescheduled",
            appointment_id=appointment_id,
            new_appointment_id=booked.value.id if booked.value else None,
        )
        return booked

    def complete(
        self,
        appointment_id: int,
        outcome: OutcomeCreate,
    ) -> OperationResult[AppointmentDetail]:
        """
        Mark a CONFIRMED appointment COMPLETED together with its outcome record.

        The outcome record is written while the appointment table is still
        locked; if recording the outcome fails the appointment stays CONFIRMED,
        and if the appointment write fails the saved record is discarded.

        Args:
            appointment_id: Appointment ID
            outcome: Diagnosis, treatment and prescription

        Returns:
            OK with the completed appointment and its record, NOT_FOUND or
            CONFLICT otherwise

        Raises:
            NotFoundException: If the prescribed medication does not exist
        """
        record: MedicalRecord | None = None
        try:
            with self.repository.transaction():
                appointment = self.repository.get(appointment_id)
                if appointment is None:
                    return OperationResult.not_found(f"Appointment {appointment_id} not found")
                if not appointment.can_transition_to(AppointmentStatus.COMPLETED):
                    return OperationResult.conflict(
                        f"Appointment {appointment_id} is {appointment.status.value}, "
                        "only CONFIRMED appointments can be completed",
                        value=appointment,
                    )
                appointment = self.repository.put(
                    appointment.transitioned(AppointmentStatus.COMPLETED)
                )
                record = self.records.record_outcome(outcome, appointment_id=appointment_id)
        except AppException as e:
            # Outcome saved but the appointment write failed
            if record is not None:
                self.records.discard_outcome(record.id)
                logger.error(
                    "appointment_completion_reverted",
                    appointment_id=appointment_id,
                    record_id=record.id,
                    error=e.message,
                )
            raise

        logger.info(
            "appointment_completed",
            appointment_id=appointment_id,
            record_id=record.id,
        )
        return OperationResult.success(AppointmentDetail(appointment=appointment, outcome=record))

    # Queries

    def get_appointment(self, appointment_id: int) -> Appointment | None:
        """Get appointment by ID."""
        return self.repository.get(appointment_id)

    def list_appointments(self) -> list[Appointment]:
        """All appointments in table order."""
        return self.repository.all()

    def get_doctor_schedule(self, doctor_id: str, day: date) -> list[Appointment]:
        """
        A doctor's open and booked slots on a date that have not started yet.

        Returns:
            FREE, PENDING and CONFIRMED appointments, earliest first
        """
        now = self.now()
        schedule = [
            a
            for a in self._rows_at(doctor_id, day)
            if a.status in ACTIVE_STATUSES and is_upcoming(a.date_time, now)
        ]
        return sorted(schedule, key=lambda a: a.date_time)

    def get_upcoming_for_patient(self, patient_id: str) -> list[Appointment]:
        """A patient's bookings that have not started yet, earliest first."""
        now = self.now()
        upcoming = self.repository.filter(
            lambda a: a.patient_id == patient_id and is_upcoming(a.date_time, now)
        )
        return sorted(upcoming, key=lambda a: a.date_time)

    def get_upcoming_for_doctor(self, doctor_id: str) -> list[Appointment]:
        """A doctor's PENDING and CONFIRMED bookings that have not started yet."""
        now = self.now()
        upcoming = self.repository.filter(
            lambda a: a.doctor_id == doctor_id
            and a.status in (AppointmentStatus.PENDING, AppointmentStatus.CONFIRMED)
            and is_upcoming(a.date_time, now)
        )
        return sorted(upcoming, key=lambda a: a.date_time)

    def get_completable_for_doctor(self, doctor_id: str) -> list[Appointment]:
        """Today's CONFIRMED appointments of a doctor, whether started or not."""
        today = self.now().date()
        todays = self.repository.filter(
            lambda a: a.doctor_id == doctor_id
            and a.status == AppointmentStatus.CONFIRMED
            and a.date_time.date() == today
        )
        return sorted(todays, key=lambda a: a.date_time)

    def get_patient_ids_for_doctor(self, doctor_id: str) -> list[str]:
        """Distinct patients who hold or held a booking with a doctor."""
        seen: dict[str, None] = {}
        for appointment in self.repository.filter(lambda a: a.doctor_id == doctor_id):
            if appointment.is_booked:
                seen.setdefault(appointment.patient_id, None)
        return list(seen)

    def get_appointment_details(self) -> list[AppointmentDetail]:
        """Every appointment that is not a FREE slot, with outcomes for completed ones."""
        details = []
        for appointment in self.repository.filter(
            lambda a: a.status != AppointmentStatus.FREE
        ):
            outcome = None
            if appointment.status == AppointmentStatus.COMPLETED:
                outcome = self.records.get_record_for_appointment(appointment.id)
            details.append(AppointmentDetail(appointment=appointment, outcome=outcome))
        return details
