"""Tests for the appointment scheduler."""

import os
from concurrent.futures import ThreadPoolExecutor
from datetime import date, datetime, time

import pytest

from clinic_ledger.core.exceptions import (
    BadRequestException,
    ConflictException,
    NotFoundException,
)
from clinic_ledger.models import appointments
from clinic_ledger.schemas.appointments import FREE_PATIENT, Appointment, AppointmentStatus
from clinic_ledger.schemas.medical_records import OutcomeCreate, RecordStatus
from clinic_ledger.schemas.results import ResultStatus

from tests.conftest import TODAY, TOMORROW, read_table, write_table


def test_slot_grid_covers_clinic_hours(services):
    """Test hourly slots from opening until the last hour before closing."""
    grid = services.appointments.slot_grid()

    assert grid[0] == time(8)
    assert grid[-1] == time(16)
    assert len(grid) == 9


def test_free_slots_exclude_existing_rows(services):
    """Test a time with a slot row is no longer offered."""
    scheduler = services.appointments
    assert len(scheduler.list_free_slots_for_doctor("D1001", TOMORROW)) == 9

    scheduler.add_slot("D1001", TOMORROW, time(9))

    free = scheduler.list_free_slots_for_doctor("D1001", TOMORROW)
    assert len(free) == 8
    assert time(9) not in free
    # Other doctors and other days are unaffected
    assert len(scheduler.list_free_slots_for_doctor("D1002", TOMORROW)) == 9
    assert len(scheduler.list_free_slots_for_doctor("D1001", TODAY)) == 9


def test_add_slot(services, test_settings):
    """Test adding a slot writes a FREE row with the sentinel patient."""
    slot = services.appointments.add_slot("D1001", TOMORROW, time(14))

    assert slot.id == 1
    assert slot.status == AppointmentStatus.FREE
    assert slot.patient_id == FREE_PATIENT

    rows = read_table(test_settings.table_path(test_settings.appointments_file))
    assert rows[1] == ["1", "D1001", "FREE", "20-Oct-2026 2:00:00 PM", "FREE"]


def test_add_slot_rejects_off_grid_and_duplicate_times(services):
    """Test slot creation validates the time."""
    scheduler = services.appointments
    scheduler.add_slot("D1001", TOMORROW, time(9))

    with pytest.raises(ConflictException):
        scheduler.add_slot("D1001", TOMORROW, time(9))
    with pytest.raises(BadRequestException):
        scheduler.add_slot("D1001", TOMORROW, time(9, 30))
    with pytest.raises(BadRequestException):
        scheduler.add_slot("D1001", TOMORROW, time(17))

    assert len(scheduler.list_appointments()) == 1


def test_book_slot(services):
    """Test booking moves a FREE slot to PENDING for the patient."""
    scheduler = services.appointments
    slot = scheduler.add_slot("D1001", TOMORROW, time(10))

    result = scheduler.book_slot("P1001", "D1001", TOMORROW, time(10))

    assert result.ok
    assert result.value.id == slot.id
    assert result.value.status == AppointmentStatus.PENDING
    assert result.value.patient_id == "P1001"
    assert scheduler.list_bookable_slots("D1001", TOMORROW) == []


def test_book_slot_not_found_and_taken(services):
    """Test booking reports a missing slot and an already taken one."""
    scheduler = services.appointments
    scheduler.add_slot("D1001", TOMORROW, time(10))
    scheduler.book_slot("P1001", "D1001", TOMORROW, time(10)).raise_for_status()

    missing = scheduler.book_slot("P1002", "D1001", TOMORROW, time(11))
    assert missing.status == ResultStatus.NOT_FOUND

    taken = scheduler.book_slot("P1002", "D1001", TOMORROW, time(10))
    assert taken.status == ResultStatus.CONFLICT
    with pytest.raises(ConflictException):
        taken.raise_for_status()

    assert scheduler.get_appointment(1).patient_id == "P1001"


def test_book_slot_requires_patient(services):
    """Test the FREE sentinel cannot book a slot."""
    services.appointments.add_slot("D1001", TOMORROW, time(10))

    with pytest.raises(BadRequestException):
        services.appointments.book_slot(FREE_PATIENT, "D1001", TOMORROW, time(10))
    with pytest.raises(BadRequestException):
        services.appointments.book_slot("", "D1001", TOMORROW, time(10))


def test_decline_returns_slot_to_pool(services):
    """Test declining a PENDING booking frees the same row."""
    scheduler = services.appointments
    slot = scheduler.add_slot("D1001", TOMORROW, time(10))
    scheduler.book_slot("P1001", "D1001", TOMORROW, time(10)).raise_for_status()

    result = scheduler.decline(slot.id)

    assert result.ok
    assert result.value.status == AppointmentStatus.FREE
    assert result.value.patient_id == FREE_PATIENT
    assert scheduler.list_bookable_slots("D1001", TOMORROW) == [time(10)]


def test_decline_only_pending(confirmed_appointment, stocked_services):
    """Test a CONFIRMED booking cannot be declined."""
    result = stocked_services.appointments.decline(confirmed_appointment.id)

    assert result.status == ResultStatus.CONFLICT
    assert result.value.status == AppointmentStatus.CONFIRMED


def test_cancel_confirmed_appointment(confirmed_appointment, stocked_services):
    """Test cancelling retires the row and reopens its time for a new slot."""
    scheduler = stocked_services.appointments

    result = scheduler.cancel(confirmed_appointment.id)

    assert result.ok
    assert result.value.status == AppointmentStatus.CANCELLED
    assert result.value.patient_id == FREE_PATIENT
    assert scheduler.list_bookable_slots("D1001", TOMORROW) == []
    assert time(9) in scheduler.list_free_slots_for_doctor("D1001", TOMORROW)

    reopened = scheduler.add_slot("D1001", TOMORROW, time(9))
    assert reopened.id == confirmed_appointment.id + 1


def test_terminal_states_reject_transitions(confirmed_appointment, stocked_services):
    """Test CANCELLED appointments cannot be approved or cancelled again."""
    scheduler = stocked_services.appointments
    scheduler.cancel(confirmed_appointment.id).raise_for_status()

    assert scheduler.approve(confirmed_appointment.id).status == ResultStatus.CONFLICT
    assert scheduler.cancel(confirmed_appointment.id).status == ResultStatus.CONFLICT


def test_approve_requires_pending(services):
    """Test a FREE slot cannot be approved."""
    slot = services.appointments.add_slot("D1001", TOMORROW, time(10))

    result = services.appointments.approve(slot.id)

    assert result.status == ResultStatus.CONFLICT
    assert services.appointments.get_appointment(slot.id).status == AppointmentStatus.FREE


def test_transitions_on_unknown_appointment(services):
    """Test transitions report unknown ids instead of doing nothing."""
    scheduler = services.appointments

    assert scheduler.approve(42).status == ResultStatus.NOT_FOUND
    assert scheduler.decline(42).status == ResultStatus.NOT_FOUND
    assert scheduler.cancel(42).status == ResultStatus.NOT_FOUND
    with pytest.raises(NotFoundException):
        scheduler.cancel(42).raise_for_status()


def test_remove_slot(services):
    """Test only FREE slots can be removed."""
    scheduler = services.appointments
    free = scheduler.add_slot("D1001", TOMORROW, time(10))
    booked = scheduler.add_slot("D1001", TOMORROW, time(11))
    scheduler.book_slot("P1001", "D1001", TOMORROW, time(11)).raise_for_status()

    assert scheduler.remove_slot(free.id).ok
    assert scheduler.remove_slot(booked.id).status == ResultStatus.CONFLICT
    assert scheduler.remove_slot(free.id).status == ResultStatus.NOT_FOUND
    assert [a.id for a in scheduler.list_appointments()] == [booked.id]


def test_reschedule(confirmed_appointment, stocked_services):
    """Test moving a booking frees the old slot and books the new one."""
    scheduler = stocked_services.appointments
    target = scheduler.add_slot("D1002", TOMORROW, time(15))

    result = scheduler.reschedule(confirmed_appointment.id, "D1002", TOMORROW, time(15))

    assert result.ok
    assert result.value.id == target.id
    assert result.value.status == AppointmentStatus.PENDING
    assert result.value.patient_id == "P1001"
    old = scheduler.get_appointment(confirmed_appointment.id)
    assert old.status == AppointmentStatus.FREE
    assert old.patient_id == FREE_PATIENT


def test_reschedule_to_missing_slot_changes_nothing(confirmed_appointment, stocked_services):
    """Test a failed reschedule keeps the original booking."""
    scheduler = stocked_services.appointments

    result = scheduler.reschedule(confirmed_appointment.id, "D1002", TOMORROW, time(15))

    assert result.status == ResultStatus.NOT_FOUND
    assert scheduler.get_appointment(confirmed_appointment.id) == confirmed_appointment


def test_complete_records_outcome(confirmed_appointment, stocked_services, sample_outcome):
    """Test completing an appointment creates its PENDING medical record."""
    result = stocked_services.appointments.complete(confirmed_appointment.id, sample_outcome)

    assert result.ok
    detail = result.value
    assert detail.appointment.status == AppointmentStatus.COMPLETED
    assert detail.appointment.patient_id == "P1001"
    assert detail.outcome.appointment_id == confirmed_appointment.id
    assert detail.outcome.patient_id == "P1001"
    assert detail.outcome.prescription == "Paracetamol"
    assert detail.outcome.status == RecordStatus.PENDING
    # Stock only moves when the pharmacist dispenses
    assert stocked_services.medications.get_medication("Paracetamol").current_stock == 100


def test_complete_requires_confirmed(stocked_services, sample_outcome):
    """Test PENDING and FREE appointments cannot be completed."""
    scheduler = stocked_services.appointments
    slot = scheduler.add_slot("D1001", TOMORROW, time(10))

    assert scheduler.complete(slot.id, sample_outcome).status == ResultStatus.CONFLICT
    scheduler.book_slot("P1001", "D1001", TOMORROW, time(10)).raise_for_status()
    assert scheduler.complete(slot.id, sample_outcome).status == ResultStatus.CONFLICT
    assert scheduler.complete(99, sample_outcome).status == ResultStatus.NOT_FOUND
    assert stocked_services.medical_records.list_pending_outcomes() == []


def test_complete_with_unknown_medication_rolls_back(confirmed_appointment, stocked_services):
    """Test the appointment stays CONFIRMED when the outcome cannot be recorded."""
    outcome = OutcomeCreate(
        diagnosis="Migraine",
        treatment="Rest",
        prescription="Unobtainium",
        quantity=1,
    )

    with pytest.raises(NotFoundException):
        stocked_services.appointments.complete(confirmed_appointment.id, outcome)

    current = stocked_services.appointments.get_appointment(confirmed_appointment.id)
    assert current.status == AppointmentStatus.CONFIRMED
    assert stocked_services.medical_records.list_pending_outcomes() == []


def test_complete_twice(confirmed_appointment, stocked_services, sample_outcome):
    """Test a COMPLETED appointment cannot be completed again."""
    scheduler = stocked_services.appointments
    scheduler.complete(confirmed_appointment.id, sample_outcome).raise_for_status()

    assert scheduler.complete(confirmed_appointment.id, sample_outcome).status == ResultStatus.CONFLICT
    assert len(stocked_services.medical_records.get_records_for_patient("P1001")) == 1


def test_doctor_schedule_skips_past_and_cancelled(services):
    """Test the schedule lists only active slots that have not started."""
    scheduler = services.appointments
    scheduler.add_slot("D1001", TODAY, time(9))
    scheduler.add_slot("D1001", TODAY, time(13))
    scheduler.add_slot("D1001", TODAY, time(11))
    cancelled = scheduler.add_slot("D1001", TODAY, time(15))
    scheduler.book_slot("P1001", "D1001", TODAY, time(15)).raise_for_status()
    scheduler.cancel(cancelled.id).raise_for_status()
    scheduler.add_slot("D1001", TOMORROW, time(9))

    schedule = scheduler.get_doctor_schedule("D1001", TODAY)

    assert [a.date_time.time() for a in schedule] == [time(11), time(13)]


def test_upcoming_for_patient_and_doctor(services):
    """Test upcoming lists are filtered by owner and sorted by time."""
    scheduler = services.appointments
    for day, at in [(TOMORROW, time(15)), (TODAY, time(9)), (TODAY, time(12))]:
        scheduler.add_slot("D1001", day, at)
        scheduler.book_slot("P1001", "D1001", day, at).raise_for_status()
    scheduler.add_slot("D1001", TOMORROW, time(8))

    patient = scheduler.get_upcoming_for_patient("P1001")
    doctor = scheduler.get_upcoming_for_doctor("D1001")

    expected = [datetime(2026, 10, 19, 12), datetime(2026, 10, 20, 15)]
    assert [a.date_time for a in patient] == expected
    assert [a.date_time for a in doctor] == expected
    assert scheduler.get_upcoming_for_patient("P9999") == []


def test_completable_for_doctor(services):
    """Test today's CONFIRMED appointments are listed even once started."""
    scheduler = services.appointments
    for at in (time(9), time(14)):
        slot = scheduler.add_slot("D1001", TODAY, at)
        scheduler.book_slot("P1001", "D1001", TODAY, at).raise_for_status()
        scheduler.approve(slot.id).raise_for_status()
    scheduler.add_slot("D1001", TODAY, time(16))

    completable = scheduler.get_completable_for_doctor("D1001")

    assert [a.date_time.time() for a in completable] == [time(9), time(14)]


def test_appointment_details(confirmed_appointment, stocked_services, sample_outcome):
    """Test details skip FREE slots and attach outcomes to completed ones."""
    scheduler = stocked_services.appointments
    scheduler.add_slot("D1001", TOMORROW, time(12))
    scheduler.complete(confirmed_appointment.id, sample_outcome).raise_for_status()

    details = scheduler.get_appointment_details()

    assert len(details) == 1
    assert details[0].appointment.id == confirmed_appointment.id
    assert details[0].outcome.diagnosis == "Seasonal flu"


def test_patient_ids_for_doctor(services):
    """Test distinct patients of a doctor in booking order."""
    scheduler = services.appointments
    for at, patient in [(time(9), "P1002"), (time(10), "P1001"), (time(11), "P1002")]:
        scheduler.add_slot("D1001", TOMORROW, at)
        scheduler.book_slot(patient, "D1001", TOMORROW, at).raise_for_status()
    scheduler.add_slot("D1001", TOMORROW, time(12))

    assert scheduler.get_patient_ids_for_doctor("D1001") == ["P1002", "P1001"]


def test_existing_table_is_loaded(test_settings, make_services):
    """Test rows exported by a spreadsheet are read and ids continue."""
    write_table(
        test_settings.table_path(test_settings.appointments_file),
        appointments.header,
        [
            ["1.0", "D1001", "P1001", "21-Oct-2026 9:00:00 AM", "pending"],
            ["2.0", "D1001", "FREE", "21-Oct-2026 10:00:00 AM", "FREE"],
        ],
    )

    scheduler = make_services().appointments

    assert scheduler.get_appointment(1) == Appointment(
        id=1,
        doctor_id="D1001",
        patient_id="P1001",
        date_time=datetime(2026, 10, 21, 9),
        status=AppointmentStatus.PENDING,
    )
    assert scheduler.list_bookable_slots("D1001", date(2026, 10, 21)) == [time(10)]
    assert scheduler.add_slot("D1001", date(2026, 10, 21), time(11)).id == 3


def test_complete_discards_outcome_when_appointment_write_fails(
    confirmed_appointment, stocked_services, sample_outcome, test_settings
):
    """Test a failed appointment write leaves no outcome behind and can be retried."""
    path = test_settings.table_path(test_settings.appointments_file)
    stat = path.stat()
    os.utime(path, ns=(stat.st_atime_ns, stat.st_mtime_ns + 5_000_000_000))

    with pytest.raises(ConflictException):
        stocked_services.appointments.complete(confirmed_appointment.id, sample_outcome)

    stocked_services.reload()
    current = stocked_services.appointments.get_appointment(confirmed_appointment.id)
    assert current.status == AppointmentStatus.CONFIRMED
    assert stocked_services.medical_records.get_record_for_appointment(current.id) is None
    assert stocked_services.medical_records.list_pending_outcomes() == []

    result = stocked_services.appointments.complete(confirmed_appointment.id, sample_outcome)

    assert result.ok
    assert result.value.appointment.status == AppointmentStatus.COMPLETED
    assert len(stocked_services.medical_records.get_records_for_patient("P1001")) == 1


def test_concurrent_booking_claims_slot_once(services):
    """Test parallel bookings of one FREE slot give it to exactly one patient."""
    scheduler = services.appointments
    slot = scheduler.add_slot("D1001", TOMORROW, time(10))
    patients = [f"P{n}" for n in range(2001, 2011)]

    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(
            pool.map(lambda p: scheduler.book_slot(p, "D1001", TOMORROW, time(10)), patients)
        )

    winners = [r for r in results if r.ok]
    assert len(winners) == 1
    assert all(r.status == ResultStatus.CONFLICT for r in results if not r.ok)
    booked = scheduler.get_appointment(slot.id)
    assert booked.status == AppointmentStatus.PENDING
    assert booked.patient_id == winners[0].value.patient_id
