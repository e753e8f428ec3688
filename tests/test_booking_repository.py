"""Tests for slots, consultation booking and payments."""

import threading

import pytest

from telemed_booking.clinic.database.connection import get_connection
from telemed_booking.exceptions import (
    InvalidBooking,
    InvalidTransition,
    NotFound,
    SlotUnavailable,
    ValidationError,
)


class TestSlots:
    """Tests for publishing and reserving slots."""

    def test_add_slot(self, bookings, doctor):
        """Test that a new slot is available."""
        slot = bookings.add_slot(doctor.id, "2025-01-15", "09:00")
        assert slot.available is True
        assert slot.is_critical is False
        assert bookings.get_slot(slot.id).doctor_id == doctor.id

    def test_add_slot_unknown_doctor(self, bookings):
        with pytest.raises(NotFound):
            bookings.add_slot("missing", "2025-01-15", "09:00")

    def test_identical_slots_allowed(self, bookings, doctor):
        """Test that the same date and time can be published twice."""
        bookings.add_slot(doctor.id, "2025-01-15", "09:00")
        bookings.add_slot(doctor.id, "2025-01-15", "09:00")
        assert len(bookings.list_available(doctor.id)) == 2

    def test_list_available_sorted(self, bookings, doctor):
        """Test that available slots come back in date/time order."""
        bookings.add_slot(doctor.id, "2025-01-16", "09:00")
        bookings.add_slot(doctor.id, "2025-01-15", "14:00")
        bookings.add_slot(doctor.id, "2025-01-15", "09:00")
        slots = [(s.date, s.time) for s in bookings.list_available(doctor.id)]
        assert slots == [("2025-01-15", "09:00"), ("2025-01-15", "14:00"), ("2025-01-16", "09:00")]

    def test_reserve_once(self, bookings, slot):
        """Test that a slot can be reserved exactly once."""
        reserved = bookings.reserve(slot.id, critical=True)
        assert reserved.available is False
        assert reserved.is_critical is True
        with pytest.raises(SlotUnavailable):
            bookings.reserve(slot.id)

    def test_reserve_unknown_slot(self, bookings):
        with pytest.raises(NotFound):
            bookings.reserve("missing")


class TestBooking:
    """Tests for booking consultations."""

    def test_book_creates_scheduled_consultation(self, bookings, consultation, slot):
        """Test that booking takes the slot and copies its date and time."""
        assert consultation.status == "scheduled"
        assert consultation.date == "2025-01-15"
        assert consultation.time == "13:00"
        assert consultation.meeting_link.startswith("https://meet.example.com/room/")
        assert bookings.get_slot(slot.id).available is False
        assert bookings.list_available(consultation.doctor_id) == []

    def test_meeting_links_are_unique(self, bookings, doctor, patient):
        first = bookings.add_slot(doctor.id, "2025-01-15", "09:00")
        second = bookings.add_slot(doctor.id, "2025-01-15", "10:00")
        a = bookings.book(patient.id, doctor.id, first.id)
        b = bookings.book(patient.id, doctor.id, second.id)
        assert a.meeting_link != b.meeting_link

    def test_critical_flag(self, bookings, doctor, patient, slot):
        consultation = bookings.book(patient.id, doctor.id, slot.id, critical=True)
        assert consultation.is_critical is True
        assert bookings.get_slot(slot.id).is_critical is True

    def test_double_booking_rejected(self, bookings, consultation, doctor, patient, slot):
        """Test that a reserved slot cannot be booked again."""
        with pytest.raises(SlotUnavailable):
            bookings.book(patient.id, doctor.id, slot.id)

    def test_unknown_doctor(self, bookings, patient, slot):
        with pytest.raises(InvalidBooking):
            bookings.book(patient.id, "missing", slot.id)

    def test_unknown_patient(self, bookings, doctor, slot):
        with pytest.raises(InvalidBooking):
            bookings.book("missing", doctor.id, slot.id)

    def test_slot_of_another_doctor(self, bookings, users, patient, slot):
        """Test that a slot can only be booked with its own doctor."""
        other = users.register_doctor(
            name="Dr. Michael Chen", email="michael@clinic.com", password="x",
            specialty="Cardiology", experience=12, price=75,
        )
        with pytest.raises(InvalidBooking):
            bookings.book(patient.id, other.id, slot.id)
        assert bookings.get_slot(slot.id).available is True

    def test_failed_booking_keeps_slot_free(self, bookings, doctor, slot, db_path):
        """Test that a rejected booking leaves no consultation behind."""
        with pytest.raises(InvalidBooking):
            bookings.book("missing", doctor.id, slot.id)
        conn = get_connection(db_path)
        count = conn.execute("SELECT COUNT(*) FROM appointments").fetchone()[0]
        conn.close()
        assert count == 0
        assert bookings.get_slot(slot.id).available is True

    def test_concurrent_booking_single_winner(self, bookings, doctor, patient, slot):
        """Test that racing bookings for one slot yield exactly one consultation."""
        results = []
        errors = []
        lock = threading.Lock()

        def attempt():
            try:
                consultation = bookings.book(patient.id, doctor.id, slot.id)
            except SlotUnavailable as e:
                with lock:
                    errors.append(e)
            else:
                with lock:
                    results.append(consultation)

        threads = [threading.Thread(target=attempt) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(results) == 1
        assert len(errors) == 7
        assert len(bookings.list_consultations(patient.id, "patient")) == 1


class TestConsultationQueries:
    """Tests for reading consultations back."""

    def test_get_consultation(self, bookings, consultation):
        fetched = bookings.get_consultation(consultation.id)
        assert fetched.id == consultation.id
        assert fetched.prescription_id is None

    def test_get_unknown_consultation(self, bookings):
        with pytest.raises(NotFound):
            bookings.get_consultation("missing")

    def test_list_by_role(self, bookings, consultation, doctor, patient):
        """Test that doctors and patients each see the consultation."""
        assert [c.id for c in bookings.list_consultations(doctor.id, "doctor")] == [consultation.id]
        assert [c.id for c in bookings.list_consultations(patient.id, "patient")] == [consultation.id]
        assert bookings.list_consultations(doctor.id, "patient") == []

    def test_list_latest_first(self, bookings, doctor, patient):
        early = bookings.add_slot(doctor.id, "2025-01-10", "09:00")
        late = bookings.add_slot(doctor.id, "2025-01-20", "09:00")
        first = bookings.book(patient.id, doctor.id, early.id)
        second = bookings.book(patient.id, doctor.id, late.id)
        ids = [c.id for c in bookings.list_consultations(patient.id, "patient")]
        assert ids == [second.id, first.id]

    def test_list_unsupported_role(self, bookings):
        with pytest.raises(ValidationError):
            bookings.list_consultations("someone", "admin")


class TestPayments:
    """Tests for consultation payments."""

    def test_booking_creates_pending_payment(self, bookings, consultation, doctor):
        """Test that a pending payment at the doctor's price comes with a booking."""
        payment = bookings.get_payment_for_consultation(consultation.id)
        assert payment.status == "pending"
        assert payment.amount == doctor.price
        assert payment.settled_at is None

    def test_settle_paid(self, bookings, consultation):
        payment = bookings.get_payment_for_consultation(consultation.id)
        settled = bookings.settle_payment(payment.id, paid=True)
        assert settled.status == "paid"
        assert settled.settled_at is not None

    def test_settle_failed(self, bookings, consultation):
        payment = bookings.get_payment_for_consultation(consultation.id)
        assert bookings.settle_payment(payment.id, paid=False).status == "failed"

    def test_settled_payment_is_final(self, bookings, consultation):
        """Test that a settled payment cannot be settled again."""
        payment = bookings.get_payment_for_consultation(consultation.id)
        bookings.settle_payment(payment.id, paid=True)
        with pytest.raises(InvalidTransition):
            bookings.settle_payment(payment.id, paid=False)

    def test_settle_unknown_payment(self, bookings):
        with pytest.raises(NotFound):
            bookings.settle_payment("missing", paid=True)
