"""
Unit tests per il calcolo di disponibilità e conflitti dell'agenda.

Funzioni pure: nessun mock necessario.
"""

import datetime
import uuid
from zoneinfo import ZoneInfo

from officina.services.availability import (
    Booking,
    business_window,
    compute_available_slots,
    conflict_window,
    find_conflicts,
    has_conflict,
)

ROME = ZoneInfo("Europe/Rome")
DAY = datetime.date(2024, 3, 5)


def at(hour, minute=0):
    return datetime.datetime(2024, 3, 5, hour, minute, tzinfo=ROME)


def hhmm(slots):
    return [s.strftime("%H:%M") for s in slots]


# ============================================================
# Slot disponibili
# ============================================================


class TestAvailableSlots:
    """Generazione degli slot giornalieri."""

    def test_empty_day_full_grid(self):
        """Giornata libera, servizio da 60 minuti: 8:00 ... 17:00 ogni 30 minuti."""
        slots = compute_available_slots(DAY, 60, [], tz=ROME)

        assert len(slots) == 19
        assert slots[0] == at(8)
        assert slots[-1] == at(17)
        assert all(s.tzinfo is ROME for s in slots)

    def test_slot_must_end_by_closing(self):
        """Uno slot che termina esattamente alla chiusura è valido, oltre no."""
        assert hhmm(compute_available_slots(DAY, 600, [], tz=ROME)) == ["08:00"]
        assert compute_available_slots(DAY, 601, [], tz=ROME) == []

    def test_slots_are_sorted_and_unique(self):
        slots = compute_available_slots(DAY, 30, [Booking(uuid.uuid4(), at(12), 60)], tz=ROME)
        assert slots == sorted(set(slots))

    def test_booking_blocks_overlapping_slots(self):
        """Prenotazione 10:00-11:00, servizio da 30 minuti."""
        bookings = [Booking(uuid.uuid4(), at(10), 60)]

        slots = hhmm(compute_available_slots(DAY, 30, bookings, tz=ROME))

        assert "09:30" in slots
        assert "10:00" not in slots
        assert "10:30" not in slots
        assert "11:00" in slots

    def test_start_buffer_blocks_without_overlap(self):
        """
        Tolleranza di 15 minuti sull'inizio: uno slot che finisce prima della
        prenotazione viene comunque scartato se inizia a meno di 15 minuti da essa.
        """
        bookings = [Booking(uuid.uuid4(), at(10), 10)]

        slots = hhmm(
            compute_available_slots(DAY, 10, bookings, tz=ROME, interval_minutes=5)
        )

        assert "09:45" in slots
        assert "09:50" not in slots
        assert "09:55" not in slots
        assert "10:05" not in slots
        assert "10:10" not in slots
        assert "10:15" in slots

    def test_booking_without_duration_uses_requested_duration(self):
        bookings = [Booking(uuid.uuid4(), at(10), None)]

        slots = hhmm(compute_available_slots(DAY, 90, bookings, tz=ROME))

        # Prenotazione 10:00-11:30 (durata richiesta)
        assert "08:30" in slots
        assert "09:00" not in slots
        assert "11:00" not in slots
        assert "11:30" in slots

    def test_missing_duration_uses_default(self):
        slots = compute_available_slots(DAY, None, [], tz=ROME)
        assert slots[-1] == at(17)

    def test_custom_business_hours(self):
        slots = compute_available_slots(
            DAY, 60, [], tz=ROME, opening_hour=9, closing_hour=12
        )
        assert hhmm(slots) == ["09:00", "09:30", "10:00", "10:30", "11:00"]


class TestBusinessWindow:

    def test_window_in_local_timezone(self):
        opening, closing = business_window(DAY, ROME)
        assert opening == at(8)
        assert closing == at(18)
        assert opening.utcoffset() == datetime.timedelta(hours=1)

    def test_closing_at_midnight(self):
        _, closing = business_window(DAY, ROME, closing_hour=24)
        assert closing == datetime.datetime(2024, 3, 6, 0, 0, tzinfo=ROME)

        slots = compute_available_slots(DAY, 60, [], tz=ROME, opening_hour=20, closing_hour=24)
        assert hhmm(slots) == ["20:00", "20:30", "21:00", "21:30", "22:00", "22:30", "23:00"]


# ============================================================
# Conflitti
# ============================================================


class TestConflicts:
    """Finestra di conflitto [inizio - 30 min, fine)."""

    def test_window_bounds(self):
        start, end = conflict_window(at(10), 60)
        assert start == at(9, 30)
        assert end == at(11)

    def test_overlapping_start_conflicts(self):
        existing = Booking(uuid.uuid4(), at(10), 60)
        assert has_conflict(at(10, 15), 60, [existing])

    def test_lower_bound_is_inclusive(self):
        """Un appuntamento che inizia esattamente 30 minuti prima è in conflitto."""
        existing = Booking(uuid.uuid4(), at(10), 60)
        assert has_conflict(at(10, 30), 60, [existing])
        assert not has_conflict(at(10, 31), 60, [existing])

    def test_upper_bound_is_exclusive(self):
        """Un appuntamento che inizia alla fine del nuovo non è in conflitto."""
        existing = Booking(uuid.uuid4(), at(11, 15), 60)
        assert not has_conflict(at(10, 15), 60, [existing])
        assert has_conflict(at(10, 15), 61, [existing])

    def test_only_starts_inside_window_are_checked(self):
        """Un appuntamento lungo iniziato prima della finestra non viene rilevato."""
        long_job = Booking(uuid.uuid4(), at(8), 240)
        assert not has_conflict(at(10), 60, [long_job])

    def test_exclude_self(self):
        own_id = uuid.uuid4()
        existing = [Booking(own_id, at(10), 60)]

        assert has_conflict(at(10, 15), 60, existing)
        assert not has_conflict(at(10, 15), 60, existing, exclude_id=own_id)

    def test_returns_all_colliding_bookings(self):
        first = Booking(uuid.uuid4(), at(9, 45), 30)
        second = Booking(uuid.uuid4(), at(10, 30), 30)
        outside = Booking(uuid.uuid4(), at(12), 30)

        conflicts = find_conflicts(at(10), 60, [first, second, outside])

        assert conflicts == [first, second]

    def test_custom_buffer(self):
        existing = Booking(uuid.uuid4(), at(9, 45), 60)
        assert has_conflict(at(10), 60, [existing])
        assert not has_conflict(at(10), 60, [existing], buffer_minutes=10)
