"""
Calcolo disponibilità e conflitti dell'agenda
Progetto: Officina Manager

Funzioni pure, senza accesso al database: ricevono gli appuntamenti
attivi già caricati (Booking) e restituiscono slot o conflitti.

Due tolleranze distinte:
- slot disponibili: uno slot è scartato se si sovrappone a una prenotazione
  oppure se il suo inizio dista meno di `buffer_minutes` (15) dall'inizio
  di una prenotazione, anche senza sovrapposizione;
- conflitti in creazione/modifica: è in conflitto ogni prenotazione che
  inizia in [inizio - buffer_minutes (30), fine).
"""

import datetime
import uuid
from typing import Iterable, NamedTuple, Optional
from zoneinfo import ZoneInfo

DEFAULT_OPENING_HOUR = 8
DEFAULT_CLOSING_HOUR = 18
DEFAULT_INTERVAL_MINUTES = 30
DEFAULT_SLOT_BUFFER_MINUTES = 15
DEFAULT_CONFLICT_BUFFER_MINUTES = 30
DEFAULT_SERVICE_MINUTES = 60


class Booking(NamedTuple):
    """
    Appuntamento che occupa l'agenda.

    duration_minutes è la durata stimata del servizio prenotato;
    se None si usa la durata richiesta dal chiamante.
    """
    appointment_id: Optional[uuid.UUID]
    start: datetime.datetime
    duration_minutes: Optional[int] = None

    def end(self, fallback_minutes: int) -> datetime.datetime:
        minutes = self.duration_minutes or fallback_minutes
        return self.start + datetime.timedelta(minutes=minutes)


def business_window(
    day: datetime.date,
    tz: ZoneInfo,
    opening_hour: int = DEFAULT_OPENING_HOUR,
    closing_hour: int = DEFAULT_CLOSING_HOUR,
) -> tuple[datetime.datetime, datetime.datetime]:
    """
    Apertura e chiusura dell'officina per il giorno indicato, nel fuso locale.

    closing_hour=24 indica la mezzanotte del giorno successivo.
    """
    midnight = datetime.datetime.combine(day, datetime.time(0), tzinfo=tz)
    opening = midnight + datetime.timedelta(hours=opening_hour)
    closing = midnight + datetime.timedelta(hours=closing_hour)
    return opening, closing


def _blocks_slot(
    slot_start: datetime.datetime,
    slot_end: datetime.datetime,
    booking: Booking,
    fallback_minutes: int,
    buffer: datetime.timedelta,
) -> bool:
    # Sovrapposizione classica degli intervalli [start, end)
    if slot_start < booking.end(fallback_minutes) and booking.start < slot_end:
        return True
    # Tolleranza sull'inizio, indipendente dalla sovrapposizione
    return abs(slot_start - booking.start) < buffer


def compute_available_slots(
    day: datetime.date,
    duration_minutes: Optional[int],
    bookings: Iterable[Booking],
    *,
    tz: ZoneInfo,
    opening_hour: int = DEFAULT_OPENING_HOUR,
    closing_hour: int = DEFAULT_CLOSING_HOUR,
    interval_minutes: int = DEFAULT_INTERVAL_MINUTES,
    buffer_minutes: int = DEFAULT_SLOT_BUFFER_MINUTES,
    default_minutes: int = DEFAULT_SERVICE_MINUTES,
) -> list[datetime.datetime]:
    """
    Genera gli orari di inizio prenotabili per un giorno.

    Candidati ogni `interval_minutes` a partire dall'apertura; un candidato
    la cui fine supera la chiusura viene scartato, così come ogni candidato
    bloccato da una prenotazione (vedi _blocks_slot).

    Args:
        day: Giorno richiesto
        duration_minutes: Durata del servizio (None = default_minutes)
        bookings: Appuntamenti attivi del giorno
        tz: Fuso orario dell'officina

    Returns:
        Orari di inizio disponibili, ordinati, nel fuso dell'officina
    """
    duration = datetime.timedelta(minutes=duration_minutes or default_minutes)
    step = datetime.timedelta(minutes=interval_minutes)
    buffer = datetime.timedelta(minutes=buffer_minutes)
    fallback = duration_minutes or default_minutes

    opening, closing = business_window(day, tz, opening_hour, closing_hour)
    bookings = list(bookings)

    slots: list[datetime.datetime] = []
    candidate = opening
    while candidate < closing:
        candidate_end = candidate + duration
        if candidate_end > closing:
            break

        if not any(_blocks_slot(candidate, candidate_end, b, fallback, buffer) for b in bookings):
            slots.append(candidate)

        candidate += step

    return slots


def conflict_window(
    proposed_start: datetime.datetime,
    duration_minutes: int,
    buffer_minutes: int = DEFAULT_CONFLICT_BUFFER_MINUTES,
) -> tuple[datetime.datetime, datetime.datetime]:
    """Finestra [inizio - buffer, fine) in cui un altro inizio è in conflitto."""
    return (
        proposed_start - datetime.timedelta(minutes=buffer_minutes),
        proposed_start + datetime.timedelta(minutes=duration_minutes),
    )


def find_conflicts(
    proposed_start: datetime.datetime,
    duration_minutes: int,
    bookings: Iterable[Booking],
    *,
    buffer_minutes: int = DEFAULT_CONFLICT_BUFFER_MINUTES,
    exclude_id: Optional[uuid.UUID] = None,
) -> list[Booking]:
    """
    Restituisce le prenotazioni che iniziano nella finestra di conflitto.

    Args:
        proposed_start: Inizio proposto
        duration_minutes: Durata del servizio proposto
        bookings: Appuntamenti attivi candidati
        buffer_minutes: Anticipo della finestra rispetto all'inizio
        exclude_id: Appuntamento da ignorare (modifica di sé stesso)
    """
    window_start, window_end = conflict_window(proposed_start, duration_minutes, buffer_minutes)
    return [
        b for b in bookings
        if (exclude_id is None or b.appointment_id != exclude_id)
        and window_start <= b.start < window_end
    ]


def has_conflict(
    proposed_start: datetime.datetime,
    duration_minutes: int,
    bookings: Iterable[Booking],
    *,
    buffer_minutes: int = DEFAULT_CONFLICT_BUFFER_MINUTES,
    exclude_id: Optional[uuid.UUID] = None,
) -> bool:
    return bool(
        find_conflicts(
            proposed_start,
            duration_minutes,
            bookings,
            buffer_minutes=buffer_minutes,
            exclude_id=exclude_id,
        )
    )
