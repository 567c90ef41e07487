"""Seat/shift availability.

Works on plain snapshots of seats and shifts so the same rules serve the seat
listing, the enrollment form and the booking checks in the student service.
A seat+shift pair maps to at most one active student; the student currently
being edited may always keep the pairs they already hold.
"""

from __future__ import annotations

from dataclasses import dataclass, field


ASSIGNED_SUFFIX = ' (Assigned)'


@dataclass(frozen=True)
class ShiftState:
    shift_id: int
    shift_title: str = ''
    is_assigned: bool = False
    student_id: int | None = None
    student_name: str | None = None


@dataclass(frozen=True)
class SeatView:
    id: int
    seat_number: str
    branch_id: int | None = None
    shifts: tuple[ShiftState, ...] = field(default_factory=tuple)

    def state_for(self, shift_id: int) -> ShiftState | None:
        for state in self.shifts:
            if state.shift_id == shift_id:
                return state
        return None


@dataclass(frozen=True)
class ShiftView:
    id: int
    title: str
    time: str = ''
    event_date: str | None = None


@dataclass(frozen=True)
class ShiftOption:
    id: int
    label: str
    disabled: bool


def _is_free_for(state: ShiftState | None, editing_student_id: int | None) -> bool:
    if state is None or not state.is_assigned:
        return True
    return editing_student_id is not None and state.student_id == editing_student_id


def available_seats_for_shift(
    shift_id: int,
    seats: list[SeatView],
    *,
    editing_student_id: int | None = None,
) -> list[SeatView]:
    return [seat for seat in seats if _is_free_for(seat.state_for(shift_id), editing_student_id)]


def _find_seat(seat_id: int, seats: list[SeatView]) -> SeatView | None:
    for seat in seats:
        if seat.id == seat_id:
            return seat
    return None


def available_shifts_for_seat(
    seat_id: int | None,
    seats: list[SeatView],
    shifts: list[ShiftView],
    *,
    editing_student_id: int | None = None,
) -> list[ShiftView]:
    # No seat selected: a shift can be booked without a seat.
    if seat_id is None:
        return list(shifts)
    seat = _find_seat(seat_id, seats)
    if seat is None:
        return []
    return [shift for shift in shifts if _is_free_for(seat.state_for(shift.id), editing_student_id)]


def shift_options_for_seat(
    seat_id: int | None,
    seats: list[SeatView],
    shifts: list[ShiftView],
    *,
    editing_student_id: int | None = None,
) -> list[ShiftOption]:
    free_ids = {
        shift.id
        for shift in available_shifts_for_seat(seat_id, seats, shifts, editing_student_id=editing_student_id)
    }
    options = []
    for shift in shifts:
        taken = shift.id not in free_ids
        label = f'{shift.title}{ASSIGNED_SUFFIX}' if taken else shift.title
        options.append(ShiftOption(id=shift.id, label=label, disabled=taken))
    return options


def find_booking_conflicts(
    seat_id: int | None,
    shift_ids: list[int],
    seats: list[SeatView],
    *,
    editing_student_id: int | None = None,
) -> list[int]:
    """Shift ids from ``shift_ids`` that cannot be booked on ``seat_id``."""
    if seat_id is None:
        return []
    seat = _find_seat(seat_id, seats)
    if seat is None:
        return list(shift_ids)
    return [
        shift_id
        for shift_id in shift_ids
        if not _is_free_for(seat.state_for(shift_id), editing_student_id)
    ]
