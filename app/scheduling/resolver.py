"""
Slot Availability Resolver

Decides whether a booking request may proceed, checking in order:
- Workday bounds of the clinic
- Practitioner blocks and clinic closures for the date
- Weekly availability windows (plus extended hours for the date)
- Same sub-slot collisions and sub-slots beyond the slot's capacity
- Exclusive treatment collisions across the whole slot

Rejections are returned as values. The resolver never performs I/O.
"""

from collections.abc import Iterable, Sequence
from enum import Enum

from pydantic import BaseModel, ConfigDict

from app.scheduling.snapshot import (
    BookedAppointment,
    ExceptionType,
    ScheduleException,
    SchedulingSnapshot,
    SlotRequest,
)
from app.scheduling.timeutils import WEEKDAY_NAMES, format_time, weekday_index


class RejectReason(str, Enum):
    """Why a booking request cannot proceed."""

    OUTSIDE_WORKDAY = "OutsideWorkday"
    PRACTITIONER_BLOCKED = "PractitionerBlocked"
    OUTSIDE_AVAILABILITY_WINDOW = "OutsideAvailabilityWindow"
    SLOT_OCCUPIED = "SlotOccupied"
    EXCLUSIVE_TREATMENT_CONFLICT = "ExclusiveTreatmentConflict"


class SlotDecision(BaseModel):
    """Outcome of evaluating one request."""

    model_config = ConfigDict(frozen=True)

    accepted: bool
    reason: RejectReason | None = None
    message: str | None = None
    detail: str | None = None
    conflict: BookedAppointment | None = None

    @classmethod
    def accept(cls) -> "SlotDecision":
        return cls(accepted=True)

    @classmethod
    def reject(
        cls,
        reason: RejectReason,
        message: str,
        detail: str | None = None,
        conflict: BookedAppointment | None = None,
    ) -> "SlotDecision":
        return cls(accepted=False, reason=reason, message=message, detail=detail, conflict=conflict)


def _practitioner_label(request: SlotRequest, snapshot: SchedulingSnapshot) -> str:
    name = snapshot.practitioner_names.get(request.practitioner_id)
    return name or f"practitioner {request.practitioner_id}"


def _slot_label(request: SlotRequest) -> str:
    return f"{request.date.isoformat()} {format_time(request.start_time)}"


def _exceptions_for(
    request: SlotRequest, exceptions: Iterable[ScheduleException]
) -> list[ScheduleException]:
    """Exceptions on the request date that apply to the clinic or to this practitioner."""
    return [
        exc
        for exc in exceptions
        if exc.clinic_id == request.clinic_id
        and exc.date == request.date
        and (exc.practitioner_id is None or exc.practitioner_id == request.practitioner_id)
    ]


def _active_in_slot(request: SlotRequest, snapshot: SchedulingSnapshot) -> list[BookedAppointment]:
    """Non-cancelled appointments at the request's (practitioner, date, start time)."""
    return [
        appt
        for appt in snapshot.appointments
        if appt.is_active
        and appt.clinic_id == request.clinic_id
        and appt.practitioner_id == request.practitioner_id
        and appt.date == request.date
        and appt.start_time == request.start_time
        and (request.exclude_appointment_id is None or appt.id != request.exclude_appointment_id)
    ]


def _check_workday(request: SlotRequest, snapshot: SchedulingSnapshot) -> SlotDecision | None:
    clinic = snapshot.clinic
    if clinic.workday_start <= request.start_time <= clinic.workday_end:
        return None
    return SlotDecision.reject(
        RejectReason.OUTSIDE_WORKDAY,
        f"{format_time(request.start_time)} is outside the clinic's booking hours "
        f"({format_time(clinic.workday_start)}–{format_time(clinic.workday_end)})",
    )


def _check_blocks(
    request: SlotRequest,
    snapshot: SchedulingSnapshot,
    exceptions: list[ScheduleException],
) -> SlotDecision | None:
    for exc in exceptions:
        if exc.type == ExceptionType.PRACTITIONER_BLOCK:
            if exc.practitioner_id != request.practitioner_id or not exc.covers(request.start_time):
                continue
            detail = exc.reason or "blocked"
            return SlotDecision.reject(
                RejectReason.PRACTITIONER_BLOCKED,
                f"{_practitioner_label(request, snapshot)} is not available on "
                f"{_slot_label(request)}: {detail}",
                detail=detail,
            )

        if exc.type == ExceptionType.CLINIC_CLOSED and exc.covers(request.start_time):
            detail = exc.reason or "clinic closed"
            return SlotDecision.reject(
                RejectReason.PRACTITIONER_BLOCKED,
                f"The clinic is closed on {_slot_label(request)}: {detail}",
                detail=detail,
            )

    return None


def _check_availability(
    request: SlotRequest,
    snapshot: SchedulingSnapshot,
    exceptions: list[ScheduleException],
) -> SlotDecision | None:
    configured = [w for w in snapshot.windows if w.practitioner_id == request.practitioner_id]
    if not configured:
        # Nothing configured yet for this practitioner: bookable at any time
        return None

    weekday = weekday_index(request.date)
    todays = [w for w in configured if w.weekday == weekday]
    if any(w.contains(request.start_time) for w in todays):
        return None

    for exc in exceptions:
        if exc.type == ExceptionType.EXTENDED_HOURS and not exc.is_full_day:
            if exc.covers(request.start_time):
                return None

    label = _practitioner_label(request, snapshot)
    if not todays:
        message = f"{label} has no availability configured on {WEEKDAY_NAMES[weekday]}s"
    else:
        ranges = ", ".join(
            f"{format_time(w.from_time)}–{format_time(w.to_time)}"
            for w in sorted(todays, key=lambda w: w.from_time)
        )
        message = (
            f"{format_time(request.start_time)} is outside the hours of {label} "
            f"on {WEEKDAY_NAMES[weekday]}. Available: {ranges}"
        )
    return SlotDecision.reject(RejectReason.OUTSIDE_AVAILABILITY_WINDOW, message)


def _check_same_slot(
    request: SlotRequest,
    snapshot: SchedulingSnapshot,
    in_slot: list[BookedAppointment],
) -> SlotDecision | None:
    capacity = snapshot.capacity_for(request.practitioner_id, request.date, request.start_time)
    if request.sub_slot > capacity:
        return SlotDecision.reject(
            RejectReason.SLOT_OCCUPIED,
            f"Sub-slot {request.sub_slot} does not exist at {_slot_label(request)}: "
            f"{_practitioner_label(request, snapshot)} takes {capacity} "
            f"appointment(s) per slot",
        )

    for appt in in_slot:
        if appt.sub_slot == request.sub_slot:
            return SlotDecision.reject(
                RejectReason.SLOT_OCCUPIED,
                f"Sub-slot {request.sub_slot} at {_slot_label(request)} is already booked "
                f"for {_practitioner_label(request, snapshot)}",
                conflict=appt,
            )
    return None


def _check_exclusive(
    request: SlotRequest,
    snapshot: SchedulingSnapshot,
    in_slot: list[BookedAppointment],
) -> SlotDecision | None:
    clinic = snapshot.clinic
    candidate_exclusive = clinic.is_exclusive(request.treatment_type)

    for appt in in_slot:
        existing_exclusive = clinic.is_exclusive(appt.treatment_type)
        if not (candidate_exclusive or existing_exclusive):
            continue

        if existing_exclusive:
            message = (
                f"{_practitioner_label(request, snapshot)} already has a "
                f"'{appt.treatment_type}' appointment at {_slot_label(request)} "
                f"(sub-slot {appt.sub_slot}), which needs the whole slot"
            )
        else:
            message = (
                f"'{request.treatment_type}' needs the whole slot, but "
                f"{_practitioner_label(request, snapshot)} already has a "
                f"'{appt.treatment_type}' appointment at {_slot_label(request)} "
                f"(sub-slot {appt.sub_slot})"
            )
        return SlotDecision.reject(
            RejectReason.EXCLUSIVE_TREATMENT_CONFLICT, message, conflict=appt
        )

    return None


def resolve_slot(request: SlotRequest, snapshot: SchedulingSnapshot) -> SlotDecision:
    """
    Evaluate a single booking request against a scheduling snapshot.

    Args:
        request: candidate booking
        snapshot: clinic settings, windows, exceptions and existing appointments

    Returns:
        SlotDecision: accepted, or rejected with the first failing reason
    """
    decision = _check_workday(request, snapshot)
    if decision:
        return decision

    exceptions = _exceptions_for(request, snapshot.exceptions)

    decision = _check_blocks(request, snapshot, exceptions)
    if decision:
        return decision

    decision = _check_availability(request, snapshot, exceptions)
    if decision:
        return decision

    in_slot = _active_in_slot(request, snapshot)

    decision = _check_same_slot(request, snapshot, in_slot)
    if decision:
        return decision

    decision = _check_exclusive(request, snapshot, in_slot)
    if decision:
        return decision

    return SlotDecision.accept()


def resolve_batch(
    requests: Sequence[SlotRequest],
    snapshot: SchedulingSnapshot,
    provisional: bool = True,
) -> list[SlotDecision]:
    """
    Evaluate several booking requests, in order.

    With ``provisional`` on, every accepted request occupies its sub-slot for
    the requests after it, so two candidates of the same batch cannot book
    the same sub-slot or break exclusivity against each other. With it off,
    each request is checked against the persisted appointments only.

    Returns:
        list[SlotDecision]: one decision per request, same order
    """
    decisions = []
    current = snapshot

    for request in requests:
        decision = resolve_slot(request, current)
        decisions.append(decision)

        if decision.accepted and provisional:
            current = current.with_appointment(
                BookedAppointment(
                    clinic_id=request.clinic_id,
                    practitioner_id=request.practitioner_id,
                    date=request.date,
                    start_time=request.start_time,
                    sub_slot=request.sub_slot,
                    treatment_type=request.treatment_type,
                )
            )

    return decisions
