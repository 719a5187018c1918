"""
Scheduling core.

- Snapshot types passed to the resolver (snapshot.py)
- Slot availability resolver (resolver.py)
- Time and calendar helpers (timeutils.py)
"""

from app.scheduling.resolver import RejectReason, SlotDecision, resolve_batch, resolve_slot
from app.scheduling.snapshot import (
    DEFAULT_EXCLUSIVE_TREATMENTS,
    AppointmentStatus,
    AvailabilityWindow,
    BookedAppointment,
    ClinicSchedule,
    ExceptionType,
    ScheduleException,
    SchedulingSnapshot,
    SlotRequest,
)

__all__ = [
    "DEFAULT_EXCLUSIVE_TREATMENTS",
    "AppointmentStatus",
    "AvailabilityWindow",
    "BookedAppointment",
    "ClinicSchedule",
    "ExceptionType",
    "RejectReason",
    "ScheduleException",
    "SchedulingSnapshot",
    "SlotDecision",
    "SlotRequest",
    "resolve_batch",
    "resolve_slot",
]
