"""End-of-day job: mark past ``scheduled`` appointments as ``no_show``.

Run it once a day after closing time, e.g. from cron::

    30 23 * * * cd /srv/clinic-agenda && python scripts/auto_mark_no_show.py

Pass a clinic id to sweep a single clinic.
"""

import asyncio
import sys
from uuid import UUID

import structlog

from app.database import AsyncSessionLocal, engine
from app.middleware.logging import configure_logging
from app.services.appointment_service import AppointmentService

logger = structlog.get_logger()


async def run(clinic_id: UUID | None = None) -> int:
    """Run the sweep and return the number of updated appointments."""
    try:
        async with AsyncSessionLocal() as session:
            return await AppointmentService(session).mark_past_no_shows(clinic_id=clinic_id)
    finally:
        await engine.dispose()


def main() -> int:
    configure_logging()

    clinic_id = None
    if len(sys.argv) > 1:
        try:
            clinic_id = UUID(sys.argv[1])
        except ValueError:
            print(f"Invalid clinic id: {sys.argv[1]}", file=sys.stderr)
            print("Usage: python scripts/auto_mark_no_show.py [clinic_id]")
            return 2

    try:
        updated = asyncio.run(run(clinic_id))
    except Exception as e:
        logger.error("no_show_sweep_failed", error=str(e))
        return 1

    print(f"✓ Marked {updated} appointment(s) as no-show")
    return 0


if __name__ == "__main__":
    sys.exit(main())
