"""Tests for appointment endpoints."""

from datetime import date, time, timedelta
from uuid import UUID, uuid4

import pytest
from httpx import AsyncClient
from sqlalchemy import insert, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.endpoints import health
from app.config import settings
from app.models import appointments, clinic_settings
from app.scheduling import SlotDecision


@pytest.mark.asyncio
async def test_health_check(client: AsyncClient) -> None:
    """Test health check endpoint."""
    response = await client.get("/api/v1/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert "version" in data


@pytest.mark.asyncio
async def test_detailed_health_reports_unreachable_store(
    client: AsyncClient, monkeypatch: pytest.MonkeyPatch
) -> None:
    """Test readiness turns degraded when the database is down."""

    async def unreachable() -> bool:
        return False

    monkeypatch.setattr(health, "check_database_connection", unreachable)

    response = await client.get("/api/v1/health/detailed")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "degraded"
    assert data["database"] == "unhealthy"
    assert data["timezone"] == settings.clinic_timezone


@pytest.mark.asyncio
async def test_create_appointment(
    client: AsyncClient,
    clinic_url: str,
    admin_headers: dict,
    booking_data: dict,
) -> None:
    """Test creating an appointment."""
    response = await client.post(
        f"{clinic_url}/appointments/",
        json=booking_data,
        headers=admin_headers,
    )
    assert response.status_code == 201
    data = response.json()
    assert data["practitioner_id"] == booking_data["practitioner_id"]
    assert data["start_time"] == "10:00:00"
    assert data["sub_slot"] == 1
    assert data["status"] == "scheduled"
    assert "id" in data


@pytest.mark.asyncio
async def test_same_sub_slot_twice_is_conflict(
    client: AsyncClient,
    clinic_url: str,
    admin_headers: dict,
    booking_data: dict,
) -> None:
    """Test the second booking of a sub-slot is rejected with SlotOccupied."""
    first = await client.post(
        f"{clinic_url}/appointments/", json=booking_data, headers=admin_headers
    )
    assert first.status_code == 201

    second = await client.post(
        f"{clinic_url}/appointments/",
        json={**booking_data, "patient_id": str(uuid4())},
        headers=admin_headers,
    )
    assert second.status_code == 409
    data = second.json()
    assert data["error"] == "SlotRejectedException"
    assert data["reason"] == "SlotOccupied"
    assert "Sub-slot 1" in data["message"]


@pytest.mark.asyncio
async def test_other_sub_slot_is_accepted(
    client: AsyncClient,
    clinic_url: str,
    admin_headers: dict,
    booking_data: dict,
) -> None:
    """Test regular treatments can share a slot on different sub-slots."""
    await client.post(f"{clinic_url}/appointments/", json=booking_data, headers=admin_headers)

    response = await client.post(
        f"{clinic_url}/appointments/",
        json={**booking_data, "sub_slot": 2},
        headers=admin_headers,
    )
    assert response.status_code == 201


@pytest.mark.asyncio
async def test_exclusive_treatment_conflict(
    client: AsyncClient,
    clinic_url: str,
    admin_headers: dict,
    booking_data: dict,
) -> None:
    """Test an exclusive treatment takes the whole slot."""
    await client.post(
        f"{clinic_url}/appointments/",
        json={**booking_data, "treatment_type": "Drenaje"},
        headers=admin_headers,
    )

    response = await client.post(
        f"{clinic_url}/appointments/",
        json={**booking_data, "sub_slot": 3, "treatment_type": "fkt"},
        headers=admin_headers,
    )
    assert response.status_code == 409
    assert response.json()["reason"] == "ExclusiveTreatmentConflict"


@pytest.mark.asyncio
async def test_outside_workday(
    client: AsyncClient,
    clinic_url: str,
    admin_headers: dict,
    booking_data: dict,
) -> None:
    """Test a start after the latest allowed start time is rejected."""
    response = await client.post(
        f"{clinic_url}/appointments/",
        json={**booking_data, "start_time": "19:30"},
        headers=admin_headers,
    )
    assert response.status_code == 409
    assert response.json()["reason"] == "OutsideWorkday"


@pytest.mark.asyncio
async def test_sub_slot_above_clinic_limit(
    client: AsyncClient,
    clinic_url: str,
    admin_headers: dict,
    booking_data: dict,
) -> None:
    """Test the sub-slot must be within the clinic's sub-slots per block."""
    response = await client.post(
        f"{clinic_url}/appointments/",
        json={**booking_data, "sub_slot": 6},
        headers=admin_headers,
    )
    assert response.status_code == 422

    response = await client.post(
        f"{clinic_url}/appointments/",
        json={**booking_data, "sub_slot": 0},
        headers=admin_headers,
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_unknown_practitioner(
    client: AsyncClient,
    clinic_url: str,
    admin_headers: dict,
    booking_data: dict,
) -> None:
    """Test booking a practitioner of no clinic returns 404."""
    response = await client.post(
        f"{clinic_url}/appointments/",
        json={**booking_data, "practitioner_id": str(uuid4())},
        headers=admin_headers,
    )
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_cancelled_appointment_frees_slot(
    client: AsyncClient,
    clinic_url: str,
    admin_headers: dict,
    booking_data: dict,
) -> None:
    """Test a cancelled booking no longer holds its sub-slot."""
    create_response = await client.post(
        f"{clinic_url}/appointments/", json=booking_data, headers=admin_headers
    )
    appointment_id = create_response.json()["id"]

    cancel_response = await client.patch(
        f"{clinic_url}/appointments/{appointment_id}/status",
        json={"status": "cancelled", "notes": "Patient called"},
        headers=admin_headers,
    )
    assert cancel_response.status_code == 200
    data = cancel_response.json()
    assert data["status"] == "cancelled"
    assert data["cancelled_at"] is not None
    assert data["notes"] == "Patient called"

    rebook_response = await client.post(
        f"{clinic_url}/appointments/", json=booking_data, headers=admin_headers
    )
    assert rebook_response.status_code == 201


@pytest.mark.asyncio
async def test_status_transitions(
    client: AsyncClient,
    clinic_url: str,
    receptionist_headers: dict,
    booking_data: dict,
) -> None:
    """Test only scheduled appointments can change status."""
    create_response = await client.post(
        f"{clinic_url}/appointments/", json=booking_data, headers=receptionist_headers
    )
    appointment_id = create_response.json()["id"]
    status_url = f"{clinic_url}/appointments/{appointment_id}/status"

    response = await client.patch(
        status_url, json={"status": "completed"}, headers=receptionist_headers
    )
    assert response.status_code == 200
    assert response.json()["status"] == "completed"

    response = await client.patch(
        status_url, json={"status": "cancelled"}, headers=receptionist_headers
    )
    assert response.status_code == 400

    response = await client.patch(
        status_url, json={"status": "scheduled"}, headers=receptionist_headers
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_check_slot(
    client: AsyncClient,
    clinic_url: str,
    admin_headers: dict,
    booking_data: dict,
) -> None:
    """Test the slot check reports the decision without booking."""
    check = {key: value for key, value in booking_data.items() if key != "patient_id"}
    check_url = f"{clinic_url}/appointments/check"

    response = await client.post(check_url, json=check, headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["accepted"] is True

    create_response = await client.post(
        f"{clinic_url}/appointments/", json=booking_data, headers=admin_headers
    )
    appointment_id = create_response.json()["id"]

    response = await client.post(check_url, json=check, headers=admin_headers)
    data = response.json()
    assert data["accepted"] is False
    assert data["reason"] == "SlotOccupied"
    assert data["conflict_appointment_id"] == appointment_id

    # Moving the same appointment onto its own slot is fine
    response = await client.post(
        check_url,
        json={**check, "exclude_appointment_id": appointment_id},
        headers=admin_headers,
    )
    assert response.json()["accepted"] is True


@pytest.mark.asyncio
async def test_batch_rejects_duplicates_within_batch(
    client: AsyncClient,
    clinic_url: str,
    admin_headers: dict,
    booking_data: dict,
) -> None:
    """Test a batch cannot double-book a sub-slot against itself."""
    response = await client.post(
        f"{clinic_url}/appointments/batch",
        json={
            "items": [
                booking_data,
                {**booking_data, "patient_id": str(uuid4())},
                {**booking_data, "start_time": "10:30"},
            ]
        },
        headers=admin_headers,
    )
    assert response.status_code == 201
    data = response.json()
    assert len(data["created"]) == 2
    assert len(data["rejected"]) == 1
    assert data["rejected"][0]["index"] == 1
    assert data["rejected"][0]["reason"] == "SlotOccupied"

    list_response = await client.get(f"{clinic_url}/appointments/", headers=admin_headers)
    assert list_response.json()["total"] == 2


@pytest.mark.asyncio
async def test_insert_race_reported_as_slot_occupied(
    client: AsyncClient,
    clinic_url: str,
    admin_headers: dict,
    booking_data: dict,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    """Test the unique index turns a lost race into SlotOccupied."""
    await client.post(f"{clinic_url}/appointments/", json=booking_data, headers=admin_headers)

    # Simulate a check that ran before the other booking committed
    monkeypatch.setattr(
        "app.services.appointment_service.resolve_slot",
        lambda request, snapshot: SlotDecision.accept(),
    )

    response = await client.post(
        f"{clinic_url}/appointments/",
        json={**booking_data, "patient_id": str(uuid4())},
        headers=admin_headers,
    )
    assert response.status_code == 409
    assert response.json()["reason"] == "SlotOccupied"

    list_response = await client.get(f"{clinic_url}/appointments/", headers=admin_headers)
    assert list_response.json()["total"] == 1


@pytest.mark.asyncio
async def test_list_appointments_with_filters(
    client: AsyncClient,
    clinic_url: str,
    admin_headers: dict,
    booking_data: dict,
    other_practitioner_id: UUID,
    future_monday: date,
) -> None:
    """Test listing appointments."""
    await client.post(f"{clinic_url}/appointments/", json=booking_data, headers=admin_headers)
    await client.post(
        f"{clinic_url}/appointments/",
        json={**booking_data, "practitioner_id": str(other_practitioner_id)},
        headers=admin_headers,
    )
    next_day = (future_monday + timedelta(days=1)).isoformat()
    await client.post(
        f"{clinic_url}/appointments/",
        json={**booking_data, "date": next_day},
        headers=admin_headers,
    )

    response = await client.get(f"{clinic_url}/appointments/", headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["total"] == 3

    response = await client.get(
        f"{clinic_url}/appointments/",
        params={"practitioner_id": booking_data["practitioner_id"]},
        headers=admin_headers,
    )
    assert response.json()["total"] == 2

    response = await client.get(
        f"{clinic_url}/appointments/",
        params={"from_date": next_day, "to_date": next_day},
        headers=admin_headers,
    )
    data = response.json()
    assert data["total"] == 1
    assert data["items"][0]["date"] == next_day

    response = await client.get(
        f"{clinic_url}/appointments/",
        params={"status": "cancelled"},
        headers=admin_headers,
    )
    assert response.json()["total"] == 0


@pytest.mark.asyncio
async def test_patient_appointments(
    client: AsyncClient,
    clinic_url: str,
    admin_headers: dict,
    booking_data: dict,
) -> None:
    """Test listing the appointments of one patient."""
    await client.post(f"{clinic_url}/appointments/", json=booking_data, headers=admin_headers)
    await client.post(
        f"{clinic_url}/appointments/",
        json={**booking_data, "sub_slot": 2, "patient_id": str(uuid4())},
        headers=admin_headers,
    )

    response = await client.get(
        f"{clinic_url}/patients/{booking_data['patient_id']}/appointments",
        headers=admin_headers,
    )
    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 1
    assert data["items"][0]["patient_id"] == booking_data["patient_id"]


@pytest.mark.asyncio
async def test_get_and_delete_appointment(
    client: AsyncClient,
    clinic_url: str,
    receptionist_headers: dict,
    practitioner_headers: dict,
    booking_data: dict,
) -> None:
    """Test getting and deleting a specific appointment."""
    create_response = await client.post(
        f"{clinic_url}/appointments/", json=booking_data, headers=receptionist_headers
    )
    appointment_id = create_response.json()["id"]

    response = await client.get(
        f"{clinic_url}/appointments/{appointment_id}", headers=receptionist_headers
    )
    assert response.status_code == 200
    assert response.json()["id"] == appointment_id

    response = await client.delete(
        f"{clinic_url}/appointments/{appointment_id}", headers=practitioner_headers
    )
    assert response.status_code == 403

    response = await client.delete(
        f"{clinic_url}/appointments/{appointment_id}", headers=receptionist_headers
    )
    assert response.status_code == 204

    response = await client.get(
        f"{clinic_url}/appointments/{appointment_id}", headers=receptionist_headers
    )
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_requires_authentication(
    client: AsyncClient,
    clinic_url: str,
    booking_data: dict,
) -> None:
    """Test appointment routes reject missing or invalid tokens."""
    response = await client.post(f"{clinic_url}/appointments/", json=booking_data)
    assert response.status_code == 401

    response = await client.get(
        f"{clinic_url}/appointments/", headers={"Authorization": "Bearer not-a-token"}
    )
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_other_clinic_is_forbidden(
    client: AsyncClient,
    clinic_url: str,
    other_clinic_headers: dict,
    booking_data: dict,
) -> None:
    """Test a token of another clinic cannot use this clinic's routes."""
    response = await client.post(
        f"{clinic_url}/appointments/", json=booking_data, headers=other_clinic_headers
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_practitioner_books_only_own_agenda(
    client: AsyncClient,
    clinic_url: str,
    practitioner_headers: dict,
    booking_data: dict,
    other_practitioner_id: UUID,
) -> None:
    """Test a practitioner token can only book its own practitioner."""
    response = await client.post(
        f"{clinic_url}/appointments/", json=booking_data, headers=practitioner_headers
    )
    assert response.status_code == 201

    response = await client.post(
        f"{clinic_url}/appointments/",
        json={**booking_data, "practitioner_id": str(other_practitioner_id)},
        headers=practitioner_headers,
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_unlinked_practitioner_cannot_book(
    client: AsyncClient,
    clinic_url: str,
    admin_headers: dict,
    unlinked_practitioner_headers: dict,
    booking_data: dict,
) -> None:
    """Test a practitioner token without a practitioner id is refused on every agenda."""
    response = await client.post(
        f"{clinic_url}/appointments/", json=booking_data, headers=unlinked_practitioner_headers
    )
    assert response.status_code == 403

    response = await client.post(
        f"{clinic_url}/appointments/check", json=booking_data, headers=unlinked_practitioner_headers
    )
    assert response.status_code == 403

    response = await client.post(
        f"{clinic_url}/appointments/", json=booking_data, headers=admin_headers
    )
    appointment_id = response.json()["id"]

    response = await client.patch(
        f"{clinic_url}/appointments/{appointment_id}/status",
        json={"status": "cancelled"},
        headers=unlinked_practitioner_headers,
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_no_show_sweep(
    client: AsyncClient,
    db_session: AsyncSession,
    clinic_url: str,
    clinic_id: UUID,
    practitioner_id: UUID,
    admin_headers: dict,
    receptionist_headers: dict,
    booking_data: dict,
) -> None:
    """Test past scheduled appointments are marked as no-show."""
    past_id = uuid4()
    await db_session.execute(
        insert(appointments).values(
            id=past_id,
            clinic_id=clinic_id,
            practitioner_id=practitioner_id,
            date=date.today() - timedelta(days=3),
            start_time=time(10, 0),
            sub_slot=1,
            treatment_type="fkt",
            status="scheduled",
        )
    )
    await db_session.commit()
    await client.post(f"{clinic_url}/appointments/", json=booking_data, headers=admin_headers)

    response = await client.post(
        f"{clinic_url}/appointments/no-show-sweep", headers=receptionist_headers
    )
    assert response.status_code == 403

    response = await client.post(f"{clinic_url}/appointments/no-show-sweep", headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["updated"] == 1

    result = await db_session.execute(
        select(appointments.c.id, appointments.c.status).order_by(appointments.c.date)
    )
    statuses = {row.id: row.status for row in result}
    assert statuses.pop(past_id) == "no_show"
    assert list(statuses.values()) == ["scheduled"]

    # Running it again changes nothing
    response = await client.post(f"{clinic_url}/appointments/no-show-sweep", headers=admin_headers)
    assert response.json()["updated"] == 0


@pytest.mark.asyncio
async def test_no_show_sweep_disabled_for_clinic(
    client: AsyncClient,
    db_session: AsyncSession,
    clinic_url: str,
    clinic_id: UUID,
    practitioner_id: UUID,
    admin_headers: dict,
) -> None:
    """Test clinics that turned the sweep off are skipped."""
    await db_session.execute(
        insert(clinic_settings).values(
            clinic_id=clinic_id,
            workday_start=time(8, 0),
            workday_end=time(19, 0),
            min_slot_minutes=30,
            sub_slots_per_block=5,
            timezone="America/Argentina/Buenos_Aires",
            auto_mark_no_show=False,
        )
    )
    await db_session.execute(
        insert(appointments).values(
            clinic_id=clinic_id,
            practitioner_id=practitioner_id,
            date=date.today() - timedelta(days=3),
            start_time=time(10, 0),
            sub_slot=1,
            treatment_type="fkt",
            status="scheduled",
        )
    )
    await db_session.commit()

    response = await client.post(f"{clinic_url}/appointments/no-show-sweep", headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["updated"] == 0


@pytest.mark.asyncio
async def test_day_agenda(
    client: AsyncClient,
    clinic_url: str,
    admin_headers: dict,
    booking_data: dict,
) -> None:
    """Test the day agenda grid shows bookings and bookable slots."""
    await client.post(f"{clinic_url}/appointments/", json=booking_data, headers=admin_headers)
    await client.post(
        f"{clinic_url}/appointments/",
        json={**booking_data, "start_time": "11:00", "treatment_type": "masaje"},
        headers=admin_headers,
    )

    response = await client.get(
        f"{clinic_url}/appointments/agenda",
        params={"practitioner_id": booking_data["practitioner_id"], "date": booking_data["date"]},
        headers=admin_headers,
    )
    assert response.status_code == 200
    data = response.json()
    assert data["slot_minutes"] == 30

    slots = {slot["start_time"]: slot for slot in data["slots"]}
    # 08:00 to 19:00 inclusive, every 30 minutes
    assert len(slots) == 23
    assert "19:00:00" in slots

    ten = slots["10:00:00"]
    assert ten["bookable"] is True
    assert len(ten["sub_slots"]) == 5
    assert ten["sub_slots"][0]["treatment_type"] == "consulta"
    assert ten["sub_slots"][1]["appointment_id"] is None

    eleven = slots["11:00:00"]
    assert eleven["bookable"] is False
    assert eleven["reason"] == "ExclusiveTreatmentConflict"
