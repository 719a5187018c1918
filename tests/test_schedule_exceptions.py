"""Tests for schedule exception and holiday endpoints."""

from datetime import date, timedelta
from uuid import UUID

import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_practitioner_block_rejects_booking(
    client: AsyncClient,
    clinic_url: str,
    admin_headers: dict,
    receptionist_headers: dict,
    practitioner_id: UUID,
    booking_data: dict,
) -> None:
    """Test a full-day block wins over availability."""
    await client.put(
        f"{clinic_url}/practitioners/{practitioner_id}/availability",
        json={"windows": [{"weekday": 1, "from_time": "08:00", "to_time": "18:00"}]},
        headers=admin_headers,
    )
    response = await client.post(
        f"{clinic_url}/exceptions",
        json={
            "practitioner_id": str(practitioner_id),
            "date": booking_data["date"],
            "type": "practitioner_block",
            "reason": "Congreso",
        },
        headers=receptionist_headers,
    )
    assert response.status_code == 201
    assert response.json()["from_time"] is None

    response = await client.post(
        f"{clinic_url}/appointments/", json=booking_data, headers=receptionist_headers
    )
    assert response.status_code == 409
    data = response.json()
    assert data["reason"] == "PractitionerBlocked"
    assert data["detail"] == "Congreso"


@pytest.mark.asyncio
async def test_ranged_block(
    client: AsyncClient,
    clinic_url: str,
    admin_headers: dict,
    practitioner_id: UUID,
    booking_data: dict,
) -> None:
    """Test a block with times only covers its range."""
    await client.post(
        f"{clinic_url}/exceptions",
        json={
            "practitioner_id": str(practitioner_id),
            "date": booking_data["date"],
            "from_time": "09:00",
            "to_time": "10:30",
            "type": "practitioner_block",
        },
        headers=admin_headers,
    )

    response = await client.post(
        f"{clinic_url}/appointments/", json=booking_data, headers=admin_headers
    )
    assert response.json()["reason"] == "PractitionerBlocked"

    response = await client.post(
        f"{clinic_url}/appointments/",
        json={**booking_data, "start_time": "10:30"},
        headers=admin_headers,
    )
    assert response.status_code == 201


@pytest.mark.asyncio
async def test_clinic_closure_and_extended_hours(
    client: AsyncClient,
    clinic_url: str,
    admin_headers: dict,
    practitioner_id: UUID,
    booking_data: dict,
    future_monday: date,
) -> None:
    """Test closures block every practitioner and extended hours open extra time."""
    await client.put(
        f"{clinic_url}/practitioners/{practitioner_id}/availability",
        json={"windows": [{"weekday": 1, "from_time": "08:00", "to_time": "12:00"}]},
        headers=admin_headers,
    )
    await client.post(
        f"{clinic_url}/exceptions",
        json={
            "practitioner_id": str(practitioner_id),
            "date": booking_data["date"],
            "from_time": "15:00",
            "to_time": "17:00",
            "type": "extended_hours",
        },
        headers=admin_headers,
    )

    response = await client.post(
        f"{clinic_url}/appointments/",
        json={**booking_data, "start_time": "15:30"},
        headers=admin_headers,
    )
    assert response.status_code == 201

    next_monday = (future_monday + timedelta(days=7)).isoformat()
    response = await client.post(
        f"{clinic_url}/exceptions",
        json={"date": next_monday, "type": "closed", "reason": "Mudanza"},
        headers=admin_headers,
    )
    assert response.status_code == 201
    assert response.json()["type"] == "clinic_closed"

    response = await client.post(
        f"{clinic_url}/appointments/",
        json={**booking_data, "date": next_monday},
        headers=admin_headers,
    )
    assert response.status_code == 409
    assert response.json()["reason"] == "PractitionerBlocked"


@pytest.mark.asyncio
async def test_invalid_exceptions(
    client: AsyncClient,
    clinic_url: str,
    admin_headers: dict,
    practitioner_id: UUID,
    future_monday: date,
) -> None:
    """Test exception validation rules."""
    base = {"date": future_monday.isoformat()}

    # Block without practitioner
    response = await client.post(
        f"{clinic_url}/exceptions",
        json={**base, "type": "practitioner_block"},
        headers=admin_headers,
    )
    assert response.status_code == 422

    # Only one of the two times
    response = await client.post(
        f"{clinic_url}/exceptions",
        json={**base, "type": "clinic_closed", "from_time": "10:00"},
        headers=admin_headers,
    )
    assert response.status_code == 422

    # Inverted range
    response = await client.post(
        f"{clinic_url}/exceptions",
        json={
            **base,
            "type": "practitioner_block",
            "practitioner_id": str(practitioner_id),
            "from_time": "12:00",
            "to_time": "10:00",
        },
        headers=admin_headers,
    )
    assert response.status_code == 422

    # Extended hours need a range
    response = await client.post(
        f"{clinic_url}/exceptions",
        json={**base, "type": "extended_hours", "practitioner_id": str(practitioner_id)},
        headers=admin_headers,
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_list_and_delete_exceptions(
    client: AsyncClient,
    clinic_url: str,
    admin_headers: dict,
    practitioner_id: UUID,
    other_practitioner_id: UUID,
    future_monday: date,
) -> None:
    """Test listing exceptions by range and practitioner, then deleting one."""
    for pid, offset in ((practitioner_id, 0), (other_practitioner_id, 1), (practitioner_id, 30)):
        await client.post(
            f"{clinic_url}/exceptions",
            json={
                "practitioner_id": str(pid),
                "date": (future_monday + timedelta(days=offset)).isoformat(),
                "type": "practitioner_block",
            },
            headers=admin_headers,
        )

    params = {
        "from_date": future_monday.isoformat(),
        "to_date": (future_monday + timedelta(days=6)).isoformat(),
    }
    response = await client.get(f"{clinic_url}/exceptions", params=params, headers=admin_headers)
    assert response.status_code == 200
    assert len(response.json()) == 2

    response = await client.get(
        f"{clinic_url}/exceptions",
        params={**params, "practitioner_id": str(practitioner_id)},
        headers=admin_headers,
    )
    items = response.json()
    assert len(items) == 1

    response = await client.delete(
        f"{clinic_url}/exceptions/{items[0]['id']}", headers=admin_headers
    )
    assert response.status_code == 204

    response = await client.get(f"{clinic_url}/exceptions", params=params, headers=admin_headers)
    assert len(response.json()) == 1

    response = await client.get(
        f"{clinic_url}/exceptions",
        params={"from_date": params["to_date"], "to_date": params["from_date"]},
        headers=admin_headers,
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_practitioner_blocks_only_self(
    client: AsyncClient,
    clinic_url: str,
    practitioner_headers: dict,
    practitioner_id: UUID,
    other_practitioner_id: UUID,
    future_monday: date,
) -> None:
    """Test practitioners may block their own agenda and nothing else."""
    day = future_monday.isoformat()

    response = await client.post(
        f"{clinic_url}/exceptions",
        json={"practitioner_id": str(practitioner_id), "date": day, "type": "practitioner_block"},
        headers=practitioner_headers,
    )
    assert response.status_code == 201

    response = await client.post(
        f"{clinic_url}/exceptions",
        json={
            "practitioner_id": str(other_practitioner_id),
            "date": day,
            "type": "practitioner_block",
        },
        headers=practitioner_headers,
    )
    assert response.status_code == 403

    response = await client.post(
        f"{clinic_url}/exceptions",
        json={"date": day, "type": "clinic_closed"},
        headers=practitioner_headers,
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_unlinked_practitioner_cannot_block(
    client: AsyncClient,
    clinic_url: str,
    admin_headers: dict,
    unlinked_practitioner_headers: dict,
    other_practitioner_id: UUID,
    future_monday: date,
) -> None:
    """Test a practitioner token without a practitioner id cannot touch any agenda."""
    payload = {
        "practitioner_id": str(other_practitioner_id),
        "date": future_monday.isoformat(),
        "type": "practitioner_block",
    }

    response = await client.post(
        f"{clinic_url}/exceptions", json=payload, headers=unlinked_practitioner_headers
    )
    assert response.status_code == 403

    response = await client.post(f"{clinic_url}/exceptions", json=payload, headers=admin_headers)
    assert response.status_code == 201
    exception_id = response.json()["id"]

    response = await client.delete(
        f"{clinic_url}/exceptions/{exception_id}", headers=unlinked_practitioner_headers
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_holidays(
    client: AsyncClient,
    clinic_url: str,
    admin_headers: dict,
    receptionist_headers: dict,
    booking_data: dict,
    future_monday: date,
) -> None:
    """Test holidays are listed and close the clinic for booking."""
    response = await client.post(
        f"{clinic_url}/holidays",
        json={
            "date": future_monday.isoformat(),
            "name": "Día de la Soberanía",
            "country_code": "AR",
        },
        headers=admin_headers,
    )
    assert response.status_code == 201

    response = await client.post(
        f"{clinic_url}/holidays",
        json={"date": future_monday.isoformat(), "name": "Otro"},
        headers=receptionist_headers,
    )
    assert response.status_code == 403

    response = await client.get(
        f"{clinic_url}/holidays",
        params={"from_date": future_monday.isoformat(), "to_date": future_monday.isoformat()},
        headers=receptionist_headers,
    )
    assert [h["name"] for h in response.json()] == ["Día de la Soberanía"]

    response = await client.post(
        f"{clinic_url}/appointments/", json=booking_data, headers=admin_headers
    )
    assert response.status_code == 409
    data = response.json()
    assert data["reason"] == "PractitionerBlocked"
    assert data["detail"] == "Día de la Soberanía"
