"""Tests for the patient portal endpoints."""

import pytest
from conftest import FakeGoogleCalendar, InMemoryDocumentStore
from httpx import AsyncClient

from medilink.schemas.appointments import (
    Appointment,
    AppointmentScheduleRequest,
    ClinicianIdentity,
)
from medilink.schemas.patients import PATIENT_ROLE
from medilink.services.scheduling_service import SchedulingService


async def book(
    scheduling_service: SchedulingService,
    clinician: ClinicianIdentity,
    data: dict,
) -> Appointment:
    return (await scheduling_service.schedule(clinician, AppointmentScheduleRequest(**data)))[0]


@pytest.mark.asyncio
async def test_list_my_appointments(
    patient_client: AsyncClient,
    scheduling_service: SchedulingService,
    store: InMemoryDocumentStore,
    clinician: ClinicianIdentity,
    sample_schedule_data: dict,
) -> None:
    """Test a patient only sees appointments booked for them, most recent first."""
    await store.set(
        "users",
        "patient-luis",
        {"full_name": "Luis Rojas", "email": "luis@example.com", "role": PATIENT_ROLE},
    )
    first = await book(scheduling_service, clinician, sample_schedule_data)
    later = await book(
        scheduling_service,
        clinician,
        {
            **sample_schedule_data,
            "start": "2025-04-01T09:00:00-05:00",
            "end": "2025-04-01T09:30:00-05:00",
        },
    )
    await book(
        scheduling_service, clinician, {**sample_schedule_data, "patient_id": "patient-luis"}
    )

    response = await patient_client.get("/api/v1/portal/appointments")

    assert response.status_code == 200
    assert [item["id"] for item in response.json()] == [later.id, first.id]


@pytest.mark.asyncio
async def test_confirm_my_appointment(
    patient_client: AsyncClient,
    connected,
    scheduling_service: SchedulingService,
    google_calendar: FakeGoogleCalendar,
    clinician: ClinicianIdentity,
    sample_schedule_data: dict,
) -> None:
    sample_schedule_data["status"] = "scheduled"
    created = await book(scheduling_service, clinician, sample_schedule_data)

    response = await patient_client.post(f"/api/v1/portal/appointments/{created.id}/confirm")

    assert response.status_code == 200
    assert response.json()["status"] == "confirmed"
    assert google_calendar.methods() == ["POST", "PUT"]


@pytest.mark.asyncio
async def test_cancel_my_appointment_updates_calendar(
    patient_client: AsyncClient,
    connected,
    scheduling_service: SchedulingService,
    google_calendar: FakeGoogleCalendar,
    clinician: ClinicianIdentity,
    sample_schedule_data: dict,
) -> None:
    created = await book(scheduling_service, clinician, sample_schedule_data)

    response = await patient_client.post(f"/api/v1/portal/appointments/{created.id}/cancel")

    assert response.status_code == 200
    assert response.json()["status"] == "cancelled"
    assert google_calendar.events[created.google_event_id]["status"] == "cancelled"

    fetched = await patient_client.get(f"/api/v1/portal/appointments/{created.id}")
    assert fetched.status_code == 200
    assert fetched.json()["status"] == "cancelled"


@pytest.mark.asyncio
async def test_someone_elses_appointment_forbidden(
    patient_client: AsyncClient,
    scheduling_service: SchedulingService,
    store: InMemoryDocumentStore,
    clinician: ClinicianIdentity,
    sample_schedule_data: dict,
) -> None:
    await store.set(
        "users",
        "patient-luis",
        {"full_name": "Luis Rojas", "email": "luis@example.com", "role": PATIENT_ROLE},
    )
    other = await book(
        scheduling_service, clinician, {**sample_schedule_data, "patient_id": "patient-luis"}
    )

    for response in (
        await patient_client.get(f"/api/v1/portal/appointments/{other.id}"),
        await patient_client.post(f"/api/v1/portal/appointments/{other.id}/cancel"),
        await patient_client.post(f"/api/v1/portal/appointments/{other.id}/confirm"),
    ):
        assert response.status_code == 403

    unchanged = await scheduling_service.appointments.get(other.id)
    assert unchanged.status == "confirmed"


@pytest.mark.asyncio
async def test_missing_appointment(patient_client: AsyncClient) -> None:
    response = await patient_client.post("/api/v1/portal/appointments/nope/cancel")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_portal_requires_patient_account(
    patient_client: AsyncClient,
    store: InMemoryDocumentStore,
) -> None:
    """Test a signed-in user without a patient directory entry is refused."""
    await store.set("users", "patient-ana", {"full_name": "Ana Torres", "role": "DOCTOR"})

    response = await patient_client.get("/api/v1/portal/appointments")

    assert response.status_code == 403
    assert response.json()["message"] == "Patient access required"
