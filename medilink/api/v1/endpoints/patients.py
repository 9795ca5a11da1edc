"""Patient directory endpoints."""

from fastapi import APIRouter, status

from medilink.dependencies import (
    AppointmentServiceDep,
    ConsultationServiceDep,
    CurrentClinician,
    PatientServiceDep,
)
from medilink.schemas.appointments import Appointment
from medilink.schemas.consultations import Consultation
from medilink.schemas.patients import Patient, PatientCreate

router = APIRouter()


@router.get(
    "/",
    response_model=list[Patient],
    status_code=status.HTTP_200_OK,
    tags=["Patients"],
    summary="List patients",
)
async def list_patients(
    current_clinician: CurrentClinician,
    patients: PatientServiceDep,
) -> list[Patient]:
    """List the patient directory, by name."""
    return await patients.list_patients()


@router.post(
    "/",
    response_model=Patient,
    status_code=status.HTTP_201_CREATED,
    tags=["Patients"],
    summary="Register patient",
)
async def create_patient(
    data: PatientCreate,
    current_clinician: CurrentClinician,
    patients: PatientServiceDep,
) -> Patient:
    """Register a patient with a sign-in account."""
    return await patients.create_patient(data)


@router.get(
    "/{patient_id}",
    response_model=Patient,
    status_code=status.HTTP_200_OK,
    tags=["Patients"],
    summary="Get patient by ID",
)
async def get_patient(
    patient_id: str,
    current_clinician: CurrentClinician,
    patients: PatientServiceDep,
) -> Patient:
    return await patients.get_patient(patient_id)


@router.get(
    "/{patient_id}/appointments",
    response_model=list[Appointment],
    status_code=status.HTTP_200_OK,
    tags=["Patients"],
    summary="Patient appointment history",
)
async def list_patient_appointments(
    patient_id: str,
    current_clinician: CurrentClinician,
    patients: PatientServiceDep,
    appointments: AppointmentServiceDep,
) -> list[Appointment]:
    """List a patient's appointments, most recent first."""
    await patients.get_patient(patient_id)
    return await appointments.list_for_patient(patient_id)


@router.get(
    "/{patient_id}/consultations",
    response_model=list[Consultation],
    status_code=status.HTTP_200_OK,
    tags=["Patients"],
    summary="Patient consultation history",
)
async def list_patient_consultations(
    patient_id: str,
    current_clinician: CurrentClinician,
    patients: PatientServiceDep,
    consultations: ConsultationServiceDep,
) -> list[Consultation]:
    """List a patient's consultations, most recent visit first."""
    await patients.get_patient(patient_id)
    return await consultations.list_for_patient(patient_id)
