"""Consultation endpoints."""

from fastapi import APIRouter, status

from medilink.core.exceptions import ForbiddenException
from medilink.dependencies import ConsultationServiceDep, CurrentClinician
from medilink.schemas.consultations import Consultation, ConsultationUpdate

router = APIRouter()


@router.put(
    "/{consultation_id}",
    response_model=Consultation,
    status_code=status.HTTP_200_OK,
    tags=["Consultations"],
    summary="Update consultation",
)
async def update_consultation(
    consultation_id: str,
    data: ConsultationUpdate,
    current_clinician: CurrentClinician,
    consultations: ConsultationServiceDep,
) -> Consultation:
    """
    Update a consultation note written by the signed-in clinician.

    Raises:
        NotFoundException: If consultation not found
        ForbiddenException: If another clinician wrote it
    """
    existing = await consultations.get(consultation_id)
    if existing.doctor_id != current_clinician.uid:
        raise ForbiddenException("Access denied to this consultation")
    return await consultations.update(consultation_id, data)
