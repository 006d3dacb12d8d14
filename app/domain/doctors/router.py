"""Doctors router - FastAPI endpoints for doctor management"""

import logging

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from ...auth import get_current_clinic_user, require_admin
from ...database import get_db
from ...models import User
from ..scheduling.schemas import AppointmentResponse
from ..scheduling.service import build_appointment_response
from .schemas import DoctorResponse, DoctorUpsert
from .service import DoctorService, build_doctor_response

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/doctors", tags=["Doctors"])


def get_doctor_service(db: Session = Depends(get_db)) -> DoctorService:
    """Dependency injection for DoctorService"""
    return DoctorService(db)


@router.get("", response_model=list[DoctorResponse])
async def get_doctors(
    current_user: User = Depends(get_current_clinic_user),
    service: DoctorService = Depends(get_doctor_service),
):
    """Get all doctors of the clinic"""
    return [build_doctor_response(d) for d in service.get_doctors(current_user)]


@router.get("/me")
async def get_my_doctor_profile(
    current_user: User = Depends(get_current_clinic_user),
    service: DoctorService = Depends(get_doctor_service),
):
    """Doctor record linked to the logged-in user"""
    doctor = service.get_current_doctor(current_user)
    return {
        "id": doctor.id,
        "name": doctor.name,
        "specialty": doctor.specialty,
        "email": doctor.email,
    }


@router.get("/{doctor_id}", response_model=DoctorResponse)
async def get_doctor(
    doctor_id: str,
    current_user: User = Depends(get_current_clinic_user),
    service: DoctorService = Depends(get_doctor_service),
):
    return build_doctor_response(service.get_doctor(doctor_id, current_user))


@router.get("/{doctor_id}/appointments", response_model=list[AppointmentResponse])
async def get_doctor_appointments(
    doctor_id: str,
    current_user: User = Depends(get_current_clinic_user),
    service: DoctorService = Depends(get_doctor_service),
):
    appointments = service.get_doctor_appointments(doctor_id, current_user)
    return [build_appointment_response(a) for a in appointments]


@router.post("", response_model=DoctorResponse, status_code=201)
async def create_doctor(
    data: DoctorUpsert,
    request: Request,
    current_user: User = Depends(require_admin),
    service: DoctorService = Depends(get_doctor_service),
):
    """Create a doctor; a login with a temporary password is created too"""
    return build_doctor_response(service.create_doctor(data, current_user, request))


@router.put("/{doctor_id}", response_model=DoctorResponse)
async def update_doctor(
    doctor_id: str,
    data: DoctorUpsert,
    request: Request,
    current_user: User = Depends(require_admin),
    service: DoctorService = Depends(get_doctor_service),
):
    return build_doctor_response(service.update_doctor(doctor_id, data, current_user, request))


@router.delete("/{doctor_id}")
async def delete_doctor(
    doctor_id: str,
    request: Request,
    current_user: User = Depends(require_admin),
    service: DoctorService = Depends(get_doctor_service),
):
    return service.delete_doctor(doctor_id, current_user, request)
