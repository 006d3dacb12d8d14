"""Scheduling router - FastAPI endpoints for appointments and availability"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from ...auth import get_current_clinic_user
from ...database import get_db
from ...models import User
from .schemas import (
    AppointmentActionResponse,
    AppointmentResponse,
    AppointmentStatus,
    AppointmentStatusUpdate,
    AppointmentUpsert,
)
from .service import AppointmentService, build_appointment_response

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/appointments", tags=["Appointments"])

# Links embedded in patient emails and automation messages
public_router = APIRouter(prefix="/api/appointments", tags=["Appointments (public)"])


def get_appointment_service(db: Session = Depends(get_db)) -> AppointmentService:
    """Dependency injection for AppointmentService"""
    return AppointmentService(db)


# ============================================================================
# AVAILABILITY
# ============================================================================


@router.get("/booked-slots", response_model=list[str])
async def get_booked_slots(
    doctorId: Optional[str] = Query(None),
    date: Optional[str] = Query(None),
    current_user: User = Depends(get_current_clinic_user),
    service: AppointmentService = Depends(get_appointment_service),
):
    """Occupied time slots ("HH:MM:SS", local time) of a doctor on a date"""
    return service.get_booked_slots(current_user, doctorId, date)


@router.get("/available-slots", response_model=list[str])
async def get_available_slots(
    doctorId: str = Query(...),
    date: str = Query(...),
    appointmentId: Optional[str] = Query(None),
    current_user: User = Depends(get_current_clinic_user),
    service: AppointmentService = Depends(get_appointment_service),
):
    """Free time slots ("HH:MM", local time); pass appointmentId when editing"""
    return service.get_available_slots(current_user, doctorId, date, appointmentId)


# ============================================================================
# CORE CRUD OPERATIONS
# ============================================================================


@router.get("", response_model=list[AppointmentResponse])
async def get_appointments(
    doctorId: Optional[str] = Query(None),
    patientId: Optional[str] = Query(None),
    status: Optional[AppointmentStatus] = Query(None),
    current_user: User = Depends(get_current_clinic_user),
    service: AppointmentService = Depends(get_appointment_service),
):
    """Get all appointments of the clinic"""
    appointments = service.get_appointments(current_user, doctorId, patientId, status)
    return [build_appointment_response(a) for a in appointments]


@router.get("/{appointment_id}", response_model=AppointmentResponse)
async def get_appointment(
    appointment_id: str,
    current_user: User = Depends(get_current_clinic_user),
    service: AppointmentService = Depends(get_appointment_service),
):
    return build_appointment_response(service.get_appointment(appointment_id, current_user))


@router.post("", response_model=AppointmentResponse, status_code=201)
async def create_appointment(
    data: AppointmentUpsert,
    request: Request,
    current_user: User = Depends(get_current_clinic_user),
    service: AppointmentService = Depends(get_appointment_service),
):
    """Book a new appointment"""
    appointment = await service.create_appointment(data, current_user, request)
    return build_appointment_response(appointment)


@router.put("/{appointment_id}", response_model=AppointmentResponse)
async def update_appointment(
    appointment_id: str,
    data: AppointmentUpsert,
    request: Request,
    current_user: User = Depends(get_current_clinic_user),
    service: AppointmentService = Depends(get_appointment_service),
):
    """Edit an appointment (patient, doctor, date, slot)"""
    appointment = await service.update_appointment(appointment_id, data, current_user, request)
    return build_appointment_response(appointment)


@router.patch("/{appointment_id}/status", response_model=AppointmentResponse)
async def update_appointment_status(
    appointment_id: str,
    data: AppointmentStatusUpdate,
    request: Request,
    current_user: User = Depends(get_current_clinic_user),
    service: AppointmentService = Depends(get_appointment_service),
):
    appointment = await service.update_status(appointment_id, data.status, current_user, request)
    return build_appointment_response(appointment)


@router.delete("/{appointment_id}")
async def delete_appointment(
    appointment_id: str,
    request: Request,
    current_user: User = Depends(get_current_clinic_user),
    service: AppointmentService = Depends(get_appointment_service),
):
    return await service.delete_appointment(appointment_id, current_user, request)


# ============================================================================
# PUBLIC CONFIRM / CANCEL LINKS
# ============================================================================


@public_router.get("/{appointment_id}/confirm", response_model=AppointmentActionResponse)
async def confirm_appointment(
    appointment_id: str,
    service: AppointmentService = Depends(get_appointment_service),
):
    return await service.set_status_from_link(appointment_id, "confirmado")


@public_router.get("/{appointment_id}/cancel", response_model=AppointmentActionResponse)
async def cancel_appointment(
    appointment_id: str,
    service: AppointmentService = Depends(get_appointment_service),
):
    return await service.set_status_from_link(appointment_id, "cancelado")
