"""Patients router - FastAPI endpoints for patient management"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from ...auth import get_current_clinic_user, require_roles
from ...database import get_db
from ...models import User
from ..scheduling.schemas import AppointmentResponse
from ..scheduling.service import build_appointment_response
from .schemas import MedicalRecordSummary, PatientResponse, PatientUpsert
from .service import PatientService, build_medical_record_summary, build_patient_response

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/patients", tags=["Patients"])


def get_patient_service(db: Session = Depends(get_db)) -> PatientService:
    """Dependency injection for PatientService"""
    return PatientService(db)


# ============================================================================
# CORE CRUD OPERATIONS
# ============================================================================


@router.get("", response_model=list[PatientResponse])
async def get_patients(
    search: Optional[str] = Query(None, max_length=100),
    current_user: User = Depends(get_current_clinic_user),
    service: PatientService = Depends(get_patient_service),
):
    """Get clinic patients; search matches name, email or phone"""
    return [build_patient_response(p) for p in service.get_patients(current_user, search)]


@router.get("/{patient_id}", response_model=PatientResponse)
async def get_patient(
    patient_id: str,
    current_user: User = Depends(get_current_clinic_user),
    service: PatientService = Depends(get_patient_service),
):
    return build_patient_response(service.get_patient(patient_id, current_user))


@router.post("", response_model=PatientResponse, status_code=201)
async def create_patient(
    data: PatientUpsert,
    request: Request,
    current_user: User = Depends(get_current_clinic_user),
    service: PatientService = Depends(get_patient_service),
):
    return build_patient_response(service.create_patient(data, current_user, request))


@router.put("/{patient_id}", response_model=PatientResponse)
async def update_patient(
    patient_id: str,
    data: PatientUpsert,
    request: Request,
    current_user: User = Depends(get_current_clinic_user),
    service: PatientService = Depends(get_patient_service),
):
    return build_patient_response(service.update_patient(patient_id, data, current_user, request))


@router.delete("/{patient_id}")
async def delete_patient(
    patient_id: str,
    request: Request,
    current_user: User = Depends(get_current_clinic_user),
    service: PatientService = Depends(get_patient_service),
):
    return service.delete_patient(patient_id, current_user, request)


# ============================================================================
# PATIENT HISTORY
# ============================================================================


@router.get("/{patient_id}/appointments", response_model=list[AppointmentResponse])
async def get_patient_appointments(
    patient_id: str,
    request: Request,
    current_user: User = Depends(get_current_clinic_user),
    service: PatientService = Depends(get_patient_service),
):
    appointments = service.get_patient_appointments(patient_id, current_user, request)
    return [build_appointment_response(a) for a in appointments]


@router.get("/{patient_id}/medical-records", response_model=list[MedicalRecordSummary])
async def get_patient_medical_records(
    patient_id: str,
    request: Request,
    current_user: User = Depends(require_roles("admin", "doctor")),
    service: PatientService = Depends(get_patient_service),
):
    records = service.get_patient_medical_records(patient_id, current_user, request)
    return [build_medical_record_summary(r) for r in records]
