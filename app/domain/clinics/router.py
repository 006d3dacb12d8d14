"""Clinic router - clinic configuration endpoints"""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from ...auth import get_current_clinic_user, require_admin
from ...database import get_db
from ...models import User
from .schemas import ClinicResponse, ClinicStatsResponse, ClinicUpdate
from .service import ClinicService, build_clinic_response

router = APIRouter(prefix="/clinic", tags=["Clinic"])


def get_clinic_service(db: Session = Depends(get_db)) -> ClinicService:
    return ClinicService(db)


@router.get("", response_model=ClinicResponse)
async def get_clinic(
    current_user: User = Depends(get_current_clinic_user),
    service: ClinicService = Depends(get_clinic_service),
):
    return build_clinic_response(service.get_clinic(current_user))


@router.put("", response_model=ClinicResponse)
async def update_clinic(
    data: ClinicUpdate,
    request: Request,
    current_user: User = Depends(require_admin),
    service: ClinicService = Depends(get_clinic_service),
):
    """Update clinic profile and booking preferences"""
    return build_clinic_response(service.update_clinic(data, current_user, request))


@router.get("/stats", response_model=ClinicStatsResponse)
async def get_clinic_stats(
    current_user: User = Depends(require_admin),
    service: ClinicService = Depends(get_clinic_service),
):
    return service.get_stats(current_user)
