"""Medical records router"""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from ...auth import require_roles
from ...database import get_db
from ...models import User
from ..patients.schemas import MedicalRecordSummary
from ..patients.service import build_medical_record_summary
from .schemas import MedicalRecordActionResponse, MedicalRecordUpsert
from .service import MedicalRecordService

router = APIRouter(prefix="/medical-records", tags=["Medical Records"])

require_clinical_staff = require_roles("admin", "doctor")


def get_record_service(db: Session = Depends(get_db)) -> MedicalRecordService:
    return MedicalRecordService(db)


@router.get("/{record_id}", response_model=MedicalRecordSummary)
async def get_medical_record(
    record_id: str,
    request: Request,
    current_user: User = Depends(require_clinical_staff),
    service: MedicalRecordService = Depends(get_record_service),
):
    return build_medical_record_summary(service.get_record(record_id, current_user, request))


@router.post("", response_model=MedicalRecordActionResponse, status_code=201)
async def create_medical_record(
    data: MedicalRecordUpsert,
    request: Request,
    current_user: User = Depends(require_clinical_staff),
    service: MedicalRecordService = Depends(get_record_service),
):
    return service.upsert_record(data, current_user, request=request)


@router.put("/{record_id}", response_model=MedicalRecordActionResponse)
async def update_medical_record(
    record_id: str,
    data: MedicalRecordUpsert,
    request: Request,
    current_user: User = Depends(require_clinical_staff),
    service: MedicalRecordService = Depends(get_record_service),
):
    return service.upsert_record(data, current_user, record_id=record_id, request=request)
