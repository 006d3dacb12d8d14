"""Health insurance plans router"""

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from ...auth import get_current_clinic_user, require_admin
from ...database import get_db
from ...models import User
from .schemas import InsurancePlanActionResponse, InsurancePlanResponse, InsurancePlanUpsert
from .service import InsurancePlanService, build_plan_response

router = APIRouter(prefix="/health-insurance-plans", tags=["Health Insurance Plans"])


def get_plan_service(db: Session = Depends(get_db)) -> InsurancePlanService:
    return InsurancePlanService(db)


@router.get("", response_model=list[InsurancePlanResponse])
async def get_plans(
    activeOnly: bool = Query(False),
    current_user: User = Depends(get_current_clinic_user),
    service: InsurancePlanService = Depends(get_plan_service),
):
    return [build_plan_response(p) for p in service.get_plans(current_user, activeOnly)]


@router.post("", response_model=InsurancePlanActionResponse, status_code=201)
async def create_plan(
    data: InsurancePlanUpsert,
    request: Request,
    current_user: User = Depends(require_admin),
    service: InsurancePlanService = Depends(get_plan_service),
):
    return service.upsert_plan(data, current_user, request=request)


@router.put("/{plan_id}", response_model=InsurancePlanActionResponse)
async def update_plan(
    plan_id: str,
    data: InsurancePlanUpsert,
    request: Request,
    current_user: User = Depends(require_admin),
    service: InsurancePlanService = Depends(get_plan_service),
):
    return service.upsert_plan(data, current_user, plan_id=plan_id, request=request)


@router.delete("/{plan_id}", response_model=InsurancePlanActionResponse)
async def delete_plan(
    plan_id: str,
    request: Request,
    current_user: User = Depends(require_admin),
    service: InsurancePlanService = Depends(get_plan_service),
):
    return service.delete_plan(plan_id, current_user, request)
