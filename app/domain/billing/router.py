"""Billing router - FastAPI endpoints for billing operations"""

import logging

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from ...auth import require_admin_or_attendant
from ...database import get_db
from ...models import User
from .schemas import (
    BillingStatsResponse,
    PendingAppointmentResponse,
    ProcessPaymentRequest,
    ProcessPaymentResponse,
)
from .service import BillingService, build_pending_response

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/billing", tags=["Billing"])


def get_billing_service(db: Session = Depends(get_db)) -> BillingService:
    """Dependency injection for BillingService"""
    return BillingService(db)


@router.post("/payments", response_model=ProcessPaymentResponse)
async def process_payment(
    data: ProcessPaymentRequest,
    request: Request,
    current_user: User = Depends(require_admin_or_attendant),
    service: BillingService = Depends(get_billing_service),
):
    """Register a (possibly split) payment for an appointment"""
    return await service.process_payment(data, current_user, request)


@router.get("/stats", response_model=BillingStatsResponse)
async def get_billing_stats(
    request: Request,
    current_user: User = Depends(require_admin_or_attendant),
    service: BillingService = Depends(get_billing_service),
):
    return service.get_stats(current_user, request)


@router.get("/pending-appointments", response_model=list[PendingAppointmentResponse])
async def get_pending_appointments(
    current_user: User = Depends(require_admin_or_attendant),
    service: BillingService = Depends(get_billing_service),
):
    """Private appointments still waiting for payment"""
    return [build_pending_response(a) for a in service.get_pending_appointments(current_user)]
