"""Revenue router - report bundle and file exports (admin only)"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import Response
from sqlalchemy.orm import Session

from ...auth import require_admin
from ...database import get_db
from ...models import User
from ...services.revenue_export import (
    PDF_MEDIA_TYPE,
    XLSX_MEDIA_TYPE,
    export_revenue_pdf,
    export_revenue_xlsx,
    report_filename,
)
from ..security.audit import log_audit_event
from .schemas import RevenuePeriod, RevenueReport
from .service import RevenueService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/revenue", tags=["Revenue"])


def get_revenue_service(db: Session = Depends(get_db)) -> RevenueService:
    return RevenueService(db)


@router.get("", response_model=RevenueReport)
async def get_revenue(
    startDate: str = Query(...),
    endDate: str = Query(...),
    paymentMethod: Optional[str] = Query(None),
    period: RevenuePeriod = Query("month"),
    current_user: User = Depends(require_admin),
    service: RevenueService = Depends(get_revenue_service),
):
    """Paid revenue between two local dates (end date inclusive)"""
    return service.get_report(current_user, startDate, endDate, paymentMethod, period)


def _export_response(
    fmt: str,
    request: Request,
    user: User,
    service: RevenueService,
    start_date: str,
    end_date: str,
    payment_method: Optional[str],
    period: str,
) -> Response:
    report = service.get_report(user, start_date, end_date, payment_method, period)
    clinic_name = user.clinic.name

    if fmt == "pdf":
        content, media_type = export_revenue_pdf(report, clinic_name), PDF_MEDIA_TYPE
    else:
        content, media_type = export_revenue_xlsx(report, clinic_name), XLSX_MEDIA_TYPE
    filename = report_filename(fmt)

    log_audit_event(
        service.db,
        action="export_revenue_report",
        type="data_export",
        user_id=user.id,
        clinic_id=user.clinic.id,
        details={"format": fmt, "filters": report["filters"], "filename": filename},
        request=request,
    )
    logger.info(f"📥 Revenue report exported as {filename}")
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/export/pdf")
async def export_revenue_pdf_file(
    request: Request,
    startDate: str = Query(...),
    endDate: str = Query(...),
    paymentMethod: Optional[str] = Query(None),
    period: RevenuePeriod = Query("month"),
    current_user: User = Depends(require_admin),
    service: RevenueService = Depends(get_revenue_service),
):
    return _export_response("pdf", request, current_user, service, startDate, endDate, paymentMethod, period)


@router.get("/export/xlsx")
async def export_revenue_xlsx_file(
    request: Request,
    startDate: str = Query(...),
    endDate: str = Query(...),
    paymentMethod: Optional[str] = Query(None),
    period: RevenuePeriod = Query("month"),
    current_user: User = Depends(require_admin),
    service: RevenueService = Depends(get_revenue_service),
):
    return _export_response("xlsx", request, current_user, service, startDate, endDate, paymentMethod, period)
