"""
Email Routes - Cron-triggered reminders and email configuration status
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException
from sqlalchemy.orm import Session

from ..auth import require_admin
from ..config import CRON_API_KEY
from ..database import get_db
from ..domain.scheduling.service import AppointmentService
from ..email_service import is_email_configured
from ..models import User
from ..security_utils import constant_time_compare

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/email", tags=["Email"])


def verify_cron_key(authorization: Optional[str] = Header(default=None)) -> None:
    """Require 'Bearer <CRON_API_KEY>' when a cron key is configured"""
    if not CRON_API_KEY:
        return

    if not authorization or not authorization.startswith("Bearer "):
        logger.warning("⚠️ Reminder trigger without cron credentials")
        raise HTTPException(status_code=401, detail="Unauthorized")

    if not constant_time_compare(authorization[len("Bearer "):], CRON_API_KEY):
        logger.warning("⚠️ Reminder trigger with invalid cron key")
        raise HTTPException(status_code=401, detail="Unauthorized")


@router.post("/send-reminders")
async def send_reminders(
    _: None = Depends(verify_cron_key),
    db: Session = Depends(get_db),
):
    """Send reminder emails for every appointment of tomorrow (clinic local day)"""
    result = await AppointmentService(db).send_tomorrow_reminders()
    logger.info(
        f"📧 Reminders for {result['date']}: {result['sent']} sent, {result['failed']} failed"
    )
    return {"success": True, "message": f"{result['sent']} lembretes enviados", **result}


@router.get("/send-reminders")
async def count_reminders(
    _: None = Depends(verify_cron_key),
    db: Session = Depends(get_db),
):
    """How many reminders the next run would send"""
    tomorrow, appointments = AppointmentService(db).get_tomorrow_appointments()
    return {
        "date": tomorrow.isoformat(),
        "count": len(appointments),
        "message": f"{len(appointments)} agendamentos para amanhã",
    }


@router.get("/status")
async def email_status(current_user: User = Depends(require_admin)):
    return {"configured": is_email_configured()}
