"""
Outbound automation webhook (n8n)

Appointment status changes are pushed to an n8n workflow that handles patient
messaging. Delivery is best effort: failures are logged and never raised.
"""

import logging
from datetime import datetime
from typing import Any, Optional

import httpx

from .. import config
from ..utils.currency import format_cents
from ..utils.timezone import format_local_date, format_local_time

logger = logging.getLogger(__name__)

WEBHOOK_EVENT = "appointment_status_change"


def prepare_appointment_webhook_data(appointment, status: str, base_url: Optional[str] = None) -> dict[str, Any]:
    """Flatten an appointment (with patient, doctor and clinic loaded) into the webhook payload"""
    clinic = appointment.clinic
    data = {
        "status": status,
        "appointmentId": appointment.id,
        "patientName": appointment.patient.name,
        "doctorName": appointment.doctor.name,
        "clinicName": (clinic.name if clinic else None) or "Clínica",
        "clinicAddress": (clinic.address if clinic else None) or "Endereço não informado",
        "price": appointment.appointment_price_in_cents,
        "appointmentDate": format_local_date(appointment.date),
        "appointmentTime": format_local_time(appointment.date),
    }
    if base_url:
        data["confirmUrl"] = f"{base_url}/api/appointments/{appointment.id}/confirm"
        data["cancelUrl"] = f"{base_url}/api/appointments/{appointment.id}/cancel"
    return data


def build_webhook_body(data: dict[str, Any]) -> dict[str, Any]:
    return {
        "event": WEBHOOK_EVENT,
        "timestamp": datetime.utcnow().isoformat() + "Z",
        "data": {
            **data,
            "priceFormatted": format_cents(data.get("price") or 0),
            "appointmentDateTime": f"{data.get('appointmentDate')} {data.get('appointmentTime')}",
        },
    }


async def send_appointment_webhook(data: dict[str, Any]) -> bool:
    """POST the status change to N8N_WEBHOOK_URL. Returns True when delivered."""
    webhook_url = config.N8N_WEBHOOK_URL
    if not webhook_url:
        logger.warning("⚠️ N8N_WEBHOOK_URL not configured - skipping webhook")
        return False

    logger.info(
        f"📡 Sending n8n webhook: status={data.get('status')}, appointment={data.get('appointmentId')}"
    )
    try:
        async with httpx.AsyncClient(timeout=config.WEBHOOK_TIMEOUT_SECONDS) as client:
            response = await client.post(webhook_url, json=build_webhook_body(data))
        if response.is_success:
            logger.info("✅ Webhook delivered to n8n")
            return True
        logger.error(f"❌ n8n webhook responded {response.status_code}: {response.text[:200]}")
        return False
    except Exception as e:
        logger.error(f"❌ Error sending n8n webhook: {e}")
        return False


async def notify_appointment_status(appointment, status: str) -> bool:
    """Prepare and send the webhook for an appointment status change"""
    try:
        data = prepare_appointment_webhook_data(appointment, status, config.APP_URL)
    except Exception as e:
        logger.error(f"❌ Could not prepare webhook payload for {appointment.id}: {e}")
        return False
    return await send_appointment_webhook(data)
