"""
Email Service using Resend
Compiles MJML templates to HTML and sends transactional email
"""

import logging
from typing import Optional, Union

import resend
from mjml import mjml_to_html

from .config import EMAIL_FROM_ADDRESS, RESEND_API_KEY
from .email_templates import (
    AppointmentEmailData,
    appointment_cancellation_template,
    appointment_confirmation_template,
    appointment_reminder_template,
    appointment_update_template,
    format_long_date,
    format_time,
    password_reset_template,
)
from .utils.timezone import format_local_date

logger = logging.getLogger(__name__)

resend.api_key = RESEND_API_KEY


class EmailNotConfiguredError(Exception):
    """Raised when no email provider credentials are available"""


def is_email_configured() -> bool:
    return bool(RESEND_API_KEY)


def compile_mjml_to_html(mjml_content: str) -> str:
    """Compile MJML template to production-ready HTML"""
    try:
        result = mjml_to_html(mjml_content)
        # mjml_to_html returns an object/dict with 'html' and 'errors'
        if isinstance(result, dict):
            if result.get("errors"):
                logger.warning(f"MJML compilation warnings: {result['errors']}")
            return result.get("html", "")
        html = getattr(result, "html", None)
        if html is not None:
            errors = getattr(result, "errors", None)
            if errors:
                logger.warning(f"MJML compilation warnings: {errors}")
            return html
        return str(result)
    except Exception as e:
        logger.error(f"MJML compilation error: {e}")
        raise Exception(f"Failed to compile MJML template: {str(e)}") from e


async def send_email(
    to: Union[str, list[str]],
    subject: str,
    mjml_content: str,
    from_address: Optional[str] = None,
) -> dict:
    """
    Send an email through Resend

    Args:
        to: Recipient email(s)
        subject: Email subject line
        mjml_content: MJML template content (will be compiled to HTML)
        from_address: Optional custom from address

    Returns:
        Send response dict
    """
    if not RESEND_API_KEY:
        logger.error("❌ No email service configured - RESEND_API_KEY missing")
        raise EmailNotConfiguredError("Email service not configured")

    html_content = compile_mjml_to_html(mjml_content)
    recipients = [to] if isinstance(to, str) else to

    try:
        logger.info(f"📧 Sending email via Resend to: {recipients}")
        response = resend.Emails.send(
            {
                "from": from_address or EMAIL_FROM_ADDRESS,
                "to": recipients,
                "subject": subject,
                "html": html_content,
            }
        )
        logger.info(f"✅ Email sent successfully via Resend: {response}")
        return response
    except Exception as e:
        logger.error(f"❌ Email send error to {recipients}: {e}")
        raise Exception(f"Failed to send email: {str(e)}") from e


async def _send_appointment_email(kind: str, data: AppointmentEmailData, subject: str, mjml_content: str) -> bool:
    """Appointment emails are best effort: failures are logged, never raised"""
    if not is_email_configured():
        logger.warning(f"⚠️ Email not configured - skipping {kind} email to {data.patient_email}")
        return False
    try:
        await send_email(to=data.patient_email, subject=subject, mjml_content=mjml_content)
        return True
    except Exception as e:
        logger.error(f"❌ Failed to send {kind} email to {data.patient_email}: {e}")
        return False


# ============================================
# Appointment emails
# ============================================


async def send_appointment_confirmation(data: AppointmentEmailData) -> bool:
    subject = f"🩺 Consulta Confirmada - Dr. {data.doctor_name} - {format_long_date(data.appointment_date)}"
    return await _send_appointment_email(
        "confirmation", data, subject, appointment_confirmation_template(data)
    )


async def send_appointment_reminder(data: AppointmentEmailData) -> bool:
    subject = (
        f"⏰ Lembrete: Consulta amanhã ({format_local_date(data.appointment_date)}) "
        f"às {format_time(data.appointment_date)} - Dr. {data.doctor_name}"
    )
    return await _send_appointment_email("reminder", data, subject, appointment_reminder_template(data))


async def send_appointment_cancellation(data: AppointmentEmailData) -> bool:
    subject = f"❌ Consulta Cancelada - Dr. {data.doctor_name} - {format_long_date(data.appointment_date)}"
    return await _send_appointment_email(
        "cancellation", data, subject, appointment_cancellation_template(data)
    )


async def send_appointment_update(data: AppointmentEmailData) -> bool:
    subject = f"🔄 Consulta Reagendada - Dr. {data.doctor_name} - {format_long_date(data.appointment_date)}"
    return await _send_appointment_email("update", data, subject, appointment_update_template(data))


# ============================================
# Account emails
# ============================================


async def send_password_reset_email(to: str, user_name: str, reset_link: str) -> dict:
    """Send password reset link"""
    return await send_email(
        to=to,
        subject="Redefinição de senha - Doutor Agenda",
        mjml_content=password_reset_template(user_name, reset_link),
    )
