"""Scheduling service - Business logic for appointments and availability"""

import logging
from datetime import date, datetime, timedelta
from typing import Optional

from fastapi import HTTPException, Request
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...config import APP_URL
from ...email_service import (
    send_appointment_cancellation,
    send_appointment_confirmation,
    send_appointment_reminder,
    send_appointment_update,
)
from ...email_templates import AppointmentEmailData
from ...models import Appointment, User
from ...services.webhook_service import notify_appointment_status
from ...utils.timezone import (
    combine_local_date_and_slot,
    extract_time_slot,
    format_minutes,
    local_day_bounds_utc,
    now_local,
    parse_time_to_minutes,
    utc_to_local,
)
from ..security.audit import log_data_operation
from .availability import get_available_slots
from .repository import AppointmentRepository
from .schemas import (
    AppointmentResponse,
    AppointmentUpsert,
    DoctorSummary,
    PaymentSummary,
    PersonSummary,
)

logger = logging.getLogger(__name__)

REMINDER_STATUSES = ("agendado", "confirmado")


def build_appointment_response(appointment: Appointment) -> AppointmentResponse:
    payment = appointment.payment
    return AppointmentResponse(
        id=appointment.id,
        date=appointment.date,
        localDate=utc_to_local(appointment.date).date().isoformat(),
        timeSlot=utc_to_local(appointment.date).strftime("%H:%M"),
        status=appointment.status,
        appointmentPriceInCents=appointment.appointment_price_in_cents,
        healthInsurancePlanId=appointment.health_insurance_plan_id,
        patient=PersonSummary(
            id=appointment.patient.id, name=appointment.patient.name, email=appointment.patient.email
        ),
        doctor=DoctorSummary(
            id=appointment.doctor.id,
            name=appointment.doctor.name,
            email=appointment.doctor.email,
            specialty=appointment.doctor.specialty,
        ),
        payment=PaymentSummary(
            id=payment.id,
            status=payment.status,
            totalAmountInCents=payment.total_amount_in_cents,
            paidAmountInCents=payment.paid_amount_in_cents,
            remainingAmountInCents=payment.remaining_amount_in_cents,
        )
        if payment
        else None,
        created_at=appointment.created_at,
    )


def build_email_data(appointment: Appointment) -> AppointmentEmailData:
    return AppointmentEmailData(
        patient_name=appointment.patient.name,
        patient_email=appointment.patient.email,
        doctor_name=appointment.doctor.name,
        doctor_specialty=appointment.doctor.specialty,
        appointment_date=appointment.date,
        clinic_name=appointment.clinic.name if appointment.clinic else None,
        price_in_cents=appointment.appointment_price_in_cents,
        confirmation_url=f"{APP_URL}/api/appointments/{appointment.id}/confirm",
    )


def parse_date_param(value: str) -> date:
    """Parse a YYYY-MM-DD query parameter, 400 on anything else"""
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except (TypeError, ValueError) as e:
        raise HTTPException(status_code=400, detail="Data inválida, use o formato YYYY-MM-DD") from e


class AppointmentService:
    """Service layer for appointment business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = AppointmentRepository()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_appointments(
        self,
        user: User,
        doctor_id: Optional[str] = None,
        patient_id: Optional[str] = None,
        status: Optional[str] = None,
    ) -> list[Appointment]:
        return self.repo.get_appointments(self.db, user.clinic.id, doctor_id, patient_id, status)

    def get_appointment(self, appointment_id: str, user: User) -> Appointment:
        appointment = self.repo.get_appointment(self.db, appointment_id, user.clinic.id)
        if not appointment:
            raise HTTPException(status_code=404, detail="Agendamento não encontrado")
        return appointment

    def get_booked_slots(self, user: User, doctor_id: str, day: str) -> list[str]:
        """Occupied local slots of a doctor on a day, as "HH:MM:SS" strings"""
        if not doctor_id:
            raise HTTPException(status_code=400, detail="doctorId e date são obrigatórios")
        target = parse_date_param(day)
        return self.repo.get_booked_slots(self.db, user.clinic.id, doctor_id, target)

    def get_available_slots(
        self, user: User, doctor_id: str, day: str, appointment_id: Optional[str] = None
    ) -> list[str]:
        target = parse_date_param(day)
        doctor = self.repo.get_doctor(self.db, doctor_id, user.clinic.id)
        if not doctor:
            raise HTTPException(status_code=404, detail="Médico não encontrado")

        editing_slot = None
        if appointment_id:
            editing = self.repo.get_appointment(self.db, appointment_id, user.clinic.id)
            if editing and editing.doctor_id == doctor_id and utc_to_local(editing.date).date() == target:
                editing_slot = extract_time_slot(editing.date)

        booked = self.repo.get_booked_slots(self.db, user.clinic.id, doctor_id, target)
        return get_available_slots(doctor, target, booked, editing_slot)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def _validate_booking(self, data: AppointmentUpsert, user: User, editing: Optional[Appointment] = None):
        clinic_id = user.clinic.id
        patient = self.repo.get_patient(self.db, data.patientId, clinic_id)
        if not patient:
            raise HTTPException(status_code=404, detail="Paciente não encontrado")
        doctor = self.repo.get_doctor(self.db, data.doctorId, clinic_id)
        if not doctor:
            raise HTTPException(status_code=404, detail="Médico não encontrado")

        if data.healthInsurancePlanId:
            plan = self.repo.get_insurance_plan(self.db, data.healthInsurancePlanId, clinic_id)
            if not plan:
                raise HTTPException(status_code=404, detail="Plano de saúde não encontrado")
            if not plan.is_active:
                raise HTTPException(status_code=400, detail="Plano de saúde inativo")

        editing_slot = None
        if editing and editing.doctor_id == doctor.id and utc_to_local(editing.date).date() == data.date:
            editing_slot = extract_time_slot(editing.date)

        booked = self.repo.get_booked_slots(self.db, clinic_id, doctor.id, data.date)
        available = get_available_slots(doctor, data.date, booked, editing_slot)
        requested = format_minutes(parse_time_to_minutes(data.timeSlot))
        if requested not in available:
            logger.warning(
                f"⚠️ Slot {requested} on {data.date} unavailable for doctor {doctor.id} (available: {available})"
            )
            raise HTTPException(status_code=409, detail="Horário indisponível para este médico")

        return patient, doctor

    async def create_appointment(
        self, data: AppointmentUpsert, user: User, request: Optional[Request] = None
    ) -> Appointment:
        """Book an appointment and send the confirmation email"""
        logger.info(f"📥 Creating appointment for clinic {user.clinic.id}")
        _patient, doctor = self._validate_booking(data, user)

        try:
            appointment = self.repo.create_appointment(
                self.db,
                user.clinic.id,
                patient_id=data.patientId,
                doctor_id=data.doctorId,
                health_insurance_plan_id=data.healthInsurancePlanId,
                appointment_price_in_cents=data.appointmentPriceInCents or doctor.appointment_price_in_cents,
                date=combine_local_date_and_slot(data.date, data.timeSlot),
                status="agendado",
            )
        except IntegrityError as e:
            self.db.rollback()
            logger.warning(f"⚠️ Double booking blocked for doctor {data.doctorId}: {e}")
            log_data_operation(
                self.db, user.id, user.clinic.id, "create", "appointment",
                success=False, details={"error": "slot_taken"}, request=request,
            )
            raise HTTPException(status_code=409, detail="Horário indisponível para este médico") from e

        log_data_operation(
            self.db, user.id, user.clinic.id, "create", "appointment", appointment.id, request=request
        )
        logger.info(f"✅ Appointment {appointment.id} created")

        await send_appointment_confirmation(build_email_data(appointment))
        return appointment

    async def update_appointment(
        self, appointment_id: str, data: AppointmentUpsert, user: User, request: Optional[Request] = None
    ) -> Appointment:
        """Edit an appointment; a date change sends the reschedule email"""
        appointment = self.get_appointment(appointment_id, user)
        _patient, doctor = self._validate_booking(data, user, editing=appointment)

        new_date = combine_local_date_and_slot(data.date, data.timeSlot)
        rescheduled = new_date != appointment.date
        updates = {
            "patient_id": data.patientId,
            "doctor_id": data.doctorId,
            "health_insurance_plan_id": data.healthInsurancePlanId,
            "date": new_date,
        }
        if data.appointmentPriceInCents:
            updates["appointment_price_in_cents"] = data.appointmentPriceInCents

        try:
            appointment = self.repo.update_appointment(self.db, appointment, **updates)
        except IntegrityError as e:
            self.db.rollback()
            log_data_operation(
                self.db, user.id, user.clinic.id, "update", "appointment", appointment_id,
                success=False, details={"error": "slot_taken"}, request=request,
            )
            raise HTTPException(status_code=409, detail="Horário indisponível para este médico") from e

        log_data_operation(
            self.db, user.id, user.clinic.id, "update", "appointment", appointment.id,
            details={"rescheduled": rescheduled}, request=request,
        )

        if rescheduled:
            await send_appointment_update(build_email_data(appointment))
        return appointment

    def _set_status(self, appointment: Appointment, status: str) -> Appointment:
        try:
            return self.repo.update_appointment(self.db, appointment, status=status)
        except IntegrityError as e:
            # Re-activating a cancelled appointment whose slot was booked again
            self.db.rollback()
            raise HTTPException(status_code=409, detail="Horário já ocupado por outro agendamento") from e

    async def update_status(
        self, appointment_id: str, status: str, user: User, request: Optional[Request] = None
    ) -> Appointment:
        appointment = self.get_appointment(appointment_id, user)
        previous = appointment.status
        appointment = self._set_status(appointment, status)
        log_data_operation(
            self.db, user.id, user.clinic.id, "update", "appointment", appointment.id,
            details={"status": {"from": previous, "to": status}}, request=request,
        )
        logger.info(f"✅ Appointment {appointment.id} status {previous} -> {status}")

        if status != previous and status in ("confirmado", "cancelado"):
            await notify_appointment_status(appointment, status)
        if status == "cancelado" and previous != "cancelado":
            await send_appointment_cancellation(build_email_data(appointment))
        return appointment

    async def delete_appointment(self, appointment_id: str, user: User, request: Optional[Request] = None) -> dict:
        """Delete an appointment and let the patient know"""
        appointment = self.get_appointment(appointment_id, user)
        email_data = build_email_data(appointment)

        self.repo.delete_appointment(self.db, appointment)
        log_data_operation(
            self.db, user.id, user.clinic.id, "delete", "appointment", appointment_id, request=request
        )
        logger.info(f"🗑️ Appointment {appointment_id} deleted")

        await send_appointment_cancellation(email_data)
        return {"message": "Agendamento excluído"}

    # ------------------------------------------------------------------
    # Public links (confirm / cancel from email or WhatsApp)
    # ------------------------------------------------------------------

    async def set_status_from_link(self, appointment_id: str, status: str) -> dict:
        appointment = self.repo.get_appointment_public(self.db, appointment_id)
        if not appointment:
            raise HTTPException(status_code=404, detail="Agendamento não encontrado")

        summary = {
            "id": appointment.id,
            "status": status,
            "patient": appointment.patient.name,
            "doctor": appointment.doctor.name,
            "date": appointment.date.isoformat(),
        }

        if appointment.status == status:
            label = "confirmado" if status == "confirmado" else "cancelado"
            return {"success": True, "message": f"Agendamento já {label}", "appointment": summary}

        self._set_status(appointment, status)
        log_data_operation(
            self.db, None, appointment.clinic_id, "update", "appointment", appointment.id,
            details={"status": status, "source": "patient_link"},
        )
        await notify_appointment_status(appointment, status)

        label = "confirmado" if status == "confirmado" else "cancelado"
        return {"success": True, "message": f"Agendamento {label} com sucesso", "appointment": summary}

    # ------------------------------------------------------------------
    # Reminders
    # ------------------------------------------------------------------

    def get_tomorrow_appointments(self) -> tuple[date, list[Appointment]]:
        tomorrow = (now_local() + timedelta(days=1)).date()
        start, end = local_day_bounds_utc(tomorrow)
        return tomorrow, self.repo.get_appointments_between(self.db, start, end, REMINDER_STATUSES)

    async def send_tomorrow_reminders(self) -> dict:
        """Email every patient booked for tomorrow (local day)"""
        tomorrow, appointments = self.get_tomorrow_appointments()
        logger.info(f"📧 Sending {len(appointments)} reminders for {tomorrow.isoformat()}")

        results = []
        for appointment in appointments:
            sent = await send_appointment_reminder(build_email_data(appointment))
            results.append(
                {"appointmentId": appointment.id, "patientEmail": appointment.patient.email, "sent": sent}
            )

        sent_count = sum(1 for r in results if r["sent"])
        return {
            "sent": sent_count,
            "failed": len(results) - sent_count,
            "total": len(results),
            "date": tomorrow.isoformat(),
            "results": results,
        }
