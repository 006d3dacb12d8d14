"""Billing service - Business logic for appointment payments"""

import logging
from typing import Optional

from fastapi import HTTPException, Request
from sqlalchemy.orm import Session

from ...models import Appointment, AppointmentPayment, User
from ...services.webhook_service import notify_appointment_status
from ...utils.currency import format_cents
from ...utils.timezone import local_day_bounds_utc, now_local, utc_to_local
from ..scheduling.repository import AppointmentRepository
from ..security.audit import log_data_access, log_data_operation
from .reconciliation import PAYMENT_METHOD_LABELS, TransactionInput, reconcile_payment
from .repository import BillingRepository
from .schemas import (
    PaymentResponse,
    PaymentTransactionResponse,
    PendingAppointmentResponse,
    ProcessPaymentRequest,
)

logger = logging.getLogger(__name__)


def build_payment_response(payment: AppointmentPayment) -> PaymentResponse:
    return PaymentResponse(
        id=payment.id,
        appointmentId=payment.appointment_id,
        totalAmountInCents=payment.total_amount_in_cents,
        paidAmountInCents=payment.paid_amount_in_cents,
        remainingAmountInCents=payment.remaining_amount_in_cents,
        changeAmountInCents=payment.change_in_cents,
        status=payment.status,
        notes=payment.notes,
        processedByUserId=payment.processed_by_user_id,
        transactions=[
            PaymentTransactionResponse(
                id=t.id,
                paymentMethod=t.payment_method,
                paymentMethodLabel=PAYMENT_METHOD_LABELS.get(t.payment_method, t.payment_method),
                amountInCents=t.amount_in_cents,
                transactionReference=t.transaction_reference,
                notes=t.notes,
            )
            for t in payment.transactions
        ],
        created_at=payment.created_at,
        updated_at=payment.updated_at,
    )


def build_pending_response(appointment: Appointment) -> PendingAppointmentResponse:
    local = utc_to_local(appointment.date)
    return PendingAppointmentResponse(
        id=appointment.id,
        date=appointment.date,
        localDate=local.date().isoformat(),
        timeSlot=local.strftime("%H:%M"),
        status=appointment.status,
        appointmentPriceInCents=appointment.appointment_price_in_cents,
        patient={
            "id": appointment.patient.id,
            "name": appointment.patient.name,
            "email": appointment.patient.email,
            "phoneNumber": appointment.patient.phone_number,
        },
        doctor={
            "id": appointment.doctor.id,
            "name": appointment.doctor.name,
            "specialty": appointment.doctor.specialty,
        },
        payment=build_payment_response(appointment.payment) if appointment.payment else None,
    )


def payment_message(status: str, change_in_cents: int) -> str:
    if status == "pago":
        if change_in_cents > 0:
            return f"Pagamento processado com sucesso! Troco: {format_cents(change_in_cents)}"
        return "Pagamento processado com sucesso!"
    if status == "parcial":
        return "Pagamento parcial registrado!"
    return "Pagamento registrado!"


class BillingService:
    """Service layer for billing business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = BillingRepository()

    async def process_payment(
        self, data: ProcessPaymentRequest, user: User, request: Optional[Request] = None
    ) -> dict:
        """
        Register the payment of an appointment.

        An appointment has at most one payment record. Processing it again
        overwrites the amounts and replaces every transaction.
        """
        clinic_id = user.clinic.id
        appointment = AppointmentRepository.get_appointment(self.db, data.appointmentId, clinic_id)
        if not appointment:
            raise HTTPException(status_code=404, detail="Agendamento não encontrado")

        breakdown = reconcile_payment(
            data.totalAmountInCents,
            [TransactionInput(t.paymentMethod, t.amountInCents) for t in data.transactions],
        )
        logger.info(
            f"💰 Processing payment for appointment {appointment.id}: "
            f"total={breakdown.total_amount_in_cents} input={breakdown.client_input_in_cents} "
            f"status={breakdown.status}"
        )

        existing = self.repo.get_payment_by_appointment(self.db, appointment.id)
        operation = "update" if existing else "create"

        try:
            payment = existing or AppointmentPayment(appointment_id=appointment.id, clinic_id=clinic_id)
            payment.total_amount_in_cents = breakdown.total_amount_in_cents
            payment.paid_amount_in_cents = breakdown.paid_amount_in_cents
            payment.remaining_amount_in_cents = breakdown.remaining_amount_in_cents
            payment.change_in_cents = breakdown.change_in_cents
            payment.status = breakdown.status
            payment.notes = data.notes
            payment.processed_by_user_id = user.id
            if existing is None:
                self.db.add(payment)
                self.db.flush()

            self.repo.replace_transactions(
                self.db,
                payment,
                [
                    {
                        "payment_method": recorded.payment_method,
                        "amount_in_cents": recorded.amount_in_cents,
                        "transaction_reference": submitted.transactionReference or None,
                        "notes": submitted.notes or None,
                    }
                    for submitted, recorded in zip(data.transactions, breakdown.transactions)
                ],
            )
            self.db.commit()
            self.db.refresh(payment)
        except Exception as e:
            self.db.rollback()
            logger.error(f"❌ Failed to process payment for appointment {appointment.id}: {e}")
            log_data_operation(
                self.db, user.id, clinic_id, "create", "payment", appointment.id,
                success=False, details={"error": "Falha no processamento do pagamento"}, request=request,
            )
            raise HTTPException(status_code=500, detail="Falha no processamento do pagamento") from e

        log_data_operation(
            self.db, user.id, clinic_id, operation, "payment", payment.id,
            details={
                "appointmentId": appointment.id,
                "totalAmount": breakdown.total_amount_in_cents,
                "paidAmount": breakdown.paid_amount_in_cents,
                "clientInput": breakdown.client_input_in_cents,
                "change": breakdown.change_in_cents,
                "status": breakdown.status,
                "transactions": len(breakdown.transactions),
            },
            request=request,
        )
        logger.info(f"✅ Payment {payment.id} processed ({breakdown.status}, change {breakdown.change_in_cents})")

        if breakdown.status == "pago":
            await notify_appointment_status(appointment, "pago")

        return {
            "success": True,
            "payment": build_payment_response(payment),
            "message": payment_message(breakdown.status, breakdown.change_in_cents),
        }

    def get_stats(self, user: User, request: Optional[Request] = None) -> dict:
        """Pending private appointments, and today's (local day) payments and revenue"""
        clinic_id = user.clinic.id
        log_data_access(self.db, user.id, clinic_id, "billing_stats", "billing_statistics", request=request)

        start_utc, end_utc = local_day_bounds_utc(now_local().date())
        payments_today, revenue_today = self.repo.get_paid_totals(self.db, clinic_id, start_utc, end_utc)
        stats = {
            "pendingAppointments": self.repo.count_pending_appointments(self.db, clinic_id),
            "paymentsToday": payments_today,
            "dailyRevenueInCents": revenue_today,
        }
        logger.info(f"📊 Billing stats for clinic {clinic_id}: {stats}")
        return stats

    def get_pending_appointments(self, user: User) -> list[Appointment]:
        return self.repo.get_pending_appointments(self.db, user.clinic.id)
