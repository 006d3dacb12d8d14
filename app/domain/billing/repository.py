"""Billing repository - Database operations for appointment payments"""

from datetime import datetime
from typing import Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Query, Session, joinedload

from ...models import Appointment, AppointmentPayment, PaymentTransaction


class BillingRepository:
    """Repository for payment database operations"""

    @staticmethod
    def get_payment_by_appointment(db: Session, appointment_id: str) -> Optional[AppointmentPayment]:
        return (
            db.query(AppointmentPayment)
            .options(joinedload(AppointmentPayment.transactions))
            .filter(AppointmentPayment.appointment_id == appointment_id)
            .first()
        )

    @staticmethod
    def replace_transactions(db: Session, payment: AppointmentPayment, transactions: list[dict]) -> None:
        """Drop the payment's transactions and record the given ones (not committed)"""
        payment.transactions.clear()
        db.flush()
        for data in transactions:
            payment.transactions.append(PaymentTransaction(**data))

    @staticmethod
    def _pending_query(db: Session, clinic_id: str) -> Query:
        """Private (no insurance plan), not cancelled, and not fully paid"""
        return (
            db.query(Appointment)
            .outerjoin(AppointmentPayment, AppointmentPayment.appointment_id == Appointment.id)
            .filter(
                Appointment.clinic_id == clinic_id,
                Appointment.status != "cancelado",
                Appointment.health_insurance_plan_id.is_(None),
                or_(AppointmentPayment.id.is_(None), AppointmentPayment.status != "pago"),
            )
        )

    @staticmethod
    def count_pending_appointments(db: Session, clinic_id: str) -> int:
        return BillingRepository._pending_query(db, clinic_id).count()

    @staticmethod
    def get_pending_appointments(db: Session, clinic_id: str) -> list[Appointment]:
        return (
            BillingRepository._pending_query(db, clinic_id)
            .options(
                joinedload(Appointment.patient),
                joinedload(Appointment.doctor),
                joinedload(Appointment.payment).joinedload(AppointmentPayment.transactions),
            )
            .order_by(Appointment.date.asc())
            .all()
        )

    @staticmethod
    def get_paid_totals(db: Session, clinic_id: str, start_utc: datetime, end_utc: datetime) -> tuple[int, int]:
        """(payment count, paid cents) of fully paid payments created in [start, end)"""
        count, total = (
            db.query(
                func.count(AppointmentPayment.id),
                func.coalesce(func.sum(AppointmentPayment.paid_amount_in_cents), 0),
            )
            .filter(
                AppointmentPayment.clinic_id == clinic_id,
                AppointmentPayment.status == "pago",
                AppointmentPayment.created_at >= start_utc,
                AppointmentPayment.created_at < end_utc,
            )
            .one()
        )
        return int(count or 0), int(total or 0)
