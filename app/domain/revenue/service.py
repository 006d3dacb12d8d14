"""Revenue service - paid revenue aggregated over a local date range"""

import logging
from datetime import date
from typing import Optional

from fastapi import HTTPException
from sqlalchemy import desc, func
from sqlalchemy.orm import Session

from ...models import Appointment, AppointmentPayment, Doctor, Patient, PaymentTransaction, User
from ...utils.timezone import local_day_bounds_utc, utc_to_local
from ..billing.reconciliation import PAYMENT_METHOD_LABELS

logger = logging.getLogger(__name__)

TOP_DOCTORS_LIMIT = 10
RECENT_TRANSACTIONS_LIMIT = 50


def parse_report_range(start_date: str, end_date: str) -> tuple[date, date]:
    try:
        start = date.fromisoformat(start_date)
        end = date.fromisoformat(end_date)
    except (TypeError, ValueError):
        raise HTTPException(status_code=400, detail="Datas inválidas, use AAAA-MM-DD")
    if end < start:
        raise HTTPException(status_code=400, detail="Data final deve ser posterior à data inicial")
    return start, end


class RevenueService:
    def __init__(self, db: Session):
        self.db = db

    def _paid_filters(self, clinic_id: str, start: date, end: date) -> list:
        # End date is inclusive: the range runs to the end of that local day
        start_utc, _ = local_day_bounds_utc(start)
        _, end_utc = local_day_bounds_utc(end)
        return [
            AppointmentPayment.clinic_id == clinic_id,
            AppointmentPayment.status == "pago",
            AppointmentPayment.created_at >= start_utc,
            AppointmentPayment.created_at < end_utc,
        ]

    def get_report(
        self,
        user: User,
        start_date: str,
        end_date: str,
        payment_method: Optional[str] = None,
        period: str = "month",
    ) -> dict:
        """
        Build the revenue report bundle for the clinic.

        Only fully paid payments count. The payment method filter narrows the
        method breakdown and the transaction list; totals stay clinic-wide.
        """
        start, end = parse_report_range(start_date, end_date)
        if payment_method and payment_method not in PAYMENT_METHOD_LABELS:
            raise HTTPException(status_code=400, detail="Método de pagamento inválido")

        clinic_id = user.clinic.id
        filters = self._paid_filters(clinic_id, start, end)
        logger.info(f"📊 Building revenue report for clinic {clinic_id}: {start} → {end}")

        total_revenue, total_payments = (
            self.db.query(
                func.coalesce(func.sum(AppointmentPayment.paid_amount_in_cents), 0),
                func.count(AppointmentPayment.id),
            )
            .filter(*filters)
            .one()
        )
        total_revenue = int(total_revenue or 0)
        total_payments = int(total_payments or 0)

        total_patients, total_doctors = (
            self.db.query(
                func.count(func.distinct(Appointment.patient_id)),
                func.count(func.distinct(Appointment.doctor_id)),
            )
            .select_from(AppointmentPayment)
            .join(Appointment, AppointmentPayment.appointment_id == Appointment.id)
            .filter(*filters)
            .one()
        )

        method_filters = list(filters)
        if payment_method:
            method_filters.append(PaymentTransaction.payment_method == payment_method)

        method_sum = func.sum(PaymentTransaction.amount_in_cents)
        method_rows = (
            self.db.query(PaymentTransaction.payment_method, method_sum, func.count(PaymentTransaction.id))
            .join(AppointmentPayment, PaymentTransaction.payment_id == AppointmentPayment.id)
            .filter(*method_filters)
            .group_by(PaymentTransaction.payment_method)
            .order_by(desc(method_sum))
            .all()
        )

        doctor_sum = func.sum(AppointmentPayment.paid_amount_in_cents)
        doctor_rows = (
            self.db.query(Doctor.id, Doctor.name, Doctor.specialty, doctor_sum, func.count(AppointmentPayment.id))
            .select_from(AppointmentPayment)
            .join(Appointment, AppointmentPayment.appointment_id == Appointment.id)
            .join(Doctor, Appointment.doctor_id == Doctor.id)
            .filter(*filters)
            .group_by(Doctor.id, Doctor.name, Doctor.specialty)
            .order_by(desc(doctor_sum))
            .limit(TOP_DOCTORS_LIMIT)
            .all()
        )

        recent_rows = (
            self.db.query(
                AppointmentPayment.id,
                Patient.name,
                Doctor.name,
                PaymentTransaction.payment_method,
                PaymentTransaction.amount_in_cents,
                Appointment.date,
                AppointmentPayment.created_at,
            )
            .select_from(AppointmentPayment)
            .join(Appointment, AppointmentPayment.appointment_id == Appointment.id)
            .join(Patient, Appointment.patient_id == Patient.id)
            .join(Doctor, Appointment.doctor_id == Doctor.id)
            .join(PaymentTransaction, PaymentTransaction.payment_id == AppointmentPayment.id)
            .filter(*method_filters)
            .order_by(AppointmentPayment.created_at.desc())
            .limit(RECENT_TRANSACTIONS_LIMIT)
            .all()
        )

        series_rows = (
            self.db.query(AppointmentPayment.created_at, AppointmentPayment.paid_amount_in_cents)
            .filter(*filters)
            .order_by(AppointmentPayment.created_at)
            .all()
        )

        return {
            "summary": {
                "totalRevenue": total_revenue,
                "totalPayments": total_payments,
                "totalPatients": int(total_patients),
                "totalDoctors": int(total_doctors),
                "averageTransaction": round(total_revenue / total_payments) if total_payments else 0,
            },
            "timeSeries": self._daily_series(series_rows),
            "paymentMethods": [
                {
                    "paymentMethod": method,
                    "label": PAYMENT_METHOD_LABELS.get(method, method),
                    "totalAmount": int(amount or 0),
                    "transactionCount": int(count or 0),
                }
                for method, amount, count in method_rows
            ],
            "topDoctors": [
                {
                    "id": doctor_id,
                    "name": name,
                    "specialty": specialty,
                    "revenue": int(revenue or 0),
                    "appointments": int(count or 0),
                }
                for doctor_id, name, specialty, revenue, count in doctor_rows
            ],
            "recentTransactions": [
                {
                    "paymentId": payment_id,
                    "patientName": patient_name,
                    "doctorName": doctor_name,
                    "paymentMethod": method,
                    "amount": int(amount or 0),
                    "appointmentDate": utc_to_local(appointment_date).isoformat(),
                    "paymentDate": utc_to_local(paid_at).isoformat(),
                }
                for payment_id, patient_name, doctor_name, method, amount, appointment_date, paid_at in recent_rows
            ],
            "filters": {
                "startDate": start.isoformat(),
                "endDate": end.isoformat(),
                "paymentMethod": payment_method,
                "period": period,
            },
        }

    @staticmethod
    def _daily_series(rows) -> list[dict]:
        """Group payments by local calendar day"""
        buckets: dict[str, dict] = {}
        for created_at, amount in rows:
            key = utc_to_local(created_at).date().isoformat()
            bucket = buckets.setdefault(key, {"date": key, "totalRevenue": 0, "transactionCount": 0})
            bucket["totalRevenue"] += int(amount or 0)
            bucket["transactionCount"] += 1
        return [buckets[key] for key in sorted(buckets)]
