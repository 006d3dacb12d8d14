"""Tests for appointment payments, billing stats and the pending queue"""

from datetime import datetime

import pytest

from app.domain.billing import service as billing_service
from app.models import AppointmentPayment, PaymentTransaction, SecurityLog
from tests.conftest import auth_headers, create_appointment


@pytest.fixture
def webhooks(monkeypatch):
    calls = []

    async def notify(appointment, status):
        calls.append((appointment.id, status))
        return True

    monkeypatch.setattr(billing_service, "notify_appointment_status", notify)
    return calls


def payment_payload(appointment, total, *transactions, notes=None):
    return {
        "appointmentId": appointment.id,
        "totalAmountInCents": total,
        "transactions": [
            {"paymentMethod": method, "amountInCents": amount} for method, amount in transactions
        ],
        "notes": notes,
    }


class TestProcessPayment:
    def test_cash_overpayment_returns_change(self, client, db_session, attendant, appointment, webhooks):
        response = client.post(
            "/billing/payments",
            json=payment_payload(appointment, 20000, ("dinheiro", 25000)),
            headers=auth_headers(attendant),
        )
        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["message"] == "Pagamento processado com sucesso! Troco: R$ 50,00"
        payment = body["payment"]
        assert payment["status"] == "pago"
        assert payment["paidAmountInCents"] == 20000
        assert payment["changeAmountInCents"] == 5000
        assert payment["processedByUserId"] == attendant.id
        assert [t["amountInCents"] for t in payment["transactions"]] == [20000]
        assert payment["transactions"][0]["paymentMethodLabel"] == "Dinheiro"
        assert webhooks == [(appointment.id, "pago")]

    def test_split_payment_keeps_references(self, client, db_session, admin, appointment, webhooks):
        payload = payment_payload(appointment, 20000, ("pix", 5000), ("cartao_credito", 15000))
        payload["transactions"][1]["transactionReference"] = "NSU-778899"
        response = client.post("/billing/payments", json=payload, headers=auth_headers(admin))

        body = response.json()
        assert body["message"] == "Pagamento processado com sucesso!"
        references = {t["paymentMethod"]: t["transactionReference"] for t in body["payment"]["transactions"]}
        assert references == {"pix": None, "cartao_credito": "NSU-778899"}

    def test_partial_payment(self, client, admin, appointment, webhooks):
        response = client.post(
            "/billing/payments",
            json=payment_payload(appointment, 20000, ("pix", 8000)),
            headers=auth_headers(admin),
        )
        body = response.json()
        assert body["message"] == "Pagamento parcial registrado!"
        assert body["payment"]["status"] == "parcial"
        assert body["payment"]["remainingAmountInCents"] == 12000
        assert webhooks == []

    def test_reprocessing_replaces_transactions(self, client, db_session, admin, appointment, webhooks):
        client.post(
            "/billing/payments",
            json=payment_payload(appointment, 20000, ("pix", 8000)),
            headers=auth_headers(admin),
        )
        response = client.post(
            "/billing/payments",
            json=payment_payload(appointment, 20000, ("pix", 8000), ("dinheiro", 12000)),
            headers=auth_headers(admin),
        )
        assert response.json()["payment"]["status"] == "pago"
        assert db_session.query(AppointmentPayment).count() == 1
        assert db_session.query(PaymentTransaction).count() == 2

        actions = [log.action for log in db_session.query(SecurityLog).filter(SecurityLog.type != "data_access")]
        assert actions.count("create_payment") == 1
        assert actions.count("update_payment") == 1

    def test_unknown_appointment(self, client, admin):
        response = client.post(
            "/billing/payments",
            json={"appointmentId": "missing", "totalAmountInCents": 100, "transactions": [
                {"paymentMethod": "pix", "amountInCents": 100}
            ]},
            headers=auth_headers(admin),
        )
        assert response.status_code == 404

    @pytest.mark.parametrize(
        "transactions",
        [
            [],
            [{"paymentMethod": "pix", "amountInCents": 0}],
            [{"paymentMethod": "bitcoin", "amountInCents": 100}],
        ],
    )
    def test_invalid_transactions_are_rejected(self, client, admin, appointment, transactions):
        response = client.post(
            "/billing/payments",
            json={"appointmentId": appointment.id, "totalAmountInCents": 20000, "transactions": transactions},
            headers=auth_headers(admin),
        )
        assert response.status_code == 422

    def test_doctors_cannot_register_payments(self, client, doctor, appointment):
        response = client.post(
            "/billing/payments",
            json=payment_payload(appointment, 20000, ("pix", 20000)),
            headers=auth_headers(doctor.user),
        )
        assert response.status_code == 403


class TestPendingAndStats:
    def test_pending_queue_skips_insured_cancelled_and_paid(
        self, client, db_session, clinic, admin, patient, doctor, plan, appointment, webhooks
    ):
        create_appointment(db_session, clinic, patient, doctor, datetime(2030, 1, 7, 13, 0), plan=plan)
        create_appointment(db_session, clinic, patient, doctor, datetime(2030, 1, 7, 14, 0), status="cancelado")
        paid = create_appointment(db_session, clinic, patient, doctor, datetime(2030, 1, 7, 15, 0))
        client.post(
            "/billing/payments",
            json=payment_payload(paid, 20000, ("pix", 20000)),
            headers=auth_headers(admin),
        )

        response = client.get("/billing/pending-appointments", headers=auth_headers(admin))
        assert response.status_code == 200
        assert [a["id"] for a in response.json()] == [appointment.id]
        assert response.json()[0]["patient"]["phoneNumber"] == "11987654321"

    def test_partially_paid_appointment_stays_pending(self, client, admin, appointment, webhooks):
        client.post(
            "/billing/payments",
            json=payment_payload(appointment, 20000, ("pix", 1000)),
            headers=auth_headers(admin),
        )
        pending = client.get("/billing/pending-appointments", headers=auth_headers(admin)).json()
        assert pending[0]["payment"]["status"] == "parcial"

    def test_stats_count_todays_paid_payments(self, client, admin, appointment, webhooks):
        client.post(
            "/billing/payments",
            json=payment_payload(appointment, 20000, ("dinheiro", 30000)),
            headers=auth_headers(admin),
        )
        response = client.get("/billing/stats", headers=auth_headers(admin))
        assert response.status_code == 200
        assert response.json() == {
            "pendingAppointments": 0,
            "paymentsToday": 1,
            "dailyRevenueInCents": 20000,
        }
