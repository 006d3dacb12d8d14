"""
Tests for the revenue report and its PDF/Excel exports

Payments are created directly with fixed timestamps (naive UTC) so the local
day boundaries of the report can be checked.
"""

import io
from datetime import datetime

import pytest
from openpyxl import load_workbook

from app.models import AppointmentPayment, Doctor, PaymentTransaction, SecurityLog
from app.services.revenue_export import build_revenue_sheets, export_revenue_pdf, report_filename
from tests.conftest import auth_headers, create_appointment


def add_payment(db, appointment, created_at, transactions, status="pago"):
    total = appointment.appointment_price_in_cents
    paid = min(total, sum(amount for _, amount in transactions))
    payment = AppointmentPayment(
        appointment_id=appointment.id,
        clinic_id=appointment.clinic_id,
        total_amount_in_cents=total,
        paid_amount_in_cents=paid,
        remaining_amount_in_cents=total - paid,
        status=status,
        created_at=created_at,
    )
    payment.transactions = [
        PaymentTransaction(payment_method=method, amount_in_cents=amount, created_at=created_at)
        for method, amount in transactions
    ]
    db.add(payment)
    db.commit()
    return payment


@pytest.fixture
def second_doctor(db_session, clinic):
    doctor = Doctor(
        clinic_id=clinic.id,
        name="Paula Lima",
        email="paula@clinica.com.br",
        specialty="Dermatologia",
        appointment_price_in_cents=30000,
    )
    db_session.add(doctor)
    db_session.commit()
    db_session.refresh(doctor)
    return doctor


@pytest.fixture
def paid_history(db_session, clinic, patient, doctor, second_doctor):
    """Three paid payments on 2030-01-07 (local), one partial, one on the next local day"""
    a1 = create_appointment(db_session, clinic, patient, doctor, datetime(2030, 1, 7, 12, 0))
    a2 = create_appointment(db_session, clinic, patient, doctor, datetime(2030, 1, 7, 13, 0))
    a3 = create_appointment(db_session, clinic, patient, second_doctor, datetime(2030, 1, 7, 14, 0))
    a4 = create_appointment(db_session, clinic, patient, doctor, datetime(2030, 1, 7, 15, 0))
    a5 = create_appointment(db_session, clinic, patient, doctor, datetime(2030, 1, 8, 12, 0))

    add_payment(db_session, a1, datetime(2030, 1, 7, 12, 30), [("pix", 20000)])
    add_payment(db_session, a2, datetime(2030, 1, 7, 13, 30), [("dinheiro", 5000), ("pix", 15000)])
    # 23:00 local on the 7th
    add_payment(db_session, a3, datetime(2030, 1, 8, 2, 0), [("cartao_credito", 30000)])
    add_payment(db_session, a4, datetime(2030, 1, 7, 15, 30), [("pix", 1000)], status="parcial")
    # 00:30 local on the 8th
    add_payment(db_session, a5, datetime(2030, 1, 8, 3, 30), [("pix", 20000)])


def get_report(client, user, **params):
    query = {"startDate": "2030-01-07", "endDate": "2030-01-07", **params}
    return client.get("/revenue", params=query, headers=auth_headers(user))


class TestRevenueReport:
    def test_summary_counts_only_paid_in_local_range(self, client, admin, paid_history):
        response = get_report(client, admin)
        assert response.status_code == 200
        summary = response.json()["summary"]
        assert summary == {
            "totalRevenue": 70000,
            "totalPayments": 3,
            "totalPatients": 1,
            "totalDoctors": 2,
            "averageTransaction": 23333,
        }

    def test_end_date_is_inclusive(self, client, admin, paid_history):
        response = get_report(client, admin, endDate="2030-01-08")
        assert response.json()["summary"]["totalRevenue"] == 90000
        series = response.json()["timeSeries"]
        assert series == [
            {"date": "2030-01-07", "totalRevenue": 70000, "transactionCount": 3},
            {"date": "2030-01-08", "totalRevenue": 20000, "transactionCount": 1},
        ]

    def test_breakdowns(self, client, admin, paid_history):
        report = get_report(client, admin).json()

        methods = {m["paymentMethod"]: (m["totalAmount"], m["transactionCount"]) for m in report["paymentMethods"]}
        assert methods == {"pix": (35000, 2), "cartao_credito": (30000, 1), "dinheiro": (5000, 1)}
        assert report["paymentMethods"][0]["label"] == "PIX"

        top = report["topDoctors"]
        assert [(d["name"], d["revenue"], d["appointments"]) for d in top] == [
            ("Carlos Mendes", 40000, 2),
            ("Paula Lima", 30000, 1),
        ]
        assert len(report["recentTransactions"]) == 4
        assert report["filters"] == {
            "startDate": "2030-01-07",
            "endDate": "2030-01-07",
            "paymentMethod": None,
            "period": "month",
        }

    def test_payment_method_filter(self, client, admin, paid_history):
        report = get_report(client, admin, paymentMethod="pix").json()
        assert [m["paymentMethod"] for m in report["paymentMethods"]] == ["pix"]
        assert {t["paymentMethod"] for t in report["recentTransactions"]} == {"pix"}
        assert report["summary"]["totalRevenue"] == 70000

    def test_empty_range(self, client, admin, paid_history):
        report = get_report(client, admin, startDate="2031-01-01", endDate="2031-01-31").json()
        assert report["summary"]["totalRevenue"] == 0
        assert report["summary"]["averageTransaction"] == 0
        assert report["timeSeries"] == []

    @pytest.mark.parametrize(
        "params",
        [
            {"startDate": "07/01/2030"},
            {"startDate": "2030-01-10", "endDate": "2030-01-07"},
            {"paymentMethod": "bitcoin"},
        ],
    )
    def test_invalid_filters(self, client, admin, params):
        assert get_report(client, admin, **params).status_code == 400

    def test_admin_only(self, client, attendant):
        assert get_report(client, attendant).status_code == 403


class TestRevenueExports:
    def test_pdf_export(self, client, db_session, admin, paid_history):
        response = client.get(
            "/revenue/export/pdf",
            params={"startDate": "2030-01-07", "endDate": "2030-01-07"},
            headers=auth_headers(admin),
        )
        assert response.status_code == 200
        assert response.headers["content-type"] == "application/pdf"
        assert 'filename="relatorio-faturamento-' in response.headers["content-disposition"]
        assert response.content.startswith(b"%PDF")

        export_log = db_session.query(SecurityLog).filter(SecurityLog.type == "data_export").one()
        assert export_log.details["format"] == "pdf"

    def test_xlsx_export_sheets(self, client, admin, paid_history):
        response = client.get(
            "/revenue/export/xlsx",
            params={"startDate": "2030-01-07", "endDate": "2030-01-07"},
            headers=auth_headers(admin),
        )
        assert response.status_code == 200
        assert response.headers["content-disposition"].endswith('.xlsx"')

        workbook = load_workbook(io.BytesIO(response.content))
        assert workbook.sheetnames == [
            "Resumo",
            "Evolução Temporal",
            "Top Médicos",
            "Métodos de Pagamento",
            "Transações",
        ]
        assert workbook["Resumo"]["A1"].value == "Relatório de Faturamento"

    def test_empty_report_has_only_summary_sheet(self):
        report = {
            "summary": {
                "totalRevenue": 0,
                "totalPayments": 0,
                "totalPatients": 0,
                "totalDoctors": 0,
                "averageTransaction": 0,
            },
            "timeSeries": [],
            "paymentMethods": [],
            "topDoctors": [],
            "recentTransactions": [],
            "filters": {"startDate": "2030-01-01", "endDate": "2030-01-31", "paymentMethod": None, "period": "month"},
        }
        assert list(build_revenue_sheets(report, "Clínica Teste")) == ["Resumo"]
        assert export_revenue_pdf(report, "Clínica Teste").startswith(b"%PDF")

    def test_filename_uses_timestamp(self):
        assert report_filename("pdf", datetime(2030, 1, 7, 9, 5)) == "relatorio-faturamento-2030-01-07-0905.pdf"
