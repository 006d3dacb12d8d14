"""Tests for clinic setup: doctors, patients, insurance plans, medical records and the clinic profile"""

import json
from datetime import datetime

from app.models import Appointment, Doctor, HealthInsurancePlan, MedicalRecord, Patient, User
from tests.conftest import auth_headers, create_appointment, create_user


def doctor_payload(**overrides):
    payload = {
        "name": "Rafael Costa",
        "email": "rafael@clinica.com.br",
        "specialty": "Pediatria",
        "appointmentPriceInCents": 18000,
        "availableFromWeekDay": 1,
        "availableToWeekDay": 5,
        "availableFromTime": "08:00",
        "availableToTime": "17:00",
    }
    payload.update(overrides)
    return payload


def patient_payload(**overrides):
    payload = {
        "name": "João Pereira",
        "email": "joao@example.com",
        "phoneNumber": "(11) 91234-5678",
        "sex": "male",
    }
    payload.update(overrides)
    return payload


def record_payload(patient, doctor, **overrides):
    payload = {
        "patientId": patient.id,
        "doctorId": doctor.id,
        "symptoms": "Dor no peito",
        "diagnosis": "Ansiedade",
        "treatment": "Acompanhamento",
        "medication": "Nenhuma",
    }
    payload.update(overrides)
    return payload


class TestDoctors:
    def test_create_doctor_with_login(self, client, db_session, admin):
        response = client.post("/doctors", json=doctor_payload(), headers=auth_headers(admin))
        assert response.status_code == 201
        body = response.json()
        assert body["availableFromTime"] == "08:00"
        assert body["availableToTime"] == "17:00"

        stored = db_session.query(Doctor).filter(Doctor.id == body["id"]).one()
        assert stored.available_from_time == "11:00:00"
        assert stored.user.must_change_password is True
        assert stored.user.user_type == "doctor"
        assert stored.user.clinic.id == admin.clinic.id

    def test_business_hours_are_stored_in_utc(self, client, db_session, admin):
        hours = {"monday": {"isOpen": True, "start": "08:00", "end": "12:00"}}
        response = client.post(
            "/doctors", json=doctor_payload(businessHours=hours), headers=auth_headers(admin)
        )
        assert response.status_code == 201
        body = response.json()
        assert body["businessHours"]["monday"] == {"isOpen": True, "start": "08:00", "end": "12:00"}

        stored = db_session.query(Doctor).filter(Doctor.id == body["id"]).one()
        assert json.loads(stored.business_hours)["monday"] == {"isOpen": True, "start": "11:00", "end": "15:00"}

    def test_duplicate_email(self, client, admin, doctor):
        response = client.post(
            "/doctors", json=doctor_payload(email="carlos@clinica.com.br"), headers=auth_headers(admin)
        )
        assert response.status_code == 409

    def test_start_must_precede_end(self, client, admin):
        response = client.post(
            "/doctors",
            json=doctor_payload(availableFromTime="18:00", availableToTime="08:00"),
            headers=auth_headers(admin),
        )
        assert response.status_code == 422

    def test_closed_week_is_rejected(self, client, admin):
        hours = {"monday": {"isOpen": False}}
        response = client.post(
            "/doctors", json=doctor_payload(businessHours=hours), headers=auth_headers(admin)
        )
        assert response.status_code == 422

    def test_list_and_profile(self, client, admin, doctor):
        listed = client.get("/doctors", headers=auth_headers(admin)).json()
        assert [d["name"] for d in listed] == ["Carlos Mendes"]
        assert listed[0]["availableFromTime"] == "08:00"

        me = client.get("/doctors/me", headers=auth_headers(doctor.user))
        assert me.json()["id"] == doctor.id

    def test_delete_doctor_removes_login(self, client, db_session, admin, doctor):
        doctor_id, user_id = doctor.id, doctor.user_id
        response = client.delete(f"/doctors/{doctor_id}", headers=auth_headers(admin))
        assert response.status_code == 200
        assert db_session.query(Doctor).filter(Doctor.id == doctor_id).first() is None
        assert db_session.query(User).filter(User.id == user_id).first() is None

    def test_only_admin_creates_doctors(self, client, attendant):
        assert client.post("/doctors", json=doctor_payload(), headers=auth_headers(attendant)).status_code == 403


class TestPatients:
    def test_crud(self, client, db_session, attendant):
        headers = auth_headers(attendant)
        created = client.post("/patients", json=patient_payload(), headers=headers)
        assert created.status_code == 201
        patient_id = created.json()["id"]
        assert created.json()["phoneNumber"] == "11912345678"

        updated = client.put(
            f"/patients/{patient_id}", json=patient_payload(name="João P. Pereira"), headers=headers
        )
        assert updated.json()["name"] == "João P. Pereira"

        assert client.get(f"/patients/{patient_id}", headers=headers).status_code == 200
        assert client.delete(f"/patients/{patient_id}", headers=headers).status_code == 200
        assert db_session.query(Patient).filter(Patient.id == patient_id).first() is None

    def test_search_by_name_or_phone(self, client, admin, patient):
        headers = auth_headers(admin)
        client.post("/patients", json=patient_payload(), headers=headers)

        by_name = client.get("/patients", params={"search": "maria"}, headers=headers).json()
        assert [p["name"] for p in by_name] == ["Maria Souza"]

        by_phone = client.get("/patients", params={"search": "91234"}, headers=headers).json()
        assert [p["name"] for p in by_phone] == ["João Pereira"]

    def test_invalid_phone(self, client, admin):
        response = client.post("/patients", json=patient_payload(phoneNumber="1234"), headers=auth_headers(admin))
        assert response.status_code == 422

    def test_invalid_sex(self, client, admin):
        response = client.post("/patients", json=patient_payload(sex="other"), headers=auth_headers(admin))
        assert response.status_code == 422

    def test_delete_cascades_appointments(self, client, db_session, admin, patient, appointment):
        appointment_id = appointment.id
        client.delete(f"/patients/{patient.id}", headers=auth_headers(admin))
        assert db_session.query(Appointment).filter(Appointment.id == appointment_id).first() is None

    def test_other_clinic_patient_is_hidden(self, client, db_session, other_clinic, patient):
        outsider = create_user(db_session, other_clinic, "Fora", "fora@outra.com")
        assert client.get(f"/patients/{patient.id}", headers=auth_headers(outsider)).status_code == 404


class TestInsurancePlans:
    def test_create_update_and_list_active(self, client, db_session, admin):
        headers = auth_headers(admin)
        created = client.post(
            "/health-insurance-plans",
            json={"name": "Bradesco Saúde", "reimbursementValueInCents": 9000},
            headers=headers,
        )
        assert created.status_code == 201
        plan_id = created.json()["planId"]

        updated = client.put(
            f"/health-insurance-plans/{plan_id}",
            json={"name": "Bradesco Saúde", "reimbursementValueInCents": 9500, "isActive": False},
            headers=headers,
        )
        assert updated.json()["message"] == "Plano de saúde atualizado com sucesso!"

        active = client.get("/health-insurance-plans", params={"activeOnly": True}, headers=headers).json()
        assert active == []
        everything = client.get("/health-insurance-plans", headers=headers).json()
        assert everything[0]["reimbursementValueInCents"] == 9500

    def test_plan_in_use_cannot_be_deleted(self, client, db_session, clinic, admin, patient, doctor, plan):
        create_appointment(db_session, clinic, patient, doctor, datetime(2030, 1, 7, 12), plan=plan)
        response = client.delete(f"/health-insurance-plans/{plan.id}", headers=auth_headers(admin))
        assert response.status_code == 409

    def test_delete_unused_plan(self, client, db_session, admin, plan):
        plan_id = plan.id
        response = client.delete(f"/health-insurance-plans/{plan_id}", headers=auth_headers(admin))
        assert response.status_code == 200
        assert db_session.query(HealthInsurancePlan).filter(HealthInsurancePlan.id == plan_id).first() is None

    def test_attendant_can_only_read(self, client, attendant, plan):
        headers = auth_headers(attendant)
        assert client.get("/health-insurance-plans", headers=headers).status_code == 200
        response = client.post("/health-insurance-plans", json={"name": "Amil"}, headers=headers)
        assert response.status_code == 403


class TestMedicalRecords:
    def test_record_concludes_appointment(self, client, db_session, doctor, patient, appointment):
        response = client.post(
            "/medical-records",
            json=record_payload(patient, doctor, appointmentId=appointment.id),
            headers=auth_headers(doctor.user),
        )
        assert response.status_code == 201
        db_session.refresh(appointment)
        assert appointment.status == "concluido"

        history = client.get(f"/patients/{patient.id}/medical-records", headers=auth_headers(doctor.user))
        assert history.json()[0]["doctorName"] == "Carlos Mendes"

    def test_certificate_days_need_a_certificate(self, client, db_session, admin, doctor, patient):
        response = client.post(
            "/medical-records",
            json=record_payload(patient, doctor, medicalCertificate=False, certificateDays=3),
            headers=auth_headers(admin),
        )
        record = db_session.query(MedicalRecord).filter(MedicalRecord.id == response.json()["id"]).one()
        assert record.certificate_days is None

        with_certificate = client.post(
            "/medical-records",
            json=record_payload(patient, doctor, medicalCertificate=True, certificateDays=3),
            headers=auth_headers(admin),
        )
        record = db_session.query(MedicalRecord).filter(MedicalRecord.id == with_certificate.json()["id"]).one()
        assert record.certificate_days == 3

    def test_update_record(self, client, admin, doctor, patient):
        headers = auth_headers(admin)
        record_id = client.post("/medical-records", json=record_payload(patient, doctor), headers=headers).json()["id"]
        response = client.put(
            f"/medical-records/{record_id}",
            json=record_payload(patient, doctor, diagnosis="Refluxo"),
            headers=headers,
        )
        assert response.json()["message"] == "Prontuário atualizado com sucesso!"
        assert client.get(f"/medical-records/{record_id}", headers=headers).json()["diagnosis"] == "Refluxo"

    def test_blank_fields_are_rejected(self, client, admin, doctor, patient):
        response = client.post(
            "/medical-records", json=record_payload(patient, doctor, symptoms="  "), headers=auth_headers(admin)
        )
        assert response.status_code == 422

    def test_appointment_of_another_patient(self, client, db_session, clinic, admin, doctor, appointment):
        other = Patient(
            clinic_id=clinic.id, name="Pedro", email="pedro@example.com", phone_number="1133334444", sex="male"
        )
        db_session.add(other)
        db_session.commit()
        response = client.post(
            "/medical-records",
            json=record_payload(other, doctor, appointmentId=appointment.id),
            headers=auth_headers(admin),
        )
        assert response.status_code == 400

    def test_attendants_have_no_access(self, client, attendant, doctor, patient):
        headers = auth_headers(attendant)
        assert client.post("/medical-records", json=record_payload(patient, doctor), headers=headers).status_code == 403
        assert client.get(f"/patients/{patient.id}/medical-records", headers=headers).status_code == 403


class TestClinic:
    def test_get_clinic(self, client, attendant, clinic):
        response = client.get("/clinic", headers=auth_headers(attendant))
        assert response.status_code == 200
        assert response.json()["name"] == "Clínica Saúde Total"
        assert response.json()["appointmentDurationMinutes"] == 30

    def test_update_clinic(self, client, db_session, admin, clinic):
        response = client.put(
            "/clinic",
            json={
                "name": "Clínica Saúde Total",
                "email": "CONTATO@clinica.com.br",
                "city": "São Paulo",
                "businessHours": {"monday": {"isOpen": True, "start": "08:00", "end": "18:00"}},
                "appointmentDurationMinutes": 45,
            },
            headers=auth_headers(admin),
        )
        assert response.status_code == 200
        body = response.json()
        assert body["email"] == "contato@clinica.com.br"
        assert body["city"] == "São Paulo"
        assert body["address"] is None
        assert body["businessHours"]["monday"] == {"isOpen": True, "start": "08:00", "end": "18:00"}
        assert body["appointmentDurationMinutes"] == 45

    def test_update_requires_admin(self, client, attendant):
        response = client.put("/clinic", json={"name": "Outra"}, headers=auth_headers(attendant))
        assert response.status_code == 403

    def test_stats(self, client, admin, doctor, patient, appointment):
        response = client.get("/clinic/stats", headers=auth_headers(admin))
        assert response.status_code == 200
        stats = response.json()
        assert stats["doctors"] == 1
        assert stats["patients"] == 1
        assert stats["appointments"] == 1
        assert stats["medicalRecords"] == 0
        assert stats["totalRecords"] == sum(v for k, v in stats.items() if k != "totalRecords")
