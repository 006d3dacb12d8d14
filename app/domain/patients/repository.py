"""Patient repository - Database operations for patients"""

from typing import Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session, joinedload

from ...models import MedicalRecord, Patient


class PatientRepository:
    """Repository for patient database operations"""

    @staticmethod
    def get_patients(db: Session, clinic_id: str, search: Optional[str] = None) -> list[Patient]:
        """Get clinic patients, optionally matching name, email or phone"""
        query = db.query(Patient).filter(Patient.clinic_id == clinic_id)

        if search:
            term = f"%{search.strip()}%"
            digits = "".join(ch for ch in search if ch.isdigit())
            conditions = [Patient.name.ilike(term), Patient.email.ilike(term)]
            if digits:
                conditions.append(Patient.phone_number.like(f"%{digits}%"))
            query = query.filter(or_(*conditions))

        return query.order_by(Patient.name).all()

    @staticmethod
    def get_patient_by_id(db: Session, patient_id: str, clinic_id: str) -> Optional[Patient]:
        return db.query(Patient).filter(Patient.id == patient_id, Patient.clinic_id == clinic_id).first()

    @staticmethod
    def create_patient(db: Session, clinic_id: str, **patient_data) -> Patient:
        """Create a new patient"""
        patient = Patient(clinic_id=clinic_id, **patient_data)
        db.add(patient)
        db.commit()
        db.refresh(patient)
        return patient

    @staticmethod
    def update_patient(db: Session, patient: Patient, **updates) -> Patient:
        for key, value in updates.items():
            if hasattr(patient, key):
                setattr(patient, key, value)
        db.commit()
        db.refresh(patient)
        return patient

    @staticmethod
    def delete_patient(db: Session, patient: Patient) -> None:
        """Delete a patient (appointments and medical records cascade)"""
        db.delete(patient)
        db.commit()

    @staticmethod
    def get_medical_records(db: Session, patient_id: str, clinic_id: str) -> list[MedicalRecord]:
        """Medical records of a patient, newest first"""
        return (
            db.query(MedicalRecord)
            .options(joinedload(MedicalRecord.doctor))
            .filter(MedicalRecord.patient_id == patient_id, MedicalRecord.clinic_id == clinic_id)
            .order_by(MedicalRecord.created_at.desc())
            .all()
        )
