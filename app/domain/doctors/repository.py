"""Doctor repository - Database operations for doctors"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import Doctor, User, UserClinic


class DoctorRepository:
    """Repository for doctor database operations"""

    @staticmethod
    def get_doctors(db: Session, clinic_id: str) -> list[Doctor]:
        """Get all doctors of a clinic"""
        return db.query(Doctor).filter(Doctor.clinic_id == clinic_id).order_by(Doctor.name).all()

    @staticmethod
    def get_doctor_by_id(db: Session, doctor_id: str, clinic_id: str) -> Optional[Doctor]:
        return db.query(Doctor).filter(Doctor.id == doctor_id, Doctor.clinic_id == clinic_id).first()

    @staticmethod
    def get_doctor_by_user(db: Session, user_id: str) -> Optional[Doctor]:
        return db.query(Doctor).filter(Doctor.user_id == user_id).first()

    @staticmethod
    def get_user_by_email(db: Session, email: str) -> Optional[User]:
        return db.query(User).filter(User.email == email).first()

    @staticmethod
    def create_doctor_user(db: Session, clinic_id: str, name: str, email: str, password_hash: str) -> User:
        """Create the login linked to a doctor (flushed, not committed)"""
        user = User(
            name=name,
            email=email,
            password_hash=password_hash,
            user_type="doctor",
            must_change_password=True,
        )
        db.add(user)
        db.flush()
        db.add(UserClinic(user_id=user.id, clinic_id=clinic_id))
        return user

    @staticmethod
    def create_doctor(db: Session, clinic_id: str, **doctor_data) -> Doctor:
        """Create a new doctor"""
        doctor = Doctor(clinic_id=clinic_id, **doctor_data)
        db.add(doctor)
        db.commit()
        db.refresh(doctor)
        return doctor

    @staticmethod
    def update_doctor(db: Session, doctor: Doctor, **updates) -> Doctor:
        """Update a doctor with provided fields"""
        for key, value in updates.items():
            if hasattr(doctor, key):
                setattr(doctor, key, value)
        db.commit()
        db.refresh(doctor)
        return doctor

    @staticmethod
    def delete_doctor(db: Session, doctor: Doctor) -> None:
        """Delete a doctor (appointments cascade)"""
        db.delete(doctor)
        db.commit()
