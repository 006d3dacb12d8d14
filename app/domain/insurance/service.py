"""Health insurance plan service - plans accepted by the clinic"""

import logging
from typing import Optional

from fastapi import HTTPException, Request
from sqlalchemy.orm import Session

from ...models import Appointment, HealthInsurancePlan, User
from ...security_utils import sanitize_text
from ..security.audit import log_audit_event
from .schemas import InsurancePlanResponse, InsurancePlanUpsert

logger = logging.getLogger(__name__)


def build_plan_response(plan: HealthInsurancePlan) -> InsurancePlanResponse:
    return InsurancePlanResponse(
        id=plan.id,
        name=plan.name,
        reimbursementValueInCents=plan.reimbursement_value_in_cents,
        isActive=plan.is_active,
        created_at=plan.created_at,
    )


def _plan_snapshot(plan: HealthInsurancePlan) -> dict:
    return {
        "name": plan.name,
        "reimbursementValueInCents": plan.reimbursement_value_in_cents,
        "isActive": plan.is_active,
    }


class InsurancePlanService:
    def __init__(self, db: Session):
        self.db = db

    def get_plans(self, user: User, active_only: bool = False) -> list[HealthInsurancePlan]:
        query = self.db.query(HealthInsurancePlan).filter(HealthInsurancePlan.clinic_id == user.clinic.id)
        if active_only:
            query = query.filter(HealthInsurancePlan.is_active.is_(True))
        return query.order_by(HealthInsurancePlan.name).all()

    def get_plan(self, plan_id: str, user: User) -> HealthInsurancePlan:
        plan = (
            self.db.query(HealthInsurancePlan)
            .filter(HealthInsurancePlan.id == plan_id, HealthInsurancePlan.clinic_id == user.clinic.id)
            .first()
        )
        if not plan:
            raise HTTPException(status_code=404, detail="Plano de saúde não encontrado")
        return plan

    def upsert_plan(
        self,
        data: InsurancePlanUpsert,
        user: User,
        plan_id: Optional[str] = None,
        request: Optional[Request] = None,
    ) -> dict:
        """Create a plan, or update it when plan_id is given"""
        is_update = plan_id is not None
        logger.info(f"💳 {'Updating' if is_update else 'Creating'} insurance plan: {data.name}")

        if is_update:
            plan = self.get_plan(plan_id, user)
            before = _plan_snapshot(plan)
            plan.name = sanitize_text(data.name)
            plan.reimbursement_value_in_cents = data.reimbursementValueInCents
            plan.is_active = data.isActive
        else:
            before = None
            plan = HealthInsurancePlan(
                clinic_id=user.clinic.id,
                name=sanitize_text(data.name),
                reimbursement_value_in_cents=data.reimbursementValueInCents,
                is_active=data.isActive,
            )
            self.db.add(plan)

        self.db.commit()
        self.db.refresh(plan)

        details = {"planId": plan.id, "planName": plan.name, "after": _plan_snapshot(plan)}
        if before is not None:
            details["before"] = before
        log_audit_event(
            self.db,
            action="update_health_insurance_plan" if is_update else "create_health_insurance_plan",
            type="configuration_change",
            user_id=user.id,
            clinic_id=user.clinic.id,
            details=details,
            request=request,
        )

        logger.info(f"✅ Insurance plan {'updated' if is_update else 'created'}: {plan.id}")
        return {
            "success": True,
            "planId": plan.id,
            "message": f"Plano de saúde {'atualizado' if is_update else 'criado'} com sucesso!",
        }

    def delete_plan(self, plan_id: str, user: User, request: Optional[Request] = None) -> dict:
        """Delete a plan that no appointment references"""
        plan = self.get_plan(plan_id, user)

        in_use = self.db.query(Appointment.id).filter(Appointment.health_insurance_plan_id == plan.id).first()
        if in_use:
            log_audit_event(
                self.db,
                action="delete_health_insurance_plan",
                type="configuration_change",
                user_id=user.id,
                clinic_id=user.clinic.id,
                details={"planId": plan.id, "error": "plan_in_use"},
                success=False,
                request=request,
            )
            raise HTTPException(
                status_code=409,
                detail=(
                    "Não é possível deletar este plano pois há agendamentos associados a ele. "
                    "Desative o plano se necessário."
                ),
            )

        plan_name = plan.name
        self.db.delete(plan)
        self.db.commit()

        log_audit_event(
            self.db,
            action="delete_health_insurance_plan",
            type="configuration_change",
            user_id=user.id,
            clinic_id=user.clinic.id,
            details={"planId": plan_id, "planName": plan_name},
            request=request,
        )
        logger.info(f"🗑️ Insurance plan deleted: {plan_id}")
        return {"success": True, "planId": plan_id, "message": "Plano de saúde deletado com sucesso!"}
