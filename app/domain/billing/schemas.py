"""Billing domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

PaymentMethod = Literal[
    "dinheiro",
    "cartao_credito",
    "cartao_debito",
    "pix",
    "cheque",
    "transferencia_eletronica",
]


class PaymentTransactionIn(BaseModel):
    """One payment method used to settle an appointment"""

    paymentMethod: PaymentMethod
    amountInCents: int
    transactionReference: Optional[str] = Field(default=None, max_length=255)
    notes: Optional[str] = None

    @field_validator("amountInCents")
    @classmethod
    def validate_amount(cls, v: int) -> int:
        if v < 1:
            raise ValueError("O valor deve ser maior que zero.")
        return v


class ProcessPaymentRequest(BaseModel):
    """Schema for registering the payment of an appointment"""

    appointmentId: str = Field(min_length=1)
    totalAmountInCents: int
    transactions: list[PaymentTransactionIn]
    notes: Optional[str] = None

    @field_validator("totalAmountInCents")
    @classmethod
    def validate_total(cls, v: int) -> int:
        if v < 1:
            raise ValueError("O valor total deve ser maior que zero.")
        return v

    @field_validator("transactions")
    @classmethod
    def validate_transactions(cls, v: list[PaymentTransactionIn]) -> list[PaymentTransactionIn]:
        if not v:
            raise ValueError("Pelo menos um método de pagamento deve ser informado.")
        return v

    @model_validator(mode="after")
    def check_sum(self):
        if sum(t.amountInCents for t in self.transactions) <= 0:
            raise ValueError("A soma dos valores das transações deve ser maior que zero.")
        return self


class PaymentTransactionResponse(BaseModel):
    id: str
    paymentMethod: str
    paymentMethodLabel: str
    amountInCents: int
    transactionReference: Optional[str] = None
    notes: Optional[str] = None


class PaymentResponse(BaseModel):
    id: str
    appointmentId: str
    totalAmountInCents: int
    paidAmountInCents: int
    remainingAmountInCents: int
    changeAmountInCents: int
    status: str
    notes: Optional[str] = None
    processedByUserId: Optional[str] = None
    transactions: list[PaymentTransactionResponse] = []
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ProcessPaymentResponse(BaseModel):
    success: bool
    payment: PaymentResponse
    message: str


class BillingStatsResponse(BaseModel):
    pendingAppointments: int
    paymentsToday: int
    dailyRevenueInCents: int


class PendingAppointmentResponse(BaseModel):
    id: str
    date: datetime
    localDate: str
    timeSlot: str
    status: str
    appointmentPriceInCents: int
    patient: dict
    doctor: dict
    payment: Optional[PaymentResponse] = None
