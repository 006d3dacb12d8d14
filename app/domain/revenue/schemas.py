"""Revenue report schemas"""

from typing import Literal, Optional

from pydantic import BaseModel

RevenuePeriod = Literal["day", "week", "month", "year"]


class RevenueSummary(BaseModel):
    totalRevenue: int
    totalPayments: int
    totalPatients: int
    totalDoctors: int
    averageTransaction: int


class TimeSeriesPoint(BaseModel):
    date: str
    totalRevenue: int
    transactionCount: int


class PaymentMethodTotal(BaseModel):
    paymentMethod: str
    label: str
    totalAmount: int
    transactionCount: int


class TopDoctor(BaseModel):
    id: str
    name: str
    specialty: str
    revenue: int
    appointments: int


class RecentTransaction(BaseModel):
    paymentId: str
    patientName: str
    doctorName: str
    paymentMethod: str
    amount: int
    appointmentDate: str
    paymentDate: str


class RevenueFilters(BaseModel):
    startDate: str
    endDate: str
    paymentMethod: Optional[str] = None
    period: RevenuePeriod = "month"


class RevenueReport(BaseModel):
    summary: RevenueSummary
    timeSeries: list[TimeSeriesPoint]
    paymentMethods: list[PaymentMethodTotal]
    topDoctors: list[TopDoctor]
    recentTransactions: list[RecentTransaction]
    filters: RevenueFilters
