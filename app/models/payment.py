from datetime import date
from decimal import Decimal

from sqlmodel import Field, SQLModel

from app.models.scheduling import PaymentStatus


class Payment(SQLModel, table=True):
    """Financial record raised for a billable appointment."""

    __tablename__ = "payments"
    id: int | None = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="users.id", index=True)
    client_id: int = Field(foreign_key="clients.id", index=True)
    appointment_id: int = Field(foreign_key="appointments.id", index=True)
    amount: Decimal = Field(max_digits=10, decimal_places=2)
    due_date: date
    status: str = PaymentStatus.PENDING.value
    notes: str | None = None
