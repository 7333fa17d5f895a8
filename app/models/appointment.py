from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel

from app.models.scheduling import (
    DEFAULT_COLOR,
    AppointmentKind,
    AppointmentStatus,
    PaymentStatus,
    SessionKind,
)

NO_RECURRENCE = "none"


def _utc_naive_now() -> datetime:
    """Naive UTC for TIMESTAMP WITHOUT TIME ZONE columns."""
    return datetime.now(UTC).replace(tzinfo=None)


class Appointment(SQLModel, table=True):
    __tablename__ = "appointments"
    id: int | None = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="users.id", index=True)
    client_id: int | None = Field(default=None, foreign_key="clients.id", index=True)
    title: str | None = None
    description: str | None = None
    # Practitioner's local wall-clock time, stored naive
    start_time: datetime = Field(index=True, sa_type=DateTime(timezone=False))
    end_time: datetime = Field(sa_type=DateTime(timezone=False))
    status: str = AppointmentStatus.SCHEDULED.value
    price: Decimal | None = Field(default=None, max_digits=10, decimal_places=2)
    payment_status: str = PaymentStatus.PENDING.value
    appointment_type: str = AppointmentKind.IN_PERSON.value
    video_call_link: str | None = None
    create_financial_record: bool = True
    color: str = DEFAULT_COLOR
    session_type: str = SessionKind.SINGLE.value
    recurrence_type: str = NO_RECURRENCE
    recurrence_count: int = 1
    recurrence_group_id: str | None = Field(default=None, index=True)
    created_at: datetime = Field(default_factory=_utc_naive_now, sa_type=DateTime(timezone=False))


class AppointmentPublic(SQLModel):
    id: int
    user_id: int
    client_id: int | None = None
    title: str | None = None
    description: str | None = None
    start_time: datetime
    end_time: datetime
    status: str
    price: Decimal | None = None
    payment_status: str
    appointment_type: str
    video_call_link: str | None = None
    create_financial_record: bool
    color: str
    session_type: str
    recurrence_type: str
    recurrence_count: int
    recurrence_group_id: str | None = None
    created_at: datetime
