from decimal import Decimal

from sqlmodel import Field, SQLModel


class Client(SQLModel, table=True):
    """Only the columns scheduling reads; client records are managed elsewhere."""

    __tablename__ = "clients"
    id: int | None = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="users.id", index=True)
    name: str
    default_session_price: Decimal | None = Field(default=None, max_digits=10, decimal_places=2)
