from sqlmodel import Field, SQLModel


class User(SQLModel, table=True):
    """A practitioner owning one calendar."""

    __tablename__ = "users"
    id: int | None = Field(default=None, primary_key=True)
    email: str = Field(unique=True, index=True)
    full_name: str | None = None
