"""Narrow collaborator interfaces the scheduling core talks through."""

from collections.abc import Sequence
from typing import TYPE_CHECKING, Protocol

from app.models.scheduling import BookedSlot, ClientInfo

if TYPE_CHECKING:
    from app.models.appointment import Appointment


class ClientDirectory(Protocol):
    def get_client(self, client_id: int) -> ClientInfo | None: ...


class BookedSlotSource(Protocol):
    async def list_booked_slots(self, practitioner_id: int) -> list[BookedSlot]: ...


class AppointmentStore(Protocol):
    async def insert_batch(self, appointments: Sequence["Appointment"]) -> list["Appointment"]:
        """Persist every appointment or none; raise ``PersistenceError`` on rejection."""
        ...
