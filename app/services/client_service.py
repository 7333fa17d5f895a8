from collections.abc import Iterable

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.client import Client
from app.models.scheduling import ClientInfo


def _to_info(client: Client) -> ClientInfo:
    return ClientInfo(
        id=client.id,
        name=client.name,
        default_session_price=client.default_session_price,
    )


class ClientSnapshot:
    """In-memory ClientDirectory, loaded once per request."""

    def __init__(self, clients: Iterable[ClientInfo]) -> None:
        self._by_id = {c.id: c for c in clients}

    def get_client(self, client_id: int) -> ClientInfo | None:
        return self._by_id.get(client_id)


async def load_client_directory(session: AsyncSession, user_id: int) -> ClientSnapshot:
    result = await session.execute(
        select(Client).where(Client.user_id == user_id).order_by(Client.name)
    )
    return ClientSnapshot(_to_info(c) for c in result.scalars().all())
