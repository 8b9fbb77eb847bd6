from typing import Annotated

from fastapi import Depends, Header, HTTPException

from ticketdesk.core.errors import NotFoundError
from ticketdesk.dependencies.tickets import get_directory
from ticketdesk.directory.models import Actor
from ticketdesk.directory.repository import DirectoryRepository


async def get_current_actor(
    directory: Annotated[DirectoryRepository, Depends(get_directory)],
    user_id: Annotated[int | None, Header(alias="X-User-Id")] = None,
) -> Actor:
    """Resolve the acting user from the ``X-User-Id`` header.

    Identity is established upstream; this only maps the forwarded id onto a
    known user and its group's visibility grant.
    """

    if user_id is None:
        raise HTTPException(status_code=401, detail="Missing X-User-Id header")
    try:
        return await directory.resolve_actor(user_id)
    except NotFoundError as exc:
        raise HTTPException(status_code=401, detail=str(exc)) from exc


CurrentActor = Annotated[Actor, Depends(get_current_actor)]
