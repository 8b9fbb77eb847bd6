from fastapi import APIRouter

from ticketdesk.dependencies.auth import CurrentActor

router = APIRouter(prefix="/ping", tags=["health"])


@router.get("", summary="Public health probe")
async def ping() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/whoami", summary="Echo the resolved acting user")
async def whoami(actor: CurrentActor) -> dict[str, str | int | bool]:
    return {"status": "ok", "user_id": actor.id, "role": actor.role.value, "sees_all_tickets": actor.sees_all_tickets}
