from fastapi import APIRouter, HTTPException, Request

from reconciler import normalize_room_code
from schemas.rooms import RoomDetailsResponse
from logging_config import get_logger

logger = get_logger(__name__)

rooms_router = APIRouter(prefix="/rooms", tags=["rooms"])


@rooms_router.get("/{room_code}")
async def get_room_details(room_code: str, request: Request):
    # GET /rooms/{room_code}
    # Lets a client check a code before opening a socket. Presence is the
    # same snapshot players_update carries.
    context = request.app.state.context
    code = normalize_room_code(room_code)
    room = context.store.get(code) if code else None
    if not room:
        logger.info(f"Room details failed: Room {code} not found")
        raise HTTPException(status_code=404, detail="Room not found")

    players = context.reconciler.presence(code)
    live = context.registry.get(code)
    details = RoomDetailsResponse(
        room_code=code,
        session_name=room.session_name,
        master_name=room.master_name,
        created_at=room.created_at,
        expires_at=room.created_at + context.sweeper.ttl_seconds * 1000,
        master_online=bool(live and live.master_online),
        players=players,
    )
    logger.info(f"Room details retrieved for {code}: {sum(p.online for p in players.values())}/{len(players)} players online")
    return details.to_wire()
