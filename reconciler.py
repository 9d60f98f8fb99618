"""
Session reconciler - the per-connection state machine.

Every inbound frame and every connection close goes through here. This is
the only place that reads both the durable store and the live registry:
the durable store decides whether a room or participant exists, the live
registry decides whether it is online right now.

Connection states: anonymous -> master-active | player-active -> closed.
"""
import json
import time
from typing import Awaitable, Callable, Dict, Optional, Tuple, Type

from pydantic import BaseModel, ValidationError

from connection import Connection, Role
from fanout import broadcast
from identifiers import allocate_room_code, generate_participant_id
from registry import LiveRegistry
from schemas.rooms import (
    CreateRoomMessage, JoinRoomMessage, ReconnectMessage, FichaDataMessage, RequestFichaMessage,
    RoomCreated, RoomJoined, RoomError, FichaUpdate, SendFicha, PlayersUpdate, MasterLeft, Pong,
    ParticipantRecord, PlayerPresence, RoomRecord,
)
from store import DurableStore
from logging_config import get_logger

logger = get_logger(__name__)

ROOM_NOT_FOUND_MESSAGE = "Room not found. Check the code."


def normalize_room_code(room_code: Optional[str]) -> Optional[str]:
    if not room_code:
        return None
    code = room_code.strip().upper()
    return code or None


def _present(value: Optional[str]) -> bool:
    return bool(value and value.strip())


class SessionReconciler:
    def __init__(self, store: DurableStore, registry: LiveRegistry, clock: Callable[[], float] = time.time):
        self.store = store
        self.registry = registry
        self.clock = clock
        self._handlers: Dict[str, Tuple[Optional[Type[BaseModel]], Callable[..., Awaitable[None]]]] = {
            "create_room": (CreateRoomMessage, self.create_room),
            "join_room": (JoinRoomMessage, self.join_room),
            "reconnect": (ReconnectMessage, self.reconnect),
            "ficha_data": (FichaDataMessage, self.update_participant_data),
            "request_ficha": (RequestFichaMessage, self.request_participant_data),
            "pong": (None, self.acknowledge_liveness),
            "ping": (None, self.acknowledge_ping),
        }

    def now_ms(self) -> int:
        return int(self.clock() * 1000)

    async def handle_message(self, conn: Connection, raw: str):
        """Decode one frame and dispatch it on its type.

        Undecodable frames and unknown types are dropped; the connection stays open.
        """
        try:
            data = json.loads(raw)
        except (json.JSONDecodeError, TypeError) as e:
            logger.debug(f"Parse error from connection {conn.id}: {e}")
            return
        if not isinstance(data, dict):
            logger.debug(f"Ignoring non-object frame from connection {conn.id}")
            return

        message_type = data.get("type")
        entry = self._handlers.get(message_type) if isinstance(message_type, str) else None
        if entry is None:
            logger.debug(f"Ignoring unknown message type {message_type!r} from connection {conn.id}")
            return

        schema, handler = entry
        if schema is None:
            await handler(conn)
            return
        try:
            message = schema.model_validate(data)
        except ValidationError as e:
            logger.warning(f"Discarding malformed {message_type} from connection {conn.id}: {e.error_count()} errors")
            return
        await handler(conn, message)

    def presence(self, code: str) -> Dict[str, PlayerPresence]:
        """Presence for every participant the durable store knows, online or not."""
        durable = self.store.get(code)
        if durable is not None:
            self.registry.ensure_room_live(code, durable)
        return self.registry.snapshot(code)

    async def broadcast_presence(self, code: str):
        await broadcast(self.registry, code, PlayersUpdate(players=self.presence(code)))

    async def create_room(self, conn: Connection, msg: CreateRoomMessage):
        if not conn.is_anonymous:
            return
        if not _present(msg.master_name) or not _present(msg.session_name):
            return
        master_name = msg.master_name.strip()
        session_name = msg.session_name.strip()

        code = allocate_room_code(lambda c: c in self.store)
        self.store.upsert_room(code, RoomRecord(
            master_name=master_name,
            session_name=session_name,
            created_at=self.now_ms(),
        ))
        self.registry.create_room(code)
        self.registry.set_master_connection(code, conn)
        conn.bind_master(code, master_name)

        await conn.send(RoomCreated(room_code=code, session_name=session_name, master_name=master_name))
        logger.info(f"Room created {code} by master {master_name}")

    async def join_room(self, conn: Connection, msg: JoinRoomMessage):
        if not conn.is_anonymous:
            return
        code = normalize_room_code(msg.room_code)
        if not _present(msg.player_name) or not code:
            return
        player_name = msg.player_name.strip()

        durable = self.store.get(code)
        if durable is None:
            logger.info(f"Join rejected: room {code} not found")
            await conn.send(RoomError(message=ROOM_NOT_FOUND_MESSAGE))
            return

        self._admit_player(conn, code, durable, player_name)
        await conn.send(RoomJoined(room_code=code, session_name=durable.session_name, player_id=conn.player_id))
        await self.broadcast_presence(code)
        logger.info(f"Player {player_name} ({conn.player_id}) joined room {code}")

    async def reconnect(self, conn: Connection, msg: ReconnectMessage):
        if not conn.is_anonymous:
            return
        code = normalize_room_code(msg.room_code)
        if not code:
            return
        durable = self.store.get(code)
        if durable is None:
            logger.debug(f"Reconnect ignored: room {code} not found")
            return

        if msg.role == Role.MASTER.value:
            master_name = msg.name.strip() if _present(msg.name) else durable.master_name
            self.registry.ensure_room_live(code, durable)
            self.registry.set_master_connection(code, conn)
            conn.bind_master(code, master_name)
            await conn.send(RoomCreated(room_code=code, session_name=durable.session_name, master_name=master_name))
            await conn.send(PlayersUpdate(players=self.presence(code)))
            logger.info(f"Master {master_name} reconnected to room {code}")
        elif msg.role == Role.PLAYER.value:
            if not _present(msg.name):
                return
            # A reconnecting player always becomes a new participant; the old
            # record stays in the room, offline.
            self._admit_player(conn, code, durable, msg.name.strip())
            await conn.send(RoomJoined(room_code=code, session_name=durable.session_name, player_id=conn.player_id))
            await self.broadcast_presence(code)
            logger.info(f"Player {conn.name} reconnected to room {code} as {conn.player_id}")
        else:
            logger.debug(f"Reconnect ignored: unknown role {msg.role!r}")

    def _admit_player(self, conn: Connection, code: str, durable: RoomRecord, player_name: str):
        self.registry.ensure_room_live(code, durable)
        player_id = generate_participant_id()
        self.store.upsert_participant(code, player_id, ParticipantRecord(name=player_name, ficha_data={}))
        self.registry.set_participant_connection(code, player_id, conn, name=player_name, payload={})
        conn.bind_player(code, player_name, player_id)

    async def update_participant_data(self, conn: Connection, msg: FichaDataMessage):
        if conn.role != Role.PLAYER or not conn.room_code or not conn.player_id:
            return
        if msg.ficha_data is None:
            return
        code = conn.room_code
        room = self.registry.get(code)
        if room is None:
            return

        self.registry.set_payload(code, conn.player_id, msg.ficha_data)
        # Durable write waits for the periodic flush
        self.store.set_payload(code, conn.player_id, msg.ficha_data)

        if room.master_online:
            await room.master_connection.send(FichaUpdate(player_id=conn.player_id, ficha_data=msg.ficha_data))
        logger.debug(f"Payload updated for {conn.player_id} in room {code}")

    async def request_participant_data(self, conn: Connection, msg: RequestFichaMessage):
        if conn.role != Role.MASTER or not conn.room_code or not msg.player_id:
            return
        code = conn.room_code
        room = self.registry.get(code)
        if room is None:
            return

        participant = room.participants.get(msg.player_id)
        if participant is not None and participant.online:
            # The answer comes back later as a ficha_data from that player
            await participant.connection.send(SendFicha())
            return
        cached = self.store.get_payload(code, msg.player_id)
        await conn.send(FichaUpdate(player_id=msg.player_id, ficha_data=cached))

    async def acknowledge_liveness(self, conn: Connection):
        conn.mark_alive()

    async def acknowledge_ping(self, conn: Connection):
        conn.mark_alive()
        await conn.send(Pong())

    async def disconnect(self, conn: Connection):
        """Close transition. Safe to call more than once for the same connection."""
        conn.mark_closed()
        if conn.released:
            return
        conn.released = True

        code = conn.room_code
        if not code or code not in self.registry:
            return

        if conn.role == Role.MASTER:
            # A superseded master closing must not detach its replacement
            if self.registry.clear_master_connection(code, conn):
                logger.info(f"Master left room {code}")
                await broadcast(self.registry, code, MasterLeft())
        elif conn.role == Role.PLAYER and conn.player_id:
            if self.registry.clear_participant_connection(code, conn.player_id, conn):
                logger.info(f"Player {conn.name} left room {code}")
                await self.broadcast_presence(code)
