from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from connection import Connection
from schemas.rooms import PlayerPresence, RoomRecord
from logging_config import get_logger

logger = get_logger(__name__)


@dataclass
class LiveParticipant:
    name: str
    payload: Any = field(default_factory=dict)
    connection: Optional[Connection] = None

    @property
    def online(self) -> bool:
        return self.connection is not None and self.connection.is_open


@dataclass
class LiveRoom:
    master_connection: Optional[Connection] = None
    participants: Dict[str, LiveParticipant] = field(default_factory=dict)

    @property
    def master_online(self) -> bool:
        return self.master_connection is not None and self.master_connection.is_open


class LiveRegistry:
    """Process-local index of which sockets belong to which room.

    Rooms are materialized lazily from durable records and may stay live with
    no connected socket at all, so everyone can reconnect after the last
    participant drops.
    """

    def __init__(self):
        self.rooms: Dict[str, LiveRoom] = {}

    def __contains__(self, code: str) -> bool:
        return code in self.rooms

    def __len__(self) -> int:
        return len(self.rooms)

    def get(self, code: str) -> Optional[LiveRoom]:
        return self.rooms.get(code)

    def create_room(self, code: str) -> LiveRoom:
        room = LiveRoom()
        self.rooms[code] = room
        logger.debug(f"Live entry created for room {code}")
        return room

    def ensure_room_live(self, code: str, durable: RoomRecord) -> LiveRoom:
        """Return the live entry for code, seeding or topping it up from durable.

        Every durable participant missing from the live entry is added with no
        connection, so the live view is never a strict subset of the durable one.
        """
        room = self.rooms.get(code)
        if room is None:
            room = self.create_room(code)
        for participant_id, record in durable.players.items():
            if participant_id not in room.participants:
                room.participants[participant_id] = LiveParticipant(
                    name=record.name,
                    payload=record.ficha_data if record.ficha_data is not None else {},
                )
        return room

    def remove_room(self, code: str) -> bool:
        return self.rooms.pop(code, None) is not None

    def set_master_connection(self, code: str, conn: Optional[Connection]) -> Optional[Connection]:
        """Point the room at conn as its master. Returns the superseded connection, if any."""
        room = self.rooms.get(code)
        if room is None:
            return None
        previous = room.master_connection
        room.master_connection = conn
        if previous is not None and conn is not None and previous is not conn:
            logger.debug(f"Master connection {previous.id} superseded by {conn.id} in room {code}")
        return previous

    def clear_master_connection(self, code: str, conn: Connection) -> bool:
        """Detach conn as master, but only while it is still the current one."""
        room = self.rooms.get(code)
        if room is None or room.master_connection is not conn:
            return False
        room.master_connection = None
        return True

    def set_participant_connection(self, code: str, participant_id: str, conn: Optional[Connection],
                                   name: Optional[str] = None, payload: Any = None) -> Optional[LiveParticipant]:
        room = self.rooms.get(code)
        if room is None:
            return None
        participant = room.participants.get(participant_id)
        if participant is None:
            participant = LiveParticipant(name=name or "", payload=payload if payload is not None else {})
            room.participants[participant_id] = participant
        participant.connection = conn
        return participant

    def clear_participant_connection(self, code: str, participant_id: str, conn: Connection) -> bool:
        room = self.rooms.get(code)
        if room is None:
            return False
        participant = room.participants.get(participant_id)
        if participant is None or participant.connection is not conn:
            return False
        participant.connection = None
        return True

    def set_payload(self, code: str, participant_id: str, payload: Any) -> bool:
        room = self.rooms.get(code)
        if room is None or participant_id not in room.participants:
            return False
        room.participants[participant_id].payload = payload
        return True

    def snapshot(self, code: str) -> Dict[str, PlayerPresence]:
        room = self.rooms.get(code)
        if room is None:
            return {}
        return {
            participant_id: PlayerPresence(id=participant_id, name=p.name, online=p.online)
            for participant_id, p in room.participants.items()
        }

    def connections(self, code: str) -> List[Connection]:
        """Every open connection addressed by the room, master first."""
        room = self.rooms.get(code)
        if room is None:
            return []
        result = []
        if room.master_online:
            result.append(room.master_connection)
        for p in room.participants.values():
            if p.online:
                result.append(p.connection)
        return result
