import json
from typing import Any, Dict, List, Optional, Tuple

from pydantic import ValidationError

from schemas.rooms import ParticipantRecord, RoomRecord, StoreDocument
from logging_config import get_logger

logger = get_logger(__name__)


class DurableStore:
    """Authoritative record of every room and participant.

    Mutations land in memory immediately and mark the store dirty. Structural
    changes (new room, new participant) are flushed to the backend right
    away; payload updates wait for the periodic flush, so a crash loses at
    most one flush interval of payload edits.
    """

    def __init__(self, backend):
        self.backend = backend
        self.rooms: Dict[str, RoomRecord] = {}
        self.dirty = False

    def load(self):
        """Replace in-memory state with the backend document.

        A missing document starts an empty store. An unreadable one is
        logged and also starts empty; rooms that fail validation are skipped.
        """
        self.rooms = {}
        self.dirty = False
        try:
            raw = self.backend.read()
        except Exception as e:
            logger.error(f"Failed to read durable state: {e}", exc_info=True)
            return
        if raw is None:
            logger.info("No persisted state found, starting with an empty store")
            return
        try:
            document = json.loads(raw)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            logger.error(f"Persisted state is not valid JSON, starting empty: {e}")
            return
        rooms = document.get("rooms") if isinstance(document, dict) else None
        if not isinstance(rooms, dict):
            logger.error("Persisted state has no 'rooms' mapping, starting empty")
            return
        for code, room_data in rooms.items():
            try:
                self.rooms[code] = RoomRecord.model_validate(room_data)
            except ValidationError as e:
                logger.warning(f"Skipping unreadable room {code}: {e}")
        logger.info(f"Loaded {len(self.rooms)} rooms from durable state")

    def flush(self, force: bool = False) -> bool:
        """Write the whole document if anything changed. Returns True on a write."""
        if not self.dirty and not force:
            return False
        data = StoreDocument(rooms=self.rooms).model_dump_json(by_alias=True, indent=2).encode("utf-8")
        try:
            self.backend.write(data)
        except Exception as e:
            # Stay dirty; the next flush retries with whatever is in memory then.
            logger.error(f"Failed to write durable state: {e}", exc_info=True)
            return False
        self.dirty = False
        logger.debug(f"Flushed {len(self.rooms)} rooms to durable state")
        return True

    def __contains__(self, code: str) -> bool:
        return code in self.rooms

    def __len__(self) -> int:
        return len(self.rooms)

    def get(self, code: str) -> Optional[RoomRecord]:
        return self.rooms.get(code)

    def upsert_room(self, code: str, room: RoomRecord, flush: bool = True):
        self.rooms[code] = room
        self.dirty = True
        if flush:
            self.flush()

    def upsert_participant(self, code: str, participant_id: str, participant: ParticipantRecord, flush: bool = True) -> bool:
        room = self.rooms.get(code)
        if room is None:
            logger.debug(f"Cannot store participant {participant_id}: room {code} not found")
            return False
        room.players[participant_id] = participant
        self.dirty = True
        if flush:
            self.flush()
        return True

    def set_payload(self, code: str, participant_id: str, payload: Any) -> bool:
        """Replace a participant's payload wholesale. Persisted on the next flush."""
        room = self.rooms.get(code)
        if room is None or participant_id not in room.players:
            return False
        room.players[participant_id].ficha_data = payload
        self.dirty = True
        return True

    def get_payload(self, code: str, participant_id: str) -> Any:
        room = self.rooms.get(code)
        if room is None:
            return {}
        participant = room.players.get(participant_id)
        if participant is None or participant.ficha_data is None:
            return {}
        return participant.ficha_data

    def delete_room(self, code: str, flush: bool = False) -> bool:
        if self.rooms.pop(code, None) is None:
            return False
        self.dirty = True
        if flush:
            self.flush()
        return True

    def all_rooms(self) -> List[Tuple[str, RoomRecord]]:
        return list(self.rooms.items())
