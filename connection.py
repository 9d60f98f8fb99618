import json
import uuid
from enum import Enum
from typing import Optional, Union

from pydantic import BaseModel

from logging_config import get_logger

logger = get_logger(__name__)


class Role(str, Enum):
    MASTER = "master"
    PLAYER = "player"


class Connection:
    """One websocket plus the session it is bound to.

    A connection starts anonymous (no role, no room). The reconciler binds it
    to a room as master, or as player together with a participant id. Nothing
    here is persisted.
    """

    def __init__(self, websocket, connection_id: Optional[str] = None):
        self.websocket = websocket
        self.id = connection_id or str(uuid.uuid4())
        self.role: Optional[Role] = None
        self.room_code: Optional[str] = None
        self.name: Optional[str] = None
        self.player_id: Optional[str] = None
        self.alive = True
        self.closed = False
        self.released = False  # close transition already applied

    def __repr__(self):
        return f"<Connection {self.id[:8]} role={self.role and self.role.value} room={self.room_code}>"

    @property
    def is_open(self) -> bool:
        return not self.closed

    @property
    def is_anonymous(self) -> bool:
        return self.role is None

    def bind_master(self, room_code: str, name: Optional[str]):
        self.role = Role.MASTER
        self.room_code = room_code
        self.name = name
        self.player_id = None

    def bind_player(self, room_code: str, name: str, player_id: str):
        self.role = Role.PLAYER
        self.room_code = room_code
        self.name = name
        self.player_id = player_id

    def mark_alive(self):
        self.alive = True

    def mark_closed(self):
        self.closed = True

    async def send(self, message: Union[BaseModel, dict]) -> bool:
        """Send one JSON frame. Returns False instead of raising when the socket is gone."""
        if self.closed:
            return False
        if isinstance(message, BaseModel):
            message = message.model_dump(by_alias=True)
        try:
            await self.websocket.send_text(json.dumps(message))
            return True
        except Exception as e:
            logger.debug(f"Error sending to connection {self.id}: {e}")
            return False

    async def close(self, code: int = 1000, reason: str = ""):
        if self.closed:
            return
        self.closed = True
        try:
            await self.websocket.close(code=code, reason=reason)
        except Exception as e:
            logger.debug(f"Error closing WebSocket {self.id}: {e}")
