from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, Literal, Optional


class WireModel(BaseModel):
    """camelCase on the wire and on disk, snake_case in Python."""
    model_config = ConfigDict(populate_by_name=True)

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True)


# Durable records

class ParticipantRecord(WireModel):
    name: str
    ficha_data: Any = Field(default_factory=dict, alias="fichaData")

class RoomRecord(WireModel):
    master_name: str = Field(alias="masterName")
    session_name: str = Field(alias="sessionName")
    created_at: int = Field(alias="createdAt")  # epoch milliseconds
    players: Dict[str, ParticipantRecord] = Field(default_factory=dict)

class StoreDocument(WireModel):
    rooms: Dict[str, RoomRecord] = Field(default_factory=dict)


# Inbound messages. Required fields are Optional here so that an incomplete
# command decodes and is then ignored instead of being reported.

class CreateRoomMessage(WireModel):
    type: Literal["create_room"] = "create_room"
    master_name: Optional[str] = Field(default=None, alias="masterName")
    session_name: Optional[str] = Field(default=None, alias="sessionName")

class JoinRoomMessage(WireModel):
    type: Literal["join_room"] = "join_room"
    player_name: Optional[str] = Field(default=None, alias="playerName")
    room_code: Optional[str] = Field(default=None, alias="roomCode")

class ReconnectMessage(WireModel):
    type: Literal["reconnect"] = "reconnect"
    role: Optional[str] = None
    name: Optional[str] = None
    room_code: Optional[str] = Field(default=None, alias="roomCode")

class FichaDataMessage(WireModel):
    type: Literal["ficha_data"] = "ficha_data"
    ficha_data: Any = Field(default=None, alias="fichaData")

class RequestFichaMessage(WireModel):
    type: Literal["request_ficha"] = "request_ficha"
    player_id: Optional[str] = Field(default=None, alias="playerId")


# Outbound messages

class PlayerPresence(WireModel):
    id: str
    name: str
    online: bool

class RoomCreated(WireModel):
    type: Literal["room_created"] = "room_created"
    room_code: str = Field(alias="roomCode")
    session_name: str = Field(alias="sessionName")
    master_name: str = Field(alias="masterName")

class RoomJoined(WireModel):
    type: Literal["room_joined"] = "room_joined"
    room_code: str = Field(alias="roomCode")
    session_name: str = Field(alias="sessionName")
    player_id: str = Field(alias="playerId")

class RoomError(WireModel):
    type: Literal["room_error"] = "room_error"
    message: str

class FichaUpdate(WireModel):
    type: Literal["ficha_update"] = "ficha_update"
    player_id: str = Field(alias="playerId")
    ficha_data: Any = Field(default_factory=dict, alias="fichaData")

class SendFicha(WireModel):
    type: Literal["send_ficha"] = "send_ficha"

class PlayersUpdate(WireModel):
    type: Literal["players_update"] = "players_update"
    players: Dict[str, PlayerPresence] = Field(default_factory=dict)

class MasterLeft(WireModel):
    type: Literal["master_left"] = "master_left"

class Ping(WireModel):
    type: Literal["ping"] = "ping"

class Pong(WireModel):
    type: Literal["pong"] = "pong"


# HTTP responses

class RoomDetailsResponse(WireModel):
    room_code: str = Field(alias="roomCode")
    session_name: str = Field(alias="sessionName")
    master_name: str = Field(alias="masterName")
    created_at: int = Field(alias="createdAt")
    expires_at: int = Field(alias="expiresAt")
    master_online: bool = Field(alias="masterOnline")
    players: Dict[str, PlayerPresence] = Field(default_factory=dict)

class HealthResponse(BaseModel):
    ok: bool
    rooms: int
