"""
Line-delimited JSON protocol between relay and clients.

client -> server:  join {room} | move {index} | reset
server -> client:  joined {role, state} | state {state} | error {message}

Unknown "type" values parse to None and are ignored by both sides.
"""
import json
import socket
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Union

from ..game_logic import GameState, Player

ENCODING = "utf-8"
MAX_LINE = 65536


class ProtocolError(Exception):
    """Malformed message; reported to the sender only."""


class Role(str, Enum):
    FIRST = "First"
    SECOND = "Second"
    OBSERVER = "Observer"

    @property
    def player(self) -> Optional[Player]:
        return {Role.FIRST: Player.X, Role.SECOND: Player.O}.get(self)

    @classmethod
    def for_player(cls, player: Player) -> "Role":
        return cls.FIRST if player is Player.X else cls.SECOND


# ---- client messages ----
@dataclass(frozen=True)
class Join:
    room: str

    def to_dict(self):
        return {"type": "join", "room": self.room}

@dataclass(frozen=True)
class Move:
    index: Any  # validated by the rules, not here

    def to_dict(self):
        return {"type": "move", "index": self.index}

@dataclass(frozen=True)
class Reset:
    def to_dict(self):
        return {"type": "reset"}

ClientMessage = Union[Join, Move, Reset]


# ---- server messages ----
@dataclass(frozen=True)
class Joined:
    role: Role
    state: GameState

    def to_dict(self):
        return {"type": "joined", "role": self.role.value, "state": self.state.to_dict()}

@dataclass(frozen=True)
class StateUpdate:
    state: GameState

    def to_dict(self):
        return {"type": "state", "state": self.state.to_dict()}

@dataclass(frozen=True)
class Error:
    message: str

    def to_dict(self):
        return {"type": "error", "message": self.message}

ServerMessage = Union[Joined, StateUpdate, Error]


def decode_line(line: str) -> dict:
    try:
        obj = json.loads(line)
    except json.JSONDecodeError:
        raise ProtocolError("invalid_json")
    if not isinstance(obj, dict):
        raise ProtocolError("invalid_json")
    return obj

def encode_line(obj: dict) -> bytes:
    return (json.dumps(obj, separators=(",", ":")) + "\n").encode(ENCODING)


def parse_client_message(obj: dict) -> Optional[ClientMessage]:
    t = obj.get("type")
    if t == "join":
        room = obj.get("room", "")
        if room is None:
            room = ""
        if not isinstance(room, str):
            raise ProtocolError("room must be a string")
        return Join(room)
    elif t == "move":
        return Move(obj.get("index"))
    elif t == "reset":
        return Reset()
    return None

def parse_server_message(obj: dict) -> Optional[ServerMessage]:
    t = obj.get("type")
    try:
        if t == "joined":
            return Joined(Role(obj["role"]), GameState.from_dict(obj["state"]))
        elif t == "state":
            return StateUpdate(GameState.from_dict(obj["state"]))
        elif t == "error":
            return Error(str(obj.get("message", "")))
    except (KeyError, ValueError) as e:
        raise ProtocolError(f"bad {t} message: {e}")
    return None


# ---- socket helpers ----
def send_json(sock: socket.socket, obj: dict) -> None:
    sock.sendall(encode_line(obj))

def recv_line(sock: socket.socket) -> Optional[str]:
    """Read one line; None on EOF. Raises ProtocolError past MAX_LINE bytes."""
    buf = []
    while True:
        chunk = sock.recv(1)
        if not chunk:
            if not buf:
                return None
            break
        if chunk == b"\n":
            break
        buf.append(chunk)
        if len(buf) > MAX_LINE:
            raise ProtocolError("line too long")
    return b"".join(buf).decode(ENCODING, errors="replace")

def recv_json(sock: socket.socket):
    """Next JSON object from sock, None on EOF. Blank lines are skipped."""
    while True:
        line = recv_line(sock)
        if line is None:
            return None
        if line.strip():
            return decode_line(line)
