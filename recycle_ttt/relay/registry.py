"""
Room registry for the relay.

Every room holds one authoritative GameState. Players and observers bound to
the room receive the full snapshot whenever it changes. The registry is
transport agnostic: it is given a ``send(conn_id, payload_dict)`` callable and
is told about inbound lines and disconnects by connection id.

Callers must serialize calls (the TCP server holds one lock around them).
"""
from dataclasses import dataclass, field
from typing import Callable, Dict, Hashable, List, Optional, Set

from ..common.protocol import (Error, Join, Joined, Move, ProtocolError, Reset,
                               Role, StateUpdate, decode_line,
                               parse_client_message)
from ..common.utils import log
from ..game_logic import GameState, IllegalMove, Player, apply_placement, new_game

ConnId = Hashable
SendFn = Callable[[ConnId, dict], None]


@dataclass
class Session:
    room_id: str
    slots: Dict[Player, Optional[ConnId]] = field(
        default_factory=lambda: {Player.X: None, Player.O: None})
    observers: Set[ConnId] = field(default_factory=set)
    state: GameState = field(default_factory=new_game)

    def members(self) -> List[ConnId]:
        out = [c for c in (self.slots[Player.X], self.slots[Player.O]) if c is not None]
        out.extend(self.observers)
        return out

    def is_empty(self) -> bool:
        return not self.members()


@dataclass(frozen=True)
class Binding:
    room_id: str
    role: Role


def canonical_room(room: str) -> str:
    return room.strip().upper()


class SessionRegistry:
    def __init__(self, send: SendFn):
        self._send = send
        self._rooms: Dict[str, Session] = {}
        self._bindings: Dict[ConnId, Binding] = {}

    # ---- lookups ----
    def session(self, room_id: str) -> Optional[Session]:
        return self._rooms.get(canonical_room(room_id))

    def rooms(self) -> List[str]:
        return sorted(self._rooms)

    def role_of(self, conn: ConnId) -> Optional[Role]:
        b = self._bindings.get(conn)
        return b.role if b else None

    def room_of(self, conn: ConnId) -> Optional[str]:
        b = self._bindings.get(conn)
        return b.room_id if b else None

    # ---- inbound ----
    def handle_line(self, conn: ConnId, line: str) -> None:
        """Decode one raw line from conn and dispatch it."""
        try:
            msg = parse_client_message(decode_line(line))
        except ProtocolError as e:
            self._reply(conn, Error(str(e)))
            return
        self.dispatch(conn, msg)

    def dispatch(self, conn: ConnId, msg) -> None:
        if isinstance(msg, Join):
            try:
                self.join(conn, msg.room)
            except ProtocolError as e:
                self._reply(conn, Error(str(e)))
        elif isinstance(msg, Move):
            self.move(conn, msg.index)
        elif isinstance(msg, Reset):
            self.reset(conn)
        # unknown message types are ignored

    def join(self, conn: ConnId, room: str) -> Role:
        code = canonical_room(room)
        if not code:
            raise ProtocolError("empty_room")
        if conn in self._bindings:
            self._unbind(conn)

        sess = self._rooms.get(code)
        if sess is None:
            sess = self._rooms[code] = Session(code)
            log("Relay", f"room {code} created")

        if sess.slots[Player.X] is None:
            sess.slots[Player.X] = conn
            role = Role.FIRST
        elif sess.slots[Player.O] is None:
            sess.slots[Player.O] = conn
            role = Role.SECOND
        else:
            sess.observers.add(conn)
            role = Role.OBSERVER
        self._bindings[conn] = Binding(code, role)
        log("Relay", f"{conn} joined {code} as {role.value}")

        self._reply(conn, Joined(role, sess.state))
        self._broadcast(sess)
        return role

    def move(self, conn: ConnId, index) -> bool:
        """Apply a placement for conn. Rejections are dropped without a reply."""
        b = self._bindings.get(conn)
        if b is None or b.role is Role.OBSERVER:
            return False
        sess = self._rooms[b.room_id]
        state = sess.state
        if state.finished or b.role.player is not state.current_player:
            return False
        try:
            sess.state = apply_placement(state, index)
        except IllegalMove as e:
            log("Relay", f"{conn} move dropped: {e.reason}")
            return False
        self._broadcast(sess)
        return True

    def reset(self, conn: ConnId) -> bool:
        b = self._bindings.get(conn)
        if b is None or b.role is Role.OBSERVER:
            return False
        sess = self._rooms[b.room_id]
        sess.state = new_game()
        self._broadcast(sess)
        return True

    def disconnect(self, conn: ConnId) -> None:
        if conn in self._bindings:
            self._unbind(conn)

    # ---- internals ----
    def _unbind(self, conn: ConnId) -> None:
        b = self._bindings.pop(conn)
        sess = self._rooms.get(b.room_id)
        if sess is None:
            return
        for p, holder in sess.slots.items():
            if holder == conn:
                sess.slots[p] = None
        sess.observers.discard(conn)
        if sess.is_empty():
            del self._rooms[b.room_id]
            log("Relay", f"room {b.room_id} closed")

    def _deliver(self, conn: ConnId, payload: dict) -> None:
        try:
            self._send(conn, payload)
        except OSError as e:
            # peer already gone; its disconnect event cleans up
            log("Relay", f"send to {conn} failed: {e}")

    def _reply(self, conn: ConnId, msg) -> None:
        self._deliver(conn, msg.to_dict())

    def _broadcast(self, sess: Session) -> None:
        payload = StateUpdate(sess.state).to_dict()
        for conn in sess.members():
            self._deliver(conn, payload)
