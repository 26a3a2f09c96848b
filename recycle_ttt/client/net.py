import socket
import threading
from typing import Callable, Optional

from ..common.protocol import (Error, Join, Joined, Move, ProtocolError, Reset,
                               Role, StateUpdate, parse_server_message,
                               recv_json, send_json)
from ..common.utils import log
from ..game_logic import GameState


class NetClient:
    """
    Relay connection. A daemon thread keeps `role`, `state` and `error`
    up to date; `on_update` (if given) is called after every server message.
    """
    def __init__(self, host: str, port: int, timeout: float = 5.0,
                 on_update: Optional[Callable[["NetClient"], None]] = None):
        self.s = socket.create_connection((host, port), timeout=timeout)
        self.s.settimeout(None)
        self.room: Optional[str] = None
        self.role: Optional[Role] = None
        self.state: Optional[GameState] = None
        self.error: Optional[str] = None
        self.on_update = on_update
        self.running = True
        self._cond = threading.Condition()
        self._send_lock = threading.Lock()
        threading.Thread(target=self._recv_loop, daemon=True).start()

    def _recv_loop(self):
        try:
            while self.running:
                try:
                    obj = recv_json(self.s)
                except ProtocolError as e:
                    log("Net", "bad message from relay:", e)
                    continue
                if obj is None:
                    break
                try:
                    msg = parse_server_message(obj)
                except ProtocolError as e:
                    log("Net", e)
                    continue
                with self._cond:
                    if isinstance(msg, Joined):
                        self.role, self.state = msg.role, msg.state
                    elif isinstance(msg, StateUpdate):
                        self.state = msg.state
                    elif isinstance(msg, Error):
                        self.error = msg.message
                    self._cond.notify_all()
                if msg is not None and self.on_update:
                    self.on_update(self)
        except OSError as e:
            if self.running:
                log("Net", "connection lost:", e)
        finally:
            with self._cond:
                self.running = False
                self._cond.notify_all()
            try: self.s.close()
            except OSError: pass

    def wait_for(self, pred: Callable[["NetClient"], bool], timeout: float = 5.0) -> bool:
        with self._cond:
            return self._cond.wait_for(lambda: pred(self) or not self.running, timeout=timeout) and pred(self)

    def _send(self, msg) -> bool:
        with self._send_lock:
            try:
                send_json(self.s, msg.to_dict())
                return True
            except OSError as e:
                log("Net", "send failed:", e)
                return False

    def join(self, room: str) -> bool:
        self.room = room
        self.error = None
        return self._send(Join(room))

    def move(self, index: int) -> bool:
        return self._send(Move(index))

    def reset(self) -> bool:
        return self._send(Reset())

    @property
    def my_turn(self) -> bool:
        if not self.state or not self.role or self.state.finished:
            return False
        return self.role.player is self.state.current_player

    def close(self):
        self.running = False
        try: self.s.shutdown(socket.SHUT_RDWR)
        except OSError: pass
        try: self.s.close()
        except OSError: pass
