import argparse
import itertools
import os
import queue
import socket
import socketserver
import threading

from ..common.protocol import ProtocolError, encode_line, recv_line
from ..common.utils import log
from .registry import SessionRegistry

DEFAULT_PORT = 3000
OUTBOX_SIZE = 64
FLUSH_TIMEOUT = 2.0


class Outbox:
    """
    Bounded send queue drained by its own writer thread, so a peer that stops
    reading never blocks the thread holding the registry lock.
    A full queue means the peer is not keeping up: the socket is shut down and
    the reader side turns that into a disconnect.
    """
    def __init__(self, sock, conn_id, maxsize=OUTBOX_SIZE):
        self.sock = sock
        self.conn_id = conn_id
        self.q = queue.Queue(maxsize)
        self.thread = threading.Thread(target=self._run, daemon=True, name=f"outbox-{conn_id}")
        self.thread.start()

    def put(self, data: bytes) -> None:
        try:
            self.q.put_nowait(data)
        except queue.Full:
            self.kill()
            raise ConnectionError(f"outbox of conn {self.conn_id} is full")

    def kill(self) -> None:
        try: self.sock.shutdown(socket.SHUT_RDWR)
        except OSError: pass

    def close(self, timeout=FLUSH_TIMEOUT) -> None:
        """Send what is queued, then stop the writer."""
        try:
            self.q.put_nowait(None)
        except queue.Full:
            self.kill()
        self.thread.join(timeout)

    def _run(self):
        while True:
            data = self.q.get()
            if data is None:
                return
            try:
                self.sock.sendall(data)
            except OSError as e:
                log("Relay", f"conn {self.conn_id} write error: {e}")
                self.kill()
                return


class RelayRequestHandler(socketserver.BaseRequestHandler):
    def handle(self):
        sock = self.request
        srv: RelayServer = self.server
        conn_id = srv.register_socket(sock)
        log("Relay", f"conn {conn_id} from {self.client_address}")
        try:
            while True:
                try:
                    line = recv_line(sock)
                except ProtocolError as e:
                    # cannot resync after an oversized line
                    with srv.lock:
                        srv.send_to(conn_id, {"type": "error", "message": str(e)})
                    break
                if line is None:
                    break
                if not line.strip():
                    continue
                with srv.lock:
                    srv.registry.handle_line(conn_id, line)
        except OSError as e:
            log("Relay", f"conn {conn_id} error: {e}")
        finally:
            with srv.lock:
                srv.registry.disconnect(conn_id)
            srv.unregister_socket(conn_id)
            log("Relay", f"conn {conn_id} closed")


class RelayServer(socketserver.ThreadingMixIn, socketserver.TCPServer):
    """One reader thread per connection; registry access is serialized by `lock`."""
    daemon_threads = True
    allow_reuse_address = True

    def __init__(self, server_address, RequestHandlerClass=RelayRequestHandler,
                 outbox_size=OUTBOX_SIZE):
        super().__init__(server_address, RequestHandlerClass)
        self.lock = threading.Lock()
        self.outbox_size = outbox_size
        self._ids = itertools.count(1)
        self._outboxes = {}
        self._socks_lock = threading.Lock()
        self.registry = SessionRegistry(self.send_to)

    def register_socket(self, sock) -> int:
        with self._socks_lock:
            conn_id = next(self._ids)
            self._outboxes[conn_id] = Outbox(sock, conn_id, self.outbox_size)
        return conn_id

    def unregister_socket(self, conn_id: int) -> None:
        with self._socks_lock:
            box = self._outboxes.pop(conn_id, None)
        if box is not None:
            box.close()

    def send_to(self, conn_id: int, payload: dict) -> None:
        """Queue payload for conn_id. Raises ConnectionError if the peer is not keeping up."""
        with self._socks_lock:
            box = self._outboxes.get(conn_id)
        if box is None:
            return
        box.put(encode_line(payload))


def parse_args(argv=None):
    ap = argparse.ArgumentParser(description="Recycle-3 tic-tac-toe relay (line-delimited JSON over TCP)")
    ap.add_argument("--host", default="0.0.0.0")
    ap.add_argument("--port", type=int, default=int(os.getenv("PORT", DEFAULT_PORT)))
    return ap.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    srv = RelayServer((args.host, args.port))
    log("Relay", f"Listening on {args.host}:{srv.server_address[1]}")
    try:
        srv.serve_forever()
    except KeyboardInterrupt:
        log("Relay", "Bye.")
    finally:
        srv.server_close()


if __name__ == "__main__":
    main()
