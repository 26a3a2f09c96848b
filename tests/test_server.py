import socket
import threading
import time
import unittest

from recycle_ttt.client.net import NetClient
from recycle_ttt.common.protocol import MAX_LINE, Role, recv_json, send_json
from recycle_ttt.game_logic import Cell, Player
from recycle_ttt.relay.server import Outbox, RelayServer, parse_args


class RelayServerTests(unittest.TestCase):
    def setUp(self):
        self.srv = RelayServer(("127.0.0.1", 0))
        self.port = self.srv.server_address[1]
        self.thread = threading.Thread(target=self.srv.serve_forever, daemon=True)
        self.thread.start()
        self.clients = []

    def tearDown(self):
        for c in self.clients:
            c.close()
        self.srv.shutdown()
        self.srv.server_close()

    def client(self):
        c = NetClient("127.0.0.1", self.port)
        self.clients.append(c)
        return c

    def poll(self, pred, timeout=5.0):
        deadline = time.monotonic() + timeout
        while True:
            with self.srv.lock:
                if pred():
                    return True
            if time.monotonic() >= deadline:
                return False
            time.sleep(0.01)

    def test_two_players_and_observer(self):
        a, b, c = self.client(), self.client(), self.client()
        a.join("game")
        self.assertTrue(a.wait_for(lambda n: n.role is Role.FIRST))
        b.join("GAME")
        self.assertTrue(b.wait_for(lambda n: n.role is Role.SECOND))
        c.join("Game")
        self.assertTrue(c.wait_for(lambda n: n.role is Role.OBSERVER))

        self.assertTrue(a.my_turn)
        a.move(4)
        for n in (a, b, c):
            self.assertTrue(n.wait_for(lambda n: n.state is not None and n.state.board[4] is Cell.X))
        self.assertTrue(b.my_turn)
        self.assertFalse(c.my_turn)

        b.move(0)
        self.assertTrue(c.wait_for(lambda n: n.state.last_move == 0))
        self.assertEqual(c.state.current_player, Player.X)

        b.reset()
        self.assertTrue(a.wait_for(lambda n: n.state.last_move is None))

    def test_errors_reported_to_sender(self):
        with socket.create_connection(("127.0.0.1", self.port), timeout=5) as s:
            s.sendall(b"this is not json\n")
            self.assertEqual(recv_json(s), {"type": "error", "message": "invalid_json"})
            send_json(s, {"type": "join", "room": "  "})
            self.assertEqual(recv_json(s), {"type": "error", "message": "empty_room"})
            send_json(s, {"type": "join", "room": "x"})
            reply = recv_json(s)
            self.assertEqual(reply["type"], "joined")
            self.assertEqual(reply["role"], "First")

    def test_room_freed_after_disconnect(self):
        a = self.client()
        a.join("tmp")
        self.assertTrue(a.wait_for(lambda n: n.role is not None))
        a.move(0)
        self.assertTrue(a.wait_for(lambda n: n.state.last_move == 0))
        a.close()
        for _ in range(50):
            with self.srv.lock:
                if not self.srv.registry.rooms():
                    break
            threading.Event().wait(0.05)
        self.assertEqual(self.srv.registry.rooms(), [])

        b = self.client()
        b.join("TMP")
        self.assertTrue(b.wait_for(lambda n: n.role is Role.FIRST))
        self.assertIsNone(b.state.last_move)

    def test_oversized_line_closes_connection(self):
        with socket.create_connection(("127.0.0.1", self.port), timeout=5) as s:
            s.sendall(b"\xff\xfe\n")
            self.assertEqual(recv_json(s), {"type": "error", "message": "invalid_json"})
            s.sendall(b"x" * (MAX_LINE + 1))
            self.assertEqual(recv_json(s), {"type": "error", "message": "line too long"})
            self.assertIsNone(recv_json(s))

    def test_slow_reader_does_not_stall_other_rooms(self):
        a = self.client()
        a.join("slow")
        self.assertTrue(a.wait_for(lambda n: n.role is Role.FIRST))
        # joins as Second and never reads
        slow = socket.socket()
        self.addCleanup(slow.close)
        slow.setsockopt(socket.SOL_SOCKET, socket.SO_RCVBUF, 4096)
        slow.connect(("127.0.0.1", self.port))
        send_json(slow, {"type": "join", "room": "slow"})
        self.assertTrue(self.poll(lambda: self.srv.registry.session("slow").slots[Player.O] is not None))

        dropped = False
        for _ in range(100):
            for _ in range(50):
                a.reset()
            dropped = self.poll(lambda: self.srv.registry.session("slow").slots[Player.O] is None, 0.05)
            if dropped:
                break
        self.assertTrue(dropped)

        b = self.client()
        b.join("other")
        self.assertTrue(b.wait_for(lambda n: n.role is Role.FIRST, timeout=5))
        self.assertTrue(a.running)

    def test_full_outbox_shuts_the_socket_down(self):
        left, right = socket.socketpair()
        self.addCleanup(left.close)
        self.addCleanup(right.close)
        box = Outbox(left, "pair", maxsize=2)
        # nobody reads right, so the writer blocks on the first chunk
        with self.assertRaises(ConnectionError):
            for _ in range(4):
                box.put(b"x" * (1 << 20))
        box.thread.join(5)
        self.assertFalse(box.thread.is_alive())

    def test_parse_args(self):
        self.assertEqual(parse_args(["--port", "4100"]).port, 4100)
        self.assertEqual(parse_args([]).host, "0.0.0.0")


if __name__ == "__main__":
    unittest.main()
