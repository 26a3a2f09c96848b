import argparse
import sys

from ..common.utils import log, parse_hostport, pretty_board, status_text
from ..game_logic import IllegalMove, Player
from ..local import MODE_AI, MODE_PVP, LocalMatch
from ..relay.server import DEFAULT_PORT
from .net import NetClient
from .prefs import Prefs

HELP = "Moves: 0-8 (board below), r = new game, q = quit. Lowercase = mark about to vanish."
LOCAL_HELP = "Also: m = switch 1 vs 1 / vs AI, s = zero the score of this mode."
COMMANDS = ("r", "q", "m", "s")


def read_command(prompt: str = "> "):
    """Returns an int 0-8, one of COMMANDS, or None for unreadable input."""
    try:
        raw = input(prompt).strip().lower()
    except EOFError:
        return "q"
    if raw in COMMANDS:
        return raw
    try:
        return int(raw)
    except ValueError:
        return None


def show_local(match: LocalMatch):
    sc = match.score
    print(pretty_board(match.state))
    print(f"[Game] {status_text(match.state)}   {match.label} score X {sc[Player.X]} - {sc[Player.O]} O")


def run_local(mode: str):
    match = LocalMatch(mode)
    print(HELP)
    print(LOCAL_HELP)
    show_local(match)
    while True:
        cmd = read_command()
        if cmd == "q":
            return
        if cmd == "r":
            match.reset()
        elif cmd == "m":
            match.toggle_mode()
        elif cmd == "s":
            match.reset_scores()
        elif cmd is None:
            print("Please enter a number 0-8, r, m, s or q.")
            continue
        else:
            try:
                match.play(cmd)
            except IllegalMove as e:
                print(f"[Game] Illegal move: {e.reason}")
                continue
        show_local(match)


def show_online(net: NetClient):
    if net.state is None:
        return
    role = net.role.value if net.role else "?"
    print()
    print(pretty_board(net.state))
    turn = " (your turn)" if net.my_turn else ""
    print(f"[Room {net.room}] you are {role}: {status_text(net.state)}{turn}")


def online_view():
    """on_update callback for NetClient that redraws only when role or state changed."""
    shown = [None]

    def update(net: NetClient):
        key = (net.role, net.state)
        if net.state is None or key == shown[0]:
            return
        shown[0] = key
        show_online(net)
    return update


def run_online(server: str, room: str, prefs: Prefs):
    host, port = parse_hostport(server, DEFAULT_PORT)
    try:
        net = NetClient(host, port, on_update=online_view())
    except OSError as e:
        log("Net", f"cannot reach {host}:{port}: {e}")
        sys.exit(1)
    prefs.remember(server, room)
    net.join(room)
    if not net.wait_for(lambda n: n.role is not None or n.error is not None):
        log("Net", "no answer to join")
    if net.error:
        log("Net", "join failed:", net.error)
        net.close()
        return
    print(HELP)
    try:
        while net.running:
            cmd = read_command("")
            if cmd == "q":
                break
            if cmd == "r":
                net.reset()
            elif isinstance(cmd, int):
                # the relay silently drops anything illegal
                net.move(cmd)
            else:
                print("Please enter a number 0-8, r or q.")
    finally:
        net.close()


def main(argv=None):
    ap = argparse.ArgumentParser(description="Recycle-3 tic-tac-toe (terminal)")
    sub = ap.add_subparsers(dest="cmd", required=True)
    sub.add_parser("local", help="two players on one terminal")
    sub.add_parser("ai", help="play X against the computer")
    son = sub.add_parser("online", help="play through a relay")
    son.add_argument("--server", help="host[:port] of the relay (default: last used)")
    son.add_argument("--room", help="room name (default: last used)")
    son.add_argument("--prefs", help="preferences database path")
    args = ap.parse_args(argv)

    if args.cmd == "local":
        run_local(MODE_PVP)
    elif args.cmd == "ai":
        run_local(MODE_AI)
    elif args.cmd == "online":
        prefs = Prefs(args.prefs)
        last_server, last_room = prefs.last_connection()
        server = args.server or last_server
        room = args.room or last_room
        if not server or not room:
            print("Use --server host:port and --room NAME (no previous values saved)")
            sys.exit(1)
        run_online(server, room, prefs)


if __name__ == "__main__":
    main()
