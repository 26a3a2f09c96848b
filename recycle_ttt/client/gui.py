import argparse
import sys
from typing import Optional

import pygame

from ..common.utils import log, parse_hostport, status_text
from ..game_logic import GameState, IllegalMove, Player, expiring_cell
from ..local import MODE_AI, MODE_PVP, LocalMatch
from ..relay.server import DEFAULT_PORT
from .net import NetClient
from .prefs import Prefs

# --------- Layout ---------
W, H = 420, 520
CELL = 120
OX, OY = 30, 90
AI_DELAY_MS = 420
BG = (20, 22, 27)
FG = (230, 230, 230)
ACCENT = (120, 180, 255)
GRID = (60, 63, 72)
COLORS = {Player.X: (138, 202, 255), Player.O: (255, 138, 138)}
FADED = {Player.X: (70, 100, 128), Player.O: (128, 70, 70)}
WIN = (255, 220, 90)


def cell_at(x: int, y: int, ox: int = OX, oy: int = OY, cell: int = CELL) -> Optional[int]:
    """Board index under a pixel, or None outside the grid."""
    col, row = (x - ox) // cell, (y - oy) // cell
    if 0 <= col < 3 and 0 <= row < 3:
        return row * 3 + col
    return None


def draw_text(surf, text, x, y, size=22, color=FG):
    font = pygame.font.SysFont("consolas", size)
    surf.blit(font.render(text, True, color), (x, y))


def draw_board(surf, state: GameState, ox=OX, oy=OY, cell=CELL):
    fading = expiring_cell(state)
    win = set(state.win_line or ())
    for i in range(9):
        r, c = divmod(i, 3)
        rect = pygame.Rect(ox + c*cell, oy + r*cell, cell - 4, cell - 4)
        pygame.draw.rect(surf, WIN if i in win else GRID, rect, width=0 if i in win else 2, border_radius=8)
        owner = state.board[i].owner
        if owner is None:
            continue
        color = FADED[owner] if i == fading else COLORS[owner]
        cx, cy, rad = rect.centerx, rect.centery, cell // 2 - 22
        if owner is Player.X:
            pygame.draw.line(surf, color, (cx - rad, cy - rad), (cx + rad, cy + rad), 8)
            pygame.draw.line(surf, color, (cx + rad, cy - rad), (cx - rad, cy + rad), 8)
        else:
            pygame.draw.circle(surf, color, (cx, cy), rad, 8)


def local_key(match: LocalMatch, key) -> bool:
    """Apply a local-mode hotkey. True when a pending AI reply must be dropped."""
    if key == pygame.K_r:
        match.reset()
        return True
    if key == pygame.K_m:
        match.toggle_mode()
        return True
    if key == pygame.K_0:
        match.reset_scores()
    return False


def run(mode: str, net: Optional[NetClient] = None):
    pygame.init()
    screen = pygame.display.set_mode((W, H))
    pygame.display.set_caption("Recycle-3 Tic-Tac-Toe")
    clock = pygame.time.Clock()

    match = LocalMatch(mode) if net is None else None
    ai_due = None

    while True:
        for ev in pygame.event.get():
            if ev.type == pygame.QUIT:
                return
            elif ev.type == pygame.KEYDOWN:
                if ev.key == pygame.K_ESCAPE: return
                if net:
                    if ev.key == pygame.K_r: net.reset()
                elif local_key(match, ev.key):
                    ai_due = None
            elif ev.type == pygame.MOUSEBUTTONUP and ev.button == 1:
                idx = cell_at(*ev.pos)
                if idx is None: continue
                if net:
                    if net.my_turn: net.move(idx)
                    continue
                try:
                    match.play(idx, auto_reply=False)
                except IllegalMove:
                    continue
                if match.ai_to_move():
                    ai_due = pygame.time.get_ticks() + AI_DELAY_MS

        if match and ai_due is not None and pygame.time.get_ticks() >= ai_due:
            ai_due = None
            match.ai_move()

        screen.fill(BG)
        if net:
            if not net.running:
                draw_text(screen, "Disconnected from relay", 20, 60, 18, (255,120,120))
            role = net.role.value if net.role else "-"
            draw_text(screen, f"ONLINE  room={net.room}  role={role}", 20, 16, 20, ACCENT)
            if net.error:
                draw_text(screen, f"error: {net.error}", 20, 44, 18, (255,120,120))
            state = net.state
        else:
            sc = match.score
            draw_text(screen, f"{match.label}   X {sc[Player.X]} - {sc[Player.O]} O", 20, 16, 22, ACCENT)
            state = match.state

        if state is not None:
            draw_board(screen, state)
            draw_text(screen, status_text(state), 20, OY + 3*CELL + 16, 24)
        else:
            draw_text(screen, "Waiting for the relay...", 20, OY, 22)
        keys = "R new game   Esc quit" if net else "R new  M mode  0 clear score  Esc quit"
        draw_text(screen, keys, 20, H - 34, 16, GRID)

        pygame.display.flip()
        clock.tick(30)


def main(argv=None):
    ap = argparse.ArgumentParser(description="Recycle-3 tic-tac-toe (pygame)")
    ap.add_argument("mode", choices=["local", "ai", "online"])
    ap.add_argument("--server", help="host[:port] of the relay (online)")
    ap.add_argument("--room", help="room name (online)")
    ap.add_argument("--prefs", help="preferences database path")
    args = ap.parse_args(argv)

    net = None
    if args.mode == "online":
        prefs = Prefs(args.prefs)
        last_server, last_room = prefs.last_connection()
        server, room = args.server or last_server, args.room or last_room
        if not server or not room:
            print("Use --server host:port and --room NAME (no previous values saved)")
            sys.exit(1)
        host, port = parse_hostport(server, DEFAULT_PORT)
        try:
            net = NetClient(host, port)
        except OSError as e:
            log("Net", f"cannot reach {host}:{port}: {e}")
            sys.exit(1)
        prefs.remember(server, room)
        net.join(room)
    try:
        run(MODE_AI if args.mode == "ai" else MODE_PVP, net)
    finally:
        if net: net.close()
        pygame.quit()


if __name__ == "__main__":
    main()
