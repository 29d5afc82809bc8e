"""Entry point: starts MCP server thread + pygame main loop."""

import os
# Hide the pygame banner before importing; it prints to stdout,
# which carries the MCP stdio JSON-RPC stream.
os.environ["PYGAME_HIDE_SUPPORT_PROMPT"] = "1"

import logging
import sys
import queue
import threading

import numpy as np
import pygame
import structlog

from editor import EditorSettings, TerrainEditor, Tool
from raycast import DegenerateRayError
from tools import create_mcp_server

FPS = 60
PLAYER_SPEED = 100.0
SPRINT_MULTIPLIER = 2.5

# Cursor colours
HIT_COLOR = (0x3e, 0x95, 0xef)
AIM_COLOR = (0xd3, 0x8e, 0x28)
PLAYER_COLOR = (255, 0, 0)
POINTER_COLOR = (0, 100, 0)
POINTER_ACTIVE_COLOR = (0, 255, 0)

TOOL_KEYS = {
    pygame.K_1: Tool.CIRCLE_FULL,
    pygame.K_2: Tool.CIRCLE_FRACTIONAL,
    pygame.K_3: Tool.CONE,
    pygame.K_4: Tool.BLEND,
    pygame.K_5: Tool.BLEND_FAST,
}

# stdout belongs to the MCP transport, so logs go to stderr.
structlog.configure(
    processors=[
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="%H:%M:%S"),
        structlog.dev.ConsoleRenderer(colors=False),
    ],
    wrapper_class=structlog.make_filtering_bound_logger(logging.INFO),
    logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
    cache_logger_on_first_use=True,
)

logger = structlog.get_logger()


def run_mcp_server(mcp_server):
    """Daemon thread target: serves MCP over stdio."""
    mcp_server.run(transport="stdio")


def _handle_request(cmd: dict, editor: TerrainEditor):
    """Process a request/response command from the MCP tool thread."""
    event: threading.Event = cmd["_event"]
    result: dict = cmd["_result"]
    try:
        result["data"] = editor.execute(cmd)
    except Exception as e:
        result["error"] = str(e)
    finally:
        event.set()


def _render_terrain(surface: pygame.Surface, editor: TerrainEditor):
    levels = editor.grid.levels.T  # (W, H) for surfarray
    pygame.surfarray.blit_array(surface, np.repeat(levels[:, :, np.newaxis], 3, axis=2))


def _move_player(editor: TerrainEditor, keys, dt: float):
    speed = PLAYER_SPEED * dt
    if keys[pygame.K_LSHIFT] or keys[pygame.K_RSHIFT]:
        speed *= SPRINT_MULTIPLIER
    if keys[pygame.K_w]:
        editor.player.y -= speed
    if keys[pygame.K_s]:
        editor.player.y += speed
    if keys[pygame.K_a]:
        editor.player.x -= speed
    if keys[pygame.K_d]:
        editor.player.x += speed


def main():
    settings = EditorSettings()

    # Shared command queue between MCP thread and pygame main thread
    command_queue = queue.Queue()

    # Create MCP server with tool definitions
    mcp_server = create_mcp_server(command_queue, settings.width, settings.height)

    # Start MCP server in a background daemon thread
    mcp_thread = threading.Thread(target=run_mcp_server, args=(mcp_server,), daemon=True)
    mcp_thread.start()

    # Initialize pygame on the main thread
    pygame.init()
    screen = pygame.display.set_mode((settings.width, settings.height))
    pygame.display.set_caption("Terrain MCP")
    clock = pygame.time.Clock()

    editor = TerrainEditor(settings)
    terrain_surface = pygame.Surface((settings.width, settings.height))
    show_cursors = True
    clicked = [False, False]  # primary, secondary pressed this frame
    logger.info("editor started", width=settings.width, height=settings.height)

    running = True
    while running:
        dt = clock.tick(FPS) / 1000.0
        editor.gate.tick(dt)
        mouse_pos = pygame.mouse.get_pos()
        mods = pygame.key.get_mods()
        ctrl = bool(mods & pygame.KMOD_CTRL)
        clicked[:] = [False, False]

        # Handle pygame events
        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                running = False
            elif event.type == pygame.MOUSEBUTTONDOWN and event.button in (1, 3):
                clicked[0 if event.button == 1 else 1] = True
            elif event.type == pygame.MOUSEWHEEL and ctrl and event.y:
                editor.scale_brush(event.y)
            elif event.type == pygame.KEYDOWN:
                if event.key in TOOL_KEYS:
                    editor.execute({"action": "set_tool", "tool": TOOL_KEYS[event.key].value})
                elif event.key == pygame.K_RETURN:
                    editor.reset()
                elif event.key == pygame.K_SPACE:
                    show_cursors = not show_cursors
                elif event.key == pygame.K_z and ctrl:
                    editor.undo()

        _move_player(editor, pygame.key.get_pressed(), dt)
        buttons = pygame.mouse.get_pressed()

        if ctrl and buttons[1] and editor.gate.acquire():
            editor.paint(mouse_pos)

        # CTRL edits once per click, otherwise continuously while held
        secondary_on = clicked[1] if ctrl else buttons[2]
        primary_on = clicked[0] if ctrl else buttons[0]
        if (secondary_on or primary_on) and editor.gate.is_open:
            try:
                if editor.sculpt(mouse_pos, secondary=secondary_on).hit:
                    editor.gate.acquire()
            except DegenerateRayError:
                pass  # pointer on the player

        # Drain all pending commands from the queue
        while True:
            try:
                cmd = command_queue.get_nowait()
            except queue.Empty:
                break

            # Request/response bridge commands have an _event key
            if "_event" in cmd:
                _handle_request(cmd, editor)
            else:
                try:
                    editor.execute(cmd)
                except Exception:
                    logger.exception("command failed", action=cmd.get("action"))

        # --- Render ---
        _render_terrain(terrain_surface, editor)
        screen.blit(terrain_surface, (0, 0))

        if show_cursors:
            player = (int(editor.player.x), int(editor.player.y))
            try:
                hit, _, _ = editor.cast(mouse_pos)
            except DegenerateRayError:
                hit = None
            if hit is not None and hit.hit:
                pygame.draw.circle(screen, HIT_COLOR, hit.cell, editor.brush_size, 1)
            pygame.draw.line(screen, AIM_COLOR, player, mouse_pos)
            pygame.draw.circle(screen, PLAYER_COLOR, player, 8)
            active = buttons[0] or buttons[2]
            pygame.draw.circle(screen, POINTER_ACTIVE_COLOR if active else POINTER_COLOR,
                               mouse_pos, editor.brush_size, 1)

        pygame.display.flip()

    pygame.quit()


if __name__ == "__main__":
    main()
