"""
Tests for the MCP tool surface: arguments are clamped and queued as editor commands.
"""

import asyncio
import queue
import threading

import pytest

from editor import EditorSettings, TerrainEditor
from tools import create_mcp_server


@pytest.fixture
def command_queue():
    return queue.Queue()


@pytest.fixture
def server(command_queue):
    return create_mcp_server(command_queue, 128, 128)


def _call(server, name, arguments):
    return asyncio.run(server.call_tool(name, arguments))


def test_registers_terrain_tools(server):
    names = {tool.name for tool in asyncio.run(server.list_tools())}
    assert {"sculpt", "select_tool", "set_brush_size", "paint_terrain",
            "reset_terrain", "undo", "cast_ray", "get_densities"} <= names


def test_sculpt_is_queued(server, command_queue):
    _call(server, "sculpt", {"x": 10, "y": 20})
    assert command_queue.get_nowait() == {
        "action": "sculpt", "x": 10, "y": 20, "secondary": False}


def test_brush_size_is_clamped(server, command_queue):
    _call(server, "set_brush_size", {"size": 999})
    assert command_queue.get_nowait() == {"action": "set_brush_size", "size": 200}


def test_unknown_tool_is_not_queued(server, command_queue):
    _call(server, "select_tool", {"tool": "spray"})
    assert command_queue.empty()


def test_queued_commands_drive_editor(server, command_queue):
    editor = TerrainEditor(EditorSettings(width=128, height=128))
    _call(server, "paint_terrain", {"x": 100, "y": 64})
    _call(server, "select_tool", {"tool": "circle_fractional"})
    _call(server, "sculpt", {"x": 110, "y": 64})
    while not command_queue.empty():
        editor.execute(command_queue.get_nowait())
    assert 0.0 < editor.grid.get(68, 64) < 1.0


def test_cast_ray_waits_for_main_thread(server, command_queue):
    editor = TerrainEditor(EditorSettings(width=128, height=128))
    editor.paint((100, 64))

    def answer():
        cmd = command_queue.get(timeout=5)
        cmd["_result"]["data"] = editor.execute(cmd)
        cmd["_event"].set()

    worker = threading.Thread(target=answer)
    worker.start()
    _call(server, "cast_ray", {"x": 110, "y": 64})
    worker.join(timeout=5)
    assert not worker.is_alive()
