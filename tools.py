"""MCP tool definitions. Pushes terrain commands onto a thread-safe queue."""

import json
import queue
import threading
from mcp.server.fastmcp import FastMCP

from brushes import BrushLimits
from editor import Tool

LIMITS = BrushLimits()
MAX_CONE_HALF_ANGLE = 90.0


def clamp(value, lo, hi):
    return max(lo, min(hi, value))


def create_mcp_server(command_queue: queue.Queue, width: int = 512, height: int = 512) -> FastMCP:
    mcp = FastMCP("terrain-mcp")

    # Local state mirror so get_terrain_info can respond without touching the grid
    _tool = [Tool.BLEND_FAST.value]
    _brush_size = [16]
    _blend_range = [15]
    _player = [width / 2, height / 2]

    @mcp.tool()
    def get_terrain_info() -> str:
        """Get terrain dimensions, player position and current brush settings."""
        tools = ", ".join(t.value for t in Tool)
        return (
            f"Terrain: {width}x{height} cells (density 0=empty .. 1=solid), "
            f"player: ({_player[0]:.1f}, {_player[1]:.1f}), "
            f"tool: {_tool[0]} (available: {tools}), "
            f"brush_size: {_brush_size[0]}, blend_range: {_blend_range[0]}"
        )

    @mcp.tool()
    def select_tool(tool: str) -> str:
        """Select the sculpting tool.

        circle_full: stamp a solid disc. circle_fractional: soft partial erase.
        cone: fan of rays that restores (primary) or erodes (secondary) terrain.
        blend / blend_fast: smooth terrain toward its neighbourhood average."""
        try:
            selected = Tool(tool)
        except ValueError:
            return f"Unknown tool '{tool}'. Choose one of: " + ", ".join(t.value for t in Tool)
        _tool[0] = selected.value
        command_queue.put({"action": "set_tool", "tool": selected.value})
        return f"Tool set to {selected.value}"

    @mcp.tool()
    def set_brush_size(size: int) -> str:
        """Set the brush radius in cells (4-200)."""
        size = clamp(size, LIMITS.min_radius, LIMITS.max_radius)
        _brush_size[0] = size
        command_queue.put({"action": "set_brush_size", "size": size})
        return f"Brush size set to {size}"

    @mcp.tool()
    def set_blend_range(blend_range: int) -> str:
        """Set the half-width of the smoothing window used by the blend tools (0-64)."""
        blend_range = clamp(blend_range, LIMITS.min_blend_range, LIMITS.max_blend_range)
        _blend_range[0] = blend_range
        command_queue.put({"action": "set_blend_range", "range": blend_range})
        return f"Blend range set to {blend_range}"

    @mcp.tool()
    def set_cone(half_angle: float, step: float) -> str:
        """Set the cone tool's half-angle (0-90 degrees) and ray spacing (degrees)."""
        half_angle = clamp(half_angle, 0.0, MAX_CONE_HALF_ANGLE)
        step = clamp(step, 0.1, max(half_angle, 0.1))
        command_queue.put({"action": "set_cone", "half_angle": half_angle, "step": step})
        return f"Cone set to +/-{half_angle} degrees every {step} degrees"

    @mcp.tool()
    def move_player(x: float, y: float) -> str:
        """Move the player, which is where every sculpting ray starts."""
        _player[:] = [x, y]
        command_queue.put({"action": "move_player", "x": x, "y": y})
        return f"Player moved to ({x}, {y})"

    @mcp.tool()
    def sculpt(x: int, y: int, secondary: bool = False) -> str:
        """Cast a ray from the player toward (x, y) and apply the current tool where it
        hits terrain. secondary=True uses the tool's alternate action (erode for cone)."""
        command_queue.put({"action": "sculpt", "x": x, "y": y, "secondary": secondary})
        return f"Sculpted toward ({x}, {y})"

    @mcp.tool()
    def paint_terrain(x: int, y: int) -> str:
        """Drop a solid ball of terrain centred on (x, y)."""
        command_queue.put({"action": "paint", "x": x, "y": y})
        return f"Painted terrain at ({x}, {y})"

    @mcp.tool()
    def reset_terrain() -> str:
        """Clear the whole terrain to empty."""
        command_queue.put({"action": "reset"})
        return "Terrain reset"

    @mcp.tool()
    def undo() -> str:
        """Undo the last terrain edit."""
        command_queue.put({"action": "undo"})
        return "Undo performed"

    def _request_response(cmd: dict, timeout: float = 5.0):
        """Send a command to the main thread and wait for a response."""
        event = threading.Event()
        result: dict = {}
        cmd["_event"] = event
        cmd["_result"] = result
        command_queue.put(cmd)
        if not event.wait(timeout):
            raise TimeoutError("Main thread did not respond in time")
        if "error" in result:
            raise RuntimeError(result["error"])
        return result["data"]

    @mcp.tool()
    def cast_ray(x: float, y: float) -> str:
        """Cast a ray from the player toward (x, y) without editing. Returns JSON with
        whether terrain was hit and the cell the ray stopped at."""
        return json.dumps(_request_response({"action": "cast_ray", "x": x, "y": y}))

    @mcp.tool()
    def get_densities(x: int = 0, y: int = 0, width: int = 32, height: int = 32) -> str:
        """Return terrain densities (0..1) for a region as a JSON 2D array, row-major.
        Keep regions small; cells outside the terrain read as 0."""
        width, height = clamp(width, 1, 256), clamp(height, 1, 256)
        cmd = {"action": "get_densities", "x": x, "y": y, "w": width, "h": height}
        return json.dumps(_request_response(cmd))

    return mcp
