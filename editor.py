"""Editor state: player, active tool, brush size and undo, driven by command dicts."""

import enum
import math
from dataclasses import dataclass, field, replace

import structlog
from pygame.math import Vector2

import brushes
from brushes import BrushConfig, BrushKind, BrushLimits
from raycast import Raycaster, RayHit, RayVariant, aim
from terrain import TerrainGrid

logger = structlog.get_logger()

MIN_CONE_STEP = 0.1


@dataclass
class EditorSettings:
    width: int = 512
    height: int = 512
    brush_size: int = 16
    brush_multiplier: float = 1.1
    blend_range: int = 15
    cone_half_angle: float = 50.0
    cone_step: float = 0.5
    raycast_max_distance: float = 500.0
    edit_interval: float = 2.0 / 60.0
    paint_radius: int = 32
    limits: BrushLimits = field(default_factory=BrushLimits)


class Tool(enum.Enum):
    """Editing tools with the brush used by the (primary, secondary) button."""

    CIRCLE_FULL = "circle_full"
    CIRCLE_FRACTIONAL = "circle_fractional"
    CONE = "cone"
    BLEND = "blend"
    BLEND_FAST = "blend_fast"

    @property
    def brushes(self) -> tuple[BrushKind, BrushKind]:
        return TOOL_BRUSHES[self]


TOOL_BRUSHES = {
    Tool.CIRCLE_FULL: (BrushKind.CIRCLE_FULL, BrushKind.CIRCLE_FULL),
    Tool.CIRCLE_FRACTIONAL: (BrushKind.CIRCLE_FRACTIONAL, BrushKind.CIRCLE_FRACTIONAL),
    Tool.CONE: (BrushKind.CONE_RESTORATIVE, BrushKind.CONE_DESTRUCTIVE),
    Tool.BLEND: (BrushKind.BLEND_NAIVE, BrushKind.BLEND_NAIVE),
    Tool.BLEND_FAST: (BrushKind.BLEND_SAT, BrushKind.BLEND_SEPARABLE),
}


class EditGate:
    """Lets at most one edit through per interval while input is held."""

    def __init__(self, interval: float):
        self.interval = interval
        self._elapsed = 0.0
        self._open = True

    @property
    def is_open(self) -> bool:
        return self._open

    def tick(self, dt: float):
        if self._elapsed > self.interval:
            self._open = True
        else:
            self._elapsed += dt

    def acquire(self) -> bool:
        if not self._open:
            return False
        self._open = False
        self._elapsed = 0.0
        return True


class TerrainEditor:
    MAX_UNDO = 50

    def __init__(self, settings: EditorSettings | None = None):
        self.settings = settings or EditorSettings()
        s = self.settings
        self.grid = TerrainGrid(s.width, s.height)
        self.raycaster = Raycaster(self.grid)
        self.gate = EditGate(s.edit_interval)
        self.player = Vector2(s.width / 2, s.height / 2)
        self.tool = Tool.BLEND_FAST
        self._brush_size_f = float(s.brush_size)
        self.brush_size = s.brush_size
        self.blend_range = s.blend_range
        self.cone_half_angle = s.cone_half_angle
        self.cone_step = s.cone_step
        self._undo_stack: list = []

    def _save_undo(self):
        if len(self._undo_stack) >= self.MAX_UNDO:
            self._undo_stack.pop(0)
        self._undo_stack.append(self.grid.snapshot())

    def undo(self) -> bool:
        if not self._undo_stack:
            return False
        self.grid.restore(self._undo_stack.pop())
        return True

    def execute(self, cmd: dict):
        action = cmd.get("action")
        method = getattr(self, f"_do_{action}", None)
        if method is None:
            raise ValueError(f"Unknown action: {action}")
        return method(cmd)

    # --- Brush state ---

    def brush_config(self, **overrides) -> BrushConfig:
        config = BrushConfig(
            radius=self.brush_size,
            blend_range=self.blend_range,
            cone_half_angle=self.cone_half_angle,
            cone_step=self.cone_step,
            max_distance=self.settings.raycast_max_distance,
        )
        if overrides:
            config = replace(config, **overrides)
        return self.settings.limits.clamp(config)

    def set_brush_size(self, size: float):
        limits = self.settings.limits
        self._brush_size_f = max(limits.min_radius, min(limits.max_radius, float(size)))
        self.brush_size = math.floor(self._brush_size_f)

    def scale_brush(self, steps: int):
        """Grow (steps > 0) or shrink the brush geometrically, like a zoom."""
        factor = self.settings.brush_multiplier ** steps
        self.set_brush_size(self._brush_size_f * factor)

    # --- Editing ---

    def cast(self, target) -> tuple[RayHit, Vector2, float]:
        direction, distance = aim(self.player, target,
                                  self.settings.raycast_max_distance)
        hit = self.raycaster.cast(self.player, direction, distance,
                                  RayVariant.DENSITY_THRESHOLD)
        return hit, direction, distance

    def sculpt(self, target, secondary: bool = False) -> RayHit:
        hit, direction, distance = self.cast(target)
        if not hit.hit:
            return hit
        kind = self.tool.brushes[1 if secondary else 0]
        self._save_undo()
        brushes.apply(kind, self.grid, hit.cell, direction,
                      self.brush_config(max_distance=distance), origin=self.player)
        return hit

    def paint(self, center):
        self._save_undo()
        x, y = center
        brushes.fill_disc(self.grid, (math.floor(x), math.floor(y)),
                          self.settings.paint_radius, 1.0)

    def reset(self):
        self._save_undo()
        self.grid.reset()
        logger.info("terrain reset", width=self.grid.width, height=self.grid.height)

    # --- Commands ---

    def _do_set_tool(self, cmd: dict):
        self.tool = Tool(cmd["tool"])
        logger.info("tool selected", tool=self.tool.value)

    def _do_set_brush_size(self, cmd: dict):
        self.set_brush_size(cmd["size"])

    def _do_scale_brush(self, cmd: dict):
        self.scale_brush(cmd["steps"])

    def _do_set_blend_range(self, cmd: dict):
        limits = self.settings.limits
        self.blend_range = max(limits.min_blend_range,
                               min(limits.max_blend_range, int(cmd["range"])))

    def _do_set_cone(self, cmd: dict):
        self.cone_half_angle = max(0.0, float(cmd["half_angle"]))
        self.cone_step = max(MIN_CONE_STEP, float(cmd["step"]))

    def _do_move_player(self, cmd: dict):
        self.player = Vector2(cmd["x"], cmd["y"])

    def _do_sculpt(self, cmd: dict) -> RayHit:
        return self.sculpt((cmd["x"], cmd["y"]), cmd.get("secondary", False))

    def _do_paint(self, cmd: dict):
        self.paint((cmd["x"], cmd["y"]))

    def _do_reset(self, cmd: dict):
        self.reset()

    def _do_undo(self, cmd: dict):
        self.undo()

    # --- Read-only queries ---

    def _do_cast_ray(self, cmd: dict) -> dict:
        hit, _, distance = self.cast((cmd["x"], cmd["y"]))
        return {"hit": hit.hit, "cell": list(hit.cell), "max_distance": distance}

    def _do_get_densities(self, cmd: dict) -> list[list[float]]:
        x, y = cmd.get("x", 0), cmd.get("y", 0)
        w = cmd.get("w") or self.grid.width - x
        h = cmd.get("h") or self.grid.height - y
        region = self.grid.region((x, y), (x + w - 1, y + h - 1))
        return [[round(float(v), 4) for v in row] for row in region]
