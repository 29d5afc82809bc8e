"""Brush engine: stamp, cone sweep and blend-ball terrain edits."""

import enum
import math
from collections import deque
from dataclasses import dataclass, replace

import numpy as np
import structlog
from pygame.math import Vector2

from raycast import Raycaster, RayVariant, rotate
from terrain import ScratchBuffer, TerrainGrid

logger = structlog.get_logger()


CIRCLE_FRACTIONAL_BIAS = 0.2
CONE_BIAS = 0.3


@dataclass(frozen=True)
class BrushConfig:
    radius: int = 16
    blend_range: int = 15
    cone_half_angle: float = 50.0
    cone_step: float = 0.5
    max_distance: float = 500.0


@dataclass(frozen=True)
class BrushLimits:
    min_radius: int = 4
    max_radius: int = 200
    min_blend_range: int = 0
    max_blend_range: int = 64

    def clamp(self, config: BrushConfig) -> BrushConfig:
        return replace(
            config,
            radius=max(self.min_radius, min(self.max_radius, int(config.radius))),
            blend_range=max(self.min_blend_range,
                            min(self.max_blend_range, int(config.blend_range))),
        )


class BrushKind(enum.Enum):
    CIRCLE_FULL = "circle_full"
    CIRCLE_FRACTIONAL = "circle_fractional"
    CONE_DESTRUCTIVE = "cone_destructive"
    CONE_RESTORATIVE = "cone_restorative"
    BLEND_NAIVE = "blend_naive"
    BLEND_SAT = "blend_sat"
    BLEND_SEPARABLE = "blend_separable"


# --- Curves ---

def gaussian(x):
    return np.exp(-np.square(x))


def ease_in_out_cubic(x):
    x = np.asarray(x, dtype=np.float64)
    return np.where(x < 0.5, 4.0 * x ** 3, 1.0 - (-2.0 * x + 2.0) ** 3 / 2.0)


def lerp(start, end, t):
    return start * (1.0 - t) + end * t


def _disc_offsets(radius: int):
    """Offset grids (xx, yy) covering -radius..radius on both axes."""
    offsets = np.arange(-radius, radius + 1)
    return np.meshgrid(offsets, offsets)


def _stamp_center(hit_cell, direction, radius: int) -> tuple[int, int]:
    # Pull the stamp back toward the caller so it does not sit on the surface.
    pos = Vector2(hit_cell) - Vector2(direction) * (radius - 2.0)
    return math.floor(pos.x), math.floor(pos.y)


# --- Stamps ---

def fill_disc(grid: TerrainGrid, center, radius: int, density: float = 1.0):
    """Set every cell within radius of center to density."""
    cx, cy = center
    xx, yy = _disc_offsets(radius)
    mask = xx * xx + yy * yy <= radius * radius
    values = np.full(mask.shape, density, dtype=np.float64)
    grid.write((cx - radius, cy - radius), values, mask)


def circle_full(grid: TerrainGrid, hit_cell, direction, config: BrushConfig,
                origin=None):
    fill_disc(grid, _stamp_center(hit_cell, direction, config.radius),
              config.radius, 1.0)


def circle_fractional(grid: TerrainGrid, hit_cell, direction, config: BrushConfig,
                      origin=None):
    """Soft-edged partial erase: Gaussian falloff from center to edge."""
    r = config.radius
    cx, cy = _stamp_center(hit_cell, direction, r)
    xx, yy = _disc_offsets(r)
    distance = np.sqrt(xx * xx + yy * yy)
    mask = distance <= r
    amount = gaussian(distance / r) - CIRCLE_FRACTIONAL_BIAS
    lo, hi = (cx - r, cy - r), (cx + r, cy + r)
    grid.write(lo, grid.region(lo, hi) - amount, mask)


# --- Cone sweeps ---

def cone_angles(half_angle: float, step: float) -> list[float]:
    """Ray angles in degrees from -half_angle in increments of step."""
    count = math.floor(2 * half_angle / step) + 1
    return [-half_angle + i * step for i in range(count)]


def _cone_sweep(grid: TerrainGrid, direction, config: BrushConfig, origin,
                variant: RayVariant, sign: float) -> int:
    if origin is None:
        raise ValueError("Cone sweeps need the ray origin")
    raycaster = Raycaster(grid)
    half = config.cone_half_angle
    hits = 0
    for angle in cone_angles(half, config.cone_step):
        ray = raycaster.cast(origin, rotate(direction, angle),
                             config.max_distance, variant)
        # LAST_EMPTY can report the cell before the grid edge.
        if not ray.hit or not grid.in_bounds(*ray.cell):
            continue
        mapped = angle / half if half else 0.0
        value = float(gaussian(mapped)) - CONE_BIAS
        grid.add(ray.cell[0], ray.cell[1], sign * value)
        hits += 1
    return hits


def cone_destructive(grid: TerrainGrid, hit_cell, direction, config: BrushConfig,
                     origin=None):
    hits = _cone_sweep(grid, direction, config, origin, RayVariant.FIRST_SOLID, -1.0)
    logger.debug("cone sweep", mode="erode", hits=hits)


def cone_restorative(grid: TerrainGrid, hit_cell, direction, config: BrushConfig,
                     origin=None):
    hits = _cone_sweep(grid, direction, config, origin, RayVariant.LAST_EMPTY, 1.0)
    logger.debug("cone sweep", mode="restore", hits=hits)


# --- Blend ball ---
#
# Each variant fills a ScratchBuffer over -radius..radius with the plain box
# average (window (2*blend_range+1)^2, off-grid samples read as 0) for every
# cell of the brush disc; _blend_into_grid then applies the shared blend law.

def _box_averages_naive(grid: TerrainGrid, center, radius: int,
                        blend: int) -> ScratchBuffer:
    cx, cy = center
    r2 = radius * radius
    area = (2 * blend + 1) ** 2
    averages = ScratchBuffer((-radius, -radius), (radius, radius))
    for y in range(-radius, radius + 1):
        for x in range(-radius, radius + 1):
            if x * x + y * y >= r2:
                continue
            x0, y0 = cx + x, cy + y
            window = grid.region((x0 - blend, y0 - blend), (x0 + blend, y0 + blend))
            averages.set(x, y, window.sum() / area)
    return averages


def _box_averages_summed_area(grid: TerrainGrid, center, radius: int,
                              blend: int) -> ScratchBuffer:
    """https://en.wikipedia.org/wiki/Summed-area_table"""
    cx, cy = center
    reach = radius + blend
    k = 2 * blend + 1
    table = ScratchBuffer((-reach, -reach), (reach, reach))
    table.values[:] = grid.region((cx - reach, cy - reach),
                                  (cx + reach, cy + reach)).cumsum(0).cumsum(1)

    # A leading row and column of zeros stands in for corners left of or
    # above the table.
    sums = np.pad(table.values, ((1, 0), (1, 0)))
    n = 2 * radius + 1
    d = sums[k:k + n, k:k + n]
    a = sums[:n, :n]
    b = sums[:n, k:k + n]
    c = sums[k:k + n, :n]

    averages = ScratchBuffer((-radius, -radius), (radius, radius))
    averages.values[:] = (d + a - b - c) / (k * k)
    return averages


def _box_averages_separable(grid: TerrainGrid, center, radius: int,
                            blend: int) -> ScratchBuffer:
    cx, cy = center
    reach = radius + blend
    k = 2 * blend + 1

    # Horizontal pass: running row sums for every row the vertical pass needs.
    rows = ScratchBuffer((-radius, -reach), (radius, reach))
    for y in range(-reach, reach + 1):
        line = grid.region((cx - reach, cy + y), (cx + reach, cy + y))[0]
        window = deque()
        total = 0.0
        for x in range(-radius, radius + 1):
            if x == -radius:
                for ox in range(-blend, blend + 1):
                    value = line[x + ox + reach]
                    window.append(value)
                    total += value
            else:
                value = line[x + blend + reach]
                window.append(value)
                total += value
                total -= window.popleft()
            rows.set(x, y, total / k)

    # Vertical pass over the row averages.
    averages = ScratchBuffer((-radius, -radius), (radius, radius))
    for x in range(-radius, radius + 1):
        window = deque()
        total = 0.0
        for y in range(-radius, radius + 1):
            if y == -radius:
                for oy in range(-blend, blend + 1):
                    value = rows.get(x, y + oy)
                    window.append(value)
                    total += value
            else:
                value = rows.get(x, y + blend)
                window.append(value)
                total += value
                total -= window.popleft()
            averages.set(x, y, total / k)
    return averages


def _blend_into_grid(grid: TerrainGrid, center, radius: int,
                     averages: ScratchBuffer):
    """Pull each disc cell toward its eased average: fully at the center,
    not at all from half the radius outward."""
    cx, cy = center
    xx, yy = _disc_offsets(radius)
    d2 = xx * xx + yy * yy
    r2 = radius * radius
    inside = d2 < r2

    lo, hi = (cx - radius, cy - radius), (cx + radius, cy + radius)
    current = grid.region(lo, hi)
    t = np.clip(d2 / r2 * 2.0 - 1.0, 0.0, 1.0)
    blended = lerp(ease_in_out_cubic(averages.values), current, t)

    staged = ScratchBuffer((-radius, -radius), (radius, radius))
    staged.values[:] = np.where(inside, blended, current)
    staged.commit(grid, center, inside)


def _blend_ball(averager):
    def blend(grid: TerrainGrid, hit_cell, direction, config: BrushConfig,
              origin=None):
        radius = config.radius
        if radius <= 0:
            return
        center = (int(hit_cell[0]), int(hit_cell[1]))
        averages = averager(grid, center, radius, config.blend_range)
        _blend_into_grid(grid, center, radius, averages)
    blend.__name__ = averager.__name__.replace("_box_averages", "blend")
    return blend


blend_naive = _blend_ball(_box_averages_naive)
blend_summed_area = _blend_ball(_box_averages_summed_area)
blend_separable = _blend_ball(_box_averages_separable)


BRUSHES = {
    BrushKind.CIRCLE_FULL: circle_full,
    BrushKind.CIRCLE_FRACTIONAL: circle_fractional,
    BrushKind.CONE_DESTRUCTIVE: cone_destructive,
    BrushKind.CONE_RESTORATIVE: cone_restorative,
    BrushKind.BLEND_NAIVE: blend_naive,
    BrushKind.BLEND_SAT: blend_summed_area,
    BrushKind.BLEND_SEPARABLE: blend_separable,
}


def apply(kind: BrushKind, grid: TerrainGrid, hit_cell, direction,
          config: BrushConfig, origin=None):
    """Run one brush operation on grid in place.

    hit_cell is the raycast target, direction the unit aim direction and
    origin the ray origin (only the cone sweeps re-cast from it)."""
    brush = BRUSHES[BrushKind(kind)]
    logger.debug("apply brush", kind=BrushKind(kind).value, cell=tuple(hit_cell),
                 radius=config.radius)
    brush(grid, hit_cell, direction, config, origin)
