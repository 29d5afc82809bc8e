"""Grid-DDA raycasting against a TerrainGrid."""

import enum
import math
from typing import NamedTuple

from pygame.math import Vector2

from terrain import TerrainGrid


DENSITY_THRESHOLD = 0.5


class DegenerateRayError(ValueError):
    """Raised for a zero-length or non-finite ray direction."""


class RayVariant(enum.Enum):
    FIRST_SOLID = "first_solid"
    LAST_EMPTY = "last_empty"
    DENSITY_THRESHOLD = "density_threshold"


class RayHit(NamedTuple):
    hit: bool
    cell: tuple[int, int]


def rotate(direction, degrees: float) -> Vector2:
    """Rotate a 2-D vector counter-clockwise (in x-right/y-up terms)."""
    a = math.radians(degrees)
    cos_a, sin_a = math.cos(a), math.sin(a)
    x, y = direction
    return Vector2(x * cos_a - y * sin_a, x * sin_a + y * cos_a)


def aim(origin, target, max_distance: float) -> tuple[Vector2, float]:
    """Return the unit direction from origin to target and the ray length,
    which stops at the target or at max_distance, whichever is closer."""
    delta = Vector2(target) - Vector2(origin)
    length = delta.length()
    if length == 0:
        raise DegenerateRayError(f"Cannot aim from {tuple(origin)} at itself")
    return delta / length, min(max_distance, length)


class Raycaster:
    """Walks a ray one grid boundary at a time, always along the axis whose
    next boundary is nearer (https://lodev.org/cgtutor/raycasting.html).

    The start cell is never tested. A ray that leaves the grid stops without
    a hit and reports the last in-grid cell; a ray that starts off the grid
    keeps walking until it enters or runs out of distance.
    """

    def __init__(self, grid: TerrainGrid):
        self.grid = grid

    def cast(self, origin, direction, max_distance: float,
             variant: RayVariant = RayVariant.FIRST_SOLID) -> RayHit:
        ox, oy = origin
        dx, dy = direction
        if not (math.isfinite(dx) and math.isfinite(dy)) or (dx == 0 and dy == 0):
            raise DegenerateRayError(f"Invalid ray direction ({dx}, {dy})")

        grid = self.grid
        # An axis with no direction component never reaches a boundary.
        unit_x = math.sqrt(1 + (dy / dx) ** 2) if dx != 0 else math.inf
        unit_y = math.sqrt(1 + (dx / dy) ** 2) if dy != 0 else math.inf

        cx, cy = math.floor(ox), math.floor(oy)
        if dx < 0:
            step_x, len_x = -1, (ox - cx) * unit_x
        elif dx > 0:
            step_x, len_x = 1, (cx + 1 - ox) * unit_x
        else:
            step_x, len_x = 0, math.inf
        if dy < 0:
            step_y, len_y = -1, (oy - cy) * unit_y
        elif dy > 0:
            step_y, len_y = 1, (cy + 1 - oy) * unit_y
        else:
            step_y, len_y = 0, math.inf

        inside = grid.in_bounds(cx, cy)
        prev = (cx, cy)
        distance = 0.0
        while distance < max_distance:
            prev = (cx, cy)
            if len_x < len_y:
                cx += step_x
                distance = len_x
                len_x += unit_x
            else:
                cy += step_y
                distance = len_y
                len_y += unit_y

            if not grid.in_bounds(cx, cy):
                if inside:
                    return RayHit(False, prev)
                continue
            inside = True

            if variant is RayVariant.DENSITY_THRESHOLD:
                if grid.get(cx, cy) >= DENSITY_THRESHOLD:
                    return RayHit(True, (cx, cy))
            elif not grid.is_empty(cx, cy):
                if variant is RayVariant.LAST_EMPTY and grid.is_solid(cx, cy):
                    return RayHit(True, prev)
                return RayHit(True, (cx, cy))

        return RayHit(False, (cx, cy))

    def cast_to_first_solid(self, origin, direction, max_distance: float) -> RayHit:
        return self.cast(origin, direction, max_distance, RayVariant.FIRST_SOLID)

    def cast_to_last_empty_before_solid(self, origin, direction,
                                        max_distance: float) -> RayHit:
        return self.cast(origin, direction, max_distance, RayVariant.LAST_EMPTY)

    def cast_to_density_threshold(self, origin, direction,
                                  max_distance: float) -> RayHit:
        return self.cast(origin, direction, max_distance, RayVariant.DENSITY_THRESHOLD)
