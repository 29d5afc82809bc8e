"""Terrain storage: quantized density grid and the scratch window brushes stage into."""

import numpy as np


LEVELS = 255


class OutOfBoundsError(IndexError):
    """Raised when a coordinate falls outside a grid or scratch window."""


def quantize(density) -> np.ndarray:
    """Clamp densities to [0, 1] and round them to the nearest 8-bit level."""
    clipped = np.clip(np.asarray(density, dtype=np.float64), 0.0, 1.0)
    return np.rint(clipped * LEVELS).astype(np.uint8)


class TerrainGrid:
    """Fixed-size field of densities, 0 = empty and 1 = solid.

    Single-cell accessors are strict and raise OutOfBoundsError off the grid.
    Rectangle reads (region) treat off-grid cells as empty and rectangle
    writes (write) skip them, so brushes can run right up to the edges.
    """

    def __init__(self, width: int, height: int):
        if width <= 0 or height <= 0:
            raise ValueError(f"Grid size must be positive, got {width}x{height}")
        self._width = width
        self._height = height
        self._levels = np.zeros((height, width), dtype=np.uint8)

    @property
    def width(self) -> int:
        return self._width

    @property
    def height(self) -> int:
        return self._height

    @property
    def levels(self) -> np.ndarray:
        """Read-only (height, width) view of the raw 8-bit levels."""
        view = self._levels.view()
        view.flags.writeable = False
        return view

    def in_bounds(self, x: int, y: int) -> bool:
        return 0 <= x < self._width and 0 <= y < self._height

    def _check(self, x: int, y: int):
        if not self.in_bounds(x, y):
            raise OutOfBoundsError(
                f"Cell ({x}, {y}) outside {self._width}x{self._height} grid")

    # --- Single cells ---

    def get(self, x: int, y: int) -> float:
        self._check(x, y)
        return self._levels[y, x] / LEVELS

    def set(self, x: int, y: int, density: float):
        self._check(x, y)
        self._levels[y, x] = quantize(density)

    def add(self, x: int, y: int, amount: float):
        self.set(x, y, self.get(x, y) + amount)

    def subtract(self, x: int, y: int, amount: float):
        self.set(x, y, self.get(x, y) - amount)

    def is_empty(self, x: int, y: int) -> bool:
        self._check(x, y)
        return self._levels[y, x] == 0

    def is_solid(self, x: int, y: int) -> bool:
        self._check(x, y)
        return self._levels[y, x] == LEVELS

    # --- Rectangles ---

    def _clip(self, x0: int, y0: int, x1: int, y1: int):
        """Intersect the inclusive rectangle with the grid, or None."""
        cx0, cy0 = max(x0, 0), max(y0, 0)
        cx1, cy1 = min(x1, self._width - 1), min(y1, self._height - 1)
        if cx0 > cx1 or cy0 > cy1:
            return None
        return cx0, cy0, cx1, cy1

    def region(self, lo: tuple[int, int], hi: tuple[int, int]) -> np.ndarray:
        """Densities of the inclusive rectangle lo..hi, rows indexed by y.

        Cells outside the grid read as 0."""
        (x0, y0), (x1, y1) = lo, hi
        out = np.zeros((y1 - y0 + 1, x1 - x0 + 1), dtype=np.float64)
        clipped = self._clip(x0, y0, x1, y1)
        if clipped is None:
            return out
        cx0, cy0, cx1, cy1 = clipped
        out[cy0 - y0:cy1 - y0 + 1, cx0 - x0:cx1 - x0 + 1] = (
            self._levels[cy0:cy1 + 1, cx0:cx1 + 1] / LEVELS)
        return out

    def write(self, lo: tuple[int, int], values: np.ndarray,
              mask: np.ndarray | None = None):
        """Store densities with values[0, 0] landing on cell lo.

        Off-grid cells are dropped; mask (same shape as values) limits which
        cells are written."""
        x0, y0 = lo
        h, w = values.shape
        clipped = self._clip(x0, y0, x0 + w - 1, y0 + h - 1)
        if clipped is None:
            return
        cx0, cy0, cx1, cy1 = clipped
        src = (slice(cy0 - y0, cy1 - y0 + 1), slice(cx0 - x0, cx1 - x0 + 1))
        dst = (slice(cy0, cy1 + 1), slice(cx0, cx1 + 1))
        quantized = quantize(values[src])
        if mask is None:
            self._levels[dst] = quantized
        else:
            self._levels[dst] = np.where(mask[src], quantized, self._levels[dst])

    # --- Whole grid ---

    def densities(self) -> np.ndarray:
        return self._levels / LEVELS

    def reset(self):
        self._levels[:] = 0

    def snapshot(self) -> np.ndarray:
        return self._levels.copy()

    def restore(self, levels: np.ndarray):
        if levels.shape != self._levels.shape:
            raise ValueError(
                f"Snapshot shape {levels.shape} does not match grid {self._levels.shape}")
        self._levels[:] = levels

    def copy(self) -> "TerrainGrid":
        other = TerrainGrid(self._width, self._height)
        other.restore(self._levels)
        return other


class ScratchBuffer:
    """Rectangular window addressed by signed offsets, min and max inclusive.

    Brush passes stage values here so a write never feeds a later read of the
    same pass."""

    def __init__(self, lo: tuple[int, int], hi: tuple[int, int], dtype=np.float64):
        (x0, y0), (x1, y1) = lo, hi
        if x1 < x0 or y1 < y0:
            raise ValueError(f"Empty scratch window {lo}..{hi}")
        self.min = (x0, y0)
        self.max = (x1, y1)
        self.values = np.zeros((y1 - y0 + 1, x1 - x0 + 1), dtype=dtype)

    @property
    def width(self) -> int:
        return self.values.shape[1]

    @property
    def height(self) -> int:
        return self.values.shape[0]

    def contains(self, x: int, y: int) -> bool:
        return (self.min[0] <= x <= self.max[0]
                and self.min[1] <= y <= self.max[1])

    def _index(self, x: int, y: int) -> tuple[int, int]:
        if not self.contains(x, y):
            raise OutOfBoundsError(
                f"Offset ({x}, {y}) outside scratch window {self.min}..{self.max}")
        return y - self.min[1], x - self.min[0]

    def get(self, x: int, y: int):
        return self.values[self._index(x, y)]

    def set(self, x: int, y: int, value):
        self.values[self._index(x, y)] = value

    def commit(self, grid: TerrainGrid, origin: tuple[int, int],
               mask: np.ndarray | None = None):
        """Write the buffer into grid, offset (0, 0) landing on cell origin."""
        ox, oy = origin
        grid.write((ox + self.min[0], oy + self.min[1]), self.values, mask)
