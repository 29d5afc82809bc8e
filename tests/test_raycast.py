"""
Tests for grid-DDA raycasting.
"""

import math

import pytest

from raycast import DegenerateRayError, Raycaster, RayHit, RayVariant, aim, rotate
from terrain import TerrainGrid


class TestRaycaster:
    """Stop conditions and reported cells of the three variants."""

    @pytest.fixture
    def grid(self):
        return TerrainGrid(200, 200)

    def test_hits_single_solid_cell(self, grid):
        grid.set(100, 100, 1.0)
        result = Raycaster(grid).cast((0, 100), (1, 0), 150)
        assert result == RayHit(True, (100, 100))

    def test_cast_is_deterministic(self, grid):
        grid.set(60, 80, 1.0)
        caster = Raycaster(grid)
        direction = (0.6, 0.8)
        first = caster.cast((0.5, 0.5), direction, 300)
        assert first.hit
        assert all(caster.cast((0.5, 0.5), direction, 300) == first for _ in range(5))

    def test_diagonal_ray(self, grid):
        grid.set(30, 30, 1.0)
        d = 1 / math.sqrt(2)
        result = Raycaster(grid).cast((10.5, 10.5), (d, d), 100)
        assert result == RayHit(True, (30, 30))

    def test_vertical_ray_skips_x_axis(self, grid):
        grid.set(5, 30, 1.0)
        result = Raycaster(grid).cast((5.5, 0.5), (0, 1), 100)
        assert result == RayHit(True, (5, 30))

    def test_negative_direction(self, grid):
        grid.set(3, 50, 1.0)
        result = Raycaster(grid).cast((40.5, 50.5), (-1, 0), 100)
        assert result == RayHit(True, (3, 50))

    def test_start_cell_is_not_tested(self, grid):
        grid.set(10, 10, 1.0)
        grid.set(15, 10, 1.0)
        result = Raycaster(grid).cast((10.5, 10.5), (1, 0), 100)
        assert result == RayHit(True, (15, 10))

    def test_misses_when_distance_runs_out(self, grid):
        grid.set(40, 10, 1.0)
        result = Raycaster(grid).cast((0.5, 10.5), (1, 0), 10)
        assert not result.hit
        assert result.cell == (11, 10)

    def test_leaving_grid_reports_last_cell_inside(self):
        grid = TerrainGrid(50, 50)
        result = Raycaster(grid).cast((10.5, 10.5), (1, 0), 1000)
        assert result == RayHit(False, (49, 10))

    def test_ray_starting_off_grid_walks_in(self):
        grid = TerrainGrid(50, 50)
        grid.set(3, 10, 1.0)
        result = Raycaster(grid).cast((-5.5, 10.5), (1, 0), 100)
        assert result == RayHit(True, (3, 10))

    def test_first_solid_stops_on_partial_cell(self, grid):
        grid.set(15, 10, 0.3)
        grid.set(20, 10, 1.0)
        result = Raycaster(grid).cast_to_first_solid((10.5, 10.5), (1, 0), 100)
        assert result == RayHit(True, (15, 10))

    def test_last_empty_reports_cell_before_solid(self, grid):
        grid.set(20, 10, 1.0)
        result = Raycaster(grid).cast_to_last_empty_before_solid((10.5, 10.5), (1, 0), 100)
        assert result == RayHit(True, (19, 10))

    def test_last_empty_reports_partial_cell_itself(self, grid):
        grid.set(20, 10, 0.5)
        result = Raycaster(grid).cast_to_last_empty_before_solid((10.5, 10.5), (1, 0), 100)
        assert result == RayHit(True, (20, 10))

    def test_density_threshold_skips_thin_cells(self, grid):
        grid.set(15, 10, 0.3)
        grid.set(20, 10, 0.6)
        result = Raycaster(grid).cast_to_density_threshold((10.5, 10.5), (1, 0), 100)
        assert result == RayHit(True, (20, 10))

    def test_cast_dispatches_on_variant(self, grid):
        grid.set(20, 10, 1.0)
        caster = Raycaster(grid)
        assert caster.cast((10.5, 10.5), (1, 0), 100, RayVariant.LAST_EMPTY).cell == (19, 10)
        assert caster.cast((10.5, 10.5), (1, 0), 100, RayVariant.DENSITY_THRESHOLD).cell == (20, 10)

    @pytest.mark.parametrize("direction", [(0, 0), (math.nan, 1.0), (1.0, math.inf)])
    def test_rejects_degenerate_direction(self, grid, direction):
        with pytest.raises(DegenerateRayError):
            Raycaster(grid).cast((5, 5), direction, 10)


class TestRayHelpers:
    """Aiming and rotation used by the editor and cone sweeps."""

    def test_aim_normalizes_and_limits_distance(self):
        direction, distance = aim((0, 0), (30, 40), 500)
        assert direction.x == pytest.approx(0.6)
        assert direction.y == pytest.approx(0.8)
        assert distance == pytest.approx(50)

        _, limited = aim((0, 0), (30, 40), 20)
        assert limited == 20

    def test_aim_at_origin_is_degenerate(self):
        with pytest.raises(DegenerateRayError):
            aim((3, 4), (3, 4), 100)

    def test_rotate(self):
        turned = rotate((1, 0), 90)
        assert turned.x == pytest.approx(0, abs=1e-12)
        assert turned.y == pytest.approx(1)

    def test_rotation_is_mirror_symmetric(self):
        up = rotate((1, 0), 20)
        down = rotate((1, 0), -20)
        assert up.x == down.x
        assert up.y == -down.y
