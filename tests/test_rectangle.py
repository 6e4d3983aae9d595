# SPDX-FileCopyrightText: Copyright (c) 2024 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
# http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
import math

import numpy as np
import pytest
import torch

from surface_grid import (
    Compass,
    ConversionOutOfRange,
    DimensionMismatch,
    InvalidCoordinate,
    RectangleSphereGrid,
    RectangleSpherePoint,
)

SIZES = [(4, 4), (6, 3), (8, 5), (2, 1), (2, 2)]


def _grid(width, height):
    return RectangleSphereGrid.from_fn(width, height, lambda p: p.x + p.y * width)


def test_from_fn_get():
    grid = _grid(4, 4)
    assert grid.get(grid.point(2, 1)) == 6
    assert grid[2, 1] == 6
    assert len(grid) == 16


def test_neighbours_interior():
    grid = _grid(4, 4)
    neighbours = grid.neighbours(grid.point(2, 1))
    assert {(p.x, p.y) for p in neighbours} == {(1, 1), (3, 1), (2, 0), (2, 2)}


def test_neighbours_wrap_longitude():
    grid = _grid(4, 4)
    p = grid.point(0, 2)
    assert p.left() == grid.point(3, 2)
    assert grid.point(3, 2).right() == p


def test_pole_crosses_to_opposite_column():
    grid = _grid(4, 4)
    assert grid.point(1, 0).up() == grid.point(3, 0)
    assert grid.point(3, 0).up() == grid.point(1, 0)
    assert grid.point(0, 3).down() == grid.point(2, 3)


@pytest.mark.parametrize("width, height", SIZES)
def test_last_row_never_indexes_height(width, height):
    grid = _grid(width, height)
    table = grid.topology.neighbour_table(diagonals=True)
    assert table.min() >= 0
    assert table.max() < width * height
    for x in range(width):
        for q in grid.neighbours_diagonals(grid.point(x, height - 1)):
            assert 0 <= q.y < height


@pytest.mark.parametrize("diagonals", [False, True])
@pytest.mark.parametrize("width, height", SIZES)
def test_neighbours_symmetric(width, height, diagonals):
    grid = _grid(width, height)
    find = grid.neighbours_diagonals if diagonals else grid.neighbours
    for p in grid.points():
        around = find(p)
        assert p not in around
        assert len(set(around)) == len(around)
        for q in around:
            assert p in find(q)


def test_latitude_sign():
    p = RectangleSpherePoint(0, 0, 4, 4)
    assert p.latitude == pytest.approx(math.pi / 2)
    assert RectangleSpherePoint(0, 1, 4, 4).latitude == pytest.approx(math.pi / 4)
    assert RectangleSpherePoint(0, 3, 4, 4).latitude == pytest.approx(-math.pi / 4)
    assert p.longitude == pytest.approx(-math.pi)
    assert RectangleSpherePoint(2, 0, 4, 4).longitude == pytest.approx(0)


def test_from_geographic_poles():
    assert RectangleSpherePoint.from_geographic(math.pi / 2, 0, 4, 4) == RectangleSpherePoint(2, 0, 4, 4)
    assert RectangleSpherePoint.from_geographic(-math.pi / 2, 0, 4, 4) == RectangleSpherePoint(2, 3, 4, 4)
    assert RectangleSpherePoint.from_geographic(0.1, -math.pi, 4, 4) == RectangleSpherePoint(0, 1, 4, 4)


@pytest.mark.parametrize("width, height", SIZES)
def test_geographic_roundtrip(width, height):
    grid = _grid(width, height)
    for p in grid.points():
        assert grid.point_from_geographic(*p.geographic()) == p

        # cell centres
        lat = math.pi / 2 - (p.y + 0.5) / height * math.pi
        lon = (p.x + 0.5) / width * 2 * math.pi - math.pi
        assert grid.point_from_geographic(lat, lon) == p


def test_vector_roundtrip():
    width, height = 8, 6
    for p in _grid(width, height).points():
        if p.y == 0:
            continue
        x, y, z = p.to_vector()
        assert math.sqrt(x * x + y * y + z * z) == pytest.approx(1)
        assert RectangleSpherePoint.from_vector(x, y, z, width, height) == p


def test_position_scale():
    p = RectangleSpherePoint(2, 2, 4, 4)
    x, y, z = p.position(3.0)
    assert (x, y, z) == pytest.approx((3.0, 0.0, 0.0), abs=1e-12)


@pytest.mark.parametrize("lat, lon", [(2.0, 0.0), (-2.0, 0.0), (0.0, math.pi), (0.0, -4.0), (float("nan"), 0.0)])
def test_conversion_out_of_range(lat, lon):
    with pytest.raises(ConversionOutOfRange):
        RectangleSpherePoint.from_geographic(lat, lon, 4, 4)


def test_invalid_y_is_not_wrapped():
    grid = _grid(4, 4)
    with pytest.raises(InvalidCoordinate):
        grid[0, 4]
    with pytest.raises(InvalidCoordinate):
        grid[0, -1]
    with pytest.raises(InvalidCoordinate):
        RectangleSpherePoint(0, 4, 4, 4)


def test_raw_x_wraps_around():
    grid = _grid(4, 4)
    assert grid[4, 0] == grid[0, 0]
    assert grid[-1, 2] == grid[3, 2]
    assert grid.point(9, 1) == RectangleSpherePoint(1, 1, 4, 4)
    grid[5, 3] = "x"
    assert grid.get(RectangleSpherePoint(1, 3, 4, 4)) == "x"
    with pytest.raises(InvalidCoordinate):
        RectangleSpherePoint(4, 0, 4, 4)


def test_foreign_point():
    grid = _grid(4, 4)
    with pytest.raises(InvalidCoordinate):
        grid.get(RectangleSpherePoint(0, 0, 8, 4))
    with pytest.raises(InvalidCoordinate):
        grid.set((0, 0, 0), 1)
    with pytest.raises(InvalidCoordinate):
        grid[0.5, 1]


@pytest.mark.parametrize("width, height", [(0, 4), (3, 4), (4, 0), (-2, 2), (4.0, 4)])
def test_dimension_mismatch(width, height):
    with pytest.raises(DimensionMismatch):
        RectangleSphereGrid.from_fn(width, height, lambda p: 0)


def test_wrong_number_of_values():
    with pytest.raises(DimensionMismatch):
        RectangleSphereGrid(4, 4, range(15))
    with pytest.raises(DimensionMismatch):
        RectangleSphereGrid(4, 4, range(17))


def test_set():
    grid = _grid(4, 4)
    grid[1, 1] = "x"
    grid.set(grid.point(2, 2), "y")
    assert grid.get(grid.point(1, 1)) == "x"
    assert grid[2, 2] == "y"


def test_directions_are_north_up():
    grid = _grid(4, 4)
    out = grid.map_neighbours_with_position(lambda current, around: dict(around))
    around = out[2, 1]
    assert around[Compass.N] == grid[2, 0]
    assert around[Compass.S] == grid[2, 2]
    assert around[Compass.W] == grid[1, 1]
    assert around[Compass.E] == grid[3, 1]


def test_lat_lon_arrays():
    grid = _grid(8, 4)
    assert grid.lat.shape == (4, 1)
    assert grid.lon.shape == (8,)
    np.testing.assert_allclose(grid.lat[:, 0], [p.latitude for p in grid.points()[::8]])
    np.testing.assert_allclose(grid.lon, [p.longitude for p in grid.points()[:8]])


def test_tensor_roundtrip():
    grid = _grid(4, 2)
    x = grid.to_tensor()
    assert x.shape == (2, 4)
    assert x[1, 2] == 6
    assert RectangleSphereGrid.from_tensor(x) == grid

    with pytest.raises(DimensionMismatch):
        RectangleSphereGrid.from_tensor(torch.zeros(8))


def test_get_geographic():
    grid = _grid(4, 4)
    assert grid.get_geographic(math.pi / 2, -math.pi) == 0
    assert grid.get_geographic(-math.pi / 2, 0.0) == 14


@pytest.mark.parametrize("width, height", SIZES)
def test_positions_match_points(width, height):
    topology = _grid(width, height).topology
    positions = topology.positions()
    assert positions.shape == (width * height, 3)
    expected = [p.to_vector() for p in topology.points()]
    np.testing.assert_allclose(positions.numpy(), np.array(expected), atol=1e-12)
    assert topology.positions() is positions
