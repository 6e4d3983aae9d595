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
"""Equirectangular sphere grid

Columns map linearly to longitude and rows to latitude::

    longitude = x / width * 2 pi - pi
    latitude = pi / 2 - y / height * pi

so row 0 touches the north pole and the bottom edge of the last row touches
the south pole. Columns wrap around. Stepping north from row 0 (or south
from the last row) goes over the pole and lands in the same row on the
opposite side of the sphere, column ``(x + width / 2) % width``. This keeps
the neighbour relation symmetric and requires an even width.
"""
import math
import operator
from dataclasses import dataclass
from functools import lru_cache

import einops
import numpy as np
import torch

from surface_grid import spatial
from surface_grid.base import Compass, SurfaceGrid, Topology
from surface_grid.errors import DimensionMismatch, InvalidCoordinate

# absorbs rounding when a coordinate sits exactly on a cell boundary
_EPS = 1e-9

_OFFSETS = {
    Compass.N: (0, -1),
    Compass.S: (0, 1),
    Compass.W: (-1, 0),
    Compass.E: (1, 0),
    Compass.NW: (-1, -1),
    Compass.NE: (1, -1),
    Compass.SW: (-1, 1),
    Compass.SE: (1, 1),
}


@dataclass(frozen=True)
class RectangleSpherePoint:
    """A cell of a :py:class:`RectangleSphereGrid`

    Attributes:
        x: column, [0, width)
        y: row, [0, height), 0 is north
        width, height: size of the grid the point belongs to
    """

    x: int
    y: int
    width: int
    height: int

    def __post_init__(self):
        if not (0 <= self.x < self.width and 0 <= self.y < self.height):
            raise InvalidCoordinate(f"({self.x}, {self.y}) outside {self.width}x{self.height} grid")

    @property
    def topology(self) -> "RectangleTopology":
        return RectangleTopology(self.width, self.height)

    def up(self) -> "RectangleSpherePoint":
        return self.topology.step(self, Compass.N)

    def down(self) -> "RectangleSpherePoint":
        return self.topology.step(self, Compass.S)

    def left(self) -> "RectangleSpherePoint":
        return self.topology.step(self, Compass.W)

    def right(self) -> "RectangleSpherePoint":
        return self.topology.step(self, Compass.E)

    @property
    def latitude(self) -> float:
        return math.pi / 2 - self.y / self.height * math.pi

    @property
    def longitude(self) -> float:
        return self.x / self.width * 2 * math.pi - math.pi

    def geographic(self) -> tuple[float, float]:
        return self.latitude, self.longitude

    def to_vector(self) -> tuple[float, float, float]:
        return spatial.geographic_to_vector(self.latitude, self.longitude)

    def position(self, scale: float = 1.0) -> tuple[float, float, float]:
        x, y, z = self.to_vector()
        return x * scale, y * scale, z * scale

    @classmethod
    def from_geographic(cls, latitude: float, longitude: float, width: int, height: int) -> "RectangleSpherePoint":
        """The cell containing (latitude, longitude), both in radians"""
        spatial.check_geographic(latitude, longitude)
        y = math.floor((math.pi / 2 - latitude) / math.pi * height + _EPS)
        x = math.floor((longitude + math.pi) / (2 * math.pi) * width + _EPS)
        return cls(x % width, min(y, height - 1), width, height)

    @classmethod
    def from_vector(cls, x: float, y: float, z: float, width: int, height: int) -> "RectangleSpherePoint":
        latitude, longitude = spatial.vector_to_geographic(x, y, z)
        return cls.from_geographic(latitude, longitude, width, height)


@dataclass(frozen=True)
class RectangleTopology(Topology):
    width: int
    height: int

    def __post_init__(self):
        if not all(isinstance(n, int) for n in (self.width, self.height)):
            raise DimensionMismatch(f"width and height must be integers, got {self.width!r}, {self.height!r}")
        if self.width < 2 or self.width % 2:
            raise DimensionMismatch(f"width must be even and at least 2, got {self.width}")
        if self.height < 1:
            raise DimensionMismatch(f"height must be positive, got {self.height}")

    @property
    def shape(self) -> tuple[int, ...]:
        return (self.height, self.width)

    @property
    def axes(self) -> tuple[str, ...]:
        return ("y", "x")

    def index(self, point) -> int:
        if not isinstance(point, RectangleSpherePoint) or (point.width, point.height) != (self.width, self.height):
            raise InvalidCoordinate(f"{point!r} is not a point of {self!r}")
        return point.y * self.width + point.x

    def point(self, i: int) -> RectangleSpherePoint:
        y, x = divmod(i, self.width)
        return RectangleSpherePoint(x, y, self.width, self.height)

    def coerce(self, key) -> RectangleSpherePoint:
        if isinstance(key, RectangleSpherePoint):
            self.index(key)
            return key
        if not isinstance(key, tuple) or len(key) != 2:
            raise InvalidCoordinate(f"expected (x, y), got {key!r}")
        try:
            x, y = (operator.index(c) for c in key)
        except TypeError as e:
            raise InvalidCoordinate(f"coordinates must be integers, got {key!r}") from e
        # columns wrap around the sphere, rows do not
        return RectangleSpherePoint(x % self.width, y, self.width, self.height)

    def _offset(self, direction: Compass) -> tuple[int, int]:
        return _OFFSETS[direction]

    def _neighbour_index(self, i: torch.Tensor, dx: int, dy: int) -> torch.Tensor:
        w, h = self.width, self.height
        x = i % w + dx
        y = i // w + dy
        over_pole = (y < 0) | (y >= h)
        x = torch.where(over_pole, x + w // 2, x)
        y = y.clamp(0, h - 1)
        return y * w + x % w

    @lru_cache()
    def positions(self) -> torch.Tensor:
        y, x = torch.meshgrid(
            torch.arange(self.height, dtype=torch.float64), torch.arange(self.width, dtype=torch.float64), indexing="ij"
        )
        lat = math.pi / 2 - y / self.height * math.pi
        lon = x / self.width * 2 * math.pi - math.pi
        vec = torch.stack(spatial.ang2vec(lon, lat), dim=-1)
        return einops.rearrange(vec, "y x c -> (y x) c")

    def point_from_geographic(self, latitude: float, longitude: float) -> RectangleSpherePoint:
        return RectangleSpherePoint.from_geographic(latitude, longitude, self.width, self.height)


class RectangleSphereGrid(SurfaceGrid):
    """A grid for a sphere based on the equirectangular projection

    Example:

        >>> grid = RectangleSphereGrid.from_fn(4, 4, lambda p: p.x + p.y * 4)
        >>> grid[2, 1]
        6
    """

    def __init__(self, width: int, height: int, values):
        super().__init__(RectangleTopology(width, height), values)

    @classmethod
    def from_fn(cls, width: int, height: int, f) -> "RectangleSphereGrid":
        """Build a grid by calling ``f(point)`` once per cell"""
        return cls._from_function(RectangleTopology(width, height), f, par=False)

    @classmethod
    def from_fn_par(cls, width: int, height: int, f) -> "RectangleSphereGrid":
        return cls._from_function(RectangleTopology(width, height), f, par=True)

    @classmethod
    def from_tensor(cls, x: torch.Tensor) -> "RectangleSphereGrid":
        """Build a grid from a (height, width) tensor"""
        if x.ndim != 2:
            raise DimensionMismatch(f"expected a (height, width) tensor, got shape {tuple(x.shape)}")
        height, width = x.shape
        return cls(width, height, einops.rearrange(x, "y x -> (y x)").tolist())

    @property
    def width(self) -> int:
        return self._topology.width

    @property
    def height(self) -> int:
        return self._topology.height

    @property
    def lat(self) -> np.ndarray:
        """latitude of every row in radians, shape (height, 1)"""
        return (np.pi / 2 - np.arange(self.height) / self.height * np.pi)[:, None]

    @property
    def lon(self) -> np.ndarray:
        """longitude of every column in radians, shape (width,)"""
        return np.arange(self.width) / self.width * 2 * np.pi - np.pi

    def point_from_geographic(self, latitude: float, longitude: float) -> RectangleSpherePoint:
        return self._topology.point_from_geographic(latitude, longitude)

    def get_geographic(self, latitude: float, longitude: float):
        """Value of the cell containing (latitude, longitude)"""
        return self.get(self.point_from_geographic(latitude, longitude))
