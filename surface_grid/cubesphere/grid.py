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
import operator
from dataclasses import dataclass
from functools import lru_cache

import einops
import numpy as np
import torch

from surface_grid import spatial
from surface_grid.base import Compass, SurfaceGrid, Topology
from surface_grid.cubesphere import core
from surface_grid.errors import ConversionOutOfRange, DimensionMismatch, InvalidCoordinate

# local y points along the face's v axis, so north is +y
_OFFSETS = {
    Compass.N: (0, 1),
    Compass.S: (0, -1),
    Compass.W: (-1, 0),
    Compass.E: (1, 0),
    Compass.NW: (-1, 1),
    Compass.NE: (1, 1),
    Compass.SW: (-1, -1),
    Compass.SE: (1, -1),
}


@dataclass(frozen=True)
class CubeSpherePoint:
    """A cell of a :py:class:`CubeSphereGrid`

    Attributes:
        face: [0, 6), see :py:mod:`surface_grid.cubesphere.core` for the layout
        x, y: local coordinates on the face, [0, size)
        size: cells per face edge of the grid the point belongs to
    """

    face: int
    x: int
    y: int
    size: int

    def __post_init__(self):
        if not 0 <= self.face < core.NUM_FACES:
            raise InvalidCoordinate(f"face {self.face} outside [0, {core.NUM_FACES})")
        if not (0 <= self.x < self.size and 0 <= self.y < self.size):
            raise InvalidCoordinate(f"({self.x}, {self.y}) outside {self.size}x{self.size} face")

    @property
    def topology(self) -> "CubeTopology":
        return CubeTopology(self.size)

    def up(self) -> "CubeSpherePoint":
        return self.topology.step(self, Compass.N)

    def down(self) -> "CubeSpherePoint":
        return self.topology.step(self, Compass.S)

    def left(self) -> "CubeSpherePoint":
        return self.topology.step(self, Compass.W)

    def right(self) -> "CubeSpherePoint":
        return self.topology.step(self, Compass.E)

    def to_vector(self) -> tuple[float, float, float]:
        topology = self.topology
        x, y, z = topology.positions()[topology.index(self)].tolist()
        return x, y, z

    def position(self, scale: float = 1.0) -> tuple[float, float, float]:
        x, y, z = self.to_vector()
        return x * scale, y * scale, z * scale

    def geographic(self) -> tuple[float, float]:
        return spatial.vector_to_geographic(*self.to_vector())

    @property
    def latitude(self) -> float:
        return self.geographic()[0]

    @property
    def longitude(self) -> float:
        return self.geographic()[1]

    @classmethod
    def from_vector(cls, x: float, y: float, z: float, size: int) -> "CubeSpherePoint":
        """The cell the direction (x, y, z) passes through"""
        if x == 0 and y == 0 and z == 0:
            raise ConversionOutOfRange("zero vector has no direction")
        face, px, py = core.vec_to_xy(size, torch.tensor([x, y, z], dtype=torch.float64))
        return cls(face.item(), px.item(), py.item(), size)

    @classmethod
    def from_geographic(cls, latitude: float, longitude: float, size: int) -> "CubeSpherePoint":
        """The cell containing (latitude, longitude), both in radians"""
        spatial.check_geographic(latitude, longitude)
        return cls.from_vector(*spatial.geographic_to_vector(latitude, longitude), size)


@dataclass(frozen=True)
class CubeTopology(Topology):
    size: int

    def __post_init__(self):
        if not isinstance(self.size, int) or self.size < 1:
            raise DimensionMismatch(f"size must be a positive integer, got {self.size!r}")

    @property
    def shape(self) -> tuple[int, ...]:
        return (core.NUM_FACES, self.size, self.size)

    @property
    def axes(self) -> tuple[str, ...]:
        return ("face", "y", "x")

    def index(self, point) -> int:
        if not isinstance(point, CubeSpherePoint) or point.size != self.size:
            raise InvalidCoordinate(f"{point!r} is not a point of {self!r}")
        return (point.face * self.size + point.y) * self.size + point.x

    def point(self, i: int) -> CubeSpherePoint:
        face, rest = divmod(i, self.size * self.size)
        y, x = divmod(rest, self.size)
        return CubeSpherePoint(face, x, y, self.size)

    def coerce(self, key) -> CubeSpherePoint:
        if isinstance(key, CubeSpherePoint):
            self.index(key)
            return key
        if not isinstance(key, tuple) or len(key) != 3:
            raise InvalidCoordinate(f"expected (face, x, y), got {key!r}")
        try:
            face, x, y = (operator.index(c) for c in key)
        except TypeError as e:
            raise InvalidCoordinate(f"coordinates must be integers, got {key!r}") from e
        return CubeSpherePoint(face, x, y, self.size)

    def _offset(self, direction: Compass) -> tuple[int, int]:
        return _OFFSETS[direction]

    def _neighbour_index(self, i: torch.Tensor, dx: int, dy: int) -> torch.Tensor:
        n = self.size
        face = i // (n * n)
        y = i % (n * n) // n
        x = i % n

        nx = x + dx
        ny = y + dy
        # a step out through a face corner points into a cube vertex, where only
        # three faces meet. Take the vertical part first, then the horizontal
        # part in the frame of the face reached.
        corner = ((nx < 0) | (nx >= n)) & ((ny < 0) | (ny >= n))

        face1, x1, y1, turns = core.cross(n, face, torch.where(corner, x, nx), ny)
        hdx, hdy = core.rotate_direction(turns, torch.full_like(x, dx), torch.zeros_like(x))
        x2 = torch.where(corner, x1 + hdx, x1)
        y2 = torch.where(corner, y1 + hdy, y1)
        face2, x2, y2, _ = core.cross(n, face1, x2, y2)
        return (face2 * n + y2) * n + x2

    @lru_cache()
    def positions(self) -> torch.Tensor:
        face, y, x = torch.meshgrid(
            torch.arange(core.NUM_FACES), torch.arange(self.size), torch.arange(self.size), indexing="ij"
        )
        vec = core.xy_to_vec(self.size, face, x, y)
        return einops.rearrange(vec, "f y x c -> (f y x) c")

    def point_from_geographic(self, latitude: float, longitude: float) -> CubeSpherePoint:
        return CubeSpherePoint.from_geographic(latitude, longitude, self.size)


class CubeSphereGrid(SurfaceGrid):
    """A grid that wraps a cube around a sphere

    Each of the six faces is a ``size x size`` grid; the whole grid holds
    ``6 * size * size`` cells. Seams between faces are invisible to the
    neighbour queries and bulk transforms.

    Example:

        >>> grid = CubeSphereGrid.from_fn(8, lambda p: p.face)
        >>> grid.to_tensor().shape
        torch.Size([6, 8, 8])
    """

    def __init__(self, size: int, values):
        super().__init__(CubeTopology(size), values)

    @classmethod
    def from_fn(cls, size: int, f) -> "CubeSphereGrid":
        """Build a grid by calling ``f(point)`` once per cell"""
        return cls._from_function(CubeTopology(size), f, par=False)

    @classmethod
    def from_fn_par(cls, size: int, f) -> "CubeSphereGrid":
        return cls._from_function(CubeTopology(size), f, par=True)

    @classmethod
    def from_tensor(cls, x: torch.Tensor) -> "CubeSphereGrid":
        """Build a grid from a (6, size, size) tensor indexed [face, y, x]"""
        if x.ndim != 3 or x.shape[0] != core.NUM_FACES or x.shape[1] != x.shape[2]:
            raise DimensionMismatch(f"expected a (6, size, size) tensor, got shape {tuple(x.shape)}")
        return cls(x.shape[-1], einops.rearrange(x, "f y x -> (f y x)").tolist())

    @property
    def size(self) -> int:
        return self._topology.size

    def _vectors(self) -> torch.Tensor:
        return einops.rearrange(self._topology.positions(), "(f y x) c -> f y x c", f=core.NUM_FACES, y=self.size)

    @property
    def lat(self) -> np.ndarray:
        """latitude of every cell centre in radians, shape (6, size, size)"""
        vec = self._vectors()
        _, lat = spatial.vec2ang(vec[..., 0], vec[..., 1], vec[..., 2])
        return lat.numpy()

    @property
    def lon(self) -> np.ndarray:
        """longitude of every cell centre in radians, shape (6, size, size)"""
        vec = self._vectors()
        lon, _ = spatial.vec2ang(vec[..., 0], vec[..., 1], vec[..., 2])
        return lon.numpy()

    def point_from_geographic(self, latitude: float, longitude: float) -> CubeSpherePoint:
        return self._topology.point_from_geographic(latitude, longitude)

    def get_geographic(self, latitude: float, longitude: float):
        """Value of the cell containing (latitude, longitude)"""
        return self.get(self.point_from_geographic(latitude, longitude))
