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
"""Surface grids

A surface grid stores one value per cell of a square-tiled surface. The shape
of the surface lives in a :py:class:`Topology`, which knows how to index its
points and which cells touch which. :py:class:`SurfaceGrid` combines a
topology with flat storage and implements cell access and the bulk
transforms on top of the topology's neighbour tables.

Bulk transforms always read from a snapshot of the source values and write
into a fresh buffer that replaces the old one only once every cell has been
computed, so the result never depends on visiting order and a failing
callback leaves the grid untouched.
"""
import abc
import copy
import logging
from enum import Enum
from functools import lru_cache
from typing import Any, Callable, Iterator, Optional, Protocol, Sequence

import einops
import numpy as np
import torch

from surface_grid import parallel
from surface_grid.errors import DimensionMismatch, InvalidCoordinate

logger = logging.getLogger(__name__)


class Compass(Enum):
    """Position of a neighbour relative to a cell, in the cell's local frame"""

    N = 0
    S = 1
    W = 2
    E = 3
    NW = 4
    NE = 5
    SW = 6
    SE = 7


# slot order of the neighbour tables
EDGE_DIRECTIONS = (Compass.N, Compass.S, Compass.W, Compass.E)
DIAGONAL_DIRECTIONS = (Compass.NW, Compass.N, Compass.NE, Compass.W, Compass.E, Compass.SW, Compass.S, Compass.SE)


class SpherePoint(Protocol):
    """A grid point that can be converted to and from a direction on the unit sphere"""

    @property
    def latitude(self) -> float:
        pass

    @property
    def longitude(self) -> float:
        pass

    def geographic(self) -> tuple[float, float]:
        """(latitude, longitude) in radians"""
        pass

    def to_vector(self) -> tuple[float, float, float]:
        """unit vector pointing at this point"""
        pass

    def position(self, scale: float = 1.0) -> tuple[float, float, float]:
        pass


class Topology(abc.ABC):
    """The point space of a grid variant

    Points are numbered by a flat index in ``range(num_cells)``; the order
    matches a row-major traversal of ``shape``.
    """

    @property
    @abc.abstractmethod
    def shape(self) -> tuple[int, ...]:
        pass

    @property
    @abc.abstractmethod
    def axes(self) -> tuple[str, ...]:
        """names of the dimensions of ``shape``"""
        pass

    @property
    def num_cells(self) -> int:
        return int(np.prod(self.shape))

    @abc.abstractmethod
    def index(self, point) -> int:
        """Flat index of ``point``. Raises InvalidCoordinate for foreign points."""
        pass

    @abc.abstractmethod
    def point(self, i: int):
        pass

    @abc.abstractmethod
    def coerce(self, key):
        """Return the point for ``key``, which is a point or a tuple of raw coordinates"""
        pass

    @abc.abstractmethod
    def _neighbour_index(self, i: torch.Tensor, dx: int, dy: int) -> torch.Tensor:
        """flat index of the cell reached from cells ``i`` by the local step (dx, dy)"""
        pass

    @abc.abstractmethod
    def _offset(self, direction: Compass) -> tuple[int, int]:
        pass

    def points(self) -> list:
        return [self.point(i) for i in range(self.num_cells)]

    def directions(self, diagonals: bool = False) -> tuple[Compass, ...]:
        return DIAGONAL_DIRECTIONS if diagonals else EDGE_DIRECTIONS

    def neighbour_table(self, diagonals: bool = False) -> torch.Tensor:
        """(num_cells, k) flat indices of the neighbours of every cell

        Column ``j`` holds the neighbour in direction ``directions(diagonals)[j]``.
        The table is built once per topology.
        """
        return self._neighbour_table(bool(diagonals))

    @lru_cache()
    def _neighbour_table(self, diagonals: bool) -> torch.Tensor:
        i = torch.arange(self.num_cells, dtype=torch.long)
        columns = [self._neighbour_index(i, *self._offset(d)) for d in self.directions(diagonals)]
        table = torch.stack(columns, dim=-1)
        logger.debug("built %s neighbour table %s for %r", "diagonal" if diagonals else "edge", tuple(table.shape), self)
        return table

    @abc.abstractmethod
    def positions(self) -> torch.Tensor:
        """(num_cells, 3) float64 unit vectors through every cell, in flat index order"""
        pass

    def step(self, point, direction: Compass):
        """The cell next to ``point`` in ``direction``"""
        slots = self.directions(diagonals=True)
        j = self.neighbour_table(True)[self.index(point), slots.index(direction)]
        return self.point(int(j))

    def neighbours(self, point, diagonals: bool = False) -> list:
        """Distinct cells adjacent to ``point``, excluding ``point`` itself"""
        i = self.index(point)
        seen = {i}
        out = []
        for j in self.neighbour_table(diagonals)[i].tolist():
            if j not in seen:
                seen.add(j)
                out.append(self.point(j))
        return out


def _storage(values, n: int) -> np.ndarray:
    data = np.empty(n, dtype=object)
    count = 0
    for i, value in enumerate(values):
        if i >= n:
            raise DimensionMismatch(f"got more than {n} values")
        data[i] = value
        count += 1
    if count != n:
        raise DimensionMismatch(f"expected {n} values, got {count}")
    return data


class SurfaceGrid:
    """A grid wrapped around a surface, holding one value per cell

    Neighbour callbacks receive the current value and a tuple of neighbour
    values in the order of ``topology.directions(diagonals)``: ``(N, S, W, E)``
    for edge neighbours and ``(NW, N, NE, W, E, SW, S, SE)`` when diagonals
    are included. The ``_with_position`` variants pass ``(Compass, value)``
    pairs instead. Callbacks must not depend on visiting order; the ``_par``
    variants evaluate them on several threads.
    """

    def __init__(self, topology: Topology, values):
        self._topology = topology
        self._data = _storage(values, topology.num_cells)

    @classmethod
    def _from_function(cls, topology: Topology, f: Callable, par: bool):
        grid = cls.__new__(cls)
        grid._topology = topology
        grid._data = grid._evaluate(lambda i: f(topology.point(i)), par)
        return grid

    @property
    def topology(self) -> Topology:
        return self._topology

    @property
    def shape(self) -> tuple[int, ...]:
        return self._topology.shape

    def _with_data(self, data: np.ndarray) -> "SurfaceGrid":
        grid = copy.copy(self)
        grid._data = data
        return grid

    def copy(self) -> "SurfaceGrid":
        return self._with_data(self._data.copy())

    def _evaluate(self, compute_cell: Callable[[int], Any], par: bool) -> np.ndarray:
        n = self._topology.num_cells
        if par:
            return parallel.run_partitioned(n, lambda r: [compute_cell(i) for i in r])
        out = np.empty(n, dtype=object)
        for i in range(n):
            out[i] = compute_cell(i)
        return out

    def _check_source(self, source: Optional["SurfaceGrid"]) -> "SurfaceGrid":
        if source is None:
            return self
        if source.topology != self._topology:
            raise DimensionMismatch(f"source grid {source!r} does not match {self!r}")
        return source

    # cell access
    def point(self, *coords):
        """Validated point of this grid from raw coordinates"""
        return self._topology.coerce(coords)

    def get(self, point):
        return self._data[self._topology.index(point)]

    def set(self, point, value) -> None:
        self._data[self._topology.index(point)] = value

    def __getitem__(self, key):
        return self.get(self._topology.coerce(key))

    def __setitem__(self, key, value):
        self.set(self._topology.coerce(key), value)

    def __len__(self) -> int:
        return self._topology.num_cells

    def __eq__(self, other):
        if not isinstance(other, SurfaceGrid):
            return NotImplemented
        return self._topology == other._topology and list(self._data) == list(other._data)

    __hash__ = None  # type: ignore

    def __repr__(self):
        return f"{type(self).__name__}({self._topology!r})"

    # neighbours
    def neighbours(self, point) -> list:
        return self._topology.neighbours(point, diagonals=False)

    def neighbours_diagonals(self, point) -> list:
        return self._topology.neighbours(point, diagonals=True)

    def _neighbour_transform(self, f, source, diagonals: bool, with_position: bool, par: bool) -> np.ndarray:
        source = self._check_source(source)
        values = source._data
        table = self._topology.neighbour_table(diagonals).numpy()

        if with_position:
            directions = self._topology.directions(diagonals)

            def compute_cell(i):
                return f(values[i], tuple(zip(directions, values[table[i]])))

        else:

            def compute_cell(i):
                return f(values[i], tuple(values[table[i]]))

        return self._evaluate(compute_cell, par)

    def map_neighbours(self, f: Callable[[Any, Sequence], Any]) -> "SurfaceGrid":
        """New grid with ``f(current, (n, s, w, e))`` for every cell"""
        return self._with_data(self._neighbour_transform(f, None, False, False, False))

    def map_neighbours_par(self, f) -> "SurfaceGrid":
        return self._with_data(self._neighbour_transform(f, None, False, False, True))

    def map_neighbours_with_position(self, f) -> "SurfaceGrid":
        return self._with_data(self._neighbour_transform(f, None, False, True, False))

    def map_neighbours_with_position_par(self, f) -> "SurfaceGrid":
        return self._with_data(self._neighbour_transform(f, None, False, True, True))

    def map_neighbours_diagonals(self, f) -> "SurfaceGrid":
        """New grid with ``f(current, (nw, n, ne, w, e, sw, s, se))`` for every cell"""
        return self._with_data(self._neighbour_transform(f, None, True, False, False))

    def map_neighbours_diagonals_par(self, f) -> "SurfaceGrid":
        return self._with_data(self._neighbour_transform(f, None, True, False, True))

    def map_neighbours_diagonals_with_position(self, f) -> "SurfaceGrid":
        return self._with_data(self._neighbour_transform(f, None, True, True, False))

    def map_neighbours_diagonals_with_position_par(self, f) -> "SurfaceGrid":
        return self._with_data(self._neighbour_transform(f, None, True, True, True))

    def set_from_neighbours(self, f, source: Optional["SurfaceGrid"] = None) -> None:
        """Replace every cell with ``f(current, (n, s, w, e))`` read from ``source``

        ``source`` defaults to this grid. Values are read from the state before
        the call; nothing is written if ``f`` raises.
        """
        self._data = self._neighbour_transform(f, source, False, False, False)

    def set_from_neighbours_par(self, f, source: Optional["SurfaceGrid"] = None) -> None:
        self._data = self._neighbour_transform(f, source, False, False, True)

    def set_from_neighbours_with_position(self, f, source: Optional["SurfaceGrid"] = None) -> None:
        self._data = self._neighbour_transform(f, source, False, True, False)

    def set_from_neighbours_with_position_par(self, f, source: Optional["SurfaceGrid"] = None) -> None:
        self._data = self._neighbour_transform(f, source, False, True, True)

    def set_from_neighbours_diagonals(self, f, source: Optional["SurfaceGrid"] = None) -> None:
        self._data = self._neighbour_transform(f, source, True, False, False)

    def set_from_neighbours_diagonals_par(self, f, source: Optional["SurfaceGrid"] = None) -> None:
        self._data = self._neighbour_transform(f, source, True, False, True)

    def set_from_neighbours_diagonals_with_position(self, f, source: Optional["SurfaceGrid"] = None) -> None:
        self._data = self._neighbour_transform(f, source, True, True, False)

    def set_from_neighbours_diagonals_with_position_par(self, f, source: Optional["SurfaceGrid"] = None) -> None:
        self._data = self._neighbour_transform(f, source, True, True, True)

    # per-cell transforms
    def set_from_fn(self, f: Callable[[Any], Any]) -> None:
        """Replace every cell with ``f(point)``"""
        point = self._topology.point
        self._data = self._evaluate(lambda i: f(point(i)), False)

    def set_from_fn_par(self, f) -> None:
        point = self._topology.point
        self._data = self._evaluate(lambda i: f(point(i)), True)

    def _for_each(self, f, with_position: bool, par: bool) -> None:
        point = self._topology.point
        values = self._data

        if with_position:
            positions = self._topology.positions().tolist()

            def compute_cell(i):
                return f(point(i), values[i], tuple(positions[i]))

        else:

            def compute_cell(i):
                return f(point(i), values[i])

        self._data = self._evaluate(compute_cell, par)

    def for_each(self, f: Callable[[Any, Any], Any]) -> None:
        """Replace every cell with ``f(point, value)``"""
        self._for_each(f, False, False)

    def par_for_each(self, f) -> None:
        self._for_each(f, False, True)

    def for_each_with_position(self, f: Callable[[Any, Any, tuple[float, float, float]], Any]) -> None:
        """Replace every cell with ``f(point, value, (x, y, z))``, (x, y, z) being the unit position of the cell"""
        self._for_each(f, True, False)

    def par_for_each_with_position(self, f) -> None:
        self._for_each(f, True, True)

    # traversal
    def __iter__(self) -> Iterator[tuple[Any, Any]]:
        point = self._topology.point
        for i, value in enumerate(self._data):
            yield point(i), value

    def iter(self) -> Iterator[tuple[Any, Any]]:
        return iter(self)

    def points(self) -> list:
        return self._topology.points()

    def par_iter(self) -> list:
        point = self._topology.point
        values = self._data
        return list(parallel.run_partitioned(len(self), lambda r: [(point(i), values[i]) for i in r]))

    def par_points(self) -> list:
        point = self._topology.point
        return list(parallel.run_partitioned(len(self), lambda r: [point(i) for i in r]))

    def values(self) -> list:
        return list(self._data)

    # tensor interop
    def to_tensor(self, dtype: Optional[torch.dtype] = None) -> torch.Tensor:
        """Values as a tensor of shape ``self.shape``. Only works for numeric values."""
        flat = torch.tensor(list(self._data), dtype=dtype)
        axes = " ".join(self._topology.axes)
        return einops.rearrange(flat, f"({axes}) -> {axes}", **dict(zip(self._topology.axes, self.shape)))

    def gather_neighbours(self, x: torch.Tensor, diagonals: bool = False) -> torch.Tensor:
        """Gather the neighbours of every cell from flat per-cell data

        Args:
            x: tensor of shape (..., num_cells) in flat index order
            diagonals: include diagonal neighbours

        Returns:
            tensor of shape (..., num_cells, k) where column ``j`` holds the
            neighbour in direction ``topology.directions(diagonals)[j]``
        """
        if x.shape[-1] != len(self):
            raise DimensionMismatch(f"expected last dim = {len(self)}, got {x.shape[-1]}")
        table = self._topology.neighbour_table(diagonals).to(x.device)
        return x[..., table]
