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
"""
Cubesphere Grid
===============

The cubesphere grid divides the sphere into 6 faces, each a square grid.
Points are ``(face, x, y)`` triples; faces are glued along their edges by a
fixed seam table so that neighbour queries and bulk transforms see one
continuous surface.

The face layout is:

    | 5 |           (North cap)
    | 0 | 1 | 2 | 3 |  (Equatorial band)
    | 4 |           (South cap)

Example:
    Count live neighbours across the whole sphere:

    >>> from surface_grid import cubesphere
    >>> grid = cubesphere.CubeSphereGrid.from_fn(16, lambda p: p.face == 5)
    >>> counts = grid.map_neighbours_diagonals(lambda current, around: sum(around))
"""

from surface_grid.cubesphere.core import SEAMS, Edge, Seam, validate_adjacency
from surface_grid.cubesphere.grid import CubeSphereGrid, CubeSpherePoint, CubeTopology

__all__ = [
    "CubeSphereGrid",
    "CubeSpherePoint",
    "CubeTopology",
    # Seams
    "Edge",
    "Seam",
    "SEAMS",
    "validate_adjacency",
]
