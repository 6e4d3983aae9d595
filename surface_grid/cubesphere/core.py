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
Cubesphere Core
===============

Face frames, seam adjacency and projection math for the cube sphere grid.

The six faces are laid out as::

    | 5 |             (north cap, +Z)
    | 0 | 1 | 2 | 3 | (equatorial band, +X, +Y, -X, -Y)
    | 4 |             (south cap, -Z)

Every face has a right-handed frame ``(u, v, n)``: local ``x`` runs along
``u``, local ``y`` along ``v`` and ``n`` points out of the cube. On the
equatorial faces ``v`` is +Z, so increasing ``y`` goes north::

        y
        ↑
        |  (0, 1)  (1, 1)
        |  (0, 0)  (1, 0)
        +------------------→ x

Seams
-----

Crossing an edge of a face lands on the neighbouring face rotated by a whole
number of quarter turns. Because all frames are right-handed no seam needs
mirroring. A coordinate that left its face through one edge is mapped onto
the neighbour by rotating it counter-clockwise ``turns`` times about the
origin and wrapping it into ``[0, size)``; the same rotation applied to a
step direction gives that direction in the neighbour's frame.
"""
import logging
from enum import IntEnum
from typing import NamedTuple

import torch

__all__ = [
    "Edge",
    "Seam",
    "SEAMS",
    "FACE_FRAMES",
    "NUM_FACES",
    "cross",
    "rotate_direction",
    "validate_adjacency",
    "xy_to_vec",
    "vec_to_xy",
]

logger = logging.getLogger(__name__)

NUM_FACES = 6


class Edge(IntEnum):
    """Edges of a face in counter-clockwise order"""

    RIGHT = 0
    TOP = 1
    LEFT = 2
    BOTTOM = 3


class Seam(NamedTuple):
    face: int
    edge: Edge
    turns: int


# (n, u, v) for every face
FACE_FRAMES = (
    ((1, 0, 0), (0, 1, 0), (0, 0, 1)),
    ((0, 1, 0), (-1, 0, 0), (0, 0, 1)),
    ((-1, 0, 0), (0, -1, 0), (0, 0, 1)),
    ((0, -1, 0), (1, 0, 0), (0, 0, 1)),
    ((0, 0, -1), (0, 1, 0), (1, 0, 0)),
    ((0, 0, 1), (0, 1, 0), (-1, 0, 0)),
)

# neighbouring face across (right, top, left, bottom)
_NEIGHBOUR_FACE = (
    (1, 5, 3, 4),
    (2, 5, 0, 4),
    (3, 5, 1, 4),
    (0, 5, 2, 4),
    (1, 0, 3, 2),
    (1, 2, 3, 0),
)

# counter-clockwise quarter turns taking local coordinates across (right, top, left, bottom)
_TURNS = (
    (0, 0, 0, 0),
    (0, 1, 0, 3),
    (0, 2, 0, 2),
    (0, 3, 0, 1),
    (1, 0, 3, 2),
    (3, 2, 1, 0),
)


def _seam(face: int, edge: Edge) -> Seam:
    turns = _TURNS[face][edge]
    # leaving through ``edge`` and rotating by ``turns`` enters through the opposite side
    return Seam(_NEIGHBOUR_FACE[face][edge], Edge((edge + turns + 2) % 4), turns)


SEAMS = tuple(tuple(_seam(face, edge) for edge in Edge) for face in range(NUM_FACES))


def validate_adjacency() -> None:
    """Check that every seam leads back to where it started

    Raises:
        RuntimeError: if the table is inconsistent
    """
    for face in range(NUM_FACES):
        for edge in Edge:
            seam = SEAMS[face][edge]
            back = SEAMS[seam.face][seam.edge]
            if seam.face == face:
                raise RuntimeError(f"face {face} is glued to itself across {edge.name}")
            if (back.face, back.edge) != (face, edge) or (seam.turns + back.turns) % 4:
                raise RuntimeError(f"seam {face}/{edge.name} -> {seam} does not invert, got {back}")
    logger.debug("validated %d cube seams", NUM_FACES * len(Edge))


def _rotate(turns: torch.Tensor, x: torch.Tensor, y: torch.Tensor) -> tuple[torch.Tensor, torch.Tensor]:
    """rotate cell coordinates (x, y) counter clockwise about the origin"""
    r = turns % 4
    x1, y1 = -y - 1, x
    x2, y2 = -x - 1, -y - 1
    x3, y3 = y, -x - 1
    x_out = torch.where(r == 0, x, torch.where(r == 1, x1, torch.where(r == 2, x2, x3)))
    y_out = torch.where(r == 0, y, torch.where(r == 1, y1, torch.where(r == 2, y2, y3)))
    return x_out, y_out


def rotate_direction(turns: torch.Tensor, dx: torch.Tensor, dy: torch.Tensor) -> tuple[torch.Tensor, torch.Tensor]:
    """rotate a step direction (dx, dy) counter clockwise"""
    r = turns % 4
    dx_out = torch.where(r == 0, dx, torch.where(r == 1, -dy, torch.where(r == 2, -dx, dy)))
    dy_out = torch.where(r == 0, dy, torch.where(r == 1, dx, torch.where(r == 2, -dy, -dx)))
    return dx_out, dy_out


def cross(
    size: int, face: torch.Tensor, x: torch.Tensor, y: torch.Tensor
) -> tuple[torch.Tensor, torch.Tensor, torch.Tensor, torch.Tensor]:
    """Map local coordinates that may lie one cell outside their face onto the cube

    Coordinates may leave the face through at most one edge; a point beyond
    a face corner has no unique image and raises.

    Args:
        size: cells per face edge
        face: face index [0, 6)
        x, y: local coordinates in [-1, size]

    Returns:
        (face, x, y, turns) where ``turns`` is the rotation applied, 0 for
        points that stayed on their face
    """
    n = size
    face_shift_x = torch.div(x, n, rounding_mode="floor")
    face_shift_y = torch.div(y, n, rounding_mode="floor")
    if torch.any((face_shift_x != 0) & (face_shift_y != 0)):
        raise ValueError("coordinates beyond a face corner cannot cross a single seam")

    # (-1, 0, 1) shifts to edge index, -1 for inside
    direction_lookup = torch.tensor(
        [
            [-1, Edge.LEFT, -1],
            [Edge.BOTTOM, -1, Edge.TOP],
            [-1, Edge.RIGHT, -1],
        ],
        dtype=torch.long,
        device=x.device,
    )
    edge = direction_lookup[face_shift_x + 1, face_shift_y + 1]
    inside = edge == -1

    neighbour_face = torch.tensor(_NEIGHBOUR_FACE, dtype=torch.long, device=x.device)
    turns = torch.tensor(_TURNS, dtype=torch.long, device=x.device)
    nbr_face = neighbour_face[face, edge.clamp(min=0)]
    rot = torch.where(inside, 0, turns[face, edge.clamp(min=0)])

    x_rot, y_rot = _rotate(rot, x, y)
    return torch.where(inside, face, nbr_face), x_rot % n, y_rot % n, rot


def _frames(device=None) -> torch.Tensor:
    return torch.tensor(FACE_FRAMES, dtype=torch.float64, device=device)


def xy_to_vec(size: int, face: torch.Tensor, x: torch.Tensor, y: torch.Tensor) -> torch.Tensor:
    """Unit vectors through the centres of cells (face, x, y)

    The cell centre is placed on the cube at ``n + a u + b v`` with
    ``a, b`` in (-1, 1) and the resulting vector is normalized.

    Returns:
        tensor of shape face.shape + (3,)
    """
    frames = _frames(x.device)[face]
    a = (2 * x.double() + 1) / size - 1
    b = (2 * y.double() + 1) / size - 1
    vec = frames[..., 0, :] + a[..., None] * frames[..., 1, :] + b[..., None] * frames[..., 2, :]
    return vec / torch.linalg.vector_norm(vec, dim=-1, keepdim=True)


# face whose outward axis is +axis (column 0) or -axis (column 1)
_FACE_OF_AXIS = ((0, 2), (1, 3), (5, 4))


def vec_to_xy(size: int, vec: torch.Tensor) -> tuple[torch.Tensor, torch.Tensor, torch.Tensor]:
    """Cells containing the directions ``vec``

    The face is the one whose outward axis has the largest absolute component
    (ties go to the lower axis). The other two components are divided by the
    dominant one to project onto the face.

    Args:
        vec: (..., 3), need not be normalized

    Returns:
        (face, x, y) long tensors
    """
    vec = vec.double()
    axis = vec.abs().argmax(dim=-1)
    negative = (torch.gather(vec, -1, axis[..., None])[..., 0] < 0).long()
    face = torch.tensor(_FACE_OF_AXIS, dtype=torch.long, device=vec.device)[axis, negative]

    frames = _frames(vec.device)[face]
    depth = (vec * frames[..., 0, :]).sum(-1)
    a = (vec * frames[..., 1, :]).sum(-1) / depth
    b = (vec * frames[..., 2, :]).sum(-1) / depth

    x = torch.floor((a + 1) / 2 * size).long().clamp(0, size - 1)
    y = torch.floor((b + 1) / 2 * size).long().clamp(0, size - 1)
    return face, x, y


validate_adjacency()
