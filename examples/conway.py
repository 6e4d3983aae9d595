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
Conway's game of life on a cube sphere
--------------------------------------

Runs the game of life on the six faces of a cube sphere and prints the
population after every generation. The same step is computed twice: once
cell by cell with ``map_neighbours_diagonals_par`` and once as a torch
stencil with ``gather_neighbours``.
"""
import torch

from surface_grid import CubeSphereGrid, num_workers

size = 32
generations = 20

torch.manual_seed(0)
initial = (torch.rand(6, size, size) < 0.3).long()
grid = CubeSphereGrid.from_tensor(initial)


def life(current, around):
    alive = sum(around)
    return int(alive == 3 or (current and alive == 2))


# %%
# cell by cell
with num_workers(4):
    for generation in range(generations):
        grid = grid.map_neighbours_diagonals_par(life)
        print(generation, sum(grid.values()))

# %%
# vectorized
x = initial.flatten()
for generation in range(generations):
    alive = grid.gather_neighbours(x, diagonals=True).sum(-1)
    x = ((alive == 3) | ((x == 1) & (alive == 2))).long()

print("vectorized matches:", torch.equal(x.reshape(6, size, size), grid.to_tensor()))
