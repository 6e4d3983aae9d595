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
from surface_grid import base, cubesphere, parallel, spatial
from surface_grid.base import Compass, SpherePoint, SurfaceGrid, Topology
from surface_grid.cubesphere import CubeSphereGrid, CubeSpherePoint
from surface_grid.errors import (
    ConversionOutOfRange,
    DimensionMismatch,
    InvalidCoordinate,
    SurfaceGridError,
)
from surface_grid.parallel import num_workers
from surface_grid.rectangle import RectangleSphereGrid, RectangleSpherePoint

__all__ = [
    "base",
    "cubesphere",
    "parallel",
    "spatial",
    "Compass",
    "SpherePoint",
    "SurfaceGrid",
    "Topology",
    "RectangleSphereGrid",
    "RectangleSpherePoint",
    "CubeSphereGrid",
    "CubeSpherePoint",
    "num_workers",
    "SurfaceGridError",
    "InvalidCoordinate",
    "DimensionMismatch",
    "ConversionOutOfRange",
]
