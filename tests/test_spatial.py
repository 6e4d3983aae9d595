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

import pytest
import torch

from surface_grid import ConversionOutOfRange, spatial


def test_vec2ang2vec():
    vec = torch.randn(3, dtype=torch.float64)
    vec /= torch.norm(vec)
    x, y, z = vec

    lon, lat = spatial.vec2ang(x, y, z)
    x1, y1, z1 = spatial.ang2vec(lon, lat)
    assert torch.allclose(torch.stack([x1, y1, z1]), torch.stack([x, y, z]))


def test_vec2ang():
    lon, lat = spatial.vec2ang(torch.tensor(0.0), torch.tensor(0.0), torch.tensor(1.0))
    assert lat == pytest.approx(math.pi / 2)

    lon, _ = spatial.vec2ang(torch.tensor(1.0), torch.tensor(0.0), torch.tensor(0.0))
    assert lon == pytest.approx(0)

    lon, _ = spatial.vec2ang(torch.tensor(0.0), torch.tensor(1.0), torch.tensor(0.0))
    assert lon == pytest.approx(math.pi / 2)

    lon, _ = spatial.vec2ang(torch.tensor(-1.0), torch.tensor(0.0), torch.tensor(0.0))
    assert lon == pytest.approx(-math.pi)


def test_vec2ang_unnormalized():
    _, lat = spatial.vec2ang(torch.tensor(3.0), torch.tensor(0.0), torch.tensor(3.0))
    assert lat == pytest.approx(math.pi / 4)


@pytest.mark.parametrize(
    "lat, lon",
    [(0.0, 0.0), (math.pi / 2, 0.0), (-math.pi / 2, 1.0), (0.3, -math.pi), (-1.2, 3.0)],
)
def test_geographic_vector_roundtrip(lat, lon):
    vec = spatial.geographic_to_vector(lat, lon)
    assert sum(c * c for c in vec) == pytest.approx(1)
    lat1, lon1 = spatial.vector_to_geographic(*vec)
    assert lat1 == pytest.approx(lat)
    if abs(lat) < math.pi / 2:
        assert lon1 == pytest.approx(lon)


def test_vector_to_geographic_zero():
    with pytest.raises(ConversionOutOfRange):
        spatial.vector_to_geographic(0.0, 0.0, 0.0)


@pytest.mark.parametrize(
    "lat, lon",
    [(2.0, 0.0), (-2.0, 0.0), (0.0, math.pi), (0.0, -4.0), (math.nan, 0.0), (0.0, math.nan)],
)
def test_check_geographic(lat, lon):
    with pytest.raises(ConversionOutOfRange):
        spatial.check_geographic(lat, lon)


def test_check_geographic_bounds():
    spatial.check_geographic(math.pi / 2, -math.pi)
    spatial.check_geographic(-math.pi / 2, math.pi - 1e-9)


def test_haversine_distance():
    lon = torch.tensor([0.0, 0.0])
    lat = torch.tensor([0.0, math.pi / 2])
    d = spatial.haversine_distance(lon[0], lat[0], lon[1], lat[1])
    assert d.item() == pytest.approx(math.pi / 2)

    d = spatial.haversine_distance(torch.tensor(0.0), torch.tensor(0.0), torch.tensor(math.pi / 2), torch.tensor(0.0))
    assert d.item() == pytest.approx(math.pi / 2, rel=1e-6)
