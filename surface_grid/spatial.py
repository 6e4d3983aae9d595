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

import torch

from surface_grid.errors import ConversionOutOfRange


def haversine_distance(lon1, lat1, lon2, lat2):
    """
    Calculate the Haversine distance between two points on unit sphere

    Args:
        lon1 (float): Longitude of the first point in radians.
        lat1 (float): Latitude of the first point in radians.
        lon2 (float): Longitude of the second point in radians.
        lat2 (float): Latitude of the second point in radians.

    Returns:
        float: central angle between the two points in radians.
    """
    # Differences in coordinates
    dlon = lon2 - lon1
    dlat = lat2 - lat1

    # Haversine formula
    a = torch.sin(dlat / 2) ** 2 + torch.cos(lat1) * torch.cos(lat2) * torch.sin(dlon / 2) ** 2
    c = 2 * torch.atan2(torch.sqrt(a), torch.sqrt(1 - a))
    return c


def ang2vec(lon, lat):
    """convert lon,lat in radians to cartesian coordinates"""
    x = torch.cos(lat) * torch.cos(lon)
    y = torch.cos(lat) * torch.sin(lon)
    z = torch.sin(lat)
    return (x, y, z)


def vec2ang(x, y, z):
    """convert cartesian coordinates to lon, lat in radians

    The vector does not need to be normalized. Longitude is folded into [-pi, pi).
    """
    r = torch.sqrt(x**2 + y**2 + z**2)
    lat = torch.asin(z / r)
    lon = torch.atan2(y, x)
    lon = torch.where(lon >= math.pi, lon - 2 * math.pi, lon)
    return lon, lat


def check_geographic(latitude: float, longitude: float) -> None:
    """Raise ConversionOutOfRange unless (latitude, longitude) lies in [-pi/2, pi/2] x [-pi, pi)"""
    if not -math.pi / 2 <= latitude <= math.pi / 2:
        raise ConversionOutOfRange(f"latitude {latitude} outside [-pi/2, pi/2]")
    if not -math.pi <= longitude < math.pi:
        raise ConversionOutOfRange(f"longitude {longitude} outside [-pi, pi)")


def vector_to_geographic(x: float, y: float, z: float) -> tuple[float, float]:
    """Scalar version of ``vec2ang`` returning (latitude, longitude)"""
    r = math.sqrt(x * x + y * y + z * z)
    if r == 0:
        raise ConversionOutOfRange("zero vector has no direction")
    # clamp guards asin against |z / r| creeping past 1
    latitude = math.asin(max(-1.0, min(1.0, z / r)))
    longitude = math.atan2(y, x)
    if longitude >= math.pi:
        longitude -= 2 * math.pi
    return latitude, longitude


def geographic_to_vector(latitude: float, longitude: float) -> tuple[float, float, float]:
    """Scalar version of ``ang2vec``"""
    return (
        math.cos(latitude) * math.cos(longitude),
        math.cos(latitude) * math.sin(longitude),
        math.sin(latitude),
    )
