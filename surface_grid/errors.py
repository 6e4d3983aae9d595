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
"""Errors raised by surface grids"""


class SurfaceGridError(Exception):
    pass


class InvalidCoordinate(SurfaceGridError, IndexError):
    """A point or raw coordinate lies outside a grid's index space"""


class DimensionMismatch(SurfaceGridError, ValueError):
    """Grid dimensions are invalid or do not agree with each other"""


class ConversionOutOfRange(SurfaceGridError, ValueError):
    """A geographic coordinate lies outside [-pi/2, pi/2] x [-pi, pi)"""
