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
from setuptools import find_packages, setup

setup(
    name='surface_grid',
    version='0.1.0',
    description='Square-tiled grids wrapped around a sphere for cellular automata',
    packages=find_packages(include=["surface_grid", "surface_grid.*"]),
    python_requires='>=3.9',
    install_requires=[
        "numpy",
        "torch",
        "einops",
    ],
    extras_require={
        "test": ["pytest"],
    },
)
