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
"""Data-parallel execution over disjoint index ranges

Bulk transforms hand this module a function computing the outputs of one
contiguous range of flat cell indices. Ranges never overlap, so every worker
owns its output slice and no locking is needed. Outputs land in a fresh
buffer that the caller commits only after every range has finished.
"""
import contextlib
import logging
import os
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Optional, Sequence

import numpy as np

__all__ = ["num_workers", "get_num_workers", "partition", "run_partitioned"]

logger = logging.getLogger(__name__)

_ENV_NUM_WORKERS = "SURFACE_GRID_NUM_WORKERS"

_num_workers: Optional[int] = None


def _default_num_workers() -> int:
    value = os.environ.get(_ENV_NUM_WORKERS)
    if value is None:
        return os.cpu_count() or 1
    n = int(value)
    if n < 1:
        raise ValueError(f"{_ENV_NUM_WORKERS} must be a positive integer, got {value!r}")
    return n


def get_num_workers() -> int:
    """Number of workers used by the ``_par`` methods"""
    if _num_workers is not None:
        return _num_workers
    return _default_num_workers()


@contextlib.contextmanager
def num_workers(n: int):
    """Select the number of workers for parallel bulk transforms"""
    global _num_workers

    if not isinstance(n, int) or n < 1:
        raise ValueError(f"number of workers must be a positive integer, got {n!r}")

    old = _num_workers
    _num_workers = n
    try:
        yield
    finally:
        _num_workers = old


def partition(n: int, chunks: int) -> list[range]:
    """Split ``range(n)`` into at most ``chunks`` contiguous, disjoint, non-empty ranges

    Example:

        >>> partition(10, 3)
        [range(0, 3), range(3, 7), range(7, 10)]
    """
    chunks = max(1, min(chunks, n))
    bounds = np.linspace(0, n, chunks + 1).round().astype(int)
    return [range(int(start), int(stop)) for start, stop in zip(bounds[:-1], bounds[1:]) if stop > start]


def run_partitioned(n: int, compute: Callable[[range], Sequence], workers: Optional[int] = None) -> np.ndarray:
    """Evaluate ``compute`` over disjoint ranges covering ``range(n)``

    Args:
        n: number of cells
        compute: maps a range of flat indices to the outputs of those cells, in order
        workers: defaults to ``get_num_workers()``

    Returns:
        object array of length ``n`` with the outputs of every cell. If any
        range raises, the exception propagates and no output is returned.
    """
    workers = workers or get_num_workers()
    ranges = partition(n, workers)
    out = np.empty(n, dtype=object)
    logger.debug("dispatching %d cells as %d ranges on %d workers", n, len(ranges), workers)

    if len(ranges) <= 1:
        for r in ranges:
            _store(out, r, compute(r))
        return out

    with ThreadPoolExecutor(max_workers=workers) as executor:
        futures = [(r, executor.submit(compute, r)) for r in ranges]
        # result() re-raises the first failure; the pool still drains on exit
        for r, future in futures:
            _store(out, r, future.result())
    return out


def _store(out: np.ndarray, r: range, values: Sequence) -> None:
    if len(values) != len(r):
        raise RuntimeError(f"range {r} produced {len(values)} values")
    for i, value in zip(r, values):
        out[i] = value
