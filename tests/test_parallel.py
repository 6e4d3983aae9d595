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
import threading

import pytest

from surface_grid import parallel


@pytest.mark.parametrize("n, chunks", [(10, 3), (7, 7), (3, 8), (100, 4), (1, 1), (0, 4)])
def test_partition(n, chunks):
    ranges = parallel.partition(n, chunks)
    assert len(ranges) <= max(1, chunks)
    assert [i for r in ranges for i in r] == list(range(n))
    assert all(len(r) > 0 for r in ranges)


def test_partition_example():
    assert parallel.partition(10, 3) == [range(0, 3), range(3, 7), range(7, 10)]


@pytest.mark.parametrize("workers", [1, 2, 5])
def test_run_partitioned(workers):
    out = parallel.run_partitioned(23, lambda r: [i * i for i in r], workers=workers)
    assert list(out) == [i * i for i in range(23)]


def test_run_partitioned_uses_threads():
    names = parallel.run_partitioned(8, lambda r: [threading.current_thread().name for _ in r], workers=4)
    assert threading.main_thread().name not in set(names)
    assert len(names) == 8


def test_run_partitioned_propagates():
    def compute(r):
        if 5 in r:
            raise ValueError("bad range")
        return list(r)

    with pytest.raises(ValueError, match="bad range"):
        parallel.run_partitioned(10, compute, workers=3)


def test_run_partitioned_checks_length():
    with pytest.raises(RuntimeError):
        parallel.run_partitioned(10, lambda r: [0], workers=2)


def test_num_workers_context():
    with parallel.num_workers(3):
        assert parallel.get_num_workers() == 3
        with parallel.num_workers(1):
            assert parallel.get_num_workers() == 1
        assert parallel.get_num_workers() == 3


def test_num_workers_restored_after_error():
    before = parallel.get_num_workers()
    with pytest.raises(KeyError):
        with parallel.num_workers(2):
            raise KeyError()
    assert parallel.get_num_workers() == before


@pytest.mark.parametrize("n", [0, -1, 1.5])
def test_num_workers_invalid(n):
    with pytest.raises(ValueError):
        with parallel.num_workers(n):
            pass


def test_num_workers_env(monkeypatch):
    monkeypatch.setenv("SURFACE_GRID_NUM_WORKERS", "6")
    assert parallel.get_num_workers() == 6
    with parallel.num_workers(2):
        assert parallel.get_num_workers() == 2

    monkeypatch.setenv("SURFACE_GRID_NUM_WORKERS", "0")
    with pytest.raises(ValueError):
        parallel.get_num_workers()
