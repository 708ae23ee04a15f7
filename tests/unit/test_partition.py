"""Tests for the task partitioner."""

from __future__ import annotations

import pytest

from rwrk._internal.errors import ConfigError
from rwrk.engine.partition import WorkerSlice, build_target, is_templated, partition


class TestPartition:
    def test_ten_over_three(self):
        """First worker receives the remainder."""
        slices = partition(10, 3)
        assert [s.request_count for s in slices] == [4, 3, 3]
        assert [s.start_id for s in slices] == [0, 4, 7]
        assert [s.worker_index for s in slices] == [0, 1, 2]

    def test_zero_total_gives_empty_slices(self):
        slices = partition(0, 4)
        assert len(slices) == 4
        assert all(s.request_count == 0 for s in slices)
        assert all(s.start_id == 0 for s in slices)

    def test_more_workers_than_tasks(self):
        slices = partition(3, 5)
        assert [s.request_count for s in slices] == [1, 1, 1, 0, 0]
        assert [s.start_id for s in slices] == [0, 1, 2, 3, 3]

    def test_even_split(self):
        slices = partition(12, 4)
        assert {s.request_count for s in slices} == {3}

    @pytest.mark.parametrize("workers", [1, 2, 3, 7, 16, 64])
    @pytest.mark.parametrize("total", [0, 1, 5, 10, 99, 1000, 1001])
    def test_sizes_sum_and_balance(self, total: int, workers: int):
        slices = partition(total, workers)
        sizes = [s.request_count for s in slices]
        assert len(slices) == workers
        assert sum(sizes) == total
        assert max(sizes) - min(sizes) <= 1
        assert all(size in (total // workers, total // workers + 1) for size in sizes)

    @pytest.mark.parametrize("workers", [1, 3, 8, 13])
    @pytest.mark.parametrize("total", [0, 1, 10, 97, 500])
    def test_identifier_ranges_cover_exactly(self, total: int, workers: int):
        slices = partition(total, workers)
        covered = [i for s in slices for i in s.ids()]
        assert covered == list(range(total))
        for previous, current in zip(slices, slices[1:], strict=False):
            assert previous.start_id + previous.request_count == current.start_id

    def test_deterministic(self):
        assert partition(1234, 17) == partition(1234, 17)

    def test_zero_workers_raises(self):
        with pytest.raises(ConfigError, match="workers must be >= 1"):
            partition(10, 0)

    def test_negative_total_raises(self):
        with pytest.raises(ConfigError, match="total must be >= 0"):
            partition(-1, 2)

    def test_slice_ids(self):
        assert list(WorkerSlice(worker_index=2, request_count=3, start_id=7).ids()) == [7, 8, 9]


class TestTargets:
    def test_is_templated(self):
        assert is_templated("http://host/items/{id}")
        assert not is_templated("http://host/items")

    def test_build_target_substitutes_every_placeholder(self):
        assert build_target("http://host/{id}?ref={id}", 42) == "http://host/42?ref=42"

    def test_build_target_literal_url_unchanged(self):
        assert build_target("http://host/static", 42) == "http://host/static"
