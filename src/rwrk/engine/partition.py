"""Deterministic partitioning of the request count across workers."""

from __future__ import annotations

from dataclasses import dataclass

from rwrk._internal.errors import ConfigError

ID_PLACEHOLDER = "{id}"


@dataclass(frozen=True)
class WorkerSlice:
    """The share of the run assigned to one worker.

    Attributes:
        worker_index: 0-based index of the worker.
        request_count: Number of requests this worker issues.
        start_id: First identifier substituted into a templated URL.
    """

    worker_index: int
    request_count: int
    start_id: int

    def ids(self) -> range:
        """Return the identifier range covered by this slice."""
        return range(self.start_id, self.start_id + self.request_count)


def partition(total: int, workers: int) -> list[WorkerSlice]:
    """Split ``total`` requests across ``workers`` slices.

    Every worker receives ``total // workers`` requests and the first
    ``total % workers`` workers receive one extra. Identifier ranges are
    contiguous and together cover ``[0, total)``.

    Args:
        total: Total number of requests.
        workers: Number of workers.

    Returns:
        One WorkerSlice per worker, ordered by index.

    Raises:
        ConfigError: If ``workers < 1`` or ``total < 0``.
    """
    if workers < 1:
        msg = f"workers must be >= 1, got: {workers}"
        raise ConfigError(msg)
    if total < 0:
        msg = f"total must be >= 0, got: {total}"
        raise ConfigError(msg)

    base = total // workers
    remainder = total % workers

    return [
        WorkerSlice(
            worker_index=i,
            request_count=base + (1 if i < remainder else 0),
            start_id=i * base + min(i, remainder),
        )
        for i in range(workers)
    ]


def is_templated(url: str) -> bool:
    """Return True if ``url`` contains the identifier placeholder."""
    return ID_PLACEHOLDER in url


def build_target(url: str, identifier: int) -> str:
    """Substitute ``identifier`` into a templated URL.

    A URL without the placeholder is returned unchanged.
    """
    if not is_templated(url):
        return url
    return url.replace(ID_PLACEHOLDER, str(identifier))
