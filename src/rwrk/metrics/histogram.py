"""Per-worker latency histogram backed by HdrHistogram.

Each worker records into its own histogram; the aggregator merges them
after the join. Values are stored as integer microseconds.
"""

from __future__ import annotations

from hdrh.histogram import HdrHistogram  # type: ignore[import-untyped]

# Range: 1 microsecond to 60 seconds (in microseconds)
_LOWEST_TRACKABLE_US = 1
_HIGHEST_TRACKABLE_US = 60_000_000
_SIGNIFICANT_DIGITS = 3


class LatencyHistogram:
    """Latency distribution in milliseconds.

    All public methods accept and return milliseconds. Recorded values
    are clamped to the trackable range.
    """

    def __init__(self) -> None:
        self._histogram: HdrHistogram = HdrHistogram(  # type: ignore[no-any-unimported]
            _LOWEST_TRACKABLE_US, _HIGHEST_TRACKABLE_US, _SIGNIFICANT_DIGITS
        )

    def __len__(self) -> int:
        return int(self._histogram.total_count)

    def record_ms(self, latency_ms: float) -> None:
        """Record one latency sample in milliseconds."""
        value_us = int(latency_ms * 1000)
        value_us = max(_LOWEST_TRACKABLE_US, min(value_us, _HIGHEST_TRACKABLE_US))
        self._histogram.record_value(value_us)

    def percentile(self, percentile: float) -> float:
        """Return the latency at ``percentile`` (0-100), or 0.0 if empty."""
        if not len(self):
            return 0.0
        return float(self._histogram.get_value_at_percentile(percentile)) / 1000.0

    def mean(self) -> float:
        if not len(self):
            return 0.0
        return float(self._histogram.get_mean_value()) / 1000.0

    def max(self) -> float:
        if not len(self):
            return 0.0
        return float(self._histogram.get_max_value()) / 1000.0

    def merge(self, other: LatencyHistogram) -> None:
        """Add every sample of ``other`` into this histogram."""
        if len(other):
            self._histogram.add(other._histogram)
