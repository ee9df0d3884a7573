"""HDR histogram: lossy, bounded-precision recording of value distributions."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterator

from ftdc.snapshot import Snapshot


@dataclass(frozen=True)
class Bracket:
    """One step of a cumulative distribution."""

    quantile: float
    count: int
    value_at: int


@dataclass(frozen=True)
class Bar:
    """One bar of a histogram, suitable for plotting."""

    from_value: int
    to_value: int
    count: int

    def __str__(self) -> str:
        return f"{self.from_value}, {self.to_value}, {self.count}\n"


class _Cursor:
    """Walks every bucket of a histogram in value order."""

    def __init__(self, hist: "Histogram") -> None:
        self._hist = hist
        self.bucket_idx = 0
        self.sub_bucket_idx = -1
        self.count_at_idx = 0
        self.count_to_idx = 0
        self.value_from_idx = 0
        self.highest_equivalent_value = 0

    def advance(self) -> bool:
        hist = self._hist
        if self.count_to_idx >= hist._total_count:
            return False

        self.sub_bucket_idx += 1
        if self.sub_bucket_idx >= hist._sub_bucket_count:
            self.sub_bucket_idx = hist._sub_bucket_half_count
            self.bucket_idx += 1

        if self.bucket_idx >= hist._bucket_count:
            return False

        self.count_at_idx = hist._counts[hist._counts_index(self.bucket_idx, self.sub_bucket_idx)]
        self.count_to_idx += self.count_at_idx
        self.value_from_idx = hist._value_from_index(self.bucket_idx, self.sub_bucket_idx)
        self.highest_equivalent_value = hist._highest_equivalent_value(self.value_from_idx)
        return True


class Histogram:
    """Records non-normally distributed values with bounded relative precision."""

    def __init__(self, min_value: int, max_value: int, sigfigs: int) -> None:
        if isinstance(sigfigs, bool) or not isinstance(sigfigs, int) or not 1 <= sigfigs <= 5:
            raise ValueError(f"sigfigs must be [1,5] (was {sigfigs})")

        largest_single_unit = 2 * 10.0 ** sigfigs
        sub_bucket_count_magnitude = int(math.ceil(math.log2(largest_single_unit)))
        half_magnitude = max(sub_bucket_count_magnitude, 1) - 1

        unit_magnitude = int(math.floor(math.log2(min_value))) if min_value > 0 else 0
        unit_magnitude = max(unit_magnitude, 0)

        sub_bucket_count = 2 ** (half_magnitude + 1)

        smallest_untrackable = sub_bucket_count << unit_magnitude
        buckets_needed = 1
        while smallest_untrackable < max_value:
            smallest_untrackable <<= 1
            buckets_needed += 1

        self._lowest_trackable_value = min_value
        self._highest_trackable_value = max_value
        self._unit_magnitude = unit_magnitude
        self._significant_figures = sigfigs
        self._sub_bucket_half_count_magnitude = half_magnitude
        self._sub_bucket_half_count = sub_bucket_count // 2
        self._sub_bucket_mask = (sub_bucket_count - 1) << unit_magnitude
        self._sub_bucket_count = sub_bucket_count
        self._bucket_count = buckets_needed
        self._counts_len = (buckets_needed + 1) * (sub_bucket_count // 2)
        self._total_count = 0
        self._counts = [0] * self._counts_len

    @property
    def significant_figures(self) -> int:
        """The significant figures the histogram was created with."""
        return self._significant_figures

    @property
    def lowest_trackable_value(self) -> int:
        """The lower bound on values added to the histogram."""
        return self._lowest_trackable_value

    @property
    def highest_trackable_value(self) -> int:
        """The upper bound on values added to the histogram."""
        return self._highest_trackable_value

    @property
    def total_count(self) -> int:
        """The number of values recorded."""
        return self._total_count

    def byte_size(self) -> int:
        """An estimate of the memory held by the histogram, in bytes."""
        return 6 * 8 + 5 * 4 + len(self._counts) * 8

    def merge(self, other: "Histogram") -> int:
        """Add the values of ``other``; return how many had to be dropped."""
        dropped = 0
        for step in self._steps(other):
            if step.count_at_idx == 0:
                continue
            try:
                self.record_values(step.value_from_idx, step.count_at_idx)
            except ValueError:
                dropped += step.count_at_idx
        return dropped

    def max(self) -> int:
        """The approximate largest recorded value."""
        largest = 0
        for step in self._steps(self):
            if step.count_at_idx != 0:
                largest = step.highest_equivalent_value
        return self._highest_equivalent_value(largest)

    def min(self) -> int:
        """The approximate smallest recorded value."""
        smallest = 0
        for step in self._steps(self):
            if step.count_at_idx != 0 and smallest == 0:
                smallest = step.highest_equivalent_value
                break
        return self._lowest_equivalent_value(smallest)

    def mean(self) -> float:
        """The approximate arithmetic mean of the recorded values."""
        if self._total_count == 0:
            return 0.0
        total = 0
        for step in self._steps(self):
            if step.count_at_idx != 0:
                total += step.count_at_idx * self._median_equivalent_value(step.value_from_idx)
        return total / self._total_count

    def std_dev(self) -> float:
        """The approximate standard deviation of the recorded values."""
        if self._total_count == 0:
            return 0.0
        mean = self.mean()
        dev_total = 0.0
        for step in self._steps(self):
            if step.count_at_idx != 0:
                dev = float(self._median_equivalent_value(step.value_from_idx)) - mean
                dev_total += (dev * dev) * float(step.count_at_idx)
        return math.sqrt(dev_total / self._total_count)

    def reset(self) -> None:
        """Forget every recorded value."""
        self._total_count = 0
        self._counts = [0] * len(self._counts)

    def record_value(self, value: int) -> None:
        """Record ``value``; raise ``ValueError`` when it is out of range."""
        self.record_values(value, 1)

    def record_corrected_value(self, value: int, expected_interval: int) -> None:
        """Record ``value`` and back-fill values missed during a stall."""
        self.record_value(value)
        if expected_interval <= 0 or value <= expected_interval:
            return
        missing = value - expected_interval
        while missing >= expected_interval:
            self.record_value(missing)
            missing -= expected_interval

    def record_values(self, value: int, n: int) -> None:
        """Record ``n`` occurrences of ``value``; raise ``ValueError`` if out of range."""
        if value < 0:
            raise ValueError(f"value {value} is negative and cannot be recorded")
        idx = self._counts_index_for(value)
        if idx < 0 or idx >= self._counts_len:
            raise ValueError(f"value {value} is too large to be recorded")
        self._counts[idx] += n
        self._total_count += n

    def value_at_quantile(self, q: float) -> int:
        """The recorded value at quantile ``q`` (0..100)."""
        q = min(q, 100)
        count_at_percentile = int((q / 100) * float(self._total_count) + 0.5)
        total = 0
        for step in self._steps(self):
            total += step.count_at_idx
            if total >= count_at_percentile:
                return self._highest_equivalent_value(step.value_from_idx)
        return 0

    def cumulative_distribution(self) -> list[Bracket]:
        """Ordered brackets of the cumulative distribution of recorded values."""
        return list(self._percentiles(1))

    def distribution(self) -> list[Bar]:
        """Ordered bars of the distribution of recorded values."""
        return [
            Bar(
                from_value=self._lowest_equivalent_value(step.value_from_idx),
                to_value=step.highest_equivalent_value,
                count=step.count_at_idx,
            )
            for step in self._steps(self)
        ]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Histogram):
            return NotImplemented
        return (
            self._lowest_trackable_value == other._lowest_trackable_value
            and self._highest_trackable_value == other._highest_trackable_value
            and self._unit_magnitude == other._unit_magnitude
            and self._significant_figures == other._significant_figures
            and self._sub_bucket_half_count_magnitude == other._sub_bucket_half_count_magnitude
            and self._sub_bucket_half_count == other._sub_bucket_half_count
            and self._sub_bucket_mask == other._sub_bucket_mask
            and self._sub_bucket_count == other._sub_bucket_count
            and self._bucket_count == other._bucket_count
            and self._counts_len == other._counts_len
            and self._total_count == other._total_count
            and self._counts[: self._counts_len] == other._counts[: other._counts_len]
        )

    __hash__ = None  # type: ignore[assignment]

    def export(self) -> Snapshot:
        """A snapshot of the histogram's state."""
        return Snapshot(
            lowest_trackable_value=self._lowest_trackable_value,
            highest_trackable_value=self._highest_trackable_value,
            significant_figures=self._significant_figures,
            counts=list(self._counts),
        )

    def to_bson(self) -> bytes:
        """Encode the histogram as a BSON snapshot document."""
        return self.export().to_bson()

    def to_json(self) -> str:
        """Encode the histogram as a JSON snapshot object."""
        return self.export().to_json()

    @staticmethod
    def _steps(hist: "Histogram") -> Iterator[_Cursor]:
        cursor = _Cursor(hist)
        while cursor.advance():
            yield cursor

    def _percentiles(self, ticks_per_half_distance: int) -> Iterator[Bracket]:
        cursor = _Cursor(self)
        seen_last_value = False
        percentile_to_iterate_to = 0.0

        while True:
            if not cursor.count_to_idx < self._total_count:
                if seen_last_value:
                    return
                seen_last_value = True
                yield Bracket(100.0, cursor.count_to_idx, cursor.highest_equivalent_value)
                continue

            if cursor.sub_bucket_idx == -1 and not cursor.advance():
                return

            percentile = None
            done = False
            while not done:
                current = (100.0 * float(cursor.count_to_idx)) / float(self._total_count)
                if cursor.count_at_idx != 0 and percentile_to_iterate_to <= current:
                    percentile = percentile_to_iterate_to
                    remaining = 100.0 - percentile_to_iterate_to
                    if remaining > 0:
                        half_distance = math.trunc(
                            2 ** (math.trunc(math.log2(100.0 / remaining)) + 1)
                        )
                        percentile_to_iterate_to += 100.0 / (
                            float(ticks_per_half_distance) * half_distance
                        )
                    break
                done = not cursor.advance()

            if percentile is None:
                percentile = 0.0
            yield Bracket(percentile, cursor.count_to_idx, cursor.highest_equivalent_value)

    def _size_of_equivalent_value_range(self, value: int) -> int:
        bucket_idx = self._bucket_index(value)
        sub_bucket_idx = self._sub_bucket_index(value, bucket_idx)
        adjusted = bucket_idx + 1 if sub_bucket_idx >= self._sub_bucket_count else bucket_idx
        return 1 << (self._unit_magnitude + adjusted)

    def _value_from_index(self, bucket_idx: int, sub_bucket_idx: int) -> int:
        return sub_bucket_idx << (bucket_idx + self._unit_magnitude)

    def _lowest_equivalent_value(self, value: int) -> int:
        bucket_idx = self._bucket_index(value)
        return self._value_from_index(bucket_idx, self._sub_bucket_index(value, bucket_idx))

    def _next_non_equivalent_value(self, value: int) -> int:
        return self._lowest_equivalent_value(value) + self._size_of_equivalent_value_range(value)

    def _highest_equivalent_value(self, value: int) -> int:
        return self._next_non_equivalent_value(value) - 1

    def _median_equivalent_value(self, value: int) -> int:
        return self._lowest_equivalent_value(value) + (
            self._size_of_equivalent_value_range(value) >> 1
        )

    def _counts_index(self, bucket_idx: int, sub_bucket_idx: int) -> int:
        base = (bucket_idx + 1) << self._sub_bucket_half_count_magnitude
        return base + sub_bucket_idx - self._sub_bucket_half_count

    def _bucket_index(self, value: int) -> int:
        pow2_ceiling = (value | self._sub_bucket_mask).bit_length()
        return pow2_ceiling - self._unit_magnitude - (self._sub_bucket_half_count_magnitude + 1)

    def _sub_bucket_index(self, value: int, bucket_idx: int) -> int:
        return value >> (bucket_idx + self._unit_magnitude)

    def _counts_index_for(self, value: int) -> int:
        bucket_idx = self._bucket_index(value)
        return self._counts_index(bucket_idx, self._sub_bucket_index(value, bucket_idx))


def import_snapshot(snapshot: Snapshot) -> Histogram:
    """Build a histogram holding the state captured in ``snapshot``."""
    hist = Histogram(
        snapshot.lowest_trackable_value,
        snapshot.highest_trackable_value,
        int(snapshot.significant_figures),
    )
    counts = list(snapshot.counts)
    if len(counts) < hist._counts_len:
        raise ValueError(
            f"snapshot holds {len(counts)} counts, expected at least {hist._counts_len}"
        )
    hist._counts = counts
    hist._total_count = sum(count for count in counts[: hist._counts_len] if count > 0)
    return hist


def from_bson(data: bytes) -> Histogram:
    """Decode a histogram from a BSON snapshot document."""
    return import_snapshot(Snapshot.from_bson(data))


def from_json(data: str | bytes) -> Histogram:
    """Decode a histogram from a JSON snapshot object."""
    return import_snapshot(Snapshot.from_json(data))