"""Windowed statistics built from a ring of HDR histograms."""

from __future__ import annotations

from ftdc.histogram import Histogram


class WindowedHistogram:
    """A ring of histograms that together give statistics over a sliding window.

    Values are recorded into :attr:`current`; :meth:`rotate` moves the window
    forward by resetting the oldest histogram and making it current.
    """

    def __init__(self, n: int, min_value: int, max_value: int, sigfigs: int) -> None:
        if isinstance(n, bool) or not isinstance(n, int) or n < 1:
            raise ValueError(f"window size must be a positive integer (was {n!r})")
        self._index = -1
        self._histograms = [Histogram(min_value, max_value, sigfigs) for _ in range(n)]
        self._merged = Histogram(min_value, max_value, sigfigs)
        self.current: Histogram = self._histograms[0]
        self.rotate()

    def merge(self) -> Histogram:
        """Return a histogram holding the values of every section of the window.

        The same histogram object is reused and refilled on every call.
        """
        self._merged.reset()
        for hist in self._histograms:
            self._merged.merge(hist)
        return self._merged

    def rotate(self) -> None:
        """Reset the oldest histogram and make it the current one."""
        self._index += 1
        self.current = self._histograms[self._index % len(self._histograms)]
        self.current.reset()