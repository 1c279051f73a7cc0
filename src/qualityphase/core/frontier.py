"""
Frontier of the quality-guided unwrapper.

The frontier holds the pixels that border the unwrapped region but are not
unwrapped yet, ordered by their quality. Each entry remembers the committed
neighbor it will be unwrapped against.
"""

from __future__ import annotations

import heapq
from dataclasses import dataclass

import numpy as np

Coordinate = tuple[int, int]


@dataclass
class FrontierEntry:
    """A pixel waiting on the frontier."""

    # (row, col) of the pixel
    coordinate: Coordinate
    # Quality of the pixel itself; this is its priority and never changes
    quality: float
    # Committed neighbor with the best quality seen so far
    source: Coordinate
    in_frontier: bool = True


class Frontier:
    """
    Max-priority queue of frontier pixels keyed by quality.

    Entries are ordered by the composite key ``(-quality, row, col)`` on a
    binary heap, so among equal qualities the smaller coordinate is
    extracted first and two distinct pixels never compare equal. Since an
    entry's priority is the quality of the pixel itself, updating an entry
    only replaces its source and never moves it in the heap; the
    coordinate index makes that update O(1).
    """

    def __init__(self, quality: np.ndarray, committed: np.ndarray):
        """
        Initialize an empty frontier.

        Parameters
        ----------
        quality : np.ndarray
            Quality map of shape (H, W). Read only.
        committed : np.ndarray
            Boolean mask of shape (H, W) of already unwrapped pixels, owned
            and updated by the unwrapper. Read only here.
        """
        self._quality = quality
        self._committed = committed
        self._heap: list[tuple[float, int, int]] = []
        self._entries: dict[Coordinate, FrontierEntry] = {}

    def insert_or_update(self, coordinate: Coordinate, source: Coordinate) -> bool:
        """
        Offer a pixel to the frontier, reachable from a committed source.

        If the pixel is new it is inserted with that source. If it is
        already waiting, its source is replaced only when the new source
        has a strictly higher quality than the current one.

        Parameters
        ----------
        coordinate : tuple of int
            (row, col) of the pixel.
        source : tuple of int
            (row, col) of the committed neighbor.

        Returns
        -------
        bool
            True if the pixel was inserted or its source replaced.
        """
        if self._committed[coordinate]:
            raise RuntimeError(f"Pixel {coordinate} is already unwrapped")

        entry = self._entries.get(coordinate)
        if entry is None:
            quality = float(self._quality[coordinate])
            entry = FrontierEntry(coordinate=coordinate, quality=quality, source=source)
            self._entries[coordinate] = entry
            heapq.heappush(self._heap, (-quality, coordinate[0], coordinate[1]))
            return True

        if self._quality[source] > self._quality[entry.source]:
            entry.source = source
            return True
        return False

    def extract_best(self) -> FrontierEntry:
        """
        Remove and return the entry with the highest quality.

        Raises
        ------
        RuntimeError
            If the frontier is empty.
        """
        if not self._heap:
            raise RuntimeError("Frontier is empty")
        _, row, col = heapq.heappop(self._heap)
        entry = self._entries.pop((row, col))
        entry.in_frontier = False
        return entry

    def get(self, coordinate: Coordinate) -> FrontierEntry | None:
        """The waiting entry for a pixel, or None."""
        return self._entries.get(coordinate)

    def __contains__(self, coordinate: Coordinate) -> bool:
        return coordinate in self._entries

    def __len__(self) -> int:
        return len(self._heap)

    def __bool__(self) -> bool:
        return bool(self._heap)

    def __repr__(self) -> str:
        return f"Frontier(size={len(self)})"
