"""Tests for the frontier priority queue."""

import numpy as np
import pytest

from qualityphase.core.frontier import Frontier, FrontierEntry


@pytest.fixture
def quality():
    """A 3x3 quality map with a unique value per pixel."""
    return np.array([
        [1.0, 5.0, 2.0],
        [4.0, 0.0, 3.0],
        [9.0, 7.0, 6.0],
    ])


@pytest.fixture
def committed():
    """Committed mask with only the center pixel unwrapped."""
    mask = np.zeros((3, 3), dtype=bool)
    mask[1, 1] = True
    return mask


class TestInsertOrUpdate:
    """Tests for Frontier.insert_or_update()."""

    def test_insert_new(self, quality, committed):
        """A new pixel is inserted with its source and own quality."""
        frontier = Frontier(quality, committed)

        assert frontier.insert_or_update((0, 1), (1, 1))
        entry = frontier.get((0, 1))

        assert isinstance(entry, FrontierEntry)
        assert entry.source == (1, 1)
        assert entry.quality == 5.0
        assert entry.in_frontier
        assert (0, 1) in frontier
        assert len(frontier) == 1

    def test_update_with_better_source(self, quality, committed):
        """The source is replaced by a strictly better committed neighbor."""
        committed[1, 0] = True  # quality 4
        frontier = Frontier(quality, committed)
        frontier.insert_or_update((0, 0), (1, 1))  # source quality 0

        assert frontier.insert_or_update((0, 0), (1, 0))
        assert frontier.get((0, 0)).source == (1, 0)
        assert len(frontier) == 1

    def test_keep_source_on_equal_quality(self, committed):
        """An equally good source does not replace the current one."""
        quality = np.ones((3, 3))
        committed[0, 0] = True
        frontier = Frontier(quality, committed)
        frontier.insert_or_update((0, 1), (1, 1))

        assert not frontier.insert_or_update((0, 1), (0, 0))
        assert frontier.get((0, 1)).source == (1, 1)

    def test_keep_source_on_worse_quality(self, quality, committed):
        """A worse source does not replace the current one."""
        committed[2, 0] = True  # quality 9
        frontier = Frontier(quality, committed)
        frontier.insert_or_update((1, 0), (2, 0))

        assert not frontier.insert_or_update((1, 0), (1, 1))
        assert frontier.get((1, 0)).source == (2, 0)

    def test_priority_never_changes(self, quality, committed):
        """Updating the source keeps the entry's own quality."""
        committed[2, 0] = True
        frontier = Frontier(quality, committed)
        frontier.insert_or_update((1, 0), (1, 1))
        frontier.insert_or_update((1, 0), (2, 0))

        assert frontier.get((1, 0)).quality == 4.0

    def test_committed_pixel_refused(self, quality, committed):
        """Committed pixels can never join the frontier."""
        frontier = Frontier(quality, committed)
        with pytest.raises(RuntimeError, match="already unwrapped"):
            frontier.insert_or_update((1, 1), (1, 1))


class TestExtractBest:
    """Tests for Frontier.extract_best()."""

    def test_highest_quality_first(self, quality, committed):
        """Entries come out in order of decreasing quality."""
        frontier = Frontier(quality, committed)
        for coord in [(0, 1), (1, 0), (1, 2), (2, 1)]:
            frontier.insert_or_update(coord, (1, 1))

        order = [frontier.extract_best().coordinate for _ in range(4)]

        assert order == [(2, 1), (0, 1), (1, 0), (1, 2)]
        assert len(frontier) == 0
        assert not frontier

    def test_tie_break_by_coordinate(self, committed):
        """Equal qualities come out in (row, col) order."""
        quality = np.zeros((3, 3))
        frontier = Frontier(quality, committed)
        for coord in [(2, 1), (1, 2), (0, 1), (1, 0)]:
            frontier.insert_or_update(coord, (1, 1))

        order = [frontier.extract_best().coordinate for _ in range(4)]

        assert order == [(0, 1), (1, 0), (1, 2), (2, 1)]

    def test_equal_quality_entries_not_merged(self, committed):
        """Distinct pixels with equal quality stay distinct entries."""
        quality = np.full((3, 3), 2.5)
        frontier = Frontier(quality, committed)
        frontier.insert_or_update((0, 1), (1, 1))
        frontier.insert_or_update((2, 1), (1, 1))

        assert len(frontier) == 2
        first = frontier.extract_best()
        second = frontier.extract_best()
        assert {first.coordinate, second.coordinate} == {(0, 1), (2, 1)}

    def test_extracted_entry_leaves_frontier(self, quality, committed):
        """An extracted entry is marked and no longer a member."""
        frontier = Frontier(quality, committed)
        frontier.insert_or_update((0, 1), (1, 1))

        entry = frontier.extract_best()

        assert not entry.in_frontier
        assert (0, 1) not in frontier
        assert frontier.get((0, 1)) is None

    def test_extract_keeps_updated_source(self, quality, committed):
        """The extracted entry carries its latest source."""
        committed[2, 2] = True  # quality 6
        frontier = Frontier(quality, committed)
        frontier.insert_or_update((1, 2), (1, 1))
        frontier.insert_or_update((1, 2), (2, 2))

        assert frontier.extract_best().source == (2, 2)

    def test_empty_raises(self, quality, committed):
        """Extracting from an empty frontier is an invariant violation."""
        frontier = Frontier(quality, committed)
        with pytest.raises(RuntimeError, match="Frontier is empty"):
            frontier.extract_best()

    def test_repr(self, quality, committed):
        """The repr shows the frontier size."""
        frontier = Frontier(quality, committed)
        frontier.insert_or_update((0, 1), (1, 1))
        assert repr(frontier) == "Frontier(size=1)"
