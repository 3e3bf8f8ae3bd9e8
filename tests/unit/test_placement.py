"""Unit tests for placement ordering."""

from __future__ import annotations

import pytest

from mkvbatch.models.external import ExternalFile, ExternalKind, Origin
from mkvbatch.services.placement import END_RANK, order_by_placement, placement_rank


def _make_ext(name: str, mux_after: str, origin: Origin = Origin.BULK) -> ExternalFile:
    return ExternalFile(
        id=name,
        path=f"/subs/{name}.srt",
        kind=ExternalKind.SUBTITLE,
        origin=origin,
        mux_after=mux_after,
    )


class TestPlacementRank:
    @pytest.mark.parametrize(
        ("mux_after", "expected"),
        [
            ("video", 0),
            ("audio", 0),
            ("", 0),
            (None, 0),
            ("track-1", 1),
            ("track-7", 7),
            ("track-x", 1),
            ("track-", 0),
            ("track-1.5", 1.5),
            ("track-inf", 1),
            ("end", END_RANK),
            ("somewhere", 0),
        ],
    )
    def test_rank(self, mux_after: str | None, expected: float) -> None:
        assert placement_rank(mux_after) == expected


class TestOrderByPlacement:
    def test_end_goes_last(self) -> None:
        files = [_make_ext("a", "end"), _make_ext("b", "video"), _make_ext("c", "track-2")]
        assert [f.id for f in order_by_placement(files)] == ["b", "c", "a"]

    def test_bulk_before_per_file_at_same_rank(self) -> None:
        files = [
            _make_ext("p", "video", Origin.PER_FILE),
            _make_ext("b", "video", Origin.BULK),
        ]
        assert [f.id for f in order_by_placement(files)] == ["b", "p"]

    def test_rank_beats_origin(self) -> None:
        files = [
            _make_ext("b", "end", Origin.BULK),
            _make_ext("p", "video", Origin.PER_FILE),
        ]
        assert [f.id for f in order_by_placement(files)] == ["p", "b"]

    def test_stable_for_ties(self) -> None:
        files = [_make_ext(str(i), "track-3") for i in range(5)]
        assert [f.id for f in order_by_placement(files)] == ["0", "1", "2", "3", "4"]

    def test_does_not_mutate_input(self) -> None:
        files = [_make_ext("a", "end"), _make_ext("b", "video")]
        order_by_placement(files)
        assert [f.id for f in files] == ["a", "b"]

    def test_fractional_track_sorts_between_neighbours(self) -> None:
        files = [
            _make_ext("c", "track-2"),
            _make_ext("b", "track-1.5"),
            _make_ext("a", "track-1"),
        ]
        assert [f.id for f in order_by_placement(files)] == ["a", "b", "c"]
