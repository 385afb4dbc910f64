"""Rating strip geometry."""

from __future__ import annotations

import pytest

from album_form import SongEntry
from rating_svg import (
    MARGIN_L,
    MARGIN_T,
    PLACEHOLDER,
    PLOT_H,
    PLOT_W,
    build_geometry,
    rating_strip,
    render_strip_children,
    strip_values,
    y_to_px,
)

GUIDE_ELEMS = 6  # three guide lines, each with a label


def test_strip_values_marks_unrated_songs() -> None:
    songs = [{"title": "a", "rating": 8}, {"title": "b", "rating": ""}, SongEntry("c", "6.5")]
    assert strip_values(songs) == [(8.0, True), (PLACEHOLDER, False), (6.5, True)]


def test_geometry_spans_plot() -> None:
    lefts, rights = build_geometry(4)
    assert lefts[0] == pytest.approx(MARGIN_L)
    assert rights[-1] == pytest.approx(MARGIN_L + PLOT_W)
    assert list(rights[:-1]) == pytest.approx(list(lefts[1:]))


def test_out_of_range_values_are_clipped_only_when_drawn() -> None:
    assert y_to_px(15) == pytest.approx(MARGIN_T)
    assert y_to_px(-3) == pytest.approx(MARGIN_T + PLOT_H)
    assert strip_values([{"rating": 15}]) == [(15.0, True)]


def test_one_bar_per_song() -> None:
    songs = [{"rating": r} for r in (1, 2, "x")]
    assert len(render_strip_children(songs)) == GUIDE_ELEMS + 3
    assert len(render_strip_children([])) == GUIDE_ELEMS


def test_rating_strip_is_svg() -> None:
    svg = rating_strip([{"rating": 5}], strip_id="strip-1")
    assert svg.id == "strip-1"
    assert len(svg.children) == GUIDE_ELEMS + 1
