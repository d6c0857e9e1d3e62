"""Bounded separation of overlapping top-level footprints."""

import pytest

from models import Point3D, Room, WarningCode
from solvers.bounds import footprint_within_room
from solvers.overlap import Placement, find_overlapping_pairs, mitigate_overlaps, penetration

ROOM = Room(width=4.0, depth=3.5, height=2.7)


def place(object_id, x=0.0, z=0.0, half=0.5):
    return Placement(object_id, Point3D(x, half, z), half, half)


def test_penetration_of_disjoint_and_touching_boxes():
    assert penetration(place("a", x=-2.0), place("b", x=2.0)) == (0.0, 0.0)
    dx, dz = penetration(place("a", x=-0.5), place("b", x=0.5))
    assert dx == pytest.approx(0.0)


def test_touching_footprints_do_not_overlap():
    assert find_overlapping_pairs([place("a", x=-0.5), place("b", x=0.5)]) == []


def test_tolerance_ignores_shallow_overlap():
    pair = [place("a", x=-0.475), place("b", x=0.475)]
    assert find_overlapping_pairs(pair) == [(0, 1)]
    assert find_overlapping_pairs(pair, tolerance=0.1) == []


def test_identical_positions_are_split_along_x():
    a, b = place("a"), place("b")
    final, warnings, passes = mitigate_overlaps([a, b], ROOM, max_passes=4)
    assert final["a"].x == pytest.approx(-0.5)
    assert final["b"].x == pytest.approx(0.5)
    assert final["a"].z == final["b"].z == 0.0
    assert warnings == []
    assert passes == 1


def test_separation_uses_the_smaller_overlap_axis():
    a, b = place("a"), place("b", x=0.8, z=0.2)
    final, warnings, _ = mitigate_overlaps([a, b], ROOM, max_passes=4)
    assert final["a"].x == pytest.approx(-0.1)
    assert final["b"].x == pytest.approx(0.9)
    assert final["a"].z == 0.0
    assert final["b"].z == pytest.approx(0.2)
    assert warnings == []


def test_wall_blocked_pair_is_flagged_after_pass_cap():
    # b is pinned against the +x wall, so each pass only halves the overlap
    a, b = place("a", x=1.5), place("b", x=1.5)
    final, warnings, passes = mitigate_overlaps([a, b], ROOM, max_passes=4)
    assert passes == 4
    assert final["b"].x == pytest.approx(1.5)
    assert final["a"].x == pytest.approx(0.5625)
    assert len(warnings) == 1
    assert warnings[0].code == WarningCode.UNRESOLVED_OVERLAP
    assert warnings[0].object_ids == ("a", "b")


def test_zero_passes_only_reports():
    a, b = place("a"), place("b")
    final, warnings, passes = mitigate_overlaps([a, b], ROOM, max_passes=0)
    assert passes == 0
    assert final["a"] == final["b"] == Point3D(0.0, 0.5, 0.0)
    assert [w.code for w in warnings] == [WarningCode.UNRESOLVED_OVERLAP]


def test_overcrowded_room_terminates_and_stays_contained():
    small = Room(width=2.0, depth=2.0, height=2.7)
    placements = [place(f"o{i}") for i in range(6)]
    final, warnings, passes = mitigate_overlaps(placements, small, max_passes=4)
    assert passes <= 4
    assert warnings
    assert all(w.code == WarningCode.UNRESOLVED_OVERLAP for w in warnings)
    for p in placements:
        assert footprint_within_room(final[p.object_id], p.half_width, p.half_depth, small)
