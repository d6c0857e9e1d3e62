"""Grid snapping, room clamping, footprints and floor rest."""

import math

import pytest

from models import Dimensions, Point3D, Room, SizeOverride, WarningCode
from services.catalog import ModelMeta
from solvers.bounds import clamp_axis, clamp_to_room, footprint_within_room
from solvers.floor import resolve_root_height
from solvers.footprint import footprint_half_extents, resolve_dimensions
from solvers.grid import snap, snap_point

ROOM = Room(width=4.0, depth=3.5, height=2.7)
DEFAULT = Dimensions(0.8, 0.8, 1.0)

VALUES = [0.0, 0.04, 0.05, 0.15, -0.15, -0.26, 1.23456, -7.77, 10.0, 123.456, -0.049, 0.3, -2.0]


# --- Grid snapping ---

@pytest.mark.parametrize("step", [0.1, 0.25, 0.5, 1.0, 0.05])
def test_snap_is_idempotent(step):
    for v in VALUES:
        once = snap(v, step)
        assert snap(once, step) == once


def test_snap_rounds_to_nearest_step():
    assert snap(0.26, 0.1) == pytest.approx(0.3)
    assert snap(-0.26, 0.1) == pytest.approx(-0.3)
    assert snap(1.7, 0.5) == 1.5
    assert snap(1.8, 0.5) == 2.0


def test_snap_keeps_aligned_values():
    assert snap(0.3, 0.1) == 0.3
    assert snap(-2.0, 0.1) == -2.0
    assert snap(10.0, 0.1) == 10.0


def test_snap_has_no_negative_zero():
    assert math.copysign(1.0, snap(-0.04, 0.1)) == 1.0


def test_snap_rejects_non_positive_step():
    with pytest.raises(ValueError):
        snap(1.0, 0.0)
    with pytest.raises(ValueError):
        snap(1.0, -0.1)


def test_snap_point_snaps_every_axis():
    p = snap_point(Point3D(0.12, 0.56, -0.34), 0.1)
    assert p.x == pytest.approx(0.1)
    assert p.y == pytest.approx(0.6)
    assert p.z == pytest.approx(-0.3)


# --- Clamping ---

def test_clamp_axis():
    assert clamp_axis(10.0, 0.5, 2.0) == (1.5, False)
    assert clamp_axis(-10.0, 0.5, 2.0) == (-1.5, False)
    assert clamp_axis(0.3, 0.5, 2.0) == (0.3, False)


def test_clamp_axis_centres_oversized_objects():
    assert clamp_axis(5.0, 3.0, 2.0) == (0.0, True)
    assert clamp_axis(-5.0, 3.0, 2.0) == (0.0, True)


def test_clamp_to_room_leaves_height_alone():
    p, oversized = clamp_to_room(Point3D(10.0, 0.7, -9.0), 0.5, 0.25, ROOM)
    assert p == Point3D(1.5, 0.7, -1.5)
    assert oversized == ()


def test_clamp_to_room_reports_oversized_axis():
    p, oversized = clamp_to_room(Point3D(1.0, 0.5, 1.0), 2.5, 0.5, ROOM)
    assert p.x == 0.0
    assert p.z == 1.0
    assert oversized == ("x",)


def test_footprint_within_room():
    assert footprint_within_room(Point3D(1.5, 0.0, 0.0), 0.5, 0.5, ROOM)
    assert not footprint_within_room(Point3D(1.6, 0.0, 0.0), 0.5, 0.5, ROOM)


# --- Footprints ---

def test_footprint_half_extents_follow_yaw():
    dims = Dimensions(2.0, 1.0, 1.0)
    assert footprint_half_extents(dims, 0) == (1.0, 0.5)
    assert footprint_half_extents(dims, 180) == (1.0, 0.5)
    hw, hd = footprint_half_extents(dims, 90)
    assert hw == pytest.approx(0.5)
    assert hd == pytest.approx(1.0)
    hw, hd = footprint_half_extents(dims, 45)
    assert hw == pytest.approx(math.sqrt(2) / 2 * 1.5)
    assert hd == pytest.approx(math.sqrt(2) / 2 * 1.5)


def test_resolve_dimensions_explicit_overrides_metadata():
    meta = ModelMeta(key="desk", width=1.2, depth=0.6, height=0.75)
    dims, warnings = resolve_dimensions("d1", SizeOverride(width=2.0), meta, "gltf:desk", DEFAULT)
    assert dims == Dimensions(2.0, 0.6, 0.75)
    assert warnings == []


def test_resolve_dimensions_missing_metadata_uses_default():
    dims, warnings = resolve_dimensions("d1", None, None, "gltf:nope", DEFAULT)
    assert dims == DEFAULT
    assert [w.code for w in warnings] == [WarningCode.MISSING_METADATA]


def test_resolve_dimensions_full_explicit_size_needs_no_metadata():
    dims, warnings = resolve_dimensions("d1", SizeOverride(1.0, 2.0, 3.0), None, "gltf:nope", DEFAULT)
    assert dims == Dimensions(1.0, 2.0, 3.0)
    assert warnings == []


def test_resolve_dimensions_without_model_is_silent():
    dims, warnings = resolve_dimensions("d1", None, None, None, DEFAULT)
    assert dims == DEFAULT
    assert warnings == []


# --- Floor rest ---

def test_root_rests_on_floor():
    assert resolve_root_height(None, 1.0) == 0.5


def test_explicit_height_above_floor_is_kept():
    assert resolve_root_height(1.2, 1.0) == 1.2


def test_explicit_height_below_rest_is_raised():
    assert resolve_root_height(0.0, 1.0) == 0.5


def test_floor_fallback_disabled():
    assert resolve_root_height(None, 1.0, enabled=False) == 0.0
    assert resolve_root_height(0.2, 1.0, enabled=False) == 0.2
