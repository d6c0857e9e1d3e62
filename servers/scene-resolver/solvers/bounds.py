"""Horizontal containment of object footprints inside the room envelope."""

import logging
from typing import Tuple

from models import Point3D, Room

logger = logging.getLogger("scene-resolver.bounds")


def clamp_axis(value: float, half_extent: float, limit: float) -> Tuple[float, bool]:
    """Clamp a centre coordinate so value +/- half_extent stays within +/- limit.

    Returns (clamped, oversized). An object wider than the room on this axis
    is centred (0.0) instead of inverting the range.
    """
    if half_extent > limit:
        return 0.0, True
    low, high = -limit + half_extent, limit - half_extent
    return max(low, min(high, value)), False


def clamp_to_room(
    position: Point3D, half_width: float, half_depth: float, room: Room
) -> Tuple[Point3D, Tuple[str, ...]]:
    """Clamp x and z of *position* into the room; y is left untouched.

    Returns the clamped position and the axes ("x", "z") on which the
    footprint is larger than the room.
    """
    x, x_oversized = clamp_axis(position.x, half_width, room.half_width)
    z, z_oversized = clamp_axis(position.z, half_depth, room.half_depth)
    oversized = tuple(axis for axis, flag in (("x", x_oversized), ("z", z_oversized)) if flag)
    if oversized:
        logger.debug("Footprint %.2fx%.2f exceeds room on %s", half_width * 2, half_depth * 2, oversized)
    return Point3D(x, position.y, z), oversized


def footprint_within_room(position: Point3D, half_width: float, half_depth: float, room: Room, tol: float = 1e-9) -> bool:
    return (
        position.x - half_width >= -room.half_width - tol
        and position.x + half_width <= room.half_width + tol
        and position.z - half_depth >= -room.half_depth - tol
        and position.z + half_depth <= room.half_depth + tol
    )
