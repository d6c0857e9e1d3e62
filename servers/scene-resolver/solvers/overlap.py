"""Iterative separation of overlapping top-level footprints.

Only unparented objects take part; children follow their parent afterwards.
Each pass looks at every overlapping pair (via an rtree on the current
footprints), pushes both objects half the minimum translation apart along the
axis with the smaller penetration, and re-clamps them into the room. The pass
count is capped; whatever still overlaps afterwards is reported, never looped on.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Sequence, Tuple

from rtree import index as rtree_index
from shapely.geometry import box

from models import LayoutWarning, Point3D, Room, WarningCode
from solvers.bounds import clamp_to_room

logger = logging.getLogger("scene-resolver.overlap")

# Touching footprints (float noise after separation) do not count as overlap.
_EPS = 1e-9


@dataclass
class Placement:
    """Mutable working copy of one top-level object's footprint."""
    object_id: str
    position: Point3D
    half_width: float
    half_depth: float

    def bounds(self) -> Tuple[float, float, float, float]:
        return (
            self.position.x - self.half_width,
            self.position.z - self.half_depth,
            self.position.x + self.half_width,
            self.position.z + self.half_depth,
        )


def penetration(a: Placement, b: Placement) -> Tuple[float, float]:
    """Overlap depth of two footprints along x and z (0, 0 if disjoint)."""
    inter = box(*a.bounds()).intersection(box(*b.bounds()))
    if inter.is_empty:
        return 0.0, 0.0
    minx, minz, maxx, maxz = inter.bounds
    return maxx - minx, maxz - minz


def _overlaps(a: Placement, b: Placement, tolerance: float) -> bool:
    dx, dz = penetration(a, b)
    return dx > tolerance + _EPS and dz > tolerance + _EPS


def find_overlapping_pairs(placements: Sequence[Placement], tolerance: float = 0.0) -> List[Tuple[int, int]]:
    """Index pairs (i < j) whose footprints overlap beyond *tolerance*, sorted."""
    if len(placements) < 2:
        return []
    idx = rtree_index.Index()
    for i, p in enumerate(placements):
        idx.insert(i, p.bounds())

    pairs = []
    for i, p in enumerate(placements):
        for j in sorted(idx.intersection(p.bounds())):
            if j <= i:
                continue
            if _overlaps(p, placements[j], tolerance):
                pairs.append((i, j))
    return pairs


def _separate(a: Placement, b: Placement, room: Room) -> None:
    dx, dz = penetration(a, b)
    if dx <= dz:
        # a goes to the side it is already on; identical centres split a -, b +
        sign = -1.0 if a.position.x <= b.position.x else 1.0
        shift = Point3D(sign * dx / 2, 0.0, 0.0)
    else:
        sign = -1.0 if a.position.z <= b.position.z else 1.0
        shift = Point3D(0.0, 0.0, sign * dz / 2)

    a.position, _ = clamp_to_room(a.position + shift, a.half_width, a.half_depth, room)
    b.position, _ = clamp_to_room(b.position - shift, b.half_width, b.half_depth, room)


def mitigate_overlaps(
    placements: Sequence[Placement],
    room: Room,
    max_passes: int,
    tolerance: float = 0.0,
) -> Tuple[Dict[str, Point3D], List[LayoutWarning], int]:
    """Separate overlapping placements in at most *max_passes* passes.

    Returns (final positions by object id, UnresolvedOverlap warnings,
    passes actually run). *placements* are updated in place.
    """
    passes_run = 0
    for pass_no in range(max_passes):
        pairs = find_overlapping_pairs(placements, tolerance)
        if not pairs:
            break
        passes_run += 1
        moved = 0
        for i, j in pairs:
            # an earlier move in this pass may already have cleared the pair
            if _overlaps(placements[i], placements[j], tolerance):
                _separate(placements[i], placements[j], room)
                moved += 1
        logger.debug("Overlap pass %d: %d overlapping pairs, %d separated", pass_no + 1, len(pairs), moved)

    warnings = []
    for i, j in find_overlapping_pairs(placements, tolerance):
        a, b = placements[i], placements[j]
        dx, dz = penetration(a, b)
        warnings.append(LayoutWarning(
            code=WarningCode.UNRESOLVED_OVERLAP,
            object_ids=(a.object_id, b.object_id),
            message=f"Footprints still overlap by {dx:.3f} x {dz:.3f} m after {passes_run} passes",
        ))

    if warnings:
        logger.warning("%d overlapping pairs left after %d passes", len(warnings), passes_run)
    return {p.object_id: p.position for p in placements}, warnings, passes_run
