"""Validation of generator payloads and resolved scenes.

Both checks return plain dicts ({"valid": bool, ...}) so tool callers can
decide whether to accept a layout or ask the generator for another one.
"""

from typing import Any, Dict, List

from models import ResolvedScene
from solvers.bounds import footprint_within_room
from solvers.footprint import footprint_half_extents


def check_layout_structure(data: Dict[str, Any]) -> Dict[str, Any]:
    """Validate that a generated layout payload has the fields the parser needs."""
    missing = []
    invalid = []

    if not isinstance(data, dict):
        return {"valid": False, "missing_fields": missing, "invalid_fields": ["<root> (must be an object)"],
                "error": "layout is not a JSON object"}

    if "objects" not in data:
        missing.append("objects")
        return {"valid": False, "missing_fields": missing, "invalid_fields": invalid, "error": "'objects' missing"}
    if not isinstance(data["objects"], list):
        invalid.append("objects (must be a list)")
        return {"valid": False, "missing_fields": missing, "invalid_fields": invalid, "error": "'objects' invalid"}

    room = data.get("room")
    if room is not None:
        if not isinstance(room, dict):
            invalid.append("room (must be an object)")
        else:
            for rf in ("width_m", "depth_m", "height_m"):
                if rf not in room:
                    missing.append(f"room.{rf}")

    for i, obj in enumerate(data["objects"]):
        prefix = f"objects[{i}]"
        if not isinstance(obj, dict):
            invalid.append(f"{prefix} (must be an object)")
            continue
        if "id" not in obj:
            missing.append(f"{prefix}.id")
        for vf in ("position_m", "rotation_deg", "relative_position_m", "size_m"):
            if vf in obj and obj[vf] is not None and not isinstance(obj[vf], dict):
                invalid.append(f"{prefix}.{vf} (must be an object)")
        if "parent" in obj and obj["parent"] is not None and not isinstance(obj["parent"], str):
            invalid.append(f"{prefix}.parent (must be a string)")

    return {"valid": not missing and not invalid, "missing_fields": missing, "invalid_fields": invalid, "error": None}


def validate_resolved_scene(scene: ResolvedScene, min_overlap_area: float = 0.0) -> Dict[str, Any]:
    """Re-check containment and top-level footprint overlaps of a resolved scene.

    Returns:
        {"valid": bool, "issues": [...], "overlaps": [...], "out_of_bounds": [...]}
    """
    issues: List[str] = []
    overlaps = []
    out_of_bounds = []

    footprints = []
    for obj in scene.objects:
        hw, hd = footprint_half_extents(obj.dimensions, obj.rotation.y)
        if not footprint_within_room(obj.position, hw, hd, scene.room):
            out_of_bounds.append(obj.object_id)
        if obj.parent is None:
            p = obj.position
            footprints.append((obj.object_id, p.x - hw, p.z - hd, p.x + hw, p.z + hd))

    for i, (id1, x1_min, z1_min, x1_max, z1_max) in enumerate(footprints):
        for id2, x2_min, z2_min, x2_max, z2_max in footprints[i + 1:]:
            if x1_max <= x2_min or x2_max <= x1_min or z1_max <= z2_min or z2_max <= z1_min:
                continue
            area = max(0, min(x1_max, x2_max) - max(x1_min, x2_min)) * max(
                0, min(z1_max, z2_max) - max(z1_min, z2_min)
            )
            if area > max(min_overlap_area, 1e-9):
                overlaps.append({"object1": id1, "object2": id2, "overlap_area": area})

    if overlaps:
        issues.append("Object footprint overlaps detected")
    if out_of_bounds:
        issues.append(f"Objects outside the room: {out_of_bounds}")
    if scene.errors:
        issues.append(f"Objects failed resolution: {[e.object_ids for e in scene.errors]}")

    return {"valid": len(issues) == 0, "issues": issues, "overlaps": overlaps, "out_of_bounds": out_of_bounds}
