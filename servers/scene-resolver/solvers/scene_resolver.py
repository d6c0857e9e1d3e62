"""Layout -> ResolvedScene pipeline.

Stages: validating -> graph building -> topological resolving ->
snapping/clamping -> overlap mitigating -> resolved. Only an invalid room
aborts (InvalidRoomError); everything else is recorded as a warning, and
cycle members as errors, on the returned scene.

resolve_scene is pure: it reads the layout snapshot, the catalog and the
config, allocates its own graph, and returns a new ResolvedScene.
"""

import logging
from dataclasses import replace
from typing import Dict, List, Optional, Sequence, Tuple

from errors import InvalidRoomError
from models import (
    Dimensions, Layout, LayoutWarning, PartialVec3, Point3D, ResolutionState,
    ResolvedObject, ResolvedScene, ResolvedTransform, Room, SizeOverride,
    SpatialObject, WarningCode, is_finite_number,
)
from services.catalog import EMPTY_CATALOG, ModelCatalog
from settings import ResolverConfig
from solvers.anchor_graph import (
    build_reference_graph, find_cycles, resolution_order, resolve_transforms,
)
from solvers.bounds import clamp_to_room
from solvers.footprint import footprint_half_extents, resolve_dimensions
from solvers.floor import resolve_root_height
from solvers.grid import snap, snap_point
from solvers.overlap import Placement, mitigate_overlaps

logger = logging.getLogger("scene-resolver.resolver")


def validate_room(room: Room) -> None:
    bad = [
        name for name in ("width", "depth", "height")
        if not is_finite_number(getattr(room, name)) or getattr(room, name) <= 0
    ]
    if bad:
        raise InvalidRoomError(
            f"Room dimensions must be positive finite numbers; invalid: {', '.join(bad)} "
            f"(width={room.width!r}, depth={room.depth!r}, height={room.height!r})"
        )


def _clean_vec(object_id: str, name: str, vec: Optional[PartialVec3], warnings: List[LayoutWarning]) -> Optional[PartialVec3]:
    if vec is None:
        return None
    cleaned = {}
    for axis in ("x", "y", "z"):
        value = getattr(vec, axis)
        if value is not None and not is_finite_number(value):
            warnings.append(LayoutWarning(
                code=WarningCode.MALFORMED_FIELD,
                object_ids=(object_id,),
                message=f"{name}.{axis}={value!r} is not a finite number; treated as absent",
            ))
            value = None
        cleaned[axis] = value
    return PartialVec3(**cleaned)


def _clean_size(object_id: str, size: Optional[SizeOverride], warnings: List[LayoutWarning]) -> Optional[SizeOverride]:
    if size is None:
        return None
    cleaned = {}
    for name in ("width", "depth", "height"):
        value = getattr(size, name)
        if value is not None and not (is_finite_number(value) and value > 0):
            warnings.append(LayoutWarning(
                code=WarningCode.MALFORMED_FIELD,
                object_ids=(object_id,),
                message=f"size.{name}={value!r} is not a positive number; treated as absent",
            ))
            value = None
        cleaned[name] = value
    return SizeOverride(**cleaned)


def sanitize_objects(objects: Sequence[SpatialObject]) -> Tuple[List[SpatialObject], List[LayoutWarning]]:
    """Drop duplicate ids (first wins) and blank out malformed numbers."""
    warnings: List[LayoutWarning] = []
    seen = set()
    clean: List[SpatialObject] = []
    for obj in objects:
        if obj.id in seen:
            logger.warning("Duplicate object id %s rejected", obj.id)
            warnings.append(LayoutWarning(
                code=WarningCode.DUPLICATE_IDENTIFIER,
                object_ids=(obj.id,),
                message=f"Object id '{obj.id}' is used more than once; later occurrence dropped",
            ))
            continue
        seen.add(obj.id)
        clean.append(replace(
            obj,
            position=_clean_vec(obj.id, "position", obj.position, warnings),
            rotation=_clean_vec(obj.id, "rotation", obj.rotation, warnings),
            offset=_clean_vec(obj.id, "offset", obj.offset, warnings),
            size=_clean_size(obj.id, obj.size, warnings),
        ))
    return clean, warnings


def _rest_height(obj: SpatialObject, dimensions: Dimensions, config: ResolverConfig) -> float:
    """Floor correction for a root, applied after the grid so it is not undone."""
    explicit = obj.position.y if obj.position is not None else None
    if explicit is not None:
        explicit = snap(explicit, config.grid_step)
    return resolve_root_height(explicit, dimensions.height)


class _StateTracker:
    def __init__(self):
        self.state = ResolutionState.VALIDATING

    def advance(self, state: ResolutionState) -> None:
        logger.debug("Resolution state %s -> %s", self.state.value, state.value)
        self.state = state


def resolve_scene(
    layout: Layout,
    catalog: Optional[ModelCatalog] = None,
    config: Optional[ResolverConfig] = None,
) -> ResolvedScene:
    """Resolve *layout* into absolute, snapped, contained placements."""
    catalog = catalog if catalog is not None else EMPTY_CATALOG
    config = config or ResolverConfig()
    tracker = _StateTracker()
    room = layout.room

    validate_room(room)
    objects, layout_warnings = sanitize_objects(layout.objects)
    per_object: Dict[str, List[LayoutWarning]] = {obj.id: [] for obj in objects}
    for warning in layout_warnings:
        if warning.code == WarningCode.MALFORMED_FIELD:
            per_object[warning.object_ids[0]].append(warning)

    tracker.advance(ResolutionState.GRAPH_BUILDING)
    ref = build_reference_graph(objects)
    cycles = find_cycles(ref.graph)
    cyclic = {node for cycle in cycles for node in cycle}
    errors = []
    for cycle in cycles:
        ids = tuple(ref.object_id(node) for node in cycle)
        logger.warning("Reference cycle: %s", " -> ".join(ids))
        errors.append(LayoutWarning(
            code=WarningCode.CYCLIC_REFERENCE,
            object_ids=ids,
            message=f"Parent references form a cycle: {' -> '.join(ids + ids[:1])}",
        ))

    tracker.advance(ResolutionState.TOPOLOGICAL_RESOLVING)
    order = resolution_order(ref, cyclic)
    dimensions: Dict[int, Dimensions] = {}
    for node in order:
        obj = objects[node]
        dimensions[node], dim_warnings = resolve_dimensions(
            obj.id, obj.size, catalog.lookup(obj.model), obj.model, config.default_footprint
        )
        layout_warnings.extend(dim_warnings)
        per_object[obj.id].extend(dim_warnings)

    resolved = resolve_transforms(ref, order, cyclic, dimensions, catalog, config)
    for node in order:
        layout_warnings.extend(resolved[node].warnings)
        per_object[objects[node].id].extend(resolved[node].warnings)

    # Snap and clamp parents first and carry their correction down to the
    # children, so a clamped parent does not leave its children behind.
    tracker.advance(ResolutionState.SNAPPING_CLAMPING)
    half_extents = {
        node: footprint_half_extents(dimensions[node], resolved[node].transform.rotation.y)
        for node in order
    }
    positions: Dict[int, Point3D] = {}
    corrections: Dict[int, Point3D] = {}
    for node in order:
        res = resolved[node]
        raw = res.transform.position
        if res.parent is not None:
            raw = raw + corrections[res.parent]
        snapped = snap_point(raw, config.grid_step)
        if res.parent is None and config.floor_fallback_enabled:
            snapped = replace(snapped, y=_rest_height(objects[node], dimensions[node], config))
        positions[node], oversized = clamp_to_room(snapped, *half_extents[node], room)
        corrections[node] = positions[node] - res.transform.position
        if oversized:
            obj_id = objects[node].id
            warning = LayoutWarning(
                code=WarningCode.OVERSIZED_FOOTPRINT,
                object_ids=(obj_id,),
                message=f"Footprint of '{obj_id}' exceeds the room along {', '.join(oversized)}; centred",
            )
            logger.warning("Object %s is larger than the room along %s", obj_id, oversized)
            layout_warnings.append(warning)
            per_object[obj_id].append(warning)

    tracker.advance(ResolutionState.OVERLAP_MITIGATING)
    roots = [node for node in order if resolved[node].parent is None]
    placements = [
        Placement(objects[node].id, positions[node], *half_extents[node]) for node in roots
    ]
    final, overlap_warnings, passes = mitigate_overlaps(
        placements, room, config.overlap_passes, config.overlap_tolerance
    )
    layout_warnings.extend(overlap_warnings)
    for warning in overlap_warnings:
        for obj_id in warning.object_ids:
            per_object[obj_id].append(warning)

    shifts: Dict[int, Point3D] = {}
    for node in order:
        before = positions[node]
        parent = resolved[node].parent
        if parent is None:
            positions[node] = final[objects[node].id]
        elif shifts[parent] != Point3D(0.0, 0.0, 0.0):
            positions[node], _ = clamp_to_room(before + shifts[parent], *half_extents[node], room)
        shifts[node] = positions[node] - before

    tracker.advance(ResolutionState.RESOLVED)
    resolved_objects = []
    for node in sorted(order):
        obj = objects[node]
        parent = resolved[node].parent
        resolved_objects.append(ResolvedObject(
            object_id=obj.id,
            transform=ResolvedTransform(position=positions[node], rotation=resolved[node].transform.rotation),
            dimensions=dimensions[node],
            parent=objects[parent].id if parent is not None else None,
            warnings=tuple(per_object[obj.id]),
            metadata=dict(obj.metadata),
        ))

    logger.info(
        "Resolved %d/%d objects (%d warnings, %d cyclic, %d overlap passes)",
        len(resolved_objects), len(layout.objects), len(layout_warnings), len(cyclic), passes,
    )
    return ResolvedScene(
        room=room,
        objects=tuple(resolved_objects),
        warnings=tuple(layout_warnings),
        errors=tuple(errors),
        state=tracker.state,
        rationale=layout.rationale,
    )
