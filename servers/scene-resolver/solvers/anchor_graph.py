"""Anchor graph resolution.

Objects are nodes (their index in the layout) and parent references are
directed edges child -> parent in a networkx DiGraph. Cycles are found with an
iterative three-colour DFS, then the acyclic part is resolved root-first from
an explicit worklist, so deep anchor chains never hit the recursion limit.
"""

import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Set, Tuple

import networkx as nx
import numpy as np
from scipy.spatial.transform import Rotation as R

from models import (
    Dimensions, Euler, LayoutWarning, Point3D, PartialVec3, ResolvedTransform,
    SpatialObject, WarningCode,
)
from services.catalog import ModelCatalog
from settings import ResolverConfig
from solvers.floor import resolve_root_height

logger = logging.getLogger("scene-resolver.anchor_graph")

# DFS colours
WHITE, GREY, BLACK = 0, 1, 2


@dataclass
class ReferenceGraph:
    """Parent references of one layout. Node ids are object indices."""
    graph: nx.DiGraph
    objects: Sequence[SpatialObject]
    index: Dict[str, int]
    dangling: List[int] = field(default_factory=list)

    def parent_of(self, node: int) -> Optional[int]:
        for parent in self.graph.successors(node):
            return parent
        return None

    def children_of(self, node: int) -> List[int]:
        return sorted(self.graph.predecessors(node))

    def object_id(self, node: int) -> str:
        return self.graph.nodes[node]["object_id"]


@dataclass
class NodeResolution:
    """Absolute transform of one node plus what happened while resolving it."""
    node: int
    transform: ResolvedTransform
    parent: Optional[int]  # effective parent; None when placed as a root
    warnings: List[LayoutWarning] = field(default_factory=list)


def build_reference_graph(objects: Sequence[SpatialObject]) -> ReferenceGraph:
    """Build the child -> parent graph. Ids must already be unique."""
    index = {obj.id: i for i, obj in enumerate(objects)}
    graph = nx.DiGraph()
    graph.add_nodes_from((i, {"object_id": obj.id}) for i, obj in enumerate(objects))

    dangling = []
    for i, obj in enumerate(objects):
        if not obj.parent:
            continue
        parent = index.get(obj.parent)
        if parent is None:
            dangling.append(i)
            continue
        graph.add_edge(i, parent)

    logger.debug("Reference graph: %d nodes, %d edges, %d dangling",
                 graph.number_of_nodes(), graph.number_of_edges(), len(dangling))
    return ReferenceGraph(graph=graph, objects=objects, index=index, dangling=dangling)


def find_cycles(graph: nx.DiGraph) -> List[Tuple[int, ...]]:
    """Return every cycle as a tuple of its member nodes.

    Three-colour DFS with an explicit stack: a successor that is still GREY
    (on the current path) closes a cycle made of the path suffix from it.
    """
    color = {node: WHITE for node in graph.nodes}
    cycles: List[Tuple[int, ...]] = []

    for start in sorted(graph.nodes):
        if color[start] != WHITE:
            continue
        color[start] = GREY
        path = [start]
        stack = [iter(sorted(graph.successors(start)))]

        while stack:
            advanced = False
            for nxt in stack[-1]:
                if color[nxt] == WHITE:
                    color[nxt] = GREY
                    path.append(nxt)
                    stack.append(iter(sorted(graph.successors(nxt))))
                    advanced = True
                    break
                if color[nxt] == GREY:
                    cycles.append(tuple(path[path.index(nxt):]))
            if not advanced:
                color[path.pop()] = BLACK
                stack.pop()

    return cycles


def resolution_order(ref: ReferenceGraph, cyclic: Set[int]) -> List[int]:
    """Topological order of every non-cyclic node, roots first.

    Effective roots are nodes with no parent edge and nodes whose parent is a
    cycle member. Cycle members are never reached.
    """
    roots = []
    for node in sorted(ref.graph.nodes):
        if node in cyclic:
            continue
        parent = ref.parent_of(node)
        if parent is None or parent in cyclic:
            roots.append(node)

    order: List[int] = []
    worklist = deque(roots)
    while worklist:
        node = worklist.popleft()
        order.append(node)
        worklist.extend(child for child in ref.children_of(node) if child not in cyclic)
    return order


def _euler(hint: Optional[PartialVec3]) -> Euler:
    point = (hint or PartialVec3()).with_defaults()
    return Euler(point.x, point.y, point.z)


def _resolve_root(obj: SpatialObject, dimensions: Dimensions, config: ResolverConfig) -> ResolvedTransform:
    hint = obj.position or PartialVec3()
    position = Point3D(
        hint.x if hint.x is not None else 0.0,
        resolve_root_height(hint.y, dimensions.height, config.floor_fallback_enabled),
        hint.z if hint.z is not None else 0.0,
    )
    return ResolvedTransform(position=position, rotation=_euler(obj.rotation))


def compose_with_parent(
    parent: ResolvedTransform,
    offset: Point3D,
    anchor_point: Optional[Point3D],
    local_rotation: Euler,
) -> ResolvedTransform:
    """Place a child relative to its parent's absolute transform.

    With an anchor the offset is measured from the anchor in the parent's
    local frame, so both are rotated by the parent's rotation. Without one
    the offset is a raw world-axis vector. Rotations add per axis.
    """
    if anchor_point is not None:
        local = np.array((anchor_point + offset).to_list())
        rotated = R.from_euler("xyz", parent.rotation.to_list(), degrees=True).apply(local)
        delta = Point3D(*(float(v) for v in rotated))
    else:
        delta = offset
    return ResolvedTransform(
        position=parent.position + delta,
        rotation=parent.rotation + local_rotation,
    )


def resolve_transforms(
    ref: ReferenceGraph,
    order: Sequence[int],
    cyclic: Set[int],
    dimensions: Dict[int, Dimensions],
    catalog: ModelCatalog,
    config: ResolverConfig,
) -> Dict[int, NodeResolution]:
    """Resolve absolute transforms in *order* (parents before children)."""
    resolved: Dict[int, NodeResolution] = {}
    dangling = set(ref.dangling)

    for node in order:
        obj = ref.objects[node]
        parent = ref.parent_of(node)
        warnings: List[LayoutWarning] = []

        if node in dangling:
            logger.warning("Object %s references missing parent %s; placing as root", obj.id, obj.parent)
            warnings.append(LayoutWarning(
                code=WarningCode.DANGLING_PARENT,
                object_ids=(obj.id,),
                message=f"Parent '{obj.parent}' does not exist; placed as a root object",
            ))
        elif parent is not None and parent in cyclic:
            logger.warning("Object %s hangs off cyclic parent %s; placing as root", obj.id, obj.parent)
            warnings.append(LayoutWarning(
                code=WarningCode.UNRESOLVABLE_PARENT,
                object_ids=(obj.id, obj.parent),
                message=f"Parent '{obj.parent}' is part of a reference cycle; placed as a root object",
            ))
            parent = None

        if parent is None:
            resolved[node] = NodeResolution(node, _resolve_root(obj, dimensions[node], config), None, warnings)
            continue

        reference = obj.anchor_reference()
        parent_obj = ref.objects[parent]
        anchor_point = None
        if reference.anchor:
            meta = catalog.lookup(parent_obj.model)
            anchor_point = meta.anchors.get(reference.anchor) if meta else None
            if anchor_point is None:
                logger.debug("Anchor %s not found on %s", reference.anchor, parent_obj.id)
                warnings.append(LayoutWarning(
                    code=WarningCode.UNKNOWN_ANCHOR,
                    object_ids=(obj.id, parent_obj.id),
                    message=f"Anchor '{reference.anchor}' not defined on '{parent_obj.id}'; offset applied as a raw vector",
                ))

        transform = compose_with_parent(
            resolved[parent].transform, reference.offset, anchor_point, _euler(obj.rotation)
        )
        resolved[node] = NodeResolution(node, transform, parent, warnings)

    return resolved
