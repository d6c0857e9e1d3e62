"""Data models for layout resolution.

Input side: Room, SpatialObject and the frozen Layout snapshot built from
generator output. Output side: ResolvedTransform, ResolvedObject and
ResolvedScene, plus the LayoutWarning records attached to them.

Coordinates are metres with y vertical. The room is centred on the origin in
the x/z plane and its floor sits at y = 0.
"""

from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple
import json
import math


@dataclass(frozen=True)
class Point3D:
    """Represents a 3D coordinate point."""
    x: float
    y: float
    z: float

    def __add__(self, other: "Point3D") -> "Point3D":
        return Point3D(self.x + other.x, self.y + other.y, self.z + other.z)

    def __sub__(self, other: "Point3D") -> "Point3D":
        return Point3D(self.x - other.x, self.y - other.y, self.z - other.z)

    def to_list(self) -> List[float]:
        return [self.x, self.y, self.z]


ORIGIN = Point3D(0.0, 0.0, 0.0)


@dataclass(frozen=True)
class Euler:
    """Represents a 3D rotation in Euler angles (x, y, z) in degrees."""
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0

    def __add__(self, other: "Euler") -> "Euler":
        return Euler(self.x + other.x, self.y + other.y, self.z + other.z)

    def to_list(self) -> List[float]:
        return [self.x, self.y, self.z]


@dataclass(frozen=True)
class Dimensions:
    """Represents 3D dimensions (width along x, depth along z, height along y)."""
    width: float
    depth: float
    height: float


@dataclass(frozen=True)
class PartialVec3:
    """A vector read from generator output where any axis may be missing.

    A component is None when the generator omitted it. Malformed numbers are
    kept as NaN so the resolver can report them before defaulting.
    """
    x: Optional[float] = None
    y: Optional[float] = None
    z: Optional[float] = None

    def with_defaults(self, default: Point3D = ORIGIN) -> Point3D:
        return Point3D(
            default.x if self.x is None else self.x,
            default.y if self.y is None else self.y,
            default.z if self.z is None else self.z,
        )


@dataclass(frozen=True)
class SizeOverride:
    """Explicit per-object size; missing components fall back to catalog metadata."""
    width: Optional[float] = None
    depth: Optional[float] = None
    height: Optional[float] = None


@dataclass(frozen=True)
class Room:
    """Axis-aligned room envelope."""
    width: float
    depth: float
    height: float
    floor_material: Optional[str] = None  # cosmetic
    wall_color: Optional[str] = None  # cosmetic

    @property
    def half_width(self) -> float:
        return self.width / 2

    @property
    def half_depth(self) -> float:
        return self.depth / 2


@dataclass(frozen=True)
class AnchorReference:
    """Edge of the resolution graph: child -> parent's anchor (or raw offset)."""
    parent_id: str
    anchor: Optional[str]
    offset: Point3D


@dataclass(frozen=True)
class SpatialObject:
    """Represents one object placed by the generator.

    `position` and `rotation` are absolute for root objects. For parented
    objects the rotation is relative to the parent and `offset` is applied
    at the parent's anchor; `position` is only used if the parent is missing.
    """
    id: str
    model: Optional[str] = None
    parent: Optional[str] = None
    anchor: Optional[str] = None
    offset: Optional[PartialVec3] = None
    position: Optional[PartialVec3] = None
    rotation: Optional[PartialVec3] = None
    size: Optional[SizeOverride] = None
    metadata: Dict[str, Any] = field(default_factory=dict, compare=False, hash=False)

    def anchor_reference(self) -> Optional[AnchorReference]:
        if not self.parent:
            return None
        offset = (self.offset or PartialVec3()).with_defaults()
        return AnchorReference(parent_id=self.parent, anchor=self.anchor, offset=offset)


@dataclass(frozen=True)
class Layout:
    """Immutable snapshot handed to the resolver."""
    room: Room
    objects: Tuple[SpatialObject, ...]
    rationale: str = ""


class WarningCode(str, Enum):
    CYCLIC_REFERENCE = "CyclicReference"
    DANGLING_PARENT = "DanglingParent"
    UNRESOLVABLE_PARENT = "UnresolvableParent"
    UNRESOLVED_OVERLAP = "UnresolvedOverlap"
    OVERSIZED_FOOTPRINT = "OversizedFootprint"
    UNKNOWN_ANCHOR = "UnknownAnchor"
    DUPLICATE_IDENTIFIER = "DuplicateIdentifier"
    MALFORMED_FIELD = "MalformedField"
    MISSING_METADATA = "MissingMetadata"
    INVALID_ROOM = "InvalidRoom"


@dataclass(frozen=True)
class LayoutWarning:
    """A non-fatal anomaly, or a per-object failure such as a cycle."""
    code: WarningCode
    object_ids: Tuple[str, ...]
    message: str


class ResolutionState(str, Enum):
    VALIDATING = "validating"
    GRAPH_BUILDING = "graph_building"
    TOPOLOGICAL_RESOLVING = "topological_resolving"
    SNAPPING_CLAMPING = "snapping_clamping"
    OVERLAP_MITIGATING = "overlap_mitigating"
    RESOLVED = "resolved"
    FAILED = "failed"


@dataclass(frozen=True)
class ResolvedTransform:
    """Absolute placement of one object. Never mutated after creation."""
    position: Point3D
    rotation: Euler


@dataclass(frozen=True)
class ResolvedObject:
    object_id: str
    transform: ResolvedTransform
    dimensions: Dimensions
    parent: Optional[str] = None
    warnings: Tuple[LayoutWarning, ...] = ()
    metadata: Dict[str, Any] = field(default_factory=dict, compare=False, hash=False)

    @property
    def position(self) -> Point3D:
        return self.transform.position

    @property
    def rotation(self) -> Euler:
        return self.transform.rotation


@dataclass(frozen=True)
class ResolvedScene:
    """Result of one resolution pass."""
    room: Room
    objects: Tuple[ResolvedObject, ...]
    warnings: Tuple[LayoutWarning, ...] = ()
    errors: Tuple[LayoutWarning, ...] = ()
    state: ResolutionState = ResolutionState.RESOLVED
    rationale: str = ""

    def get(self, object_id: str) -> Optional[ResolvedObject]:
        for obj in self.objects:
            if obj.object_id == object_id:
                return obj
        return None

    def warnings_for(self, code: WarningCode) -> List[LayoutWarning]:
        return [w for w in self.warnings if w.code == code]


def is_finite_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def scene_to_dict(scene: ResolvedScene) -> dict:
    """Convert a ResolvedScene to a JSON-serializable dict."""
    return asdict(scene)


def scene_to_json(scene: ResolvedScene) -> str:
    """Convert a ResolvedScene to a JSON string."""
    return json.dumps(scene_to_dict(scene), indent=2)


