"""Read-only spatial metadata lookup for model references.

The manifest itself (models.json) is owned by the asset pipeline; this module
only wraps an already-loaded mapping:

    {"desk_basic": {"path": "/models/desk.glb", "w": 1.2, "d": 0.6, "h": 0.75,
                    "bbox_min": {...}, "bbox_max": {...},
                    "anchors": {"top_center": {"x": 0, "y": 0.75, "z": 0}},
                    "tags": ["desk"]}}

Anchors are converted from model space to offsets from the bounding-box
centre, since resolved positions are object centres. Keys used only by the
asset pipeline (path, tags, margin) are ignored.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional

from models import Point3D, is_finite_number

logger = logging.getLogger("scene-resolver.catalog")


@dataclass(frozen=True)
class ModelMeta:
    """Nominal size and anchors of one catalog model."""
    key: str
    width: float
    depth: float
    height: float
    anchors: Dict[str, Point3D] = field(default_factory=dict, compare=False, hash=False)


def extract_model_key(reference: Optional[str]) -> Optional[str]:
    """Strip a source prefix: "gltf:desk_basic" -> "desk_basic"."""
    if not reference or not isinstance(reference, str):
        return None
    _, sep, rest = reference.partition(":")
    key = rest if sep else reference
    key = key.strip()
    return key or None


def _vec(d: Optional[dict]) -> Optional[Point3D]:
    if not isinstance(d, dict):
        return None
    try:
        values = [float(d.get(axis, 0.0)) for axis in ("x", "y", "z")]
    except (TypeError, ValueError):
        return None
    if not all(is_finite_number(v) for v in values):
        return None
    return Point3D(*values)


def _positive(value) -> Optional[float]:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if is_finite_number(number) and number > 0 else None


def meta_from_manifest_entry(key: str, entry: dict) -> Optional[ModelMeta]:
    """Build ModelMeta from one manifest entry; None if its size is unusable."""
    width, depth, height = _positive(entry.get("w")), _positive(entry.get("d")), _positive(entry.get("h"))
    if width is None or depth is None or height is None:
        logger.warning("Catalog entry %s has no usable w/d/h, skipping", key)
        return None

    bbox_min, bbox_max = _vec(entry.get("bbox_min")), _vec(entry.get("bbox_max"))
    if bbox_min is not None and bbox_max is not None:
        centre = Point3D(
            (bbox_min.x + bbox_max.x) / 2,
            (bbox_min.y + bbox_max.y) / 2,
            (bbox_min.z + bbox_max.z) / 2,
        )
    else:
        # Models are authored with the pivot at the base centre.
        centre = Point3D(0.0, height / 2, 0.0)

    anchors: Dict[str, Point3D] = {}
    for name, raw in (entry.get("anchors") or {}).items():
        point = _vec(raw)
        if point is None:
            logger.debug("Ignoring malformed anchor %s on %s", name, key)
            continue
        anchors[name] = point - centre

    return ModelMeta(
        key=key,
        width=width,
        depth=depth,
        height=height,
        anchors=anchors,
    )


class ModelCatalog:
    """In-memory, read-only lookup keyed by model key.

    Not mutated after construction, so one instance may be shared by
    concurrent resolutions.
    """

    def __init__(self, models: Optional[Mapping[str, ModelMeta]] = None):
        self._models: Dict[str, ModelMeta] = dict(models or {})

    @classmethod
    def from_manifest(cls, manifest: Mapping[str, dict]) -> "ModelCatalog":
        models = {}
        for key, entry in manifest.items():
            if not isinstance(entry, dict):
                logger.warning("Catalog entry %s is not an object, skipping", key)
                continue
            meta = meta_from_manifest_entry(key, entry)
            if meta is not None:
                models[key] = meta
        logger.info("Catalog built with %d of %d models", len(models), len(manifest))
        return cls(models)

    def lookup(self, reference: Optional[str]) -> Optional[ModelMeta]:
        key = extract_model_key(reference)
        if key is None:
            return None
        return self._models.get(key)

    def keys(self) -> List[str]:
        return list(self._models.keys())

    def __contains__(self, reference: str) -> bool:
        return self.lookup(reference) is not None

    def __len__(self) -> int:
        return len(self._models)


EMPTY_CATALOG = ModelCatalog()
