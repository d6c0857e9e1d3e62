"""Turn generator output into an immutable Layout.

The generator is asked for bare JSON but sometimes wraps it in prose or a
code fence, so parsing falls back to the first {...} block. Field names follow
the generator schema (width_m, position_m, rotation_deg, size_m,
relative_position_m, ...). Numbers that cannot be read are kept as NaN so the
resolver reports them as MalformedField before defaulting.
"""

import json
import logging
import math
import re
from typing import Any, Dict, List, Optional

from errors import InvalidRoomError, LayoutParseError
from models import Layout, PartialVec3, Room, SizeOverride, SpatialObject
from settings import FALLBACK_ROOM

logger = logging.getLogger("scene-resolver.layout_parser")

RAW_SNIPPET_LIMIT = 200
_JSON_BLOCK = re.compile(r"\{[\s\S]*\}")

# Keys mapped onto SpatialObject fields; everything else is passed through.
_GEOMETRY_KEYS = {
    "id", "model", "parent", "anchor", "position_m", "rotation_deg",
    "size_m", "relative_position_m",
}


def extract_layout_json(raw: str) -> Dict[str, Any]:
    """Parse generator text into a dict, tolerating chatter around the JSON."""
    try:
        data = json.loads(raw)
    except (json.JSONDecodeError, TypeError):
        match = _JSON_BLOCK.search(raw or "")
        data = None
        if match:
            try:
                data = json.loads(match.group(0))
                logger.debug("Recovered layout JSON from surrounding text")
            except json.JSONDecodeError:
                data = None
        if data is None:
            snippet = (raw or "")[:RAW_SNIPPET_LIMIT]
            raise LayoutParseError(f"Unable to parse layout JSON. Snippet: {snippet}", snippet=snippet)
    if not isinstance(data, dict):
        raise LayoutParseError(f"Layout JSON must be an object, got {type(data).__name__}")
    return data


def _number(value: Any) -> Optional[float]:
    """None when absent, NaN when present but unreadable."""
    if value is None:
        return None
    if isinstance(value, bool):
        return math.nan
    try:
        return float(value)
    except (TypeError, ValueError):
        return math.nan


def _vec(d: Any) -> Optional[PartialVec3]:
    if d is None:
        return None
    if not isinstance(d, dict):
        return PartialVec3(math.nan, math.nan, math.nan)
    return PartialVec3(x=_number(d.get("x")), y=_number(d.get("y")), z=_number(d.get("z")))


def _size(d: Any) -> Optional[SizeOverride]:
    if d is None:
        return None
    if not isinstance(d, dict):
        return SizeOverride(math.nan, math.nan, math.nan)
    return SizeOverride(width=_number(d.get("w")), depth=_number(d.get("d")), height=_number(d.get("h")))


def _text(value: Any) -> Optional[str]:
    if not isinstance(value, str):
        return None
    value = value.strip()
    return value or None


def room_from_dict(d: Optional[Dict[str, Any]], fallback: Room = FALLBACK_ROOM) -> Room:
    """Map the generator room block; a missing room uses *fallback*.

    A room that is present but has a missing or non-positive dimension is
    rejected outright.
    """
    if d is None:
        logger.info("Layout has no room; using fallback %.1f x %.1f x %.1f",
                    fallback.width, fallback.depth, fallback.height)
        return fallback
    if not isinstance(d, dict):
        raise InvalidRoomError("Room must be an object")
    dims = {key: _number(d.get(f"{key}_m", d.get(key))) for key in ("width", "depth", "height")}
    bad = [k for k, v in dims.items() if v is None or not math.isfinite(v) or v <= 0]
    if bad:
        raise InvalidRoomError(f"Room dimensions must be positive numbers; invalid: {', '.join(bad)}")
    return Room(
        width=dims["width"],
        depth=dims["depth"],
        height=dims["height"],
        floor_material=_text(d.get("floor_material")),
        wall_color=_text(d.get("wall_color")),
    )


def object_from_dict(d: Dict[str, Any], position: int) -> SpatialObject:
    object_id = d.get("id")
    if object_id is None or (isinstance(object_id, str) and not object_id.strip()):
        object_id = f"object_{position}"
    return SpatialObject(
        id=str(object_id).strip(),
        model=_text(d.get("model")),
        parent=_text(d.get("parent")),
        anchor=_text(d.get("anchor")),
        offset=_vec(d.get("relative_position_m")),
        position=_vec(d.get("position_m")),
        rotation=_vec(d.get("rotation_deg")),
        size=_size(d.get("size_m")),
        metadata={k: v for k, v in d.items() if k not in _GEOMETRY_KEYS},
    )


def layout_from_dict(data: Dict[str, Any], room_fallback: Room = FALLBACK_ROOM) -> Layout:
    """Build the immutable snapshot the resolver works on."""
    raw_objects = data.get("objects") or []
    if not isinstance(raw_objects, list):
        raise LayoutParseError("'objects' must be a list")
    objects: List[SpatialObject] = []
    for i, raw in enumerate(raw_objects):
        if not isinstance(raw, dict):
            logger.warning("Skipping objects[%d]: not an object", i)
            continue
        objects.append(object_from_dict(raw, i))
    rationale = data.get("rationale")
    return Layout(
        room=room_from_dict(data.get("room"), room_fallback),
        objects=tuple(objects),
        rationale=rationale if isinstance(rationale, str) else "",
    )


def parse_layout(raw: str, room_fallback: Room = FALLBACK_ROOM) -> Layout:
    """Raw generator text -> Layout."""
    return layout_from_dict(extract_layout_json(raw), room_fallback)
