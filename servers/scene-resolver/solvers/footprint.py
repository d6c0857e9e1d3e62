"""Object size resolution and axis-aligned footprints.

Size precedence per component: explicit size from the generator, then
catalog metadata, then the configured default footprint.
"""

import logging
import math
from typing import List, Optional, Tuple

from models import Dimensions, LayoutWarning, SizeOverride, WarningCode
from services.catalog import ModelMeta

logger = logging.getLogger("scene-resolver.footprint")


def resolve_dimensions(
    object_id: str,
    size: Optional[SizeOverride],
    meta: Optional[ModelMeta],
    model_reference: Optional[str],
    default: Dimensions,
) -> Tuple[Dimensions, List[LayoutWarning]]:
    warnings: List[LayoutWarning] = []
    size = size or SizeOverride()
    explicit = (size.width, size.depth, size.height)

    if meta is None and not all(v is not None for v in explicit):
        if model_reference:
            logger.debug("No catalog metadata for %s (%s), using default footprint", object_id, model_reference)
            warnings.append(LayoutWarning(
                code=WarningCode.MISSING_METADATA,
                object_ids=(object_id,),
                message=f"Model '{model_reference}' not found in catalog; default footprint used",
            ))
        base = default
    else:
        base = Dimensions(meta.width, meta.depth, meta.height) if meta else default

    return Dimensions(
        width=size.width if size.width is not None else base.width,
        depth=size.depth if size.depth is not None else base.depth,
        height=size.height if size.height is not None else base.height,
    ), warnings


def footprint_half_extents(dimensions: Dimensions, yaw_degrees: float = 0.0) -> Tuple[float, float]:
    """Half extents (x, z) of the AABB around a footprint rotated about y."""
    hw, hd = dimensions.width / 2, dimensions.depth / 2
    if yaw_degrees % 180 == 0:
        return hw, hd
    theta = math.radians(yaw_degrees)
    c, s = abs(math.cos(theta)), abs(math.sin(theta))
    return c * hw + s * hd, s * hw + c * hd
