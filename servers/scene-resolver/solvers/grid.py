"""Grid snapping for resolved positions."""

import math

from models import Point3D

# Drop float noise such as 0.30000000000000004 so snapped values stay stable.
_DECIMALS = 9


def snap(value: float, step: float) -> float:
    """Quantize *value* to the nearest multiple of *step*.

    Idempotent: snap(snap(v, s), s) == snap(v, s).
    """
    if step <= 0:
        raise ValueError(f"Grid step must be positive, got {step}")
    quotient = value / step
    if not math.isfinite(quotient):
        return value
    snapped = round(round(quotient) * step, _DECIMALS)
    # avoid -0.0 in output
    return snapped + 0.0


def snap_point(point: Point3D, step: float) -> Point3D:
    """Snap each position axis independently. Rotations are never snapped."""
    return Point3D(snap(point.x, step), snap(point.y, step), snap(point.z, step))
