"""Vertical resting position for unparented objects."""

from typing import Optional


def floor_rest_height(height: float) -> float:
    """Centre height of an object standing on the floor plane (y = 0)."""
    return height / 2


def resolve_root_height(explicit_y: Optional[float], height: float, enabled: bool = True) -> float:
    """Vertical coordinate for a root object.

    Without an explicit y the object rests on the floor. An explicit y is
    kept unless it would sink the object into the floor, in which case it is
    raised to the resting height. With the floor fallback disabled the input
    is used as given (0.0 when absent). Parented objects never come through
    here; they inherit y from their parent chain.
    """
    if not enabled:
        return 0.0 if explicit_y is None else explicit_y
    rest = floor_rest_height(height)
    if explicit_y is None:
        return rest
    return max(explicit_y, rest)
