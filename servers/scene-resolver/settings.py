"""Resolver configuration.

A ResolverConfig is an immutable value passed into every resolution call;
nothing here is process-global. Defaults can be overridden from a dict
(tool arguments) or from SCENE_RESOLVER_* environment variables.
"""

import os
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Optional

from models import Dimensions, Room, is_finite_number

DEFAULT_GRID_STEP = 0.1
DEFAULT_OVERLAP_PASSES = 4
DEFAULT_FOOTPRINT = Dimensions(width=0.8, depth=0.8, height=1.0)
# Used when the generator returns no room at all.
FALLBACK_ROOM = Room(width=4.0, depth=3.5, height=2.7)

# camelCase option names accepted from generator-side callers
_OPTION_ALIASES = {
    "gridStep": "grid_step",
    "overlapPasses": "overlap_passes",
    "overlapTolerance": "overlap_tolerance",
    "defaultFootprint": "default_footprint",
    "floorFallbackEnabled": "floor_fallback_enabled",
    "roomFallback": "room_fallback",
}


@dataclass(frozen=True)
class ResolverConfig:
    grid_step: float = DEFAULT_GRID_STEP
    overlap_passes: int = DEFAULT_OVERLAP_PASSES
    overlap_tolerance: float = 0.0
    default_footprint: Dimensions = field(default=DEFAULT_FOOTPRINT)
    floor_fallback_enabled: bool = True
    room_fallback: Room = field(default=FALLBACK_ROOM)

    def __post_init__(self):
        if not is_finite_number(self.grid_step) or self.grid_step <= 0:
            raise ValueError(f"grid_step must be a positive number, got {self.grid_step!r}")
        if isinstance(self.overlap_passes, bool) or not isinstance(self.overlap_passes, int) or self.overlap_passes < 0:
            raise ValueError(f"overlap_passes must be a non-negative integer, got {self.overlap_passes!r}")
        if not is_finite_number(self.overlap_tolerance) or self.overlap_tolerance < 0:
            raise ValueError(f"overlap_tolerance must be >= 0, got {self.overlap_tolerance!r}")
        if not isinstance(self.floor_fallback_enabled, bool):
            raise ValueError(f"floor_fallback_enabled must be a boolean, got {self.floor_fallback_enabled!r}")
        fp = self.default_footprint
        if not all(is_finite_number(v) and v > 0 for v in (fp.width, fp.depth, fp.height)):
            raise ValueError(f"default_footprint must have positive dimensions, got {fp!r}")

    @classmethod
    def from_dict(cls, options: Optional[Dict[str, Any]], base: Optional["ResolverConfig"] = None) -> "ResolverConfig":
        """Override *base* (defaults if None) from snake_case or camelCase option names.

        Unknown keys raise ValueError so typos do not silently fall back to
        defaults. `default_footprint` may be given as {"w", "d", "h"} or
        {"width", "depth", "height"}; `room_fallback` as {"width_m", ...}
        or {"width", ...}.
        """
        base = base or cls()
        if not options:
            return base
        kwargs: Dict[str, Any] = {}
        for key, value in options.items():
            name = _OPTION_ALIASES.get(key, key)
            if name not in cls.__dataclass_fields__:
                raise ValueError(f"Unknown resolver option: {key}")
            kwargs[name] = value
        if isinstance(kwargs.get("default_footprint"), dict):
            kwargs["default_footprint"] = _dimensions_from_dict(kwargs["default_footprint"])
        if isinstance(kwargs.get("room_fallback"), dict):
            kwargs["room_fallback"] = _room_from_dict(kwargs["room_fallback"])
        if "grid_step" in kwargs:
            kwargs["grid_step"] = float(kwargs["grid_step"])
        if "overlap_tolerance" in kwargs:
            kwargs["overlap_tolerance"] = float(kwargs["overlap_tolerance"])
        return replace(base, **kwargs)

    @classmethod
    def from_env(cls, base: Optional["ResolverConfig"] = None) -> "ResolverConfig":
        """Apply SCENE_RESOLVER_* environment overrides on top of *base*."""
        config = base or cls()
        overrides: Dict[str, Any] = {}
        grid_step = os.environ.get("SCENE_RESOLVER_GRID_STEP")
        if grid_step:
            overrides["grid_step"] = float(grid_step)
        passes = os.environ.get("SCENE_RESOLVER_OVERLAP_PASSES")
        if passes:
            overrides["overlap_passes"] = int(passes)
        tolerance = os.environ.get("SCENE_RESOLVER_OVERLAP_TOLERANCE")
        if tolerance:
            overrides["overlap_tolerance"] = float(tolerance)
        floor = os.environ.get("SCENE_RESOLVER_FLOOR_FALLBACK")
        if floor:
            overrides["floor_fallback_enabled"] = floor.strip().lower() not in ("0", "false", "no", "off")
        return replace(config, **overrides) if overrides else config


def _dimensions_from_dict(d: dict) -> Dimensions:
    return Dimensions(
        width=float(d.get("w", d.get("width"))),
        depth=float(d.get("d", d.get("depth"))),
        height=float(d.get("h", d.get("height"))),
    )


def _room_from_dict(d: dict) -> Room:
    return Room(
        width=float(d.get("width_m", d.get("width"))),
        depth=float(d.get("depth_m", d.get("depth"))),
        height=float(d.get("height_m", d.get("height"))),
    )
