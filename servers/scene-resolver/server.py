"""Scene Resolver MCP Server.

Exposes tools that take raw layout output from the generator, resolve it
into a geometrically valid scene (anchors, floor rest, grid snap, room
containment, overlap separation) and keep the results for later retrieval.
All tools take and return JSON strings.
"""

import json
import os
import sys
import logging

from mcp.server.fastmcp import FastMCP

# Ensure package root is on path
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from errors import LayoutParseError, ResolutionError
from models import scene_to_dict
from services.catalog import ModelCatalog
from services.layout_parser import extract_layout_json, layout_from_dict
from settings import ResolverConfig
from solvers.scene_resolver import resolve_scene
from solvers.validation import check_layout_structure, validate_resolved_scene
from state import SceneState

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s %(message)s")
logger = logging.getLogger("scene-resolver")

# --- Globals ---
state = SceneState()
mcp = FastMCP("scene-resolver")
base_config = ResolverConfig.from_env()

# Replaced wholesale by register_models; never mutated in place.
_catalog = ModelCatalog()


def _parse_config(config_json: str) -> ResolverConfig:
    if not config_json or not config_json.strip():
        return base_config
    options = json.loads(config_json)
    if not isinstance(options, dict):
        raise ValueError("config_json must be a JSON object")
    return ResolverConfig.from_dict(options, base=base_config)


# ============================================================
# Catalog Tools
# ============================================================

@mcp.tool()
def register_models(models_json: str) -> str:
    """Replace the model catalog used for size and anchor lookup.

    models_json is the models manifest: {"<key>": {"w": .., "d": .., "h": ..,
    "anchors": {"<name>": {"x": .., "y": .., "z": ..}}, ...}, ...}.
    Objects reference models as "<key>" or "<source>:<key>".

    Returns the number of usable models and their keys.
    """
    global _catalog
    try:
        manifest = json.loads(models_json)
    except json.JSONDecodeError as e:
        return json.dumps({"error": f"Invalid JSON: {e}"})
    if not isinstance(manifest, dict):
        return json.dumps({"error": "models_json must be a JSON object keyed by model key"})

    _catalog = ModelCatalog.from_manifest(manifest)
    return json.dumps({
        "model_count": len(_catalog),
        "skipped": sorted(set(manifest) - set(_catalog.keys())),
        "models": _catalog.keys(),
    })


# ============================================================
# Layout Resolution Tools
# ============================================================

@mcp.tool()
def check_layout(layout_json: str) -> str:
    """Structural check of a generated layout without resolving it.

    Returns {"valid", "missing_fields", "invalid_fields", "error"}.
    """
    try:
        data = extract_layout_json(layout_json)
    except LayoutParseError as e:
        return json.dumps({"error": str(e)})
    return json.dumps(check_layout_structure(data))


@mcp.tool()
def resolve_layout(layout_json: str, config_json: str = "") -> str:
    """Resolve a generated room layout into absolute, valid placements.

    layout_json is the generator output: {"room": {"width_m", "depth_m",
    "height_m"}, "objects": [{"id", "model", "position_m", "rotation_deg",
    "size_m", "parent", "anchor", "relative_position_m", ...}], "rationale"}.
    Surrounding prose is tolerated.

    config_json optionally overrides gridStep, overlapPasses,
    overlapTolerance, defaultFootprint ({"w","d","h"}) and
    floorFallbackEnabled.

    Returns {"scene_id", "scene", "validation"} or {"error": ...}. Warnings
    such as DanglingParent or UnresolvedOverlap are in scene.warnings; objects
    caught in a parent cycle are listed in scene.errors.
    """
    try:
        config = _parse_config(config_json)
    except json.JSONDecodeError as e:
        return json.dumps({"error": f"Invalid config JSON: {e}"})
    except (TypeError, ValueError) as e:
        return json.dumps({"error": f"Invalid config: {e}"})

    try:
        data = extract_layout_json(layout_json)
    except LayoutParseError as e:
        return json.dumps({"error": str(e)})

    structure = check_layout_structure(data)
    if structure["error"]:
        return json.dumps({"error": "Invalid structure", "details": structure})

    try:
        layout = layout_from_dict(data, room_fallback=config.room_fallback)
        scene = resolve_scene(layout, catalog=_catalog, config=config)
    except ResolutionError as e:
        logger.warning("Layout rejected: %s", e)
        return json.dumps({"error": str(e), "details": e.to_dict()})
    except LayoutParseError as e:
        return json.dumps({"error": str(e)})

    scene_id = state.store_scene(scene)
    return json.dumps({
        "scene_id": scene_id,
        "scene": scene_to_dict(scene),
        "validation": validate_resolved_scene(scene),
    })


# ============================================================
# Scene Management Tools
# ============================================================

@mcp.tool()
def get_resolved_scene(scene_id: str) -> str:
    """Return a previously resolved scene by id."""
    scene = state.get_scene_dict(scene_id)
    if scene is None:
        return json.dumps({"error": f"Scene {scene_id} not found"})
    return json.dumps({"scene_id": scene_id, "scene": scene})


@mcp.tool()
def list_resolved_scenes() -> str:
    """List the ids of all resolved scenes held by the server."""
    return json.dumps({"scene_ids": state.list_scenes()})


@mcp.tool()
def delete_resolved_scene(scene_id: str) -> str:
    """Forget a resolved scene."""
    if not state.delete_scene(scene_id):
        return json.dumps({"error": f"Scene {scene_id} not found"})
    return json.dumps({"deleted": scene_id})


# ============================================================
# Entry point
# ============================================================

if __name__ == "__main__":
    logger.info("Scene-resolver MCP server starting...")
    mcp.run()
