"""Scene state management: holds resolved scenes in memory."""

from typing import Dict, Optional
import uuid

from models import ResolvedScene, scene_to_dict


class SceneState:
    """In-memory store for resolved scenes.

    The resolver itself keeps nothing between calls; this store only exists
    so tool callers can fetch a previous result by id.
    """

    def __init__(self):
        self._scenes: Dict[str, ResolvedScene] = {}

    def store_scene(self, scene: ResolvedScene, scene_id: Optional[str] = None) -> str:
        """Store a resolved scene and return its ID."""
        if not scene_id:
            scene_id = str(uuid.uuid4())[:8]
        self._scenes[scene_id] = scene
        return scene_id

    def get_scene(self, scene_id: str) -> Optional[ResolvedScene]:
        return self._scenes.get(scene_id)

    def get_scene_dict(self, scene_id: str) -> Optional[dict]:
        scene = self.get_scene(scene_id)
        if scene is None:
            return None
        return scene_to_dict(scene)

    def list_scenes(self) -> list[str]:
        return list(self._scenes.keys())

    def delete_scene(self, scene_id: str) -> bool:
        if scene_id in self._scenes:
            del self._scenes[scene_id]
            return True
        return False
