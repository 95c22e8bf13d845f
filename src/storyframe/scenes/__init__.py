"""Scenes and the scene stack state machine."""

from storyframe.scenes.builtin import Splash, Title
from storyframe.scenes.scene import Scene
from storyframe.scenes.stack import SceneStack

__all__ = ["Scene", "SceneStack", "Splash", "Title"]
