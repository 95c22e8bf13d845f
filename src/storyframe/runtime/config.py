"""Engine configuration loading."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path  # noqa: TC003 - used at runtime
from typing import Any

from ruamel.yaml import YAML

# Default configuration values
DEFAULT_NAME = "storyframe"
DEFAULT_INITIAL_SCENES = ["Splash"]
DEFAULT_MAX_FRAMES = 1000
DEFAULT_FRAME_INTERVAL_MS = 16.0
CONFIG_FILENAME = "storyframe.yaml"
MAX_FRAMES_ENV = "STORYFRAME_MAX_FRAMES"


@dataclass
class EngineConfig:
    """Configuration for one engine run.

    Attributes:
        name: Human-readable name of the game.
        initial_scenes: Registered scene names pushed before the first frame,
            bottom first.
        max_frames: Safety limit on the number of frames driven.
        frame_interval_ms: Simulated time between frames.
        trace_documents: Encode the scene stack after every frame.
    """

    name: str = DEFAULT_NAME
    initial_scenes: list[str] = field(default_factory=lambda: list(DEFAULT_INITIAL_SCENES))
    max_frames: int = DEFAULT_MAX_FRAMES
    frame_interval_ms: float = DEFAULT_FRAME_INTERVAL_MS
    trace_documents: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> EngineConfig:
        """Create config from dictionary.

        Args:
            data: Dictionary containing config fields. The ``engine`` section
                holds the frame settings.

        Returns:
            EngineConfig instance.

        Raises:
            ValueError: If a value has the wrong type or range.
        """
        engine_data = data.get("engine") or {}
        scenes = data.get("initial_scenes", list(DEFAULT_INITIAL_SCENES))
        if isinstance(scenes, str) or not all(isinstance(s, str) for s in scenes):
            raise ValueError("initial_scenes must be a list of scene names")

        max_frames = int(engine_data.get("max_frames", DEFAULT_MAX_FRAMES))
        if max_frames < 1:
            raise ValueError(f"max_frames must be at least 1, got {max_frames}")
        frame_interval_ms = float(engine_data.get("frame_interval_ms", DEFAULT_FRAME_INTERVAL_MS))
        if frame_interval_ms < 0:
            raise ValueError(f"frame_interval_ms must be non-negative, got {frame_interval_ms}")

        return cls(
            name=str(data.get("name", DEFAULT_NAME)),
            initial_scenes=list(scenes),
            max_frames=max_frames,
            frame_interval_ms=frame_interval_ms,
            trace_documents=bool(engine_data.get("trace_documents", False)),
        )

    def to_dict(self) -> dict[str, Any]:
        """Inverse of :meth:`from_dict`."""
        return {
            "name": self.name,
            "initial_scenes": list(self.initial_scenes),
            "engine": {
                "max_frames": self.max_frames,
                "frame_interval_ms": self.frame_interval_ms,
                "trace_documents": self.trace_documents,
            },
        }


class ConfigError(Exception):
    """Raised when engine configuration cannot be loaded."""

    def __init__(self, path: Path, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Failed to load engine config at {path}: {reason}")


def _apply_env_overrides(config: EngineConfig, path: Path) -> EngineConfig:
    raw = os.getenv(MAX_FRAMES_ENV)
    if raw:
        try:
            config.max_frames = int(raw)
        except ValueError as e:
            raise ConfigError(path, f"{MAX_FRAMES_ENV} must be an integer, got {raw!r}") from e
        if config.max_frames < 1:
            raise ConfigError(path, f"{MAX_FRAMES_ENV} must be at least 1")
    return config


def load_engine_config(path: Path) -> EngineConfig:
    """Load engine configuration from a YAML file.

    ``path`` may be the file itself or a directory holding ``storyframe.yaml``.
    ``STORYFRAME_MAX_FRAMES`` in the environment overrides the file.

    Args:
        path: Config file or directory.

    Returns:
        EngineConfig instance.

    Raises:
        ConfigError: If config cannot be loaded.
    """
    config_path = path / CONFIG_FILENAME if path.is_dir() else path

    if not config_path.exists():
        raise ConfigError(config_path, "File not found")

    yaml = YAML()
    try:
        with config_path.open("r", encoding="utf-8") as f:
            data = yaml.load(f)

        if data is None:
            raise ConfigError(config_path, "Empty file")
        if not isinstance(data, dict):
            raise ConfigError(config_path, "Top level must be a mapping")

        config = EngineConfig.from_dict(dict(data))
    except Exception as e:
        if isinstance(e, ConfigError):
            raise
        raise ConfigError(config_path, str(e)) from e

    return _apply_env_overrides(config, config_path)


def create_default_config(name: str = DEFAULT_NAME) -> EngineConfig:
    """Create a default engine configuration.

    Args:
        name: Game name.

    Returns:
        EngineConfig with default values.
    """
    return EngineConfig(name=name)


def write_engine_config(config: EngineConfig, path: Path) -> Path:
    """Write ``config`` as YAML.

    Args:
        config: Configuration to write.
        path: Target file, or a directory to write ``storyframe.yaml`` into.

    Returns:
        Path of the written file.
    """
    config_path = path / CONFIG_FILENAME if path.is_dir() else path
    config_path.parent.mkdir(parents=True, exist_ok=True)

    yaml_writer = YAML()
    yaml_writer.default_flow_style = False
    with config_path.open("w", encoding="utf-8") as f:
        yaml_writer.dump(config.to_dict(), f)
    return config_path


__all__ = [
    "CONFIG_FILENAME",
    "ConfigError",
    "EngineConfig",
    "create_default_config",
    "load_engine_config",
    "write_engine_config",
]
