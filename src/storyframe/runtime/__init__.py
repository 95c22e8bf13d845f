"""Engine configuration and the headless frame driver."""

from storyframe.runtime.config import (
    ConfigError,
    EngineConfig,
    create_default_config,
    load_engine_config,
    write_engine_config,
)
from storyframe.runtime.driver import (
    FrameClock,
    FrameDriver,
    RunSummary,
    build_stack,
    resolve_scene_class,
)

__all__ = [
    "ConfigError",
    "EngineConfig",
    "FrameClock",
    "FrameDriver",
    "RunSummary",
    "build_stack",
    "create_default_config",
    "load_engine_config",
    "resolve_scene_class",
    "write_engine_config",
]
