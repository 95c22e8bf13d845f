"""Tests for engine configuration."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from storyframe.runtime.config import (
    CONFIG_FILENAME,
    ConfigError,
    EngineConfig,
    create_default_config,
    load_engine_config,
    write_engine_config,
)

if TYPE_CHECKING:
    from pathlib import Path


@pytest.fixture(autouse=True)
def no_env_override(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("STORYFRAME_MAX_FRAMES", raising=False)


# --- Tests for EngineConfig ---


class TestEngineConfig:
    """Tests for EngineConfig.from_dict."""

    def test_from_empty_dict_uses_defaults(self) -> None:
        """Missing keys fall back to defaults."""
        config = EngineConfig.from_dict({})

        assert config.name == "storyframe"
        assert config.initial_scenes == ["Splash"]
        assert config.max_frames == 1000
        assert config.frame_interval_ms == 16.0
        assert config.trace_documents is False

    def test_from_dict_reads_engine_section(self) -> None:
        """Frame settings live under 'engine'."""
        config = EngineConfig.from_dict(
            {
                "name": "demo",
                "initial_scenes": ["Title"],
                "engine": {"max_frames": 5, "frame_interval_ms": 33, "trace_documents": True},
            }
        )

        assert config.name == "demo"
        assert config.initial_scenes == ["Title"]
        assert config.max_frames == 5
        assert config.frame_interval_ms == 33.0
        assert config.trace_documents is True

    def test_initial_scenes_must_be_a_list_of_names(self) -> None:
        """A bare string is not a scene list."""
        with pytest.raises(ValueError, match="initial_scenes"):
            EngineConfig.from_dict({"initial_scenes": "Splash"})

    def test_max_frames_must_be_positive(self) -> None:
        """Zero frames is rejected."""
        with pytest.raises(ValueError, match="max_frames"):
            EngineConfig.from_dict({"engine": {"max_frames": 0}})

    def test_to_dict_round_trips(self) -> None:
        """to_dict produces input from_dict accepts unchanged."""
        config = EngineConfig(name="x", initial_scenes=["A", "B"], max_frames=7)

        assert EngineConfig.from_dict(config.to_dict()) == config

    def test_create_default_config(self) -> None:
        """Default config only differs by name."""
        config = create_default_config("my_game")

        assert config.name == "my_game"
        assert config.initial_scenes == ["Splash"]


class TestLoadEngineConfig:
    """Tests for load_engine_config and write_engine_config."""

    def test_load_from_file(self, tmp_path: Path) -> None:
        """A YAML file is parsed into an EngineConfig."""
        config_file = tmp_path / "game.yaml"
        config_file.write_text(
            "name: demo\ninitial_scenes:\n  - Title\nengine:\n  max_frames: 12\n"
        )

        config = load_engine_config(config_file)

        assert config.name == "demo"
        assert config.initial_scenes == ["Title"]
        assert config.max_frames == 12

    def test_load_from_directory(self, tmp_path: Path) -> None:
        """A directory is searched for storyframe.yaml."""
        (tmp_path / CONFIG_FILENAME).write_text("name: from_dir\n")

        assert load_engine_config(tmp_path).name == "from_dir"

    def test_missing_file(self, tmp_path: Path) -> None:
        """A missing file is a ConfigError."""
        with pytest.raises(ConfigError, match="File not found") as exc_info:
            load_engine_config(tmp_path / "nope.yaml")

        assert exc_info.value.path == tmp_path / "nope.yaml"

    def test_empty_file(self, tmp_path: Path) -> None:
        """An empty file is a ConfigError."""
        config_file = tmp_path / CONFIG_FILENAME
        config_file.write_text("")

        with pytest.raises(ConfigError, match="Empty file"):
            load_engine_config(config_file)

    def test_non_mapping_file(self, tmp_path: Path) -> None:
        """The top level must be a mapping."""
        config_file = tmp_path / CONFIG_FILENAME
        config_file.write_text("- a\n- b\n")

        with pytest.raises(ConfigError, match="mapping"):
            load_engine_config(config_file)

    def test_invalid_yaml(self, tmp_path: Path) -> None:
        """Parser errors are wrapped in ConfigError."""
        config_file = tmp_path / CONFIG_FILENAME
        config_file.write_text("name: [unclosed\n")

        with pytest.raises(ConfigError):
            load_engine_config(config_file)

    def test_invalid_values(self, tmp_path: Path) -> None:
        """Validation errors are wrapped in ConfigError."""
        config_file = tmp_path / CONFIG_FILENAME
        config_file.write_text("engine:\n  max_frames: -3\n")

        with pytest.raises(ConfigError, match="max_frames"):
            load_engine_config(config_file)

    def test_env_overrides_max_frames(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """STORYFRAME_MAX_FRAMES wins over the file."""
        config_file = tmp_path / CONFIG_FILENAME
        config_file.write_text("engine:\n  max_frames: 10\n")
        monkeypatch.setenv("STORYFRAME_MAX_FRAMES", "3")

        assert load_engine_config(config_file).max_frames == 3

    def test_invalid_env_override(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """A non-integer override is a ConfigError."""
        config_file = tmp_path / CONFIG_FILENAME
        config_file.write_text("name: x\n")
        monkeypatch.setenv("STORYFRAME_MAX_FRAMES", "lots")

        with pytest.raises(ConfigError, match="STORYFRAME_MAX_FRAMES"):
            load_engine_config(config_file)

    def test_write_then_load(self, tmp_path: Path) -> None:
        """Written configs load back unchanged."""
        config = EngineConfig(
            name="saved", initial_scenes=["Splash", "Title"], trace_documents=True
        )

        written = write_engine_config(config, tmp_path)

        assert written == tmp_path / CONFIG_FILENAME
        assert load_engine_config(tmp_path) == config
