"""Unit tests for configuration loader."""

import os
from pathlib import Path
from unittest.mock import patch

import pytest
import yaml

from outfitter.config.loader import (
    _load_from_file,
    get_env_overrides,
    load_config,
    merge_overrides,
    split_comma_list,
)
from outfitter.config.models import AptUnitConfig, ConfigOverrides, OutfitterConfig


class TestLoadFromFile:
    """Tests for _load_from_file function."""

    def test_load_valid_yaml_file(self, tmp_path: Path) -> None:
        """Test loading a valid YAML configuration file."""
        config_file = tmp_path / "config.yaml"
        config_data = {
            "units": [
                {"name": "base", "kind": "apt", "required": True, "packages": ["git"]},
                {
                    "name": "ollama",
                    "kind": "script",
                    "url": "https://ollama.com/install.sh",
                    "binary": "ollama",
                },
            ],
            "settings": {"grace-period": 5},
        }
        config_file.write_text(yaml.dump(config_data))

        config = _load_from_file(config_file)
        assert isinstance(config, OutfitterConfig)
        assert config.unit_names() == ["base", "ollama"]
        assert isinstance(config.units[0], AptUnitConfig)
        assert config.units[0].required is True
        assert config.settings.grace_period == 5

    def test_load_file_not_found(self, tmp_path: Path) -> None:
        """Test that FileNotFoundError is raised for non-existent file."""
        non_existent = tmp_path / "does-not-exist.yaml"
        with pytest.raises(FileNotFoundError, match="Configuration file not found"):
            _load_from_file(non_existent)

    def test_load_invalid_yaml(self, tmp_path: Path) -> None:
        """Test that ValueError is raised for invalid YAML."""
        config_file = tmp_path / "invalid.yaml"
        config_file.write_text("invalid: yaml: content: [[[")

        with pytest.raises(ValueError, match="Invalid YAML"):
            _load_from_file(config_file)

    def test_load_non_dict_yaml(self, tmp_path: Path) -> None:
        """Test that ValueError is raised when YAML is not a mapping."""
        config_file = tmp_path / "list.yaml"
        config_file.write_text("- item1\n- item2")

        with pytest.raises(ValueError, match="must contain a YAML mapping"):
            _load_from_file(config_file)

    def test_load_empty_file(self, tmp_path: Path) -> None:
        """Test loading an empty YAML file (treated as empty config)."""
        config_file = tmp_path / "empty.yaml"
        config_file.write_text("")

        config = _load_from_file(config_file)
        assert config.units == []

    def test_load_unknown_kind(self, tmp_path: Path) -> None:
        """Test that an unknown unit kind is rejected."""
        config_file = tmp_path / "bad.yaml"
        config_file.write_text(yaml.dump({"units": [{"name": "x", "kind": "snap"}]}))

        with pytest.raises(ValueError, match="Failed to parse configuration"):
            _load_from_file(config_file)

    def test_load_duplicate_names(self, tmp_path: Path) -> None:
        """Test that duplicate unit names are rejected."""
        unit = {"name": "x", "kind": "apt", "packages": ["git"]}
        config_file = tmp_path / "dup.yaml"
        config_file.write_text(yaml.dump({"units": [unit, unit]}))

        with pytest.raises(ValueError, match="duplicate unit name"):
            _load_from_file(config_file)


class TestMergeOverrides:
    """Tests for merge_overrides function."""

    def test_lists_combine_without_duplicates(self) -> None:
        """Test that CLI and environment lists combine, CLI first."""
        cli = ConfigOverrides(only=["nvm", "pyenv"], skip=["nix"])
        env = ConfigOverrides(only=["pyenv", "uv"])

        merged = merge_overrides(cli, env)
        assert merged.only == ["nvm", "pyenv", "uv"]
        assert merged.skip == ["nix"]

    def test_dry_run_from_either_source(self) -> None:
        """Test that a dry run requested anywhere wins."""
        assert merge_overrides(ConfigOverrides(), ConfigOverrides(dry_run=True)).dry_run
        assert merge_overrides(ConfigOverrides(dry_run=True), ConfigOverrides()).dry_run
        assert not merge_overrides(ConfigOverrides(), ConfigOverrides()).dry_run


class TestGetEnvOverrides:
    """Tests for get_env_overrides function."""

    def test_no_env_vars(self) -> None:
        """Test with no environment variables set."""
        with patch.dict(os.environ, {}, clear=True):
            overrides = get_env_overrides()
            assert overrides.only == []
            assert overrides.skip == []
            assert overrides.dry_run is False

    def test_dry_run_true_variants(self) -> None:
        """Test the accepted spellings of a true boolean."""
        for value in ["1", "true", "TRUE", "yes"]:
            with patch.dict(os.environ, {"OUTFITTER_DRY_RUN": value}, clear=True):
                assert get_env_overrides().dry_run is True

    def test_dry_run_false_variants(self) -> None:
        """Test values that do not enable a dry run."""
        for value in ["0", "false", "no", ""]:
            with patch.dict(os.environ, {"OUTFITTER_DRY_RUN": value}, clear=True):
                assert get_env_overrides().dry_run is False

    def test_list_env_vars(self) -> None:
        """Test comma-separated unit lists with whitespace."""
        env_vars = {"OUTFITTER_ONLY": " nvm , pyenv ", "OUTFITTER_SKIP": "nix"}
        with patch.dict(os.environ, env_vars, clear=True):
            overrides = get_env_overrides()
            assert overrides.only == ["nvm", "pyenv"]
            assert overrides.skip == ["nix"]

    def test_list_env_vars_only_commas(self) -> None:
        """Test that a list of blanks yields nothing."""
        with patch.dict(os.environ, {"OUTFITTER_SKIP": " , , , "}, clear=True):
            assert get_env_overrides().skip == []


class TestSplitCommaList:
    """Tests for split_comma_list function."""

    def test_split_repeated_and_comma_separated(self) -> None:
        """Test splitting repeated flags that also contain commas."""
        assert split_comma_list(["a,b", "c", " , d"]) == ["a", "b", "c", "d"]


class TestLoadConfig:
    """Tests for load_config function."""

    def test_load_from_preset(self) -> None:
        """Test loading configuration from a preset."""
        config = load_config(preset="minimal")
        assert "base-packages" in config.unit_names()
        assert "nix" not in config.unit_names()

    def test_load_from_file(self, tmp_path: Path) -> None:
        """Test loading configuration from an explicit file."""
        config_file = tmp_path / "custom.yaml"
        config_file.write_text(
            yaml.dump({"units": [{"name": "tools", "kind": "apt", "packages": ["jq"]}]})
        )

        config = load_config(config_file=str(config_file))
        assert config.unit_names() == ["tools"]

    def test_preset_takes_precedence_over_file(self, tmp_path: Path) -> None:
        """Test that --preset wins over --config."""
        config_file = tmp_path / "custom.yaml"
        config_file.write_text(
            yaml.dump({"units": [{"name": "tools", "kind": "apt", "packages": ["jq"]}]})
        )

        config = load_config(config_file=str(config_file), preset="minimal")
        assert "tools" not in config.unit_names()

    def test_load_from_default_location(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Test loading ./outfitter.yaml when no file or preset is given."""
        monkeypatch.chdir(tmp_path)
        (tmp_path / "outfitter.yaml").write_text(
            yaml.dump({"units": [{"name": "local", "kind": "apt", "packages": ["jq"]}]})
        )

        config = load_config()
        assert config.unit_names() == ["local"]

    def test_load_uses_workstation_preset_when_no_file(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Test that the workstation preset is the fallback."""
        monkeypatch.chdir(tmp_path)

        config = load_config()
        assert "nix" in config.unit_names()
        assert "cuda" in config.unit_names()

    def test_load_with_overrides(self) -> None:
        """Test that overrides are attached to the loaded configuration."""
        overrides = ConfigOverrides(only=["nvm"], dry_run=True)
        config = load_config(preset="minimal", overrides=overrides)
        assert config.overrides.only == ["nvm"]
        assert config.overrides.dry_run is True
