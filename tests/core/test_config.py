"""
Unit tests for configuration loading.
"""

import pytest
import yaml
from pydantic import ValidationError

from part_render.core.config import DEFAULT_IGNORED_PATTERNS, PartRenderConfig, load_config


class TestLoadConfig:
    """Test cases for load_config."""

    def test_defaults_when_no_file(self, temp_dir, monkeypatch):
        monkeypatch.chdir(temp_dir)

        config = load_config()

        assert config.project_root == "."
        assert config.bundler == "none"
        assert config.wrap_component
        assert config.ignored_patterns == DEFAULT_IGNORED_PATTERNS

    def test_yaml_file_and_cli_overrides(self, temp_dir):
        path = temp_dir / "partrender.config.yaml"
        path.write_text(yaml.safe_dump({
            "project_root": "/srv/app",
            "runtime_module": "preact",
            "import_mappings": {"el": [{"module": "tiny-dom", "name": "h"}]},
            "llm_config": {"model": "gpt-4o-mini"},
        }))

        config = load_config(str(path), {"project_root": "/override", "log_level": None})

        assert config.project_root == "/override"
        assert config.runtime_module == "preact"
        assert config.import_mappings["el"][0]["module"] == "tiny-dom"
        assert config.log_level == "INFO"
        assert config.llm_settings()["model"] == "gpt-4o-mini"
        assert config.llm_settings()["confidence_threshold"] == 0.7

    def test_explicit_missing_file_falls_back_to_defaults(self, temp_dir):
        config = load_config(str(temp_dir / "absent.yaml"))

        assert config.bundler == "none"

    def test_invalid_bundler_rejected(self, temp_dir):
        with pytest.raises(ValueError):
            load_config(str(temp_dir / "absent.yaml"), {"bundler": "rollup"})

    def test_type_validation(self):
        with pytest.raises(ValidationError):
            PartRenderConfig(watch_debounce_seconds="soon")

    def test_resolved_root(self, temp_dir):
        assert PartRenderConfig(project_root=str(temp_dir)).resolved_root() == temp_dir
