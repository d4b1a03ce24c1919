"""Tests for project context and configuration."""

import pytest
import yaml

from simple_vc.config import SvcConfig, load_config, save_config
from simple_vc.constants import DEFAULT_IGNORE_RULES
from simple_vc.context import ProjectContext
from simple_vc.errors import ConfigError, NotInitializedError, ValidationFailedError
from simple_vc.ignore import load_rules
from simple_vc.ops import init_project, open_project


class TestConfig:

    def test_missing_file_gives_defaults(self, tmp_path):
        config = load_config(tmp_path / "config.yaml", "demo")
        assert config == SvcConfig(project_name="demo")
        assert config.debounce_seconds == 0.3
        assert config.encoding == "utf-8"
        assert config.ignore_file == ".svcignore"

    def test_round_trip(self, tmp_path):
        path = tmp_path / "config.yaml"
        save_config(SvcConfig(project_name="demo", debounce_seconds=1.5), path)

        assert yaml.safe_load(path.read_text())["debounce_seconds"] == 1.5
        assert load_config(path, "ignored").debounce_seconds == 1.5

    def test_unparsable_yaml(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("debounce_seconds: [unclosed\n")
        with pytest.raises(ConfigError):
            load_config(path, "demo")

    def test_invalid_value(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("debounce_seconds: soon\n")
        with pytest.raises(ConfigError):
            load_config(path, "demo")

    def test_not_a_mapping(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ConfigError):
            load_config(path, "demo")


class TestProjectContext:

    def test_not_initialized(self, tmp_path):
        with pytest.raises(NotInitializedError):
            ProjectContext(tmp_path)

    def test_found_from_subdirectory(self, project, tmp_path):
        sub = tmp_path / "a" / "b"
        sub.mkdir(parents=True)

        assert ProjectContext(sub).root == tmp_path.resolve()

    def test_to_project_relative(self, ctx, tmp_path):
        assert ctx.to_project_relative("src/app.py") == "src/app.py"
        assert ctx.to_project_relative(tmp_path / "src" / "app.py") == "src/app.py"
        with pytest.raises(ValidationFailedError):
            ctx.to_project_relative(tmp_path.parent / "elsewhere.txt")


class TestInit:

    def test_init_writes_defaults(self, tmp_path):
        ctx, _, project = init_project(tmp_path)

        assert project.name == tmp_path.name
        assert ctx.config_path.exists()
        assert load_rules(ctx.ignore_path) == DEFAULT_IGNORE_RULES

    def test_init_is_idempotent_and_keeps_rules(self, tmp_path):
        ctx, _, first = init_project(tmp_path)
        ctx.ignore_path.write_text("custom\n")

        _, _, second = init_project(tmp_path)

        assert first.id == second.id
        assert load_rules(ctx.ignore_path) == ["custom"]

    def test_open_requires_database(self, tmp_path):
        (tmp_path / ".svc").mkdir()
        with pytest.raises(NotInitializedError):
            open_project(tmp_path)
