"""Tests for configuration loading and the CLI."""

import logging
from pathlib import Path

import pytest
import yaml

from conftest import create_legacy_db
from launcher_bootstrap.cli import main
from launcher_bootstrap.config.loader import load_config
from launcher_bootstrap.core.exceptions import ConfigFileNotFoundError, ConfigValidationError
from launcher_bootstrap.utils.logging import get_logger, setup_logging


def write_config(tmp_path: Path, **overrides) -> Path:
    raw = {
        "logging": {"file": "logs/launcher.log", "level": "DEBUG"},
        "paths": {
            "source_db": "legacy.db",
            "target_db": "state.sqlite",
            "key_file": "secret.key",
        },
        "remote_api": {"base_url": "https://api.test/"},
        "ludusavi": {"manifest_url": "https://manifest.test/manifest.yaml"},
    }
    raw.update(overrides)
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump(raw))
    return path


class TestLoadConfig:

    def test_relative_paths_resolved_against_config(self, tmp_path: Path):
        config = load_config(write_config(tmp_path))

        assert config.paths.source_db == tmp_path / "legacy.db"
        assert config.logging.file == tmp_path / "logs" / "launcher.log"
        assert config.remote_api.base_url == "https://api.test"
        assert config.aria2.rpc_port == 6800
        assert config.startup.event_modules == ["launcher_bootstrap.events"]

    def test_missing_file(self, tmp_path: Path):
        with pytest.raises(ConfigFileNotFoundError):
            load_config(tmp_path / "missing.yaml")

    def test_missing_sections_reported_together(self, tmp_path: Path):
        path = tmp_path / "config.yaml"
        path.write_text(yaml.safe_dump({"logging": {"file": "x.log"}}))

        with pytest.raises(ConfigValidationError) as exc_info:
            load_config(path)

        errors = exc_info.value.errors
        assert "Missing 'paths' section" in errors
        assert "Missing 'remote_api.base_url'" in errors
        assert "Missing 'ludusavi' section" in errors

    def test_empty_sections_use_defaults(self, tmp_path: Path):
        path = tmp_path / "config.yaml"
        path.write_text(
            "paths:\n"
            "  source_db: legacy.db\n"
            "  target_db: state.sqlite\n"
            "remote_api:\n"
            "  base_url: https://api.test\n"
            "ludusavi:\n"
            "  manifest_url: https://m.test/manifest.yaml\n"
            "aria2:\n"
            "startup:\n"
            "logging:\n"
        )

        config = load_config(path)

        assert config.aria2.rpc_port == 6800
        assert config.logging.file == tmp_path / "launcher.log"

    def test_empty_required_section_is_a_validation_error(self, tmp_path: Path):
        path = write_config(tmp_path, remote_api=None, aria2=["not", "a", "mapping"])

        with pytest.raises(ConfigValidationError) as exc_info:
            load_config(path)

        errors = exc_info.value.errors
        assert "Missing 'remote_api.base_url'" in errors
        assert "'aria2' must be a mapping" in errors


class TestCli:

    @pytest.fixture(autouse=True)
    def reset_logging(self):
        yield
        logging.getLogger("launcher_bootstrap").handlers.clear()

    def test_no_command_prints_help(self):
        assert main([]) == 0

    def test_migrate_then_status(self, tmp_path: Path, capsys):
        create_legacy_db(tmp_path / "legacy.db")
        config_path = write_config(tmp_path)

        assert main(["migrate", "--config", str(config_path)]) == 0
        assert main(["migrate", "--config", str(config_path)]) == 0

        assert main(["status", "--config", str(config_path)]) == 0
        out = capsys.readouterr().out
        assert '"phase": "done"' in out
        assert '"games"' in out

    def test_bad_config_exit_code(self, tmp_path: Path):
        assert main(["status", "--config", str(tmp_path / "missing.yaml")]) == 1


class TestLogging:

    @pytest.fixture(autouse=True)
    def reset_logging(self):
        yield
        logging.getLogger("launcher_bootstrap").handlers.clear()

    def test_module_loggers_share_package_handlers(self):
        assert get_logger("launcher_bootstrap.core.migrator").parent is get_logger()
        assert get_logger("tests").name == "launcher_bootstrap.tests"
        assert get_logger().name == "launcher_bootstrap"

    def test_secrets_are_redacted_in_log_file(self, tmp_path: Path):
        log_file = tmp_path / "logs" / "launcher.log"
        setup_logging(log_file, level="DEBUG")

        get_logger("launcher_bootstrap.services.aria2").debug(
            "Spawning: aria2c --enable-rpc --rpc-secret=hunter2"
        )
        get_logger("launcher_bootstrap.services.providers").info(
            "Authorization: %s", "Bearer rd-secret"
        )
        for handler in logging.getLogger("launcher_bootstrap").handlers:
            handler.flush()

        text = log_file.read_text()
        assert "--rpc-secret=***" in text
        assert "Bearer ***" in text
        assert "hunter2" not in text
        assert "rd-secret" not in text
        assert "launcher_bootstrap.services.aria2" in text
