"""Tests for config loading."""

from __future__ import annotations

from pathlib import Path

from mcpdoctor.core.config import DoctorConfig, get_backup_dir, get_home_dir, load_config


class TestLoadConfig:
    def test_defaults_when_no_config_file(self, tmp_path: Path):
        """Without a mcpdoctor.toml, load_config should return defaults."""
        config = load_config(tmp_path)

        assert isinstance(config, DoctorConfig)
        assert config.repair.probe_timeout == 5.0
        assert config.repair.mutation_timeout == 30.0
        assert config.backup.max_per_client == 10
        assert config.backup.interval_hours == 24.0
        assert config.ai.max_tokens == 2000
        assert config.logging.level == "WARNING"

    def test_loads_repair_section(self, tmp_path: Path):
        toml_content = """\
[repair]
probe_timeout = 2
mutation_timeout = 10.5
search_dirs = ["/opt/tools"]

[repair.alternatives]
python = ["python3.12", "python3"]
"""
        (tmp_path / "mcpdoctor.toml").write_text(toml_content)
        config = load_config(tmp_path)

        assert config.repair.probe_timeout == 2.0
        assert config.repair.mutation_timeout == 10.5
        assert config.repair.search_dirs == ["/opt/tools"]
        assert config.repair.alternatives == {"python": ["python3.12", "python3"]}

    def test_loads_backup_ai_and_logging_sections(self, tmp_path: Path):
        toml_content = """\
[backup]
directory = "/tmp/mcpdoctor-backups"
max_per_client = 3
interval_hours = 6

[ai]
model = "claude-test"
timeout = 15

[logging]
level = "debug"
"""
        (tmp_path / "mcpdoctor.toml").write_text(toml_content)
        config = load_config(tmp_path)

        assert config.backup.directory == Path("/tmp/mcpdoctor-backups")
        assert config.backup.max_per_client == 3
        assert config.backup.interval_hours == 6.0
        assert config.ai.model == "claude-test"
        assert config.ai.timeout == 15
        assert config.logging.level == "DEBUG"


class TestDirectories:
    def test_home_dir_honours_env(self, tmp_path: Path, monkeypatch):
        monkeypatch.setenv("MCPDOCTOR_HOME", str(tmp_path / "home"))
        assert get_home_dir() == tmp_path / "home"
        assert (tmp_path / "home").is_dir()

    def test_backup_dir_from_config(self, tmp_path: Path):
        config = DoctorConfig()
        config.backup.directory = tmp_path / "b"
        assert get_backup_dir(config) == tmp_path / "b"
        assert (tmp_path / "b").is_dir()

    def test_backup_dir_defaults_under_home(self, tmp_path: Path, monkeypatch):
        monkeypatch.setenv("MCPDOCTOR_HOME", str(tmp_path))
        assert get_backup_dir() == tmp_path / "backups"
