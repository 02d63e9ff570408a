"""Tests for Config loading."""

import json

from unsent.config import Config


class TestConfigLoad:
    def test_defaults_without_file(self, tmp_path, monkeypatch):
        monkeypatch.delenv("UNSENT_API_PORT", raising=False)
        cfg = Config.load(tmp_path / "missing.json")
        assert cfg.api_port == 8766
        assert cfg.event_log_capacity == 1000
        assert cfg.stages_file is None

    def test_json_overrides(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"event_log_capacity": 250, "not_a_field": 1}))
        cfg = Config.load(path)
        assert cfg.event_log_capacity == 250
        assert not hasattr(cfg, "not_a_field")

    def test_env_overrides_json(self, tmp_path, monkeypatch):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"api_port": 9000}))
        monkeypatch.setenv("UNSENT_API_PORT", "9100")
        monkeypatch.setenv("UNSENT_PAUSE_THRESHOLD_MS", "1500")
        cfg = Config.load(path)
        assert cfg.api_port == 9100
        assert cfg.pause_threshold_ms == 1500.0

    def test_env_sets_optional_string(self, tmp_path, monkeypatch):
        monkeypatch.setenv("UNSENT_STAGES_FILE", "/etc/unsent/stages.json")
        cfg = Config.load(tmp_path / "missing.json")
        assert cfg.stages_file == "/etc/unsent/stages.json"

    def test_malformed_file_ignored(self, tmp_path, caplog):
        path = tmp_path / "config.json"
        path.write_text("{broken")
        cfg = Config.load(path)
        assert cfg.api_port == Config().api_port
        assert "malformed config file" in caplog.text
