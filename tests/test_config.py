"""
Tests for configuration loading.
"""
import textwrap
from pathlib import Path

from dashboard.config import Config


def test_defaults_when_file_missing(tmp_path, monkeypatch):
    for name in ("PIPELINE_DB", "PIPELINE_API_URL", "PIPELINE_API_SECRET", "PIPELINE_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    cfg = Config.load(str(tmp_path / "missing.yaml"))
    assert cfg.api_url == "http://127.0.0.1:3000"
    assert cfg.port == 3000
    assert cfg.db_path == str(Path("~/.local/share/dashboard/pipeline.db").expanduser())


def test_loads_yaml_and_ignores_unknown_keys(tmp_path, monkeypatch):
    monkeypatch.delenv("PIPELINE_API_URL", raising=False)
    monkeypatch.delenv("PIPELINE_DB", raising=False)
    path = tmp_path / "config.yaml"
    path.write_text(textwrap.dedent("""
        api_url: http://dashboard.internal:8080
        request_timeout: 2.5
        port: 8080
        db_path: ~/board.db
        something_else: true
    """))
    cfg = Config.load(str(path))
    assert cfg.api_url == "http://dashboard.internal:8080"
    assert cfg.request_timeout == 2.5
    assert cfg.port == 8080
    assert cfg.db_path == str(Path.home() / "board.db")
    assert not hasattr(cfg, "something_else")


def test_env_overrides_file(tmp_path, monkeypatch):
    path = tmp_path / "config.yaml"
    path.write_text("api_url: http://from-file\n")
    monkeypatch.setenv("PIPELINE_API_URL", "http://from-env")
    monkeypatch.setenv("PIPELINE_DB", str(tmp_path / "env.db"))
    cfg = Config.load(str(path))
    assert cfg.api_url == "http://from-env"
    assert cfg.db_path == str(tmp_path / "env.db")


def test_invalid_yaml_falls_back_to_defaults(tmp_path, monkeypatch):
    monkeypatch.delenv("PIPELINE_API_URL", raising=False)
    path = tmp_path / "config.yaml"
    path.write_text("api_url: [unclosed\n")
    cfg = Config.load(str(path))
    assert cfg.api_url == "http://127.0.0.1:3000"


def test_method_named_keys_are_ignored(tmp_path, monkeypatch):
    monkeypatch.delenv("PIPELINE_API_URL", raising=False)
    path = tmp_path / "config.yaml"
    path.write_text("load: true\nresolve_paths: 1\napi_url: http://kept\n")
    cfg = Config.load(str(path))
    assert cfg.api_url == "http://kept"
