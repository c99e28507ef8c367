import json
import os

from sift.config import DEFAULT_CONFIG, Config


def test_defaults(monkeypatch):
    for key in list(os.environ):
        if key.startswith("SIFT_"):
            monkeypatch.delenv(key)
    cfg = Config()
    assert cfg.get("store.path") == "sift_models.db"
    assert cfg.get("scoring.method") == "network"
    assert cfg.get("missing.key", "fallback") == "fallback"


def test_defaults_are_not_mutated(monkeypatch):
    monkeypatch.setenv("SIFT_STORE_PATH", "/tmp/other.db")
    Config()
    assert DEFAULT_CONFIG["store"]["path"] == "sift_models.db"


def test_yaml_file_overrides(tmp_path):
    path = tmp_path / "sift.yaml"
    path.write_text("store:\n  path: /data/models.db\nscoring:\n  method: keywords\n")
    cfg = Config(str(path))
    assert cfg.get("store.path") == "/data/models.db"
    assert cfg.get("store.max_tries") == 3
    assert cfg.get("scoring.method") == "keywords"


def test_json_file_overrides(tmp_path):
    path = tmp_path / "sift.json"
    path.write_text(json.dumps({"logging": {"level": "DEBUG"}}))
    assert Config(str(path)).get("logging.level") == "DEBUG"


def test_unreadable_file_falls_back_to_defaults(tmp_path):
    path = tmp_path / "sift.toml"
    path.write_text("store = 1")
    assert Config(str(path)).get("store.path") == "sift_models.db"


def test_env_overrides_with_underscored_keys(monkeypatch):
    monkeypatch.setenv("SIFT_STORE_MAX_TRIES", "5")
    monkeypatch.setenv("SIFT_STORE_PATH", "/tmp/models.db")
    monkeypatch.setenv("SIFT_TRAINING_PROGRESS", "true")
    cfg = Config()
    assert cfg.get("store.max_tries") == 5
    assert cfg.get("store.path") == "/tmp/models.db"
    assert cfg.get("training.progress") is True

