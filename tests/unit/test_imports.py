from rulecraft.infra.config import AppSettings
from rulecraft.memory.store import RuleStore
from rulecraft.services.telemetry import configure_logging


def test_imports_and_basic_objects(tmp_path, monkeypatch):
    monkeypatch.delenv("GROQ_API_KEY", raising=False)
    cfg = AppSettings(_env_file=None)
    assert cfg.environment == "dev"
    assert cfg.ruling_max_tokens == 1024
    assert cfg.port == 3000
    assert not cfg.ruling_configured
    configure_logging(json_logs=True, level="INFO")
    store = RuleStore(sqlite_path=str(tmp_path / "test.db"))
    assert store.count_rules() == 0
    assert store.list_rules() == []


def test_settings_read_environment(monkeypatch):
    monkeypatch.setenv("GROQ_API_KEY", "gsk-test")
    monkeypatch.setenv("RULING_MODEL", "some-model")
    monkeypatch.setenv("PORT", "8080")
    cfg = AppSettings(_env_file=None)
    assert cfg.ruling_configured
    assert cfg.ruling_model == "some-model"
    assert cfg.port == 8080


def test_blank_api_key_is_not_configured():
    cfg = AppSettings(_env_file=None, groq_api_key="   ")
    assert not cfg.ruling_configured
