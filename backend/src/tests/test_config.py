import pytest

from production_agent.config import AppSettings, ModelSettings, MongoSettings, validate_settings
from production_agent.exceptions import ConfigurationError


def test_missing_mongo_uri_is_fatal(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    with pytest.raises(ConfigurationError):
        validate_settings(AppSettings(mongo=MongoSettings(uri=None)))


def test_missing_openai_key_is_fatal(monkeypatch):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    with pytest.raises(ConfigurationError):
        validate_settings(AppSettings(mongo=MongoSettings(uri="mongodb://localhost:27017")))


def test_ollama_needs_no_key(monkeypatch):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    app_settings = AppSettings(
        mongo=MongoSettings(uri="mongodb://localhost:27017"),
        model=ModelSettings(llm_provider="ollama"),
    )
    assert validate_settings(app_settings) is app_settings


def test_nested_environment_variables(monkeypatch):
    monkeypatch.setenv("AGENT_MONGO__DATABASE", "factory")
    monkeypatch.setenv("AGENT_QUERY__COMPONENT_AWARE", "false")
    app_settings = AppSettings()
    assert app_settings.mongo.database == "factory"
    assert app_settings.query.component_aware is False
