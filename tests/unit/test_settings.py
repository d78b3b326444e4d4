from pathlib import Path

import pytest

from expense_agent import config
from expense_agent.config import Settings
from expense_agent.errors import ConfigurationError


@pytest.fixture(autouse=True)
def _no_dotenv(monkeypatch) -> None:
    monkeypatch.setattr(config, "load_dotenv", lambda *args, **kwargs: False)


def test_missing_api_key_is_fatal(monkeypatch) -> None:
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)

    with pytest.raises(ConfigurationError):
        Settings.from_env()


def test_blank_api_key_is_fatal(monkeypatch) -> None:
    monkeypatch.setenv("OPENAI_API_KEY", "   ")

    with pytest.raises(ConfigurationError):
        Settings.from_env()


def test_settings_read_from_environment(monkeypatch) -> None:
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    monkeypatch.setenv("OPENAI_MODEL", "gpt-test")
    monkeypatch.setenv("CLAIMS_DB_PATH", "/tmp/claims-test.db")
    monkeypatch.delenv("POLICY_DOCUMENT_PATH", raising=False)

    settings = Settings.from_env()

    assert settings.openai_api_key == "sk-test"
    assert settings.openai_model == "gpt-test"
    assert settings.claims_db_path == Path("/tmp/claims-test.db")
    assert settings.policy_document_path == Path("expenses-policy.docx")
    assert settings.vector_index_name == "documents"


def test_non_numeric_temperature_is_a_configuration_error(monkeypatch) -> None:
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    monkeypatch.setenv("LLM_TEMPERATURE", "warm")

    with pytest.raises(ConfigurationError):
        Settings.from_env()
