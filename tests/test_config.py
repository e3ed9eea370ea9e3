from calcagent.config import Settings


def test_defaults(monkeypatch):
    for name in ("OLLAMA_MODEL", "EXTRACTION_MODEL", "BACKGROUND_EXTRACTION", "LOG_LLM_TRAFFIC"):
        monkeypatch.delenv(name, raising=False)
    settings = Settings(_env_file=None)

    assert settings.ollama_base_url == "http://localhost:11434"
    assert settings.extraction_model is None
    assert settings.background_extraction is True
    assert settings.log_llm_traffic is False
    assert settings.state_path.endswith(".json")
    assert "calculate" in settings.system_prompt


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("OLLAMA_MODEL", "llama3.2")
    monkeypatch.setenv("BACKGROUND_EXTRACTION", "false")
    monkeypatch.setenv("REQUEST_TIMEOUT", "30")

    settings = Settings(_env_file=None)

    assert settings.ollama_model == "llama3.2"
    assert settings.background_extraction is False
    assert settings.request_timeout == 30.0


def test_explicit_values_win(monkeypatch):
    monkeypatch.setenv("OLLAMA_MODEL", "from-env")
    settings = Settings(_env_file=None, ollama_model="explicit")
    assert settings.ollama_model == "explicit"
