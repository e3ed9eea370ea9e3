from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Ollama
    ollama_base_url: str = "http://localhost:11434"
    ollama_model: str = "qwen3:8b"
    extraction_model: str | None = None  # falls back to ollama_model
    request_timeout: float = 120.0
    system_prompt: str = (
        "You are a calculator with memory. Answer in the same language the user writes in.\n"
        "Always use the calculate tool for arithmetic, never compute in your head.\n"
        "When the user wants to keep a value (e.g. 'remember that as discount'), "
        "confirm that it was saved.\n"
        "When the user asks about a saved value, use the memory provided in the context."
    )

    # Memory
    state_path: str = "data/calculator_state.json"
    background_extraction: bool = True

    # Logging
    log_level: str = "INFO"
    log_json: bool = False
    log_file: str = "data/calcagent.log"
    log_llm_traffic: bool = False

    model_config = {"env_file": ".env"}
