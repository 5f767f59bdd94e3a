from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import BaseModel
from typing import Literal
import yaml
import os

class RetrievalConfig(BaseModel):
    section_threshold: float = 0.5
    visual_threshold: float = 0.3
    equation_threshold: float = 0.3
    reference_threshold: float = 0.3
    code_threshold: float = 0.3
    max_references: int = 10
    max_chunks_cap: int = 15
    secondary_chunk_bonus: int = 2
    secondary_merge_factor: float = 0.5
    base_max_chunks: dict[str, int] = {
        "SUMMARY": 6,
        "METHODOLOGY": 10,
        "TECHNICAL_DETAILS": 10,
        "RESULTS": 8,
        "COMPARISON": 12,
        "SPECIFIC_REFERENCE": 4,
    }
    default_max_chunks: int = 8
    table_rows_preview: int = 500
    priority_source: Literal["query_type", "requirements"] = "query_type"

class PromptConfig(BaseModel):
    history_turns: int = 3
    abstract_preview: int = 500
    history_message_preview: int = 300

class LLMConfig(BaseModel):
    provider: str = "openrouter"
    base_url: str = "https://openrouter.ai/api/v1"
    model: str = "google/gemini-2.0-flash-001"
    timeout_seconds: float = 60.0
    title_max_tokens: int = 100
    title_temperature: float = 0.3

class StorageConfig(BaseModel):
    papers_path: str = "./data/papers"
    chat_path: str = "./data/chat"

class AppSettings(BaseSettings):
    retrieval: RetrievalConfig = RetrievalConfig()
    prompt: PromptConfig = PromptConfig()
    llm: LLMConfig = LLMConfig()
    storage: StorageConfig = StorageConfig()
    openrouter_api_key: str = ""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

def load_settings(config_path: str = "paperchat/config/config.yaml") -> AppSettings:
    """Loads settings from config.yaml and applies env overrides."""

    paths_to_try = [
        config_path,
        "config.yaml",
        "config/config.yaml",
        os.path.join(os.path.dirname(__file__), "config.yaml")
    ]

    yaml_data = {}
    for path in paths_to_try:
        if os.path.exists(path):
            with open(path, "r", encoding="utf-8") as f:
                yaml_data = yaml.safe_load(f) or {}
            break

    # Manually map yaml sections to our sub-models
    return AppSettings(
        retrieval=RetrievalConfig(**yaml_data.get("retrieval", {})),
        prompt=PromptConfig(**yaml_data.get("prompt", {})),
        llm=LLMConfig(**yaml_data.get("llm", {})),
        storage=StorageConfig(**yaml_data.get("storage", {}))
    )

# Global settings instance
settings = load_settings()
