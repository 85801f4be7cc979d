"""
Application configuration for UMKM Strategi.
Loads settings from environment variables / a .env file.
"""

from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    """Application settings"""

    # === Application ===
    app_name: str = "UMKM Strategi"
    debug: bool = False

    # === LLM (OpenAI-compatible APIs) ===
    # Without a key the AI step is skipped and the local rule-based plan is used
    openai_api_key: Optional[str] = None
    openai_model: str = "gpt-4o-mini"
    openai_base_url: str = "https://api.openai.com/v1"

    # === LLM retry ===
    llm_max_retries: int = 2
    # Per HTTP call; the total covers retries and the repair call of one plan
    llm_timeout_seconds: int = 60
    llm_total_timeout_seconds: int = 90
    # response_format=json_object; disable for gateways that reject it
    llm_json_mode: bool = True
    llm_temperature: float = 0.3
    llm_max_tokens: int = 2500

    # === Analysis window ===
    default_months_back: int = 12
    min_analysis_months: int = 2

    # === Import limits ===
    max_file_size_mb: int = 5
    import_chunk_size: int = 500
    top_expenses_per_month: int = 5

    # === Plan item counts (sent in the schema and enforced locally) ===
    quick_wins_min: int = 3
    quick_wins_max: int = 5
    initiatives_min: int = 3
    initiatives_max: int = 6

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


# Global settings instance
# Loaded on module import
settings = Settings()
