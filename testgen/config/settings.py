from pydantic_settings import BaseSettings
from typing import List, Optional


class Settings(BaseSettings):
    # API Configuration
    debug: bool = False
    environment: str = "development"
    api_host: str = "0.0.0.0"
    api_port: int = 5000
    api_prefix: str = "/api"
    cors_allow_origins: List[str] = ["*"]

    # Ollama Configuration (local model backend)
    ollama_base_url: str = "http://localhost:11434"
    ollama_coder_model: str = "deepseek-coder-v2:lite"
    ollama_reasoning_model: str = "deepseek-r1:8b"
    # Generation on a local model can be slow; keep the ceiling generous
    ollama_timeout_seconds: float = 300.0
    model_temperature: float = 0.2
    model_top_p: float = 0.9
    model_max_tokens: int = 2048

    # JIRA Integration (configure via environment)
    jira_base_url: Optional[str] = None
    jira_username: Optional[str] = None
    jira_api_token: Optional[str] = None

    # GitHub Integration (configure via environment)
    github_api_url: str = "https://api.github.com"
    github_token: Optional[str] = None
    # Only the first page of changed files is fetched per review
    review_files_page_size: int = 100

    # Review context cleaning
    source_file_suffix: str = ".java"
    skip_extensions: List[str] = [
        ".md",
        ".yml",
        ".yaml",
        ".json",
        ".xml",
        ".txt",
        ".png",
        ".jpg",
        ".jpeg",
        ".lock",
    ]

    # Test case synthesis
    synthesis_max_attempts: int = 2
    synthesis_retry_backoff_seconds: float = 2.0
    fallback_reply_chars: int = 500

    # Rate limiting (per client address)
    rate_limit_window_seconds: float = 60.0
    rate_limit_max_requests: int = 10
    rate_limit_sweep_interval_seconds: float = 300.0

    # Database Configuration
    database_url: str = "sqlite:///./data/testgen.db"
    history_retention_days: int = 90

    # Logging
    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        case_sensitive = False


# Global settings instance
settings = Settings()
