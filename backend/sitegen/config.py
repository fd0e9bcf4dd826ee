from pydantic_settings import BaseSettings
from functools import lru_cache
import os


class Settings(BaseSettings):
    anthropic_api_key: str = ""

    # Model defaults
    default_model: str = "claude-sonnet-4-5-20250929"
    manifest_max_tokens: int = 1024
    manifest_temperature: float = 0.3
    blueprint_max_tokens: int = 2048
    blueprint_temperature: float = 0.4
    section_max_tokens: int = 4096
    section_temperature: float = 0.6
    edit_max_tokens: int = 16000
    edit_temperature: float = 0.2

    # Section batching (kept small to stay under the model API rate limits)
    section_concurrency: int = 2
    section_batch_delay: float = 0.5  # seconds
    section_rate_limit_retries: int = 2
    section_backoff_base: float = 2.0  # seconds

    # Whole-pipeline ceiling imposed on each /generate request
    pipeline_timeout: int = 540  # seconds

    # Legacy full-document edits shorter than this share of the input are truncated
    edit_truncation_ratio: float = 0.5

    # External collaborators
    identity_service_url: str = ""
    image_service_url: str = ""
    collaborator_timeout: float = 120.0  # seconds

    pipeline_version: str = "4.0-modular"

    # API server
    host: str = "127.0.0.1"
    port: int = 8000

    class Config:
        # Look for .env in the repo root (two levels up from backend/sitegen/)
        # In production, env vars are injected directly; .env is optional
        _env_path = os.path.join(os.path.dirname(__file__), "..", "..", ".env")
        env_file = _env_path if os.path.exists(_env_path) else None
        env_file_encoding = "utf-8"
        extra = "ignore"


@lru_cache()
def get_settings():
    return Settings()
