"""Configuration for the Form.io bridge.

Values come from the environment (prefix ``FORMIO_``) or a ``.env`` file,
e.g. ``FORMIO_URL=http://localhost:3002``.
"""

from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Bridge settings"""

    model_config = SettingsConfigDict(
        env_prefix="FORMIO_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    # Form service
    url: str = "http://localhost:3001"
    project_url: str = "http://localhost:3001/project"
    timeout: float = 10.0

    # Renderer document
    renderer_version: str = "4.21.3"
    stylesheet_url: str = "https://cdn.jsdelivr.net/npm/bootstrap@5.1.3/dist/css/bootstrap.min.css"

    # Hosted page screen: fallback delay before hiding the loading indicator
    hosted_ready_delay: float = 4.0

    # Import utility
    admin_email: str = "admin@example.com"
    admin_password: Optional[str] = None
    forms_dir: str = "infra/sample-forms"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


__all__ = ["Settings", "get_settings"]
