"""Configuration helpers for the report viewer."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", populate_by_name=True
    )

    viewer_version: str = Field(
        "5.0.0",
        alias="LH_CURRENT_VERSION",
        description="Lighthouse version this viewer renders natively.",
    )
    app_url: str = Field(
        "http://localhost:8000/",
        alias="VIEWER_APP_URL",
        description="Canonical base URL; deep links append ?gist=<id> to it.",
    )
    gist_origin: str = Field(
        "https://gist.github.com",
        description="Only URLs on this origin are accepted as gist links.",
    )
    github_api_url: str = Field("https://api.github.com", alias="GITHUB_API_URL")
    github_token: str | None = Field(
        None,
        alias="GITHUB_TOKEN",
        description="Token used to create gists; fetching public gists works without it.",
    )
    fetch_timeout: float | None = Field(
        None,
        description=(
            "Seconds before a gist request gives up. None waits indefinitely, "
            "which leaves the viewer loading if GitHub hangs."
        ),
    )


def get_settings() -> Settings:
    """Return settings instance."""
    return Settings()
