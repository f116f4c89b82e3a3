from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """App-wide configuration pulled from environment variables or .env."""

    # GitHub
    github_token: str | None = None
    github_api_url: str = "https://api.github.com"
    user_agent: str = "GitHub-Stargazers-Analyzer"
    # Media type that makes the stargazers listing include `starred_at`
    stargazer_media_type: str = "application/vnd.github.star+json"

    # Transport defaults
    request_timeout: float = 8.0
    max_attempts: int = 3
    transport_backoff_base: float = 1.0
    transport_backoff_max: float = 5.0

    # Stargazer listing
    stargazers_per_page: int = 100
    stargazers_timeout: float = 10.0
    stargazers_attempts: int = 3
    max_consecutive_page_errors: int = 5
    page_backoff_base: float = 1.0
    page_backoff_max: float = 10.0
    page_delay: float = 0.1
    rate_limit_margin: float = 1.0

    # Enrichment
    batch_size: int = 5
    max_batch_attempts: int = 3
    batch_backoff_base: float = 1.0
    batch_backoff_max: float = 5.0
    batch_delay: float = 1.0
    profile_timeout: float = 10.0
    profile_attempts: int = 2
    max_item_attempts: int = 3
    item_backoff_base: float = 0.5
    item_backoff_max: float = 3.0

    # Total stars
    repo_pages: int = 3
    repos_per_page: int = 100
    repos_timeout: float = 5.0
    repos_attempts: int = 2
    max_star_errors: int = 2
    star_retry_delay: float = 0.5

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    @property
    def api_url(self) -> str:
        return self.github_api_url.rstrip("/")


@lru_cache()
def get_settings() -> Settings:  # pragma: no cover
    return Settings()
