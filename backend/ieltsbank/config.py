"""Application configuration settings."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    app_name: str = "IELTS Test Bank"
    debug: bool = False

    # Database
    database_url: str = "sqlite+aiosqlite:///./ieltsbank.db"

    # Source site
    site_base_url: str = "https://study4.com"
    listing_path: str = "/tests/ielts/"

    # Session cookie pair. These defaults only work against a local test
    # double; real crawls must supply values from a logged-in browser session.
    session_id: str = "local-test-session"
    csrf_token: str = "local-test-csrftoken"

    # Fetching
    request_timeout: float = 30.0
    max_retries: int = 10
    retry_base_delay: float = 1.0  # seconds, doubled per attempt
    retry_max_delay: float = 60.0
    login_title_markers: list[str] = ["Đăng nhập", "Login", "Log in", "Sign in"]

    # Pacing between requests
    step_delay: float = 2.0  # seconds between sub-steps of one item
    page_delay: float = 3.0  # seconds between listing pages

    # Listing API
    default_page_size: int = 10
    max_page_size: int = 100

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
