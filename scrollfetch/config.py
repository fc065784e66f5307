"""Application configuration."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # API settings
    api_host: str = "0.0.0.0"
    api_port: int = 3000
    debug: bool = False

    # Remote browser settings
    browser_ws_endpoint: str = "ws://browserless:3000?ws=true"
    connect_max_retries: int = 3
    connect_base_delay: float = 1.0
    connect_timeout: float = 30.0
    cdp_command_timeout: float = 30.0

    # Navigation settings
    navigation_timeout: float = 900.0
    navigation_wait_until: str = "networkidle2"
    network_idle_time: float = 0.5
    user_agent: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120 Safari/537.36"
    )

    # Job defaults
    default_max_scrolls: int = 40
    default_scroll_delay_ms: int = 5000
    default_check_interval_ms: int = 500
    default_timeout_ms: int = 1_200_000
    default_viewport_width: int = 1200
    default_viewport_height: int = 900
    default_growth_metric: str = "nodes"
    detector_grace_seconds: float = 30.0
    settle_delay: float = 2.0

    # Extraction settings
    extraction_max_retries: int = 3
    min_content_length: int = 100

    # Logging
    log_level: str = "INFO"

    class Config:
        env_prefix = "SCROLLFETCH_"
        env_file = ".env"


settings = Settings()
