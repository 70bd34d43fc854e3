from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Client settings loaded from environment variables."""

    # Platform API
    api_base_url: str = 'http://localhost:8080/api'

    # Gateway calls
    gateway_timeout_seconds: float = 10.0
    page_size: int = 50
    max_pages: int = 20

    # Environment
    env: str = 'development'
    debug: bool = False
    log_level: str = 'INFO'

    class Config:
        env_file = '.env'
        extra = 'ignore'


settings = Settings()
