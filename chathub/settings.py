from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):  # type: ignore[misc]
    model_config = SettingsConfigDict(case_sensitive=True)

    ENVIRONMENT: str = "dev"

    # Hub settings
    HUB_PATH: str = "/chatHub"
    # 0 means unbounded, a bounded queue drops frames when full
    WS_OUTBOUND_QUEUE_SIZE: int = 0

    # Static files (default document is index.html)
    SERVE_STATIC: bool = True
    # Empty means the static directory shipped with the package
    STATIC_DIR: str = ""

    # Server settings used by `cli.py serve`
    SERVER_HOST: str = "0.0.0.0"
    SERVER_PORT: int = 8000

    # Logging settings
    LOG_LEVEL: str = "INFO"
    LOG_FILE_PATH: str = "logs/logging_errors.log"
    LOG_EXCLUDED_PATHS: list[str] = ["/metrics", "/health"]

    # Loki settings
    LOKI_ENABLED: bool = False
    LOKI_URL: str = "http://loki:3100"
    LOKI_VERSION: str = "1"


app_settings = Settings()
