from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    APP_ENV: str = "dev"

    API_BASE_URL: str = "http://localhost:8080"
    REQUEST_TIMEOUT: float = 30.0
    TRANSFER_TIMEOUT: float = 300.0

    TOKEN_FILE: str | None = "~/.cadence/token"

    ANALYSIS_POLL_INTERVAL_MS: int = 2000
    ANALYSIS_POLL_TIMEOUT_MS: int = 60000
    RENDER_POLL_INTERVAL_MS: int = 2000
    RENDER_POLL_TIMEOUT_MS: int = 90000

    UPLOAD_CHUNK_SIZE: int = 64 * 1024
    UPLOAD_PROGRESS_STEP: int = 5
    UPLOAD_PROGRESS_TICK_MS: int = 80

    HANDLE_DIR: str | None = None

    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

settings = Settings()
