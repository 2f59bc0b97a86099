from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    webhook_url: str = "https://webhook.site/your-unique-url"
    webhook_timeout_seconds: float = 10.0

    host: str = "0.0.0.0"
    port: int = 5000

    # unset -> in-memory store
    database_url: str | None = None

    completion_delay_seconds: float = 3.0
    seed_sample_jobs: bool = False

    environment: str = "production"
    log_level: str = "INFO"

settings = Settings()
