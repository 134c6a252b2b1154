from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=False
    )

    # App
    APP_NAME: str = Field(default="relay")
    LOG_LEVEL: str = Field(default="INFO")
    HOST: str = Field(default="0.0.0.0")
    PORT: int = Field(default=3000)

    # Streams
    KEEPALIVE_INTERVAL_SECONDS: float = Field(default=1.0, gt=0)
    REQUEST_ID_HEADER: str = Field(default="X-Request-ID")

    # Delivery
    HANDOFF_POLICY: str = Field(default="timeout")  # sync|timeout|drop_oldest|drop_newest
    DELIVERY_TIMEOUT_SECONDS: float = Field(default=5.0, gt=0)
    MAILBOX_CAPACITY: int = Field(default=16, ge=1)
    MAX_SESSIONS: int = Field(default=0, ge=0)  # 0 means unlimited

    # CORS
    CORS_ALLOW_ORIGINS: list[str] = Field(
        default_factory=lambda: ["http://localhost:3000"]
    )


settings = Settings()
