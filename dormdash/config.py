from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    database_url: str = Field(default="sqlite:///./dormdash.db")
    app_name: str = "DormDash"
    secret_key: str = Field(default="dev-change-me")
    handshake_ttl_seconds: int = 600
    handshake_max_attempts: int = 5
    enforce_known_halls: bool = False
    log_level: str = "INFO"
    cors_origins: Optional[str] = None

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @property
    def cors_origin_list(self) -> List[str]:
        if not self.cors_origins:
            return []
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


settings = Settings()
