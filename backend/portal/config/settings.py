"""Application Settings - Central Configuration"""
from functools import lru_cache
from typing import List
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # MongoDB
    mongo_uri: str = "mongodb://localhost:27017"
    mongo_db: str = "client_portal_dev"

    # Session tokens (issued by the auth service, validated here)
    jwt_secret: str = "change-me-in-production"
    jwt_algorithm: str = "HS256"
    jwt_expires_minutes: int = 60 * 24

    # Azure OpenAI (optional - template workflows are used when unset)
    azure_openai_endpoint: str = ""
    azure_openai_api_key: str = ""
    azure_openai_deployment: str = "gpt-4"
    azure_openai_api_version: str = "2024-02-01"

    # Logging
    logs_path: str = "./logs"
    log_level: str = "INFO"

    # CORS - set to "*" to allow all origins
    cors_origins: str = "*"

    # Request lifecycle
    suggestion_limit: int = 3  # Ranked candidates kept per workflow task
    default_rejection_note: str = "Request rejected by manager"
    conversion_claim_timeout_seconds: int = 300  # An unfinished conversion claim older than this may be taken over

    # When True, a sprint whose tasks resolve to no department cannot be advanced
    sprint_advance_requires_department: bool = False

    # Environment
    environment: str = "development"
    debug: bool = True

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS origins string to list"""
        return [origin.strip() for origin in self.cors_origins.split(",")]

    @property
    def genai_enabled(self) -> bool:
        """Azure OpenAI drafting is used only when fully configured"""
        return bool(self.azure_openai_endpoint and self.azure_openai_api_key)

    @property
    def is_production(self) -> bool:
        """Check if running in production"""
        return self.environment.lower() == "production"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


settings = get_settings()
