from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Central application configuration."""

    PROJECT_NAME: str = "Mother India Stock Management"
    API_V1_PREFIX: str = "/api/v1"
    ENVIRONMENT: str = Field(default="local", validation_alias="ENV", description="Deployment environment")

    # Database
    DATABASE_URL: str = Field(...)

    # Background jobs (Celery/Redis)
    CELERY_BROKER_URL: str = Field(default="redis://localhost:6379/0")
    CELERY_RESULT_BACKEND: str = Field(default="redis://localhost:6379/1")

    # Stock ledger
    PADDY_REQUIRE_ADMIN_APPROVAL: bool = Field(
        default=True,
        description="Paddy stock counts a movement only after admin approval",
    )
    PADDY_BALANCE_TOLERANCE: float = Field(default=0.5, description="Bags")
    RICE_BALANCE_TOLERANCE: float = Field(default=0.01, description="Quintals")

    # Observability
    LOG_LEVEL: str = Field(default="INFO")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


settings = Settings()
