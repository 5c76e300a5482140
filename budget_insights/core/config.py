from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # App settings
    PROJECT_NAME: str = "BudgetInsights"
    API_PREFIX: str = "/api"
    DEBUG: bool = Field(default=False)
    LOG_LEVEL: str = Field(default="INFO")
    CORS_ORIGINS: List[str] = Field(default_factory=lambda: ["http://localhost:3000", "http://localhost:8000"])

    # Record store: "dynamodb" or "memory"
    STORE_BACKEND: str = Field(default="dynamodb")

    # DynamoDB
    DYNAMO_REGION: str = Field(default="eu-west-1")
    DYNAMO_TABLE_PREFIX: str = Field(default="budget-insights")
    DYNAMO_OWNER_INDEX: Optional[str] = Field(default="ownerId-index")

    # Gemini reasoning service
    GEMINI_API_KEY: Optional[str] = Field(default=None)
    GEMINI_MODEL: str = Field(default="gemini-2.0-flash")

    # Insight pipeline
    INSIGHT_CONTEXT_LIMIT: int = 5
    INSIGHT_TIMEOUT_SECONDS: float = 60.0

    # Calendar and display preferences
    TIMEZONE: str = Field(default="UTC")
    FIRST_WEEKDAY: int = 6  # calendar.SUNDAY
    CURRENCY: str = Field(default="USD")

    # Daily insight scheduler
    SCHEDULER_ENABLED: bool = Field(default=False)
    DAILY_INSIGHT_HOUR: int = 21
    DAILY_INSIGHT_MINUTE: int = 0

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")


settings = Settings()
