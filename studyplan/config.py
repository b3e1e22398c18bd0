"""
Application Configuration
-------------------------
Loads settings from environment variables using Pydantic.

EXPLANATION:
- Pydantic validates that environment variables have the correct types
- Every setting has a default so the planner can run without a .env file
- Settings are loaded once at startup and shared through `settings`
"""

from pydantic_settings import BaseSettings
from pydantic import Field, field_validator
from typing import List


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    WHAT THIS DOES:
    - Reads .env file automatically
    - Validates all settings on startup
    - Provides type-safe access to configuration
    """

    # -------------------------------------------------------------------------
    # DATABASE
    # -------------------------------------------------------------------------
    DATABASE_URL: str = Field(
        default="sqlite:///./study_planner.db",
        description="SQLAlchemy connection string for the plan document store"
    )

    # -------------------------------------------------------------------------
    # LLM PROVIDERS
    # -------------------------------------------------------------------------
    # Groq (Primary)
    GROQ_API_KEY: str = Field(
        default="",
        description="Groq API key from console.groq.com"
    )
    GROQ_MODEL: str = Field(
        default="llama-3.3-70b-versatile",
        description="Default Groq model to use"
    )

    # Ollama (Fallback)
    OLLAMA_BASE_URL: str = Field(
        default="http://localhost:11434",
        description="Ollama server URL"
    )
    OLLAMA_MODEL: str = Field(
        default="llama3.2:latest",
        description="Ollama model name"
    )

    # LLM Gateway
    LLM_TIMEOUT: int = Field(default=60, description="Request timeout in seconds")
    LLM_MAX_RETRIES: int = Field(
        default=1,
        description="Transport attempts inside a single client call (1 = no retry)"
    )
    LLM_FALLBACK_ENABLED: bool = Field(default=True, description="Enable Ollama fallback")

    # -------------------------------------------------------------------------
    # PLAN GENERATION
    # -------------------------------------------------------------------------
    PLAN_DEFAULT_DURATION_DAYS: int = Field(default=7, ge=1, description="Default plan horizon")
    PLAN_MAX_TOKENS: int = Field(default=4000, description="Token budget for one plan")
    PLAN_TEMPERATURE: float = Field(default=0.3, description="Generation temperature")

    # -------------------------------------------------------------------------
    # ACADEMIC RECORDS API
    # -------------------------------------------------------------------------
    RECORDS_API_BASE_URL: str = Field(
        default="http://localhost:8080",
        description="Base URL of the academic records backend"
    )
    RECORDS_USER_PATH: str = Field(
        default="/user/1",
        description="Per-user path suffix appended to every records endpoint"
    )
    RECORDS_TIMEOUT: int = Field(default=10, description="Records request timeout in seconds")

    # -------------------------------------------------------------------------
    # PLAN STORAGE
    # -------------------------------------------------------------------------
    PLAN_STORAGE_KEY: str = Field(default="studyPlannerStudyPlan")
    PREFERENCES_STORAGE_KEY: str = Field(default="studyPlannerPreferences")

    # -------------------------------------------------------------------------
    # BACKEND API
    # -------------------------------------------------------------------------
    BACKEND_HOST: str = Field(default="0.0.0.0")
    BACKEND_PORT: int = Field(default=8000)
    BACKEND_RELOAD: bool = Field(default=True, description="Auto-reload on code changes")

    # CORS (Cross-Origin Resource Sharing)
    CORS_ORIGINS: str = Field(
        default="http://localhost:3000,http://127.0.0.1:3000",
        description="Comma-separated list of allowed origins"
    )

    @field_validator("CORS_ORIGINS")
    @classmethod
    def parse_cors_origins(cls, v: str) -> str:
        """Normalise whitespace around the comma-separated origins"""
        return ",".join(origin.strip() for origin in v.split(",") if origin.strip())

    @property
    def cors_origins_list(self) -> List[str]:
        """Allowed origins as a list"""
        return self.CORS_ORIGINS.split(",") if self.CORS_ORIGINS else []

    # -------------------------------------------------------------------------
    # LOGGING
    # -------------------------------------------------------------------------
    LOG_LEVEL: str = Field(default="INFO", description="DEBUG, INFO, WARNING, ERROR")

    # -------------------------------------------------------------------------
    # ENVIRONMENT
    # -------------------------------------------------------------------------
    ENVIRONMENT: str = Field(default="development", description="development or production")

    @property
    def is_production(self) -> bool:
        """Check if running in production"""
        return self.ENVIRONMENT.lower() == "production"

    # -------------------------------------------------------------------------
    # PYDANTIC CONFIG
    # -------------------------------------------------------------------------
    class Config:
        env_file = ".env"  # Automatically load .env file
        env_file_encoding = "utf-8"
        case_sensitive = True  # DATABASE_URL != database_url
        extra = "ignore"


# ============================================================================
# GLOBAL SETTINGS INSTANCE
# ============================================================================
settings = Settings()


def print_config():
    """Print current configuration (hides secrets)"""
    print("\n" + "="*70)
    print("STUDY PLANNER CONFIGURATION")
    print("="*70)

    for field, value in settings.model_dump().items():
        if any(secret in field.upper() for secret in ["KEY", "PASSWORD", "SECRET"]) and "STORAGE" not in field.upper():
            display_value = "***HIDDEN***"
        else:
            display_value = value

        print(f"{field:30} = {display_value}")

    print("="*70 + "\n")


if __name__ == "__main__":
    print_config()
    print(f"Is production? {settings.is_production}")
