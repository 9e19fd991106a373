"""
Application configuration using Pydantic Settings.

Loads environment variables and provides typed configuration access
for the benchmark service.
"""

import os
from pydantic_settings import BaseSettings
from typing import Optional, Literal


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    APP_NAME: str = "Medical Bill Benchmark Service"
    DEBUG: bool = False
    API_V1_PREFIX: str = "/api/v1"
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # Database - uses SQLite by default for easy local dev
    DATABASE_URL: str = os.environ.get(
        "DATABASE_URL",
        "sqlite:///./data/benchmark.db" if os.environ.get("USE_SQLITE") else "postgresql://localhost:5432/benchmark_db"
    )

    # Monitoring
    SENTRY_DSN: Optional[str] = None
    SENTRY_ENVIRONMENT: str = "development"
    SENTRY_TRACES_SAMPLE_RATE: float = 0.1

    # Benchmark engine
    BENCHMARK_MAX_WORKERS: int = 8
    DEFAULT_FEE_SCHEDULE_YEAR: int = 2026
    FEE_SCHEDULE_STATUS_FLAG: str = "nonQP"

    # Totals reconciliation
    RECONCILIATION_TOLERANCE: float = 0.03  # 3% gap between total and line items

    class Config:
        env_file = ".env"
        case_sensitive = True


settings = Settings()
