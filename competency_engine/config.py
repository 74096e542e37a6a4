"""Engine configuration with validation."""
from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Scoring engine settings, read from the environment or a .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    APP_NAME: str = "Competency Engine"
    APP_VERSION: str = "1.0.0"
    APP_ENV: Literal["development", "staging", "production"] = "development"
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    LOG_FORMAT: Literal["json", "console"] = "json"

    # Grade scale
    # The task/triangulation path uses 3.5/5.5/7.5/9.5, the legacy
    # triangulation sheet used 2.5/5.0/7.5/10.0. See DESIGN.md.
    GRADE_ANCHOR_TABLE: Literal["triangulation", "legacy"] = "triangulation"

    # Evolutive (5º/6º) cohort weights
    COURSE_WEIGHT_5: float = Field(default=0.4, ge=0.0)
    COURSE_WEIGHT_6: float = Field(default=0.6, ge=0.0)

    # Competency trend
    TREND_EPSILON: float = Field(default=0.25, ge=0.0, le=10.0)

    # XADE export
    XADE_DELIMITER: str = Field(default=";", min_length=1, max_length=1)

    # Evidence monitoring
    EVIDENCE_WINDOW_DAYS: int = Field(default=45, ge=1, le=365)
    DISAGREE_LAST_N: int = Field(default=4, ge=2, le=20)

    @field_validator("XADE_DELIMITER")
    @classmethod
    def validate_delimiter(cls, v: str) -> str:
        if v in ('"', "\n", "\r"):
            raise ValueError("XADE_DELIMITER cannot be a quote or a line break")
        return v

    @property
    def course_weights(self) -> dict:
        """Cohort weights keyed by course number."""
        return {5: self.COURSE_WEIGHT_5, 6: self.COURSE_WEIGHT_6}


@lru_cache
def get_settings() -> Settings:
    return Settings()
