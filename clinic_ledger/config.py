"""Application configuration."""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Ledger settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        env_parse_none_str="null",
    )

    # Application
    app_name: str = Field(default="Clinic Ledger", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    environment: str = Field(default="development", alias="ENVIRONMENT")

    # Storage
    data_dir: Path = Field(default=Path("data"), alias="DATA_DIR")
    staff_file: str = Field(default="Staff_Info.csv", alias="STAFF_FILE")
    patients_file: str = Field(default="Patient_Info.csv", alias="PATIENTS_FILE")
    medical_records_file: str = Field(
        default="Medical_Records.csv", alias="MEDICAL_RECORDS_FILE"
    )
    appointments_file: str = Field(default="Appointments.csv", alias="APPOINTMENTS_FILE")
    medications_file: str = Field(default="Medicine_List.csv", alias="MEDICATIONS_FILE")

    # Clinic hours (slot grid is [open, close) in steps of slot_minutes)
    clinic_open_hour: int = Field(default=8, ge=0, le=23, alias="CLINIC_OPEN_HOUR")
    clinic_close_hour: int = Field(default=17, ge=1, le=24, alias="CLINIC_CLOSE_HOUR")
    slot_minutes: int = Field(default=60, ge=5, le=240, alias="SLOT_MINUTES")

    # Logging
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_format: str = Field(default="json", alias="LOG_FORMAT")

    @model_validator(mode="after")
    def validate_clinic_hours(self) -> "Settings":
        """Validate the opening hour is before the closing hour."""
        if self.clinic_open_hour >= self.clinic_close_hour:
            raise ValueError("CLINIC_OPEN_HOUR must be before CLINIC_CLOSE_HOUR")
        return self

    def table_path(self, filename: str) -> Path:
        """Resolve a table file name against the data directory."""
        return self.data_dir / filename

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment.lower() == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment.lower() == "development"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()  # type: ignore[call-arg]


# Global settings instance
settings = get_settings()
