"""Configuration management using Pydantic Settings.

Loads configuration from environment variables with .env file support.
Only the application factory reads these settings; services receive their
configuration explicitly.
"""

from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application configuration."""

    # Database Configuration
    database_url: Optional[str] = None

    # Server Configuration
    host: str = "0.0.0.0"
    port: int = 9000
    log_level: str = "INFO"
    environment: str = "development"

    # Business calendar
    business_timezone: str = "America/New_York"

    # Automation Configuration
    automation_enabled: bool = True
    automation_interval_minutes: int = 60
    automation_run_on_start: bool = True
    automation_rule_concurrency: int = 10
    automation_order_batch_size: int = 50
    automation_rule_chunk_delay_seconds: float = 0.05
    automation_order_batch_delay_seconds: float = 0.1

    # Email Configuration
    postmark_server_token: Optional[str] = None
    email_sender: str = "orders@example.com"
    email_sender_name: Optional[str] = None

    # Dashboard Configuration
    dashboard_api_key: Optional[str] = None

    # GlitchTip Error Monitoring
    glitchtip_dsn: Optional[str] = None

    # Google Sheets status model
    google_credentials_path: str = "config/google_credentials.json"
    status_model_spreadsheet_id: Optional[str] = None
    status_model_sheet_name: Optional[str] = None

    class Config:
        """Pydantic config."""

        env_file = ".env"
        case_sensitive = False
        extra = "ignore"


# Create a global settings instance
settings = Settings()
