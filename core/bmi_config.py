"""
BMI Configuration

Backend-configurable settings for BMI display, table views and record retention.
Allows adjustment without code changes.
"""
from pydantic_settings import BaseSettings, SettingsConfigDict


class BMIConfig(BaseSettings):
    """
    Configurable BMI settings.

    These can be adjusted via environment variables (BMI_ prefix)
    without requiring code changes.
    """
    model_config = SettingsConfigDict(env_prefix="BMI_", case_sensitive=False)

    # Decimal places used when a BMI value is shown to a client
    # Default: 2 (e.g. 22.86)
    display_precision: int = 2

    # Plausible measurement ranges; anything outside is rejected as invalid
    min_height_cm: float = 20.0
    max_height_cm: float = 300.0
    min_weight_kg: float = 0.5
    max_weight_kg: float = 700.0

    # Largest page a table view may request
    max_page_size: int = 100

    # History entries returned with a single user lookup
    user_history_limit: int = 10

    # Days of calculations included in the stats activity trend
    activity_trend_days: int = 30

    # Number of newest users listed in stats
    recent_users_limit: int = 10

    # Anonymous records older than this are purged by cleanup
    # Default: 30 days
    anonymous_retention_days: int = 30


# Global config instance
bmi_config = BMIConfig()
