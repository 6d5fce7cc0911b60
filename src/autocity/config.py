"""Runtime configuration for AutoCity."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-driven runtime settings."""

    model_config = SettingsConfigDict(env_prefix="AUTOCITY_", env_file=".env", extra="ignore")

    app_name: str = "autocity"
    log_level: str = "INFO"
    economy_tick_seconds: float = Field(default=5.0, gt=0, description="Seconds between economy ticks.")

    planner_enabled: bool = False
    planner_cycle_interval_seconds: float = Field(default=10.0, gt=0)
    planner_budget_reserve: float = Field(default=1_000, ge=0)
    planner_max_actions_per_cycle: int = Field(default=3, ge=0)
    planner_pacing_delay_seconds: float = Field(
        default=1.0,
        ge=0,
        description="Pause after each automated placement so progress stays observable.",
    )

    advisory_enabled: bool = True
    advisory_base_url: str = "https://dashscope.aliyuncs.com/compatible-mode/v1"
    advisory_api_key: str | None = Field(default=None, description="API key for the chat-completions endpoint.")
    advisory_model: str = "qwen-plus"
    advisory_timeout_seconds: float = Field(default=8.0, gt=0)
    advisory_max_tokens: int = 800
    advisory_temperature: float = 0.7


settings = Settings()
