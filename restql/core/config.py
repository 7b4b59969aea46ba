"""Engine configuration."""

from pydantic import BaseModel, ConfigDict, Field


class RestQLOptions(BaseModel):
    """Options accepted by the RestQL engine. Durations are in seconds."""

    model_config = ConfigDict(extra="forbid")

    cache_timeout: float = Field(default=300.0, ge=0)
    headers: dict[str, str] = Field(default_factory=dict)
    max_retries: int = Field(default=3, ge=0)
    retry_delay: float = Field(default=1.0, ge=0)
    batch_interval: float = Field(default=0.05, ge=0)
    max_batch_size: int | None = Field(default=None, ge=1)
    timeout: float = Field(default=30.0, gt=0)
