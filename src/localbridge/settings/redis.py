from typing import List

from pydantic import BaseModel, Field, SecretStr


class RedisInstanceSettings(BaseModel):
    """Connection settings for one named Redis instance."""

    name: str = Field(..., min_length=1, description="Instance name used by tool callers")
    enabled: bool = Field(default=True)
    host: str = Field(default="localhost")
    port: int = Field(default=6379, ge=1, le=65535)
    password: SecretStr = Field(default=SecretStr(""))
    db: int = Field(default=0, ge=0, description="Logical database index")
    pool_size: int = Field(default=10, ge=1, description="Maximum pooled connections")
    dial_timeout: float = Field(default=5.0, gt=0, description="Seconds allowed to connect")
    read_timeout: float = Field(default=3.0, gt=0, description="Seconds allowed per command")


class RedisSettings(BaseModel):
    instances: List[RedisInstanceSettings] = Field(default_factory=list)

    def enabled(self) -> List[RedisInstanceSettings]:
        return [instance for instance in self.instances if instance.enabled]
