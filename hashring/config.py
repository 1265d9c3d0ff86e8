from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List


class Settings(BaseSettings):
    """Runtime configuration for the routing service."""

    model_config = SettingsConfigDict(env_prefix="HASHRING_")

    nodes: List[str] = ["cache-a", "cache-b", "cache-c"]
    virtual_nodes: int = 50
    replica_count: int = 2
    log_level: str = "INFO"


settings = Settings()
