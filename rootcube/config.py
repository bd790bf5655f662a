from enum import Enum
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from rootcube.models.enums import CostWeight


class Environment(str, Enum):
    dev = "dev"
    prod = "prod"


class CubeSettings(BaseSettings):
    ENV: Environment = Environment.dev
    LOGGING_LEVEL: str = "INFO"

    DEFAULT_MAX_DEPTH: int = Field(default=3, ge=0)
    # Hard ceiling on depth, the number of k-subsets grows combinatorially
    MAX_DEPTH_CEILING: int = Field(default=6, ge=0)
    DEFAULT_TARGET_SIZE: int = Field(default=10, ge=0)
    DEFAULT_COST_WEIGHT: CostWeight = CostWeight.SQRT
    DEFAULT_TIMEOUT: float | None = Field(default=None, ge=0)

    TOLERANCE: float = Field(default=1e-6, gt=0)
    PRUNE_TOLERANCE: float = Field(default=1e-9, ge=0)
    COST_PRECISION: int = Field(default=9, ge=1)
    MAX_WORKERS: int = Field(default=4, ge=1)

    # pydantic settings config
    model_config = SettingsConfigDict(env_file=".env", extra="ignore", env_prefix="CUBE_", use_enum_values=True)


@lru_cache
def get_cube_settings() -> CubeSettings:
    return CubeSettings()
