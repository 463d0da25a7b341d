"""Runtime configuration."""

from typing import Literal

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """FrameStag settings, overridable through ``FRAMESTAG_*`` environment variables."""

    # Engine
    BACKEND: Literal["auto", "gl", "cpu"] = "auto"
    GL_REQUIRE: int = 330  # Minimum OpenGL version for the standalone context
    PROGRAM_CACHE_SIZE: int = 64  # Compiled programs kept before LRU eviction

    # Shader loop bounds, the CPU library enforces the same limits
    MAX_KERNEL_SIZE: int = 7
    MAX_MORPH_RADIUS: int = 5

    # Stage defaults
    MOTION_THRESHOLD: float = 0.05  # Normalized luma difference (0.0 - 1.0)

    # Analytics
    PROBE_SIZE: int = 10

    model_config = {"env_prefix": "FRAMESTAG_"}


settings = Settings()
