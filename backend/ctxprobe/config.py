"""Runtime settings read from the environment.

The app loads backend/.env with python-dotenv before calling Settings.from_env(),
so values here may come from either the shell or that file.
"""

import os
from typing import Literal

from pydantic import BaseModel, Field

ENV_PREFIX = "CTXPROBE_"


class Settings(BaseModel):
    history_limit: int = Field(default=10, gt=0)
    retry_base_delay: float = Field(default=1.0, ge=0)
    retry_max_delay: float = Field(default=30.0, ge=0)
    synthesis_tolerance: int = Field(default=32, ge=0)
    token_counter: Literal["tiktoken", "approximate"] = "tiktoken"
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> "Settings":
        """Build settings from CTXPROBE_* variables; unset ones keep their defaults."""
        env = os.environ if environ is None else environ
        values: dict[str, str] = {}
        for field in cls.model_fields:
            raw = env.get(f"{ENV_PREFIX}{field.upper()}")
            if raw is not None and raw.strip():
                values[field] = raw.strip()
        settings = cls.model_validate(values)
        return settings.model_copy(update={"log_level": settings.log_level.upper()})
