"""Runtime configuration read from the environment."""

from __future__ import annotations

import logging
import os
from typing import Mapping

from pydantic import BaseModel, Field

from .utilities import basic_log_config

logger = logging.getLogger(__name__)


class Settings(BaseModel):
    openai_api_key: str | None = None
    openai_base_url: str | None = None
    exa_api_key: str | None = None
    exa_api_url: str = "https://api.exa.ai"
    aisuite_providers: list[str] = Field(default_factory=list, description="aisuite provider keys, e.g. anthropic")
    turn_timeout: float | None = Field(default=None, gt=0, description="Seconds allowed for one assistant turn")
    debug: bool = False

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Settings:
        """Build settings from environment variables."""
        env = os.environ if environ is None else environ
        return cls(
            openai_api_key=env.get("OPENAI_API_KEY") or None,
            openai_base_url=env.get("OPENAI_BASE_URL") or None,
            exa_api_key=env.get("EXA_API_KEY") or None,
            exa_api_url=env.get("EXA_API_URL") or "https://api.exa.ai",
            aisuite_providers=[p.strip() for p in env.get("FINASSIST_AISUITE_PROVIDERS", "").split(",") if p.strip()],
            turn_timeout=env.get("FINASSIST_TURN_TIMEOUT") or None,
            debug=env.get("AI_DEBUG_MODE", "").lower() == "true",
        )

    @property
    def exa_configured(self) -> bool:
        return bool(self.exa_api_key)

    def configure_logging(self) -> None:
        """Apply default log formatting; DEBUG level when debug mode is on."""
        basic_log_config(level=logging.DEBUG if self.debug else logging.WARNING)
