# backend/asset_insight/config.py

import os
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field

DEFAULT_ANALYSIS_MODEL = "gemini-3-flash-preview"
DEFAULT_SYNTHESIS_MODEL = "gemini-3-pro-preview"
DEFAULT_SAMPLE_CAP = 6
DEFAULT_MAX_FINISHED_RUNS = 20


class Settings(BaseModel):
    """Runtime settings resolved from the environment (and .env)."""

    gemini_api_key: str = ""
    analysis_model: str = DEFAULT_ANALYSIS_MODEL
    synthesis_model: str = DEFAULT_SYNTHESIS_MODEL
    sample_cap: int = Field(default=DEFAULT_SAMPLE_CAP, ge=0)
    analysis_timeout: float = Field(default=60.0, gt=0)
    synthesis_timeout: float = Field(default=90.0, gt=0)
    max_finished_runs: int = Field(default=DEFAULT_MAX_FINISHED_RUNS, ge=0)

    @classmethod
    def from_env(cls) -> "Settings":
        load_dotenv()
        env = os.environ
        return cls(
            gemini_api_key=env.get("GEMINI_API_KEY") or env.get("GOOGLE_API_KEY") or "",
            analysis_model=env.get("ASSET_INSIGHT_ANALYSIS_MODEL") or DEFAULT_ANALYSIS_MODEL,
            synthesis_model=env.get("ASSET_INSIGHT_SYNTHESIS_MODEL") or DEFAULT_SYNTHESIS_MODEL,
            sample_cap=int(env.get("ASSET_INSIGHT_SAMPLE_CAP") or DEFAULT_SAMPLE_CAP),
            analysis_timeout=float(env.get("ASSET_INSIGHT_ANALYSIS_TIMEOUT") or 60),
            synthesis_timeout=float(env.get("ASSET_INSIGHT_SYNTHESIS_TIMEOUT") or 90),
            max_finished_runs=int(env.get("ASSET_INSIGHT_MAX_FINISHED_RUNS") or DEFAULT_MAX_FINISHED_RUNS),
        )


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings.from_env()
    return _settings


def reset_settings() -> None:
    """Drop the cached settings so the next call re-reads the environment."""
    global _settings
    _settings = None
