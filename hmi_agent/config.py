# hmi_agent/config.py

import os
from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel

load_dotenv()


DEFAULT_GROQ_MODEL = "llama-3.1-8b-instant"


class Settings(BaseModel):
    groq_api_key: Optional[str] = None
    groq_model: str = DEFAULT_GROQ_MODEL
    llm_timeout: float = 45.0
    output_dir: str = "outputs"
    upload_dir: str = "uploads"
    max_upload_mb: int = 50
    render_workers: int = 1
    value_seed: Optional[int] = None
    log_level: str = "INFO"
    frontend_url: str = "*"
    session_ttl_seconds: int = 600
    session_idle_seconds: int = 3600

    @property
    def max_upload_bytes(self) -> int:
        return self.max_upload_mb * 1024 * 1024

    @property
    def has_llm_credentials(self) -> bool:
        return bool(self.groq_api_key)


def _int_env(name: str, default: Optional[int]) -> Optional[int]:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return int(raw)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Build settings from the environment (and .env, loaded at import)."""
    return Settings(
        groq_api_key=os.getenv("GROQ_API_KEY") or None,
        groq_model=os.getenv("GROQ_MODEL", DEFAULT_GROQ_MODEL),
        llm_timeout=float(os.getenv("HMI_LLM_TIMEOUT", "45")),
        output_dir=os.getenv("HMI_OUTPUT_DIR", "outputs"),
        upload_dir=os.getenv("HMI_UPLOAD_DIR", "uploads"),
        max_upload_mb=_int_env("HMI_MAX_UPLOAD_MB", 50),
        render_workers=max(1, _int_env("HMI_RENDER_WORKERS", 1)),
        value_seed=_int_env("HMI_VALUE_SEED", None),
        log_level=os.getenv("HMI_LOG_LEVEL", "INFO").upper(),
        frontend_url=os.getenv("FRONTEND_URL", "*"),
        session_ttl_seconds=_int_env("HMI_SESSION_TTL_SECONDS", 600),
        session_idle_seconds=_int_env("HMI_SESSION_IDLE_SECONDS", 3600),
    )
