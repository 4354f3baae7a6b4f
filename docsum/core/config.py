"""
Configuration — loads all settings from environment variables.
Never hardcode secrets. Everything is read once at process start and
treated as immutable afterwards.
"""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
    )

    # ── Gemini ────────────────────────────────────────────────────────────────
    gemini_api_key: str = ""
    gemini_model: str = ""                   # optional primary-model override
    gemini_fallback_models: list[str] = [
        "gemini-2.5-flash",
        "gemini-2.5-flash-lite",
    ]
    gemini_api_base: str = "https://generativelanguage.googleapis.com/v1beta"
    gemini_timeout_seconds: float = 30.0     # per model attempt

    # ── Input Guards ─────────────────────────────────────────────────────────
    max_file_size: int = 10 * 1024 * 1024    # 10 MiB

    # ── App ───────────────────────────────────────────────────────────────────
    environment: str = "development"
    log_level: str = "INFO"

    @property
    def model_candidates(self) -> tuple[str, ...]:
        """Override first, then the fallback chain. Blanks and repeats dropped."""
        ordered: list[str] = []
        for model_id in (self.gemini_model, *self.gemini_fallback_models):
            model_id = model_id.strip()
            if model_id and model_id not in ordered:
                ordered.append(model_id)
        return tuple(ordered)


@lru_cache()
def get_settings() -> Settings:
    return Settings()
