import os
from functools import lru_cache
from typing import List

from dotenv import load_dotenv

load_dotenv()

DEFAULT_BASE_URL = "https://openrouter.ai/api/v1"
DEFAULT_APP_TITLE = "FlavorLens"
DEFAULT_MODELS = "google/gemini-flash-1.5,google/gemini-2.0-flash-001"


class Settings:
    """Relay settings read from the environment."""

    def __init__(self) -> None:
        self.api_key: str = os.getenv("OPENROUTER_API_KEY", "")
        self.base_url: str = os.getenv("OPENROUTER_BASE_URL", DEFAULT_BASE_URL)
        self.app_title: str = os.getenv("RELAY_APP_TITLE", DEFAULT_APP_TITLE)
        self.models: List[str] = _split_models(os.getenv("RELAY_MODELS", DEFAULT_MODELS))
        self.max_tokens: int = int(os.getenv("RELAY_MAX_TOKENS", "2000"))
        self.temperature: float = float(os.getenv("RELAY_TEMPERATURE", "0.7"))


def _split_models(raw: str) -> List[str]:
    models = [name.strip() for name in raw.split(",") if name.strip()]
    return models or _split_models(DEFAULT_MODELS)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
