import logging
from functools import lru_cache
from typing import Any, Dict, List, Optional

from openai import APIStatusError, OpenAI

from relay.config import Settings, get_settings

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_client() -> OpenAI:
    settings = get_settings()
    return OpenAI(
        base_url=settings.base_url,
        api_key=settings.api_key,
        default_headers={"X-Title": settings.app_title},
    )


def build_vision_message(prompt: str, image_base64: str, mime_type: str) -> List[Dict[str, Any]]:
    contents = [
        {"type": "text", "text": prompt},
        {"type": "image_url", "image_url": {"url": f"data:{mime_type};base64,{image_base64}"}},
    ]
    return [{"role": "user", "content": contents}]


def create_completion(messages: List[Dict[str, Any]], settings: Optional[Settings] = None):
    """Call the models in order, moving on only when one is rate limited.

    Any other upstream error is raised at once. When every model answers
    429 the last rate-limit error is raised.
    """
    if settings is None:
        settings = get_settings()
    client = get_client()

    last_error: Optional[APIStatusError] = None
    for model in settings.models:
        try:
            return client.chat.completions.create(
                model=model,
                messages=messages,
                max_tokens=settings.max_tokens,
                temperature=settings.temperature,
            )
        except APIStatusError as status_error:
            last_error = status_error
            if status_error.status_code == 429:
                logger.warning("Model %s is rate limited (429), trying next model", model)
                continue
            logger.error("Model %s failed with status %s", model, status_error.status_code)
            raise

    raise last_error
