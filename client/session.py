import base64
import logging
import os
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

import requests

logger = logging.getLogger(__name__)

API_URL = os.getenv("RELAY_API_URL", "http://localhost:8000/api/analyze")
TIMEOUT = float(os.getenv("RELAY_TIMEOUT", "60"))

MIME_TYPES = {
    ".jpeg": "image/jpeg",
    ".jpg": "image/jpeg",
    ".png": "image/png",
    ".webp": "image/webp",
}
SUPPORTED_EXTS = list(MIME_TYPES)

NO_FOOD = "no_food"
NO_FOOD_MESSAGE = (
    "This image doesn't contain food or ingredients. "
    "Please upload an image with food items to generate recipes."
)


class AnalysisFailed(Exception):
    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.code = code


class UploadSession:
    """View state for one upload: preview, loading flag, error and recipes.

    Dropping a file starts the analysis right away; there is no separate
    submit step.
    """

    def __init__(self, api_url: str = API_URL, timeout: float = TIMEOUT):
        self.api_url = api_url
        self.timeout = timeout
        self.image_preview: Optional[str] = None
        self.loading = False
        self.error: Optional[str] = None
        self.error_code: Optional[str] = None
        self.recipes: List[Dict[str, Any]] = []
        self.selected_recipe: Optional[Dict[str, Any]] = None

    @property
    def is_no_food_error(self) -> bool:
        return self.error is not None and self.error_code == NO_FOOD

    def drop(self, paths: Iterable[Union[str, Path]]) -> bool:
        """Accept the first supported image of a drop and analyze it."""
        accepted = [Path(p) for p in paths if Path(p).suffix.lower() in SUPPORTED_EXTS]
        if not accepted:
            return False

        image_path = accepted[0]
        mime_type = MIME_TYPES[image_path.suffix.lower()]
        with open(image_path, "rb") as f:
            encoded = base64.b64encode(f.read()).decode("utf-8")

        self.image_preview = f"data:{mime_type};base64,{encoded}"
        self._set_error(None)
        self.recipes = []
        self.selected_recipe = None
        self.analyze(self.image_preview, mime_type)
        return True

    def analyze(self, data_url: str, mime_type: str) -> None:
        self.loading = True
        self._set_error(None)
        try:
            image = data_url.split(",", 1)[1] if "," in data_url else data_url
            self.recipes = self._post(image, mime_type)
        except AnalysisFailed as failure:
            self._set_error(str(failure), failure.code)
        except requests.RequestException as request_error:
            logger.error("Relay request failed: %s", request_error)
            self._set_error("Failed to analyze image")
        finally:
            self.loading = False

    def _post(self, image: str, mime_type: str) -> List[Dict[str, Any]]:
        res = requests.post(
            self.api_url,
            json={"image": image, "mimeType": mime_type},
            timeout=self.timeout,
        )
        try:
            data = res.json()
        except ValueError:
            data = {}
        if not isinstance(data, dict):
            data = {}

        if data.get("error") == NO_FOOD:
            raise AnalysisFailed(data.get("message") or NO_FOOD_MESSAGE, NO_FOOD)
        if not res.ok:
            raise AnalysisFailed(data.get("error") or "Failed to analyze image")
        if data.get("error"):
            raise AnalysisFailed(data["error"])
        return data.get("recipes") or []

    def _set_error(self, message: Optional[str], code: Optional[str] = None) -> None:
        self.error = message
        self.error_code = code if message else None

    def select_recipe(self, index: int) -> Dict[str, Any]:
        self.selected_recipe = self.recipes[index]
        return self.selected_recipe

    def close_recipe(self) -> None:
        self.selected_recipe = None

    def render(self) -> str:
        lines: List[str] = []
        if self.loading:
            lines.append("⏳ Analyzing your image...")
        if self.error:
            marker = "🍽️" if self.is_no_food_error else "⚠️"
            lines.append(f"{marker} {self.error}")

        for idx, recipe in enumerate(self.recipes, start=1):
            lines.append(f"{idx}. {recipe.get('recipeName', '')} ({recipe.get('time', '')})")
            lines.append(f"   {recipe.get('description', '')}")
            ingredients = ", ".join(recipe.get("mainIngredients") or [])
            if ingredients:
                lines.append(f"   Ingredients: {ingredients}")

        if self.selected_recipe:
            lines.append("")
            lines.append(f"== {self.selected_recipe.get('recipeName', '')} ==")
            for step_no, step in enumerate(self.selected_recipe.get("instructions") or [], start=1):
                lines.append(f"  {step_no}. {step}")

        return "\n".join(lines)
