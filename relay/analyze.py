import base64
import binascii
import io
import json
import logging
from typing import Any, List, Optional, Tuple

from fastapi import APIRouter, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from openai import APIStatusError
from PIL import Image
from pydantic import BaseModel, Field, ValidationError

from relay.config import get_settings
from relay.errors import (
    GENERIC_FAILURE_MESSAGE,
    INVALID_IMAGE_MESSAGE,
    NO_FOOD,
    NO_FOOD_MESSAGE,
    RelayError,
    from_upstream_status,
)
from relay.upstream import build_vision_message, create_completion

logger = logging.getLogger(__name__)

router = APIRouter()

prompt = (
    "You are an expert chef and food identification specialist. "
    "First, look carefully at this image and decide whether it shows food, "
    "ingredients, or other edible items.\n"
    "If it does NOT, respond with exactly: "
    '{"error": "no_food", "message": "' + NO_FOOD_MESSAGE + '"}\n'
    "If it DOES, identify the food and ingredients and return 3-5 recipes as a "
    "JSON array. Every recipe object must have these fields:\n"
    "- recipeName: string\n"
    "- description: string\n"
    "- mainIngredients: array of strings\n"
    "- instructions: array of strings, in cooking order\n"
    "- time: string, an estimate such as \"25 minutes\"\n"
    "Return ONLY the JSON array of recipes or the error object, with no other text."
)


class Recipe(BaseModel):
    recipeName: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    mainIngredients: List[str]
    instructions: List[str]
    time: str = Field(..., min_length=1)


class AnalyzeRequest(BaseModel):
    image: Optional[str] = None
    mimeType: Optional[str] = None


class AnalyzeResponse(BaseModel):
    recipes: List[Recipe]


def _prepare_image_payload(raw_base64: str) -> Tuple[str, Optional[str], bytes]:
    """Strip an optional data URI header and decode the payload.

    Returns the bare base64 text, the MIME type named in the header (if
    any) and the decoded bytes.
    """
    cleaned = raw_base64.strip()
    header_mime = None
    if cleaned.startswith("data:"):
        header, _, cleaned = cleaned.partition(",")
        if not cleaned:
            raise RelayError(400, INVALID_IMAGE_MESSAGE)
        header_mime = header[len("data:"):].split(";", 1)[0] or None

    try:
        image_bytes = base64.b64decode(cleaned)
    except (binascii.Error, ValueError) as decode_error:
        raise RelayError(400, INVALID_IMAGE_MESSAGE) from decode_error
    if not image_bytes:
        raise RelayError(400, INVALID_IMAGE_MESSAGE)
    return cleaned, header_mime, image_bytes


def detect_mime_type(image_bytes: bytes) -> str:
    try:
        with Image.open(io.BytesIO(image_bytes)) as image:
            image_format = image.format
    except (OSError, Image.DecompressionBombError) as open_error:
        raise RelayError(400, INVALID_IMAGE_MESSAGE) from open_error

    mime_type = Image.MIME.get(image_format) if image_format else None
    if not mime_type:
        raise RelayError(400, INVALID_IMAGE_MESSAGE)
    return mime_type


def strip_code_fences(content: str) -> str:
    if "```json" in content:
        return content.split("```json", 1)[1].split("```", 1)[0].strip()
    if "```" in content:
        return content.split("```", 2)[1].strip()
    return content


def _completion_text(completion: Any) -> str:
    choices = getattr(completion, "choices", None)
    if not choices or getattr(choices[0], "message", None) is None:
        raise RelayError(500, "Invalid response from AI")

    content = (choices[0].message.content or "").strip()
    if not content:
        raise RelayError(500, "Empty response from AI")
    return content


def parse_recipes(content: str) -> List[Recipe]:
    """Turn completion text into validated recipes.

    Raises RelayError for the no-food sentinel, for text that is not JSON
    and when no candidate has all five recipe fields.
    """
    json_text = strip_code_fences(content)
    try:
        parsed = json.loads(json_text)
    except json.JSONDecodeError as parse_error:
        logger.error("JSON parse error: %s", parse_error)
        logger.error("Raw content: %s", content)
        raise RelayError(500, "Failed to parse AI response as JSON") from parse_error

    if isinstance(parsed, dict) and parsed.get("error") == NO_FOOD:
        raise RelayError(400, NO_FOOD, parsed.get("message") or NO_FOOD_MESSAGE)

    candidates = parsed if isinstance(parsed, list) else [parsed]

    recipes: List[Recipe] = []
    for idx, candidate in enumerate(candidates):
        try:
            recipes.append(Recipe.model_validate(candidate))
        except ValidationError:
            logger.info("Dropping candidate %d without a complete recipe shape", idx)

    if not recipes:
        logger.error("No valid recipes in AI response: %s", content)
        raise RelayError(500, "No valid recipes found in AI response")
    return recipes


def analyze(request: AnalyzeRequest) -> List[Recipe]:
    if not request.image:
        raise RelayError(400, "No image provided")

    settings = get_settings()
    if not settings.api_key:
        raise RelayError(500, "OpenRouter API key not configured")

    image_base64, header_mime, image_bytes = _prepare_image_payload(request.image)
    mime_type = request.mimeType or header_mime or detect_mime_type(image_bytes)

    messages = build_vision_message(prompt, image_base64, mime_type)
    completion = create_completion(messages, settings)
    return parse_recipes(_completion_text(completion))


@router.post("/analyze", response_model=AnalyzeResponse)
def analyze_image(request: AnalyzeRequest):
    try:
        return AnalyzeResponse(recipes=analyze(request))
    except RelayError as relay_error:
        return JSONResponse(status_code=relay_error.status_code, content=relay_error.to_payload())
    except APIStatusError as status_error:
        logger.error("Upstream error (status=%s): %s", status_error.status_code, status_error)
        relay_error = from_upstream_status(status_error.status_code)
        return JSONResponse(status_code=relay_error.status_code, content=relay_error.to_payload())
    except Exception:
        logger.exception("Analyze route error")
        return JSONResponse(status_code=500, content={"error": GENERIC_FAILURE_MESSAGE})


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Answer malformed analyze bodies with the relay's own 400 payloads."""
    fields = {str(part) for error in exc.errors() for part in error.get("loc", ())}
    if fields & {"image", "mimeType"}:
        relay_error = RelayError(400, INVALID_IMAGE_MESSAGE)
    else:
        relay_error = RelayError(400, "No image provided")
    logger.warning("Rejected analyze body: %s", exc.errors())
    return JSONResponse(status_code=relay_error.status_code, content=relay_error.to_payload())


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(RequestValidationError, request_validation_handler)
