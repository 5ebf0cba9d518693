from typing import Any, Dict, Optional

NO_FOOD = "no_food"
NO_FOOD_MESSAGE = (
    "This image doesn't contain food or ingredients. "
    "Please upload an image with food items to generate recipes."
)

BUSY_MESSAGE = "AI service is currently busy. Please try again in a few moments."
INVALID_IMAGE_MESSAGE = "Invalid image format. Please try a different image."
AUTH_FAILED_MESSAGE = "API authentication failed. Please check your API key."
GENERIC_FAILURE_MESSAGE = "Unable to analyze image at the moment. Please try again later."


class RelayError(Exception):
    """An error already shaped for the client: HTTP status plus payload."""

    def __init__(self, status_code: int, error: str, message: Optional[str] = None):
        super().__init__(message or error)
        self.status_code = status_code
        self.error = error
        self.message = message

    def to_payload(self) -> Dict[str, Any]:
        payload = {"error": self.error}
        if self.message is not None:
            payload["message"] = self.message
        return payload


def from_upstream_status(status_code: Optional[int]) -> RelayError:
    if status_code == 429:
        return RelayError(429, BUSY_MESSAGE)
    if status_code == 400:
        return RelayError(400, INVALID_IMAGE_MESSAGE)
    if status_code == 401:
        return RelayError(500, AUTH_FAILED_MESSAGE)
    return RelayError(500, GENERIC_FAILURE_MESSAGE)
