"""Shared plumbing for the generative flows.

Every flow validates its input with a pydantic model, calls a hosted model
and validates what comes back. A response without a usable payload raises
``FlowError`` carrying a message that can be shown to the user as is.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Any

from google import genai
from pydantic import ValidationError

from storyspark.core.config import get_settings

logger = logging.getLogger(__name__)


class FlowError(Exception):
    """A flow could not produce a valid result."""

    def __init__(self, message: str, flow: str | None = None):
        self.message = message
        self.flow = flow
        super().__init__(message)


@lru_cache
def get_genai_client() -> genai.Client:
    """Get the cached Google GenAI client."""
    settings = get_settings()
    if not settings.has_google_key():
        logger.warning("GOOGLE_API_KEY is not set; model calls will fail")
    return genai.Client(api_key=settings.google_api_key or None)


def first_candidate_parts(response: Any) -> list[Any]:
    """Return the content parts of the first candidate, or an empty list."""
    candidates = getattr(response, "candidates", None) or []
    if not candidates:
        return []
    content = getattr(candidates[0], "content", None)
    if content is None:
        return []
    return list(getattr(content, "parts", None) or [])


def parse_structured(response: Any, model: type, *, flow: str, message: str) -> Any:
    """Validate a JSON model response against ``model``.

    Args:
        response: Response returned by ``generate_content``
        model: Pydantic model describing the expected output
        flow: Flow name used in logs
        message: User-facing error message when validation fails

    Returns:
        Instance of ``model``

    Raises:
        FlowError: If the response is empty or has the wrong shape
    """
    text = getattr(response, "text", None)
    if not text:
        logger.error("Flow %s returned an empty response", flow)
        raise FlowError(message, flow=flow)
    try:
        return model.model_validate_json(text)
    except ValidationError as e:
        logger.error("Flow %s returned an invalid payload: %s", flow, e)
        raise FlowError(message, flow=flow) from e
