"""Generates a cover illustration for a story."""

from __future__ import annotations

import asyncio
import base64
import logging

from google import genai
from google.genai import errors as genai_errors
from google.genai import types
from pydantic import Field

from storyspark.core.config import get_settings
from storyspark.models.contracts import CamelModel

from .base import FlowError, first_candidate_parts, get_genai_client

logger = logging.getLogger(__name__)

FLOW_NAME = "story_image"
ERROR_MESSAGE = "No se pudo generar la imagen."

IMAGE_PROMPT = (
    'Crea una ilustración para un cuento infantil en español con el título "{title}". '
    "El estilo debe ser caricaturesco, colorido y amigable para los niños. "
    'El tema del cuento es "{theme}". '
    "La imagen debe ser horizontal y adecuada para una portada de cuento."
)


class GenerateStoryImageInput(CamelModel):
    title: str = Field(..., min_length=1, description="The title of the story.")
    theme: str = Field(..., min_length=1, description="The theme of the story.")


class GenerateStoryImageOutput(CamelModel):
    """Generated illustration.

    ``image_url`` is a data URI, e.g. ``data:image/png;base64,<encoded_data>``.
    """

    image_url: str = Field(..., min_length=1)


def to_data_uri(data: bytes | str, mime_type: str | None) -> str:
    """Encode inline image bytes as a data URI."""
    if isinstance(data, str):
        encoded = data
    else:
        encoded = base64.b64encode(data).decode("ascii")
    return f"data:{mime_type or 'image/png'};base64,{encoded}"


async def generate_story_image(
    data: GenerateStoryImageInput,
    client: genai.Client | None = None,
    timeout: float | None = None,
) -> GenerateStoryImageOutput:
    """Illustrate a story.

    Args:
        data: Story title and theme
        client: GenAI client, the shared one by default
        timeout: Seconds to wait for the model, ``image_timeout_seconds`` by default

    Raises:
        FlowError: If the model fails, times out or returns no image
    """
    client = client or get_genai_client()
    settings = get_settings()
    timeout = settings.image_timeout_seconds if timeout is None else timeout

    request = client.aio.models.generate_content(
        model=settings.image_model,
        contents=IMAGE_PROMPT.format(title=data.title, theme=data.theme),
        config=types.GenerateContentConfig(response_modalities=["TEXT", "IMAGE"]),
    )
    try:
        response = await asyncio.wait_for(request, timeout=timeout)
    except TimeoutError as e:
        logger.error("Image generation timed out after %.0fs", timeout)
        raise FlowError(ERROR_MESSAGE, flow=FLOW_NAME) from e
    except genai_errors.APIError as e:
        logger.error("Image generation request failed: %s", e)
        raise FlowError(ERROR_MESSAGE, flow=FLOW_NAME) from e

    for part in first_candidate_parts(response):
        inline = getattr(part, "inline_data", None)
        if inline is not None and inline.data:
            logger.info("Generated illustration for '%s'", data.title)
            return GenerateStoryImageOutput(image_url=to_data_uri(inline.data, inline.mime_type))

    raise FlowError(ERROR_MESSAGE, flow=FLOW_NAME)
