"""Continues an existing story following the reader's guidance."""

from __future__ import annotations

import logging

from google import genai
from google.genai import errors as genai_errors
from google.genai import types
from pydantic import Field

from storyspark.core.config import get_settings
from storyspark.models.contracts import CamelModel

from .base import FlowError, get_genai_client, parse_structured

logger = logging.getLogger(__name__)

FLOW_NAME = "extend_story"
ERROR_MESSAGE = "No se pudo extender el cuento. Por favor, inténtalo de nuevo."

# Consistency with the existing text is requested here and not checked afterwards.
EXTEND_PROMPT = """Eres un escritor de cuentos para niños. Continúa la siguiente historia basándote en la entrada del usuario. Asegúrate de que el nuevo contenido no contradiga el contenido anterior. **ES CRÍTICO QUE LA NUEVA SECCIÓN SE ESCRIBA EN ESPAÑOL.**

Historia Existente:
{existing_story}

Entrada del Usuario:
{user_input}

Nueva Sección de la Historia (en español):"""

OUTPUT_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "newStorySection": {"type": "STRING", "description": "The new section of the story."},
    },
    "required": ["newStorySection"],
}


class ExtendStoryInput(CamelModel):
    existing_story: str = Field(..., min_length=1, description="The existing story to extend.")
    user_input: str = Field(..., min_length=1, description="The user input to guide the story extension.")


class ExtendStoryOutput(CamelModel):
    new_story_section: str = Field(..., min_length=1)


async def extend_story(
    data: ExtendStoryInput,
    client: genai.Client | None = None,
) -> ExtendStoryOutput:
    """Write the next section of a story.

    Raises:
        FlowError: If the model fails or returns no new section
    """
    client = client or get_genai_client()
    settings = get_settings()

    prompt = EXTEND_PROMPT.format(
        existing_story=data.existing_story,
        user_input=data.user_input,
    )
    try:
        response = await client.aio.models.generate_content(
            model=settings.story_model,
            contents=prompt,
            config=types.GenerateContentConfig(
                response_mime_type="application/json",
                response_schema=OUTPUT_SCHEMA,
            ),
        )
    except genai_errors.APIError as e:
        logger.error("Story extension request failed: %s", e)
        raise FlowError(ERROR_MESSAGE, flow=FLOW_NAME) from e

    output = parse_structured(response, ExtendStoryOutput, flow=FLOW_NAME, message=ERROR_MESSAGE)
    if not output.new_story_section.strip():
        raise FlowError(ERROR_MESSAGE, flow=FLOW_NAME)
    return output
