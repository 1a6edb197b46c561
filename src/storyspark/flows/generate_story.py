"""Generates unique children's stories from a theme and a main character."""

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

FLOW_NAME = "generate_story"
ERROR_MESSAGE = "No se pudo generar el cuento. Por favor, inténtalo de nuevo."

STORY_PROMPT = """Eres un escritor de cuentos para niños. Genera un cuento único basado en el tema y los personajes dados. **ES CRÍTICO QUE TODO EL CUENTO SE ESCRIBA EN ESPAÑOL.**

Tema: {theme}
Nombre del Personaje Principal: {main_character_name}
Rasgos del Personaje Principal: {main_character_traits}

Escribe un cuento con un título, capítulos cortos y una redacción clara para los primeros lectores. Todo el contenido debe estar en español."""

OUTPUT_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "title": {"type": "STRING", "description": "El título del cuento generado."},
        "story": {"type": "STRING", "description": "El cuento generado."},
    },
    "required": ["title", "story"],
}


class GenerateStoryInput(CamelModel):
    """Theme and main character of the story to write."""

    theme: str = Field(..., min_length=1, description="El tema del cuento (p. ej., aventura, misterio, fantasía).")
    main_character_name: str = Field(..., min_length=1, description="El nombre del personaje principal.")
    main_character_traits: str = Field(
        ...,
        min_length=1,
        description="Los rasgos del personaje principal (p. ej., valiente, amable, divertido).",
    )


class GenerateStoryOutput(CamelModel):
    """Title and body of the generated story."""

    title: str = Field(..., min_length=1)
    story: str = Field(..., min_length=1)


def build_prompt(data: GenerateStoryInput) -> str:
    return STORY_PROMPT.format(
        theme=data.theme,
        main_character_name=data.main_character_name,
        main_character_traits=data.main_character_traits,
    )


async def generate_unique_story(
    data: GenerateStoryInput,
    client: genai.Client | None = None,
) -> GenerateStoryOutput:
    """Generate a new story.

    Args:
        data: Theme and character description
        client: GenAI client, the shared one by default

    Returns:
        Validated title and story text

    Raises:
        FlowError: If the model fails or returns something other than a title and a story
    """
    client = client or get_genai_client()
    settings = get_settings()

    try:
        response = await client.aio.models.generate_content(
            model=settings.story_model,
            contents=build_prompt(data),
            config=types.GenerateContentConfig(
                response_mime_type="application/json",
                response_schema=OUTPUT_SCHEMA,
            ),
        )
    except genai_errors.APIError as e:
        logger.error("Story generation request failed: %s", e)
        raise FlowError(ERROR_MESSAGE, flow=FLOW_NAME) from e

    output = parse_structured(response, GenerateStoryOutput, flow=FLOW_NAME, message=ERROR_MESSAGE)
    logger.info("Generated story '%s' for theme '%s'", output.title, data.theme)
    return output
