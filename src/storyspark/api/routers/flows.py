"""Generative flow endpoints.

Each endpoint validates its input, runs one flow and returns the validated
output. A failed flow surfaces as 502 with a user-facing message.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends
from google import genai

from storyspark.api.deps import Audio, HttpClient
from storyspark.flows import (
    ExtendStoryInput,
    ExtendStoryOutput,
    FlowError,
    GenerateStoryImageInput,
    GenerateStoryImageOutput,
    GenerateStoryInput,
    TextToSpeechInput,
    TextToSpeechOutput,
    extend_story,
    generate_story_image,
    generate_unique_story,
    get_genai_client,
    text_to_speech,
)

logger = logging.getLogger(__name__)

router = APIRouter()

GenAIClient = Annotated[genai.Client, Depends(get_genai_client)]


@router.post("/generate-story")
async def generate_story_endpoint(data: GenerateStoryInput, client: GenAIClient) -> dict:
    """Generate a story and, when possible, its illustration.

    The illustration is best effort: on failure the story is returned
    without ``imageUrl``.
    """
    story = await generate_unique_story(data, client=client)
    result = story.to_json_dict()

    try:
        image = await generate_story_image(
            GenerateStoryImageInput(title=story.title, theme=data.theme),
            client=client,
        )
    except FlowError as e:
        logger.warning("Story '%s' generated without illustration: %s", story.title, e.message)
    else:
        result["imageUrl"] = image.image_url

    return result


@router.post("/extend-story", response_model=ExtendStoryOutput)
async def extend_story_endpoint(data: ExtendStoryInput, client: GenAIClient) -> ExtendStoryOutput:
    """Write the next section of a story."""
    return await extend_story(data, client=client)


@router.post("/illustrate", response_model=GenerateStoryImageOutput)
async def illustrate_endpoint(
    data: GenerateStoryImageInput, client: GenAIClient
) -> GenerateStoryImageOutput:
    """Illustrate a story from its title and theme."""
    return await generate_story_image(data, client=client)


@router.post("/text-to-speech", response_model=TextToSpeechOutput)
async def text_to_speech_endpoint(
    data: TextToSpeechInput, cache: Audio, http_client: HttpClient
) -> TextToSpeechOutput:
    """Narrate text, reusing cached audio for text narrated before."""
    return await text_to_speech(data, cache, http_client=http_client)
