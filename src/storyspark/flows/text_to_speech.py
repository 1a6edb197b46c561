"""Narrates story text with ElevenLabs, caching the audio on disk."""

from __future__ import annotations

import base64
import logging

import httpx
from pydantic import Field

from storyspark.core.config import get_settings
from storyspark.models.contracts import CamelModel
from storyspark.services.audio_cache import AUDIO_MEDIA_TYPE, AudioCache

from .base import FlowError

logger = logging.getLogger(__name__)

FLOW_NAME = "text_to_speech"
ERROR_MESSAGE = (
    "No se pudo generar el audio. Por favor, inténtalo de nuevo en unos minutos más tarde."
)


class TextToSpeechInput(CamelModel):
    text: str = Field(..., min_length=1, description="The text to convert to speech.")
    # Narration of an earlier version of the story, evicted from the cache
    previous_text: str | None = None


class TextToSpeechOutput(CamelModel):
    audio_data_uri: str
    audio_url: str


async def synthesize_speech(text: str, http_client: httpx.AsyncClient) -> bytes:
    """Call the ElevenLabs text-to-speech endpoint.

    Raises:
        FlowError: If the API key is missing or the request fails
    """
    settings = get_settings()
    if not settings.has_elevenlabs_key():
        logger.error("ELEVENLABS_API_KEY not set")
        raise FlowError(ERROR_MESSAGE, flow=FLOW_NAME)

    url = f"{settings.elevenlabs_api_url}/text-to-speech/{settings.elevenlabs_default_voice}"
    headers = {
        "Accept": AUDIO_MEDIA_TYPE,
        "Content-Type": "application/json",
        "xi-api-key": settings.elevenlabs_api_key,
    }
    payload = {
        "text": text,
        "model_id": settings.elevenlabs_model,
        "voice_settings": {"stability": 0.5, "similarity_boost": 0.75},
    }

    try:
        response = await http_client.post(url, headers=headers, json=payload)
        response.raise_for_status()
    except httpx.HTTPError as e:
        logger.error("ElevenLabs request failed: %s", e)
        raise FlowError(ERROR_MESSAGE, flow=FLOW_NAME) from e

    if not response.content:
        raise FlowError(ERROR_MESSAGE, flow=FLOW_NAME)
    return response.content


async def text_to_speech(
    data: TextToSpeechInput,
    cache: AudioCache,
    http_client: httpx.AsyncClient | None = None,
) -> TextToSpeechOutput:
    """Return narration for ``data.text``, synthesizing it on a cache miss."""
    if data.previous_text and data.previous_text != data.text:
        cache.evict(data.previous_text)

    audio = cache.get(data.text)
    if audio is None:
        logger.info("Narration not cached, synthesizing")
        if http_client is None:
            async with httpx.AsyncClient(timeout=60.0) as owned_client:
                audio = await synthesize_speech(data.text, owned_client)
        else:
            audio = await synthesize_speech(data.text, http_client)
        filename = cache.put(data.text, audio)
    else:
        filename = cache.filename_for(data.text)

    encoded = base64.b64encode(audio).decode("ascii")
    return TextToSpeechOutput(
        audio_data_uri=f"data:{AUDIO_MEDIA_TYPE};base64,{encoded}",
        audio_url=f"/api/audio/{filename}",
    )
