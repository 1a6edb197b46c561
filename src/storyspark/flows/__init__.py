"""Generative flows.

Single-purpose request/response operations that forward structured input to
a hosted model and validate its output:
- generate_unique_story: theme + character -> title + story
- extend_story: story + guidance -> new section
- generate_story_image: title + theme -> image data URI
- text_to_speech: story text -> cached narration
"""

from .base import FlowError, get_genai_client
from .extend_story import ExtendStoryInput, ExtendStoryOutput, extend_story
from .generate_story import GenerateStoryInput, GenerateStoryOutput, generate_unique_story
from .story_image import GenerateStoryImageInput, GenerateStoryImageOutput, generate_story_image
from .text_to_speech import TextToSpeechInput, TextToSpeechOutput, text_to_speech

__all__ = [
    "FlowError",
    "get_genai_client",
    # Generate
    "GenerateStoryInput",
    "GenerateStoryOutput",
    "generate_unique_story",
    # Extend
    "ExtendStoryInput",
    "ExtendStoryOutput",
    "extend_story",
    # Illustrate
    "GenerateStoryImageInput",
    "GenerateStoryImageOutput",
    "generate_story_image",
    # Narrate
    "TextToSpeechInput",
    "TextToSpeechOutput",
    "text_to_speech",
]
