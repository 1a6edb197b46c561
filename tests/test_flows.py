"""Tests for the generative flows and their endpoints."""

import asyncio
import base64
import json
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient

from storyspark.flows import (
    ExtendStoryInput,
    FlowError,
    GenerateStoryImageInput,
    GenerateStoryInput,
    extend_story,
    generate_story_image,
    generate_unique_story,
)

from .conftest import FakeGenAIClient, empty_response, image_response, text_response

STORY_INPUT = {
    "theme": "aventura",
    "mainCharacterName": "Luna",
    "mainCharacterTraits": "valiente",
}
GENERATED = {
    "title": "Luna y la montaña de cristal",
    "story": "Capítulo 1. Luna subió la montaña sin miedo.",
}


class TestGenerateStory:
    """Test story generation."""

    def test_returns_title_and_story(self, genai_client: FakeGenAIClient) -> None:
        """Test a valid model answer becomes a title and a story."""
        genai_client.models.queue(text_response(GENERATED))
        output = asyncio.run(
            generate_unique_story(GenerateStoryInput.model_validate(STORY_INPUT), client=genai_client)
        )
        assert output.title == GENERATED["title"]
        assert output.story == GENERATED["story"]

    def test_prompt_carries_inputs_and_language(self, genai_client: FakeGenAIClient) -> None:
        """Test the prompt names the theme, the character and Spanish output."""
        genai_client.models.queue(text_response(GENERATED))
        asyncio.run(
            generate_unique_story(GenerateStoryInput.model_validate(STORY_INPUT), client=genai_client)
        )
        prompt = genai_client.models.calls[0]["contents"]
        assert "aventura" in prompt
        assert "Luna" in prompt
        assert "valiente" in prompt
        assert "ESPAÑOL" in prompt

    def test_invalid_output_raises(self, genai_client: FakeGenAIClient) -> None:
        """Test output missing the story field fails the flow."""
        genai_client.models.queue(text_response({"title": "Solo título"}))
        with pytest.raises(FlowError):
            asyncio.run(
                generate_unique_story(GenerateStoryInput.model_validate(STORY_INPUT), client=genai_client)
            )

    def test_empty_output_raises(self, genai_client: FakeGenAIClient) -> None:
        """Test an empty model answer fails the flow."""
        genai_client.models.queue(empty_response())
        with pytest.raises(FlowError):
            asyncio.run(
                generate_unique_story(GenerateStoryInput.model_validate(STORY_INPUT), client=genai_client)
            )

    def test_blank_title_is_invalid(self, genai_client: FakeGenAIClient) -> None:
        """Test an empty title is not accepted as a story."""
        genai_client.models.queue(text_response({"title": "", "story": "Texto"}))
        with pytest.raises(FlowError):
            asyncio.run(
                generate_unique_story(GenerateStoryInput.model_validate(STORY_INPUT), client=genai_client)
            )


class TestExtendStory:
    """Test story extension."""

    def test_returns_new_section(self, genai_client: FakeGenAIClient) -> None:
        """Test the model's section is returned."""
        genai_client.models.queue(text_response({"newStorySection": "Luna encontró un dragón."}))
        output = asyncio.run(
            extend_story(
                ExtendStoryInput(existing_story="Había una vez...", user_input="un dragón"),
                client=genai_client,
            )
        )
        assert output.new_story_section == "Luna encontró un dragón."
        prompt = genai_client.models.calls[0]["contents"]
        assert "Había una vez..." in prompt
        assert "un dragón" in prompt

    def test_blank_section_raises(self, genai_client: FakeGenAIClient) -> None:
        """Test whitespace-only output fails the flow."""
        genai_client.models.queue(text_response({"newStorySection": "   "}))
        with pytest.raises(FlowError):
            asyncio.run(
                extend_story(
                    ExtendStoryInput(existing_story="Había una vez...", user_input="un dragón"),
                    client=genai_client,
                )
            )


class TestStoryImage:
    """Test story illustration."""

    def test_returns_data_uri(self, genai_client: FakeGenAIClient) -> None:
        """Test the inline image becomes a base64 data URI."""
        genai_client.models.queue(image_response(b"PNGDATA", "image/png"))
        output = asyncio.run(
            generate_story_image(
                GenerateStoryImageInput(title="Luna", theme="aventura"), client=genai_client
            )
        )
        expected = base64.b64encode(b"PNGDATA").decode("ascii")
        assert output.image_url == f"data:image/png;base64,{expected}"

    def test_skips_text_parts(self, genai_client: FakeGenAIClient) -> None:
        """Test a leading text part does not hide the image."""
        response = image_response(b"JPEG", "image/jpeg")
        text_part = SimpleNamespace(text="Aquí tienes", inline_data=None)
        response.candidates[0].content.parts.insert(0, text_part)
        genai_client.models.queue(response)
        output = asyncio.run(
            generate_story_image(
                GenerateStoryImageInput(title="Luna", theme="aventura"), client=genai_client
            )
        )
        assert output.image_url.startswith("data:image/jpeg;base64,")

    def test_no_image_raises(self, genai_client: FakeGenAIClient) -> None:
        """Test an answer without an image fails the flow."""
        genai_client.models.queue(empty_response())
        with pytest.raises(FlowError, match="No se pudo generar la imagen."):
            asyncio.run(
                generate_story_image(
                    GenerateStoryImageInput(title="Luna", theme="aventura"), client=genai_client
                )
            )

    def test_timeout_raises(self, genai_client: FakeGenAIClient) -> None:
        """Test a model that does not answer in time fails the flow."""

        async def never_answers():
            await asyncio.sleep(5)

        genai_client.models.queue(never_answers)
        with pytest.raises(FlowError):
            asyncio.run(
                generate_story_image(
                    GenerateStoryImageInput(title="Luna", theme="aventura"),
                    client=genai_client,
                    timeout=0.05,
                )
            )


class TestFlowEndpoints:
    """Test the flow endpoints."""

    def test_generate_story_with_image(self, client: TestClient, genai_client: FakeGenAIClient) -> None:
        """Test the story is returned together with its illustration."""
        genai_client.models.queue(text_response(GENERATED), image_response())
        response = client.post("/api/flows/generate-story", json=STORY_INPUT)
        assert response.status_code == 200
        data = response.json()
        assert data["title"] == GENERATED["title"]
        assert data["story"] == GENERATED["story"]
        assert data["imageUrl"].startswith("data:image/png;base64,")

    def test_generate_story_without_image(
        self, client: TestClient, genai_client: FakeGenAIClient
    ) -> None:
        """Test a failed illustration leaves the story intact."""
        genai_client.models.queue(text_response(GENERATED), empty_response())
        response = client.post("/api/flows/generate-story", json=STORY_INPUT)
        assert response.status_code == 200
        assert "imageUrl" not in response.json()

    def test_generate_story_failure_is_502(
        self, client: TestClient, genai_client: FakeGenAIClient
    ) -> None:
        """Test a failed flow answers 502 with a Spanish message."""
        genai_client.models.queue(SimpleNamespace(text=json.dumps({"titulo": "x"}), candidates=[]))
        response = client.post("/api/flows/generate-story", json=STORY_INPUT)
        assert response.status_code == 502
        body = response.json()
        assert body["success"] is False
        assert body["error"].startswith("No se pudo generar el cuento.")

    def test_generate_story_validates_input(self, client: TestClient) -> None:
        """Test missing fields are rejected before calling the model."""
        response = client.post("/api/flows/generate-story", json={"theme": "aventura"})
        assert response.status_code == 400
        fields = {d["field"] for d in response.json()["details"]}
        assert "mainCharacterName" in fields

    def test_extend_story(self, client: TestClient, genai_client: FakeGenAIClient) -> None:
        """Test the new section is returned with its camelCase key."""
        genai_client.models.queue(text_response({"newStorySection": "Y voló lejos."}))
        response = client.post(
            "/api/flows/extend-story",
            json={"existingStory": "Había una vez...", "userInput": "que vuele"},
        )
        assert response.status_code == 200
        assert response.json() == {"newStorySection": "Y voló lejos."}

    def test_illustrate_failure_is_502(self, client: TestClient, genai_client: FakeGenAIClient) -> None:
        """Test a missing image answers 502."""
        genai_client.models.queue(empty_response())
        response = client.post("/api/flows/illustrate", json={"title": "Luna", "theme": "aventura"})
        assert response.status_code == 502
        assert response.json()["error"] == "No se pudo generar la imagen."
