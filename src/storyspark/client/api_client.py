"""HTTP client for the Story Spark API.

Runs the generative flows on the server and keeps the results in a local
``StoryStore``. Authenticated calls send the session token as a bearer header.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from storyspark.models.contracts import Story

from .story_store import StoryStore

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 120.0


class StorySparkAPIError(Exception):
    """The API answered with an error status."""

    def __init__(self, status_code: int, message: str):
        self.status_code = status_code
        self.message = message
        super().__init__(f"{status_code}: {message}")


class StoryNotInStoreError(KeyError):
    """No local story has the requested id."""


class StorySparkClient:
    """Async client bound to one server and one local story store.

    Usage:
        async with StorySparkClient("http://localhost:8000", store) as client:
            await client.login("ana@example.com", "secreto")
            story = await client.generate_story("aventura", "Luna", "valiente")
            await client.extend_story(story.id, "Luna encuentra un dragón")
    """

    def __init__(
        self,
        base_url: str,
        store: StoryStore,
        http_client: httpx.AsyncClient | None = None,
        token: str | None = None,
    ):
        self.store = store
        self.token = token
        self._owns_client = http_client is None
        self._http = http_client or httpx.AsyncClient(base_url=base_url, timeout=DEFAULT_TIMEOUT)

    async def __aenter__(self) -> StorySparkClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def close(self) -> None:
        if self._owns_client:
            await self._http.aclose()

    # =========================================================================
    # Transport
    # =========================================================================

    def _headers(self) -> dict[str, str]:
        if self.token:
            return {"Authorization": f"Bearer {self.token}"}
        return {}

    async def _request(self, method: str, path: str, json: Any = None) -> Any:
        """Send a request and return the decoded JSON body.

        Raises:
            StorySparkAPIError: On any non-2xx response
        """
        logger.debug("%s %s", method, path)
        response = await self._http.request(method, path, json=json, headers=self._headers())
        if response.is_success:
            return response.json() if response.content else None

        message = response.reason_phrase
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            message = body.get("error") or body.get("message") or message
        logger.warning("%s %s failed with %d: %s", method, path, response.status_code, message)
        raise StorySparkAPIError(response.status_code, message)

    def _require_story(self, story_id: str) -> Story:
        story = self.store.get_story(story_id)
        if story is None:
            raise StoryNotInStoreError(story_id)
        return story

    # =========================================================================
    # Session
    # =========================================================================

    async def login(self, email: str, password: str) -> dict[str, Any]:
        """Sign in and keep the session token for later calls."""
        body = await self._request("POST", "/api/auth/login", {"email": email, "password": password})
        self.token = body["token"]
        return body["user"]

    async def logout(self) -> None:
        """Revoke the session token on the server and forget it."""
        if self.token is None:
            return
        await self._request("POST", "/api/auth/revoke-token")
        self.token = None

    # =========================================================================
    # Flows
    # =========================================================================

    async def generate_story(
        self,
        theme: str,
        main_character_name: str,
        main_character_traits: str,
    ) -> Story:
        """Generate a story on the server and add it to the local store."""
        body = await self._request(
            "POST",
            "/api/flows/generate-story",
            {
                "theme": theme,
                "mainCharacterName": main_character_name,
                "mainCharacterTraits": main_character_traits,
            },
        )
        return self.store.add_story(
            {
                "theme": theme,
                "main_character_name": main_character_name,
                "main_character_traits": main_character_traits,
                "title": body["title"],
                "content": body["story"],
                "image_url": body.get("imageUrl"),
            }
        )

    async def extend_story(self, story_id: str, user_input: str) -> Story:
        """Append a new section to a stored story.

        The stale narration is dropped since it no longer matches the text.
        """
        story = self._require_story(story_id)
        body = await self._request(
            "POST",
            "/api/flows/extend-story",
            {"existingStory": story.content, "userInput": user_input},
        )
        return self.store.update_story(
            story_id,
            content=f"{story.content}\n\n{body['newStorySection']}",
            extended_count=(story.extended_count or 0) + 1,
            audio_src=None,
        )

    async def illustrate(self, story_id: str) -> Story:
        """Generate an illustration for a stored story."""
        story = self._require_story(story_id)
        body = await self._request(
            "POST",
            "/api/flows/illustrate",
            {"title": story.title, "theme": story.theme},
        )
        return self.store.update_story(story_id, image_url=body["imageUrl"])

    async def narrate(self, story_id: str, previous_text: str | None = None) -> Story:
        """Narrate a stored story and remember where its audio is served."""
        story = self._require_story(story_id)
        payload: dict[str, Any] = {"text": story.content}
        if previous_text:
            payload["previousText"] = previous_text

        self.store.update_story(story_id, is_generating_speech=True)
        try:
            body = await self._request("POST", "/api/flows/text-to-speech", payload)
        finally:
            self.store.update_story(story_id, is_generating_speech=False)
        return self.store.update_story(story_id, audio_src=body["audioUrl"])

    # =========================================================================
    # Server-side stories
    # =========================================================================

    async def save_to_server(self, story_id: str) -> dict[str, Any]:
        """Copy a stored story to the signed-in user's saved stories."""
        story = self._require_story(story_id)
        payload = {
            "theme": story.theme,
            "mainCharacterName": story.main_character_name,
            "mainCharacterTraits": story.main_character_traits,
            "title": story.title,
            "content": story.content,
        }
        if story.image_url:
            payload["imageUrl"] = story.image_url
        body = await self._request("POST", "/api/stories", payload)
        return body["data"]["story"]

    async def list_saved_stories(self, search: str | None = None) -> list[dict[str, Any]]:
        path = "/api/stories"
        if search:
            path = f"{path}?{httpx.QueryParams({'search': search})}"
        body = await self._request("GET", path)
        return body["data"]["stories"]
