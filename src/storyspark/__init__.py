"""Story Spark - Spanish children's stories from generative models.

Generates, extends, illustrates and narrates children's stories, with user
accounts and per-user story storage behind a FastAPI service.

Quick Start:
    from storyspark.flows import GenerateStoryInput, generate_unique_story

    story = await generate_unique_story(
        GenerateStoryInput(
            theme="aventura",
            main_character_name="Luna",
            main_character_traits="valiente",
        )
    )

    # Keep it in a local store
    from storyspark.client import FileStorage, StoryStore

    store = StoryStore(FileStorage("stories.json"))
    store.add_story({...})

Layout:
    api       - FastAPI app, routers, route guard
    flows     - generative model calls with validated input and output
    services  - accounts, saved stories, e-mail, narration cache
    models    - SQLAlchemy models and wire contracts
    client    - story store and HTTP client for the API
"""

__version__ = "0.1.0"

__all__ = ["__version__"]
