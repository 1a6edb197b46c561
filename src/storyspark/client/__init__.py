"""Client-side story keeping.

- storage: key/value backends (memory, JSON file)
- story_store: the local story collection under ``story-spark-stories``
- api_client: httpx client that runs flows and fills the store
"""

from .api_client import StoryNotInStoreError, StorySparkAPIError, StorySparkClient
from .storage import FileStorage, MemoryStorage, Storage, StorageQuotaExceeded
from .story_store import MAX_STORIES, STORY_STORAGE_KEY, StoryStore, sort_stories

__all__ = [
    # Storage
    "Storage",
    "MemoryStorage",
    "FileStorage",
    "StorageQuotaExceeded",
    # Store
    "StoryStore",
    "STORY_STORAGE_KEY",
    "MAX_STORIES",
    "sort_stories",
    # API client
    "StorySparkClient",
    "StorySparkAPIError",
    "StoryNotInStoreError",
]
