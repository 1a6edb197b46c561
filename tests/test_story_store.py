"""Tests for the local story store and its storage backends."""

import json
from pathlib import Path

import pytest

from storyspark.client import (
    MAX_STORIES,
    STORY_STORAGE_KEY,
    FileStorage,
    MemoryStorage,
    StorageQuotaExceeded,
    StoryStore,
    sort_stories,
)
from storyspark.models.contracts import Story


def story_data(title: str = "Luna y el bosque", **extra) -> dict:
    return {
        "theme": "aventura",
        "mainCharacterName": "Luna",
        "mainCharacterTraits": "valiente",
        "title": title,
        "content": "Había una vez...",
        **extra,
    }


def stored(storage: MemoryStorage) -> list[dict]:
    return json.loads(storage.get_item(STORY_STORAGE_KEY) or "[]")


class FailingStorage(MemoryStorage):
    """Refuses the next ``fail_next`` writes as if the quota were full."""

    def __init__(self) -> None:
        super().__init__()
        self.fail_next = 0

    def set_item(self, key: str, value: str) -> None:
        if self.fail_next > 0:
            self.fail_next -= 1
            raise StorageQuotaExceeded("full")
        super().set_item(key, value)


class TestStoryStoreCRUD:
    """Test adding, reading, updating and removing stories."""

    def test_add_assigns_id_and_created_at(self) -> None:
        """Test a new story gets an id and an ISO timestamp."""
        store = StoryStore(MemoryStorage())
        story = store.add_story(story_data())
        assert story.id
        assert story.created_at.endswith("Z")
        assert store.get_story(story.id) == story

    def test_add_persists_camel_case(self) -> None:
        """Test the stored JSON uses camelCase keys and omits unset fields."""
        storage = MemoryStorage()
        StoryStore(storage).add_story(story_data(imageUrl="data:image/png;base64,AA"))
        [item] = stored(storage)
        assert item["mainCharacterName"] == "Luna"
        assert item["imageUrl"] == "data:image/png;base64,AA"
        assert "audioSrc" not in item

    def test_add_accepts_snake_case(self) -> None:
        """Test snake_case input is accepted too."""
        store = StoryStore(MemoryStorage())
        story = store.add_story(
            {
                "theme": "misterio",
                "main_character_name": "Leo",
                "main_character_traits": "curioso",
                "title": "El faro",
                "content": "Texto",
            }
        )
        assert story.main_character_name == "Leo"

    def test_add_ignores_caller_id(self) -> None:
        """Test ids and timestamps are always generated by the store."""
        store = StoryStore(MemoryStorage())
        story = store.add_story(story_data(id="fijo", createdAt="2000-01-01T00:00:00.000Z"))
        assert story.id != "fijo"
        assert not story.created_at.startswith("2000")

    def test_update_merges_only_given_fields(self) -> None:
        """Test an update leaves other fields untouched."""
        store = StoryStore(MemoryStorage())
        story = store.add_story(story_data())
        updated = store.update_story(story.id, image_url="data:image/png;base64,BB")
        assert updated is not None
        assert updated.image_url == "data:image/png;base64,BB"
        assert updated.title == story.title
        assert updated.content == story.content
        assert updated.created_at == story.created_at

    def test_update_unknown_id(self) -> None:
        """Test updating a missing story is a no-op."""
        store = StoryStore(MemoryStorage())
        assert store.update_story("no-existe", favorite=True) is None

    def test_update_rejects_immutable_fields(self) -> None:
        """Test id, creation time and unknown fields cannot be changed."""
        store = StoryStore(MemoryStorage())
        story = store.add_story(story_data())
        with pytest.raises(ValueError):
            store.update_story(story.id, id="otro")
        with pytest.raises(ValueError):
            store.update_story(story.id, created_at="2000-01-01T00:00:00.000Z")
        with pytest.raises(ValueError):
            store.update_story(story.id, color="azul")

    def test_update_rejects_invalid_values(self) -> None:
        """Test a bad value raises and leaves memory and storage unchanged."""
        storage = MemoryStorage()
        store = StoryStore(storage)
        first = store.add_story(story_data("Uno"))
        second = store.add_story(story_data("Dos"))
        before = stored(storage)

        with pytest.raises(ValueError):
            store.update_story(second.id, extended_count="muchas")

        assert store.get_story(second.id) == second
        assert stored(storage) == before
        assert {s.id for s in StoryStore(storage).stories} == {first.id, second.id}

    def test_remove(self) -> None:
        """Test a removed story disappears from memory and storage."""
        storage = MemoryStorage()
        store = StoryStore(storage)
        keep = store.add_story(story_data("Uno"))
        gone = store.add_story(story_data("Dos"))
        store.remove_story(gone.id)
        assert store.get_story(gone.id) is None
        assert [item["id"] for item in stored(storage)] == [keep.id]

    def test_toggle_favorite(self) -> None:
        """Test favorite flips and favorites are listed."""
        store = StoryStore(MemoryStorage())
        story = store.add_story(story_data())
        assert store.toggle_favorite(story.id).favorite is True
        assert [s.id for s in store.get_favorite_stories()] == [story.id]
        assert store.toggle_favorite(story.id).favorite is False
        assert store.get_favorite_stories() == []

    def test_reload_from_storage(self) -> None:
        """Test a new store sees what an earlier one saved."""
        storage = MemoryStorage()
        story = StoryStore(storage).add_story(story_data())
        assert StoryStore(storage).get_story(story.id) == story


class TestStoryStoreOrdering:
    """Test ordering and the story cap."""

    def test_favorites_first_then_newest(self) -> None:
        """Test favorites sort ahead of newer stories."""
        stories = [
            Story.model_validate({**story_data("nuevo"), "id": "1", "createdAt": "2026-03-01T00:00:00.000Z"}),
            Story.model_validate(
                {**story_data("favorito"), "id": "2", "createdAt": "2026-01-01T00:00:00.000Z", "favorite": True}
            ),
            Story.model_validate({**story_data("medio"), "id": "3", "createdAt": "2026-02-01T00:00:00.000Z"}),
        ]
        assert [s.id for s in sort_stories(stories)] == ["2", "1", "3"]

    def test_newest_added_first(self) -> None:
        """Test a freshly added story leads the collection."""
        store = StoryStore(MemoryStorage())
        store.add_story(story_data("Primero"))
        second = store.add_story(story_data("Segundo"))
        assert store.stories[0].id == second.id

    def test_cap_keeps_newest(self) -> None:
        """Test only the newest stories are kept past the limit."""
        storage = MemoryStorage()
        store = StoryStore(storage)
        added = [store.add_story(story_data(f"Cuento {i}")) for i in range(MAX_STORIES + 5)]
        assert len(store.stories) == MAX_STORIES
        assert len(stored(storage)) == MAX_STORIES
        assert store.get_story(added[-1].id) is not None
        assert store.get_story(added[0].id) is None

    def test_load_truncates_oversized_collection(self) -> None:
        """Test a stored collection over the limit is cut and rewritten."""
        storage = MemoryStorage()
        items = [
            {**story_data(f"Cuento {i}"), "id": str(i), "createdAt": "2026-01-01T00:00:00.000Z"}
            for i in range(MAX_STORIES + 3)
        ]
        storage.set_item(STORY_STORAGE_KEY, json.dumps(items))

        store = StoryStore(storage)
        assert len(store.stories) == MAX_STORIES
        assert len(stored(storage)) == MAX_STORIES

    def test_unreadable_storage_loads_empty(self) -> None:
        """Test corrupt JSON yields an empty collection."""
        storage = MemoryStorage()
        storage.set_item(STORY_STORAGE_KEY, "{no es json")
        assert StoryStore(storage).stories == []

    def test_invalid_record_is_skipped(self) -> None:
        """Test one bad stored record does not drop the others."""
        storage = MemoryStorage()
        good = StoryStore(storage).add_story(story_data("Uno"))
        records = stored(storage)
        records.append({**records[0], "id": "roto", "extendedCount": "muchas"})
        storage.set_item(STORY_STORAGE_KEY, json.dumps(records))

        store = StoryStore(storage)
        assert [s.id for s in store.stories] == [good.id]

        added = store.add_story(story_data("Dos"))
        assert {item["id"] for item in stored(storage)} == {good.id, added.id}

    def test_non_list_storage_loads_empty(self) -> None:
        """Test a stored value that is not an array is ignored."""
        storage = MemoryStorage()
        storage.set_item(STORY_STORAGE_KEY, json.dumps({"title": "Uno"}))
        assert StoryStore(storage).stories == []


class TestStoryStoreQuota:
    """Test behaviour when storage runs out of space."""

    def test_reduces_to_seventy_percent(self) -> None:
        """Test a failed write retries with the leading 70% of the collection."""
        storage = FailingStorage()
        store = StoryStore(storage)
        oldest = store.add_story(story_data("Antiguo"))
        store.toggle_favorite(oldest.id)
        for i in range(9):
            store.add_story(story_data(f"Cuento {i}"))

        storage.fail_next = 1
        newest = store.add_story(story_data("Nuevo"))

        assert len(store.stories) == 7
        assert len(stored(storage)) == 7
        ids = [s.id for s in store.stories]
        assert ids[0] == oldest.id
        assert newest.id in ids

    def test_clears_when_reduced_write_fails(self) -> None:
        """Test storage is cleared and the callback fires when nothing fits."""
        calls: list[bool] = []
        storage = FailingStorage()
        store = StoryStore(storage, on_quota_exceeded=lambda: calls.append(True))
        store.add_story(story_data())

        storage.fail_next = 2
        store.add_story(story_data("Otro"))

        assert store.stories == []
        assert storage.get_item(STORY_STORAGE_KEY) is None
        assert calls == [True]

    def test_byte_quota(self) -> None:
        """Test the memory backend enforces its quota."""
        storage = MemoryStorage(quota_bytes=10)
        with pytest.raises(StorageQuotaExceeded):
            storage.set_item("clave", "un valor demasiado largo")


class TestStoryStoreUtilities:
    """Test clearing, stats and export."""

    def test_clear_all(self) -> None:
        """Test clearing removes the storage key."""
        storage = MemoryStorage()
        store = StoryStore(storage)
        store.add_story(story_data())
        store.clear_all_stories()
        assert store.stories == []
        assert storage.get_item(STORY_STORAGE_KEY) is None

    def test_storage_stats(self) -> None:
        """Test stats report count, size and limit."""
        store = StoryStore(MemoryStorage())
        store.add_story(story_data())
        stats = store.get_storage_stats()
        assert stats["storyCount"] == 1
        assert stats["sizeInKB"] > 0
        assert stats["maxStories"] == MAX_STORIES

    def test_export(self) -> None:
        """Test the export is indented camelCase JSON."""
        store = StoryStore(MemoryStorage())
        story = store.add_story(story_data())
        exported = store.export_stories()
        assert "\n  " in exported
        assert json.loads(exported)[0]["id"] == story.id


class TestFileStorage:
    """Test the JSON file backend."""

    def test_round_trip_and_remove(self, tmp_path: Path) -> None:
        """Test values persist across instances and can be removed."""
        path = tmp_path / "storage.json"
        FileStorage(path).set_item("a", "1")
        storage = FileStorage(path)
        assert storage.get_item("a") == "1"
        storage.remove_item("a")
        assert storage.get_item("a") is None
        storage.remove_item("a")

    def test_missing_file_is_empty(self, tmp_path: Path) -> None:
        """Test reading before any write returns nothing."""
        assert FileStorage(tmp_path / "nada.json").get_item("a") is None

    def test_corrupt_file_is_ignored(self, tmp_path: Path) -> None:
        """Test an unreadable file behaves as empty."""
        path = tmp_path / "storage.json"
        path.write_text("[1, 2", encoding="utf-8")
        assert FileStorage(path).get_item("a") is None

    def test_backs_a_story_store(self, tmp_path: Path) -> None:
        """Test a store can reload its stories from a file."""
        path = tmp_path / "storage.json"
        story = StoryStore(FileStorage(path)).add_story(story_data())
        assert StoryStore(FileStorage(path)).get_story(story.id) == story
