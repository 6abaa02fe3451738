"""Tests for create_live_queue_store backend selection."""

import pytest

from app.services.storage import LiveQueueStore, MemoryLiveQueueStore, create_live_queue_store
from app.services.storage.mongo_store import MongoLiveQueueStore


class TestCreateLiveQueueStore:
    def test_memory_backend(self):
        store = create_live_queue_store("memory")

        assert isinstance(store, MemoryLiveQueueStore)
        assert isinstance(store, LiveQueueStore)

    def test_mongo_backend_is_case_insensitive(self):
        assert isinstance(create_live_queue_store("MONGO"), MongoLiveQueueStore)

    def test_default_comes_from_config(self):
        # The test environment selects the memory backend
        assert isinstance(create_live_queue_store(), MemoryLiveQueueStore)

    def test_unknown_backend(self):
        with pytest.raises(ValueError, match="redis"):
            create_live_queue_store("redis")
