# Copyright 2024-2025 Amiable Development
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
Tests for the in-flight conversation registry.
"""

import logging
import threading

import pytest

from actions_bot.registry import ConversationRegistry


class TestConversationRegistry:
    """Tests for put/get/delete."""

    @pytest.fixture
    def registry(self):
        return ConversationRegistry()

    def test_starts_empty(self, registry):
        """A new registry should hold no conversations."""
        assert len(registry) == 0

    def test_put_and_get(self, registry):
        """Should return the conversation registered under a mid."""
        conv = object()

        registry.put("conv-1:1", conv)

        assert registry.get("conv-1:1") is conv
        assert "conv-1:1" in registry

    def test_get_unknown(self, registry):
        """Should return None for an unknown mid."""
        assert registry.get("nope") is None
        assert registry.get(None) is None

    def test_delete(self, registry):
        """Should remove the entry."""
        registry.put("conv-1:1", object())

        assert registry.delete("conv-1:1") is True
        assert "conv-1:1" not in registry

    def test_delete_is_idempotent(self, registry):
        """Deleting an absent entry should be a no-op."""
        registry.put("conv-1:1", object())
        registry.delete("conv-1:1")

        assert registry.delete("conv-1:1") is False
        assert registry.delete(None) is False
        assert len(registry) == 0

    def test_put_replaces_live_entry(self, registry, caplog):
        """Re-registering a live mid should replace it and warn."""
        first, second = object(), object()
        registry.put("conv-1:1", first)

        with caplog.at_level(logging.WARNING, logger="actions_bot.registry"):
            registry.put("conv-1:1", second)

        assert registry.get("conv-1:1") is second
        assert len(registry) == 1
        assert "conv-1:1" in caplog.text

    def test_registries_are_independent(self):
        """Entries should not leak between registry instances."""
        one, two = ConversationRegistry(), ConversationRegistry()

        one.put("conv-1:1", object())

        assert two.get("conv-1:1") is None


class TestRegisteredScope:
    """Tests for the registered() context manager."""

    @pytest.fixture
    def registry(self):
        return ConversationRegistry()

    def test_registered_inside_block(self, registry):
        """The conversation should be available inside the block."""
        conv = object()

        with registry.registered("conv-1:1", conv) as mid:
            assert mid == "conv-1:1"
            assert registry.get(mid) is conv

        assert len(registry) == 0

    def test_removed_when_block_raises(self, registry):
        """The entry should be removed when the block raises."""
        with pytest.raises(RuntimeError):
            with registry.registered("conv-1:1", object()):
                raise RuntimeError("boom")

        assert "conv-1:1" not in registry

    def test_removed_when_deleted_inside_block(self, registry):
        """Deleting inside the block should not break the exit cleanup."""
        with registry.registered("conv-1:1", object()):
            registry.delete("conv-1:1")

        assert len(registry) == 0


class TestRegistryThreadSafety:
    """Tests for concurrent access."""

    def test_concurrent_put_delete(self):
        """Concurrent registrations should all be cleaned up."""
        registry = ConversationRegistry()

        def worker(n):
            for turn in range(200):
                with registry.registered(f"conv-{n}:{turn}", object()):
                    pass

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(registry) == 0
