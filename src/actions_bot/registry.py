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
In-flight conversation registry.

Maps the message identifier of a conversation turn to the live
conversation object, so a reply produced later by the update handlers can
be written into the webhook exchange that is still waiting for it.

Entries live only while a turn is being processed: registered() inserts
on entry and always removes on exit. There is no expiry, so an entry that
is never removed stays for the life of the process.
"""

from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional
import logging
import threading

logger = logging.getLogger(__name__)


class ConversationRegistry:
    """
    Thread-safe mapping of message identifier to conversation.

    Example:
        registry = ConversationRegistry()

        with registry.registered(mid, conv):
            await bot.emit_update(update)
        # mid is gone here, whatever happened inside the block
    """

    def __init__(self):
        self._conversations: Dict[str, Any] = {}
        self._lock = threading.Lock()

    def put(self, mid: str, conv: Any) -> None:
        """
        Register a conversation under a message identifier.

        A live entry with the same identifier is replaced.
        """
        with self._lock:
            if mid in self._conversations:
                logger.warning(f"Replacing in-flight conversation for {mid}")
            self._conversations[mid] = conv

    def get(self, mid: Optional[str]) -> Optional[Any]:
        """Return the conversation registered under mid, or None."""
        with self._lock:
            return self._conversations.get(mid)

    def delete(self, mid: Optional[str]) -> bool:
        """
        Remove the entry for mid.

        Removing an absent entry is a no-op.

        Returns:
            True if an entry was removed
        """
        with self._lock:
            return self._conversations.pop(mid, None) is not None

    @contextmanager
    def registered(self, mid: str, conv: Any) -> Iterator[str]:
        """Register conv under mid for the duration of the block."""
        self.put(mid, conv)
        try:
            yield mid
        finally:
            self.delete(mid)
            logger.debug(f"Conversation registry has {len(self)} entries")

    def __contains__(self, mid: object) -> bool:
        with self._lock:
            return mid in self._conversations

    def __len__(self) -> int:
        with self._lock:
            return len(self._conversations)
