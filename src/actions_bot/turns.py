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
Turn counter accessors for Actions on Google conversations.

The turn counter lives in the conversation's data bag, which the platform
round-trips through the conversation token, so it survives between webhook
calls of the same conversation. Combined with the conversation id it gives
each turn a unique message identifier ("{conversationId}:{turn}").

None of these functions raise: a missing or malformed conversation degrades
to None (or to the literal "undefined" inside a message identifier).
"""

from collections.abc import Mapping, MutableMapping
from typing import Any, Optional

TURN_KEY = "turn"

# Placeholder for a missing message identifier component
UNDEFINED = "undefined"


def _data_bag(conv: Any) -> Optional[Mapping]:
    data = getattr(conv, "data", None)
    return data if isinstance(data, Mapping) else None


def get_conversation_id(conv: Any) -> Optional[str]:
    """
    Return the identifier of a conversation.

    Args:
        conv: Actions on Google conversation (may be None)

    Returns:
        Conversation identifier, or None if not available
    """
    return getattr(conv, "id", None)


def get_turn(conv: Any) -> Optional[int]:
    """
    Return the turn count stored in a conversation.

    Args:
        conv: Actions on Google conversation (may be None)

    Returns:
        The turn count, or None if not available or not an integer
    """
    data = _data_bag(conv)
    if data is None:
        return None
    turn = data.get(TURN_KEY)
    if not isinstance(turn, int) or isinstance(turn, bool):
        return None
    return turn


def set_turn(conv: Any, turn: Optional[int]) -> None:
    """
    Store the turn count in a conversation.

    Falsy values (None and 0) are not written, so a conversation whose
    computed turn is 0 keeps no stored counter.

    Args:
        conv: Actions on Google conversation (may be None)
        turn: The turn count to be set
    """
    if conv is None or not turn:
        return

    data = getattr(conv, "data", None)
    if not isinstance(data, MutableMapping):
        data = {}
        conv.data = data
    data[TURN_KEY] = turn


def advance_turn(conv: Any) -> int:
    """
    Advance the turn counter of a conversation by one.

    A conversation without a counter starts at 0.

    Returns:
        The computed turn count (which is not persisted when 0)
    """
    turn = get_turn(conv)
    turn = turn + 1 if turn is not None else 0
    set_turn(conv, turn)
    return turn


def get_message_id(conv: Any) -> str:
    """
    Return the message identifier for the current turn of a conversation.

    Args:
        conv: Actions on Google conversation (may be None)

    Returns:
        "{conversationId}:{turn}", with "undefined" for a missing part
    """
    conv_id = get_conversation_id(conv)
    turn = get_turn(conv)
    return (
        f"{conv_id if conv_id is not None else UNDEFINED}"
        f":{turn if turn is not None else UNDEFINED}"
    )
