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
Message translation between Actions on Google and the neutral bot models.

Both translators are total: missing fields degrade to None or an empty
string instead of raising.
"""

from collections.abc import Mapping, Sequence
from typing import Any, Dict, Optional
import time

from actions_bot.base import IncomingMessage, OutgoingMessage, Participant, Update
from actions_bot.turns import get_conversation_id, get_message_id, get_turn


def _first_input(conv: Any) -> Optional[Mapping]:
    request = getattr(conv, "request", None)
    if not isinstance(request, Mapping):
        return None

    inputs = request.get("inputs")
    if not isinstance(inputs, Sequence) or isinstance(inputs, str) or not inputs:
        return None

    first = inputs[0]
    return first if isinstance(first, Mapping) else None


def get_raw_query(conv: Any) -> str:
    """
    Return the user utterance of a conversation turn.

    Reads inputs[0].rawInputs.query from the request. Webhook payloads
    carry rawInputs as a list, in which case the first entry is used.

    Returns:
        The utterance, or "" if not available
    """
    first = _first_input(conv)
    if first is None:
        return ""

    raw_inputs = first.get("rawInputs")
    if isinstance(raw_inputs, Sequence) and not isinstance(raw_inputs, str):
        raw_inputs = raw_inputs[0] if raw_inputs else None
    if not isinstance(raw_inputs, Mapping):
        return ""

    query = raw_inputs.get("query")
    return query if isinstance(query, str) else ""


async def format_update(conv: Any, bot_id: Optional[str]) -> Update:
    """
    Build a neutral update from an Actions on Google conversation.

    Args:
        conv: The conversation (may be None)
        bot_id: Identifier of the receiving bot

    Returns:
        The formatted Update
    """
    return Update(
        raw=conv,
        sender=Participant(id=get_conversation_id(conv)),
        recipient=Participant(id=bot_id),
        timestamp=int(time.time() * 1000),
        message=IncomingMessage(
            mid=get_message_id(conv),
            seq=get_turn(conv),
            text=get_raw_query(conv),
        ),
    )


async def format_outgoing_message(outgoing_message: Optional[OutgoingMessage]) -> Dict[str, Any]:
    """
    Format an outgoing message as a conversation response.

    Returns:
        {"response": text}, with None when the message carries no text
    """
    message = getattr(outgoing_message, "message", None)
    return {"response": getattr(message, "text", None)}
