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
Conversation turn handling.

One turn runs: advance the turn counter, register the conversation under
its message identifier, build the update, emit it to the bot's update
handlers, then unregister. Update handlers reply through the bot's
send_message(), which finds the conversation in the registry while the
turn is still open.

Errors while building or emitting the update are answered with an apology
and never reach the conversation app. The registry entry is removed on
every exit path.
"""

from typing import TYPE_CHECKING, Any, Optional
import logging

from actions_bot.conversation import ask_if_open
from actions_bot.registry import ConversationRegistry
from actions_bot.turns import advance_turn, get_message_id

if TYPE_CHECKING:
    from actions_bot.base import BaseBot

logger = logging.getLogger(__name__)


TURN_ERROR_MESSAGE = "I'm sorry, I can't help at the moment. Please try again later"
UNHANDLED_ERROR_MESSAGE = "I'm sorry, I am unable to respond at the moment"


class TurnHandler:
    """
    Runs conversation turns for a bot.

    Attributes:
        bot: The bot whose update pipeline processes each turn
        registry: Registry of conversations with an open turn
        error_message: Apology used when a turn fails (optional)
    """

    def __init__(
        self,
        bot: "BaseBot",
        registry: ConversationRegistry,
        error_message: Optional[str] = None,
    ):
        self.bot = bot
        self.registry = registry
        self.error_message = error_message or TURN_ERROR_MESSAGE

    async def handle_intent(self, conv: Any, query: Any) -> None:
        """
        Process one conversation turn.

        Args:
            conv: The conversation
            query: The user input of the turn
        """
        logger.debug(f"Processing {getattr(conv, 'intent', None)} intent: {query!r}")

        advance_turn(conv)
        mid = get_message_id(conv)

        with self.registry.registered(mid, conv):
            try:
                update = await self.bot.format_update(conv)
                logger.debug(f"Emitting update for {update.message.mid}: {update.message.text!r}")
                await self.bot.emit_update(update)
            except Exception as e:
                logger.error(
                    f"{type(e).__name__} processing update for {mid}: {e}",
                    exc_info=True,
                )
                ask_if_open(conv, self.error_message)

    def handle_error(self, conv: Any, error: Exception) -> None:
        """
        Answer a turn whose error escaped handle_intent().

        Args:
            conv: The conversation
            error: The escaped error
        """
        logger.error(
            f"{type(error).__name__} processing {getattr(conv, 'intent', None)} intent: {error}"
        )
        ask_if_open(conv, UNHANDLED_ERROR_MESSAGE)
        self.registry.delete(get_message_id(conv))
